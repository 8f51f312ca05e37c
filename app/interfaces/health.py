"""
Health check router.

Liveness probe for the API process. Reports the application version and
whether the in-process batch scheduler is running.
"""

from fastapi import APIRouter, Request

from app.core.config import settings
from app.interfaces.pricing.schemas import HealthResponse

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns application status, version and scheduler state.",
)
def health_check(request: Request) -> HealthResponse:
    """Return current application health status."""
    scheduler = getattr(request.app.state, "scheduler", None)
    running = scheduler is not None and scheduler.is_running
    return HealthResponse(
        status="ok",
        version=settings.version,
        scheduler="running" if running else "disabled",
    )
