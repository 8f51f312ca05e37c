"""
Application entry point.

Creates the FastAPI application and wires together:
- Routers (one per bounded context)
- Error handlers (centralized domain-to-HTTP mapping)
- Logging configuration
- Batch scheduler (optional, runs the pipeline jobs in-process)

No business logic belongs here.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.core.config import settings
from app.interfaces.health import router as health_router
from app.interfaces.pricing.router import router as pricing_router
from app.shared.errors.handlers import register_error_handlers
from app.shared.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: start/stop the in-process batch scheduler."""
    scheduler = None
    if settings.scheduler_enabled:
        from app.infrastructure.pricing.database import init_schema
        from app.interfaces.pricing.dependencies import get_db_engine
        from forecasting.scheduler import BatchScheduler, default_jobs

        engine = get_db_engine()
        init_schema(engine)
        scheduler = BatchScheduler(default_jobs(engine))
        scheduler.start()
        app.state.scheduler = scheduler

    yield

    if scheduler is not None:
        scheduler.stop()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Registers routers and error handlers.
    This is the composition root of the application.

    Returns:
        A fully configured FastAPI application instance.
    """
    configure_logging(level=settings.log_level)

    app = FastAPI(
        title=settings.project_name,
        version=settings.version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # --- Error Handlers ---
    register_error_handlers(app)

    # --- Routers ---
    app.include_router(health_router, prefix="/api/v1")
    app.include_router(pricing_router, prefix="/api/v1")

    return app


app = create_app()
