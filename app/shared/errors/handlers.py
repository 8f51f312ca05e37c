"""
Centralized error handlers for FastAPI.

Maps domain-specific errors to HTTP responses.
No stack traces or internal details are exposed to clients.
All error responses use the ErrorResponse schema.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.domain.pricing.errors import (
    ConfigurationError,
    InsufficientHistoryError,
    InvalidHorizonError,
    PersistenceError,
    PricingDomainError,
)

logger = logging.getLogger(__name__)

HTTP_422 = 422
HTTP_500 = 500
HTTP_503 = 503


def _error_response(status_code: int, error: str, detail: str | None = None) -> JSONResponse:
    """Build a consistent JSON error response."""
    body: dict[str, str | None] = {"error": error}
    if detail:
        body["detail"] = detail
    return JSONResponse(status_code=status_code, content=body)


def register_error_handlers(app: FastAPI) -> None:
    """Register all domain error handlers on the FastAPI application.

    Args:
        app: The FastAPI application instance.
    """

    @app.exception_handler(ConfigurationError)
    async def handle_configuration(
        _request: Request, exc: ConfigurationError
    ) -> JSONResponse:
        """No usable model parameters: the forecast service is unavailable."""
        logger.error("Configuration error: %s", exc.reason)
        return _error_response(HTTP_503, "Model parameters unavailable")

    @app.exception_handler(InsufficientHistoryError)
    async def handle_insufficient_history(
        _request: Request, exc: InsufficientHistoryError
    ) -> JSONResponse:
        """Handle forecasts requested over too little history."""
        logger.warning("Insufficient history: %d/%d", exc.available, exc.required)
        detail = f"{exc.available} records available, {exc.required} required"
        if exc.detail:
            detail = f"{detail} ({exc.detail})"
        return _error_response(HTTP_422, "Insufficient history", detail)

    @app.exception_handler(InvalidHorizonError)
    async def handle_invalid_horizon(
        _request: Request, exc: InvalidHorizonError
    ) -> JSONResponse:
        """Handle invalid forecast horizon errors."""
        logger.warning("Invalid horizon: %d", exc.horizon)
        return _error_response(
            HTTP_422,
            "Invalid forecast horizon",
            f"Allowed horizons: {list(exc.allowed)}",
        )

    @app.exception_handler(PersistenceError)
    async def handle_persistence(
        _request: Request, exc: PersistenceError
    ) -> JSONResponse:
        """Handle failed batch writes; nothing was committed."""
        logger.error("Persistence error during %s", exc.operation)
        return _error_response(HTTP_503, "Storage unavailable")

    @app.exception_handler(PricingDomainError)
    async def handle_pricing_domain(
        _request: Request, exc: PricingDomainError
    ) -> JSONResponse:
        """Catch-all for unhandled pricing domain errors."""
        logger.error("Unhandled pricing domain error: %s", exc.message)
        return _error_response(HTTP_500, "Internal server error")

    @app.exception_handler(Exception)
    async def handle_unexpected(
        _request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch-all for unexpected errors. Never exposes internals."""
        logger.exception("Unexpected error: %s", type(exc).__name__)
        return _error_response(HTTP_500, "Internal server error")
