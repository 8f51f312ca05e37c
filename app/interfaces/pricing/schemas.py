"""
Pydantic schemas for pricing API request/response validation.

These schemas enforce input validation and define the API contract.
Naive datetimes in requests are interpreted as UTC.
No business logic belongs here.
"""

from datetime import datetime, timezone
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


def as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ForecastRequest(BaseModel):
    """Request schema for the forecast endpoint.

    Attributes:
        horizons: Horizons in hours; omitted means the configured set.
        prediction_timestamp: Forecast time; omitted means the current hour.
    """

    horizons: list[int] | None = Field(
        default=None, min_length=1, description="Forecast horizons in hours"
    )
    prediction_timestamp: datetime | None = None

    @field_validator("prediction_timestamp")
    @classmethod
    def _utc(cls, v: datetime | None) -> datetime | None:
        return as_utc(v)


class PredictionItem(BaseModel):
    """A single predicted price in the response."""

    model_config = ConfigDict(protected_namespaces=())

    id: UUID
    prediction_timestamp: datetime
    target_timestamp: datetime
    horizon_hours: int
    predicted_price: float
    confidence_lower: float
    confidence_upper: float
    confidence_score: float
    regime: str
    model_version: str


class ForecastResponse(BaseModel):
    """Response schema for the forecast endpoint."""

    model_config = ConfigDict(protected_namespaces=())

    model_version: str
    prediction_timestamp: datetime
    predictions: list[PredictionItem]


class PredictionListResponse(BaseModel):
    """Response schema for the prediction listing endpoint."""

    count: int
    predictions: list[PredictionItem]


class ValidationRequest(BaseModel):
    """Request schema for a validation pass."""

    now: datetime | None = None
    include_expired: bool = Field(
        default=False, description="Re-check predictions marked as permanent gaps"
    )

    @field_validator("now")
    @classmethod
    def _utc(cls, v: datetime | None) -> datetime | None:
        return as_utc(v)


class ValidationResponse(BaseModel):
    """Response schema for a validation pass."""

    checked: int
    validated: int
    deferred: int
    expired: int
    saved: int


class AccuracyResponse(BaseModel):
    """Response schema for the accuracy summary endpoint."""

    start: datetime
    end: datetime
    summary: dict
    retrain_recommended: bool
    snapshots_recorded: int


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    scheduler: str = "disabled"


class ErrorResponse(BaseModel):
    """Standard error response returned by all error handlers."""

    error: str
    detail: str | None = None
