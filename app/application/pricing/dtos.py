"""
Data Transfer Objects for the pricing application layer.

DTOs carry data between the interface and application layers.
They are plain dataclasses with no behavior beyond mapping.
"""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from app.domain.pricing.entities import Prediction


@dataclass(frozen=True)
class ComputeFeaturesCommand:
    """Input DTO for a feature engineering pass.

    Attributes:
        since: Earliest observation hour to (re)write. Defaults to now
            minus the ingestion lateness tolerance.
        now: Reference time; defaults to the current UTC time.
        full_rebuild: Recompute every stored observation hour.
    """

    since: datetime | None = None
    now: datetime | None = None
    full_rebuild: bool = False


@dataclass(frozen=True)
class ComputeFeaturesResult:
    """Output DTO for a feature engineering pass."""

    observations_loaded: int
    records_written: int
    since: datetime | None
    until: datetime


@dataclass(frozen=True)
class GenerateForecastCommand:
    """Input DTO for a forecast run.

    Attributes:
        horizons: Horizons in hours; defaults to the configured set.
        prediction_timestamp: Forecast time; defaults to the current hour.
    """

    horizons: tuple[int, ...] | None = None
    prediction_timestamp: datetime | None = None


@dataclass(frozen=True)
class PredictionResult:
    """Output DTO for one predicted price."""

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

    @classmethod
    def from_entity(cls, p: Prediction) -> "PredictionResult":
        return cls(
            id=p.id,
            prediction_timestamp=p.prediction_timestamp,
            target_timestamp=p.target_timestamp,
            horizon_hours=p.horizon_hours,
            predicted_price=p.predicted_price,
            confidence_lower=p.confidence_lower,
            confidence_upper=p.confidence_upper,
            confidence_score=p.confidence_score,
            regime=p.regime.value,
            model_version=p.model_version,
        )


@dataclass(frozen=True)
class GenerateForecastResult:
    """Output DTO for a forecast run."""

    model_version: str
    prediction_timestamp: datetime
    predictions: list[PredictionResult] = field(default_factory=list)


@dataclass(frozen=True)
class GetPredictionsQuery:
    """Input DTO for listing recent predictions."""

    since: datetime
    horizon: int | None = None


@dataclass(frozen=True)
class ValidatePredictionsCommand:
    """Input DTO for a validation pass.

    Set ``include_expired`` to re-check predictions already marked as
    permanent gaps, e.g. after a backfill of actual observations.
    """

    now: datetime | None = None
    include_expired: bool = False


@dataclass(frozen=True)
class ValidatePredictionsResult:
    """Output DTO for a validation pass.

    Attributes:
        checked: Unvalidated predictions whose target has passed.
        validated: Predictions matched with an actual observation.
        deferred: Predictions still waiting for their actual.
        expired: Predictions whose target hour is a permanent gap.
        saved: Accuracy records actually inserted.
    """

    checked: int
    validated: int
    deferred: int
    expired: int
    saved: int


@dataclass(frozen=True)
class SummarizeAccuracyQuery:
    """Input DTO for an accuracy summary.

    Attributes:
        start: Earliest target time; defaults to ``end`` minus 7 days.
        end: Latest target time; defaults to now.
        snapshot: Also record per-model performance snapshots.
    """

    start: datetime | None = None
    end: datetime | None = None
    snapshot: bool = False


@dataclass(frozen=True)
class AccuracySummaryResult:
    """Output DTO for an accuracy summary."""

    start: datetime
    end: datetime
    summary: dict
    retrain_recommended: bool
    snapshots_recorded: int = 0
