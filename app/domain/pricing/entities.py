"""
Domain entities for the pricing bounded context.

Entities represent core business objects with identity and lifecycle.
They contain no framework imports and no IO operations.
All timestamps are timezone-aware UTC datetimes.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from app.domain.pricing.errors import ConfigurationError

WEIGHT_TOLERANCE = 1e-6


class Regime(Enum):
    """Closed set of market-condition buckets used to select ensemble weights."""

    NORMAL = "normal"
    PEAK_DEMAND = "peak_demand"
    HIGH_RENEWABLE = "high_renewable"
    HIGH_VOLATILITY = "high_volatility"

    @classmethod
    def from_label(cls, label: str) -> Optional["Regime"]:
        """Return the regime for a label, or None if it is not in the set."""
        try:
            return cls(label)
        except ValueError:
            return None


@dataclass(frozen=True)
class RawObservation:
    """One hourly market record as delivered by the observation feed.

    ``generation`` is keyed by fuel (wind, solar, hydro, gas, coal, other),
    ``weather`` by variable (temperature_c, wind_speed_kmh) and
    ``reserves`` by variable (available_capacity_mw, operating_reserve_mw).
    """

    timestamp: datetime
    price: Optional[float]
    demand_mw: Optional[float] = None
    generation: dict[str, float] = field(default_factory=dict)
    weather: dict[str, float] = field(default_factory=dict)
    reserves: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class FeatureRecord:
    """Derived features for one observation hour.

    Missing inputs are stored as ``None`` and never zero-filled.
    """

    timestamp: datetime
    values: dict[str, Optional[float]]

    def get(self, name: str) -> Optional[float]:
        return self.values.get(name)


@dataclass(frozen=True)
class WeatherForecast:
    """A forecast of one weather variable issued at a point in time."""

    location: str
    issued_at: datetime
    valid_at: datetime
    temperature_c: float


@dataclass(frozen=True)
class ModelParameters:
    """Immutable, versioned bundle published by the external training job.

    Attributes:
        version: Version label, copied onto every prediction.
        feature_correlations: Feature → correlation with price.
        feature_statistics: Feature → {"mean", "std"}; may also carry
            "price_by_hour" / "price_by_day_of_week" seasonal profiles.
        feature_scaling: Feature → price units per standard deviation,
            plus "regime_<name>" level multipliers.
        regime_thresholds: Ordered regime rules (see RegimeClassifier).
        ensemble_weights: Regime label (or "default") → estimator weights.
        outlier_threshold: Clamp, in standard deviations, for z-scores.
        residual_std_dev: Std dev of historical forecast errors.
    """

    version: str
    feature_correlations: dict[str, float]
    feature_statistics: dict[str, Any]
    feature_scaling: dict[str, float]
    regime_thresholds: dict[str, Any]
    ensemble_weights: dict[str, dict[str, float]]
    outlier_threshold: float
    residual_std_dev: float
    published_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.ensemble_weights:
            raise ConfigurationError(
                f"parameter version {self.version} has no ensemble weights"
            )
        for regime, weights in self.ensemble_weights.items():
            if not all(math.isfinite(w) for w in weights.values()):
                raise ConfigurationError(
                    f"non-finite ensemble weight for regime {regime!r}"
                )
            if any(w < 0 for w in weights.values()):
                raise ConfigurationError(
                    f"negative ensemble weight for regime {regime!r}"
                )
            total = math.fsum(weights.values())
            if abs(total - 1.0) > WEIGHT_TOLERANCE:
                raise ConfigurationError(
                    f"ensemble weights for regime {regime!r} sum to {total:.6f}"
                )
        if not math.isfinite(self.residual_std_dev) or self.residual_std_dev < 0:
            raise ConfigurationError("residual_std_dev must be finite and non-negative")
        if not math.isfinite(self.outlier_threshold):
            raise ConfigurationError("outlier_threshold must be finite")

    def weights_for(self, regime: Regime) -> Optional[dict[str, float]]:
        """Return the regime's weight vector, falling back to "default"."""
        return self.ensemble_weights.get(
            regime.value, self.ensemble_weights.get("default")
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "feature_correlations": self.feature_correlations,
            "feature_statistics": self.feature_statistics,
            "feature_scaling": self.feature_scaling,
            "regime_thresholds": self.regime_thresholds,
            "ensemble_weights": self.ensemble_weights,
            "outlier_threshold": self.outlier_threshold,
            "residual_std_dev": self.residual_std_dev,
        }

    @classmethod
    def from_dict(
        cls, data: dict[str, Any], published_at: Optional[datetime] = None
    ) -> "ModelParameters":
        try:
            return cls(
                version=str(data["version"]),
                feature_correlations=dict(data.get("feature_correlations", {})),
                feature_statistics=dict(data.get("feature_statistics", {})),
                feature_scaling=dict(data.get("feature_scaling", {})),
                regime_thresholds=dict(data.get("regime_thresholds", {})),
                ensemble_weights={
                    k: dict(v) for k, v in data["ensemble_weights"].items()
                },
                outlier_threshold=float(data.get("outlier_threshold", 3.0)),
                residual_std_dev=float(data["residual_std_dev"]),
                published_at=published_at,
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigurationError(f"malformed parameter bundle: {exc}") from exc


@dataclass(frozen=True)
class Prediction:
    """A point forecast with confidence band for one target hour."""

    prediction_timestamp: datetime
    target_timestamp: datetime
    horizon_hours: int
    predicted_price: float
    confidence_lower: float
    confidence_upper: float
    confidence_score: float
    regime: Regime
    model_version: str
    features_used: dict[str, Any] = field(default_factory=dict)
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        expected = self.prediction_timestamp + timedelta(hours=self.horizon_hours)
        if self.target_timestamp != expected:
            raise ValueError(
                f"target_timestamp {self.target_timestamp} != "
                f"prediction_timestamp + {self.horizon_hours}h"
            )
        if not self.confidence_lower <= self.predicted_price <= self.confidence_upper:
            raise ValueError(
                f"predicted price {self.predicted_price} outside "
                f"[{self.confidence_lower}, {self.confidence_upper}]"
            )


@dataclass(frozen=True)
class AccuracyRecord:
    """Outcome of scoring one prediction against its actual observation."""

    prediction_id: UUID
    target_timestamp: datetime
    horizon_hours: int
    model_version: str
    regime: str
    predicted_price: float
    actual_price: float
    actual_timestamp: datetime
    absolute_error: float
    percent_error: Optional[float]
    symmetric_percent_error: Optional[float]
    within_confidence: bool
    validated_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
