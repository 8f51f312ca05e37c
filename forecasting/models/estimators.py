"""
Heuristic price estimators.

Each estimator reads the target-time feature vector and the pinned
ModelParameters and returns one price. None of them is fitted here:
correlations, statistics, scaling factors and seasonal profiles all come
from the published bundle.

- `LagEstimator`           — correlation-weighted blend of price lags
- `DecompositionEstimator` — weekly level × hour-of-day × weekday profile
- `VolatilityEstimator`    — last price shrunk toward the daily mean
- `RegimeEstimator`        — regime-scaled level plus z-scored drivers
"""

import logging
import math
from collections.abc import Mapping
from typing import Any

from app.domain.pricing.entities import ModelParameters
from forecasting.models.base import BaseEstimator

logger = logging.getLogger(__name__)

DEFAULT_LAG_WEIGHTS = {
    "price_lag_1h": 0.6,
    "price_lag_24h": 0.3,
    "price_lag_168h": 0.1,
}

DEFAULT_REGIME_FACTORS = {
    "normal": 1.0,
    "peak_demand": 1.15,
    "high_renewable": 0.85,
    "high_volatility": 1.05,
}


class LagEstimator(BaseEstimator):
    """Blend of recent, daily and weekly price lags.

    Each lag is weighted by the absolute correlation published for it
    (falling back to fixed defaults); null lags drop out and the
    remaining weights are renormalized.
    """

    name = "lag"

    def estimate(self, features: Mapping[str, Any], params: ModelParameters) -> float:
        total = 0.0
        weight_sum = 0.0
        for lag_name, default in DEFAULT_LAG_WEIGHTS.items():
            value = features.get(lag_name)
            if value is None:
                continue
            corr = params.feature_correlations.get(lag_name)
            w = abs(corr) if corr is not None else default
            total += w * value
            weight_sum += w
        if weight_sum > 0:
            return total / weight_sum
        return self._level(features, "price_rolling_avg_24h")


class DecompositionEstimator(BaseEstimator):
    """Weekly level scaled by seasonal hour-of-day and weekday factors.

    Profiles live in ``feature_statistics["price_by_hour"]`` and
    ``feature_statistics["price_by_day_of_week"]`` as mean prices keyed by
    hour / weekday; factors are relative to ``feature_statistics["price"]``
    mean. Missing profiles leave the level unscaled.
    """

    name = "decomposition"

    def estimate(self, features: Mapping[str, Any], params: ModelParameters) -> float:
        level = self._level(features, "price_rolling_avg_7d", "price_rolling_avg_24h")
        stats = params.feature_statistics
        price_stats = stats.get("price")
        base = price_stats.get("mean") if isinstance(price_stats, Mapping) else None
        if not base or base <= 0:
            return level
        hour_factor = self._factor(stats.get("price_by_hour"), features.get("hour_of_day"), base)
        dow_factor = self._factor(
            stats.get("price_by_day_of_week"), features.get("day_of_week"), base
        )
        return level * hour_factor * dow_factor

    @staticmethod
    def _factor(profile: Any, slot: Any, base: float) -> float:
        if not isinstance(profile, Mapping) or slot is None:
            return 1.0
        mean = profile.get(str(int(slot)), profile.get(int(slot)))
        if mean is None:
            return 1.0
        return float(mean) / base


class VolatilityEstimator(BaseEstimator):
    """Latest price pulled toward the 24h mean as the horizon grows.

    The deviation from the mean is clamped to ``outlier_threshold`` daily
    standard deviations and shrunk by how noisy the last six hours were
    relative to the day, then decayed with a 24h time constant.
    """

    name = "volatility"

    def estimate(self, features: Mapping[str, Any], params: ModelParameters) -> float:
        last = float(features["price"])
        mean = self._level(features, "price_rolling_avg_24h")
        std = features.get("price_rolling_std_24h")
        short_vol = features.get("price_volatility_6h")
        horizon = float(features.get("horizon_hours") or 1.0)

        deviation = last - mean
        if std is not None and std > 0 and params.outlier_threshold > 0:
            limit = params.outlier_threshold * std
            deviation = max(-limit, min(limit, deviation))

        if std is not None and short_vol is not None and std + short_vol > 0:
            shrink = std / (std + short_vol)
        else:
            shrink = 0.5
        return mean + deviation * shrink * math.exp(-horizon / 24.0)


class RegimeEstimator(BaseEstimator):
    """Daily mean scaled by a regime factor and adjusted by key drivers.

    The factor comes from ``feature_scaling["regime_<label>"]``. Every
    feature with a published correlation, scaling and mean/std adds
    ``correlation × scaling × z`` where ``z`` is clamped to
    ``outlier_threshold``.
    """

    name = "regime"

    def estimate(self, features: Mapping[str, Any], params: ModelParameters) -> float:
        label = features.get("regime") or "normal"
        factor = params.feature_scaling.get(
            f"regime_{label}", DEFAULT_REGIME_FACTORS.get(label, 1.0)
        )
        estimate = self._level(features, "price_rolling_avg_24h") * factor

        for feature, corr in params.feature_correlations.items():
            scale = params.feature_scaling.get(feature)
            value = features.get(feature)
            if scale is None or value is None or isinstance(value, str):
                continue
            z = self._zscore(
                float(value),
                params.feature_statistics.get(feature),
                params.outlier_threshold,
            )
            if z is not None:
                estimate += corr * scale * z
        return estimate


def default_estimators() -> list[BaseEstimator]:
    """The ordered estimator registry consulted by the ensemble."""
    return [
        LagEstimator(),
        DecompositionEstimator(),
        VolatilityEstimator(),
        RegimeEstimator(),
    ]
