"""
Target-time feature vector.

At forecast time the target hour has not been observed yet. Its vector
is synthesized from:
- the latest known values (price, demand, supply, rolling statistics),
- exact hour-key lags taken relative to the *target* hour, which are
  null when the lagged hour lies after the latest observation,
- calendar features of the target hour,
- the forecast temperature, or the latest known temperature.
"""

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from app.domain.pricing.entities import FeatureRecord
from forecasting.config import FeatureConfig, config
from forecasting.features.interactions import InteractionFeatures
from forecasting.features.lag import HourIndex, LagFeatures, hour_key
from forecasting.features.temporal import TemporalFeatures

logger = logging.getLogger(__name__)


class TargetVectorBuilder:
    """Builds the feature vector handed to the estimators for one horizon."""

    def __init__(self, cfg: FeatureConfig | None = None) -> None:
        cfg = cfg or config.features
        self._temporal = TemporalFeatures()
        self._lag = LagFeatures(cfg)
        self._interactions = InteractionFeatures(cfg)

    def build(
        self,
        history: Sequence[FeatureRecord],
        target_timestamp: datetime,
        horizon_hours: int,
        forecast_temperature: float | None = None,
        index: HourIndex | None = None,
    ) -> dict[str, Any]:
        """Synthesize the vector for ``target_timestamp``.

        Args:
            history: Feature records ordered by timestamp; must be non-empty.
            target_timestamp: Hour being forecast.
            horizon_hours: Hours between the forecast run and the target.
            forecast_temperature: Forecast temperature for the target hour.
            index: Prebuilt index over ``history``, shared across horizons.
        """
        latest = history[-1]
        index = index if index is not None else HourIndex.from_records(history)
        key = hour_key(target_timestamp)

        vector: dict[str, Any] = dict(latest.values)
        vector.update(self._temporal.compute(target_timestamp))
        vector.update(self._lag.compute(index, key))
        if forecast_temperature is not None:
            vector["temperature_c"] = float(forecast_temperature)
        vector.update(self._interactions.compute(vector))
        vector["horizon_hours"] = float(horizon_hours)
        return vector
