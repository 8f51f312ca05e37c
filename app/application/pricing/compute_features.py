"""
Use case: Recompute feature records from raw observations.

Input: ComputeFeaturesCommand (since, now, full_rebuild)
Output: ComputeFeaturesResult
Side effects: Upserts feature_records for hours >= since.
Failure cases: PersistenceError.

Observations may arrive up to the lateness tolerance after their hour,
so each pass rewrites the trailing tolerance window. Hours older than
that are settled; a hole there is a permanent gap.

Momentum compares records by position rather than by hour, so an
incremental pass also loads the few observations just before its
lookback window. Records near the window edge then see the same
neighbours as in a full rebuild.
"""

import logging
from datetime import datetime, timedelta, timezone

from app.application.pricing.dtos import ComputeFeaturesCommand, ComputeFeaturesResult
from app.domain.pricing.ports import FeatureRepository, ObservationRepository
from forecasting.config import FeatureConfig, ValidationConfig, config
from forecasting.features.lag import floor_hour
from forecasting.features.pipeline import FeaturePipeline

logger = logging.getLogger(__name__)


def lookback_hours(cfg: FeatureConfig) -> int:
    """Hours of history a record needs for every lag and window."""
    return max(
        *cfg.price_lags,
        *cfg.demand_lags,
        *cfg.wind_lags,
        *cfg.gas_price_lags,
        *cfg.price_avg_windows,
        *cfg.price_volatility_windows,
        cfg.price_std_window,
        cfg.price_extrema_window,
        cfg.demand_avg_window,
        cfg.wind_avg_window,
    )


class ComputeFeaturesUseCase:
    """Runs the feature pipeline over the recent observation window."""

    def __init__(
        self,
        observation_repo: ObservationRepository,
        feature_repo: FeatureRepository,
        pipeline: FeaturePipeline | None = None,
        feature_cfg: FeatureConfig | None = None,
        validation_cfg: ValidationConfig | None = None,
    ) -> None:
        self._observations = observation_repo
        self._features = feature_repo
        self._feature_cfg = feature_cfg or config.features
        self._pipeline = pipeline or FeaturePipeline(self._feature_cfg)
        self._lateness = timedelta(
            hours=(validation_cfg or config.validation).lateness_hours
        )

    def execute(self, command: ComputeFeaturesCommand) -> ComputeFeaturesResult:
        now = command.now or datetime.now(timezone.utc)
        if command.full_rebuild:
            since = None
            load_from = None
        else:
            since = floor_hour(command.since or now - self._lateness)
            load_from = since - timedelta(hours=lookback_hours(self._feature_cfg))

        logger.info(
            "Computing features since=%s until=%s",
            since.isoformat() if since else "beginning", now.isoformat(),
        )
        observations = self._observations.get_range(load_from, now)
        if load_from is not None:
            observations = self._observations.get_preceding(
                load_from, max(self._feature_cfg.momentum_steps, default=0)
            ) + observations
        fuel = self._observations.get_fuel_prices(load_from, now)
        records = self._pipeline.run(observations, fuel)
        if since is not None:
            records = [r for r in records if r.timestamp >= since]

        written = self._features.upsert_batch(records)
        logger.info(
            "Feature pass complete: %d observations loaded, %d records written",
            len(observations), written,
        )
        return ComputeFeaturesResult(
            observations_loaded=len(observations),
            records_written=written,
            since=since,
            until=now,
        )
