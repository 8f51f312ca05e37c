"""
Ensemble prediction engine.

Implements the full inference flow for one forecast run:
1. Validate inputs (parameters present, horizons allowed, history usable)
2. Synthesize the target-time feature vector per horizon
3. Classify its regime
4. Evaluate the estimator registry and combine with regime weights
5. Size the confidence band and confidence score

Horizons run in parallel on the same immutable history and the same
pinned ModelParameters; one failing horizon fails the whole run, since
a partial forecast set must never look like a complete one.
"""

import logging
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta

from app.domain.pricing.entities import FeatureRecord, ModelParameters, Prediction
from app.domain.pricing.errors import (
    ConfigurationError,
    InsufficientHistoryError,
    InvalidHorizonError,
)
from forecasting.config import EngineConfig, FeatureConfig, config
from forecasting.features.lag import HourIndex
from forecasting.features.target import TargetVectorBuilder
from forecasting.models.ensemble import EnsembleCombiner
from forecasting.models.regime import RegimeClassifier

logger = logging.getLogger(__name__)


def confidence_score(horizon_hours: int, cfg: EngineConfig | None = None) -> float:
    """Score in [min_confidence, 1) that decays linearly with horizon."""
    cfg = cfg or config.engine
    return max(cfg.min_confidence, 1.0 - horizon_hours / cfg.confidence_decay_hours)


def band_half_width(
    residual_std_dev: float, horizon_hours: int, widening_factor: float
) -> float:
    """Half-width of the confidence band; grows with horizon."""
    return residual_std_dev * (1.0 + horizon_hours / 24.0 * widening_factor)


class ForecastEngine:
    """Produces one Prediction per horizon for a forecast run."""

    def __init__(
        self,
        cfg: EngineConfig | None = None,
        feature_cfg: FeatureConfig | None = None,
        combiner: EnsembleCombiner | None = None,
    ) -> None:
        self._cfg = cfg or config.engine
        self._builder = TargetVectorBuilder(feature_cfg)
        self._combiner = combiner or EnsembleCombiner()

    @property
    def horizons(self) -> tuple[int, ...]:
        return self._cfg.horizons

    def forecast(
        self,
        prediction_timestamp: datetime,
        horizons: Sequence[int] | None,
        history: Sequence[FeatureRecord],
        params: ModelParameters | None,
        forecast_weather: Mapping[int, float] | None = None,
    ) -> list[Prediction]:
        """Forecast every requested horizon.

        Args:
            prediction_timestamp: When the forecast is made.
            horizons: Horizons in hours; defaults to the configured set.
            history: Recent feature records, any order.
            params: Pinned parameter bundle for this run.
            forecast_weather: Forecast temperature keyed by horizon.

        Returns:
            Predictions ordered as ``horizons``.

        Raises:
            ConfigurationError: No parameters were supplied.
            InvalidHorizonError: A horizon is outside the configured set.
            InsufficientHistoryError: History is empty, shorter than the
                largest horizon, or its latest price is null.
        """
        if params is None:
            raise ConfigurationError()

        horizons = tuple(horizons) if horizons is not None else self._cfg.horizons
        for h in horizons:
            if h not in self._cfg.horizons:
                raise InvalidHorizonError(h, self._cfg.horizons)
        if not horizons:
            return []

        ordered = sorted(history, key=lambda r: r.timestamp)
        if not ordered:
            raise InsufficientHistoryError(0, max(horizons))
        if len(ordered) < max(horizons):
            raise InsufficientHistoryError(len(ordered), max(horizons))
        if ordered[-1].get("price") is None:
            raise InsufficientHistoryError(
                len(ordered), len(ordered), detail="latest record has no price"
            )

        index = HourIndex.from_records(ordered)
        classifier = RegimeClassifier(params.regime_thresholds)
        weather = forecast_weather or {}

        def _one(h: int) -> Prediction:
            return self._forecast_horizon(
                prediction_timestamp, h, ordered, index, params, classifier, weather.get(h)
            )

        workers = max(1, min(len(horizons), self._cfg.max_workers))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="forecast") as pool:
            predictions = list(pool.map(_one, horizons))

        logger.info(
            "Forecast run %s: %d horizons, params %s",
            prediction_timestamp.isoformat(), len(predictions), params.version,
        )
        return predictions

    def _forecast_horizon(
        self,
        prediction_timestamp: datetime,
        horizon: int,
        history: Sequence[FeatureRecord],
        index: HourIndex,
        params: ModelParameters,
        classifier: RegimeClassifier,
        forecast_temperature: float | None,
    ) -> Prediction:
        target = prediction_timestamp + timedelta(hours=horizon)
        vector = self._builder.build(
            history, target, horizon, forecast_temperature, index=index
        )
        regime = classifier.classify(vector)
        vector["regime"] = regime.value

        estimate = self._combiner.combine(vector, params, regime)
        point = estimate.predicted_value
        half = band_half_width(
            params.residual_std_dev, horizon, self._cfg.confidence_widening_factor
        )
        if self._cfg.floor_prices_at_zero:
            point = max(0.0, point)
        lower = point - half
        upper = point + half
        if self._cfg.floor_prices_at_zero:
            lower = max(0.0, lower)

        logger.debug(
            "h=%d regime=%s estimates=%s -> %.2f",
            horizon, regime.value, estimate.model_predictions, point,
        )
        return Prediction(
            prediction_timestamp=prediction_timestamp,
            target_timestamp=target,
            horizon_hours=horizon,
            predicted_price=point,
            confidence_lower=lower,
            confidence_upper=upper,
            confidence_score=confidence_score(horizon, self._cfg),
            regime=regime,
            model_version=params.version,
            features_used=vector,
        )
