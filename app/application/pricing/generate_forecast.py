"""
Use case: Generate and persist a multi-horizon price forecast.

Input: GenerateForecastCommand (horizons, prediction_timestamp)
Output: GenerateForecastResult
Side effects: Inserts one price_predictions row per horizon, atomically.
Failure cases: ConfigurationError, InsufficientHistoryError,
    InvalidHorizonError, PersistenceError.

The parameter bundle is read once and pinned for the whole run; a
version published mid-run is picked up by the next run.
"""

import logging
from datetime import datetime, timedelta, timezone

from app.application.pricing.dtos import (
    GenerateForecastCommand,
    GenerateForecastResult,
    PredictionResult,
)
from app.domain.pricing.entities import Prediction
from app.domain.pricing.errors import ConfigurationError, PersistenceError
from app.domain.pricing.ports import (
    FeatureRepository,
    ParameterRepository,
    PredictionRepository,
    WeatherForecastRepository,
)
from forecasting.config import EngineConfig, config
from forecasting.features.lag import floor_hour
from forecasting.inference import ForecastEngine

logger = logging.getLogger(__name__)


class GenerateForecastUseCase:
    """Reads inputs, runs the ensemble engine and persists the batch."""

    def __init__(
        self,
        parameter_repo: ParameterRepository,
        feature_repo: FeatureRepository,
        prediction_repo: PredictionRepository,
        weather_repo: WeatherForecastRepository | None = None,
        engine: ForecastEngine | None = None,
        cfg: EngineConfig | None = None,
    ) -> None:
        self._parameters = parameter_repo
        self._features = feature_repo
        self._predictions = prediction_repo
        self._weather = weather_repo
        self._cfg = cfg or config.engine
        self._engine = engine or ForecastEngine(self._cfg)

    def execute(self, command: GenerateForecastCommand) -> GenerateForecastResult:
        made_at = command.prediction_timestamp or floor_hour(datetime.now(timezone.utc))
        horizons = command.horizons or self._cfg.horizons

        params = self._parameters.get_latest()
        if params is None:
            logger.error("No published model parameters; forecast aborted.")
            raise ConfigurationError()

        history = self._features.get_window(made_at, self._cfg.history_window_hours)
        weather = self._forecast_temperatures(made_at, horizons)

        predictions = self._engine.forecast(made_at, horizons, history, params, weather)
        self._persist(predictions)

        logger.info(
            "Forecast %s saved: %d horizons with parameters %s",
            made_at.isoformat(), len(predictions), params.version,
        )
        return GenerateForecastResult(
            model_version=params.version,
            prediction_timestamp=made_at,
            predictions=[PredictionResult.from_entity(p) for p in predictions],
        )

    def _forecast_temperatures(
        self, made_at: datetime, horizons: tuple[int, ...]
    ) -> dict[int, float]:
        if self._weather is None:
            return {}
        temperatures: dict[int, float] = {}
        # Weather forecasts are issued for whole hours
        for h in horizons:
            forecast = self._weather.get_latest(
                self._cfg.market_location, floor_hour(made_at + timedelta(hours=h)), made_at
            )
            if forecast is not None:
                temperatures[h] = forecast.temperature_c
        if len(temperatures) < len(horizons):
            logger.debug(
                "Weather forecast missing for %d of %d horizons; using last known.",
                len(horizons) - len(temperatures), len(horizons),
            )
        return temperatures

    def _persist(self, predictions: list[Prediction]) -> None:
        """Write the batch, retrying the whole batch on failure."""
        attempts = max(1, self._cfg.persist_retries)
        for attempt in range(1, attempts + 1):
            try:
                self._predictions.save_batch(predictions)
                return
            except PersistenceError as exc:
                if attempt == attempts:
                    logger.error(
                        "Prediction batch discarded after %d attempts: %s",
                        attempts, exc.message,
                    )
                    raise
                logger.warning(
                    "Prediction batch write failed (attempt %d/%d); retrying.",
                    attempt, attempts,
                )
