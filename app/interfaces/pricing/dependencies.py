"""
Dependency injection for the pricing bounded context.

Provides FastAPI dependency functions that wire infrastructure
adapters into use cases via constructor injection.
These are the composition root for the pricing context.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.engine import Engine

from app.application.pricing.compute_features import ComputeFeaturesUseCase
from app.application.pricing.generate_forecast import GenerateForecastUseCase
from app.application.pricing.get_predictions import GetPredictionsUseCase
from app.application.pricing.summarize_accuracy import SummarizeAccuracyUseCase
from app.application.pricing.validate_predictions import ValidatePredictionsUseCase
from app.core.config import settings
from app.infrastructure.pricing.accuracy_repository import AccuracyRepositoryAdapter
from app.infrastructure.pricing.database import build_engine
from app.infrastructure.pricing.feature_repository import FeatureRepositoryAdapter
from app.infrastructure.pricing.observation_repository import (
    ObservationRepositoryAdapter,
)
from app.infrastructure.pricing.parameter_repository import ParameterRepositoryAdapter
from app.infrastructure.pricing.prediction_repository import (
    PredictionRepositoryAdapter,
)
from app.infrastructure.pricing.weather_forecast_repository import (
    WeatherForecastRepositoryAdapter,
)


@lru_cache(maxsize=1)
def get_db_engine() -> Engine:
    """Build the SQLAlchemy engine once from application settings."""
    return build_engine(settings.database_url)


def build_compute_features_use_case(engine: Engine) -> ComputeFeaturesUseCase:
    return ComputeFeaturesUseCase(
        observation_repo=ObservationRepositoryAdapter(engine),
        feature_repo=FeatureRepositoryAdapter(engine),
    )


def build_generate_forecast_use_case(engine: Engine) -> GenerateForecastUseCase:
    return GenerateForecastUseCase(
        parameter_repo=ParameterRepositoryAdapter(engine),
        feature_repo=FeatureRepositoryAdapter(engine),
        prediction_repo=PredictionRepositoryAdapter(engine),
        weather_repo=WeatherForecastRepositoryAdapter(engine),
    )


def build_validate_predictions_use_case(engine: Engine) -> ValidatePredictionsUseCase:
    return ValidatePredictionsUseCase(
        prediction_repo=PredictionRepositoryAdapter(engine),
        observation_repo=ObservationRepositoryAdapter(engine),
        accuracy_repo=AccuracyRepositoryAdapter(engine),
    )


def build_summarize_accuracy_use_case(engine: Engine) -> SummarizeAccuracyUseCase:
    return SummarizeAccuracyUseCase(accuracy_repo=AccuracyRepositoryAdapter(engine))


def get_generate_forecast_use_case(
    engine: Engine = Depends(get_db_engine),
) -> GenerateForecastUseCase:
    """Build GenerateForecastUseCase with its infrastructure dependencies."""
    return build_generate_forecast_use_case(engine)


def get_predictions_use_case(
    engine: Engine = Depends(get_db_engine),
) -> GetPredictionsUseCase:
    """Build GetPredictionsUseCase with its infrastructure dependencies."""
    return GetPredictionsUseCase(prediction_repo=PredictionRepositoryAdapter(engine))


def get_validate_predictions_use_case(
    engine: Engine = Depends(get_db_engine),
) -> ValidatePredictionsUseCase:
    """Build ValidatePredictionsUseCase with its infrastructure dependencies."""
    return build_validate_predictions_use_case(engine)


def get_summarize_accuracy_use_case(
    engine: Engine = Depends(get_db_engine),
) -> SummarizeAccuracyUseCase:
    """Build SummarizeAccuracyUseCase with its infrastructure dependencies."""
    return build_summarize_accuracy_use_case(engine)
