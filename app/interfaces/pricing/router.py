"""
FastAPI router for the pricing bounded context.

All routes delegate to use cases. No business logic here.
Input validation is handled by Pydantic schemas.
Error mapping is handled by centralized error handlers.
"""

from dataclasses import asdict
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, Query

from app.application.pricing.dtos import (
    GenerateForecastCommand,
    GetPredictionsQuery,
    PredictionResult,
    SummarizeAccuracyQuery,
    ValidatePredictionsCommand,
)
from app.application.pricing.generate_forecast import GenerateForecastUseCase
from app.application.pricing.get_predictions import GetPredictionsUseCase
from app.application.pricing.summarize_accuracy import SummarizeAccuracyUseCase
from app.application.pricing.validate_predictions import ValidatePredictionsUseCase
from app.interfaces.pricing.dependencies import (
    get_generate_forecast_use_case,
    get_predictions_use_case,
    get_summarize_accuracy_use_case,
    get_validate_predictions_use_case,
)
from app.interfaces.pricing.schemas import (
    AccuracyResponse,
    ErrorResponse,
    ForecastRequest,
    ForecastResponse,
    PredictionItem,
    PredictionListResponse,
    ValidationRequest,
    ValidationResponse,
    as_utc,
)

router = APIRouter(prefix="/pricing", tags=["pricing"])


def _item(r: PredictionResult) -> PredictionItem:
    return PredictionItem(**asdict(r))


@router.post(
    "/forecasts",
    response_model=ForecastResponse,
    responses={
        422: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
    summary="Generate a price forecast",
    description="Run the ensemble for every requested horizon and persist the batch.",
)
def generate_forecast(
    request: ForecastRequest,
    use_case: GenerateForecastUseCase = Depends(get_generate_forecast_use_case),
) -> ForecastResponse:
    """Generate and persist a multi-horizon forecast."""
    command = GenerateForecastCommand(
        horizons=tuple(request.horizons) if request.horizons else None,
        prediction_timestamp=request.prediction_timestamp,
    )
    result = use_case.execute(command)
    return ForecastResponse(
        model_version=result.model_version,
        prediction_timestamp=result.prediction_timestamp,
        predictions=[_item(p) for p in result.predictions],
    )


@router.get(
    "/predictions",
    response_model=PredictionListResponse,
    summary="List recent predictions",
    description="Predictions made since the given time, optionally for one horizon.",
)
def list_predictions(
    since: datetime | None = Query(default=None, description="Defaults to 24h ago"),
    horizon: int | None = Query(default=None, ge=1, le=168),
    use_case: GetPredictionsUseCase = Depends(get_predictions_use_case),
) -> PredictionListResponse:
    """List predictions for dashboards and automation."""
    since = as_utc(since) or datetime.now(timezone.utc) - timedelta(hours=24)
    results = use_case.execute(GetPredictionsQuery(since=since, horizon=horizon))
    return PredictionListResponse(
        count=len(results),
        predictions=[_item(r) for r in results],
    )


@router.post(
    "/validations",
    response_model=ValidationResponse,
    responses={503: {"model": ErrorResponse}},
    summary="Validate past predictions",
    description="Score due predictions against the actual observations available now.",
)
def validate_predictions(
    request: ValidationRequest | None = None,
    use_case: ValidatePredictionsUseCase = Depends(get_validate_predictions_use_case),
) -> ValidationResponse:
    """Run one validation pass."""
    request = request or ValidationRequest()
    result = use_case.execute(
        ValidatePredictionsCommand(now=request.now, include_expired=request.include_expired)
    )
    return ValidationResponse(**asdict(result))


@router.get(
    "/accuracy",
    response_model=AccuracyResponse,
    summary="Accuracy summary",
    description="MAE, RMSE, sMAPE and confidence hit rate by horizon, model and regime.",
)
def accuracy_summary(
    start: datetime | None = Query(default=None),
    end: datetime | None = Query(default=None),
    snapshot: bool = Query(default=False),
    use_case: SummarizeAccuracyUseCase = Depends(get_summarize_accuracy_use_case),
) -> AccuracyResponse:
    """Summarize forecast accuracy over a time range."""
    result = use_case.execute(
        SummarizeAccuracyQuery(start=as_utc(start), end=as_utc(end), snapshot=snapshot)
    )
    return AccuracyResponse(**asdict(result))
