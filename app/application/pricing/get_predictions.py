"""
Use case: List recent predictions.

Input: GetPredictionsQuery (since, horizon)
Output: list[PredictionResult]
Side effects: None.
Failure cases: PersistenceError.
"""

import logging

from app.application.pricing.dtos import GetPredictionsQuery, PredictionResult
from app.domain.pricing.ports import PredictionRepository

logger = logging.getLogger(__name__)


class GetPredictionsUseCase:
    """Reads stored predictions for dashboards and automation."""

    def __init__(self, prediction_repo: PredictionRepository) -> None:
        self._predictions = prediction_repo

    def execute(self, query: GetPredictionsQuery) -> list[PredictionResult]:
        logger.debug("Listing predictions since=%s horizon=%s", query.since, query.horizon)
        predictions = self._predictions.get_recent(query.since, query.horizon)
        return [PredictionResult.from_entity(p) for p in predictions]
