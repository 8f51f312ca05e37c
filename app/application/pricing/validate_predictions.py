"""
Use case: Score past predictions against actual observations.

Input: ValidatePredictionsCommand (now)
Output: ValidatePredictionsResult
Side effects: Inserts prediction_accuracy rows (at most one per prediction)
    and marks expired predictions.
Failure cases: PersistenceError.

A prediction without an actual yet is deferred and retried on the next
pass. Once its target is older than the lateness tolerance plus the
match window, the hour is a permanent gap: the prediction is counted as
expired once and marked so later passes skip it.
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from app.application.pricing.dtos import (
    ValidatePredictionsCommand,
    ValidatePredictionsResult,
)
from app.domain.pricing.entities import AccuracyRecord
from app.domain.pricing.ports import (
    AccuracyRepository,
    ObservationRepository,
    PredictionRepository,
)
from forecasting.validation import AccuracyTracker

logger = logging.getLogger(__name__)


class ValidatePredictionsUseCase:
    """Matches due predictions with observations and records the outcome."""

    def __init__(
        self,
        prediction_repo: PredictionRepository,
        observation_repo: ObservationRepository,
        accuracy_repo: AccuracyRepository,
        tracker: AccuracyTracker | None = None,
    ) -> None:
        self._predictions = prediction_repo
        self._observations = observation_repo
        self._accuracy = accuracy_repo
        self._tracker = tracker or AccuracyTracker()

    def execute(self, command: ValidatePredictionsCommand) -> ValidatePredictionsResult:
        now = command.now or datetime.now(timezone.utc)
        pending = self._predictions.get_unvalidated(
            due_before=now, include_expired=command.include_expired
        )
        if not pending:
            logger.info("No predictions due for validation.")
            return ValidatePredictionsResult(0, 0, 0, 0, 0)

        window = self._tracker.match_window
        start = min(p.target_timestamp for p in pending) - window
        end = max(p.target_timestamp for p in pending) + window
        observations = self._observations.get_range(start, end)

        records: list[AccuracyRecord] = []
        deferred = 0
        expired: list[UUID] = []
        for prediction in pending:
            record = self._tracker.match(prediction, observations, validated_at=now)
            if record is not None:
                records.append(record)
            elif self._tracker.is_expired(prediction, now):
                expired.append(prediction.id)
            else:
                deferred += 1

        saved = self._accuracy.save_batch(records)
        self._predictions.mark_expired(expired, now)
        if deferred:
            logger.info("%d predictions deferred until their actuals arrive.", deferred)
        if expired:
            logger.info("%d predictions target permanent data gaps.", len(expired))
        logger.info(
            "Validation pass: checked=%d validated=%d saved=%d",
            len(pending), len(records), saved,
        )
        return ValidatePredictionsResult(
            checked=len(pending),
            validated=len(records),
            deferred=deferred,
            expired=len(expired),
            saved=saved,
        )
