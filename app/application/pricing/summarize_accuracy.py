"""
Use case: Summarize forecast accuracy over a time range.

Input: SummarizeAccuracyQuery (start, end, snapshot)
Output: AccuracySummaryResult
Side effects: Optionally inserts model_performance snapshots.
Failure cases: PersistenceError.
"""

import logging
from datetime import datetime, timedelta, timezone

from app.application.pricing.dtos import AccuracySummaryResult, SummarizeAccuracyQuery
from app.domain.pricing.ports import AccuracyRepository
from forecasting.utils.metrics import AccuracyMonitor

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK = timedelta(days=7)


class SummarizeAccuracyUseCase:
    """Aggregates accuracy records and flags degradation."""

    def __init__(
        self,
        accuracy_repo: AccuracyRepository,
        monitor: AccuracyMonitor | None = None,
    ) -> None:
        self._accuracy = accuracy_repo
        self._monitor = monitor or AccuracyMonitor()

    def execute(self, query: SummarizeAccuracyQuery) -> AccuracySummaryResult:
        end = query.end or datetime.now(timezone.utc)
        start = query.start or end - DEFAULT_LOOKBACK

        records = self._accuracy.get_range(start, end)
        summary = self._monitor.summarize(records)
        retrain = self._monitor.should_retrain(summary)

        snapshots = 0
        if query.snapshot:
            for version, metrics in self._monitor.model_snapshots(summary).items():
                self._accuracy.save_performance_snapshot(version, metrics, end)
                snapshots += 1

        if retrain:
            logger.warning("Accuracy degraded over %s..%s; retraining recommended.",
                           start.isoformat(), end.isoformat())
        return AccuracySummaryResult(
            start=start,
            end=end,
            summary=summary.to_dict(),
            retrain_recommended=retrain,
            snapshots_recorded=snapshots,
        )
