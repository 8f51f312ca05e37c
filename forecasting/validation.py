"""
Closed-loop validation.

Scores a past prediction against the actual observation nearest to its
target time. "No actual yet" is an expected transient state: the tracker
returns None and the prediction is retried on a later pass.
"""

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone

from app.domain.pricing.entities import AccuracyRecord, Prediction, RawObservation
from forecasting.config import ValidationConfig, config

logger = logging.getLogger(__name__)

# Below this magnitude a relative error is meaningless and left null.
MIN_PRICE_FOR_PERCENT = 0.01


def percent_error(actual: float, predicted: float) -> float | None:
    """Absolute error as a percentage of the actual price."""
    if abs(actual) <= MIN_PRICE_FOR_PERCENT:
        return None
    return abs(actual - predicted) / abs(actual) * 100.0


def symmetric_percent_error(actual: float, predicted: float) -> float | None:
    """Absolute error as a percentage of the mean magnitude of both prices."""
    denominator = (abs(actual) + abs(predicted)) / 2.0
    if denominator <= MIN_PRICE_FOR_PERCENT:
        return None
    return abs(actual - predicted) / denominator * 100.0


class AccuracyTracker:
    """Matches predictions with actual observations and scores them."""

    def __init__(self, cfg: ValidationConfig | None = None) -> None:
        self._cfg = cfg or config.validation

    @property
    def match_window(self) -> timedelta:
        return timedelta(minutes=self._cfg.match_window_minutes)

    @property
    def expiry(self) -> timedelta:
        """Age after which an unmatched target hour is a permanent gap."""
        return timedelta(hours=self._cfg.lateness_hours) + self.match_window

    def window(self, prediction: Prediction) -> tuple[datetime, datetime]:
        """Inclusive time window in which an actual may match."""
        return (
            prediction.target_timestamp - self.match_window,
            prediction.target_timestamp + self.match_window,
        )

    def is_expired(self, prediction: Prediction, now: datetime) -> bool:
        return prediction.target_timestamp + self.expiry < now

    def find_actual(
        self, prediction: Prediction, observations: Iterable[RawObservation]
    ) -> RawObservation | None:
        """Nearest priced observation inside the window; ties pick the earlier."""
        start, end = self.window(prediction)
        target = prediction.target_timestamp
        best: RawObservation | None = None
        best_rank: tuple[timedelta, datetime] | None = None
        for obs in observations:
            if obs.price is None or not start <= obs.timestamp <= end:
                continue
            rank = (abs(obs.timestamp - target), obs.timestamp)
            if best_rank is None or rank < best_rank:
                best, best_rank = obs, rank
        return best

    def match(
        self,
        prediction: Prediction,
        observations: Iterable[RawObservation],
        validated_at: datetime | None = None,
    ) -> AccuracyRecord | None:
        """Score ``prediction`` or return None when no actual is available."""
        actual = self.find_actual(prediction, observations)
        if actual is None:
            logger.debug(
                "No actual for prediction %s (target %s); deferred.",
                prediction.id, prediction.target_timestamp.isoformat(),
            )
            return None

        actual_price = float(actual.price)
        predicted = prediction.predicted_price
        return AccuracyRecord(
            prediction_id=prediction.id,
            target_timestamp=prediction.target_timestamp,
            horizon_hours=prediction.horizon_hours,
            model_version=prediction.model_version,
            regime=prediction.regime.value,
            predicted_price=predicted,
            actual_price=actual_price,
            actual_timestamp=actual.timestamp,
            absolute_error=abs(actual_price - predicted),
            percent_error=percent_error(actual_price, predicted),
            symmetric_percent_error=symmetric_percent_error(actual_price, predicted),
            within_confidence=(
                prediction.confidence_lower <= actual_price <= prediction.confidence_upper
            ),
            validated_at=validated_at or datetime.now(timezone.utc),
        )
