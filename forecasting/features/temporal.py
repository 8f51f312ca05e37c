"""
Temporal / calendar features.

Encodes the hour, weekday and month of a timestamp (UTC), both as raw
integers and as sin/cos pairs so estimators see 23:00 next to 00:00.
"""

import logging
import math
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


class TemporalFeatures:
    """Generates calendar features for a single timestamp."""

    names = (
        "hour_of_day", "day_of_week", "month", "is_weekend",
        "hour_sin", "hour_cos",
        "day_of_week_sin", "day_of_week_cos",
        "month_sin", "month_cos",
    )

    def compute(self, ts: datetime) -> dict[str, float]:
        """Calendar features of ``ts``; day_of_week is 0=Mon … 6=Sun."""
        ts = ts.astimezone(timezone.utc) if ts.tzinfo else ts
        hour = ts.hour
        dow = ts.weekday()
        month = ts.month
        return {
            "hour_of_day": float(hour),
            "day_of_week": float(dow),
            "month": float(month),
            "is_weekend": 1.0 if dow >= 5 else 0.0,
            "hour_sin": math.sin(2 * math.pi * hour / 24),
            "hour_cos": math.cos(2 * math.pi * hour / 24),
            "day_of_week_sin": math.sin(2 * math.pi * dow / 7),
            "day_of_week_cos": math.cos(2 * math.pi * dow / 7),
            "month_sin": math.sin(2 * math.pi * month / 12),
            "month_cos": math.cos(2 * math.pi * month / 12),
        }
