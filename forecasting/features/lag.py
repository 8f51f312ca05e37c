"""
Lag and momentum features.

Lags are exact hour-key lookups: ``price_lag_24h`` for hour ``t`` is the
price observed at ``t - 24h`` or null when that hour is missing. Nothing
is interpolated or carried forward.

Momentum is position based: it compares a record with the one 1 (or 3)
places earlier in the ordered batch, whatever the time gap between them.
"""

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone

from app.domain.pricing.entities import FeatureRecord
from forecasting.config import FeatureConfig, config

logger = logging.getLogger(__name__)

# Lag name prefix → source feature
LAG_SOURCES = {
    "price": "price",
    "demand": "demand_mw",
    "wind": "wind_mw",
    "natural_gas_price": "natural_gas_price",
}


def floor_hour(ts: datetime) -> datetime:
    """Truncate a timestamp to the start of its hour (UTC)."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).replace(minute=0, second=0, microsecond=0)


def hour_key(ts: datetime) -> int:
    """Whole hours since the epoch for the hour containing ``ts``."""
    return int(floor_hour(ts).timestamp()) // 3600


class HourIndex:
    """Hash index of feature values keyed by hour."""

    def __init__(self, rows: dict[int, dict[str, float | None]] | None = None) -> None:
        self._rows = rows if rows is not None else {}

    @classmethod
    def from_records(cls, records: Iterable[FeatureRecord]) -> "HourIndex":
        rows: dict[int, dict[str, float | None]] = {}
        for record in records:
            rows.setdefault(hour_key(record.timestamp), record.values)
        return cls(rows)

    def __contains__(self, key: int) -> bool:
        return key in self._rows

    def __len__(self) -> int:
        return len(self._rows)

    def get(self, name: str, key: int) -> float | None:
        row = self._rows.get(key)
        if row is None:
            return None
        return row.get(name)

    def lag(self, name: str, key: int, hours: int) -> float | None:
        return self.get(name, key - hours)


class LagFeatures:
    """Exact hour-key lags and position-based momentum."""

    def __init__(self, cfg: FeatureConfig | None = None) -> None:
        cfg = cfg or config.features
        self._lags = {
            "price": cfg.price_lags,
            "demand": cfg.demand_lags,
            "wind": cfg.wind_lags,
            "natural_gas_price": cfg.gas_price_lags,
        }
        self._momentum_steps = cfg.momentum_steps

    @property
    def names(self) -> list[str]:
        return [
            f"{prefix}_lag_{lag}h"
            for prefix, lags in self._lags.items()
            for lag in lags
        ]

    def compute(self, index: HourIndex, key: int) -> dict[str, float | None]:
        """Look up every configured lag for the hour ``key``."""
        out: dict[str, float | None] = {}
        for prefix, lags in self._lags.items():
            source = LAG_SOURCES[prefix]
            for lag in lags:
                out[f"{prefix}_lag_{lag}h"] = index.lag(source, key, lag)
        return out

    def momentum(
        self, prices: Sequence[float | None], position: int
    ) -> dict[str, float | None]:
        """Price change against the records ``step`` places earlier."""
        out: dict[str, float | None] = {}
        current = prices[position]
        for step in self._momentum_steps:
            name = f"price_momentum_{step}h"
            earlier = position - step
            if current is None or earlier < 0 or prices[earlier] is None:
                out[name] = None
            else:
                out[name] = current - prices[earlier]
        return out
