"""
Sliding-window accumulators.

Rolling statistics are maintained incrementally: every (feature, window)
pair owns a fixed-capacity ring buffer holding the points whose hour key
lies in ``[t - window, t]``. Each new record evicts expired points from
the front and appends itself, so a whole batch costs O(n) instead of
re-scanning the trailing history for every record.

Running sums are shifted by the first value pushed into an empty buffer,
which keeps the variance of a flat series exactly zero.
"""

import logging
import math
from collections.abc import Iterator

from forecasting.config import FeatureConfig, config

logger = logging.getLogger(__name__)


class RingBuffer:
    """Fixed-capacity FIFO of (hour_key, value) points with running sums."""

    __slots__ = (
        "capacity", "_keys", "_values", "_head", "_size",
        "_shift", "_sum", "_sumsq",
    )

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._keys = [0] * capacity
        self._values = [0.0] * capacity
        self._head = 0
        self._size = 0
        self._shift = 0.0
        self._sum = 0.0
        self._sumsq = 0.0

    def __len__(self) -> int:
        return self._size

    def push(self, key: int, value: float) -> None:
        if self._size == 0:
            self._shift = value
            self._sum = 0.0
            self._sumsq = 0.0
        elif self._size == self.capacity:
            self._pop_oldest()
        idx = (self._head + self._size) % self.capacity
        self._keys[idx] = key
        self._values[idx] = value
        self._size += 1
        d = value - self._shift
        self._sum += d
        self._sumsq += d * d

    def evict_before(self, min_key: int) -> None:
        """Drop every point whose key is strictly older than ``min_key``."""
        while self._size and self._keys[self._head] < min_key:
            self._pop_oldest()

    def _pop_oldest(self) -> None:
        d = self._values[self._head] - self._shift
        self._sum -= d
        self._sumsq -= d * d
        self._head = (self._head + 1) % self.capacity
        self._size -= 1

    def values(self) -> Iterator[float]:
        """Yield buffered values, oldest first."""
        for i in range(self._size):
            yield self._values[(self._head + i) % self.capacity]

    def mean(self) -> float | None:
        if self._size == 0:
            return None
        return self._shift + self._sum / self._size

    def std(self) -> float | None:
        """Population standard deviation; needs at least two points."""
        if self._size < 2:
            return None
        n = self._size
        variance = (self._sumsq - self._sum * self._sum / n) / n
        return math.sqrt(max(variance, 0.0))

    def min(self) -> float | None:
        return min(self.values()) if self._size else None

    def max(self) -> float | None:
        return max(self.values()) if self._size else None


class AccumulatorArena:
    """Ring buffers keyed by ``(feature, window_hours)``.

    Keys must be pushed in non-decreasing order; a null value still
    advances the window (evicting expired points) but is not stored.
    """

    def __init__(self) -> None:
        self._buffers: dict[tuple[str, int], RingBuffer] = {}
        self._windows: dict[str, list[int]] = {}

    def register(self, feature: str, window_hours: int) -> None:
        if (feature, window_hours) in self._buffers:
            return
        self._buffers[(feature, window_hours)] = RingBuffer(window_hours + 1)
        self._windows.setdefault(feature, []).append(window_hours)

    def push(self, feature: str, key: int, value: float | None) -> None:
        for window in self._windows.get(feature, ()):
            buf = self._buffers[(feature, window)]
            buf.evict_before(key - window)
            if value is not None:
                buf.push(key, value)

    def buffer(self, feature: str, window_hours: int) -> RingBuffer:
        return self._buffers[(feature, window_hours)]

    def mean(self, feature: str, window_hours: int) -> float | None:
        return self.buffer(feature, window_hours).mean()

    def std(self, feature: str, window_hours: int) -> float | None:
        return self.buffer(feature, window_hours).std()

    def min(self, feature: str, window_hours: int) -> float | None:
        return self.buffer(feature, window_hours).min()

    def max(self, feature: str, window_hours: int) -> float | None:
        return self.buffer(feature, window_hours).max()


def _window_label(hours: int) -> str:
    if hours >= 168 and hours % 24 == 0:
        return f"{hours // 24}d"
    return f"{hours}h"


class RollingFeatures:
    """Rolling price, demand and wind statistics over trailing windows.

    One instance holds the state of one pass over an ordered batch;
    create a fresh instance per batch.
    """

    def __init__(self, cfg: FeatureConfig | None = None) -> None:
        self._cfg = cfg or config.features
        self._arena = AccumulatorArena()
        for w in self._cfg.price_avg_windows:
            self._arena.register("price", w)
        for w in self._cfg.price_volatility_windows:
            self._arena.register("price", w)
        self._arena.register("price", self._cfg.price_std_window)
        self._arena.register("price", self._cfg.price_extrema_window)
        self._arena.register("demand_mw", self._cfg.demand_avg_window)
        self._arena.register("wind_mw", self._cfg.wind_avg_window)

    def update(self, key: int, base: dict[str, float | None]) -> dict[str, float | None]:
        """Push one record's base values and return its rolling features.

        The window includes the current record.
        """
        cfg = self._cfg
        arena = self._arena
        for feature in ("price", "demand_mw", "wind_mw"):
            arena.push(feature, key, base.get(feature))

        out: dict[str, float | None] = {}
        for w in cfg.price_avg_windows:
            out[f"price_rolling_avg_{_window_label(w)}"] = arena.mean("price", w)
        out[f"price_rolling_std_{_window_label(cfg.price_std_window)}"] = (
            arena.std("price", cfg.price_std_window)
        )
        for w in cfg.price_volatility_windows:
            out[f"price_volatility_{w}h"] = arena.std("price", w)
        out[f"price_min_{cfg.price_extrema_window}h"] = (
            arena.min("price", cfg.price_extrema_window)
        )
        out[f"price_max_{cfg.price_extrema_window}h"] = (
            arena.max("price", cfg.price_extrema_window)
        )
        out[f"demand_rolling_avg_{cfg.demand_avg_window}h"] = (
            arena.mean("demand_mw", cfg.demand_avg_window)
        )
        out[f"wind_rolling_avg_{cfg.wind_avg_window}h"] = (
            arena.mean("wind_mw", cfg.wind_avg_window)
        )
        return out
