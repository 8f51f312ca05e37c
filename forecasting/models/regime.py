"""
Regime classifier.

Labels a feature vector with one market regime using the thresholds
published in ModelParameters::

    {
        "priority": ["high_volatility", "peak_demand", "high_renewable"],
        "peak_demand": {"demand_mw": 10500},
        "high_renewable": {"renewable_share": {"min": 0.35}},
        "high_volatility": {"price_rolling_std_24h": {"min": 40, "max": 1e9}}
    }

A bare number is a lower bound; a mapping may carry "min" and/or "max"
(both inclusive). Rules are tried in ``priority`` order, or in declared
key order when no priority list is given. The first rule whose every
condition holds wins; a condition on a null feature does not hold.
No match means ``normal``. Unknown regime names are ignored.
"""

import logging
from collections.abc import Mapping
from typing import Any

from app.domain.pricing.entities import Regime

logger = logging.getLogger(__name__)

PRIORITY_KEY = "priority"


def _bounds(condition: Any) -> tuple[float | None, float | None] | None:
    if isinstance(condition, bool):
        return None
    if isinstance(condition, (int, float)):
        return float(condition), None
    if isinstance(condition, Mapping):
        lo = condition.get("min")
        hi = condition.get("max")
        if lo is None and hi is None:
            return None
        try:
            return (
                float(lo) if lo is not None else None,
                float(hi) if hi is not None else None,
            )
        except (TypeError, ValueError):
            return None
    return None


class RegimeClassifier:
    """Deterministic, ordered rule evaluation over a feature vector."""

    def __init__(self, thresholds: Mapping[str, Any] | None) -> None:
        self._rules = self._compile(thresholds or {})

    @property
    def rules(self) -> list[tuple[Regime, list[tuple[str, float | None, float | None]]]]:
        return list(self._rules)

    @staticmethod
    def _compile(
        thresholds: Mapping[str, Any],
    ) -> list[tuple[Regime, list[tuple[str, float | None, float | None]]]]:
        order = thresholds.get(PRIORITY_KEY)
        if not isinstance(order, (list, tuple)):
            order = [k for k in thresholds if k != PRIORITY_KEY]

        compiled = []
        seen: set[Regime] = set()
        for name in order:
            regime = Regime.from_label(str(name))
            if regime is None or regime is Regime.NORMAL or regime in seen:
                continue
            conditions = thresholds.get(name)
            if not isinstance(conditions, Mapping) or not conditions:
                continue
            parsed = []
            for feature, condition in conditions.items():
                bounds = _bounds(condition)
                if bounds is None:
                    logger.warning(
                        "Ignoring malformed threshold %s.%s=%r", name, feature, condition
                    )
                    parsed = []
                    break
                parsed.append((feature, bounds[0], bounds[1]))
            if parsed:
                compiled.append((regime, parsed))
                seen.add(regime)
        return compiled

    def classify(self, features: Mapping[str, Any]) -> Regime:
        """Return the first matching regime, or ``Regime.NORMAL``."""
        for regime, conditions in self._rules:
            if all(self._holds(features.get(f), lo, hi) for f, lo, hi in conditions):
                return regime
        return Regime.NORMAL

    @staticmethod
    def _holds(value: Any, lo: float | None, hi: float | None) -> bool:
        if value is None or isinstance(value, str):
            return False
        if lo is not None and value < lo:
            return False
        if hi is not None and value > hi:
            return False
        return True
