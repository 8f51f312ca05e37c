"""
Abstract base class for all price estimators.

Defines the Strategy Pattern interface the ensemble consults: every
estimator is a pure function of (feature vector, ModelParameters) that
returns one price. New estimators can be registered without touching
the combination logic.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from app.domain.pricing.entities import ModelParameters

logger = logging.getLogger(__name__)


class BaseEstimator(ABC):
    """Abstract interface for ensemble members.

    Concrete implementations: LagEstimator, DecompositionEstimator,
    VolatilityEstimator, RegimeEstimator.
    """

    #: Key used in ``ModelParameters.ensemble_weights``.
    name: str = ""

    @abstractmethod
    def estimate(self, features: Mapping[str, Any], params: ModelParameters) -> float:
        """Return a price estimate for the target hour.

        Args:
            features: Target-time feature vector; always carries a
                non-null latest ``price``.
            params: The pinned parameter bundle for this run.
        """
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _level(features: Mapping[str, Any], *names: str) -> float:
        """First non-null of ``names``, falling back to the latest price."""
        for name in names:
            value = features.get(name)
            if value is not None:
                return float(value)
        return float(features["price"])

    @staticmethod
    def _zscore(
        value: float, stats: Mapping[str, Any] | None, clamp: float
    ) -> float | None:
        if not isinstance(stats, Mapping):
            return None
        mean = stats.get("mean")
        std = stats.get("std")
        if mean is None or not std or std <= 0:
            return None
        z = (value - mean) / std
        if clamp > 0:
            z = max(-clamp, min(clamp, z))
        return z
