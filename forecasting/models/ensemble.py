"""
Regime-weighted ensemble combiner.

Evaluates every registered estimator and combines their outputs with the
convex weight vector published for the regime:
1. ``ensemble_weights[regime]``
2. ``ensemble_weights["default"]``
3. equal weights over the registry

Weights naming estimators that are not registered are dropped and the
rest renormalized, so the combination stays convex.
"""

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from app.domain.pricing.entities import ModelParameters, Regime
from app.domain.pricing.errors import PricingDomainError
from forecasting.models.base import BaseEstimator
from forecasting.models.estimators import default_estimators

logger = logging.getLogger(__name__)


@dataclass
class EnsembleEstimate:
    """Container for one combined estimate."""

    predicted_value: float
    model_predictions: dict[str, float]
    model_weights: dict[str, float]


class EnsembleCombiner:
    """Combines an ordered registry of estimators with regime weights."""

    def __init__(self, estimators: list[BaseEstimator] | None = None) -> None:
        self._estimators = list(estimators) if estimators is not None else default_estimators()
        names = [e.name for e in self._estimators]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate estimator names: {names}")

    @property
    def estimator_names(self) -> list[str]:
        return [e.name for e in self._estimators]

    def add_estimator(self, estimator: BaseEstimator) -> None:
        """Register an estimator at the end of the registry."""
        if estimator.name in self.estimator_names:
            raise ValueError(f"Estimator {estimator.name!r} already registered")
        self._estimators.append(estimator)

    def resolve_weights(self, params: ModelParameters, regime: Regime) -> dict[str, float]:
        """Weight per registered estimator for ``regime``; sums to 1."""
        names = self.estimator_names
        published = params.weights_for(regime)
        if published:
            weights = {n: float(published.get(n, 0.0)) for n in names}
            total = sum(weights.values())
            if total > 0:
                if not math.isclose(total, 1.0, abs_tol=1e-6):
                    logger.warning(
                        "Weights for %s cover %.4f of the registry; renormalizing.",
                        regime.value, total,
                    )
                return {n: w / total for n, w in weights.items()}
        logger.info("No usable weights for %s; using equal weights.", regime.value)
        return {n: 1.0 / len(names) for n in names}

    def combine(
        self,
        features: Mapping[str, Any],
        params: ModelParameters,
        regime: Regime,
    ) -> EnsembleEstimate:
        """Evaluate all estimators and return their weighted combination."""
        weights = self.resolve_weights(params, regime)
        predictions: dict[str, float] = {}
        for estimator in self._estimators:
            value = float(estimator.estimate(features, params))
            if not math.isfinite(value):
                logger.warning("[Ensemble] %s returned %r; dropped.", estimator.name, value)
                continue
            predictions[estimator.name] = value

        used = {n: weights[n] for n in predictions if weights[n] > 0}
        total = sum(used.values())
        if total <= 0:
            raise PricingDomainError("No estimator produced a usable price")
        used = {n: w / total for n, w in used.items()}
        point = math.fsum(used[n] * predictions[n] for n in used)
        return EnsembleEstimate(
            predicted_value=point,
            model_predictions=predictions,
            model_weights=used,
        )
