"""
Price models sub-package.

Strategy Pattern — every estimator implements `BaseEstimator`:
    estimate(features, params) → price

Concrete estimators
-------------------
- `LagEstimator`           — correlation-weighted price lags
- `DecompositionEstimator` — level × seasonal hour / weekday profile
- `VolatilityEstimator`    — mean-reverting, volatility-shrunk last price
- `RegimeEstimator`        — regime-scaled level + z-scored drivers

Combination
-----------
- `RegimeClassifier`  — ordered threshold rules → Regime
- `EnsembleCombiner`  — regime weight vector → convex combination
"""

from forecasting.models.base import BaseEstimator
from forecasting.models.ensemble import EnsembleCombiner, EnsembleEstimate
from forecasting.models.estimators import (
    DecompositionEstimator,
    LagEstimator,
    RegimeEstimator,
    VolatilityEstimator,
    default_estimators,
)
from forecasting.models.regime import RegimeClassifier

__all__ = [
    "BaseEstimator",
    "EnsembleCombiner",
    "EnsembleEstimate",
    "DecompositionEstimator",
    "LagEstimator",
    "RegimeEstimator",
    "VolatilityEstimator",
    "default_estimators",
    "RegimeClassifier",
]
