"""
GridCast Forecasting Module
===========================

Short-horizon electricity price forecasting from hourly market data.

Architecture
------------
- **Features**: lags, rolling statistics, cyclical time encodings, interactions
- **Regimes**: ordered threshold rules (peak demand, high renewable, volatility)
- **Models**: lag · decomposition · volatility · regime → weighted ensemble
- **Validation**: actuals matched within a window, accuracy by horizon/model/regime
- **Batch**: APScheduler jobs for features, forecasts and validation

Quick start (CLI)
-----------------
    python -m forecasting init-db
    python -m forecasting import-params params.json
    python -m forecasting features
    python -m forecasting forecast --horizons 1 6 24
    python -m forecasting validate
    python -m forecasting scheduler

Public API
----------
    from forecasting import ForecastEngine, FeaturePipeline, AccuracyTracker
    from forecasting.config import config
"""

# ── Public façade ──────────────────────────────────────────────────
from forecasting.config import ForecastingConfig, config
from forecasting.features import FeaturePipeline, TargetVectorBuilder
from forecasting.inference import ForecastEngine
from forecasting.models import EnsembleCombiner, RegimeClassifier
from forecasting.utils import AccuracyMonitor, AccuracySummary
from forecasting.validation import AccuracyTracker

__all__ = [
    "ForecastingConfig",
    "config",
    "FeaturePipeline",
    "TargetVectorBuilder",
    "ForecastEngine",
    "EnsembleCombiner",
    "RegimeClassifier",
    "AccuracyMonitor",
    "AccuracySummary",
    "AccuracyTracker",
]
