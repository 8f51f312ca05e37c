"""
Feature engineering sub-package.

Generators
----------
- `TemporalFeatures`    — hour / weekday / month, cyclical sin-cos encoding
- `LagFeatures`         — exact hour-key lags, position-based momentum
- `RollingFeatures`     — rolling mean / std / min / max over ring buffers
- `InteractionFeatures` — scaled products of base features

Orchestrators
-------------
- `FeaturePipeline.run(observations)` — one FeatureRecord per observation hour
- `TargetVectorBuilder.build(history, target)` — vector for a forecast target
"""

from forecasting.features.accumulators import AccumulatorArena, RingBuffer, RollingFeatures
from forecasting.features.interactions import InteractionFeatures
from forecasting.features.lag import HourIndex, LagFeatures, floor_hour, hour_key
from forecasting.features.pipeline import FeaturePipeline
from forecasting.features.target import TargetVectorBuilder
from forecasting.features.temporal import TemporalFeatures

__all__ = [
    "AccumulatorArena",
    "RingBuffer",
    "RollingFeatures",
    "InteractionFeatures",
    "HourIndex",
    "LagFeatures",
    "floor_hour",
    "hour_key",
    "FeaturePipeline",
    "TargetVectorBuilder",
    "TemporalFeatures",
]
