"""
Shared fixtures for the GridCast test suite.

Observation series are synthetic: the price oscillates daily between 20
and 80, demand and wind follow the same 24h cycle out of phase.
"""

import math
from datetime import datetime, timedelta, timezone

import pytest

from app.domain.pricing.entities import ModelParameters, RawObservation
from app.infrastructure.pricing.database import build_engine, init_schema
from forecasting.config import EngineConfig, FeatureConfig, ValidationConfig

START = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_observation(i: int, start: datetime = START, **overrides) -> RawObservation:
    """Observation for hour ``i`` after ``start``."""
    phase = 2 * math.pi * i / 24
    fields = {
        "timestamp": start + timedelta(hours=i),
        "price": 50.0 + 30.0 * math.sin(phase),
        "demand_mw": 9500.0 + 800.0 * math.sin(phase),
        "generation": {
            "wind": 1200.0 + 400.0 * math.cos(phase),
            "solar": max(0.0, 300.0 * math.sin(phase)),
            "gas": 5000.0,
        },
        "weather": {"temperature_c": -5.0 + 3.0 * math.sin(phase)},
        "reserves": {"available_capacity_mw": 12000.0},
    }
    fields.update(overrides)
    return RawObservation(**fields)


def make_observations(n: int, start: datetime = START, skip: range | None = None):
    skip = skip or range(0)
    return [make_observation(i, start) for i in range(n) if i not in skip]


def params_bundle(**overrides) -> dict:
    bundle = {
        "version": "v-test-1",
        "feature_correlations": {"price_lag_1h": 0.9, "price_lag_24h": 0.7},
        "feature_statistics": {
            "price": {"mean": 50.0, "std": 21.0},
            "price_lag_1h": {"mean": 50.0, "std": 21.0},
        },
        "feature_scaling": {"price_lag_1h": 5.0, "regime_normal": 1.0},
        "regime_thresholds": {
            "priority": ["peak_demand", "high_renewable"],
            "peak_demand": {"demand_mw": 1.0e9},
            "high_renewable": {"renewable_share": {"min": 0.99}},
        },
        "ensemble_weights": {
            "normal": {"lag": 0.4, "decomposition": 0.3, "volatility": 0.2, "regime": 0.1},
            "default": {"lag": 0.25, "decomposition": 0.25, "volatility": 0.25, "regime": 0.25},
        },
        "outlier_threshold": 3.0,
        "residual_std_dev": 5.0,
    }
    bundle.update(overrides)
    return bundle


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database with the pricing schema."""
    eng = build_engine("sqlite://")
    init_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def params() -> ModelParameters:
    return ModelParameters.from_dict(params_bundle())


@pytest.fixture
def feature_cfg() -> FeatureConfig:
    return FeatureConfig()


@pytest.fixture
def engine_cfg() -> EngineConfig:
    return EngineConfig(
        horizons=(1, 6, 12, 24),
        history_window_hours=336,
        confidence_widening_factor=0.5,
        floor_prices_at_zero=True,
        persist_retries=3,
        market_location="calgary",
    )


@pytest.fixture
def validation_cfg() -> ValidationConfig:
    return ValidationConfig(
        match_window_minutes=30,
        lateness_hours=24,
        retrain_mae_threshold=25.0,
        retrain_min_hit_rate=0.6,
    )


@pytest.fixture
def observations() -> list[RawObservation]:
    """Two weeks of hourly observations."""
    return make_observations(336)


@pytest.fixture
def history(observations, feature_cfg):
    from forecasting.features.pipeline import FeaturePipeline

    return FeaturePipeline(feature_cfg).run(observations)
