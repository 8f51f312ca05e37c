"""
Forecasting module configuration.

Reads deployment knobs (horizons, windows, policy flags) from the app's
central Settings object (app.core.config), which loads from .env.

Feature windows and estimator constants are defined here; they are
properties of the feature set, not of the deployment.
"""

from dataclasses import dataclass, field


def _load_app_settings():
    """Lazy-load the app settings to avoid circular imports."""
    try:
        from app.core.config import settings
        return settings
    except ImportError:
        return None


@dataclass(frozen=True)
class FeatureConfig:
    """Feature engineering parameters."""

    # Exact hour-key lags
    price_lags: tuple[int, ...] = (1, 2, 3, 24, 168)
    demand_lags: tuple[int, ...] = (24,)
    wind_lags: tuple[int, ...] = (24,)
    gas_price_lags: tuple[int, ...] = (24,)

    # Rolling windows (hours)
    price_avg_windows: tuple[int, ...] = (3, 6, 24, 168)
    price_volatility_windows: tuple[int, ...] = (1, 3, 6)
    price_std_window: int = 24
    price_extrema_window: int = 24
    demand_avg_window: int = 24
    wind_avg_window: int = 24

    # Position-based momentum offsets
    momentum_steps: tuple[int, ...] = (1, 3)

    # Pivot temperature for the extreme-temperature interaction (°C)
    comfort_temperature_c: float = 15.0


@dataclass(frozen=True)
class EngineConfig:
    """Ensemble prediction engine parameters."""

    horizons: tuple[int, ...] = field(default_factory=lambda: (
        tuple(_s.forecast_horizons) if (_s := _load_app_settings()) else (1, 6, 12, 24)
    ))
    history_window_hours: int = field(default_factory=lambda: (
        _s.history_window_hours if (_s := _load_app_settings()) else 336
    ))
    confidence_widening_factor: float = field(default_factory=lambda: (
        _s.confidence_widening_factor if (_s := _load_app_settings()) else 0.5
    ))
    floor_prices_at_zero: bool = field(default_factory=lambda: (
        _s.floor_prices_at_zero if (_s := _load_app_settings()) else True
    ))
    persist_retries: int = field(default_factory=lambda: (
        _s.persist_retries if (_s := _load_app_settings()) else 3
    ))
    market_location: str = field(default_factory=lambda: (
        _s.market_location if (_s := _load_app_settings()) else "calgary"
    ))
    # Confidence score = max(min_confidence, 1 - horizon / confidence_decay_hours)
    min_confidence: float = 0.5
    confidence_decay_hours: float = 48.0
    max_workers: int = 4


@dataclass(frozen=True)
class ValidationConfig:
    """Closed-loop validation parameters."""

    match_window_minutes: int = field(default_factory=lambda: (
        _s.validation_match_window_minutes if (_s := _load_app_settings()) else 30
    ))
    lateness_hours: int = field(default_factory=lambda: (
        _s.ingestion_lateness_hours if (_s := _load_app_settings()) else 24
    ))
    retrain_mae_threshold: float = field(default_factory=lambda: (
        _s.retrain_mae_threshold if (_s := _load_app_settings()) else 25.0
    ))
    retrain_min_hit_rate: float = field(default_factory=lambda: (
        _s.retrain_min_hit_rate if (_s := _load_app_settings()) else 0.6
    ))
    # Model-performance snapshots need this many validated records
    min_snapshot_records: int = 24
    min_records_per_model: int = 10


@dataclass(frozen=True)
class SchedulerConfig:
    """Batch job cadence (minutes)."""

    features_interval: int = field(default_factory=lambda: (
        _s.feature_job_interval_minutes if (_s := _load_app_settings()) else 60
    ))
    forecast_interval: int = field(default_factory=lambda: (
        _s.forecast_job_interval_minutes if (_s := _load_app_settings()) else 60
    ))
    validation_interval: int = field(default_factory=lambda: (
        _s.validation_job_interval_minutes if (_s := _load_app_settings()) else 30
    ))
    max_history: int = 200


@dataclass(frozen=True)
class ForecastingConfig:
    """Top-level configuration aggregating all sub-configs."""

    features: FeatureConfig = field(default_factory=FeatureConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)


# Singleton instance
config = ForecastingConfig()
