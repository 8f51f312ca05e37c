"""
Table definitions for the pricing bounded context.

SQLAlchemy Core metadata shared by every repository adapter. All
timestamps are stored as UTC. ``metadata.create_all`` is the only DDL
path; it is idempotent.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
)

metadata = MetaData()

raw_observations = Table(
    "raw_observations",
    metadata,
    Column("timestamp", DateTime(timezone=True), primary_key=True),
    Column("price", Float, nullable=True),
    Column("demand_mw", Float, nullable=True),
    Column("generation", JSON, nullable=False, default=dict),
    Column("weather", JSON, nullable=False, default=dict),
    Column("reserves", JSON, nullable=False, default=dict),
)

fuel_prices = Table(
    "fuel_prices",
    metadata,
    Column("timestamp", DateTime(timezone=True), primary_key=True),
    Column("fuel", String(32), primary_key=True),
    Column("price", Float, nullable=False),
)

weather_forecasts = Table(
    "weather_forecasts",
    metadata,
    Column("location", String(64), primary_key=True),
    Column("issued_at", DateTime(timezone=True), primary_key=True),
    Column("valid_at", DateTime(timezone=True), primary_key=True),
    Column("temperature_c", Float, nullable=False),
)

feature_records = Table(
    "feature_records",
    metadata,
    Column("timestamp", DateTime(timezone=True), primary_key=True),
    Column("features", JSON, nullable=False),
    Column("computed_at", DateTime(timezone=True), nullable=False),
)

model_parameters = Table(
    "model_parameters",
    metadata,
    Column("version", String(64), primary_key=True),
    Column("published_at", DateTime(timezone=True), nullable=False, index=True),
    Column("bundle", JSON, nullable=False),
)

price_predictions = Table(
    "price_predictions",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("prediction_timestamp", DateTime(timezone=True), nullable=False, index=True),
    Column("target_timestamp", DateTime(timezone=True), nullable=False, index=True),
    Column("horizon_hours", Integer, nullable=False),
    Column("predicted_price", Float, nullable=False),
    Column("confidence_lower", Float, nullable=False),
    Column("confidence_upper", Float, nullable=False),
    Column("confidence_score", Float, nullable=False),
    Column("regime", String(32), nullable=False),
    Column("model_version", String(64), nullable=False),
    Column("features_used", JSON, nullable=False),
    # Set once the target hour is a permanent gap; such rows are not retried
    Column("expired_at", DateTime(timezone=True), nullable=True),
)

prediction_accuracy = Table(
    "prediction_accuracy",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "prediction_id",
        String(36),
        ForeignKey("price_predictions.id"),
        nullable=False,
        unique=True,
    ),
    Column("target_timestamp", DateTime(timezone=True), nullable=False),
    Column("horizon_hours", Integer, nullable=False),
    Column("model_version", String(64), nullable=False),
    Column("regime", String(32), nullable=False),
    Column("predicted_price", Float, nullable=False),
    Column("actual_price", Float, nullable=False),
    Column("actual_timestamp", DateTime(timezone=True), nullable=False),
    Column("absolute_error", Float, nullable=False),
    Column("percent_error", Float, nullable=True),
    Column("symmetric_percent_error", Float, nullable=True),
    Column("within_confidence", Boolean, nullable=False),
    Column("validated_at", DateTime(timezone=True), nullable=False),
)

Index("ix_prediction_accuracy_target", prediction_accuracy.c.target_timestamp)

model_performance = Table(
    "model_performance",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("model_version", String(64), nullable=False, index=True),
    Column("evaluated_at", DateTime(timezone=True), nullable=False),
    Column("sample_size", Integer, nullable=False),
    Column("mae", Float, nullable=True),
    Column("rmse", Float, nullable=True),
    Column("smape", Float, nullable=True),
    Column("hit_rate", Float, nullable=True),
    Column("metrics", JSON, nullable=False),
)
