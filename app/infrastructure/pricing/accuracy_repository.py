"""
Adapter: Prediction accuracy repository.

Implements AccuracyRepository port over prediction_accuracy and
model_performance. ``prediction_id`` is unique, so a prediction is
scored at most once even if two validation passes overlap.
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import insert, select
from sqlalchemy.engine import Engine

from app.domain.pricing.entities import AccuracyRecord
from app.domain.pricing.ports import AccuracyRepository
from app.infrastructure.pricing.database import (
    insert_ignore_statement,
    to_utc,
    translate_errors,
)
from app.infrastructure.pricing.schema import model_performance, prediction_accuracy

logger = logging.getLogger(__name__)


class AccuracyRepositoryAdapter(AccuracyRepository):
    """SQL adapter for validation outcomes."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def save_batch(self, records: list[AccuracyRecord]) -> int:
        """Insert records, skipping predictions that were already scored."""
        if not records:
            return 0
        t = prediction_accuracy
        ids = [str(r.prediction_id) for r in records]
        stmt = insert_ignore_statement(self._engine, t, ["prediction_id"])

        with translate_errors("save accuracy records"):
            with self._engine.begin() as conn:
                existing = set(
                    conn.execute(
                        select(t.c.prediction_id).where(t.c.prediction_id.in_(ids))
                    ).scalars()
                )
                rows = []
                for r in records:
                    pid = str(r.prediction_id)
                    if pid in existing:
                        continue
                    existing.add(pid)
                    rows.append(
                        {
                            "prediction_id": pid,
                            "target_timestamp": to_utc(r.target_timestamp),
                            "horizon_hours": r.horizon_hours,
                            "model_version": r.model_version,
                            "regime": r.regime,
                            "predicted_price": r.predicted_price,
                            "actual_price": r.actual_price,
                            "actual_timestamp": to_utc(r.actual_timestamp),
                            "absolute_error": r.absolute_error,
                            "percent_error": r.percent_error,
                            "symmetric_percent_error": r.symmetric_percent_error,
                            "within_confidence": r.within_confidence,
                            "validated_at": to_utc(r.validated_at),
                        }
                    )
                if rows:
                    conn.execute(stmt, rows)

        logger.debug("Saved %d of %d accuracy records", len(rows), len(records))
        return len(rows)

    def get_range(self, start: datetime, end: datetime) -> list[AccuracyRecord]:
        t = prediction_accuracy
        query = (
            select(t)
            .where(t.c.target_timestamp >= to_utc(start))
            .where(t.c.target_timestamp <= to_utc(end))
            .order_by(t.c.target_timestamp.asc(), t.c.horizon_hours.asc())
        )
        with translate_errors("load accuracy records"):
            with self._engine.connect() as conn:
                rows = conn.execute(query).mappings().all()
        return [
            AccuracyRecord(
                prediction_id=UUID(r["prediction_id"]),
                target_timestamp=to_utc(r["target_timestamp"]),
                horizon_hours=r["horizon_hours"],
                model_version=r["model_version"],
                regime=r["regime"],
                predicted_price=r["predicted_price"],
                actual_price=r["actual_price"],
                actual_timestamp=to_utc(r["actual_timestamp"]),
                absolute_error=r["absolute_error"],
                percent_error=r["percent_error"],
                symmetric_percent_error=r["symmetric_percent_error"],
                within_confidence=bool(r["within_confidence"]),
                validated_at=to_utc(r["validated_at"]),
            )
            for r in rows
        ]

    def exists(self, prediction_id: UUID) -> bool:
        t = prediction_accuracy
        query = select(t.c.id).where(t.c.prediction_id == str(prediction_id))
        with translate_errors("check accuracy record"):
            with self._engine.connect() as conn:
                return conn.execute(query).first() is not None

    def save_performance_snapshot(
        self, model_version: str, metrics: dict, evaluated_at: datetime
    ) -> None:
        with translate_errors("save model performance"):
            with self._engine.begin() as conn:
                conn.execute(
                    insert(model_performance),
                    {
                        "model_version": model_version,
                        "evaluated_at": to_utc(evaluated_at),
                        "sample_size": int(metrics.get("count", 0)),
                        "mae": metrics.get("mae"),
                        "rmse": metrics.get("rmse"),
                        "smape": metrics.get("smape"),
                        "hit_rate": metrics.get("hit_rate"),
                        "metrics": dict(metrics),
                    },
                )
        logger.info("Recorded performance snapshot for %s", model_version)

    def get_performance(self, model_version: str) -> list[dict]:
        """Snapshots recorded for a model version, newest first."""
        t = model_performance
        query = (
            select(t)
            .where(t.c.model_version == model_version)
            .order_by(t.c.evaluated_at.desc())
        )
        with translate_errors("load model performance"):
            with self._engine.connect() as conn:
                rows = conn.execute(query).mappings().all()
        return [{**dict(r), "evaluated_at": to_utc(r["evaluated_at"])} for r in rows]
