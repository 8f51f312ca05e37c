"""
Adapter: Price prediction repository.

Implements PredictionRepository port. A forecast run is written in a
single transaction: either every horizon commits or none does.
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import insert, select, update
from sqlalchemy.engine import Engine

from app.domain.pricing.entities import Prediction, Regime
from app.domain.pricing.ports import PredictionRepository
from app.infrastructure.pricing.database import to_utc, translate_errors
from app.infrastructure.pricing.schema import prediction_accuracy, price_predictions

logger = logging.getLogger(__name__)


def _row_to_prediction(row) -> Prediction:
    return Prediction(
        id=UUID(row["id"]),
        prediction_timestamp=to_utc(row["prediction_timestamp"]),
        target_timestamp=to_utc(row["target_timestamp"]),
        horizon_hours=row["horizon_hours"],
        predicted_price=row["predicted_price"],
        confidence_lower=row["confidence_lower"],
        confidence_upper=row["confidence_upper"],
        confidence_score=row["confidence_score"],
        regime=Regime(row["regime"]),
        model_version=row["model_version"],
        features_used=dict(row["features_used"] or {}),
    )


class PredictionRepositoryAdapter(PredictionRepository):
    """SQL adapter for the price_predictions table."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def save_batch(self, predictions: list[Prediction]) -> None:
        """Persist all predictions of one run atomically.

        Raises:
            PersistenceError: The transaction was rolled back.
        """
        if not predictions:
            return
        rows = [
            {
                "id": str(p.id),
                "prediction_timestamp": to_utc(p.prediction_timestamp),
                "target_timestamp": to_utc(p.target_timestamp),
                "horizon_hours": p.horizon_hours,
                "predicted_price": p.predicted_price,
                "confidence_lower": p.confidence_lower,
                "confidence_upper": p.confidence_upper,
                "confidence_score": p.confidence_score,
                "regime": p.regime.value,
                "model_version": p.model_version,
                "features_used": dict(p.features_used),
            }
            for p in predictions
        ]
        with translate_errors("save prediction batch"):
            with self._engine.begin() as conn:
                conn.execute(insert(price_predictions), rows)
        logger.info("Saved %d predictions", len(rows))

    def get_unvalidated(
        self, due_before: datetime, include_expired: bool = False
    ) -> list[Prediction]:
        """Predictions whose target has passed and that have no accuracy record."""
        p = price_predictions
        a = prediction_accuracy
        query = (
            select(p)
            .select_from(p.outerjoin(a, a.c.prediction_id == p.c.id))
            .where(a.c.id.is_(None))
            .where(p.c.target_timestamp <= to_utc(due_before))
        )
        if not include_expired:
            query = query.where(p.c.expired_at.is_(None))
        query = query.order_by(p.c.target_timestamp.asc(), p.c.horizon_hours.asc())
        with translate_errors("load unvalidated predictions"):
            with self._engine.connect() as conn:
                rows = conn.execute(query).mappings().all()
        return [_row_to_prediction(r) for r in rows]

    def mark_expired(self, prediction_ids: list[UUID], expired_at: datetime) -> int:
        """Flag predictions whose target hour is a permanent gap."""
        if not prediction_ids:
            return 0
        p = price_predictions
        stmt = (
            update(p)
            .where(p.c.id.in_([str(i) for i in prediction_ids]))
            .where(p.c.expired_at.is_(None))
            .values(expired_at=to_utc(expired_at))
        )
        with translate_errors("mark predictions expired"):
            with self._engine.begin() as conn:
                updated = conn.execute(stmt).rowcount
        logger.info("Marked %d predictions expired", updated)
        return updated

    def get_recent(
        self, since: datetime, horizon: Optional[int] = None
    ) -> list[Prediction]:
        """Predictions made at or after ``since``, newest run first."""
        p = price_predictions
        query = select(p).where(p.c.prediction_timestamp >= to_utc(since))
        if horizon is not None:
            query = query.where(p.c.horizon_hours == horizon)
        query = query.order_by(
            p.c.prediction_timestamp.desc(), p.c.horizon_hours.asc()
        )
        with translate_errors("load recent predictions"):
            with self._engine.connect() as conn:
                rows = conn.execute(query).mappings().all()
        return [_row_to_prediction(r) for r in rows]
