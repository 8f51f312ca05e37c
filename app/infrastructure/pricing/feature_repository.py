"""
Adapter: Feature record repository.

Implements FeatureRepository port. Records are keyed by the source
observation hour and upserted, so recomputing a window is idempotent.
"""

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.engine import Engine

from app.domain.pricing.entities import FeatureRecord
from app.domain.pricing.ports import FeatureRepository
from app.infrastructure.pricing.database import to_utc, translate_errors, upsert_statement
from app.infrastructure.pricing.schema import feature_records

logger = logging.getLogger(__name__)


class FeatureRepositoryAdapter(FeatureRepository):
    """SQL adapter for the feature_records table."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def upsert_batch(self, records: list[FeatureRecord]) -> int:
        """Insert or replace records by timestamp in one transaction."""
        if not records:
            return 0
        now = datetime.now(timezone.utc)
        rows = [
            {
                "timestamp": to_utc(r.timestamp),
                "features": dict(r.values),
                "computed_at": now,
            }
            for r in records
        ]
        stmt = upsert_statement(self._engine, feature_records, ["timestamp"])
        with translate_errors("upsert feature records"):
            with self._engine.begin() as conn:
                conn.execute(stmt, rows)
        logger.debug("Upserted %d feature records", len(rows))
        return len(rows)

    def get_window(self, end: datetime, hours: int) -> list[FeatureRecord]:
        """Return records with end - hours < timestamp <= end, oldest first."""
        t = feature_records
        query = (
            select(t.c.timestamp, t.c.features)
            .where(t.c.timestamp > to_utc(end - timedelta(hours=hours)))
            .where(t.c.timestamp <= to_utc(end))
            .order_by(t.c.timestamp.asc())
        )
        with translate_errors("load feature window"):
            with self._engine.connect() as conn:
                rows = conn.execute(query).fetchall()
        return [
            FeatureRecord(timestamp=to_utc(r[0]), values=dict(r[1]))
            for r in rows
        ]
