"""
Adapter: Raw observation repository.

Implements ObservationRepository port over the raw_observations and
fuel_prices tables. The forecasting core only reads; ``append_batch``
exists for the ingestion side and for seeding fixtures.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.engine import Engine

from app.domain.pricing.entities import RawObservation
from app.domain.pricing.ports import ObservationRepository
from app.infrastructure.pricing.database import (
    insert_ignore_statement,
    to_utc,
    translate_errors,
)
from app.infrastructure.pricing.schema import fuel_prices, raw_observations

logger = logging.getLogger(__name__)

NATURAL_GAS = "natural_gas"


def _row_to_observation(row) -> RawObservation:
    return RawObservation(
        timestamp=to_utc(row["timestamp"]),
        price=row["price"],
        demand_mw=row["demand_mw"],
        generation=dict(row["generation"] or {}),
        weather=dict(row["weather"] or {}),
        reserves=dict(row["reserves"] or {}),
    )


class ObservationRepositoryAdapter(ObservationRepository):
    """SQL adapter for hourly market observations."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def get_range(
        self, start: Optional[datetime], end: datetime
    ) -> list[RawObservation]:
        """Return observations within [start, end], oldest first."""
        t = raw_observations
        query = select(t).where(t.c.timestamp <= to_utc(end))
        if start is not None:
            query = query.where(t.c.timestamp >= to_utc(start))
        query = query.order_by(t.c.timestamp.asc())

        with translate_errors("load observations"):
            with self._engine.connect() as conn:
                rows = conn.execute(query).mappings().all()
        return [_row_to_observation(row) for row in rows]

    def get_preceding(self, before: datetime, count: int) -> list[RawObservation]:
        """Return the last ``count`` observations before ``before``, oldest first."""
        if count < 1:
            return []
        t = raw_observations
        query = (
            select(t)
            .where(t.c.timestamp < to_utc(before))
            .order_by(t.c.timestamp.desc())
            .limit(count)
        )
        with translate_errors("load preceding observations"):
            with self._engine.connect() as conn:
                rows = conn.execute(query).mappings().all()
        return [_row_to_observation(row) for row in reversed(rows)]

    def get_fuel_prices(
        self, start: Optional[datetime], end: datetime
    ) -> dict[datetime, float]:
        """Return the natural gas price series within [start, end]."""
        t = fuel_prices
        query = select(t.c.timestamp, t.c.price).where(
            t.c.fuel == NATURAL_GAS, t.c.timestamp <= to_utc(end)
        )
        if start is not None:
            query = query.where(t.c.timestamp >= to_utc(start))

        with translate_errors("load fuel prices"):
            with self._engine.connect() as conn:
                rows = conn.execute(query).fetchall()
        return {to_utc(r[0]): float(r[1]) for r in rows}

    def append_batch(self, observations: list[RawObservation]) -> int:
        """Insert observations; hours already stored are left untouched."""
        if not observations:
            return 0
        rows = [
            {
                "timestamp": to_utc(obs.timestamp),
                "price": obs.price,
                "demand_mw": obs.demand_mw,
                "generation": dict(obs.generation),
                "weather": dict(obs.weather),
                "reserves": dict(obs.reserves),
            }
            for obs in observations
        ]
        stmt = insert_ignore_statement(self._engine, raw_observations, ["timestamp"])
        with translate_errors("append observations"):
            with self._engine.begin() as conn:
                conn.execute(stmt, rows)
        logger.debug("Appended %d observations", len(rows))
        return len(rows)

    def append_fuel_prices(self, prices: dict[datetime, float]) -> int:
        """Insert natural gas prices keyed by timestamp."""
        if not prices:
            return 0
        rows = [
            {"timestamp": to_utc(ts), "fuel": NATURAL_GAS, "price": float(p)}
            for ts, p in prices.items()
        ]
        stmt = insert_ignore_statement(self._engine, fuel_prices, ["timestamp", "fuel"])
        with translate_errors("append fuel prices"):
            with self._engine.begin() as conn:
                conn.execute(stmt, rows)
        return len(rows)
