"""
Adapter: Weather forecast repository.

Implements WeatherForecastRepository port with most-recent-by-issue-time
semantics: for a location and target hour, the forecast issued last
(but not after the forecast run) wins.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.engine import Engine

from app.domain.pricing.entities import WeatherForecast
from app.domain.pricing.ports import WeatherForecastRepository
from app.infrastructure.pricing.database import to_utc, translate_errors, upsert_statement
from app.infrastructure.pricing.schema import weather_forecasts


class WeatherForecastRepositoryAdapter(WeatherForecastRepository):
    """SQL adapter for the weather_forecasts table."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def get_latest(
        self, location: str, valid_at: datetime, issued_before: datetime
    ) -> Optional[WeatherForecast]:
        t = weather_forecasts
        query = (
            select(t)
            .where(t.c.location == location)
            .where(t.c.valid_at == to_utc(valid_at))
            .where(t.c.issued_at <= to_utc(issued_before))
            .order_by(t.c.issued_at.desc())
            .limit(1)
        )
        with translate_errors("load weather forecast"):
            with self._engine.connect() as conn:
                row = conn.execute(query).mappings().fetchone()
        if not row:
            return None
        return WeatherForecast(
            location=row["location"],
            issued_at=to_utc(row["issued_at"]),
            valid_at=to_utc(row["valid_at"]),
            temperature_c=row["temperature_c"],
        )

    def save_batch(self, forecasts: list[WeatherForecast]) -> int:
        if not forecasts:
            return 0
        rows = [
            {
                "location": f.location,
                "issued_at": to_utc(f.issued_at),
                "valid_at": to_utc(f.valid_at),
                "temperature_c": f.temperature_c,
            }
            for f in forecasts
        ]
        stmt = upsert_statement(
            self._engine, weather_forecasts, ["location", "issued_at", "valid_at"]
        )
        with translate_errors("save weather forecasts"):
            with self._engine.begin() as conn:
                conn.execute(stmt, rows)
        return len(rows)
