"""
Database plumbing shared by the pricing repository adapters.

- Engine construction from a SQLAlchemy URL
- Idempotent schema creation
- Dialect-aware upsert / insert-or-ignore statements
- UTC normalization (SQLite hands back naive datetimes)
- Translation of driver failures into PersistenceError
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import Table, create_engine
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from app.domain.pricing.errors import PersistenceError
from app.infrastructure.pricing.schema import metadata

logger = logging.getLogger(__name__)


def build_engine(url: str) -> Engine:
    """Build a SQLAlchemy engine; in-memory SQLite shares one connection."""
    if url.startswith("sqlite") and (":memory:" in url or url.rstrip("/") == "sqlite:"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, pool_pre_ping=True)


def init_schema(engine: Engine) -> None:
    """Create all pricing tables that do not exist yet."""
    metadata.create_all(engine)
    logger.info("Pricing schema ready on %s", engine.dialect.name)


def to_utc(value: datetime | None) -> datetime | None:
    """Normalize to an aware UTC datetime; naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _insert(engine: Engine, table: Table):
    name = engine.dialect.name
    if name == "postgresql":
        return postgresql.insert(table)
    if name == "sqlite":
        return sqlite.insert(table)
    raise PersistenceError("insert", f"unsupported dialect {name!r}")


def upsert_statement(engine: Engine, table: Table, keys: list[str]):
    """INSERT … ON CONFLICT (keys) DO UPDATE every other column."""
    stmt = _insert(engine, table)
    return stmt.on_conflict_do_update(
        index_elements=keys,
        set_={c.name: stmt.excluded[c.name] for c in table.columns if c.name not in keys},
    )


def insert_ignore_statement(engine: Engine, table: Table, keys: list[str]):
    """INSERT … ON CONFLICT (keys) DO NOTHING."""
    return _insert(engine, table).on_conflict_do_nothing(index_elements=keys)


@contextmanager
def translate_errors(operation: str) -> Iterator[None]:
    """Re-raise driver failures as PersistenceError."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("Database failure during %s: %s", operation, type(exc).__name__)
        raise PersistenceError(operation, type(exc).__name__) from exc
