"""
Adapter: Model parameter repository.

Implements ParameterRepository port. Bundles are written by the external
training job (or ``import-params``) and never modified afterwards; the
latest one by ``published_at`` is the current version.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.engine import Engine

from app.domain.pricing.entities import ModelParameters
from app.domain.pricing.ports import ParameterRepository
from app.infrastructure.pricing.database import (
    insert_ignore_statement,
    to_utc,
    translate_errors,
)
from app.infrastructure.pricing.schema import model_parameters

logger = logging.getLogger(__name__)


class ParameterRepositoryAdapter(ParameterRepository):
    """SQL adapter for the model_parameters table."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def get_latest(self) -> Optional[ModelParameters]:
        """Return the most recently published bundle, or None."""
        t = model_parameters
        query = (
            select(t.c.bundle, t.c.published_at)
            .order_by(t.c.published_at.desc(), t.c.version.desc())
            .limit(1)
        )
        with translate_errors("load model parameters"):
            with self._engine.connect() as conn:
                row = conn.execute(query).fetchone()
        if not row:
            return None
        return ModelParameters.from_dict(dict(row[0]), published_at=to_utc(row[1]))

    def publish(
        self, params: ModelParameters, published_at: Optional[datetime] = None
    ) -> bool:
        """Store a new bundle. Returns False if the version already exists."""
        published_at = published_at or params.published_at or datetime.now(timezone.utc)
        stmt = insert_ignore_statement(self._engine, model_parameters, ["version"])
        with translate_errors("publish model parameters"):
            with self._engine.begin() as conn:
                result = conn.execute(
                    stmt,
                    {
                        "version": params.version,
                        "published_at": to_utc(published_at),
                        "bundle": params.to_dict(),
                    },
                )
        created = result.rowcount == 1
        if created:
            logger.info("Published model parameters %s", params.version)
        else:
            logger.warning("Model parameters %s already published", params.version)
        return created
