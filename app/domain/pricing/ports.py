"""
Port interfaces (ABCs) for the pricing bounded context.

Ports define the contracts that the domain requires from the outside world.
Infrastructure adapters implement these interfaces.
The domain layer never depends on concrete implementations.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from app.domain.pricing.entities import (
    AccuracyRecord,
    FeatureRecord,
    ModelParameters,
    Prediction,
    RawObservation,
    WeatherForecast,
)


class ObservationRepository(ABC):
    """Port for the append-only raw observation store (read-only here)."""

    @abstractmethod
    def get_range(
        self, start: Optional[datetime], end: datetime
    ) -> list[RawObservation]:
        """Return observations with start <= timestamp <= end, oldest first.

        ``start=None`` means from the beginning of the store.
        """
        raise NotImplementedError

    @abstractmethod
    def get_preceding(self, before: datetime, count: int) -> list[RawObservation]:
        """Return the last ``count`` observations strictly before ``before``, oldest first."""
        raise NotImplementedError

    @abstractmethod
    def get_fuel_prices(
        self, start: Optional[datetime], end: datetime
    ) -> dict[datetime, float]:
        """Return the exogenous natural-gas price series keyed by timestamp."""
        raise NotImplementedError


class FeatureRepository(ABC):
    """Port for derived feature records, keyed by source observation hour."""

    @abstractmethod
    def upsert_batch(self, records: list[FeatureRecord]) -> int:
        """Insert or replace records by timestamp. Returns rows written."""
        raise NotImplementedError

    @abstractmethod
    def get_window(self, end: datetime, hours: int) -> list[FeatureRecord]:
        """Return records with end - hours < timestamp <= end, oldest first."""
        raise NotImplementedError


class ParameterRepository(ABC):
    """Port for the external model parameter store."""

    @abstractmethod
    def get_latest(self) -> Optional[ModelParameters]:
        """Return the most recently published bundle, or None."""
        raise NotImplementedError


class WeatherForecastRepository(ABC):
    """Port for the optional weather-forecast feed."""

    @abstractmethod
    def get_latest(
        self, location: str, valid_at: datetime, issued_before: datetime
    ) -> Optional[WeatherForecast]:
        """Return the most recently issued forecast for a location and hour."""
        raise NotImplementedError


class PredictionRepository(ABC):
    """Port for persisted predictions."""

    @abstractmethod
    def save_batch(self, predictions: list[Prediction]) -> None:
        """Persist all predictions atomically.

        Raises:
            PersistenceError: if the write failed; nothing was committed.
        """
        raise NotImplementedError

    @abstractmethod
    def get_unvalidated(
        self, due_before: datetime, include_expired: bool = False
    ) -> list[Prediction]:
        """Return predictions with target <= due_before and no accuracy record.

        Predictions already marked expired are skipped unless
        ``include_expired`` is set.
        """
        raise NotImplementedError

    @abstractmethod
    def mark_expired(self, prediction_ids: list[UUID], expired_at: datetime) -> int:
        """Flag predictions whose actual will never arrive. Returns rows updated."""
        raise NotImplementedError

    @abstractmethod
    def get_recent(
        self, since: datetime, horizon: Optional[int] = None
    ) -> list[Prediction]:
        """Return predictions made at or after ``since``."""
        raise NotImplementedError


class AccuracyRepository(ABC):
    """Port for validation outcomes."""

    @abstractmethod
    def save_batch(self, records: list[AccuracyRecord]) -> int:
        """Insert records, ignoring prediction ids already validated.

        Returns:
            Number of new rows inserted.
        """
        raise NotImplementedError

    @abstractmethod
    def get_range(self, start: datetime, end: datetime) -> list[AccuracyRecord]:
        """Return records whose target falls within [start, end]."""
        raise NotImplementedError

    @abstractmethod
    def save_performance_snapshot(
        self, model_version: str, metrics: dict, evaluated_at: datetime
    ) -> None:
        """Record aggregated metrics for one model version."""
        raise NotImplementedError

    @abstractmethod
    def exists(self, prediction_id: UUID) -> bool:
        """Return True if the prediction already has an accuracy record."""
        raise NotImplementedError
