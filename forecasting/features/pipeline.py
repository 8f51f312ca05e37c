"""
Feature pipeline orchestrator.

Runs all feature engineering steps, in order, for each observation hour:
1. Base features (price, demand, generation mix, weather, reserves, gas price)
2. Temporal / calendar features
3. Exact hour-key lags
4. Rolling statistics (ring-buffer accumulators)
5. Position-based momentum
6. Interactions

The pipeline is a pure function of its input: the same observation set
always produces identical FeatureRecords, so recomputation is safe.
"""

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime

import pandas as pd

from app.domain.pricing.entities import FeatureRecord, RawObservation
from forecasting.config import FeatureConfig, config
from forecasting.features.accumulators import RollingFeatures
from forecasting.features.interactions import InteractionFeatures
from forecasting.features.lag import HourIndex, LagFeatures, floor_hour, hour_key
from forecasting.features.temporal import TemporalFeatures

logger = logging.getLogger(__name__)

BASE_FEATURES = (
    "price",
    "demand_mw",
    "wind_mw",
    "solar_mw",
    "gas_mw",
    "temperature_c",
    "renewable_share",
    "net_demand_mw",
    "supply_cushion_mw",
    "natural_gas_price",
)


def _as_float(value) -> float | None:
    return None if value is None else float(value)


def base_features(
    obs: RawObservation, natural_gas_price: float | None = None
) -> dict[str, float | None]:
    """Extract the directly observed features of one observation."""
    gen = obs.generation
    price = _as_float(obs.price)
    demand = _as_float(obs.demand_mw)
    wind = _as_float(gen.get("wind"))
    solar = _as_float(gen.get("solar"))
    gas = _as_float(gen.get("gas"))
    available = _as_float(obs.reserves.get("available_capacity_mw"))

    renewable_share = None
    total = sum(gen.values()) if gen else 0.0
    if wind is not None and solar is not None and total > 0:
        renewable_share = (wind + solar) / total

    net_demand = None
    if demand is not None and wind is not None and solar is not None:
        net_demand = demand - wind - solar

    cushion = None
    if available is not None and demand is not None:
        cushion = available - demand

    return {
        "price": price,
        "demand_mw": demand,
        "wind_mw": wind,
        "solar_mw": solar,
        "gas_mw": gas,
        "temperature_c": _as_float(obs.weather.get("temperature_c")),
        "renewable_share": renewable_share,
        "net_demand_mw": net_demand,
        "supply_cushion_mw": cushion,
        "natural_gas_price": _as_float(natural_gas_price),
    }


class FeaturePipeline:
    """Orchestrates the full feature engineering pipeline.

    Input observations may arrive out of order and may repeat an hour;
    they are sorted by timestamp and the first observation of each hour
    wins. Missing inputs degrade individual fields to null; the batch
    itself never fails because of one missing value.
    """

    def __init__(self, cfg: FeatureConfig | None = None) -> None:
        self._cfg = cfg or config.features
        self._temporal = TemporalFeatures()
        self._lag = LagFeatures(self._cfg)
        self._interactions = InteractionFeatures(self._cfg)

    def run(
        self,
        observations: Iterable[RawObservation],
        exogenous: Mapping[datetime, float] | None = None,
    ) -> list[FeatureRecord]:
        """Compute one FeatureRecord per distinct observation hour.

        Args:
            observations: Raw hourly observations, in any order.
            exogenous: Natural gas price keyed by timestamp; keys are
                floored to the hour before lookup.

        Returns:
            FeatureRecords ordered by timestamp.
        """
        ordered = self._deduplicate(observations)
        if not ordered:
            return []

        gas_by_hour: dict[int, float] = {}
        for ts in sorted(exogenous or {}):
            gas_by_hour.setdefault(hour_key(ts), exogenous[ts])

        rows: list[tuple[int, datetime, dict[str, float | None]]] = []
        for obs in ordered:
            key = hour_key(obs.timestamp)
            rows.append(
                (key, floor_hour(obs.timestamp), base_features(obs, gas_by_hour.get(key)))
            )

        index = HourIndex({key: base for key, _, base in rows})
        rolling = RollingFeatures(self._cfg)
        prices = [base["price"] for _, _, base in rows]

        records: list[FeatureRecord] = []
        for position, (key, ts, base) in enumerate(rows):
            values: dict[str, float | None] = dict(base)
            values.update(self._temporal.compute(ts))
            values.update(self._lag.compute(index, key))
            values.update(rolling.update(key, base))
            values.update(self._lag.momentum(prices, position))
            values.update(self._interactions.compute(values))
            records.append(FeatureRecord(timestamp=ts, values=values))

        missing_price = sum(1 for p in prices if p is None)
        if missing_price:
            logger.debug("%d of %d hours have no price.", missing_price, len(rows))
        logger.info(
            "Feature pipeline complete: %d records, %d features",
            len(records),
            len(records[0].values),
        )
        return records

    @staticmethod
    def _deduplicate(observations: Iterable[RawObservation]) -> list[RawObservation]:
        seen: set[int] = set()
        unique: list[RawObservation] = []
        duplicates = 0
        for obs in sorted(observations, key=lambda o: o.timestamp):
            key = hour_key(obs.timestamp)
            if key in seen:
                duplicates += 1
                continue
            seen.add(key)
            unique.append(obs)
        if duplicates:
            logger.warning("Dropped %d duplicate observation hours.", duplicates)
        return unique

    @staticmethod
    def to_frame(records: Iterable[FeatureRecord]) -> pd.DataFrame:
        """Render records as a DataFrame indexed by timestamp."""
        records = list(records)
        if not records:
            return pd.DataFrame()
        df = pd.DataFrame(
            [r.values for r in records],
            index=pd.DatetimeIndex([r.timestamp for r in records], name="timestamp"),
        )
        return df
