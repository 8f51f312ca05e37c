"""
Tests for feature engineering.

Covers:
- Ring-buffer accumulators (running mean / std, eviction)
- Temporal and interaction features
- FeaturePipeline: one record per hour, exact lags, data gaps,
  position-based momentum, duplicate hours, idempotence
- TargetVectorBuilder
"""

import math
import random
from datetime import datetime, timedelta, timezone

import pytest

from conftest import START, make_observation, make_observations


# ---------------------------------------------------------------------------
# Accumulators
# ---------------------------------------------------------------------------


class TestRingBuffer:
    def test_mean_and_population_std(self):
        from forecasting.features.accumulators import RingBuffer

        buf = RingBuffer(5)
        for key, value in enumerate([1.0, 2.0, 3.0]):
            buf.push(key, value)
        assert buf.mean() == pytest.approx(2.0)
        assert buf.std() == pytest.approx(math.sqrt(2.0 / 3.0))
        assert buf.min() == 1.0
        assert buf.max() == 3.0

    def test_std_needs_two_points(self):
        from forecasting.features.accumulators import RingBuffer

        buf = RingBuffer(3)
        assert buf.mean() is None
        assert buf.std() is None
        buf.push(0, 42.0)
        assert buf.mean() == 42.0
        assert buf.std() is None

    def test_flat_series_has_zero_std(self):
        from forecasting.features.accumulators import RingBuffer

        buf = RingBuffer(10)
        for key in range(8):
            buf.push(key, 42.1)
        assert buf.std() == 0.0

    def test_full_buffer_drops_oldest(self):
        from forecasting.features.accumulators import RingBuffer

        buf = RingBuffer(3)
        for key, value in enumerate([1.0, 2.0, 3.0, 4.0]):
            buf.push(key, value)
        assert len(buf) == 3
        assert list(buf.values()) == [2.0, 3.0, 4.0]
        assert buf.mean() == pytest.approx(3.0)

    def test_evict_before(self):
        from forecasting.features.accumulators import RingBuffer

        buf = RingBuffer(10)
        for key in range(5):
            buf.push(key, float(key))
        buf.evict_before(3)
        assert list(buf.values()) == [3.0, 4.0]

    def test_rejects_zero_capacity(self):
        from forecasting.features.accumulators import RingBuffer

        with pytest.raises(ValueError):
            RingBuffer(0)


class TestAccumulatorArena:
    def test_window_covers_trailing_hours(self):
        from forecasting.features.accumulators import AccumulatorArena

        arena = AccumulatorArena()
        arena.register("price", 3)
        for key in range(6):
            arena.push("price", key, float(key))
        # keys 2..5 fall inside [t - 3, t]
        assert arena.mean("price", 3) == pytest.approx(3.5)

    def test_null_value_still_advances_window(self):
        from forecasting.features.accumulators import AccumulatorArena

        arena = AccumulatorArena()
        arena.register("price", 3)
        for key in range(3):
            arena.push("price", key, 10.0)
        arena.push("price", 10, None)
        assert arena.mean("price", 3) is None

    def test_register_is_idempotent(self):
        from forecasting.features.accumulators import AccumulatorArena

        arena = AccumulatorArena()
        arena.register("price", 24)
        arena.register("price", 24)
        arena.push("price", 0, 5.0)
        assert len(arena.buffer("price", 24)) == 1


# ---------------------------------------------------------------------------
# Temporal / interaction features
# ---------------------------------------------------------------------------


class TestTemporalFeatures:
    def test_saturday_noon(self):
        from forecasting.features.temporal import TemporalFeatures

        out = TemporalFeatures().compute(datetime(2024, 1, 6, 12, tzinfo=timezone.utc))
        assert out["hour_of_day"] == 12.0
        assert out["day_of_week"] == 5.0
        assert out["month"] == 1.0
        assert out["is_weekend"] == 1.0
        assert out["hour_sin"] == pytest.approx(0.0, abs=1e-12)
        assert out["hour_cos"] == pytest.approx(-1.0)

    def test_cyclical_encoding_is_on_unit_circle(self):
        from forecasting.features.temporal import TemporalFeatures

        out = TemporalFeatures().compute(datetime(2024, 3, 13, 7, tzinfo=timezone.utc))
        for name in ("hour", "day_of_week", "month"):
            assert out[f"{name}_sin"] ** 2 + out[f"{name}_cos"] ** 2 == pytest.approx(1.0)
        assert out["is_weekend"] == 0.0


class TestInteractionFeatures:
    def test_products(self):
        from forecasting.features.interactions import InteractionFeatures

        out = InteractionFeatures().compute({
            "hour_of_day": 12.0,
            "is_weekend": 1.0,
            "wind_mw": 240.0,
            "temperature_c": 25.0,
            "demand_mw": 10000.0,
            "natural_gas_price": 3.0,
            "gas_mw": 5000.0,
        })
        assert out["wind_hour_interaction"] == pytest.approx(120.0)
        assert out["temp_demand_interaction"] == pytest.approx(250.0)
        assert out["gas_price_gas_gen_interaction"] == pytest.approx(15.0)
        assert out["weekend_hour_interaction"] == pytest.approx(12.0)
        assert out["temp_extreme_hour_interaction"] == pytest.approx(5.0)

    def test_null_operand_propagates(self):
        from forecasting.features.interactions import InteractionFeatures

        out = InteractionFeatures().compute({"hour_of_day": 3.0, "wind_mw": None})
        assert out["wind_hour_interaction"] is None
        assert out["temp_demand_interaction"] is None
        assert out["temp_extreme_hour_interaction"] is None


# ---------------------------------------------------------------------------
# Feature pipeline
# ---------------------------------------------------------------------------


class TestFeaturePipeline:
    def test_one_record_per_observation(self, feature_cfg):
        from forecasting.features.pipeline import FeaturePipeline

        obs = make_observations(48)
        records = FeaturePipeline(feature_cfg).run(obs)
        assert len(records) == 48
        assert [r.timestamp for r in records] == [o.timestamp for o in obs]

    def test_empty_input(self, feature_cfg):
        from forecasting.features.pipeline import FeaturePipeline

        assert FeaturePipeline(feature_cfg).run([]) == []

    def test_timestamps_floored_to_hour(self, feature_cfg):
        from forecasting.features.pipeline import FeaturePipeline

        obs = make_observation(0, timestamp=START + timedelta(minutes=15))
        [record] = FeaturePipeline(feature_cfg).run([obs])
        assert record.timestamp == START

    def test_base_features(self, feature_cfg):
        from forecasting.features.pipeline import FeaturePipeline

        [record] = FeaturePipeline(feature_cfg).run([make_observation(0)])
        # hour 0: wind 1600, solar 0, gas 5000, demand 9500
        assert record.get("renewable_share") == pytest.approx(1600.0 / 6600.0)
        assert record.get("net_demand_mw") == pytest.approx(9500.0 - 1600.0)
        assert record.get("supply_cushion_mw") == pytest.approx(12000.0 - 9500.0)
        assert record.get("natural_gas_price") is None

    def test_exact_lags(self, feature_cfg):
        from forecasting.features.pipeline import FeaturePipeline

        obs = make_observations(48)
        records = FeaturePipeline(feature_cfg).run(obs)
        r = records[30]
        assert r.get("price_lag_1h") == obs[29].price
        assert r.get("price_lag_24h") == obs[6].price
        assert r.get("demand_lag_24h") == obs[6].demand_mw
        assert r.get("wind_lag_24h") == obs[6].generation["wind"]
        assert r.get("price_lag_168h") is None
        assert records[0].get("price_lag_1h") is None

    def test_data_gap_yields_no_records_and_null_lags(self, feature_cfg):
        from forecasting.features.pipeline import FeaturePipeline

        obs = make_observations(48, skip=range(10, 16))
        records = FeaturePipeline(feature_cfg).run(obs)
        stamps = {r.timestamp for r in records}
        assert len(records) == 42
        for i in range(10, 16):
            assert START + timedelta(hours=i) not in stamps

        by_hour = {r.timestamp: r for r in records}
        after_gap = by_hour[START + timedelta(hours=34)]
        assert after_gap.get("price_lag_24h") is None
        assert after_gap.get("demand_lag_24h") is None
        before_gap = by_hour[START + timedelta(hours=33)]
        assert before_gap.get("price_lag_24h") == obs[9].price

    def test_momentum_is_position_based(self, feature_cfg):
        from forecasting.features.pipeline import FeaturePipeline

        hours = [0, 1, 2, 6]
        obs = [make_observation(i) for i in hours]
        records = FeaturePipeline(feature_cfg).run(obs)
        last = records[-1]
        assert last.get("price_momentum_1h") == pytest.approx(obs[3].price - obs[2].price)
        assert last.get("price_momentum_3h") == pytest.approx(obs[3].price - obs[0].price)
        assert records[1].get("price_momentum_3h") is None

    def test_rolling_statistics(self, feature_cfg):
        from forecasting.features.pipeline import FeaturePipeline

        obs = make_observations(3)
        records = FeaturePipeline(feature_cfg).run(obs)
        p0, p1, p2 = (o.price for o in obs)
        assert records[0].get("price_rolling_std_24h") is None
        assert records[1].get("price_volatility_1h") == pytest.approx(abs(p1 - p0) / 2)
        assert records[2].get("price_rolling_avg_24h") == pytest.approx((p0 + p1 + p2) / 3)
        assert records[2].get("price_min_24h") == min(p0, p1, p2)
        assert records[2].get("price_max_24h") == max(p0, p1, p2)
        assert "price_rolling_avg_7d" in records[2].values

    def test_missing_fields_degrade_to_null(self, feature_cfg):
        from forecasting.features.pipeline import FeaturePipeline

        obs = make_observations(4)
        obs[2] = make_observation(2, price=None, generation={"gas": 5000.0}, weather={})
        records = FeaturePipeline(feature_cfg).run(obs)
        assert len(records) == 4
        r = records[2]
        assert r.get("price") is None
        assert r.get("renewable_share") is None
        assert r.get("net_demand_mw") is None
        assert r.get("wind_hour_interaction") is None
        assert r.get("price_momentum_1h") is None
        assert records[3].get("price_momentum_1h") is None
        assert records[3].get("price_lag_1h") is None
        # The null price is not part of the rolling window
        expected = (obs[0].price + obs[1].price + obs[3].price) / 3
        assert records[3].get("price_rolling_avg_24h") == pytest.approx(expected)

    def test_duplicate_hour_keeps_first(self, feature_cfg):
        from forecasting.features.pipeline import FeaturePipeline

        first = make_observation(0, price=10.0)
        second = make_observation(0, timestamp=START + timedelta(minutes=30), price=99.0)
        records = FeaturePipeline(feature_cfg).run([second, first])
        assert len(records) == 1
        assert records[0].get("price") == 10.0

    def test_exogenous_gas_price_keyed_by_hour(self, feature_cfg):
        from forecasting.features.pipeline import FeaturePipeline

        obs = make_observations(26)
        gas = {START + timedelta(minutes=30): 3.5, START + timedelta(hours=25): 4.0}
        records = FeaturePipeline(feature_cfg).run(obs, gas)
        assert records[0].get("natural_gas_price") == 3.5
        assert records[24].get("natural_gas_price_lag_24h") == 3.5
        assert records[25].get("gas_price_gas_gen_interaction") == pytest.approx(4.0 * 5000.0 / 1000.0)

    def test_recomputation_is_identical(self, feature_cfg):
        from forecasting.features.pipeline import FeaturePipeline

        obs = make_observations(200, skip=range(50, 53))
        shuffled = list(obs)
        random.Random(7).shuffle(shuffled)
        first = FeaturePipeline(feature_cfg).run(obs)
        second = FeaturePipeline(feature_cfg).run(obs)
        third = FeaturePipeline(feature_cfg).run(shuffled)
        assert first == second
        assert first == third

    def test_to_frame(self, history):
        from forecasting.features.pipeline import FeaturePipeline

        df = FeaturePipeline.to_frame(history)
        assert len(df) == len(history)
        assert df.index.name == "timestamp"
        assert "price_lag_24h" in df.columns


# ---------------------------------------------------------------------------
# Target vector
# ---------------------------------------------------------------------------


class TestTargetVectorBuilder:
    def test_lags_relative_to_target(self, feature_cfg):
        from forecasting.features.pipeline import FeaturePipeline
        from forecasting.features.target import TargetVectorBuilder

        obs = make_observations(48)
        history = FeaturePipeline(feature_cfg).run(obs)
        target = history[-1].timestamp + timedelta(hours=1)
        vector = TargetVectorBuilder(feature_cfg).build(history, target, 1)

        assert vector["price_lag_1h"] == obs[47].price
        assert vector["price_lag_2h"] == obs[46].price
        assert vector["price_lag_24h"] == obs[24].price
        assert vector["price_lag_168h"] is None
        assert vector["hour_of_day"] == float(target.hour)
        assert vector["horizon_hours"] == 1.0
        assert vector["price"] == obs[47].price

    def test_future_lags_are_null(self, feature_cfg):
        from forecasting.features.pipeline import FeaturePipeline
        from forecasting.features.target import TargetVectorBuilder

        history = FeaturePipeline(feature_cfg).run(make_observations(48))
        target = history[-1].timestamp + timedelta(hours=6)
        vector = TargetVectorBuilder(feature_cfg).build(history, target, 6)
        assert vector["price_lag_1h"] is None
        assert vector["price_lag_24h"] is not None

    def test_forecast_temperature_overrides_last_known(self, feature_cfg):
        from forecasting.features.pipeline import FeaturePipeline
        from forecasting.features.target import TargetVectorBuilder

        history = FeaturePipeline(feature_cfg).run(make_observations(48))
        target = history[-1].timestamp + timedelta(hours=1)
        builder = TargetVectorBuilder(feature_cfg)

        fallback = builder.build(history, target, 1)
        assert fallback["temperature_c"] == history[-1].get("temperature_c")

        forecast = builder.build(history, target, 1, forecast_temperature=30.0)
        assert forecast["temperature_c"] == 30.0
        expected = abs(30.0 - feature_cfg.comfort_temperature_c) * target.hour / 24.0
        assert forecast["temp_extreme_hour_interaction"] == pytest.approx(expected)
