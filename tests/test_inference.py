"""
Tests for the ensemble prediction engine.

Covers:
- Output invariants (band contains the point, target = made_at + horizon)
- Confidence decay and band widening with horizon
- Zero floor policy
- Fail-fast errors (parameters, horizons, history)
- Forecast weather override
"""

from datetime import timedelta

import pytest

from app.domain.pricing.entities import FeatureRecord, ModelParameters, Prediction, Regime
from app.domain.pricing.errors import (
    ConfigurationError,
    InsufficientHistoryError,
    InvalidHorizonError,
)
from conftest import params_bundle


@pytest.fixture
def forecast_engine(engine_cfg, feature_cfg):
    from forecasting.inference import ForecastEngine

    return ForecastEngine(engine_cfg, feature_cfg)


@pytest.fixture
def made_at(history):
    return history[-1].timestamp


class TestConfidence:
    def test_score_decays_with_horizon(self, engine_cfg):
        from forecasting.inference import confidence_score

        assert confidence_score(1, engine_cfg) == pytest.approx(1 - 1 / 48)
        assert confidence_score(1, engine_cfg) > confidence_score(24, engine_cfg)
        assert confidence_score(24, engine_cfg) == pytest.approx(0.5)
        assert confidence_score(168, engine_cfg) == 0.5

    def test_band_grows_with_horizon(self):
        from forecasting.inference import band_half_width

        assert band_half_width(10.0, 24, 0.5) == pytest.approx(15.0)
        assert band_half_width(10.0, 24, 0.5) > band_half_width(10.0, 1, 0.5)
        assert band_half_width(0.0, 24, 0.5) == 0.0


class TestForecastEngine:
    def test_oscillating_history_one_hour_ahead(self, forecast_engine, history, params, made_at):
        prices = [r.get("price") for r in history]
        [p] = forecast_engine.forecast(made_at, [1], history, params)
        assert min(prices) - 20 <= p.predicted_price <= max(prices) + 20
        assert p.confidence_score >= 0.95
        assert p.regime is Regime.NORMAL
        assert p.model_version == "v-test-1"

    def test_prediction_invariants(self, forecast_engine, history, params, made_at):
        predictions = forecast_engine.forecast(made_at, None, history, params)
        assert [p.horizon_hours for p in predictions] == [1, 6, 12, 24]
        for p in predictions:
            assert p.confidence_lower <= p.predicted_price <= p.confidence_upper
            assert p.target_timestamp == p.prediction_timestamp + timedelta(hours=p.horizon_hours)
            assert p.prediction_timestamp == made_at

    def test_decay_and_widening(self, forecast_engine, history, params, made_at):
        by_h = {p.horizon_hours: p for p in forecast_engine.forecast(made_at, None, history, params)}
        assert by_h[1].confidence_score > by_h[24].confidence_score
        width_1 = by_h[1].confidence_upper - by_h[1].confidence_lower
        width_24 = by_h[24].confidence_upper - by_h[24].confidence_lower
        assert width_24 >= width_1

    def test_order_follows_request(self, forecast_engine, history, params, made_at):
        predictions = forecast_engine.forecast(made_at, (24, 1), history, params)
        assert [p.horizon_hours for p in predictions] == [24, 1]

    def test_features_used_recorded(self, forecast_engine, history, params, made_at):
        [p] = forecast_engine.forecast(made_at, [6], history, params)
        assert p.features_used["regime"] == "normal"
        assert p.features_used["horizon_hours"] == 6.0
        assert p.features_used["hour_of_day"] == float(p.target_timestamp.hour)

    def test_forecast_weather_overrides_temperature(self, forecast_engine, history, params, made_at):
        predictions = forecast_engine.forecast(
            made_at, [1, 6], history, params, forecast_weather={1: 30.0}
        )
        assert predictions[0].features_used["temperature_c"] == 30.0
        assert predictions[1].features_used["temperature_c"] == history[-1].get("temperature_c")

    def test_lower_bound_floored_at_zero(self, forecast_engine, history, made_at):
        params = ModelParameters.from_dict(params_bundle(residual_std_dev=1000.0))
        for p in forecast_engine.forecast(made_at, None, history, params):
            assert p.confidence_lower == 0.0
            assert p.predicted_price >= 0.0
            assert p.confidence_upper > p.predicted_price

    def test_floor_is_a_policy_switch(self, engine_cfg, feature_cfg, history, made_at):
        from dataclasses import replace

        from forecasting.inference import ForecastEngine

        engine = ForecastEngine(replace(engine_cfg, floor_prices_at_zero=False), feature_cfg)
        params = ModelParameters.from_dict(params_bundle(residual_std_dev=1000.0))
        [p] = engine.forecast(made_at, [1], history, params)
        assert p.confidence_lower < 0.0

    def test_input_order_does_not_matter(self, forecast_engine, history, params, made_at):
        a = forecast_engine.forecast(made_at, [1, 24], history, params)
        b = forecast_engine.forecast(made_at, [1, 24], list(reversed(history)), params)
        assert [p.predicted_price for p in a] == [p.predicted_price for p in b]


class TestForecastEngineErrors:
    def test_missing_parameters(self, forecast_engine, history, made_at):
        with pytest.raises(ConfigurationError):
            forecast_engine.forecast(made_at, None, history, None)

    def test_invalid_horizon(self, forecast_engine, history, params, made_at):
        with pytest.raises(InvalidHorizonError) as exc_info:
            forecast_engine.forecast(made_at, [1, 3], history, params)
        assert exc_info.value.horizon == 3

    def test_no_horizons(self, forecast_engine, history, params, made_at):
        assert forecast_engine.forecast(made_at, [], history, params) == []

    def test_empty_history(self, forecast_engine, params, made_at):
        with pytest.raises(InsufficientHistoryError) as exc_info:
            forecast_engine.forecast(made_at, None, [], params)
        assert exc_info.value.available == 0

    def test_history_shorter_than_horizon(self, forecast_engine, history, params, made_at):
        short = history[-5:]
        with pytest.raises(InsufficientHistoryError) as exc_info:
            forecast_engine.forecast(made_at, None, short, params)
        assert exc_info.value.available == 5
        assert exc_info.value.required == 24
        assert len(forecast_engine.forecast(made_at, [1], short, params)) == 1

    def test_latest_price_missing(self, forecast_engine, history, params, made_at):
        last = history[-1]
        broken = history[:-1] + [FeatureRecord(last.timestamp, dict(last.values, price=None))]
        with pytest.raises(InsufficientHistoryError):
            forecast_engine.forecast(made_at, [1], broken, params)


class TestPredictionEntity:
    def test_rejects_price_outside_band(self, made_at):
        with pytest.raises(ValueError):
            Prediction(
                prediction_timestamp=made_at,
                target_timestamp=made_at + timedelta(hours=1),
                horizon_hours=1,
                predicted_price=50.0,
                confidence_lower=51.0,
                confidence_upper=60.0,
                confidence_score=0.9,
                regime=Regime.NORMAL,
                model_version="v",
            )

    def test_rejects_mismatched_target(self, made_at):
        with pytest.raises(ValueError):
            Prediction(
                prediction_timestamp=made_at,
                target_timestamp=made_at + timedelta(hours=2),
                horizon_hours=1,
                predicted_price=50.0,
                confidence_lower=40.0,
                confidence_upper=60.0,
                confidence_score=0.9,
                regime=Regime.NORMAL,
                model_version="v",
            )


class _DayAheadFails:
    """Lag-named estimator that raises only for the 24h horizon."""

    @staticmethod
    def combiner():
        from forecasting.models.base import BaseEstimator
        from forecasting.models.ensemble import EnsembleCombiner

        class FailsAtDayAhead(BaseEstimator):
            name = "lag"

            def estimate(self, features, params):
                if features.get("horizon_hours") == 24.0:
                    raise RuntimeError("estimator blew up at h=24")
                return features["price"]

        return EnsembleCombiner([FailsAtDayAhead()])


class TestFailedHorizon:
    def test_one_failing_horizon_fails_the_run(self, engine_cfg, feature_cfg, history, params, made_at):
        from forecasting.inference import ForecastEngine

        engine = ForecastEngine(engine_cfg, feature_cfg, _DayAheadFails.combiner())
        assert len(engine.forecast(made_at, [1, 6], history, params)) == 2
        with pytest.raises(RuntimeError):
            engine.forecast(made_at, None, history, params)
