"""
Tests for closed-loop validation and accuracy metrics.

Covers:
- Nearest-in-time matching within the tolerance window
- Deferral when no actual is available, expiry after the lateness window
- Percent / symmetric percent errors near zero prices
- AccuracyMonitor aggregation, retrain flag and performance snapshots
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from app.domain.pricing.entities import AccuracyRecord, Prediction, RawObservation, Regime

T = datetime(2024, 2, 1, 12, tzinfo=timezone.utc)


def _prediction(price=50.0, lower=40.0, upper=60.0, horizon=1, version="v1"):
    return Prediction(
        prediction_timestamp=T - timedelta(hours=horizon),
        target_timestamp=T,
        horizon_hours=horizon,
        predicted_price=price,
        confidence_lower=lower,
        confidence_upper=upper,
        confidence_score=0.9,
        regime=Regime.NORMAL,
        model_version=version,
    )


def _obs(offset_minutes, price):
    return RawObservation(timestamp=T + timedelta(minutes=offset_minutes), price=price)


def _record(abs_error, within, horizon=1, version="v1", regime="normal", actual=50.0):
    return AccuracyRecord(
        prediction_id=uuid4(),
        target_timestamp=T,
        horizon_hours=horizon,
        model_version=version,
        regime=regime,
        predicted_price=actual + abs_error,
        actual_price=actual,
        actual_timestamp=T,
        absolute_error=abs_error,
        percent_error=abs_error / actual * 100 if actual else None,
        symmetric_percent_error=None,
        within_confidence=within,
    )


# ---------------------------------------------------------------------------
# Error helpers
# ---------------------------------------------------------------------------


class TestPercentErrors:
    def test_percent_error(self):
        from forecasting.validation import percent_error

        assert percent_error(50.0, 45.0) == pytest.approx(10.0)
        assert percent_error(-50.0, -45.0) == pytest.approx(10.0)

    def test_percent_error_undefined_near_zero(self):
        from forecasting.validation import percent_error

        assert percent_error(0.0, 10.0) is None
        assert percent_error(0.005, 10.0) is None

    def test_symmetric_percent_error(self):
        from forecasting.validation import symmetric_percent_error

        assert symmetric_percent_error(50.0, 40.0) == pytest.approx(10.0 / 45.0 * 100)
        assert symmetric_percent_error(0.0, 10.0) == pytest.approx(200.0)
        assert symmetric_percent_error(0.0, 0.0) is None


# ---------------------------------------------------------------------------
# Tracker
# ---------------------------------------------------------------------------


class TestAccuracyTracker:
    def test_actual_ten_minutes_late(self, validation_cfg):
        from forecasting.validation import AccuracyTracker

        prediction = _prediction()
        record = AccuracyTracker(validation_cfg).match(prediction, [_obs(10, 55.0)])
        assert record is not None
        assert record.prediction_id == prediction.id
        assert record.actual_price == 55.0
        assert record.actual_timestamp == T + timedelta(minutes=10)
        assert record.absolute_error == pytest.approx(5.0)
        assert record.percent_error == pytest.approx(5.0 / 55.0 * 100)
        assert record.symmetric_percent_error == pytest.approx(5.0 / 52.5 * 100)
        assert record.within_confidence is True
        assert record.regime == "normal"

    def test_actual_outside_band(self, validation_cfg):
        from forecasting.validation import AccuracyTracker

        record = AccuracyTracker(validation_cfg).match(_prediction(), [_obs(10, 75.0)])
        assert record.within_confidence is False

    def test_band_edges_are_inside(self, validation_cfg):
        from forecasting.validation import AccuracyTracker

        tracker = AccuracyTracker(validation_cfg)
        assert tracker.match(_prediction(), [_obs(0, 60.0)]).within_confidence is True
        assert tracker.match(_prediction(), [_obs(0, 40.0)]).within_confidence is True

    def test_nearest_observation_wins(self, validation_cfg):
        from forecasting.validation import AccuracyTracker

        observations = [_obs(-25, 10.0), _obs(5, 20.0), _obs(20, 30.0)]
        record = AccuracyTracker(validation_cfg).match(_prediction(), observations)
        assert record.actual_price == 20.0

    def test_tie_picks_earlier(self, validation_cfg):
        from forecasting.validation import AccuracyTracker

        observations = [_obs(10, 30.0), _obs(-10, 20.0)]
        record = AccuracyTracker(validation_cfg).match(_prediction(), observations)
        assert record.actual_price == 20.0

    def test_window_is_inclusive(self, validation_cfg):
        from forecasting.validation import AccuracyTracker

        tracker = AccuracyTracker(validation_cfg)
        assert tracker.match(_prediction(), [_obs(30, 50.0)]) is not None
        assert tracker.match(_prediction(), [_obs(31, 50.0)]) is None

    def test_no_actual_defers(self, validation_cfg):
        from forecasting.validation import AccuracyTracker

        tracker = AccuracyTracker(validation_cfg)
        assert tracker.match(_prediction(), []) is None
        assert tracker.match(_prediction(), [_obs(0, None)]) is None

    def test_expiry(self, validation_cfg):
        from forecasting.validation import AccuracyTracker

        tracker = AccuracyTracker(validation_cfg)
        prediction = _prediction()
        assert tracker.expiry == timedelta(hours=24, minutes=30)
        assert not tracker.is_expired(prediction, T + timedelta(hours=24))
        assert tracker.is_expired(prediction, T + timedelta(hours=25))

    def test_zero_actual_has_no_percent_error(self, validation_cfg):
        from forecasting.validation import AccuracyTracker

        record = AccuracyTracker(validation_cfg).match(
            _prediction(price=0.0, lower=0.0, upper=10.0), [_obs(0, 0.0)]
        )
        assert record.absolute_error == 0.0
        assert record.percent_error is None
        assert record.symmetric_percent_error is None


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


class TestAccuracyMonitor:
    def test_empty(self, validation_cfg):
        from forecasting.utils.metrics import AccuracyMonitor

        monitor = AccuracyMonitor(validation_cfg)
        summary = monitor.summarize([])
        assert summary.count == 0
        assert summary.mae is None
        assert monitor.should_retrain(summary) is False

    def test_overall_metrics(self, validation_cfg):
        from forecasting.utils.metrics import AccuracyMonitor

        records = [_record(2.0, True), _record(4.0, True), _record(6.0, False)]
        summary = AccuracyMonitor(validation_cfg).summarize(records)
        assert summary.count == 3
        assert summary.mae == pytest.approx(4.0)
        assert summary.rmse == pytest.approx(round(((4 + 16 + 36) / 3) ** 0.5, 4))
        assert summary.hit_rate == pytest.approx(0.6667)
        assert summary.bias == pytest.approx(4.0)
        assert summary.mape == pytest.approx(8.0)
        assert summary.smape is None

    def test_breakdowns(self, validation_cfg):
        from forecasting.utils.metrics import AccuracyMonitor

        records = [
            _record(2.0, True, horizon=1, version="v1", regime="normal"),
            _record(10.0, False, horizon=24, version="v2", regime="peak_demand"),
            _record(4.0, True, horizon=24, version="v2", regime="peak_demand"),
        ]
        summary = AccuracyMonitor(validation_cfg).summarize(records)
        assert set(summary.by_horizon) == {1, 24}
        assert summary.by_horizon[24]["mae"] == pytest.approx(7.0)
        assert summary.by_horizon[24]["count"] == 2
        assert summary.by_model["v1"]["hit_rate"] == pytest.approx(1.0)
        assert summary.by_regime["peak_demand"]["hit_rate"] == pytest.approx(0.5)

        as_dict = summary.to_dict()
        assert set(as_dict["by_horizon"]) == {"1", "24"}
        assert as_dict["count"] == 3

    def test_should_retrain_on_mae(self, validation_cfg):
        from forecasting.utils.metrics import AccuracyMonitor

        monitor = AccuracyMonitor(validation_cfg)
        assert monitor.should_retrain(monitor.summarize([_record(30.0, True)])) is True
        assert monitor.should_retrain(monitor.summarize([_record(3.0, True)])) is False

    def test_should_retrain_on_hit_rate(self, validation_cfg):
        from forecasting.utils.metrics import AccuracyMonitor

        monitor = AccuracyMonitor(validation_cfg)
        records = [_record(1.0, False), _record(1.0, False), _record(1.0, True)]
        assert monitor.should_retrain(monitor.summarize(records)) is True

    def test_snapshots_need_enough_records(self, validation_cfg):
        from forecasting.utils.metrics import AccuracyMonitor

        monitor = AccuracyMonitor(validation_cfg)
        thin = monitor.summarize([_record(1.0, True) for _ in range(5)])
        assert monitor.model_snapshots(thin) == {}

        records = [_record(1.0, True, version="v1") for _ in range(20)]
        records += [_record(1.0, True, version="v2") for _ in range(5)]
        snapshots = monitor.model_snapshots(monitor.summarize(records))
        assert set(snapshots) == {"v1"}
        assert snapshots["v1"]["count"] == 20
