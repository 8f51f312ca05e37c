"""
Tests for the batch scheduler and the command-line interface.

Covers:
- BatchScheduler (task execution, status, history)
- default_jobs wired against an in-memory database
- CLI commands (import-params, forecast, scheduler --run)
"""

import json
from unittest.mock import patch

import pytest

from conftest import params_bundle


@pytest.fixture
def scheduler_cfg():
    from forecasting.config import SchedulerConfig

    return SchedulerConfig(
        features_interval=60, forecast_interval=60, validation_interval=30, max_history=3,
    )


# ---------------------------------------------------------------------------
# BatchScheduler
# ---------------------------------------------------------------------------


class TestBatchScheduler:
    def test_initial_state(self, scheduler_cfg):
        from forecasting.scheduler import BatchScheduler

        scheduler = BatchScheduler({"forecast": dict}, scheduler_cfg)
        assert scheduler.is_running is False
        assert scheduler.task_history == []
        assert scheduler.intervals() == {"forecast": 60}

    def test_run_unknown_task(self, scheduler_cfg):
        from forecasting.scheduler import BatchScheduler, TaskStatus

        scheduler = BatchScheduler({}, scheduler_cfg)
        result = scheduler.run_now("nonexistent")
        assert result.status == TaskStatus.FAILED
        assert "Unknown task" in result.error
        assert scheduler.task_history == [result]

    def test_completed_task_records_details(self, scheduler_cfg):
        from forecasting.scheduler import BatchScheduler, TaskStatus

        scheduler = BatchScheduler({"validate": lambda: {"saved": 4}}, scheduler_cfg)
        result = scheduler.run_now("validate")
        assert result.status == TaskStatus.COMPLETED
        assert result.details == {"saved": 4}
        assert result.finished_at is not None
        assert result.error is None

    def test_failed_task_is_recorded(self, scheduler_cfg):
        from forecasting.scheduler import BatchScheduler, TaskStatus

        def broken():
            raise RuntimeError("database unreachable")

        scheduler = BatchScheduler({"features": broken}, scheduler_cfg)
        result = scheduler.run_now("features")
        assert result.status == TaskStatus.FAILED
        assert result.error == "database unreachable"

    def test_history_is_bounded(self, scheduler_cfg):
        from forecasting.scheduler import BatchScheduler

        scheduler = BatchScheduler({"forecast": dict}, scheduler_cfg)
        for _ in range(5):
            scheduler.run_now("forecast")
        assert len(scheduler.task_history) == 3

    def test_start_and_stop(self, scheduler_cfg):
        from forecasting.scheduler import BatchScheduler

        scheduler = BatchScheduler({"forecast": dict, "validate": dict}, scheduler_cfg)
        scheduler.start()
        try:
            assert scheduler.is_running is True
        finally:
            scheduler.stop()
        assert scheduler.is_running is False


class TestDefaultJobs:
    def test_forecast_job_without_parameters_fails(self, engine, scheduler_cfg):
        from forecasting.scheduler import BatchScheduler, TaskStatus, default_jobs

        scheduler = BatchScheduler(default_jobs(engine), scheduler_cfg)
        assert set(scheduler.intervals()) == {"features", "forecast", "validate"}
        result = scheduler.run_now("forecast")
        assert result.status == TaskStatus.FAILED

    def test_validate_and_accuracy_jobs(self, engine, scheduler_cfg):
        from forecasting.scheduler import BatchScheduler, TaskStatus, default_jobs

        scheduler = BatchScheduler(default_jobs(engine), scheduler_cfg)
        validate = scheduler.run_now("validate")
        assert validate.status == TaskStatus.COMPLETED
        assert validate.details["checked"] == 0

        accuracy = scheduler.run_now("accuracy")
        assert accuracy.status == TaskStatus.COMPLETED
        assert accuracy.details == {
            "count": 0, "retrain_recommended": False, "snapshots_recorded": 0,
        }


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


@pytest.fixture
def cli(engine):
    """CLI entry point bound to the test database."""
    from forecasting.cli import main

    with patch("app.interfaces.pricing.dependencies.get_db_engine", return_value=engine), \
            patch("forecasting.cli.configure_logging"):
        yield main


class TestCli:
    def test_import_params(self, cli, engine, tmp_path):
        from app.infrastructure.pricing.parameter_repository import ParameterRepositoryAdapter

        path = tmp_path / "params.json"
        path.write_text(json.dumps(params_bundle(version="v-cli")), encoding="utf-8")
        cli(["import-params", str(path)])
        assert ParameterRepositoryAdapter(engine).get_latest().version == "v-cli"

    def test_import_invalid_params_exits(self, cli, tmp_path):
        bundle = params_bundle()
        del bundle["residual_std_dev"]
        path = tmp_path / "params.json"
        path.write_text(json.dumps(bundle), encoding="utf-8")
        with pytest.raises(SystemExit) as exc_info:
            cli(["import-params", str(path)])
        assert exc_info.value.code == 1

    def test_forecast_prints_each_horizon(self, cli, engine, params, history, capsys):
        from app.infrastructure.pricing.feature_repository import FeatureRepositoryAdapter
        from app.infrastructure.pricing.parameter_repository import ParameterRepositoryAdapter

        ParameterRepositoryAdapter(engine).publish(params)
        FeatureRepositoryAdapter(engine).upsert_batch(history)
        cli(["forecast", "--horizons", "1", "24", "--at", history[-1].timestamp.isoformat()])
        lines = [line for line in capsys.readouterr().out.splitlines() if " h=" in line]
        assert len(lines) == 2
        assert "h=  1" in lines[0]
        assert "h= 24" in lines[1]

    def test_forecast_without_parameters_exits(self, cli):
        with pytest.raises(SystemExit) as exc_info:
            cli(["forecast"])
        assert exc_info.value.code == 1

    def test_validate_include_expired(self, cli):
        from app.application.pricing.validate_predictions import ValidatePredictionsUseCase

        with patch.object(ValidatePredictionsUseCase, "execute", autospec=True) as execute:
            execute.return_value.checked = 0
            execute.return_value.validated = 0
            execute.return_value.deferred = 0
            execute.return_value.expired = 0
            execute.return_value.saved = 0
            cli(["validate", "--include-expired"])
        command = execute.call_args.args[1]
        assert command.include_expired is True

    def test_scheduler_run_once(self, cli, engine):
        from app.infrastructure.pricing.accuracy_repository import AccuracyRepositoryAdapter

        cli(["scheduler", "--run", "accuracy"])
        assert AccuracyRepositoryAdapter(engine).get_performance("v-test-1") == []

    def test_scheduler_unknown_job_exits(self, cli):
        with pytest.raises(SystemExit) as exc_info:
            cli(["scheduler", "--run", "retrain"])
        assert exc_info.value.code == 1

    def test_unknown_command(self, cli):
        with pytest.raises(SystemExit):
            cli(["bogus"])


class TestLogging:
    def test_utc_pipe_format(self):
        import io
        import logging
        import re

        from app.shared.logging import configure_logging

        stream = io.StringIO()
        configure_logging(level="info", stream=stream)
        logging.getLogger("forecasting.test").info("run complete")
        line = stream.getvalue().strip()
        assert re.match(
            r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z \| INFO +\| forecasting.test \| run complete$",
            line,
        )
        assert logging.getLogger("apscheduler").level == logging.WARNING
