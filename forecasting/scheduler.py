"""
Batch scheduler for the forecasting pipeline.

Each stage runs as an independent periodic job that reads the latest
committed state of its upstream stage:
- **features** (hourly): recompute feature records over the lateness window
- **forecast** (hourly): run the ensemble for every configured horizon
- **validate** (every 30 min): score predictions whose actuals arrived
- **accuracy** (on demand): summarize accuracy, snapshot model performance

Jobs are short and safe to retry wholesale, so a failed run is simply
recorded and the next tick tries again.
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from forecasting.config import SchedulerConfig, config

logger = logging.getLogger(__name__)

Job = Callable[[], dict]


class TaskStatus(Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class TaskResult:
    """Result of a scheduled task execution."""

    task_name: str
    status: TaskStatus
    started_at: str
    finished_at: str | None = None
    duration_seconds: float = 0.0
    details: dict = field(default_factory=dict)
    error: str | None = None


def default_jobs(engine: Any) -> dict[str, Job]:
    """Wire the pipeline use cases against one database engine."""
    from dataclasses import asdict

    from app.application.pricing.dtos import (
        ComputeFeaturesCommand,
        GenerateForecastCommand,
        SummarizeAccuracyQuery,
        ValidatePredictionsCommand,
    )
    from app.interfaces.pricing.dependencies import (
        build_compute_features_use_case,
        build_generate_forecast_use_case,
        build_summarize_accuracy_use_case,
        build_validate_predictions_use_case,
    )

    def features() -> dict:
        result = build_compute_features_use_case(engine).execute(ComputeFeaturesCommand())
        return {
            "observations_loaded": result.observations_loaded,
            "records_written": result.records_written,
        }

    def forecast() -> dict:
        result = build_generate_forecast_use_case(engine).execute(GenerateForecastCommand())
        return {
            "model_version": result.model_version,
            "horizons": [p.horizon_hours for p in result.predictions],
        }

    def validate() -> dict:
        result = build_validate_predictions_use_case(engine).execute(
            ValidatePredictionsCommand()
        )
        return asdict(result)

    def accuracy() -> dict:
        result = build_summarize_accuracy_use_case(engine).execute(
            SummarizeAccuracyQuery(snapshot=True)
        )
        return {
            "count": result.summary["count"],
            "retrain_recommended": result.retrain_recommended,
            "snapshots_recorded": result.snapshots_recorded,
        }

    return {
        "features": features,
        "forecast": forecast,
        "validate": validate,
        "accuracy": accuracy,
    }


class BatchScheduler:
    """Runs pipeline jobs on fixed intervals with APScheduler.

    Usage:
        scheduler = BatchScheduler(default_jobs(engine))
        scheduler.start()             # begin interval jobs
        scheduler.run_now("forecast") # trigger a job immediately
        scheduler.stop()              # graceful shutdown
    """

    def __init__(self, jobs: dict[str, Job], cfg: SchedulerConfig | None = None) -> None:
        self._jobs = dict(jobs)
        self._cfg = cfg or config.scheduler
        self._running = False
        self._task_history: list[TaskResult] = []
        self._lock = threading.Lock()
        self._scheduler: BackgroundScheduler | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def task_history(self) -> list[TaskResult]:
        with self._lock:
            return list(self._task_history)

    def intervals(self) -> dict[str, int]:
        """Interval in minutes per periodic job."""
        cadence = {
            "features": self._cfg.features_interval,
            "forecast": self._cfg.forecast_interval,
            "validate": self._cfg.validation_interval,
        }
        return {name: minutes for name, minutes in cadence.items() if name in self._jobs}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the scheduler with all periodic jobs."""
        if self._running:
            logger.warning("Scheduler already running.")
            return

        self._scheduler = BackgroundScheduler(
            timezone="UTC",
            job_defaults={"coalesce": True, "max_instances": 1},
        )
        for name, minutes in self.intervals().items():
            self._scheduler.add_job(
                self.run_now,
                IntervalTrigger(minutes=minutes),
                args=[name],
                id=name,
                name=f"{name} every {minutes} min",
            )
        self._scheduler.start()
        self._running = True
        logger.info("BatchScheduler started with %d jobs.", len(self._scheduler.get_jobs()))

    def stop(self) -> None:
        """Gracefully stop the scheduler."""
        self._running = False
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
        logger.info("BatchScheduler stopped.")

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def run_now(self, task_name: str) -> TaskResult:
        """Execute a named job immediately (blocking).

        Args:
            task_name: One of the registered job names.

        Returns:
            TaskResult with execution details.
        """
        fn = self._jobs.get(task_name)
        if fn is None:
            result = TaskResult(
                task_name=task_name,
                status=TaskStatus.FAILED,
                started_at=datetime.now(timezone.utc).isoformat(),
                error=f"Unknown task: {task_name}. Available: {list(self._jobs)}",
            )
            self._record_result(result)
            return result

        start = time.monotonic()
        started_at = datetime.now(timezone.utc).isoformat()
        try:
            details = fn() or {}
            result = TaskResult(
                task_name=task_name,
                status=TaskStatus.COMPLETED,
                started_at=started_at,
                finished_at=datetime.now(timezone.utc).isoformat(),
                duration_seconds=round(time.monotonic() - start, 2),
                details=details,
            )
        except Exception as exc:
            result = TaskResult(
                task_name=task_name,
                status=TaskStatus.FAILED,
                started_at=started_at,
                finished_at=datetime.now(timezone.utc).isoformat(),
                duration_seconds=round(time.monotonic() - start, 2),
                error=str(exc),
            )
            logger.exception("Scheduled %s run failed.", task_name)

        self._record_result(result)
        return result

    def _record_result(self, result: TaskResult) -> None:
        with self._lock:
            self._task_history.append(result)
            if len(self._task_history) > self._cfg.max_history:
                self._task_history = self._task_history[-self._cfg.max_history:]
