"""
CLI entry point for the forecasting pipeline.

Usage:
    # Create tables
    python -m forecasting.cli init-db

    # Recompute features over the lateness window (or everything)
    python -m forecasting.cli features
    python -m forecasting.cli features --full-rebuild

    # Forecast the configured horizons from the current hour
    python -m forecasting.cli forecast --horizons 1 6 24

    # Score predictions whose actuals have arrived
    python -m forecasting.cli validate

    # Summarize accuracy over the last week and snapshot performance
    python -m forecasting.cli accuracy --days 7 --snapshot

    # Publish a trained parameter bundle
    python -m forecasting.cli import-params params.json

    # Run the periodic jobs in the foreground
    python -m forecasting.cli scheduler
"""

import argparse
import json
import logging
import sys
import time
from datetime import datetime, timedelta, timezone

from app.core.config import settings
from app.shared.logging import configure_logging

logger = logging.getLogger(__name__)


def _engine():
    from app.infrastructure.pricing.database import init_schema
    from app.interfaces.pricing.dependencies import get_db_engine

    engine = get_db_engine()
    init_schema(engine)
    return engine


def _parse_time(value: str) -> datetime:
    ts = datetime.fromisoformat(value)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def cmd_init_db(args: argparse.Namespace) -> None:
    """Create every pricing table that does not exist yet."""
    _engine()
    logger.info("Schema ready.")


def cmd_features(args: argparse.Namespace) -> None:
    """Run a feature engineering pass."""
    from app.application.pricing.dtos import ComputeFeaturesCommand
    from app.interfaces.pricing.dependencies import build_compute_features_use_case

    use_case = build_compute_features_use_case(_engine())
    result = use_case.execute(
        ComputeFeaturesCommand(since=args.since, full_rebuild=args.full_rebuild)
    )
    logger.info(
        "Features: %d observations loaded, %d records written.",
        result.observations_loaded, result.records_written,
    )


def cmd_forecast(args: argparse.Namespace) -> None:
    """Generate and persist predictions for the requested horizons."""
    from app.application.pricing.dtos import GenerateForecastCommand
    from app.domain.pricing.errors import PricingDomainError
    from app.interfaces.pricing.dependencies import build_generate_forecast_use_case

    use_case = build_generate_forecast_use_case(_engine())
    command = GenerateForecastCommand(
        horizons=tuple(args.horizons) if args.horizons else None,
        prediction_timestamp=args.at,
    )
    try:
        result = use_case.execute(command)
    except PricingDomainError as exc:
        logger.error("Forecast failed: %s", exc.message)
        sys.exit(1)

    for p in result.predictions:
        print(
            f"{p.target_timestamp.isoformat()}  h={p.horizon_hours:>3}  "
            f"{p.predicted_price:>9.2f}  [{p.confidence_lower:.2f}, "
            f"{p.confidence_upper:.2f}]  conf={p.confidence_score:.3f}  {p.regime}"
        )
    logger.info(
        "Forecast complete: %d predictions (model %s).",
        len(result.predictions), result.model_version,
    )


def cmd_validate(args: argparse.Namespace) -> None:
    """Match due predictions with their actual prices."""
    from app.application.pricing.dtos import ValidatePredictionsCommand
    from app.interfaces.pricing.dependencies import build_validate_predictions_use_case

    use_case = build_validate_predictions_use_case(_engine())
    result = use_case.execute(
        ValidatePredictionsCommand(now=args.now, include_expired=args.include_expired)
    )
    logger.info(
        "Validation: checked=%d validated=%d deferred=%d expired=%d saved=%d",
        result.checked, result.validated, result.deferred,
        result.expired, result.saved,
    )


def cmd_accuracy(args: argparse.Namespace) -> None:
    """Print an accuracy summary over the last N days."""
    from app.application.pricing.dtos import SummarizeAccuracyQuery
    from app.interfaces.pricing.dependencies import build_summarize_accuracy_use_case

    end = datetime.now(timezone.utc)
    use_case = build_summarize_accuracy_use_case(_engine())
    result = use_case.execute(
        SummarizeAccuracyQuery(
            start=end - timedelta(days=args.days), end=end, snapshot=args.snapshot,
        )
    )
    print(json.dumps(result.summary, indent=2))
    if result.retrain_recommended:
        logger.warning("Accuracy below thresholds; retraining recommended.")
    if args.snapshot:
        logger.info("Recorded %d performance snapshots.", result.snapshots_recorded)


def cmd_import_params(args: argparse.Namespace) -> None:
    """Publish a trained parameter bundle from a JSON file."""
    from app.domain.pricing.entities import ModelParameters
    from app.domain.pricing.errors import ConfigurationError
    from app.infrastructure.pricing.parameter_repository import (
        ParameterRepositoryAdapter,
    )

    with open(args.path, encoding="utf-8") as fh:
        data = json.load(fh)
    try:
        params = ModelParameters.from_dict(data)
    except ConfigurationError as exc:
        logger.error("Invalid parameter bundle: %s", exc.reason)
        sys.exit(1)

    created = ParameterRepositoryAdapter(_engine()).publish(params)
    if created:
        logger.info("Published model parameters %s.", params.version)
    else:
        logger.warning("Model version %s already published; left unchanged.", params.version)


def cmd_scheduler(args: argparse.Namespace) -> None:
    """Start the batch scheduler (runs in foreground)."""
    from forecasting.scheduler import BatchScheduler, default_jobs

    scheduler = BatchScheduler(default_jobs(_engine()))

    if args.run:
        # Execute a single job immediately and exit
        result = scheduler.run_now(args.run)
        logger.info(
            "Task '%s' %s (%.1fs)",
            result.task_name, result.status.value, result.duration_seconds,
        )
        if result.error:
            logger.error("Error: %s", result.error)
            sys.exit(1)
        return

    scheduler.start()
    logger.info("Scheduler running. Press Ctrl+C to stop.")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Shutting down scheduler...")
    finally:
        scheduler.stop()


def cmd_serve(args: argparse.Namespace) -> None:
    """Start the HTTP API."""
    import uvicorn

    logger.info("Docs:      http://%s:%d/docs (debug only)", args.host, args.port)
    uvicorn.run("app.main:app", host=args.host, port=args.port, reload=False)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="GridCast electricity price forecasting CLI"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # Init DB
    init_parser = subparsers.add_parser("init-db", help="Create database tables")
    init_parser.set_defaults(func=cmd_init_db)

    # Features
    feat_parser = subparsers.add_parser("features", help="Compute feature records")
    feat_parser.add_argument(
        "--since", type=_parse_time, default=None,
        help="Earliest hour to rewrite (ISO-8601, UTC if naive)",
    )
    feat_parser.add_argument(
        "--full-rebuild", action="store_true", dest="full_rebuild",
        help="Recompute every stored observation hour",
    )
    feat_parser.set_defaults(func=cmd_features)

    # Forecast
    fc_parser = subparsers.add_parser("forecast", help="Generate price predictions")
    fc_parser.add_argument(
        "--horizons", type=int, nargs="+", default=None,
        help=f"Horizons in hours (default {list(settings.forecast_horizons)})",
    )
    fc_parser.add_argument(
        "--at", type=_parse_time, default=None,
        help="Prediction time (default: current hour)",
    )
    fc_parser.set_defaults(func=cmd_forecast)

    # Validate
    val_parser = subparsers.add_parser("validate", help="Validate due predictions")
    val_parser.add_argument(
        "--now", type=_parse_time, default=None,
        help="Reference time (default: now)",
    )
    val_parser.add_argument(
        "--include-expired", action="store_true", dest="include_expired",
        help="Re-check predictions already marked as permanent gaps",
    )
    val_parser.set_defaults(func=cmd_validate)

    # Accuracy
    acc_parser = subparsers.add_parser("accuracy", help="Summarize prediction accuracy")
    acc_parser.add_argument(
        "--days", type=int, default=7, help="Look-back window in days (default 7)",
    )
    acc_parser.add_argument(
        "--snapshot", action="store_true",
        help="Record per-model performance snapshots",
    )
    acc_parser.set_defaults(func=cmd_accuracy)

    # Import params
    imp_parser = subparsers.add_parser(
        "import-params", help="Publish a model parameter bundle (JSON)"
    )
    imp_parser.add_argument("path", help="Path to the parameter JSON file")
    imp_parser.set_defaults(func=cmd_import_params)

    # Scheduler
    sched_parser = subparsers.add_parser("scheduler", help="Start the batch scheduler")
    sched_parser.add_argument(
        "--run", type=str, default=None,
        help="Run a single job and exit: features, forecast, validate, accuracy",
    )
    sched_parser.set_defaults(func=cmd_scheduler)

    # Serve
    serve_parser = subparsers.add_parser("serve", help="Start the HTTP API")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port (default 8000)")
    serve_parser.set_defaults(func=cmd_serve)

    args = parser.parse_args(argv)
    configure_logging(level=settings.log_level)
    args.func(args)


if __name__ == "__main__":
    main()
