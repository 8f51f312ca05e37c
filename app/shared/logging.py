"""
Logging configuration for GridCast.

One format for the API, the CLI and the batch scheduler. Timestamps are
rendered in UTC so log lines line up with observation and target hours.
Never logs credentials or raw parameter bundles.
"""

import logging
import sys
import time

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("uvicorn.access", "apscheduler", "sqlalchemy.engine")


def configure_logging(level: str = "INFO", stream=None) -> None:
    """Configure root logging for the process.

    Args:
        level: The log level string (DEBUG, INFO, WARNING, ERROR).
        stream: Output stream; defaults to stdout.
    """
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    formatter.converter = time.gmtime
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(formatter)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=[handler],
        force=True,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
