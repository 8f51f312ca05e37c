"""Utility sub-package: accuracy metrics and monitoring."""

from forecasting.utils.metrics import AccuracyMonitor, AccuracySummary

__all__ = ["AccuracyMonitor", "AccuracySummary"]
