"""
Forecast accuracy metrics and monitoring.

Provides:
- MAE / RMSE / MAPE / sMAPE over validated predictions
- Confidence-band hit rate (calibration)
- Breakdowns by horizon, model version and regime
- A degradation flag for the external retraining job
"""

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass, field

import numpy as np
import pandas as pd

from app.domain.pricing.entities import AccuracyRecord
from forecasting.config import ValidationConfig, config

logger = logging.getLogger(__name__)

GROUPINGS = {
    "by_horizon": "horizon_hours",
    "by_model": "model_version",
    "by_regime": "regime",
}


def _clean(value) -> float | None:
    if value is None:
        return None
    value = float(value)
    return None if math.isnan(value) else round(value, 4)


@dataclass
class AccuracySummary:
    """Aggregated accuracy of a set of validated predictions."""

    count: int
    mae: float | None = None
    rmse: float | None = None
    mape: float | None = None
    smape: float | None = None
    hit_rate: float | None = None
    bias: float | None = None
    by_horizon: dict[int, dict] = field(default_factory=dict)
    by_model: dict[str, dict] = field(default_factory=dict)
    by_regime: dict[str, dict] = field(default_factory=dict)

    def overall(self) -> dict:
        return {
            "count": self.count,
            "mae": self.mae,
            "rmse": self.rmse,
            "mape": self.mape,
            "smape": self.smape,
            "hit_rate": self.hit_rate,
            "bias": self.bias,
        }

    def to_dict(self) -> dict:
        return {
            **self.overall(),
            "by_horizon": {str(k): v for k, v in self.by_horizon.items()},
            "by_model": self.by_model,
            "by_regime": self.by_regime,
        }


class AccuracyMonitor:
    """Summarizes validation outcomes and detects degradation.

    Flags retraining when:
    - MAE > ``retrain_mae_threshold``
    - confidence hit rate < ``retrain_min_hit_rate``
    """

    def __init__(self, cfg: ValidationConfig | None = None) -> None:
        self._cfg = cfg or config.validation

    @staticmethod
    def to_frame(records: Iterable[AccuracyRecord]) -> pd.DataFrame:
        rows = [
            {
                "prediction_id": str(r.prediction_id),
                "target_timestamp": r.target_timestamp,
                "horizon_hours": int(r.horizon_hours),
                "model_version": r.model_version,
                "regime": r.regime,
                "predicted_price": r.predicted_price,
                "actual_price": r.actual_price,
                "absolute_error": r.absolute_error,
                "percent_error": r.percent_error,
                "symmetric_percent_error": r.symmetric_percent_error,
                "within_confidence": bool(r.within_confidence),
            }
            for r in records
        ]
        df = pd.DataFrame(rows)
        if df.empty:
            return df
        for col in ("percent_error", "symmetric_percent_error"):
            df[col] = df[col].astype(float)
        df["signed_error"] = df["predicted_price"] - df["actual_price"]
        df["squared_error"] = df["absolute_error"] ** 2
        df["hit"] = df["within_confidence"].astype(float)
        return df

    @staticmethod
    def _aggregate(df: pd.DataFrame, by: str) -> dict:
        grouped = df.groupby(by).agg(
            count=("absolute_error", "size"),
            mae=("absolute_error", "mean"),
            mse=("squared_error", "mean"),
            mape=("percent_error", "mean"),
            smape=("symmetric_percent_error", "mean"),
            hit_rate=("hit", "mean"),
            bias=("signed_error", "mean"),
        )
        grouped["rmse"] = np.sqrt(grouped["mse"])
        out = {}
        for key, row in grouped.iterrows():
            key = int(key) if by == "horizon_hours" else str(key)
            out[key] = {
                "count": int(row["count"]),
                "mae": _clean(row["mae"]),
                "rmse": _clean(row["rmse"]),
                "mape": _clean(row["mape"]),
                "smape": _clean(row["smape"]),
                "hit_rate": _clean(row["hit_rate"]),
                "bias": _clean(row["bias"]),
            }
        return out

    def summarize(self, records: Iterable[AccuracyRecord]) -> AccuracySummary:
        """Compute overall and grouped accuracy metrics."""
        df = self.to_frame(records)
        if df.empty:
            return AccuracySummary(count=0)

        summary = AccuracySummary(
            count=len(df),
            mae=_clean(df["absolute_error"].mean()),
            rmse=_clean(np.sqrt(df["squared_error"].mean())),
            mape=_clean(df["percent_error"].mean()),
            smape=_clean(df["symmetric_percent_error"].mean()),
            hit_rate=_clean(df["hit"].mean()),
            bias=_clean(df["signed_error"].mean()),
        )
        for attr, column in GROUPINGS.items():
            setattr(summary, attr, self._aggregate(df, column))

        logger.info(
            "Accuracy over %d predictions: MAE=%s RMSE=%s hit_rate=%s",
            summary.count, summary.mae, summary.rmse, summary.hit_rate,
        )
        return summary

    def should_retrain(self, summary: AccuracySummary) -> bool:
        """True when accuracy has degraded past the configured thresholds."""
        if summary.count == 0:
            return False
        if summary.mae is not None and summary.mae > self._cfg.retrain_mae_threshold:
            logger.warning(
                "MAE %.2f above threshold %.2f", summary.mae, self._cfg.retrain_mae_threshold
            )
            return True
        if summary.hit_rate is not None and summary.hit_rate < self._cfg.retrain_min_hit_rate:
            logger.warning(
                "Hit rate %.2f below threshold %.2f",
                summary.hit_rate, self._cfg.retrain_min_hit_rate,
            )
            return True
        return False

    def model_snapshots(self, summary: AccuracySummary) -> dict[str, dict]:
        """Per-model metrics worth persisting, or {} for a thin sample."""
        if summary.count < self._cfg.min_snapshot_records:
            return {}
        return {
            version: metrics
            for version, metrics in summary.by_model.items()
            if metrics["count"] >= self._cfg.min_records_per_model
        }
