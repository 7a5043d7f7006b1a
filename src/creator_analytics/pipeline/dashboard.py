from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from creator_analytics.config import AppConfig
from creator_analytics.io.read import load_clicks, load_items, load_snapshots
from creator_analytics.metrics.aggregator import aggregate, aggregate_series
from creator_analytics.metrics.comparison import (
    PeriodSummary,
    previous_period_window,
    summarize_period,
    with_previous_period,
)
from creator_analytics.metrics.dataset import MetricsDataset
from creator_analytics.metrics.postprocess import pad_single_point, suggest_domain_ceiling
from creator_analytics.metrics.registry import get_metric
from creator_analytics.windows.instants import TimeWindow
from creator_analytics.windows.intervals import Interval, generate_intervals, resolve_granularity

LOGGER = logging.getLogger(__name__)

SERIES_COLUMNS = ["interval_start", "interval_end", "label", "timestamp", "value"]


@dataclass(frozen=True, eq=False)
class MetricSeriesResult:
    metric: str
    granularity: str
    window: TimeWindow
    series: pd.DataFrame
    summary: PeriodSummary
    ceiling: float | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "metric": self.metric,
            "granularity": self.granularity,
            "window": {
                "start": self.window.start.isoformat(),
                "end": self.window.end.isoformat(),
            },
            "summary": {key: _plain(value) for key, value in self.summary.to_dict().items()},
            "ceiling": _plain(self.ceiling),
            "series": series_records(self.series),
        }


def _plain(value: Any) -> Any:
    if isinstance(value, pd.Timestamp):
        return value.isoformat()
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def series_records(series: pd.DataFrame) -> list[dict[str, Any]]:
    """JSON-serializable rows of a metric series."""
    return [
        {key: _plain(value) for key, value in row.items()}
        for row in series.to_dict(orient="records")
    ]


def build_series_frame(intervals: Sequence[Interval], values: Sequence[float]) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "interval_start": [interval.start for interval in intervals],
            "interval_end": [interval.end for interval in intervals],
            "label": [interval.label for interval in intervals],
            "timestamp": pd.Series(
                [interval.timestamp for interval in intervals], dtype="int64"
            ),
            "value": pd.Series(list(values), dtype="float64"),
        },
        columns=SERIES_COLUMNS,
    )


def load_dataset(
    items_path: Path,
    snapshots_path: Path | None,
    clicks_path: Path | None,
    timezone: str,
) -> MetricsDataset:
    items = load_items(items_path, timezone)
    snapshots = load_snapshots(snapshots_path, timezone)
    clicks = load_clicks(clicks_path, timezone)
    LOGGER.info(
        "Loaded %d items, %d snapshots, %d clicks",
        len(items),
        len(snapshots),
        len(clicks),
    )
    return MetricsDataset.from_prepared(items, snapshots, clicks, timezone=timezone)


def build_metric_series(
    dataset: MetricsDataset,
    metric: str,
    window: TimeWindow,
    granularity: str,
    *,
    baseline: MetricsDataset | None = None,
    has_comparison: bool = True,
    config: AppConfig | None = None,
) -> MetricSeriesResult:
    """Current-period series, previous-period pairing, summary and display ceiling for one metric.

    ``dataset`` may be display-filtered; ``baseline`` (defaults to ``dataset``)
    feeds the previous period.
    """
    cfg = config or AppConfig()
    get_metric(metric)
    baseline = baseline if baseline is not None else dataset
    week_start = cfg.time.week_start

    resolved = resolve_granularity(
        window,
        granularity,
        limits=cfg.buckets.limits(),
        week_start=week_start,
    )
    intervals = generate_intervals(
        window,
        resolved,
        week_start=week_start,
        max_intervals=cfg.buckets.max_intervals,
    )
    series = build_series_frame(intervals, aggregate_series(metric, dataset, intervals))
    series = with_previous_period(
        series,
        window,
        metric=metric,
        granularity=resolved,
        baseline=baseline,
        has_comparison=has_comparison,
        week_start=week_start,
        max_intervals=cfg.buckets.max_intervals,
    )

    current_total = aggregate(metric, dataset, window)
    previous_total = (
        aggregate(metric, baseline, previous_period_window(window)) if has_comparison else None
    )
    summary = summarize_period(
        current_total,
        previous_total,
        flat_epsilon_percent=cfg.comparison.flat_epsilon_percent,
    )
    ceiling = suggest_domain_ceiling(
        series,
        quantile=cfg.domain.quantile,
        outlier_multiplier=cfg.domain.outlier_multiplier,
        cap_multiplier=cfg.domain.cap_multiplier,
        min_ceiling=cfg.domain.min_ceiling,
    )
    return MetricSeriesResult(
        metric=metric,
        granularity=resolved,
        window=window,
        series=pad_single_point(series),
        summary=summary,
        ceiling=ceiling,
    )


def build_dashboard(
    dataset: MetricsDataset,
    metrics: Sequence[str],
    window: TimeWindow,
    granularity: str,
    *,
    baseline: MetricsDataset | None = None,
    has_comparison: bool = True,
    config: AppConfig | None = None,
) -> dict[str, MetricSeriesResult]:
    results: dict[str, MetricSeriesResult] = {}
    for metric in metrics:
        results[metric] = build_metric_series(
            dataset,
            metric,
            window,
            granularity,
            baseline=baseline,
            has_comparison=has_comparison,
            config=config,
        )
    LOGGER.info("Built %d metric series for %s buckets", len(results), granularity)
    return results
