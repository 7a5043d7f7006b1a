from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Literal

import numpy as np
import pandas as pd

from creator_analytics.metrics.aggregator import aggregate_series
from creator_analytics.metrics.dataset import MetricsDataset
from creator_analytics.windows.instants import INSTANT, TimeWindow
from creator_analytics.windows.intervals import DEFAULT_MAX_INTERVALS, generate_intervals

LOGGER = logging.getLogger(__name__)

NEW_SENTINEL = "new"
DEFAULT_FLAT_EPSILON_PERCENT = 0.5

Direction = Literal["up", "down", "flat"]


@dataclass(frozen=True)
class PeriodSummary:
    current_total: float
    previous_total: float | None
    delta: float | None
    percent_change: float | str | None
    direction: Direction | None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def previous_period_window(window: TimeWindow) -> TimeWindow:
    """Equal-length window ending one instant before ``window`` starts."""
    end = window.start - INSTANT
    return TimeWindow(start=end - window.duration, end=end)


def percent_change(current: float, previous: float) -> float | str:
    if previous == 0:
        return 0.0 if current == 0 else NEW_SENTINEL
    return (current - previous) / previous * 100.0


def trend_direction(
    current: float,
    previous: float,
    *,
    flat_epsilon_percent: float = DEFAULT_FLAT_EPSILON_PERCENT,
) -> Direction:
    change = percent_change(current, previous)
    if change == NEW_SENTINEL:
        return "up"
    if abs(float(change)) < flat_epsilon_percent:
        return "flat"
    return "up" if float(change) > 0 else "down"


def summarize_period(
    current_total: float,
    previous_total: float | None,
    *,
    flat_epsilon_percent: float = DEFAULT_FLAT_EPSILON_PERCENT,
) -> PeriodSummary:
    current = float(current_total)
    if previous_total is None:
        return PeriodSummary(
            current_total=current,
            previous_total=None,
            delta=None,
            percent_change=None,
            direction=None,
        )
    previous = float(previous_total)
    return PeriodSummary(
        current_total=current,
        previous_total=previous,
        delta=current - previous,
        percent_change=percent_change(current, previous),
        direction=trend_direction(current, previous, flat_epsilon_percent=flat_epsilon_percent),
    )


def with_previous_period(
    series: pd.DataFrame,
    window: TimeWindow,
    *,
    metric: str,
    granularity: str,
    baseline: MetricsDataset,
    has_comparison: bool = True,
    week_start: str = "sunday",
    max_intervals: int = DEFAULT_MAX_INTERVALS,
) -> pd.DataFrame:
    """Attach ``previous_period_value`` to a current-period series, paired by bucket index.

    Previous-period buckets are aggregated over ``baseline`` so display filters
    applied to the current period do not shrink the comparison.
    """
    working = series.copy()
    if not has_comparison:
        return working.drop(columns=["previous_period_value"], errors="ignore")

    previous_window = previous_period_window(window)
    previous_intervals = generate_intervals(
        previous_window,
        granularity,
        week_start=week_start,
        max_intervals=max_intervals,
    )
    if len(previous_intervals) != len(working):
        LOGGER.warning(
            "Previous period for %s has %d %s buckets against %d current buckets; "
            "pairing by position",
            metric,
            len(previous_intervals),
            granularity,
            len(working),
        )
    surplus = len(previous_intervals) - len(working)
    spans: list[Any] = list(previous_intervals)
    if surplus > 0 and len(working) > 0:
        # Surplus leading buckets fold into the first paired bucket.
        head = TimeWindow(start=spans[0].start, end=spans[surplus].end)
        spans = [head, *spans[surplus + 1 :]]
    previous_values = aggregate_series(metric, baseline, spans)
    paired = [
        previous_values[position] if position < len(previous_values) else np.nan
        for position in range(len(working))
    ]
    working["previous_period_value"] = pd.Series(paired, index=working.index, dtype="float64")
    return working
