from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Literal

import pandas as pd

from creator_analytics.windows.instants import INSTANT, TimeWindow, to_instant
from creator_analytics.windows.intervals import derive_granularity

Span = Literal[
    "trailing_days",
    "previous_day",
    "month_to_date",
    "previous_month",
    "year_to_date",
    "custom",
    "all",
]

ALL_TIME_FALLBACK_DAYS = 30


@dataclass(frozen=True)
class PresetSpec:
    span: Span
    days: int | None = None
    granularity: str | None = None
    has_comparison: bool = True
    comparison_label: str | None = None


PRESETS: dict[str, PresetSpec] = {
    "today": PresetSpec("trailing_days", days=1, granularity="hour", comparison_label="vs Yesterday"),
    "yesterday": PresetSpec("previous_day", granularity="hour", comparison_label="vs Day Before"),
    "last7days": PresetSpec("trailing_days", days=7, granularity="day"),
    "last14days": PresetSpec("trailing_days", days=14, granularity="day"),
    "last30days": PresetSpec("trailing_days", days=30, granularity="day"),
    "last90days": PresetSpec("trailing_days", days=90, granularity="day"),
    "mtd": PresetSpec("month_to_date", granularity="day"),
    "lastmonth": PresetSpec("previous_month", granularity="day"),
    "ytd": PresetSpec("year_to_date", granularity="week"),
    "custom": PresetSpec("custom"),
    "all": PresetSpec("all", has_comparison=False),
}


@dataclass(frozen=True)
class ResolvedWindow:
    preset: str
    window: TimeWindow
    granularity: str
    has_comparison: bool
    comparison_label: str


def get_preset(preset: str) -> PresetSpec:
    key = str(preset or "").strip().lower()
    if key not in PRESETS:
        raise ValueError(f"Unknown date preset '{preset}'. Expected one of: {', '.join(PRESETS)}")
    return PRESETS[key]


def _midnight(day: pd.Timestamp, tz: Any) -> pd.Timestamp:
    """Local midnight of a naive calendar day."""
    return day.normalize().tz_localize(tz, nonexistent="shift_forward", ambiguous=False).as_unit(
        "ns"
    )


def _end_of_day(day: pd.Timestamp, tz: Any) -> pd.Timestamp:
    return _midnight(day + pd.Timedelta(days=1), tz) - INSTANT


def comparison_label(preset: str, window: TimeWindow) -> str:
    entry = get_preset(preset)
    if not entry.has_comparison:
        return ""
    if entry.comparison_label:
        return entry.comparison_label
    days = max(1, math.ceil(window.duration / pd.Timedelta(days=1)))
    if days == 1:
        return "vs Previous Day"
    return f"vs Previous {days} Days"


def resolve_preset(
    preset: str,
    now: Any,
    *,
    timezone: str,
    custom_range: tuple[Any, Any] | None = None,
    data_start: Any | None = None,
) -> ResolvedWindow:
    """Turn a named date filter into a concrete window relative to ``now``."""
    entry = get_preset(preset)
    key = str(preset).strip().lower()
    current = to_instant(now, timezone, field_name="now")
    tz = current.tz
    today = current.tz_localize(None).normalize()
    end_of_today = _end_of_day(today, tz)

    if entry.span == "trailing_days":
        days = entry.days or 1
        start = _midnight(today - pd.Timedelta(days=days - 1), tz)
        end = end_of_today
    elif entry.span == "previous_day":
        start = _midnight(today - pd.Timedelta(days=1), tz)
        end = _midnight(today, tz) - INSTANT
    elif entry.span == "month_to_date":
        start = _midnight(today.replace(day=1), tz)
        end = end_of_today
    elif entry.span == "previous_month":
        month_start = today.replace(day=1)
        start = _midnight(month_start - pd.DateOffset(months=1), tz)
        end = _midnight(month_start, tz) - INSTANT
    elif entry.span == "year_to_date":
        start = _midnight(today.replace(month=1, day=1), tz)
        end = end_of_today
    elif entry.span == "custom":
        if custom_range is None:
            raise ValueError("custom date preset requires a start and end")
        range_start = to_instant(custom_range[0], timezone, field_name="start")
        range_end = to_instant(custom_range[1], timezone, field_name="end")
        start = _midnight(range_start.tz_localize(None), tz)
        end = _end_of_day(range_end.tz_localize(None).normalize(), tz)
    else:
        if data_start is None:
            start = _midnight(today - pd.Timedelta(days=ALL_TIME_FALLBACK_DAYS - 1), tz)
        else:
            earliest = to_instant(data_start, timezone, field_name="data_start")
            start = _midnight(earliest.tz_localize(None), tz)
        end = max(end_of_today, start)

    window = TimeWindow(start=start, end=end)
    return ResolvedWindow(
        preset=key,
        window=window,
        granularity=entry.granularity or derive_granularity(window),
        has_comparison=entry.has_comparison,
        comparison_label=comparison_label(key, window),
    )
