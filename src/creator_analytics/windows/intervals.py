from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

import numpy as np
import pandas as pd

from creator_analytics.windows.instants import INSTANT, TimeWindow

LOGGER = logging.getLogger(__name__)

GRANULARITIES: tuple[str, ...] = ("hour", "day", "week", "month", "quarter", "year")
WEEKDAYS = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}
DEFAULT_BUCKET_LIMITS: dict[str, int] = {
    "hour": 168,
    "day": 90,
    "week": 52,
    "month": 60,
    "quarter": 40,
}
DEFAULT_MAX_INTERVALS = 5000

_CALENDAR_STEPS = {
    "day": pd.DateOffset(days=1),
    "week": pd.DateOffset(weeks=1),
    "month": pd.DateOffset(months=1),
    "quarter": pd.DateOffset(months=3),
    "year": pd.DateOffset(years=1),
}
_HOUR = pd.Timedelta(hours=1)


@dataclass(frozen=True)
class Interval:
    start: pd.Timestamp
    end: pd.Timestamp
    label: str
    granularity: str

    @property
    def timestamp(self) -> int:
        """Epoch milliseconds of the bucket start."""
        return int(self.start.value // 1_000_000)

    def contains(self, instant: pd.Timestamp) -> bool:
        return self.start <= instant <= self.end

    def as_window(self) -> TimeWindow:
        return TimeWindow(start=self.start, end=self.end)


def require_granularity(granularity: str) -> str:
    normalized = str(granularity or "").strip().lower()
    if normalized not in GRANULARITIES:
        expected = ", ".join(GRANULARITIES)
        raise ValueError(f"Unknown granularity '{granularity}'. Expected one of: {expected}")
    return normalized


def _week_start_index(week_start: str) -> int:
    key = str(week_start or "").strip().lower()
    if key not in WEEKDAYS:
        raise ValueError(f"Unknown week start '{week_start}'")
    return WEEKDAYS[key]


def _hour_floor(instant: pd.Timestamp) -> pd.Timestamp:
    return instant - pd.Timedelta(
        minutes=instant.minute,
        seconds=instant.second,
        microseconds=instant.microsecond,
        nanoseconds=instant.nanosecond,
    )


def _calendar_anchor(naive: pd.Timestamp, granularity: str, week_start: str) -> pd.Timestamp:
    """Wall-clock start of the calendar unit containing ``naive``."""
    day = naive.normalize()
    if granularity == "day":
        return day
    if granularity == "week":
        offset = (day.weekday() - _week_start_index(week_start)) % 7
        return day - pd.Timedelta(days=offset)
    if granularity == "month":
        return pd.Timestamp(year=day.year, month=day.month, day=1)
    if granularity == "quarter":
        return pd.Timestamp(year=day.year, month=((day.month - 1) // 3) * 3 + 1, day=1)
    return pd.Timestamp(year=day.year, month=1, day=1)


def count_intervals(window: TimeWindow, granularity: str, *, week_start: str = "sunday") -> int:
    """Number of buckets ``generate_intervals`` yields, computed without materializing them."""
    granularity = require_granularity(granularity)
    if granularity == "hour":
        return int((window.end - _hour_floor(window.start)) // _HOUR) + 1

    start = window.start.tz_localize(None)
    end = window.end.tz_localize(None)
    if granularity == "day":
        return int((end.normalize() - start.normalize()).days) + 1
    if granularity == "week":
        anchor = _calendar_anchor(start, "week", week_start)
        return int((end.normalize() - anchor).days) // 7 + 1
    if granularity == "month":
        return (end.year - start.year) * 12 + (end.month - start.month) + 1
    if granularity == "quarter":
        return (end.year - start.year) * 4 + ((end.month - 1) // 3 - (start.month - 1) // 3) + 1
    return end.year - start.year + 1


def _boundaries(window: TimeWindow, granularity: str, week_start: str) -> list[pd.Timestamp]:
    """Unit starts covering the window, followed by the first unit start past it."""
    if granularity == "hour":
        anchor = _hour_floor(window.start)
        steps = int((window.end - anchor) // _HOUR) + 2
        return [anchor + step * _HOUR for step in range(steps)]

    step = _CALENDAR_STEPS[granularity]
    naive_end = window.end.tz_localize(None)
    cursor = _calendar_anchor(window.start.tz_localize(None), granularity, week_start)
    naive = [cursor]
    while cursor <= naive_end:
        cursor = cursor + step
        naive.append(cursor)
    # Local midnights that fall in a DST gap move to the first valid wall time.
    localized = pd.DatetimeIndex(naive).tz_localize(
        window.start.tz,
        nonexistent="shift_forward",
        ambiguous=np.zeros(len(naive), dtype=bool),
    )
    return list(localized.as_unit("ns"))


def format_interval_label(start: pd.Timestamp, end: pd.Timestamp, granularity: str) -> str:
    if granularity == "hour":
        return f"{start:%b} {start.day} {start:%H}:00"
    if granularity == "day":
        return f"{start:%b} {start.day}"
    if granularity == "week":
        return f"{start:%b} {start.day}-{end:%b} {end.day}"
    if granularity == "month":
        return f"{start:%B} {start.year}"
    if granularity == "quarter":
        return f"Q{(start.month - 1) // 3 + 1} {start.year}"
    return str(start.year)


def generate_intervals(
    window: TimeWindow,
    granularity: str,
    *,
    week_start: str = "sunday",
    max_intervals: int = DEFAULT_MAX_INTERVALS,
) -> list[Interval]:
    granularity = require_granularity(granularity)
    expected = count_intervals(window, granularity, week_start=week_start)
    if expected > max_intervals:
        raise ValueError(
            f"Window {window.start.isoformat()} to {window.end.isoformat()} would produce "
            f"{expected} {granularity} buckets (limit {max_intervals}); "
            "choose a coarser granularity"
        )

    boundaries = _boundaries(window, granularity, week_start)
    intervals: list[Interval] = []
    for left, right in zip(boundaries[:-1], boundaries[1:]):
        start = max(left, window.start)
        end = min(right - INSTANT, window.end)
        if start > end:
            continue
        intervals.append(
            Interval(
                start=start,
                end=end,
                label=format_interval_label(start, end, granularity),
                granularity=granularity,
            )
        )
    if not intervals:
        intervals.append(
            Interval(
                start=window.start,
                end=window.end,
                label=format_interval_label(window.start, window.end, granularity),
                granularity=granularity,
            )
        )
    return intervals


def resolve_granularity(
    window: TimeWindow,
    requested: str,
    *,
    limits: Mapping[str, int] | None = None,
    week_start: str = "sunday",
) -> str:
    """Coarsen ``requested`` until the window fits its display bucket limit."""
    granularity = require_granularity(requested)
    bucket_limits = dict(DEFAULT_BUCKET_LIMITS if limits is None else limits)
    while granularity != "year":
        limit = bucket_limits.get(granularity)
        count = count_intervals(window, granularity, week_start=week_start)
        if limit is None or count <= limit:
            break
        coarser = GRANULARITIES[GRANULARITIES.index(granularity) + 1]
        LOGGER.info(
            "Window spans %d %s buckets (limit %d); falling back to %s",
            count,
            granularity,
            limit,
            coarser,
        )
        granularity = coarser
    return granularity


def derive_granularity(window: TimeWindow) -> str:
    """Default granularity for a window based on its length."""
    duration = window.duration
    if duration <= pd.Timedelta(hours=48):
        return "hour"
    if duration <= pd.Timedelta(days=90):
        return "day"
    if duration <= pd.Timedelta(days=366):
        return "week"
    return "month"
