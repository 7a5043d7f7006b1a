from __future__ import annotations

import pandas as pd
import pytest

from creator_analytics.windows.instants import INSTANT, TimeWindow
from creator_analytics.windows.intervals import (
    count_intervals,
    derive_granularity,
    generate_intervals,
    resolve_granularity,
)


def _window(start: str, end: str, timezone: str = "UTC") -> TimeWindow:
    return TimeWindow.from_bounds(start, end, timezone)


def _assert_tiles_window(intervals, window: TimeWindow) -> None:
    assert intervals[0].start == window.start
    assert intervals[-1].end == window.end
    for left, right in zip(intervals[:-1], intervals[1:]):
        assert left.end + INSTANT == right.start
    for interval in intervals:
        assert interval.start <= interval.end


def test_day_intervals_cover_window_contiguously() -> None:
    window = _window("2026-03-01", "2026-03-07 23:59:59.999999999")

    intervals = generate_intervals(window, "day")

    assert len(intervals) == 7
    _assert_tiles_window(intervals, window)
    assert [interval.label for interval in intervals[:2]] == ["Mar 1", "Mar 2"]
    assert intervals[0].timestamp == pd.Timestamp("2026-03-01", tz="UTC").value // 1_000_000


def test_partial_first_and_last_buckets_are_clipped() -> None:
    window = _window("2026-03-01 12:00", "2026-03-03 06:00")

    intervals = generate_intervals(window, "day")

    assert len(intervals) == 3
    _assert_tiles_window(intervals, window)
    assert intervals[0].start.hour == 12
    assert intervals[1].start == pd.Timestamp("2026-03-02", tz="UTC")
    assert intervals[-1].end.hour == 6


def test_window_inside_one_unit_yields_single_interval() -> None:
    window = _window("2026-03-01 14:05", "2026-03-01 14:50")

    assert len(generate_intervals(window, "hour")) == 1
    assert len(generate_intervals(window, "year")) == 1

    instant = _window("2026-03-01 14:05", "2026-03-01 14:05")
    single = generate_intervals(instant, "day")
    assert len(single) == 1
    assert single[0].start == single[0].end


def test_hour_intervals_follow_local_hours() -> None:
    window = _window("2026-03-01 10:30", "2026-03-01 13:15")

    intervals = generate_intervals(window, "hour")

    assert [interval.label for interval in intervals] == [
        "Mar 1 10:00",
        "Mar 1 11:00",
        "Mar 1 12:00",
        "Mar 1 13:00",
    ]
    _assert_tiles_window(intervals, window)


def test_week_intervals_anchor_on_configured_weekday() -> None:
    # 2026-03-04 is a Wednesday; 2026-03-08 is a Sunday.
    window = _window("2026-03-04", "2026-03-20 23:59:59.999999999")

    sunday = generate_intervals(window, "week")
    monday = generate_intervals(window, "week", week_start="monday")

    assert len(sunday) == 3
    assert sunday[1].start == pd.Timestamp("2026-03-08", tz="UTC")
    assert sunday[1].label == "Mar 8-Mar 14"
    assert len(monday) == 3
    assert monday[1].start == pd.Timestamp("2026-03-09", tz="UTC")
    _assert_tiles_window(sunday, window)
    _assert_tiles_window(monday, window)


def test_month_quarter_and_year_labels() -> None:
    march = _window("2026-03-01", "2026-03-31 23:59:59.999999999")
    assert [interval.label for interval in generate_intervals(march, "month")] == ["March 2026"]

    window = _window("2026-02-10", "2026-08-05")
    quarters = generate_intervals(window, "quarter")
    assert [interval.label for interval in quarters] == ["Q1 2026", "Q2 2026", "Q3 2026"]
    _assert_tiles_window(quarters, window)

    years = generate_intervals(_window("2024-06-01", "2026-02-01"), "year")
    assert [interval.label for interval in years] == ["2024", "2025", "2026"]


def test_dst_day_is_a_single_short_bucket() -> None:
    # US daylight saving time starts on 2026-03-08.
    window = _window("2026-03-07", "2026-03-09 23:59:59.999999999", "America/Los_Angeles")

    intervals = generate_intervals(window, "day")

    assert len(intervals) == 3
    _assert_tiles_window(intervals, window)
    assert intervals[1].end - intervals[1].start + INSTANT == pd.Timedelta(hours=23)
    assert intervals[2].start.hour == 0


def test_invalid_requests_fail_fast() -> None:
    window = _window("2026-03-01", "2026-03-02")

    with pytest.raises(ValueError, match="Unknown granularity"):
        generate_intervals(window, "fortnight")
    with pytest.raises(ValueError, match="Unknown week start"):
        generate_intervals(window, "week", week_start="someday")
    with pytest.raises(ValueError, match="limit 10"):
        generate_intervals(_window("2026-01-01", "2026-03-01"), "day", max_intervals=10)


def test_count_intervals_matches_generated_length() -> None:
    window = _window("2025-11-17 08:00", "2026-03-02 17:00", "America/Los_Angeles")

    for granularity in ("day", "week", "month", "quarter", "year"):
        assert count_intervals(window, granularity) == len(generate_intervals(window, granularity))
    short = _window("2026-03-01 08:15", "2026-03-03 17:00")
    assert count_intervals(short, "hour") == len(generate_intervals(short, "hour"))


def test_resolve_granularity_degrades_past_bucket_limits() -> None:
    month = _window("2026-01-01", "2026-01-30")
    four_months = _window("2026-01-01", "2026-04-30")
    thirteen_months = _window("2025-01-01", "2026-01-31")

    assert resolve_granularity(month, "day") == "day"
    assert resolve_granularity(four_months, "day") == "week"
    assert resolve_granularity(thirteen_months, "day") == "month"
    assert resolve_granularity(four_months, "day", limits={"day": 200}) == "day"
    assert resolve_granularity(_window("1900-01-01", "2026-01-01"), "quarter") == "year"


def test_derive_granularity_by_window_length() -> None:
    assert derive_granularity(_window("2026-03-01", "2026-03-01 23:00")) == "hour"
    assert derive_granularity(_window("2026-03-01", "2026-03-30")) == "day"
    assert derive_granularity(_window("2025-09-01", "2026-03-01")) == "week"
    assert derive_granularity(_window("2024-01-01", "2026-03-01")) == "month"
