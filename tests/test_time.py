from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from creator_analytics.windows.instants import (
    INSTANT,
    TimeWindow,
    epoch_ns,
    instant_ns,
    to_instant,
    to_instants,
)


def test_to_instant_localizes_naive_values_in_timezone() -> None:
    parsed = to_instant("2026-03-05 09:30", "America/Los_Angeles")

    assert str(parsed.tz) == "America/Los_Angeles"
    assert parsed.hour == 9
    assert parsed.tz_convert("UTC").hour == 17


def test_to_instant_converts_aware_values() -> None:
    parsed = to_instant("2026-03-05T12:00:00Z", "America/Los_Angeles")

    assert parsed.hour == 4
    assert parsed == pd.Timestamp("2026-03-05T12:00:00Z")


def test_to_instant_rejects_garbage() -> None:
    with pytest.raises(ValueError, match="invalid datetime"):
        to_instant("not-a-date", "UTC", field_name="start")
    with pytest.raises(ValueError, match="must be an ISO datetime"):
        to_instant(None, "UTC")


def test_to_instants_localizes_column_and_reports_bad_rows() -> None:
    parsed = to_instants(
        pd.Series(["2026-03-01 00:00", "2026-03-02 12:00"]),
        "UTC",
        field_name="created_at",
    )

    assert str(parsed.dt.tz) == "UTC"
    assert parsed.iloc[1] == pd.Timestamp("2026-03-02 12:00", tz="UTC")

    with pytest.raises(ValueError, match="1 missing or unparseable"):
        to_instants(pd.Series(["2026-03-01", "nope"]), "UTC", field_name="created_at")


def test_epoch_ns_matches_timestamp_value() -> None:
    base = pd.Timestamp("2026-03-01 00:00")
    values = to_instants(
        pd.Series([base, base + INSTANT]),
        "America/Los_Angeles",
        field_name="ts",
    )

    converted = epoch_ns(values)

    assert converted.dtype == np.int64
    assert converted[0] == values.iloc[0].value
    assert converted[1] - converted[0] == 1
    assert instant_ns(values.iloc[0]) == converted[0]


def test_instant_ns_rejects_naive_timestamps() -> None:
    with pytest.raises(ValueError, match="timezone-aware"):
        instant_ns(pd.Timestamp("2026-03-01"))


def test_time_window_validates_bounds() -> None:
    window = TimeWindow.from_bounds("2026-03-01", "2026-03-07 23:59:59.999999999", "UTC")

    assert window.duration == pd.Timedelta(days=7) - INSTANT
    assert window.timezone == "UTC"
    assert window.contains(pd.Timestamp("2026-03-04", tz="UTC"))
    assert not window.contains(pd.Timestamp("2026-03-08", tz="UTC"))

    with pytest.raises(ValueError, match="precedes"):
        TimeWindow.from_bounds("2026-03-07", "2026-03-01", "UTC")
    with pytest.raises(ValueError, match="timezone-aware"):
        TimeWindow(start=pd.Timestamp("2026-03-01"), end=pd.Timestamp("2026-03-02"))
