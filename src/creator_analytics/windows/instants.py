from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

import numpy as np
import pandas as pd

# Smallest representable step between two instants (pandas' native resolution).
INSTANT = pd.Timedelta(1, unit="ns")


def to_instant(value: Any, timezone: str, *, field_name: str = "instant") -> pd.Timestamp:
    """Coerce a scalar to a timezone-aware nanosecond Timestamp in ``timezone``.

    Naive values are interpreted as wall-clock time in ``timezone``.
    """
    if isinstance(value, pd.Timestamp):
        parsed = value
    elif isinstance(value, (datetime, np.datetime64)):
        parsed = pd.Timestamp(value)
    elif isinstance(value, str) and value.strip():
        try:
            parsed = pd.Timestamp(value.strip())
        except (TypeError, ValueError) as exc:
            raise ValueError(f"invalid datetime for field '{field_name}': {value!r}") from exc
    else:
        raise ValueError(f"field '{field_name}' must be an ISO datetime string or datetime")

    if pd.isna(parsed):
        raise ValueError(f"field '{field_name}' is missing a datetime value")
    if parsed.tzinfo is None:
        parsed = parsed.tz_localize(timezone, nonexistent="shift_forward", ambiguous=False)
    else:
        parsed = parsed.tz_convert(timezone)
    return parsed.as_unit("ns")


def to_instants(values: pd.Series, timezone: str, *, field_name: str) -> pd.Series:
    """Vectorized ``to_instant`` for a column; unparseable values raise ``ValueError``."""
    if pd.api.types.is_datetime64_any_dtype(values):
        parsed = values
    else:
        try:
            parsed = pd.to_datetime(values, errors="coerce", format="mixed")
        except ValueError:
            # Mixed UTC offsets cannot share one dtype without normalizing.
            parsed = pd.to_datetime(values, errors="coerce", format="mixed", utc=True)
        if not pd.api.types.is_datetime64_any_dtype(parsed):
            parsed = pd.to_datetime(values, errors="coerce", format="mixed", utc=True)

    invalid = int(parsed.isna().sum())
    if invalid:
        raise ValueError(f"Column '{field_name}' has {invalid} missing or unparseable timestamps")

    if parsed.dt.tz is None:
        parsed = parsed.dt.tz_localize(
            timezone,
            nonexistent="shift_forward",
            ambiguous=np.zeros(len(parsed), dtype=bool),
        )
    else:
        parsed = parsed.dt.tz_convert(timezone)
    return parsed.dt.as_unit("ns")


def epoch_ns(values: pd.Series) -> np.ndarray:
    """Epoch nanoseconds of a timezone-aware datetime column."""
    utc = values.dt.tz_convert("UTC").dt.tz_localize(None)
    return utc.to_numpy(dtype="datetime64[ns]").astype(np.int64)


def instant_ns(value: pd.Timestamp | int) -> int:
    if isinstance(value, (int, np.integer)):
        return int(value)
    if not isinstance(value, pd.Timestamp):
        value = pd.Timestamp(value)
    if value.tzinfo is None:
        raise ValueError(f"instant must be timezone-aware: {value}")
    return int(value.value)


@dataclass(frozen=True)
class TimeWindow:
    """Closed range of instants ``[start, end]``."""

    start: pd.Timestamp
    end: pd.Timestamp

    def __post_init__(self) -> None:
        start = pd.Timestamp(self.start)
        end = pd.Timestamp(self.end)
        if start.tzinfo is None or end.tzinfo is None:
            raise ValueError("window bounds must be timezone-aware")
        end = end.tz_convert(start.tz)
        if end < start:
            raise ValueError(f"window end {end} precedes window start {start}")
        object.__setattr__(self, "start", start.as_unit("ns"))
        object.__setattr__(self, "end", end.as_unit("ns"))

    @classmethod
    def from_bounds(cls, start: Any, end: Any, timezone: str) -> TimeWindow:
        return cls(
            start=to_instant(start, timezone, field_name="start"),
            end=to_instant(end, timezone, field_name="end"),
        )

    @property
    def duration(self) -> pd.Timedelta:
        return self.end - self.start

    @property
    def timezone(self) -> str:
        return str(self.start.tz)

    def contains(self, instant: pd.Timestamp) -> bool:
        return self.start <= instant <= self.end
