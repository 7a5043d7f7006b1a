from __future__ import annotations

from collections.abc import Iterable

import numpy as np
import pandas as pd


def pad_single_point(series: pd.DataFrame) -> pd.DataFrame:
    """Surround a lone point with copies one millisecond either side so it renders as a line."""
    working = series.copy()
    if "is_padding" not in working.columns:
        working["is_padding"] = False
    if len(working) != 1:
        return working

    before = working.copy()
    before["timestamp"] = before["timestamp"] - 1
    before["is_padding"] = True
    after = working.copy()
    after["timestamp"] = after["timestamp"] + 1
    after["is_padding"] = True
    return pd.concat([before, working, after], ignore_index=True)


def domain_ceiling(
    values: Iterable[float],
    *,
    quantile: float = 0.75,
    outlier_multiplier: float = 5.0,
    cap_multiplier: float = 2.0,
    min_ceiling: float = 1.0,
) -> float | None:
    array = np.asarray(list(values), dtype=float)
    array = np.sort(array[np.isfinite(array)])
    if array.size == 0:
        return None
    maximum = float(array[-1])
    q3 = float(array[min(int(np.floor(array.size * quantile)), array.size - 1)])
    ceiling = maximum
    if q3 > 0 and maximum > outlier_multiplier * q3:
        ceiling = cap_multiplier * q3
    if ceiling <= 0:
        return float(min_ceiling)
    return ceiling


def suggest_domain_ceiling(
    series: pd.DataFrame,
    *,
    quantile: float = 0.75,
    outlier_multiplier: float = 5.0,
    cap_multiplier: float = 2.0,
    min_ceiling: float = 1.0,
) -> float | None:
    """Y-axis ceiling that keeps one viral bucket from flattening the rest of the chart.

    Uses current values plus positive previous-period values; padding rows are ignored.
    """
    rows = series
    if "is_padding" in rows.columns:
        rows = rows.loc[~rows["is_padding"].astype(bool)]
    values = rows["value"].tolist()
    if "previous_period_value" in rows.columns:
        previous = rows["previous_period_value"]
        values.extend(previous.loc[previous > 0].tolist())
    return domain_ceiling(
        values,
        quantile=quantile,
        outlier_multiplier=outlier_multiplier,
        cap_multiplier=cap_multiplier,
        min_ceiling=min_ceiling,
    )
