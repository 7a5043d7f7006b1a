from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pandas as pd

from creator_analytics.paths import OutputPaths

if TYPE_CHECKING:
    from creator_analytics.pipeline.dashboard import MetricSeriesResult

LOGGER = logging.getLogger(__name__)

TABLE_FORMATS = ("parquet", "csv")


def write_table(df: pd.DataFrame, path: Path, fmt: str = "parquet") -> Path:
    """Write ``df`` next to ``path`` with the suffix of ``fmt``."""
    if fmt not in TABLE_FORMATS:
        raise ValueError(f"Unsupported table format: {fmt}")
    target = path.with_suffix(f".{fmt}")
    target.parent.mkdir(parents=True, exist_ok=True)
    if fmt == "parquet":
        df.to_parquet(target, index=False)
    else:
        df.to_csv(target, index=False)
    return target


def write_summary(data: dict[str, Any], path: Path) -> Path:
    # Summaries are plain JSON; NaN or inf must already be mapped to null.
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, sort_keys=True, allow_nan=False), encoding="utf-8")
    return path


def write_metric_outputs(
    result: MetricSeriesResult,
    paths: OutputPaths,
    *,
    fmt: str = "parquet",
    comparison_label: str = "",
) -> tuple[Path, Path]:
    table = write_table(result.series, paths.series_table(result.metric), fmt=fmt)
    payload = result.to_dict()
    payload["comparison_label"] = comparison_label
    summary = write_summary(payload, paths.metric_summary(result.metric))
    LOGGER.debug("Wrote %s series to %s and %s", result.metric, table, summary)
    return table, summary
