from __future__ import annotations

from pathlib import Path

import pandas as pd

from creator_analytics.io.schema import prepare_clicks, prepare_items, prepare_snapshots


def load_table(path: Path) -> pd.DataFrame:
    if path.suffix == ".parquet":
        return pd.read_parquet(path)
    if path.suffix == ".csv":
        # utf-8-sig strips BOM-prefixed headers from spreadsheet exports.
        return pd.read_csv(path, encoding="utf-8-sig")
    raise ValueError(f"Unsupported table file type: {path.suffix}")


def load_items(path: Path, timezone: str) -> pd.DataFrame:
    """Load content items and return canonical, validated columns."""
    return prepare_items(load_table(path), timezone)


def load_snapshots(path: Path | None, timezone: str) -> pd.DataFrame:
    return prepare_snapshots(None if path is None else load_table(path), timezone)


def load_clicks(path: Path | None, timezone: str) -> pd.DataFrame:
    return prepare_clicks(None if path is None else load_table(path), timezone)
