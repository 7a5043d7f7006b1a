from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

import pandas as pd

from creator_analytics.windows.instants import to_instants

COUNTER_COLUMNS: tuple[str, ...] = ("views", "likes", "comments", "shares", "saves")

# Camel-case names used by the dashboard's document-store exports.
ITEM_ALIASES = {
    "videoId": "id",
    "creatorHandle": "creator_handle",
    "uploaderHandle": "creator_handle",
    "createdAt": "created_at",
    "uploadDate": "created_at",
}
SNAPSHOT_ALIASES = {
    "itemId": "item_id",
    "videoId": "item_id",
    "capturedAt": "captured_at",
    "timestamp": "captured_at",
    "isInitial": "is_initial",
    "isInitialSnapshot": "is_initial",
}
CLICK_ALIASES = {
    "linkId": "link_id",
    "userAgent": "user_agent",
    "deviceType": "device_type",
}

_TRUTHY = {"true", "1", "yes", "y", "t"}


@dataclass(frozen=True)
class CanonicalColumns:
    id: str = "id"
    creator_handle: str = "creator_handle"
    created_at: str = "created_at"
    platform: str = "platform"
    item_id: str = "item_id"
    captured_at: str = "captured_at"
    is_initial: str = "is_initial"
    timestamp: str = "timestamp"
    link_id: str = "link_id"
    user_agent: str = "user_agent"
    device_type: str = "device_type"
    identity_key: str = "identity_key"


ITEM_COLUMNS = [
    CanonicalColumns.id,
    CanonicalColumns.creator_handle,
    CanonicalColumns.created_at,
    CanonicalColumns.platform,
    *COUNTER_COLUMNS,
]
SNAPSHOT_COLUMNS = [
    CanonicalColumns.item_id,
    CanonicalColumns.captured_at,
    *COUNTER_COLUMNS,
    CanonicalColumns.is_initial,
]
CLICK_COLUMNS = [
    CanonicalColumns.timestamp,
    CanonicalColumns.link_id,
    CanonicalColumns.user_agent,
    CanonicalColumns.device_type,
    CanonicalColumns.identity_key,
]


def normalize_columns(
    df: pd.DataFrame,
    aliases: Mapping[str, str],
    required: list[str],
    *,
    kind: str,
) -> pd.DataFrame:
    """Rename known aliases to canonical names and check required columns."""
    rename_map = {
        source: target
        for source, target in aliases.items()
        if source in df.columns and target not in df.columns
    }
    working = df.rename(columns=rename_map)
    missing = [column for column in required if column not in working.columns]
    if missing:
        raise ValueError(f"Missing required {kind} columns: {', '.join(missing)}")
    return working


def _coerce_counters(df: pd.DataFrame, *, kind: str) -> pd.DataFrame:
    for column in COUNTER_COLUMNS:
        if column not in df.columns:
            df[column] = 0.0
            continue
        values = pd.to_numeric(df[column], errors="coerce")
        unparseable = int((values.isna() & df[column].notna()).sum())
        if unparseable:
            raise ValueError(f"{kind} column '{column}' has {unparseable} non-numeric values")
        values = values.fillna(0.0).astype("float64")
        negative = int((values < 0).sum())
        if negative:
            raise ValueError(f"{kind} column '{column}' has {negative} negative values")
        df[column] = values
    return df


def _coerce_flags(values: pd.Series) -> pd.Series:
    if pd.api.types.is_bool_dtype(values):
        return values.astype(bool)
    text = values.astype(str).str.strip().str.lower()
    return text.isin(_TRUTHY)


def prepare_items(df: pd.DataFrame, timezone: str) -> pd.DataFrame:
    working = normalize_columns(
        df,
        ITEM_ALIASES,
        [CanonicalColumns.id, CanonicalColumns.created_at],
        kind="item",
    ).copy()
    working[CanonicalColumns.id] = working[CanonicalColumns.id].astype(str)
    duplicated = working[CanonicalColumns.id].duplicated()
    if duplicated.any():
        sample = ", ".join(working.loc[duplicated, CanonicalColumns.id].head(5))
        raise ValueError(f"Duplicate item ids: {sample}")

    if CanonicalColumns.creator_handle not in working.columns:
        working[CanonicalColumns.creator_handle] = ""
    working[CanonicalColumns.creator_handle] = (
        working[CanonicalColumns.creator_handle].fillna("").astype(str)
    )
    if CanonicalColumns.platform not in working.columns:
        working[CanonicalColumns.platform] = "unknown"
    working[CanonicalColumns.platform] = (
        working[CanonicalColumns.platform].fillna("unknown").astype(str)
    )
    working[CanonicalColumns.created_at] = to_instants(
        working[CanonicalColumns.created_at],
        timezone,
        field_name=CanonicalColumns.created_at,
    )
    working = _coerce_counters(working, kind="item")
    return working.loc[:, ITEM_COLUMNS].reset_index(drop=True)


def prepare_snapshots(df: pd.DataFrame | None, timezone: str) -> pd.DataFrame:
    if df is None:
        df = pd.DataFrame(columns=SNAPSHOT_COLUMNS)
    working = normalize_columns(
        df,
        SNAPSHOT_ALIASES,
        [CanonicalColumns.item_id, CanonicalColumns.captured_at],
        kind="snapshot",
    ).copy()
    working[CanonicalColumns.item_id] = working[CanonicalColumns.item_id].astype(str)
    working[CanonicalColumns.captured_at] = to_instants(
        working[CanonicalColumns.captured_at],
        timezone,
        field_name=CanonicalColumns.captured_at,
    )
    if CanonicalColumns.is_initial not in working.columns:
        working[CanonicalColumns.is_initial] = False
    working[CanonicalColumns.is_initial] = _coerce_flags(working[CanonicalColumns.is_initial])
    working = _coerce_counters(working, kind="snapshot")
    # Row order is ingestion order; it breaks ties between equal capture times.
    return working.loc[:, SNAPSHOT_COLUMNS].reset_index(drop=True)


def prepare_clicks(df: pd.DataFrame | None, timezone: str) -> pd.DataFrame:
    if df is None:
        df = pd.DataFrame(columns=CLICK_COLUMNS[:-1])
    working = normalize_columns(
        df,
        CLICK_ALIASES,
        [CanonicalColumns.timestamp],
        kind="click",
    ).copy()
    working[CanonicalColumns.timestamp] = to_instants(
        working[CanonicalColumns.timestamp],
        timezone,
        field_name=CanonicalColumns.timestamp,
    )
    defaults = {
        CanonicalColumns.link_id: "",
        CanonicalColumns.user_agent: "Unknown",
        CanonicalColumns.device_type: "desktop",
    }
    for column, default in defaults.items():
        if column not in working.columns:
            working[column] = default
        working[column] = working[column].fillna(default).astype(str)
    working[CanonicalColumns.identity_key] = (
        working[CanonicalColumns.user_agent] + "-" + working[CanonicalColumns.device_type]
    )
    return working.loc[:, CLICK_COLUMNS].reset_index(drop=True)
