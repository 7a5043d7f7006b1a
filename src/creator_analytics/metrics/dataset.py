from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np
import pandas as pd

from creator_analytics.io.schema import prepare_clicks, prepare_items, prepare_snapshots
from creator_analytics.metrics.snapshots import SnapshotIndex
from creator_analytics.windows.instants import epoch_ns


@dataclass(frozen=True, eq=False)
class MetricsDataset:
    """Validated items, snapshots and clicks, indexed once per rendering pass."""

    items: pd.DataFrame
    snapshots: pd.DataFrame
    clicks: pd.DataFrame
    index: SnapshotIndex
    created_ns: np.ndarray
    click_ns: np.ndarray
    timezone: str

    @classmethod
    def from_frames(
        cls,
        items: pd.DataFrame,
        snapshots: pd.DataFrame | None = None,
        clicks: pd.DataFrame | None = None,
        *,
        timezone: str = "UTC",
    ) -> MetricsDataset:
        return cls.from_prepared(
            prepare_items(items, timezone),
            prepare_snapshots(snapshots, timezone),
            prepare_clicks(clicks, timezone),
            timezone=timezone,
        )

    @classmethod
    def from_prepared(
        cls,
        items: pd.DataFrame,
        snapshots: pd.DataFrame,
        clicks: pd.DataFrame,
        *,
        timezone: str,
    ) -> MetricsDataset:
        return cls(
            items=items,
            snapshots=snapshots,
            clicks=clicks,
            index=SnapshotIndex(snapshots, items),
            created_ns=epoch_ns(items["created_at"]),
            click_ns=epoch_ns(clicks["timestamp"]),
            timezone=timezone,
        )

    def filter_items(self, mask: pd.Series | np.ndarray | list[bool]) -> MetricsDataset:
        """Restrict items (and their snapshots) while keeping the full click stream."""
        keep = np.asarray(mask, dtype=bool)
        if keep.shape != (len(self.items),):
            raise ValueError(f"item mask has {keep.size} entries for {len(self.items)} items")
        items = self.items.loc[keep].reset_index(drop=True)
        snapshots = self.snapshots.loc[self.snapshots["item_id"].isin(items["id"])].reset_index(
            drop=True
        )
        return MetricsDataset.from_prepared(items, snapshots, self.clicks, timezone=self.timezone)

    def filter_by(
        self,
        *,
        creator_handles: Iterable[str] | None = None,
        platforms: Iterable[str] | None = None,
    ) -> MetricsDataset:
        keep = pd.Series(True, index=self.items.index)
        if creator_handles:
            keep &= self.items["creator_handle"].isin(set(creator_handles))
        if platforms:
            keep &= self.items["platform"].isin(set(platforms))
        return self.filter_items(keep)

    def earliest_activity(self) -> pd.Timestamp | None:
        """Earliest item creation or snapshot capture, used by the all-time preset."""
        candidates = [
            column.min()
            for column in (self.items["created_at"], self.snapshots["captured_at"])
            if not column.empty
        ]
        if not candidates:
            return None
        return min(candidates)
