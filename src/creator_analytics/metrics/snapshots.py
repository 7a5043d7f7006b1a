from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from creator_analytics.io.schema import COUNTER_COLUMNS
from creator_analytics.windows.instants import epoch_ns, instant_ns

LOGGER = logging.getLogger(__name__)


def counter_position(metric: str) -> int:
    if metric not in COUNTER_COLUMNS:
        raise ValueError(
            f"'{metric}' is not a snapshot counter. Expected one of: {', '.join(COUNTER_COLUMNS)}"
        )
    return COUNTER_COLUMNS.index(metric)


class SnapshotIndex:
    """Per-item snapshot history sorted by capture time, answering forward-fill lookups.

    Snapshots are stably sorted by ``captured_at`` so that, among equal capture
    times, the later-ingested row is the one a lookup lands on.
    """

    def __init__(self, snapshots: pd.DataFrame, items: pd.DataFrame) -> None:
        self.item_ids = pd.Index(items["id"].astype(str), name="id")
        n_items = len(self.item_ids)
        live = items.loc[:, list(COUNTER_COLUMNS)].to_numpy(dtype=float)

        codes = self.item_ids.get_indexer(snapshots["item_id"].astype(str))
        unknown = int((codes < 0).sum())
        if unknown:
            LOGGER.warning("Ignoring %d snapshots that reference unknown item ids", unknown)
        known = codes >= 0
        codes = codes[known]
        captured = epoch_ns(snapshots["captured_at"])[known]
        values = snapshots.loc[:, list(COUNTER_COLUMNS)].to_numpy(dtype=float)[known]
        flagged = snapshots["is_initial"].to_numpy(dtype=bool)[known]

        order = np.lexsort((np.arange(codes.size), captured, codes))
        codes = codes[order]
        captured = captured[order]
        values = values[order]
        flagged = flagged[order]

        bounds = np.searchsorted(codes, np.arange(n_items + 1), side="left")
        # One sorted key per snapshot, item code major and capture-time rank minor.
        self._capture_times = np.unique(captured)
        self._stride = np.int64(self._capture_times.size + 1)
        self._keys = codes.astype(np.int64) * self._stride + np.searchsorted(
            self._capture_times, captured
        ).astype(np.int64)
        self._item_offsets = np.arange(n_items, dtype=np.int64) * self._stride
        self._first_rows = bounds[:-1].astype(np.int64)
        self._flat_values = values
        self._times: list[np.ndarray] = []
        self._values: list[np.ndarray] = []
        self.initial_values = live.copy()
        for position in range(n_items):
            lo, hi = int(bounds[position]), int(bounds[position + 1])
            times = captured[lo:hi]
            self._times.append(times)
            self._values.append(values[lo:hi])
            if lo == hi:
                continue
            marked = np.flatnonzero(flagged[lo:hi])
            if marked.size > 1:
                raise ValueError(
                    f"Item '{self.item_ids[position]}' has {marked.size} snapshots "
                    "flagged as initial; expected at most one"
                )
            if marked.size == 1:
                self.initial_values[position] = values[lo + marked[0]]
            else:
                earliest = int(np.searchsorted(times, times[0], side="right")) - 1
                self.initial_values[position] = values[lo + earliest]

    def __len__(self) -> int:
        return len(self.item_ids)

    def _position(self, item_id: str) -> int:
        position = self.item_ids.get_indexer([str(item_id)])[0]
        if position < 0:
            raise ValueError(f"Unknown item id '{item_id}'")
        return int(position)

    def snapshot_count(self, item_id: str) -> int:
        return int(self._times[self._position(item_id)].size)

    def value_at_or_before(
        self,
        item_id: str,
        instant: pd.Timestamp | int,
        metric: str,
    ) -> float | None:
        position = self._position(item_id)
        column = counter_position(metric)
        times = self._times[position]
        row = int(np.searchsorted(times, instant_ns(instant), side="right")) - 1
        if row < 0:
            return None
        return float(self._values[position][row, column])

    def initial_value(self, item_id: str, metric: str) -> float:
        return float(self.initial_values[self._position(item_id), counter_position(metric)])

    def matrix_at(self, instant: pd.Timestamp | int) -> np.ndarray:
        """Forward-filled counters for every item, shape ``(items, counters)``; NaN when absent."""
        rank = np.int64(np.searchsorted(self._capture_times, instant_ns(instant), side="right"))
        rows = np.searchsorted(self._keys, self._item_offsets + rank, side="left") - 1
        found = rows >= self._first_rows
        matrix = np.full((len(self.item_ids), len(COUNTER_COLUMNS)), np.nan)
        matrix[found] = self._flat_values[rows[found]]
        return matrix

    def values_at_or_before(self, instant: pd.Timestamp | int) -> pd.DataFrame:
        return pd.DataFrame(
            self.matrix_at(instant),
            index=self.item_ids,
            columns=list(COUNTER_COLUMNS),
        )
