from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class OutputPaths:
    """Where a ``series`` run writes: one table and one JSON summary per metric."""

    root: Path
    tables: Path
    summary: Path

    def series_table(self, metric: str) -> Path:
        return self.tables / f"{metric}_series"

    def metric_summary(self, metric: str) -> Path:
        return self.summary / f"{metric}.json"


def build_output_paths(out_dir: Path) -> OutputPaths:
    root = Path(out_dir)
    paths = OutputPaths(root=root, tables=root / "tables", summary=root / "summary")
    paths.tables.mkdir(parents=True, exist_ok=True)
    paths.summary.mkdir(parents=True, exist_ok=True)
    return paths
