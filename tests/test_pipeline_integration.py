from __future__ import annotations

import json
from pathlib import Path

import pandas as pd

from creator_analytics.config import AppConfig, BucketsConfig
from creator_analytics.metrics.dataset import MetricsDataset
from creator_analytics.pipeline.dashboard import (
    build_dashboard,
    build_metric_series,
    load_dataset,
)
from creator_analytics.windows.instants import TimeWindow

WEEK = TimeWindow.from_bounds("2026-03-01", "2026-03-07 23:59:59.999999999", "UTC")


def _dataset() -> MetricsDataset:
    items = pd.DataFrame(
        [
            {"id": "v1", "creator_handle": "@ana", "created_at": "2026-03-03 10:00"},
            {"id": "v2", "creator_handle": "@ben", "created_at": "2026-02-24 10:00"},
        ]
    )
    snapshots = pd.DataFrame(
        [
            {"item_id": "v1", "captured_at": "2026-03-03 10:00", "views": 100, "is_initial": True},
            {"item_id": "v1", "captured_at": "2026-03-07 12:00", "views": 150, "is_initial": False},
            {"item_id": "v2", "captured_at": "2026-02-24 10:00", "views": 10, "is_initial": True},
            {"item_id": "v2", "captured_at": "2026-02-26 10:00", "views": 30, "is_initial": False},
        ]
    )
    return MetricsDataset.from_frames(items, snapshots, timezone="UTC")


def test_metric_series_end_to_end() -> None:
    dataset = _dataset().filter_by(creator_handles=["@ana"])

    result = build_metric_series(dataset, "views", WEEK, "day", baseline=_dataset())

    assert result.granularity == "day"
    assert result.series["value"].tolist() == [0.0, 0.0, 100.0, 0.0, 0.0, 0.0, 50.0]
    assert result.series["label"].tolist()[2] == "Mar 3"
    # Previous period (Feb 22 - Feb 28) comes from the unfiltered baseline.
    assert result.series["previous_period_value"].tolist() == [0.0, 0.0, 10.0, 0.0, 20.0, 0.0, 0.0]
    assert result.summary.current_total == 150.0
    assert result.summary.previous_total == 30.0
    assert result.summary.percent_change == 400.0
    assert result.summary.direction == "up"
    assert result.ceiling == 100.0


def test_result_serializes_to_plain_json() -> None:
    result = build_metric_series(_dataset(), "views", WEEK, "day")

    payload = json.loads(json.dumps(result.to_dict(), allow_nan=False))

    assert payload["metric"] == "views"
    assert payload["window"]["start"].startswith("2026-03-01T00:00:00")
    assert payload["series"][2]["value"] == 100.0
    assert payload["series"][0]["interval_start"].startswith("2026-03-01")
    assert payload["summary"]["direction"] == "up"


def test_single_bucket_series_is_padded() -> None:
    day = TimeWindow.from_bounds("2026-03-03", "2026-03-03 23:59:59.999999999", "UTC")

    result = build_metric_series(_dataset(), "published_videos", day, "day")

    assert len(result.series) == 3
    assert result.series["value"].tolist() == [1.0, 1.0, 1.0]
    assert result.series["is_padding"].tolist() == [True, False, True]
    assert result.summary.current_total == 1.0


def test_granularity_degrades_for_long_windows() -> None:
    window = TimeWindow.from_bounds("2026-01-01", "2026-04-30 23:59:59.999999999", "UTC")

    result = build_metric_series(_dataset(), "views", window, "day")
    capped = build_metric_series(
        _dataset(),
        "views",
        window,
        "day",
        config=AppConfig(buckets=BucketsConfig(max_day_buckets=30, max_week_buckets=4)),
    )

    assert result.granularity == "week"
    assert capped.granularity == "month"
    assert result.series["value"].sum() == result.summary.current_total


def test_all_time_series_has_no_comparison() -> None:
    result = build_metric_series(_dataset(), "views", WEEK, "day", has_comparison=False)

    assert "previous_period_value" not in result.series.columns
    assert result.summary.previous_total is None
    assert result.summary.percent_change is None


def test_dashboard_builds_every_requested_metric() -> None:
    results = build_dashboard(
        _dataset(),
        ["views", "published_videos", "engagement_rate", "link_clicks"],
        WEEK,
        "day",
    )

    assert list(results) == ["views", "published_videos", "engagement_rate", "link_clicks"]
    assert results["published_videos"].summary.current_total == 1.0
    assert results["link_clicks"].summary.percent_change == 0.0
    assert results["link_clicks"].ceiling == 1.0


def test_load_dataset_from_files(tmp_path: Path) -> None:
    items = tmp_path / "items.csv"
    items.write_text("id,creator_handle,created_at\nv1,@ana,2026-03-03 10:00\n", encoding="utf-8")
    snapshots = tmp_path / "snapshots.csv"
    snapshots.write_text(
        "item_id,captured_at,views,is_initial\nv1,2026-03-03 10:00,100,true\n",
        encoding="utf-8",
    )

    dataset = load_dataset(items, snapshots, None, "UTC")

    assert len(dataset.items) == 1
    assert dataset.index.initial_value("v1", "views") == 100.0
    assert dataset.clicks.empty
