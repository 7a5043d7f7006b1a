from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from creator_analytics.config import AppConfig, load_config

DEFAULT_CONFIG = Path(__file__).resolve().parents[1] / "configs/default.yaml"


def test_default_config_loads() -> None:
    cfg = load_config(DEFAULT_CONFIG)

    assert cfg.time.timezone == "America/Los_Angeles"
    assert cfg.time.week_start == "sunday"
    assert cfg.buckets.limits()["day"] == 90
    assert cfg.buckets.limits()["week"] == 52
    assert cfg.comparison.flat_epsilon_percent == 0.5
    assert "unique_link_clicks" in cfg.dashboard.metrics


def test_empty_config_uses_defaults(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("", encoding="utf-8")

    cfg = load_config(config_path)

    assert cfg == AppConfig()
    assert cfg.outputs.tables_format == "parquet"


def test_load_config_uses_env_timezone(monkeypatch, tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.safe_dump({"time": {"timezone": "UTC"}}), encoding="utf-8")
    monkeypatch.setenv("CREATOR_ANALYTICS_TIMEZONE", "Europe/Berlin")

    cfg = load_config(config_path)

    assert cfg.time.timezone == "Europe/Berlin"


def test_invalid_config_values_are_rejected(tmp_path: Path) -> None:
    bad_zone = tmp_path / "zone.yaml"
    bad_zone.write_text(yaml.safe_dump({"time": {"timezone": "Mars/Olympus"}}), encoding="utf-8")
    unknown_key = tmp_path / "extra.yaml"
    unknown_key.write_text(yaml.safe_dump({"detectors": {}}), encoding="utf-8")
    bad_metric = tmp_path / "metric.yaml"
    bad_metric.write_text(yaml.safe_dump({"dashboard": {"metrics": ["watch_time"]}}), encoding="utf-8")

    with pytest.raises(ValidationError, match="invalid timezone"):
        load_config(bad_zone)
    with pytest.raises(ValidationError):
        load_config(unknown_key)
    with pytest.raises(ValidationError, match="unknown metrics: watch_time"):
        load_config(bad_metric)
