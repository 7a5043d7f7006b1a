from __future__ import annotations

import os
from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from creator_analytics.metrics.registry import METRICS

TIMEZONE_ENV = "CREATOR_ANALYTICS_TIMEZONE"

WeekStart = Literal["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def _validate_timezone(timezone_name: str) -> str:
    try:
        ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"invalid timezone: {timezone_name}") from exc
    return timezone_name


class TimeConfig(BaseModel):
    timezone: str = "America/Los_Angeles"
    week_start: WeekStart = "sunday"

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        return _validate_timezone(value)


class BucketsConfig(BaseModel):
    max_hour_buckets: int = Field(default=168, ge=1)
    max_day_buckets: int = Field(default=90, ge=1)
    max_week_buckets: int = Field(default=52, ge=1)
    max_month_buckets: int = Field(default=60, ge=1)
    max_quarter_buckets: int = Field(default=40, ge=1)
    max_intervals: int = Field(default=5000, ge=1)

    def limits(self) -> dict[str, int]:
        return {
            "hour": self.max_hour_buckets,
            "day": self.max_day_buckets,
            "week": self.max_week_buckets,
            "month": self.max_month_buckets,
            "quarter": self.max_quarter_buckets,
        }


class ComparisonConfig(BaseModel):
    flat_epsilon_percent: float = Field(default=0.5, ge=0.0)


class DomainConfig(BaseModel):
    quantile: float = Field(default=0.75, gt=0.0, lt=1.0)
    outlier_multiplier: float = Field(default=5.0, gt=1.0)
    cap_multiplier: float = Field(default=2.0, gt=0.0)
    min_ceiling: float = Field(default=1.0, ge=0.0)


class DashboardConfig(BaseModel):
    default_preset: str = "last30days"
    metrics: list[str] = Field(
        default_factory=lambda: ["views", "likes", "published_videos", "engagement_rate"]
    )

    @field_validator("metrics")
    @classmethod
    def _known_metrics(cls, value: list[str]) -> list[str]:
        unknown = [metric for metric in value if metric not in METRICS]
        if unknown:
            raise ValueError(f"unknown metrics: {', '.join(unknown)}")
        return value


class OutputsConfig(BaseModel):
    tables_format: Literal["parquet", "csv"] = "parquet"


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    time: TimeConfig = Field(default_factory=TimeConfig)
    buckets: BucketsConfig = Field(default_factory=BucketsConfig)
    comparison: ComparisonConfig = Field(default_factory=ComparisonConfig)
    domain: DomainConfig = Field(default_factory=DomainConfig)
    dashboard: DashboardConfig = Field(default_factory=DashboardConfig)
    outputs: OutputsConfig = Field(default_factory=OutputsConfig)


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def load_config(path: Path) -> AppConfig:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    config = AppConfig.model_validate(data)
    timezone_override = os.getenv(TIMEZONE_ENV)
    if timezone_override:
        config.time.timezone = _validate_timezone(timezone_override.strip())
    return config
