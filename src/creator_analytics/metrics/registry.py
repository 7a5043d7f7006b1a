from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from creator_analytics.io.schema import COUNTER_COLUMNS


class MetricKind(str, Enum):
    DELTA = "delta"
    ENTITY_COUNT = "entity_count"
    DISTINCT_COUNT = "distinct_count"
    RATIO = "ratio"
    RAW_EVENT = "raw_event"
    DISTINCT_EVENT = "distinct_event"


# Kinds whose per-bucket values sum to the whole-window value.
ADDITIVE_KINDS = frozenset({MetricKind.DELTA, MetricKind.ENTITY_COUNT, MetricKind.RAW_EVENT})


@dataclass(frozen=True)
class MetricDefinition:
    id: str
    label: str
    kind: MetricKind
    counter: str | None = None
    numerators: tuple[str, ...] = ()
    denominator: str | None = None
    key: str | None = None

    @property
    def additive(self) -> bool:
        return self.kind in ADDITIVE_KINDS


def _delta(counter: str) -> MetricDefinition:
    return MetricDefinition(id=counter, label=counter.title(), kind=MetricKind.DELTA, counter=counter)


METRICS: dict[str, MetricDefinition] = {
    **{counter: _delta(counter) for counter in COUNTER_COLUMNS},
    "published_videos": MetricDefinition(
        id="published_videos",
        label="Published Videos",
        kind=MetricKind.ENTITY_COUNT,
    ),
    "active_accounts": MetricDefinition(
        id="active_accounts",
        label="Active Accounts",
        kind=MetricKind.DISTINCT_COUNT,
        key="creator_handle",
    ),
    "engagement_rate": MetricDefinition(
        id="engagement_rate",
        label="Engagement Rate",
        kind=MetricKind.RATIO,
        numerators=("likes", "comments"),
        denominator="views",
    ),
    "link_clicks": MetricDefinition(
        id="link_clicks",
        label="Link Clicks",
        kind=MetricKind.RAW_EVENT,
    ),
    "unique_link_clicks": MetricDefinition(
        id="unique_link_clicks",
        label="Unique Link Clicks",
        kind=MetricKind.DISTINCT_EVENT,
        key="identity_key",
    ),
}


def get_metric(metric: str) -> MetricDefinition:
    if metric not in METRICS:
        raise ValueError(f"Unknown metric '{metric}'. Expected one of: {', '.join(METRICS)}")
    return METRICS[metric]
