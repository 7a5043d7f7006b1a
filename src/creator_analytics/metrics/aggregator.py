from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

import numpy as np
import pandas as pd

from creator_analytics.io.schema import COUNTER_COLUMNS
from creator_analytics.metrics.dataset import MetricsDataset
from creator_analytics.metrics.registry import MetricDefinition, MetricKind, get_metric

CounterCache = dict[int, tuple[np.ndarray, np.ndarray]]


class Span(Protocol):
    start: pd.Timestamp
    end: pd.Timestamp


def _counters_at(
    dataset: MetricsDataset,
    instant: int,
    cache: CounterCache | None,
) -> tuple[np.ndarray, np.ndarray]:
    if cache is not None and instant in cache:
        return cache[instant]
    observed = dataset.index.matrix_at(instant)
    initial = dataset.index.initial_values
    attributed = np.where(np.isnan(observed), initial, np.maximum(initial, observed))
    attributed[dataset.created_ns > instant] = 0.0
    if cache is not None:
        cache[instant] = (observed, attributed)
    return observed, attributed


def attributed_counters(
    dataset: MetricsDataset,
    instant: int,
    cache: CounterCache | None = None,
) -> np.ndarray:
    """Cumulative counters credited to each item as of ``instant`` (epoch ns).

    Items not yet created contribute 0. Once created, an item is credited at
    least its initial value, and otherwise its forward-filled snapshot value.
    """
    return _counters_at(dataset, instant, cache)[1]


def counter_growth(
    dataset: MetricsDataset,
    start: int,
    end: int,
    cache: CounterCache | None = None,
) -> np.ndarray:
    """Per-counter growth over ``[start, end]``, clamped at zero per item.

    An item created before ``start`` with no snapshot at or before ``start - 1``
    has no start bracket and contributes 0.
    """
    observed_before, before = _counters_at(dataset, start - 1, cache)
    _, after = _counters_at(dataset, end, cache)
    growth = np.clip(after - before, 0.0, None)
    growth[(dataset.created_ns < start) & np.isnan(observed_before[:, 0])] = 0.0
    return growth.sum(axis=0)


def _aggregate_span(
    definition: MetricDefinition,
    dataset: MetricsDataset,
    start: int,
    end: int,
    cache: CounterCache,
) -> float:
    kind = definition.kind
    if kind is MetricKind.DELTA:
        growth = counter_growth(dataset, start, end, cache)
        return float(growth[COUNTER_COLUMNS.index(definition.counter)])
    if kind is MetricKind.RATIO:
        growth = counter_growth(dataset, start, end, cache)
        denominator = float(growth[COUNTER_COLUMNS.index(definition.denominator)])
        if denominator <= 0:
            return 0.0
        numerator = sum(
            float(growth[COUNTER_COLUMNS.index(name)]) for name in definition.numerators
        )
        return numerator / denominator * 100.0

    if kind in (MetricKind.ENTITY_COUNT, MetricKind.DISTINCT_COUNT):
        created = (dataset.created_ns >= start) & (dataset.created_ns <= end)
        if kind is MetricKind.ENTITY_COUNT:
            return float(np.count_nonzero(created))
        keys = dataset.items.loc[created, definition.key].astype(str).str.strip()
        return float(keys[keys != ""].nunique())

    in_span = (dataset.click_ns >= start) & (dataset.click_ns <= end)
    if kind is MetricKind.RAW_EVENT:
        return float(np.count_nonzero(in_span))
    return float(dataset.clicks.loc[in_span, definition.key].nunique())


def aggregate_series(
    metric: str,
    dataset: MetricsDataset,
    intervals: Sequence[Span],
) -> list[float]:
    """One value per interval; unknown metric ids raise ``ValueError``."""
    definition = get_metric(metric)
    # Adjacent buckets share a boundary, so each cumulative lookup is reused once.
    cache: CounterCache = {}
    return [
        _aggregate_span(definition, dataset, interval.start.value, interval.end.value, cache)
        for interval in intervals
    ]


def aggregate(metric: str, dataset: MetricsDataset, interval: Span) -> float:
    return aggregate_series(metric, dataset, [interval])[0]
