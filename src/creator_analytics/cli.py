from __future__ import annotations

from pathlib import Path

import pandas as pd
import typer

from creator_analytics.config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from creator_analytics.io.write import write_metric_outputs
from creator_analytics.logging import configure_logging
from creator_analytics.metrics.dataset import MetricsDataset
from creator_analytics.metrics.registry import get_metric
from creator_analytics.paths import build_output_paths
from creator_analytics.pipeline.dashboard import build_dashboard, load_dataset
from creator_analytics.windows.instants import TimeWindow
from creator_analytics.windows.intervals import generate_intervals, require_granularity
from creator_analytics.windows.presets import ResolvedWindow, resolve_preset

app = typer.Typer(no_args_is_help=True, add_completion=False)


def _load_app_config(config_path: Path) -> AppConfig:
    return load_config(config_path)


def _format_change(change: float | str | None, label: str) -> str:
    if change is None:
        return "no comparison"
    text = change if isinstance(change, str) else f"{change:+.1f}%"
    return f"{text} {label}".strip()


def _resolve_window(
    preset: str,
    start: str | None,
    end: str | None,
    now: str | None,
    dataset: MetricsDataset,
    cfg: AppConfig,
) -> ResolvedWindow:
    timezone = cfg.time.timezone
    if (start is None) != (end is None):
        raise typer.BadParameter("--start and --end must be given together.")
    if start is not None:
        preset = "custom"
    reference = now or pd.Timestamp.now(tz=timezone)
    try:
        return resolve_preset(
            preset,
            reference,
            timezone=timezone,
            custom_range=(start, end) if start is not None else None,
            data_start=dataset.earliest_activity(),
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


@app.command()
def series(
    items: Path = typer.Option(..., exists=True, readable=True, resolve_path=True),
    snapshots: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    clicks: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    metric: list[str] = typer.Option(
        [],
        "--metric",
        "-m",
        help="Metric id to compute; repeatable. Defaults to dashboard.metrics from config.",
    ),
    preset: str | None = typer.Option(
        None, help="Date preset (today, last7days, mtd, ytd, all, ...)."
    ),
    start: str | None = typer.Option(None, help="Custom range start date."),
    end: str | None = typer.Option(None, help="Custom range end date."),
    granularity: str | None = typer.Option(
        None, help="Bucket size; defaults to the preset's granularity."
    ),
    creator: list[str] = typer.Option(
        [], help="Only count items from these creator handles in the current period."
    ),
    platform: list[str] = typer.Option([], help="Only count items from these platforms."),
    now: str | None = typer.Option(None, help="Reference time for presets (defaults to now)."),
    out: Path = typer.Option(Path("out"), resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
) -> None:
    """Compute metric series with previous-period comparison and write tables plus summaries."""
    configure_logging()
    cfg = _load_app_config(config)
    metrics = list(metric) or list(cfg.dashboard.metrics)
    try:
        for metric_id in metrics:
            get_metric(metric_id)
        if granularity is not None:
            granularity = require_granularity(granularity)
        baseline = load_dataset(items, snapshots, clicks, cfg.time.timezone)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    resolved = _resolve_window(
        preset or cfg.dashboard.default_preset,
        start,
        end,
        now,
        baseline,
        cfg,
    )
    dataset = baseline
    if creator or platform:
        dataset = baseline.filter_by(creator_handles=creator, platforms=platform)

    try:
        results = build_dashboard(
            dataset,
            metrics,
            resolved.window,
            granularity or resolved.granularity,
            baseline=baseline,
            has_comparison=resolved.has_comparison,
            config=cfg,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    paths = build_output_paths(out)
    fmt = cfg.outputs.tables_format
    for metric_id, result in results.items():
        write_metric_outputs(result, paths, fmt=fmt, comparison_label=resolved.comparison_label)
        typer.echo(
            f"{metric_id}: {result.summary.current_total:g} "
            f"({_format_change(result.summary.percent_change, resolved.comparison_label)}) "
            f"[{result.granularity} x {len(result.series)}]"
        )
    typer.echo(f"Series complete. Output: {paths.root}")


@app.command()
def intervals(
    start: str = typer.Option(..., help="Window start (ISO date or datetime)."),
    end: str = typer.Option(..., help="Window end (ISO date or datetime)."),
    granularity: str = typer.Option("day", help="hour, day, week, month, quarter or year."),
    timezone: str | None = typer.Option(None, help="Overrides time.timezone from config."),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
) -> None:
    """Print the buckets a window is divided into."""
    configure_logging()
    cfg = _load_app_config(config)
    try:
        window = TimeWindow.from_bounds(start, end, timezone or cfg.time.timezone)
        buckets = generate_intervals(
            window,
            granularity,
            week_start=cfg.time.week_start,
            max_intervals=cfg.buckets.max_intervals,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    for bucket in buckets:
        typer.echo(f"{bucket.label}\t{bucket.start.isoformat()}\t{bucket.end.isoformat()}")
