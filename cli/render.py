from __future__ import annotations

from typing import Any, Iterable, List, Optional

import typer

from models.almanac import (
    AlmanacSeason,
    AlmanacYear,
    AverageMetric,
    HiLowMetric,
    RecordedReading,
    Season,
)
from services.exporter import ExportSummary
from services.processor import RunSummary


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _format_readings(readings: List[RecordedReading]) -> str:
    if not readings:
        return "-"
    return ", ".join(f"{reading.value:g} @ {reading.date.isoformat()}" for reading in readings)


def render_season(label: str, season: AlmanacSeason) -> None:
    echo_heading(label)
    echo_key_values((metric.value, _format_readings(season.sequence(metric))) for metric in HiLowMetric)
    for metric in AverageMetric:
        average = season.get_average(metric)
        value: Optional[str] = None
        if average is not None:
            value = f"{average.average:.3f} (n={average.n})"
        typer.echo(f"{metric.value}: {value or '-'}")


def render_year(label: str, year: AlmanacYear, season: Optional[Season] = None) -> None:
    seasons = [season] if season is not None else list(Season)
    for index, current in enumerate(seasons):
        if index:
            typer.echo()
        render_season(f"{label} {current.value}", year.season(current))

    typer.echo()
    echo_heading("Freezes")
    echo_key_values(
        [
            ("FirstFreezesBeforeSummer", _format_readings(year.first_freezes_before_summer)),
            ("FirstFreezesAfterSummer", _format_readings(year.first_freezes_after_summer)),
            ("LastFreezesBeforeSummer", _format_readings(year.last_freezes_before_summer)),
        ]
    )


def render_run(summary: RunSummary) -> None:
    echo_heading("Run Result")
    echo_key_values(
        [
            ("status", summary.status.value),
            ("processed", len(summary.processed_days)),
            ("failed", len(summary.failed_days)),
            ("processing_ms", summary.processing_ms),
        ]
    )
    if summary.failed_days:
        typer.echo("failed days:")
        for day in summary.failed_days:
            typer.echo(f"  - {day}")


def render_export(summary: ExportSummary, output: str) -> None:
    echo_heading("Export Result")
    echo_key_values(
        [
            ("days processed", summary.days_processed),
            ("days skipped", summary.days_skipped),
            ("rows", summary.row_count),
            ("output", output),
        ]
    )
    gaps = summary.gaps
    typer.echo()
    if gaps is None:
        typer.echo("No inter-day gaps found.")
        return
    echo_heading("Gaps Between Days")
    echo_key_values(
        [
            ("total", gaps.total_gaps),
            ("average (<= 10 min)", f"{gaps.average_small_gap_minutes:.1f} min"),
            ("minimum", f"{gaps.min_gap_minutes:.1f} min"),
            ("maximum", f"{gaps.max_gap_minutes:.1f} min"),
        ]
    )
    for gap in gaps.large_gaps:
        typer.echo(f"  - {gap.from_day} to {gap.to_day}: {gap.minutes:.1f} min")
