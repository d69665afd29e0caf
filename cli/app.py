from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import NoReturn, Optional

import typer

from cli.config import CLIConfig, load_config
from cli.render import render_export, render_run, render_year
from clients.thingspeak import ThingSpeakClient
from datastore.almanac_store import AlmanacStore
from logging_config import configure_logging
from models.almanac import Season
from services.exporter import export_csv
from services.partitioner import parse_day
from services.processor import AlmanacProcessor, RunStatus
from services.updater import AlmanacUpdater
from settings import get_settings
from storage.archive import ResponseArchive


@dataclass
class CLIState:
    config: CLIConfig


app = typer.Typer(
    help="Build and inspect the lake temperature almanac.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


def _fail(message: str) -> NoReturn:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


def _parse_range(start: str, end: str) -> tuple[date, date]:
    try:
        start_day = parse_day(start)
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid start date: {start}") from exc
    try:
        end_day = parse_day(end)
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid end date: {end}") from exc
    if end_day < start_day:
        raise typer.BadParameter("End date must not be before start date.")
    return start_day, end_day


def _archive(config: CLIConfig) -> ResponseArchive:
    if not config.archive_root:
        _fail("No archive root configured (set ALMANAC_ARCHIVE_ROOT or --archive-root).")
    return ResponseArchive(root_path=Path(config.archive_root))


def _build_processor(config: CLIConfig, with_source: bool = True) -> AlmanacProcessor:
    source = None
    if with_source:
        source = ThingSpeakClient(
            channel_id=config.channel_id,
            base_url=config.base_url,
            timeout=config.request_timeout,
        )
    archive = ResponseArchive(root_path=Path(config.archive_root)) if config.archive_root else None
    return AlmanacProcessor(
        source=source,
        store=AlmanacStore(path=Path(config.almanac_path)),
        updater=AlmanacUpdater(get_settings().almanac_config()),
        archive=archive,
        field=config.channel_field,
        workers=config.workers,
    )


def _exit_for(status: RunStatus) -> None:
    if status is RunStatus.failed:
        raise typer.Exit(code=1)


@app.callback()
def main(
    ctx: typer.Context,
    almanac_path: Optional[str] = typer.Option(
        None,
        "--almanac-path",
        "-a",
        help="Almanac JSON document (defaults to ALMANAC_PATH env or ./output/lake-almanac.json).",
    ),
    archive_root: Optional[str] = typer.Option(
        None,
        "--archive-root",
        help="Directory of zipped daily responses (defaults to ALMANAC_ARCHIVE_ROOT env).",
    ),
    workers: Optional[int] = typer.Option(
        None,
        "--workers",
        help="Number of days fetched concurrently.",
    ),
) -> None:
    """Entry point for the CLI."""
    configure_logging()
    ctx.obj = CLIState(
        config=load_config(almanac_path=almanac_path, archive_root=archive_root, workers=workers)
    )


@app.command("process")
def process_command(
    ctx: typer.Context,
    start: str = typer.Argument(..., help="First day (YYYY-MM-DD)."),
    end: str = typer.Argument(..., help="Day after the last day (YYYY-MM-DD)."),
    save_responses: bool = typer.Option(
        True,
        "--save-responses/--no-save-responses",
        help="Archive raw sensor responses.",
    ),
) -> None:
    """Fetch a range of days from the sensor and update the almanac."""
    state = _get_state(ctx)
    start_day, end_day = _parse_range(start, end)
    processor = _build_processor(state.config)
    try:
        summary = processor.process_range(start_day, end_day, save_responses=save_responses)
    except ValueError as exc:
        _fail(str(exc))
    finally:
        processor.shutdown()
    render_run(summary)
    _exit_for(summary.status)


@app.command("retry")
def retry_command(
    ctx: typer.Context,
    save_responses: bool = typer.Option(
        False, "--save-responses", help="Archive successful sensor responses."
    ),
    remove_failed_retries: bool = typer.Option(
        False,
        "--remove-failed-retries",
        help="Remove days from the missed list even if the retry fails.",
    ),
) -> None:
    """Retry every day recorded as missed in the almanac metadata."""
    state = _get_state(ctx)
    processor = _build_processor(state.config)
    try:
        summary = processor.retry_missed(
            save_responses=save_responses, remove_failed=remove_failed_retries
        )
    except ValueError as exc:
        _fail(str(exc))
    finally:
        processor.shutdown()
    if not summary.processed_days and not summary.failed_days:
        typer.echo("No missed days found in almanac metadata.")
        return
    render_run(summary)


@app.command("rebuild")
def rebuild_command(
    ctx: typer.Context,
    start: str = typer.Argument(..., help="First day (YYYY-MM-DD)."),
    end: str = typer.Argument(..., help="Day after the last day (YYYY-MM-DD)."),
) -> None:
    """Update the almanac from archived responses instead of the sensor API."""
    state = _get_state(ctx)
    start_day, end_day = _parse_range(start, end)
    _archive(state.config)
    processor = _build_processor(state.config, with_source=False)
    try:
        summary = processor.rebuild_from_archive(start_day, end_day)
    except ValueError as exc:
        _fail(str(exc))
    finally:
        processor.shutdown()
    render_run(summary)
    _exit_for(summary.status)


@app.command("gaps")
def gaps_command(
    ctx: typer.Context,
    start: str = typer.Argument(..., help="First day (YYYY-MM-DD)."),
    end: str = typer.Argument(..., help="Day after the last day (YYYY-MM-DD)."),
) -> None:
    """List days in the range that have no archived response."""
    state = _get_state(ctx)
    start_day, end_day = _parse_range(start, end)
    missing = _archive(state.config).missing_days(start_day, end_day)
    if not missing:
        typer.secho("No gaps found.", fg=typer.colors.GREEN)
        return
    typer.echo(f"{len(missing)} missing day(s):")
    for day in missing:
        typer.echo(f"  - {day}")


@app.command("export-csv")
def export_csv_command(
    ctx: typer.Context,
    start: str = typer.Argument(..., help="First day (YYYY-MM-DD)."),
    end: str = typer.Argument(..., help="Day after the last day (YYYY-MM-DD)."),
    output: Path = typer.Argument(Path("lake-data-export.csv"), help="CSV file to write."),
) -> None:
    """Export archived responses to CSV for a database COPY."""
    state = _get_state(ctx)
    start_day, end_day = _parse_range(start, end)
    archive = _archive(state.config)
    with output.open("w", encoding="utf-8", newline="") as handle:
        summary = export_csv(archive, start_day, end_day, handle)
    render_export(summary, str(output))


@app.command("show")
def show_command(
    ctx: typer.Context,
    year: str = typer.Argument(..., help="Year label, e.g. 2021 or All."),
    season: Optional[Season] = typer.Option(None, "--season", "-s", help="Only show one season."),
) -> None:
    """Print almanac statistics for a year label."""
    state = _get_state(ctx)
    try:
        almanac = AlmanacStore(path=Path(state.config.almanac_path)).load()
    except ValueError as exc:
        _fail(str(exc))
    if year not in almanac:
        _fail(f"No almanac entry for year {year!r}.")
    render_year(year, almanac[year], season)


@app.command("migrate-archive")
def migrate_archive_command(ctx: typer.Context) -> None:
    """Move flat YYYY-MM-DD.zip archives into per-year folders."""
    state = _get_state(ctx)
    stats = _archive(state.config).migrate_flat_layout()
    typer.echo(f"Files migrated: {stats.migrated_count}")
    typer.echo(f"Files skipped: {stats.skipped_count}")
