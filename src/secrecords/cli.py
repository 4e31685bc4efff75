"""CLI for the security records store.

Usage:
    secrecords serve                              # API on 127.0.0.1:3001
    secrecords serve --port 9000 --data-dir ./data
    secrecords show 2024-03-01                    # Print one day's records
    secrecords summary 2024 3                     # Record counts per day
    secrecords add "Port scan from 10.0.0.5" --severity=high
    secrecords export 2024-03-01 --output-dir ./out
"""

from __future__ import annotations

import json as json_mod
import sys
from pathlib import Path
from typing import Any

import click

from secrecords import __version__
from secrecords.client import export_to_json, format_timestamp, new_record
from secrecords.config import DEFAULT_DATA_DIR, load_config
from secrecords.datekeys import is_date_key, today_key
from secrecords.store import RecordStore, StorageError
from secrecords.summary import summarize
from secrecords.types import VALID_RECORD_TYPES, VALID_SEVERITIES


def _get_store(data_dir: Path) -> RecordStore:
    try:
        return RecordStore(data_dir)
    except OSError as e:
        click.echo(f"Cannot open data directory {data_dir}: {e}", err=True)
        sys.exit(1)


def _check_date(date: str | None) -> str:
    date = date or today_key()
    if not is_date_key(date):
        click.echo(f"Invalid date: {date!r}. Expected YYYY-MM-DD.", err=True)
        sys.exit(1)
    return date


def _load_day(store: RecordStore, date: str) -> list[Any]:
    try:
        return store.get(date)
    except StorageError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


data_dir_option = click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=DEFAULT_DATA_DIR,
    show_default=True,
    help="Directory holding the day buckets",
)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="secrecords")
def cli() -> None:
    """secrecords — per-day security record store."""


@cli.command()
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None, help="JSON config file")
@click.option("--port", default=None, type=int, help="Port to listen on (default: 3001)")
@click.option("--host", default=None, help="Interface to bind (default: 127.0.0.1)")
@click.option("--data-dir", default=None, type=click.Path(file_okay=False, path_type=Path), help="Directory holding the day buckets")
@click.option("--static-dir", default=None, type=click.Path(file_okay=False, path_type=Path), help="Built frontend to serve")
@click.option("--log-dir", default=None, type=click.Path(file_okay=False, path_type=Path), help="Write JSON logs here")
def serve(
    config_path: Path | None,
    port: int | None,
    host: str | None,
    data_dir: Path | None,
    static_dir: Path | None,
    log_dir: Path | None,
) -> None:
    """Run the records API server."""
    from secrecords.dashboard import main as dashboard_main
    from secrecords.logging import setup_logging

    config = load_config(config_path).with_overrides(
        port=port,
        host=host,
        data_dir=data_dir,
        static_dir=static_dir,
        log_dir=log_dir,
    )
    if config.log_dir is not None:
        setup_logging(config.log_dir)
    dashboard_main(config)


@cli.command()
@click.argument("date", required=False)
@data_dir_option
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def show(date: str | None, data_dir: Path, as_json: bool) -> None:
    """Print the records saved for DATE (default: today)."""
    date = _check_date(date)
    records = _load_day(_get_store(data_dir), date)
    if as_json:
        click.echo(json_mod.dumps(records, indent=2, ensure_ascii=False))
        return
    if not records:
        click.echo(f"No records for {date}.")
        return
    for record in records:
        if not isinstance(record, dict):
            click.echo(f"  {record!r}")
            continue
        severity = record.get("severity")
        sev_str = f" [{severity}]" if severity else ""
        when = format_timestamp(str(record.get("timestamp", "")))
        click.echo(f"{when}  {record.get('type', '?'):<14}{record.get('title', '')}{sev_str}")
        if record.get("description"):
            click.echo(f"    {record['description']}")
    click.echo(f"\n{len(records)} record(s) for {date}")


@cli.command()
@click.argument("year", type=int)
@click.argument("month", type=click.IntRange(1, 12))
@data_dir_option
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def summary(year: int, month: int, data_dir: Path, as_json: bool) -> None:
    """Print record counts per day for YEAR MONTH."""
    try:
        counts = summarize(_get_store(data_dir), year, month)
    except StorageError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    if as_json:
        click.echo(json_mod.dumps(counts, indent=2))
        return
    if not counts:
        click.echo(f"No records in {year:04d}-{month:02d}.")
        return
    for key, count in counts.items():
        click.echo(f"{key}  {count}")
    click.echo(f"\nTotal: {sum(counts.values())}")


@cli.command()
@click.argument("title")
@click.option("--description", "-d", default="", help="Free-text details")
@click.option("--type", "record_type", type=click.Choice(sorted(VALID_RECORD_TYPES)), default="threat", show_default=True)
@click.option("--severity", type=click.Choice(sorted(VALID_SEVERITIES)), default=None)
@click.option("--date", default=None, help="Day to add to, YYYY-MM-DD (default: today)")
@data_dir_option
def add(title: str, description: str, record_type: str, severity: str | None, date: str | None, data_dir: Path) -> None:
    """Append a record to a day's bucket."""
    date = _check_date(date)
    store = _get_store(data_dir)
    records = _load_day(store, date)
    if not isinstance(records, list):
        click.echo(f"Error: bucket for {date} is not a JSON array; refusing to overwrite it", err=True)
        sys.exit(1)
    record = new_record(title, description, record_type=record_type, severity=severity)
    try:
        store.put(date, [*records, record])
    except StorageError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Added {record['id']} to {date}")


@cli.command()
@click.argument("date", required=False)
@data_dir_option
@click.option("--output-dir", type=click.Path(file_okay=False, path_type=Path), default=Path("."), help="Where to write the export")
def export(date: str | None, data_dir: Path, output_dir: Path) -> None:
    """Export DATE's records (default: today) to security_records_<date>.json."""
    date = _check_date(date)
    records = _load_day(_get_store(data_dir), date)
    try:
        path = export_to_json(records, date, output_dir)
    except OSError as e:
        click.echo(f"Cannot write export to {output_dir}: {e}", err=True)
        sys.exit(1)
    click.echo(f"Exported {len(records)} record(s) to {path}")


if __name__ == "__main__":
    cli()
