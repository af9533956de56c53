"""CLI entrypoint for felt-quakes."""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone

import click
from rich.console import Console
from rich.table import Table

from felt_quakes import maintenance
from felt_quakes.errors import FeltQuakesError
from felt_quakes.merge import merge_with_stats
from felt_quakes.models import MergeKey, parse_timestamp
from felt_quakes.parsers import PARSER_MAP
from felt_quakes.pipeline import scrape as run_scrape
from felt_quakes.sources import DEFAULT_SOURCE, MERGE_KEY, SOURCES
from felt_quakes.storage import read_snapshot, write_snapshot

console = Console()

MERGE_KEY_CHOICE = click.Choice([k.value for k in MergeKey])


def _configure_logging(verbose: bool) -> None:
    # CI runs keep the full payload dumps for post-mortems.
    level = logging.DEBUG if verbose or os.getenv("CI") else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


def _parse_now(value: str | None) -> datetime:
    if value is None:
        return datetime.now(timezone.utc)
    try:
        return parse_timestamp(value)
    except ValueError as exc:
        raise click.BadParameter(f"not an ISO-8601 timestamp: {value!r}") from exc


def _load_json(path: str):
    try:
        with open(path, encoding="utf-8") as fh:
            return json.load(fh)
    except ValueError as exc:
        raise click.ClickException(f"{path} is not valid JSON: {exc}") from exc


def _mag_color(mag: float) -> str:
    if mag >= 5.0:
        return "red"
    if mag >= 4.0:
        return "yellow"
    return "green"


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Debug logging (also enabled by $CI).")
def cli(verbose: bool):
    """BMKG felt earthquakes: normalize the feed and merge it into a JSON history."""
    _configure_logging(verbose)


@cli.command()
@click.option("--source", default=DEFAULT_SOURCE, type=click.Choice(sorted(SOURCES)))
@click.option("--save-path", default=None, help="Snapshot file (default from config).")
@click.option("--merge-key", default=MERGE_KEY, type=MERGE_KEY_CHOICE, show_default=True)
def scrape(source: str, save_path: str | None, merge_key: str):
    """Fetch the feed and merge it into the snapshot."""
    config = SOURCES[source]
    try:
        result = run_scrape(config, save_path=save_path, merge_key=merge_key)
    except FeltQuakesError as exc:
        raise click.ClickException(str(exc)) from exc

    summary = result.summary()
    click.echo(
        f"{summary['fresh']} fetched, {summary['added']} new, "
        f"{summary['updated']} updated, {summary['total']} total"
    )
    if summary["anomalies"]:
        click.echo(f"{summary['anomalies']} event(s) flagged, see log for details")


@cli.command()
@click.argument("feed_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--source", default=DEFAULT_SOURCE, type=click.Choice(sorted(PARSER_MAP)))
@click.option("--now", default=None, help="Reference time for anomaly checks (ISO-8601).")
def normalize(feed_file: str, source: str, now: str | None):
    """Normalize a saved raw feed document and print the records as JSON."""
    reference = _parse_now(now)
    try:
        events = PARSER_MAP[source].parse(_load_json(feed_file), reference)
    except FeltQuakesError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(json.dumps([e.to_record() for e in events], ensure_ascii=False, indent=2))


@cli.command()
@click.argument("stale_file", type=click.Path(dir_okay=False))
@click.argument("fresh_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--merge-key", default=MERGE_KEY, type=MERGE_KEY_CHOICE, show_default=True)
@click.option("-o", "--output", default=None, help="Write here instead of STALE_FILE.")
def merge(stale_file: str, fresh_file: str, merge_key: str, output: str | None):
    """Merge normalized records from FRESH_FILE into the snapshot STALE_FILE."""
    fresh = _load_json(fresh_file)
    if not isinstance(fresh, list):
        raise click.ClickException(f"{fresh_file} must hold a JSON array of records")
    try:
        stale = read_snapshot(stale_file)
        records, stats = merge_with_stats(stale, fresh, merge_key)
        write_snapshot(output or stale_file, records)
    except FeltQuakesError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"{stats.added} new, {stats.updated} updated, {len(records)} total")


@cli.command()
@click.option("--save-path", default=None, help="Snapshot file (default from config).")
@click.option("--limit", default=20, help="Max rows to display.")
def show(save_path: str | None, limit: int):
    """Show the most recent earthquakes in the snapshot."""
    path = save_path or SOURCES[DEFAULT_SOURCE].save_path
    try:
        records = read_snapshot(path)
    except FeltQuakesError as exc:
        raise click.ClickException(str(exc)) from exc

    records = sorted(records, key=lambda r: r.get("occurredAt", ""), reverse=True)

    table = Table(title=f"Felt earthquakes ({len(records)} recorded)")
    table.add_column("Id", no_wrap=True)
    table.add_column("Mag", style="bold", width=4)
    table.add_column("Depth", justify="right")
    table.add_column("Time (UTC)", no_wrap=True)
    table.add_column("Location")
    table.add_column("Flag", no_wrap=True)

    for r in records[:limit]:
        mag = float(r.get("magnitude", 0.0))
        anomaly = r.get("anomaly")
        table.add_row(
            r.get("id", "?"),
            f"[{_mag_color(mag)}]{mag:.1f}[/]",
            f"{float(r.get('depthKm', 0.0)):.0f}",
            r.get("occurredAt", "")[:16].replace("T", " "),
            r.get("locationText", ""),
            f"[red]{anomaly}[/]" if anomaly else "",
        )

    console.print(table)


@cli.command()
@click.argument("fix", type=click.Choice(["ids", "future", "shakemap"]))
@click.option("--save-path", default=None, help="Snapshot file (default from config).")
@click.option("--cutoff", default=None, help="For 'future': flag events after this time (default now).")
def repair(fix: str, save_path: str | None, cutoff: str | None):
    """Apply a one-off repair to the persisted snapshot."""
    path = save_path or SOURCES[DEFAULT_SOURCE].save_path
    try:
        records = read_snapshot(path)
        if fix == "ids":
            fixed, count = maintenance.recompute_ids(records)
        elif fix == "future":
            fixed, count = maintenance.flag_future_events(records, _parse_now(cutoff))
        else:
            fixed, count = maintenance.refresh_shake_map_urls(records)
        write_snapshot(path, fixed)
    except (FeltQuakesError, KeyError, ValueError) as exc:
        raise click.ClickException(f"repair {fix} failed: {exc}") from exc
    click.echo(f"Updated {count} row(s).")
