#!/usr/bin/env python3
"""
PO Ingestion Pipeline: CLI entry point.

Usage examples:
  python main.py ingest orders.csv                  # Append POs to the store
  python main.py ingest open.xlsx --kind openpos    # Append open POs
  python main.py ingest rates.csv --kind landing    # Append landing rates
  python main.py preview orders.csv                 # Show the first rows, store untouched

  python main.py metrics                            # KPI cards for stored POs
  python main.py vendors                            # Per-vendor fill rate and revenue
  python main.py pos --status pending               # PO groups still awaiting receipt
  python main.py show                               # Record counts per collection
  python main.py history                            # Recent uploads
  python main.py sample --kind pos -o template.csv  # Write a template file
  python main.py clear --yes                        # Empty the store
  python main.py serve --port 8000                  # Run the dashboard API
"""
import json
import logging
import os
import sys
from pathlib import Path

import click
import uvicorn

from config import Config
from pipeline import metrics
from pipeline.database import Database
from pipeline.errors import IngestError, NoValidRecordsError
from pipeline.ingestor import UPLOAD_TARGETS, Ingestor, get_target, sample_csv
from pipeline.store import OPEN_PURCHASE_ORDERS, PURCHASE_ORDERS, PersistedStore

_KIND_CHOICE = click.Choice(sorted(UPLOAD_TARGETS))
_PO_COLLECTIONS = {"pos": PURCHASE_ORDERS, "openpos": OPEN_PURCHASE_ORDERS}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
        datefmt="%H:%M:%S",
    )


def _open_store(config: Config) -> PersistedStore:
    config.ensure_output_dir()
    store = PersistedStore(Database(config.db_path), config.store_name)
    store.rehydrate()
    return store


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--db", default=None, type=click.Path(), help="Path to the SQLite store file")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, db: str | None) -> None:
    """PO Ingestion Pipeline: load PO and landing-rate files, report fill rates."""
    ctx.ensure_object(dict)
    _setup_logging(verbose)
    config = Config()
    if db:
        config.db_path = Path(db)
    ctx.obj["config"] = config


# --------------------------------------------------------------------
# ingest / preview commands
# --------------------------------------------------------------------

def _print_rejections(result) -> None:
    if not result.rejections:
        return
    click.echo(f"  Rejected rows ({result.rejected_count}):")
    for r in result.rejections:
        click.echo(f"    row {r.row_number}: {r.reason}")
    if result.rejected_count > len(result.rejections):
        click.echo(f"    … and {result.rejected_count - len(result.rejections)} more")


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--kind", "-k", type=_KIND_CHOICE, default="pos", show_default=True,
              help="Upload target: pos, openpos or landing")
@click.pass_context
def ingest(ctx: click.Context, file: str, kind: str) -> None:
    """Validate FILE and append its accepted rows to the store."""
    config: Config = ctx.obj["config"]
    ingestor = Ingestor(_open_store(config), config)
    target = get_target(kind)

    try:
        result = ingestor.ingest_path(file, kind)
    except NoValidRecordsError as e:
        click.echo(f"✗ {e}", err=True)
        if e.result is not None:
            _print_rejections(e.result)
        sys.exit(1)
    except IngestError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)

    click.echo()
    click.echo(f"  ✓ Successfully uploaded {result.accepted_count} records to {target.label}")
    click.echo(f"  {result.summary()}")
    if result.unresolved_fields:
        click.echo(f"  Columns not found: {', '.join(result.unresolved_fields)}")
    _print_rejections(result)
    click.echo()


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--kind", "-k", type=_KIND_CHOICE, default="pos", show_default=True)
@click.option("--rows", "-n", default=None, type=int, help="Rows to show (default: PREVIEW_ROWS)")
@click.pass_context
def preview(ctx: click.Context, file: str, kind: str, rows: int | None) -> None:
    """Show how FILE would be read, without storing anything."""
    config: Config = ctx.obj["config"]
    ingestor = Ingestor(PersistedStore(Database(config.db_path), config.store_name), config)
    path = Path(file)

    try:
        result = ingestor.preview(path.name, path.read_bytes(), kind, limit=rows)
    except IngestError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)

    click.echo()
    click.echo("  Column mapping:")
    for field_name, header in result.field_mapping.items():
        click.echo(f"    {field_name:<22} ← {header if header is not None else '(not found)'}")
    click.echo()
    for record in result.records:
        click.echo("  " + json.dumps(record.model_dump(mode="json")))
    click.echo()
    click.echo(f"  {result.summary()}")
    _print_rejections(result)
    click.echo()


# --------------------------------------------------------------------
# reporting commands
# --------------------------------------------------------------------

@cli.command(name="metrics")
@click.option("--collection", "-c", type=click.Choice(sorted(_PO_COLLECTIONS)), default="pos",
              show_default=True)
@click.option("--json", "as_json", is_flag=True, help="Print machine-readable JSON")
@click.pass_context
def metrics_cmd(ctx: click.Context, collection: str, as_json: bool) -> None:
    """Headline KPIs: total orders, billing, fill rates."""
    store = _open_store(ctx.obj["config"])
    records = store.records(_PO_COLLECTIONS[collection])
    summary = metrics.kpi_summary(records)

    if as_json:
        click.echo(summary.model_dump_json(indent=2))
        return

    click.echo()
    click.echo(f"  Total orders:          {summary.total_orders}")
    click.echo(f"  Sum of billing:        {summary.sum_of_billing:,.2f}")
    click.echo(f"  Fill rate:             {summary.fill_rate:.2f}%")
    click.echo(f"  Line fill rate:        {summary.line_fill_rate:.2f}%")
    click.echo(f"  Non-zero fill rate:    {summary.non_zero_fill_rate:.2f}%")
    click.echo(f"  Vendors:               {summary.vendor_count}")
    click.echo()


@cli.command()
@click.option("--collection", "-c", type=click.Choice(sorted(_PO_COLLECTIONS)), default="pos",
              show_default=True)
@click.pass_context
def vendors(ctx: click.Context, collection: str) -> None:
    """Fill rate and revenue per vendor."""
    store = _open_store(ctx.obj["config"])
    analysis = metrics.vendor_analysis(store.records(_PO_COLLECTIONS[collection]))
    if not analysis:
        click.echo("No purchase orders stored.")
        return
    click.echo()
    click.echo(f"  {'Vendor':<32} {'Fill rate':>10} {'Revenue':>14}")
    for v in sorted(analysis, key=lambda a: a.revenue, reverse=True):
        click.echo(f"  {v.vendor[:32]:<32} {v.fill_rate:>9.2f}% {v.revenue:>14,.2f}")
    click.echo()


@cli.command()
@click.option("--collection", "-c", type=click.Choice(sorted(_PO_COLLECTIONS)), default="pos",
              show_default=True)
@click.option("--search", "-s", default=None, help="Substring of PO number or vendor")
@click.option("--status", type=click.Choice(metrics.GROUP_STATUSES), default="all", show_default=True)
@click.option("--vendor", default=None, help="Exact vendor name")
@click.pass_context
def pos(ctx: click.Context, collection: str, search: str | None, status: str, vendor: str | None) -> None:
    """List purchase orders grouped by PO number."""
    store = _open_store(ctx.obj["config"])
    groups = metrics.group_by_po_number(store.records(_PO_COLLECTIONS[collection]))
    groups = metrics.filter_groups(groups, search=search, status=status, vendor=vendor)
    if not groups:
        click.echo("No matching purchase orders.")
        return
    click.echo()
    for g in groups:
        icon = "✓" if g.is_complete else "…"
        click.echo(
            f"  {icon} {g.po_number:<16} {g.vendor[:28]:<28} "
            f"{g.total_received_qty:>6}/{g.total_ordered_qty:<6} {g.fill_rate:>7.2f}%  "
            f"{g.total_amount:>12,.2f}  ({len(g.items)} lines)"
        )
    click.echo()


@cli.command()
@click.pass_context
def show(ctx: click.Context) -> None:
    """Record counts per stored collection."""
    config: Config = ctx.obj["config"]
    store = _open_store(config)
    click.echo(f"\n  Store '{config.store_name}' at {config.db_path}\n")
    for collection, count in store.counts().items():
        click.echo(f"  {collection:<22} {count}")
    click.echo()


@cli.command()
@click.option("--limit", "-n", default=20, show_default=True)
@click.pass_context
def history(ctx: click.Context, limit: int) -> None:
    """Recent uploads, newest first."""
    config: Config = ctx.obj["config"]
    config.ensure_output_dir()
    entries = Database(config.db_path).get_upload_history(limit=limit)
    if not entries:
        click.echo("No uploads recorded.")
        return
    for e in entries:
        click.echo(
            f"  {e['timestamp'][:19]}  {e['collection']:<20} {e['source_file']:<32} "
            f"+{e['accepted_count']} / -{e['rejected_count']}"
        )


# --------------------------------------------------------------------
# maintenance commands
# --------------------------------------------------------------------

@cli.command()
@click.option("--kind", "-k", type=_KIND_CHOICE, default="pos", show_default=True)
@click.option("--output", "-o", default=None, type=click.Path(dir_okay=False),
              help="Write to this file instead of stdout")
def sample(kind: str, output: str | None) -> None:
    """Print (or write) a template CSV for an upload target."""
    content = sample_csv(kind)
    if output:
        Path(output).write_text(content, encoding="utf-8")
        click.echo(f"Sample written to: {output}")
    else:
        click.echo(content, nl=False)


@cli.command()
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def clear(ctx: click.Context, yes: bool) -> None:
    """Remove every stored record (all collections)."""
    if not yes:
        click.confirm("This deletes all stored POs, open POs and landing rates. Continue?", abort=True)
    store = _open_store(ctx.obj["config"])
    store.clear_all()
    click.echo("✓ Store cleared")


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", "-p", default=8000, show_default=True, type=int)
@click.option("--reload", is_flag=True, help="Restart on code changes (development)")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int, reload: bool) -> None:
    """Run the dashboard API."""
    config: Config = ctx.obj["config"]
    # The app builds its own Config, so hand the store location over via the environment
    os.environ["DB_PATH"] = str(config.db_path)
    click.echo(f"Serving dashboard on http://{host}:{port} (store: {config.db_path})")
    uvicorn.run("dashboard.app:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    cli()
