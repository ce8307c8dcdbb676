#!/usr/bin/env python3
"""
Filipino Business Management System command line.

Entry point for running and maintaining a store backend:
1. Serving the REST API
2. Creating and seeding the database
3. Creating, verifying, restoring and pruning backups
4. Printing sales, inventory and VAT reports
"""

from __future__ import annotations

import logging
import os
from datetime import date
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from fbms.backend.core.analysis.reporter import (
    ReportWriter,
    inventory_valuation,
    sales_by_day,
    sales_by_payment_method,
    sales_summary,
)
from fbms.backend.core.errors import FBMSError
from fbms.backend.core.utils.config import DEFAULT_CONFIG_PATH, load_config, load_runtime_config
from fbms.backend.core.utils.logging_setup import setup_logging
from fbms.backend.core.utils.money import format_peso
from fbms.backend.db.seed import ADMIN_EMAIL, seed_database
from fbms.backend.db.session import Database
from fbms.backend.services import backup, compliance, reports

console = Console()
logger = logging.getLogger(__name__)


def print_banner():
    """Print the project banner."""
    banner = """
╔══════════════════════════════════════════════════════════════╗
║     Filipino Business Management System                      ║
║     POS · Inventory · Purchasing · Payroll · BIR             ║
╚══════════════════════════════════════════════════════════════╝
    """
    console.print(banner, style="bold blue")


def _database(cfg: dict[str, Any]) -> Database:
    db_cfg = cfg.get("database", {})
    return Database(db_cfg.get("url", "sqlite:///fbms.db"), echo=bool(db_cfg.get("echo", False)))


def _backup_dir(cfg: dict[str, Any]) -> str:
    return cfg.get("backup", {}).get("directory", "backups")


def _fail(message: str, exc: Exception) -> None:
    console.print(f"\n[bold red]{message}:[/bold red] {exc}")
    raise SystemExit(1) from exc


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(),
    default=None,
    help=f"Path to configuration file (default: $FBMS_CONFIG or {DEFAULT_CONFIG_PATH}).",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable verbose output.")
@click.option("--debug", is_flag=True, default=False, help="Enable debug mode with SQL logging.")
@click.pass_context
def main(ctx: click.Context, config: str | None, verbose: bool, debug: bool):
    """Run and maintain the FBMS backend."""
    try:
        cfg = load_config(config) if config else load_runtime_config()
    except FileNotFoundError as e:
        _fail("Configuration error", e)

    log_cfg = cfg.get("logging", {})
    log_level = logging.DEBUG if debug else (logging.INFO if verbose else log_cfg.get("level", logging.WARNING))
    setup_logging(log_level, log_cfg.get("file"))

    ctx.obj = {"config": cfg, "config_path": config, "debug": debug}


# ── serve ───────────────────────────────────────────────────────────────────


@main.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", "-p", type=int, default=8000, show_default=True)
@click.option("--reload", is_flag=True, default=False, help="Restart on code changes.")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int, reload: bool):
    """Serve the REST API with uvicorn."""
    import uvicorn

    print_banner()
    if ctx.obj["config_path"]:
        # the app factory reads the same file in the server process
        os.environ["FBMS_CONFIG"] = str(Path(ctx.obj["config_path"]).resolve())
    console.print(f"  API: http://{host}:{port}/api   docs: http://{host}:{port}/docs")
    uvicorn.run("fbms.backend.api.app:app", host=host, port=port, reload=reload)


# ── init-db ─────────────────────────────────────────────────────────────────


@main.command("init-db")
@click.option("--seed/--no-seed", default=True, show_default=True, help="Create the admin user and defaults.")
@click.option("--sample-data/--no-sample-data", default=True, show_default=True, help="Add sample catalog rows.")
@click.pass_context
def init_db(ctx: click.Context, seed: bool, sample_data: bool):
    """Create tables and optionally seed the database."""
    cfg = ctx.obj["config"]
    database = _database(cfg)
    console.print("\n[bold cyan]Creating tables...[/bold cyan]")
    database.create_all()
    if seed:
        console.print("[bold cyan]Seeding...[/bold cyan]")
        with database.session_scope() as session:
            added = seed_database(session, cfg, sample_data=sample_data)
        table = Table(title="Seeded rows")
        table.add_column("Group")
        table.add_column("Added", justify="right")
        for group, count in added.items():
            table.add_row(group, str(count))
        console.print(table)
        if added.get("admin"):
            console.print(f"  Admin user: [bold]{ADMIN_EMAIL}[/bold] (change the password after first login)")
    database.dispose()
    console.print(f"\n[bold green]Database ready:[/bold green] {database.url}")


# ── backup ──────────────────────────────────────────────────────────────────


@main.group("backup")
def backup_group():
    """Create, inspect and restore database backups."""


@backup_group.command("create")
@click.option("--label", "-l", default=None, help="Label appended to the file name.")
@click.pass_context
def backup_create(ctx: click.Context, label: str | None):
    cfg = ctx.obj["config"]
    database = _database(cfg)
    with database.session_scope() as session:
        result = backup.create_backup(session, _backup_dir(cfg), label)
    database.dispose()
    rows = sum(result["tables"].values())
    console.print(f"[bold green]Backup written:[/bold green] {result['filename']} ({rows} rows)")


@backup_group.command("list")
@click.pass_context
def backup_list(ctx: click.Context):
    items = backup.list_backups(_backup_dir(ctx.obj["config"]))
    if not items:
        console.print("No backups found.")
        return
    table = Table(title="Backups")
    table.add_column("File")
    table.add_column("Created")
    table.add_column("Label")
    table.add_column("Rows", justify="right")
    table.add_column("Size", justify="right")
    for item in items:
        table.add_row(
            item["filename"],
            str(item.get("created_at") or "?"),
            item.get("label") or "",
            str(sum((item.get("tables") or {}).values())),
            f"{item['size_bytes'] / 1024:.1f} KB",
        )
    console.print(table)


@backup_group.command("verify")
@click.argument("filename")
@click.pass_context
def backup_verify(ctx: click.Context, filename: str):
    try:
        result = backup.verify_backup(_backup_dir(ctx.obj["config"]), filename)
    except FBMSError as e:
        _fail("Verify failed", e)
    if result["is_valid"]:
        console.print(f"[bold green]✓ {filename} is valid[/bold green]")
        return
    console.print(f"[bold red]✗ {filename} is not valid[/bold red]")
    for error in result["errors"]:
        console.print(f"  - {error}")
    raise SystemExit(1)


@backup_group.command("restore")
@click.argument("filename")
@click.option("--yes", is_flag=True, default=False, help="Do not ask for confirmation.")
@click.pass_context
def backup_restore(ctx: click.Context, filename: str, yes: bool):
    """Replace the database contents with FILENAME."""
    if not yes:
        click.confirm(f"Replace all data with {filename}?", abort=True)
    cfg = ctx.obj["config"]
    database = _database(cfg)
    database.create_all()
    try:
        with database.session_scope() as session:
            restored = backup.restore_backup(session, _backup_dir(cfg), filename)
    except FBMSError as e:
        _fail("Restore failed", e)
    finally:
        database.dispose()
    console.print(f"[bold green]Restored {sum(restored.values())} rows from {filename}[/bold green]")


@backup_group.command("prune")
@click.option("--keep", "-k", type=int, default=None, help="Backups to keep (default from config).")
@click.pass_context
def backup_prune(ctx: click.Context, keep: int | None):
    cfg = ctx.obj["config"]
    keep = keep if keep is not None else int(cfg.get("backup", {}).get("keep", 10))
    try:
        removed = backup.prune_backups(_backup_dir(cfg), keep)
    except ValueError as e:
        _fail("Prune failed", e)
    console.print(f"Removed {len(removed)} backup(s); kept the newest {keep}.")


# ── report ──────────────────────────────────────────────────────────────────


@main.group("report")
def report_group():
    """Print and export reports."""


@report_group.command("sales")
@click.option("--start", type=click.DateTime(["%Y-%m-%d"]), default=None)
@click.option("--end", type=click.DateTime(["%Y-%m-%d"]), default=None)
@click.option("--export", "export_fmt", type=click.Choice(["csv", "json"]), default=None)
@click.pass_context
def report_sales(ctx: click.Context, start, end, export_fmt: str | None):
    cfg = ctx.obj["config"]
    start_day = start.date() if start else None
    end_day = end.date() if end else None
    database = _database(cfg)
    with database.session_scope() as session:
        frame = reports.sales_frame(session, start_day, end_day)
    database.dispose()

    period = f"{start_day or 'beginning'} to {end_day or date.today()}"
    writer = ReportWriter(Path(cfg.get("output_dir", "outputs")) / "reports")
    text = writer.sales_report(sales_summary(frame), sales_by_day(frame), sales_by_payment_method(frame), period)
    console.print(text)
    if export_fmt:
        path = reports.export_report(writer, frame, "sales", export_fmt)
        console.print(f"\n[bold green]Exported:[/bold green] {path}")


@report_group.command("inventory")
@click.option("--export", "export_fmt", type=click.Choice(["csv", "json"]), default=None)
@click.pass_context
def report_inventory(ctx: click.Context, export_fmt: str | None):
    cfg = ctx.obj["config"]
    database = _database(cfg)
    with database.session_scope() as session:
        frame = reports.products_frame(session)
    database.dispose()

    valuation, totals = inventory_valuation(frame)
    writer = ReportWriter(Path(cfg.get("output_dir", "outputs")) / "reports")
    console.print(writer.inventory_report(valuation, totals))
    if export_fmt:
        path = reports.export_report(writer, valuation, "inventory", export_fmt)
        console.print(f"\n[bold green]Exported:[/bold green] {path}")


@report_group.command("vat")
@click.option("--year", "-y", type=int, default=lambda: date.today().year)
@click.option("--month", "-m", type=click.IntRange(1, 12), default=None)
@click.option("--quarter", "-q", type=click.IntRange(1, 4), default=None)
@click.pass_context
def report_vat(ctx: click.Context, year: int, month: int | None, quarter: int | None):
    """BIR VAT summary for a year, month or quarter."""
    cfg = ctx.obj["config"]
    database = _database(cfg)
    try:
        with database.session_scope() as session:
            result = compliance.bir_report(session, "VAT", compliance.make_period(year, month, quarter))
    except FBMSError as e:
        _fail("Report failed", e)
    finally:
        database.dispose()

    table = Table(title=f"VAT report {result['period']}")
    table.add_column("Item")
    table.add_column("Amount", justify="right")
    for key in ("total_sales", "total_vat", "exempt_sales", "zero_rated_sales"):
        table.add_row(key.replace("_", " ").title(), format_peso(result[key]))
    console.print(table)


# ── check-deps ──────────────────────────────────────────────────────────────


@main.command("check-deps")
def check_deps_command():
    """Verify every runtime package can be imported."""
    from fbms.backend.cli.check_deps import main as check

    raise SystemExit(check())


if __name__ == "__main__":
    main()
