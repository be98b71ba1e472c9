"""Command-line interface for fleet metering and billing."""

import json
import sys
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from . import db
from .analysis import aggregation
from .collectors import csv_import, sheets_api
from .config import load_billing_parameters
from .errors import FleetError
from .ledger import Ledger
from .log import setup_logging
from .models import DEFAULT_KIND, EntryStatus, Equipment, MeasurementCategory, Window
from .readings import record_entry
from .reports import printable, summary

console = Console()


def parse_date(value: str | None, default: date | None = None) -> date | None:
    if not value:
        return default
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise click.BadParameter(f"Expected YYYY-MM-DD, got {value!r}")


def parse_decimal(value: str | None) -> Decimal | None:
    if value is None:
        return None
    try:
        return Decimal(value.replace(",", "."))
    except InvalidOperation:
        raise click.BadParameter(f"Not a number: {value!r}")


def fail(message: str) -> None:
    console.print(f"[red]Error: {message}[/red]")
    sys.exit(1)


@click.group()
@click.option("--db-path", type=click.Path(), help="Path to SQLite database")
@click.option("--config", "config_path", type=click.Path(exists=True), help="Path to billing.yaml")
@click.pass_context
def cli(ctx, db_path, config_path):
    """Fleet metering - track equipment readings and compute billing."""
    setup_logging(console)
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = Path(db_path) if db_path else None
    ctx.obj["config_path"] = Path(config_path) if config_path else None


# Database commands
@cli.group()
def database():
    """Database management commands."""
    pass


@database.command("init")
@click.pass_context
def db_init(ctx):
    """Initialize the database schema."""
    db.init_db(ctx.obj["db_path"])
    console.print("[green]Database initialized successfully[/green]")


@database.command("stats")
@click.pass_context
def db_stats(ctx):
    """Show database statistics."""
    stats = db.get_stats(ctx.obj["db_path"])

    table = Table(title="Database Statistics")
    table.add_column("Category", style="cyan")
    table.add_column("Count", justify="right")
    table.add_column("Range")

    table.add_row("Equipment", str(stats["equipment"]["count"]), "")
    for category, count in stats.get("equipment_by_category", {}).items():
        table.add_row(f"  └ {category}", str(count), "")

    entries = stats["entries"]
    table.add_row(
        "Entries",
        str(entries["count"]),
        f"{entries['earliest'] or 'N/A'} → {entries['latest'] or 'N/A'}",
    )
    for status, count in stats.get("entries_by_status", {}).items():
        table.add_row(f"  └ {status}", str(count), "")

    if stats["orphaned_entries"]["count"]:
        table.add_row("[yellow]Orphaned entries[/yellow]", str(stats["orphaned_entries"]["count"]), "")

    console.print(table)


# Equipment commands
@cli.group()
def equipment():
    """Equipment roster commands."""
    pass


@equipment.command("add")
@click.argument("equipment_id")
@click.option("--name", required=True, help="Display name")
@click.option("--plate", default="", help="License plate or serial")
@click.option("--kind", default=DEFAULT_KIND, help="Vehicle type (informational)")
@click.option(
    "--category",
    type=click.Choice(["KM", "H"], case_sensitive=False),
    default="KM",
    help="KM for odometer, H for hour meter",
)
@click.option("--rate", required=True, help="Monthly rate")
@click.option("--push", is_flag=True, help="Also append the equipment to the spreadsheet")
@click.option("--url", help="Spreadsheet web app URL (or set FLEET_API_URL)")
@click.pass_context
def equipment_add(ctx, equipment_id, name, plate, kind, category, rate, push, url):
    """Register a new equipment."""
    eq = Equipment(
        id=equipment_id,
        name=name,
        plate=plate,
        kind=kind,
        category=MeasurementCategory.parse(category),
        monthly_rate=parse_decimal(rate),
    )
    try:
        db.add_equipment(eq, ctx.obj["db_path"])
    except ValueError as e:
        fail(str(e))
    console.print(f"[green]Registered {eq.name} ({eq.category.value})[/green]")

    if push:
        try:
            sheets_api.push_equipment(eq, url)
        except (sheets_api.SheetsApiError, ValueError) as e:
            fail(f"Saved locally but not pushed: {e}")
        console.print("[green]Pushed to spreadsheet[/green]")


@equipment.command("list")
@click.pass_context
def equipment_list(ctx):
    """List registered equipment."""
    roster = db.list_equipment(ctx.obj["db_path"])

    if not roster:
        console.print("[yellow]No equipment registered[/yellow]")
        return

    table = Table(title="Equipment")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Plate", style="dim")
    table.add_column("Kind")
    table.add_column("Category", justify="center")
    table.add_column("Monthly rate", justify="right")
    table.add_column("Last reading", justify="right")
    table.add_column("On", style="dim")

    ledger = Ledger(db.list_entries(ctx.obj["db_path"]))
    for eq in roster:
        last = ledger.latest(eq.id)
        table.add_row(
            eq.id, eq.name, eq.plate, eq.kind, eq.category.value,
            f"{summary.money(eq.monthly_rate):,.2f}",
            str(last.end_value) if last else "-",
            last.date.strftime("%d/%m/%Y") if last else "-",
        )

    console.print(table)


# Entry commands
@cli.group()
def entry():
    """Daily reading commands."""
    pass


@entry.command("add")
@click.argument("equipment_id")
@click.option("--date", "day", help="Reading date (YYYY-MM-DD), defaults to today")
@click.option("--end", "end_value", help="Final odometer reading (KM equipment)")
@click.option("--hours", type=int, default=0, help="Hours worked (H equipment)")
@click.option("--minutes", type=int, default=0, help="Minutes worked (H equipment)")
@click.option("--broken", is_flag=True, help="Equipment was unavailable that day")
@click.option("--push", is_flag=True, help="Also append the entry to the spreadsheet")
@click.option("--url", help="Spreadsheet web app URL (or set FLEET_API_URL)")
@click.pass_context
def entry_add(ctx, equipment_id, day, end_value, hours, minutes, broken, push, url):
    """Record a daily reading.

    The start value is carried forward from the previous reading.
    """
    status = EntryStatus.BROKEN if broken else EntryStatus.ACTIVE
    try:
        new_entry = record_entry(
            equipment_id,
            parse_date(day, date.today()),
            status=status,
            end_value=parse_decimal(end_value),
            hours=hours,
            minutes=minutes,
            db_path=ctx.obj["db_path"],
        )
    except (FleetError, ValueError) as e:
        fail(str(e))

    console.print(
        f"[green]Recorded {new_entry.date}: {new_entry.start_value} → {new_entry.end_value} "
        f"({new_entry.production} produced, {new_entry.status.value})[/green]"
    )

    if push:
        try:
            sheets_api.push_entry(new_entry, url)
        except (sheets_api.SheetsApiError, ValueError) as e:
            fail(f"Saved locally but not pushed: {e}")
        console.print("[green]Pushed to spreadsheet[/green]")


@entry.command("list")
@click.option("--equipment", "equipment_id", help="Only show one equipment")
@click.option("--days", default=30, help="Number of days to show")
@click.pass_context
def entry_list(ctx, equipment_id, days):
    """List recent readings, newest first."""
    roster = {eq.id: eq for eq in db.list_equipment(ctx.obj["db_path"])}
    entries = db.list_entries(ctx.obj["db_path"], equipment_id=equipment_id)
    since = date.today() - timedelta(days=days)
    entries = sorted((e for e in entries if e.date >= since), key=lambda e: e.date, reverse=True)

    if not entries:
        console.print("[yellow]No entries found[/yellow]")
        return

    table = Table(title=f"Entries (last {days} days)")
    table.add_column("Date", style="cyan")
    table.add_column("Equipment")
    table.add_column("Start", justify="right")
    table.add_column("End", justify="right")
    table.add_column("Production", justify="right")
    table.add_column("Status")

    for e in entries:
        eq = roster.get(e.equipment_id)
        status = "[green]Active[/green]" if e.status is EntryStatus.ACTIVE else "[red]Broken[/red]"
        table.add_row(
            e.date.strftime("%d/%m/%Y"),
            eq.name if eq else e.equipment_id,
            str(e.start_value),
            str(e.end_value),
            f"{summary.quantity(e.production)}",
            status,
        )

    console.print(table)


# Import commands
@cli.group("import")
def import_cmd():
    """Import data from various sources."""
    pass


@import_cmd.command("csv")
@click.option("--equipment", "equipment_path", type=click.Path(exists=True), help="Equipment CSV")
@click.option("--entries", "entries_path", type=click.Path(exists=True), help="Entries CSV")
@click.pass_context
def import_csv(ctx, equipment_path, entries_path):
    """Import equipment and/or entries from CSV files."""
    if not equipment_path and not entries_path:
        console.print("[red]Please specify --equipment and/or --entries[/red]")
        return

    try:
        if equipment_path:
            result = csv_import.import_equipment(Path(equipment_path), ctx.obj["db_path"])
            console.print(f"[green]Imported {result['imported']} equipment[/green]")
            if result["skipped"]:
                console.print(f"[yellow]Skipped {result['skipped']} equipment[/yellow]")

        if entries_path:
            result = csv_import.import_entries(Path(entries_path), ctx.obj["db_path"])
            console.print(f"[green]Imported {result['imported']} entries[/green]")
            if result["skipped"]:
                console.print(f"[yellow]Skipped {result['skipped']} entries[/yellow]")
    except ValueError as e:
        fail(str(e))


@import_cmd.command("api")
@click.option("--url", help="Spreadsheet web app URL (or set FLEET_API_URL)")
@click.pass_context
def import_api(ctx, url):
    """Copy equipment and entries from the spreadsheet web app."""
    try:
        console.print("[cyan]Fetching spreadsheet data...[/cyan]")
        result = sheets_api.import_from_api(url, ctx.obj["db_path"])
    except (sheets_api.SheetsApiError, ValueError) as e:
        fail(str(e))

    for kind in ("equipment", "entries"):
        console.print(f"[green]Imported {result[kind]['imported']} {kind}[/green]")
        if result[kind]["skipped"]:
            console.print(f"[yellow]Skipped {result[kind]['skipped']} {kind}[/yellow]")


# Reporting commands
@cli.command()
@click.option("--from", "from_date", help="Window start (YYYY-MM-DD)")
@click.option("--to", "to_date", help="Window end (YYYY-MM-DD), defaults to today")
@click.option("--days", type=int, help="Window of the last N days instead of month to date")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--html", "html_path", type=click.Path(), help="Write a printable HTML report")
@click.pass_context
def report(ctx, from_date, to_date, days, as_json, html_path):
    """Compute production and billing for a date window.

    Defaults to the current month up to today.
    """
    today = date.today()
    try:
        end = parse_date(to_date, today)
        if from_date:
            window = Window(parse_date(from_date), end)
        elif days is not None:
            window = Window.last_days(days, end)
        else:
            window = Window.month_to_date(end)

        params = load_billing_parameters(ctx.obj["config_path"])
        roster = db.list_equipment(ctx.obj["db_path"])
        entries = db.list_entries(ctx.obj["db_path"])
        result = aggregation.compute_report(roster, entries, window, today=today, params=params)
    except (FleetError, ValueError) as e:
        fail(str(e))

    if html_path:
        daily = aggregation.daily_production(roster, entries, window)
        Path(html_path).write_text(printable.generate_report_html(result, daily))
        console.print(f"[green]Report written to {html_path}[/green]")
        return

    data = summary.report_to_dict(result)
    if as_json:
        console.print(json.dumps(data, indent=2))
    else:
        console.print(summary.format_report_text(data))


@cli.command()
@click.option("--limit", default=10, help="Number of entries")
@click.pass_context
def recent(ctx, limit):
    """Show production of the most recent entries."""
    roster = db.list_equipment(ctx.obj["db_path"])
    entries = db.list_entries(ctx.obj["db_path"])
    rows = aggregation.recent_production(roster, entries, limit)

    if not rows:
        console.print("[yellow]No entries found[/yellow]")
        return

    table = Table(title="Recent Production")
    table.add_column("Date", style="cyan")
    table.add_column("Equipment")
    table.add_column("Production", justify="right")

    for row in rows:
        table.add_row(row["date"].strftime("%d %b"), row["name"], str(summary.quantity(row["production"])))

    console.print(table)


@cli.command("config")
@click.pass_context
def show_config(ctx):
    """Show the active billing parameters."""
    params = load_billing_parameters(ctx.obj["config_path"])
    console.print(f"Reference month: {params.reference_month_days} days")
    console.print(f"Overtime threshold: {params.overtime_threshold} hours")


if __name__ == "__main__":
    cli()
