"""Command‑line interface for the fleet ledger.

This module uses the ``click`` library to implement a multi‑command interface
over the fleet store. Users can register and list drivers, vehicles and debts, enter
weekly reports (with the rent and debt installment pre-filled), list and
filter the calculated reports, print the fleet overview or a driver's weekly
statement, and export results to JSON/CSV files.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Optional

import click

from fleet_ledger_web.store import StoreError, create_store_from_env, new_id, seed_demo_data

from .advisor import analyze_report
from .data_models import Debt, Driver, FuelType, ReportFilter, Vehicle, WeeklyReport, WorkModel
from .engine import compute_report, filter_reports, prefill_report, sort_reports, summarize_reports
from .exporter import export_to_csv, export_to_json
from .formatter import print_debts, print_drivers, print_reports, print_statement, print_summary, print_vehicles
from .settings import load_settings
from .utils import (
    decimal_from_str,
    format_currency,
    normalize_work_model,
    optional_date,
    parse_fuel_type,
    parse_iso_date,
)


def parse_amount(value: Optional[str], name: str = "amount") -> Optional[Decimal]:
    """Parse a money amount given on the command line; empty means ``None``."""
    if value is None or value == "":
        return None
    try:
        amount = decimal_from_str(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint=name)
    return amount


def parse_date_option(value: Optional[str], name: str = "date") -> Optional[date]:
    try:
        return optional_date(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint=name)


def _store(ctx: click.Context):
    return ctx.obj["store"]


def _save(store, record) -> None:
    try:
        store.save(record)
    except StoreError as exc:
        raise click.ClickException(str(exc))


def _filtered_reports(store, driver, vehicle, start, end):
    snapshot = store.snapshot()
    report_filter = ReportFilter(
        driver_id=driver or None,
        vehicle_id=vehicle or None,
        start_date=parse_date_option(start, "--start"),
        end_date=parse_date_option(end, "--end"),
    )
    return filter_reports(snapshot.calculated_reports(), report_filter)


@click.group()
@click.option("--database", "database", envvar="FLEET_DATABASE_URL", help="SQLAlchemy database URL")
@click.option("--log-level", "log_level", help="Logging level (DEBUG, INFO, WARNING, ERROR)")
@click.pass_context
def cli(ctx: click.Context, database: Optional[str], log_level: Optional[str]) -> None:
    """Weekly earnings ledger for a TVDE fleet."""
    settings = load_settings()
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.WARNING)
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    # basicConfig leaves an already configured root logger alone
    logging.getLogger().setLevel(level)
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["store"] = create_store_from_env(database or settings.database_url)


@cli.command("init-db")
@click.option("--demo", is_flag=True, help="Load a small sample fleet")
@click.pass_context
def init_db(ctx: click.Context, demo: bool) -> None:
    """Create the database tables (optionally with sample data)."""
    store = _store(ctx)
    if demo:
        seed_demo_data(store)
        click.echo("Database initialised with demo data")
    else:
        click.echo("Database initialised")


@cli.command("add-driver")
@click.option("--id", "record_id", help="Existing driver id to update")
@click.option("--name", required=True, help="Full name")
@click.option("--nif", default="", help="Tax identification number")
@click.option("--phone", default="", help="Phone number")
@click.option("--email", default="", help="E-mail address")
@click.option("--vehicle", "vehicle_id", help="Assigned vehicle id")
@click.option(
    "--work-model",
    "work_model",
    type=click.Choice([m.value for m in WorkModel], case_sensitive=False),
    default=WorkModel.FIXED_RENT.value,
    help="Compensation model",
)
@click.option("--percentage", help="Driver share of profit (0-100) for the Percentage model")
@click.pass_context
def add_driver(ctx, record_id, name, nif, phone, email, vehicle_id, work_model, percentage) -> None:
    """Register or update a driver."""
    model = normalize_work_model(work_model)
    pct = parse_amount(percentage, "--percentage")
    if model is WorkModel.PERCENTAGE_SPLIT and pct is None:
        raise click.BadParameter("The Percentage model needs --percentage", param_hint="--percentage")
    driver = Driver(
        id=record_id or new_id(),
        name=name,
        tax_id=nif,
        phone=phone,
        email=email,
        vehicle_id=vehicle_id or None,
        work_model=model,
        driver_percentage=pct if model is WorkModel.PERCENTAGE_SPLIT else None,
    )
    _save(_store(ctx), driver)
    click.echo(f"Driver saved: {driver.id}")


@cli.command("add-vehicle")
@click.option("--id", "record_id", help="Existing vehicle id to update")
@click.option("--make", required=True)
@click.option("--model", required=True)
@click.option("--plate", required=True, help="License plate")
@click.option("--weekly-rent", "weekly_rent", required=True, help="Weekly rent in euros")
@click.option(
    "--fuel-type",
    "fuel_type",
    type=click.Choice([f.value for f in FuelType], case_sensitive=False),
    required=True,
)
@click.pass_context
def add_vehicle(ctx, record_id, make, model, plate, weekly_rent, fuel_type) -> None:
    """Register or update a vehicle."""
    vehicle = Vehicle(
        id=record_id or new_id(),
        make=make,
        model=model,
        plate=plate,
        weekly_rent=parse_amount(weekly_rent, "--weekly-rent"),
        fuel_type=parse_fuel_type(fuel_type),
    )
    _save(_store(ctx), vehicle)
    click.echo(f"Vehicle saved: {vehicle.id}")


@cli.command("add-debt")
@click.option("--id", "record_id", help="Existing debt id to update")
@click.option("--driver", "driver_id", required=True, help="Driver id")
@click.option("--description", default="", help="What the debt is for")
@click.option("--total", required=True, help="Total amount owed")
@click.option("--installments", required=True, type=int, help="Number of weekly installments")
@click.option("--created-at", "created_at", help="Creation date (YYYY-MM-DD), defaults to today")
@click.pass_context
def add_debt(ctx, record_id, driver_id, description, total, installments, created_at) -> None:
    """Register a debt repaid in weekly installments."""
    debt = Debt(
        id=record_id or new_id(),
        driver_id=driver_id,
        description=description,
        total_amount=parse_amount(total, "--total"),
        installments=installments,
        created_at=parse_date_option(created_at, "--created-at") or date.today(),
    )
    _save(_store(ctx), debt)
    click.echo(f"Debt saved: {debt.id} ({format_currency(debt.weekly_installment)} per week)")


@cli.command("add-report")
@click.option("--id", "record_id", help="Existing report id to update")
@click.option("--driver", "driver_id", required=True, help="Driver id")
@click.option("--week-start", "week_start", required=True, help="Week start date (YYYY-MM-DD)")
@click.option("--vehicle", "vehicle_id", help="Vehicle id (defaults to the driver's assigned vehicle)")
@click.option("--uber", required=True, help="Uber gross earnings")
@click.option("--bolt", default="0", help="Bolt gross earnings")
@click.option("--fuel", default="0", help="Fuel or charging cost")
@click.option("--tolls", default="0", help="Tolls cost")
@click.option("--misc", default="0", help="Other expenses (washing, etc.)")
@click.option("--rent", help="Rent charged this week (defaults to the pro-rata rent)")
@click.option("--debt-payment", "debt_payment", help="Debt installment paid (defaults to the weekly installment)")
@click.option("--notes", help="Free text note")
@click.pass_context
def add_report(ctx, record_id, driver_id, week_start, vehicle_id, uber, bolt, fuel, tolls, misc, rent, debt_payment, notes) -> None:
    """Enter a weekly report for a driver.

    For a new report the rent and debt payment are pre-filled from the
    driver's vehicle and debts unless given explicitly.
    """
    store = _store(ctx)
    snapshot = store.snapshot()
    week_start_date = parse_date_option(week_start, "--week-start")
    existing = store.get("report", record_id) if record_id else None
    if not vehicle_id and existing is not None:
        vehicle_id = existing.vehicle_id
    suggested = prefill_report(
        driver_id, week_start_date, snapshot.drivers, snapshot.vehicles, snapshot.debts, vehicle_id=vehicle_id
    )
    vehicle_id = vehicle_id or suggested["vehicle_id"]
    if not vehicle_id:
        raise click.BadParameter("Driver has no assigned vehicle; pass --vehicle", param_hint="--vehicle")

    rent_value = parse_amount(rent, "--rent")
    debt_value = parse_amount(debt_payment, "--debt-payment")
    if existing is None:
        # Suggestions only apply to new reports
        rent_value = suggested["rent_deduction"] if rent_value is None else rent_value
        debt_value = suggested["debt_payment"] if debt_value is None else debt_value
    else:
        rent_value = existing.rent_deduction if rent_value is None else rent_value
        debt_value = existing.debt_payment if debt_value is None else debt_value

    report = WeeklyReport(
        id=record_id or new_id(),
        driver_id=driver_id,
        vehicle_id=vehicle_id,
        week_start_date=week_start_date,
        uber_gross_earnings=parse_amount(uber, "--uber"),
        bolt_gross_earnings=parse_amount(bolt, "--bolt") or Decimal("0"),
        rent_deduction=rent_value,
        fuel_cost=parse_amount(fuel, "--fuel") or Decimal("0"),
        tolls_cost=parse_amount(tolls, "--tolls") or Decimal("0"),
        misc_expenses=parse_amount(misc, "--misc") or Decimal("0"),
        debt_payment=debt_value,
        notes=notes,
    )
    _save(store, report)
    calculated = compute_report(report, snapshot.drivers, snapshot.vehicles)
    click.echo(f"Report saved: {report.id} (net {format_currency(calculated.net_earnings)})")


@cli.command()
@click.argument("kind", type=click.Choice(["driver", "vehicle", "debt", "report"]))
@click.argument("record_id")
@click.pass_context
def delete(ctx, kind: str, record_id: str) -> None:
    """Delete a record. Reports of deleted drivers or vehicles are kept."""
    if not _store(ctx).delete(kind, record_id):
        raise click.ClickException(f"No {kind} with id {record_id}")
    click.echo(f"Deleted {kind} {record_id}")


@cli.command()
@click.pass_context
def drivers(ctx) -> None:
    """List drivers with their vehicle and compensation model."""
    print_drivers(_store(ctx).list_records("driver"))


@cli.command()
@click.pass_context
def vehicles(ctx) -> None:
    """List vehicles with their weekly rent."""
    print_vehicles(_store(ctx).list_records("vehicle"))


@cli.command()
@click.option("--driver", "driver", help="Only debts of this driver id")
@click.pass_context
def debts(ctx, driver) -> None:
    """List debts with their weekly installment."""
    snapshot = _store(ctx).snapshot()
    selected = [d for d in snapshot.debts if not driver or d.driver_id == driver]
    print_debts(selected, snapshot.drivers)


@cli.command()
@click.option("--driver", "driver", help="Only reports of this driver id")
@click.option("--vehicle", "vehicle", help="Only reports of this vehicle id")
@click.option("--start", "start", help="Earliest week start (YYYY-MM-DD)")
@click.option("--end", "end", help="Latest week start (YYYY-MM-DD)")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
@click.pass_context
def reports(ctx, driver, vehicle, start, end, output) -> None:
    """List calculated reports, newest week first."""
    selected = sort_reports(_filtered_reports(_store(ctx), driver, vehicle, start, end))
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, selected, summarize_reports(selected))
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, selected)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Reports exported to {path}")
    else:
        print_reports(selected)


@cli.command()
@click.option("--driver", "driver", help="Only reports of this driver id")
@click.option("--vehicle", "vehicle", help="Only reports of this vehicle id")
@click.option("--start", "start", help="Earliest week start (YYYY-MM-DD)")
@click.option("--end", "end", help="Latest week start (YYYY-MM-DD)")
@click.pass_context
def summary(ctx, driver, vehicle, start, end) -> None:
    """Print fleet totals, weekly figures and the expense breakdown."""
    print_summary(summarize_reports(_filtered_reports(_store(ctx), driver, vehicle, start, end)))


def _calculated_report(store, report_id: str):
    for report in store.snapshot().calculated_reports():
        if report.id == report_id:
            return report
    raise click.ClickException(f"No report with id {report_id}")


@cli.command()
@click.argument("report_id")
@click.pass_context
def statement(ctx, report_id: str) -> None:
    """Print the weekly statement of a single report."""
    print_statement(_calculated_report(_store(ctx), report_id))


@cli.command()
@click.argument("driver_id")
@click.argument("week_start")
@click.pass_context
def prefill(ctx, driver_id: str, week_start: str) -> None:
    """Show the suggested rent and debt payment for a new report."""
    snapshot = _store(ctx).snapshot()
    try:
        week_start_date = parse_iso_date(week_start)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="WEEK_START")
    suggested = prefill_report(driver_id, week_start_date, snapshot.drivers, snapshot.vehicles, snapshot.debts)
    click.echo(f"Vehicle            : {suggested['vehicle_id'] or 'none assigned'}")
    click.echo(f"Days charged       : {suggested['days_charged']}")
    click.echo(f"Rent               : {format_currency(suggested['rent_deduction'])}")
    click.echo(f"Debt installment   : {format_currency(suggested['debt_payment'])}")


@cli.command()
@click.argument("report_id")
@click.pass_context
def analyze(ctx, report_id: str) -> None:
    """Ask the AI advisor to comment on a report."""
    report = _calculated_report(_store(ctx), report_id)
    click.echo(analyze_report(report, ctx.obj["settings"]))


if __name__ == "__main__":
    cli()
