"""Output helpers for the fleet ledger.

This module renders calculated reports, fleet summaries, single-report
statements and the driver, vehicle and debt lists as plain text for the
terminal. Amounts are shown in euros with
two decimals.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from .data_models import CalculatedReport, Debt, Driver, Vehicle, WorkModel
from .engine import UNKNOWN_DRIVER, FleetSummary
from .utils import format_currency, round_currency


def print_summary(summary: FleetSummary) -> None:
    """Print the dashboard figures in a human-readable format."""
    print("Fleet overview")
    print("-" * 72)
    print(f"Reports            : {summary.report_count}")
    print(f"Total gross        : {format_currency(summary.total_gross)}")
    print(f"Total expenses     : {format_currency(summary.total_expenses)}")
    print(f"Total net          : {format_currency(summary.total_net)}")
    if summary.expense_breakdown:
        print("Expense breakdown")
        for name, value in summary.expense_breakdown.items():
            print(f"  {name:17s}: {format_currency(value)}")
    if summary.weekly:
        print(f"{'Week':12s} {'Gross':>15s} {'Expenses':>15s} {'Net':>15s}")
        for week in summary.weekly:
            print(
                f"{week.week_start_date.isoformat():12s} "
                f"{format_currency(week.gross):>15s} "
                f"{format_currency(week.expenses):>15s} "
                f"{format_currency(week.net):>15s}"
            )
    print("-" * 72)


def print_reports(reports: Iterable[CalculatedReport]) -> None:
    """Print calculated reports as a simple tab-separated table."""
    headers = ["Id", "Week", "Driver", "Vehicle", "Gross", "Expenses", "Net"]
    print("\t".join(headers))
    for r in reports:
        row = [
            r.id,
            r.week_start_date.isoformat(),
            r.driver_name,
            f"{r.vehicle_model} ({r.vehicle_plate})",
            f"{r.total_gross_earnings:.2f}",
            f"{r.total_expenses:.2f}",
            f"{r.net_earnings:.2f}",
        ]
        print("\t".join(row))


def print_statement(report: CalculatedReport) -> None:
    """Print the weekly statement handed to a driver."""
    print(f"Statement {report.driver_name} - week of {report.week_start_date.isoformat()}")
    print("=" * 72)
    print(f"Vehicle            : {report.vehicle_model} ({report.vehicle_plate})")
    if report.work_model is WorkModel.PERCENTAGE_SPLIT and report.driver_percentage:
        print(f"Model              : {report.driver_percentage}% of profit")
    else:
        print("Model              : fixed rent")
    print(f"Uber               : {format_currency(report.uber_gross_earnings)}")
    print(f"Bolt               : {format_currency(report.bolt_gross_earnings)}")
    print(f"Total gross        : {format_currency(report.total_gross_earnings)}")
    print(f"Rent               : {format_currency(report.rent_cost)}")
    print(f"Fuel               : {format_currency(report.fuel_cost)}")
    print(f"Tolls              : {format_currency(report.tolls_cost)}")
    print(f"Other              : {format_currency(report.misc_expenses)}")
    print(f"Debt payment       : {format_currency(report.debt_payment)}")
    print("-" * 72)
    print(f"Net                : {format_currency(report.net_earnings)}")
    if report.notes:
        print(f"Notes              : {report.notes}")
    print("=" * 72)


def describe_work_model(driver: Driver) -> str:
    """Short label of a driver's compensation, e.g. ``60% / 40%``."""
    if driver.work_model is WorkModel.PERCENTAGE_SPLIT and driver.driver_percentage:
        share = driver.driver_percentage
        return f"{share.normalize():f}% / {(Decimal(100) - share).normalize():f}%"
    return "fixed rent"


def print_drivers(drivers: Iterable[Driver]) -> None:
    print("\t".join(["Id", "Name", "NIF", "Phone", "Vehicle", "Model"]))
    for d in drivers:
        print("\t".join([d.id, d.name, d.tax_id, d.phone, d.vehicle_id or "-", describe_work_model(d)]))


def print_vehicles(vehicles: Iterable[Vehicle]) -> None:
    print("\t".join(["Id", "Vehicle", "Plate", "Fuel", "Weekly rent"]))
    for v in vehicles:
        print("\t".join([v.id, f"{v.make} {v.model}", v.plate, v.fuel_type.value, f"{v.weekly_rent:.2f}"]))


def print_debts(debts: Iterable[Debt], drivers: Iterable[Driver]) -> None:
    """Print debts with the driver's name and the weekly installment."""
    names = {d.id: d.name for d in drivers}
    print("\t".join(["Id", "Driver", "Description", "Total", "Installments", "Weekly"]))
    for d in debts:
        row = [
            d.id,
            names.get(d.driver_id, UNKNOWN_DRIVER),
            d.description,
            f"{d.total_amount:.2f}",
            str(d.installments),
            f"{round_currency(d.weekly_installment):.2f}",
        ]
        print("\t".join(row))
