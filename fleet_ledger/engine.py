"""Core calculation engine for the fleet ledger.

This module turns raw weekly reports into calculated reports with net driver
earnings, under either the fixed weekly rent model or the percentage-of-profit
model. It also derives the advisory figures used when a new report is entered
(the weekly debt installment and the pro-rata rent for a partial week), filters
calculated reports and aggregates them for the dashboard.

Every function here is pure: inputs are never mutated and missing driver or
vehicle references degrade to placeholder values instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, TypeVar, Union

from .data_models import (
    CalculatedReport,
    Debt,
    Driver,
    RentQuote,
    ReportFilter,
    Vehicle,
    WeeklyReport,
    WorkModel,
)
from .utils import round_currency, sunday_first_weekday

UNKNOWN_DRIVER = "Unknown"
UNKNOWN_VEHICLE = "N/A"
ZERO = Decimal("0")

T = TypeVar("T", Driver, Vehicle)
Lookup = Union[Mapping[str, T], Iterable[T]]


def _index(records) -> Dict[str, object]:
    """Return ``records`` as a mapping of id to record."""
    if isinstance(records, Mapping):
        return records
    return {r.id: r for r in records}


def compute_report(
    report: WeeklyReport,
    drivers: Lookup[Driver],
    vehicles: Lookup[Vehicle],
) -> CalculatedReport:
    """Compute net earnings for a single weekly report.

    Parameters
    ----------
    report: WeeklyReport
        The raw report.
    drivers, vehicles:
        The current driver and vehicle records, either as an iterable or as
        a mapping keyed by id (use :func:`compute_reports` to index a whole
        snapshot once).

    Returns
    -------
    CalculatedReport
        The report with resolved names and computed totals. A driver that
        cannot be resolved is shown as ``"Unknown"`` and treated as a
        fixed-rent driver; an unresolved vehicle shows ``"N/A"``.
    """
    driver: Optional[Driver] = _index(drivers).get(report.driver_id)
    vehicle: Optional[Vehicle] = _index(vehicles).get(report.vehicle_id)

    # A stored rent always wins over the vehicle's current rent
    if report.rent_deduction is not None:
        rent_cost = report.rent_deduction
    elif vehicle is not None:
        rent_cost = vehicle.weekly_rent
    else:
        rent_cost = ZERO
    debt_payment = report.debt_payment or ZERO
    bolt_earnings = report.bolt_gross_earnings or ZERO
    total_gross = report.uber_gross_earnings + bolt_earnings
    operational_expenses = report.fuel_cost + report.tolls_cost + report.misc_expenses

    work_model = driver.work_model if driver else WorkModel.FIXED_RENT
    percentage = driver.driver_percentage if driver else None

    if work_model is WorkModel.PERCENTAGE_SPLIT and percentage:
        # Rent is absorbed by the fleet in the percentage model
        profit_base = total_gross - operational_expenses
        driver_share = profit_base * (percentage / Decimal(100))
        net_earnings = driver_share - debt_payment
    else:
        net_earnings = total_gross - operational_expenses - rent_cost - debt_payment

    return CalculatedReport(
        id=report.id,
        driver_id=report.driver_id,
        vehicle_id=report.vehicle_id,
        week_start_date=report.week_start_date,
        uber_gross_earnings=report.uber_gross_earnings,
        bolt_gross_earnings=bolt_earnings,
        rent_deduction=rent_cost,
        fuel_cost=report.fuel_cost,
        tolls_cost=report.tolls_cost,
        misc_expenses=report.misc_expenses,
        debt_payment=debt_payment,
        notes=report.notes,
        driver_name=driver.name if driver else UNKNOWN_DRIVER,
        vehicle_model=vehicle.model if vehicle else UNKNOWN_VEHICLE,
        vehicle_plate=vehicle.plate if vehicle else UNKNOWN_VEHICLE,
        rent_cost=rent_cost,
        total_gross_earnings=total_gross,
        net_earnings=net_earnings,
        work_model=work_model,
        driver_percentage=percentage,
    )


def compute_reports(
    reports: Iterable[WeeklyReport],
    drivers: Iterable[Driver],
    vehicles: Iterable[Vehicle],
) -> List[CalculatedReport]:
    """Recompute every report of a snapshot, preserving input order."""
    driver_index = _index(drivers)
    vehicle_index = _index(vehicles)
    return [compute_report(r, driver_index, vehicle_index) for r in reports]


def compute_weekly_debt_installment(driver_id: Optional[str], debts: Iterable[Debt]) -> Decimal:
    """Return the total weekly installment owed by a driver, rounded to cents.

    Each debt contributes ``total_amount / installments``. Debts are assumed
    to have at least one installment; the store rejects anything else.
    """
    if not driver_id:
        return round_currency(ZERO)
    total = sum(
        (d.total_amount / Decimal(d.installments) for d in debts if d.driver_id == driver_id),
        ZERO,
    )
    return round_currency(total)


def compute_pro_rata_rent(
    vehicle: Optional[Vehicle],
    week_start_date: Optional[date],
    work_model: WorkModel = WorkModel.FIXED_RENT,
) -> RentQuote:
    """Suggest the rent to charge for a (possibly partial) billing week.

    Billing weeks run from Sunday to Saturday. A report starting on a
    Wednesday is charged the five days up to and including the following
    Saturday; a report starting on Sunday is charged a single day.

    Percentage-split drivers are never charged rent, so the amount is zero
    for them. Without a vehicle nothing is charged; without a start date the
    full weekly rent is suggested.
    """
    if vehicle is None:
        return RentQuote(amount=round_currency(ZERO), days_charged=0)
    if week_start_date is None:
        days = 7
        amount = vehicle.weekly_rent
    else:
        day_of_week = sunday_first_weekday(week_start_date)
        days = 1 if day_of_week == 0 else 8 - day_of_week
        daily_rent = vehicle.weekly_rent / Decimal(7)
        amount = daily_rent * days
    if work_model is WorkModel.PERCENTAGE_SPLIT:
        amount = ZERO
    return RentQuote(amount=round_currency(amount), days_charged=days)


def prefill_report(
    driver_id: str,
    week_start_date: Optional[date],
    drivers: Iterable[Driver],
    vehicles: Iterable[Vehicle],
    debts: Iterable[Debt],
    vehicle_id: Optional[str] = None,
) -> Dict[str, object]:
    """Return the suggested values for a new report of ``driver_id``.

    The rent is priced on ``vehicle_id`` when given, otherwise on the vehicle
    currently assigned to the driver. The result holds ``vehicle_id``,
    ``rent_deduction``, ``days_charged`` and ``debt_payment``; the values are
    meant to pre-fill an editable form and are never applied to existing
    reports.
    """
    driver = _index(drivers).get(driver_id)
    if not vehicle_id and driver is not None:
        vehicle_id = driver.vehicle_id
    vehicle = _index(vehicles).get(vehicle_id) if vehicle_id else None
    work_model = driver.work_model if driver else WorkModel.FIXED_RENT
    quote = compute_pro_rata_rent(vehicle, week_start_date, work_model)
    return {
        "vehicle_id": vehicle.id if vehicle else None,
        "work_model": work_model,
        "rent_deduction": quote.amount,
        "days_charged": quote.days_charged,
        "debt_payment": compute_weekly_debt_installment(driver.id if driver else None, debts),
    }


def _matches(report, report_filter: ReportFilter) -> bool:
    if report_filter.driver_id and report.driver_id != report_filter.driver_id:
        return False
    if report_filter.vehicle_id and report.vehicle_id != report_filter.vehicle_id:
        return False
    if report_filter.start_date and report.week_start_date < report_filter.start_date:
        return False
    if report_filter.end_date and report.week_start_date > report_filter.end_date:
        return False
    return True


def filter_reports(reports: Iterable[CalculatedReport], report_filter: ReportFilter) -> List[CalculatedReport]:
    """Return the reports matching every constraint of ``report_filter``.

    Date bounds are inclusive. The input order is preserved.
    """
    return [r for r in reports if _matches(r, report_filter)]


def sort_reports(reports: Iterable[CalculatedReport], descending: bool = True) -> List[CalculatedReport]:
    """Sort reports by week start date, newest first by default."""
    return sorted(reports, key=lambda r: r.week_start_date, reverse=descending)


@dataclass
class WeekTotals:
    week_start_date: date
    gross: Decimal = ZERO
    expenses: Decimal = ZERO
    net: Decimal = ZERO


@dataclass
class FleetSummary:
    """Aggregate figures shown on the dashboard."""

    report_count: int
    total_gross: Decimal
    total_net: Decimal
    total_expenses: Decimal
    weekly: List[WeekTotals] = field(default_factory=list)
    expense_breakdown: Dict[str, Decimal] = field(default_factory=dict)


def summarize_reports(reports: Iterable[CalculatedReport]) -> FleetSummary:
    """Aggregate calculated reports into fleet totals.

    Weekly totals are returned oldest week first. The expense breakdown
    groups miscellaneous expenses together with debt payments.
    """
    reports = list(reports)
    weeks: Dict[date, WeekTotals] = {}
    for r in reports:
        week = weeks.setdefault(r.week_start_date, WeekTotals(r.week_start_date))
        week.gross += r.total_gross_earnings
        week.expenses += r.total_expenses
        week.net += r.net_earnings
    breakdown = {
        "rent": sum((r.rent_cost for r in reports), ZERO),
        "fuel": sum((r.fuel_cost for r in reports), ZERO),
        "tolls": sum((r.tolls_cost for r in reports), ZERO),
        "other": sum((r.misc_expenses + r.debt_payment for r in reports), ZERO),
    }
    return FleetSummary(
        report_count=len(reports),
        total_gross=sum((r.total_gross_earnings for r in reports), ZERO),
        total_net=sum((r.net_earnings for r in reports), ZERO),
        total_expenses=sum((r.total_expenses for r in reports), ZERO),
        weekly=[weeks[k] for k in sorted(weeks)],
        expense_breakdown=breakdown,
    )
