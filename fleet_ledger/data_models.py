"""Data models for the fleet ledger.

This module defines dataclasses for the records the calculation engine works
with: drivers, vehicles, driver debts and the raw weekly financial reports,
plus the derived ``CalculatedReport`` the engine produces from them. Amounts
are ``Decimal`` so that currency arithmetic stays exact.
"""

from dataclasses import dataclass, fields
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional


class WorkModel(str, Enum):
    """Compensation model of a driver.

    The values match what the store persists in the ``work_model`` column.
    """

    FIXED_RENT = "Rent"
    PERCENTAGE_SPLIT = "Percentage"


class FuelType(str, Enum):
    DIESEL = "Diesel"
    GASOLINE = "Gasoline"
    ELECTRIC = "Electric"
    HYBRID = "Hybrid"


@dataclass(frozen=True)
class Driver:
    """A driver working for the fleet.

    Attributes
    ----------
    vehicle_id: Optional[str]
        The vehicle currently assigned to the driver, if any. Reports keep
        their own vehicle reference, so reassigning a driver never changes
        historical reports.
    work_model: WorkModel
        ``FIXED_RENT`` drivers pay the vehicle's weekly rent and keep the
        rest. ``PERCENTAGE_SPLIT`` drivers keep ``driver_percentage`` percent
        of the profit and pay no rent.
    driver_percentage: Optional[Decimal]
        The driver's share of profit, from 0 to 100. Only meaningful for the
        percentage model.
    """

    id: str
    name: str
    tax_id: str = ""
    phone: str = ""
    email: str = ""
    vehicle_id: Optional[str] = None
    work_model: WorkModel = WorkModel.FIXED_RENT
    driver_percentage: Optional[Decimal] = None


@dataclass(frozen=True)
class Vehicle:
    id: str
    make: str
    model: str
    plate: str
    weekly_rent: Decimal
    fuel_type: FuelType


@dataclass(frozen=True)
class Debt:
    """An amount owed by a driver, repaid in equal weekly installments."""

    id: str
    driver_id: str
    description: str
    total_amount: Decimal
    installments: int  # number of weekly payments, at least 1
    created_at: date

    @property
    def weekly_installment(self) -> Decimal:
        return self.total_amount / Decimal(self.installments)


@dataclass(frozen=True)
class WeeklyReport:
    """Raw weekly figures for one driver and the vehicle used that week.

    ``bolt_gross_earnings``, ``rent_deduction`` and ``debt_payment`` may be
    ``None`` for records that never stored them. An explicit zero in
    ``rent_deduction`` is a real value and is never replaced by the vehicle's
    rent.
    """

    id: str
    driver_id: str
    vehicle_id: str
    week_start_date: date
    uber_gross_earnings: Decimal
    fuel_cost: Decimal
    tolls_cost: Decimal
    misc_expenses: Decimal
    bolt_gross_earnings: Optional[Decimal] = None
    rent_deduction: Optional[Decimal] = None
    debt_payment: Optional[Decimal] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class CalculatedReport:
    """A weekly report enriched with resolved names and computed earnings.

    Besides the original report fields (with ``bolt_gross_earnings``,
    ``rent_deduction`` and ``debt_payment`` always numeric) it carries the
    display names of the driver and vehicle, the rent actually charged and
    the net amount payable to the driver. A negative ``net_earnings`` means
    the driver owes the fleet.
    """

    id: str
    driver_id: str
    vehicle_id: str
    week_start_date: date
    uber_gross_earnings: Decimal
    bolt_gross_earnings: Decimal
    rent_deduction: Decimal
    fuel_cost: Decimal
    tolls_cost: Decimal
    misc_expenses: Decimal
    debt_payment: Decimal
    notes: Optional[str]
    driver_name: str
    vehicle_model: str
    vehicle_plate: str
    rent_cost: Decimal
    total_gross_earnings: Decimal
    net_earnings: Decimal
    work_model: WorkModel
    driver_percentage: Optional[Decimal]

    @property
    def operational_expenses(self) -> Decimal:
        return self.fuel_cost + self.tolls_cost + self.misc_expenses

    @property
    def total_expenses(self) -> Decimal:
        """Everything deducted from gross earnings, as shown to the manager."""
        return self.operational_expenses + self.rent_cost + self.debt_payment

    def to_weekly_report(self) -> WeeklyReport:
        names = {f.name for f in fields(WeeklyReport)}
        return WeeklyReport(**{name: getattr(self, name) for name in names})


@dataclass(frozen=True)
class ReportFilter:
    """Optional constraints for :func:`fleet_ledger.engine.filter_reports`.

    Empty strings and ``None`` both mean "no constraint".
    """

    driver_id: Optional[str] = None
    vehicle_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


@dataclass(frozen=True)
class RentQuote:
    """Rent suggested for a new report and the number of days it covers."""

    amount: Decimal
    days_charged: int
