"""Utility functions for the fleet ledger.

This module provides helpers for parsing user and store input into Python data
types (ISO calendar dates, ``Decimal`` amounts, compensation models), for
rounding and formatting euro amounts, and for the Sunday-first weekday
numbering the rent billing week is based on.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext
from typing import Optional, Union

from .data_models import FuelType, WorkModel

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

CENT = Decimal("0.01")


def parse_iso_date(value: Union[str, date]) -> date:
    """Parse a ``YYYY-MM-DD`` string into a ``date`` object.

    Strings carrying a time component (``2023-10-01T12:00:00``) are accepted
    and truncated to the calendar date, which is how the store reports
    creation timestamps.

    Raises
    ------
    ValueError
        If the string is not a valid calendar date.
    """
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value.strip().split("T")[0])
    except (AttributeError, ValueError) as exc:
        raise ValueError(f"Invalid date (expected YYYY-MM-DD): {value}") from exc


def optional_date(value: Optional[Union[str, date]]) -> Optional[date]:
    """Like :func:`parse_iso_date` but empty values map to ``None``."""
    if value is None or value == "":
        return None
    return parse_iso_date(value)


def decimal_from_str(value: Union[str, int, float, Decimal]) -> Decimal:
    """Convert a numeric value into a ``Decimal``.

    Strings may use a comma as decimal separator (``"12,50"``), as is usual
    in Portugal. When both a dot and a comma appear, the last one is the
    decimal separator and the other groups thousands, so ``"1.234,50"`` and
    ``"1,234.50"`` are the same amount. Floats are converted through ``str``
    so that ``0.1`` stays ``Decimal("0.1")``. It raises ``ValueError`` if
    conversion fails.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    try:
        cleaned = value.strip().replace(" ", "")
        if cleaned.rfind(",") > cleaned.rfind("."):
            cleaned = cleaned.replace(".", "").replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
        return Decimal(cleaned)
    except (AttributeError, InvalidOperation) as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc


def optional_decimal(value) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    return decimal_from_str(value)


def round_currency(amount: Decimal) -> Decimal:
    """Round an amount to cents, halves away from zero."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def sunday_first_weekday(dt: date) -> int:
    """Return the weekday of ``dt`` with 0 = Sunday and 6 = Saturday."""
    return (dt.weekday() + 1) % 7


def normalize_work_model(value: Optional[Union[str, WorkModel]]) -> WorkModel:
    """Map a stored compensation model onto :class:`WorkModel`.

    Legacy records written before the model existed carry no value and are
    treated as fixed-rent drivers. Both the stored values (``"Rent"``,
    ``"Percentage"``) and the enum member names are accepted.
    """
    if isinstance(value, WorkModel):
        return value
    if value is None or not value.strip():
        return WorkModel.FIXED_RENT
    cleaned = value.strip()
    for model in WorkModel:
        if cleaned.lower() in (model.value.lower(), model.name.lower()):
            return model
    raise ValueError(f"Unknown work model: {value}")


def parse_fuel_type(value: Union[str, FuelType]) -> FuelType:
    if isinstance(value, FuelType):
        return value
    for fuel in FuelType:
        if value.strip().lower() in (fuel.value.lower(), fuel.name.lower()):
            return fuel
    choices = ", ".join(f.value for f in FuelType)
    raise ValueError(f"Unknown fuel type: {value} (expected one of {choices})")


def format_currency(amount: Decimal) -> str:
    """Format an amount the Portuguese way, e.g. ``1 234,50 €``."""
    rounded = round_currency(Decimal(amount))
    sign = "-" if rounded < 0 else ""
    whole, cents = f"{abs(rounded):.2f}".split(".")
    groups = []
    while len(whole) > 3:
        groups.insert(0, whole[-3:])
        whole = whole[:-3]
    groups.insert(0, whole)
    return f"{sign}{' '.join(groups)},{cents} €"
