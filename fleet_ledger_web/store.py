"""Persistence layer for drivers, vehicles, debts and weekly reports.

The store keeps the fleet records in a relational database through
SQLAlchemy. It defaults to SQLite for local development, but accepts any
SQLAlchemy-compatible URL (e.g. PostgreSQL/MySQL) for shared deployments.

Rows are converted to the immutable records of ``fleet_ledger.data_models``
on the way out; the calculation engine only ever sees those records, taken
as a fresh :class:`FleetSnapshot` after every change.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import Column, Date, DateTime, Integer, Numeric, String, Text, create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from fleet_ledger.data_models import CalculatedReport, Debt, Driver, FuelType, Vehicle, WeeklyReport, WorkModel
from fleet_ledger.engine import compute_reports
from fleet_ledger.utils import normalize_work_model, parse_fuel_type

logger = logging.getLogger(__name__)

Base = declarative_base()

MONEY = Numeric(12, 2)


class StoreError(Exception):
    """A write was rejected; nothing was changed."""


class DriverModel(Base):
    __tablename__ = "drivers"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    nif = Column(String(32), nullable=False, default="")
    phone = Column(String(32), nullable=False, default="")
    email = Column(String(255), nullable=False, default="")
    vehicle_id = Column(String(64), nullable=True)
    work_model = Column(String(16), nullable=True)
    driver_percentage = Column(Numeric(5, 2), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class VehicleModel(Base):
    __tablename__ = "vehicles"

    id = Column(String(64), primary_key=True)
    make = Column(String(64), nullable=False)
    model = Column(String(64), nullable=False)
    plate = Column(String(16), nullable=False)
    weekly_rent = Column(MONEY, nullable=False)
    fuel_type = Column(String(16), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class DebtModel(Base):
    __tablename__ = "debts"

    id = Column(String(64), primary_key=True)
    driver_id = Column(String(64), index=True, nullable=False)
    description = Column(Text, nullable=False, default="")
    total_amount = Column(MONEY, nullable=False)
    installments = Column(Integer, nullable=False)
    created_at = Column(Date, nullable=False)


class WeeklyReportModel(Base):
    __tablename__ = "weekly_reports"

    id = Column(String(64), primary_key=True)
    driver_id = Column(String(64), index=True, nullable=False)
    vehicle_id = Column(String(64), index=True, nullable=False)
    week_start_date = Column(Date, index=True, nullable=False)
    uber_gross_earnings = Column(MONEY, nullable=False)
    bolt_gross_earnings = Column(MONEY, nullable=True)
    rent_deduction = Column(MONEY, nullable=True)
    fuel_cost = Column(MONEY, nullable=False)
    tolls_cost = Column(MONEY, nullable=False)
    misc_expenses = Column(MONEY, nullable=False)
    debt_payment = Column(MONEY, nullable=True)
    notes = Column(Text, nullable=True)


def new_id() -> str:
    return uuid4().hex


def _driver_from_row(row: DriverModel) -> Driver:
    return Driver(
        id=row.id,
        name=row.name,
        tax_id=row.nif or "",
        phone=row.phone or "",
        email=row.email or "",
        vehicle_id=row.vehicle_id or None,
        # Rows written before compensation models existed have no value
        work_model=normalize_work_model(row.work_model),
        driver_percentage=row.driver_percentage,
    )


def _driver_to_columns(d: Driver) -> dict:
    if d.driver_percentage is not None and not Decimal(0) <= d.driver_percentage <= Decimal(100):
        raise StoreError(f"Driver percentage must be between 0 and 100; got {d.driver_percentage}")
    if not d.name.strip():
        raise StoreError("Driver name is required")
    return {
        "name": d.name,
        "nif": d.tax_id,
        "phone": d.phone,
        "email": d.email,
        "vehicle_id": d.vehicle_id or None,
        "work_model": normalize_work_model(d.work_model).value,
        "driver_percentage": d.driver_percentage,
    }


def _vehicle_from_row(row: VehicleModel) -> Vehicle:
    return Vehicle(
        id=row.id,
        make=row.make,
        model=row.model,
        plate=row.plate,
        weekly_rent=row.weekly_rent,
        fuel_type=parse_fuel_type(row.fuel_type),
    )


def _vehicle_to_columns(v: Vehicle) -> dict:
    try:
        fuel_type = parse_fuel_type(v.fuel_type)
    except (AttributeError, ValueError) as exc:
        raise StoreError(str(exc)) from exc
    if v.weekly_rent < 0:
        raise StoreError(f"Weekly rent must not be negative; got {v.weekly_rent}")
    return {
        "make": v.make,
        "model": v.model,
        "plate": v.plate,
        "weekly_rent": v.weekly_rent,
        "fuel_type": fuel_type.value,
    }


def _debt_from_row(row: DebtModel) -> Debt:
    return Debt(
        id=row.id,
        driver_id=row.driver_id,
        description=row.description or "",
        total_amount=row.total_amount,
        installments=row.installments,
        created_at=row.created_at,
    )


def _debt_to_columns(d: Debt) -> dict:
    if d.installments < 1:
        raise StoreError(f"A debt needs at least one installment; got {d.installments}")
    if d.total_amount < 0:
        raise StoreError(f"Debt amount must not be negative; got {d.total_amount}")
    if not d.driver_id:
        raise StoreError("A debt must belong to a driver")
    return {
        "driver_id": d.driver_id,
        "description": d.description,
        "total_amount": d.total_amount,
        "installments": d.installments,
        "created_at": d.created_at,
    }


def _report_from_row(row: WeeklyReportModel) -> WeeklyReport:
    return WeeklyReport(
        id=row.id,
        driver_id=row.driver_id,
        vehicle_id=row.vehicle_id,
        week_start_date=row.week_start_date,
        uber_gross_earnings=row.uber_gross_earnings,
        bolt_gross_earnings=row.bolt_gross_earnings,
        rent_deduction=row.rent_deduction,
        fuel_cost=row.fuel_cost,
        tolls_cost=row.tolls_cost,
        misc_expenses=row.misc_expenses,
        debt_payment=row.debt_payment,
        notes=row.notes,
    )


def _report_to_columns(r: WeeklyReport) -> dict:
    if not r.driver_id or not r.vehicle_id:
        raise StoreError("A report needs both a driver and a vehicle")
    return {
        "driver_id": r.driver_id,
        "vehicle_id": r.vehicle_id,
        "week_start_date": r.week_start_date,
        "uber_gross_earnings": r.uber_gross_earnings,
        "bolt_gross_earnings": r.bolt_gross_earnings,
        "rent_deduction": r.rent_deduction,
        "fuel_cost": r.fuel_cost,
        "tolls_cost": r.tolls_cost,
        "misc_expenses": r.misc_expenses,
        "debt_payment": r.debt_payment,
        "notes": r.notes or None,
    }


@dataclass(frozen=True)
class _Entity:
    model: type
    from_row: Callable
    to_columns: Callable
    order_by: Callable


ENTITIES: Dict[str, _Entity] = {
    "driver": _Entity(DriverModel, _driver_from_row, _driver_to_columns, lambda: DriverModel.name),
    "vehicle": _Entity(VehicleModel, _vehicle_from_row, _vehicle_to_columns, lambda: VehicleModel.plate),
    "debt": _Entity(DebtModel, _debt_from_row, _debt_to_columns, lambda: DebtModel.created_at),
    "report": _Entity(
        WeeklyReportModel, _report_from_row, _report_to_columns, lambda: WeeklyReportModel.week_start_date
    ),
}

_KIND_BY_TYPE = {Driver: "driver", Vehicle: "vehicle", Debt: "debt", WeeklyReport: "report"}


@dataclass(frozen=True)
class FleetSnapshot:
    """All fleet records as read at one point in time."""

    drivers: List[Driver] = field(default_factory=list)
    vehicles: List[Vehicle] = field(default_factory=list)
    debts: List[Debt] = field(default_factory=list)
    reports: List[WeeklyReport] = field(default_factory=list)

    def calculated_reports(self) -> List[CalculatedReport]:
        return compute_reports(self.reports, self.drivers, self.vehicles)


class FleetStore:
    """Database-backed store for the four fleet record types.

    Records are addressed by kind (``"driver"``, ``"vehicle"``, ``"debt"``,
    ``"report"``) and id. Deleting a driver or vehicle leaves its reports in
    place; the engine shows such orphans as unknown.
    """

    def __init__(self, url: str) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)

    @staticmethod
    def _entity(kind: str) -> _Entity:
        try:
            return ENTITIES[kind]
        except KeyError:
            raise StoreError(f"Unknown record kind: {kind}") from None

    def list_records(self, kind: str) -> list:
        entity = self._entity(kind)
        with self._session_factory() as session:
            rows = session.execute(select(entity.model).order_by(entity.order_by())).scalars()
            return [entity.from_row(row) for row in rows]

    def get(self, kind: str, record_id: str):
        entity = self._entity(kind)
        with self._session_factory() as session:
            row = session.get(entity.model, record_id)
            return entity.from_row(row) if row else None

    def save(self, record) -> None:
        """Insert ``record`` or update the stored record with the same id."""
        kind = _KIND_BY_TYPE.get(type(record))
        if kind is None:
            raise StoreError(f"Cannot store {type(record).__name__}")
        entity = ENTITIES[kind]
        try:
            columns = entity.to_columns(record)
        except StoreError:
            logger.warning("Rejected %s %s", kind, record.id)
            raise
        with self._session_factory() as session:
            try:
                row = session.get(entity.model, record.id)
                if row is None:
                    session.add(entity.model(id=record.id, **columns))
                else:
                    for name, value in columns.items():
                        setattr(row, name, value)
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                logger.error("Failed to save %s %s: %s", kind, record.id, exc)
                raise StoreError(f"Could not save {kind} {record.id}") from exc
        logger.info("Saved %s %s", kind, record.id)

    def delete(self, kind: str, record_id: str) -> bool:
        """Delete a record; returns False when no such record exists."""
        entity = self._entity(kind)
        with self._session_factory() as session:
            row = session.get(entity.model, record_id)
            if row is None:
                return False
            session.delete(row)
            session.commit()
        logger.info("Deleted %s %s", kind, record_id)
        return True

    def snapshot(self) -> FleetSnapshot:
        return FleetSnapshot(
            drivers=self.list_records("driver"),
            vehicles=self.list_records("vehicle"),
            debts=self.list_records("debt"),
            reports=self.list_records("report"),
        )


def seed_demo_data(store: FleetStore) -> None:
    """Load a small sample fleet: four vehicles, three drivers, one debt and four reports."""
    vehicles = [
        Vehicle("v1", "Renault", "Zoe", "AA-00-BB", Decimal("200"), FuelType.ELECTRIC),
        Vehicle("v2", "Peugeot", "308 SW", "CC-11-DD", Decimal("180"), FuelType.DIESEL),
        Vehicle("v3", "Tesla", "Model 3", "EE-22-FF", Decimal("350"), FuelType.ELECTRIC),
        Vehicle("v4", "Toyota", "Corolla", "GG-33-HH", Decimal("220"), FuelType.HYBRID),
    ]
    drivers = [
        Driver("d1", "João Silva", "123456789", "912345678", "joao@uberpt.com", "v1"),
        Driver("d2", "Maria Santos", "987654321", "965432198", "maria@uberpt.com", "v2"),
        Driver(
            "d3", "António Costa", "456123789", "932165487", "antonio@uberpt.com", "v3",
            WorkModel.PERCENTAGE_SPLIT, Decimal("60"),
        ),
    ]
    debts = [
        Debt("deb1", "d1", "Franquia Seguro - Acidente Jan", Decimal("500"), 10, date(2023, 10, 1)),
    ]
    week1, week2 = date(2023, 10, 23), date(2023, 10, 30)
    reports = [
        WeeklyReport("r1", "d1", "v1", week1, Decimal("800"), Decimal("40"), Decimal("15"), Decimal("10"),
                     Decimal("400"), Decimal("200"), Decimal("50")),
        WeeklyReport("r2", "d2", "v2", week1, Decimal("950"), Decimal("120"), Decimal("35"), Decimal("0"),
                     Decimal("0"), Decimal("180"), Decimal("0")),
        WeeklyReport("r3", "d3", "v3", week1, Decimal("1000"), Decimal("60"), Decimal("50"), Decimal("20"),
                     Decimal("800"), Decimal("0"), Decimal("0")),
        WeeklyReport("r4", "d1", "v1", week2, Decimal("700"), Decimal("35"), Decimal("10"), Decimal("5"),
                     Decimal("400"), Decimal("200"), Decimal("50")),
    ]
    for record in [*vehicles, *drivers, *debts, *reports]:
        store.save(record)


def create_store_from_env(url: Optional[str]) -> FleetStore:
    return FleetStore(url or "sqlite:///fleet_ledger.sqlite3")
