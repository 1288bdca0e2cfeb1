import os
from datetime import date
from decimal import Decimal

import pytest

# The web module opens its store on import; keep it away from the working directory
os.environ.setdefault("FLEET_DATABASE_URL", "sqlite://")

from fleet_ledger.data_models import Debt, Driver, FuelType, Vehicle, WeeklyReport, WorkModel
from fleet_ledger_web.store import FleetStore, seed_demo_data


@pytest.fixture
def vehicles():
    return [
        Vehicle("v1", "Renault", "Zoe", "AA-00-BB", Decimal("200"), FuelType.ELECTRIC),
        Vehicle("v2", "Peugeot", "308 SW", "CC-11-DD", Decimal("210"), FuelType.DIESEL),
        Vehicle("v3", "Tesla", "Model 3", "EE-22-FF", Decimal("350"), FuelType.ELECTRIC),
    ]


@pytest.fixture
def drivers():
    return [
        Driver("d1", "João Silva", "123456789", "912345678", "joao@example.com", "v1"),
        Driver("d2", "Maria Santos", "987654321", "965432198", "maria@example.com", "v2"),
        Driver(
            "d3",
            "António Costa",
            vehicle_id="v3",
            work_model=WorkModel.PERCENTAGE_SPLIT,
            driver_percentage=Decimal("60"),
        ),
    ]


@pytest.fixture
def debts():
    return [
        Debt("deb1", "d1", "Insurance excess", Decimal("500"), 10, date(2023, 10, 1)),
        Debt("deb2", "d1", "Traffic fine", Decimal("300"), 6, date(2023, 10, 8)),
        Debt("deb3", "d2", "Phone", Decimal("100"), 3, date(2023, 10, 8)),
    ]


def make_report(report_id="r1", driver_id="d1", vehicle_id="v1", week=date(2023, 10, 23), **overrides):
    values = dict(
        id=report_id,
        driver_id=driver_id,
        vehicle_id=vehicle_id,
        week_start_date=week,
        uber_gross_earnings=Decimal("800"),
        bolt_gross_earnings=Decimal("400"),
        rent_deduction=Decimal("200"),
        fuel_cost=Decimal("40"),
        tolls_cost=Decimal("15"),
        misc_expenses=Decimal("10"),
        debt_payment=Decimal("50"),
    )
    values.update(overrides)
    return WeeklyReport(**values)


@pytest.fixture
def store(tmp_path):
    return FleetStore(f"sqlite:///{tmp_path / 'fleet.sqlite3'}")


@pytest.fixture
def demo_store(store):
    seed_demo_data(store)
    return store
