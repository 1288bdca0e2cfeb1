from datetime import date
from decimal import Decimal

import pytest

from conftest import make_report
from fleet_ledger.data_models import Driver, ReportFilter, WorkModel
from fleet_ledger.engine import (
    compute_pro_rata_rent,
    compute_report,
    compute_reports,
    compute_weekly_debt_installment,
    filter_reports,
    prefill_report,
    sort_reports,
    summarize_reports,
)


def test_fixed_rent_net_earnings(drivers, vehicles):
    calculated = compute_report(make_report(), drivers, vehicles)
    assert calculated.total_gross_earnings == Decimal("1200")
    assert calculated.operational_expenses == Decimal("65")
    assert calculated.rent_cost == Decimal("200")
    assert calculated.net_earnings == Decimal("885.00")
    assert calculated.driver_name == "João Silva"
    assert calculated.vehicle_model == "Zoe"
    assert calculated.vehicle_plate == "AA-00-BB"
    assert calculated.work_model is WorkModel.FIXED_RENT
    assert calculated.driver_percentage is None


def test_fixed_rent_net_can_be_negative(drivers, vehicles):
    report = make_report(uber_gross_earnings=Decimal("100"), bolt_gross_earnings=Decimal("0"))
    calculated = compute_report(report, drivers, vehicles)
    assert calculated.net_earnings == Decimal("100") - Decimal("65") - Decimal("200") - Decimal("50")


def test_percentage_split_ignores_rent(drivers, vehicles):
    report = make_report(
        driver_id="d3",
        vehicle_id="v3",
        uber_gross_earnings=Decimal("1000"),
        bolt_gross_earnings=Decimal("800"),
        rent_deduction=Decimal("350"),
        fuel_cost=Decimal("60"),
        tolls_cost=Decimal("50"),
        misc_expenses=Decimal("20"),
        debt_payment=Decimal("30"),
    )
    calculated = compute_report(report, drivers, vehicles)
    # (1800 - 130) * 60% - 30
    assert calculated.net_earnings == Decimal("972")
    assert calculated.rent_cost == Decimal("350")
    assert calculated.work_model is WorkModel.PERCENTAGE_SPLIT
    assert calculated.driver_percentage == Decimal("60")


def test_percentage_model_without_percentage_pays_rent(vehicles):
    drivers = [Driver("d9", "No Share", vehicle_id="v1", work_model=WorkModel.PERCENTAGE_SPLIT)]
    calculated = compute_report(make_report(driver_id="d9"), drivers, vehicles)
    assert calculated.net_earnings == Decimal("885")


def test_unknown_driver_and_vehicle_degrade_to_placeholders():
    calculated = compute_report(make_report(driver_id="gone", vehicle_id="gone"), [], [])
    assert calculated.driver_name == "Unknown"
    assert calculated.vehicle_model == "N/A"
    assert calculated.vehicle_plate == "N/A"
    assert calculated.work_model is WorkModel.FIXED_RENT
    assert calculated.driver_percentage is None
    assert calculated.net_earnings == Decimal("885")


def test_missing_rent_falls_back_to_vehicle_rent(drivers, vehicles):
    calculated = compute_report(make_report(vehicle_id="v3", rent_deduction=None), drivers, vehicles)
    assert calculated.rent_cost == Decimal("350")
    assert calculated.rent_deduction == Decimal("350")


def test_explicit_zero_rent_is_kept(drivers, vehicles):
    calculated = compute_report(make_report(rent_deduction=Decimal("0")), drivers, vehicles)
    assert calculated.rent_cost == Decimal("0")
    assert calculated.net_earnings == Decimal("1085")


def test_missing_rent_without_vehicle_is_zero(drivers):
    calculated = compute_report(make_report(rent_deduction=None), drivers, [])
    assert calculated.rent_cost == Decimal("0")


def test_optional_amounts_are_normalized(drivers, vehicles):
    report = make_report(bolt_gross_earnings=None, debt_payment=None)
    calculated = compute_report(report, drivers, vehicles)
    assert calculated.bolt_gross_earnings == Decimal("0")
    assert calculated.debt_payment == Decimal("0")
    assert calculated.total_gross_earnings == Decimal("800")


def test_recomputing_from_original_fields_is_stable(drivers, vehicles):
    first = compute_report(make_report(bolt_gross_earnings=None), drivers, vehicles)
    second = compute_report(first.to_weekly_report(), drivers, vehicles)
    assert second.net_earnings == first.net_earnings


def test_report_keeps_its_own_vehicle(drivers, vehicles):
    # d1 is assigned v1, but this week they drove v2
    calculated = compute_report(make_report(vehicle_id="v2", rent_deduction=None), drivers, vehicles)
    assert calculated.vehicle_plate == "CC-11-DD"
    assert calculated.rent_cost == Decimal("210")


def test_compute_reports_preserves_order(drivers, vehicles):
    reports = [make_report("b"), make_report("a", driver_id="d2", vehicle_id="v2")]
    assert [r.id for r in compute_reports(reports, drivers, vehicles)] == ["b", "a"]


def test_weekly_debt_installment_sums_driver_debts(debts):
    assert compute_weekly_debt_installment("d1", debts) == Decimal("100.00")


def test_weekly_debt_installment_rounds_to_cents(debts):
    assert compute_weekly_debt_installment("d2", debts) == Decimal("33.33")


@pytest.mark.parametrize("driver_id", [None, "", "d3"])
def test_weekly_debt_installment_without_debts(driver_id, debts):
    assert compute_weekly_debt_installment(driver_id, debts) == Decimal("0")


@pytest.mark.parametrize(
    "week_start, days, amount",
    [
        (date(2023, 10, 22), 1, Decimal("30.00")),  # Sunday
        (date(2023, 10, 23), 7, Decimal("210.00")),  # Monday
        (date(2023, 10, 25), 5, Decimal("150.00")),  # Wednesday
        (date(2023, 10, 28), 2, Decimal("60.00")),  # Saturday
    ],
)
def test_pro_rata_rent_runs_to_saturday(vehicles, week_start, days, amount):
    quote = compute_pro_rata_rent(vehicles[1], week_start)
    assert quote.days_charged == days
    assert quote.amount == amount


def test_pro_rata_rent_rounds_to_cents(vehicles):
    quote = compute_pro_rata_rent(vehicles[0], date(2023, 10, 25))
    assert quote.amount == Decimal("142.86")


def test_pro_rata_rent_is_zero_for_percentage_split(vehicles):
    quote = compute_pro_rata_rent(vehicles[1], date(2023, 10, 25), WorkModel.PERCENTAGE_SPLIT)
    assert quote.amount == Decimal("0")


def test_pro_rata_rent_without_vehicle():
    quote = compute_pro_rata_rent(None, date(2023, 10, 25))
    assert quote.amount == Decimal("0")
    assert quote.days_charged == 0


def test_pro_rata_rent_without_date_charges_full_week(vehicles):
    quote = compute_pro_rata_rent(vehicles[1], None)
    assert quote.amount == Decimal("210.00")
    assert quote.days_charged == 7


def test_prefill_report_uses_assigned_vehicle_and_debts(drivers, vehicles, debts):
    suggested = prefill_report("d2", date(2023, 10, 25), drivers, vehicles, debts)
    assert suggested["vehicle_id"] == "v2"
    assert suggested["rent_deduction"] == Decimal("150.00")
    assert suggested["days_charged"] == 5
    assert suggested["debt_payment"] == Decimal("33.33")


def test_prefill_report_percentage_driver_pays_no_rent(drivers, vehicles, debts):
    suggested = prefill_report("d3", date(2023, 10, 25), drivers, vehicles, debts)
    assert suggested["vehicle_id"] == "v3"
    assert suggested["rent_deduction"] == Decimal("0")
    assert suggested["work_model"] is WorkModel.PERCENTAGE_SPLIT


def test_prefill_report_prices_the_chosen_vehicle(drivers, vehicles, debts):
    # d1 is assigned v1 (200 €/week) but drives v3 (350 €/week) this week
    suggested = prefill_report("d1", date(2023, 10, 25), drivers, vehicles, debts, vehicle_id="v3")
    assert suggested["vehicle_id"] == "v3"
    assert suggested["rent_deduction"] == Decimal("250.00")
    assert suggested["debt_payment"] == Decimal("100.00")


def test_prefill_report_unknown_driver(drivers, vehicles, debts):
    suggested = prefill_report("nobody", date(2023, 10, 25), drivers, vehicles, debts)
    assert suggested["vehicle_id"] is None
    assert suggested["rent_deduction"] == Decimal("0")
    assert suggested["days_charged"] == 0
    assert suggested["debt_payment"] == Decimal("0")


@pytest.fixture
def calculated(drivers, vehicles):
    reports = [
        make_report("r1", "d1", "v1", date(2023, 10, 23)),
        make_report("r2", "d2", "v2", date(2023, 10, 23)),
        make_report("r3", "d1", "v1", date(2023, 10, 30)),
        make_report("r4", "d2", "v1", date(2023, 11, 6)),
    ]
    return compute_reports(reports, drivers, vehicles)


def _ids(reports):
    return [r.id for r in reports]


def test_filter_without_constraints_keeps_everything(calculated):
    assert _ids(filter_reports(calculated, ReportFilter())) == ["r1", "r2", "r3", "r4"]
    assert _ids(filter_reports(calculated, ReportFilter(driver_id="", vehicle_id=""))) == ["r1", "r2", "r3", "r4"]


def test_filter_by_driver_and_vehicle(calculated):
    assert _ids(filter_reports(calculated, ReportFilter(driver_id="d2"))) == ["r2", "r4"]
    assert _ids(filter_reports(calculated, ReportFilter(vehicle_id="v1"))) == ["r1", "r3", "r4"]
    assert _ids(filter_reports(calculated, ReportFilter(driver_id="d2", vehicle_id="v1"))) == ["r4"]


def test_filter_date_bounds_are_inclusive(calculated):
    report_filter = ReportFilter(start_date=date(2023, 10, 23), end_date=date(2023, 10, 30))
    assert _ids(filter_reports(calculated, report_filter)) == ["r1", "r2", "r3"]


def test_filters_commute_and_are_idempotent(calculated):
    by_driver = ReportFilter(driver_id="d1")
    by_date = ReportFilter(start_date=date(2023, 10, 30))
    one = filter_reports(filter_reports(calculated, by_driver), by_date)
    other = filter_reports(filter_reports(calculated, by_date), by_driver)
    assert _ids(one) == _ids(other) == ["r3"]
    assert _ids(filter_reports(one, by_driver)) == _ids(one)


def test_sort_reports_newest_first(calculated):
    assert _ids(sort_reports(calculated)) == ["r4", "r3", "r1", "r2"]
    assert _ids(sort_reports(calculated, descending=False)) == ["r1", "r2", "r3", "r4"]


def test_summarize_reports(calculated):
    summary = summarize_reports(calculated)
    assert summary.report_count == 4
    assert summary.total_gross == Decimal("4800")
    assert summary.total_net == Decimal("3540")
    # fuel + tolls + misc + rent + debt per report
    assert summary.total_expenses == Decimal("1260")
    assert [w.week_start_date for w in summary.weekly] == [date(2023, 10, 23), date(2023, 10, 30), date(2023, 11, 6)]
    assert summary.weekly[0].gross == Decimal("2400")
    assert summary.expense_breakdown == {
        "rent": Decimal("800"),
        "fuel": Decimal("160"),
        "tolls": Decimal("60"),
        "other": Decimal("240"),
    }


def test_summarize_no_reports():
    summary = summarize_reports([])
    assert summary.report_count == 0
    assert summary.total_net == Decimal("0")
    assert summary.weekly == []
