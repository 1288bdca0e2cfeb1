import os
from dataclasses import replace
from decimal import Decimal
from uuid import uuid4

from flask import Flask, abort, jsonify, redirect, render_template, request, url_for

from fleet_ledger.advisor import analyze_report
from fleet_ledger.data_models import ReportFilter, WeeklyReport
from fleet_ledger.engine import UNKNOWN_DRIVER, filter_reports, prefill_report, sort_reports, summarize_reports
from fleet_ledger.formatter import describe_work_model
from fleet_ledger.settings import load_settings
from fleet_ledger.utils import format_currency, optional_date, optional_decimal, parse_iso_date
from fleet_ledger_web.store import StoreError, create_store_from_env

settings = load_settings()

app = Flask(__name__)
app.config["ASSET_VERSION"] = os.environ.get("ASSET_VERSION", "1")
app.secret_key = settings.secret_key
fleet_store = create_store_from_env(settings.database_url)

app.jinja_env.filters["currency"] = format_currency
app.jinja_env.filters["work_model"] = describe_work_model


def _form_filter(args) -> ReportFilter:
    return ReportFilter(
        driver_id=args.get("driver_id", "").strip() or None,
        vehicle_id=args.get("vehicle_id", "").strip() or None,
        start_date=optional_date(args.get("start_date", "").strip()),
        end_date=optional_date(args.get("end_date", "").strip()),
    )


def _form_to_report(form, report_id: str) -> WeeklyReport:
    """Build a report from the entry form.

    Blank amounts count as zero, except rent and debt payment, which stay
    ``None`` so that :func:`_fill_deductions` can supply them.
    """

    def amount(name: str) -> Decimal:
        return optional_decimal(form.get(name, "").strip()) or Decimal("0")

    driver_id = form.get("driver_id", "").strip()
    vehicle_id = form.get("vehicle_id", "").strip()
    if not driver_id or not vehicle_id:
        raise ValueError("Select a driver with an assigned vehicle")
    return WeeklyReport(
        id=report_id,
        driver_id=driver_id,
        vehicle_id=vehicle_id,
        week_start_date=parse_iso_date(form.get("week_start_date", "")),
        uber_gross_earnings=amount("uber_gross_earnings"),
        bolt_gross_earnings=amount("bolt_gross_earnings"),
        rent_deduction=optional_decimal(form.get("rent_deduction", "").strip()),
        fuel_cost=amount("fuel_cost"),
        tolls_cost=amount("tolls_cost"),
        misc_expenses=amount("misc_expenses"),
        debt_payment=optional_decimal(form.get("debt_payment", "").strip()),
        notes=form.get("notes", "").strip() or None,
    )


def _fill_deductions(report: WeeklyReport, existing, snapshot) -> WeeklyReport:
    """Fill a blank rent or debt payment.

    An edited report keeps its stored values; a new one gets the suggestion
    for the vehicle it was entered with.
    """
    if report.rent_deduction is not None and report.debt_payment is not None:
        return report
    if existing is not None:
        rent, debt = existing.rent_deduction, existing.debt_payment
    else:
        suggested = prefill_report(
            report.driver_id,
            report.week_start_date,
            snapshot.drivers,
            snapshot.vehicles,
            snapshot.debts,
            vehicle_id=report.vehicle_id,
        )
        rent, debt = suggested["rent_deduction"], suggested["debt_payment"]
    return replace(
        report,
        rent_deduction=rent if report.rent_deduction is None else report.rent_deduction,
        debt_payment=debt if report.debt_payment is None else report.debt_payment,
    )


def _find_report(report_id: str):
    for report in fleet_store.snapshot().calculated_reports():
        if report.id == report_id:
            return report
    abort(404)


@app.route("/")
def index():
    snapshot = fleet_store.snapshot()
    summary = summarize_reports(snapshot.calculated_reports())
    return render_template(
        "index.html",
        summary=summary,
        total_drivers=len(snapshot.drivers),
        total_vehicles=len(snapshot.vehicles),
        asset_version=app.config["ASSET_VERSION"],
    )


@app.route("/reports")
def reports():
    snapshot = fleet_store.snapshot()
    error = None
    try:
        report_filter = _form_filter(request.args)
    except ValueError as exc:
        error = str(exc)
        report_filter = ReportFilter()
    selected = sort_reports(filter_reports(snapshot.calculated_reports(), report_filter))
    return render_template(
        "reports.html",
        reports=selected,
        drivers=snapshot.drivers,
        vehicles=snapshot.vehicles,
        report_filter=report_filter,
        error=error,
        asset_version=app.config["ASSET_VERSION"],
    )


@app.route("/fleet")
def fleet():
    snapshot = fleet_store.snapshot()
    return render_template(
        "fleet.html",
        drivers=snapshot.drivers,
        vehicles=snapshot.vehicles,
        debts=snapshot.debts,
        driver_names={d.id: d.name for d in snapshot.drivers},
        vehicle_labels={v.id: f"{v.model} ({v.plate})" for v in snapshot.vehicles},
        unknown_driver=UNKNOWN_DRIVER,
        asset_version=app.config["ASSET_VERSION"],
    )


@app.route("/reports/new", methods=["GET", "POST"])
@app.route("/reports/<report_id>/edit", methods=["GET", "POST"])
def report_form(report_id=None):
    snapshot = fleet_store.snapshot()
    existing = fleet_store.get("report", report_id) if report_id else None
    if report_id and existing is None:
        abort(404)
    error = None
    days_charged = None
    form = request.form
    if request.method == "POST":
        try:
            report = _form_to_report(request.form, report_id or uuid4().hex)
            report = _fill_deductions(report, existing, snapshot)
            fleet_store.save(report)
            return redirect(url_for("reports"))
        except (ValueError, StoreError) as exc:
            error = str(exc)
    elif existing is None and request.args.get("driver_id"):
        # Driver and week picked in the first step: pre-fill vehicle, rent and debt
        form = request.args.to_dict()
        try:
            week_start_date = optional_date(form.get("week_start_date", "").strip())
        except ValueError as exc:
            error = str(exc)
            week_start_date = None
        suggested = prefill_report(
            form["driver_id"],
            week_start_date,
            snapshot.drivers,
            snapshot.vehicles,
            snapshot.debts,
            vehicle_id=form.get("vehicle_id") or None,
        )
        form["vehicle_id"] = suggested["vehicle_id"] or form.get("vehicle_id", "")
        form.setdefault("rent_deduction", f"{suggested['rent_deduction']:.2f}")
        form.setdefault("debt_payment", f"{suggested['debt_payment']:.2f}")
        days_charged = suggested["days_charged"]
    return render_template(
        "report_form.html",
        report=existing,
        form=form,
        drivers=snapshot.drivers,
        vehicles=snapshot.vehicles,
        is_editing=existing is not None,
        days_charged=days_charged,
        error=error,
        asset_version=app.config["ASSET_VERSION"],
    )


@app.get("/api/prefill")
def api_prefill():
    """Suggested vehicle, rent and debt installment for a new report."""
    try:
        week_start_date = optional_date(request.args.get("week_start_date", "").strip())
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400
    snapshot = fleet_store.snapshot()
    suggested = prefill_report(
        request.args.get("driver_id", ""),
        week_start_date,
        snapshot.drivers,
        snapshot.vehicles,
        snapshot.debts,
    )
    return jsonify(
        {
            "vehicle_id": suggested["vehicle_id"],
            "work_model": suggested["work_model"].value,
            "rent_deduction": f"{suggested['rent_deduction']:.2f}",
            "days_charged": suggested["days_charged"],
            "debt_payment": f"{suggested['debt_payment']:.2f}",
        }
    )


@app.post("/reports/<report_id>/delete")
def delete_report(report_id):
    fleet_store.delete("report", report_id)
    return redirect(url_for("reports"))


@app.route("/reports/<report_id>/analysis")
def report_analysis(report_id):
    report = _find_report(report_id)
    analysis = analyze_report(report, settings)
    return render_template(
        "analysis.html",
        report=report,
        analysis=analysis,
        asset_version=app.config["ASSET_VERSION"],
    )


if __name__ == "__main__":
    print("Starting Fleet Ledger web app...")
    app.run(host="0.0.0.0", port=8710, debug=True)
