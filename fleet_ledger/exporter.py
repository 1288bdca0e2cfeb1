"""Export calculated reports to JSON and CSV files."""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .data_models import CalculatedReport
from .engine import FleetSummary


def report_to_dict(r: CalculatedReport) -> Dict[str, Any]:
    """Convert a calculated report into a JSON-serialisable dictionary."""
    return {
        "id": r.id,
        "driver_id": r.driver_id,
        "vehicle_id": r.vehicle_id,
        "week_start_date": r.week_start_date.isoformat(),
        "driver_name": r.driver_name,
        "vehicle_model": r.vehicle_model,
        "vehicle_plate": r.vehicle_plate,
        "uber_gross_earnings": float(r.uber_gross_earnings),
        "bolt_gross_earnings": float(r.bolt_gross_earnings),
        "total_gross_earnings": float(r.total_gross_earnings),
        "rent_cost": float(r.rent_cost),
        "fuel_cost": float(r.fuel_cost),
        "tolls_cost": float(r.tolls_cost),
        "misc_expenses": float(r.misc_expenses),
        "debt_payment": float(r.debt_payment),
        "total_expenses": float(r.total_expenses),
        "net_earnings": float(r.net_earnings),
        "work_model": r.work_model.value,
        "driver_percentage": float(r.driver_percentage) if r.driver_percentage is not None else None,
        "notes": r.notes,
    }


def summary_to_dict(summary: FleetSummary) -> Dict[str, Any]:
    return {
        "report_count": summary.report_count,
        "total_gross": float(summary.total_gross),
        "total_expenses": float(summary.total_expenses),
        "total_net": float(summary.total_net),
        "weekly": [
            {
                "week_start_date": w.week_start_date.isoformat(),
                "gross": float(w.gross),
                "expenses": float(w.expenses),
                "net": float(w.net),
            }
            for w in summary.weekly
        ],
        "expense_breakdown": {k: float(v) for k, v in summary.expense_breakdown.items()},
    }


def export_to_json(path: Path, reports: Iterable[CalculatedReport], summary: Optional[FleetSummary] = None) -> None:
    """Export reports (and optionally the fleet summary) to a JSON file."""
    data: Dict[str, Any] = {"reports": [report_to_dict(r) for r in reports]}
    if summary is not None:
        data["summary"] = summary_to_dict(summary)
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


CSV_HEADER: List[str] = [
    "Id",
    "Week_Start",
    "Driver",
    "Vehicle_Plate",
    "Uber",
    "Bolt",
    "Total_Gross",
    "Rent",
    "Fuel",
    "Tolls",
    "Misc",
    "Debt_Payment",
    "Net",
]


def export_to_csv(path: Path, reports: Iterable[CalculatedReport]) -> None:
    """Export reports to a CSV file."""
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(CSV_HEADER)
        for r in reports:
            writer.writerow(
                [
                    r.id,
                    r.week_start_date.isoformat(),
                    r.driver_name,
                    r.vehicle_plate,
                    f"{r.uber_gross_earnings:.2f}",
                    f"{r.bolt_gross_earnings:.2f}",
                    f"{r.total_gross_earnings:.2f}",
                    f"{r.rent_cost:.2f}",
                    f"{r.fuel_cost:.2f}",
                    f"{r.tolls_cost:.2f}",
                    f"{r.misc_expenses:.2f}",
                    f"{r.debt_payment:.2f}",
                    f"{r.net_earnings:.2f}",
                ]
            )
