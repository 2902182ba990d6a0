"""Routes for the portfolio dashboard."""
from __future__ import annotations

from flask import current_app, jsonify

from ..leasing.repository import LeasingRepository
from ..leasing.services import decimal_to_number, format_currency, summarize_leases
from ..logging_service import log_manager
from ..payments.services import generate_schedule, month_window, summarize_payments, summarize_schedule
from ..settings.services import current_date
from . import bp


def _amounts_to_numbers(summary: dict[str, object]) -> dict[str, object]:
    payload: dict[str, object] = {}
    for key, value in summary.items():
        if key.endswith("_amount") or key == "monthly_revenue":
            payload[key] = decimal_to_number(value)
            payload[f"{key}_display"] = format_currency(value)
        else:
            payload[key] = value
    return payload


@bp.route("/")
def overview():
    """Return headline lease, schedule and payment figures for the current month."""

    today = current_date()
    config = current_app.config
    month = today.strftime("%Y-%m")
    window_start, window_end = month_window(month)
    leases = LeasingRepository.leases()

    schedule = generate_schedule(
        leases,
        window_start,
        window_end,
        now=today,
        unit_directory=LeasingRepository.unit_directory(),
        due_soon_days=config.get("DUE_SOON_DAYS", 7),
    )
    lease_summary = summarize_leases(
        leases,
        today,
        soon_days=config.get("EXPIRING_SOON_DAYS", 30),
        later_days=config.get("EXPIRING_LATER_DAYS", 90),
    )

    log_manager.record(
        component="Dashboard",
        action="view",
        level="info",
        result="success",
        title="Dashboard opened",
        user_summary="Portfolio overview loaded.",
        technical_details=f"index.overview month={month} leases={len(leases)} obligations={len(schedule)}",
    )
    return jsonify(
        {
            "today": today.isoformat(),
            "month": month,
            "leases": _amounts_to_numbers(lease_summary),
            "schedule": _amounts_to_numbers(summarize_schedule(schedule)),
            "payments": _amounts_to_numbers(summarize_payments(LeasingRepository.payments())),
        }
    )
