"""Routes for the rent schedule, the reconciled ledger and recorded payments."""
from __future__ import annotations

from datetime import date

from flask import current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..leasing.repository import LeasingRepository
from ..leasing.services import decimal_to_number, format_currency, parse_date
from ..logging_service import log_manager
from ..settings.services import current_date
from . import bp
from .services import (
    IntegrityIssue,
    PaymentObligation,
    filter_by_status,
    find_missing_references,
    generate_schedule,
    month_window,
    reconcile,
    serialize_payment,
    summarize_ledger,
    summarize_payments,
    summarize_schedule,
)


def _json_error(message: str, *, status: int = 400):
    """Return a consistently formatted JSON error response."""

    response = jsonify({"success": False, "message": message})
    response.status_code = status
    return response


def _serialize_summary(summary: dict[str, object]) -> dict[str, object]:
    """Convert Decimal totals to numbers and add display strings."""

    payload: dict[str, object] = {}
    for key, value in summary.items():
        if key.endswith("_amount"):
            payload[key] = decimal_to_number(value)
            payload[f"{key}_display"] = format_currency(value)
        else:
            payload[key] = value
    return payload


def _requested_window(today: date) -> tuple[str, date, date]:
    month = (request.args.get("month") or today.strftime("%Y-%m")).strip()
    window_start, window_end = month_window(month)
    return month, window_start, window_end


def _requested_property() -> str | None:
    value = (request.args.get("property") or "").strip()
    if not value or value == "all":
        return None
    return value


def _build_schedule(today: date, directory) -> tuple[str, date, date, list[PaymentObligation]]:
    """Derive the schedule for the month and property given in the query string."""

    month, window_start, window_end = _requested_window(today)
    obligations = generate_schedule(
        LeasingRepository.leases(status="active"),
        window_start,
        window_end,
        _requested_property(),
        now=today,
        unit_directory=directory.unit_properties,
        due_soon_days=current_app.config.get("DUE_SOON_DAYS", 7),
    )
    return month, window_start, window_end, obligations


def _log_issues(action: str, issues: list[IntegrityIssue]) -> None:
    if issues:
        log_manager.record_issues(component="Payments", action=action, issues=issues)


@bp.route("/schedule")
def schedule():
    """Return the rent charges due in a reporting month as a JSON array."""

    today = current_date()
    directory = LeasingRepository.directory()
    try:
        month, _, _, obligations = _build_schedule(today, directory)
        obligations = filter_by_status(obligations, request.args.get("status"))
    except ValueError as exc:
        return _json_error(str(exc))

    _log_issues(
        "schedule-integrity",
        find_missing_references(
            obligations,
            tenant_names=directory.tenant_names,
            unit_labels=directory.unit_labels,
        ),
    )
    log_manager.record(
        component="Payments",
        action="view-schedule",
        level="info",
        result="success",
        title="Payment schedule generated",
        user_summary=f"Listed {len(obligations)} rent payments due in {month}.",
        technical_details=(
            f"payments.schedule month={month} property={_requested_property() or 'all'}"
            f" status={request.args.get('status') or 'all'} obligations={len(obligations)}"
        ),
    )
    return jsonify([obligation.to_dict(**directory.labels()) for obligation in obligations])


@bp.route("/schedule/summary")
def schedule_summary():
    """Return counts and totals per status for a reporting month."""

    today = current_date()
    directory = LeasingRepository.directory()
    try:
        month, window_start, window_end, obligations = _build_schedule(today, directory)
    except ValueError as exc:
        return _json_error(str(exc))

    return jsonify(
        {
            "month": month,
            "window": {"start": window_start.isoformat(), "end": window_end.isoformat()},
            "today": today.isoformat(),
            "summary": _serialize_summary(summarize_schedule(obligations)),
        }
    )


@bp.route("/ledger")
def ledger():
    """Return the month's rent charges reconciled with recorded payments."""

    today = current_date()
    directory = LeasingRepository.directory()
    try:
        month, window_start, window_end, obligations = _build_schedule(today, directory)
    except ValueError as exc:
        return _json_error(str(exc))

    payments = [
        payment
        for payment in LeasingRepository.payments()
        if window_start <= payment.due_date <= window_end
    ]
    entries, unmatched = reconcile(obligations, payments, LeasingRepository.leases_by_id(), today)

    if unmatched:
        log_manager.record(
            component="Payments",
            action="ledger-unmatched",
            level="warn",
            result="warn",
            title="Payments without a scheduled charge",
            user_summary=(
                f"{len(unmatched)} rent payment(s) in {month} do not line up with a scheduled"
                " charge from an active lease."
            ),
            technical_details="payments.ledger unmatched="
            + ",".join(payment.id for payment in unmatched),
        )

    return jsonify(
        {
            "month": month,
            "today": today.isoformat(),
            "entries": [entry.to_dict() for entry in entries],
            "summary": summarize_ledger(entries),
            "unmatched": [payment.id for payment in unmatched],
        }
    )


@bp.route("/api/payments", methods=["GET"])
def list_payments():
    """Return recorded payments with their derived late fees."""

    today = current_date()
    directory = LeasingRepository.directory()
    leases = LeasingRepository.leases_by_id()
    payments = LeasingRepository.payments(
        status=request.args.get("status") or None,
        tenant_id=request.args.get("tenant") or None,
        lease_id=request.args.get("lease") or None,
    )

    issues: list[IntegrityIssue] = []
    serialized = [
        serialize_payment(
            payment,
            leases.get(payment.lease_id),
            today,
            issues=issues,
            **directory.labels(),
        )
        for payment in payments
    ]
    _log_issues("payments-integrity", issues)

    return jsonify(
        {
            "payments": serialized,
            "summary": _serialize_summary(summarize_payments(payments)),
            "warnings": [issue.to_dict() for issue in issues],
        }
    )


@bp.route("/api/payments/<payment_id>", methods=["GET"])
def payment_detail(payment_id: str):
    """Return one payment with its late fee and total due."""

    payment = LeasingRepository.get_payment(payment_id)
    if payment is None:
        return _json_error("Payment not found.", status=404)

    issues: list[IntegrityIssue] = []
    payload = serialize_payment(
        payment,
        LeasingRepository.get_lease(payment.lease_id),
        current_date(),
        issues=issues,
        **LeasingRepository.directory().labels(),
    )
    _log_issues("payment-integrity", issues)
    return jsonify({"payment": payload, "warnings": [issue.to_dict() for issue in issues]})


@bp.route("/api/payments", methods=["POST"])
def create_payment():
    """Record a payment against a lease."""

    data = request.get_json(silent=True) or {}
    lease_id = (data.get("lease_id") or "").strip()
    if not lease_id:
        return _json_error("Choose the lease this payment belongs to.")

    try:
        payment = LeasingRepository.create_payment(
            lease_id=lease_id,
            amount=data.get("amount"),
            due_date=data.get("due_date"),
            payment_type=(data.get("type") or "rent").strip().lower(),
            status=(data.get("status") or "pending").strip().lower(),
            method=(data.get("method") or "").strip().lower() or None,
            reference=data.get("reference"),
            notes=data.get("notes"),
        )
    except ValueError as exc:
        return _json_error(str(exc))
    except SQLAlchemyError as exc:
        db.session.rollback()
        log_manager.record(
            component="Payments",
            action="create-payment",
            level="error",
            result="error",
            title="Payment could not be recorded",
            user_summary="The payment was not saved. Try again shortly.",
            technical_details=f"LeasingRepository.create_payment raised {exc.__class__.__name__}: {exc}",
            record_ref=lease_id,
        )
        return _json_error("Unable to record the payment at this time.", status=500)

    issues: list[IntegrityIssue] = []
    payload = serialize_payment(
        payment,
        LeasingRepository.get_lease(payment.lease_id),
        current_date(),
        issues=issues,
        **LeasingRepository.directory().labels(),
    )
    log_manager.record(
        component="Payments",
        action="create-payment",
        level="info",
        result="success",
        title="Payment recorded",
        user_summary=f"Recorded {format_currency(payment.amount)} due {payment.due_date.isoformat()}.",
        technical_details=f"LeasingRepository.create_payment id={payment.id} lease={payment.lease_id}",
        record_ref=payment.id,
    )
    _log_issues("payment-integrity", issues)

    response = jsonify(
        {"success": True, "payment": payload, "warnings": [issue.to_dict() for issue in issues]}
    )
    response.status_code = 201
    return response


@bp.route("/api/payments/<payment_id>/pay", methods=["POST"])
def mark_paid(payment_id: str):
    """Mark a payment as received."""

    data = request.get_json(silent=True) or {}
    try:
        paid_date = (
            parse_date(data["paid_date"], field="paid date")
            if data.get("paid_date")
            else current_date()
        )
        payment = LeasingRepository.mark_payment_paid(
            payment_id,
            paid_date=paid_date,
            method=(data.get("method") or "").strip().lower() or None,
            reference=data.get("reference"),
        )
    except KeyError:
        return _json_error("Payment not found.", status=404)
    except ValueError as exc:
        return _json_error(str(exc))
    except SQLAlchemyError as exc:
        db.session.rollback()
        log_manager.record(
            component="Payments",
            action="mark-paid",
            level="error",
            result="error",
            title="Payment update failed",
            user_summary="The payment could not be marked as paid. Try again shortly.",
            technical_details=f"LeasingRepository.mark_payment_paid raised {exc.__class__.__name__}: {exc}",
            record_ref=payment_id,
        )
        return _json_error("Unable to update the payment at this time.", status=500)

    log_manager.record(
        component="Payments",
        action="mark-paid",
        level="info",
        result="success",
        title="Payment received",
        user_summary=f"Payment of {format_currency(payment.amount)} marked as paid on {payment.paid_date.isoformat()}.",
        technical_details=f"LeasingRepository.mark_payment_paid id={payment.id} method={payment.method}",
        record_ref=payment.id,
    )
    payload = serialize_payment(
        payment,
        LeasingRepository.get_lease(payment.lease_id),
        current_date(),
        **LeasingRepository.directory().labels(),
    )
    return jsonify({"success": True, "payment": payload})
