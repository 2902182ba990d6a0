"""Routes for leases and the property, unit and tenant directory."""
from __future__ import annotations

from flask import current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..logging_service import log_manager
from ..payments.services import resolve_property_id
from ..settings.services import current_date
from . import bp
from .deposits import refund_due, serialize_deposit
from .models import LEASE_STATUSES
from .repository import LeasingRepository
from .services import (
    decimal_to_number,
    format_currency,
    search_leases,
    serialize_lease,
    summarize_leases,
)


def _json_error(message: str, *, status: int = 400):
    """Return a consistently formatted JSON error response."""

    response = jsonify({"success": False, "message": message})
    response.status_code = status
    return response


def _expiry_thresholds() -> dict[str, int]:
    return {
        "soon_days": current_app.config.get("EXPIRING_SOON_DAYS", 30),
        "later_days": current_app.config.get("EXPIRING_LATER_DAYS", 90),
    }


def _lease_payload(lease) -> dict[str, object]:
    return serialize_lease(
        lease,
        current_date(),
        **LeasingRepository.directory().labels(),
        **_expiry_thresholds(),
    )


def _parse_lease_payload(data: dict[str, object]) -> dict[str, object]:
    """Validate the shape of an incoming lease; term rules are checked by the repository."""

    tenant_id = str(data.get("tenant_id") or "").strip()
    unit_id = str(data.get("unit_id") or "").strip()
    status = str(data.get("status") or "pending").strip().lower()

    if not tenant_id:
        raise ValueError("Choose the tenant signing this lease.")
    if not unit_id:
        raise ValueError("Choose the unit being leased.")
    if not data.get("start_date") or not data.get("end_date"):
        raise ValueError("Provide both a start date and an end date.")
    if data.get("rent") in (None, ""):
        raise ValueError("Provide the monthly rent.")
    if status not in ("pending", "active"):
        raise ValueError("New leases start as pending or active.")

    grace_raw = data.get("grace_period")
    if grace_raw in (None, ""):
        grace_period = 5
    else:
        try:
            grace_period = int(grace_raw)
        except (TypeError, ValueError) as exc:
            raise ValueError("The grace period must be a whole number of days.") from exc

    return {
        "tenant_id": tenant_id,
        "unit_id": unit_id,
        "property_id": str(data.get("property_id") or "").strip() or None,
        "start_date": data.get("start_date"),
        "end_date": data.get("end_date"),
        "rent": data.get("rent"),
        "deposit": data.get("deposit") or 0,
        "status": status,
        "late_fee": data.get("late_fee") or 0,
        "grace_period": grace_period,
        "auto_renew": bool(data.get("auto_renew")),
    }


def _write_failed(action: str, exc: SQLAlchemyError, *, record_ref: str | None = None):
    db.session.rollback()
    log_manager.record(
        component="Leases",
        action=action,
        level="error",
        result="error",
        title="Lease store update failed",
        user_summary="The change was not saved. Try again shortly.",
        technical_details=f"LeasingRepository raised {exc.__class__.__name__}: {exc}",
        record_ref=record_ref,
    )
    return _json_error("Unable to save the change at this time.", status=500)


@bp.route("/api/leases", methods=["GET"])
def list_leases():
    """Return leases filtered by status and a free-text search."""

    status = (request.args.get("status") or "").strip().lower()
    if status and status != "all" and status not in LEASE_STATUSES:
        return _json_error(f"Unsupported lease status '{status}'.")

    today = current_date()
    thresholds = _expiry_thresholds()
    directory = LeasingRepository.directory()
    all_leases = LeasingRepository.leases()
    leases = [lease for lease in all_leases if status in ("", "all") or lease.status == status]
    property_filter = (request.args.get("property") or "").strip()
    if property_filter and property_filter != "all":
        leases = [
            lease
            for lease in leases
            if resolve_property_id(lease, directory.unit_properties) == property_filter
        ]
    leases = search_leases(leases, request.args.get("search"), **directory.labels())

    summary = summarize_leases(all_leases, today, **thresholds)
    log_manager.record(
        component="Leases",
        action="view",
        level="info",
        result="success",
        title="Lease list opened",
        user_summary=f"Showing {len(leases)} of {len(all_leases)} leases.",
        technical_details=(
            f"leasing.list_leases status={status or 'all'} search={request.args.get('search') or ''!r}"
        ),
    )
    return jsonify(
        {
            "leases": [
                serialize_lease(lease, today, **directory.labels(), **thresholds)
                for lease in leases
            ],
            "summary": {
                **summary,
                "monthly_revenue": decimal_to_number(summary["monthly_revenue"]),
                "monthly_revenue_display": format_currency(summary["monthly_revenue"]),
            },
        }
    )


@bp.route("/api/leases/<lease_id>", methods=["GET"])
def lease_detail(lease_id: str):
    lease = LeasingRepository.get_lease(lease_id)
    if lease is None:
        return _json_error("Lease not found.", status=404)
    return jsonify({"lease": _lease_payload(lease)})


@bp.route("/api/leases", methods=["POST"])
def create_lease():
    """Sign a new lease."""

    data = request.get_json(silent=True) or {}
    try:
        lease = LeasingRepository.create_lease(**_parse_lease_payload(data))
    except ValueError as exc:
        return _json_error(str(exc))
    except SQLAlchemyError as exc:
        return _write_failed("create-lease", exc)

    log_manager.record(
        component="Leases",
        action="create-lease",
        level="info",
        result="success",
        title="Lease created",
        user_summary=(
            f"New {lease.status} lease from {lease.start_date.isoformat()} to"
            f" {lease.end_date.isoformat()} at {format_currency(lease.rent)} per month."
        ),
        technical_details=f"LeasingRepository.create_lease id={lease.id} unit={lease.unit_id}",
        record_ref=lease.id,
    )
    response = jsonify({"success": True, "lease": _lease_payload(lease)})
    response.status_code = 201
    return response


@bp.route("/api/leases/<lease_id>/renew", methods=["POST"])
def renew_lease(lease_id: str):
    """Extend a lease to a new end date, optionally at a new rent."""

    data = request.get_json(silent=True) or {}
    if not data.get("end_date"):
        return _json_error("Provide the new end date.")
    try:
        lease = LeasingRepository.renew_lease(
            lease_id, end_date=data.get("end_date"), rent=data.get("rent")
        )
    except KeyError:
        return _json_error("Lease not found.", status=404)
    except ValueError as exc:
        return _json_error(str(exc))
    except SQLAlchemyError as exc:
        return _write_failed("renew-lease", exc, record_ref=lease_id)

    log_manager.record(
        component="Leases",
        action="renew-lease",
        level="info",
        result="success",
        title="Lease renewed",
        user_summary=f"Lease now runs until {lease.end_date.isoformat()}.",
        technical_details=f"LeasingRepository.renew_lease id={lease.id} rent={lease.rent}",
        record_ref=lease.id,
    )
    return jsonify({"success": True, "lease": _lease_payload(lease)})


@bp.route("/api/leases/<lease_id>/terminate", methods=["POST"])
def terminate_lease(lease_id: str):
    try:
        lease = LeasingRepository.terminate_lease(lease_id)
    except KeyError:
        return _json_error("Lease not found.", status=404)
    except ValueError as exc:
        return _json_error(str(exc))
    except SQLAlchemyError as exc:
        return _write_failed("terminate-lease", exc, record_ref=lease_id)

    log_manager.record(
        component="Leases",
        action="terminate-lease",
        level="info",
        result="success",
        title="Lease terminated",
        user_summary="The lease was terminated and no longer produces rent charges.",
        technical_details=f"LeasingRepository.terminate_lease id={lease.id}",
        record_ref=lease.id,
    )
    return jsonify({"success": True, "lease": _lease_payload(lease)})


@bp.route("/api/properties", methods=["GET"])
def list_properties():
    return jsonify(
        {
            "properties": [
                {"id": prop.id, "name": prop.name, "address": prop.address}
                for prop in LeasingRepository.properties()
            ]
        }
    )


@bp.route("/api/properties", methods=["POST"])
def create_property():
    data = request.get_json(silent=True) or {}
    try:
        prop = LeasingRepository.create_property(
            name=data.get("name") or "", address=data.get("address") or ""
        )
    except ValueError as exc:
        return _json_error(str(exc))
    except SQLAlchemyError as exc:
        return _write_failed("create-property", exc)

    response = jsonify(
        {"success": True, "property": {"id": prop.id, "name": prop.name, "address": prop.address}}
    )
    response.status_code = 201
    return response


def _unit_payload(unit) -> dict[str, object]:
    return {
        "id": unit.id,
        "propertyId": unit.property_id,
        "number": unit.number,
        "label": unit.label,
        "rent": decimal_to_number(unit.rent),
    }


@bp.route("/api/units", methods=["GET"])
def list_units():
    units = LeasingRepository.units(property_id=request.args.get("property") or None)
    return jsonify({"units": [_unit_payload(unit) for unit in units]})


@bp.route("/api/units", methods=["POST"])
def create_unit():
    data = request.get_json(silent=True) or {}
    try:
        unit = LeasingRepository.create_unit(
            property_id=(data.get("property_id") or "").strip(),
            number=str(data.get("number") or ""),
            rent=data.get("rent") or 0,
        )
    except LookupError as exc:
        return _json_error(str(exc), status=404)
    except ValueError as exc:
        return _json_error(str(exc))
    except SQLAlchemyError as exc:
        return _write_failed("create-unit", exc)

    response = jsonify({"success": True, "unit": _unit_payload(unit)})
    response.status_code = 201
    return response


@bp.route("/api/tenants", methods=["GET"])
def list_tenants():
    return jsonify(
        {
            "tenants": [
                {"id": tenant.id, "name": tenant.name, "email": tenant.email, "phone": tenant.phone}
                for tenant in LeasingRepository.tenants()
            ]
        }
    )


@bp.route("/api/tenants", methods=["POST"])
def create_tenant():
    data = request.get_json(silent=True) or {}
    try:
        tenant = LeasingRepository.create_tenant(
            name=data.get("name") or "",
            email=data.get("email") or "",
            phone=data.get("phone") or "",
        )
    except ValueError as exc:
        return _json_error(str(exc))
    except SQLAlchemyError as exc:
        return _write_failed("create-tenant", exc)

    response = jsonify(
        {
            "success": True,
            "tenant": {"id": tenant.id, "name": tenant.name, "email": tenant.email, "phone": tenant.phone},
        }
    )
    response.status_code = 201
    return response


def _deposit_response(row, state, *, status: int = 200):
    response = jsonify(
        {
            "success": True,
            "deposit": serialize_deposit(
                state, deposit_id=row.id, lease_id=row.lease_id, tenant_id=row.tenant_id
            ),
        }
    )
    response.status_code = status
    return response


def _record_deposit_change(action: str, title: str, summary: str, row, state) -> None:
    log_manager.record(
        component="Leases",
        action=action,
        level="info",
        result="success",
        title=title,
        user_summary=summary,
        technical_details=f"LeasingRepository deposit={row.id} lease={row.lease_id} status={state.status}",
        record_ref=row.lease_id,
    )


@bp.route("/api/leases/<lease_id>/deposit", methods=["GET"])
def deposit_detail(lease_id: str):
    try:
        row, state = LeasingRepository.deposit(lease_id)
    except KeyError:
        return _json_error("No deposit is on file for this lease.", status=404)
    return _deposit_response(row, state)


@bp.route("/api/leases/<lease_id>/deposit", methods=["POST"])
def open_deposit(lease_id: str):
    """Start holding the security deposit for a lease."""

    data = request.get_json(silent=True) or {}
    try:
        row, state = LeasingRepository.open_deposit(
            lease_id, held_on=current_date(), amount=data.get("amount")
        )
    except KeyError:
        return _json_error("Lease not found.", status=404)
    except ValueError as exc:
        return _json_error(str(exc))
    except SQLAlchemyError as exc:
        return _write_failed("open-deposit", exc, record_ref=lease_id)

    _record_deposit_change(
        "open-deposit",
        "Deposit held",
        f"Holding a {format_currency(state.amount)} security deposit.",
        row,
        state,
    )
    return _deposit_response(row, state, status=201)


@bp.route("/api/leases/<lease_id>/deposit/deductions", methods=["POST"])
def add_deposit_deduction(lease_id: str):
    data = request.get_json(silent=True) or {}
    try:
        row, state = LeasingRepository.add_deposit_deduction(
            lease_id,
            amount=data.get("amount"),
            reason=str(data.get("reason") or ""),
            category=str(data.get("category") or ""),
            description=str(data.get("description") or ""),
            applied_on=current_date(),
        )
    except KeyError:
        return _json_error("No deposit is on file for this lease.", status=404)
    except ValueError as exc:
        return _json_error(str(exc))
    except SQLAlchemyError as exc:
        return _write_failed("deposit-deduction", exc, record_ref=lease_id)

    _record_deposit_change(
        "deposit-deduction",
        "Deposit deduction applied",
        f"Withheld {format_currency(state.deductions[-1].amount)} for {state.deductions[-1].reason}.",
        row,
        state,
    )
    return _deposit_response(row, state, status=201)


@bp.route("/api/leases/<lease_id>/deposit/deductions/<deduction_id>", methods=["DELETE"])
def remove_deposit_deduction(lease_id: str, deduction_id: str):
    try:
        row, state = LeasingRepository.remove_deposit_deduction(lease_id, deduction_id)
    except KeyError:
        return _json_error("Deposit or deduction not found.", status=404)
    except ValueError as exc:
        return _json_error(str(exc))
    except SQLAlchemyError as exc:
        return _write_failed("deposit-deduction", exc, record_ref=lease_id)

    _record_deposit_change(
        "remove-deduction", "Deposit deduction removed", "A deduction was taken back.", row, state
    )
    return _deposit_response(row, state)


@bp.route("/api/leases/<lease_id>/deposit/request-refund", methods=["POST"])
def request_deposit_refund(lease_id: str):
    try:
        row, state = LeasingRepository.request_deposit_refund(lease_id, on=current_date())
    except KeyError:
        return _json_error("No deposit is on file for this lease.", status=404)
    except ValueError as exc:
        return _json_error(str(exc))
    except SQLAlchemyError as exc:
        return _write_failed("request-refund", exc, record_ref=lease_id)

    _record_deposit_change(
        "request-refund", "Deposit refund requested", "The deposit is queued for refund.", row, state
    )
    return _deposit_response(row, state)


@bp.route("/api/leases/<lease_id>/deposit/settle", methods=["POST"])
def settle_deposit(lease_id: str):
    """Close the deposit, refunding whatever the deductions leave over."""

    try:
        row, state = LeasingRepository.settle_deposit(lease_id, on=current_date())
    except KeyError:
        return _json_error("No deposit is on file for this lease.", status=404)
    except ValueError as exc:
        return _json_error(str(exc))
    except SQLAlchemyError as exc:
        return _write_failed("settle-deposit", exc, record_ref=lease_id)

    _record_deposit_change(
        "settle-deposit",
        "Deposit settled",
        f"Deposit {state.status.label.lower()}; {format_currency(refund_due(state))} returned.",
        row,
        state,
    )
    return _deposit_response(row, state)
