"""Lease rules: term validation, expiry classification and portfolio figures."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, Mapping

from .models import LEASE_STATUSES

ZERO = Decimal("0.00")
UNKNOWN_LABEL = "Unknown"

EXPIRY_LABELS: dict[str, str] = {
    "expired": "Expired",
    "expiring_soon": "Expiring soon",
    "expiring_later": "Expiring later",
    "current": "Current",
}


def quantize_amount(value: Decimal | float | int | str) -> Decimal:
    """Normalize values to two decimal places."""

    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, TypeError) as exc:
            raise ValueError(f"Invalid amount '{value}'") from exc
    if not amount.is_finite():
        raise ValueError(f"Invalid amount '{value}'")
    return amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def decimal_to_number(value: Decimal | float | int) -> float:
    """Convert decimals to floats for JSON serialization."""

    if isinstance(value, Decimal):
        return float(value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
    return float(value)


def format_currency(value: Decimal | float | int) -> str:
    """Format amounts using standard USD formatting."""

    return f"${quantize_amount(value):,.2f}"


def parse_date(value: Any, *, field: str = "date") -> date:
    """Parse an ISO ``YYYY-MM-DD`` value, passing ``date`` objects through."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except (TypeError, ValueError) as exc:
        raise ValueError(f"The {field} must be a date in YYYY-MM-DD format.") from exc


def validate_lease_terms(
    *,
    start_date: date,
    end_date: date,
    rent: Decimal,
    late_fee: Decimal = ZERO,
    grace_period: int = 0,
    status: str = "pending",
) -> None:
    """Raise ``ValueError`` when lease terms are not acceptable at signing.

    Schedule generation assumes these rules already hold, so this is the only
    place a lease with its end before its start is turned away.
    """

    if start_date >= end_date:
        raise ValueError("The lease end date must be after the start date.")
    if rent <= 0:
        raise ValueError("Monthly rent must be greater than zero.")
    if late_fee < 0:
        raise ValueError("The late fee cannot be negative.")
    if grace_period < 0:
        raise ValueError("The grace period cannot be negative.")
    if status not in LEASE_STATUSES:
        raise ValueError(f"Unsupported lease status '{status}'.")


def days_until(target: date, now: date) -> int:
    return (target - now).days


def classify_expiry(
    end_date: date,
    now: date,
    *,
    soon_days: int = 30,
    later_days: int = 90,
) -> str:
    """Bucket a lease end date relative to ``now``."""

    remaining = days_until(end_date, now)
    if remaining < 0:
        return "expired"
    if remaining <= soon_days:
        return "expiring_soon"
    if remaining <= later_days:
        return "expiring_later"
    return "current"


def summarize_leases(
    leases: Iterable, now: date, *, soon_days: int = 30, later_days: int = 90
) -> dict[str, Any]:
    """Return the headline lease figures shown above the lease table."""

    leases = list(leases)
    active = [lease for lease in leases if lease.status == "active"]
    expiring_soon = [
        lease
        for lease in leases
        if classify_expiry(lease.end_date, now, soon_days=soon_days, later_days=later_days)
        == "expiring_soon"
    ]
    monthly_revenue = sum((quantize_amount(lease.rent) for lease in active), ZERO)
    return {
        "total": len(leases),
        "active": len(active),
        "expiring_soon": len(expiring_soon),
        "monthly_revenue": monthly_revenue,
    }


def search_leases(
    leases: Iterable,
    query: str | None,
    *,
    tenant_names: Mapping[str, str],
    unit_labels: Mapping[str, str],
    property_names: Mapping[str, str],
) -> list:
    """Case-insensitive search across tenant name, unit number and property name."""

    leases = list(leases)
    term = (query or "").strip().lower()
    if not term:
        return leases

    def haystack(lease) -> str:
        return " ".join(
            (
                tenant_names.get(lease.tenant_id, ""),
                unit_labels.get(lease.unit_id, ""),
                property_names.get(lease.property_id, ""),
            )
        ).lower()

    return [lease for lease in leases if term in haystack(lease)]


def lease_duration_label(lease) -> str:
    """Describe the lease length in days, months or years."""

    total_days = (lease.end_date - lease.start_date).days
    if total_days < 30:
        return f"{total_days} days"
    if total_days < 365:
        months = total_days // 30
        return f"{months} month{'s' if months > 1 else ''}"
    years = total_days // 365
    return f"{years} year{'s' if years > 1 else ''}"


def serialize_lease(
    lease,
    now: date,
    *,
    tenant_names: Mapping[str, str],
    unit_labels: Mapping[str, str],
    property_names: Mapping[str, str],
    soon_days: int = 30,
    later_days: int = 90,
) -> dict[str, Any]:
    """Return lease details for JSON consumers; missing references read ``Unknown``."""

    expiry = classify_expiry(lease.end_date, now, soon_days=soon_days, later_days=later_days)
    remaining = days_until(lease.end_date, now)
    return {
        "id": lease.id,
        "tenantId": lease.tenant_id,
        "unitId": lease.unit_id,
        "propertyId": lease.property_id,
        "tenantName": tenant_names.get(lease.tenant_id, UNKNOWN_LABEL),
        "unitLabel": unit_labels.get(lease.unit_id, UNKNOWN_LABEL),
        "propertyName": property_names.get(lease.property_id, UNKNOWN_LABEL),
        "startDate": lease.start_date.isoformat(),
        "endDate": lease.end_date.isoformat(),
        "rent": decimal_to_number(lease.rent),
        "rentDisplay": format_currency(lease.rent),
        "deposit": decimal_to_number(lease.deposit or ZERO),
        "status": lease.status,
        "lateFee": decimal_to_number(lease.late_fee or ZERO),
        "gracePeriod": lease.grace_period,
        "autoRenew": bool(lease.auto_renew),
        "duration": lease_duration_label(lease),
        "expiry": expiry,
        "expiryLabel": EXPIRY_LABELS[expiry],
        "daysRemaining": remaining,
        "remainingDisplay": (
            f"{remaining} days remaining" if remaining > 0 else f"{abs(remaining)} days expired"
        ),
    }
