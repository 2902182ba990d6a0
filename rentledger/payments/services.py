"""Rent obligation derivation, payment status and late-fee rules.

Everything here is a pure function of the records passed in and the date
supplied as ``now``. Nothing reads the database or the clock on its own, so
two calls with the same inputs always return the same result.

Due dates are anchored on the lease start date: the n-th charge falls on
``add_months(start_date, n)``. When the anchor day does not exist in a month
the charge is clamped to that month's last day, and the following month
returns to the anchor day (Jan 31, Feb 29, Mar 31, Apr 30, ...).
"""
from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import StrEnum
from typing import Any, Iterable, Iterator, Mapping

from ..leasing.services import (
    UNKNOWN_LABEL,
    ZERO,
    decimal_to_number,
    format_currency,
    quantize_amount,
)

DEFAULT_DUE_SOON_DAYS = 7
_MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")


class ObligationStatus(StrEnum):
    """Urgency of a rent charge relative to today."""

    UPCOMING = "upcoming"
    DUE_SOON = "due_soon"
    OVERDUE = "overdue"

    @property
    def label(self) -> str:
        return {
            ObligationStatus.UPCOMING: "Upcoming",
            ObligationStatus.DUE_SOON: "Due Soon",
            ObligationStatus.OVERDUE: "Overdue",
        }[self]


class LifecycleStatus(StrEnum):
    """Single status for a rent charge once its recorded payment is taken into account."""

    SCHEDULED = "scheduled"
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    PAID_LATE = "paid_late"
    WRITTEN_OFF = "written_off"


@dataclass(frozen=True)
class IntegrityIssue:
    """A record that points at something the stores do not know about."""

    kind: str
    record_type: str
    record_id: str
    missing_id: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {
            "kind": self.kind,
            "recordType": self.record_type,
            "recordId": self.record_id,
            "missingId": self.missing_id,
            "message": self.message,
        }


@dataclass(frozen=True)
class PaymentObligation:
    """One expected rent charge. Identified by ``(lease_id, due_date)``; never stored."""

    lease_id: str
    tenant_id: str
    unit_id: str
    property_id: str
    due_date: date
    amount: Decimal
    status: ObligationStatus

    @property
    def key(self) -> tuple[str, date]:
        return (self.lease_id, self.due_date)

    def to_dict(
        self,
        *,
        tenant_names: Mapping[str, str] | None = None,
        unit_labels: Mapping[str, str] | None = None,
        property_names: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "leaseId": self.lease_id,
            "tenantId": self.tenant_id,
            "unitId": self.unit_id,
            "propertyId": self.property_id,
            "dueDate": self.due_date.isoformat(),
            "amount": decimal_to_number(self.amount),
            "status": str(self.status),
            "statusLabel": self.status.label,
        }
        if tenant_names is not None:
            payload["tenantName"] = tenant_names.get(self.tenant_id, UNKNOWN_LABEL)
        if unit_labels is not None:
            payload["unitLabel"] = unit_labels.get(self.unit_id, UNKNOWN_LABEL)
        if property_names is not None:
            payload["propertyName"] = property_names.get(self.property_id, UNKNOWN_LABEL)
        return payload


def add_months(anchor: date, months: int) -> date:
    """Return ``anchor`` shifted by whole calendar months, clamped to month end."""

    month_index = anchor.month - 1 + months
    year = anchor.year + month_index // 12
    month = month_index % 12 + 1
    day = min(anchor.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def month_window(month: str) -> tuple[date, date]:
    """Return the first and last day of a ``YYYY-MM`` reporting month."""

    match = _MONTH_PATTERN.match((month or "").strip())
    if not match:
        raise ValueError(f"Month must use the YYYY-MM format, got '{month}'.")
    year, month_number = int(match.group(1)), int(match.group(2))
    if not 1 <= month_number <= 12 or year < 1:
        raise ValueError(f"Month must use the YYYY-MM format, got '{month}'.")
    last_day = calendar.monthrange(year, month_number)[1]
    return date(year, month_number, 1), date(year, month_number, last_day)


def iter_due_dates(start_date: date, end_date: date, *, not_before: date | None = None) -> Iterator[date]:
    """Yield monthly due dates from ``start_date`` through ``end_date`` inclusive.

    ``not_before`` lets callers skip whole months that cannot matter; dates
    before it may still be yielded for the month immediately preceding it.
    """

    step = 0
    if not_before is not None:
        months_apart = (not_before.year - start_date.year) * 12 + not_before.month - start_date.month
        step = max(months_apart - 1, 0)

    due = add_months(start_date, step)
    while due <= end_date:
        yield due
        step += 1
        due = add_months(start_date, step)


def classify(
    due_date: date, now: date, *, due_soon_days: int = DEFAULT_DUE_SOON_DAYS
) -> ObligationStatus:
    """Classify a due date as overdue, due soon or upcoming."""

    if due_date < now:
        return ObligationStatus.OVERDUE
    if (due_date - now).days <= due_soon_days:
        return ObligationStatus.DUE_SOON
    return ObligationStatus.UPCOMING


def resolve_property_id(lease, unit_directory: Mapping[str, str] | None = None) -> str:
    """Return the property a lease belongs to, preferring the unit directory."""

    if unit_directory is not None and lease.unit_id in unit_directory:
        return unit_directory[lease.unit_id]
    return lease.property_id or ""


def generate_schedule(
    leases: Iterable,
    window_start: date,
    window_end: date,
    property_filter: str | None = None,
    *,
    now: date,
    unit_directory: Mapping[str, str] | None = None,
    due_soon_days: int = DEFAULT_DUE_SOON_DAYS,
) -> list[PaymentObligation]:
    """Return the rent charges of active leases falling inside the window.

    Only leases with status ``active`` contribute. The result is sorted by due
    date; charges sharing a due date keep the order of ``leases``.
    """

    schedule: list[PaymentObligation] = []

    for lease in leases:
        if lease.status != "active":
            continue
        property_id = resolve_property_id(lease, unit_directory)
        if property_filter and property_id != property_filter:
            continue

        amount = quantize_amount(lease.rent)
        for due in iter_due_dates(lease.start_date, lease.end_date, not_before=window_start):
            if due > window_end:
                break
            if due < window_start:
                continue
            schedule.append(
                PaymentObligation(
                    lease_id=lease.id,
                    tenant_id=lease.tenant_id,
                    unit_id=lease.unit_id,
                    property_id=property_id,
                    due_date=due,
                    amount=amount,
                    status=classify(due, now, due_soon_days=due_soon_days),
                )
            )

    schedule.sort(key=lambda obligation: obligation.due_date)
    return schedule


def filter_by_status(obligations: Iterable[PaymentObligation], status: str | None) -> list[PaymentObligation]:
    if not status or status == "all":
        return list(obligations)
    wanted = ObligationStatus(status)
    return [obligation for obligation in obligations if obligation.status == wanted]


def summarize_schedule(obligations: Iterable[PaymentObligation]) -> dict[str, Any]:
    """Count and total the schedule per status."""

    obligations = list(obligations)
    summary: dict[str, Any] = {
        "total_count": len(obligations),
        "total_amount": sum((item.amount for item in obligations), ZERO),
    }
    for status in ObligationStatus:
        matching = [item for item in obligations if item.status == status]
        summary[f"{status}_count"] = len(matching)
        summary[f"{status}_amount"] = sum((item.amount for item in matching), ZERO)
    return summary


def is_overdue(payment, now: date) -> bool:
    """A payment is overdue when it is unpaid and its due date has passed."""

    return payment.status != "paid" and payment.due_date < now


def _flat_late_fee(due_date: date, lease, now: date) -> Decimal:
    if (now - due_date).days <= (lease.grace_period or 0):
        return ZERO
    return quantize_amount(lease.late_fee or ZERO)


def missing_lease_issue(payment) -> IntegrityIssue:
    return IntegrityIssue(
        kind="missing_lease",
        record_type="payment",
        record_id=payment.id,
        missing_id=payment.lease_id or "",
        message=(
            f"Payment {payment.id} references lease {payment.lease_id or '(none)'},"
            " which could not be found; no late fee was applied."
        ),
    )


def calculate_late_fee(payment, lease, now: date, *, issues: list[IntegrityIssue] | None = None) -> Decimal:
    """Return the lease's flat late fee once the grace period has passed.

    The fee is charged once; it is not prorated and does not grow per day.
    When ``lease`` is ``None`` the fee is zero and, if ``issues`` is given, a
    missing-lease issue is appended for the caller to surface. A cancelled
    payment is written off and never carries a fee.
    """

    if payment.status == "cancelled" or not is_overdue(payment, now):
        return ZERO
    if lease is None:
        if issues is not None:
            issues.append(missing_lease_issue(payment))
        return ZERO
    return _flat_late_fee(payment.due_date, lease, now)


def get_total_payment_amount(
    payment, lease, now: date, *, issues: list[IntegrityIssue] | None = None
) -> Decimal:
    return quantize_amount(payment.amount) + calculate_late_fee(payment, lease, now, issues=issues)


def serialize_payment(
    payment,
    lease,
    now: date,
    *,
    tenant_names: Mapping[str, str],
    unit_labels: Mapping[str, str],
    property_names: Mapping[str, str],
    issues: list[IntegrityIssue] | None = None,
) -> dict[str, Any]:
    """Return a payment with its derived overdue flag, late fee and total due."""

    late_fee = calculate_late_fee(payment, lease, now, issues=issues)
    total = quantize_amount(payment.amount) + late_fee
    return {
        "id": payment.id,
        "leaseId": payment.lease_id,
        "tenantId": payment.tenant_id,
        "unitId": payment.unit_id,
        "propertyId": payment.property_id,
        "tenantName": tenant_names.get(payment.tenant_id, UNKNOWN_LABEL),
        "unitLabel": unit_labels.get(payment.unit_id, UNKNOWN_LABEL),
        "propertyName": property_names.get(payment.property_id, UNKNOWN_LABEL),
        "type": payment.type,
        "amount": decimal_to_number(payment.amount),
        "dueDate": payment.due_date.isoformat(),
        "paidDate": payment.paid_date.isoformat() if payment.paid_date else None,
        "status": payment.status,
        "method": payment.method,
        "reference": payment.reference,
        "isOverdue": is_overdue(payment, now),
        "lateFee": decimal_to_number(late_fee),
        "total": decimal_to_number(total),
        "totalDisplay": format_currency(total),
    }


def summarize_payments(payments: Iterable) -> dict[str, Any]:
    """Paid, pending and overdue counts and totals for recorded payments.

    Recorded statuses ``late`` and ``overdue`` both count as overdue.
    """

    payments = list(payments)
    buckets = {
        "paid": [p for p in payments if p.status == "paid"],
        "pending": [p for p in payments if p.status == "pending"],
        "overdue": [p for p in payments if p.status in ("late", "overdue")],
    }
    summary: dict[str, Any] = {"total_count": len(payments)}
    for name, items in buckets.items():
        summary[f"{name}_count"] = len(items)
        summary[f"{name}_amount"] = sum((quantize_amount(p.amount) for p in items), ZERO)
    return summary


@dataclass(frozen=True)
class LedgerEntry:
    """A rent charge paired with the payment recorded against it, if any."""

    obligation: PaymentObligation
    payment: Any
    status: LifecycleStatus
    late_fee: Decimal

    def to_dict(self) -> dict[str, Any]:
        payload = self.obligation.to_dict()
        payload.update(
            status=str(self.status),
            urgency=str(self.obligation.status),
            paymentId=self.payment.id if self.payment is not None else None,
            paidDate=(
                self.payment.paid_date.isoformat()
                if self.payment is not None and self.payment.paid_date
                else None
            ),
            lateFee=decimal_to_number(self.late_fee),
        )
        return payload


def _lifecycle_status(obligation: PaymentObligation, payment, lease, now: date) -> LifecycleStatus:
    if payment is None:
        if obligation.due_date < now:
            return LifecycleStatus.OVERDUE
        return LifecycleStatus.SCHEDULED
    if payment.status == "cancelled":
        return LifecycleStatus.WRITTEN_OFF
    if payment.status == "paid":
        grace = lease.grace_period if lease is not None else 0
        if payment.paid_date and (payment.paid_date - obligation.due_date).days > (grace or 0):
            return LifecycleStatus.PAID_LATE
        return LifecycleStatus.PAID
    if is_overdue(payment, now):
        return LifecycleStatus.OVERDUE
    return LifecycleStatus.PENDING


def reconcile(
    obligations: Iterable[PaymentObligation],
    payments: Iterable,
    leases_by_id: Mapping[str, Any],
    now: date,
) -> tuple[list[LedgerEntry], list]:
    """Match rent charges to recorded rent payments by ``(lease_id, due_date)``.

    Returns the ledger entries in obligation order and the rent payments that
    matched no charge in the given obligations. When several payments share a
    key, the first one is matched and the rest are returned as unmatched.
    """

    by_key: dict[tuple[str, date], Any] = {}
    unmatched: list = []
    for payment in payments:
        if getattr(payment, "type", "rent") != "rent":
            continue
        key = (payment.lease_id, payment.due_date)
        if key in by_key:
            unmatched.append(payment)
        else:
            by_key[key] = payment

    entries: list[LedgerEntry] = []
    for obligation in obligations:
        payment = by_key.pop(obligation.key, None)
        lease = leases_by_id.get(obligation.lease_id)
        status = _lifecycle_status(obligation, payment, lease, now)

        if status is LifecycleStatus.OVERDUE and lease is not None:
            late_fee = _flat_late_fee(obligation.due_date, lease, now)
        elif status is LifecycleStatus.PAID_LATE:
            late_fee = quantize_amount(lease.late_fee or ZERO) if lease is not None else ZERO
        else:
            late_fee = ZERO
        entries.append(LedgerEntry(obligation, payment, status, late_fee))

    unmatched.extend(by_key.values())
    return entries, unmatched


def summarize_ledger(entries: Iterable[LedgerEntry]) -> dict[str, int]:
    entries = list(entries)
    return {str(status): sum(1 for entry in entries if entry.status == status) for status in LifecycleStatus}


def find_missing_references(
    obligations: Iterable[PaymentObligation],
    *,
    tenant_names: Mapping[str, str],
    unit_labels: Mapping[str, str],
) -> list[IntegrityIssue]:
    """Report leases in the schedule whose tenant or unit is unknown, once per lease."""

    issues: list[IntegrityIssue] = []
    seen: set[tuple[str, str]] = set()
    for obligation in obligations:
        for kind, missing_id, known in (
            ("missing_tenant", obligation.tenant_id, tenant_names),
            ("missing_unit", obligation.unit_id, unit_labels),
        ):
            if missing_id in known or (obligation.lease_id, kind) in seen:
                continue
            seen.add((obligation.lease_id, kind))
            noun = kind.removeprefix("missing_")
            issues.append(
                IntegrityIssue(
                    kind=kind,
                    record_type="lease",
                    record_id=obligation.lease_id,
                    missing_id=missing_id,
                    message=(
                        f"Lease {obligation.lease_id} references {noun} {missing_id or '(none)'},"
                        f" which could not be found; it is listed as {UNKNOWN_LABEL}."
                    ),
                )
            )
    return issues
