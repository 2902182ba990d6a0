"""Unit tests for payment status, late fees and ledger reconciliation."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from rentledger.payments import services
from rentledger.payments.services import LifecycleStatus


def test_is_overdue_requires_unpaid_and_past_due(make_payment):
    pending = make_payment(due_date=date(2024, 6, 1), status="pending")
    paid = make_payment(due_date=date(2024, 6, 1), status="paid")

    assert services.is_overdue(pending, date(2024, 6, 2))
    assert not services.is_overdue(pending, date(2024, 6, 1))
    assert not services.is_overdue(paid, date(2024, 7, 1))


def test_late_fee_applies_after_grace_period(make_lease, make_payment):
    lease = make_lease(grace_period=5, late_fee=Decimal("50"))
    payment = make_payment(due_date=date(2024, 6, 1), status="pending")

    assert services.calculate_late_fee(payment, lease, date(2024, 6, 10)) == Decimal("50.00")


def test_late_fee_waived_within_grace_period(make_lease, make_payment):
    lease = make_lease(grace_period=5, late_fee=Decimal("50"))
    payment = make_payment(due_date=date(2024, 6, 1), status="pending")

    assert services.calculate_late_fee(payment, lease, date(2024, 6, 3)) == Decimal("0.00")
    assert services.calculate_late_fee(payment, lease, date(2024, 6, 6)) == Decimal("0.00")
    assert services.calculate_late_fee(payment, lease, date(2024, 6, 7)) == Decimal("50.00")


def test_late_fee_is_flat_rather_than_daily(make_lease, make_payment):
    lease = make_lease(grace_period=5, late_fee=Decimal("50"))
    payment = make_payment(due_date=date(2024, 1, 1), status="late")

    assert services.calculate_late_fee(payment, lease, date(2024, 6, 30)) == Decimal("50.00")


def test_paid_payment_has_no_late_fee(make_lease, make_payment):
    lease = make_lease()
    payment = make_payment(status="paid", paid_date=date(2024, 6, 20))

    assert services.calculate_late_fee(payment, lease, date(2024, 7, 1)) == Decimal("0.00")


def test_cancelled_payment_has_no_late_fee_and_matches_ledger(make_lease, make_payment):
    lease = make_lease(grace_period=5, late_fee=Decimal("50"))
    payment = make_payment(due_date=date(2024, 6, 15), status="cancelled")
    now = date(2024, 6, 30)

    assert services.is_overdue(payment, now)
    assert services.calculate_late_fee(payment, lease, now) == Decimal("0.00")
    assert services.get_total_payment_amount(payment, lease, now) == Decimal("2000.00")

    schedule = services.generate_schedule([lease], date(2024, 6, 1), date(2024, 6, 30), now=now)
    entries, _ = services.reconcile(schedule, [payment], {lease.id: lease}, now)
    assert [(entry.status, entry.late_fee) for entry in entries] == [
        (LifecycleStatus.WRITTEN_OFF, Decimal("0.00"))
    ]


def test_missing_lease_yields_zero_fee_and_an_issue(make_payment):
    payment = make_payment(id="p-9", lease_id="gone", due_date=date(2024, 6, 1))
    issues: list[services.IntegrityIssue] = []

    fee = services.calculate_late_fee(payment, None, date(2024, 6, 30), issues=issues)

    assert fee == Decimal("0.00")
    assert len(issues) == 1
    assert issues[0].kind == "missing_lease"
    assert issues[0].record_id == "p-9"
    assert issues[0].missing_id == "gone"


def test_total_payment_amount_adds_late_fee(make_lease, make_payment):
    lease = make_lease(grace_period=5, late_fee=Decimal("75"))
    payment = make_payment(amount=Decimal("1200"), due_date=date(2024, 6, 1))

    assert services.get_total_payment_amount(payment, lease, date(2024, 6, 3)) == Decimal("1200.00")
    assert services.get_total_payment_amount(payment, lease, date(2024, 6, 10)) == Decimal("1275.00")


def test_serialize_payment_uses_unknown_labels(make_lease, make_payment):
    payment = make_payment(tenant_id="ghost", due_date=date(2024, 6, 1))

    payload = services.serialize_payment(
        payment,
        make_lease(),
        date(2024, 6, 10),
        tenant_names={},
        unit_labels={"unit-1": "Unit 4B"},
        property_names={},
    )

    assert payload["tenantName"] == "Unknown"
    assert payload["propertyName"] == "Unknown"
    assert payload["unitLabel"] == "Unit 4B"
    assert payload["isOverdue"] is True
    assert payload["lateFee"] == 50.0
    assert payload["total"] == 2050.0


def test_summarize_payments_counts_late_as_overdue(make_payment):
    payments = [
        make_payment(id="1", status="paid", amount=Decimal("100")),
        make_payment(id="2", status="pending", amount=Decimal("200")),
        make_payment(id="3", status="late", amount=Decimal("300")),
        make_payment(id="4", status="overdue", amount=Decimal("400")),
        make_payment(id="5", status="cancelled", amount=Decimal("500")),
    ]

    summary = services.summarize_payments(payments)

    assert summary["total_count"] == 5
    assert summary["paid_amount"] == Decimal("100.00")
    assert summary["pending_amount"] == Decimal("200.00")
    assert summary["overdue_count"] == 2
    assert summary["overdue_amount"] == Decimal("700.00")


def _june_schedule(make_lease, now):
    leases = [
        make_lease(id="on-time", start_date=date(2024, 1, 1)),
        make_lease(id="late-payer", start_date=date(2024, 1, 2)),
        make_lease(id="unpaid", start_date=date(2024, 1, 3)),
        make_lease(id="waived", start_date=date(2024, 1, 4)),
        make_lease(id="awaiting", start_date=date(2024, 1, 5)),
        make_lease(id="future", start_date=date(2024, 1, 28)),
    ]
    schedule = services.generate_schedule(leases, date(2024, 6, 1), date(2024, 6, 30), now=now)
    return leases, schedule


def test_reconcile_assigns_one_lifecycle_status_per_charge(make_lease, make_payment):
    now = date(2024, 6, 12)
    leases, schedule = _june_schedule(make_lease, now)
    payments = [
        make_payment(id="p1", lease_id="on-time", due_date=date(2024, 6, 1), status="paid", paid_date=date(2024, 6, 4)),
        make_payment(id="p2", lease_id="late-payer", due_date=date(2024, 6, 2), status="paid", paid_date=date(2024, 6, 11)),
        make_payment(id="p4", lease_id="waived", due_date=date(2024, 6, 4), status="cancelled"),
        make_payment(id="p5", lease_id="awaiting", due_date=date(2024, 6, 5), status="pending"),
        make_payment(id="stray", lease_id="on-time", due_date=date(2024, 6, 9), status="paid"),
    ]

    entries, unmatched = services.reconcile(
        schedule, payments, {lease.id: lease for lease in leases}, now
    )

    statuses = {entry.obligation.lease_id: entry.status for entry in entries}
    assert statuses == {
        "on-time": LifecycleStatus.PAID,
        "late-payer": LifecycleStatus.PAID_LATE,
        "unpaid": LifecycleStatus.OVERDUE,
        "waived": LifecycleStatus.WRITTEN_OFF,
        "awaiting": LifecycleStatus.OVERDUE,
        "future": LifecycleStatus.SCHEDULED,
    }
    fees = {entry.obligation.lease_id: entry.late_fee for entry in entries}
    assert fees["unpaid"] == Decimal("50.00")
    assert fees["late-payer"] == Decimal("50.00")
    assert fees["on-time"] == Decimal("0.00")
    assert [payment.id for payment in unmatched] == ["stray"]


def test_reconcile_pending_before_due_date(make_lease, make_payment):
    lease = make_lease()
    schedule = services.generate_schedule(
        [lease], date(2024, 6, 1), date(2024, 6, 30), now=date(2024, 6, 10)
    )
    payment = make_payment(due_date=date(2024, 6, 15), status="pending")

    entries, unmatched = services.reconcile(schedule, [payment], {lease.id: lease}, date(2024, 6, 10))

    assert [entry.status for entry in entries] == [LifecycleStatus.PENDING]
    assert unmatched == []
    assert services.summarize_ledger(entries)["pending"] == 1
    assert entries[0].to_dict()["paymentId"] == "payment-1"


def test_find_missing_references_reports_each_lease_once(make_lease):
    leases = [make_lease(id="a", tenant_id="ghost", start_date=date(2024, 1, 1))]
    schedule = services.generate_schedule(
        leases, date(2024, 1, 1), date(2024, 6, 30), now=date(2024, 1, 1)
    )

    issues = services.find_missing_references(
        schedule, tenant_names={"tenant-1": "Ada"}, unit_labels={"unit-1": "Unit 1"}
    )

    assert len(schedule) == 6
    assert [(issue.kind, issue.missing_id) for issue in issues] == [("missing_tenant", "ghost")]
