"""Unit tests for the security deposit states."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from rentledger.leasing import deposits
from rentledger.leasing.deposits import Deducted, Held, PendingRefund, Refunded


def _deduction(amount: str, id: str = "d1", category: str = "cleaning") -> deposits.Deduction:
    return deposits.Deduction(
        id=id,
        amount=Decimal(amount),
        reason="Carpet cleaning",
        category=category,
        applied_on=date(2024, 12, 20),
    )


def test_settle_refunds_what_deductions_leave():
    held = deposits.add_deduction(Held(Decimal("1500.00"), date(2024, 1, 15)), _deduction("250.00"))

    pending = deposits.request_refund(held, date(2024, 12, 21))
    settled = deposits.settle(pending, date(2024, 12, 28))

    assert isinstance(pending, PendingRefund)
    assert pending.requested_on == date(2024, 12, 21)
    assert isinstance(settled, Refunded)
    assert settled.refunded_amount == Decimal("1250.00")
    assert settled.refunded_on == date(2024, 12, 28)


def test_settle_fully_deducted_deposit():
    held = deposits.add_deduction(Held(Decimal("500.00"), date(2024, 1, 15)), _deduction("500.00"))

    settled = deposits.settle(held, date(2024, 12, 28))

    assert isinstance(settled, Deducted)
    assert settled.status == "deducted"
    assert deposits.refund_due(settled) == Decimal("0.00")


@pytest.mark.parametrize(
    "deduction",
    [
        _deduction("0.00"),
        _deduction("10.00", category="pets"),
        _deduction("600.00"),
    ],
)
def test_add_deduction_rejects_invalid_amounts_and_categories(deduction):
    with pytest.raises(ValueError):
        deposits.add_deduction(Held(Decimal("500.00"), date(2024, 1, 15)), deduction)


def test_closed_deposit_cannot_change():
    refunded = deposits.settle(Held(Decimal("500.00"), date(2024, 1, 15)), date(2024, 12, 28))

    with pytest.raises(ValueError):
        deposits.add_deduction(refunded, _deduction("10.00"))
    with pytest.raises(ValueError):
        deposits.settle(refunded, date(2024, 12, 29))
    with pytest.raises(ValueError):
        deposits.request_refund(refunded, date(2024, 12, 29))


def test_remove_deduction():
    held = deposits.add_deduction(Held(Decimal("500.00"), date(2024, 1, 15)), _deduction("50.00"))

    assert deposits.remove_deduction(held, "d1").deductions == ()
    with pytest.raises(KeyError):
        deposits.remove_deduction(held, "missing")


def test_serialize_only_includes_fields_for_the_state():
    held = Held(Decimal("500.00"), date(2024, 1, 15))
    refunded = deposits.settle(held, date(2024, 12, 28))

    held_payload = deposits.serialize_deposit(held, deposit_id="dep", lease_id="l1", tenant_id="t1")
    refunded_payload = deposits.serialize_deposit(refunded, deposit_id="dep", lease_id="l1", tenant_id="t1")

    assert held_payload["status"] == "held"
    assert "refundedOn" not in held_payload
    assert refunded_payload["refundedOn"] == "2024-12-28"
    assert refunded_payload["refundedAmount"] == 500.0
