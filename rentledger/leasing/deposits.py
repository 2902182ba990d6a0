"""Security deposit states and the transitions between them.

A deposit is always exactly one of ``Held``, ``PendingRefund``, ``Refunded``
or ``Deducted``. Each state only carries the fields that are meaningful for
it: a refund date exists only once the deposit is refunded, and deductions
can only be changed while the deposit is still open.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from enum import StrEnum
from typing import Any, ClassVar, Union

from .services import ZERO, decimal_to_number, format_currency, quantize_amount

DEDUCTION_CATEGORIES: tuple[str, ...] = ("damage", "cleaning", "unpaid_rent", "utilities", "other")


class DepositStatus(StrEnum):
    HELD = "held"
    PENDING_REFUND = "pending_refund"
    REFUNDED = "refunded"
    DEDUCTED = "deducted"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").capitalize()


@dataclass(frozen=True)
class Deduction:
    """An amount withheld from a deposit, with the reason it was withheld."""

    id: str
    amount: Decimal
    reason: str
    category: str
    applied_on: date
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "amount": decimal_to_number(self.amount),
            "reason": self.reason,
            "category": self.category,
            "description": self.description,
            "appliedOn": self.applied_on.isoformat(),
        }


@dataclass(frozen=True)
class Held:
    status: ClassVar[DepositStatus] = DepositStatus.HELD

    amount: Decimal
    held_on: date
    deductions: tuple[Deduction, ...] = ()


@dataclass(frozen=True)
class PendingRefund:
    status: ClassVar[DepositStatus] = DepositStatus.PENDING_REFUND

    amount: Decimal
    held_on: date
    deductions: tuple[Deduction, ...]
    requested_on: date


@dataclass(frozen=True)
class Refunded:
    status: ClassVar[DepositStatus] = DepositStatus.REFUNDED

    amount: Decimal
    held_on: date
    deductions: tuple[Deduction, ...]
    refunded_on: date
    refunded_amount: Decimal


@dataclass(frozen=True)
class Deducted:
    """Deductions consumed the whole deposit; nothing is returned."""

    status: ClassVar[DepositStatus] = DepositStatus.DEDUCTED

    amount: Decimal
    held_on: date
    deductions: tuple[Deduction, ...]
    settled_on: date


DepositState = Union[Held, PendingRefund, Refunded, Deducted]
OPEN_STATES = (Held, PendingRefund)


def total_deductions(state: DepositState) -> Decimal:
    return sum((deduction.amount for deduction in state.deductions), ZERO)


def refund_due(state: DepositState) -> Decimal:
    """Amount returned to the tenant once the deposit is settled."""

    return max(quantize_amount(state.amount) - total_deductions(state), ZERO)


def _require_open(state: DepositState, action: str) -> None:
    if not isinstance(state, OPEN_STATES):
        raise ValueError(f"Cannot {action} a deposit that is already {state.status.label.lower()}.")


def add_deduction(state: DepositState, deduction: Deduction) -> DepositState:
    """Return ``state`` with ``deduction`` applied.

    Deductions need a positive amount, a reason and a known category, and
    together they may not exceed the deposit.
    """

    _require_open(state, "deduct from")
    if deduction.amount <= 0:
        raise ValueError("A deduction must be greater than zero.")
    if not deduction.reason.strip():
        raise ValueError("Give a reason for the deduction.")
    if deduction.category not in DEDUCTION_CATEGORIES:
        raise ValueError(f"Unsupported deduction category '{deduction.category}'.")
    if total_deductions(state) + deduction.amount > quantize_amount(state.amount):
        raise ValueError("Deductions cannot exceed the deposit amount.")
    return replace(state, deductions=state.deductions + (deduction,))


def remove_deduction(state: DepositState, deduction_id: str) -> DepositState:
    _require_open(state, "change deductions on")
    remaining = tuple(d for d in state.deductions if d.id != deduction_id)
    if len(remaining) == len(state.deductions):
        raise KeyError(deduction_id)
    return replace(state, deductions=remaining)


def request_refund(state: DepositState, on: date) -> PendingRefund:
    if not isinstance(state, Held):
        raise ValueError("Only a held deposit can be queued for refund.")
    return PendingRefund(
        amount=state.amount, held_on=state.held_on, deductions=state.deductions, requested_on=on
    )


def settle(state: DepositState, on: date) -> Refunded | Deducted:
    """Close an open deposit, refunding whatever the deductions leave over."""

    _require_open(state, "settle")
    refund = refund_due(state)
    if refund > 0:
        return Refunded(
            amount=state.amount,
            held_on=state.held_on,
            deductions=state.deductions,
            refunded_on=on,
            refunded_amount=refund,
        )
    return Deducted(
        amount=state.amount, held_on=state.held_on, deductions=state.deductions, settled_on=on
    )


def serialize_deposit(state: DepositState, *, deposit_id: str, lease_id: str, tenant_id: str) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": deposit_id,
        "leaseId": lease_id,
        "tenantId": tenant_id,
        "status": str(state.status),
        "statusLabel": state.status.label,
        "amount": decimal_to_number(state.amount),
        "amountDisplay": format_currency(state.amount),
        "heldOn": state.held_on.isoformat(),
        "deductions": [deduction.to_dict() for deduction in state.deductions],
        "totalDeductions": decimal_to_number(total_deductions(state)),
        "refundDue": decimal_to_number(refund_due(state)),
    }
    if isinstance(state, PendingRefund):
        payload["requestedOn"] = state.requested_on.isoformat()
    elif isinstance(state, Refunded):
        payload["refundedOn"] = state.refunded_on.isoformat()
        payload["refundedAmount"] = decimal_to_number(state.refunded_amount)
    elif isinstance(state, Deducted):
        payload["settledOn"] = state.settled_on.isoformat()
    return payload
