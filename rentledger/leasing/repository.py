"""Store interface over the persisted lease, payment and directory records."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

from ..extensions import db
from . import deposits
from .models import (
    PAYMENT_METHODS,
    PAYMENT_STATUSES,
    PAYMENT_TYPES,
    DepositDeduction,
    Lease,
    Payment,
    Property,
    SecurityDeposit,
    Tenant,
    Unit,
    _new_id,
)
from .services import ZERO, parse_date, quantize_amount, validate_lease_terms


@dataclass(frozen=True)
class Directory:
    """Display names and unit-to-property resolution for a set of records."""

    tenant_names: dict[str, str]
    unit_labels: dict[str, str]
    property_names: dict[str, str]
    unit_properties: dict[str, str]

    def labels(self) -> dict[str, dict[str, str]]:
        return {
            "tenant_names": self.tenant_names,
            "unit_labels": self.unit_labels,
            "property_names": self.property_names,
        }


class LeasingRepository:
    """Database-backed store handed to the derivation functions.

    Derivations never query; callers read plain lists and maps from here and
    pass them in.
    """

    @classmethod
    def leases(cls, *, status: str | None = None) -> list[Lease]:
        query = Lease.query.order_by(Lease.created_at.asc(), Lease.id.asc())
        if status:
            query = query.filter_by(status=status)
        return list(query.all())

    @classmethod
    def get_lease(cls, lease_id: str) -> Lease | None:
        return db.session.get(Lease, lease_id)

    @classmethod
    def leases_by_id(cls) -> dict[str, Lease]:
        return {lease.id: lease for lease in cls.leases()}

    @classmethod
    def payments(
        cls,
        *,
        status: str | None = None,
        tenant_id: str | None = None,
        lease_id: str | None = None,
    ) -> list[Payment]:
        query = Payment.query.order_by(Payment.due_date.asc(), Payment.created_at.asc())
        if status:
            query = query.filter_by(status=status)
        if tenant_id:
            query = query.filter_by(tenant_id=tenant_id)
        if lease_id:
            query = query.filter_by(lease_id=lease_id)
        return list(query.all())

    @classmethod
    def get_payment(cls, payment_id: str) -> Payment | None:
        return db.session.get(Payment, payment_id)

    @classmethod
    def properties(cls) -> list[Property]:
        return list(Property.query.order_by(Property.name.asc()).all())

    @classmethod
    def units(cls, *, property_id: str | None = None) -> list[Unit]:
        query = Unit.query.order_by(Unit.number.asc())
        if property_id:
            query = query.filter_by(property_id=property_id)
        return list(query.all())

    @classmethod
    def tenants(cls) -> list[Tenant]:
        return list(Tenant.query.order_by(Tenant.name.asc()).all())

    @classmethod
    def unit_directory(cls) -> dict[str, str]:
        """Map each unit id to the property it belongs to."""

        return {unit.id: unit.property_id for unit in Unit.query.all()}

    @classmethod
    def directory(cls) -> Directory:
        units = Unit.query.all()
        return Directory(
            tenant_names={tenant.id: tenant.name for tenant in Tenant.query.all()},
            unit_labels={unit.id: unit.label for unit in units},
            property_names={prop.id: prop.name for prop in Property.query.all()},
            unit_properties={unit.id: unit.property_id for unit in units},
        )

    @classmethod
    def create_property(cls, *, name: str, address: str = "") -> Property:
        name = (name or "").strip()
        if not name:
            raise ValueError("A property name is required.")
        prop = Property(name=name, address=(address or "").strip())
        db.session.add(prop)
        db.session.commit()
        return prop

    @classmethod
    def create_unit(
        cls, *, property_id: str, number: str, rent: Any = ZERO
    ) -> Unit:
        number = (number or "").strip()
        if not number:
            raise ValueError("A unit number is required.")
        if db.session.get(Property, property_id) is None:
            raise LookupError(f"Property '{property_id}' was not found.")
        unit = Unit(property_id=property_id, number=number, rent=quantize_amount(rent or ZERO))
        db.session.add(unit)
        db.session.commit()
        return unit

    @classmethod
    def create_tenant(cls, *, name: str, email: str = "", phone: str = "") -> Tenant:
        name = (name or "").strip()
        if not name:
            raise ValueError("A tenant name is required.")
        tenant = Tenant(name=name, email=(email or "").strip(), phone=(phone or "").strip())
        db.session.add(tenant)
        db.session.commit()
        return tenant

    @classmethod
    def create_lease(
        cls,
        *,
        tenant_id: str,
        unit_id: str,
        start_date: Any,
        end_date: Any,
        rent: Any,
        property_id: str | None = None,
        deposit: Any = ZERO,
        status: str = "pending",
        late_fee: Any = ZERO,
        grace_period: int = 5,
        auto_renew: bool = False,
    ) -> Lease:
        """Validate and persist a newly signed lease.

        ``property_id`` is resolved from the unit when omitted; an unknown unit
        is still accepted and the lease is grouped under an empty property.
        """

        start = parse_date(start_date, field="start date")
        end = parse_date(end_date, field="end date")
        rent_amount = quantize_amount(rent)
        fee = quantize_amount(late_fee or ZERO)
        grace = int(grace_period)
        validate_lease_terms(
            start_date=start,
            end_date=end,
            rent=rent_amount,
            late_fee=fee,
            grace_period=grace,
            status=status,
        )

        if not property_id:
            unit = db.session.get(Unit, unit_id)
            property_id = unit.property_id if unit else ""

        lease = Lease(
            tenant_id=tenant_id,
            unit_id=unit_id,
            property_id=property_id,
            start_date=start,
            end_date=end,
            rent=rent_amount,
            deposit=quantize_amount(deposit or ZERO),
            status=status,
            late_fee=fee,
            grace_period=grace,
            auto_renew=bool(auto_renew),
        )
        db.session.add(lease)
        db.session.commit()
        return lease

    @classmethod
    def renew_lease(cls, lease_id: str, *, end_date: Any, rent: Any = None) -> Lease:
        lease = cls.get_lease(lease_id)
        if lease is None:
            raise KeyError(lease_id)
        if lease.status == "terminated":
            raise ValueError("A terminated lease cannot be renewed.")

        new_end = parse_date(end_date, field="end date")
        if new_end <= lease.end_date:
            raise ValueError("The renewed end date must be after the current end date.")

        lease.end_date = new_end
        if rent not in (None, ""):
            new_rent = quantize_amount(rent)
            if new_rent <= 0:
                raise ValueError("Monthly rent must be greater than zero.")
            lease.rent = new_rent
        lease.status = "active"
        db.session.add(lease)
        db.session.commit()
        return lease

    @classmethod
    def terminate_lease(cls, lease_id: str) -> Lease:
        lease = cls.get_lease(lease_id)
        if lease is None:
            raise KeyError(lease_id)
        if lease.status == "terminated":
            raise ValueError("The lease is already terminated.")
        lease.status = "terminated"
        db.session.add(lease)
        db.session.commit()
        return lease

    @classmethod
    def create_payment(
        cls,
        *,
        lease_id: str,
        amount: Any,
        due_date: Any,
        payment_type: str = "rent",
        status: str = "pending",
        method: str | None = None,
        reference: str | None = None,
        notes: str | None = None,
    ) -> Payment:
        """Record an expected or received payment against a lease.

        Tenant, unit and property are copied from the lease; a payment whose
        lease is unknown keeps empty references and surfaces later as an
        integrity warning.
        """

        value = quantize_amount(amount)
        if value <= 0:
            raise ValueError("The payment amount must be greater than zero.")
        if payment_type not in PAYMENT_TYPES:
            raise ValueError(f"Unsupported payment type '{payment_type}'.")
        if status not in PAYMENT_STATUSES:
            raise ValueError(f"Unsupported payment status '{status}'.")
        if method and method not in PAYMENT_METHODS:
            raise ValueError(f"Unsupported payment method '{method}'.")

        lease = cls.get_lease(lease_id)
        payment = Payment(
            lease_id=lease_id,
            tenant_id=lease.tenant_id if lease else "",
            unit_id=lease.unit_id if lease else "",
            property_id=lease.property_id if lease else "",
            type=payment_type,
            amount=value,
            due_date=parse_date(due_date, field="due date"),
            status=status,
            method=method or None,
            reference=(reference or "").strip() or None,
            notes=(notes or "").strip() or None,
        )
        if status == "paid":
            payment.paid_date = payment.due_date
        db.session.add(payment)
        db.session.commit()
        return payment

    @classmethod
    def mark_payment_paid(
        cls,
        payment_id: str,
        *,
        paid_date: date,
        method: str | None = None,
        reference: str | None = None,
    ) -> Payment:
        payment = cls.get_payment(payment_id)
        if payment is None:
            raise KeyError(payment_id)
        if payment.status == "paid":
            raise ValueError("The payment is already marked as paid.")
        if payment.status == "cancelled":
            raise ValueError("A cancelled payment cannot be marked as paid.")
        if method and method not in PAYMENT_METHODS:
            raise ValueError(f"Unsupported payment method '{method}'.")

        payment.status = "paid"
        payment.paid_date = paid_date
        payment.method = method or payment.method
        payment.reference = (reference or "").strip() or payment.reference
        db.session.add(payment)
        db.session.commit()
        return payment


    @classmethod
    def _deposit_row(cls, lease_id: str) -> SecurityDeposit:
        row = SecurityDeposit.query.filter_by(lease_id=lease_id).first()
        if row is None:
            raise KeyError(lease_id)
        return row

    @classmethod
    def _deposit_state(cls, row: SecurityDeposit) -> deposits.DepositState:
        """Rebuild the typed deposit state from its stored row."""

        deductions = tuple(
            deposits.Deduction(
                id=item.id,
                amount=quantize_amount(item.amount),
                reason=item.reason,
                category=item.category,
                applied_on=item.applied_on,
                description=item.description or "",
            )
            for item in DepositDeduction.query.filter_by(deposit_id=row.id)
            .order_by(DepositDeduction.applied_on.asc(), DepositDeduction.created_at.asc())
            .all()
        )
        amount = quantize_amount(row.amount)
        status = deposits.DepositStatus(row.status)
        if status is deposits.DepositStatus.PENDING_REFUND:
            return deposits.PendingRefund(amount, row.held_on, deductions, row.requested_on)
        if status is deposits.DepositStatus.REFUNDED:
            return deposits.Refunded(
                amount, row.held_on, deductions, row.settled_on, quantize_amount(row.refunded_amount)
            )
        if status is deposits.DepositStatus.DEDUCTED:
            return deposits.Deducted(amount, row.held_on, deductions, row.settled_on)
        return deposits.Held(amount, row.held_on, deductions)

    @classmethod
    def _store_state(cls, row: SecurityDeposit, state: deposits.DepositState) -> None:
        row.status = str(state.status)
        row.requested_on = state.requested_on if isinstance(state, deposits.PendingRefund) else None
        row.settled_on = (
            state.refunded_on if isinstance(state, deposits.Refunded)
            else state.settled_on if isinstance(state, deposits.Deducted)
            else None
        )
        row.refunded_amount = state.refunded_amount if isinstance(state, deposits.Refunded) else None
        db.session.add(row)

    @classmethod
    def deposit(cls, lease_id: str) -> tuple[SecurityDeposit, deposits.DepositState]:
        row = cls._deposit_row(lease_id)
        return row, cls._deposit_state(row)

    @classmethod
    def open_deposit(
        cls, lease_id: str, *, held_on: date, amount: Any = None
    ) -> tuple[SecurityDeposit, deposits.DepositState]:
        """Start holding a lease's deposit, defaulting to the amount on the lease."""

        lease = cls.get_lease(lease_id)
        if lease is None:
            raise KeyError(lease_id)
        if SecurityDeposit.query.filter_by(lease_id=lease_id).first() is not None:
            raise ValueError("A deposit is already on file for this lease.")
        value = quantize_amount(lease.deposit if amount in (None, "") else amount)
        if value <= 0:
            raise ValueError("The deposit amount must be greater than zero.")

        row = SecurityDeposit(
            lease_id=lease_id, tenant_id=lease.tenant_id, amount=value, status="held", held_on=held_on
        )
        db.session.add(row)
        db.session.commit()
        return row, deposits.Held(value, held_on)

    @classmethod
    def add_deposit_deduction(
        cls,
        lease_id: str,
        *,
        amount: Any,
        reason: str,
        category: str,
        applied_on: date,
        description: str = "",
    ) -> tuple[SecurityDeposit, deposits.DepositState]:
        row, state = cls.deposit(lease_id)
        deduction = deposits.Deduction(
            id=_new_id(),
            amount=quantize_amount(amount),
            reason=(reason or "").strip(),
            category=(category or "").strip().lower(),
            applied_on=applied_on,
            description=(description or "").strip(),
        )
        state = deposits.add_deduction(state, deduction)
        db.session.add(
            DepositDeduction(
                id=deduction.id,
                deposit_id=row.id,
                amount=deduction.amount,
                reason=deduction.reason,
                category=deduction.category,
                description=deduction.description,
                applied_on=deduction.applied_on,
            )
        )
        db.session.commit()
        return row, state

    @classmethod
    def remove_deposit_deduction(
        cls, lease_id: str, deduction_id: str
    ) -> tuple[SecurityDeposit, deposits.DepositState]:
        row, state = cls.deposit(lease_id)
        state = deposits.remove_deduction(state, deduction_id)
        DepositDeduction.query.filter_by(id=deduction_id, deposit_id=row.id).delete()
        db.session.commit()
        return row, state

    @classmethod
    def request_deposit_refund(cls, lease_id: str, *, on: date) -> tuple[SecurityDeposit, deposits.DepositState]:
        row, state = cls.deposit(lease_id)
        state = deposits.request_refund(state, on)
        cls._store_state(row, state)
        db.session.commit()
        return row, state

    @classmethod
    def settle_deposit(cls, lease_id: str, *, on: date) -> tuple[SecurityDeposit, deposits.DepositState]:
        row, state = cls.deposit(lease_id)
        state = deposits.settle(state, on)
        cls._store_state(row, state)
        db.session.commit()
        return row, state
