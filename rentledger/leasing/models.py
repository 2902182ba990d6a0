"""Database models for the lease and payment stores."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import uuid4

from ..extensions import db

LEASE_STATUSES: tuple[str, ...] = ("active", "pending", "expired", "terminated")
PAYMENT_STATUSES: tuple[str, ...] = ("pending", "paid", "late", "overdue", "cancelled")
PAYMENT_TYPES: tuple[str, ...] = ("rent", "deposit", "late_fee", "maintenance", "utility", "other")
PAYMENT_METHODS: tuple[str, ...] = ("cash", "check", "bank_transfer", "credit_card", "online")


def _new_id() -> str:
    return uuid4().hex[:12]


class Property(db.Model):
    """A managed building or lot."""

    id: str = db.Column(db.String(36), primary_key=True, default=_new_id)
    name: str = db.Column(db.String(120), nullable=False)
    address: str = db.Column(db.String(255), nullable=False, default="")
    created_at: datetime = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<Property {self.id} {self.name}>"


class Unit(db.Model):
    """A rentable unit; ``property_id`` is how leases are grouped by property."""

    id: str = db.Column(db.String(36), primary_key=True, default=_new_id)
    property_id: str = db.Column(db.String(36), nullable=False, index=True)
    number: str = db.Column(db.String(32), nullable=False)
    rent: Decimal = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    created_at: datetime = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    @property
    def label(self) -> str:
        return f"Unit {self.number}"

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<Unit {self.id} {self.number}>"


class Tenant(db.Model):
    """A person holding or applying for a lease."""

    id: str = db.Column(db.String(36), primary_key=True, default=_new_id)
    name: str = db.Column(db.String(120), nullable=False)
    email: str = db.Column(db.String(255), nullable=False, default="")
    phone: str = db.Column(db.String(32), nullable=False, default="")
    created_at: datetime = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<Tenant {self.id} {self.name}>"


class Lease(db.Model):
    """A tenant-unit agreement. Leases are retained for history and never deleted."""

    id: str = db.Column(db.String(36), primary_key=True, default=_new_id)
    tenant_id: str = db.Column(db.String(36), nullable=False, index=True)
    unit_id: str = db.Column(db.String(36), nullable=False, index=True)
    property_id: str = db.Column(db.String(36), nullable=False, index=True)
    start_date: date = db.Column(db.Date, nullable=False)
    end_date: date = db.Column(db.Date, nullable=False)
    rent: Decimal = db.Column(db.Numeric(10, 2), nullable=False)
    deposit: Decimal = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    status: str = db.Column(db.String(16), nullable=False, default="pending", index=True)
    late_fee: Decimal = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    grace_period: int = db.Column(db.Integer, nullable=False, default=5)
    auto_renew: bool = db.Column(db.Boolean, nullable=False, default=False)
    created_at: datetime = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at: datetime = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<Lease {self.id} {self.status} {self.start_date}..{self.end_date}>"


class Payment(db.Model):
    """Money received or expected against a lease."""

    id: str = db.Column(db.String(36), primary_key=True, default=_new_id)
    lease_id: str = db.Column(db.String(36), nullable=False, index=True)
    tenant_id: str = db.Column(db.String(36), nullable=False, index=True)
    unit_id: str = db.Column(db.String(36), nullable=False)
    property_id: str = db.Column(db.String(36), nullable=False, default="")
    type: str = db.Column(db.String(16), nullable=False, default="rent")
    amount: Decimal = db.Column(db.Numeric(10, 2), nullable=False)
    due_date: date = db.Column(db.Date, nullable=False, index=True)
    paid_date: Optional[date] = db.Column(db.Date)
    status: str = db.Column(db.String(16), nullable=False, default="pending", index=True)
    method: Optional[str] = db.Column(db.String(16))
    reference: Optional[str] = db.Column(db.String(64))
    notes: Optional[str] = db.Column(db.Text)
    created_at: datetime = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at: datetime = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<Payment {self.id} {self.status} due={self.due_date}>"


class SecurityDeposit(db.Model):
    """Deposit collected for a lease; the status column decides which dates are set."""

    id: str = db.Column(db.String(36), primary_key=True, default=_new_id)
    lease_id: str = db.Column(db.String(36), nullable=False, unique=True, index=True)
    tenant_id: str = db.Column(db.String(36), nullable=False, default="")
    amount: Decimal = db.Column(db.Numeric(10, 2), nullable=False)
    status: str = db.Column(db.String(16), nullable=False, default="held")
    held_on: date = db.Column(db.Date, nullable=False)
    requested_on: Optional[date] = db.Column(db.Date)
    settled_on: Optional[date] = db.Column(db.Date)
    refunded_amount: Optional[Decimal] = db.Column(db.Numeric(10, 2))
    created_at: datetime = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<SecurityDeposit {self.id} {self.status} lease={self.lease_id}>"


class DepositDeduction(db.Model):
    id: str = db.Column(db.String(36), primary_key=True, default=_new_id)
    deposit_id: str = db.Column(db.String(36), nullable=False, index=True)
    amount: Decimal = db.Column(db.Numeric(10, 2), nullable=False)
    reason: str = db.Column(db.String(255), nullable=False)
    category: str = db.Column(db.String(16), nullable=False, default="other")
    description: str = db.Column(db.Text, nullable=False, default="")
    applied_on: date = db.Column(db.Date, nullable=False)
    created_at: datetime = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
