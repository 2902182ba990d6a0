from __future__ import annotations

from datetime import date
from decimal import Decimal
from pathlib import Path
import sys

import pytest
from sqlalchemy.pool import StaticPool

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from rentledger import create_app
from rentledger.config import Config
from rentledger.extensions import db
from rentledger.leasing.models import Lease, Payment


class TestingConfig(Config):
    """Configuration tuned for isolated unit tests."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {
        "connect_args": {"check_same_thread": False},
        "poolclass": StaticPool,
    }


@pytest.fixture()
def app():
    """Create a Flask app instance backed by an in-memory database."""

    application = create_app(TestingConfig)
    yield application
    with application.app_context():
        db.drop_all()
        db.session.remove()


@pytest.fixture()
def client(app):
    """Provide a Flask test client for request assertions."""

    return app.test_client()


@pytest.fixture()
def make_lease():
    """Build unsaved leases for the pure derivation helpers."""

    def factory(**overrides) -> Lease:
        fields = {
            "id": "lease-1",
            "tenant_id": "tenant-1",
            "unit_id": "unit-1",
            "property_id": "property-1",
            "start_date": date(2024, 1, 15),
            "end_date": date(2024, 12, 15),
            "rent": Decimal("2000.00"),
            "status": "active",
            "late_fee": Decimal("50.00"),
            "grace_period": 5,
        }
        fields.update(overrides)
        return Lease(**fields)

    return factory


@pytest.fixture()
def make_payment():
    """Build unsaved payments for the pure derivation helpers."""

    def factory(**overrides) -> Payment:
        fields = {
            "id": "payment-1",
            "lease_id": "lease-1",
            "tenant_id": "tenant-1",
            "unit_id": "unit-1",
            "property_id": "property-1",
            "type": "rent",
            "amount": Decimal("2000.00"),
            "due_date": date(2024, 6, 1),
            "paid_date": None,
            "status": "pending",
        }
        fields.update(overrides)
        return Payment(**fields)

    return factory
