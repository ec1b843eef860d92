# backend/tests/conftest.py
from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import pytest

# Settings are read at import time, so point them at a throwaway database first.
_DB_DIR = tempfile.mkdtemp(prefix="rentdesk-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["APP_ENV"] = "test"
os.environ["AUTH_MODE"] = "dev"
os.environ["JWT_SECRET"] = "test-secret"

from fastapi.testclient import TestClient  # noqa: E402

from rentdesk.db import Base, SessionLocal, engine  # noqa: E402
from rentdesk.main import create_app  # noqa: E402
from rentdesk.models import AppUser, MaintenanceRequest, Property, Unit  # noqa: E402
from rentdesk.services.auth_service import hash_password  # noqa: E402

LANDLORD_ID = 1
MANAGER_ID = 3
TENANT_A = 101
TENANT_B = 102
TENANT_C = 103


@dataclass(frozen=True)
class Portfolio:
    landlord_id: int
    manager_id: int
    sunset_id: int
    oak_ridge_id: int
    tenant_a: int
    tenant_b: int
    tenant_c: int


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def portfolio(db_session) -> Portfolio:
    """
    landlord 1 owns Sunset Apartments (units 203, 204; tenants 101, 102)
    property manager 3 owns Oak Ridge Complex (unit 1B; tenant 103)
    """
    db_session.add_all(
        [
            AppUser(
                id=LANDLORD_ID,
                name="Lena Landlord",
                email="landlord@t.local",
                role="landlord",
                password_hash=hash_password("landlord-pw"),
            ),
            AppUser(id=MANAGER_ID, name="Morgan Manager", email="pm@t.local", role="property_manager"),
            AppUser(id=TENANT_A, name="Alice Johnson", email="alice@t.local", role="tenant"),
            AppUser(id=TENANT_B, name="Bob Smith", email="bob@t.local", role="tenant"),
            AppUser(id=TENANT_C, name="Carol Diaz", email="carol@t.local", role="tenant"),
        ]
    )
    db_session.commit()

    sunset = Property(id=1, owner_id=LANDLORD_ID, name="Sunset Apartments", address="1 Sunset Blvd")
    oak = Property(id=2, owner_id=MANAGER_ID, name="Oak Ridge Complex", address="2 Oak Ridge Rd")
    db_session.add_all([sunset, oak])
    db_session.commit()

    db_session.add_all(
        [
            Unit(property_id=1, unit_number="203", rent_amount=1200, is_occupied=True),
            Unit(property_id=1, unit_number="204", rent_amount=1150, is_occupied=True),
            Unit(property_id=2, unit_number="1B", rent_amount=980, is_occupied=True),
        ]
    )
    db_session.commit()

    return Portfolio(
        landlord_id=LANDLORD_ID,
        manager_id=MANAGER_ID,
        sunset_id=1,
        oak_ridge_id=2,
        tenant_a=TENANT_A,
        tenant_b=TENANT_B,
        tenant_c=TENANT_C,
    )


@pytest.fixture
def make_request(db_session, portfolio):
    """Insert a request directly in any state, bypassing the lifecycle."""

    def _make(
        *,
        tenant_id: int = TENANT_A,
        property_id: int = 1,
        unit_number: str = "203",
        status: str = "pending",
        priority: str = "medium",
        issue: str = "Leaky faucet",
        description: str = "Kitchen faucet drips all night long.",
        created_at: Optional[datetime] = None,
    ) -> MaintenanceRequest:
        ts = created_at or datetime(2026, 1, 1, 9, 0, 0)
        row = MaintenanceRequest(
            property_id=property_id,
            unit_number=unit_number,
            tenant_id=tenant_id,
            issue=issue,
            description=description,
            status=status,
            priority=priority,
            created_at=ts,
            updated_at=ts,
            scheduled_date=datetime(2026, 1, 5) if status == "scheduled" else None,
            completed_date=ts if status == "completed" else None,
        )
        db_session.add(row)
        db_session.commit()
        db_session.refresh(row)
        return row

    return _make


@pytest.fixture
def client(portfolio) -> TestClient:
    return TestClient(create_app())


def as_user(user_id: int, role: str) -> dict[str, str]:
    return {"X-User-Id": str(user_id), "X-User-Role": role}
