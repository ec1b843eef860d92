# backend/rentdesk/cli/seed_demo.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from rentdesk.db import SessionLocal, init_db
from rentdesk.models import AppUser, Property, Unit
from rentdesk.services.auth_service import hash_password


@dataclass(frozen=True)
class SeedResult:
    landlord_id: int
    property_id: int
    unit_numbers: list[str]
    tenant_ids: list[int] = field(default_factory=list)


def _get_or_create_user(db: Session, *, email: str, name: str, role: str, password: Optional[str]) -> AppUser:
    row = db.scalar(select(AppUser).where(AppUser.email == email))
    if row:
        return row
    row = AppUser(
        email=email,
        name=name,
        role=role,
        password_hash=hash_password(password) if password else None,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def _get_or_create_property(db: Session, *, owner_id: int, name: str, address: str) -> Property:
    row = db.scalar(select(Property).where(Property.owner_id == owner_id, Property.name == name))
    if row:
        return row
    row = Property(owner_id=owner_id, name=name, address=address)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def _ensure_unit(db: Session, *, property_id: int, unit_number: str, rent_amount: int) -> Unit:
    row = db.scalar(select(Unit).where(Unit.property_id == property_id, Unit.unit_number == unit_number))
    if row:
        return row
    row = Unit(property_id=property_id, unit_number=unit_number, rent_amount=rent_amount, is_occupied=True)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def seed_demo(
    *,
    landlord_email: str,
    landlord_name: str,
    password: Optional[str],
    property_name: str,
    property_address: str,
    unit_numbers: list[str],
) -> SeedResult:
    """
    Idempotent demo fixture: one landlord, one property, a unit per number and
    one tenant per unit. Re-running returns the existing rows.
    """
    init_db()
    db = SessionLocal()
    try:
        landlord = _get_or_create_user(
            db, email=landlord_email, name=landlord_name, role="landlord", password=password
        )
        prop = _get_or_create_property(db, owner_id=int(landlord.id), name=property_name, address=property_address)

        tenant_ids: list[int] = []
        for n in unit_numbers:
            _ensure_unit(db, property_id=int(prop.id), unit_number=n, rent_amount=1200)
            tenant = _get_or_create_user(
                db,
                email=f"tenant-{n.lower()}@demo.local",
                name=f"Tenant {n}",
                role="tenant",
                password=password,
            )
            tenant_ids.append(int(tenant.id))

        return SeedResult(
            landlord_id=int(landlord.id),
            property_id=int(prop.id),
            unit_numbers=list(unit_numbers),
            tenant_ids=tenant_ids,
        )
    finally:
        db.close()
