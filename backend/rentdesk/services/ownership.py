# backend/rentdesk/services/ownership.py
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..domain.errors import NotFoundError, ValidationError
from ..models import MaintenanceRequest, Property, Unit


def must_get_request(db: Session, *, request_id: int) -> MaintenanceRequest:
    row = db.get(MaintenanceRequest, int(request_id))
    if not row:
        raise NotFoundError("maintenance request not found", id=int(request_id))
    return row


def must_get_property(db: Session, *, property_id: int) -> Property:
    row = db.get(Property, int(property_id))
    if not row:
        raise ValidationError("property not found", propertyId=int(property_id))
    return row


def must_resolve_unit(db: Session, *, property_id: int, unit_number: str) -> Unit:
    row = db.scalar(
        select(Unit).where(Unit.property_id == int(property_id), Unit.unit_number == str(unit_number).strip())
    )
    if not row:
        raise ValidationError(
            "unit not found on property",
            propertyId=int(property_id),
            unitNumber=str(unit_number),
        )
    return row
