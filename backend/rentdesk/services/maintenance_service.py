# backend/rentdesk/services/maintenance_service.py
from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, Optional

from sqlalchemy import asc, desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, contains_eager

from ..config import settings
from ..domain.audit import audit_write
from ..domain.errors import (
    AuthorizationError,
    InvalidTransitionError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from ..domain.maintenance_lifecycle import (
    Priority,
    ROLE_VALUES,
    Role,
    StatusCounts,
    Status,
    check_priority_escalation,
    count_by_status,
    is_managing_role,
    matches_search,
    normalize_role,
    parse_priority,
    parse_sort,
    parse_status,
    resolve_transition,
)
from ..models import AppUser, MaintenanceRequest, Property
from .ownership import must_get_property, must_get_request, must_resolve_unit

# -----------------------------------------------------------------------------
# Maintenance request lifecycle manager
# -----------------------------------------------------------------------------
# Every mutating operation follows the same shape:
#   load -> authorize -> validate -> mutate -> audit -> commit
# Nothing is written until every check has passed, so a rejected call leaves
# the stored row exactly as it was.
#
# Concurrent transitions on one row are last-write-wins. Maintenance status
# tracks human workflow, so no row locking is attempted.
# -----------------------------------------------------------------------------

log = logging.getLogger("rentdesk.maintenance")

ENTITY_TYPE = "MaintenanceRequest"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_datetime(v: Any) -> Optional[datetime]:
    if v is None:
        return None
    if isinstance(v, datetime):
        # stored naive UTC
        if v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v
    if isinstance(v, date):
        return datetime(v.year, v.month, v.day)
    try:
        return _as_datetime(datetime.fromisoformat(str(v)))
    except ValueError:
        raise ValidationError(f"invalid scheduledDate {v!r}", field="scheduledDate")


def _clean(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def _commit(db: Session, row: MaintenanceRequest) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log.exception("maintenance.storage_failed", extra={"maintenance_request_id": getattr(row, "id", None)})
        raise StorageError("could not persist maintenance request") from e
    db.refresh(row)


def _owns_property(row: MaintenanceRequest, user_id: int) -> bool:
    return row.property is not None and int(row.property.owner_id) == int(user_id)


def _visible_to(row: MaintenanceRequest, role: str, user_id: int) -> bool:
    if role == Role.TENANT.value:
        return int(row.tenant_id) == int(user_id)
    return is_managing_role(role) and _owns_property(row, user_id)


# -----------------------------------------------------------------------------
# Submit
# -----------------------------------------------------------------------------


def submit_request(
    db: Session,
    *,
    actor_user_id: int,
    actor_role: str,
    property_id: int,
    unit_number: str,
    issue: str,
    description: str,
    priority: Optional[str] = None,
    tenant_id: Optional[int] = None,
) -> MaintenanceRequest:
    """
    Create a maintenance request in `pending`.

    Tenants submit for themselves. Landlords / property managers may submit on
    a tenant's behalf for a property they own, naming the tenant explicitly.
    """
    role = normalize_role(actor_role)

    issue_s = _clean(issue)
    if not issue_s:
        raise ValidationError("issue is required", field="issue")

    min_len = int(settings.maintenance_min_description_length)
    desc_s = (description or "").strip()
    if len(desc_s) < min_len:
        raise ValidationError(f"description must be at least {min_len} characters", field="description")

    prio = parse_priority(priority) if priority is not None else Priority.MEDIUM

    unit_s = _clean(unit_number)
    if not unit_s:
        raise ValidationError("unitNumber is required", field="unitNumber")

    prop = must_get_property(db, property_id=property_id)
    must_resolve_unit(db, property_id=prop.id, unit_number=unit_s)

    if role == Role.TENANT.value:
        if tenant_id is not None and int(tenant_id) != int(actor_user_id):
            raise AuthorizationError("tenants can only submit requests for themselves")
        eff_tenant_id = int(actor_user_id)
    elif is_managing_role(role):
        if tenant_id is None:
            raise ValidationError("tenantId is required when submitting on a tenant's behalf", field="tenantId")
        if int(prop.owner_id) != int(actor_user_id):
            raise AuthorizationError("property is not managed by this user", propertyId=int(prop.id))
        tenant = db.get(AppUser, int(tenant_id))
        if tenant is None or tenant.role != Role.TENANT.value:
            raise ValidationError("tenantId does not name a tenant", field="tenantId")
        eff_tenant_id = int(tenant_id)
    else:
        raise AuthorizationError(f"role {role or '<none>'} cannot submit maintenance requests")

    now = _utcnow()
    row = MaintenanceRequest(
        property_id=int(prop.id),
        unit_number=unit_s,
        tenant_id=eff_tenant_id,
        issue=issue_s,
        description=desc_s,
        status=Status.PENDING.value,
        priority=prio.value,
        created_at=now,
        updated_at=now,
        scheduled_date=None,
        completed_date=None,
    )
    db.add(row)
    try:
        db.flush()
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError("could not persist maintenance request") from e

    audit_write(
        db,
        actor_user_id=int(actor_user_id),
        action="maintenance_request.submit",
        entity_type=ENTITY_TYPE,
        entity_id=str(row.id),
        before=None,
        after=row.snapshot(),
    )
    _commit(db, row)

    log.info(
        "maintenance.submitted",
        extra={
            "maintenance_request_id": row.id,
            "user_id": int(actor_user_id),
            "role": role,
            "property_id": row.property_id,
            "status": row.status,
        },
    )
    return row


# -----------------------------------------------------------------------------
# Transition
# -----------------------------------------------------------------------------


def transition(
    db: Session,
    *,
    request_id: int,
    acting_role: str,
    target_status: str,
    acting_user_id: Optional[int] = None,
    scheduled_date: Any = None,
    notes: Optional[str] = None,
    assigned_to: Optional[str] = None,
    priority: Optional[str] = None,
) -> MaintenanceRequest:
    """
    Move a request along the lifecycle table.

    Checks, in order: the request exists and, when `acting_user_id` is given,
    is visible to the caller (otherwise not found, as for reads); the role may
    change status; the (current, target) pair is permitted; the optional
    fields fit the move.
    """
    row = must_get_request(db, request_id=request_id)
    role = normalize_role(acting_role)

    # same answer as a read of a request outside the caller's scope
    if acting_user_id is not None and role in ROLE_VALUES and not _visible_to(row, role, acting_user_id):
        log.warning(
            "maintenance.transition_not_visible",
            extra={"maintenance_request_id": row.id, "role": role, "user_id": acting_user_id},
        )
        raise NotFoundError("maintenance request not found", id=int(request_id))

    if not is_managing_role(role):
        log.warning(
            "maintenance.transition_forbidden",
            extra={"maintenance_request_id": row.id, "role": role, "user_id": acting_user_id},
        )
        raise AuthorizationError("only a landlord or property manager can change request status", role=role)

    target = parse_status(target_status)
    try:
        t = resolve_transition(row.status, target.value, row.priority)
    except InvalidTransitionError:
        log.warning(
            "maintenance.transition_rejected",
            extra={"maintenance_request_id": row.id, "status": row.status, "target_status": target.value},
        )
        raise

    when = _as_datetime(scheduled_date)
    if t.sets_scheduled_date and when is None:
        raise ValidationError(f"scheduledDate is required to {t.label.lower()}", field="scheduledDate")
    if not t.sets_scheduled_date and when is not None:
        raise ValidationError("scheduledDate can only be set when scheduling", field="scheduledDate")

    new_priority = check_priority_escalation(row.priority, priority) if priority is not None else None

    before = row.snapshot()
    now = max(_utcnow(), row.created_at)

    row.status = t.target.value
    if t.sets_scheduled_date:
        row.scheduled_date = when
    if t.sets_completed_date:
        row.completed_date = now
    if t.clears_completed_date:
        row.completed_date = None
    if notes is not None:
        row.notes = _clean(notes)
    if assigned_to is not None:
        row.assigned_to = _clean(assigned_to)
    if new_priority is not None:
        row.priority = new_priority.value
    row.updated_at = now

    audit_write(
        db,
        actor_user_id=acting_user_id,
        action="maintenance_request.transition",
        entity_type=ENTITY_TYPE,
        entity_id=str(row.id),
        before=before,
        after=row.snapshot(),
    )
    _commit(db, row)

    log.info(
        "maintenance.transitioned",
        extra={
            "maintenance_request_id": row.id,
            "user_id": acting_user_id,
            "role": role,
            "status": before["status"],
            "target_status": row.status,
        },
    )
    return row


# -----------------------------------------------------------------------------
# Notes
# -----------------------------------------------------------------------------


def add_note(
    db: Session,
    *,
    request_id: int,
    acting_role: str,
    acting_user_id: int,
    note: str,
) -> MaintenanceRequest:
    """Append a note line. Tenants may annotate their own requests."""
    text = _clean(note)
    if not text:
        raise ValidationError("note is required", field="note")

    row = get_for_role(db, request_id=request_id, acting_role=acting_role, acting_user_id=acting_user_id)
    role = normalize_role(acting_role)

    before = row.snapshot()
    now = max(_utcnow(), row.created_at)
    line = f"[{now:%Y-%m-%d %H:%M}] {role}: {text}"
    row.notes = f"{row.notes}\n{line}" if row.notes else line
    row.updated_at = now

    audit_write(
        db,
        actor_user_id=int(acting_user_id),
        action="maintenance_request.note",
        entity_type=ENTITY_TYPE,
        entity_id=str(row.id),
        before=before,
        after=row.snapshot(),
    )
    _commit(db, row)

    log.info(
        "maintenance.note_added",
        extra={"maintenance_request_id": row.id, "user_id": int(acting_user_id), "role": role},
    )
    return row


# -----------------------------------------------------------------------------
# Reads
# -----------------------------------------------------------------------------


def get_for_role(
    db: Session,
    *,
    request_id: int,
    acting_role: str,
    acting_user_id: int,
) -> MaintenanceRequest:
    """
    Single request, scoped like list_for_role. A request the caller cannot see
    is reported as not found rather than forbidden.
    """
    role = normalize_role(acting_role)
    row = must_get_request(db, request_id=request_id)

    if role not in ROLE_VALUES:
        raise AuthorizationError(f"role {role or '<none>'} cannot read maintenance requests")

    if not _visible_to(row, role, acting_user_id):
        raise NotFoundError("maintenance request not found", id=int(request_id))
    return row


def list_for_role(
    db: Session,
    *,
    acting_role: str,
    acting_user_id: int,
    status: Optional[str] = None,
    search: Optional[str] = None,
    sort: Optional[str] = None,
    property_id: Optional[int] = None,
) -> list[MaintenanceRequest]:
    """
    Requests visible to the caller.

    - tenant: only their own requests
    - landlord / property_manager: requests on properties they own
    Optional property and status filters narrow that scope. Free-text search
    and created_at ordering (newest first unless sort is asc/oldest).
    Every matching row is returned.
    """
    role = normalize_role(acting_role)
    direction = parse_sort(sort)

    q = (
        select(MaintenanceRequest)
        .join(Property, MaintenanceRequest.property_id == Property.id)
        .outerjoin(AppUser, MaintenanceRequest.tenant_id == AppUser.id)
        .options(contains_eager(MaintenanceRequest.property), contains_eager(MaintenanceRequest.tenant))
    )

    if role == Role.TENANT.value:
        q = q.where(MaintenanceRequest.tenant_id == int(acting_user_id))
    elif is_managing_role(role):
        q = q.where(Property.owner_id == int(acting_user_id))
    else:
        raise AuthorizationError(f"role {role or '<none>'} cannot list maintenance requests")

    if property_id is not None:
        q = q.where(MaintenanceRequest.property_id == int(property_id))

    if status is not None and str(status).strip() and str(status).strip().lower() != "all":
        q = q.where(MaintenanceRequest.status == parse_status(status).value)

    order = desc if direction == "desc" else asc
    q = q.order_by(order(MaintenanceRequest.created_at), order(MaintenanceRequest.id))

    rows = db.scalars(q).unique().all()
    return [
        r
        for r in rows
        if matches_search(search, r.issue, r.description, r.tenant_name, r.unit_number, r.property_name)
    ]


def aggregate_stats(db: Session, *, owner_id: int) -> StatusCounts:
    """Counts by status across every property the owner holds. Read only."""
    q = (
        select(MaintenanceRequest.status)
        .join(Property, MaintenanceRequest.property_id == Property.id)
        .where(Property.owner_id == int(owner_id))
    )
    return count_by_status(db.scalars(q).all())
