# backend/rentdesk/routers/maintenance.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal, get_principal_optional
from ..config import settings
from ..db import get_db
from ..domain.errors import AuthorizationError
from ..domain.maintenance_lifecycle import available_actions, is_managing_role, normalize_role
from ..schemas import (
    MaintenanceActionOut,
    MaintenanceNoteIn,
    MaintenanceRequestCreate,
    MaintenanceRequestOut,
    MaintenanceStatsOut,
    MaintenanceTransitionIn,
)
from ..services import maintenance_service as svc

router = APIRouter(prefix="/maintenance-requests", tags=["maintenance"])


def _query_identity(
    p: Optional[Principal],
    *,
    role: Optional[str],
    user_id: Optional[int],
) -> tuple[str, int]:
    """
    Reads accept an explicit role/userId pair. When the caller is
    authenticated the pair must match them; without credentials it is only
    honoured in dev auth mode.
    """
    if p is not None:
        if role is not None and normalize_role(role) != p.role:
            raise AuthorizationError("role does not match the authenticated caller")
        if user_id is not None and int(user_id) != p.user_id:
            raise AuthorizationError("userId does not match the authenticated caller")
        return p.role, p.user_id

    if settings.auth_mode == "dev" and role and user_id is not None:
        return normalize_role(role), int(user_id)

    raise HTTPException(status_code=401, detail="Not authenticated")


@router.post("", response_model=MaintenanceRequestOut, status_code=201)
def submit_request(
    payload: MaintenanceRequestCreate,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return svc.submit_request(
        db,
        actor_user_id=p.user_id,
        actor_role=p.role,
        property_id=payload.property_id,
        unit_number=str(payload.unit_number),
        issue=payload.issue,
        description=payload.description,
        priority=payload.priority,
        tenant_id=payload.tenant_id,
    )


@router.get("", response_model=list[MaintenanceRequestOut])
def list_requests(
    role: Optional[str] = Query(default=None),
    user_id: Optional[int] = Query(default=None, alias="userId"),
    status: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    sort: Optional[str] = Query(default=None, description="desc|newest (default) or asc|oldest"),
    property_id: Optional[int] = Query(default=None, alias="propertyId"),
    db: Session = Depends(get_db),
    p: Optional[Principal] = Depends(get_principal_optional),
):
    acting_role, acting_user_id = _query_identity(p, role=role, user_id=user_id)
    return svc.list_for_role(
        db,
        acting_role=acting_role,
        acting_user_id=acting_user_id,
        status=status,
        search=search,
        sort=sort,
        property_id=property_id,
    )


@router.get("/stats", response_model=MaintenanceStatsOut)
def request_stats(
    owner_id: Optional[int] = Query(default=None, alias="ownerId"),
    db: Session = Depends(get_db),
    p: Optional[Principal] = Depends(get_principal_optional),
):
    if p is not None:
        if not is_managing_role(p.role):
            raise AuthorizationError("only a landlord or property manager can read portfolio stats")
        if owner_id is not None and int(owner_id) != p.user_id:
            raise AuthorizationError("ownerId does not match the authenticated caller")
        owner_id = p.user_id
    elif settings.auth_mode != "dev" or owner_id is None:
        raise HTTPException(status_code=401, detail="Not authenticated")

    return svc.aggregate_stats(db, owner_id=int(owner_id)).as_dict()


@router.get("/{request_id}", response_model=MaintenanceRequestOut)
def get_request(
    request_id: int,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return svc.get_for_role(db, request_id=request_id, acting_role=p.role, acting_user_id=p.user_id)


@router.get("/{request_id}/actions", response_model=list[MaintenanceActionOut])
def request_actions(
    request_id: int,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    row = svc.get_for_role(db, request_id=request_id, acting_role=p.role, acting_user_id=p.user_id)
    return [t.as_dict() for t in available_actions(row.status, row.priority, p.role)]


@router.patch("/{request_id}", response_model=MaintenanceRequestOut)
def transition_request(
    request_id: int,
    payload: MaintenanceTransitionIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return svc.transition(
        db,
        request_id=request_id,
        acting_role=p.role,
        acting_user_id=p.user_id,
        target_status=payload.status,
        scheduled_date=payload.scheduled_date,
        notes=payload.notes,
        assigned_to=payload.assigned_to,
        priority=payload.priority,
    )


@router.post("/{request_id}/notes", response_model=MaintenanceRequestOut)
def add_note(
    request_id: int,
    payload: MaintenanceNoteIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return svc.add_note(
        db,
        request_id=request_id,
        acting_role=p.role,
        acting_user_id=p.user_id,
        note=payload.note,
    )
