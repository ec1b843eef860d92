# backend/rentdesk/auth.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from .config import settings
from .db import get_db
from .domain.maintenance_lifecycle import ROLE_VALUES, normalize_role
from .models import AppUser
from .services.auth_service import decode_access_token

log = logging.getLogger("rentdesk.auth")


@dataclass(frozen=True)
class Principal:
    user_id: int
    role: str  # tenant | landlord | property_manager
    email: Optional[str] = None
    name: Optional[str] = None


def _principal_from_token(db: Session, token: str) -> Principal:
    try:
        claims = decode_access_token(token)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid token")

    sub = str(claims.get("sub") or "")
    if not sub.isdigit():
        raise HTTPException(status_code=401, detail="Token missing sub")

    user = db.get(AppUser, int(sub))
    if user is None:
        raise HTTPException(status_code=401, detail="Unknown user")

    # The stored role wins over whatever the token was minted with.
    return Principal(user_id=int(user.id), role=str(user.role), email=user.email, name=user.name)


def _principal_from_dev_headers(db: Session, request: Request) -> Optional[Principal]:
    raw_id = (request.headers.get(settings.dev_header_user_id) or "").strip()
    raw_role = normalize_role(request.headers.get(settings.dev_header_user_role))
    if not raw_id and not raw_role:
        return None
    if not raw_id.isdigit():
        raise HTTPException(status_code=401, detail=f"Missing or invalid {settings.dev_header_user_id} for dev auth")
    if raw_role not in ROLE_VALUES:
        raise HTTPException(status_code=401, detail=f"Missing or invalid {settings.dev_header_user_role} for dev auth")

    user = db.get(AppUser, int(raw_id))
    return Principal(
        user_id=int(raw_id),
        role=raw_role,
        email=user.email if user else None,
        name=user.name if user else None,
    )


def get_principal_optional(
    request: Request,
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> Optional[Principal]:
    """
    Auth modes supported (in priority order):
      1) Authorization: Bearer <token>
      2) dev header spoofing (ONLY if settings.auth_mode == "dev")
    Returns None when the caller sent no credentials at all.
    """
    if authorization and str(authorization).lower().startswith("bearer "):
        token = str(authorization).split(" ", 1)[1].strip()
        return _principal_from_token(db, token)

    if settings.auth_mode == "dev":
        return _principal_from_dev_headers(db, request)

    return None


def get_principal(p: Optional[Principal] = Depends(get_principal_optional)) -> Principal:
    if p is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return p
