# backend/rentdesk/routers/auth.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..schemas import LoginIn, PrincipalOut, TokenOut
from ..services.auth_service import authenticate, create_access_token

log = logging.getLogger("rentdesk.auth")

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenOut)
def login(payload: LoginIn, db: Session = Depends(get_db)):
    email = payload.email.strip().lower()
    if not email or not payload.password:
        raise HTTPException(status_code=400, detail="email and password are required")

    user = authenticate(db, email=email, password=payload.password)
    if user is None:
        log.warning("auth.login_failed")
        raise HTTPException(status_code=401, detail="Invalid email or password")

    token = create_access_token(user_id=int(user.id), role=str(user.role))
    log.info("auth.login", extra={"user_id": int(user.id), "role": user.role})
    return {
        "access_token": token,
        "token_type": "bearer",
        "user": {"user_id": int(user.id), "role": user.role, "email": user.email, "name": user.name},
    }


@router.get("/me", response_model=PrincipalOut)
def me(p: Principal = Depends(get_principal)):
    return {"user_id": p.user_id, "role": p.role, "email": p.email, "name": p.name}
