# backend/rentdesk/schemas.py
from __future__ import annotations

from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# The frontend speaks camelCase; Python stays snake_case.
CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# -------------------- Maintenance requests --------------------

class MaintenanceRequestCreate(BaseModel):
    model_config = CAMEL

    property_id: int
    unit_number: Union[str, int]
    issue: str = ""
    description: str = ""
    priority: Optional[str] = None

    # only honoured for landlord / property_manager callers
    tenant_id: Optional[int] = None


class MaintenanceTransitionIn(BaseModel):
    model_config = CAMEL

    status: str
    scheduled_date: Optional[str] = Field(default=None, description="ISO-8601 date or date-time")
    notes: Optional[str] = None
    assigned_to: Optional[str] = None
    priority: Optional[str] = Field(default=None, description="escalation only")


class MaintenanceNoteIn(BaseModel):
    model_config = CAMEL

    note: str = ""


class MaintenanceRequestOut(BaseModel):
    model_config = CAMEL

    id: int
    property_id: int
    property_name: Optional[str] = None
    unit_number: str
    tenant_id: int
    tenant_name: Optional[str] = None

    issue: str
    description: str
    status: str
    priority: str

    created_at: datetime
    updated_at: datetime
    scheduled_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None

    assigned_to: Optional[str] = None
    notes: Optional[str] = None


class MaintenanceActionOut(BaseModel):
    model_config = CAMEL

    label: str
    target_status: str


class MaintenanceStatsOut(BaseModel):
    # keys stay snake_case: dashboards read `in_progress` directly
    total: int
    urgent: int
    pending: int
    in_progress: int
    scheduled: int
    completed: int


# -------------------- Auth --------------------

class LoginIn(BaseModel):
    email: str
    password: str


class PrincipalOut(BaseModel):
    model_config = CAMEL

    user_id: int
    role: str
    email: Optional[str] = None
    name: Optional[str] = None


class TokenOut(BaseModel):
    model_config = CAMEL

    access_token: str
    token_type: str = "bearer"
    user: PrincipalOut
