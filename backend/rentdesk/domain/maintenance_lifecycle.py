# backend/rentdesk/domain/maintenance_lifecycle.py
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional

from .errors import InvalidTransitionError, ValidationError

# -----------------------------------------------------------------------------
# Maintenance request lifecycle
# -----------------------------------------------------------------------------
# Pure rules only: no session, no clock. The service layer loads the row,
# asks this module whether a move is legal, then writes.
#
# status and priority are two separate axes. "Mark Urgent" moves status to
# `urgent`; it never touches priority.
# -----------------------------------------------------------------------------


class Status(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    URGENT = "urgent"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class Role(str, Enum):
    TENANT = "tenant"
    LANDLORD = "landlord"
    PROPERTY_MANAGER = "property_manager"


STATUS_VALUES = [s.value for s in Status]
ROLE_VALUES = frozenset(r.value for r in Role)
PRIORITY_RANK = {"low": 1, "medium": 2, "high": 3, "urgent": 4}
MANAGING_ROLES = frozenset({Role.LANDLORD.value, Role.PROPERTY_MANAGER.value})

SORT_ALIASES = {"desc": "desc", "newest": "desc", "asc": "asc", "oldest": "asc"}


@dataclass(frozen=True)
class Transition:
    source: Status
    target: Status
    label: str
    sets_scheduled_date: bool = False
    sets_completed_date: bool = False
    clears_completed_date: bool = False

    def as_dict(self) -> dict:
        return {"label": self.label, "targetStatus": self.target.value}


_TABLE = [
    Transition(Status.PENDING, Status.IN_PROGRESS, "Start Work"),
    Transition(Status.PENDING, Status.SCHEDULED, "Schedule", sets_scheduled_date=True),
    Transition(Status.PENDING, Status.URGENT, "Mark Urgent"),
    Transition(Status.IN_PROGRESS, Status.COMPLETED, "Mark Complete", sets_completed_date=True),
    Transition(Status.IN_PROGRESS, Status.IN_PROGRESS, "Update Status"),
    Transition(Status.SCHEDULED, Status.IN_PROGRESS, "Start Work"),
    Transition(Status.SCHEDULED, Status.SCHEDULED, "Reschedule", sets_scheduled_date=True),
    Transition(Status.COMPLETED, Status.PENDING, "Reopen Request", clears_completed_date=True),
]

# Anything not in this table is rejected.
TRANSITIONS: dict[tuple[Status, Status], Transition] = {(t.source, t.target): t for t in _TABLE}


# -----------------------------------------------------------------------------
# Vocabulary parsing
# -----------------------------------------------------------------------------


def parse_status(value: Any) -> Status:
    s = str(value or "").strip().lower()
    try:
        return Status(s)
    except ValueError:
        raise ValidationError(f"unknown status {value!r}", allowed=STATUS_VALUES)


def parse_priority(value: Any) -> Priority:
    s = str(value or "").strip().lower()
    try:
        return Priority(s)
    except ValueError:
        raise ValidationError(f"unknown priority {value!r}", allowed=list(PRIORITY_RANK))


def parse_sort(value: Optional[str]) -> str:
    if value is None or not str(value).strip():
        return "desc"
    s = str(value).strip().lower()
    if s not in SORT_ALIASES:
        raise ValidationError(f"unknown sort {value!r}", allowed=sorted(SORT_ALIASES))
    return SORT_ALIASES[s]


def normalize_role(role: Any) -> str:
    return str(role or "").strip().lower()


def is_managing_role(role: Any) -> bool:
    return normalize_role(role) in MANAGING_ROLES


# -----------------------------------------------------------------------------
# Transition rules
# -----------------------------------------------------------------------------


def _urgent_blocked(transition: Transition, priority: Optional[str]) -> bool:
    # "Mark Urgent" is only offered while the priority is not already urgent.
    return transition.target == Status.URGENT and (priority or "") == Priority.URGENT.value


def allowed_targets(current_status: str, priority: Optional[str] = None) -> list[str]:
    out: list[str] = []
    for (source, _target), t in TRANSITIONS.items():
        if source.value != current_status or _urgent_blocked(t, priority):
            continue
        out.append(t.target.value)
    return out


def resolve_transition(current_status: str, target_status: str, priority: Optional[str] = None) -> Transition:
    """
    Look up the (current, target) pair.

    Raises InvalidTransitionError carrying the current status and the targets
    that are reachable from it, so the caller can re-render its action list.
    """
    allowed = allowed_targets(current_status, priority)
    try:
        key = (Status(current_status), Status(target_status))
    except ValueError:
        raise InvalidTransitionError(current_status, target_status, allowed)

    t = TRANSITIONS.get(key)
    if t is None:
        raise InvalidTransitionError(current_status, target_status, allowed)
    if _urgent_blocked(t, priority):
        raise InvalidTransitionError(
            current_status,
            target_status,
            allowed,
            message="request already has urgent priority; Mark Urgent is not available",
        )
    return t


def available_actions(current_status: str, priority: Optional[str], role: Any) -> list[Transition]:
    """Labelled actions a role can take right now. Tenants never get any."""
    if not is_managing_role(role):
        return []
    return [
        t
        for (source, _target), t in TRANSITIONS.items()
        if source.value == current_status and not _urgent_blocked(t, priority)
    ]


def check_priority_escalation(current: str, requested: Any) -> Priority:
    """Priority may be raised after submission, never lowered."""
    p = parse_priority(requested)
    if PRIORITY_RANK[p.value] < PRIORITY_RANK.get(current, 0):
        raise ValidationError(
            f"priority can only be escalated (current={current}, requested={p.value})",
        )
    return p


# -----------------------------------------------------------------------------
# Read-model helpers
# -----------------------------------------------------------------------------


def matches_search(query: Optional[str], *fields: Optional[str]) -> bool:
    """Case-insensitive substring match over any of the given fields."""
    q = (query or "").strip().lower()
    if not q:
        return True
    return any(q in (f or "").lower() for f in fields)


@dataclass(frozen=True)
class StatusCounts:
    total: int
    urgent: int
    pending: int
    in_progress: int
    scheduled: int
    completed: int

    def as_dict(self) -> dict:
        return {
            "total": self.total,
            "urgent": self.urgent,
            "pending": self.pending,
            "in_progress": self.in_progress,
            "scheduled": self.scheduled,
            "completed": self.completed,
        }


def count_by_status(statuses: Iterable[str]) -> StatusCounts:
    c = Counter(statuses)
    unknown = set(c) - set(STATUS_VALUES)
    if unknown:
        # A row outside the vocabulary would make the buckets disagree with total.
        raise ValueError(f"unknown maintenance statuses in store: {sorted(unknown)}")
    return StatusCounts(
        total=sum(c.values()),
        urgent=c[Status.URGENT.value],
        pending=c[Status.PENDING.value],
        in_progress=c[Status.IN_PROGRESS.value],
        scheduled=c[Status.SCHEDULED.value],
        completed=c[Status.COMPLETED.value],
    )
