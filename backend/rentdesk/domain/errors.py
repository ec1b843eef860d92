# backend/rentdesk/domain/errors.py
from __future__ import annotations

from typing import Any, Optional


class LifecycleError(Exception):
    """
    Base for every failure the maintenance lifecycle reports to its caller.

    Carries the HTTP status the API maps it to and a stable `kind` string
    the frontend can switch on. `details` is merged into the error body.
    """

    status_code = 500
    kind = "lifecycle_error"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def as_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "message": self.message, **self.details}


class ValidationError(LifecycleError):
    status_code = 400
    kind = "validation_error"


class AuthorizationError(LifecycleError):
    status_code = 403
    kind = "authorization_error"


class NotFoundError(LifecycleError):
    status_code = 404
    kind = "not_found"


class InvalidTransitionError(LifecycleError):
    status_code = 409
    kind = "invalid_transition"

    def __init__(
        self,
        current_status: str,
        target_status: str,
        allowed_targets: list[str],
        message: Optional[str] = None,
    ) -> None:
        super().__init__(
            message or f"cannot move maintenance request from {current_status} to {target_status}",
            currentStatus=current_status,
            targetStatus=target_status,
            allowedTargets=allowed_targets,
        )
        self.current_status = current_status
        self.target_status = target_status
        self.allowed_targets = allowed_targets


class StorageError(LifecycleError):
    status_code = 503
    kind = "storage_error"
