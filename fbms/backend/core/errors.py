"""Domain exceptions raised by services and mapped to HTTP responses in the API."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass
class Issue:
    field: str
    message: str
    code: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class FBMSError(Exception):
    """Base class for all business-rule failures."""

    status_code = 400
    code = "FBMS_ERROR"

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "code": self.code, "errors": self.errors}


class NotFoundError(FBMSError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class ValidationError(FBMSError):
    status_code = 422
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, issues: list[Issue] | None = None):
        super().__init__(message, [i.to_dict() for i in issues or []])
        self.issues = issues or []


class StockError(FBMSError):
    status_code = 409
    code = "STOCK_ERROR"


class TransitionError(FBMSError):
    status_code = 409
    code = "INVALID_TRANSITION"

    def __init__(self, message: str, issues: list[Issue] | None = None):
        super().__init__(message, [i.to_dict() for i in issues or []])
        self.issues = issues or []


class ConflictError(FBMSError):
    status_code = 409
    code = "CONFLICT"


class PermissionDeniedError(FBMSError):
    status_code = 403
    code = "PERMISSION_DENIED"


class AuthenticationError(FBMSError):
    status_code = 401
    code = "AUTHENTICATION_FAILED"
