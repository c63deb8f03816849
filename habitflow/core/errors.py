"""Domain error taxonomy shared by services and controllers.

Services raise these; the app factory turns them into JSON responses. Each error
subclasses ``ValueError`` and stringifies to its short code so callers can keep
matching on ``str(exc)``.
"""

from __future__ import annotations

from typing import Any, List, Optional


class DomainError(ValueError):
    """Base exception for caller-fixable failures."""

    code = "error"
    status_code = 400

    def __init__(self, message: Optional[str] = None, details: Optional[List[Any]] = None) -> None:
        super().__init__(self.code)
        self.message = message
        self.details = details or []

    def __str__(self) -> str:
        return self.code

    def to_dict(self) -> dict:
        body: dict = {"ok": False, "error": self.code}
        if self.message:
            body["message"] = self.message
        if self.details:
            body["details"] = self.details
        return body


class NotFoundError(DomainError):
    """Missing or not owned by the requesting user; never distinguishes the two."""

    code = "not_found"
    status_code = 404

    def __init__(self, details: Optional[List[Any]] = None) -> None:
        super().__init__("not found", details)


class ConflictError(DomainError):
    code = "duplicate"
    status_code = 409


class ValidationFailed(DomainError):
    code = "validation_error"
    status_code = 400


def field_error(field: str, message: str) -> ValidationFailed:
    """Build a validation error carrying a single field-level detail."""
    return ValidationFailed(message, details=[{"loc": [field], "msg": message}])
