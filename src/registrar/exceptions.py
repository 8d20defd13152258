"""Base exception and error taxonomy shared by all Registrar components."""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorKind(StrEnum):
    """Machine-readable error kinds callers can branch on."""

    NOT_FOUND = "not_found"
    INACTIVE = "inactive"
    CAPACITY = "capacity"
    DUPLICATE = "duplicate"
    PREREQUISITE = "prerequisite"
    CONFLICT = "conflict"
    WINDOW_EXPIRED = "window_expired"
    INVALID_GRADE = "invalid_grade"
    CONCURRENCY = "concurrency"
    INVALID_STATE = "invalid_state"
    TIMEOUT = "timeout"
    STORAGE = "storage"


class RegistrarError(Exception):
    """Base exception for Registrar errors.

    Attributes:
        kind: Error kind, set per subclass.
        details: Structured data for rendering an actionable message.
    """

    kind: ErrorKind = ErrorKind.STORAGE

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for callers that render it."""
        return {"error": self.kind.value, "message": self.message, "details": self.details}
