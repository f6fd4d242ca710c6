"""Exceptions raised by the grade record engine."""

from __future__ import annotations


class GradebookError(Exception):
    """Base class for recoverable record-level failures."""

    kind = "error"

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class NotFoundError(GradebookError):
    """Raised when a referenced student, course, exam or grade is missing."""

    kind = "not_found"


class DuplicateKeyError(GradebookError):
    """Raised when a uniqueness constraint would be violated."""

    kind = "duplicate_key"


class InvalidValueError(GradebookError):
    """Raised for out-of-range or malformed field values."""

    kind = "invalid_value"


class TypeMismatchError(GradebookError):
    """Raised when an exam type disagrees with its course's evaluation type."""

    kind = "type_mismatch"


__all__ = [
    "GradebookError",
    "NotFoundError",
    "DuplicateKeyError",
    "InvalidValueError",
    "TypeMismatchError",
]
