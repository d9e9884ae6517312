"""
Error types for the library core.

Every failure that reaches a caller is an ``AppError``. The presentation
layer shows ``str(error)`` to the librarian and never needs to inspect the
underlying cause.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Severity levels for application errors."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AppError(Exception):
    """Base class for all application errors.

    Args:
        message: Human-readable description of the problem
        severity: How serious the error is
        cause: Optional underlying exception
        details: Optional structured context (keys, file paths, ...)
    """

    default_severity = ErrorSeverity.ERROR

    def __init__(
        self,
        message: str,
        severity: Optional[ErrorSeverity] = None,
        cause: Optional[BaseException] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.severity = severity or self.default_severity
        self.cause = cause
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert the error to a dictionary."""
        result = {
            "type": self.__class__.__name__,
            "message": self.message,
            "severity": self.severity.value,
        }
        if self.details:
            result["details"] = self.details
        if self.cause is not None:
            result["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return result

    def __str__(self) -> str:
        return self.message


class NotFoundError(AppError):
    """A referenced book, user or loan does not exist."""

    default_severity = ErrorSeverity.WARNING


class ValidationError(AppError):
    """Malformed input or a violated business rule."""

    default_severity = ErrorSeverity.WARNING


class PersistenceError(AppError):
    """Reading or writing a backing file failed."""

    default_severity = ErrorSeverity.CRITICAL
