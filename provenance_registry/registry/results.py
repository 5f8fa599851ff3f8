"""
Result values and error taxonomy for registry workflows.

Workflow services raise ``LifecycleError`` internally and hand callers an
``OperationResult``. ``CertificateNumberError`` is the only exception meant
to escape a public workflow method.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorKind(str, Enum):
    """Failure categories, each mapped to one HTTP status by the API layer."""

    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    INVALID_STATE = "invalid_state"
    CONFLICT = "conflict"
    VALIDATION = "validation"


class LifecycleError(Exception):
    """
    Raised when a workflow precondition fails.

    Attributes:
        kind: Failure category for programmatic handling
        message: Human-readable reason, safe to show to the user
    """

    def __init__(self, kind: ErrorKind, message: str):
        self.kind = kind
        self.message = message
        super().__init__(f"{kind.value}: {message}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.message,
            "kind": self.kind.value,
        }


class CertificateNumberError(Exception):
    """Raised when no unique certificate number could be generated."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        self.message = (
            f"Failed to generate unique certificate number after {attempts} attempts"
        )
        super().__init__(self.message)


class OperationResult(BaseModel):
    """Discriminated outcome of a workflow operation."""

    model_config = ConfigDict(use_enum_values=True)

    success: bool
    error: Optional[str] = None
    kind: Optional[ErrorKind] = None
    data: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def ok(cls, **data: Any) -> "OperationResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: LifecycleError) -> "OperationResult":
        return cls(success=False, error=error.message, kind=error.kind)


def unauthorized(message: str = "You must be signed in") -> LifecycleError:
    return LifecycleError(ErrorKind.UNAUTHORIZED, message)


def forbidden(message: str) -> LifecycleError:
    return LifecycleError(ErrorKind.FORBIDDEN, message)


def not_found(message: str) -> LifecycleError:
    return LifecycleError(ErrorKind.NOT_FOUND, message)


def invalid_state(message: str) -> LifecycleError:
    return LifecycleError(ErrorKind.INVALID_STATE, message)


def conflict(message: str) -> LifecycleError:
    return LifecycleError(ErrorKind.CONFLICT, message)


def validation(message: str) -> LifecycleError:
    return LifecycleError(ErrorKind.VALIDATION, message)
