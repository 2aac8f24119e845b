"""
Error vocabulary shared by every inbound operation.

Expected failures travel back to callers as ``OperationResult`` values
carrying an ``ErrorCode``; only programmer errors and adapter failures are
raised as exceptions. Each code belongs to exactly one category so callers
can tell "forbidden" from "try another slot" from "try again later".
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorCategory(str, Enum):
    AUTHORIZATION = "authorization"
    BUSINESS_RULE = "business_rule"
    INFRASTRUCTURE = "infrastructure"


class ErrorCode(str, Enum):
    """Machine-readable failure codes returned by core operations."""

    NOT_OWNER = "not_owner"
    MISSING_CAPABILITY = "missing_capability"
    INACTIVE_PRINCIPAL = "inactive_principal"
    NOT_FOUND = "not_found"
    SLOT_UNAVAILABLE = "slot_unavailable"
    DURATION_MISMATCH = "duration_mismatch"
    ALREADY_FINALIZED = "already_finalized"
    SERVICE_UNAVAILABLE = "service_unavailable"
    INVALID_SERVICE_SPEC = "invalid_service_spec"
    REQUIRES_CONFIRMATION = "requires_confirmation"
    ALREADY_EXISTS = "already_exists"
    UNAVAILABLE = "unavailable"

    @property
    def category(self) -> ErrorCategory:
        if self in _AUTHORIZATION_CODES:
            return ErrorCategory.AUTHORIZATION
        if self is ErrorCode.UNAVAILABLE:
            return ErrorCategory.INFRASTRUCTURE
        return ErrorCategory.BUSINESS_RULE

    @property
    def retryable(self) -> bool:
        """Only infrastructure failures are safe to retry unchanged."""
        return self is ErrorCode.UNAVAILABLE


_AUTHORIZATION_CODES = frozenset({
    ErrorCode.NOT_OWNER,
    ErrorCode.MISSING_CAPABILITY,
    ErrorCode.INACTIVE_PRINCIPAL,
})


@dataclass
class OperationResult(Generic[T]):
    """Outcome of an inbound operation: a value or a typed error."""

    success: bool
    value: Optional[T] = None
    error: Optional[ErrorCode] = None
    message: str = ""

    @classmethod
    def ok(cls, value: T, message: str = "") -> "OperationResult[T]":
        return cls(success=True, value=value, message=message)

    @classmethod
    def fail(cls, error: ErrorCode, message: str = "") -> "OperationResult[T]":
        return cls(success=False, error=error, message=message or error.value)


class BookingCoreError(Exception):
    """Base class for exceptions raised by the booking core."""


class RepositoryUnavailableError(BookingCoreError):
    """Raised by repository adapters when the backing store cannot be reached."""


class ResourceNotFoundError(BookingCoreError, LookupError):
    """Raised by pure queries when given an id that does not exist."""


class InvalidTransitionError(BookingCoreError):
    """Raised when a lifecycle transition is not valid from the current state."""
