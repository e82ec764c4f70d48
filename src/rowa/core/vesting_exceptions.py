"""
Vesting-specific exception hierarchy for ROWA.

Provides typed exceptions for every failure kind of the vesting engine so that
callers (API, CLI, tests) can react precisely while still being able to catch
``VestingError`` as a whole.
"""

from __future__ import annotations
from typing import Optional, Any, Dict


class VestingError(Exception):
    """Base exception for all vesting-related errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        recoverable: Whether the operation can be retried by the caller
    """

    recoverable: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: Optional[bool] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if recoverable is not None:
            self.recoverable = recoverable


# ==================== Validation Errors ====================


class ValidationError(VestingError):
    """Raised when input fails validation before any state change."""
    pass


class InvalidAmountError(ValidationError):
    """Raised for zero, negative, fractional or non-integer amounts."""
    pass


class ProgramNotStartedError(ValidationError):
    """Raised when a schedule is created before the vesting program started."""
    pass


# ==================== Allocation Errors ====================


class AllocationError(VestingError):
    """Raised when category allocation bookkeeping is violated."""
    pass


class CapExceededError(AllocationError):
    """Raised when a category cap or the global supply cap would be exceeded."""

    def __init__(
        self,
        message: str,
        category: Optional[str] = None,
        requested: Optional[int] = None,
        available: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.category = category
        self.requested = requested
        self.available = available


# ==================== Access Errors ====================


class UnauthorizedError(VestingError):
    """Raised when the caller lacks the required role."""
    pass


# ==================== Lookup Errors ====================


class LookupFailedError(VestingError):
    """Base for registry lookup misses."""
    pass


class ScheduleNotFoundError(LookupFailedError):
    """Raised when no schedule exists for the given id or beneficiary."""
    pass


class IndexOutOfBoundsError(LookupFailedError):
    """Raised when a per-beneficiary index is past the schedule count."""
    pass


class DuplicateScheduleError(VestingError):
    """Raised when a derived schedule id collides with a stored one."""
    pass


# ==================== Lifecycle Errors ====================


class LifecycleError(VestingError):
    """Base for state machine violations on a schedule or fund."""
    pass


class ScheduleRevokedError(LifecycleError):
    """Raised when an operation targets a revoked schedule."""
    pass


class AlreadyRevokedError(LifecycleError):
    """Raised on a second revocation of the same schedule."""
    pass


class NotRevocableError(LifecycleError):
    """Raised when revoking a schedule created as non-revocable."""
    pass


class AlreadyStartedError(LifecycleError):
    """Raised when a one-shot start operation runs a second time."""
    pass


class InsufficientVestedError(LifecycleError):
    """Raised when a release asks for more than is currently releasable."""

    def __init__(
        self,
        message: str,
        requested: Optional[int] = None,
        releasable: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.requested = requested
        self.releasable = releasable


# ==================== Ledger Errors ====================


class LedgerError(VestingError):
    """Raised when the value ledger rejects an operation."""
    pass


class ServicePausedError(LedgerError):
    """Raised when a transfer-bearing operation runs while the ledger is paused."""
    recoverable = True  # Caller can retry after unpause


class InsufficientBalanceError(LedgerError):
    """Raised when an account lacks the balance for a transfer."""
    pass


class LedgerTransferError(LedgerError):
    """Raised when a release transfer could not be applied."""
    pass


# ==================== Storage & Configuration Errors ====================


class StorageError(VestingError):
    """Raised when vesting state persistence fails."""
    pass


class CorruptedDataError(StorageError):
    """Raised when stored vesting state fails its integrity check."""
    recoverable = False


class StateNotPersistedError(StorageError):
    """Raised when a mutation took effect in memory but saving it failed.

    The operation must not be retried: a repeated release would pay out twice.
    """
    recoverable = False


class ConfigurationError(VestingError):
    """Raised when vesting configuration is missing or invalid."""
    recoverable = False


# ==================== Utility Functions ====================


def is_recoverable_error(exc: Exception) -> bool:
    """Whether retrying the failed vesting call could succeed.

    Args:
        exc: The exception to check

    Returns:
        True if the caller may retry the operation unchanged
    """
    if isinstance(exc, VestingError):
        return exc.recoverable
    return isinstance(exc, (ConnectionError, TimeoutError, OSError))


def get_error_context(exc: Exception) -> Dict[str, Any]:
    """Flatten an exception into fields suitable for a structured log record.

    Args:
        exc: The exception to extract context from

    Returns:
        Mapping with the error type, message and any category or amount fields
    """
    context: Dict[str, Any] = {
        "error_type": type(exc).__name__,
        "error_message": str(exc),
    }

    if isinstance(exc, VestingError):
        context["recoverable"] = exc.recoverable
        if exc.details:
            context["details"] = exc.details

    if isinstance(exc, CapExceededError):
        if exc.category is not None:
            context["category"] = exc.category
        if exc.requested is not None:
            context["requested"] = exc.requested
        if exc.available is not None:
            context["available"] = exc.available

    if isinstance(exc, InsufficientVestedError):
        if exc.requested is not None:
            context["requested"] = exc.requested
        if exc.releasable is not None:
            context["releasable"] = exc.releasable

    return context
