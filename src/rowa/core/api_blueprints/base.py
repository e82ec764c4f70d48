"""
Shared plumbing for the vesting HTTP blueprints

Provides the request context accessors and the response helpers shared by the
vesting blueprint.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional, Tuple

from flask import g, jsonify, request

from rowa.core.vesting_exceptions import (
    LedgerError,
    LookupFailedError,
    ServicePausedError,
    StateNotPersistedError,
    StorageError,
    UnauthorizedError,
    VestingError,
    get_error_context,
)

logger = logging.getLogger(__name__)

CALLER_HEADER = "X-Caller"


def get_api_context() -> Dict[str, Any]:
    """Get the API context stored in Flask's g object during request setup."""
    return g.get("api_context", {})


def get_manager() -> Any:
    """Get the vesting manager instance from context."""
    return get_api_context().get("manager")


def get_commit_hook() -> Optional[Callable[[], None]]:
    """Callable persisting state after a successful mutation, if configured."""
    return get_api_context().get("on_commit")


def get_caller() -> str:
    """Identity of the caller, taken from the ``X-Caller`` header."""
    return request.headers.get(CALLER_HEADER, "").strip()


def success_response(payload: Dict[str, Any], status: int = 200) -> Tuple[Any, int]:
    """Wrap ``payload`` in the ``{"success": true, ...}`` envelope."""
    body = {"success": True, **payload}
    return jsonify(body), status


def error_response(
    message: str,
    status: int = 400,
    code: str = "bad_request",
    context: Optional[Dict[str, Any]] = None,
) -> Tuple[Any, int]:
    """Return an error payload and log it at a severity matching the status."""
    log = logger.error if status >= 500 else logger.warning
    log(
        "API error: %s",
        message,
        extra={"event": "api.error", "code": code, "status": status, **(context or {})},
    )
    return jsonify({"success": False, "error": message, "code": code}), status


def vesting_error_response(exc: VestingError) -> Tuple[Any, int]:
    """Map a vesting exception to its HTTP status and error code."""
    if isinstance(exc, LookupFailedError):
        status = 404
    elif isinstance(exc, UnauthorizedError):
        status = 403
    elif isinstance(exc, ServicePausedError):
        status = 503
    elif isinstance(exc, LedgerError):
        status = 502
    elif isinstance(exc, StorageError):
        status = 500
    else:
        status = 400
    context = get_error_context(exc)
    code = context.pop("error_type")
    if isinstance(exc, StateNotPersistedError):
        code = "applied_not_persisted"
    context.pop("error_message", None)
    return error_response(exc.message, status=status, code=code, context=context)


def commit() -> None:
    """
    Persist state after a mutation has been applied.

    The mutation is not rolled back when saving fails, since a release has
    already moved tokens on the ledger. The failure surfaces as
    ``StateNotPersistedError`` (HTTP 500, code ``applied_not_persisted``) so
    clients know not to retry.
    """
    hook = get_commit_hook()
    if hook is None:
        return
    try:
        hook()
    except StorageError as exc:
        logger.error(
            "Mutation applied but not persisted: %s",
            exc,
            extra={"event": "api.commit_failed", "path": request.path},
        )
        raise StateNotPersistedError(
            f"Operation was applied but could not be saved: {exc.message}",
            details={"path": request.path},
        ) from exc
