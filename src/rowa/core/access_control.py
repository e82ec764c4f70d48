"""
Single-owner access control.

Owner-gated operations call ``require_owner`` before touching any state.
Addresses are compared case-insensitively.
"""

from __future__ import annotations

import logging

from rowa.core.vesting_exceptions import UnauthorizedError, ValidationError

logger = logging.getLogger(__name__)


class OwnerAccessControl:
    """Holds the owner address and answers ``is_owner`` checks."""

    def __init__(self, owner: str) -> None:
        if not owner:
            raise ValidationError("Owner address cannot be empty")
        self._owner = owner

    @property
    def owner(self) -> str:
        return self._owner

    def is_owner(self, caller: str) -> bool:
        return bool(caller) and caller.lower() == self._owner.lower()

    def require_owner(self, caller: str, operation: str = "") -> None:
        if not self.is_owner(caller):
            logger.warning(
                "Access denied: caller is not the owner",
                extra={
                    "event": "access_control.not_owner",
                    "caller": (caller or "")[:10],
                    "operation": operation,
                },
            )
            raise UnauthorizedError(
                "Ownable: caller is not the owner",
                details={"operation": operation},
            )

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        self.require_owner(caller, "transfer_ownership")
        if not new_owner:
            raise ValidationError("Ownable: new owner is the zero address")
        previous, self._owner = self._owner, new_owner
        logger.info(
            "Ownership transferred",
            extra={
                "event": "access_control.ownership_transferred",
                "previous_owner": previous[:10],
                "new_owner": new_owner[:10],
            },
        )
