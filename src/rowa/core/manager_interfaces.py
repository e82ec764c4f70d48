"""
Collaborator Protocol Interfaces - decoupling the vesting engine from the
token ledger and ownership implementations.

The vesting manager depends only on these protocols, so any ledger that can
transfer, report balances and report its pause flag can host the engine:

    manager = VestingManager(ledger=my_ledger, access=my_access_control, ...)
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class TokenLedgerProvider(Protocol):
    """
    Protocol for the fungible value ledger holding the vesting pool.
    """

    @property
    def address(self) -> str:
        """Address the ledger (token) is deployed under."""
        ...

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """Move ``amount`` from ``sender`` to ``recipient``. Raises on failure."""
        ...

    def balance_of(self, account: str) -> int:
        """Current balance of ``account``."""
        ...

    def is_paused(self) -> bool:
        """Whether transfers are currently blocked."""
        ...

    def vesting_started_at(self, pool: str) -> int | None:
        """Timestamp at which the supply was minted into ``pool``, if it was."""
        ...


@runtime_checkable
class OwnershipProvider(Protocol):
    """
    Protocol for single-owner permission checks.
    """

    def is_owner(self, caller: str) -> bool:
        """True when ``caller`` holds the owner role."""
        ...
