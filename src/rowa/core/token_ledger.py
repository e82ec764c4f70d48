"""
ROWA - Reference Token Ledger

In-memory fungible ledger hosting the vesting pool: balances, allowances,
owner-gated pause and snapshot controls, and the one-time ``start_vesting``
mint of the whole supply into the vesting pool.
"""

from __future__ import annotations

import copy
import time
from typing import Any, Callable

from rowa.core.access_control import OwnerAccessControl
from rowa.core.constants import TOKEN_DECIMALS, TOKEN_NAME, TOKEN_SYMBOL, TOTAL_SUPPLY
from rowa.core.structured_logger import StructuredLogger, get_structured_logger
from rowa.core.vesting_exceptions import (
    AlreadyStartedError,
    InsufficientBalanceError,
    InvalidAmountError,
    LedgerError,
    ServicePausedError,
    ValidationError,
)
from rowa.vesting.schedule import require_amount


class RowaToken:
    """
    Manages ROWA balances, allowances and historical snapshots.
    """

    name = TOKEN_NAME
    symbol = TOKEN_SYMBOL
    decimals = TOKEN_DECIMALS

    def __init__(
        self,
        address: str,
        access: OwnerAccessControl,
        initial_supply: int = TOTAL_SUPPLY,
        logger: StructuredLogger | None = None,
        time_provider: Callable[[], int] | None = None,
    ):
        if not address:
            raise ValidationError("Token address cannot be 0")
        self._address = address
        self.access = access
        self.initial_supply = require_amount(initial_supply, "initial_supply")
        self.logger = logger or get_structured_logger()
        self._time_provider = time_provider or (lambda: int(time.time()))

        self.total_supply = 0
        self.balances: dict[str, int] = {}
        self.allowances: dict[str, dict[str, int]] = {}
        self.paused = False
        self.vesting_contract: str | None = None
        self.vesting_start_time: int | None = None
        self._snapshots: list[dict[str, Any]] = []

    @property
    def address(self) -> str:
        return self._address

    @property
    def owner(self) -> str:
        return self.access.owner

    # ----------------------------------------------------------------- queries

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def allowance(self, holder: str, spender: str) -> int:
        return self.allowances.get(holder, {}).get(spender, 0)

    def is_paused(self) -> bool:
        return self.paused

    def vesting_started_at(self, pool: str) -> int | None:
        if self.vesting_contract is None or pool != self.vesting_contract:
            return None
        return self.vesting_start_time

    def current_snapshot_id(self) -> int:
        return len(self._snapshots)

    def _snapshot(self, snapshot_id: int) -> dict[str, Any]:
        if snapshot_id <= 0:
            raise LedgerError("ERC20Snapshot: id is 0")
        if snapshot_id > len(self._snapshots):
            raise LedgerError("ERC20Snapshot: nonexistent id")
        return self._snapshots[snapshot_id - 1]

    def balance_of_at(self, account: str, snapshot_id: int) -> int:
        return self._snapshot(snapshot_id)["balances"].get(account, 0)

    def total_supply_at(self, snapshot_id: int) -> int:
        return self._snapshot(snapshot_id)["total_supply"]

    # ---------------------------------------------------------- owner controls

    def pause(self, caller: str) -> None:
        self.access.require_owner(caller, "pause")
        self.paused = True
        self.logger.info("Token contract paused.", event="token.paused")

    def unpause(self, caller: str) -> None:
        self.access.require_owner(caller, "unpause")
        self.paused = False
        self.logger.info("Token contract unpaused.", event="token.unpaused")

    def snapshot(self, caller: str) -> int:
        """Record current balances; returns the new snapshot id (1-based)."""
        self.access.require_owner(caller, "snapshot")
        self._snapshots.append(
            {"balances": dict(self.balances), "total_supply": self.total_supply}
        )
        snapshot_id = len(self._snapshots)
        self.logger.info(
            f"Snapshot {snapshot_id} created.", event="token.snapshot", snapshot_id=snapshot_id
        )
        return snapshot_id

    def start_vesting(self, caller: str, vesting_pool: str, now: int | None = None) -> int:
        """
        Mint the whole initial supply into ``vesting_pool`` exactly once.

        Returns the recorded program start timestamp.
        """
        self.access.require_owner(caller, "start_vesting")
        if self.vesting_contract is not None:
            raise AlreadyStartedError("ROWAToken: vesting already started")
        if not vesting_pool:
            raise ValidationError("ROWAToken: vesting contract is the zero address")

        start_time = int(now) if now is not None else int(self._time_provider())
        self._mint(vesting_pool, self.initial_supply)
        self.vesting_contract = vesting_pool
        self.vesting_start_time = start_time
        self.logger.info(
            "Vesting started.",
            event="token.vesting_started",
            vesting_contract=vesting_pool,
            start_time=start_time,
            amount=self.initial_supply,
        )
        return start_time

    # --------------------------------------------------------------- transfers

    def _mint(self, account: str, amount: int) -> None:
        self.total_supply += amount
        self.balances[account] = self.balances.get(account, 0) + amount

    def _move(self, sender: str, recipient: str, amount: int) -> None:
        if self.paused:
            raise ServicePausedError("ERC20Pausable: token transfer while paused")
        if not recipient:
            raise ValidationError("ERC20: transfer to the zero address")
        balance = self.balances.get(sender, 0)
        if balance < amount:
            self.logger.warn(
                f"Insufficient balance for transfer from {sender}.",
                sender=sender,
                recipient=recipient,
                amount=amount,
                sender_balance=balance,
            )
            raise InsufficientBalanceError(
                "ERC20: transfer amount exceeds balance",
                details={"sender": sender, "amount": amount, "balance": balance},
            )
        self.balances[sender] = balance - amount
        self.balances[recipient] = self.balances.get(recipient, 0) + amount

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """
        Transfers ROWA from ``sender`` to ``recipient``.

        Raises:
            ServicePausedError: while the token is paused
            InsufficientBalanceError: when ``sender`` cannot cover ``amount``
        """
        require_amount(amount)
        self._move(sender, recipient, amount)
        self.logger.info(
            f"Transferred {amount} ROWA from {sender} to {recipient}.",
            sender=sender,
            recipient=recipient,
            amount=amount,
        )
        return True

    def approve(self, holder: str, spender: str, amount: int) -> bool:
        require_amount(amount, allow_zero=True)
        if not spender:
            raise ValidationError("ERC20: approve to the zero address")
        self.allowances.setdefault(holder, {})[spender] = amount
        return True

    def transfer_from(self, spender: str, holder: str, recipient: str, amount: int) -> bool:
        require_amount(amount)
        allowed = self.allowance(holder, spender)
        if allowed < amount:
            raise InvalidAmountError(
                "ERC20: insufficient allowance",
                details={"allowance": allowed, "amount": amount},
            )
        self._move(holder, recipient, amount)
        self.allowances[holder][spender] = allowed - amount
        return True

    # ------------------------------------------------------------- persistence

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self._address,
            "owner": self.access.owner,
            "initial_supply": self.initial_supply,
            "total_supply": self.total_supply,
            "balances": dict(self.balances),
            "allowances": copy.deepcopy(self.allowances),
            "paused": self.paused,
            "vesting_contract": self.vesting_contract,
            "vesting_start_time": self.vesting_start_time,
            "snapshots": copy.deepcopy(self._snapshots),
        }

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        access: OwnerAccessControl | None = None,
        logger: StructuredLogger | None = None,
        time_provider: Callable[[], int] | None = None,
    ) -> "RowaToken":
        token = cls(
            data["address"],
            access or OwnerAccessControl(data["owner"]),
            initial_supply=data.get("initial_supply", TOTAL_SUPPLY),
            logger=logger,
            time_provider=time_provider,
        )
        token.total_supply = data.get("total_supply", 0)
        token.balances = dict(data.get("balances", {}))
        token.allowances = copy.deepcopy(data.get("allowances", {}))
        token.paused = bool(data.get("paused", False))
        token.vesting_contract = data.get("vesting_contract")
        token.vesting_start_time = data.get("vesting_start_time")
        token._snapshots = copy.deepcopy(data.get("snapshots", []))
        return token
