"""
ROWA Vesting - Lifecycle Controller

Creates, releases and revokes vesting schedules, and starts the four one-shot
treasury funds. Every mutating operation:

- samples ``now`` once,
- runs all validation (ownership, amounts, caps, vested balance) first,
- mutates the store and allocation counters under a single lock,
- calls the token ledger only after every invariant holds.

A release is committed only after the ledger transfer returned; a transfer
failure leaves the schedule untouched.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, fields
from typing import Any, Callable, Mapping

from rowa.core import vesting_metrics
from rowa.core.manager_interfaces import OwnershipProvider, TokenLedgerProvider
from rowa.core.structured_logger import StructuredLogger, get_structured_logger
from rowa.core.vesting_exceptions import (
    AlreadyRevokedError,
    AlreadyStartedError,
    ConfigurationError,
    InsufficientVestedError,
    LedgerError,
    LedgerTransferError,
    NotRevocableError,
    ProgramNotStartedError,
    ScheduleRevokedError,
    ServicePausedError,
    UnauthorizedError,
    ValidationError,
)
from rowa.vesting import release_engine
from rowa.vesting.allocation_ledger import CategoryAllocationLedger
from rowa.vesting.categories import (
    TREASURY_CATEGORIES,
    VestingCategory,
    params_for,
)
from rowa.vesting.schedule import VestingSchedule, compute_schedule_id, require_amount
from rowa.vesting.schedule_store import ScheduleStore

logger = logging.getLogger(__name__)

FUND_ADDRESS_NAMES = {
    VestingCategory.VGP: "VGP_FUND",
    VestingCategory.LP: "LP_FUND",
    VestingCategory.LIQUIDITY: "LIQ_FUND",
    VestingCategory.RESERVE: "RESERVE_FUND",
}


@dataclass
class ProgramFlags:
    """One-shot start flags of the treasury funds, independent of each other."""

    vgp_started: bool = False
    lp_started: bool = False
    liquidity_started: bool = False
    reserve_started: bool = False

    @staticmethod
    def _field_for(category: VestingCategory) -> str:
        if category not in TREASURY_CATEGORIES:
            raise ValidationError(f"{category.label} is not a treasury fund")
        return f"{category.value}_started"

    def is_started(self, category: VestingCategory) -> bool:
        return getattr(self, self._field_for(category))

    def mark_started(self, category: VestingCategory) -> None:
        setattr(self, self._field_for(category), True)

    def to_dict(self) -> dict[str, bool]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ProgramFlags":
        known = {f.name for f in fields(cls)}
        return cls(**{k: bool(v) for k, v in data.items() if k in known})


class VestingManager:
    """
    Manages the ROWA vesting registry against the token ledger.
    """

    def __init__(
        self,
        ledger: TokenLedgerProvider,
        access: OwnershipProvider,
        vesting_pool: str,
        fund_recipients: Mapping[VestingCategory, str],
        time_provider: Callable[[], int] | None = None,
        logger: StructuredLogger | None = None,
        store: ScheduleStore | None = None,
        allocation: CategoryAllocationLedger | None = None,
        flags: ProgramFlags | None = None,
        last_timestamp: int = 0,
    ):
        if ledger is None or not getattr(ledger, "address", None):
            raise ConfigurationError("Token address cannot be 0")
        if not vesting_pool:
            raise ConfigurationError("Vesting pool address cannot be 0")
        for category, name in FUND_ADDRESS_NAMES.items():
            if not fund_recipients.get(category):
                raise ConfigurationError(f"{name} address cannot be 0")

        self.ledger = ledger
        self.access = access
        self.vesting_pool = vesting_pool
        self.fund_recipients = {c: fund_recipients[c] for c in FUND_ADDRESS_NAMES}
        self.store = store if store is not None else ScheduleStore()
        self.allocation = allocation if allocation is not None else CategoryAllocationLedger()
        self.flags = flags if flags is not None else ProgramFlags()
        self.logger = logger or get_structured_logger()
        self._time_provider = time_provider or (lambda: int(time.time()))
        self.last_timestamp = int(last_timestamp)
        self._lock = threading.RLock()
        self.logger.info(
            "VestingManager initialized.",
            token=ledger.address,
            vesting_pool=vesting_pool,
            schedules=len(self.store),
        )

    # ------------------------------------------------------------- internals

    def _current_time(self, now: int | None = None) -> int:
        timestamp = self._time_provider() if now is None else now
        try:
            return int(timestamp)
        except (TypeError, ValueError) as exc:
            raise ValidationError("time_provider must return an integer timestamp") from exc

    def _mutation_time(self, now: int | None = None) -> int:
        """Timestamp for a mutation; never earlier than one already acted on."""
        timestamp = self._current_time(now)
        if timestamp < self.last_timestamp:
            raise ValidationError(
                "Timestamp is earlier than the last vesting operation",
                details={"timestamp": timestamp, "last_timestamp": self.last_timestamp},
            )
        return timestamp

    def _require_owner(self, caller: str, operation: str) -> None:
        if not self.access.is_owner(caller):
            self.logger.security_event(
                "unauthorized_vesting_call", operation=operation, caller=(caller or "")[:10]
            )
            raise UnauthorizedError(
                "Ownable: caller is not the owner", details={"operation": operation}
            )

    def _program_start(self) -> int:
        started_at = self.ledger.vesting_started_at(self.vesting_pool)
        if started_at is None:
            raise ProgramNotStartedError(
                "TokenVesting: cannot create vesting schedule because not sufficient tokens"
            )
        return int(started_at)

    def _create(
        self,
        category: VestingCategory,
        beneficiary: str,
        total_amount: int,
        revocable: bool,
    ) -> str:
        """Reserve capacity and store a schedule. Caller holds the lock."""
        params = params_for(category)
        self.allocation.check(category, total_amount)
        start_time = self._program_start()

        schedule = VestingSchedule(
            schedule_id="",
            beneficiary=beneficiary,
            category=category,
            total_amount=total_amount,
            start_time=start_time,
            cliff_duration=params.cliff_duration,
            total_duration=params.total_duration,
            initial_unlock_amount=params.initial_unlock_for(total_amount),
            revocable=revocable,
        )
        self.allocation.reserve(category, total_amount)
        try:
            schedule_id = self.store.create(schedule)
        except Exception:
            self.allocation.release_unvested(category, total_amount)
            raise

        committed = self.allocation.committed(category)
        vesting_metrics.record_schedule_created(category.value, committed)
        self.logger.schedule_event(
            "created",
            schedule_id,
            beneficiary,
            category.value,
            total_amount,
            revocable=revocable,
            committed=committed,
        )
        return schedule_id

    # ------------------------------------------------------------- creation

    def create_schedule(
        self,
        caller: str,
        category: VestingCategory,
        beneficiary: str,
        total_amount: int,
        revocable: bool | None = None,
    ) -> str:
        """
        Create a schedule for ``beneficiary`` in a non-treasury category.

        Args:
            caller: Address invoking the operation (must be the owner)
            category: Funding category; its parameters shape the schedule
            beneficiary: Address receiving the releases
            total_amount: Base units the schedule will ever release
            revocable: Required for categories where the owner chooses;
                must match the category default otherwise

        Returns:
            The derived schedule id

        Raises:
            UnauthorizedError, InvalidAmountError, ValidationError,
            ProgramNotStartedError, CapExceededError
        """
        category = VestingCategory.parse(category)
        with self._lock:
            self._require_owner(caller, f"create_{category.value}_vesting")
            require_amount(total_amount, "total_amount")
            if not beneficiary:
                raise ValidationError("TokenVesting: beneficiary cannot be the zero address")
            if category in TREASURY_CATEGORIES:
                raise ValidationError(
                    f"{category.label} schedules are created only by starting the fund"
                )

            default = params_for(category).revocable
            if default is None:
                if revocable is None:
                    raise ValidationError(
                        f"Revocability must be chosen for {category.label} vesting"
                    )
            elif revocable is not None and revocable != default:
                raise ValidationError(
                    f"{category.label} vesting is always "
                    f"{'revocable' if default else 'non-revocable'}"
                )
            else:
                revocable = default

            return self._create(category, beneficiary, total_amount, bool(revocable))

    def create_public_sale_vesting(self, caller: str, beneficiary: str, amount: int) -> str:
        return self.create_schedule(caller, VestingCategory.PUBLIC_SALE, beneficiary, amount)

    def create_private_sale_vesting(self, caller: str, beneficiary: str, amount: int) -> str:
        return self.create_schedule(caller, VestingCategory.PRIVATE_SALE, beneficiary, amount)

    def create_seed_sale_vesting(self, caller: str, beneficiary: str, amount: int) -> str:
        return self.create_schedule(caller, VestingCategory.SEED_SALE, beneficiary, amount)

    def create_team_vesting(
        self, caller: str, beneficiary: str, amount: int, revocable: bool
    ) -> str:
        return self.create_schedule(caller, VestingCategory.TEAM, beneficiary, amount, revocable)

    def create_advisor_vesting(
        self, caller: str, beneficiary: str, amount: int, revocable: bool
    ) -> str:
        return self.create_schedule(
            caller, VestingCategory.ADVISOR, beneficiary, amount, revocable
        )

    def create_partnerships_vesting(
        self, caller: str, beneficiary: str, amount: int, revocable: bool
    ) -> str:
        return self.create_schedule(
            caller, VestingCategory.PARTNERSHIPS, beneficiary, amount, revocable
        )

    # ---------------------------------------------------------- treasury funds

    def start_fund(self, caller: str, category: VestingCategory) -> str:
        """
        Create the single schedule of a treasury fund for its fixed recipient.

        The schedule's total amount is the whole category cap. A second call
        for the same fund raises ``AlreadyStartedError`` without touching the
        allocation counters.
        """
        category = VestingCategory.parse(category)
        if category not in TREASURY_CATEGORIES:
            raise ValidationError(f"{category.label} is not a treasury fund")
        with self._lock:
            self._require_owner(caller, f"start_{category.value}_fund")
            if self.flags.is_started(category):
                raise AlreadyStartedError(
                    f"TokenVesting: {FUND_ADDRESS_NAMES[category]} vesting already started"
                )
            params = params_for(category)
            schedule_id = self._create(
                category,
                self.fund_recipients[category],
                params.cap,
                bool(params.revocable),
            )
            self.flags.mark_started(category)
            self.logger.info(
                f"{category.label} fund started.",
                event="vesting.fund_started",
                category=category.value,
                schedule_id=schedule_id,
            )
            return schedule_id

    def start_vgp_fund(self, caller: str) -> str:
        return self.start_fund(caller, VestingCategory.VGP)

    def start_lp_fund(self, caller: str) -> str:
        return self.start_fund(caller, VestingCategory.LP)

    def start_liquidity_fund(self, caller: str) -> str:
        return self.start_fund(caller, VestingCategory.LIQUIDITY)

    def start_reserve_fund(self, caller: str) -> str:
        return self.start_fund(caller, VestingCategory.RESERVE)

    # --------------------------------------------------------------- release

    def release(self, schedule_id: str, amount: int, caller: str, now: int | None = None) -> int:
        """
        Release ``amount`` of vested tokens to the schedule's beneficiary.

        Only the beneficiary or the owner may release. Returns the new
        released total of the schedule.

        Raises:
            ScheduleNotFoundError, ScheduleRevokedError, UnauthorizedError,
            InvalidAmountError, ServicePausedError, InsufficientVestedError,
            LedgerTransferError
        """
        with self._lock:
            current_time = self._mutation_time(now)
            schedule = self.store.get(schedule_id)
            if schedule.revoked:
                raise ScheduleRevokedError(
                    f"Vesting schedule {schedule_id} has been revoked",
                    details={"schedule_id": schedule_id},
                )
            if caller != schedule.beneficiary and not self.access.is_owner(caller):
                self.logger.security_event(
                    "unauthorized_release", schedule_id=schedule_id, caller=(caller or "")[:10]
                )
                raise UnauthorizedError(
                    "TokenVesting: only beneficiary and owner can release vested tokens",
                    details={"schedule_id": schedule_id},
                )
            require_amount(amount)
            if self.ledger.is_paused():
                raise ServicePausedError("ERC20Pausable: token transfer while paused")

            releasable = release_engine.releasable_amount(schedule, current_time)
            if amount > releasable:
                raise InsufficientVestedError(
                    "TokenVesting: cannot release tokens, not enough vested tokens",
                    requested=amount,
                    releasable=releasable,
                    details={"schedule_id": schedule_id},
                )

            try:
                transferred = self.ledger.transfer(
                    self.vesting_pool, schedule.beneficiary, amount
                )
            except ServicePausedError:
                raise
            except LedgerError as exc:
                logger.error(
                    "Release transfer failed for %s: %s",
                    schedule_id,
                    exc,
                    extra={"event": "vesting.release_transfer_failed", "amount": amount},
                )
                raise LedgerTransferError(
                    f"Transfer for schedule {schedule_id} failed: {exc}",
                    details={"schedule_id": schedule_id, "amount": amount},
                ) from exc
            if transferred is False:
                raise LedgerTransferError(
                    f"Ledger rejected the transfer for schedule {schedule_id}",
                    details={"schedule_id": schedule_id, "amount": amount},
                )

            schedule.released_amount += amount
            self.last_timestamp = current_time
            vesting_metrics.record_release(schedule.category.value, amount)
            self.logger.release_event(
                schedule_id, schedule.beneficiary, amount, schedule.released_amount
            )
            return schedule.released_amount

    def release_all(self, schedule_id: str, caller: str, now: int | None = None) -> int:
        """Release everything currently releasable; returns the amount released."""
        with self._lock:
            current_time = self._mutation_time(now)
            releasable = release_engine.releasable_amount(self.store.get(schedule_id), current_time)
            if releasable == 0:
                return 0
            self.release(schedule_id, releasable, caller, now=current_time)
            return releasable

    # ---------------------------------------------------------------- revoke

    def revoke(self, schedule_id: str, caller: str, now: int | None = None) -> int:
        """
        Revoke a revocable schedule.

        The unvested remainder goes back to the category's capacity. Any
        vested-but-unreleased amount is forfeited: after revocation the
        schedule can no longer release. Returns the unvested remainder.
        """
        with self._lock:
            current_time = self._mutation_time(now)
            schedule = self.store.get(schedule_id)
            self._require_owner(caller, "revoke")
            if not schedule.revocable:
                raise NotRevocableError("TokenVesting: vesting is not revocable")
            if schedule.revoked:
                raise AlreadyRevokedError(
                    f"Vesting schedule {schedule_id} is already revoked",
                    details={"schedule_id": schedule_id},
                )

            unvested = release_engine.unvested_amount(schedule, current_time)
            self.allocation.release_unvested(schedule.category, unvested)
            schedule.revoked = True
            self.last_timestamp = current_time

            committed = self.allocation.committed(schedule.category)
            vesting_metrics.record_revocation(schedule.category.value, committed)
            self.logger.schedule_event(
                "revoked",
                schedule_id,
                schedule.beneficiary,
                schedule.category.value,
                unvested,
                forfeited_vested=schedule.remaining_amount - unvested,
                committed=committed,
            )
            return unvested

    # --------------------------------------------------------------- queries

    def get_schedule(self, schedule_id: str) -> VestingSchedule:
        return self.store.get(schedule_id)

    def releasable_amount(self, schedule_id: str, now: int | None = None) -> int:
        return release_engine.releasable_amount(
            self.store.get(schedule_id), self._current_time(now)
        )

    def vested_amount(self, schedule_id: str, now: int | None = None) -> int:
        return release_engine.vested_amount(self.store.get(schedule_id), self._current_time(now))

    def get_schedules_count_by_beneficiary(self, beneficiary: str) -> int:
        return self.store.count_for(beneficiary)

    def get_schedule_ids_by_beneficiary(self, beneficiary: str) -> list[str]:
        return self.store.list_by_beneficiary(beneficiary)

    def get_schedule_id_at_index(self, beneficiary: str, index: int) -> str:
        return self.store.id_at_index(beneficiary, index)

    def get_schedule_by_address_and_index(self, beneficiary: str, index: int) -> VestingSchedule:
        return self.store.get(self.store.id_at_index(beneficiary, index))

    def get_last_schedule_for(self, beneficiary: str) -> VestingSchedule:
        return self.store.get(self.store.last_for(beneficiary))

    @staticmethod
    def compute_schedule_id_for_address_and_index(beneficiary: str, index: int) -> str:
        return compute_schedule_id(beneficiary, index)

    def compute_next_schedule_id_for_holder(self, beneficiary: str) -> str:
        return self.store.next_id_for(beneficiary)

    def get_schedules_count(self) -> int:
        return len(self.store)

    def get_schedules_total_amount(self) -> int:
        return self.allocation.total_committed

    def get_category_committed(self, category: VestingCategory) -> int:
        return self.allocation.committed(VestingCategory.parse(category))

    def get_category_remaining(self, category: VestingCategory) -> int:
        return self.allocation.remaining(VestingCategory.parse(category))

    def get_token_address(self) -> str:
        return self.ledger.address

    def is_fund_started(self, category: VestingCategory) -> bool:
        return self.flags.is_started(VestingCategory.parse(category))

    def get_outstanding_amount(self) -> int:
        """Base units still owed to beneficiaries of non-revoked schedules."""
        return sum(s.remaining_amount for s in self.store if not s.revoked)

    def get_withdrawable_amount(self) -> int:
        """Pool balance not owed to any live schedule."""
        return self.ledger.balance_of(self.vesting_pool) - self.get_outstanding_amount()

    def category_summary(self) -> list[dict[str, Any]]:
        summary = []
        for category in VestingCategory:
            params = params_for(category)
            summary.append(
                {
                    "category": category.value,
                    "label": category.label,
                    "cap": self.allocation.cap(category),
                    "committed": self.allocation.committed(category),
                    "remaining": self.allocation.remaining(category),
                    "cliff_duration": params.cliff_duration,
                    "total_duration": params.total_duration,
                    "initial_unlock": [
                        params.initial_unlock_numerator,
                        params.initial_unlock_denominator,
                    ],
                    "revocable": params.revocable,
                }
            )
        return summary

    # ----------------------------------------------------------- persistence

    def to_dict(self) -> dict[str, Any]:
        with self._lock:
            return {
                "token_address": self.ledger.address,
                "vesting_pool": self.vesting_pool,
                "fund_recipients": {c.value: a for c, a in self.fund_recipients.items()},
                "store": self.store.to_dict(),
                "allocation": self.allocation.to_dict(),
                "flags": self.flags.to_dict(),
                "last_timestamp": self.last_timestamp,
            }

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        ledger: TokenLedgerProvider,
        access: OwnershipProvider,
        time_provider: Callable[[], int] | None = None,
        logger: StructuredLogger | None = None,
    ) -> "VestingManager":
        if data.get("token_address") and data["token_address"] != ledger.address:
            raise ConfigurationError(
                "Stored vesting state belongs to a different token",
                details={"stored": data["token_address"], "ledger": ledger.address},
            )
        fund_recipients = {
            VestingCategory.parse(k): v for k, v in data.get("fund_recipients", {}).items()
        }
        return cls(
            ledger=ledger,
            access=access,
            vesting_pool=data["vesting_pool"],
            fund_recipients=fund_recipients,
            time_provider=time_provider,
            logger=logger,
            store=ScheduleStore.from_dict(data.get("store", {})),
            allocation=CategoryAllocationLedger.from_dict(data.get("allocation", {})),
            flags=ProgramFlags.from_dict(data.get("flags", {})),
            last_timestamp=int(data.get("last_timestamp", 0)),
        )
