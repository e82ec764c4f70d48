"""
Vesting schedule record and deterministic schedule id derivation.
"""

from __future__ import annotations

import hashlib
from dataclasses import asdict, dataclass
from typing import Any

from rowa.core.vesting_exceptions import InvalidAmountError, ValidationError
from rowa.vesting.categories import VestingCategory

INDEX_BYTES = 32


def compute_schedule_id(beneficiary: str, index: int) -> str:
    """
    Derive the id of the ``index``-th schedule of ``beneficiary``.

    The id is the SHA-256 of the UTF-8 beneficiary followed by the index as a
    32-byte big-endian integer, so it can be recomputed without the store.
    """
    if not beneficiary:
        raise ValidationError("Beneficiary cannot be empty")
    if not isinstance(index, int) or isinstance(index, bool) or index < 0:
        raise ValidationError("Schedule index must be a non-negative integer")
    payload = beneficiary.encode("utf-8") + index.to_bytes(INDEX_BYTES, "big")
    return "0x" + hashlib.sha256(payload).hexdigest()


def require_amount(value: Any, name: str = "amount", allow_zero: bool = False) -> int:
    """Reject anything that is not an integer amount in base units."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmountError(
            f"{name} must be an integer number of base units",
            details={name: repr(value)},
        )
    if value < 0 or (value == 0 and not allow_zero):
        raise InvalidAmountError(
            f"{name} must be {'non-negative' if allow_zero else 'positive'}",
            details={name: value},
        )
    return value


@dataclass
class VestingSchedule:
    """
    One beneficiary's unlock program for a fixed token amount.

    Only ``released_amount`` and ``revoked`` change after creation, and only
    through ``VestingManager``.
    """

    schedule_id: str
    beneficiary: str
    category: VestingCategory
    total_amount: int
    start_time: int
    cliff_duration: int
    total_duration: int
    initial_unlock_amount: int
    revocable: bool
    released_amount: int = 0
    revoked: bool = False

    def __post_init__(self) -> None:
        require_amount(self.total_amount, "total_amount")
        require_amount(self.initial_unlock_amount, "initial_unlock_amount", allow_zero=True)
        require_amount(self.released_amount, "released_amount", allow_zero=True)
        if self.initial_unlock_amount > self.total_amount:
            raise ValidationError("Initial unlock cannot exceed the total amount")
        if self.released_amount > self.total_amount:
            raise ValidationError("Released amount cannot exceed the total amount")
        if self.cliff_duration < 0 or self.total_duration <= 0:
            raise ValidationError("Durations must be non-negative and total duration positive")
        if self.cliff_duration > self.total_duration:
            raise ValidationError("Cliff cannot be longer than the total duration")

    @property
    def cliff_end(self) -> int:
        return self.start_time + self.cliff_duration

    @property
    def end_time(self) -> int:
        return self.start_time + self.total_duration

    @property
    def remaining_amount(self) -> int:
        return self.total_amount - self.released_amount

    @property
    def is_fully_released(self) -> bool:
        return self.released_amount == self.total_amount

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["category"] = self.category.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VestingSchedule":
        return cls(
            schedule_id=data["schedule_id"],
            beneficiary=data["beneficiary"],
            category=VestingCategory.parse(data["category"]),
            total_amount=data["total_amount"],
            start_time=data["start_time"],
            cliff_duration=data["cliff_duration"],
            total_duration=data["total_duration"],
            initial_unlock_amount=data["initial_unlock_amount"],
            revocable=bool(data["revocable"]),
            released_amount=data.get("released_amount", 0),
            revoked=bool(data.get("revoked", False)),
        )
