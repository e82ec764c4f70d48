"""
Category Allocation Ledger - cumulative committed amount per category.

Caps are fixed at construction. ``reserve`` is checked against both the
category cap and the global cap before any counter moves.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Mapping

from rowa.core.vesting_exceptions import AllocationError, CapExceededError
from rowa.vesting.categories import VestingCategory, category_caps
from rowa.vesting.schedule import require_amount

logger = logging.getLogger(__name__)


class CategoryAllocationLedger:
    def __init__(
        self,
        caps: Mapping[VestingCategory, int] | None = None,
        global_cap: int | None = None,
    ) -> None:
        caps = dict(caps if caps is not None else category_caps())
        missing = [c.value for c in VestingCategory if c not in caps]
        if missing:
            raise AllocationError("Missing caps for categories", details={"missing": missing})
        self._caps: Mapping[VestingCategory, int] = MappingProxyType(caps)
        self._global_cap = global_cap if global_cap is not None else sum(caps.values())
        self._committed: dict[VestingCategory, int] = {c: 0 for c in VestingCategory}
        self._total_committed = 0

    @property
    def caps(self) -> Mapping[VestingCategory, int]:
        return self._caps

    @property
    def global_cap(self) -> int:
        return self._global_cap

    @property
    def total_committed(self) -> int:
        return self._total_committed

    def cap(self, category: VestingCategory) -> int:
        return self._caps[category]

    def committed(self, category: VestingCategory) -> int:
        return self._committed[category]

    def remaining(self, category: VestingCategory) -> int:
        """Capacity still available to ``category``, bounded by the global cap."""
        by_category = self._caps[category] - self._committed[category]
        return min(by_category, self._global_cap - self._total_committed)

    def check(self, category: VestingCategory, amount: int) -> None:
        """Raise ``CapExceededError`` if ``amount`` cannot be reserved."""
        require_amount(amount)
        if self._committed[category] + amount > self._caps[category]:
            raise CapExceededError(
                f"{category.label} vesting amount exceeds total amount",
                category=category.value,
                requested=amount,
                available=self._caps[category] - self._committed[category],
            )
        if self._total_committed + amount > self._global_cap:
            raise CapExceededError(
                "Vesting amount exceeds the total supply cap",
                category=category.value,
                requested=amount,
                available=self._global_cap - self._total_committed,
            )

    def reserve(self, category: VestingCategory, amount: int) -> None:
        self.check(category, amount)
        self._committed[category] += amount
        self._total_committed += amount
        logger.debug(
            "Reserved %d for %s",
            amount,
            category.value,
            extra={"event": "vesting.allocation.reserve", "committed": self._committed[category]},
        )

    def release_unvested(self, category: VestingCategory, amount: int) -> None:
        """Return the unvested remainder of a revoked schedule to ``category``."""
        require_amount(amount, allow_zero=True)
        if amount > self._committed[category]:
            raise AllocationError(
                f"Cannot release {amount} from {category.value}: only "
                f"{self._committed[category]} committed",
                details={"category": category.value, "amount": amount},
            )
        self._committed[category] -= amount
        self._total_committed -= amount
        logger.debug(
            "Released %d unvested back to %s",
            amount,
            category.value,
            extra={"event": "vesting.allocation.release", "committed": self._committed[category]},
        )

    def snapshot(self) -> dict[str, int]:
        return {category.value: value for category, value in self._committed.items()}

    def to_dict(self) -> dict[str, Any]:
        return {
            "committed": self.snapshot(),
            "total_committed": self._total_committed,
        }

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        caps: Mapping[VestingCategory, int] | None = None,
        global_cap: int | None = None,
    ) -> "CategoryAllocationLedger":
        ledger = cls(caps, global_cap)
        for key, value in data.get("committed", {}).items():
            category = VestingCategory.parse(key)
            ledger._committed[category] = require_amount(value, key, allow_zero=True)
        ledger._total_committed = require_amount(
            data.get("total_committed", 0), "total_committed", allow_zero=True
        )
        if ledger._total_committed != sum(ledger._committed.values()):
            raise AllocationError("Stored allocation counters are inconsistent")
        return ledger
