"""
Vesting categories and their fixed unlock parameters.

Every category shares the same unlock shape (immediate fraction, cliff, linear
ramp to 100%); they differ only by the numbers in ``CATEGORY_PARAMS``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

from rowa.core.constants import SECONDS_PER_WEEK, TOTAL_SUPPLY


class VestingCategory(Enum):
    """Funding buckets of the ROWA allocation."""

    PUBLIC_SALE = "public_sale"
    PRIVATE_SALE = "private_sale"
    SEED_SALE = "seed_sale"
    TEAM = "team"
    ADVISOR = "advisor"
    PARTNERSHIPS = "partnerships"
    VGP = "vgp"
    LP = "lp"
    LIQUIDITY = "liquidity"
    RESERVE = "reserve"

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def is_treasury(self) -> bool:
        return self in TREASURY_CATEGORIES

    @classmethod
    def parse(cls, value: "str | VestingCategory") -> "VestingCategory":
        """Accept an enum member, its value or its name (case-insensitive)."""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace("-", "_")
        for member in cls:
            if member.value == normalized or member.name.lower() == normalized:
                return member
        raise ValueError(f"Unknown vesting category: {value!r}")


_LABELS = {
    VestingCategory.PUBLIC_SALE: "Public sale",
    VestingCategory.PRIVATE_SALE: "Private sale",
    VestingCategory.SEED_SALE: "Seed sale",
    VestingCategory.TEAM: "Team",
    VestingCategory.ADVISOR: "Advisor",
    VestingCategory.PARTNERSHIPS: "Partnerships",
    VestingCategory.VGP: "VGP",
    VestingCategory.LP: "LP",
    VestingCategory.LIQUIDITY: "Liquidity",
    VestingCategory.RESERVE: "Reserve",
}

TREASURY_CATEGORIES = frozenset(
    {
        VestingCategory.VGP,
        VestingCategory.LP,
        VestingCategory.LIQUIDITY,
        VestingCategory.RESERVE,
    }
)


@dataclass(frozen=True)
class CategoryParams:
    """Fixed configuration of one category.

    ``revocable`` is None when the owner chooses revocability per schedule.
    """

    cap: int
    initial_unlock_numerator: int
    initial_unlock_denominator: int
    cliff_duration: int
    total_duration: int
    revocable: Optional[bool]

    def __post_init__(self) -> None:
        if self.cap <= 0:
            raise ValueError("Category cap must be positive")
        if self.initial_unlock_denominator <= 0:
            raise ValueError("Initial unlock denominator must be positive")
        if not 0 <= self.initial_unlock_numerator <= self.initial_unlock_denominator:
            raise ValueError("Initial unlock fraction must be within [0, 1]")
        if self.cliff_duration < 0 or self.total_duration <= 0:
            raise ValueError("Durations must be non-negative and total duration positive")
        if self.cliff_duration > self.total_duration:
            raise ValueError("Cliff cannot be longer than the total duration")

    def initial_unlock_for(self, total_amount: int) -> int:
        """Immediate tranche for ``total_amount``, rounded down."""
        return total_amount * self.initial_unlock_numerator // self.initial_unlock_denominator


def _percent_of_supply(percent: int) -> int:
    return TOTAL_SUPPLY * percent // 100


CATEGORY_PARAMS: Mapping[VestingCategory, CategoryParams] = MappingProxyType(
    {
        VestingCategory.PUBLIC_SALE: CategoryParams(
            cap=_percent_of_supply(10),
            initial_unlock_numerator=1,
            initial_unlock_denominator=4,
            cliff_duration=4 * SECONDS_PER_WEEK,
            total_duration=26 * SECONDS_PER_WEEK,
            revocable=False,
        ),
        VestingCategory.PRIVATE_SALE: CategoryParams(
            cap=_percent_of_supply(8),
            initial_unlock_numerator=1,
            initial_unlock_denominator=10,
            cliff_duration=8 * SECONDS_PER_WEEK,
            total_duration=52 * SECONDS_PER_WEEK,
            revocable=False,
        ),
        VestingCategory.SEED_SALE: CategoryParams(
            cap=_percent_of_supply(5),
            initial_unlock_numerator=1,
            initial_unlock_denominator=20,
            cliff_duration=10 * SECONDS_PER_WEEK,
            total_duration=22 * SECONDS_PER_WEEK,
            revocable=False,
        ),
        VestingCategory.TEAM: CategoryParams(
            cap=_percent_of_supply(15),
            initial_unlock_numerator=0,
            initial_unlock_denominator=1,
            cliff_duration=52 * SECONDS_PER_WEEK,
            total_duration=156 * SECONDS_PER_WEEK,
            revocable=None,
        ),
        VestingCategory.ADVISOR: CategoryParams(
            cap=_percent_of_supply(5),
            initial_unlock_numerator=0,
            initial_unlock_denominator=1,
            cliff_duration=26 * SECONDS_PER_WEEK,
            total_duration=104 * SECONDS_PER_WEEK,
            revocable=None,
        ),
        VestingCategory.PARTNERSHIPS: CategoryParams(
            cap=_percent_of_supply(7),
            initial_unlock_numerator=0,
            initial_unlock_denominator=1,
            cliff_duration=13 * SECONDS_PER_WEEK,
            total_duration=104 * SECONDS_PER_WEEK,
            revocable=None,
        ),
        VestingCategory.VGP: CategoryParams(
            cap=_percent_of_supply(20),
            initial_unlock_numerator=0,
            initial_unlock_denominator=1,
            cliff_duration=0,
            total_duration=208 * SECONDS_PER_WEEK,
            revocable=False,
        ),
        VestingCategory.LP: CategoryParams(
            cap=_percent_of_supply(10),
            initial_unlock_numerator=0,
            initial_unlock_denominator=1,
            cliff_duration=0,
            total_duration=104 * SECONDS_PER_WEEK,
            revocable=False,
        ),
        VestingCategory.LIQUIDITY: CategoryParams(
            cap=_percent_of_supply(10),
            initial_unlock_numerator=1,
            initial_unlock_denominator=4,
            cliff_duration=0,
            total_duration=52 * SECONDS_PER_WEEK,
            revocable=False,
        ),
        VestingCategory.RESERVE: CategoryParams(
            cap=_percent_of_supply(10),
            initial_unlock_numerator=0,
            initial_unlock_denominator=1,
            cliff_duration=52 * SECONDS_PER_WEEK,
            total_duration=208 * SECONDS_PER_WEEK,
            revocable=False,
        ),
    }
)


def params_for(category: VestingCategory) -> CategoryParams:
    """Look up the fixed parameters of ``category``."""
    return CATEGORY_PARAMS[category]


def category_caps() -> dict[VestingCategory, int]:
    return {category: params.cap for category, params in CATEGORY_PARAMS.items()}
