"""
Unit tests for per-category and global cap enforcement.
"""

import pytest

from rowa.core.constants import TOTAL_SUPPLY
from rowa.core.vesting_exceptions import AllocationError, CapExceededError
from rowa.vesting.allocation_ledger import CategoryAllocationLedger
from rowa.vesting.categories import CATEGORY_PARAMS, VestingCategory


def small_caps(value=100):
    return {category: value for category in VestingCategory}


def test_default_caps_cover_total_supply():
    ledger = CategoryAllocationLedger()
    assert sum(ledger.caps.values()) == TOTAL_SUPPLY
    assert ledger.global_cap == TOTAL_SUPPLY
    for category, params in CATEGORY_PARAMS.items():
        assert ledger.cap(category) == params.cap


def test_reserve_and_release():
    ledger = CategoryAllocationLedger(small_caps())
    ledger.reserve(VestingCategory.TEAM, 60)
    assert ledger.committed(VestingCategory.TEAM) == 60
    assert ledger.remaining(VestingCategory.TEAM) == 40
    assert ledger.total_committed == 60

    ledger.release_unvested(VestingCategory.TEAM, 20)
    assert ledger.committed(VestingCategory.TEAM) == 40
    assert ledger.total_committed == 40


def test_category_cap_exceeded_leaves_counters_untouched():
    ledger = CategoryAllocationLedger(small_caps())
    ledger.reserve(VestingCategory.PUBLIC_SALE, 90)
    with pytest.raises(CapExceededError) as excinfo:
        ledger.reserve(VestingCategory.PUBLIC_SALE, 11)
    assert str(excinfo.value) == "Public sale vesting amount exceeds total amount"
    assert excinfo.value.available == 10
    assert ledger.committed(VestingCategory.PUBLIC_SALE) == 90


def test_reserving_exactly_to_cap_succeeds():
    ledger = CategoryAllocationLedger(small_caps())
    ledger.reserve(VestingCategory.ADVISOR, 100)
    assert ledger.remaining(VestingCategory.ADVISOR) == 0


def test_global_cap_enforced():
    ledger = CategoryAllocationLedger(small_caps(), global_cap=150)
    ledger.reserve(VestingCategory.TEAM, 100)
    with pytest.raises(CapExceededError, match="total supply cap"):
        ledger.reserve(VestingCategory.ADVISOR, 60)
    assert ledger.remaining(VestingCategory.ADVISOR) == 50


def test_release_more_than_committed_rejected():
    ledger = CategoryAllocationLedger(small_caps())
    ledger.reserve(VestingCategory.TEAM, 10)
    with pytest.raises(AllocationError):
        ledger.release_unvested(VestingCategory.TEAM, 11)


def test_missing_cap_rejected():
    with pytest.raises(AllocationError):
        CategoryAllocationLedger({VestingCategory.TEAM: 10})


def test_round_trip_and_consistency_check():
    ledger = CategoryAllocationLedger(small_caps())
    ledger.reserve(VestingCategory.LP, 30)
    restored = CategoryAllocationLedger.from_dict(ledger.to_dict(), small_caps())
    assert restored.committed(VestingCategory.LP) == 30
    assert restored.total_committed == 30

    broken = ledger.to_dict()
    broken["total_committed"] = 31
    with pytest.raises(AllocationError):
        CategoryAllocationLedger.from_dict(broken, small_caps())
