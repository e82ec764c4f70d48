from __future__ import annotations

"""
Vesting Invariant Tests using Property-Based Testing

Verifies that release arithmetic and allocation accounting hold for arbitrary
amounts, timestamps and operation sequences.
"""

from hypothesis import given, settings, HealthCheck, strategies as st

from rowa.core.access_control import OwnerAccessControl
from rowa.core.constants import SECONDS_PER_WEEK
from rowa.core.structured_logger import StructuredLogger
from rowa.core.token_ledger import RowaToken
from rowa.core.vesting_exceptions import CapExceededError, InsufficientVestedError
from rowa.vesting import release_engine
from rowa.vesting.allocation_ledger import CategoryAllocationLedger
from rowa.vesting.categories import VestingCategory, params_for
from rowa.vesting.schedule import VestingSchedule
from rowa.vesting.vesting_manager import VestingManager

START = 1_700_000_000
OWNER = "0xowner"
POOL = "0xpool"
FUNDS = {
    VestingCategory.VGP: "0xvgp",
    VestingCategory.LP: "0xlp",
    VestingCategory.LIQUIDITY: "0xliq",
    VestingCategory.RESERVE: "0xreserve",
}

categories = st.sampled_from(list(VestingCategory))
amounts = st.integers(min_value=1, max_value=10**12)
offsets = st.integers(min_value=-10 * SECONDS_PER_WEEK, max_value=300 * SECONDS_PER_WEEK)


def schedule_for(category: VestingCategory, total: int) -> VestingSchedule:
    params = params_for(category)
    return VestingSchedule(
        schedule_id="0x1",
        beneficiary="alice",
        category=category,
        total_amount=total,
        start_time=START,
        cliff_duration=params.cliff_duration,
        total_duration=params.total_duration,
        initial_unlock_amount=params.initial_unlock_for(total),
        revocable=False,
    )


class TestReleaseCurveInvariants:
    """The vested curve is bounded, monotone and complete."""

    @given(categories, amounts, offsets, offsets)
    @settings(max_examples=300)
    def test_vested_is_monotone(self, category, total, t1, t2):
        schedule = schedule_for(category, total)
        early, late = sorted((t1, t2))
        assert release_engine.vested_amount(schedule, START + early) <= release_engine.vested_amount(
            schedule, START + late
        )

    @given(categories, amounts, offsets)
    @settings(max_examples=300)
    def test_vested_within_bounds(self, category, total, offset):
        schedule = schedule_for(category, total)
        vested = release_engine.vested_amount(schedule, START + offset)
        assert schedule.initial_unlock_amount <= vested <= total

    @given(categories, amounts, st.integers(min_value=0, max_value=10**9))
    @settings(max_examples=200)
    def test_fully_vested_after_end(self, category, total, extra):
        schedule = schedule_for(category, total)
        assert release_engine.vested_amount(schedule, schedule.end_time + extra) == total


class TestAllocationInvariants:
    @given(st.lists(st.tuples(categories, amounts), max_size=40))
    @settings(max_examples=150)
    def test_committed_never_exceeds_caps(self, reservations):
        caps = {category: 5 * 10**12 for category in VestingCategory}
        ledger = CategoryAllocationLedger(caps, global_cap=2 * 10**13)
        for category, amount in reservations:
            try:
                ledger.reserve(category, amount)
            except CapExceededError:
                pass
            assert ledger.committed(category) <= caps[category]
            assert ledger.total_committed <= ledger.global_cap
        assert ledger.total_committed == sum(ledger.snapshot().values())


class TestManagerInvariants:
    @given(
        total=st.integers(min_value=1, max_value=10**9),
        steps=st.lists(
            st.tuples(
                st.integers(min_value=0, max_value=30 * SECONDS_PER_WEEK),
                st.integers(min_value=1, max_value=10**9),
            ),
            max_size=15,
        ),
    )
    @settings(max_examples=100, suppress_health_check=[HealthCheck.too_slow])
    def test_releases_never_exceed_vested(self, total, steps):
        logger = StructuredLogger("ROWA_Invariants", log_level="CRITICAL")
        access = OwnerAccessControl(OWNER)
        token = RowaToken("0xtoken", access, logger=logger)
        token.start_vesting(OWNER, POOL, now=START)
        manager = VestingManager(token, access, POOL, FUNDS, logger=logger)
        schedule_id = manager.create_seed_sale_vesting(OWNER, "alice", total)

        now = START
        for advance, amount in sorted(steps):
            now = START + advance
            try:
                manager.release(schedule_id, amount, "alice", now=now)
            except InsufficientVestedError:
                pass
            schedule = manager.get_schedule(schedule_id)
            assert schedule.released_amount <= manager.vested_amount(schedule_id, now=now)
            assert token.balance_of("alice") == schedule.released_amount

        manager.release_all(schedule_id, "alice", now=START + 30 * SECONDS_PER_WEEK)
        assert token.balance_of("alice") == total
        assert manager.get_schedule(schedule_id).is_fully_released
