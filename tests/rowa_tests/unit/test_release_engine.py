"""
Unit tests for vested/releasable computation.
"""

import pytest

from rowa.core.constants import SECONDS_PER_WEEK
from rowa.core.vesting_exceptions import ScheduleRevokedError
from rowa.vesting import release_engine
from rowa.vesting.categories import VestingCategory, params_for
from rowa.vesting.schedule import VestingSchedule

WEEK = SECONDS_PER_WEEK
START = 1_000_000


def make_schedule(category=VestingCategory.SEED_SALE, total=10_000, start=START, **overrides):
    params = params_for(category)
    fields = dict(
        schedule_id="0xabc",
        beneficiary="alice",
        category=category,
        total_amount=total,
        start_time=start,
        cliff_duration=params.cliff_duration,
        total_duration=params.total_duration,
        initial_unlock_amount=params.initial_unlock_for(total),
        revocable=False,
    )
    fields.update(overrides)
    return VestingSchedule(**fields)


class TestSeedSaleCurve:
    """10,000 tokens, 5% immediate, 10 week cliff, 22 weeks total."""

    def test_initial_unlock_available_at_start(self):
        schedule = make_schedule()
        assert schedule.initial_unlock_amount == 500
        assert release_engine.vested_amount(schedule, START) == 500
        assert release_engine.releasable_amount(schedule, START) == 500

    def test_only_initial_unlock_during_cliff(self):
        schedule = make_schedule()
        assert release_engine.vested_amount(schedule, START + 9 * WEEK) == 500
        assert release_engine.vested_amount(schedule, START + 10 * WEEK - 1) == 500

    def test_cliff_end_starts_linear_phase_at_initial_unlock(self):
        schedule = make_schedule()
        assert release_engine.vested_amount(schedule, START + 10 * WEEK) == 500

    def test_midway_through_linear_phase(self):
        schedule = make_schedule()
        assert release_engine.vested_amount(schedule, START + 16 * WEEK) == 5250

    def test_fully_vested_at_end(self):
        schedule = make_schedule()
        assert release_engine.vested_amount(schedule, START + 22 * WEEK) == 10_000
        assert release_engine.vested_amount(schedule, START + 100 * WEEK) == 10_000

    def test_releasable_subtracts_released(self):
        schedule = make_schedule(released_amount=500)
        assert release_engine.releasable_amount(schedule, START) == 0
        assert release_engine.releasable_amount(schedule, START + 16 * WEEK) == 4750


def test_public_sale_unlocks_quarter_immediately():
    schedule = make_schedule(VestingCategory.PUBLIC_SALE)
    assert release_engine.vested_amount(schedule, START) == 2500
    assert release_engine.vested_amount(schedule, START + 4 * WEEK - 1) == 2500


def test_linear_phase_rounds_down():
    schedule = make_schedule(total=7, initial_unlock_amount=0, cliff_duration=0, total_duration=3)
    assert release_engine.vested_amount(schedule, START + 1) == 2
    assert release_engine.vested_amount(schedule, START + 2) == 4
    assert release_engine.vested_amount(schedule, START + 3) == 7


def test_zero_cliff_vests_from_start():
    schedule = make_schedule(VestingCategory.VGP, total=208 * 1000)
    assert release_engine.vested_amount(schedule, START) == 0
    assert release_engine.vested_amount(schedule, START + WEEK) == 1000


def test_before_start_only_initial_unlock():
    schedule = make_schedule()
    assert release_engine.vested_amount(schedule, START - WEEK) == 500


def test_revoked_schedule_has_no_releasable_amount():
    schedule = make_schedule(revoked=True)
    with pytest.raises(ScheduleRevokedError):
        release_engine.releasable_amount(schedule, START)


def test_unvested_amount_complements_vested():
    schedule = make_schedule()
    now = START + 16 * WEEK
    assert release_engine.unvested_amount(schedule, now) == 10_000 - 5250


def test_amounts_never_go_below_released():
    schedule = make_schedule(released_amount=10_000)
    assert release_engine.releasable_amount(schedule, START) == 0
    assert release_engine.unvested_amount(schedule, START) == 0
