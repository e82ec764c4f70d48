"""
Release Computation Engine.

Pure functions from a schedule and a timestamp to vested and releasable
amounts. All arithmetic is integer; the linear phase rounds down so a partial
period never unlocks early.
"""

from __future__ import annotations

from rowa.core.vesting_exceptions import ScheduleRevokedError
from rowa.vesting.schedule import VestingSchedule


def vested_amount(schedule: VestingSchedule, now: int) -> int:
    """
    Total amount vested at ``now``, released or not.

    Before the cliff only the initial unlock is vested. From the end of the
    total duration everything is. In between, the non-initial part ramps
    linearly from the cliff end to the schedule end.
    """
    if now < schedule.cliff_end:
        return schedule.initial_unlock_amount
    if now >= schedule.end_time:
        return schedule.total_amount

    elapsed_since_cliff = now - schedule.cliff_end
    linear_span = schedule.total_duration - schedule.cliff_duration
    linear_part = schedule.total_amount - schedule.initial_unlock_amount
    return schedule.initial_unlock_amount + linear_part * elapsed_since_cliff // linear_span


def releasable_amount(schedule: VestingSchedule, now: int) -> int:
    """Vested amount at ``now`` not yet released, floored at zero. Undefined for revoked schedules."""
    if schedule.revoked:
        raise ScheduleRevokedError(
            f"Vesting schedule {schedule.schedule_id} has been revoked",
            details={"schedule_id": schedule.schedule_id},
        )
    return max(vested_amount(schedule, now) - schedule.released_amount, 0)


def unvested_amount(schedule: VestingSchedule, now: int) -> int:
    return schedule.total_amount - max(vested_amount(schedule, now), schedule.released_amount)
