"""
Schedule Store - durable map of schedule ids to vesting schedules.

Schedules are appended and never removed, so a historical lookup by id always
succeeds. Each beneficiary keeps an insertion-ordered list of its ids; the
position in that list is the index the id was derived from.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator

from rowa.core.vesting_exceptions import (
    DuplicateScheduleError,
    IndexOutOfBoundsError,
    ScheduleNotFoundError,
)
from rowa.vesting.schedule import VestingSchedule, compute_schedule_id

logger = logging.getLogger(__name__)


class ScheduleStore:
    def __init__(self) -> None:
        self._schedules: dict[str, VestingSchedule] = {}
        self._by_beneficiary: dict[str, list[str]] = {}

    def __len__(self) -> int:
        return len(self._schedules)

    def __contains__(self, schedule_id: object) -> bool:
        return schedule_id in self._schedules

    def __iter__(self) -> Iterator[VestingSchedule]:
        return iter(self._schedules.values())

    def next_id_for(self, beneficiary: str) -> str:
        """Id the next schedule created for ``beneficiary`` will receive."""
        return compute_schedule_id(beneficiary, self.count_for(beneficiary))

    def create(self, schedule: VestingSchedule) -> str:
        """
        Store ``schedule`` under the next per-beneficiary index.

        The schedule's id is overwritten with the derived one and returned.
        """
        index = self.count_for(schedule.beneficiary)
        schedule_id = compute_schedule_id(schedule.beneficiary, index)
        if schedule_id in self._schedules:
            raise DuplicateScheduleError(
                f"Schedule id {schedule_id} already exists",
                details={"beneficiary": schedule.beneficiary, "index": index},
            )
        schedule.schedule_id = schedule_id
        self._schedules[schedule_id] = schedule
        self._by_beneficiary.setdefault(schedule.beneficiary, []).append(schedule_id)
        logger.debug(
            "Stored vesting schedule %s",
            schedule_id,
            extra={"event": "vesting.store.create", "index": index},
        )
        return schedule_id

    def get(self, schedule_id: str) -> VestingSchedule:
        schedule = self._schedules.get(schedule_id)
        if schedule is None:
            raise ScheduleNotFoundError(
                f"Vesting schedule {schedule_id} not found",
                details={"schedule_id": schedule_id},
            )
        return schedule

    def list_by_beneficiary(self, beneficiary: str) -> list[str]:
        return list(self._by_beneficiary.get(beneficiary, ()))

    def count_for(self, beneficiary: str) -> int:
        return len(self._by_beneficiary.get(beneficiary, ()))

    def id_at_index(self, beneficiary: str, index: int) -> str:
        ids = self._by_beneficiary.get(beneficiary, [])
        if index < 0 or index >= len(ids):
            raise IndexOutOfBoundsError(
                f"Index {index} out of bounds for {len(ids)} schedules",
                details={"beneficiary": beneficiary, "index": index, "count": len(ids)},
            )
        return ids[index]

    def last_for(self, beneficiary: str) -> str:
        ids = self._by_beneficiary.get(beneficiary)
        if not ids:
            raise ScheduleNotFoundError(
                f"No vesting schedules for {beneficiary}",
                details={"beneficiary": beneficiary},
            )
        return ids[-1]

    def all(self) -> list[VestingSchedule]:
        return list(self._schedules.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "schedules": [schedule.to_dict() for schedule in self._schedules.values()],
            "by_beneficiary": {k: list(v) for k, v in self._by_beneficiary.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScheduleStore":
        store = cls()
        for raw in data.get("schedules", []):
            schedule = VestingSchedule.from_dict(raw)
            store._schedules[schedule.schedule_id] = schedule
        for beneficiary, ids in data.get("by_beneficiary", {}).items():
            for index, schedule_id in enumerate(ids):
                if schedule_id not in store._schedules:
                    raise ScheduleNotFoundError(
                        f"Index references unknown schedule {schedule_id}",
                        details={"beneficiary": beneficiary},
                    )
                if compute_schedule_id(beneficiary, index) != schedule_id:
                    raise DuplicateScheduleError(
                        f"Schedule {schedule_id} is not at its derived index",
                        details={"beneficiary": beneficiary, "index": index},
                    )
            store._by_beneficiary[beneficiary] = list(ids)
        return store
