"""
ROWA Vesting Engine.

- Categories: fixed caps and unlock parameters per funding bucket
- Schedule store: append-only registry with per-beneficiary ordering
- Allocation ledger: per-category and global cap enforcement
- Release engine: pure vested/releasable computation
- Vesting manager: create, release, revoke and treasury fund start
"""

from .allocation_ledger import CategoryAllocationLedger
from .categories import CATEGORY_PARAMS, CategoryParams, VestingCategory
from .release_engine import releasable_amount, vested_amount
from .schedule import VestingSchedule, compute_schedule_id
from .schedule_store import ScheduleStore
from .vesting_manager import ProgramFlags, VestingManager

__all__ = [
    "CATEGORY_PARAMS",
    "CategoryAllocationLedger",
    "CategoryParams",
    "ProgramFlags",
    "ScheduleStore",
    "VestingCategory",
    "VestingManager",
    "VestingSchedule",
    "compute_schedule_id",
    "releasable_amount",
    "vested_amount",
]
