"""
Wiring of the vesting system for long-lived processes.

``open_service`` restores the manager and token from the data directory when a
state file exists, and builds a fresh system from configuration otherwise.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from rowa.core.access_control import OwnerAccessControl
from rowa.core.config import VestingConfig
from rowa.core.structured_logger import StructuredLogger
from rowa.core.token_ledger import RowaToken
from rowa.core.vesting_persistence import VestingStorage, load_system, save_system
from rowa.vesting.vesting_manager import VestingManager

logger = logging.getLogger(__name__)


@dataclass
class VestingService:
    manager: VestingManager
    token: RowaToken
    storage: VestingStorage

    def save(self) -> None:
        save_system(self.storage, self.manager, self.token)


def build_system(
    config: VestingConfig,
    time_provider: Callable[[], int] | None = None,
    structured_logger: StructuredLogger | None = None,
) -> tuple[VestingManager, RowaToken]:
    """Create an empty manager and token from validated configuration."""
    config.validate()
    access = OwnerAccessControl(config.owner)
    token = RowaToken(
        config.token_address, access, logger=structured_logger, time_provider=time_provider
    )
    manager = VestingManager(
        ledger=token,
        access=access,
        vesting_pool=config.vesting_pool,
        fund_recipients=config.fund_recipients,
        time_provider=time_provider,
        logger=structured_logger,
    )
    return manager, token


def open_service(
    config: VestingConfig,
    time_provider: Callable[[], int] | None = None,
    structured_logger: StructuredLogger | None = None,
) -> VestingService:
    storage = VestingStorage(config.data_dir)
    if storage.exists():
        manager, token = load_system(storage, time_provider=time_provider, logger=structured_logger)
        logger.info(
            "Restored vesting state from %s",
            config.data_dir,
            extra={"event": "vesting.service.restored", "schedules": manager.get_schedules_count()},
        )
    else:
        manager, token = build_system(config, time_provider=time_provider, structured_logger=structured_logger)
        logger.info(
            "Initialized new vesting state in %s",
            config.data_dir,
            extra={"event": "vesting.service.created"},
        )
    return VestingService(manager=manager, token=token, storage=storage)
