"""
ROWA Vesting - Persistent Storage

Persists the vesting registry (schedules, per-beneficiary order, allocation
counters, fund flags) together with the reference token ledger state:
- Atomic writes (temp file + rename)
- SHA-256 checksum verification
- Timestamped backups with rotation
- Recovery from the newest valid backup when the main file is corrupt
"""

import hashlib
import json
import logging
import os
import shutil
import time
from datetime import datetime
from threading import Lock
from typing import Any, Callable, Dict, Optional, Tuple

from rowa.vesting.vesting_manager import VestingManager

from .access_control import OwnerAccessControl
from .constants import MAX_STATE_BACKUPS, STATE_FORMAT_VERSION
from .structured_logger import StructuredLogger
from .token_ledger import RowaToken
from .vesting_exceptions import CorruptedDataError, StorageError

logger = logging.getLogger(__name__)

STATE_FILE_NAME = "vesting_state.json"
BACKUP_PREFIX = "vesting_backup_"


class VestingStorage:
    """
    Vesting state storage with data integrity and recovery.
    """

    def __init__(self, data_dir: str):
        """
        Initialize vesting storage

        Args:
            data_dir: Directory holding the state file and its backups
        """
        self.data_dir = data_dir
        self.state_file = os.path.join(data_dir, STATE_FILE_NAME)
        self.backup_dir = os.path.join(data_dir, "backups")

        os.makedirs(self.data_dir, exist_ok=True)
        os.makedirs(self.backup_dir, exist_ok=True)

        self.lock = Lock()

    def _calculate_checksum(self, data: str) -> str:
        return hashlib.sha256(data.encode("utf-8")).hexdigest()

    @staticmethod
    def _serialize(state: dict) -> str:
        return json.dumps(state, indent=2, sort_keys=True)

    def exists(self) -> bool:
        return os.path.exists(self.state_file)

    def save_to_disk(self, state: dict, create_backup: bool = True) -> Tuple[bool, str]:
        """
        Save vesting state to disk with an atomic write.

        Args:
            state: Serializable state dictionary
            create_backup: Whether to back up the current file first

        Returns:
            tuple: (success: bool, message: str)
        """
        with self.lock:
            try:
                state_json = self._serialize(state)
                checksum = self._calculate_checksum(state_json)
                metadata = {
                    "timestamp": time.time(),
                    "schedule_count": len(state.get("vesting", {}).get("store", {}).get("schedules", [])),
                    "checksum": checksum,
                    "version": STATE_FORMAT_VERSION,
                }
                package_json = json.dumps({"metadata": metadata, "state": state}, indent=2, sort_keys=True)

                if create_backup and os.path.exists(self.state_file):
                    self._create_backup()

                temp_file = self.state_file + ".tmp"
                with open(temp_file, "w", encoding="utf-8") as f:
                    f.write(package_json)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(temp_file, self.state_file)

                return True, f"Vesting state saved (checksum: {checksum[:8]}...)"

            except (OSError, TypeError, ValueError) as e:
                logger.error(
                    "Failed to save vesting state to disk: %s",
                    e,
                    extra={"event": "vesting.storage.save_failed", "error_type": type(e).__name__},
                )
                return False, f"Failed to save vesting state: {e}"

    def load_from_disk(self) -> Tuple[bool, Optional[dict], str]:
        """
        Load vesting state from disk with integrity checks.

        Returns:
            tuple: (success: bool, state: dict or None, message: str)
        """
        with self.lock:
            if not os.path.exists(self.state_file):
                return False, None, "No vesting state file found"

            try:
                state = self._read_package(self.state_file)
                return True, state, "Vesting state loaded"
            except (json.JSONDecodeError, CorruptedDataError) as e:
                logger.warning(
                    "Vesting state unreadable, attempting recovery: %s",
                    e,
                    extra={"event": "vesting.storage.corrupted", "error_type": type(e).__name__},
                )
                return self._attempt_recovery()
            except OSError as e:
                logger.error(
                    "Failed to load vesting state: %s",
                    e,
                    extra={"event": "vesting.storage.load_failed", "error_type": type(e).__name__},
                )
                return False, None, f"Failed to load vesting state: {e}"

    def _read_package(self, path: str) -> dict:
        with open(path, "r", encoding="utf-8") as f:
            package = json.load(f)
        if not isinstance(package, dict) or "state" not in package:
            raise CorruptedDataError(f"{os.path.basename(path)} is not a vesting state package")
        state = package["state"]
        expected = package.get("metadata", {}).get("checksum")
        if expected and self._calculate_checksum(self._serialize(state)) != expected:
            raise CorruptedDataError(f"Checksum mismatch in {os.path.basename(path)}")
        return state

    def _list_backups(self) -> list:
        backups = [
            os.path.join(self.backup_dir, f)
            for f in os.listdir(self.backup_dir)
            if f.startswith(BACKUP_PREFIX) and f.endswith(".json")
        ]
        backups.sort(reverse=True)
        return backups

    def _create_backup(self) -> bool:
        try:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
            backup_file = os.path.join(self.backup_dir, f"{BACKUP_PREFIX}{timestamp}.json")
            shutil.copy2(self.state_file, backup_file)
            self._cleanup_old_backups()
            return True
        except (OSError, shutil.Error) as e:
            logger.warning(
                "Failed to create vesting state backup: %s",
                e,
                extra={"event": "vesting.storage.backup_failed"},
            )
            return False

    def _cleanup_old_backups(self) -> None:
        for backup in self._list_backups()[MAX_STATE_BACKUPS:]:
            os.remove(backup)

    def _attempt_recovery(self) -> Tuple[bool, Optional[dict], str]:
        """Recover from the most recent backup that passes its checksum."""
        for backup_file in self._list_backups():
            try:
                state = self._read_package(backup_file)
            except (OSError, json.JSONDecodeError, CorruptedDataError):
                continue
            logger.warning(
                "Recovered vesting state from %s",
                os.path.basename(backup_file),
                extra={"event": "vesting.storage.recovered"},
            )
            return True, state, f"Recovered from backup {os.path.basename(backup_file)}"
        return False, None, "Recovery failed - no valid backup found"


def save_system(storage: VestingStorage, manager: VestingManager, token: RowaToken) -> None:
    """Persist manager and token together; raises ``StorageError`` on failure."""
    ok, message = storage.save_to_disk({"vesting": manager.to_dict(), "token": token.to_dict()})
    if not ok:
        raise StorageError(message)


def load_system(
    storage: VestingStorage,
    time_provider: Optional[Callable[[], int]] = None,
    logger: Optional[StructuredLogger] = None,
) -> Tuple[VestingManager, RowaToken]:
    """Restore the (manager, token) pair written by ``save_system``."""
    ok, state, message = storage.load_from_disk()
    if not ok or state is None:
        raise StorageError(message)
    token_data: Dict[str, Any] = state["token"]
    access = OwnerAccessControl(token_data["owner"])
    token = RowaToken.from_dict(
        token_data, access=access, logger=logger, time_provider=time_provider
    )
    manager = VestingManager.from_dict(
        state["vesting"], ledger=token, access=access, time_provider=time_provider, logger=logger
    )
    return manager, token
