"""
Migration state tracking.

The state manager is a small state machine owned by whoever drives the
migration (the API application or the CLI) and passed explicitly to the
migrator. It keeps progress counters, the resume cursor and a bounded error
log. ``CheckpointStore`` optionally mirrors the state to a JSON file so the
cursor survives a process restart.
"""

import logging
import math
import os
import tempfile
from datetime import datetime
from pathlib import Path

import pytz
from pydantic import ValidationError

from db.enums import MigrationStatus
from db.schemas import MigrationErrorEntry, MigrationState

logger = logging.getLogger(__name__)

MAX_RETAINED_ERRORS = 100


class InvalidStateTransition(Exception):
    """Raised when a transition is requested from a state that does not allow it."""


class MigrationStateManager:
    """Track progress and support resume for large-scale migrations"""

    def __init__(self, state: MigrationState | None = None):
        self._state = state or MigrationState()

    def reset(self):
        self._state = MigrationState()

    def start(self, total_users: int, batch_size: int):
        self._state = MigrationState(
            status=MigrationStatus.RUNNING,
            totalUsers=total_users,
            totalBatches=math.ceil(total_users / batch_size),
            startedAt=datetime.now(pytz.UTC),
        )

    def update_progress(self, processed: int, success: int, failure: int, skip: int, last_id: str | None):
        if min(processed, success, failure, skip) < 0:
            raise ValueError("Progress counters can only grow")

        self._state.processedUsers += processed
        self._state.successCount += success
        self._state.failureCount += failure
        self._state.skipCount += skip
        self._state.currentBatch += 1
        if last_id:
            self._state.lastProcessedId = last_id

    def add_error(self, user_id: str, error: str):
        # Oldest errors are kept, later ones only show up in failureCount
        if len(self._state.errors) < MAX_RETAINED_ERRORS:
            self._state.errors.append(MigrationErrorEntry(userId=user_id, error=error))

    def complete(self):
        self._finish(MigrationStatus.COMPLETED)

    def fail(self):
        self._finish(MigrationStatus.FAILED)

    def pause(self):
        if self._state.status != MigrationStatus.RUNNING:
            raise InvalidStateTransition(f"Cannot pause a migration that is {self._state.status}")
        self._state.status = MigrationStatus.PAUSED

    def _finish(self, status: MigrationStatus):
        if self.is_terminal:
            raise InvalidStateTransition(f"Migration already {self._state.status}")
        self._state.status = status
        self._state.completedAt = datetime.now(pytz.UTC)

    @property
    def status(self) -> MigrationStatus:
        return self._state.status

    @property
    def is_running(self) -> bool:
        return self._state.status == MigrationStatus.RUNNING

    @property
    def is_terminal(self) -> bool:
        return self._state.status in (MigrationStatus.COMPLETED, MigrationStatus.FAILED)

    def get_state(self) -> MigrationState:
        return self._state.model_copy(deep=True)

    def get_progress(self) -> int:
        if self._state.totalUsers == 0:
            return 0
        return math.floor(self._state.processedUsers * 100 / self._state.totalUsers + 0.5)

    def get_eta(self, now: datetime | None = None) -> str | None:
        if not self._state.startedAt or self._state.processedUsers == 0:
            return None

        now = now or datetime.now(pytz.UTC)
        elapsed = (now - self._state.startedAt).total_seconds()
        remaining_users = max(0, self._state.totalUsers - self._state.processedUsers)

        # average time per processed user x remaining users
        seconds = int(elapsed * remaining_users / self._state.processedUsers)
        minutes = seconds // 60
        hours = minutes // 60

        if hours > 0:
            return f"{hours}h {minutes % 60}m"
        if minutes > 0:
            return f"{minutes}m {seconds % 60}s"
        return f"{seconds}s"


class CheckpointStore:
    """Persist the migration state as JSON after every batch."""

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)

    def save(self, state: MigrationState):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Atomic replace: readers see the old or the new checkpoint, never a partial one
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(state.model_dump_json(indent=2))
            os.replace(tmp_path, self.path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def load(self) -> MigrationState | None:
        if not self.path.exists():
            return None
        try:
            return MigrationState.model_validate_json(self.path.read_text(encoding="utf-8"))
        except ValidationError as e:
            logger.error(f"Ignoring unreadable checkpoint {self.path}: {e}")
            return None

    def last_processed_id(self) -> str | None:
        state = self.load()
        return state.lastProcessedId if state else None
