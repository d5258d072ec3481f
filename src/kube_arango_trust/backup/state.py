"""State machine for ArangoBackup resources.

Every state has a handler computing the next status from the current
one. Handlers are pure: they never write anything. `BackupHandler.reconcile`
hands the result to a persist callback, and only when it differs from the
stored status, so revisiting a waiting backup costs no write.
"""

import datetime
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from icecream import ic

from kube_arango_trust.exceptions import BackupStateError

DOWNLOAD_DELAY = datetime.timedelta(minutes=1)

_TIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


class BackupState(str, Enum):
    """States of a backup. Inherits from str so values serialize as-is."""

    PENDING = "Pending"
    SCHEDULED = "Scheduled"
    IN_PROGRESS = "InProgress"
    CREATE = "Create"
    DOWNLOAD = "Download"
    DOWNLOADING = "Downloading"
    DOWNLOAD_ERROR = "DownloadError"
    UPLOAD = "Upload"
    UPLOADING = "Uploading"
    UPLOAD_ERROR = "UploadError"
    READY = "Ready"
    DELETED = "Deleted"
    FAILED = "Failed"


def utcnow() -> datetime.datetime:
    # Status times are stored with second precision
    return datetime.datetime.now(datetime.timezone.utc).replace(microsecond=0)


@dataclass(frozen=True, slots=True)
class BackupStatus:
    """Persisted status of a backup.

    Attributes:
        state: The current state.
        time: When the backup entered the current state.
        message: Human readable detail, usually the last error.

    """

    state: BackupState
    time: datetime.datetime
    message: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "state": self.state.value,
            "time": self.time.astimezone(datetime.timezone.utc).strftime(_TIME_FORMAT),
            "message": self.message,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BackupStatus":
        time = datetime.datetime.strptime(data["time"], _TIME_FORMAT).replace(tzinfo=datetime.timezone.utc)
        return cls(state=BackupState(data["state"]), time=time, message=data.get("message", ""))


def update_status_state(
    status: BackupStatus, state: BackupState, now: datetime.datetime, message: str = ""
) -> BackupStatus:
    """Move to a new state, stamping the transition time."""
    return replace(status, state=state, time=now, message=message)


StateHandler = Callable[[BackupStatus, datetime.datetime], BackupStatus]


def state_download_error_handler(status: BackupStatus, now: datetime.datetime) -> BackupStatus:
    """Retry a failed download from scratch once the cool-down has passed."""
    if status.time + DOWNLOAD_DELAY < now:
        return update_status_state(status, BackupState.PENDING, now)
    return status


def state_final_handler(status: BackupStatus, now: datetime.datetime) -> BackupStatus:
    """Terminal states never change."""
    return status


DEFAULT_HANDLERS: dict[BackupState, StateHandler] = {
    BackupState.DOWNLOAD_ERROR: state_download_error_handler,
    BackupState.READY: state_final_handler,
    BackupState.DELETED: state_final_handler,
    BackupState.FAILED: state_final_handler,
}


class BackupHandler:
    """Dispatches backup statuses to their state handlers.

    Attributes:
        handlers: Mapping of state to handler.
        clock: Returns the current time; injectable for tests.

    """

    def __init__(
        self,
        handlers: dict[BackupState, StateHandler] | None = None,
        *,
        clock: Callable[[], datetime.datetime] = utcnow,
    ) -> None:
        self.handlers = dict(DEFAULT_HANDLERS if handlers is None else handlers)
        self.clock = clock

    def register(self, state: BackupState, handler: StateHandler) -> None:
        self.handlers[state] = handler

    def handle(self, status: BackupStatus, now: datetime.datetime | None = None) -> BackupStatus:
        """Compute the next status.

        Args:
            status: The stored status.
            now: Evaluation time, defaults to the handler clock.

        Returns:
            The next status; the same object when nothing changes.

        Raises:
            BackupStateError: If no handler is registered for the state.

        """
        handler = self.handlers.get(status.state)
        if handler is None:
            raise BackupStateError(f"No handler registered for backup state '{status.state.value}'")
        return handler(status, now if now is not None else self.clock())

    def reconcile(self, status: BackupStatus, persist: Callable[[BackupStatus], None]) -> BackupStatus:
        """Compute the next status and persist it if it changed.

        Args:
            status: The stored status.
            persist: Callback writing a status back to the object store.

        Returns:
            The next status.

        """
        new_status = self.handle(status)
        if new_status != status:
            ic(status.state, new_status.state)
            persist(new_status)
        return new_status
