"""Backup state machine subpackage."""

from kube_arango_trust.backup.state import (
    DOWNLOAD_DELAY,
    BackupHandler,
    BackupState,
    BackupStatus,
    state_download_error_handler,
)
from kube_arango_trust.backup.status import KubernetesBackupStatusWriter

__all__ = [
    "DOWNLOAD_DELAY",
    "BackupHandler",
    "BackupState",
    "BackupStatus",
    "KubernetesBackupStatusWriter",
    "state_download_error_handler",
]
