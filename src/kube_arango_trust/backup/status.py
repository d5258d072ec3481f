"""Persistence of backup statuses through the custom objects API."""

from kubernetes import client
from kubernetes.client.exceptions import ApiException
from urllib3.exceptions import MaxRetryError

from kube_arango_trust import console, constants
from kube_arango_trust.backup.state import BackupState, BackupStatus, utcnow
from kube_arango_trust.exceptions import BackupStateError, StoreError


class KubernetesBackupStatusWriter:
    """Writes the status subresource of one ArangoBackup.

    Instances are callable so they can be passed straight to
    `BackupHandler.reconcile` as the persist callback.
    """

    def __init__(
        self,
        namespace: str,
        name: str,
        *,
        api: client.CustomObjectsApi | None = None,
        request_timeout: float | None = None,
    ) -> None:
        self.namespace = namespace
        self.name = name
        self.api = api if api is not None else client.CustomObjectsApi()
        self.request_timeout = request_timeout

    def read(self) -> BackupStatus:
        """Read the stored status of the backup.

        A backup that has no status yet reads as Pending.

        Raises:
            StoreError: If the backup cannot be read.
            BackupStateError: If the stored status is malformed.

        """
        try:
            obj = self.api.get_namespaced_custom_object(
                constants.BACKUP_GROUP,
                constants.BACKUP_VERSION,
                self.namespace,
                constants.BACKUP_PLURAL,
                self.name,
                _request_timeout=self.request_timeout,
            )
        except ApiException as err:
            raise StoreError(
                f"Failed to get backup '{self.name}': {err.status} {err.reason}",
                name=self.name,
                operation="get",
            ) from err
        except MaxRetryError as err:
            raise StoreError(
                f"Failed to get backup '{self.name}': {err.reason}", name=self.name, operation="get"
            ) from err

        status = obj.get("status")
        if not status:
            return BackupStatus(state=BackupState.PENDING, time=utcnow())
        try:
            return BackupStatus.from_dict(status)
        except (KeyError, ValueError) as err:
            raise BackupStateError(f"Backup '{self.name}' has a malformed status: {err}") from err

    def __call__(self, status: BackupStatus) -> None:
        console.action(f"Backup {console.highlight(self.name)} moves to {console.highlight(status.state.value)}")
        try:
            self.api.patch_namespaced_custom_object_status(
                constants.BACKUP_GROUP,
                constants.BACKUP_VERSION,
                self.namespace,
                constants.BACKUP_PLURAL,
                self.name,
                {"status": status.to_dict()},
                _request_timeout=self.request_timeout,
            )
        except ApiException as err:
            raise StoreError(
                f"Failed to update status of backup '{self.name}': {err.status} {err.reason}",
                name=self.name,
                operation="update",
            ) from err
        except MaxRetryError as err:
            raise StoreError(
                f"Failed to update status of backup '{self.name}': {err.reason}", name=self.name, operation="update"
            ) from err
