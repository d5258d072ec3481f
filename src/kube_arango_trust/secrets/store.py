"""Secret store adapter over the Kubernetes core API.

The reconciler and the client factory only ever talk to secrets through
`KubernetesSecretStore` (or the per-pass `CachedSecretStore` wrapper),
which turns API status codes into the package exception types.
"""

import base64

from icecream import ic
from kubernetes import client
from kubernetes.client.exceptions import ApiException
from urllib3.exceptions import MaxRetryError

from kube_arango_trust import constants
from kube_arango_trust.exceptions import (
    SecretAlreadyExistsError,
    SecretNotFoundError,
    StoreError,
    ValidationError,
)
from kube_arango_trust.models import OwnerReference


def _store_error(err: ApiException, name: str, operation: str) -> StoreError:
    """Map an API exception to the matching store error.

    Args:
        err: The exception raised by the Kubernetes client.
        name: The secret name.
        operation: The attempted operation.

    Returns:
        SecretNotFoundError for 404, SecretAlreadyExistsError for 409,
        StoreError otherwise.

    """
    match err.status:
        case 404:
            return SecretNotFoundError(f"Secret '{name}' not found", name=name, operation=operation)
        case 409:
            return SecretAlreadyExistsError(
                f"Secret '{name}' already exists", name=name, operation=operation
            )
        case _:
            return StoreError(
                f"Failed to {operation} secret '{name}': {err.status} {err.reason}",
                name=name,
                operation=operation,
            )


class KubernetesSecretStore:
    """Namespaced secret store backed by `CoreV1Api`.

    Attributes:
        namespace: The namespace all operations are scoped to.
        api: The Kubernetes core API client.
        request_timeout: Default deadline in seconds for every call.

    """

    def __init__(
        self,
        namespace: str,
        *,
        api: client.CoreV1Api | None = None,
        request_timeout: float | None = None,
    ) -> None:
        self.namespace = namespace
        self.api = api if api is not None else client.CoreV1Api()
        self.request_timeout = request_timeout

    def _timeout(self, timeout: float | None) -> float | None:
        return timeout if timeout is not None else self.request_timeout

    def get(self, name: str, *, timeout: float | None = None) -> dict[str, bytes]:
        """Read the data of a secret.

        Args:
            name: The secret name.
            timeout: Deadline in seconds, overriding the store default.

        Returns:
            The decoded secret data (possibly empty).

        Raises:
            SecretNotFoundError: If the secret does not exist.
            StoreError: On any other failure.

        """
        try:
            secret = self.api.read_namespaced_secret(
                name, self.namespace, _request_timeout=self._timeout(timeout)
            )
        except ApiException as err:
            raise _store_error(err, name, "get") from err
        except MaxRetryError as err:
            raise StoreError(
                f"Failed to get secret '{name}': {err.reason}", name=name, operation="get"
            ) from err
        return {key: base64.b64decode(value) for key, value in (secret.data or {}).items()}

    def create(
        self,
        name: str,
        data: dict[str, bytes],
        owner: OwnerReference,
        *,
        timeout: float | None = None,
    ) -> None:
        """Create a secret owned by the given deployment.

        Args:
            name: The secret name.
            data: Raw secret data; encoded to base64 here.
            owner: Owner reference attached to the secret.
            timeout: Deadline in seconds, overriding the store default.

        Raises:
            SecretAlreadyExistsError: If a secret with this name exists.
            StoreError: On any other failure.

        """
        ic(name, sorted(data))
        body = client.V1Secret(
            metadata=client.V1ObjectMeta(name=name, owner_references=[owner.to_k8s()]),
            data={key: base64.b64encode(value).decode() for key, value in data.items()},
            type="Opaque",
        )
        try:
            self.api.create_namespaced_secret(self.namespace, body, _request_timeout=self._timeout(timeout))
        except ApiException as err:
            raise _store_error(err, name, "create") from err
        except MaxRetryError as err:
            raise StoreError(
                f"Failed to create secret '{name}': {err.reason}", name=name, operation="create"
            ) from err

    def add_data(self, name: str, data: dict[str, bytes], *, timeout: float | None = None) -> None:
        """Merge fields into an existing secret; other fields are kept.

        Raises:
            SecretNotFoundError: If the secret does not exist.
            StoreError: On any other failure.

        """
        ic(name, sorted(data))
        body = {"data": {key: base64.b64encode(value).decode() for key, value in data.items()}}
        try:
            self.api.patch_namespaced_secret(name, self.namespace, body, _request_timeout=self._timeout(timeout))
        except ApiException as err:
            raise _store_error(err, name, "update") from err
        except MaxRetryError as err:
            raise StoreError(
                f"Failed to update secret '{name}': {err.reason}", name=name, operation="update"
            ) from err

    def delete(self, name: str, *, timeout: float | None = None) -> None:
        """Delete a secret.

        Raises:
            SecretNotFoundError: If the secret does not exist.
            StoreError: On any other failure.

        """
        ic(name)
        try:
            self.api.delete_namespaced_secret(name, self.namespace, _request_timeout=self._timeout(timeout))
        except ApiException as err:
            raise _store_error(err, name, "delete") from err
        except MaxRetryError as err:
            raise StoreError(
                f"Failed to delete secret '{name}': {err.reason}", name=name, operation="delete"
            ) from err


class CachedSecretStore:
    """Read-through cache over a secret store for a single reconciliation pass.

    Successful reads are remembered; writes keep the cache in step.
    Misses are not cached, so a secret created by another controller
    during the pass is still observed. Create a new instance per pass.
    """

    def __init__(self, store: KubernetesSecretStore) -> None:
        self.store = store
        self._cache: dict[str, dict[str, bytes]] = {}

    @property
    def namespace(self) -> str:
        return self.store.namespace

    def get(self, name: str, *, timeout: float | None = None) -> dict[str, bytes]:
        if name not in self._cache:
            self._cache[name] = self.store.get(name, timeout=timeout)
        return dict(self._cache[name])

    def create(
        self,
        name: str,
        data: dict[str, bytes],
        owner: OwnerReference,
        *,
        timeout: float | None = None,
    ) -> None:
        self.store.create(name, data, owner, timeout=timeout)
        self._cache[name] = dict(data)

    def add_data(self, name: str, data: dict[str, bytes], *, timeout: float | None = None) -> None:
        self._cache.pop(name, None)
        self.store.add_data(name, data, timeout=timeout)

    def delete(self, name: str, *, timeout: float | None = None) -> None:
        self._cache.pop(name, None)
        self.store.delete(name, timeout=timeout)


def read_token(store: KubernetesSecretStore | CachedSecretStore, name: str, *, timeout: float | None = None) -> str:
    """Read the token field of a token secret.

    Args:
        store: The store to read from.
        name: The secret name.
        timeout: Deadline in seconds.

    Returns:
        The token text.

    Raises:
        SecretNotFoundError: If the secret does not exist.
        StoreError: If the secret cannot be read.
        ValidationError: If the secret has no token field.

    """
    data = store.get(name, timeout=timeout)
    token = data.get(constants.SECRET_KEY_TOKEN)
    if token is None:
        raise ValidationError(f"No '{constants.SECRET_KEY_TOKEN}' data found in secret '{name}'")
    return token.decode()
