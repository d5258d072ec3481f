"""Credential reconciliation for a deployment.

`SecretReconciler.ensure_secrets` runs once per reconciliation pass and
makes sure every credential the deployment spec asks for exists. All
creates tolerate another controller winning the race: the store's atomic
create is the only synchronisation, so no locking happens here.
"""

import contextlib
import hashlib
import time
from typing import NamedTuple

import jwt
from icecream import ic

from kube_arango_trust import console, constants
from kube_arango_trust.exceptions import SecretAlreadyExistsError, SecretNotFoundError, ValidationError
from kube_arango_trust.metrics import INSPECT_SECRETS_DURATION, INSPECTED_SECRETS
from kube_arango_trust.models import (
    Deployment,
    DeploymentSecurityProfile,
    DeploymentSpec,
    SyncAuthenticationSpec,
    TLSSpec,
    keyfolder_secret_name,
)
from kube_arango_trust.secrets.certificates import (
    client_auth_ca_common_name,
    create_ca_certificate,
    tls_ca_common_name,
)
from kube_arango_trust.secrets.store import CachedSecretStore, KubernetesSecretStore, read_token
from kube_arango_trust.secrets.tokens import EXPORTER_CLAIMS, decode_claims, generate_token, sign_claims

SecretStore = KubernetesSecretStore | CachedSecretStore


class ExporterTokenCheck(NamedTuple):
    """Outcome of validating the exporter token secret.

    Attributes:
        recreate: The secret must be (re)created.
        exists: The secret currently exists and must be deleted first.

    """

    recreate: bool
    exists: bool


def derive_profile(spec: DeploymentSpec) -> DeploymentSecurityProfile:
    """Compute the security profile of a deployment spec."""
    return DeploymentSecurityProfile.from_spec(spec)


class SecretReconciler:
    """Ensures the credentials of one deployment exist and are valid.

    Attributes:
        store: Secret store scoped to the deployment namespace.
        deployment: The deployment the credentials belong to.
        timeout: Deadline in seconds applied to every store call.

    """

    def __init__(self, store: SecretStore, deployment: Deployment, *, timeout: float | None = None) -> None:
        self.store = store
        self.deployment = deployment
        self.timeout = timeout

    def ensure_secrets(self) -> list[str]:
        """Create all secrets needed to run the deployment.

        Returns:
            Names of the secrets created by this call, in creation order.

        Raises:
            StoreError: If a secret cannot be read or written.
            ValidationError: If prerequisite material is malformed.

        """
        start = time.monotonic()
        name = self.deployment.name
        spec = self.deployment.spec
        profile = derive_profile(spec)
        ic(profile)
        counter = INSPECTED_SECRETS.labels(deployment=name)
        created: list[str] = []

        def track(secret_name: str, was_created: bool) -> None:
            if was_created:
                created.append(secret_name)

        try:
            if profile.auth_enabled:
                counter.inc()
                jwt_name = spec.authentication.jwt_secret_name
                track(jwt_name, self.ensure_token_secret(jwt_name))

                if profile.metrics_enabled:
                    token_name = spec.metrics.jwt_token_secret_name
                    track(token_name, self.ensure_exporter_token_secret(token_name, jwt_name))

            if profile.tls_enabled:
                counter.inc()
                track(spec.tls.ca_secret_name, self.ensure_tls_ca_secret(spec.tls))

            if profile.encryption_enabled:
                folder_name = keyfolder_secret_name(name)
                track(
                    folder_name,
                    self.ensure_encryption_keyfolder_secret(spec.encryption.key_secret_name, folder_name),
                )

            if profile.sync_enabled:
                sync = spec.sync
                counter.inc()
                sync_jwt_name = sync.authentication.jwt_secret_name
                track(sync_jwt_name, self.ensure_token_secret(sync_jwt_name))
                counter.inc()
                monitoring_name = sync.monitoring_token_secret_name
                track(monitoring_name, self.ensure_token_secret(monitoring_name))
                counter.inc()
                track(sync.tls.ca_secret_name, self.ensure_tls_ca_secret(sync.tls))
                counter.inc()
                track(
                    sync.authentication.client_ca_secret_name,
                    self.ensure_client_auth_ca_secret(sync.authentication),
                )
        finally:
            INSPECT_SECRETS_DURATION.labels(deployment=name).set(time.monotonic() - start)

        return created

    def _exists(self, secret_name: str) -> bool:
        try:
            self.store.get(secret_name, timeout=self.timeout)
        except SecretNotFoundError:
            return False
        return True

    def _create_secret(self, secret_name: str, data: dict[str, bytes]) -> bool:
        """Create an owned secret, treating a lost creation race as success.

        Returns:
            True if this call created the secret.

        """
        try:
            self.store.create(secret_name, data, self.deployment.as_owner(), timeout=self.timeout)
        except SecretAlreadyExistsError:
            console.step(f"Secret {console.highlight(secret_name)} was created concurrently")
            return False
        console.success(f"Created secret {console.highlight(secret_name)}")
        return True

    def ensure_token_secret(self, secret_name: str) -> bool:
        """Ensure a secret holding a random token exists.

        Existing tokens are never rotated.

        Args:
            secret_name: Name of the token secret.

        Returns:
            True if the secret was created by this call.

        """
        if self._exists(secret_name):
            return False

        console.action(f"Creating token secret {console.highlight(secret_name)}")
        return self._create_secret(secret_name, {constants.SECRET_KEY_TOKEN: generate_token().encode()})

    def _ensure_ca_secret(self, secret_name: str, common_name: str, *, client_auth: bool) -> bool:
        if self._exists(secret_name):
            return False

        console.action(f"Creating CA certificate secret {console.highlight(secret_name)}")
        ca = create_ca_certificate(common_name, client_auth=client_auth)
        return self._create_secret(secret_name, ca.to_secret_data())

    def ensure_tls_ca_secret(self, tls: TLSSpec) -> bool:
        """Ensure the CA used to sign server certificates exists."""
        return self._ensure_ca_secret(
            tls.ca_secret_name, tls_ca_common_name(self.deployment.name), client_auth=False
        )

    def ensure_client_auth_ca_secret(self, sync_auth: SyncAuthenticationSpec) -> bool:
        """Ensure the CA used to authenticate sync clients exists."""
        return self._ensure_ca_secret(
            sync_auth.client_ca_secret_name,
            client_auth_ca_common_name(self.deployment.name),
            client_auth=True,
        )

    def ensure_encryption_keyfolder_secret(self, keyfile_secret_name: str, secret_name: str) -> bool:
        """Package the user supplied encryption key into the keyfolder secret.

        The key is stored under the hex encoded SHA-256 of its bytes. Key
        material is never generated here. When the keyfolder already exists
        but lacks the current key, the key is added next to the old ones.

        Args:
            keyfile_secret_name: Name of the user supplied keyfile secret.
            secret_name: Name of the keyfolder secret to create.

        Returns:
            True if the keyfolder secret was created by this call; adding a
            key to an existing keyfolder returns False.

        Raises:
            ValidationError: If the keyfile secret is missing, empty, or
                has no ``key`` field.
            StoreError: If a secret cannot be read or created.

        """
        try:
            keyfile = self.store.get(keyfile_secret_name, timeout=self.timeout)
        except SecretNotFoundError as err:
            raise ValidationError(f"Unable to find encryption keyfile secret '{keyfile_secret_name}'") from err

        if not keyfile:
            raise ValidationError(f"Encryption keyfile secret '{keyfile_secret_name}' has no data")

        key = keyfile.get(constants.SECRET_ENCRYPTION_KEY)
        if key is None:
            raise ValidationError(
                f"Missing '{constants.SECRET_ENCRYPTION_KEY}' field in secret '{keyfile_secret_name}'"
            )

        key_name = hashlib.sha256(key).hexdigest()
        try:
            folder = self.store.get(secret_name, timeout=self.timeout)
        except SecretNotFoundError:
            console.action(f"Creating encryption keyfolder secret {console.highlight(secret_name)}")
            return self._create_secret(secret_name, {key_name: key})

        if key_name not in folder:
            console.action(
                f"Adding key from {console.highlight(keyfile_secret_name)} "
                f"to keyfolder {console.highlight(secret_name)}"
            )
            self.store.add_data(secret_name, {key_name: key}, timeout=self.timeout)
        return False

    def exporter_token_state(self, token_secret_name: str, signing_secret_name: str) -> ExporterTokenCheck:
        """Decide whether the exporter token must be (re)created.

        Args:
            token_secret_name: Name of the exporter token secret.
            signing_secret_name: Name of the primary token secret the
                exporter token is signed with.

        Returns:
            The recreate/exists decision.

        Raises:
            StoreError: If a secret cannot be read.
            ValidationError: If the signing secret has no token field.

        """
        try:
            data = self.store.get(token_secret_name, timeout=self.timeout)
        except SecretNotFoundError:
            return ExporterTokenCheck(recreate=True, exists=False)

        token = data.get(constants.SECRET_KEY_TOKEN)
        if token is None:
            return ExporterTokenCheck(recreate=True, exists=True)

        signing_secret = read_token(self.store, signing_secret_name, timeout=self.timeout)
        try:
            claims = decode_claims(token.decode(errors="replace"), signing_secret)
        except jwt.InvalidTokenError:
            return ExporterTokenCheck(recreate=True, exists=True)

        return ExporterTokenCheck(recreate=claims != EXPORTER_CLAIMS, exists=True)

    def ensure_exporter_token_secret(self, token_secret_name: str, signing_secret_name: str) -> bool:
        """Ensure the metrics exporter token exists with the expected claims.

        A token whose signature or claims no longer match is deleted and
        created again.

        Returns:
            True if the secret was created by this call.

        """
        check = self.exporter_token_state(token_secret_name, signing_secret_name)
        if not check.recreate:
            return False

        if check.exists:
            console.action(f"Recreating exporter token secret {console.highlight(token_secret_name)}")
            with contextlib.suppress(SecretNotFoundError):
                self.store.delete(token_secret_name, timeout=self.timeout)
        else:
            console.action(f"Creating exporter token secret {console.highlight(token_secret_name)}")

        signing_secret = read_token(self.store, signing_secret_name, timeout=self.timeout)
        token = sign_claims(EXPORTER_CLAIMS, signing_secret)
        return self._create_secret(token_secret_name, {constants.SECRET_KEY_TOKEN: token.encode()})

    def get_jwt_secret(self) -> str:
        """Load the primary JWT secret, or an empty string if authentication is disabled."""
        if not self.deployment.spec.is_authenticated():
            return ""
        return read_token(self.store, self.deployment.spec.authentication.jwt_secret_name, timeout=self.timeout)

    def get_sync_jwt_secret(self) -> str:
        """Load the JWT secret used by sync masters."""
        return read_token(
            self.store, self.deployment.spec.sync.authentication.jwt_secret_name, timeout=self.timeout
        )

    def get_sync_monitoring_token(self) -> str:
        """Load the token used to monitor sync masters and workers."""
        return read_token(self.store, self.deployment.spec.sync.monitoring_token_secret_name, timeout=self.timeout)
