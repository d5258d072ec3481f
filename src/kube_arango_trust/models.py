"""Data models for kube-arango-trust.

This module provides type-safe views over the ArangoDeployment custom
resource, the security profile derived from it, and the naming
conventions used to reach deployment members.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NamedTuple

from kubernetes import client

from kube_arango_trust import constants


class ServerGroup(str, Enum):
    """Server groups of a deployment.

    Inherits from str so the value can be used directly as the role
    component of pod host names.
    """

    SINGLE = "single"
    AGENTS = "agent"
    DBSERVERS = "dbserver"
    COORDINATORS = "coordinator"
    SYNCMASTERS = "syncmaster"
    SYNCWORKERS = "syncworker"

    def as_role(self) -> str:
        """The role name used in pod host names."""
        return self.value


class MemberEndpoint(NamedTuple):
    """Address of a single deployment member.

    Attributes:
        dns_name: Fully qualified DNS name of the member pod.
        role: The server group role of the member.
        id: The member ID.

    """

    dns_name: str
    role: str
    id: str


def _is_enabled_secret_name(name: str | None) -> bool:
    return bool(name) and name != constants.SECRET_NAME_DISABLED


@dataclass(frozen=True, slots=True)
class OwnerReference:
    """Link from a created secret to the deployment that owns it.

    Attributes:
        name: Name of the owning deployment.
        uid: UID of the owning deployment.
        api_version: API version of the owner kind.
        kind: Kind of the owner.

    """

    name: str
    uid: str
    api_version: str = constants.DEPLOYMENT_API_VERSION
    kind: str = constants.DEPLOYMENT_KIND

    def to_k8s(self) -> client.V1OwnerReference:
        """Convert to the Kubernetes API model."""
        return client.V1OwnerReference(
            api_version=self.api_version,
            kind=self.kind,
            name=self.name,
            uid=self.uid,
            controller=True,
            block_owner_deletion=True,
        )


@dataclass(frozen=True, slots=True)
class AuthenticationSpec:
    jwt_secret_name: str

    def is_authenticated(self) -> bool:
        return _is_enabled_secret_name(self.jwt_secret_name)


@dataclass(frozen=True, slots=True)
class TLSSpec:
    ca_secret_name: str

    def is_secure(self) -> bool:
        return _is_enabled_secret_name(self.ca_secret_name)


@dataclass(frozen=True, slots=True)
class EncryptionSpec:
    """RocksDB encryption settings.

    Attributes:
        key_secret_name: Name of the user supplied secret holding the
            encryption key. Encryption is disabled when empty.

    """

    key_secret_name: str = ""

    def is_encrypted(self) -> bool:
        return bool(self.key_secret_name)


@dataclass(frozen=True, slots=True)
class MetricsSpec:
    enabled: bool
    jwt_token_secret_name: str


@dataclass(frozen=True, slots=True)
class SyncAuthenticationSpec:
    jwt_secret_name: str
    client_ca_secret_name: str


@dataclass(frozen=True, slots=True)
class SyncSpec:
    enabled: bool
    authentication: SyncAuthenticationSpec
    monitoring_token_secret_name: str
    tls: TLSSpec


@dataclass(frozen=True, slots=True)
class DeploymentSpec:
    """Desired state of a deployment, restricted to security settings.

    Use `DeploymentSpec.from_dict` to build one from the custom resource
    ``spec`` with the operator's default secret names applied.
    """

    authentication: AuthenticationSpec
    tls: TLSSpec
    encryption: EncryptionSpec
    metrics: MetricsSpec
    sync: SyncSpec

    def is_authenticated(self) -> bool:
        return self.authentication.is_authenticated()

    def is_secure(self) -> bool:
        return self.tls.is_secure()

    @classmethod
    def from_dict(cls, deployment_name: str, data: dict[str, Any] | None) -> "DeploymentSpec":
        """Build a spec from the ``spec`` section of an ArangoDeployment.

        Args:
            deployment_name: Name of the deployment, used for default secret names.
            data: The raw ``spec`` mapping (camelCase keys as in the CRD).

        Returns:
            The parsed spec with defaults applied.

        """
        data = data or {}
        auth = data.get("authentication") or {}
        tls = data.get("tls") or {}
        encryption = (data.get("rocksdb") or {}).get("encryption") or {}
        metrics = data.get("metrics") or {}
        metrics_auth = metrics.get("authentication") or {}
        sync = data.get("sync") or {}
        sync_auth = sync.get("authentication") or {}
        sync_monitoring = sync.get("monitoring") or {}
        sync_tls = sync.get("tls") or {}

        def name_or_default(value: str | None, suffix: str) -> str:
            return value if value else deployment_name + suffix

        return cls(
            authentication=AuthenticationSpec(
                jwt_secret_name=name_or_default(auth.get("jwtSecretName"), constants.JWT_SECRET_SUFFIX),
            ),
            tls=TLSSpec(
                ca_secret_name=name_or_default(tls.get("caSecretName"), constants.CA_SECRET_SUFFIX),
            ),
            encryption=EncryptionSpec(key_secret_name=encryption.get("keySecretName") or ""),
            metrics=MetricsSpec(
                enabled=bool(metrics.get("enabled", False)),
                jwt_token_secret_name=name_or_default(
                    metrics_auth.get("jwtTokenSecretName"), constants.EXPORTER_TOKEN_SECRET_SUFFIX
                ),
            ),
            sync=SyncSpec(
                enabled=bool(sync.get("enabled", False)),
                authentication=SyncAuthenticationSpec(
                    jwt_secret_name=name_or_default(
                        sync_auth.get("jwtSecretName"), constants.SYNC_JWT_SECRET_SUFFIX
                    ),
                    client_ca_secret_name=name_or_default(
                        sync_auth.get("clientCASecretName"), constants.SYNC_CLIENT_CA_SECRET_SUFFIX
                    ),
                ),
                monitoring_token_secret_name=name_or_default(
                    sync_monitoring.get("tokenSecretName"), constants.SYNC_MONITORING_SECRET_SUFFIX
                ),
                tls=TLSSpec(
                    ca_secret_name=name_or_default(sync_tls.get("caSecretName"), constants.SYNC_CA_SECRET_SUFFIX),
                ),
            ),
        )


@dataclass(frozen=True, slots=True)
class DeploymentSecurityProfile:
    """Security toggles derived from a deployment spec.

    Never persisted; recomputed on every reconciliation pass.
    """

    auth_enabled: bool
    tls_enabled: bool
    encryption_enabled: bool
    metrics_enabled: bool
    sync_enabled: bool

    @classmethod
    def from_spec(cls, spec: DeploymentSpec) -> "DeploymentSecurityProfile":
        return cls(
            auth_enabled=spec.is_authenticated(),
            tls_enabled=spec.is_secure(),
            encryption_enabled=spec.encryption.is_encrypted(),
            metrics_enabled=spec.metrics.enabled,
            sync_enabled=spec.sync.enabled,
        )


@dataclass(frozen=True, slots=True)
class Deployment:
    """The ArangoDeployment API object as seen by this package.

    Attributes:
        name: The deployment name.
        namespace: The namespace the deployment lives in.
        uid: The object UID, used for owner references.
        spec: The parsed desired state.
        agent_ids: IDs of the agency members recorded in the status.

    """

    name: str
    namespace: str
    uid: str
    spec: DeploymentSpec
    agent_ids: tuple[str, ...] = field(default_factory=tuple)

    def as_owner(self) -> OwnerReference:
        return OwnerReference(name=self.name, uid=self.uid)

    @classmethod
    def from_object(cls, obj: dict[str, Any]) -> "Deployment":
        """Build a deployment from a raw custom object mapping.

        Args:
            obj: The custom object as returned by the CustomObjectsApi or
                parsed from a manifest.

        Returns:
            The deployment view.

        """
        metadata = obj.get("metadata") or {}
        name = metadata["name"]
        members = (obj.get("status") or {}).get("members") or {}
        agents = members.get("agents") or []
        return cls(
            name=name,
            namespace=metadata.get("namespace", "default"),
            uid=metadata.get("uid", ""),
            spec=DeploymentSpec.from_dict(name, obj.get("spec")),
            agent_ids=tuple(agent["id"] for agent in agents),
        )


def keyfolder_secret_name(deployment_name: str) -> str:
    """Name of the encryption keyfolder secret of a deployment."""
    return deployment_name + constants.KEYFOLDER_SECRET_SUFFIX


def _strip_arangod_prefix(member_id: str) -> str:
    return member_id[len("arangod-"):] if member_id.startswith("arangod-") else member_id


def create_pod_dns_name(deployment_name: str, namespace: str, role: str, member_id: str) -> str:
    """DNS name of a member pod, resolved through the headless service.

    Args:
        deployment_name: Name of the deployment.
        namespace: Namespace of the deployment.
        role: The member role (see `ServerGroup.as_role`).
        member_id: The member ID.

    Returns:
        ``<deployment>-<role>-<id>.<deployment>-int.<namespace>.svc``

    """
    host_name = f"{deployment_name}-{role}-{_strip_arangod_prefix(member_id)}".lower()
    return f"{host_name}.{deployment_name}{constants.HEADLESS_SERVICE_SUFFIX}.{namespace}.svc"


def create_database_client_service_dns_name(deployment_name: str, namespace: str) -> str:
    """DNS name of the service balancing over all serving members."""
    return f"{deployment_name}.{namespace}.svc"


def member_endpoint(deployment: Deployment, group: ServerGroup, member_id: str) -> MemberEndpoint:
    role = group.as_role()
    return MemberEndpoint(
        dns_name=create_pod_dns_name(deployment.name, deployment.namespace, role, member_id),
        role=role,
        id=member_id,
    )
