"""Construction of authenticated database clients.

Each builder picks one of the shared transports from the deployment's TLS
setting and the requested timeout profile, then decides which credential
to attach according to the caller's `AuthPolicy`. Failures are raised
immediately; retrying is up to the reconciliation loop.
"""

from enum import Enum

from icecream import ic

from kube_arango_trust import constants
from kube_arango_trust.client.arangod import AgencyClient, ArangodClient
from kube_arango_trust.client.transport import Transport, select_transport
from kube_arango_trust.exceptions import ClientConnectionError, PolicyError
from kube_arango_trust.models import (
    Deployment,
    ServerGroup,
    create_database_client_service_dns_name,
    create_pod_dns_name,
    member_endpoint,
)
from kube_arango_trust.secrets.store import CachedSecretStore, KubernetesSecretStore, read_token
from kube_arango_trust.secrets.tokens import create_authorization_header

SecretStore = KubernetesSecretStore | CachedSecretStore


class AuthPolicy(str, Enum):
    """How a client builder treats authentication.

    DEFAULT attaches a credential when the deployment requires one. SKIP
    never attaches one (bootstrap probes running before secrets exist).
    REQUIRE fails when the deployment has authentication disabled.
    """

    DEFAULT = "default"
    SKIP = "skip"
    REQUIRE = "require"


def create_authentication(
    store: SecretStore | None,
    deployment: Deployment | None,
    auth: AuthPolicy = AuthPolicy.DEFAULT,
) -> str | None:
    """Decide on the ``Authorization`` header for a deployment client.

    Args:
        store: Secret store of the deployment namespace.
        deployment: The deployment, or None for clients built from a bare
            DNS name.
        auth: The caller's authentication policy.

    Returns:
        The header value, or None when no credential is attached.

    Raises:
        PolicyError: If authentication is required but disabled.
        SecretNotFoundError: If the primary token secret does not exist.
        StoreError: If the primary token secret cannot be read.
        ValidationError: If the primary token secret has no token field.

    """
    if deployment is not None and deployment.spec.is_authenticated():
        if auth is AuthPolicy.SKIP:
            return None
        if store is None:
            raise PolicyError(f"No secret store available to authenticate to deployment '{deployment.name}'")
        signing_secret = read_token(store, deployment.spec.authentication.jwt_secret_name)
        return create_authorization_header(signing_secret, constants.OPERATOR_SERVER_ID)

    if auth is AuthPolicy.REQUIRE:
        target = f"deployment '{deployment.name}'" if deployment is not None else "a client without deployment"
        raise PolicyError(f"Authentication is required by the caller, but not enabled for {target}")
    return None


def _http_config(
    deployment: Deployment | None, dns_names: list[str], *, short_timeout: bool
) -> tuple[list[str], Transport]:
    secure = deployment is not None and deployment.spec.is_secure()
    transport = select_transport(secure=secure, short_timeout=short_timeout)
    endpoints = [f"{transport.scheme}://{dns_name}:{constants.ARANGO_PORT}" for dns_name in dns_names]
    ic(endpoints)
    return endpoints, transport


def _create_client_for_dns_name(
    store: SecretStore | None,
    deployment: Deployment | None,
    dns_name: str,
    *,
    short_timeout: bool,
    auth: AuthPolicy,
) -> ArangodClient:
    endpoints, transport = _http_config(deployment, [dns_name], short_timeout=short_timeout)
    authorization = create_authentication(store, deployment, auth)
    return ArangodClient(endpoints, transport, authorization=authorization)


def create_arangod_client(
    store: SecretStore,
    deployment: Deployment,
    group: ServerGroup,
    member_id: str,
    *,
    auth: AuthPolicy = AuthPolicy.DEFAULT,
) -> ArangodClient:
    """Create a client for one specific member of the deployment.

    Args:
        store: Secret store of the deployment namespace.
        deployment: The deployment.
        group: The member's server group.
        member_id: The member ID.
        auth: Authentication policy.

    Returns:
        A client talking to that member only.

    """
    endpoint = member_endpoint(deployment, group, member_id)
    return _create_client_for_dns_name(store, deployment, endpoint.dns_name, short_timeout=False, auth=auth)


def create_arangod_database_client(
    store: SecretStore,
    deployment: Deployment,
    *,
    short_timeout: bool = False,
    auth: AuthPolicy = AuthPolicy.DEFAULT,
) -> ArangodClient:
    """Create a client for the whole cluster (or single server).

    Requests go through the deployment's client service, which balances
    over the serving members. Use ``short_timeout`` for liveness probes.
    """
    dns_name = create_database_client_service_dns_name(deployment.name, deployment.namespace)
    return _create_client_for_dns_name(store, deployment, dns_name, short_timeout=short_timeout, auth=auth)


def create_arangod_agency_client(
    store: SecretStore,
    deployment: Deployment,
    *,
    auth: AuthPolicy = AuthPolicy.DEFAULT,
) -> AgencyClient:
    """Create a client for the agency of the deployment.

    Raises:
        ClientConnectionError: If the deployment status lists no agents.

    """
    if not deployment.agent_ids:
        raise ClientConnectionError(f"Deployment '{deployment.name}' has no agents")

    dns_names = [
        create_pod_dns_name(deployment.name, deployment.namespace, ServerGroup.AGENTS.as_role(), agent_id)
        for agent_id in deployment.agent_ids
    ]
    endpoints, transport = _http_config(deployment, dns_names, short_timeout=False)
    authorization = create_authentication(store, deployment, auth)
    return AgencyClient(endpoints, transport, authorization=authorization)


def create_arangod_image_id_client(deployment_name: str, namespace: str, role: str, member_id: str) -> ArangodClient:
    """Create a client for a server running in an image-ID pod.

    No deployment object is involved, so the connection is plain HTTP and
    unauthenticated.
    """
    dns_name = create_pod_dns_name(deployment_name, namespace, role, member_id)
    return _create_client_for_dns_name(None, None, dns_name, short_timeout=False, auth=AuthPolicy.DEFAULT)
