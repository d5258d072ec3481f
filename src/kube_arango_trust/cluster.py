"""Kubernetes cluster access for kube-arango-trust.

This module provides the Cluster class, which loads the Kubernetes client
configuration and fetches ArangoDeployment objects.
"""

from typing import Any

from icecream import ic
from kubernetes import client, config
from kubernetes.client.exceptions import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import MaxRetryError

from kube_arango_trust import console, constants
from kube_arango_trust.exceptions import ClusterConnectionError
from kube_arango_trust.models import Deployment
from kube_arango_trust.secrets.store import KubernetesSecretStore


class Cluster:
    """Manages the connection to the Kubernetes API.

    Attributes:
        context: The kube-config context in use, or None in-cluster.
        request_timeout: Deadline in seconds for API calls.

    """

    def __init__(self, *, context: str | None = None, request_timeout: float | None = None) -> None:
        """Load the client configuration.

        Args:
            context: Kube-config context to use. The current context is used
                when omitted; inside a pod the service account is used when
                no kube-config exists.
            request_timeout: Deadline in seconds for API calls.

        """
        self.context: str | None = self._load_config(context=context)
        self.request_timeout = request_timeout
        self.core_api = client.CoreV1Api()
        self.custom_api = client.CustomObjectsApi()

    @staticmethod
    def _load_config(*, context: str | None) -> str | None:
        """Load kube-config, falling back to the in-cluster configuration.

        Returns:
            The context name, or None when running in-cluster.

        Raises:
            ClusterConnectionError: If neither configuration can be loaded.

        """
        try:
            _, current_context = config.list_kube_config_contexts()
            selected = context or str(current_context["name"])
            config.load_kube_config(context=selected)
        except ConfigException as kube_config_err:
            try:
                config.load_incluster_config()
            except ConfigException as err:
                raise ClusterConnectionError(
                    f"Invalid or missing kubeconfig ({kube_config_err}) and no in-cluster config: {err}"
                ) from err
            console.info("Using in-cluster configuration")
            return None

        console.info(f"Working with {console.highlight(selected)} cluster")
        return selected

    def secret_store(self, namespace: str) -> KubernetesSecretStore:
        """Return a secret store for the given namespace."""
        return KubernetesSecretStore(namespace, api=self.core_api, request_timeout=self.request_timeout)

    def get_deployment(self, name: str, namespace: str) -> Deployment:
        """Fetch an ArangoDeployment.

        Raises:
            ClusterConnectionError: If the API is unreachable or the
                deployment cannot be read.

        """
        try:
            obj: dict[str, Any] = self.custom_api.get_namespaced_custom_object(
                constants.DEPLOYMENT_GROUP,
                constants.DEPLOYMENT_VERSION,
                namespace,
                constants.DEPLOYMENT_PLURAL,
                name,
                _request_timeout=self.request_timeout,
            )
        except MaxRetryError as err:
            raise ClusterConnectionError(f"Failed to connect to the Kubernetes cluster: {err.reason}") from err
        except ApiException as err:
            raise ClusterConnectionError(
                f"Failed to get deployment '{namespace}/{name}': {err.status} {err.reason}"
            ) from err
        ic(obj.get("metadata"))
        return Deployment.from_object(obj)

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"Cluster(context={self.context!r})"
