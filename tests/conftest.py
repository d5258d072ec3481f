"""Shared test fixtures for kube-arango-trust tests."""

import threading
from unittest.mock import patch

import pytest
from icecream import ic

from kube_arango_trust.exceptions import SecretAlreadyExistsError, SecretNotFoundError
from kube_arango_trust.models import Deployment, OwnerReference


class FakeSecretStore:
    """In-memory secret store with the same contract as KubernetesSecretStore.

    Creates are atomic, like the API server's.
    """

    def __init__(self, namespace: str = "default") -> None:
        self.namespace = namespace
        self.secrets: dict[str, dict[str, bytes]] = {}
        self.owners: dict[str, OwnerReference] = {}
        self.calls: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def get(self, name, *, timeout=None):
        self.calls.append(("get", name))
        if name not in self.secrets:
            raise SecretNotFoundError(f"Secret '{name}' not found", name=name, operation="get")
        return dict(self.secrets[name])

    def create(self, name, data, owner, *, timeout=None):
        self.calls.append(("create", name))
        with self._lock:
            if name in self.secrets:
                raise SecretAlreadyExistsError(f"Secret '{name}' already exists", name=name, operation="create")
            self.secrets[name] = dict(data)
            self.owners[name] = owner

    def add_data(self, name, data, *, timeout=None):
        self.calls.append(("add_data", name))
        with self._lock:
            if name not in self.secrets:
                raise SecretNotFoundError(f"Secret '{name}' not found", name=name, operation="update")
            self.secrets[name].update(data)

    def delete(self, name, *, timeout=None):
        self.calls.append(("delete", name))
        with self._lock:
            if name not in self.secrets:
                raise SecretNotFoundError(f"Secret '{name}' not found", name=name, operation="delete")
            del self.secrets[name]
            self.owners.pop(name, None)

    def creates(self) -> list[str]:
        return [name for op, name in self.calls if op == "create"]


def make_deployment(spec=None, *, name="example", namespace="default", agents=()):
    """Build a Deployment from a CRD-shaped spec mapping."""
    return Deployment.from_object(
        {
            "metadata": {"name": name, "namespace": namespace, "uid": "1234-abcd"},
            "spec": spec or {},
            "status": {"members": {"agents": [{"id": agent} for agent in agents]}},
        }
    )


@pytest.fixture(autouse=True)
def quiet_debug():
    """Keep icecream debug output out of test logs."""
    ic.disable()
    yield


@pytest.fixture
def store():
    """Empty in-memory secret store."""
    return FakeSecretStore()


@pytest.fixture
def auth_only_deployment():
    """Deployment with authentication on and every other feature off."""
    return make_deployment({"tls": {"caSecretName": "None"}})


@pytest.fixture
def mock_kube_contexts():
    """Mock kubernetes config contexts."""
    with patch("kubernetes.config.list_kube_config_contexts") as mock:
        mock.return_value = ([{"name": "test-context"}], {"name": "test-context"})
        yield mock


@pytest.fixture
def mock_kube_config():
    """Mock kubernetes config loading."""
    with patch("kubernetes.config.load_kube_config") as mock:
        yield mock


@pytest.fixture
def deployment_manifest(tmp_path):
    """A deployment manifest on disk with authentication only."""
    path = tmp_path / "deployment.yaml"
    path.write_text(
        """apiVersion: database.arangodb.com/v1
kind: ArangoDeployment
metadata:
  name: example
  namespace: db
  uid: 1234-abcd
spec:
  mode: Cluster
  tls:
    caSecretName: None
"""
    )
    return path
