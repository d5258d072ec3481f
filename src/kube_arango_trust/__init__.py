"""kube-arango-trust: credential reconciliation for ArangoDB deployments.

This package bootstraps and keeps in place the trust material a
deployment needs (JWT secrets, monitoring tokens, CA certificates and
the encryption keyfolder) and builds authenticated clients for it.

Example usage:
    from kube_arango_trust import Cluster, SecretReconciler

    cluster = Cluster()
    deployment = cluster.get_deployment("example", "default")
    SecretReconciler(cluster.secret_store("default"), deployment).ensure_secrets()
"""

__version__ = "0.1.0"

from kube_arango_trust.cluster import Cluster
from kube_arango_trust.exceptions import (
    BackupStateError,
    ClientConnectionError,
    ClusterConnectionError,
    OperatorError,
    PolicyError,
    SecretAlreadyExistsError,
    SecretNotFoundError,
    StoreError,
    ValidationError,
)
from kube_arango_trust.models import Deployment, DeploymentSecurityProfile, DeploymentSpec
from kube_arango_trust.secrets.reconciler import SecretReconciler

__all__ = [
    # Version
    "__version__",
    # Classes
    "Cluster",
    "Deployment",
    "DeploymentSpec",
    "DeploymentSecurityProfile",
    "SecretReconciler",
    # Exceptions
    "OperatorError",
    "StoreError",
    "SecretNotFoundError",
    "SecretAlreadyExistsError",
    "ValidationError",
    "PolicyError",
    "ClientConnectionError",
    "ClusterConnectionError",
    "BackupStateError",
]
