"""Custom exceptions for kube-arango-trust.

This module defines the exception hierarchy used throughout the package.
Expected outcomes of the object store (a secret that is not there yet, a
secret that another controller created first) get their own types so the
reconciler can branch on them; everything else is fatal for the pass.
"""


class OperatorError(Exception):
    """Base exception for all kube-arango-trust errors.

    All custom exceptions in this package inherit from this class,
    allowing the reconciliation loop to catch them with a single
    except clause if desired.
    """

    pass


class StoreError(OperatorError):
    """Raised when a secret store operation fails for an unexpected reason.

    Attributes:
        name: Name of the object the operation targeted.
        operation: The store operation ("get", "create", "update" or "delete").

    """

    def __init__(self, message: str, *, name: str, operation: str) -> None:
        super().__init__(message)
        self.name = name
        self.operation = operation


class SecretNotFoundError(StoreError):
    """Raised when a secret does not exist.

    This is an expected condition: it drives the create branches of the
    reconciler and is never reported as an error by itself.
    """

    pass


class SecretAlreadyExistsError(StoreError):
    """Raised when creating a secret that already exists.

    Under concurrently running controllers this is converted to success.
    """

    pass


class ValidationError(OperatorError):
    """Raised when prerequisite material is malformed.

    This can occur when:
    - A user supplied keyfile secret has no data
    - A secret lacks the field expected for its credential kind
    """

    pass


class PolicyError(OperatorError):
    """Raised when the caller requires authentication that is not available.

    Distinct from connectivity failures: retrying will not help until the
    deployment spec enables authentication.
    """

    pass


class ClientConnectionError(OperatorError):
    """Raised when a connection to a database member cannot be built or used.

    Attributes:
        endpoints: The endpoints the client was configured with.

    """

    def __init__(self, message: str, *, endpoints: list[str] | None = None) -> None:
        super().__init__(message)
        self.endpoints = endpoints or []


class ClusterConnectionError(OperatorError):
    """Raised when connection to the Kubernetes cluster fails.

    This can occur when:
    - The kubeconfig is invalid or missing and no in-cluster config exists
    - The cluster is unreachable
    """

    pass


class BackupStateError(OperatorError):
    """Raised when a backup is in a state no handler is registered for."""

    pass
