"""Credential management subpackage.

This package contains the secret store adapter, token and certificate
generation, and the reconciler that ties them together.
"""

from kube_arango_trust.secrets.certificates import CAMaterial, create_ca_certificate
from kube_arango_trust.secrets.reconciler import ExporterTokenCheck, SecretReconciler, derive_profile
from kube_arango_trust.secrets.store import CachedSecretStore, KubernetesSecretStore, read_token
from kube_arango_trust.secrets.tokens import (
    EXPORTER_CLAIMS,
    JWTClaimSet,
    create_authorization_header,
    generate_token,
)

__all__ = [
    # store
    "KubernetesSecretStore",
    "CachedSecretStore",
    "read_token",
    # tokens
    "JWTClaimSet",
    "EXPORTER_CLAIMS",
    "generate_token",
    "create_authorization_header",
    # certificates
    "CAMaterial",
    "create_ca_certificate",
    # reconciler
    "SecretReconciler",
    "ExporterTokenCheck",
    "derive_profile",
]
