"""Database client subpackage.

This package contains the shared transports, the client handles, and the
factory functions building authenticated clients for a deployment.
"""

from kube_arango_trust.client.arangod import AgencyClient, ArangodClient
from kube_arango_trust.client.factory import (
    AuthPolicy,
    create_arangod_agency_client,
    create_arangod_client,
    create_arangod_database_client,
    create_arangod_image_id_client,
    create_authentication,
)
from kube_arango_trust.client.transport import Transport, select_transport

__all__ = [
    "AgencyClient",
    "ArangodClient",
    "AuthPolicy",
    "Transport",
    "select_transport",
    "create_authentication",
    "create_arangod_client",
    "create_arangod_database_client",
    "create_arangod_agency_client",
    "create_arangod_image_id_client",
]
