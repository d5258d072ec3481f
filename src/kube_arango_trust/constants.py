"""Well-known names shared by the reconciler and the client factory."""

# Secret data keys, fixed per credential kind
SECRET_KEY_TOKEN = "token"
SECRET_CA_CERTIFICATE = "ca.crt"
SECRET_CA_KEY = "ca.key"
SECRET_ENCRYPTION_KEY = "key"

# Value of a secret name field that disables the feature it configures
SECRET_NAME_DISABLED = "None"

TOKEN_BYTES = 32
ENCRYPTION_KEY_BYTES = 32

ARANGO_PORT = 8529
ARANGO_EXPORTER_INTERNAL_ENDPOINT = "/_admin/metrics"

# JWT claims
JWT_ISSUER = "arangodb"
OPERATOR_SERVER_ID = "kube-arangodb"
EXPORTER_SERVER_ID = "exporter"
EXPORTER_ALLOWED_PATHS = (
    "/_admin/statistics",
    "/_admin/statistics-description",
    ARANGO_EXPORTER_INTERNAL_ENDPOINT,
)

# Default secret name suffixes, appended to the deployment name
JWT_SECRET_SUFFIX = "-jwt"
CA_SECRET_SUFFIX = "-ca"
EXPORTER_TOKEN_SECRET_SUFFIX = "-exporter-jwt-token"
KEYFOLDER_SECRET_SUFFIX = "-encryption-folder"
SYNC_JWT_SECRET_SUFFIX = "-sync-jwt"
SYNC_MONITORING_SECRET_SUFFIX = "-sync-mt"
SYNC_CA_SECRET_SUFFIX = "-sync-ca"
SYNC_CLIENT_CA_SECRET_SUFFIX = "-sync-client-auth-ca"
HEADLESS_SERVICE_SUFFIX = "-int"

# Custom resource coordinates
DEPLOYMENT_API_VERSION = "database.arangodb.com/v1"
DEPLOYMENT_KIND = "ArangoDeployment"
BACKUP_GROUP = "backup.arangodb.com"
BACKUP_VERSION = "v1"
BACKUP_PLURAL = "arangobackups"
DEPLOYMENT_GROUP = "database.arangodb.com"
DEPLOYMENT_VERSION = "v1"
DEPLOYMENT_PLURAL = "arangodeployments"
