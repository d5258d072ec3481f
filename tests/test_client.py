"""Tests for the client subpackage."""

from unittest.mock import MagicMock

import pytest
import requests
from conftest import make_deployment

from kube_arango_trust import constants
from kube_arango_trust.client import transport as transports
from kube_arango_trust.client.arangod import AgencyClient, ArangodClient
from kube_arango_trust.client.factory import (
    AuthPolicy,
    create_arangod_agency_client,
    create_arangod_client,
    create_arangod_database_client,
    create_arangod_image_id_client,
    create_authentication,
)
from kube_arango_trust.exceptions import (
    ClientConnectionError,
    PolicyError,
    SecretNotFoundError,
    ValidationError,
)
from kube_arango_trust.models import ServerGroup
from kube_arango_trust.secrets.tokens import JWTClaimSet, decode_claims

SIGNING_SECRET = "f" * 64


@pytest.fixture
def authenticated_store(store):
    store.secrets["example-jwt"] = {constants.SECRET_KEY_TOKEN: SIGNING_SECRET.encode()}
    return store


def _response(status_code=200, json_body=None, headers=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.headers = headers or {}
    response.json.return_value = json_body
    return response


class TestTransports:
    """Tests for the shared transport pools."""

    def test_four_distinct_singletons(self):
        """Test every profile maps to its own pre-built transport."""
        selected = {
            (secure, short): transports.select_transport(secure=secure, short_timeout=short)
            for secure in (True, False)
            for short in (True, False)
        }

        assert len({id(t) for t in selected.values()}) == 4
        assert selected[(True, False)] is transports.HTTPS_TRANSPORT
        assert selected[(False, True)] is transports.HTTP_TRANSPORT_SHORT_TIMEOUT

    def test_selection_is_stable(self):
        """Test the same transport is returned on every call."""
        first = transports.select_transport(secure=True, short_timeout=True)
        second = transports.select_transport(secure=True, short_timeout=True)

        assert first is second

    def test_timeouts(self):
        """Test dial and idle timeouts of the profiles."""
        assert transports.HTTP_TRANSPORT.dial_timeout == 30.0
        assert transports.HTTP_TRANSPORT.idle_timeout == 90.0
        assert transports.HTTPS_TRANSPORT_SHORT_TIMEOUT.dial_timeout == 30.0
        assert transports.HTTPS_TRANSPORT_SHORT_TIMEOUT.idle_timeout == 0.1

    def test_short_pools_do_not_keep_connections(self):
        """Test only the short-timeout pools close connections after each request."""
        assert transports.HTTP_TRANSPORT_SHORT_TIMEOUT.session.headers["Connection"] == "close"
        assert transports.HTTPS_TRANSPORT_SHORT_TIMEOUT.session.headers["Connection"] == "close"
        assert transports.HTTP_TRANSPORT.session.headers.get("Connection") != "close"

    def test_tls_transport(self):
        """Test TLS transports use https."""
        assert transports.HTTPS_TRANSPORT.scheme == "https"
        assert transports.HTTPS_TRANSPORT.secure
        assert not transports.HTTP_TRANSPORT.secure

    def test_request_passes_timeouts(self):
        """Test the dial timeout and the caller deadline are both applied."""
        session = MagicMock()
        transport = transports.Transport(scheme="http", session=session, dial_timeout=30.0, idle_timeout=90.0)

        transport.request("GET", "http://host:8529/_api/version", timeout=5)

        session.request.assert_called_once_with(
            "GET",
            "http://host:8529/_api/version",
            headers=None,
            timeout=(30.0, 5),
            allow_redirects=False,
        )


class TestCreateAuthentication:
    """Tests for the authentication decision."""

    def test_auth_enabled_attaches_bearer(self, authenticated_store):
        """Test an operator-scoped bearer is minted from the primary token."""
        header = create_authentication(authenticated_store, make_deployment())

        scheme, token = header.split(" ", 1)
        assert scheme == "bearer"
        assert decode_claims(token, SIGNING_SECRET) == JWTClaimSet(issuer="arangodb", server_id="kube-arangodb")

    def test_auth_enabled_skip(self, store):
        """Test skipping authentication reads no secret."""
        assert create_authentication(store, make_deployment(), AuthPolicy.SKIP) is None
        assert store.calls == []

    def test_auth_enabled_require(self, authenticated_store):
        """Test requiring authentication on an authenticated deployment succeeds."""
        assert create_authentication(authenticated_store, make_deployment(), AuthPolicy.REQUIRE).startswith("bearer ")

    def test_auth_disabled_default(self, store):
        """Test no credential is attached when authentication is disabled."""
        deployment = make_deployment({"authentication": {"jwtSecretName": "None"}})

        assert create_authentication(store, deployment) is None

    def test_auth_disabled_require(self, store):
        """Test requiring authentication on a deployment without it fails."""
        deployment = make_deployment({"authentication": {"jwtSecretName": "None"}})

        with pytest.raises(PolicyError, match="example"):
            create_authentication(store, deployment, AuthPolicy.REQUIRE)

    def test_no_deployment_require(self):
        """Test bare clients cannot satisfy a require policy."""
        with pytest.raises(PolicyError):
            create_authentication(None, None, AuthPolicy.REQUIRE)

    def test_missing_token_secret(self, store):
        """Test a missing primary token propagates the store error."""
        with pytest.raises(SecretNotFoundError) as exc_info:
            create_authentication(store, make_deployment())

        assert exc_info.value.name == "example-jwt"

    def test_token_secret_without_field(self, store):
        """Test a primary token secret without token field fails."""
        store.secrets["example-jwt"] = {}

        with pytest.raises(ValidationError):
            create_authentication(store, make_deployment())


class TestClientFactory:
    """Tests for the client builders."""

    def test_member_client(self, authenticated_store):
        """Test a member client targets the member pod over TLS."""
        client = create_arangod_client(authenticated_store, make_deployment(), ServerGroup.DBSERVERS, "PRMR-abc")

        assert client.endpoints == ["https://example-dbserver-prmr-abc.example-int.default.svc:8529"]
        assert client.transport is transports.HTTPS_TRANSPORT
        assert client.authorization.startswith("bearer ")

    def test_database_client_short_timeout(self, store):
        """Test the database client uses the short-timeout plaintext pool."""
        deployment = make_deployment({"tls": {"caSecretName": "None"}})

        client = create_arangod_database_client(store, deployment, short_timeout=True, auth=AuthPolicy.SKIP)

        assert client.endpoints == ["http://example.default.svc:8529"]
        assert client.transport is transports.HTTP_TRANSPORT_SHORT_TIMEOUT
        assert client.authorization is None

    def test_agency_client(self, authenticated_store):
        """Test all agents are configured together."""
        deployment = make_deployment(agents=("AGNT-1", "AGNT-2", "AGNT-3"))

        client = create_arangod_agency_client(authenticated_store, deployment)

        assert isinstance(client, AgencyClient)
        assert client.endpoints == [
            f"https://example-agent-agnt-{n}.example-int.default.svc:8529" for n in (1, 2, 3)
        ]
        assert client.authorization.startswith("bearer ")

    def test_agency_client_without_agents(self, store):
        """Test an agency client needs at least one agent."""
        with pytest.raises(ClientConnectionError, match="no agents"):
            create_arangod_agency_client(store, make_deployment(), auth=AuthPolicy.SKIP)

    def test_image_id_client(self):
        """Test bare clients are plaintext and unauthenticated."""
        client = create_arangod_image_id_client("example", "db", "id", "abc123")

        assert client.endpoints == ["http://example-id-abc123.example-int.db.svc:8529"]
        assert client.transport is transports.HTTP_TRANSPORT
        assert client.authorization is None


class TestArangodClient:
    """Tests for request handling of the client handle."""

    def test_requires_endpoints(self):
        """Test a client cannot be built without endpoints."""
        with pytest.raises(ClientConnectionError):
            ArangodClient([], MagicMock())

    def test_version_sends_authorization(self):
        """Test the bearer header is sent."""
        transport = MagicMock()
        transport.request.return_value = _response(json_body={"server": "arango", "version": "3.11.0"})
        client = ArangodClient(["http://db:8529"], transport, authorization="bearer xyz")

        assert client.version() == {"server": "arango", "version": "3.11.0"}

        transport.request.assert_called_once_with(
            "GET", "http://db:8529/_api/version", headers={"Authorization": "bearer xyz"}, timeout=60.0
        )

    def test_falls_back_to_next_endpoint(self):
        """Test an unreachable endpoint is skipped."""
        transport = MagicMock()
        transport.request.side_effect = [requests.ConnectionError("refused"), _response(json_body={})]
        client = ArangodClient(["http://a:8529", "http://b:8529"], transport)

        client.request("GET", "/_api/version")

        assert transport.request.call_args[0][1] == "http://b:8529/_api/version"

    def test_all_endpoints_unreachable(self):
        """Test the failure carries the endpoints."""
        transport = MagicMock()
        transport.request.side_effect = requests.ConnectionError("refused")
        client = ArangodClient(["http://a:8529"], transport)

        with pytest.raises(ClientConnectionError) as exc_info:
            client.request("GET", "/_api/version")

        assert exc_info.value.endpoints == ["http://a:8529"]
        assert "http://a:8529" in str(exc_info.value)

    def test_read_timeout_is_not_resent(self):
        """Test a read timeout fails at once instead of trying the next endpoint."""
        transport = MagicMock()
        transport.request.side_effect = [requests.ReadTimeout("read timed out"), _response(json_body={})]
        client = ArangodClient(["http://a:8529", "http://b:8529"], transport)

        with pytest.raises(ClientConnectionError, match="read timed out"):
            client.request("GET", "/_api/version")

        assert transport.request.call_count == 1

    def test_connect_timeout_fails_over(self):
        """Test a connect timeout moves on to the next endpoint."""
        transport = MagicMock()
        transport.request.side_effect = [requests.ConnectTimeout("connect timed out"), _response(json_body={})]
        client = ArangodClient(["http://a:8529", "http://b:8529"], transport)

        client.request("GET", "/_api/version")

        assert transport.request.call_args[0][1] == "http://b:8529/_api/version"

    def test_error_status(self):
        """Test a failed response raises ClientConnectionError."""
        transport = MagicMock()
        transport.request.return_value = _response(status_code=401)
        client = ArangodClient(["http://a:8529"], transport)

        with pytest.raises(ClientConnectionError, match="401"):
            client.version()

    def test_repr_hides_credentials(self):
        """Test the representation does not leak the bearer."""
        client = ArangodClient(["http://a:8529"], MagicMock(), authorization="bearer secret-token")

        assert "secret-token" not in repr(client)


class TestAgencyClient:
    """Tests for agency leader discovery."""

    def test_follows_leader_redirect(self):
        """Test a follower's redirect leads to the leader, which is then preferred."""
        transport = MagicMock()
        transport.request.side_effect = [
            _response(status_code=307, headers={"Location": "http://agent-2:8529/_api/agency/read"}),
            _response(json_body=[{"arango": {"Plan": {"Version": 7}}}]),
            _response(json_body=[{"arango": {"Plan": {"Version": 8}}}]),
        ]
        client = AgencyClient(["http://agent-1:8529", "http://agent-2:8529"], transport)

        assert client.read_key("/arango/Plan/Version") == 7
        assert client.read_key("/arango/Plan/Version") == 8

        urls = [call[0][1] for call in transport.request.call_args_list]
        assert urls == [
            "http://agent-1:8529/_api/agency/read",
            "http://agent-2:8529/_api/agency/read",
            "http://agent-2:8529/_api/agency/read",
        ]

    def test_read_missing_key(self):
        """Test an absent key reads as None."""
        transport = MagicMock()
        transport.request.return_value = _response(json_body=[{}])
        client = AgencyClient(["http://agent-1:8529"], transport)

        assert client.read_key("/arango/Plan/Version") is None

    def test_no_leader(self):
        """Test failing over every agent raises ClientConnectionError."""
        transport = MagicMock()
        transport.request.side_effect = requests.ConnectionError("refused")
        client = AgencyClient(["http://agent-1:8529", "http://agent-2:8529"], transport)

        with pytest.raises(ClientConnectionError, match="agency leader"):
            client.read(["/arango"])

    def test_write_is_sent_once_on_read_timeout(self):
        """Test a write that timed out waiting for an answer is not sent to another agent."""
        transport = MagicMock()
        transport.request.side_effect = [requests.ReadTimeout("read timed out"), _response(json_body={})]
        client = AgencyClient(["http://agent-1:8529", "http://agent-2:8529"], transport)

        with pytest.raises(ClientConnectionError, match="agent-1"):
            client.request("POST", "/_api/agency/write", json=[[{"/arango/Plan/Version": 9}]])

        assert transport.request.call_count == 1
