"""Client handles for talking to ArangoDB members and the agency."""

from typing import Any
from urllib.parse import urlsplit

import requests
from icecream import ic

from kube_arango_trust.client.transport import Transport
from kube_arango_trust.exceptions import ClientConnectionError

DEFAULT_REQUEST_TIMEOUT = 60.0

_AGENCY_READ_PATH = "/_api/agency/read"
_REDIRECT_STATUSES = (301, 302, 303, 307, 308)


class ArangodClient:
    """Authenticated handle for issuing requests to arangod servers.

    Endpoints are tried in order; the next one is used only when the
    previous cannot be reached. The handle owns no connections itself,
    it borrows them from the shared transport.

    Attributes:
        endpoints: Base URLs of the servers this client talks to.
        transport: The shared transport used for all requests.
        authorization: ``Authorization`` header value, or None.
        timeout: Default read timeout in seconds.

    """

    def __init__(
        self,
        endpoints: list[str],
        transport: Transport,
        *,
        authorization: str | None = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        if not endpoints:
            raise ClientConnectionError("Cannot create a client without endpoints")
        self.endpoints = list(endpoints)
        self.transport = transport
        self.authorization = authorization
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        if self.authorization is None:
            return {}
        return {"Authorization": self.authorization}

    def _send(
        self, endpoint: str, method: str, path: str, *, timeout: float | None, **kwargs
    ) -> requests.Response:
        # Only connection failures are safe to send elsewhere; any other
        # failure may have reached the server.
        try:
            return self.transport.request(
                method,
                endpoint + path,
                headers=self._headers(),
                timeout=timeout if timeout is not None else self.timeout,
                **kwargs,
            )
        except requests.ConnectionError:
            raise
        except requests.RequestException as err:
            raise ClientConnectionError(
                f"Request to {endpoint}{path} failed: {err}", endpoints=self.endpoints
            ) from err

    def request(self, method: str, path: str, *, timeout: float | None = None, **kwargs) -> requests.Response:
        """Send a request to the first reachable endpoint.

        Args:
            method: HTTP method.
            path: Request path, starting with ``/``.
            timeout: Read timeout in seconds, overriding the client default.
            **kwargs: Passed to `requests.Session.request` (``json``, ``params``...).

        Returns:
            The response, whatever its status code.

        Raises:
            ClientConnectionError: If no endpoint can be reached, or a request
                fails once it may have reached a server (e.g. a read timeout).

        """
        last_error: requests.ConnectionError | None = None
        for endpoint in self.endpoints:
            try:
                return self._send(endpoint, method, path, timeout=timeout, **kwargs)
            except requests.ConnectionError as err:
                ic(endpoint, err)
                last_error = err
        raise ClientConnectionError(
            f"Failed to reach {', '.join(self.endpoints)}: {last_error}", endpoints=self.endpoints
        ) from last_error

    def _json(self, response: requests.Response) -> Any:
        if not response.ok:
            raise ClientConnectionError(
                f"Request to {response.url} failed with status {response.status_code}",
                endpoints=self.endpoints,
            )
        return response.json()

    def version(self, *, timeout: float | None = None) -> dict[str, Any]:
        """Fetch the server version information."""
        return self._json(self.request("GET", "/_api/version", timeout=timeout))

    def __repr__(self) -> str:
        """Return a string representation without credentials."""
        return (
            f"{type(self).__name__}(endpoints={self.endpoints!r}, "
            f"authenticated={self.authorization is not None})"
        )


class AgencyClient(ArangodClient):
    """Client for the agency, the consensus store formed by the agents.

    All agent endpoints are configured together. Followers answer with a
    redirect to the current leader; the client follows it and sends later
    requests to the leader first.
    """

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._leader: str | None = None

    def _ordered_endpoints(self) -> list[str]:
        if self._leader is None:
            return self.endpoints
        return [self._leader] + [e for e in self.endpoints if e != self._leader]

    def request(self, method: str, path: str, *, timeout: float | None = None, **kwargs) -> requests.Response:
        """Send a request to the agency leader.

        Raises:
            ClientConnectionError: If no agent can be reached or the leader
                cannot be found.

        """
        last_error: Exception | None = None
        for endpoint in self._ordered_endpoints():
            try:
                response = self._send(endpoint, method, path, timeout=timeout, **kwargs)
            except requests.ConnectionError as err:
                ic(endpoint, err)
                last_error = err
                continue

            if response.status_code not in _REDIRECT_STATUSES:
                self._leader = endpoint
                return response

            location = urlsplit(response.headers.get("Location", ""))
            leader = f"{location.scheme}://{location.netloc}" if location.netloc else None
            if leader is None or leader == endpoint:
                last_error = ClientConnectionError(f"Agent {endpoint} redirected without a leader")
                continue
            ic(endpoint, leader)
            try:
                response = self._send(leader, method, path, timeout=timeout, **kwargs)
            except requests.ConnectionError as err:
                last_error = err
                continue
            if response.status_code not in _REDIRECT_STATUSES:
                self._leader = leader
                return response
            last_error = ClientConnectionError(f"Agent {leader} is not the leader")

        self._leader = None
        raise ClientConnectionError(
            f"Failed to reach the agency leader via {', '.join(self.endpoints)}: {last_error}",
            endpoints=self.endpoints,
        ) from last_error

    def read(self, keys: list[str], *, timeout: float | None = None) -> Any:
        """Read keys from the agency store.

        Args:
            keys: Absolute key paths, e.g. ``/arango/Plan/Version``.
            timeout: Read timeout in seconds.

        Returns:
            The decoded read result (one document per read transaction).

        """
        return self._json(self.request("POST", _AGENCY_READ_PATH, json=[keys], timeout=timeout))

    def read_key(self, key: str, *, timeout: float | None = None) -> Any:
        """Read a single key and return its value, or None if it is absent."""
        result = self.read([key], timeout=timeout)
        value: Any = result[0] if result else None
        for part in filter(None, key.split("/")):
            if not isinstance(value, dict) or part not in value:
                return None
            value = value[part]
        return value
