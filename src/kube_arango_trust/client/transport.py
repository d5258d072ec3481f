"""Shared HTTP transports for database clients.

Four pooled transports are built once at import time, one per
combination of TLS and timeout profile, and shared by every client the
factory creates. Clients never build their own pools, which keeps the
number of idle connections bounded no matter how often reconciliation
asks for a client.
"""

from dataclasses import dataclass

import requests
from requests.adapters import HTTPAdapter

DIAL_TIMEOUT = 30.0
IDLE_TIMEOUT = 90.0
SHORT_IDLE_TIMEOUT = 0.1
MAX_IDLE_CONNECTIONS = 100


@dataclass(frozen=True)
class Transport:
    """A pooled HTTP transport.

    Attributes:
        scheme: URL scheme of endpoints served by this transport.
        session: The pooled session; safe to share between clients.
        dial_timeout: Connect timeout in seconds.
        idle_timeout: Idle lifetime of pooled connections, in seconds. urllib3
            does not expire idle connections, so this is informational; the
            short-timeout pools close every connection after its request.

    """

    scheme: str
    session: requests.Session
    dial_timeout: float
    idle_timeout: float

    @property
    def secure(self) -> bool:
        return self.scheme == "https"

    def request(
        self,
        method: str,
        url: str,
        *,
        timeout: float | None,
        headers: dict[str, str] | None = None,
        **kwargs,
    ) -> requests.Response:
        """Send a request through the pool.

        Redirects are never followed; callers that expect them (the
        agency client) handle them explicitly.
        """
        return self.session.request(
            method,
            url,
            headers=headers,
            timeout=(self.dial_timeout, timeout),
            allow_redirects=False,
            **kwargs,
        )


def _build_transport(*, secure: bool, short_timeout: bool) -> Transport:
    session = requests.Session()
    adapter = HTTPAdapter(pool_maxsize=MAX_IDLE_CONNECTIONS, max_retries=0)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    if secure:
        # Server certificates are signed by the deployment CA, which is not
        # distributed to the operator.
        session.verify = False
    if short_timeout:
        # urllib3 has no idle timeout; connections are dropped after each
        # request instead of being kept around.
        session.headers["Connection"] = "close"
    return Transport(
        scheme="https" if secure else "http",
        session=session,
        dial_timeout=DIAL_TIMEOUT,
        idle_timeout=SHORT_IDLE_TIMEOUT if short_timeout else IDLE_TIMEOUT,
    )


HTTP_TRANSPORT = _build_transport(secure=False, short_timeout=False)
HTTPS_TRANSPORT = _build_transport(secure=True, short_timeout=False)
HTTP_TRANSPORT_SHORT_TIMEOUT = _build_transport(secure=False, short_timeout=True)
HTTPS_TRANSPORT_SHORT_TIMEOUT = _build_transport(secure=True, short_timeout=True)


def select_transport(*, secure: bool, short_timeout: bool) -> Transport:
    """Return the shared transport for the given TLS and timeout profile."""
    match (secure, short_timeout):
        case (True, True):
            return HTTPS_TRANSPORT_SHORT_TIMEOUT
        case (True, False):
            return HTTPS_TRANSPORT
        case (False, True):
            return HTTP_TRANSPORT_SHORT_TIMEOUT
        case _:
            return HTTP_TRANSPORT
