"""HTTP transport for the Proxmox VE REST API.

Performs the four HTTP verbs, attaches the session cookie and (for write
verbs only) the CSRF prevention token, and classifies every outcome into
the :mod:`pve_client.errors` taxonomy. No raw ``httpx`` exception leaves
this module.

The transport never mutates the session. It reads one
:class:`~pve_client.session.SessionSnapshot` per request, so the cookie and
CSRF header of a request always come from the same login.
"""

import time

import httpx
import structlog

from . import __version__
from .errors import (
    ApiError,
    AuthenticationFailedError,
    InvalidResponseError,
    NetworkError,
    ProxmoxError,
    ResourceNotFoundError,
)
from .session import SessionSnapshot, SessionState

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT = 30.0

USER_AGENT = f"pve-client/{__version__}"
CSRF_HEADER = "CSRFPreventionToken"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

# The API only checks the CSRF token on state-changing requests; GET must
# never carry it.
_WRITE_METHODS = frozenset({"POST", "PUT", "DELETE"})


def classify_status(
    status: int,
    snapshot: SessionSnapshot,
    csrf_attached: bool,
) -> ProxmoxError | None:
    """Map an HTTP status to a taxonomy error.

    Args:
        status: HTTP status code of the received response.
        snapshot: Session state the request was sent with, used to enrich
            authentication failures.
        csrf_attached: Whether the request carried a CSRF token.

    Returns:
        None for 2xx, otherwise the error to raise.
    """
    if 200 <= status < 300:  # noqa: PLR2004
        return None
    if status == 401:  # noqa: PLR2004
        return AuthenticationFailedError(
            f"Unauthorized - Session: {snapshot.debug_info}",
        )
    if status == 403:  # noqa: PLR2004
        return AuthenticationFailedError(
            f"Forbidden - CSRF token present: {csrf_attached}",
        )
    if status == 404:  # noqa: PLR2004
        return ResourceNotFoundError("Resource not found")
    if 400 <= status < 500:  # noqa: PLR2004
        return ApiError(status, "Client error")
    if 500 <= status < 600:  # noqa: PLR2004
        return ApiError(status, "Server error")
    return ApiError(status, "Unknown error")


class Transport:
    """Async HTTP transport bound to one :class:`SessionState`.

    Holds no per-request mutable state, so cancelling an in-flight call
    simply discards its result. The underlying ``httpx.AsyncClient`` is
    created lazily and owns connection pooling.
    """

    def __init__(
        self,
        session: SessionState,
        timeout: float = DEFAULT_TIMEOUT,
        verify_ssl: bool = True,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the transport.

        Args:
            session: Session state to read cookies and CSRF token from.
            timeout: Request timeout in seconds.
            verify_ssl: Verify server certificates. When False, TLS is still
                used; only certificate trust verification is skipped.
            http_transport: Optional httpx transport (e.g. a mock) replacing
                the network layer.

        Raises:
            ValueError: If timeout is not positive.
        """
        if timeout <= 0:
            msg = "timeout must be positive"
            raise ValueError(msg)

        self._session = session
        self._timeout = timeout
        self._verify_ssl = verify_ssl
        self._http_transport = http_transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the underlying httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                verify=self._verify_ssl,
                transport=self._http_transport,
                headers={
                    "Accept": "application/json",
                    "User-Agent": USER_AGENT,
                },
            )
        return self._client

    async def __aenter__(self) -> "Transport":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Close the underlying HTTP client if open."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def get(self, url: str | httpx.URL) -> bytes:
        """Send a GET request.

        Returns:
            Response body bytes.
        """
        response = await self._request("GET", url)
        return response.content

    async def post(
        self,
        url: str | httpx.URL,
        body: bytes | None = None,
        content_type: str | None = None,
    ) -> httpx.Response:
        """Send a POST request with the session's CSRF token.

        Returns:
            The raw response; ``response.content`` holds the body.
        """
        return await self._request("POST", url, body, content_type)

    async def put(
        self,
        url: str | httpx.URL,
        body: bytes | None = None,
        content_type: str | None = None,
    ) -> httpx.Response:
        """Send a PUT request with the session's CSRF token."""
        return await self._request("PUT", url, body, content_type)

    async def delete(self, url: str | httpx.URL) -> httpx.Response:
        """Send a DELETE request with the session's CSRF token."""
        return await self._request("DELETE", url)

    def _build_request(
        self,
        method: str,
        url: str | httpx.URL,
        snapshot: SessionSnapshot,
        body: bytes | None,
        content_type: str | None,
    ) -> httpx.Request:
        headers: dict[str, str] = {}
        if content_type:
            headers["Content-Type"] = content_type

        if method in _WRITE_METHODS and snapshot.csrf_token:
            headers[CSRF_HEADER] = snapshot.csrf_token

        target = httpx.URL(str(url))
        if cookie := snapshot.cookie_header_value(target.host):
            headers["Cookie"] = cookie

        return self.client.build_request(method, target, content=body, headers=headers)

    async def _request(
        self,
        method: str,
        url: str | httpx.URL,
        body: bytes | None = None,
        content_type: str | None = None,
    ) -> httpx.Response:
        """Execute a request and classify its outcome.

        Raises:
            NetworkError: On connect, timeout, DNS or protocol failures.
            InvalidResponseError: If the response could not be read.
            AuthenticationFailedError: On 401 or 403.
            ResourceNotFoundError: On 404.
            ApiError: On any other non-2xx status.
        """
        snapshot = self._session.snapshot()
        request = self._build_request(method, url, snapshot, body, content_type)
        csrf_attached = CSRF_HEADER in request.headers

        start_time = time.time()
        logger.debug(
            "Making API request",
            method=method,
            url=str(request.url),
            csrf=csrf_attached,
            cookie="Cookie" in request.headers,
        )
        try:
            response = await self.client.send(request)
        except httpx.TransportError as exc:
            logger.warning(
                "API request failed",
                method=method,
                url=str(request.url),
                error=repr(exc),
                duration_seconds=round(time.time() - start_time, 3),
            )
            raise NetworkError(exc) from exc
        except httpx.RequestError as exc:
            raise InvalidResponseError(str(exc)) from exc

        duration = time.time() - start_time
        error = classify_status(response.status_code, snapshot, csrf_attached)
        if error is not None:
            logger.warning(
                "API request returned error status",
                method=method,
                url=str(request.url),
                http_status=response.status_code,
                error=str(error),
                duration_seconds=round(duration, 3),
            )
            raise error

        logger.debug(
            "API request completed",
            method=method,
            http_status=response.status_code,
            duration_seconds=round(duration, 3),
        )
        return response
