"""Thread-safe authentication session state.

Holds the current :class:`~pve_client.types.Ticket` and the
``PVEAuthCookie`` derived from it. Ticket and cookies are stored together
as one immutable :class:`SessionSnapshot` and swapped under a single lock,
so a reader can never observe a ticket without its cookie or a cookie
without its ticket.

The session has two states, unauthenticated (initial) and authenticated.
:meth:`SessionState.store` moves to authenticated from either state and
:meth:`SessionState.clear` moves back. Cookie expiry is advisory metadata
only; the server's 401 is the authoritative signal to log in again.
"""

import time
from dataclasses import dataclass, field
from threading import Lock

import httpx
import structlog

from .types import Ticket

logger = structlog.get_logger(__name__)

COOKIE_NAME = "PVEAuthCookie"
COOKIE_PATH = "/"
# Client-side guess; the server does not report ticket lifetime.
COOKIE_LIFETIME = 3600.0


@dataclass(frozen=True)
class SessionCookie:
    """A cookie replayed on every request once authenticated."""

    name: str
    value: str = field(repr=False)
    domain: str
    path: str = COOKIE_PATH
    secure: bool = False
    expires_at: float | None = None

    @property
    def is_expired(self) -> bool:
        return self.expires_at is not None and time.time() >= self.expires_at

    def matches_host(self, host: str) -> bool:
        """Check whether this cookie should be sent to ``host``.

        A domain starting with a dot matches any host ending with it
        (subdomain matching); any other domain must match exactly.
        """
        host = host.lower()
        domain = self.domain.lower()
        if domain.startswith("."):
            return host.endswith(domain)
        return host == domain

    def same_slot(self, other: "SessionCookie") -> bool:
        return (self.name, self.domain, self.path) == (
            other.name,
            other.domain,
            other.path,
        )


@dataclass(frozen=True)
class SessionSnapshot:
    """Consistent view of the session at one instant."""

    ticket: Ticket | None = None
    cookies: tuple[SessionCookie, ...] = ()

    @property
    def is_authenticated(self) -> bool:
        return self.ticket is not None and len(self.cookies) > 0

    @property
    def csrf_token(self) -> str | None:
        return self.ticket.csrf_prevention_token if self.ticket else None

    def cookie_header_value(self, host: str) -> str | None:
        relevant = [c for c in self.cookies if c.matches_host(host)]
        if not relevant:
            return None
        return "; ".join(f"{c.name}={c.value}" for c in relevant)

    @property
    def debug_info(self) -> str:
        ticket_prefix = "nil"
        if self.ticket is not None and self.ticket.ticket:
            ticket_prefix = self.ticket.ticket[:10]
        return (
            f"authenticated={self.is_authenticated}, "
            f"cookies={len(self.cookies)}, "
            f"hasCSRF={self.csrf_token is not None}, "
            f"ticket={ticket_prefix}..."
        )


_EMPTY = SessionSnapshot()


class SessionState:
    """Session shared by the transport, the authenticator and the services.

    One instance per client; independent clients never share state. All
    methods are safe to call from any thread. The lock only guards the
    reference swap and is never held across I/O.
    """

    def __init__(self, base_url: str | httpx.URL, cookie_domain: str | None = None):
        """Initialize an unauthenticated session.

        Args:
            base_url: API base URL; its host is the default cookie domain and
                its scheme decides the cookie's secure flag.
            cookie_domain: Override for the cookie domain, e.g. ``.example.com``
                to share the session across every node of a cluster.
        """
        url = httpx.URL(str(base_url))
        self._domain = cookie_domain or url.host
        self._secure = url.scheme == "https"
        self._lock = Lock()
        self._snapshot = _EMPTY

    def snapshot(self) -> SessionSnapshot:
        """Return the current ticket and cookies, read atomically."""
        with self._lock:
            return self._snapshot

    @property
    def is_authenticated(self) -> bool:
        return self.snapshot().is_authenticated

    @property
    def current_ticket(self) -> Ticket | None:
        return self.snapshot().ticket

    @property
    def cookies(self) -> tuple[SessionCookie, ...]:
        return self.snapshot().cookies

    @property
    def debug_info(self) -> str:
        return self.snapshot().debug_info

    def current_csrf_token(self) -> str | None:
        return self.snapshot().csrf_token

    def cookie_header_value(self, host: str) -> str | None:
        """Compute the ``Cookie`` header value for a request to ``host``.

        Returns:
            ``name=value`` pairs joined by ``"; "``, or None when no held
            cookie matches the host.
        """
        return self.snapshot().cookie_header_value(host)

    def store(self, ticket: Ticket) -> None:
        """Install a ticket and its session cookie as one atomic update.

        Replaces any prior ticket and any cookie with the same
        (name, domain, path).

        Raises:
            ValueError: If the ticket carries no ticket string.
        """
        if not ticket.is_usable:
            msg = "Ticket has no ticket string"
            raise ValueError(msg)

        cookie = SessionCookie(
            name=COOKIE_NAME,
            value=ticket.ticket or "",
            domain=self._domain,
            path=COOKIE_PATH,
            secure=self._secure,
            expires_at=time.time() + COOKIE_LIFETIME,
        )
        with self._lock:
            kept = tuple(c for c in self._snapshot.cookies if not c.same_slot(cookie))
            self._snapshot = SessionSnapshot(ticket=ticket, cookies=(*kept, cookie))
        logger.debug(
            "Session stored",
            username=ticket.username,
            cookie_domain=cookie.domain,
            secure=cookie.secure,
        )

    def clear(self) -> None:
        """Drop ticket and cookies. Clearing an empty session is a no-op."""
        with self._lock:
            self._snapshot = _EMPTY
        logger.debug("Session cleared")
