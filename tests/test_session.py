"""Tests for SessionState: transitions, cookie derivation and matching, atomicity."""

import threading
import time

import pytest

from pve_client.session import COOKIE_NAME, SessionCookie, SessionState
from pve_client.types import Ticket

from .conftest import BASE_URL

# ---------------------------------------------------------------------------
# State transitions
# ---------------------------------------------------------------------------


def test_new_session_is_unauthenticated(session: SessionState):
    """A fresh session has neither ticket nor cookies."""
    assert not session.is_authenticated
    assert session.current_ticket is None
    assert session.cookies == ()


def test_store_then_is_authenticated(session: SessionState, ticket: Ticket):
    """store() immediately moves the session to authenticated."""
    session.store(ticket)
    assert session.is_authenticated
    assert session.current_ticket is ticket


def test_clear_then_is_unauthenticated(session: SessionState, ticket: Ticket):
    """clear() immediately moves the session back to unauthenticated."""
    session.store(ticket)
    session.clear()
    assert not session.is_authenticated
    assert session.current_ticket is None
    assert session.cookies == ()


def test_clear_is_idempotent(session: SessionState, ticket: Ticket):
    """Clearing twice, or clearing a fresh session, is not an error."""
    session.clear()
    session.store(ticket)
    session.clear()
    session.clear()
    assert not session.is_authenticated


def test_store_replaces_previous_ticket(session: SessionState, ticket: Ticket):
    """A newer login replaces ticket and cookie instead of adding a second cookie."""
    session.store(ticket)
    newer = Ticket(username="root@pam", ticket="NEWER", CSRFPreventionToken="T2")
    session.store(newer)

    assert session.current_ticket is newer
    assert len(session.cookies) == 1
    assert session.cookies[0].value == "NEWER"
    assert session.current_csrf_token() == "T2"


def test_store_rejects_ticket_without_ticket_string(session: SessionState):
    """A ticket without a ticket string is not usable and is refused."""
    with pytest.raises(ValueError, match="no ticket string"):
        session.store(Ticket(username="root@pam"))
    assert not session.is_authenticated


# ---------------------------------------------------------------------------
# Cookie derivation
# ---------------------------------------------------------------------------


def test_cookie_derived_from_ticket(session: SessionState, ticket: Ticket):
    """The stored cookie carries the ticket under PVEAuthCookie for the API host."""
    session.store(ticket)
    (cookie,) = session.cookies
    assert cookie.name == COOKIE_NAME
    assert cookie.value == ticket.ticket
    assert cookie.domain == "pve.example.com"
    assert cookie.path == "/"


def test_cookie_secure_only_for_https(ticket: Ticket):
    """The secure flag follows the base URL scheme."""
    https_session = SessionState("https://pve.example.com:8006")
    http_session = SessionState("http://pve.example.com:8006")
    https_session.store(ticket)
    http_session.store(ticket)
    assert https_session.cookies[0].secure
    assert not http_session.cookies[0].secure


def test_cookie_expiry_is_one_hour_ahead(session: SessionState, ticket: Ticket):
    """Expiry metadata is set roughly one hour after issuance."""
    before = time.time()
    session.store(ticket)
    expires_at = session.cookies[0].expires_at
    assert expires_at is not None
    assert before + 3590 <= expires_at <= time.time() + 3610


def test_expired_cookie_still_counts_as_authenticated(ticket: Ticket):
    """Local expiry is advisory; only the server decides the session is gone."""
    cookie = SessionCookie(name=COOKIE_NAME, value="x", domain="h", expires_at=0.0)
    assert cookie.is_expired

    session = SessionState(BASE_URL)
    session.store(ticket)
    assert session.is_authenticated


def test_cookie_value_not_in_repr(session: SessionState, ticket: Ticket):
    """Neither the cookie nor the ticket repr leaks the ticket string."""
    session.store(ticket)
    assert ticket.ticket not in repr(session.cookies[0])
    assert ticket.ticket not in repr(ticket)


# ---------------------------------------------------------------------------
# Cookie header matching
# ---------------------------------------------------------------------------


def test_cookie_header_exact_domain_match(session: SessionState, ticket: Ticket):
    """A cookie for pve.example.com is sent to pve.example.com."""
    session.store(ticket)
    header = session.cookie_header_value("pve.example.com")
    assert header == f"PVEAuthCookie={ticket.ticket}"


def test_cookie_header_suffix_domain_match(ticket: Ticket):
    """A cookie for .example.com is sent to any host under example.com."""
    session = SessionState(BASE_URL, cookie_domain=".example.com")
    session.store(ticket)
    assert session.cookie_header_value("pve.example.com") == (
        f"PVEAuthCookie={ticket.ticket}"
    )
    assert session.cookie_header_value("node2.example.com") is not None


def test_cookie_header_other_domain_does_not_match(ticket: Ticket):
    """A cookie for .otherdomain.com is never sent to pve.example.com."""
    session = SessionState(BASE_URL, cookie_domain=".otherdomain.com")
    session.store(ticket)
    assert session.cookie_header_value("pve.example.com") is None


def test_cookie_header_exact_domain_does_not_match_subdomain(
    session: SessionState,
    ticket: Ticket,
):
    """Without a leading dot the domain must match exactly."""
    session.store(ticket)
    assert session.cookie_header_value("sub.pve.example.com") is None


def test_cookie_header_absent_when_unauthenticated(session: SessionState):
    """No cookie means no Cookie header value."""
    assert session.cookie_header_value("pve.example.com") is None


# ---------------------------------------------------------------------------
# CSRF token and diagnostics
# ---------------------------------------------------------------------------


def test_current_csrf_token(session: SessionState, ticket: Ticket):
    """The CSRF token follows the stored ticket."""
    assert session.current_csrf_token() is None
    session.store(ticket)
    assert session.current_csrf_token() == "XYZ"
    session.clear()
    assert session.current_csrf_token() is None


def test_debug_info_truncates_ticket(session: SessionState, ticket: Ticket):
    """Diagnostics show ticket presence without exposing the whole ticket."""
    session.store(ticket)
    info = session.debug_info
    assert "authenticated=True" in info
    assert "cookies=1" in info
    assert "hasCSRF=True" in info
    assert ticket.ticket not in info
    assert ticket.ticket[:10] in info


def test_sessions_are_independent(ticket: Ticket):
    """Two sessions in one process never share state."""
    first = SessionState(BASE_URL)
    second = SessionState(BASE_URL)
    first.store(ticket)
    assert first.is_authenticated
    assert not second.is_authenticated


# ---------------------------------------------------------------------------
# Atomicity under concurrency
# ---------------------------------------------------------------------------


def test_concurrent_readers_never_see_torn_state(session: SessionState):
    """Readers racing a store/clear writer always see ticket and cookie together."""
    stop = threading.Event()
    violations: list[str] = []

    def writer():
        for i in range(2000):
            session.store(Ticket(username="root@pam", ticket=f"T{i}"))
            session.clear()
        stop.set()

    def reader():
        while not stop.is_set():
            snapshot = session.snapshot()
            has_ticket = snapshot.ticket is not None
            has_cookie = len(snapshot.cookies) > 0
            if has_ticket != has_cookie:
                violations.append("torn")
            if has_ticket and snapshot.cookies[0].value != snapshot.ticket.ticket:
                violations.append("mismatch")

    readers = [threading.Thread(target=reader) for _ in range(8)]
    writer_thread = threading.Thread(target=writer)
    for t in readers:
        t.start()
    writer_thread.start()
    writer_thread.join()
    for t in readers:
        t.join()

    assert violations == []
