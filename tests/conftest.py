"""Shared fixtures: a call-counting stub of the Proxmox VE API."""

import json
from collections.abc import Callable

import httpx
import pytest

from pve_client import ClientConfig, ProxmoxClient
from pve_client.session import SessionState
from pve_client.types import Ticket

BASE_URL = "https://pve.example.com:8006"
API = f"{BASE_URL}/api2/json"

Handler = Callable[[httpx.Request], httpx.Response]


def json_response(data, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps({"data": data}).encode())


class StubServer:
    """Routes requests by (method, path) and records every request it sees."""

    def __init__(self):
        self.routes: dict[tuple[str, str], Handler] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, handler: Handler | httpx.Response) -> None:
        if isinstance(handler, httpx.Response):
            response = handler
            self.routes[(method, path)] = lambda _request: response
        else:
            self.routes[(method, path)] = handler

    def add_json(self, method: str, path: str, data, status_code: int = 200) -> None:
        self.add(method, path, json_response(data, status_code))

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404)
        return handler(request)

    @property
    def call_count(self) -> int:
        return len(self.requests)

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)


@pytest.fixture
def stub() -> StubServer:
    return StubServer()


@pytest.fixture
def ticket() -> Ticket:
    return Ticket(
        username="root@pam",
        ticket="PVE:root@pam:ABC123",
        CSRFPreventionToken="XYZ",
        clustername="lab",
    )


@pytest.fixture
def client(stub: StubServer) -> ProxmoxClient:
    """Unauthenticated client wired to the stub server."""
    return ProxmoxClient(
        ClientConfig(base_url=BASE_URL),
        http_transport=stub.transport(),
    )


@pytest.fixture
def authed_client(client: ProxmoxClient, ticket: Ticket) -> ProxmoxClient:
    """Client whose session already holds a ticket."""
    client.session.store(ticket)
    return client


@pytest.fixture
def session() -> SessionState:
    return SessionState(BASE_URL)
