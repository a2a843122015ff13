"""Typed async client for the Proxmox VE REST API.

Authenticates with a ticket, keeps the session cookie and CSRF token, and
turns typed method calls into ``/api2/json`` requests whose responses are
decoded into Pydantic models.

Exports:
    ProxmoxClient: Entry point owning session, transport and services.
    ClientConfig: Connection settings.
    ProxmoxError and subclasses: The error taxonomy.
    types: Module containing Pydantic models for API responses.
"""

__version__ = "0.1.0"

from . import types  # noqa: E402
from .client import (  # noqa: E402
    ClientConfig,
    ProxmoxClient,
    configure_logging,
    create_client,
    load_config,
)
from .errors import (  # noqa: E402
    ApiError,
    AuthenticationFailedError,
    DecodingError,
    InvalidConfigurationError,
    InvalidResponseError,
    NetworkError,
    NotAuthenticatedError,
    ProxmoxError,
    ResourceNotFoundError,
)
from .session import SessionState  # noqa: E402
from .types import Ticket  # noqa: E402

__all__ = [
    "ApiError",
    "AuthenticationFailedError",
    "ClientConfig",
    "DecodingError",
    "InvalidConfigurationError",
    "InvalidResponseError",
    "NetworkError",
    "NotAuthenticatedError",
    "ProxmoxClient",
    "ProxmoxError",
    "ResourceNotFoundError",
    "SessionState",
    "Ticket",
    "configure_logging",
    "create_client",
    "load_config",
    "types",
]
