"""Error taxonomy for the Proxmox VE client.

Every failure surfaced by the client is exactly one subclass of
:class:`ProxmoxError`. ``str(error)`` is the human-readable description;
the structured payload (reason, status code, cause, ...) is available as
attributes so callers can branch on it programmatically.

Nothing in the client retries automatically. Retry policy belongs to the
caller.
"""


class ProxmoxError(Exception):
    """Base exception for all Proxmox client errors."""


class AuthenticationFailedError(ProxmoxError):
    """Login failed, or the server rejected the session with 401/403."""

    def __init__(self, reason: str, cause: Exception | None = None):
        self.reason = reason
        self.cause = cause
        super().__init__(f"Authentication failed: {reason}")


class NetworkError(ProxmoxError):
    """Transport-level failure (DNS, connection refused, timeout)."""

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"Network error: {cause}")


class ApiError(ProxmoxError):
    """Non-2xx HTTP status not covered by a more specific error."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"API error ({status_code}): {message}")


class DecodingError(ProxmoxError):
    """Response body did not parse into the expected shape."""

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"Failed to decode response: {cause}")


class InvalidResponseError(ProxmoxError):
    """Response was empty or too malformed to classify."""

    def __init__(self, detail: str | None = None):
        self.detail = detail
        msg = "Invalid response from server"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class NotAuthenticatedError(ProxmoxError):
    """An operation was attempted before a successful login."""

    def __init__(self):
        super().__init__("Not authenticated with Proxmox API")


class InvalidConfigurationError(ProxmoxError):
    """Connection parameters or call arguments are not usable."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"Invalid configuration: {message}")


class ResourceNotFoundError(ProxmoxError):
    """A requested resource does not exist (logical or HTTP 404)."""

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"Resource not found: {identifier}")
