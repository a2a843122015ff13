"""Ticket-based login against ``/api2/json/access/ticket``."""

from urllib.parse import urlencode

import httpx
import pydantic
import structlog

from .errors import (
    ApiError,
    AuthenticationFailedError,
    DecodingError,
    InvalidResponseError,
    ResourceNotFoundError,
)
from .session import SessionState
from .transport import FORM_CONTENT_TYPE, Transport
from .types import Ticket, TicketResponse

logger = structlog.get_logger(__name__)

LOGIN_PATH = "api2/json/access/ticket"


class Authenticator:
    """Performs the login exchange and populates the session.

    The login endpoint takes a form-encoded body while the rest of the API
    answers with JSON. Within login, every failure other than a network
    error is reported as :class:`AuthenticationFailedError`; the original
    error is kept as ``cause``.
    """

    def __init__(
        self,
        transport: Transport,
        session: SessionState,
        base_url: str | httpx.URL,
    ):
        self._transport = transport
        self._session = session
        self._login_url = f"{str(base_url).rstrip('/')}/{LOGIN_PATH}"

    @property
    def login_url(self) -> str:
        return self._login_url

    async def login(self, username: str, password: str) -> Ticket:
        """Exchange credentials for a ticket and store it in the session.

        The credentials are not retained after the call. A failed login
        leaves the session untouched.

        Args:
            username: User in ``name@realm`` form (e.g. ``root@pam``).
            password: The user's password.

        Returns:
            The ticket issued by the server.

        Raises:
            AuthenticationFailedError: On rejection, empty or malformed body,
                or a response without a ticket string.
            NetworkError: If the server could not be reached.
        """
        body = urlencode({"username": username, "password": password}).encode()

        try:
            response = await self._transport.post(
                self._login_url,
                body=body,
                content_type=FORM_CONTENT_TYPE,
            )
        except (ApiError, ResourceNotFoundError, InvalidResponseError) as exc:
            logger.warning("Login rejected", username=username, error=str(exc))
            raise AuthenticationFailedError(str(exc), cause=exc) from exc
        except AuthenticationFailedError as exc:
            logger.warning("Login rejected", username=username, error=exc.reason)
            raise

        if not response.content:
            msg = "No data returned from authentication"
            raise AuthenticationFailedError(msg)

        try:
            ticket = TicketResponse.model_validate_json(response.content).data
        except pydantic.ValidationError as exc:
            decoding_error = DecodingError(exc)
            logger.warning("Malformed login response", username=username)
            raise AuthenticationFailedError(
                "Malformed authentication response",
                cause=decoding_error,
            ) from decoding_error

        if not ticket.is_usable:
            msg = "Authentication response contained no ticket"
            raise AuthenticationFailedError(msg)

        self._session.store(ticket)
        logger.info(
            "Logged in",
            username=ticket.username,
            clustername=ticket.clustername,
        )
        return ticket
