"""Shared plumbing for the per-resource services."""

from collections.abc import Mapping
from typing import Any, TypeVar
from urllib.parse import quote, urlencode

import httpx
import pydantic

from ..errors import DecodingError, InvalidResponseError, NotAuthenticatedError
from ..session import SessionState
from ..transport import FORM_CONTENT_TYPE, Transport
from ..types import DataResponse

M = TypeVar("M", bound=pydantic.BaseModel)

API_PREFIX = "api2/json"


class BaseService:
    """Base class for the node, VM, container and cluster services.

    Every public method checks the session first and raises
    :class:`NotAuthenticatedError` without reaching the transport when no
    login has happened.
    """

    def __init__(
        self,
        transport: Transport,
        session: SessionState,
        base_url: str | httpx.URL,
    ):
        self._transport = transport
        self._session = session
        self._base_url = str(base_url).rstrip("/")

    def _ensure_authenticated(self) -> None:
        if not self._session.is_authenticated:
            raise NotAuthenticatedError

    def _build_url(self, *segments: str | int, params: Mapping | None = None) -> str:
        """Build ``{base}/api2/json/<segments>`` with escaped segments."""
        path = "/".join(quote(str(s), safe="") for s in segments)
        url = f"{self._base_url}/{API_PREFIX}/{path}"
        if params:
            url += "?" + urlencode(params)
        return url

    @staticmethod
    def _decode(body: bytes, model: type[M]) -> M:
        """Validate a JSON body against a response model.

        Raises:
            InvalidResponseError: If the body is empty.
            DecodingError: If the body does not match the model.
        """
        if not body:
            msg = "empty response body"
            raise InvalidResponseError(msg)
        try:
            return model.model_validate_json(body)
        except pydantic.ValidationError as exc:
            raise DecodingError(exc) from exc

    async def _get(self, model: type[M], *segments: str | int, **params) -> M:
        self._ensure_authenticated()
        body = await self._transport.get(self._build_url(*segments, params=params))
        return self._decode(body, model)

    async def _write(
        self,
        method: str,
        *segments: str | int,
        form: Mapping[str, str] | None = None,
        params: Mapping | None = None,
    ) -> str | None:
        """Send a form-encoded write request and return the task id, if any."""
        self._ensure_authenticated()
        url = self._build_url(*segments, params=params)
        body = urlencode(form).encode() if form else None

        if method == "POST":
            response = await self._transport.post(url, body, FORM_CONTENT_TYPE)
        elif method == "PUT":
            response = await self._transport.put(url, body, FORM_CONTENT_TYPE)
        elif method == "DELETE":
            response = await self._transport.delete(url)
        else:
            msg = f"Unsupported write method: {method}"
            raise ValueError(msg)

        envelope = self._decode(response.content, DataResponse[Any])
        return envelope.data if isinstance(envelope.data, str) else None
