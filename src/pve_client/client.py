"""Client assembly, configuration and logging setup."""

import logging
import os
import pathlib

import httpx
import pydantic
import structlog

from .auth import Authenticator
from .errors import InvalidConfigurationError
from .services import ClusterService, ContainerService, NodeService, VMService
from .session import SessionState
from .transport import DEFAULT_TIMEOUT, Transport
from .types import Ticket

CONFIG_ENV_VAR = "PVE_CLIENT_CONFIG_PATH"
DEFAULT_PORT = 8006
logger = structlog.get_logger(__name__)


class ClientConfig(pydantic.BaseModel):
    """Connection settings for a Proxmox VE endpoint."""

    base_url: str = pydantic.Field(
        description="Base URL of the API, e.g. https://pve.example.com:8006",
    )
    timeout: float = pydantic.Field(
        DEFAULT_TIMEOUT,
        description="Request timeout in seconds",
        gt=0,
    )
    retry_count: int = pydantic.Field(
        3,
        description="Retry budget for caller-level retries; not acted on here",
        ge=0,
    )
    verify_ssl: bool = pydantic.Field(
        True,
        description="Verify TLS certificates (TLS is used either way for https)",
    )
    cookie_domain: str | None = pydantic.Field(
        None,
        description="Session cookie domain; defaults to the API host",
    )
    log_level: str = pydantic.Field("INFO", description="Logging level")

    @classmethod
    def from_host(
        cls,
        host: str,
        port: int = DEFAULT_PORT,
        use_https: bool = True,
        **kwargs,
    ) -> "ClientConfig":
        """Build a config from host, port and scheme.

        Raises:
            InvalidConfigurationError: If the parts do not form a valid URL.
        """
        host = host.strip()
        if not host:
            msg = "host cannot be empty"
            raise InvalidConfigurationError(msg)
        scheme = "https" if use_https else "http"
        base_url = validate_base_url(f"{scheme}://{host}:{port}")
        return cls(base_url=str(base_url), **kwargs)


def validate_base_url(base_url: str) -> httpx.URL:
    """Check that ``base_url`` is an absolute http(s) URL with a host.

    Returns:
        The parsed URL without a trailing slash.

    Raises:
        InvalidConfigurationError: If scheme, host or port is unusable.
    """
    try:
        url = httpx.URL(base_url.strip().rstrip("/"))
    except httpx.InvalidURL as exc:
        msg = f"invalid base URL {base_url!r}: {exc}"
        raise InvalidConfigurationError(msg) from exc

    if url.scheme not in {"http", "https"}:
        msg = f"base URL must start with http:// or https://, got {base_url!r}"
        raise InvalidConfigurationError(msg)
    if not url.host:
        msg = f"base URL has no host: {base_url!r}"
        raise InvalidConfigurationError(msg)
    if url.port is not None and not 0 < url.port < 65536:  # noqa: PLR2004
        msg = f"port out of range in {base_url!r}"
        raise InvalidConfigurationError(msg)
    return url


def configure_logging(log_level_name: str) -> None:
    """Configure structlog for logfmt output."""
    log_level = getattr(logging, log_level_name.upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.EventRenamer("msg"),
            structlog.processors.format_exc_info,
            structlog.processors.LogfmtRenderer(
                key_order=("timestamp", "level", "msg"),
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def load_config(config_path: str | pathlib.Path) -> ClientConfig:
    """Read a :class:`ClientConfig` from a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist.
        pydantic.ValidationError: If the content is not a valid config.
    """
    path = pathlib.Path(config_path)
    if not path.is_file():
        msg = f"Client configuration file not found: {path}"
        raise FileNotFoundError(msg)
    return ClientConfig.model_validate_json(path.read_bytes())


class ProxmoxClient:
    """Entry point to the Proxmox VE API.

    Owns one session, one transport and the services built on them, so
    several clients in one process never share authentication state.
    Use as an async context manager to release connections on exit.

    Example::

        async with ProxmoxClient(ClientConfig(base_url="https://pve:8006")) as pve:
            await pve.authenticate("root@pam", password)
            nodes = await pve.nodes.list()
    """

    def __init__(
        self,
        config: ClientConfig,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            config: Connection settings.
            http_transport: Optional httpx transport replacing the network
                layer (used for testing).

        Raises:
            InvalidConfigurationError: If the base URL is unusable.
        """
        base_url = validate_base_url(config.base_url)
        self.config = config
        self.base_url = str(base_url).rstrip("/")

        self._session = SessionState(self.base_url, cookie_domain=config.cookie_domain)
        self._transport = Transport(
            self._session,
            timeout=config.timeout,
            verify_ssl=config.verify_ssl,
            http_transport=http_transport,
        )
        self._authenticator = Authenticator(
            self._transport,
            self._session,
            self.base_url,
        )

        service_args = (self._transport, self._session, self.base_url)
        self.nodes = NodeService(*service_args)
        self.vms = VMService(*service_args)
        self.containers = ContainerService(*service_args)
        self.cluster = ClusterService(*service_args)

        if not config.verify_ssl:
            logger.warning(
                "TLS certificate verification disabled",
                base_url=self.base_url,
            )

    @classmethod
    def create(
        cls,
        host: str,
        port: int = DEFAULT_PORT,
        use_https: bool = True,
    ) -> "ProxmoxClient":
        """Create a client from host, port and scheme."""
        return cls(ClientConfig.from_host(host, port=port, use_https=use_https))

    @property
    def session(self) -> SessionState:
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._session.is_authenticated

    @property
    def current_ticket(self) -> Ticket | None:
        return self._session.current_ticket

    @property
    def session_debug_info(self) -> str:
        return self._session.debug_info

    async def authenticate(self, username: str, password: str) -> Ticket:
        """Log in with ``user@realm`` credentials and start a session."""
        return await self._authenticator.login(username, password)

    def logout(self) -> None:
        """Forget the current session. The API has no logout endpoint."""
        self._session.clear()

    async def close(self) -> None:
        await self._transport.close()

    async def __aenter__(self) -> "ProxmoxClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def create_client(config_path: str | pathlib.Path | None = None) -> ProxmoxClient:
    """Create a client from a JSON config file and configure logging.

    Args:
        config_path: Config file; falls back to the file named by the
            ``PVE_CLIENT_CONFIG_PATH`` environment variable.

    Raises:
        InvalidConfigurationError: If neither a path nor the variable is set.
    """
    resolved_path = config_path or os.environ.get(CONFIG_ENV_VAR)
    if not resolved_path:
        msg = f"no config path given and {CONFIG_ENV_VAR} is not set"
        raise InvalidConfigurationError(msg)
    config = load_config(resolved_path)
    configure_logging(config.log_level)
    client = ProxmoxClient(config)
    logger.info("Created Proxmox client", base_url=client.base_url)
    return client
