"""Wire types for the Proxmox VE REST API.

Pydantic models representing the structure of data returned by the
``/api2/json`` endpoints. Every response is wrapped in a ``{"data": ...}``
envelope; :class:`DataResponse` and :class:`ListResponse` model that
envelope generically. Unknown fields are retained on every resource model
since the API adds fields between releases.
"""

from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class Ticket(BaseModel):
    """Authentication ticket returned by ``POST /access/ticket``.

    A ticket without a ``ticket`` string cannot be used for authenticated
    calls. The ticket value is excluded from ``repr`` so it does not end up
    in logs or tracebacks.
    """

    model_config = ConfigDict(populate_by_name=True)

    username: str
    csrf_prevention_token: str | None = Field(
        default=None,
        alias="CSRFPreventionToken",
    )
    clustername: str | None = None
    ticket: str | None = Field(default=None, repr=False)

    @property
    def is_usable(self) -> bool:
        return bool(self.ticket)


class TicketResponse(BaseModel):
    """Login response envelope."""

    data: Ticket


class DataResponse(BaseModel, Generic[T]):
    """Generic single-item envelope. ``data`` is None when nothing matched."""

    data: T | None = None
    errors: dict[str, str] | list[str] | None = None
    success: bool | None = None
    total: int | None = None


class ListResponse(BaseModel, Generic[T]):
    """Generic list envelope."""

    data: list[T]
    errors: dict[str, str] | list[str] | None = None
    success: bool | None = None
    total: int | None = None


class _Resource(BaseModel):
    model_config = ConfigDict(extra="allow")


class Node(_Resource):
    """Cluster node as returned by ``GET /nodes``."""

    node: str
    id: str | None = None
    type: str | None = None
    status: str | None = None

    # CPU
    cpu: float | None = None
    maxcpu: int | None = None

    # Memory and disk (bytes)
    mem: int | None = None
    maxmem: int | None = None
    disk: int | None = None
    maxdisk: int | None = None

    uptime: int | None = None
    level: str | None = None

    @property
    def is_online(self) -> bool:
        return self.status == "online"


class MemoryInfo(_Resource):
    used: int | None = None
    total: int | None = None
    free: int | None = None


class DiskInfo(_Resource):
    used: int | None = None
    total: int | None = None
    avail: int | None = None


class NodeStatus(_Resource):
    """Detailed node status from ``GET /nodes/{node}/status``."""

    cpu: float | None = None
    cpuinfo: dict[str, Any] | None = None
    memory: MemoryInfo | None = None
    rootfs: DiskInfo | None = None
    uptime: int | None = None
    loadavg: list[float] | None = None
    kversion: str | None = None
    pveversion: str | None = None


class _Guest(_Resource):
    """Fields shared by QEMU virtual machines and LXC containers."""

    vmid: int | None = None
    name: str | None = None
    node: str | None = None
    status: str | None = None
    type: str | None = None

    # Resources
    cpus: float | None = None
    cpu: float | None = None
    maxmem: int | None = None
    mem: int | None = None
    maxdisk: int | None = None
    disk: int | None = None

    # I/O counters
    netin: int | None = None
    netout: int | None = None
    diskread: int | None = None
    diskwrite: int | None = None

    uptime: int | None = None
    template: bool | None = None
    tags: str | None = None

    @property
    def is_running(self) -> bool:
        return self.status == "running"

    @property
    def is_stopped(self) -> bool:
        return self.status == "stopped"


class VirtualMachine(_Guest):
    """QEMU virtual machine."""

    agent: bool | None = None
    qmpstatus: str | None = None

    @property
    def is_paused(self) -> bool:
        return self.status == "paused" or self.qmpstatus == "paused"


class Container(_Guest):
    """LXC container."""

    unprivileged: bool | None = None
    ostype: str | None = None
    hostname: str | None = None


class _CurrentConfig(_Resource):
    """Stored guest configuration from ``GET .../{vmid}/config``.

    Unlike the status models, most values here are option strings
    (``cpu: host``, ``net0: virtio=...,bridge=vmbr0``). Numbers are accepted
    wherever a string is declared. Device entries (``net0``, ``scsi0``, ...)
    are kept as extra fields.
    """

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    memory: int | str | None = None
    cores: int | None = None
    description: str | None = None
    onboot: bool | None = None
    protection: bool | None = None
    template: bool | None = None
    tags: str | None = None
    digest: str | None = None


class VMCurrentConfig(_CurrentConfig):
    """QEMU virtual machine configuration."""

    name: str | None = None
    sockets: int | None = None
    cpu: str | None = None
    agent: str | None = None
    boot: str | None = None
    ostype: str | None = None
    machine: str | None = None
    bios: str | None = None


class ContainerCurrentConfig(_CurrentConfig):
    """LXC container configuration."""

    hostname: str | None = None
    swap: int | None = None
    arch: str | None = None
    ostype: str | None = None
    rootfs: str | None = None
    unprivileged: bool | None = None


class ClusterResource(_Resource):
    """Entry of ``GET /cluster/resources``."""

    id: str
    type: str
    status: str | None = None
    name: str | None = None
    node: str | None = None
    vmid: int | None = None
    storage: str | None = None

    cpu: float | None = None
    maxcpu: float | None = None
    mem: int | None = None
    maxmem: int | None = None
    disk: int | None = None
    maxdisk: int | None = None
    uptime: int | None = None
    template: int | None = None


class ClusterStatusEntry(_Resource):
    """Entry of ``GET /cluster/status`` (one ``cluster`` row plus one per node)."""

    type: str
    name: str
    id: str | None = None
    nodeid: int | None = None
    online: int | None = None
    quorate: int | None = None
    votes: int | None = None
    nodes: int | None = None
    ip: str | None = None


def _flag(value: bool) -> str:
    return "1" if value else "0"


class GuestConfig(BaseModel):
    """Base for guest configuration payloads sent as form parameters."""

    # Fields sent only on creation
    _create_only: ClassVar[frozenset[str]] = frozenset()
    # Dict fields whose entries become top-level parameters (net0, scsi0, ...)
    _expanded: ClassVar[frozenset[str]] = frozenset()
    # Python field name -> API parameter name
    _renamed: ClassVar[dict[str, str]] = {}

    def to_form(self, *, creating: bool = False) -> dict[str, str]:
        """Marshal non-None fields into API form parameters.

        Args:
            creating: Include parameters only accepted on creation.

        Returns:
            Mapping of parameter name to string value.
        """
        params: dict[str, str] = {}
        for field_name in type(self).model_fields:
            value = getattr(self, field_name)
            if value is None:
                continue
            if field_name in self._create_only and not creating:
                continue
            if field_name in self._expanded:
                params.update({k: str(v) for k, v in value.items()})
                continue
            key = self._renamed.get(field_name, field_name)
            params[key] = _flag(value) if isinstance(value, bool) else str(value)
        return params


class VMConfig(GuestConfig):
    """Parameters for creating or updating a QEMU virtual machine."""

    _create_only: ClassVar[frozenset[str]] = frozenset(
        {"net", "scsi", "virtio", "ide", "sata"},
    )
    _expanded: ClassVar[frozenset[str]] = _create_only

    name: str | None = None
    memory: int | None = None
    cores: int | None = None
    cpu: str | None = None
    boot: str | None = None
    description: str | None = None
    onboot: bool | None = None
    tags: str | None = None
    protection: bool | None = None

    # Devices, keyed by API parameter (e.g. {"net0": "virtio,bridge=vmbr0"})
    net: dict[str, str] | None = None
    scsi: dict[str, str] | None = None
    virtio: dict[str, str] | None = None
    ide: dict[str, str] | None = None
    sata: dict[str, str] | None = None


class ContainerConfig(GuestConfig):
    """Parameters for creating or updating an LXC container."""

    _create_only: ClassVar[frozenset[str]] = frozenset(
        {
            "rootfs",
            "ostemplate",
            "unprivileged",
            "ostype",
            "password",
            "ssh_public_keys",
            "net",
            "mp",
        },
    )
    _expanded: ClassVar[frozenset[str]] = frozenset({"net", "mp"})
    _renamed: ClassVar[dict[str, str]] = {"ssh_public_keys": "ssh-public-keys"}

    hostname: str | None = None
    memory: int | None = None
    cores: int | None = None
    cpuunits: int | None = None
    description: str | None = None
    onboot: bool | None = None
    tags: str | None = None
    protection: bool | None = None

    # Creation-only parameters
    rootfs: str | None = None
    ostemplate: str | None = None
    unprivileged: bool | None = None
    ostype: str | None = None
    password: str | None = Field(default=None, repr=False)
    ssh_public_keys: str | None = None

    # Devices, keyed by API parameter (e.g. {"net0": "name=eth0,bridge=vmbr0"})
    net: dict[str, str] | None = None
    mp: dict[str, str] | None = None
