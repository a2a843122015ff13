"""Node operations.

Besides read access to nodes, this module exposes the bulk guest actions
(``startall``, ``stopall``, ``suspendall``) and node power control.
"""

import asyncio
from typing import Any

import structlog

from ..errors import InvalidConfigurationError, ResourceNotFoundError
from ..types import (
    Container,
    DataResponse,
    ListResponse,
    Node,
    NodeStatus,
    VirtualMachine,
)
from .base import BaseService

logger = structlog.get_logger(__name__)

NODE_ACTIONS = frozenset({"reboot", "shutdown"})
MAX_STOP_TIMEOUT = 7200
DEFAULT_STOP_TIMEOUT = 180
# Pause between the stop and start phases of restart_all.
RESTART_PAUSE = 2.0


class NodeService(BaseService):
    """Access to ``/nodes`` and per-node endpoints."""

    async def get(self, node: str) -> Node:
        """Look up a single node by name.

        Raises:
            ResourceNotFoundError: If no node with that name exists.
        """
        for candidate in await self.list():
            if candidate.node == node:
                return candidate
        msg = f"Node '{node}' not found"
        raise ResourceNotFoundError(msg)

    async def get_status(self, node: str) -> NodeStatus:
        response = await self._get(DataResponse[NodeStatus], "nodes", node, "status")
        if response.data is None:
            msg = f"Status of node '{node}' not found"
            raise ResourceNotFoundError(msg)
        return response.data

    async def get_version(self, node: str) -> dict[str, Any]:
        """Return the node's version information as free-form JSON."""
        response = await self._get(
            DataResponse[dict[str, Any]],
            "nodes",
            node,
            "version",
        )
        return response.data or {}

    async def get_virtual_machines(self, node: str) -> list[VirtualMachine]:
        response = await self._get(
            ListResponse[VirtualMachine],
            "nodes",
            node,
            "qemu",
        )
        return response.data

    async def get_containers(self, node: str) -> list[Container]:
        response = await self._get(ListResponse[Container], "nodes", node, "lxc")
        return response.data

    async def set_status(self, node: str, action: str) -> str | None:
        """Reboot or shut down a node.

        Returns:
            The task id (UPID) of the power action, if the server reports one.

        Raises:
            InvalidConfigurationError: If action is not reboot or shutdown.
        """
        if action not in NODE_ACTIONS:
            msg = f"Unsupported node action '{action}', expected reboot or shutdown"
            raise InvalidConfigurationError(msg)
        logger.info("Node power action", node=node, action=action)
        return await self._write(
            "POST",
            "nodes",
            node,
            "status",
            form={"command": action},
        )

    async def start_all(
        self,
        node: str,
        vms: str | None = None,
        force: bool = False,
    ) -> str | None:
        """Start all guests on a node, or the comma-separated ids in ``vms``."""
        form: dict[str, str] = {}
        if vms is not None:
            form["vms"] = vms
        if force:
            form["force"] = "1"
        return await self._write("POST", "nodes", node, "startall", form=form)

    async def suspend_all(self, node: str, vms: str | None = None) -> str | None:
        form = {"vms": vms} if vms is not None else None
        return await self._write("POST", "nodes", node, "suspendall", form=form)

    async def stop_all(
        self,
        node: str,
        vms: str | None = None,
        force: bool = False,
        timeout: int = DEFAULT_STOP_TIMEOUT,
    ) -> str | None:
        """Stop all guests on a node.

        Args:
            node: Node name.
            vms: Comma-separated guest ids; all guests when None.
            force: Hard-stop guests that do not shut down in time.
            timeout: Seconds to wait for shutdown, 0 to 7200.

        Raises:
            InvalidConfigurationError: If timeout is out of range.
        """
        if not 0 <= timeout <= MAX_STOP_TIMEOUT:
            msg = f"Timeout must be between 0 and {MAX_STOP_TIMEOUT} seconds"
            raise InvalidConfigurationError(msg)
        form: dict[str, str] = {"timeout": str(timeout)}
        if vms is not None:
            form["vms"] = vms
        if force:
            form["force"] = "1"
        return await self._write("POST", "nodes", node, "stopall", form=form)

    async def restart_all(
        self,
        node: str,
        vms: str | None = None,
        force: bool = False,
        timeout: int = DEFAULT_STOP_TIMEOUT,
    ) -> None:
        """Stop then start guests on a node.

        Not a native API endpoint: issues ``stopall``, waits briefly, then
        ``startall``.
        """
        await self.stop_all(node, vms=vms, force=force, timeout=timeout)
        await asyncio.sleep(RESTART_PAUSE)
        await self.start_all(node, vms=vms, force=force)

    async def list(self) -> list[Node]:
        response = await self._get(ListResponse[Node], "nodes")
        return response.data
