"""Operations shared by QEMU virtual machines and LXC containers.

Both guest kinds live under ``/nodes/{node}/{kind}/{vmid}`` and expose the
same lifecycle endpoints; :class:`GuestService` implements them once,
parameterized by the path segment and the response models.
"""

from typing import ClassVar, Generic, TypeVar

import structlog

from ..errors import ResourceNotFoundError
from ..types import (
    ClusterResource,
    Container,
    ContainerCurrentConfig,
    DataResponse,
    GuestConfig,
    ListResponse,
    VirtualMachine,
    VMCurrentConfig,
)
from .base import BaseService

logger = structlog.get_logger(__name__)

G = TypeVar("G", VirtualMachine, Container)
C = TypeVar("C", VMCurrentConfig, ContainerCurrentConfig)


class GuestService(BaseService, Generic[G, C]):
    kind: ClassVar[str]
    label: ClassVar[str]
    model: ClassVar[type]
    config_model: ClassVar[type]

    async def list(self, node: str | None = None) -> list[G]:
        """List guests on one node, or across the cluster when node is None."""
        if node is not None:
            response = await self._get(
                ListResponse[self.model],
                "nodes",
                node,
                self.kind,
            )
            return response.data

        resources = await self._get(
            ListResponse[ClusterResource],
            "cluster",
            "resources",
            type="vm",
        )
        return [
            self.model.model_validate(r.model_dump())
            for r in resources.data
            if r.type == self.kind
        ]

    async def get(self, node: str, vmid: int) -> C:
        """Fetch a guest's stored configuration.

        Raises:
            ResourceNotFoundError: If the server returns no data.
        """
        response = await self._get(
            DataResponse[self.config_model],
            "nodes",
            node,
            self.kind,
            vmid,
            "config",
        )
        if response.data is None:
            msg = f"{self.label} {vmid} not found on node {node}"
            raise ResourceNotFoundError(msg)
        return response.data

    async def get_status(self, node: str, vmid: int) -> G:
        """Fetch a guest's current runtime status."""
        response = await self._get(
            DataResponse[self.model],
            "nodes",
            node,
            self.kind,
            vmid,
            "status",
            "current",
        )
        if response.data is None:
            msg = f"{self.label} {vmid} status not found on node {node}"
            raise ResourceNotFoundError(msg)
        return response.data

    async def _status_action(
        self,
        node: str,
        vmid: int,
        action: str,
        form: dict[str, str] | None = None,
    ) -> str | None:
        logger.info(
            "Guest status change",
            kind=self.kind,
            node=node,
            vmid=vmid,
            action=action,
        )
        return await self._write(
            "POST",
            "nodes",
            node,
            self.kind,
            vmid,
            "status",
            action,
            form=form,
        )

    async def start(self, node: str, vmid: int) -> str | None:
        return await self._status_action(node, vmid, "start")

    async def stop(self, node: str, vmid: int, force: bool = False) -> str | None:
        return await self._status_action(
            node,
            vmid,
            "stop",
            form={"force": "1"} if force else None,
        )

    async def restart(self, node: str, vmid: int) -> str | None:
        return await self._status_action(node, vmid, "reboot")

    async def _create(self, node: str, vmid: int, config: GuestConfig) -> C:
        form = {"vmid": str(vmid), **config.to_form(creating=True)}
        await self._write("POST", "nodes", node, self.kind, form=form)
        return await self.get(node, vmid)

    async def _update(self, node: str, vmid: int, config: GuestConfig) -> str | None:
        return await self._write(
            "PUT",
            "nodes",
            node,
            self.kind,
            vmid,
            "config",
            form=config.to_form(),
        )

    async def delete(self, node: str, vmid: int, purge: bool = False) -> str | None:
        """Destroy a guest.

        Args:
            purge: Also remove the guest from backup jobs, replication and HA.
        """
        return await self._write(
            "DELETE",
            "nodes",
            node,
            self.kind,
            vmid,
            params={"purge": "1"} if purge else None,
        )
