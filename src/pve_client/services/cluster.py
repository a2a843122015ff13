"""Cluster-wide operations."""

from typing import Any

from ..types import (
    ClusterResource,
    ClusterStatusEntry,
    DataResponse,
    ListResponse,
    Node,
    VirtualMachine,
)
from .base import BaseService


class ClusterService(BaseService):
    """Access to ``/cluster`` endpoints and cluster backups."""

    async def get_status(self) -> list[ClusterStatusEntry]:
        response = await self._get(
            ListResponse[ClusterStatusEntry],
            "cluster",
            "status",
        )
        return response.data

    async def get_resources(
        self,
        resource_type: str | None = None,
    ) -> list[ClusterResource]:
        """List cluster resources, optionally filtered by type.

        Args:
            resource_type: ``vm``, ``storage``, ``node`` or ``sdn``; all
                types when None.
        """
        params = {"type": resource_type} if resource_type is not None else {}
        response = await self._get(
            ListResponse[ClusterResource],
            "cluster",
            "resources",
            **params,
        )
        return response.data

    async def get_nodes(self) -> list[Node]:
        response = await self._get(
            ListResponse[Node],
            "cluster",
            "resources",
            type="node",
        )
        return response.data

    async def get_virtual_machines(self) -> list[VirtualMachine]:
        resources = await self.get_resources(resource_type="vm")
        return [
            VirtualMachine.model_validate(r.model_dump())
            for r in resources
            if r.type == "qemu"
        ]

    async def get_config(self) -> dict[str, Any]:
        """Return the cluster configuration as free-form JSON."""
        response = await self._get(DataResponse[dict[str, Any]], "cluster", "config")
        return response.data or {}

    async def get_backup_schedule(self) -> list[dict[str, Any]]:
        response = await self._get(ListResponse[dict[str, Any]], "cluster", "backup")
        return response.data

    async def create_backup(
        self,
        node: str,
        storage: str,
        vmids: list[int] | None = None,
    ) -> str | None:
        """Start a snapshot-mode vzdump backup on ``node``.

        Args:
            node: Node that runs the backup job.
            storage: Target storage id.
            vmids: Guests to back up; every guest on the node when None.

        Returns:
            The task id (UPID) of the backup job.
        """
        form = {"storage": storage, "mode": "snapshot"}
        if vmids is not None:
            form["vmid"] = ",".join(str(v) for v in vmids)
        else:
            form["all"] = "1"
        return await self._write("POST", "nodes", node, "vzdump", form=form)
