"""LXC container operations."""

from ..types import Container, ContainerConfig, ContainerCurrentConfig
from .guests import GuestService


class ContainerService(GuestService[Container, ContainerCurrentConfig]):
    """Lifecycle and configuration of LXC containers."""

    kind = "lxc"
    label = "Container"
    model = Container
    config_model = ContainerCurrentConfig

    async def create(
        self,
        node: str,
        vmid: int,
        config: ContainerConfig,
    ) -> ContainerCurrentConfig:
        """Create a container and return its configuration."""
        return await self._create(node, vmid, config)

    async def update(self, node: str, vmid: int, config: ContainerConfig) -> str | None:
        return await self._update(node, vmid, config)
