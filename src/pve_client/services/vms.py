"""QEMU virtual machine operations."""

from ..types import VirtualMachine, VMConfig, VMCurrentConfig
from .guests import GuestService


class VMService(GuestService[VirtualMachine, VMCurrentConfig]):
    """Lifecycle and configuration of QEMU virtual machines."""

    kind = "qemu"
    label = "VM"
    model = VirtualMachine
    config_model = VMCurrentConfig

    async def pause(self, node: str, vmid: int) -> str | None:
        return await self._status_action(node, vmid, "suspend")

    async def resume(self, node: str, vmid: int) -> str | None:
        return await self._status_action(node, vmid, "resume")

    async def create(self, node: str, vmid: int, config: VMConfig) -> VMCurrentConfig:
        """Create a VM and return its configuration as read back from the node."""
        return await self._create(node, vmid, config)

    async def update(self, node: str, vmid: int, config: VMConfig) -> str | None:
        """Apply the non-None fields of ``config`` to an existing VM."""
        return await self._update(node, vmid, config)
