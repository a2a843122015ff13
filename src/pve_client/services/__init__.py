"""Per-resource services.

Each service checks the shared session before every call and translates
typed method calls into requests on the shared transport.
"""

from .cluster import ClusterService
from .containers import ContainerService
from .nodes import NodeService
from .vms import VMService

__all__ = [
    "ClusterService",
    "ContainerService",
    "NodeService",
    "VMService",
]
