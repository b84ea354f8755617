"""Network creation, parallel container start and client port lookup."""

from __future__ import annotations

from typing import Any, List, Sequence

import structlog

from zkensemble.cluster.nodes import LaunchRequest, tcp_port
from zkensemble.config.topology import Topology
from zkensemble.errors import ContainerStartError, NetworkCreationError, PortMappingError
from zkensemble.runtime.base import ContainerRuntime

logger = structlog.get_logger(__name__)


class ClusterLauncher:
    def __init__(self, runtime: ContainerRuntime, topology: Topology, requests: Sequence[LaunchRequest]):
        self.runtime = runtime
        self.topology = topology
        self.requests = list(requests)

    async def ensure_networks(self) -> None:
        """Create every topology network, one at a time."""
        for name in self.topology.network_names:
            try:
                await self.runtime.create_network(name)
            except Exception as e:
                raise NetworkCreationError(name, e) from e

    async def start_all(self) -> List[Any]:
        """Start every container as one batch; handles come back in ordinal order.

        A failure anywhere fails the whole batch. Containers that did start
        are left to the runtime.
        """
        try:
            handles = await self.runtime.start_containers(self.requests)
        except Exception as e:
            raise ContainerStartError(f"failed to start ZooKeeper containers: {e}") from e
        if len(handles) != len(self.requests):
            raise ContainerStartError(
                f"runtime returned {len(handles)} containers for {len(self.requests)} requests"
            )
        logger.info("containers_started", count=len(handles))
        return list(handles)

    async def resolve_ports(self, handles: Sequence[Any]) -> List[str]:
        """Map each container's client port to its host port."""
        port = tcp_port(self.topology.client_port)
        ports = []
        for request, handle in zip(self.requests, handles):
            try:
                host_port = await self.runtime.mapped_port(handle, port)
            except Exception as e:
                raise PortMappingError(request.hostname, port, e) from e
            logger.debug("port_mapped", hostname=request.hostname, port=port, host_port=host_port)
            ports.append(str(host_port))
        return ports
