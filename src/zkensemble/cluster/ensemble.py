"""Ensemble bring-up and the handle returned to test code.

Usage::

    cluster = await start_cluster(with_node_count(3))
    leader = await cluster.leader()
    followers = await cluster.followers()

Stopping the containers is left to the caller; ``cluster.containers`` holds
the runtime's handles for that purpose.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

import structlog

from zkensemble.cluster.launcher import ClusterLauncher
from zkensemble.cluster.nodes import LaunchRequest, NodeSpec, build_launch_requests, generate_node_specs
from zkensemble.cluster.prober import ConvergenceProber, Sleep
from zkensemble.config.settings import get_settings
from zkensemble.config.topology import Topology, TopologyOption, resolve_topology
from zkensemble.protocol.srvr import StatusClient
from zkensemble.runtime.base import ContainerRuntime

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ZooKeeperCluster:
    topology: Topology
    nodes: Tuple[NodeSpec, ...]
    requests: Tuple[LaunchRequest, ...]
    containers: Tuple[Any, ...]
    client_ports: Tuple[str, ...]
    host: str = "localhost"
    status_client: StatusClient = field(default_factory=StatusClient, compare=False, repr=False)

    def _prober(self) -> ConvergenceProber:
        return ConvergenceProber(self.client_ports, self.status_client, host=self.host)

    def addresses(self) -> List[str]:
        return self._prober().addresses()

    def connect_string(self) -> str:
        """Comma-separated ``host:port`` list accepted by ZooKeeper clients."""
        return ",".join(self.addresses())

    async def leader(self) -> Optional[str]:
        return await self._prober().leader()

    async def followers(self) -> List[str]:
        return await self._prober().followers()


async def start_cluster(*options: TopologyOption, runtime: Optional[ContainerRuntime] = None,
                        status_client: Optional[StatusClient] = None,
                        sleep: Optional[Sleep] = None) -> ZooKeeperCluster:
    """Bring up an ensemble and wait until it answers status queries.

    Any failure aborts the sequence and propagates; no handle is returned
    and already-started containers are left running.
    """
    settings = get_settings()
    topology = resolve_topology(*options, settings=settings)
    nodes = generate_node_specs(topology)
    requests = build_launch_requests(topology, nodes)

    if runtime is None:
        from zkensemble.runtime.docker_runtime import DockerRuntime
        runtime = DockerRuntime()
    status_client = status_client or StatusClient(timeout=settings.PROBE_TIMEOUT)

    launcher = ClusterLauncher(runtime, topology, requests)
    await launcher.ensure_networks()
    containers = await launcher.start_all()
    client_ports = await launcher.resolve_ports(containers)

    if len(requests) > 1:
        prober = ConvergenceProber(client_ports, status_client, host=settings.PROBE_HOST, sleep=sleep)
        await prober.wait_for_convergence(topology.retry_count, topology.retry_interval)

    logger.info("cluster_started", nodes=len(nodes), client_ports=client_ports)
    return ZooKeeperCluster(
        topology=topology,
        nodes=tuple(nodes),
        requests=tuple(requests),
        containers=tuple(containers),
        client_ports=tuple(client_ports),
        host=settings.PROBE_HOST,
        status_client=status_client,
    )
