"""Per-node identity and launch descriptors derived from a topology."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import List, Mapping, Tuple

from zkensemble.config.topology import Topology


@dataclass(frozen=True)
class NodeSpec:
    server_id: str
    hostname: str
    peer_entry: str


@dataclass(frozen=True)
class LaunchRequest:
    image: str
    hostname: str
    env: Mapping[str, str] = field(default_factory=dict)
    exposed_ports: Tuple[str, ...] = ()
    networks: Tuple[str, ...] = ()
    # Readiness: the host port mapped to this container port accepts connections
    wait_port: str = ""


def tcp_port(port: int) -> str:
    return f"{port}/tcp"


def generate_node_specs(topology: Topology) -> List[NodeSpec]:
    """Derive ``node_count`` specs with ordinals ``1..N`` in order."""
    prefix = topology.hostname_prefix.lower() + "-"
    suffix = f":{topology.peer_port}:{topology.election_port}"
    specs = []
    for ordinal in range(1, topology.node_count + 1):
        server_id = str(ordinal)
        hostname = prefix + server_id
        specs.append(NodeSpec(server_id=server_id, hostname=hostname, peer_entry=hostname + suffix))
    return specs


def peer_list(specs: List[NodeSpec]) -> str:
    """The ``ZOOKEEPER_SERVERS`` value every node receives."""
    return ";".join(s.peer_entry for s in specs)


def build_launch_requests(topology: Topology, specs: List[NodeSpec]) -> List[LaunchRequest]:
    servers = peer_list(specs)
    ports = tuple(tcp_port(p) for p in (topology.client_port, topology.peer_port, topology.election_port))
    requests = []
    for spec in specs:
        env = {
            "ZOOKEEPER_SERVER_ID": spec.server_id,
            "ZOOKEEPER_CLIENT_PORT": str(topology.client_port),
            "ZOOKEEPER_SERVERS": servers,
        }
        requests.append(
            LaunchRequest(
                image=topology.image,
                hostname=spec.hostname,
                env=MappingProxyType(env),
                exposed_ports=ports,
                networks=tuple(topology.network_names),
                wait_port=ports[0],
            )
        )
    return requests
