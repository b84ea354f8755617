"""Cluster topology and the option callables that shape it.

A topology starts from fresh defaults on every resolution and is shaped by
options applied in order:

    topology = resolve_topology(with_node_count(3), with_retry_count(10))

Nothing here validates the result. A topology with duplicate ports or zero
nodes resolves fine and fails later, when the runtime tries to use it.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Iterable, Optional, Tuple

from zkensemble.config.settings import DEFAULT_IMAGE, Settings, get_settings


@dataclass(frozen=True)
class Topology:
    node_count: int = 1
    hostname_prefix: str = "zookeeper"
    client_port: int = 2181
    peer_port: int = 2888
    election_port: int = 3888
    network_names: Tuple[str, ...] = ("testcontainers",)
    retry_count: int = 30
    retry_interval: float = 2.0
    image: str = DEFAULT_IMAGE


TopologyOption = Callable[[Topology], Topology]


def with_node_count(count: int) -> TopologyOption:
    return lambda t: replace(t, node_count=count)


def with_hostname_prefix(prefix: str) -> TopologyOption:
    return lambda t: replace(t, hostname_prefix=prefix)


def with_client_port(port: int) -> TopologyOption:
    return lambda t: replace(t, client_port=port)


def with_peer_port(port: int) -> TopologyOption:
    return lambda t: replace(t, peer_port=port)


def with_election_port(port: int) -> TopologyOption:
    return lambda t: replace(t, election_port=port)


def with_networks(names: Iterable[str]) -> TopologyOption:
    networks = tuple(names)
    return lambda t: replace(t, network_names=networks)


def with_retry_count(count: int) -> TopologyOption:
    return lambda t: replace(t, retry_count=count)


def with_retry_interval(seconds: float) -> TopologyOption:
    return lambda t: replace(t, retry_interval=float(seconds))


def with_image(image: str) -> TopologyOption:
    return lambda t: replace(t, image=image)


def resolve_topology(*options: TopologyOption, settings: Optional[Settings] = None) -> Topology:
    """Apply ``options`` in order over a fresh default topology."""
    settings = settings or get_settings()
    topology = Topology(image=settings.IMAGE)
    for option in options:
        topology = option(topology)
    return topology
