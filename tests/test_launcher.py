"""Tests for network creation, batch start and port resolution."""

import pytest

from zkensemble.cluster.launcher import ClusterLauncher
from zkensemble.cluster.nodes import build_launch_requests, generate_node_specs
from zkensemble.config.topology import Topology
from zkensemble.errors import ContainerStartError, NetworkCreationError, PortMappingError


def make_launcher(runtime, **topology_fields):
    topology = Topology(**topology_fields)
    requests = build_launch_requests(topology, generate_node_specs(topology))
    return ClusterLauncher(runtime, topology, requests)


@pytest.mark.asyncio
async def test_networks_created_in_order(runtime):
    launcher = make_launcher(runtime, network_names=("zk-a", "zk-b", "zk-c"))

    await launcher.ensure_networks()

    assert runtime.networks == ["zk-a", "zk-b", "zk-c"]


@pytest.mark.asyncio
async def test_network_failure_names_network_and_stops(runtime):
    runtime.fail_network = "zk-b"
    launcher = make_launcher(runtime, network_names=("zk-a", "zk-b", "zk-c"))

    with pytest.raises(NetworkCreationError) as exc_info:
        await launcher.ensure_networks()

    assert exc_info.value.network == "zk-b"
    assert "'zk-b'" in str(exc_info.value)
    assert isinstance(exc_info.value.__cause__, RuntimeError)
    assert runtime.networks == ["zk-a"]


@pytest.mark.asyncio
async def test_start_all_returns_handles_in_ordinal_order(runtime):
    launcher = make_launcher(runtime, node_count=3)

    handles = await launcher.start_all()

    assert [h.request.hostname for h in handles] == ["zookeeper-1", "zookeeper-2", "zookeeper-3"]
    assert runtime.calls == [("start_containers", 3)]


@pytest.mark.asyncio
async def test_start_all_fails_as_a_unit(runtime):
    runtime.fail_start = True
    launcher = make_launcher(runtime, node_count=3)

    with pytest.raises(ContainerStartError) as exc_info:
        await launcher.start_all()

    assert "container exited" in str(exc_info.value)
    assert isinstance(exc_info.value.__cause__, RuntimeError)


@pytest.mark.asyncio
async def test_start_all_rejects_short_batch(runtime):
    launcher = make_launcher(runtime, node_count=3)

    async def short_batch(requests):
        return []

    runtime.start_containers = short_batch

    with pytest.raises(ContainerStartError):
        await launcher.start_all()


@pytest.mark.asyncio
async def test_resolve_ports_in_order(runtime):
    launcher = make_launcher(runtime, node_count=3, client_port=12181)
    handles = await launcher.start_all()

    ports = await launcher.resolve_ports(handles)

    assert ports == ["32000", "32001", "32002"]
    assert [c for c in runtime.calls if c[0] == "mapped_port"] == [
        ("mapped_port", "zookeeper-1", "12181/tcp"),
        ("mapped_port", "zookeeper-2", "12181/tcp"),
        ("mapped_port", "zookeeper-3", "12181/tcp"),
    ]


@pytest.mark.asyncio
async def test_port_mapping_failure_names_node(runtime):
    runtime.fail_port_for = "zookeeper-2"
    launcher = make_launcher(runtime, node_count=3)
    handles = await launcher.start_all()

    with pytest.raises(PortMappingError) as exc_info:
        await launcher.resolve_ports(handles)

    assert exc_info.value.node == "zookeeper-2"
    assert exc_info.value.port == "2181/tcp"
    assert isinstance(exc_info.value.__cause__, LookupError)
    # Resolution is sequential: the third node is never asked
    assert ("mapped_port", "zookeeper-3", "2181/tcp") not in runtime.calls
