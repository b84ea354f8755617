"""Shared fixtures: an in-memory container runtime, a scripted status client
and a sleep that records instead of waiting."""

import sys
from pathlib import Path

import pytest

# Ensure src is importable
ROOT = Path(__file__).parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from zkensemble.protocol.srvr import Mode, ServerStats  # noqa: E402
from zkensemble.runtime.base import ContainerRuntime  # noqa: E402


def pytest_configure(config):
    config.addinivalue_line("markers", "e2e: end-to-end tests that start real containers (need Docker)")


class FakeContainer:
    def __init__(self, request, host_port):
        self.request = request
        self.ports = {request.exposed_ports[0]: host_port} if request.exposed_ports else {}


class FakeRuntime(ContainerRuntime):
    """Records every call; failures are injected through attributes."""

    def __init__(self, first_host_port=32000):
        self.calls = []
        self.networks = []
        self.started = []
        self.fail_network = None
        self.fail_start = False
        self.fail_port_for = None
        self._next_port = first_host_port

    async def create_network(self, name):
        self.calls.append(("create_network", name))
        if name == self.fail_network:
            raise RuntimeError(f"network {name} refused")
        self.networks.append(name)
        return name

    async def start_containers(self, requests):
        self.calls.append(("start_containers", len(requests)))
        if self.fail_start:
            raise RuntimeError("container exited")
        handles = []
        for r in requests:
            handles.append(FakeContainer(r, str(self._next_port)))
            self._next_port += 1
        self.started.extend(handles)
        return handles

    async def mapped_port(self, handle, port):
        self.calls.append(("mapped_port", handle.request.hostname, port))
        if handle.request.hostname == self.fail_port_for:
            raise LookupError("no binding")
        return handle.ports[port]


def stats(server, mode=Mode.UNKNOWN, error=None):
    return ServerStats(server=server, mode=mode, error=error)


class ScriptedStatusClient:
    """Replays scripted ``fetch`` results.

    Each script entry is either a list of modes (a successful batch) or an
    exception (an unsuccessful batch where every node carries that error).
    The last entry repeats once the script runs out.
    """

    def __init__(self, *script):
        self.script = list(script)
        self.calls = []

    async def fetch(self, servers):
        self.calls.append(list(servers))
        step = self.script[min(len(self.calls), len(self.script)) - 1]
        if isinstance(step, Exception):
            return [stats(s, error=step) for s in servers], False
        if isinstance(step, tuple):
            return step
        return [stats(s, mode) for s, mode in zip(servers, step)], True


class RecordingSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def runtime():
    return FakeRuntime()


@pytest.fixture
def recording_sleep():
    return RecordingSleep()
