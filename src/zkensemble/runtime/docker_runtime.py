"""Container runtime backed by the Docker SDK.

The SDK is blocking, so every engine call runs in a worker thread via
``asyncio.to_thread``. Cancelling the awaiting task abandons the wait but
cannot interrupt a call that is already inside the engine.
"""

from __future__ import annotations

import asyncio
import socket
import time
from typing import Any, List, Optional, Sequence

import docker
import structlog
from docker.errors import APIError, ImageNotFound, NotFound

from zkensemble.cluster.nodes import LaunchRequest
from zkensemble.config.settings import get_settings
from zkensemble.runtime.base import ContainerRuntime
from zkensemble.utils.logging_config import get_logger

logger = structlog.get_logger(__name__)


class DockerRuntime(ContainerRuntime):

    def __init__(self, client=None, startup_timeout: Optional[float] = None,
                 host: Optional[str] = None, poll_interval: float = 0.25):
        settings = get_settings()
        self.client = client or docker.from_env()
        self.startup_timeout = startup_timeout if startup_timeout is not None else settings.STARTUP_TIMEOUT
        self.host = host or settings.PROBE_HOST
        self.poll_interval = poll_interval

    async def create_network(self, name: str) -> Any:
        return await asyncio.to_thread(self._ensure_network, name)

    async def start_containers(self, requests: Sequence[LaunchRequest]) -> List[Any]:
        tasks = [asyncio.to_thread(self._start_one, r) for r in requests]
        return list(await asyncio.gather(*tasks))

    async def mapped_port(self, handle: Any, port: str) -> str:
        return await asyncio.to_thread(self._mapped_port, handle, port)

    def _ensure_network(self, name: str):
        for network in self.client.networks.list(names=[name]):
            # The names filter matches substrings
            if network.name == name:
                logger.debug("network_exists", network=name)
                return network
        try:
            network = self.client.networks.create(name, driver="bridge")
        except APIError as e:
            if e.status_code != 409:
                raise
            network = self.client.networks.get(name)
        logger.info("network_created", network=name)
        return network

    def _create(self, request: LaunchRequest):
        kwargs = dict(
            hostname=request.hostname,
            environment=dict(request.env),
            ports={p: None for p in request.exposed_ports},
            detach=True,
        )
        if request.networks:
            # Attach the first network at creation so the hostname resolves to
            # an address on the ensemble network rather than the default bridge
            first = request.networks[0]
            kwargs["network"] = first
            kwargs["networking_config"] = {
                first: self.client.api.create_endpoint_config(aliases=[request.hostname]),
            }
        try:
            return self.client.containers.create(request.image, **kwargs)
        except ImageNotFound:
            logger.info("image_pull", image=request.image)
            self.client.images.pull(request.image)
            return self.client.containers.create(request.image, **kwargs)

    def _start_one(self, request: LaunchRequest):
        log = get_logger(__name__, hostname=request.hostname)
        container = self._create(request)
        for name in request.networks[1:]:
            # Peers find each other by hostname, so register it as an alias
            self.client.networks.get(name).connect(container, aliases=[request.hostname])
        container.start()
        log.info("container_started", container=container.short_id)
        if request.wait_port:
            self._wait_for_port(container, request)
        return container

    def _wait_for_port(self, container, request: LaunchRequest) -> None:
        deadline = time.monotonic() + self.startup_timeout
        while time.monotonic() < deadline:
            container.reload()
            if container.status in ("exited", "dead"):
                raise RuntimeError(f"container {request.hostname} exited before becoming ready")
            bindings = (container.ports or {}).get(request.wait_port)
            if bindings:
                host_port = int(bindings[0]["HostPort"])
                if self._host_port_open(host_port) and self._listening_inside(container, request.wait_port):
                    logger.debug("container_ready", hostname=request.hostname, port=host_port)
                    return
            time.sleep(self.poll_interval)
        raise TimeoutError(
            f"container {request.hostname} port {request.wait_port} not reachable "
            f"within {self.startup_timeout}s"
        )

    def _host_port_open(self, host_port: int) -> bool:
        try:
            with socket.create_connection((self.host, host_port), timeout=1.0):
                return True
        except OSError:
            return False

    def _listening_inside(self, container, port: str) -> bool:
        """Check the port from inside the container.

        Docker's userland proxy accepts on the host port whether or not
        anything listens behind it, so a host-side connect alone is not enough.
        """
        number = int(port.split("/", 1)[0])
        check = (
            f"cat /proc/net/tcp* | awk '{{print $2}}' | grep -i ':{number:04x}$'"
            f" || nc -z -w 1 127.0.0.1 {number}"
            f" || bash -c '</dev/tcp/127.0.0.1/{number}'"
        )
        result = container.exec_run(["/bin/sh", "-c", check])
        return result.exit_code == 0

    def _mapped_port(self, container, port: str) -> str:
        try:
            container.reload()
        except NotFound as e:
            raise LookupError(f"container {container.id} no longer exists") from e
        bindings = (container.ports or {}).get(port)
        if not bindings:
            raise LookupError(f"no host binding for {port}")
        return str(bindings[0]["HostPort"])
