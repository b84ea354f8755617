"""Role discovery and election convergence for a running ensemble."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, List, Optional, Sequence

import structlog

from zkensemble.errors import ClusterStartTimeoutError, ProbeError
from zkensemble.protocol.srvr import Mode, ServerStats, StatusClient

logger = structlog.get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class ConvergenceProber:
    """Queries every node's ``srvr`` status through its host port."""

    def __init__(self, client_ports: Sequence[str], status_client: Optional[StatusClient] = None,
                 host: str = "localhost", sleep: Optional[Sleep] = None):
        self.client_ports = list(client_ports)
        self.status_client = status_client or StatusClient()
        self.host = host
        self._sleep = sleep or asyncio.sleep

    def addresses(self) -> List[str]:
        return [f"{self.host}:{p}" for p in self.client_ports]

    async def probe(self) -> List[ServerStats]:
        servers = self.addresses()
        stats, ok = await self.status_client.fetch(servers)
        if ok:
            return stats
        for server, s in zip(servers, stats or []):
            if s is not None and s.error is not None:
                raise ProbeError(
                    f"failed to probe ZooKeeper, server {server!r} raised an error: {s.error}",
                    cause=s.error,
                ) from s.error
        raise ProbeError("failed to probe ZooKeeper")

    async def leader(self) -> Optional[str]:
        """Address of the first node reporting leader, or None if there is none yet."""
        try:
            stats = await self.probe()
        except ProbeError as e:
            raise ProbeError(f"failed to identify ZooKeeper leader: {e}", cause=e.cause) from e
        for s in stats:
            if s.mode is Mode.LEADER:
                return s.server
        return None

    async def followers(self) -> List[str]:
        try:
            stats = await self.probe()
        except ProbeError as e:
            raise ProbeError(f"failed to identify ZooKeeper followers: {e}", cause=e.cause) from e
        return [s.server for s in stats if s.mode is Mode.FOLLOWER]

    async def wait_for_convergence(self, retry_count: int, retry_interval: float) -> None:
        """Call ``leader()`` until one call completes without error.

        At most ``retry_count`` attempts, sleeping ``retry_interval`` between
        them but not after the last. Success on the final attempt counts.
        """
        last_error: Optional[ProbeError] = None
        for attempt in range(1, retry_count + 1):
            try:
                leader = await self.leader()
            except ProbeError as e:
                last_error = e
                logger.info("convergence_attempt", attempt=attempt, retries=retry_count, error=str(e))
                if attempt < retry_count:
                    await self._sleep(retry_interval)
                continue
            logger.info("cluster_converged", attempt=attempt, leader=leader)
            return
        raise ClusterStartTimeoutError(retry_count, last_error) from last_error
