"""ZooKeeper ``srvr`` four-letter-word status client.

A ``srvr`` exchange is a plain TCP round trip: write the four bytes, read
until the server closes the connection. A healthy reply looks like::

    Zookeeper version: 3.6.3--6401e4ad, built on 04/08/2021 16:35 GMT
    Latency min/avg/max: 0/0.0/0
    Received: 2
    Sent: 1
    Connections: 1
    Outstanding: 0
    Zxid: 0x100000000
    Mode: follower
    Node count: 5

A server that has not joined a quorum yet answers with a single line saying
it is not currently serving requests. That reply carries no ``Mode`` and is
reported as a per-node error.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import structlog

logger = structlog.get_logger(__name__)

SRVR = b"srvr"
DEFAULT_TIMEOUT = 2.0


class Mode(Enum):
    UNKNOWN = "unknown"
    LEADER = "leader"
    FOLLOWER = "follower"
    OBSERVER = "observer"
    STANDALONE = "standalone"

    @classmethod
    def parse(cls, value: str) -> "Mode":
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.UNKNOWN


@dataclass
class ServerStats:
    server: str
    mode: Mode = Mode.UNKNOWN
    version: str = ""
    min_latency: int = 0
    avg_latency: float = 0.0
    max_latency: int = 0
    received: int = 0
    sent: int = 0
    connections: int = 0
    outstanding: int = 0
    epoch: int = 0
    counter: int = 0
    node_count: int = 0
    error: Optional[Exception] = None


class StatusParseError(ValueError):
    pass


def parse_srvr(server: str, response: str) -> ServerStats:
    """Parse a ``srvr`` reply into ``ServerStats``.

    Raises StatusParseError when the reply has no ``Mode`` line.
    """
    fields = {}
    for line in response.splitlines():
        key, sep, value = line.partition(":")
        if sep:
            fields[key.strip().lower()] = value.strip()

    if "mode" not in fields:
        first = response.strip().splitlines()[0] if response.strip() else "<empty>"
        raise StatusParseError(f"unable to parse srvr response from {server}: {first}")

    stats = ServerStats(server=server, mode=Mode.parse(fields["mode"]))
    stats.version = fields.get("zookeeper version", "").split(",", 1)[0]
    try:
        if "latency min/avg/max" in fields:
            lo, avg, hi = fields["latency min/avg/max"].split("/")
            stats.min_latency = int(float(lo))
            stats.avg_latency = float(avg)
            stats.max_latency = int(float(hi))
        stats.received = int(fields.get("received", 0))
        stats.sent = int(fields.get("sent", 0))
        stats.connections = int(fields.get("connections", 0))
        stats.outstanding = int(fields.get("outstanding", 0))
        stats.node_count = int(fields.get("node count", 0))
        if "zxid" in fields:
            zxid = int(fields["zxid"], 16)
            stats.epoch = zxid >> 32
            stats.counter = zxid & 0xFFFFFFFF
    except ValueError as e:
        raise StatusParseError(f"malformed srvr response from {server}: {e}") from e
    return stats


def split_address(server: str) -> Tuple[str, int]:
    host, _, port = server.rpartition(":")
    return host or "localhost", int(port)


async def four_letter_word(server: str, command: bytes, timeout: float) -> str:
    host, port = split_address(server)

    async def _exchange() -> bytes:
        reader, writer = await asyncio.open_connection(host, port)
        try:
            writer.write(command)
            await writer.drain()
            return await reader.read()
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass

    data = await asyncio.wait_for(_exchange(), timeout=timeout)
    return data.decode("utf-8", errors="replace")


async def fetch_server_stats(servers: Sequence[str], timeout: float = DEFAULT_TIMEOUT) -> Tuple[List[ServerStats], bool]:
    """Query every server in order with ``srvr``.

    Returns one ``ServerStats`` per address plus an ok flag that is false
    when any server failed to answer or answered something unparsable.
    """
    results: List[ServerStats] = []
    ok = True
    for server in servers:
        try:
            response = await four_letter_word(server, SRVR, timeout)
            results.append(parse_srvr(server, response))
        except (OSError, asyncio.TimeoutError, StatusParseError) as e:
            logger.debug("srvr_failed", server=server, error=str(e) or type(e).__name__)
            results.append(ServerStats(server=server, error=e))
            ok = False
    return results, ok


class StatusClient:
    """Batch ``srvr`` client with a fixed per-call timeout."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        self.timeout = timeout

    async def fetch(self, servers: Sequence[str]) -> Tuple[List[ServerStats], bool]:
        return await fetch_server_stats(servers, self.timeout)
