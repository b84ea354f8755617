"""Container runtime boundary.

The launcher only needs three things from a container engine: a network,
a batch of started containers, and the host port bound to a container port.
Handles returned by ``start_containers`` are opaque to everything except the
runtime that produced them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List, Sequence

from zkensemble.cluster.nodes import LaunchRequest


class ContainerRuntime(ABC):

    @abstractmethod
    async def create_network(self, name: str) -> Any:
        """Create ``name``, treating an existing network of that name as success."""

    @abstractmethod
    async def start_containers(self, requests: Sequence[LaunchRequest]) -> List[Any]:
        """Start every request in parallel; return handles in request order.

        Raises if any single container fails to start or become ready.
        """

    @abstractmethod
    async def mapped_port(self, handle: Any, port: str) -> str:
        """Host port bound to ``port`` (e.g. ``"2181/tcp"``) of ``handle``."""
