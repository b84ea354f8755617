"""Error kinds raised while bringing up an ensemble.

Every stage wraps the underlying failure with its own context and chains it
(``raise ... from``), so the original exception stays reachable through
``__cause__``.
"""

from __future__ import annotations

from typing import Optional


class ClusterError(Exception):
    """Base class for all bring-up failures."""


class NetworkCreationError(ClusterError):
    def __init__(self, network: str, reason: object = None):
        self.network = network
        msg = f"failed to create network {network!r}"
        if reason is not None:
            msg += f": {reason}"
        super().__init__(msg)


class ContainerStartError(ClusterError):
    """The parallel container batch failed as a unit."""


class PortMappingError(ClusterError):
    def __init__(self, node: str, port: str, reason: object = None):
        self.node = node
        self.port = port
        msg = f"failed to get mapped port {port} for ZooKeeper node {node!r}"
        if reason is not None:
            msg += f": {reason}"
        super().__init__(msg)


class ProbeError(ClusterError):
    """A batch status query reported failure.

    ``cause`` holds the first per-node error by ordinal, when any node
    reported one.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


class ClusterStartTimeoutError(ClusterError):
    def __init__(self, attempts: int, last_error: Optional[BaseException] = None):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"failed to start ZooKeeper cluster within {attempts} attempts")
