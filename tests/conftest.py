"""Pytest configuration and shared fixtures."""

import asyncio
import copy
import json
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest

from dockerstats.exceptions import DiscoveryError, StatsConnectionError
from dockerstats.models import ContainerRef

SAMPLE_STATS = {
    "read": "2024-01-01T00:00:01.000000000Z",
    "preread": "2024-01-01T00:00:00.000000000Z",
    "name": "/web",
    "id": "ignored-by-decoder",
    "networks": {
        "eth0": {
            "rx_bytes": 5338,
            "rx_dropped": 0,
            "rx_errors": 0,
            "rx_packets": 36,
            "tx_bytes": 648,
            "tx_dropped": 0,
            "tx_errors": 0,
            "tx_packets": 8,
        },
        "eth5": {
            "rx_bytes": 4641,
            "rx_dropped": 1,
            "rx_errors": 2,
            "rx_packets": 26,
            "tx_bytes": 690,
            "tx_dropped": 3,
            "tx_errors": 4,
            "tx_packets": 9,
        },
    },
    "memory_stats": {"usage": 6537216, "limit": 67108864, "max_usage": 6651904},
    "cpu_stats": {
        "cpu_usage": {
            "percpu_usage": [8646879, 24472255, 36438778, 30657443],
            "usage_in_usermode": 50000000,
            "total_usage": 100215355,
            "usage_in_kernelmode": 30000000,
        },
        "system_cpu_usage": 739306590000000,
        "online_cpus": 4,
    },
    "precpu_stats": {
        "cpu_usage": {
            "percpu_usage": [8646879, 24350896, 36438778, 30657443],
            "usage_in_usermode": 50000000,
            "total_usage": 100093996,
            "usage_in_kernelmode": 30000000,
        },
        "system_cpu_usage": 9492140000000,
        "online_cpus": 4,
    },
}


class FakeStream:
    """In-memory stats body returning queued lines, then EOF.

    Items may be bytes (a line) or an exception instance (raised on read).
    """

    def __init__(self, items=(), delay: float = 0.0):
        self._items = list(items)
        self.delay = delay
        self.reads = 0

    async def readline(self) -> bytes:
        if self.delay:
            await asyncio.sleep(self.delay)
        self.reads += 1
        if not self._items:
            return b""
        item = self._items.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


class FakeDockerClient:
    """Runtime client double with per-container behaviour.

    Parameters
    ----------
    containers : list[ContainerRef]
        Result of discovery.
    streams : dict[str, FakeStream | Exception]
        Stats body per container ID, or the error raised when opening it.
    open_delays : dict[str, float]
        Artificial latency before a container's stream opens.
    discovery_error : Exception, optional
        Raised by discovery when set.
    close_errors : dict[str, Exception]
        Raised when a container's stream is released.
    """

    def __init__(
        self,
        containers=(),
        streams=None,
        open_delays=None,
        discovery_error=None,
        close_errors=None,
    ):
        self.containers = list(containers)
        self.streams = streams or {}
        self.open_delays = open_delays or {}
        self.discovery_error = discovery_error
        self.close_errors = close_errors or {}
        self.stream_modes: dict[str, bool] = {}
        self.opened: list[str] = []
        self.closed_streams: list[str] = []
        self.entered = False
        self.exited = False

    async def __aenter__(self):
        self.entered = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.exited = True

    async def list_running_containers(self):
        if self.discovery_error is not None:
            raise self.discovery_error
        return list(self.containers)

    @asynccontextmanager
    async def open_stats_stream(self, container_id, container_name=None, stream=False):
        self.opened.append(container_id)
        self.stream_modes[container_id] = stream
        delay = self.open_delays.get(container_id, 0.0)
        if delay:
            await asyncio.sleep(delay)
        body = self.streams.get(container_id, FakeStream())
        if isinstance(body, BaseException):
            raise body
        try:
            yield body
        finally:
            self.closed_streams.append(container_id)
        if container_id in self.close_errors:
            raise self.close_errors[container_id]


@pytest.fixture
def sample_stats():
    """Return a deep copy of a realistic stats payload."""
    return copy.deepcopy(SAMPLE_STATS)


@pytest.fixture
def sample_line(sample_stats):
    """Return the sample payload as one newline-terminated JSON line."""
    return json.dumps(sample_stats).encode() + b"\n"


@pytest.fixture
def container_ref():
    """Return a reference to a running container."""
    return ContainerRef(id="a" * 64, name="/web")


@pytest.fixture
def make_client():
    """Build a FakeDockerClient factory from container IDs."""

    def _make(ids=(), **kwargs):
        containers = [ContainerRef(id=cid, name=f"/{cid}-name") for cid in ids]
        return FakeDockerClient(containers=containers, **kwargs)

    return _make


@pytest.fixture
def connection_error():
    """Build a StatsConnectionError as raised when a stream cannot be opened."""

    def _make(container_id, container_name=None):
        return StatsConnectionError(
            f"Error obtaining container stats for {container_id}",
            container_id=container_id,
            container_name=container_name,
            details={"error": "404 no such container", "status": 404},
        )

    return _make


@pytest.fixture
def discovery_error():
    """Return a DiscoveryError as raised when listing fails."""
    return DiscoveryError("Error obtaining container listing", details={"error": "refused"})


@pytest.fixture
def mock_aiodocker(monkeypatch):
    """Replace aiodocker.Docker with a mock client."""
    import aiodocker

    client = MagicMock()
    client.version = AsyncMock(return_value={"Version": "24.0.0"})
    client.close = AsyncMock()
    client.containers.list = AsyncMock(return_value=[])

    factory = MagicMock(return_value=client)
    monkeypatch.setattr(aiodocker, "Docker", factory)
    client.factory = factory
    return client
