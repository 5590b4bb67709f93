"""dockerstats - concurrent resource statistics collection for Docker containers."""

from dockerstats.collector import (
    StatsCollector,
    StatsMessage,
    collect_container,
    collect_stats,
    read_stats_stream,
)
from dockerstats.config import (
    CollectorSettings,
    DockerSettings,
    DockerStatsConfig,
    LoggingSettings,
    load_config,
)
from dockerstats.docker_handler import AsyncDockerClientWrapper
from dockerstats.exceptions import (
    ClientInitError,
    CollectionTimeoutError,
    ConfigurationError,
    ContainerStatsError,
    DiscoveryError,
    DockerStatsError,
    EmptyResultDiagnostic,
    StatsConnectionError,
    StatsDecodeError,
)
from dockerstats.models import (
    CollectionResult,
    ContainerMetrics,
    ContainerRef,
    CPUStats,
    CPUUsage,
    MemoryStats,
    NetworkInterfaceStats,
)

__version__ = "0.1.0"

__all__ = [
    # Config
    "DockerStatsConfig",
    "DockerSettings",
    "CollectorSettings",
    "LoggingSettings",
    "load_config",
    # Docker
    "AsyncDockerClientWrapper",
    # Collection
    "StatsCollector",
    "StatsMessage",
    "collect_container",
    "collect_stats",
    "read_stats_stream",
    # Models
    "CollectionResult",
    "ContainerMetrics",
    "ContainerRef",
    "CPUStats",
    "CPUUsage",
    "MemoryStats",
    "NetworkInterfaceStats",
    # Errors
    "DockerStatsError",
    "ConfigurationError",
    "ClientInitError",
    "DiscoveryError",
    "EmptyResultDiagnostic",
    "ContainerStatsError",
    "StatsConnectionError",
    "StatsDecodeError",
    "CollectionTimeoutError",
]
