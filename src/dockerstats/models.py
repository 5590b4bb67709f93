"""
Pydantic data models for dockerstats.

This module defines the structures that flow through a collection round:
- Raw statistics samples as reported by the Docker stats endpoint
- Container references returned by discovery
- The combined result of one round

Statistics models mirror the daemon's JSON field names so a decoded sample
round-trips without any derived computation. Unknown fields are ignored;
missing or null numeric fields decode as zero.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from dockerstats.exceptions import DockerStatsError

# =============================================================================
# Raw statistics models
# =============================================================================


class _StatsModel(BaseModel):
    """Base for wire-format models: frozen, tolerant of nulls and unknown keys."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        """Treat explicit JSON nulls as absent so field defaults apply."""
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class NetworkInterfaceStats(_StatsModel):
    """
    Traffic counters for a single network interface.

    Parameters
    ----------
    rx_bytes, rx_dropped, rx_errors, rx_packets : int
        Received counters
    tx_bytes, tx_dropped, tx_errors, tx_packets : int
        Transmitted counters
    """

    rx_bytes: int = 0
    rx_dropped: int = 0
    rx_errors: int = 0
    rx_packets: int = 0
    tx_bytes: int = 0
    tx_dropped: int = 0
    tx_errors: int = 0
    tx_packets: int = 0


class MemoryStats(_StatsModel):
    """Memory usage and limit in bytes."""

    usage: int = Field(0, ge=0, description="Memory usage (bytes)")
    limit: int = Field(0, ge=0, description="Memory limit (bytes)")


class CPUUsage(_StatsModel):
    """
    Cumulative CPU time counters for a container.

    Parameters
    ----------
    percpu_usage : list[int]
        Usage per core, indexed by core number. Empty on cgroup v2 hosts.
    usage_in_usermode : int
        Time spent in user mode
    total_usage : int
        Total CPU time consumed
    usage_in_kernelmode : int
        Time spent in kernel mode
    """

    percpu_usage: list[int] = Field(default_factory=list)
    usage_in_usermode: int = 0
    total_usage: int = 0
    usage_in_kernelmode: int = 0


class CPUStats(_StatsModel):
    """One CPU snapshot: container usage plus the host-wide system counter."""

    cpu_usage: CPUUsage = Field(default_factory=CPUUsage)
    system_cpu_usage: int = 0


class ContainerMetrics(_StatsModel):
    """
    One raw statistics sample for a container.

    Carries the container's identity and, on failure, the error that prevented
    a valid sample. A record with ``error`` set holds no usable statistics,
    whatever its numeric fields contain.

    Parameters
    ----------
    id : str
        Container ID assigned by the daemon
    name : str
        Human-readable container name
    error : DockerStatsError, optional
        Failure cause; excluded from serialization
    networks : dict[str, NetworkInterfaceStats]
        Per-interface traffic counters keyed by interface name
    memory_stats : MemoryStats
        Memory usage and limit
    cpu_stats : CPUStats
        Current CPU snapshot
    precpu_stats : CPUStats
        Preceding CPU snapshot, needed to compute a CPU delta

    Examples
    --------
    >>> record = ContainerMetrics.model_validate_json(
    ...     '{"memory_stats": {"usage": 1024, "limit": 4096}}'
    ... )
    >>> record.memory_stats.usage
    1024
    >>> record.ok
    True
    """

    model_config = ConfigDict(frozen=True, extra="ignore", arbitrary_types_allowed=True)

    id: str = ""
    name: str = ""
    error: DockerStatsError | None = Field(None, exclude=True)
    networks: dict[str, NetworkInterfaceStats] = Field(default_factory=dict)
    memory_stats: MemoryStats = Field(default_factory=MemoryStats)
    cpu_stats: CPUStats = Field(default_factory=CPUStats)
    precpu_stats: CPUStats = Field(default_factory=CPUStats)

    @property
    def ok(self) -> bool:
        """Return True when the record carries valid statistics."""
        return self.error is None

    def with_identity(self, ref: "ContainerRef") -> "ContainerMetrics":
        """Return a copy stamped with the container's ID and name."""
        return self.model_copy(update={"id": ref.id, "name": ref.name})

    @classmethod
    def error_record(cls, ref: "ContainerRef", error: DockerStatsError) -> "ContainerMetrics":
        """Build an empty record for ``ref`` carrying ``error``."""
        return cls(id=ref.id, name=ref.name, error=error)


# =============================================================================
# Discovery and round models
# =============================================================================


class ContainerRef(BaseModel):
    """
    Identity of a running container as returned by discovery.

    Examples
    --------
    >>> ContainerRef(id="abc123", name="/web").name
    'web'
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Container ID")
    name: str = Field("", description="Container display name")

    @field_validator("name")
    @classmethod
    def strip_leading_slash(cls, v: str) -> str:
        """Docker reports names with a leading '/'."""
        return v[1:] if v.startswith("/") else v

    @property
    def short_id(self) -> str:
        """Return the 12-character short ID."""
        return self.id[:12]


@dataclass
class CollectionResult:
    """Outcome of one collection round.

    Unpacks as ``(results, errors)``.

    Parameters
    ----------
    results : list[ContainerMetrics]
        Valid records, at most one per container ID.
    errors : list[DockerStatsError]
        Errors encountered during the round.
    started_at : datetime
        When the round started.
    finished_at : datetime, optional
        When the round finished.
    """

    results: list[ContainerMetrics] = field(default_factory=list)
    errors: list[DockerStatsError] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    finished_at: datetime | None = None

    def __iter__(self) -> Iterator[Any]:
        yield self.results
        yield self.errors

    @property
    def ok(self) -> bool:
        """Return True when the round produced no errors."""
        return not self.errors

    @property
    def duration_seconds(self) -> float | None:
        """Return the round's wall-clock duration, if finished."""
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def get(self, container_id: str) -> ContainerMetrics | None:
        """Return the record for ``container_id``, if one was collected."""
        for record in self.results:
            if record.id == container_id:
                return record
        return None
