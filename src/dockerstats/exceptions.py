"""
Custom exceptions for the dockerstats collection engine.

The hierarchy separates round-level failures, which abort a collection round,
from per-container failures, which are recorded alongside the results:

- Client and discovery errors (fatal to the round)
- Empty-discovery diagnostics (informational)
- Per-container connection, decode and timeout errors

Every exception carries a human-readable message and an optional details dict
for structured error information.
"""

from typing import Any


class DockerStatsError(Exception):
    """
    Base exception for all dockerstats errors.

    Parameters
    ----------
    message : str
        Human-readable error message
    details : dict[str, Any], optional
        Structured error details for logging/debugging

    Examples
    --------
    >>> error = DockerStatsError("Collection failed", details={"stage": "discovery"})
    >>> error.message
    'Collection failed'
    >>> error.details["stage"]
    'discovery'
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


# Configuration errors
class ConfigurationError(DockerStatsError):
    """Raised when configuration is invalid."""

    pass


# Round-level errors
class ClientInitError(DockerStatsError):
    """
    Raised when a Docker runtime client cannot be established.

    Fatal to the collection round: no container is contacted.
    """

    pass


class DiscoveryError(DockerStatsError):
    """
    Raised when listing the running containers fails.

    Fatal to the collection round: no container is contacted.
    """

    pass


class EmptyResultDiagnostic(DockerStatsError):
    """
    Reported when discovery succeeds but no containers are running.

    Never raised by the engine; it is returned in the round's error list next
    to an empty result list.
    """

    pass


# Per-container errors
class ContainerStatsError(DockerStatsError):
    """
    Base exception for errors attributable to a single container.

    Parameters
    ----------
    message : str
        Human-readable error message
    container_id : str, optional
        ID of the container the error belongs to
    container_name : str, optional
        Display name of the container
    details : dict[str, Any], optional
        Additional error context

    Examples
    --------
    >>> error = ContainerStatsError("boom", container_id="abc123", container_name="web")
    >>> error.container_id
    'abc123'
    >>> error.details["container_name"]
    'web'
    """

    def __init__(
        self,
        message: str,
        container_id: str | None = None,
        container_name: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = dict(details or {})
        details.setdefault("container_id", container_id)
        details.setdefault("container_name", container_name)
        super().__init__(message, details=details)

    @property
    def container_id(self) -> str | None:
        """Return the ID of the container this error belongs to."""
        return self.details.get("container_id")

    @property
    def container_name(self) -> str | None:
        """Return the display name of the container this error belongs to."""
        return self.details.get("container_name")


class StatsConnectionError(ContainerStatsError):
    """
    Raised when opening or reading a container's statistics stream fails.

    Examples include:
    - Container vanished between discovery and the stats request (404)
    - Daemon closed the connection mid-stream
    - Request timeout
    """

    pass


class StatsDecodeError(ContainerStatsError):
    """
    Raised when a statistics line cannot be decoded.

    Also used when a stream closes without a single valid sample.
    """

    pass


class CollectionTimeoutError(ContainerStatsError):
    """Raised when the round deadline expires before a container reports."""

    pass
