"""
Async Docker client wrapper for dockerstats.

This module provides the runtime-client capability used by a collection round,
built on aiodocker:
- Connection management with an async context manager protocol
- Discovery of running containers
- Opening a container's raw statistics stream

One wrapper instance (one aiohttp session) is shared by every collector task
of a round; aiohttp sessions accept concurrent requests from tasks on the same
event loop.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

import aiodocker
import aiohttp
from aiodocker.exceptions import DockerError
from aiohttp import ClientTimeout

from dockerstats.exceptions import (
    ClientInitError,
    DiscoveryError,
    StatsConnectionError,
)
from dockerstats.models import ContainerRef

logger = logging.getLogger(__name__)

# Failures of a single daemon request
REQUEST_ERRORS = (DockerError, aiohttp.ClientError, asyncio.TimeoutError, OSError)


class AsyncDockerClientWrapper:
    """
    Async wrapper around aiodocker for statistics collection.

    Parameters
    ----------
    docker_url : str, optional
        Docker daemon URL (default: unix:///var/run/docker.sock)
    timeout : float, optional
        Connect and per-read timeout in seconds (default: 10)

    Examples
    --------
    >>> async def example():
    ...     async with AsyncDockerClientWrapper() as client:
    ...         containers = await client.list_running_containers()
    ...         print(f"Found {len(containers)} containers")
    >>> asyncio.run(example())
    Found 0 containers
    """

    def __init__(self, docker_url: str = "unix:///var/run/docker.sock", timeout: float = 10.0):
        self.docker_url = docker_url
        self.timeout = timeout
        self._client: aiodocker.Docker | None = None
        self._connected = False
        logger.debug(f"Initialized AsyncDockerClient with URL: {docker_url}")

    async def connect(self) -> None:
        """
        Connect to Docker daemon.

        Raises
        ------
        ClientInitError
            If the client cannot be created or the daemon does not answer
        """
        if self._connected and self._client:
            logger.debug("Already connected to Docker daemon")
            return

        try:
            # No total timeout: a streaming stats response stays open indefinitely
            self._client = aiodocker.Docker(
                url=self.docker_url,
                timeout=ClientTimeout(
                    total=None, sock_connect=self.timeout, sock_read=self.timeout
                ),
            )
            # Test connection with ping
            await self._client.version()
            self._connected = True
            logger.debug("Connected to Docker daemon successfully")
        except Exception as e:
            logger.error(f"Failed to connect to Docker daemon: {e}")
            await self.close()
            raise ClientInitError(
                f"Cannot connect to Docker daemon at {self.docker_url}",
                details={"url": self.docker_url, "error": str(e)},
            ) from e

    async def close(self) -> None:
        """Close Docker client connection."""
        if self._client:
            await self._client.close()
            self._client = None
            self._connected = False
            logger.debug("Closed Docker client connection")

    @property
    def client(self) -> aiodocker.Docker:
        """
        Get Docker client instance.

        Raises
        ------
        ClientInitError
            If not connected
        """
        if not self._connected or not self._client:
            raise ClientInitError(
                "Docker client not connected. Call connect() first.",
                details={"connected": self._connected},
            )
        return self._client

    async def __aenter__(self) -> "AsyncDockerClientWrapper":
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    # =========================================================================
    # Discovery
    # =========================================================================

    async def list_running_containers(self) -> list[ContainerRef]:
        """
        List running containers.

        The stats endpoint returns nothing useful for stopped containers, so
        only running ones are listed.

        Returns
        -------
        list[ContainerRef]
            ID and display name of each running container

        Raises
        ------
        DiscoveryError
            If listing fails
        """
        try:
            containers = await self.client.containers.list(all=False)
        except REQUEST_ERRORS as e:
            raise DiscoveryError(
                "Error obtaining container listing",
                details={"url": self.docker_url, "error": str(e)},
            ) from e

        refs = []
        for container in containers:
            names = container["Names"] or [container.id]
            refs.append(ContainerRef(id=container.id, name=names[0]))
        logger.debug(f"Discovered {len(refs)} running containers")
        return refs

    # =========================================================================
    # Statistics
    # =========================================================================

    @asynccontextmanager
    async def open_stats_stream(
        self,
        container_id: str,
        container_name: str | None = None,
        stream: bool = False,
    ) -> AsyncIterator[aiohttp.StreamReader]:
        """
        Open the raw statistics feed of a container.

        Parameters
        ----------
        container_id : str
            Container ID
        container_name : str, optional
            Display name, attached to errors
        stream : bool
            Keep the feed open and receive a sample per second (default: False,
            a single sample)

        Yields
        ------
        aiohttp.StreamReader
            Body reader of newline-delimited JSON samples

        Raises
        ------
        StatsConnectionError
            If the request cannot be made or the daemon rejects it

        Examples
        --------
        >>> async with client.open_stats_stream("abc123") as body:
        ...     line = await body.readline()
        """
        async with AsyncExitStack() as stack:
            try:
                response = await stack.enter_async_context(
                    self.client._query(
                        f"containers/{container_id}/stats",
                        method="GET",
                        params={"stream": "1" if stream else "0"},
                    )
                )
            except REQUEST_ERRORS as e:
                details = {"error": str(e)}
                if isinstance(e, DockerError):
                    details["status"] = e.status
                raise StatsConnectionError(
                    f"Error obtaining container stats for {container_id}",
                    container_id=container_id,
                    container_name=container_name,
                    details=details,
                ) from e
            yield response.content

    # =========================================================================
    # System Operations
    # =========================================================================

    async def ping(self) -> bool:
        """
        Ping Docker daemon.

        Returns
        -------
        bool
            True if daemon responds, False otherwise
        """
        try:
            await self.client.version()
            return True
        except REQUEST_ERRORS:
            return False
