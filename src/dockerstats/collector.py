"""Concurrent statistics collection for running containers.

A collection round lists the running containers, starts one collector task per
container and merges everything the tasks publish on a shared queue into a
single :class:`CollectionResult`. A slow or failing container never blocks or
invalidates the others: its failure becomes an error entry and the round goes
on with the rest.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import aclosing
from datetime import UTC, datetime
from typing import Any, NamedTuple, Protocol

import aiohttp
from pydantic import ValidationError

from dockerstats.config import DockerStatsConfig
from dockerstats.docker_handler import AsyncDockerClientWrapper
from dockerstats.exceptions import (
    ClientInitError,
    CollectionTimeoutError,
    ContainerStatsError,
    DiscoveryError,
    EmptyResultDiagnostic,
    StatsConnectionError,
    StatsDecodeError,
)
from dockerstats.models import CollectionResult, ContainerMetrics, ContainerRef

logger = logging.getLogger(__name__)

# Failures while reading a response body; ValueError is raised for over-long lines
READ_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, OSError, ValueError)


class StatsStream(Protocol):
    """Readable byte stream of newline-delimited JSON samples."""

    async def readline(self) -> bytes: ...


class StatsMessage(NamedTuple):
    """Item published on the round queue.

    ``final`` marks the last message a collector publishes for its container.
    """

    record: ContainerMetrics
    final: bool


# =============================================================================
# Stream reader
# =============================================================================


async def read_stats_stream(
    ref: ContainerRef, stream: StatsStream
) -> AsyncIterator[ContainerMetrics]:
    """Decode a container's statistics feed into records.

    Parameters
    ----------
    ref : ContainerRef
        Container the stream belongs to; its ID and name are stamped on every
        record, error records included.
    stream : StatsStream
        Open body of the stats response.

    Yields
    ------
    ContainerMetrics
        One record per non-blank line. Lines that fail to decode yield an error
        record and reading continues; a read failure yields one error record
        and ends the sequence.
    """
    while True:
        try:
            line = await stream.readline()
        except READ_ERRORS as e:
            yield ContainerMetrics.error_record(
                ref,
                StatsConnectionError(
                    f"Error reading stats body from Docker engine for container {ref.id}",
                    container_id=ref.id,
                    container_name=ref.name,
                    details={"error": str(e)},
                ),
            )
            return

        if not line:
            return
        line = line.strip()
        if not line:
            continue

        try:
            record = ContainerMetrics.model_validate_json(line)
        except ValidationError as e:
            yield ContainerMetrics.error_record(
                ref,
                StatsDecodeError(
                    f"Could not decode the response from the Docker engine for container {ref.id}",
                    container_id=ref.id,
                    container_name=ref.name,
                    details={"error": str(e), "line": line[:200].decode(errors="replace")},
                ),
            )
            continue

        yield record.with_identity(ref)


# =============================================================================
# Per-container collector
# =============================================================================


async def collect_container(
    client: Any,
    ref: ContainerRef,
    queue: "asyncio.Queue[StatsMessage]",
    *,
    stream: bool = False,
) -> None:
    """Collect one statistics sample for a container onto ``queue``.

    Always publishes exactly one final message: the first valid sample, the
    connection or read error, or a decode error when the stream closed without
    a valid sample. Decode errors seen before that are published as non-final
    messages. The final message is published only once the stream is released.

    Parameters
    ----------
    client : AsyncDockerClientWrapper
        Connected runtime client, shared by all collectors of the round.
    ref : ContainerRef
        Container to collect.
    queue : asyncio.Queue[StatsMessage]
        Round queue.
    stream : bool
        Request the daemon's continuous feed instead of a single sample.
        Collection still stops at the first valid sample.
    """
    outcome: ContainerMetrics | None = None
    try:
        async with client.open_stats_stream(ref.id, ref.name, stream=stream) as body:
            async with aclosing(read_stats_stream(ref, body)) as records:
                async for record in records:
                    if record.ok:
                        logger.debug(f"Received stats for {ref.name} ({ref.short_id})")
                        outcome = record
                        break
                    if isinstance(record.error, StatsDecodeError):
                        reason = record.error.details.get("error")
                        logger.warning(f"{record.error.message}: {reason}")
                        await queue.put(StatsMessage(record, final=False))
                        continue
                    logger.warning(record.error.message)
                    outcome = record
                    break
    except StatsConnectionError as e:
        logger.warning(f"{e.message}: {e.details.get('error')}")
        if outcome is None:
            outcome = ContainerMetrics.error_record(ref, e)
    except Exception as e:
        if outcome is None:
            logger.exception(
                f"Unexpected error collecting stats for {ref.name} ({ref.short_id})"
            )
            error = ContainerStatsError(
                f"Unexpected error collecting stats for container {ref.id}",
                container_id=ref.id,
                container_name=ref.name,
                details={"error": repr(e)},
            )
            outcome = ContainerMetrics.error_record(ref, error)
        else:
            logger.warning(f"Error releasing stats stream for {ref.name} ({ref.short_id}): {e!r}")

    if outcome is None:
        error = StatsDecodeError(
            f"Stats stream for container {ref.id} closed without a valid sample",
            container_id=ref.id,
            container_name=ref.name,
        )
        logger.warning(error.message)
        outcome = ContainerMetrics.error_record(ref, error)
    await queue.put(StatsMessage(outcome, final=True))


# =============================================================================
# Round aggregator
# =============================================================================


class StatsCollector:
    """Runs collection rounds across all running containers.

    Parameters
    ----------
    docker_url : str
        Docker daemon URL.
    timeout : float
        Connect and per-read timeout for daemon requests (seconds).
    round_timeout : float, optional
        Deadline for a whole round (seconds). None disables it.
    client_factory : callable, optional
        Zero-argument callable returning an unconnected runtime client usable
        as an async context manager (default: AsyncDockerClientWrapper).

    Examples
    --------
    >>> collector = StatsCollector()
    >>> results, errors = await collector.collect_round()
    """

    def __init__(
        self,
        docker_url: str = "unix:///var/run/docker.sock",
        timeout: float = 10.0,
        round_timeout: float | None = 30.0,
        client_factory: Callable[[], Any] | None = None,
    ):
        self.docker_url = docker_url
        self.timeout = timeout
        self.round_timeout = round_timeout
        self._client_factory = client_factory or self._default_client

    @classmethod
    def from_config(cls, config: DockerStatsConfig) -> "StatsCollector":
        """Build a collector from loaded configuration."""
        return cls(
            docker_url=config.docker.docker_host,
            timeout=config.docker.docker_timeout_seconds,
            round_timeout=config.collector.round_timeout_seconds,
        )

    def _default_client(self) -> AsyncDockerClientWrapper:
        return AsyncDockerClientWrapper(self.docker_url, timeout=self.timeout)

    async def collect_round(self) -> CollectionResult:
        """Collect one statistics sample from every running container.

        Returns
        -------
        CollectionResult
            Valid records and the errors met along the way. Unpacks as
            ``(results, errors)``.

        Raises
        ------
        ClientInitError
            If the runtime client cannot be established.
        DiscoveryError
            If listing running containers fails.
        """
        result = CollectionResult()

        async with self._client_factory() as client:
            containers = await client.list_running_containers()

            if not containers:
                logger.info("No running containers found")
                result.errors.append(
                    EmptyResultDiagnostic(
                        "No containers returned from Docker socket",
                        details={"url": self.docker_url},
                    )
                )
            else:
                await self._gather(client, containers, result)

        result.finished_at = datetime.now(UTC)
        logger.info(
            f"Collected stats for {len(result.results)}/{len(containers)} containers "
            f"with {len(result.errors)} errors in {result.duration_seconds:.3f}s"
        )
        return result

    async def collect_round_safe(self) -> CollectionResult:
        """Like :meth:`collect_round`, but report round failures as errors.

        A failed round yields an empty result list with the single client or
        discovery error.
        """
        try:
            return await self.collect_round()
        except (ClientInitError, DiscoveryError) as e:
            logger.error(f"Collection round failed: {e.message}")
            return CollectionResult(errors=[e], finished_at=datetime.now(UTC))

    async def watch(
        self, interval_seconds: float = 5.0, count: int | None = None
    ) -> AsyncIterator[CollectionResult]:
        """Yield a round result every ``interval_seconds``.

        Round failures are yielded as error-only results and the loop carries
        on. Stops after ``count`` rounds when given.
        """
        rounds = 0
        while count is None or rounds < count:
            yield await self.collect_round_safe()
            rounds += 1
            if count is None or rounds < count:
                await asyncio.sleep(interval_seconds)

    async def _gather(
        self,
        client: Any,
        containers: list[ContainerRef],
        result: CollectionResult,
    ) -> None:
        """Fan out one collector per container and merge their messages."""
        queue: asyncio.Queue[StatsMessage] = asyncio.Queue(maxsize=len(containers))
        pending = {ref.id: ref for ref in containers}
        seen: set[str] = set()

        tasks = [
            asyncio.create_task(
                collect_container(client, ref, queue), name=f"stats-{ref.short_id}"
            )
            for ref in containers
        ]
        try:
            try:
                async with asyncio.timeout(self.round_timeout):
                    while pending:
                        self._merge(await queue.get(), result, pending, seen)
            except TimeoutError:
                while not queue.empty():
                    self._merge(queue.get_nowait(), result, pending, seen)
                for ref in pending.values():
                    logger.warning(f"Timed out waiting for stats from {ref.name} ({ref.short_id})")
                    result.errors.append(
                        CollectionTimeoutError(
                            f"Timed out after {self.round_timeout}s waiting for "
                            f"stats from container {ref.id}",
                            container_id=ref.id,
                            container_name=ref.name,
                            details={"round_timeout": self.round_timeout},
                        )
                    )
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

    @staticmethod
    def _merge(
        message: StatsMessage,
        result: CollectionResult,
        pending: dict[str, ContainerRef],
        seen: set[str],
    ) -> None:
        record = message.record
        if message.final:
            pending.pop(record.id, None)

        if not record.ok:
            result.errors.append(record.error)
        elif record.id in seen:
            logger.debug(f"Discarding duplicate sample for {record.id}")
        else:
            seen.add(record.id)
            result.results.append(record)


async def collect_stats(config: DockerStatsConfig | None = None) -> CollectionResult:
    """Run a single collection round using ``config`` (default: from environment)."""
    return await StatsCollector.from_config(config or DockerStatsConfig()).collect_round()
