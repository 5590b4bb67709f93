"""CLI entry point for dockerstats.

Runs collection rounds against the local Docker daemon and prints the raw
samples as a table or as JSON.
"""

import asyncio
import contextlib
import json
from typing import Annotated, Any

import typer
from pydantic import ValidationError
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from dockerstats.collector import StatsCollector
from dockerstats.config import DockerStatsConfig, load_config
from dockerstats.exceptions import (
    ClientInitError,
    ConfigurationError,
    DiscoveryError,
    DockerStatsError,
)
from dockerstats.logging_config import setup_logging
from dockerstats.models import CollectionResult

# Create CLI app
app = typer.Typer(
    name="dockerstats",
    help="dockerstats - Concurrent resource statistics for running containers",
    no_args_is_help=True,
)

console = Console()


def _load(
    env_file: str | None,
    docker_host: str | None,
    round_timeout: float | None,
    no_timeout: bool = False,
) -> DockerStatsConfig:
    """Load configuration and apply command-line overrides."""
    try:
        config = load_config(env_file)
    except ConfigurationError as e:
        rprint(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1) from None

    # Assignments are validated like environment values
    try:
        if docker_host:
            config.docker.docker_host = docker_host
        if no_timeout:
            config.collector.round_timeout_seconds = None
        elif round_timeout is not None:
            config.collector.round_timeout_seconds = round_timeout
    except ValidationError as e:
        error = e.errors()[0]
        rprint(f"[red]Error:[/red] Invalid option {error['loc'][0]}: {error['msg']}")
        raise typer.Exit(1) from None

    setup_logging(config.logging)
    return config


def _error_to_dict(error: DockerStatsError) -> dict[str, Any]:
    return {"type": type(error).__name__, "message": error.message, "details": error.details}


def result_to_dict(result: CollectionResult) -> dict[str, Any]:
    """Convert a round result into a JSON-serializable dict."""
    return {
        "started_at": result.started_at.isoformat(),
        "finished_at": result.finished_at.isoformat() if result.finished_at else None,
        "results": [record.model_dump(mode="json") for record in result.results],
        "errors": [_error_to_dict(error) for error in result.errors],
    }


def _print_result(result: CollectionResult, as_json: bool) -> None:
    if as_json:
        typer.echo(json.dumps(result_to_dict(result), default=str))
        return

    table = Table(title="Container Stats")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Mem Usage", justify="right")
    table.add_column("Mem Limit", justify="right")
    table.add_column("CPU Total", justify="right")
    table.add_column("System CPU", justify="right")
    table.add_column("Networks (rx/tx bytes)")

    for record in result.results:
        networks = "\n".join(
            f"{iface}: {stats.rx_bytes}/{stats.tx_bytes}"
            for iface, stats in sorted(record.networks.items())
        )
        table.add_row(
            record.id[:12],
            record.name,
            str(record.memory_stats.usage),
            str(record.memory_stats.limit),
            str(record.cpu_stats.cpu_usage.total_usage),
            str(record.cpu_stats.system_cpu_usage),
            networks or "-",
        )

    console.print(table)

    for error in result.errors:
        rprint(f"[yellow]{type(error).__name__}:[/yellow] {error.message}")


@app.command("collect")
def cmd_collect(
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the round as JSON"),
    ] = False,
    docker_host: Annotated[
        str | None,
        typer.Option("--docker-host", "-H", help="Docker daemon URL"),
    ] = None,
    round_timeout: Annotated[
        float | None,
        typer.Option("--timeout", "-t", help="Round deadline in seconds"),
    ] = None,
    no_timeout: Annotated[
        bool,
        typer.Option("--no-timeout", help="Wait for every container without a round deadline"),
    ] = False,
    env_file: Annotated[
        str | None,
        typer.Option("--env-file", help="Path to a .env file"),
    ] = None,
) -> None:
    """Collect one statistics sample from every running container."""
    config = _load(env_file, docker_host, round_timeout, no_timeout)
    collector = StatsCollector.from_config(config)

    try:
        result = asyncio.run(collector.collect_round())
    except (ClientInitError, DiscoveryError) as e:
        rprint(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1) from None

    _print_result(result, as_json)


@app.command("watch")
def cmd_watch(
    interval: Annotated[
        float | None,
        typer.Option("--interval", "-i", help="Seconds between rounds"),
    ] = None,
    count: Annotated[
        int | None,
        typer.Option("--count", "-n", help="Stop after this many rounds"),
    ] = None,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print each round as a JSON line"),
    ] = False,
    docker_host: Annotated[
        str | None,
        typer.Option("--docker-host", "-H", help="Docker daemon URL"),
    ] = None,
    round_timeout: Annotated[
        float | None,
        typer.Option("--timeout", "-t", help="Round deadline in seconds"),
    ] = None,
    no_timeout: Annotated[
        bool,
        typer.Option("--no-timeout", help="Wait for every container without a round deadline"),
    ] = False,
    env_file: Annotated[
        str | None,
        typer.Option("--env-file", help="Path to a .env file"),
    ] = None,
) -> None:
    """Repeat collection rounds until interrupted."""
    config = _load(env_file, docker_host, round_timeout, no_timeout)
    collector = StatsCollector.from_config(config)
    interval = interval or config.collector.watch_interval_seconds

    async def run() -> None:
        async for result in collector.watch(interval, count=count):
            _print_result(result, as_json)

    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(run())


# Entry point for the CLI
if __name__ == "__main__":
    app()
