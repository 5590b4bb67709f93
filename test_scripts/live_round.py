"""Run collection rounds against the local Docker daemon.

Start a few containers first, e.g. ``docker run -d --name web nginx:alpine``.
"""

import asyncio

from rich.pretty import pprint

from dockerstats import StatsCollector, load_config
from dockerstats.logging_config import setup_logging

ROUNDS = 3
INTERVAL = 2.0  # seconds


async def main():
    config = load_config()
    setup_logging(config.logging)
    collector = StatsCollector.from_config(config)

    async for result in collector.watch(INTERVAL, count=ROUNDS):
        print(f"--- round took {result.duration_seconds:.3f}s")
        for record in result.results:
            pprint(record.model_dump())
        for error in result.errors:
            print(f"Error: {type(error).__name__}: {error.message}")


if __name__ == "__main__":
    asyncio.run(main())
