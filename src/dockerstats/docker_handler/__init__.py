"""Docker runtime client with connection management and error translation."""

from .async_client import AsyncDockerClientWrapper

__all__ = [
    "AsyncDockerClientWrapper",
]
