"""Logging configuration for dockerstats.

Logs go to stderr so that machine-readable command output on stdout stays
clean.
"""

import json
import logging
from datetime import UTC, datetime

from rich.console import Console
from rich.logging import RichHandler

from dockerstats.config import LoggingSettings

_PLAIN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class JsonFormatter(logging.Formatter):
    """Format log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_obj, default=str)


def setup_logging(settings: LoggingSettings | None = None) -> None:
    """Configure root logging from settings.

    Parameters
    ----------
    settings : LoggingSettings, optional
        Logging settings (default: loaded from the environment).
    """
    settings = settings or LoggingSettings()
    handlers: list[logging.Handler] = []

    if settings.log_format == "json":
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        handlers.append(handler)
    else:
        handlers.append(
            RichHandler(
                console=Console(stderr=True),
                rich_tracebacks=True,
                show_path=False,
            )
        )

    if settings.log_file is not None:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(settings.log_file)
        if settings.log_format == "json":
            file_handler.setFormatter(JsonFormatter())
        else:
            file_handler.setFormatter(logging.Formatter(_PLAIN_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        handlers=handlers,
        force=True,
    )
    # aiohttp/aiodocker are chatty at DEBUG
    logging.getLogger("aiohttp").setLevel(max(logging.WARNING, logging.root.level))
