"""
Configuration management for dockerstats.

This module uses Pydantic Settings for environment-based configuration with
support for .env files. Configuration is organized into logical sections:
- Docker daemon connection settings
- Collection round settings
- Logging settings

Environment variables can be prefixed with DOCKERSTATS_ for the aggregate
(e.g., DOCKERSTATS_LOGGING__LOG_LEVEL); section fields also read their own
unprefixed names (e.g., DOCKER_HOST, LOG_LEVEL).
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dockerstats.exceptions import ConfigurationError


class DockerSettings(BaseSettings):
    """
    Docker daemon connection settings.

    Parameters
    ----------
    docker_host : str
        Docker daemon URL (default: unix:///var/run/docker.sock)
    docker_timeout_seconds : float
        Per-request timeout for daemon calls

    Environment Variables
    ---------------------
    DOCKER_HOST : str
        Override Docker daemon URL
    DOCKER_TIMEOUT_SECONDS : float
        Override request timeout

    Examples
    --------
    >>> config = DockerSettings()
    >>> config.docker_host
    'unix:///var/run/docker.sock'
    >>> config = DockerSettings(docker_host="tcp://localhost:2375")
    >>> config.docker_host
    'tcp://localhost:2375'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True,
    )

    docker_host: str = Field(
        default="unix:///var/run/docker.sock",
        description="Docker daemon URL",
    )
    docker_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=600,
        description="Request timeout (s)",
    )

    @field_validator("docker_host")
    @classmethod
    def validate_docker_host(cls, v: str) -> str:
        """Validate Docker host URL format."""
        valid_schemes = ("unix://", "tcp://", "http://", "https://", "npipe://")
        if not any(v.startswith(scheme) for scheme in valid_schemes):
            raise ValueError(f"Docker host must start with one of: {valid_schemes}. Got: {v}")
        return v


class CollectorSettings(BaseSettings):
    """
    Collection round settings.

    Parameters
    ----------
    round_timeout_seconds : float, optional
        Deadline for one round; containers still pending when it expires are
        reported as timed out. None disables the deadline.
    watch_interval_seconds : float
        Interval between rounds in watch mode

    Environment Variables
    ---------------------
    ROUND_TIMEOUT_SECONDS : float
        Round deadline; "none", "null", "off", "0" or an empty value disable it
    WATCH_INTERVAL_SECONDS : float
        Watch interval

    Examples
    --------
    >>> config = CollectorSettings()
    >>> config.round_timeout_seconds
    30.0
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True,
    )

    round_timeout_seconds: float | None = Field(
        default=30.0,
        gt=0,
        description="Round deadline (s)",
    )
    watch_interval_seconds: float = Field(
        default=5.0,
        gt=0,
        le=3600,
        description="Watch interval (s)",
    )

    @field_validator("round_timeout_seconds", mode="before")
    @classmethod
    def parse_disabled_timeout(cls, v: Any) -> Any:
        """Map the ways of switching the deadline off to None."""
        if isinstance(v, str) and v.strip().lower() in ("", "none", "null", "off", "0"):
            return None
        if isinstance(v, int | float) and not isinstance(v, bool) and v == 0:
            return None
        return v


class LoggingSettings(BaseSettings):
    """
    Logging configuration.

    Parameters
    ----------
    log_level : str
        Logging level ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
    log_format : str
        Log format ("json", "console")
    log_file : Path, optional
        Log file path (None for console only)

    Examples
    --------
    >>> config = LoggingSettings()
    >>> config.log_level
    'INFO'
    >>> config.log_format
    'console'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: Literal["json", "console"] = Field(
        default="console",
        description="Log format",
    )
    log_file: Path | None = Field(None, description="Log file path")


class DockerStatsConfig(BaseSettings):
    """
    Main configuration aggregating all settings.

    Parameters
    ----------
    docker : DockerSettings
        Docker configuration
    collector : CollectorSettings
        Collection round configuration
    logging : LoggingSettings
        Logging configuration

    Examples
    --------
    >>> config = DockerStatsConfig()
    >>> config.docker.docker_host
    'unix:///var/run/docker.sock'
    >>> config.collector.watch_interval_seconds
    5.0
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="DOCKERSTATS_",
        env_nested_delimiter="__",
    )

    docker: DockerSettings = Field(default_factory=DockerSettings)
    collector: CollectorSettings = Field(default_factory=CollectorSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# =============================================================================
# Convenience functions
# =============================================================================


def load_config(env_file: Path | str | None = None) -> DockerStatsConfig:
    """
    Load configuration from environment and optional .env file.

    Parameters
    ----------
    env_file : Path or str, optional
        Path to .env file (default: .env in current directory)

    Returns
    -------
    DockerStatsConfig
        Loaded configuration

    Raises
    ------
    ConfigurationError
        If any setting fails validation
    """
    try:
        if env_file:
            return DockerStatsConfig(
                docker=DockerSettings(_env_file=str(env_file)),
                collector=CollectorSettings(_env_file=str(env_file)),
                logging=LoggingSettings(_env_file=str(env_file)),
            )
        return DockerStatsConfig()
    except ValidationError as e:
        raise ConfigurationError(
            "Invalid dockerstats configuration",
            details={"env_file": str(env_file) if env_file else None, "error": str(e)},
        ) from e
