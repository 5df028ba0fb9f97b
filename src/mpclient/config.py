"""Configuration management for mpclient."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore


DEFAULT_HOST = "localhost"
DEFAULT_PORT = 6600


@dataclass
class ConnectionConfig:
    """Where to find the server."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    socket_path: str = ""
    timeout: float = 5.0


@dataclass
class LoggingConfig:
    """Logging configuration."""

    log_level: str = "warning"
    log_file: str = ""


@dataclass
class Config:
    """Full mpclient configuration."""

    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def get_config_dir() -> Path:
    """Get the mpclient config directory."""
    if xdg_config := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_config) / "mpclient"
    return Path.home() / ".config" / "mpclient"


def load_config(path: Path | None = None) -> Config:
    """Load configuration from file, then apply environment overrides."""
    config_file = path or get_config_dir() / "config.toml"

    if config_file.exists():
        with open(config_file, "rb") as f:
            data = tomllib.load(f)

        config = Config(
            connection=ConnectionConfig(**data.get("connection", {})),
            logging=LoggingConfig(**data.get("logging", {})),
        )
    else:
        config = Config()

    apply_env_overrides(config, os.environ)
    return config


def apply_env_overrides(config: Config, environ: Mapping[str, str]) -> None:
    """Apply MPD_HOST and MPD_PORT.

    An MPD_HOST starting with ``/`` names a Unix socket.
    """
    if host := environ.get("MPD_HOST"):
        if host.startswith("/"):
            config.connection.socket_path = host
        else:
            config.connection.host = host
            config.connection.socket_path = ""

    if port := environ.get("MPD_PORT"):
        try:
            config.connection.port = int(port)
        except ValueError:
            raise ValueError(f"Invalid MPD_PORT: {port!r}") from None
