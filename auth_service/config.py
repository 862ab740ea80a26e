# File: auth_service/config.py
"""Configuration module."""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

from .constants import (
    DEFAULT_HOST,
    DEFAULT_MODE,
    DEFAULT_PORT,
    IDLE_TIMEOUT_SECONDS,
    MODE_ENV,
    MODE_LOG_LEVELS,
    PORT_ENV,
    READ_TIMEOUT_SECONDS,
    SHUTDOWN_TIMEOUT_SECONDS,
    WRITE_TIMEOUT_SECONDS,
)


def _parse_env_str(environ: Mapping[str, str], key: str, default: str) -> str:
    """Read a string environment variable safely.

    Container orchestrators sometimes pass quoted or blank values, so surrounding
    whitespace and quotes are stripped and an empty result falls back to the default.

    Args:
        environ: The environment mapping to read from.
        key: The environment variable key.
        default: The default value if missing or blank.

    Returns:
        str: The cleaned value.
    """
    raw = environ.get(key)
    if raw is None:
        return default
    value = raw.strip(" \"'")
    return value if value else default


@dataclass(frozen=True)
class ServerConfig:
    """Immutable server settings, resolved once at startup.

    Only ``port`` and ``mode`` come from the environment. The timeouts are fixed
    defaults that tests may override by constructing the object directly.
    """

    port: str = DEFAULT_PORT
    mode: str = DEFAULT_MODE
    host: str = DEFAULT_HOST
    read_timeout: float = READ_TIMEOUT_SECONDS
    write_timeout: float = WRITE_TIMEOUT_SECONDS
    idle_timeout: float = IDLE_TIMEOUT_SECONDS
    shutdown_timeout: float = SHUTDOWN_TIMEOUT_SECONDS

    @property
    def is_known_mode(self) -> bool:
        """Return True if the mode is one of the recognised values."""
        return self.mode in MODE_LOG_LEVELS

    @property
    def log_level(self) -> int:
        """Resolve the logging level implied by the mode.

        Unknown modes are accepted as no-ops and log at INFO.

        Returns:
            int: A ``logging`` level constant.
        """
        return getattr(logging, MODE_LOG_LEVELS.get(self.mode, "INFO"))

    def validate(self, logger: logging.Logger) -> None:
        """Report questionable settings at startup.

        Nothing here is fatal: an unusable port only surfaces when the listener binds.
        """
        if not self.is_known_mode:
            logger.warning(
                f"Configuration Warning: Unknown {MODE_ENV} '{self.mode}'. "
                f"Expected one of {sorted(MODE_LOG_LEVELS)}; continuing with INFO logging."
            )


def resolve_config(environ: Mapping[str, str] | None = None) -> ServerConfig:
    """Build the server configuration from the environment.

    Never fails: every input has a safe default.

    Args:
        environ: Mapping to read from. Defaults to ``os.environ``.

    Returns:
        ServerConfig: The resolved configuration.
    """
    env = os.environ if environ is None else environ
    return ServerConfig(
        port=_parse_env_str(env, PORT_ENV, DEFAULT_PORT),
        mode=_parse_env_str(env, MODE_ENV, DEFAULT_MODE),
    )
