"""Environment-driven configuration for the adapter process."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional


DEFAULT_ADDRESS = "0.0.0.0"
DEFAULT_PORT = 8080
DEFAULT_TIMEOUT = 30.0
LOG_LEVELS = ("debug", "info", "warning", "error", "critical")
LOG_LEVEL_ALIASES = {"warn": "warning"}


class ConfigError(Exception):
    """Raised when startup configuration is missing or malformed."""


@dataclass(frozen=True)
class AdapterConfig:
    """Settings for one adapter process. Built once at startup."""

    llamastack_endpoint: str
    llamastack_api_key: str = ""
    enable_auth: bool = True
    address: str = DEFAULT_ADDRESS
    port: int = DEFAULT_PORT
    log_level: str = "info"
    log_json: bool = False
    upstream_timeout: float = DEFAULT_TIMEOUT

    @property
    def bind(self) -> str:
        return f"{self.address}:{self.port}"


def _get(environ: Mapping[str, str], key: str, default: str) -> str:
    # Empty values fall back to the default, same as unset ones
    value = environ.get(key, "")
    return value if value != "" else default


def load_config(environ: Optional[Mapping[str, str]] = None) -> AdapterConfig:
    """Build an AdapterConfig from environment variables.

    Args:
        environ: Mapping to read from (default: os.environ)

    Returns:
        The immutable configuration

    Raises:
        ConfigError: If LLAMASTACK_ENDPOINT is unset or a numeric value is invalid
    """
    if environ is None:
        environ = os.environ

    endpoint = _get(environ, "LLAMASTACK_ENDPOINT", "")
    if not endpoint:
        raise ConfigError("LLAMASTACK_ENDPOINT is required")

    raw_port = _get(environ, "ADAPTER_PORT", str(DEFAULT_PORT))
    try:
        port = int(raw_port)
    except ValueError:
        raise ConfigError(f"ADAPTER_PORT must be an integer, got {raw_port!r}")

    raw_timeout = _get(environ, "LLAMASTACK_TIMEOUT", str(DEFAULT_TIMEOUT))
    try:
        timeout = float(raw_timeout)
    except ValueError:
        raise ConfigError(f"LLAMASTACK_TIMEOUT must be a number, got {raw_timeout!r}")
    if timeout <= 0:
        raise ConfigError("LLAMASTACK_TIMEOUT must be positive")

    raw_level = _get(environ, "LOG_LEVEL", "info").lower()
    log_level = LOG_LEVEL_ALIASES.get(raw_level, raw_level)
    if log_level not in LOG_LEVELS:
        raise ConfigError(
            f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {raw_level!r}"
        )

    return AdapterConfig(
        llamastack_endpoint=endpoint,
        llamastack_api_key=_get(environ, "LLAMASTACK_API_KEY", ""),
        enable_auth=_get(environ, "ENABLE_AUTH", "true") == "true",
        address=_get(environ, "ADAPTER_ADDRESS", DEFAULT_ADDRESS),
        port=port,
        log_level=log_level,
        log_json=_get(environ, "LOG_JSON", "false") == "true",
        upstream_timeout=timeout,
    )
