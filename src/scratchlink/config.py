"""Agent configuration.

Dataclass-based configuration with defaults, overridable from the
environment (``SCRATCHLINK_*``) and, on top of that, the command line.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

from .channel import DEFAULT_OUTBOUND_QUEUE_SIZE
from .protocol.methods import DEFAULT_MAX_FRAME_SIZE, MAX_ATTRIBUTE_SIZE

_LOGGER = logging.getLogger(__name__)

ENV_PREFIX = "SCRATCHLINK_"

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 20110
DEFAULT_PATH = "/scratch/ble"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class LinkConfig:
    """Scratch Link BLE agent configuration."""

    # Listener
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    path: str = DEFAULT_PATH
    certfile: str | None = None  # TLS is served only when both files are set
    keyfile: str | None = None

    # Protocol limits
    max_frame_size: int = DEFAULT_MAX_FRAME_SIZE
    outbound_queue_size: int = DEFAULT_OUTBOUND_QUEUE_SIZE
    max_read_size: int = MAX_ATTRIBUTE_SIZE

    # Device operations
    operation_timeout: float | None = 30.0  # None disables the bound
    connect_timeout: float = 10.0
    connect_attempts: int = 3

    verbose: bool = False

    def __post_init__(self) -> None:
        if not 0 < self.port < 65536:
            raise ValueError(f"port out of range: {self.port}")
        if not self.path.startswith("/"):
            raise ValueError(f"path must start with '/': {self.path!r}")
        if bool(self.certfile) != bool(self.keyfile):
            raise ValueError("certfile and keyfile must be given together")
        for name in ("max_frame_size", "outbound_queue_size", "max_read_size", "connect_attempts"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if self.connect_timeout <= 0:
            raise ValueError(f"connect_timeout must be positive, got {self.connect_timeout}")

    @property
    def tls(self) -> bool:
        return bool(self.certfile and self.keyfile)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> LinkConfig:
        """Build a config from ``SCRATCHLINK_*`` environment variables.

        Raises:
            ValueError: If a variable holds an invalid value
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}

        for name, parse in (
            ("host", str),
            ("port", int),
            ("path", str),
            ("certfile", str),
            ("keyfile", str),
            ("max_frame_size", int),
            ("outbound_queue_size", int),
            ("max_read_size", int),
            ("operation_timeout", _parse_timeout),
            ("connect_timeout", float),
            ("connect_attempts", int),
            ("verbose", _parse_bool),
        ):
            key = ENV_PREFIX + name.upper()
            raw = env.get(key)
            if raw is None:
                continue
            try:
                values[name] = parse(raw.strip())
            except ValueError as e:
                raise ValueError(f"{key}: {e}") from e

        if values:
            _LOGGER.debug("Config from environment: %s", sorted(values))
        return cls(**values)

    def session_options(self) -> dict[str, Any]:
        """Keyword arguments for ``Session`` taken from this config."""
        return {
            "max_frame_size": self.max_frame_size,
            "outbound_queue_size": self.outbound_queue_size,
            "max_read_size": self.max_read_size,
            "operation_timeout": self.operation_timeout,
        }

    def with_overrides(self, **overrides: Any) -> LinkConfig:
        """Copy with the given fields replaced; None values are ignored."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def _parse_bool(value: str) -> bool:
    lowered = value.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _parse_timeout(value: str) -> float | None:
    """Seconds as float; 0 or 'none' disables the bound."""
    if value.lower() in ("", "none", "off"):
        return None
    seconds = float(value)
    if seconds < 0:
        raise ValueError(f"negative timeout: {value}")
    return seconds or None
