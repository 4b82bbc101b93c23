"""Connection configuration."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

# Environment variables read by ConnectionConfig.from_env()
ENV_MAX_FRAME_BYTES = "AMPLIFIER_ACP_MAX_FRAME_BYTES"
ENV_MAX_CONCURRENT_HANDLERS = "AMPLIFIER_ACP_MAX_CONCURRENT_HANDLERS"

DEFAULT_MAX_FRAME_BYTES = 16 * 1024 * 1024


@dataclass
class ConnectionConfig:
    """Configuration shared by MessageChannel and Connection."""

    # Longest accepted frame, enforced by MessageChannel whatever the reader's own limit
    max_frame_bytes: int = DEFAULT_MAX_FRAME_BYTES

    # Upper bound on inbound handlers running at once (None = unbounded).
    # Extra handlers wait for a slot; responses are still read meanwhile.
    max_concurrent_handlers: int | None = None

    encoding: str = "utf-8"

    def __post_init__(self) -> None:
        if self.max_frame_bytes <= 0:
            raise ValueError("max_frame_bytes must be positive")
        if self.max_concurrent_handlers is not None and self.max_concurrent_handlers <= 0:
            raise ValueError("max_concurrent_handlers must be positive or None")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ConnectionConfig:
        """Build a config from AMPLIFIER_ACP_* environment variables.

        Unset variables keep their defaults. An empty value or ``0`` for
        AMPLIFIER_ACP_MAX_CONCURRENT_HANDLERS means unbounded.
        """
        env = os.environ if environ is None else environ
        config = cls()

        raw = env.get(ENV_MAX_FRAME_BYTES, "").strip()
        if raw:
            config.max_frame_bytes = _parse_int(ENV_MAX_FRAME_BYTES, raw)
            if config.max_frame_bytes <= 0:
                raise ValueError(f"{ENV_MAX_FRAME_BYTES} must be positive, got {raw!r}")

        raw = env.get(ENV_MAX_CONCURRENT_HANDLERS, "").strip()
        if raw:
            limit = _parse_int(ENV_MAX_CONCURRENT_HANDLERS, raw)
            if limit < 0:
                raise ValueError(f"{ENV_MAX_CONCURRENT_HANDLERS} must not be negative, got {raw!r}")
            config.max_concurrent_handlers = limit or None

        return config


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
