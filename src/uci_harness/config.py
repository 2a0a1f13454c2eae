"""
Configuration for engine adapters and engine pools.

All configuration can be set via environment variables with sensible defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


def _optional_int(name: str) -> int | None:
    value = os.environ.get(name)
    return int(value) if value else None


@dataclass
class EngineConfig:
    """Configuration for one engine executable and how to present it."""

    name: str = ""  # Display base name; falls back to the engine's "id name"
    executable_path: Path = field(
        default_factory=lambda: Path(os.environ.get("UCI_ENGINE_PATH", "stockfish"))
    )
    working_directory: Path | None = None
    options: dict[str, str] = field(default_factory=dict)  # Sent via setoption after handshake
    attributes: dict[str, str] = field(default_factory=dict)  # Extra identity attributes

    def identity_attributes(self, engine_name: str = "") -> dict[str, str]:
        """Flat attribute mapping used to disambiguate display names.

        The "name" key always comes first, followed by the configured option
        values and then the free-form attributes, in insertion order.
        """
        attributes = {"name": self.name or engine_name}
        for key, value in self.options.items():
            attributes[key] = str(value)
        for key, value in self.attributes.items():
            attributes[key] = str(value)
        return attributes

    def options_for(self, supported: dict[str, object]) -> dict[str, str]:
        """Configured options restricted to those the engine declared.

        UCI option names are case-insensitive, so matching ignores case and
        uses the engine's own spelling in the result.
        """
        by_lower = {name.lower(): name for name in supported}
        selected: dict[str, str] = {}
        for key, value in self.options.items():
            engine_name = by_lower.get(key.lower())
            if engine_name is not None:
                selected[engine_name] = str(value)
        return selected


@dataclass
class AdapterConfig:
    """Timeouts and intervals for a single protocol adapter (seconds)."""

    intro_scan_timeout: float = 0.05  # Banner lines skipped before "uci"
    handshake_line_timeout: float = 0.5
    handshake_timeout: float = field(
        default_factory=lambda: float(os.environ.get("UCI_HANDSHAKE_TIMEOUT", "5.0"))
    )
    read_timeout: float = 1.0
    quit_timeout: float = field(
        default_factory=lambda: float(os.environ.get("UCI_QUIT_TIMEOUT", "10.0"))
    )
    tick_interval: float = 1.0


@dataclass
class PoolConfig:
    """Configuration for engine pool creation."""

    retry_rounds: int = 3  # Startup attempts per slot before it is dropped
    max_workers: int | None = field(default_factory=lambda: _optional_int("UCI_POOL_MAX_WORKERS"))
