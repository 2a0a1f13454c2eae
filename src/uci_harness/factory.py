"""
Construction of engine adapters bound to freshly spawned processes.
"""

from __future__ import annotations

import contextlib
import itertools
import logging
import threading
from pathlib import Path
from typing import Callable

from .adapter import EngineAdapter, ProtocolLogHook
from .config import AdapterConfig
from .process import ProcessChannel, SubprocessChannel
from .uci import UciAdapter

logger = logging.getLogger(__name__)

# Called as channel_factory(executable_path, working_directory)
ChannelFactory = Callable[..., ProcessChannel]


class AdapterFactory:
    """
    Creates unstarted UCI adapters.

    No handshake, retry or naming happens here; identifiers ("#1", "#2", ...)
    are numbered per factory instance.
    """

    def __init__(
        self,
        adapter_config: AdapterConfig | None = None,
        channel_factory: ChannelFactory = SubprocessChannel,
        log_hook: ProtocolLogHook | None = None,
    ) -> None:
        self._adapter_config = adapter_config or AdapterConfig()
        self._channel_factory = channel_factory
        self._log_hook = log_hook
        self._counter = itertools.count(1)
        self._counter_lock = threading.Lock()

    def _next_identifier(self) -> str:
        with self._counter_lock:
            return f"#{next(self._counter)}"

    def create_uci(
        self,
        executable_path: Path | str,
        working_directory: Path | str | None = None,
        count: int = 1,
    ) -> list[EngineAdapter]:
        """Spawn count processes and wrap each in a UciAdapter.

        Raises:
            EngineStartupError: If a process cannot be spawned.
        """
        path = Path(executable_path)
        cwd = Path(working_directory) if working_directory is not None else None
        adapters: list[EngineAdapter] = []
        for _ in range(count):
            try:
                channel = self._channel_factory(path, cwd)
            except Exception:
                for adapter in adapters:
                    with contextlib.suppress(Exception):
                        adapter.terminate()
                raise
            identifier = self._next_identifier()
            adapters.append(
                UciAdapter(channel, self._adapter_config, identifier=identifier, log_hook=self._log_hook)
            )
            logger.debug(f"Created adapter {identifier} for {path}")
        return adapters
