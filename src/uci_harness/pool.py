"""
Concurrent creation of engine pools.

Creates N handshake-completed adapters for one engine configuration, retrying
failed startups for a bounded number of rounds, and gives every adapter the
factory has produced a distinguishable display name.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from concurrent import futures
from typing import Mapping, Sequence

from .adapter import EngineAdapter
from .checklist import Checklist
from .config import EngineConfig, PoolConfig
from .exceptions import EngineError, EngineStartupError
from .factory import AdapterFactory

logger = logging.getLogger(__name__)

STARTUP_TOPIC = "Engine startup"


def disambiguate_names(attribute_maps: Sequence[Mapping[str, str]]) -> list[str]:
    """
    Compute display names for engines that share a base name.

    Engines are grouped by their "name" attribute. Within a group of two or
    more, every other attribute in which a member differs from at least one
    other member (or which another member lacks) is appended to that member's
    name as "key=value" ("key" alone for an empty value):

        Foo {hash: 1}, Foo {hash: 2}  ->  "Foo [hash=1]", "Foo [hash=2]"

    Members identical on every attribute keep the bare base name.

    Args:
        attribute_maps: One flat attribute mapping per engine.

    Returns:
        Display names in the same order as attribute_maps.
    """
    names = [attributes.get("name", "") for attributes in attribute_maps]
    groups: dict[str, list[int]] = defaultdict(list)
    for index, name in enumerate(names):
        groups[name].append(index)

    result = list(names)
    for base_name, members in groups.items():
        if len(members) < 2:
            continue
        for index in members:
            attributes = attribute_maps[index]
            others = [attribute_maps[other] for other in members if other != index]
            suffix: list[str] = []
            for key, value in attributes.items():
                if key == "name":
                    continue
                if any(key not in other or other[key] != value for other in others):
                    suffix.append(f"{key}={value}" if value else key)
            if suffix:
                result[index] = f"{base_name} [{', '.join(suffix)}]"
    return result


class EnginePoolFactory:
    """
    Builds pools of started engines.

    A failed startup is reported to the checklist once per round and retried
    in the next round; slots that still fail after the last round are dropped,
    so the returned pool may be smaller than requested.

    Usage:
        factory = EnginePoolFactory(Checklist())
        engines = factory.create(EngineConfig(name="Stockfish"), count=4)
    """

    def __init__(
        self,
        checklist: Checklist,
        pool_config: PoolConfig | None = None,
        adapter_factory: AdapterFactory | None = None,
    ) -> None:
        """Initialize the pool factory.

        Args:
            checklist: Diagnostic sink receiving every startup result.
            pool_config: Retry rounds and concurrency.
            adapter_factory: Creates the unstarted adapters.
        """
        self._checklist = checklist
        self._pool_config = pool_config or PoolConfig()
        self._adapter_factory = adapter_factory or AdapterFactory()
        self._lock = threading.Lock()
        self._created: list[tuple[EngineAdapter, EngineConfig]] = []

    @property
    def adapters(self) -> list[EngineAdapter]:
        """Every adapter this factory has returned, in creation order."""
        with self._lock:
            return [adapter for adapter, _ in self._created]

    def create(self, engine_config: EngineConfig, count: int) -> list[EngineAdapter]:
        """Create up to count started engines for one configuration.

        Returns:
            The successfully started adapters, in slot order.
        """
        label = engine_config.name or str(engine_config.executable_path)
        slots: list[EngineAdapter | None] = [None] * count
        failed = list(range(count))

        for round_number in range(1, self._pool_config.retry_rounds + 1):
            if not failed:
                break
            if round_number > 1:
                logger.info(f"Retrying {len(failed)} engine(s) of {label}, round {round_number}")
            failed = self._run_round(engine_config, label, slots, failed)

        if failed:
            logger.warning(
                f"{len(failed)} of {count} engine(s) of {label} failed to start "
                f"after {self._pool_config.retry_rounds} rounds and were dropped"
            )

        adapters = [adapter for adapter in slots if adapter is not None]
        with self._lock:
            self._created.extend((adapter, engine_config) for adapter in adapters)
            self._assign_display_names()

        logger.info(f"Engine pool for {label}: {len(adapters)}/{count} engines started")
        return adapters

    def _run_round(
        self,
        engine_config: EngineConfig,
        label: str,
        slots: list[EngineAdapter | None],
        pending: list[int],
    ) -> list[int]:
        """Start the pending slots concurrently. Returns the slots that failed."""
        max_workers = self._pool_config.max_workers or len(pending)
        still_failed: list[int] = []

        with futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
            tasks = {slot: executor.submit(self._start_engine, engine_config) for slot in pending}
            for slot, task in tasks.items():
                try:
                    slots[slot] = task.result()
                except Exception as e:
                    still_failed.append(slot)
                    self._checklist.log_check(STARTUP_TOPIC, False, f"{label}: {e}")
                else:
                    self._checklist.report(STARTUP_TOPIC, True)

        return still_failed

    def _start_engine(self, engine_config: EngineConfig) -> EngineAdapter:
        """Spawn, handshake and configure a single engine."""
        adapter = self._adapter_factory.create_uci(
            engine_config.executable_path, engine_config.working_directory
        )[0]
        try:
            adapter.start()
            if not adapter.is_initialized:
                raise EngineStartupError(f"Engine {adapter.identifier} did not initialize")
            options = engine_config.options_for(adapter.supported_options)
            if options:
                adapter.set_option_map(options)
        except Exception:
            try:
                adapter.terminate()
            except EngineError as cleanup_error:
                logger.error(f"Cleanup of engine {adapter.identifier} failed: {cleanup_error}")
            raise
        return adapter

    def _assign_display_names(self) -> None:
        attribute_maps = [
            config.identity_attributes(adapter.engine_name) for adapter, config in self._created
        ]
        for (adapter, _), name in zip(self._created, disambiguate_names(attribute_maps)):
            adapter.display_name = name
