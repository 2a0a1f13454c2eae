"""
Named pass/fail check recorder.

Used as the diagnostic sink for pool creation: every failed engine startup is
reported here. Each Checklist instance keeps its own statistics.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Failures per topic logged at full level before further reports are downgraded
MAX_LOGS_PER_TOPIC = 5


@dataclass
class CheckStat:
    """Counts for one topic."""

    total: int = 0
    failures: int = 0


class Checklist:
    """
    Thread-safe recorder of named checks.

    Usage:
        checklist = Checklist()
        checklist.log_check("Engine startup", ok, detail="uciok missing")
        if checklist.num_errors("Engine startup"):
            ...
    """

    def __init__(self) -> None:
        self._stats: dict[str, CheckStat] = {}
        self._lock = threading.Lock()

    def report(self, topic: str, passed: bool) -> int:
        """Record one check result and return the topic's failure count."""
        with self._lock:
            stat = self._stats.setdefault(topic, CheckStat())
            stat.total += 1
            if not passed:
                stat.failures += 1
            return stat.failures

    def log_check(
        self, topic: str, success: bool, detail: str = "", level: int = logging.ERROR
    ) -> bool:
        """Record a check and log the detail if it failed.

        Args:
            topic: Name of the check.
            success: True if the check passed.
            detail: Logged on failure.
            level: Log level for the first failures of this topic.

        Returns:
            The value of success.
        """
        failures = self.report(topic, success)
        if not success:
            log_level = level if failures <= MAX_LOGS_PER_TOPIC else logging.INFO
            logger.log(log_level, f'[Report for topic "{topic}"] {detail}')
            if failures == MAX_LOGS_PER_TOPIC:
                logger.log(level, f'Further reports of topic "{topic}" will be suppressed')
        return success

    def num_errors(self, topic: str) -> int:
        with self._lock:
            stat = self._stats.get(topic)
            return stat.failures if stat else 0

    def num_checks(self, topic: str) -> int:
        with self._lock:
            stat = self._stats.get(topic)
            return stat.total if stat else 0

    def topics(self) -> list[str]:
        with self._lock:
            return list(self._stats)
