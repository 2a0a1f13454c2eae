"""
Protocol-independent engine adapter.

An adapter owns one engine process, tracks its lifecycle state and serializes
every line written to it. Protocol variants (currently UCI) implement the
abstract command and event methods.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections import Counter
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Callable, Mapping

from .config import AdapterConfig
from .events import EngineEvent, ProtocolError
from .ticker import PeriodicTicker

if TYPE_CHECKING:
    from .game import GameState, GoLimits
    from .option import EngineOption
    from .process import ProcessChannel

logger = logging.getLogger(__name__)

# Receives every protocol line: (text, from_engine)
ProtocolLogHook = Callable[[str, bool], None]


class AdapterState(Enum):
    """Lifecycle of an adapter. Transitions only move forward."""

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    TERMINATING = "terminating"


class EngineAdapter(ABC):
    """
    Base class for communicating with and controlling a chess engine.

    The write path is the only state shared between callers: the TERMINATING
    check and the write itself happen under one lock, so no command reaches
    the process once termination has begun. read_event() has a single caller
    by contract.
    """

    def __init__(
        self,
        channel: ProcessChannel,
        config: AdapterConfig | None = None,
        identifier: str = "",
        log_hook: ProtocolLogHook | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            channel: Transport to an already spawned engine process.
            config: Timeouts and intervals. Uses defaults if not provided.
            identifier: Short id used in logs and events, e.g. "#3".
            log_hook: Optional sink receiving every line sent or received.
        """
        self._channel = channel
        self._config = config or AdapterConfig()
        self._identifier = identifier
        self._log_hook = log_hook
        self._state = AdapterState.UNINITIALIZED
        self._write_lock = threading.Lock()

        self._errors: list[ProtocolError] = []
        self._error_counts: Counter[str] = Counter()
        self._errors_lock = threading.Lock()

        self._engine_name = ""
        self._engine_author = ""
        self._supported_options: dict[str, EngineOption] = {}
        self._options: dict[str, str] = {}
        self.display_name = ""

        self._ticker = PeriodicTicker(self.tick, self._config.tick_interval)

    # ------------------------------------------------------------------
    # State and identity
    # ------------------------------------------------------------------

    @property
    def identifier(self) -> str:
        return self._identifier

    @property
    def state(self) -> AdapterState:
        return self._state

    @property
    def is_initialized(self) -> bool:
        return self._state is AdapterState.INITIALIZED

    @property
    def engine_name(self) -> str:
        """Name reported by the engine, empty before the handshake."""
        return self._engine_name

    @property
    def engine_author(self) -> str:
        return self._engine_author

    @property
    def supported_options(self) -> Mapping[str, EngineOption]:
        """Options declared during the handshake (read-only)."""
        return MappingProxyType(self._supported_options)

    @property
    def option_map(self) -> dict[str, str]:
        """Option values last applied with set_option_map()."""
        return dict(self._options)

    def is_running(self) -> bool:
        """True if the handshake completed and the process is alive."""
        if self._state is not AdapterState.INITIALIZED:
            return False
        try:
            return self._channel.is_running()
        except Exception as e:
            logger.debug(f"Engine {self._identifier}: liveness check failed: {e}")
            return False

    # ------------------------------------------------------------------
    # Protocol error log
    # ------------------------------------------------------------------

    @property
    def protocol_errors(self) -> tuple[ProtocolError, ...]:
        """Snapshot of all protocol errors recorded so far."""
        with self._errors_lock:
            return tuple(self._errors)

    def error_count(self, context: str | None = None) -> int:
        """Number of recorded errors, optionally for one context only."""
        with self._errors_lock:
            if context is None:
                return len(self._errors)
            return self._error_counts[context]

    def _record_error(self, error: ProtocolError) -> ProtocolError:
        with self._errors_lock:
            self._errors.append(error)
            self._error_counts[error.context] += 1
        logger.warning(f"Engine {self._identifier}: protocol error in {error.context}: {error.message}")
        return error

    def _report_protocol_error(self, context: str, message: str) -> ProtocolError:
        return self._record_error(ProtocolError(context, message))

    # ------------------------------------------------------------------
    # Line I/O
    # ------------------------------------------------------------------

    def _log_to_engine(self, text: str) -> None:
        logger.debug(f"{self._identifier} Sent: {text}")
        if self._log_hook is not None:
            self._log_hook(text, False)

    def _log_from_engine(self, text: str) -> None:
        logger.debug(f"{self._identifier} Recv: {text}")
        if self._log_hook is not None:
            self._log_hook(text, True)

    def write_command(self, command: str) -> int:
        """Send one raw line to the engine.

        Returns:
            Number of characters written, or 0 if the adapter is terminating.

        Raises:
            ProcessChannelError: If the write fails while the engine should be alive.
        """
        with self._write_lock:
            if self._state is AdapterState.TERMINATING:
                # The engine is probably gone; the command is dropped
                return 0
            self._log_to_engine(command)
            return self._channel.write_line(command)

    def _begin_terminating(self) -> bool:
        """Switch to TERMINATING. Returns False if already terminating."""
        with self._write_lock:
            if self._state is AdapterState.TERMINATING:
                return False
            self._state = AdapterState.TERMINATING
            return True

    def _mark_initialized(self) -> bool:
        """Switch to INITIALIZED and start the ticker. Returns False if terminating."""
        with self._write_lock:
            if self._state is not AdapterState.UNINITIALIZED:
                return False
            self._state = AdapterState.INITIALIZED
            # terminate() stops the ticker only after taking this lock
            self._ticker.start()
            return True

    # ------------------------------------------------------------------
    # Protocol capabilities
    # ------------------------------------------------------------------

    @abstractmethod
    def start(self) -> None:
        """Run the protocol handshake. Raises EngineStartupError on failure."""

    @abstractmethod
    def terminate(self) -> None:
        """Ask the engine to quit, force-killing it if needed. Idempotent."""

    @abstractmethod
    def read_event(self) -> EngineEvent:
        """Read and classify at most one line from the engine."""

    @abstractmethod
    def new_game(self) -> None:
        """Prepare the engine for a new game."""

    @abstractmethod
    def move_now(self) -> None:
        """Request the engine to produce a move immediately."""

    @abstractmethod
    def set_ponder(self, enabled: bool) -> None:
        """Enable or disable ponder mode."""

    @abstractmethod
    def tick(self) -> None:
        """Periodic monitoring hook, called once per tick interval."""

    @abstractmethod
    def ponder(self, game: GameState, limits: GoLimits, ponder_move: str) -> int:
        """Start pondering on the expected reply ponder_move."""

    @abstractmethod
    def ponder_hit(self) -> None:
        """Tell a pondering engine that the expected move was played."""

    @abstractmethod
    def compute_move(self, game: GameState, limits: GoLimits) -> int:
        """Request the engine to calculate a move for the current game."""

    @abstractmethod
    def stop_calc(self) -> None:
        """Instruct the engine to stop calculating."""

    @abstractmethod
    def ask_for_ready(self) -> None:
        """Send a synchronization request."""

    @abstractmethod
    def set_option(self, name: str, value: str | None = None) -> int:
        """Send a single option without validating it."""

    def set_option_map(self, options: Mapping[str, str]) -> None:
        """Store and send a set of option values."""
        self._options = dict(options)
        for name, value in options.items():
            self.set_option(name, value)

    def __enter__(self) -> EngineAdapter:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.terminate()

    def __repr__(self) -> str:
        name = self.display_name or self._engine_name or "?"
        return f"{type(self).__name__}({self._identifier} {name!r}, {self._state.value})"
