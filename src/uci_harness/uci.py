"""
UCI protocol adapter.

Formats domain commands into UCI text and classifies engine output into
EngineEvents. The handshake is a separate blocking phase with its own fatal
deadline; after it, read_event() polls with a short, non-fatal timeout.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from .adapter import AdapterState, EngineAdapter, ProtocolLogHook
from .events import EngineEvent, EventType, ProtocolError, parse_search_info
from .exceptions import (
    EngineError,
    EngineTerminationError,
    HandshakeError,
    HandshakeTimeoutError,
    OptionParseError,
    ProcessChannelError,
)
from .option import parse_option_line

if TYPE_CHECKING:
    from .config import AdapterConfig
    from .game import GameState, GoLimits
    from .process import ProcessChannel

logger = logging.getLogger(__name__)

INITIALIZATION = "initialization"
TERMINATION = "termination"
UNKNOWN_COMMAND = "unknown command"
DISCONNECT = "disconnect"


# =============================================================================
# Command formatting
# =============================================================================


def format_position(game: GameState, ponder_move: str | None = None) -> str:
    """Format the position command for a game, optionally with a pondered move."""
    parts = ["position"]
    if game.uses_start_position:
        parts.append("startpos")
    else:
        parts += ["fen", game.start_fen or ""]

    moves = list(game.moves)
    if ponder_move:
        moves.append(ponder_move)
    if moves:
        parts.append("moves")
        parts += moves
    return " ".join(parts)


def format_go(limits: GoLimits, ponder: bool = False) -> str:
    """Format a go command.

    Token order is fixed: [ponder] [infinite] [movetime] [depth] [nodes]
    [mate] wtime btime winc binc [movestogo]. Mutually exclusive limits are
    not checked; whatever is set is emitted.
    """
    parts = ["go"]
    if ponder:
        parts.append("ponder")
    if limits.infinite:
        parts.append("infinite")
    if limits.movetime_ms is not None:
        parts += ["movetime", str(limits.movetime_ms)]
    if limits.depth is not None:
        parts += ["depth", str(limits.depth)]
    if limits.nodes is not None:
        parts += ["nodes", str(limits.nodes)]
    if limits.mate_in is not None:
        parts += ["mate", str(limits.mate_in)]

    parts += ["wtime", str(limits.wtime_ms), "btime", str(limits.btime_ms)]
    parts += ["winc", str(limits.winc_ms), "binc", str(limits.binc_ms)]

    if limits.moves_to_go > 0:
        parts += ["movestogo", str(limits.moves_to_go)]
    return " ".join(parts)


def format_set_option(name: str, value: str | None = None) -> str:
    """Format a setoption command. The option is not validated."""
    if value is None:
        return f"setoption name {name}"
    return f"setoption name {name} value {value}"


# =============================================================================
# Line classification
# =============================================================================


def _error_event(context: str, message: str, line: str, identifier: str) -> EngineEvent:
    return EngineEvent(
        EventType.PROTOCOL_ERROR,
        raw_line=line,
        engine_identifier=identifier,
        error=ProtocolError(context, message),
    )


def classify_handshake_line(line: str, identifier: str = "") -> EngineEvent:
    """Classify a line received while waiting for uciok."""
    text = line.strip()
    if text == "uciok":
        return EngineEvent(EventType.UCI_OK, raw_line=line, engine_identifier=identifier)
    if text.startswith("id name "):
        return EngineEvent(
            EventType.ID_NAME, raw_line=line, engine_identifier=identifier, text=text[8:].strip()
        )
    if text.startswith("id author "):
        return EngineEvent(
            EventType.ID_AUTHOR, raw_line=line, engine_identifier=identifier, text=text[10:].strip()
        )
    if text.startswith("option "):
        try:
            option = parse_option_line(text)
        except OptionParseError as e:
            return _error_event(INITIALIZATION, str(e), line, identifier)
        return EngineEvent(EventType.OPTION, raw_line=line, engine_identifier=identifier, option=option)
    return _error_event(
        INITIALIZATION, f"Unexpected line during UCI handshake: {line}", line, identifier
    )


def classify_line(line: str, identifier: str = "") -> EngineEvent:
    """Classify a line received after the handshake."""
    tokens = line.split()
    command = tokens[0] if tokens else ""

    if command == "readyok" and len(tokens) == 1:
        return EngineEvent(EventType.READY_OK, raw_line=line, engine_identifier=identifier)

    if command == "bestmove":
        if len(tokens) < 2:
            return _error_event("bestmove", f"Missing move in bestmove line: {line}", line, identifier)
        ponder_move = None
        if len(tokens) >= 4 and tokens[2] == "ponder":
            ponder_move = tokens[3]
        return EngineEvent(
            EventType.BEST_MOVE,
            raw_line=line,
            engine_identifier=identifier,
            best_move=tokens[1],
            ponder_move=ponder_move,
        )

    if command == "info":
        return EngineEvent(
            EventType.INFO,
            raw_line=line,
            engine_identifier=identifier,
            search_info=parse_search_info(line),
        )

    if command == "uciok" and len(tokens) == 1:
        return EngineEvent(EventType.UCI_OK, raw_line=line, engine_identifier=identifier)

    return _error_event(UNKNOWN_COMMAND, f"Unknown command: {line}", line, identifier)


# =============================================================================
# Adapter
# =============================================================================


class UciAdapter(EngineAdapter):
    """
    EngineAdapter speaking UCI.

    Usage:
        adapter = UciAdapter(SubprocessChannel(path), identifier="#1")
        adapter.start()
        try:
            adapter.compute_move(GameState(), GoLimits(movetime_ms=1000))
            event = adapter.read_event()
        finally:
            adapter.terminate()
    """

    def __init__(
        self,
        channel: ProcessChannel,
        config: AdapterConfig | None = None,
        identifier: str = "",
        log_hook: ProtocolLogHook | None = None,
    ) -> None:
        super().__init__(channel, config, identifier, log_hook)
        self._exit_reported = False
        self._memory_usage = 0
        self._peak_memory_usage = 0

    @property
    def memory_usage(self) -> int:
        """Last sampled resident memory of the engine in bytes."""
        return self._memory_usage

    @property
    def peak_memory_usage(self) -> int:
        return self._peak_memory_usage

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Run the UCI handshake.

        Raises:
            HandshakeTimeoutError: If uciok does not arrive before the deadline.
            HandshakeError: If the engine exits or cannot be written to.
            EngineError: If the adapter is already terminating.
        """
        if self._state is AdapterState.INITIALIZED:
            logger.warning(f"Engine {self._identifier} already started")
            return
        if self._state is AdapterState.TERMINATING:
            raise EngineError(f"Engine {self._identifier} is terminating")

        self._skip_lines(self._config.intro_scan_timeout)
        self._run_handshake()

        if not self._mark_initialized():
            raise EngineError(f"Engine {self._identifier} was terminated during startup")
        logger.info(
            f"Engine {self._identifier} started: {self._engine_name or 'unknown'} "
            f"({len(self._supported_options)} options)"
        )

    def _skip_lines(self, timeout: float) -> None:
        """Discard banner output printed before the engine receives "uci"."""
        deadline = time.monotonic() + timeout
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return
            try:
                line = self._channel.read_line(remaining)
            except ProcessChannelError:
                # Reported by the handshake
                return
            if line is not None:
                self._log_from_engine(line)

    def _run_handshake(self) -> None:
        try:
            self.write_command("uci")
        except ProcessChannelError as e:
            self._report_protocol_error(INITIALIZATION, f"Failed to send uci: {e}")
            raise HandshakeError(f"Engine {self._identifier}: failed to send uci: {e}") from e

        deadline = time.monotonic() + self._config.handshake_timeout
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                self._report_protocol_error(INITIALIZATION, "Timeout waiting for uciok")
                raise HandshakeTimeoutError(
                    f"Engine {self._identifier} did not answer uciok within "
                    f"{self._config.handshake_timeout}s; is it a UCI engine?"
                )

            try:
                line = self._channel.read_line(min(self._config.handshake_line_timeout, remaining))
            except ProcessChannelError as e:
                self._report_protocol_error(INITIALIZATION, f"Engine exited during UCI handshake: {e}")
                raise HandshakeError(f"Engine {self._identifier} exited during handshake") from e

            if line is None:
                if not self._channel_alive():
                    self._report_protocol_error(INITIALIZATION, "Engine exited during UCI handshake")
                    raise HandshakeError(f"Engine {self._identifier} exited during handshake")
                continue

            self._log_from_engine(line)
            event = classify_handshake_line(line, self._identifier)
            if event.type is EventType.UCI_OK:
                return
            if event.type is EventType.ID_NAME:
                self._engine_name = event.text or ""
            elif event.type is EventType.ID_AUTHOR:
                self._engine_author = event.text or ""
            elif event.type is EventType.OPTION and event.option is not None:
                self._supported_options[event.option.name] = event.option
            elif event.error is not None:
                # Not fatal: negotiation continues until uciok or the deadline
                self._record_error(event.error)

    def _channel_alive(self) -> bool:
        try:
            return self._channel.is_running()
        except Exception as e:
            logger.debug(f"Engine {self._identifier}: liveness check failed: {e}")
            return False

    def terminate(self) -> None:
        """Quit the engine, killing it if it does not exit in time.

        An engine that is already gone is a normal condition. Only a failed
        force-kill is raised, and only on the first call.

        Raises:
            EngineTerminationError: If the process could not be killed.
        """
        if not self._begin_terminating():
            return
        self._ticker.stop()

        try:
            self._log_to_engine("quit")
            self._channel.write_line("quit")
        except Exception as e:
            logger.debug(f"Engine {self._identifier}: quit not delivered: {e}")

        try:
            exited = self._channel.wait_for_exit(self._config.quit_timeout)
        except Exception as e:
            logger.debug(f"Engine {self._identifier}: waiting for exit failed: {e}")
            exited = False
        if exited:
            logger.info(f"Engine {self._identifier} stopped")
            return

        self._report_protocol_error(
            TERMINATION,
            f"Engine did not exit within {self._config.quit_timeout}s after quit, killing process",
        )
        try:
            self._channel.terminate()
        except Exception as e:
            self._report_protocol_error(TERMINATION, f"Termination error: {e}")
            logger.critical(f"Engine {self._identifier} could not be killed and may be orphaned: {e}")
            raise EngineTerminationError(f"Failed to kill engine {self._identifier}: {e}") from e
        logger.info(f"Engine {self._identifier} killed")

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def read_event(self) -> EngineEvent:
        """Read one line and classify it.

        Never blocks longer than the configured read timeout. A timeout yields
        READ_TIMEOUT, a closed process ENGINE_EXITED, and any unrecognized line
        PROTOCOL_ERROR.
        """
        try:
            line = self._channel.read_line(self._config.read_timeout)
        except ProcessChannelError as e:
            return self._exited_event(str(e))

        if line is None:
            if not self._channel_alive():
                return self._exited_event("Engine process is not running")
            return EngineEvent(EventType.READ_TIMEOUT, engine_identifier=self._identifier)

        self._log_from_engine(line)
        event = classify_line(line, self._identifier)
        if event.error is not None:
            self._record_error(event.error)
        return event

    def _exited_event(self, message: str) -> EngineEvent:
        error = ProtocolError(DISCONNECT, message)
        if self._state is AdapterState.INITIALIZED and not self._exit_reported:
            self._exit_reported = True
            self._record_error(error)
        return EngineEvent(EventType.ENGINE_EXITED, engine_identifier=self._identifier, error=error)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def new_game(self) -> None:
        self.write_command("ucinewgame")

    def move_now(self) -> None:
        self.write_command("stop")

    def stop_calc(self) -> None:
        self.write_command("stop")

    def ask_for_ready(self) -> None:
        self.write_command("isready")

    def set_ponder(self, enabled: bool) -> None:
        self.set_option("Ponder", "true" if enabled else "false")

    def ponder_hit(self) -> None:
        self.write_command("ponderhit")

    def set_option(self, name: str, value: str | None = None) -> int:
        return self.write_command(format_set_option(name, value))

    def compute_move(self, game: GameState, limits: GoLimits) -> int:
        """Send the position and a go command.

        Returns:
            Total characters written.
        """
        written = self.write_command(format_position(game))
        written += self.write_command(format_go(limits))
        return written

    def ponder(self, game: GameState, limits: GoLimits, ponder_move: str) -> int:
        written = self.write_command(format_position(game, ponder_move))
        written += self.write_command(format_go(limits, ponder=True))
        return written

    def tick(self) -> None:
        """Sample the engine's memory usage."""
        try:
            usage = self._channel.get_memory_usage()
        except Exception as e:
            logger.debug(f"Engine {self._identifier}: memory query failed: {e}")
            return
        self._memory_usage = usage
        self._peak_memory_usage = max(self._peak_memory_usage, usage)
