"""
UCI Harness

Communication and lifecycle core of a chess engine test harness: drives the
UCI handshake, turns engine output into typed events, turns commands into
protocol text and creates pools of started engines.
"""

from .adapter import AdapterState, EngineAdapter, ProtocolLogHook
from .checklist import Checklist
from .config import AdapterConfig, EngineConfig, PoolConfig
from .events import EngineEvent, EventType, ProtocolError, SearchInfo, parse_search_info
from .exceptions import (
    EngineError,
    EngineStartupError,
    EngineTerminationError,
    EngineTimeoutError,
    HandshakeError,
    HandshakeTimeoutError,
    HarnessError,
    InvalidFenError,
    OptionParseError,
    ProcessChannelError,
    ProcessExitedError,
)
from .factory import AdapterFactory
from .game import GameState, GoLimits
from .option import EngineOption, OptionKind, parse_option_line
from .pool import EnginePoolFactory, disambiguate_names
from .process import ProcessChannel, SubprocessChannel
from .ticker import PeriodicTicker
from .uci import UciAdapter, format_go, format_position, format_set_option

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Config
    "AdapterConfig",
    "EngineConfig",
    "PoolConfig",
    # Options
    "EngineOption",
    "OptionKind",
    "parse_option_line",
    # Events
    "EngineEvent",
    "EventType",
    "ProtocolError",
    "SearchInfo",
    "parse_search_info",
    # Game inputs
    "GameState",
    "GoLimits",
    # Process
    "ProcessChannel",
    "SubprocessChannel",
    # Adapters
    "AdapterState",
    "EngineAdapter",
    "ProtocolLogHook",
    "UciAdapter",
    "format_go",
    "format_position",
    "format_set_option",
    "PeriodicTicker",
    # Factories
    "AdapterFactory",
    "Checklist",
    "EnginePoolFactory",
    "disambiguate_names",
    # Exceptions
    "HarnessError",
    "EngineError",
    "EngineStartupError",
    "EngineTimeoutError",
    "EngineTerminationError",
    "HandshakeError",
    "HandshakeTimeoutError",
    "InvalidFenError",
    "OptionParseError",
    "ProcessChannelError",
    "ProcessExitedError",
]
