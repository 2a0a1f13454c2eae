"""
Typed events produced from engine output.

Every line an engine writes, and every read that yields no line, reaches the
caller as exactly one EngineEvent.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple

from .option import EngineOption


class EventType(Enum):
    """Kinds of engine events."""

    ID_NAME = "id_name"
    ID_AUTHOR = "id_author"
    OPTION = "option"
    UCI_OK = "uciok"  # Handshake complete
    READY_OK = "readyok"
    INFO = "info"
    BEST_MOVE = "bestmove"
    PROTOCOL_ERROR = "protocol_error"
    READ_TIMEOUT = "read_timeout"
    ENGINE_EXITED = "engine_exited"


class ProtocolError(NamedTuple):
    """A recorded protocol violation or lifecycle problem."""

    context: str  # Coarse phase tag, e.g. "initialization"
    message: str


@dataclass
class SearchInfo:
    """Fields of a UCI "info" line. Absent fields stay None or empty."""

    depth: int | None = None
    seldepth: int | None = None
    multipv: int | None = None
    score_cp: int | None = None
    score_mate: int | None = None
    lowerbound: bool = False
    upperbound: bool = False
    time_ms: int | None = None
    nodes: int | None = None
    nps: int | None = None
    hashfull: int | None = None
    tbhits: int | None = None
    sbhits: int | None = None
    cpuload: int | None = None
    currmove: str | None = None
    currmovenumber: int | None = None
    string: str | None = None
    pv: list[str] = field(default_factory=list)
    refutation: list[str] = field(default_factory=list)
    currline: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)  # Unparseable tokens


# info keyword -> SearchInfo attribute for single integer values
_INT_FIELDS = {
    "depth": "depth",
    "seldepth": "seldepth",
    "multipv": "multipv",
    "time": "time_ms",
    "nodes": "nodes",
    "nps": "nps",
    "hashfull": "hashfull",
    "tbhits": "tbhits",
    "sbhits": "sbhits",
    "cpuload": "cpuload",
    "currmovenumber": "currmovenumber",
}

# Keywords whose value runs to the end of the line
_LIST_FIELDS = {"pv", "refutation", "currline"}

_SCORE_PARTS = ("cp", "mate", "lowerbound", "upperbound")


def _to_int(token: str | None) -> int | None:
    if token is None:
        return None
    try:
        return int(token)
    except ValueError:
        return None


def parse_search_info(line: str) -> SearchInfo:
    """
    Parse a UCI info line.

    Args:
        line: A line starting with "info".

    Returns:
        SearchInfo with all recognized fields populated. Malformed values are
        reported in SearchInfo.errors rather than raised.
    """
    info = SearchInfo()
    tokens = line.split()
    i = 1 if tokens and tokens[0] == "info" else 0

    while i < len(tokens):
        token = tokens[i]
        i += 1

        if token in _INT_FIELDS:
            raw = tokens[i] if i < len(tokens) else None
            value = _to_int(raw)
            if value is None:
                info.errors.append(f"Invalid value for '{token}': {raw}")
                if raw is not None and not _is_keyword(raw):
                    i += 1
            else:
                setattr(info, _INT_FIELDS[token], value)
                i += 1
        elif token == "score":
            while i < len(tokens) and tokens[i] in _SCORE_PARTS:
                kind = tokens[i]
                i += 1
                if kind == "lowerbound":
                    info.lowerbound = True
                elif kind == "upperbound":
                    info.upperbound = True
                else:
                    raw = tokens[i] if i < len(tokens) else None
                    value = _to_int(raw)
                    if value is None:
                        info.errors.append(f"Invalid score {kind}: {raw}")
                        if raw is not None and not _is_keyword(raw) and raw not in _SCORE_PARTS:
                            i += 1
                        continue
                    i += 1
                    if kind == "cp":
                        info.score_cp = value
                    else:
                        info.score_mate = value
        elif token == "currmove":
            if i < len(tokens):
                info.currmove = tokens[i]
                i += 1
            else:
                info.errors.append("Missing value for 'currmove'")
        elif token == "string":
            info.string = " ".join(tokens[i:])
            i = len(tokens)
        elif token in _LIST_FIELDS:
            # Moves run until the next known keyword
            moves: list[str] = []
            while i < len(tokens) and not _is_keyword(tokens[i]):
                moves.append(tokens[i])
                i += 1
            getattr(info, token).extend(moves)
        else:
            info.errors.append(f"Unknown token: {token}")

    return info


def _is_keyword(token: str) -> bool:
    return (
        token in _INT_FIELDS
        or token in _LIST_FIELDS
        or token in ("score", "currmove", "string")
    )


def now_ms() -> int:
    """Monotonic timestamp in milliseconds."""
    return int(time.monotonic() * 1000)


@dataclass
class EngineEvent:
    """A single event read from an engine.

    Only the payload fields that belong to the event type are set.
    """

    type: EventType
    timestamp_ms: int = field(default_factory=now_ms)
    raw_line: str = ""
    engine_identifier: str = ""
    text: str | None = None  # ID_NAME / ID_AUTHOR value
    option: EngineOption | None = None
    search_info: SearchInfo | None = None
    best_move: str | None = None
    ponder_move: str | None = None
    error: ProtocolError | None = None

    @property
    def is_error(self) -> bool:
        return self.type is EventType.PROTOCOL_ERROR
