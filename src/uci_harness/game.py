"""
Game inputs consumed by the protocol adapter.

The harness does not implement chess rules. A game is described by its start
position and the moves played, both in plain UCI text; python-chess is used
only to validate FENs and to derive a GameState from a Board.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import chess

from .exceptions import InvalidFenError


@dataclass
class GoLimits:
    """UCI-style limits for calculating a single move."""

    wtime_ms: int = 0
    btime_ms: int = 0
    winc_ms: int = 0
    binc_ms: int = 0
    moves_to_go: int = 0

    depth: int | None = None
    nodes: int | None = None
    mate_in: int | None = None
    movetime_ms: int | None = None

    infinite: bool = False


@dataclass
class GameState:
    """Start position and move history of a game."""

    start_fen: str | None = None  # None or "" means the standard start position
    moves: list[str] = field(default_factory=list)  # UCI notation, in play order

    def __post_init__(self) -> None:
        if self.start_fen:
            try:
                chess.Board(self.start_fen)
            except ValueError as e:
                raise InvalidFenError(f"Invalid FEN: {self.start_fen}") from e

    @property
    def uses_start_position(self) -> bool:
        return not self.start_fen

    @classmethod
    def from_board(cls, board: chess.Board) -> GameState:
        """Build a GameState from a python-chess board and its move stack."""
        root = board.root()
        fen = root.fen()
        return cls(
            start_fen=None if fen == chess.STARTING_FEN else fen,
            moves=[move.uci() for move in board.move_stack],
        )
