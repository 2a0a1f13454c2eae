"""
Exception hierarchy for the UCI harness.

Recoverable protocol problems are not raised; they land in the adapter's
protocol error log. The exceptions below mark failed operations.
"""

from __future__ import annotations


class HarnessError(Exception):
    """Base exception for all harness errors."""


# =============================================================================
# Engine Exceptions
# =============================================================================


class EngineError(HarnessError):
    """Base exception for engine-related errors."""


class EngineStartupError(EngineError):
    """Engine failed to start or initialize."""


class EngineTimeoutError(EngineError):
    """Engine operation timed out."""


class HandshakeError(EngineStartupError):
    """The UCI handshake did not complete."""


class HandshakeTimeoutError(HandshakeError, EngineTimeoutError):
    """No uciok arrived before the handshake deadline."""


class EngineTerminationError(EngineError):
    """Force-terminating the engine process failed; it may be orphaned."""


# =============================================================================
# Process Channel Exceptions
# =============================================================================


class ProcessChannelError(EngineError):
    """Reading from or writing to the engine process failed."""


class ProcessExitedError(ProcessChannelError):
    """The engine process closed its output stream."""


# =============================================================================
# Input Exceptions
# =============================================================================


class OptionParseError(HarnessError):
    """An engine option declaration is malformed."""


class InvalidFenError(HarnessError):
    """Invalid FEN position provided."""
