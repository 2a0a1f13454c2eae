"""
Line-oriented transport to an engine process.

The adapter only depends on the ProcessChannel protocol. SubprocessChannel is
the implementation used for real engine binaries.
"""

from __future__ import annotations

import contextlib
import logging
import os
import queue
import subprocess
import threading
from pathlib import Path
from typing import IO, Protocol

from .exceptions import EngineStartupError, ProcessChannelError, ProcessExitedError

logger = logging.getLogger(__name__)

# Marks end of stream in the line queue
_EOF = None

# Seconds to wait for the pipe readers after the process has exited
_READER_JOIN_TIMEOUT = 1.0


class ProcessChannel(Protocol):
    """Transport contract consumed by the protocol adapter. Every method may raise."""

    def write_line(self, text: str) -> int: ...

    def read_line(self, timeout: float) -> str | None: ...

    def wait_for_exit(self, timeout: float) -> bool: ...

    def terminate(self) -> None: ...

    def is_running(self) -> bool: ...

    def get_memory_usage(self) -> int: ...


class SubprocessChannel:
    """
    ProcessChannel over a child process started with subprocess.Popen.

    A reader thread moves stdout lines into a queue so reads can time out.
    stderr is drained in the background and logged at debug level.

    Usage:
        channel = SubprocessChannel(Path("/usr/bin/stockfish"))
        channel.write_line("uci")
        line = channel.read_line(timeout=1.0)
    """

    def __init__(self, executable_path: Path | str, working_directory: Path | str | None = None) -> None:
        """Start the engine process.

        Raises:
            EngineStartupError: If the executable cannot be started.
        """
        self._path = Path(executable_path)
        self._lines: queue.Queue[str | None] = queue.Queue()
        self._closed = False

        try:
            self._process = subprocess.Popen(
                [str(self._path)],
                cwd=str(working_directory) if working_directory is not None else None,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                bufsize=1,
            )
        except FileNotFoundError as e:
            raise EngineStartupError(f"Engine binary not found at {self._path}") from e
        except OSError as e:
            raise EngineStartupError(f"Failed to start engine {self._path}: {e}") from e

        logger.debug(f"Started {self._path} (pid {self._process.pid})")
        self._reader = threading.Thread(
            target=self._read_stdout, name=f"engine-stdout-{self._process.pid}", daemon=True
        )
        self._reader.start()
        self._stderr_reader = threading.Thread(
            target=self._drain_stderr, name=f"engine-stderr-{self._process.pid}", daemon=True
        )
        self._stderr_reader.start()

    @property
    def pid(self) -> int:
        return self._process.pid

    def _read_stdout(self) -> None:
        stdout: IO[str] = self._process.stdout  # type: ignore[assignment]
        try:
            for line in stdout:
                self._lines.put(line.rstrip("\r\n"))
        except (OSError, ValueError) as e:
            logger.debug(f"stdout of {self._path} closed: {e}")
        finally:
            self._lines.put(_EOF)
            with contextlib.suppress(OSError):
                stdout.close()

    def _drain_stderr(self) -> None:
        stderr: IO[str] = self._process.stderr  # type: ignore[assignment]
        try:
            for line in stderr:
                logger.debug(f"stderr {self._path}: {line.rstrip()}")
        except (OSError, ValueError) as e:
            logger.debug(f"stderr of {self._path} closed: {e}")
        finally:
            with contextlib.suppress(OSError):
                stderr.close()

    def write_line(self, text: str) -> int:
        """Write one line to the engine's stdin.

        Returns:
            Number of characters written, including the newline.

        Raises:
            ProcessChannelError: If the pipe is closed.
        """
        stdin = self._process.stdin
        if stdin is None:
            raise ProcessChannelError("Engine stdin is not available")
        data = text + "\n"
        try:
            stdin.write(data)
            stdin.flush()
        except (OSError, ValueError) as e:
            raise ProcessChannelError(f"Failed to write to engine: {e}") from e
        return len(data)

    def read_line(self, timeout: float) -> str | None:
        """Read one line, waiting at most timeout seconds.

        Returns:
            The line without its line terminator, or None on timeout.

        Raises:
            ProcessExitedError: If the engine closed its output.
        """
        if self._closed:
            raise ProcessExitedError("Engine output is closed")
        try:
            line = self._lines.get(timeout=max(timeout, 0.0))
        except queue.Empty:
            return None
        if line is _EOF:
            self._closed = True
            raise ProcessExitedError("Engine output is closed")
        return line

    def wait_for_exit(self, timeout: float) -> bool:
        try:
            self._process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return False
        self._release_pipes()
        return True

    def terminate(self) -> None:
        """Kill the process if it is still alive.

        Raises:
            ProcessChannelError: If the process survives the kill.
        """
        if self._process.poll() is None:
            try:
                self._process.kill()
                self._process.wait(timeout=5.0)
            except (OSError, subprocess.TimeoutExpired) as e:
                raise ProcessChannelError(f"Failed to kill engine process {self.pid}: {e}") from e
        self._release_pipes()

    def _release_pipes(self) -> None:
        """Close stdin and wait for the reader threads to close stdout and stderr."""
        if self._process.stdin is not None:
            with contextlib.suppress(OSError):
                self._process.stdin.close()
        # Both readers reach EOF once the process is gone
        self._reader.join(timeout=_READER_JOIN_TIMEOUT)
        self._stderr_reader.join(timeout=_READER_JOIN_TIMEOUT)

    def is_running(self) -> bool:
        return self._process.poll() is None

    def get_memory_usage(self) -> int:
        """Resident memory of the engine process in bytes, 0 if unknown."""
        statm = Path(f"/proc/{self._process.pid}/statm")
        try:
            resident_pages = int(statm.read_text().split()[1])
            return resident_pages * os.sysconf("SC_PAGE_SIZE")
        except (OSError, ValueError, IndexError, AttributeError):
            return 0
