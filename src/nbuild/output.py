"""
Centralized timestamped output for nbuild.

Every user-facing line is prefixed with the time elapsed since program launch
in MM:SS.cc format, which makes it easy to see where a build spends its time:

    00:00.02 nbuild v0.1.0
    00:00.03 [1/2] Compiling 3 stale units...
    00:00.03 /usr/bin/gcc -I. -O3 -c array.c -o array.o
    00:01.40       Done (1.37s)

Usage:
    from nbuild.output import log, log_phase, log_detail

    log("Linking macruby...")
    log_phase(1, 2, "Compiling...")
    log_detail("3 units up to date")

Output may be produced from several job worker threads at once; lines are
written under a lock so they never interleave.
"""

import sys
import threading
import time
from types import TracebackType
from typing import Optional, TextIO

_start_time: Optional[float] = None
_output_stream: TextIO = sys.stdout
_verbose: bool = True
_lock = threading.Lock()


def init_timer(output_stream: Optional[TextIO] = None) -> None:
    """
    Initialize the program timer.

    Called automatically on first log if not called explicitly.

    Args:
        output_stream: Optional output stream (defaults to sys.stdout)
    """
    global _start_time, _output_stream
    _start_time = time.time()
    if output_stream is not None:
        _output_stream = output_stream


def set_verbose(verbose: bool) -> None:
    """Enable or disable verbose-only messages."""
    global _verbose
    _verbose = verbose


def get_elapsed() -> float:
    """
    Get elapsed time since timer initialization.

    Returns:
        Elapsed time in seconds
    """
    if _start_time is None:
        init_timer()
    return time.time() - _start_time  # type: ignore


def format_timestamp() -> str:
    """Format the current elapsed time as MM:SS.cc."""
    elapsed = get_elapsed()
    minutes = int(elapsed // 60)
    seconds = elapsed % 60
    return f"{minutes:02d}:{seconds:05.2f}"


def _print(message: str) -> None:
    line = f"{format_timestamp()} {message}\n"
    with _lock:
        _output_stream.write(line)
        _output_stream.flush()


def log(message: str, verbose_only: bool = False) -> None:
    """
    Log a message with timestamp.

    Args:
        message: Message to log
        verbose_only: If True, only print if verbose mode is enabled
    """
    if verbose_only and not _verbose:
        return
    _print(message)


def log_phase(phase: int, total: int, message: str, verbose_only: bool = False) -> None:
    """
    Log a build phase message as ``[N/M] message``.

    Args:
        phase: Current phase number
        total: Total number of phases
        message: Phase description
        verbose_only: If True, only print if verbose mode is enabled
    """
    if verbose_only and not _verbose:
        return
    _print(f"[{phase}/{total}] {message}")


def log_detail(message: str, indent: int = 6, verbose_only: bool = False) -> None:
    """
    Log an indented detail message.

    Args:
        message: Detail message
        indent: Number of spaces to indent (default 6)
        verbose_only: If True, only print if verbose mode is enabled
    """
    if verbose_only and not _verbose:
        return
    _print(f"{' ' * indent}{message}")


def log_header(title: str, version: str) -> None:
    _print(f"{title} v{version}")


class TimedLogger:
    """
    Context manager for logging an operation with its elapsed time.

    Usage:
        with TimedLogger("Compiling units", phase=(1, 2)) as timed:
            ...
            timed.detail("Compiled 10 units")
        # logs "Done (1.23s)", or "Aborted after ..." if the block raised
    """

    def __init__(self, operation: str, phase: Optional[tuple[int, int]] = None, verbose_only: bool = False):
        self.operation = operation
        self.phase = phase
        self.verbose_only = verbose_only
        self.start_time = 0.0
        self.elapsed = 0.0

    def __enter__(self) -> "TimedLogger":
        self.start_time = time.time()
        if self.phase:
            log_phase(self.phase[0], self.phase[1], f"{self.operation}...", self.verbose_only)
        else:
            log(f"{self.operation}...", self.verbose_only)
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.elapsed = time.time() - self.start_time
        if exc_type is None:
            log_detail(f"Done ({self.elapsed:.2f}s)", verbose_only=self.verbose_only)
        elif not issubclass(exc_type, KeyboardInterrupt):
            log_detail(f"Aborted after {self.elapsed:.2f}s: {exc_val}", verbose_only=self.verbose_only)
        return None

    def detail(self, message: str) -> None:
        """Log a detail message within this operation."""
        log_detail(message, verbose_only=self.verbose_only)
