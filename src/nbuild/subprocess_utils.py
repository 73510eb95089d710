"""Subprocess utilities for running toolchain commands.

Every external process nbuild spawns (compilers, linkers, archivers, make,
extension configure scripts) goes through run_command(), which wraps
subprocess.run with platform-specific flags and converts failures into
CommandFailedError.
"""

import logging
import subprocess
import sys
from typing import TYPE_CHECKING, Any, Callable

from nbuild.errors import CommandFailedError
from nbuild.output import log, log_detail

if TYPE_CHECKING:
    from nbuild.build.models import Command

logger = logging.getLogger(__name__)

# A runner executes one command and raises CommandFailedError on failure.
CommandRunner = Callable[["Command"], None]


def get_subprocess_creation_flags() -> int:
    """Get platform-specific subprocess creation flags.

    Returns:
        - Windows: subprocess.CREATE_NO_WINDOW (prevents console window)
        - Other platforms: 0 (no special flags)
    """
    if sys.platform == "win32":
        return subprocess.CREATE_NO_WINDOW
    return 0


def safe_run(cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess:
    """Execute subprocess.run with platform-specific flags.

    stdin is redirected to DEVNULL unless the caller passes it explicitly, and
    any caller-supplied creationflags are OR'd with the platform defaults.

    Args:
        cmd: Command and arguments
        **kwargs: Additional arguments passed to subprocess.run

    Returns:
        CompletedProcess result from subprocess.run
    """
    default_flags = get_subprocess_creation_flags()

    if "creationflags" in kwargs:
        kwargs["creationflags"] = kwargs["creationflags"] | default_flags
    elif default_flags:
        kwargs["creationflags"] = default_flags

    if "stdin" not in kwargs:
        kwargs["stdin"] = subprocess.DEVNULL

    return subprocess.run(cmd, **kwargs)


def run_command(command: "Command") -> None:
    """Run a single toolchain command to completion.

    The command is echoed before it runs. Output of a successful command
    (typically compiler warnings) is echoed as indented detail lines.

    Args:
        command: Command to execute

    Raises:
        CommandFailedError: If the command exits non-zero or cannot be spawned
    """
    log(str(command))
    cwd = str(command.cwd) if command.cwd is not None else None

    try:
        result = safe_run(list(command.argv), cwd=cwd, capture_output=True, text=True)
    except OSError as e:
        logger.error(f"Failed to spawn {command.argv[0]}: {e}")
        raise CommandFailedError(command, None, reason=str(e)) from e

    if result.returncode != 0:
        logger.debug(f"Command exited with {result.returncode}: {command}")
        raise CommandFailedError(command, result.returncode, stderr=result.stderr or "")

    for stream in (result.stdout, result.stderr):
        if stream:
            for line in stream.rstrip().splitlines():
                log_detail(line)
