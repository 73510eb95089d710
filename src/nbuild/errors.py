"""
Error taxonomy for nbuild.

- ConfigurationError: the build description itself is wrong (a unit with no
  source file, an unrecognized source extension, a malformed config file).
  Always detected before any command is issued.
- CommandFailedError: a spawned toolchain command exited non-zero or could not
  be started. Fatal to the build; never retried.

Unresolvable headers are deliberately not represented here: they are dropped
from dependency sets without error.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from nbuild.build.models import Command


class NBuildError(Exception):
    """Base class for all nbuild errors."""

    pass


class ConfigurationError(NBuildError):
    """Raised when the build configuration cannot be satisfied."""

    pass


class CommandFailedError(NBuildError):
    """Raised when a spawned command fails.

    Attributes:
        command: The command that failed
        returncode: Exit status, or None if the process could not be spawned
        stderr: Captured error output (may be empty)
        reason: Human-readable failure reason
    """

    def __init__(self, command: "Command", returncode: Optional[int], stderr: str = "", reason: Optional[str] = None):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        if reason is None:
            reason = f"exit status {returncode}"
        self.reason = reason
        super().__init__(f"Command failed ({reason}): {command}")
