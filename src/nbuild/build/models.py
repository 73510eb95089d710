"""Data models for the build orchestrator.

Defines:
- Command: one external process invocation (argv + working directory)
- Job: a single command or an ordered chain of commands run as one unit of work
- LinkTarget and its variants: ExecutableTarget, DynamicLibraryTarget,
  StaticArchiveTarget
- BuildResult: aggregated outcome of a build, link or extension phase
"""

import shlex
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from nbuild.errors import CommandFailedError


@dataclass(frozen=True)
class Command:
    """A single external command.

    Attributes:
        argv: Program and arguments, executed without a shell
        cwd: Working directory the command is scoped to (None = current)
    """

    argv: tuple[str, ...]
    cwd: Optional[Path] = None

    def __str__(self) -> str:
        line = shlex.join(self.argv)
        if self.cwd is not None:
            return f"cd {shlex.quote(str(self.cwd))} && {line}"
        return line


@dataclass(frozen=True)
class Job:
    """An independently schedulable unit of work.

    Commands within a job run strictly in order; jobs themselves are
    unordered relative to each other.

    Attributes:
        name: Job name (unit name, extension directory, target name)
        commands: Ordered command chain
    """

    name: str
    commands: tuple[Command, ...]

    @classmethod
    def single(cls, name: str, command: Command) -> "Job":
        """Create a job consisting of exactly one command."""
        return cls(name=name, commands=(command,))


class TargetKind(Enum):
    """Kind of link target."""

    EXECUTABLE = "executable"
    DYNAMIC_LIBRARY = "dylib"
    STATIC_ARCHIVE = "archive"


@dataclass(frozen=True)
class LinkTarget:
    """An artifact assembled from the object files of compilation units.

    Attributes:
        output: Output path of the linked artifact
        units: Compilation unit names, in link order. Empty means all configured units.
        flags: Target-specific link flags (None = configured ldflags)
    """

    output: str
    units: tuple[str, ...] = ()
    flags: Optional[str] = None

    kind = TargetKind.EXECUTABLE

    @property
    def name(self) -> str:
        return Path(self.output).name


@dataclass(frozen=True)
class ExecutableTarget(LinkTarget):
    """A linked executable."""

    kind = TargetKind.EXECUTABLE


@dataclass(frozen=True)
class DynamicLibraryTarget(LinkTarget):
    """A dynamic library.

    Attributes:
        install_name: Install name recorded in the library (None = omitted)
        current_version: Library version (None = omitted)
        compatibility_version: Compatibility version (None = current_version)
        exported_symbols_list: Optional file listing the symbols to export
        unexported_symbols_list: Optional file listing symbols to hide
    """

    install_name: Optional[str] = None
    current_version: Optional[str] = None
    compatibility_version: Optional[str] = None
    exported_symbols_list: Optional[str] = None
    unexported_symbols_list: Optional[str] = None

    kind = TargetKind.DYNAMIC_LIBRARY


@dataclass(frozen=True)
class StaticArchiveTarget(LinkTarget):
    """A static archive built with an archiver plus an index tool."""

    kind = TargetKind.STATIC_ARCHIVE


_TARGET_CLASSES: dict[str, type[LinkTarget]] = {
    TargetKind.EXECUTABLE.value: ExecutableTarget,
    TargetKind.DYNAMIC_LIBRARY.value: DynamicLibraryTarget,
    TargetKind.STATIC_ARCHIVE.value: StaticArchiveTarget,
}


def target_from_dict(data: dict[str, Any]) -> LinkTarget:
    """Create a link target from its config-file representation.

    Args:
        data: Mapping with "kind", "output" and optional variant fields

    Returns:
        The matching LinkTarget variant

    Raises:
        KeyError: If "output" is missing
        ValueError: If "kind" is unknown
    """
    data = dict(data)
    kind = data.pop("kind", TargetKind.EXECUTABLE.value)
    target_cls = _TARGET_CLASSES.get(kind)
    if target_cls is None:
        raise ValueError(f"Unknown target kind '{kind}' (expected one of: {', '.join(_TARGET_CLASSES)})")
    output = data.pop("output")
    units = tuple(data.pop("units", ()))
    return target_cls(output=output, units=units, **data)


@dataclass
class BuildResult:
    """Aggregated result of a build phase.

    Attributes:
        success: True if every issued command succeeded
        failure: The first command failure, if any
        compiled: Names of units compiled in this run
        linked: Outputs of targets linked in this run
        build_time: Wall-clock time in seconds
        message: Human-readable summary
    """

    success: bool
    failure: Optional[CommandFailedError] = None
    compiled: list[str] = field(default_factory=list)
    linked: list[str] = field(default_factory=list)
    build_time: float = 0.0
    message: str = ""

    def merge(self, other: "BuildResult") -> "BuildResult":
        """Combine two sequential results into one."""
        return BuildResult(
            success=self.success and other.success,
            failure=self.failure or other.failure,
            compiled=self.compiled + other.compiled,
            linked=self.linked + other.linked,
            build_time=self.build_time + other.build_time,
            message=other.message or self.message,
        )
