"""Pytest configuration and fixtures for nbuild tests.

Most tests never spawn a real compiler. Instead they hand a RecordingRunner
to the components under test: it records every command, materializes the
files a command would produce (the argument after ``-o``, the archive named
by ``ar``/``ranlib``) and stamps them with a logical clock that advances 10
seconds per command. Explicit timestamps keep the staleness checks
deterministic on filesystems with coarse mtime resolution.
"""

import os
import sys
import threading
from pathlib import Path
from typing import Callable, Optional

import pytest

from nbuild.build.build_config import BuildConfig
from nbuild.build.models import Command
from nbuild.errors import CommandFailedError

# Sources written by fixtures are stamped well before the runner's clock.
SOURCE_TIME = 500_000
CLOCK_START = 1_000_000


def set_mtime(path: Path, seconds: float) -> None:
    os.utime(path, (seconds, seconds))


class RecordingRunner:
    """Fake command runner that records commands and produces their outputs."""

    def __init__(self) -> None:
        self.commands: list[Command] = []
        self.clock = CLOCK_START
        self.fail_when: Optional[Callable[[Command], bool]] = None
        self.on_command: Optional[Callable[[Command], None]] = None
        self._lock = threading.Lock()

    def __call__(self, command: Command) -> None:
        with self._lock:
            self.commands.append(command)
            if self.fail_when is not None and self.fail_when(command):
                raise CommandFailedError(command, 1, stderr="error: simulated failure")
            if self.on_command is not None:
                self.on_command(command)
            for output in self._outputs(command):
                self.touch(output)

    def tick(self) -> int:
        self.clock += 10
        return self.clock

    def touch(self, path: Path) -> None:
        """Create or update ``path`` with the next logical timestamp."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.touch()
        now = self.tick()
        set_mtime(path, now)

    def reset(self) -> None:
        self.commands.clear()

    def _outputs(self, command: Command) -> list[Path]:
        argv = command.argv
        cwd = command.cwd or Path.cwd()
        tool = Path(argv[0]).name
        if "-o" in argv:
            return [cwd / argv[argv.index("-o") + 1]]
        if tool == "ar":
            return [cwd / argv[2]]
        if tool == "ranlib":
            return [cwd / argv[1]]
        return []

    # Query helpers

    def compiled_units(self) -> list[str]:
        """Units compiled so far, derived from the ``-o <unit>.o`` argument."""
        units = []
        for command in self.commands:
            argv = command.argv
            if "-c" in argv:
                units.append(argv[argv.index("-o") + 1][: -len(".o")])
        return units

    def linked_outputs(self) -> list[str]:
        outputs = []
        for command in self.commands:
            argv = command.argv
            if "-o" in argv and "-c" not in argv:
                outputs.append(argv[argv.index("-o") + 1])
            elif Path(argv[0]).name == "ar":
                outputs.append(argv[2])
        return outputs


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def write_file(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write a file under tmp_path, stamped with SOURCE_TIME."""

    def _write(relative: str, content: str = "") -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        set_mtime(path, SOURCE_TIME)
        return path

    return _write


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., BuildConfig]:
    """Create a BuildConfig rooted at tmp_path with test-friendly defaults."""

    def _make(**overrides) -> BuildConfig:
        values = dict(
            root_dir=tmp_path,
            include_dirs=(".", "include"),
            cc="gcc",
            cxx="g++",
            cflags="-I. -O2",
            cxxflags="-I. -O2 -std=c++11",
            objc_cflags="-I. -O2 -fobjc-gc-only",
            ldflags="-lpthread",
            archiver="ar",
            indexer="ranlib",
        )
        values.update(overrides)
        return BuildConfig(**values)

    return _make


@pytest.fixture(autouse=True)
def isolate_output_globals():
    """Point output.py at the current sys.stdout for each test and restore it afterwards."""
    from nbuild import output

    original_stream = output._output_stream
    original_verbose = output._verbose
    output._output_stream = sys.stdout
    output._verbose = True

    yield

    output._output_stream = original_stream
    output._verbose = original_verbose
