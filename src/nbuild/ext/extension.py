"""Extension Sub-Builder.

Drives external extension subprojects through their lifecycle. Each project
lives in its own directory, holds a generator input (``extconf.rb`` by
default) and owns a generated build description (``Makefile``):

    UNCONFIGURED --configure--> CONFIGURED --build--> BUILT --install--> INSTALLED
         ^                                                                  |
         +------------------------------ clean -----------------------------+

The description is (re)generated whenever it is missing or older than the
generator input. Building all projects runs one job per project (configure
step, if needed, followed by the build step) through the JobScheduler;
install and clean run one project at a time.
"""

import logging
import os
import shlex
import time
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional

from nbuild.build.build_config import ExtensionSettings
from nbuild.build.models import BuildResult, Command, Job
from nbuild.build.staleness import mtime_ns
from nbuild.errors import CommandFailedError
from nbuild.scheduler.job_queue import JobScheduler
from nbuild.subprocess_utils import CommandRunner, run_command

logger = logging.getLogger(__name__)


class ExtensionState(Enum):
    """Lifecycle state of an extension project."""

    UNCONFIGURED = "unconfigured"
    CONFIGURED = "configured"
    BUILT = "built"
    INSTALLED = "installed"


class ExtensionProject:
    """One extension subproject directory."""

    def __init__(self, directory: Path, settings: ExtensionSettings, runner: CommandRunner = run_command):
        self.directory = directory
        self.settings = settings
        self.runner = runner
        self._state: Optional[ExtensionState] = None

    @property
    def name(self) -> str:
        return str(self.directory)

    @property
    def description(self) -> Path:
        """Path of the generated build description."""
        return self.directory / self.settings.description_name

    @property
    def generator_input(self) -> Path:
        return self.directory / self.settings.generator_input

    @property
    def toolchain(self) -> str:
        """Relative path from the project directory back to the toolchain root."""
        return Path(os.path.relpath(self.settings.root_dir, self.directory)).as_posix()

    @property
    def state(self) -> ExtensionState:
        if not self.is_configured():
            return ExtensionState.UNCONFIGURED
        return self._state or ExtensionState.CONFIGURED

    def is_configured(self) -> bool:
        """True if the description exists and is not older than its generator input."""
        description_time = mtime_ns(self.description)
        if description_time is None:
            return False
        input_time = mtime_ns(self.generator_input)
        return input_time is None or not input_time > description_time

    def configure_command(self) -> Optional[Command]:
        """Command regenerating the description, or None if it is up to date."""
        if self.is_configured():
            return None
        return Command(argv=tuple(shlex.split(self._expand(self.settings.configure_command))), cwd=self.directory)

    def make_command(self, target: Optional[str] = None, variables: Optional[Mapping[str, str]] = None) -> Command:
        """Command running one phase of the generated description.

        Args:
            target: Make target (None = default goal)
            variables: Extra variables for this phase
        """
        argv = [self.settings.make_program]
        merged = dict(self.settings.make_variables)
        merged.update(variables or {})
        argv.extend(f"{key}={self._expand(value)}" for key, value in merged.items())
        if target:
            argv.append(target)
        return Command(argv=tuple(argv), cwd=self.directory)

    def build_commands(self) -> list[Command]:
        commands = [self.configure_command(), self.make_command(variables=self.settings.build_variables)]
        return [c for c in commands if c is not None]

    def install_command(self) -> Command:
        return self.make_command("install")

    def clean_commands(self) -> list[Command]:
        if not self.description.exists():
            return []
        commands = [self.configure_command(), self.make_command("clean")]
        return [c for c in commands if c is not None]

    def build(self) -> None:
        """Configure (if needed) and build.

        Raises:
            CommandFailedError: If any step fails
        """
        for command in self.build_commands():
            self.runner(command)
        self.mark(ExtensionState.BUILT)

    def install(self) -> None:
        """Install; assumes build() already ran and does not reconfigure."""
        self.runner(self.install_command())
        self.mark(ExtensionState.INSTALLED)

    def clean(self) -> None:
        """Run the clean phase, then delete the generated description."""
        commands = self.clean_commands()
        if not commands:
            logger.debug(f"{self.directory}: nothing to clean")
            return
        for command in commands:
            self.runner(command)
        self.description.unlink(missing_ok=True)
        self._state = None

    def mark(self, state: ExtensionState) -> None:
        self._state = state

    def _expand(self, template: str) -> str:
        return template.replace("{toolchain}", self.toolchain)


class ExtensionBuilder:
    """Builds, installs and cleans all configured extension projects."""

    def __init__(self, settings: ExtensionSettings, runner: CommandRunner = run_command, scheduler: Optional[JobScheduler] = None):
        self.settings = settings
        self.runner = runner
        self.scheduler = scheduler or JobScheduler(runner=runner)
        self._projects: Optional[list[ExtensionProject]] = None

    def extension_dirs(self) -> list[Path]:
        """Directories holding a generator input, for each extension name in sorted order."""
        dirs: list[Path] = []
        for name in sorted(self.settings.names):
            base = self.settings.ext_dir / name
            if not base.is_dir():
                logger.warning(f"Extension directory not found: {base}")
                continue
            dirs.extend(sorted(p.parent for p in base.rglob(self.settings.generator_input)))
        return dirs

    def projects(self) -> list[ExtensionProject]:
        """Projects discovered on first use; the same objects carry their state across phases."""
        if self._projects is None:
            self._projects = [ExtensionProject(d, self.settings, runner=self.runner) for d in self.extension_dirs()]
        return self._projects

    def build_all(self) -> BuildResult:
        """Build all projects in parallel, one job per project."""
        start_time = time.time()
        projects = self.projects()
        jobs = [Job(name=p.name, commands=tuple(p.build_commands())) for p in projects]
        result = self.scheduler.run_all(jobs, self.settings.jobs)

        done = set(result.completed)
        for project in projects:
            if project.name in done:
                project.mark(ExtensionState.BUILT)

        return BuildResult(
            success=result.success,
            failure=result.failure,
            compiled=result.completed,
            build_time=time.time() - start_time,
            message=f"Built {len(result.completed)} of {len(projects)} extensions",
        )

    def install_all(self) -> BuildResult:
        return self._sequential("Installed", lambda p: p.install())

    def clean_all(self) -> BuildResult:
        return self._sequential("Cleaned", lambda p: p.clean())

    def _sequential(self, verb: str, action) -> BuildResult:
        start_time = time.time()
        projects = self.projects()
        handled: list[str] = []
        for project in projects:
            try:
                action(project)
            except CommandFailedError as e:
                return BuildResult(success=False, failure=e, compiled=handled, build_time=time.time() - start_time, message=str(e))
            handled.append(project.name)
        return BuildResult(success=True, compiled=handled, build_time=time.time() - start_time, message=f"{verb} {len(handled)} extensions")
