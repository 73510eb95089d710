"""Compile Driver.

Builds and runs the compilation command for one compilation unit:

    <compiler> <base flags> [<unit flags>] -c <source> -o <unit>.o

The compiler and base flags are chosen by the source extension through the
ToolchainProfile (.c, .cpp, .m, .mm). An unrecognized extension is a
configuration error; it is never silently skipped.
"""

import logging
import shlex
from pathlib import Path
from typing import Optional

from nbuild.errors import ConfigurationError
from nbuild.subprocess_utils import CommandRunner, run_command

from .build_config import BuildConfig, ToolchainProfile
from .models import Command
from .source_locator import SourceLocator

logger = logging.getLogger(__name__)


class CompileDriver:
    """Creates and executes compilation commands."""

    def __init__(
        self,
        config: BuildConfig,
        sources: SourceLocator,
        profile: Optional[ToolchainProfile] = None,
        runner: CommandRunner = run_command,
    ):
        """Initialize the compile driver.

        Args:
            config: Build configuration
            sources: Source locator shared with the rest of the build
            profile: Toolchain profile (default: derived from config)
            runner: Command runner used by compile()
        """
        self.config = config
        self.sources = sources
        self.profile = profile or ToolchainProfile.from_config(config)
        self.runner = runner

    def command_for(self, unit: str) -> Command:
        """Build the compilation command for a unit.

        Args:
            unit: Logical unit name

        Returns:
            Command producing the unit's object artifact

        Raises:
            ConfigurationError: If the unit has no source or an unrecognized extension
        """
        source = self.sources.source_for(unit)
        selected = self.profile.select(source.suffix)
        if selected is None:
            raise ConfigurationError(f"Unrecognized source extension '{source.suffix}' for unit `{unit}' ({source})")

        compiler, flags = selected
        argv = [compiler, *flags]

        unit_flags = self.config.unit_flags.get(unit)
        if unit_flags:
            argv.extend(shlex.split(unit_flags))

        argv.extend(["-c", self._relative(source), "-o", self._relative(self.config.object_path(unit))])
        return Command(argv=tuple(argv), cwd=self.config.root_dir)

    def compile(self, unit: str) -> Path:
        """Compile a single unit unconditionally.

        Returns:
            Path to the object artifact

        Raises:
            ConfigurationError: If the command cannot be constructed
            CommandFailedError: If the compiler fails
        """
        command = self.command_for(unit)
        logger.info(f"Compiling {unit}")
        self.runner(command)
        return self.config.object_path(unit)

    def _relative(self, path: Path) -> str:
        try:
            return str(path.relative_to(self.config.root_dir))
        except ValueError:
            return str(path)
