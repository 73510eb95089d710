"""Link Driver.

Produces link targets from already-compiled object artifacts:

- Executable:      <linker> <cflags> <objects...> <ldflags> -o <output>
- Dynamic library: <linker> <cflags> <objects...> <ldflags> <dylib flags>
                   [-install_name N] [-current_version V] [-compatibility_version C]
                   [-exported_symbols_list F] [-unexported_symbols_list F] -o <output>
- Static archive:  <ar> <arflags> <output> <objects...>, then <ranlib> <output>

Linking only happens when the StalenessOracle reports the target stale. The
archive variant removes the previous archive first, since the archiver would
otherwise update it in place and keep members that are no longer listed.
"""

import logging
import shlex
from typing import Optional, Sequence

from nbuild.subprocess_utils import CommandRunner, run_command

from .build_config import BuildConfig
from .models import Command, DynamicLibraryTarget, Job, LinkTarget, StaticArchiveTarget
from .staleness import StalenessOracle

logger = logging.getLogger(__name__)


class LinkDriver:
    """Creates and executes link commands."""

    def __init__(self, config: BuildConfig, oracle: StalenessOracle, runner: CommandRunner = run_command):
        self.config = config
        self.oracle = oracle
        self.runner = runner

    def units_of(self, target: LinkTarget) -> tuple[str, ...]:
        """Constituent units of a target (all configured units when unspecified)."""
        return target.units or self.config.units

    def job_for(self, target: LinkTarget, units: Optional[Sequence[str]] = None) -> Job:
        """Build the ordered command chain that produces a target.

        Args:
            target: Target to link
            units: Constituent units (defaults to units_of(target))

        Returns:
            Job whose commands produce the target when run in order
        """
        units = tuple(units) if units is not None else self.units_of(target)
        objects = [f"{unit}{self.config.object_suffix}" for unit in units]
        root = self.config.root_dir

        if isinstance(target, StaticArchiveTarget):
            archive = Command(
                argv=(self.config.archiver, *shlex.split(self.config.archiver_flags), target.output, *objects),
                cwd=root,
            )
            index = Command(argv=(self.config.indexer, target.output), cwd=root)
            return Job(name=target.output, commands=(archive, index))

        ldflags = target.flags if target.flags is not None else self.config.ldflags
        argv = [self.config.linker_path, *shlex.split(self.config.cflags), *objects, *shlex.split(ldflags)]
        if isinstance(target, DynamicLibraryTarget):
            argv.extend(self._dylib_args(target))
        argv.extend(["-o", target.output])
        return Job.single(target.output, Command(argv=tuple(argv), cwd=root))

    def _dylib_args(self, target: DynamicLibraryTarget) -> list[str]:
        args = shlex.split(self.config.dylib_flags)
        if target.install_name:
            args.extend(["-install_name", target.install_name])
        if target.current_version:
            args.extend(["-current_version", target.current_version])
        compatibility = target.compatibility_version or target.current_version
        if compatibility:
            args.extend(["-compatibility_version", compatibility])
        if target.exported_symbols_list:
            args.extend(["-exported_symbols_list", target.exported_symbols_list])
        if target.unexported_symbols_list:
            args.extend(["-unexported_symbols_list", target.unexported_symbols_list])
        return args

    def link(self, target: LinkTarget, units: Optional[Sequence[str]] = None) -> bool:
        """Link a target if it is stale.

        Args:
            target: Target to link
            units: Constituent units (defaults to units_of(target))

        Returns:
            True if link commands were issued, False if the target was up to date

        Raises:
            CommandFailedError: If any link step fails
        """
        units = tuple(units) if units is not None else self.units_of(target)
        if not self.oracle.is_target_stale(target, units):
            logger.debug(f"{target.output} is up to date")
            return False

        if isinstance(target, StaticArchiveTarget):
            archive_path = self.config.root_dir / target.output
            if archive_path.exists():
                logger.debug(f"Removing stale archive {archive_path}")
                archive_path.unlink()

        logger.info(f"Linking {target.output} ({target.kind.value}, {len(units)} objects)")
        for command in self.job_for(target, units).commands:
            self.runner(command)
        return True
