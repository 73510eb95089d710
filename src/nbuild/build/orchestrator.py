"""
Build orchestration for nbuild projects.

The Builder wires the components together for one configuration:

    SourceLocator -> HeaderResolver -> DependencyScanner -> StalenessOracle
                                                            |          |
                                                  CompileDriver    LinkDriver
                                                            |
                                                       JobScheduler

A build request names a subset of units (default: all). Every named unit is
resolved and its compile command constructed before anything runs, so
configuration errors surface before the first command is issued. Stale units
are then handed to the JobScheduler as independent jobs. Link requests consult
the StalenessOracle over the target's objects before invoking the LinkDriver.
"""

import logging
import time
from pathlib import Path
from typing import Iterable, Optional, Sequence

from nbuild.errors import CommandFailedError
from nbuild.output import TimedLogger, log_detail, log_phase
from nbuild.scheduler.job_queue import JobScheduler
from nbuild.subprocess_utils import CommandRunner, run_command

from .build_config import BuildConfig
from .compiler import CompileDriver
from .dependency_scanner import DependencyScanner
from .header_resolver import HeaderResolver
from .linker import LinkDriver
from .models import BuildResult, DynamicLibraryTarget, ExecutableTarget, Job, LinkTarget, StaticArchiveTarget
from .source_locator import SourceLocator
from .staleness import StalenessOracle

logger = logging.getLogger(__name__)


class Builder:
    """Incremental builder for a set of compilation units and link targets."""

    def __init__(self, config: BuildConfig, runner: CommandRunner = run_command, scheduler: Optional[JobScheduler] = None):
        """
        Initialize the builder.

        Args:
            config: Build configuration bundle
            runner: Command runner shared by all drivers
            scheduler: Job scheduler (default: one using ``runner``)
        """
        self.config = config
        self.runner = runner
        self.sources = SourceLocator(config)
        self.resolver = HeaderResolver(config.include_roots())
        self.scanner = DependencyScanner(self.sources, self.resolver)
        self.oracle = StalenessOracle(config, self.sources, self.scanner)
        self.compiler = CompileDriver(config, self.sources, runner=runner)
        self.linker = LinkDriver(config, self.oracle, runner=runner)
        self.scheduler = scheduler or JobScheduler(runner=runner)

    def build(self, units: Optional[Sequence[str]] = None) -> BuildResult:
        """Compile every stale unit.

        Args:
            units: Units to consider (default: all configured units)

        Returns:
            BuildResult listing the units compiled in this run

        Raises:
            ConfigurationError: If a unit has no source or an unrecognized extension
        """
        start_time = time.time()
        # One job per unit name, in first-seen order.
        units = tuple(dict.fromkeys(units if units is not None else self.config.units))

        # Resolve everything up front: configuration errors must surface
        # before any command runs.
        commands = {unit: self.compiler.command_for(unit) for unit in units}
        stale = [unit for unit in units if self.oracle.is_unit_stale(unit)]

        if not stale:
            logger.info(f"All {len(units)} units up to date")
            return BuildResult(success=True, build_time=time.time() - start_time, message="All units up to date")

        jobs = [Job.single(unit, commands[unit]) for unit in stale]
        with TimedLogger(f"Compiling {len(stale)} of {len(units)} units (jobs: {self.config.jobs})", verbose_only=True):
            result = self.scheduler.run_all(jobs, self.config.jobs)

        build_time = time.time() - start_time
        if not result.success:
            return BuildResult(
                success=False,
                failure=result.failure,
                compiled=result.completed,
                build_time=build_time,
                message=f"Compilation failed: {result.failure}",
            )
        return BuildResult(success=True, compiled=result.completed, build_time=build_time, message=f"Compiled {len(result.completed)} units")

    def link(self, target: LinkTarget) -> BuildResult:
        """Link a target if any of its objects changed.

        Returns:
            BuildResult with the target in ``linked`` if link commands ran
        """
        start_time = time.time()
        try:
            linked = self.linker.link(target)
        except CommandFailedError as e:
            return BuildResult(success=False, failure=e, build_time=time.time() - start_time, message=f"Linking {target.output} failed: {e}")

        if not linked:
            log_detail(f"{target.output} is up to date", verbose_only=True)
        return BuildResult(
            success=True,
            linked=[target.output] if linked else [],
            build_time=time.time() - start_time,
            message=f"Linked {target.output}" if linked else f"{target.output} is up to date",
        )

    def link_executable(self, name: str, units: Optional[Sequence[str]] = None, ldflags: Optional[str] = None) -> BuildResult:
        return self.link(ExecutableTarget(output=name, units=tuple(units or ()), flags=ldflags))

    def link_dylib(
        self,
        name: str,
        units: Optional[Sequence[str]] = None,
        ldflags: Optional[str] = None,
        install_name: Optional[str] = None,
        current_version: Optional[str] = None,
        compatibility_version: Optional[str] = None,
        exported_symbols_list: Optional[str] = None,
        unexported_symbols_list: Optional[str] = None,
    ) -> BuildResult:
        target = DynamicLibraryTarget(
            output=name,
            units=tuple(units or ()),
            flags=ldflags,
            install_name=install_name,
            current_version=current_version,
            compatibility_version=compatibility_version,
            exported_symbols_list=exported_symbols_list,
            unexported_symbols_list=unexported_symbols_list,
        )
        return self.link(target)

    def link_archive(self, name: str, units: Optional[Sequence[str]] = None) -> BuildResult:
        return self.link(StaticArchiveTarget(output=name, units=tuple(units or ())))

    def make(self, targets: Optional[Iterable[LinkTarget]] = None) -> BuildResult:
        """Compile all units, then link each target.

        No link command is issued if any compilation fails.

        Args:
            targets: Targets to link (default: all declared targets)

        Returns:
            Combined BuildResult
        """
        targets = list(targets) if targets is not None else list(self.config.targets)
        units = self._units_for(targets)

        log_phase(1, 2, f"Checking {len(units)} units", verbose_only=True)
        result = self.build(units)
        if not result.success:
            return result

        with TimedLogger(f"Linking {len(targets)} targets", phase=(2, 2), verbose_only=True) as timed:
            for target in targets:
                result = result.merge(self.link(target))
                if not result.success:
                    break
            timed.detail(f"{len(result.linked)} of {len(targets)} targets relinked")
        return result

    def clean(self) -> list[Path]:
        """Delete the object artifacts of all configured units.

        Returns:
            Paths that were removed
        """
        removed = []
        for unit in self.config.units:
            path = self.config.object_path(unit)
            if path.exists():
                path.unlink()
                removed.append(path)
        logger.info(f"Removed {len(removed)} object files")
        return removed

    def _units_for(self, targets: Sequence[LinkTarget]) -> tuple[str, ...]:
        """Configured units plus any extra units the targets reference, in order."""
        units = list(self.config.units)
        seen = set(units)
        for target in targets:
            for unit in target.units:
                if unit not in seen:
                    seen.add(unit)
                    units.append(unit)
        return tuple(units)
