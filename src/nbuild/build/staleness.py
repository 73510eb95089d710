"""Staleness Oracle - timestamp-based rebuild decisions.

Unit rule:
    stale if the object artifact is missing, or the source is strictly newer
    than the artifact, or any header in the unit's dependency set is strictly
    newer than the artifact.

Target rule:
    stale if the target artifact is missing, or any constituent object
    artifact is strictly newer than it (a missing object counts as newer).

Equal timestamps count as fresh. On filesystems with coarse timestamp
resolution an edit made within the same clock tick as the last build is
therefore not picked up; this is a known limitation kept on purpose.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional

from .build_config import BuildConfig
from .dependency_scanner import DependencyScanner
from .models import LinkTarget
from .source_locator import SourceLocator

logger = logging.getLogger(__name__)


def mtime_ns(path: Path) -> Optional[int]:
    """Modification time in nanoseconds, or None if the file does not exist."""
    try:
        return path.stat().st_mtime_ns
    except FileNotFoundError:
        return None


class StalenessOracle:
    """Decides whether units need recompiling and targets need relinking."""

    def __init__(self, config: BuildConfig, sources: SourceLocator, scanner: DependencyScanner):
        self.config = config
        self.sources = sources
        self.scanner = scanner

    def is_unit_stale(self, unit: str) -> bool:
        obj_time = mtime_ns(self.config.object_path(unit))
        if obj_time is None:
            logger.debug(f"{unit}: object missing")
            return True

        source = self.sources.source_for(unit)
        source_time = mtime_ns(source)
        if source_time is not None and source_time > obj_time:
            logger.debug(f"{unit}: {source} is newer than its object")
            return True

        for header in self.scanner.dependencies_of(unit):
            header_time = mtime_ns(header)
            if header_time is not None and header_time > obj_time:
                logger.debug(f"{unit}: header {header} is newer than its object")
                return True

        return False

    def is_target_stale(self, target: LinkTarget, units: Optional[Iterable[str]] = None) -> bool:
        """Check whether a link target must be relinked.

        Args:
            target: Link target to check
            units: Constituent units (defaults to the target's units)

        Returns:
            True if the target is missing or older than one of its objects
        """
        output = self.config.root_dir / target.output
        target_time = mtime_ns(output)
        if target_time is None:
            logger.debug(f"{target.output}: target missing")
            return True

        for unit in units if units is not None else target.units:
            obj_time = mtime_ns(self.config.object_path(unit))
            if obj_time is None or obj_time > target_time:
                logger.debug(f"{target.output}: object of {unit} is newer")
                return True

        return False
