"""Source file resolution for compilation units.

A compilation unit is named by its logical object name (e.g. "onig/regcomp").
Its source is the first existing file among ``<name><ext>`` for the configured
extensions, probed in order. The result never changes for the lifetime of the
locator.
"""

import logging
import threading
from pathlib import Path

from nbuild.errors import ConfigurationError

from .build_config import BuildConfig

logger = logging.getLogger(__name__)


class SourceLocator:
    """Resolves and memoizes unit name -> source path."""

    def __init__(self, config: BuildConfig):
        self.config = config
        self._sources: dict[str, Path] = {}
        self._lock = threading.Lock()

    def source_for(self, unit: str) -> Path:
        """Resolve the source file of a compilation unit.

        Args:
            unit: Logical unit name

        Returns:
            Path to the unit's source file

        Raises:
            ConfigurationError: If no candidate source file exists
        """
        with self._lock:
            source = self._sources.get(unit)
            if source is not None:
                return source

            for ext in self.config.source_extensions:
                candidate = self.config.root_dir / f"{unit}{ext}"
                if candidate.is_file():
                    source = candidate
                    break

            if source is None:
                tried = ", ".join(f"{unit}{ext}" for ext in self.config.source_extensions)
                raise ConfigurationError(f"cannot locate source file for object `{unit}' (tried: {tried})")

            logger.debug(f"Resolved unit {unit} -> {source}")
            self._sources[unit] = source
            return source
