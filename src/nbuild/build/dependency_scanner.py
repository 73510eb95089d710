"""Dependency Scanner - transitive header discovery by source inspection.

Only quoted includes (``#include "foo.h"``) are followed; the angle-bracket
form names system headers, which are outside staleness tracking. Each quoted
include is resolved through a HeaderResolver, and every newly discovered
header is scanned in turn.

The traversal uses an explicit pending stack plus a visited set rather than
recursion, so deep include graphs cannot exhaust the call stack and include
cycles (a.h -> b.h -> a.h) terminate.
"""

import logging
import re
import threading
from pathlib import Path

from .header_resolver import HeaderResolver
from .source_locator import SourceLocator

logger = logging.getLogger(__name__)

_QUOTED_INCLUDE = re.compile(r'#include\s+"([^"]+)"')


def quoted_includes(text: str) -> list[str]:
    """Extract the header names of all quoted include directives in ``text``."""
    return _QUOTED_INCLUDE.findall(text)


class DependencyScanner:
    """Computes and memoizes the header dependency set of each unit."""

    def __init__(self, sources: SourceLocator, resolver: HeaderResolver):
        self.sources = sources
        self.resolver = resolver
        self._dependencies: dict[str, list[Path]] = {}
        self._lock = threading.Lock()

    def dependencies_of(self, unit: str) -> list[Path]:
        """Return the headers transitively included by a unit's source.

        The result is computed once per unit and reused for the rest of the
        run; the include graph is assumed not to change while a build runs.

        Args:
            unit: Logical unit name

        Returns:
            Header paths in discovery order, without duplicates

        Raises:
            ConfigurationError: If the unit has no source file
        """
        with self._lock:
            deps = self._dependencies.get(unit)
            if deps is None:
                deps = self.scan(self.sources.source_for(unit))
                logger.debug(f"Unit {unit} depends on {len(deps)} headers")
                self._dependencies[unit] = deps
            return deps

    def scan(self, source: Path) -> list[Path]:
        """Discover all headers reachable from ``source`` (uncached)."""
        found: list[Path] = []
        seen: set[Path] = set()
        pending = [source]

        while pending:
            current = pending.pop()
            try:
                text = current.read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                logger.warning(f"Cannot read {current} for dependency scanning: {e}")
                continue

            for header in quoted_includes(text):
                path = self.resolver.resolve(header)
                if path is None or path in seen:
                    continue
                seen.add(path)
                found.append(path)
                pending.append(path)

        return found
