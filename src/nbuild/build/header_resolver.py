"""Header Resolver - maps quoted include names to files under the include roots."""

import threading
from pathlib import Path
from typing import Optional, Sequence


class HeaderResolver:
    """Searches an ordered list of include roots for a header.

    Both hits and misses are cached for the lifetime of the resolver, so a
    header is looked up on disk at most once. A miss is not an error: it
    means the header is not a project-owned, trackable dependency (a system
    header, or one generated later in the build).
    """

    def __init__(self, include_roots: Sequence[Path]):
        self.include_roots = list(include_roots)
        self._cache: dict[str, Optional[Path]] = {}
        self._lock = threading.Lock()

    def resolve(self, header: str) -> Optional[Path]:
        """Resolve a header name to the first existing ``root / header``.

        Args:
            header: Header name exactly as written in the include directive

        Returns:
            Path of the header, or None if no include root contains it
        """
        with self._lock:
            if header in self._cache:
                return self._cache[header]
            path = next((p for p in (root / header for root in self.include_roots) if p.is_file()), None)
            self._cache[header] = path
            return path
