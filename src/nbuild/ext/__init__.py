"""Extension subproject lifecycle (configure, build, install, clean)."""

from .extension import ExtensionBuilder, ExtensionProject, ExtensionState

__all__ = ["ExtensionBuilder", "ExtensionProject", "ExtensionState"]
