"""
Build system components for nbuild.

This package provides:
- Source and header resolution (SourceLocator, HeaderResolver)
- Transitive header dependency discovery (DependencyScanner)
- Timestamp-based rebuild decisions (StalenessOracle)
- Compilation and linking (CompileDriver, LinkDriver)
- Build orchestration (Builder)
"""

from .build_config import BuildConfig, ExtensionSettings, ToolchainProfile
from .compiler import CompileDriver
from .dependency_scanner import DependencyScanner
from .header_resolver import HeaderResolver
from .linker import LinkDriver
from .models import (
    BuildResult,
    Command,
    DynamicLibraryTarget,
    ExecutableTarget,
    Job,
    LinkTarget,
    StaticArchiveTarget,
)
from .orchestrator import Builder
from .source_locator import SourceLocator
from .staleness import StalenessOracle

__all__ = [
    "BuildConfig",
    "BuildResult",
    "Builder",
    "Command",
    "CompileDriver",
    "DependencyScanner",
    "DynamicLibraryTarget",
    "ExecutableTarget",
    "ExtensionSettings",
    "HeaderResolver",
    "Job",
    "LinkDriver",
    "LinkTarget",
    "SourceLocator",
    "StalenessOracle",
    "StaticArchiveTarget",
    "ToolchainProfile",
]
