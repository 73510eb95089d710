"""Build Configuration - the fixed configuration bundle.

This module defines:
- BuildConfig: Everything the orchestrator needs (units, include roots,
  toolchain paths, flag strings, parallelism, link targets), constructed once
  at startup and passed to every component
- ExtensionSettings: Configuration for the extension sub-builder
- ToolchainProfile: Source extension -> (compiler, flags) mapping derived from
  a BuildConfig

Design:
    No component reads the environment or any other ambient process state.
    Callers (the CLI, config_loader, tests) build a BuildConfig and hand it
    down; components only read from it.
"""

import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from .models import LinkTarget

DEFAULT_SOURCE_EXTENSIONS = (".c", ".cpp", ".m", ".mm")
DEFAULT_INCLUDE_DIRS = (".", "include", "include/ruby")
DEFAULT_MAKE_VARIABLES = {
    "top_srcdir": "{toolchain}",
    "ruby": "{toolchain}/miniruby -I{toolchain} -I{toolchain}/lib",
    "extout": "{toolchain}/.ext",
    "hdrdir": "{toolchain}/include",
    "arch_hdrdir": "{toolchain}/include",
}


@dataclass(frozen=True)
class ExtensionSettings:
    """Configuration for extension subprojects.

    Command templates may reference ``{toolchain}``, which expands to the
    relative path from an extension directory back to the toolchain root.

    Attributes:
        root_dir: Shared toolchain root (top of the source tree)
        ext_dir: Directory containing one subdirectory per extension
        names: Extension names to build
        generator_input: File whose presence marks an extension project
        description_name: Name of the generated build description
        configure_command: Template of the command that generates the description
        make_program: Program that executes the generated description
        make_variables: Variables passed to every make phase
        build_variables: Extra variables passed only to the build phase
        jobs: Number of extension projects built concurrently
    """

    root_dir: Path
    ext_dir: Path
    names: tuple[str, ...] = ()
    generator_input: str = "extconf.rb"
    description_name: str = "Makefile"
    configure_command: str = "{toolchain}/miniruby -I{toolchain} -I{toolchain}/lib -r rbconfig -e \"RbConfig::CONFIG['libdir'] = '{toolchain}'; require './extconf.rb'\""
    make_program: str = "make"
    make_variables: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_MAKE_VARIABLES))
    build_variables: Mapping[str, str] = field(default_factory=lambda: {"libdir": "{toolchain}"})
    jobs: int = 1


@dataclass(frozen=True)
class BuildConfig:
    """Fixed configuration bundle for a build.

    Attributes:
        root_dir: Project directory; unit names, include dirs and outputs are relative to it
        units: Ordered compilation unit names (e.g. "array", "onig/regcomp")
        include_dirs: Ordered header search roots
        source_extensions: Extensions probed, in order, to find a unit's source
        object_suffix: Suffix appended to a unit name to form its object artifact
        cc: C / Objective-C compiler
        cxx: C++ / Objective-C++ compiler
        linker: Linker driver for executables and dylibs (None = cxx)
        cflags: Base C flags
        cxxflags: Base C++ flags
        objc_cflags: Objective-C flags
        ldflags: Default link flags
        dylib_flags: Base flags for dynamic libraries
        unit_flags: Per-unit flags appended after the base flags
        archiver: Static archive tool
        archiver_flags: Archiver operation flags
        indexer: Archive symbol index tool
        jobs: Maximum number of concurrently running commands
        targets: Declared link targets
        extensions: Extension sub-builder settings (None = no extensions)
    """

    root_dir: Path
    units: tuple[str, ...] = ()
    include_dirs: tuple[str, ...] = DEFAULT_INCLUDE_DIRS
    source_extensions: tuple[str, ...] = DEFAULT_SOURCE_EXTENSIONS
    object_suffix: str = ".o"
    cc: str = "/usr/bin/gcc"
    cxx: str = "/usr/bin/g++"
    linker: Optional[str] = None
    cflags: str = ""
    cxxflags: str = ""
    objc_cflags: str = ""
    ldflags: str = ""
    dylib_flags: str = "-dynamiclib"
    unit_flags: Mapping[str, str] = field(default_factory=dict)
    archiver: str = "/usr/bin/ar"
    archiver_flags: str = "rcu"
    indexer: str = "/usr/bin/ranlib"
    jobs: int = 1
    targets: tuple[LinkTarget, ...] = ()
    extensions: Optional[ExtensionSettings] = None

    @property
    def linker_path(self) -> str:
        return self.linker or self.cxx

    def object_path(self, unit: str) -> Path:
        """Path of the object artifact for a unit."""
        return self.root_dir / f"{unit}{self.object_suffix}"

    def include_roots(self) -> list[Path]:
        """Include directories resolved against the project directory."""
        return [self.root_dir / d for d in self.include_dirs]

    def find_target(self, name: str) -> Optional[LinkTarget]:
        """Find a declared target by output path or by file name."""
        for target in self.targets:
            if target.output == name or target.name == name:
                return target
        return None


@dataclass(frozen=True)
class ToolchainProfile:
    """Per-extension compiler selection.

    Attributes:
        compilers: Source extension -> (compiler executable, base flags)
    """

    compilers: Mapping[str, tuple[str, tuple[str, ...]]]

    @classmethod
    def from_config(cls, config: BuildConfig) -> "ToolchainProfile":
        """Derive the profile from a configuration bundle.

        Objective-C is compiled by the C compiler with the Objective-C flag
        set; Objective-C++ by the C++ compiler with the C++ and Objective-C
        flag sets concatenated.
        """
        cflags = tuple(shlex.split(config.cflags))
        cxxflags = tuple(shlex.split(config.cxxflags))
        objc_cflags = tuple(shlex.split(config.objc_cflags))
        return cls(
            compilers={
                ".c": (config.cc, cflags),
                ".cpp": (config.cxx, cxxflags),
                ".m": (config.cc, objc_cflags),
                ".mm": (config.cxx, cxxflags + objc_cflags),
            }
        )

    def select(self, extension: str) -> Optional[tuple[str, tuple[str, ...]]]:
        """Return (compiler, flags) for a source extension, or None if unrecognized."""
        return self.compilers.get(extension)
