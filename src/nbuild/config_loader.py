"""Load a BuildConfig from a JSON project file.

Example ``nbuild.json``:

    {
        "units": ["array", "hash", "onig/regcomp", "dispatcher"],
        "include_dirs": [".", "include", "include/ruby"],
        "cc": "/usr/bin/gcc",
        "cxx": "/usr/bin/g++",
        "cflags": "-I. -I./include -O3 -g -Wall",
        "objc_cflags": "-I. -I./include -O3 -g -Wall -fobjc-gc-only",
        "unit_flags": {"dispatcher": "-x objective-c++"},
        "jobs": 4,
        "targets": [
            {"kind": "executable", "output": "miniruby"},
            {"kind": "dylib", "output": "libmacruby.dylib", "install_name": "/usr/lib/libmacruby.dylib", "current_version": "0.5"},
            {"kind": "archive", "output": "libmacruby-static.a"}
        ],
        "extensions": {"ext_dir": "ext", "names": ["zlib", "json"]}
    }

Relative paths are resolved against the directory containing the file.
"""

import json
import logging
from dataclasses import fields, replace
from pathlib import Path
from typing import Any, Optional

from nbuild.build.build_config import BuildConfig, ExtensionSettings
from nbuild.build.models import target_from_dict
from nbuild.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "nbuild.json"

_TUPLE_FIELDS = ("units", "include_dirs", "source_extensions")


def load_config(path: Path, jobs: Optional[int] = None) -> BuildConfig:
    """Read a BuildConfig from a JSON file.

    Args:
        path: Path to the config file
        jobs: Parallelism override (None = use the file's value)

    Returns:
        The parsed BuildConfig

    Raises:
        ConfigurationError: If the file is missing, is not valid JSON or has invalid entries
    """
    if not path.is_file():
        raise ConfigurationError(f"Config file not found: {path}")

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object")

    config = config_from_dict(data, base_dir=path.parent.resolve())
    if jobs is not None:
        config = _replace_jobs(config, jobs)
    logger.debug(f"Loaded config from {path}: {len(config.units)} units, {len(config.targets)} targets")
    return config


def config_from_dict(data: dict[str, Any], base_dir: Path) -> BuildConfig:
    """Build a BuildConfig from its dictionary representation.

    Args:
        data: Parsed config mapping
        base_dir: Directory that relative paths are resolved against

    Raises:
        ConfigurationError: On unknown keys or invalid values
    """
    data = dict(data)
    known = {f.name for f in fields(BuildConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(f"Unknown config keys: {', '.join(unknown)}")

    root_dir = base_dir / data.pop("root_dir", ".")
    for key in _TUPLE_FIELDS:
        if key in data:
            data[key] = _string_list(key, data[key])

    try:
        targets = tuple(target_from_dict(t) for t in data.pop("targets", []))
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid target declaration: {e}") from e

    extensions = data.pop("extensions", None)
    ext_settings = _extension_settings(extensions, root_dir) if extensions is not None else None

    jobs = data.get("jobs", 1)
    if not isinstance(jobs, int) or jobs < 1:
        raise ConfigurationError(f"jobs must be a positive integer, got {jobs!r}")

    return BuildConfig(root_dir=root_dir, targets=targets, extensions=ext_settings, **data)


def _extension_settings(data: dict[str, Any], root_dir: Path) -> ExtensionSettings:
    data = dict(data)
    known = {f.name for f in fields(ExtensionSettings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(f"Unknown extension config keys: {', '.join(unknown)}")

    ext_root = root_dir / data.pop("root_dir", ".")
    ext_dir = root_dir / data.pop("ext_dir", "ext")
    if "names" in data:
        data["names"] = _string_list("extensions.names", data["names"])
    return ExtensionSettings(root_dir=ext_root, ext_dir=ext_dir, **data)


def _string_list(key: str, value: Any) -> tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigurationError(f"{key} must be a list of strings, got {value!r}")
    return tuple(value)


def _replace_jobs(config: BuildConfig, jobs: int) -> BuildConfig:
    if jobs < 1:
        raise ConfigurationError(f"jobs must be a positive integer, got {jobs}")
    extensions = replace(config.extensions, jobs=jobs) if config.extensions is not None else None
    return replace(config, jobs=jobs, extensions=extensions)
