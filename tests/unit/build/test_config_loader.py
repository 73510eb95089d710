"""Tests for loading the JSON project file."""

import json

import pytest

from nbuild.build.build_config import BuildConfig, DEFAULT_INCLUDE_DIRS
from nbuild.build.models import DynamicLibraryTarget, ExecutableTarget, StaticArchiveTarget
from nbuild.config_loader import config_from_dict, load_config
from nbuild.errors import ConfigurationError


def _write_config(tmp_path, data):
    path = tmp_path / "nbuild.json"
    path.write_text(json.dumps(data))
    return path


class TestLoadConfig:
    """Test load_config() file handling."""

    def test_minimal(self, tmp_path):
        config = load_config(_write_config(tmp_path, {"units": ["a", "b"]}))

        assert isinstance(config, BuildConfig)
        assert config.root_dir == tmp_path.resolve()
        assert config.units == ("a", "b")
        assert config.include_dirs == DEFAULT_INCLUDE_DIRS
        assert config.jobs == 1
        assert config.targets == ()
        assert config.extensions is None

    def test_full(self, tmp_path):
        config = load_config(
            _write_config(
                tmp_path,
                {
                    "units": ["array", "onig/regcomp"],
                    "include_dirs": [".", "include"],
                    "cc": "clang",
                    "cflags": "-O3 -g",
                    "unit_flags": {"dispatcher": "-O1"},
                    "jobs": 8,
                    "targets": [
                        {"output": "miniruby"},
                        {"kind": "dylib", "output": "libmacruby.dylib", "current_version": "0.5"},
                        {"kind": "archive", "output": "libmacruby-static.a", "units": ["array"]},
                    ],
                },
            )
        )

        assert config.cc == "clang"
        assert config.include_dirs == (".", "include")
        assert config.unit_flags == {"dispatcher": "-O1"}
        assert config.jobs == 8
        assert config.targets == (
            ExecutableTarget(output="miniruby"),
            DynamicLibraryTarget(output="libmacruby.dylib", current_version="0.5"),
            StaticArchiveTarget(output="libmacruby-static.a", units=("array",)),
        )

    def test_jobs_override(self, tmp_path):
        config = load_config(_write_config(tmp_path, {"jobs": 2, "extensions": {"names": ["zlib"]}}), jobs=6)
        assert config.jobs == 6
        assert config.extensions.jobs == 6

    def test_invalid_jobs_override(self, tmp_path):
        with pytest.raises(ConfigurationError, match="jobs"):
            load_config(_write_config(tmp_path, {}), jobs=0)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(tmp_path / "nbuild.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "nbuild.json"
        path.write_text("{units: [")
        with pytest.raises(ConfigurationError, match="Cannot read"):
            load_config(path)

    def test_not_an_object(self, tmp_path):
        with pytest.raises(ConfigurationError, match="JSON object"):
            load_config(_write_config(tmp_path, ["a", "b"]))


class TestConfigFromDict:
    """Test validation of individual entries."""

    def test_root_dir_relative_to_file(self, tmp_path):
        config = config_from_dict({"root_dir": "src"}, base_dir=tmp_path)
        assert config.root_dir == tmp_path / "src"

    def test_unknown_key(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Unknown config keys: colour"):
            config_from_dict({"colour": "blue"}, base_dir=tmp_path)

    def test_unknown_target_kind(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Unknown target kind 'framework'"):
            config_from_dict({"targets": [{"kind": "framework", "output": "X"}]}, base_dir=tmp_path)

    def test_target_without_output(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Invalid target"):
            config_from_dict({"targets": [{"kind": "executable"}]}, base_dir=tmp_path)

    def test_target_with_unknown_field(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Invalid target"):
            config_from_dict({"targets": [{"output": "t", "install_name": "/x"}]}, base_dir=tmp_path)

    @pytest.mark.parametrize("jobs", [0, -2, "4"])
    def test_invalid_jobs(self, tmp_path, jobs):
        with pytest.raises(ConfigurationError, match="positive integer"):
            config_from_dict({"jobs": jobs}, base_dir=tmp_path)

    def test_extensions(self, tmp_path):
        config = config_from_dict(
            {"extensions": {"ext_dir": "ext", "names": ["zlib", "json"], "make_program": "gmake", "jobs": 3}},
            base_dir=tmp_path,
        )

        ext = config.extensions
        assert ext.root_dir == tmp_path
        assert ext.ext_dir == tmp_path / "ext"
        assert ext.names == ("zlib", "json")
        assert ext.make_program == "gmake"
        assert ext.jobs == 3
        assert ext.generator_input == "extconf.rb"

    @pytest.mark.parametrize("key", ["units", "include_dirs", "source_extensions"])
    def test_list_fields_reject_strings(self, tmp_path, key):
        with pytest.raises(ConfigurationError, match=f"{key} must be a list of strings"):
            config_from_dict({key: "abc"}, base_dir=tmp_path)

    def test_list_fields_reject_non_string_items(self, tmp_path):
        with pytest.raises(ConfigurationError, match="units must be a list of strings"):
            config_from_dict({"units": ["a", 3]}, base_dir=tmp_path)

    def test_extension_names_must_be_list(self, tmp_path):
        with pytest.raises(ConfigurationError, match="extensions.names must be a list of strings"):
            config_from_dict({"extensions": {"names": "zlib"}}, base_dir=tmp_path)

    def test_unknown_extension_key(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Unknown extension config keys: cmake"):
            config_from_dict({"extensions": {"cmake": True}}, base_dir=tmp_path)


class TestBuildConfig:
    def test_object_path(self, tmp_path):
        config = BuildConfig(root_dir=tmp_path)
        assert config.object_path("onig/regcomp") == tmp_path / "onig/regcomp.o"

    def test_linker_defaults_to_cxx(self, tmp_path):
        assert BuildConfig(root_dir=tmp_path, cxx="clang++").linker_path == "clang++"
        assert BuildConfig(root_dir=tmp_path, cxx="clang++", linker="ld64").linker_path == "ld64"

    def test_find_target(self, tmp_path):
        target = ExecutableTarget(output="bin/miniruby")
        config = BuildConfig(root_dir=tmp_path, targets=(target,))

        assert config.find_target("bin/miniruby") is target
        assert config.find_target("miniruby") is target
        assert config.find_target("ruby") is None
