"""Tests for UserConfig, the settings store.

Covers file discovery, environment precedence, source tracking and the
save/reload round trip.
"""

from pathlib import Path

import pytest
import yaml

from qtbuilder.config.user_config import UserConfig, create_user_config
from qtbuilder.core.errors import ConfigError


class TestUserConfigLoading:
    """Tests for configuration discovery and loading."""

    def test_defaults_without_config_file(self, isolated_env: Path):
        config = create_user_config()

        assert config.data.library_version == "4.8.7"
        assert config.data.build_options == []
        assert config.data.poll_interval == 0.1
        assert config.get_source("library_version") == "default"
        # Saving goes to the XDG location when nothing was found
        assert config.config_path == isolated_env / "xdg-config" / "qtbuilder" / "config.yaml"

    def test_cli_config_file(self, isolated_config: UserConfig, config_file: Path):
        assert isolated_config.config_path == config_file.resolve()
        assert isolated_config.data.build_options == ["release", "x64", "shared", "msvc2013"]
        assert isolated_config.data.scratch_backend == "directory"
        assert isolated_config.get_source("cores") == "file:qtbuilder.yaml"

    def test_cwd_config_file(self, isolated_env: Path):
        (isolated_env / "qtbuilder.yaml").write_text("library_version: 5.6.0\n")

        config = UserConfig()

        assert config.data.library_version == "5.6.0"
        assert config.config_path is not None
        assert config.config_path.resolve() == (isolated_env / "qtbuilder.yaml").resolve()

    def test_environment_overrides_file(
        self, config_file: Path, monkeypatch: pytest.MonkeyPatch
    ):
        monkeypatch.setenv("QTBUILDER_LIBRARY_VERSION", "4.8.6")
        monkeypatch.setenv("QTBUILDER_BUILD_OPTIONS", "debug, x86")

        config = UserConfig(cli_config_path=config_file)

        assert config.data.library_version == "4.8.6"
        assert config.data.build_options == ["debug", "x86"]
        assert config.get_source("library_version") == "environment"

    def test_invalid_file_raises_config_error(self, isolated_env: Path):
        path = isolated_env / "bad.yaml"
        path.write_text("poll_interval: -1\n")

        with pytest.raises(ConfigError):
            UserConfig(cli_config_path=path)

    def test_non_mapping_file_raises_config_error(self, isolated_env: Path):
        path = isolated_env / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigError):
            UserConfig(cli_config_path=path)

    def test_build_log_dir_defaults_to_target(self, isolated_env: Path):
        config = UserConfig()
        config.set("target_path", isolated_env / "out")

        assert config.data.resolved_build_log_dir() == isolated_env / "out" / "logs"


class TestUserConfigUpdates:
    def test_set_and_get(self, isolated_config: UserConfig):
        isolated_config.set("cores", 3)

        assert isolated_config.get("cores") == 3
        assert isolated_config.get_source("cores") == "runtime"

    def test_set_unknown_key(self, isolated_config: UserConfig):
        with pytest.raises(ValueError, match="Unknown configuration key"):
            isolated_config.set("colour", "blue")

    def test_set_invalid_value(self, isolated_config: UserConfig):
        with pytest.raises(ValueError, match="Invalid value"):
            isolated_config.set("log_level", "LOUD")
        assert isolated_config.data.log_level == "WARNING"

    def test_get_unknown_key_returns_default(self, isolated_config: UserConfig):
        assert isolated_config.get("missing", "fallback") == "fallback"

    def test_save_round_trip(self, isolated_config: UserConfig, config_file: Path):
        isolated_config.set("library_version", "5.0.0")
        isolated_config.set("window_geometry", "AdnQywACAAAAAAA")
        isolated_config.save()

        with config_file.open() as f:
            saved = yaml.safe_load(f)
        assert saved["library_version"] == "5.0.0"
        assert saved["build_options"] == ["release", "x64", "shared", "msvc2013"]

        reloaded = UserConfig(cli_config_path=config_file)
        assert reloaded.data.library_version == "5.0.0"
        assert reloaded.data.window_geometry == "AdnQywACAAAAAAA"

    def test_save_creates_missing_directories(self, isolated_env: Path):
        path = isolated_env / "nested" / "dir" / "qtbuilder.yaml"
        config = UserConfig(cli_config_path=path)
        config.set("cores", 2)

        config.save()

        assert path.is_file()
        assert "cores: 2" in path.read_text()

    def test_reset_to_defaults(self, isolated_config: UserConfig):
        isolated_config.reset_to_defaults()

        assert isolated_config.data.build_options == []
        assert isolated_config.get_source("build_options") == "default"

    def test_log_level_int(self, isolated_config: UserConfig):
        import logging

        isolated_config.set("log_level", "debug")

        assert isolated_config.get_log_level_int() == logging.DEBUG
