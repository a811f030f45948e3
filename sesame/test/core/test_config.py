"""Tests for sesame.core.config module."""

from __future__ import annotations

from pathlib import Path

import pytest

from sesame.core.config import (
    DEFAULT_BUILD_SERVER,
    Config,
    load_config,
    resolve_home_dir,
)
from sesame.core.result import Err, Ok


class TestResolveHomeDir:
    def test_default(self, tmp_path: Path) -> None:
        assert resolve_home_dir({}, tmp_path) == tmp_path / ".sesame-cli"

    def test_cli_home_is_relative_to_user_home(self, tmp_path: Path) -> None:
        assert resolve_home_dir({"CLI_HOME": ".custom"}, tmp_path) == tmp_path / ".custom"

    def test_sesame_home_wins(self, tmp_path: Path) -> None:
        env = {"SESAME_HOME": str(tmp_path / "x"), "CLI_HOME": ".custom"}
        assert resolve_home_dir(env, tmp_path) == tmp_path / "x"


class TestConfig:
    def test_defaults(self, tmp_path: Path) -> None:
        config = Config(home_dir=tmp_path)
        assert config.build_server_url == DEFAULT_BUILD_SERVER
        assert config.connect_timeout_seconds == 5.0
        assert config.remote_name == "origin"
        assert config.release_branch == "master"
        assert config.debug is False

    def test_frozen(self, tmp_path: Path) -> None:
        config = Config(home_dir=tmp_path)
        with pytest.raises(AttributeError):
            config.debug = True  # type: ignore[misc]

    def test_api_url_follows_server(self, tmp_path: Path) -> None:
        config = Config(home_dir=tmp_path).merge_file({"build": {"server": "http://b:1"}})
        assert config.build_server_url == "http://b:1"
        assert config.api_base_url == "http://b:1"

    def test_log_level_verbose_enables_debug(self, tmp_path: Path) -> None:
        config = Config(home_dir=tmp_path).merge_env({"LOG_LEVEL": "verbose"})
        assert config.debug is True


class TestLoadConfig:
    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        result = load_config(env={}, user_home=tmp_path)
        assert isinstance(result, Ok)
        assert result.value.home_dir == tmp_path / ".sesame-cli"

    def test_reads_config_toml(self, tmp_path: Path) -> None:
        home = tmp_path / ".sesame-cli"
        home.mkdir()
        (home / "config.toml").write_text(
            'debug = true\n\n[build]\nserver = "http://build:7001"\nconnect_timeout = 2\n\n'
            '[git]\nrelease_branch = "main"\n',
            encoding="utf-8",
        )

        result = load_config(env={}, user_home=tmp_path)

        assert isinstance(result, Ok)
        config = result.value
        assert config.debug is True
        assert config.build_server_url == "http://build:7001"
        assert config.connect_timeout_seconds == 2.0
        assert config.release_branch == "main"

    def test_env_overrides_file(self, tmp_path: Path) -> None:
        home = tmp_path / ".sesame-cli"
        home.mkdir()
        (home / "config.toml").write_text('[build]\nserver = "http://a"\n', encoding="utf-8")

        result = load_config(env={"SESAME_BUILD_SERVER": "http://b"}, user_home=tmp_path)

        assert isinstance(result, Ok)
        assert result.value.build_server_url == "http://b"

    def test_invalid_toml(self, tmp_path: Path) -> None:
        home = tmp_path / ".sesame-cli"
        home.mkdir()
        (home / "config.toml").write_text("[build\n", encoding="utf-8")

        result = load_config(env={}, user_home=tmp_path)

        assert isinstance(result, Err)
        assert "Invalid TOML" in result.error.message

    def test_non_positive_timeout_is_rejected(self, tmp_path: Path) -> None:
        home = tmp_path / ".sesame-cli"
        home.mkdir()
        (home / "config.toml").write_text("[build]\nconnect_timeout = 0\n", encoding="utf-8")

        result = load_config(env={}, user_home=tmp_path)

        assert isinstance(result, Err)
        assert "connect_timeout" in result.error.message

    def test_debug_flag(self, tmp_path: Path) -> None:
        result = load_config(env={}, user_home=tmp_path, debug=True)
        assert isinstance(result, Ok)
        assert result.value.debug is True
