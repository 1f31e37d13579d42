"""Tests for the configuration module."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from tokenworker.config import (
    Config,
    SupervisorStrategy,
    get_config,
    load_config,
    reset_config,
)
from tokenworker.config import loader
from tokenworker.config.loader import dict_to_config, env_overrides, load_yaml_file
from tokenworker.config.merge import deep_merge, merge_configs
from tokenworker.config.paths import (
    get_config_paths,
    get_system_config_path,
    get_user_config_path,
)


class TestDeepMerge:
    """Test the deep merge algorithm."""

    def test_simple_override(self) -> None:
        """Test that override values replace base values."""
        assert deep_merge({"a": 1, "b": 2}, {"b": 3, "c": 4}) == {"a": 1, "b": 3, "c": 4}

    def test_nested_merge(self) -> None:
        """Test that nested dicts are recursively merged."""
        base = {"scheduler": {"interval_ms": 5, "lines_per_quantum": 100}}
        override = {"scheduler": {"interval_ms": 2}}

        result = deep_merge(base, override)

        assert result["scheduler"] == {"interval_ms": 2, "lines_per_quantum": 100}

    def test_none_does_not_override(self) -> None:
        """Test that None values in override don't replace base values."""
        assert deep_merge({"a": 1}, {"a": None}) == {"a": 1}

    def test_list_replaced_not_merged(self) -> None:
        """Test that lists are replaced, not concatenated."""
        assert deep_merge({"items": [1, 2, 3]}, {"items": [4, 5]}) == {"items": [4, 5]}

    def test_base_is_not_mutated(self) -> None:
        base = {"a": {"b": 1}}
        deep_merge(base, {"a": {"b": 2}})
        assert base == {"a": {"b": 1}}

    def test_merge_configs_multiple(self) -> None:
        """Test merging multiple configs in order."""
        assert merge_configs({"a": 1, "b": 2}, {"b": 3}, {}, {"c": 4}) == {"a": 1, "b": 3, "c": 4}


class TestConfigPaths:
    """Test platform-aware path resolution."""

    def test_windows_system_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "win32")
        monkeypatch.setenv("PROGRAMDATA", "C:\\ProgramData")

        path = get_system_config_path()

        assert path is not None
        assert "ProgramData" in str(path)
        assert "tokenworker" in str(path)

    def test_windows_without_appdata(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """No user path when APPDATA is unset."""
        monkeypatch.setattr(sys, "platform", "win32")
        monkeypatch.delenv("APPDATA", raising=False)

        assert get_user_config_path() is None

    def test_unix_system_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "linux")
        assert get_system_config_path() == Path("/etc/tokenworker/config.yaml")

    def test_unix_user_path_xdg(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test user config path respects XDG_CONFIG_HOME."""
        monkeypatch.setattr(sys, "platform", "linux")
        monkeypatch.setenv("XDG_CONFIG_HOME", "/home/test/.config-custom")

        assert get_user_config_path() == Path("/home/test/.config-custom/tokenworker/config.yaml")

    def test_unix_user_path_fallback(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        """Without ~/.config the dotted home directory is used."""
        monkeypatch.setattr(sys, "platform", "linux")
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        assert get_user_config_path() == tmp_path / ".tokenworker" / "config.yaml"

    def test_get_config_paths_order(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """System config comes before user config."""
        monkeypatch.setattr(sys, "platform", "linux")
        monkeypatch.setenv("XDG_CONFIG_HOME", "/home/test/.config")

        paths = get_config_paths()

        assert len(paths) == 2
        assert "etc" in paths[0].parts
        assert ".config" in paths[1].parts


class TestConfigLoading:
    """Test configuration loading."""

    @pytest.fixture
    def config_files(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        """Point the loader at a system and a user file under tmp_path."""
        system = tmp_path / "system.yaml"
        user = tmp_path / "user.yaml"
        monkeypatch.setattr(loader, "get_config_paths", lambda: [system, user])
        monkeypatch.delenv("TOKENWORKER_LOG", raising=False)
        monkeypatch.delenv("TOKENWORKER_TICK_MS", raising=False)
        return system, user

    def test_missing_files_use_defaults(self, config_files) -> None:
        config = load_config()

        assert isinstance(config, Config)
        assert config.scheduler.interval_ms == 5.0
        assert config.scheduler.lines_per_quantum == 100
        assert config.supervisor.strategy is SupervisorStrategy.AUTO

    def test_user_overrides_system(self, config_files) -> None:
        """Later files override earlier ones key by key."""
        system, user = config_files
        system.write_text("scheduler:\n  interval_ms: 10\n  lines_per_quantum: 50\n")
        user.write_text("scheduler:\n  interval_ms: 2\n")

        config = load_config()

        assert config.scheduler.interval_ms == 2
        assert config.scheduler.lines_per_quantum == 50

    def test_env_overrides_files(self, config_files, monkeypatch: pytest.MonkeyPatch) -> None:
        """Environment variables win over config files."""
        _, user = config_files
        user.write_text("scheduler:\n  interval_ms: 2\nlogging:\n  file: /tmp/from-file.log\n")
        monkeypatch.setenv("TOKENWORKER_TICK_MS", "7.5")
        monkeypatch.setenv("TOKENWORKER_LOG", "/tmp/from-env.log")

        config = load_config()

        assert config.scheduler.interval_ms == 7.5
        assert config.scheduler.interval == pytest.approx(0.0075)
        assert config.logging.file == "/tmp/from-env.log"

    def test_invalid_yaml_uses_defaults(self, config_files) -> None:
        _, user = config_files
        user.write_text("invalid: yaml: :")

        assert load_config().scheduler.interval_ms == 5.0

    def test_unknown_keys_are_ignored(self, config_files) -> None:
        """Unknown top-level keys do not disturb known sections."""
        _, user = config_files
        user.write_text("custom_field: custom_value\nscheduler:\n  lines_per_quantum: 7\n")

        config = load_config()

        assert config.scheduler.lines_per_quantum == 7
        assert not hasattr(config, "extra")

    def test_supervisor_settings(self, config_files) -> None:
        _, user = config_files
        user.write_text("supervisor:\n  strategy: POLL\n  poll_interval: 0.5\n")

        config = load_config()

        assert config.supervisor.strategy is SupervisorStrategy.POLL
        assert config.supervisor.poll_interval == 0.5


class TestDictToConfig:
    """Test conversion and validation of merged dicts."""

    def test_out_of_range_numbers_fall_back(self) -> None:
        config = dict_to_config(
            {
                "scheduler": {"interval_ms": -1, "lines_per_quantum": 0},
                "transport": {"drain_timeout": "soon"},
            }
        )

        assert config.scheduler.interval_ms == 5.0
        assert config.scheduler.lines_per_quantum == 100
        assert config.transport.drain_timeout == 1.0

    def test_unknown_strategy_is_auto(self) -> None:
        config = dict_to_config({"supervisor": {"strategy": "telepathy"}})
        assert config.supervisor.strategy is SupervisorStrategy.AUTO

    def test_empty_sections(self) -> None:
        """Sections set to null in YAML behave like missing ones."""
        config = dict_to_config({"scheduler": None, "logging": None})
        assert config.scheduler.lines_per_quantum == 100
        assert config.logging.file is None


class TestEnvOverrides:
    """Test environment variable handling."""

    def test_no_env_no_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("TOKENWORKER_LOG", raising=False)
        monkeypatch.delenv("TOKENWORKER_TICK_MS", raising=False)
        assert env_overrides() == {}

    def test_invalid_tick_is_ignored(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("TOKENWORKER_LOG", raising=False)
        monkeypatch.setenv("TOKENWORKER_TICK_MS", "fast")
        assert env_overrides() == {}


class TestLoadYamlFile:
    """Test YAML file reading."""

    def test_non_mapping_is_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        assert load_yaml_file(path) == {}

    def test_missing_is_empty(self, tmp_path: Path) -> None:
        assert load_yaml_file(tmp_path / "nope.yaml") == {}


class TestConfigCaching:
    """Test config caching behavior."""

    def test_get_config_caches(self) -> None:
        """Test that get_config returns cached config."""
        assert get_config() is get_config()

    def test_reset_clears_cache(self) -> None:
        """Test that reset_config clears the cache."""
        config1 = get_config()
        reset_config()
        assert get_config() is not config1

    def test_reload_bypasses_cache(self) -> None:
        config1 = load_config()
        assert load_config(reload=True) is not config1
