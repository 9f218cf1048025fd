"""Tests for config/loader.py module.

Covers:
- _load_yaml() function
- _deep_merge() function
- load_config() precedence
- get_index_path() function
"""

from __future__ import annotations

import os
from collections.abc import Generator
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from phpintel.config.loader import (
    GLOBAL_CONFIG_PATH,
    _deep_merge,
    _load_yaml,
    get_index_path,
    load_config,
)
from phpintel.core.errors import ConfigError, ErrorCode


class TestLoadYaml:
    """Tests for _load_yaml function."""

    def test_returns_empty_dict_for_missing_file(self, tmp_path: Path) -> None:
        """Returns empty dict when file doesn't exist."""
        result = _load_yaml(tmp_path / "nonexistent.yaml")
        assert result == {}

    def test_loads_valid_yaml(self, tmp_path: Path) -> None:
        """Loads valid YAML content."""
        yaml_file = tmp_path / "config.yaml"
        yaml_file.write_text("logging:\n  level: DEBUG\n")

        result = _load_yaml(yaml_file)
        assert result == {"logging": {"level": "DEBUG"}}

    def test_returns_empty_for_empty_file(self, tmp_path: Path) -> None:
        """Returns empty dict for empty file."""
        yaml_file = tmp_path / "empty.yaml"
        yaml_file.write_text("")

        result = _load_yaml(yaml_file)
        assert result == {}

    def test_returns_empty_for_yaml_null(self, tmp_path: Path) -> None:
        """Returns empty dict for YAML containing null/None."""
        yaml_file = tmp_path / "null.yaml"
        yaml_file.write_text("null\n")

        result = _load_yaml(yaml_file)
        assert result == {}

    def test_raises_config_error_for_invalid_yaml(self, tmp_path: Path) -> None:
        """Raises ConfigError for invalid YAML syntax."""
        yaml_file = tmp_path / "invalid.yaml"
        yaml_file.write_text("logging:\n  level:\n    - invalid: [unclosed")

        with pytest.raises(ConfigError):
            _load_yaml(yaml_file)


class TestDeepMerge:
    """Tests for _deep_merge function."""

    def test_empty_dicts(self) -> None:
        """Merging empty dicts returns empty dict."""
        assert _deep_merge({}, {}) == {}

    def test_override_wins(self) -> None:
        """Override values replace base values."""
        base = {"a": 1, "b": 2}
        override = {"b": 3}
        assert _deep_merge(base, override) == {"a": 1, "b": 3}

    def test_adds_new_keys(self) -> None:
        """Override adds new keys."""
        base = {"a": 1}
        override = {"b": 2}
        assert _deep_merge(base, override) == {"a": 1, "b": 2}

    def test_nested_merge(self) -> None:
        """Nested dicts are merged recursively."""
        base = {"logging": {"level": "INFO", "format": "json"}}
        override = {"logging": {"level": "DEBUG"}}
        result = _deep_merge(base, override)
        assert result == {"logging": {"level": "DEBUG", "format": "json"}}

    def test_override_replaces_non_dict(self) -> None:
        """Non-dict override replaces dict base."""
        base: dict[str, Any] = {"a": {"nested": 1}}
        override: dict[str, Any] = {"a": "simple"}
        assert _deep_merge(base, override) == {"a": "simple"}

    def test_does_not_mutate_base(self) -> None:
        """Base dict is not mutated."""
        base = {"a": 1}
        override = {"b": 2}
        _deep_merge(base, override)
        assert base == {"a": 1}

    def test_raises_config_error_for_non_mapping(self, tmp_path: Path) -> None:
        """A YAML list at the top level is rejected."""
        yaml_file = tmp_path / "list.yaml"
        yaml_file.write_text("- a\n- b\n")

        with pytest.raises(ConfigError) as exc_info:
            _load_yaml(yaml_file)
        assert exc_info.value.code == ErrorCode.CONFIG_PARSE_ERROR


@pytest.fixture
def no_global_config(tmp_path: Path) -> Generator[None, None, None]:
    """Point the global config at a file that does not exist."""
    clean_env = {k: v for k, v in os.environ.items() if not k.upper().startswith("PHPINTEL__")}
    with (
        patch("phpintel.config.loader.GLOBAL_CONFIG_PATH", tmp_path / "none.yaml"),
        patch.dict(os.environ, clean_env, clear=True),
    ):
        yield


def _write_repo_config(root: Path, text: str) -> None:
    config_dir = root / ".phpintel"
    config_dir.mkdir(exist_ok=True)
    (config_dir / "config.yaml").write_text(text)


@pytest.mark.usefixtures("no_global_config")
class TestLoadConfig:
    """Tests for load_config function."""

    def test_returns_default_config_when_no_files(self, tmp_path: Path) -> None:
        """Returns default config when no config files exist."""
        config = load_config(tmp_path)

        assert config.logging.level == "INFO"
        assert config.index.extensions == ["php"]
        assert config.analysis.max_deduction_depth == 64
        assert config.lint.unknown_members

    def test_loads_repo_config(self, tmp_path: Path) -> None:
        """Loads config from repo .phpintel directory."""
        _write_repo_config(tmp_path, "analysis:\n  max_resolution_depth: 16\n")

        config = load_config(tmp_path)

        assert config.analysis.max_resolution_depth == 16
        assert config.analysis.max_deduction_depth == 64

    def test_repo_config_merges_over_global(self, tmp_path: Path) -> None:
        """Repo YAML overrides keys of the global YAML but keeps the rest."""
        global_file = tmp_path / "global.yaml"
        global_file.write_text("index:\n  max_file_size_mb: 2\n  extensions: [php, inc]\n")
        _write_repo_config(tmp_path, "index:\n  max_file_size_mb: 5\n")

        with patch("phpintel.config.loader.GLOBAL_CONFIG_PATH", global_file):
            config = load_config(tmp_path)

        assert config.index.max_file_size_mb == 5
        assert config.index.extensions == ["php", "inc"]

    def test_env_vars_override_yaml(self, tmp_path: Path) -> None:
        """Environment variables override YAML config."""
        _write_repo_config(tmp_path, "logging:\n  level: INFO\n")

        with patch.dict(os.environ, {"PHPINTEL__LOGGING__LEVEL": "WARNING"}):
            config = load_config(tmp_path)

        assert config.logging.level == "WARNING"

    def test_env_var_toggles_analyzer(self, tmp_path: Path) -> None:
        with patch.dict(os.environ, {"PHPINTEL__LINT__UNKNOWN_MEMBERS": "false"}):
            config = load_config(tmp_path)

        assert not config.lint.unknown_members
        assert config.lint.unknown_classes

    def test_kwargs_override_all(self, tmp_path: Path) -> None:
        """Keyword arguments override everything."""
        from phpintel.config.models import LoggingConfig

        with patch.dict(os.environ, {"PHPINTEL__LOGGING__LEVEL": "WARNING"}):
            config = load_config(tmp_path, logging=LoggingConfig(level="ERROR"))

        assert config.logging.level == "ERROR"

    def test_raises_config_error_for_invalid_value(self, tmp_path: Path) -> None:
        """Raises ConfigError for invalid config values."""
        _write_repo_config(tmp_path, "analysis:\n  max_deduction_depth: 0\n")

        with pytest.raises(ConfigError) as exc_info:
            load_config(tmp_path)

        assert exc_info.value.code == ErrorCode.CONFIG_INVALID_VALUE
        assert "max_deduction_depth" in exc_info.value.details["field"]

    def test_raises_config_error_for_invalid_yaml(self, tmp_path: Path) -> None:
        _write_repo_config(tmp_path, "lint: [unclosed\n")

        with pytest.raises(ConfigError):
            load_config(tmp_path)


@pytest.mark.usefixtures("no_global_config")
class TestGetIndexPath:
    """Tests for get_index_path function."""

    def test_returns_default_path(self, tmp_path: Path) -> None:
        """Returns default path under .phpintel."""
        assert get_index_path(tmp_path) == tmp_path / ".phpintel" / "index.db"

    def test_respects_custom_index_path(self, tmp_path: Path) -> None:
        """Respects index_path setting in config."""
        custom_path = tmp_path / "custom" / "index"
        _write_repo_config(tmp_path, f"index:\n  index_path: {custom_path}\n")

        assert get_index_path(tmp_path) == custom_path / "index.db"

    def test_uses_given_config(self, tmp_path: Path) -> None:
        from phpintel.config.models import IndexConfig, PhpIntelConfig

        config = PhpIntelConfig(index=IndexConfig(index_path=str(tmp_path / "elsewhere")))

        assert get_index_path(tmp_path, config) == tmp_path / "elsewhere" / "index.db"


class TestGlobalConfigPath:
    """Tests for GLOBAL_CONFIG_PATH constant."""

    def test_is_path_object(self) -> None:
        """GLOBAL_CONFIG_PATH is a Path."""
        assert isinstance(GLOBAL_CONFIG_PATH, Path)

    def test_is_in_user_config(self) -> None:
        """Path is in user config directory."""
        assert "phpintel" in str(GLOBAL_CONFIG_PATH)
