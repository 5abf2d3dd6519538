"""
Unit tests for settings loading.
"""

from pathlib import Path

import pytest

from dearfuture.config import DATA_FILE_ENV, DEFAULT_DATA_FILE, Settings, load_settings
from dearfuture.errors import ConfigError


class TestLoadSettings:
    """Tests for load_settings."""

    def test_defaults(self) -> None:
        settings = load_settings(environ={})
        assert settings.data_file == DEFAULT_DATA_FILE
        assert settings.log_level == "WARNING"

    def test_yaml_file(self, temp_dir: Path) -> None:
        path = temp_dir / "dearfuture.yaml"
        path.write_text("data_file: /srv/capsules.json\nlog_level: info\n")

        settings = load_settings(path, environ={})

        assert settings.data_file == Path("/srv/capsules.json")
        assert settings.log_level == "INFO"

    def test_empty_yaml_is_defaults(self, temp_dir: Path) -> None:
        path = temp_dir / "dearfuture.yaml"
        path.write_text("")
        assert load_settings(path, environ={}) == Settings()

    def test_env_overrides_file(self, temp_dir: Path) -> None:
        path = temp_dir / "dearfuture.yaml"
        path.write_text("data_file: from-file.json\n")

        settings = load_settings(path, environ={DATA_FILE_ENV: "from-env.json"})

        assert settings.data_file == Path("from-env.json")

    def test_home_is_expanded(self) -> None:
        settings = load_settings(environ={DATA_FILE_ENV: "~/capsules.json"})
        assert "~" not in str(settings.data_file)

    def test_missing_file(self, temp_dir: Path) -> None:
        with pytest.raises(ConfigError) as exc_info:
            load_settings(temp_dir / "nope.yaml", environ={})
        assert exc_info.value.path.endswith("nope.yaml")

    def test_invalid_yaml(self, temp_dir: Path) -> None:
        path = temp_dir / "bad.yaml"
        path.write_text("data_file: [unclosed\n")
        with pytest.raises(ConfigError):
            load_settings(path, environ={})

    def test_top_level_must_be_mapping(self, temp_dir: Path) -> None:
        path = temp_dir / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError) as exc_info:
            load_settings(path, environ={})
        assert "mapping" in exc_info.value.message

    def test_unknown_key(self, temp_dir: Path) -> None:
        path = temp_dir / "extra.yaml"
        path.write_text("encrypt: true\n")
        with pytest.raises(ConfigError):
            load_settings(path, environ={})

    def test_bad_log_level(self, temp_dir: Path) -> None:
        path = temp_dir / "level.yaml"
        path.write_text("log_level: chatty\n")
        with pytest.raises(ConfigError):
            load_settings(path, environ={})
