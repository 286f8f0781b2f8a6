"""
Tests for the settings loader.
"""

import textwrap
from pathlib import Path

import pytest

from devdeck.core.config.loader import (
    SETTINGS_ENV_VAR,
    ConfigError,
    Settings,
    find_settings_file,
    load_settings,
)
from devdeck.core.models import SourceKind


class TestLoadSettings:
    def test_full_file(self, tmp_path: Path):
        path = tmp_path / "config.yml"
        path.write_text(textwrap.dedent("""\
            backend:
              command: ["devdeck-backend", "--json"]
              timeout_s: 30
              batch: false
            sources: [npm, go]
            config_dirs:
              My-Tool: [".mytool.d"]
            cache_file: /tmp/devdeck-cache.json
            log_level: INFO
        """))

        settings = load_settings(path)

        assert settings.backend.command == ["devdeck-backend", "--json"]
        assert settings.backend.timeout_s == 30
        assert settings.backend.batch is False
        assert settings.sources == [SourceKind.NPM, SourceKind.GO]
        assert settings.config_dirs == {"mytool": [".mytool.d"]}
        assert settings.cache_file == Path("/tmp/devdeck-cache.json")
        assert settings.log_level == "INFO"

    def test_empty_file_is_defaults(self, tmp_path: Path):
        path = tmp_path / "config.yml"
        path.write_text("")
        assert load_settings(path) == Settings()

    def test_defaults(self):
        settings = Settings()
        assert settings.backend.command == []
        assert settings.backend.timeout_s == 120
        assert settings.backend.batch is True
        assert settings.sources == [SourceKind.NPM, SourceKind.CARGO, SourceKind.PIP]

    def test_explicit_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            load_settings(tmp_path / "missing.yml")

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "config.yml"
        path.write_text("backend: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_settings(path)

    def test_not_a_mapping(self, tmp_path: Path):
        path = tmp_path / "config.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="Expected a YAML mapping"):
            load_settings(path)

    def test_invalid_values(self, tmp_path: Path):
        path = tmp_path / "config.yml"
        path.write_text("backend:\n  timeout_s: 0\n")
        with pytest.raises(ConfigError, match="Invalid settings"):
            load_settings(path)

    def test_unknown_source(self, tmp_path: Path):
        path = tmp_path / "config.yml"
        path.write_text("sources: [brew]\n")
        with pytest.raises(ConfigError):
            load_settings(path)


class TestFindSettingsFile:
    def test_env_var(self, tmp_path: Path, monkeypatch):
        target = tmp_path / "custom.yml"
        monkeypatch.setenv(SETTINGS_ENV_VAR, str(target))
        assert find_settings_file(home=tmp_path) == target

    def test_default_location(self, tmp_path: Path, monkeypatch):
        monkeypatch.delenv(SETTINGS_ENV_VAR, raising=False)
        target = tmp_path / ".config" / "devdeck" / "config.yml"
        target.parent.mkdir(parents=True)
        target.write_text("log_level: DEBUG\n")
        assert find_settings_file(home=tmp_path) == target

    def test_nothing_found(self, tmp_path: Path, monkeypatch):
        monkeypatch.delenv(SETTINGS_ENV_VAR, raising=False)
        assert find_settings_file(home=tmp_path) is None

    def test_env_var_missing_file_is_an_error(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv(SETTINGS_ENV_VAR, str(tmp_path / "gone.yml"))
        with pytest.raises(ConfigError, match="not found"):
            load_settings()
