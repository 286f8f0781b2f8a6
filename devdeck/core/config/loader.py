"""
Settings loader — reads the devdeck settings file into a typed model.

Resolution order for the settings file:
    explicit path  >  DEVDECK_CONFIG env var  >  ~/.config/devdeck/config.yml

A missing auto-detected file means built-in defaults. An explicit
path that is missing or invalid is an error.

Example::

    backend:
      command: ["devdeck-backend", "--json"]
      timeout_s: 90
      batch: true
    sources: [npm, cargo, pip, go]
    config_dirs:
      vite: [".config/vite"]
    log_level: INFO
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from devdeck.core.models.tool import SourceKind
from devdeck.sources.registry import DEFAULT_SOURCES

logger = logging.getLogger(__name__)

SETTINGS_ENV_VAR = "DEVDECK_CONFIG"
DEFAULT_SETTINGS_PATH = Path(".config") / "devdeck" / "config.yml"


class ConfigError(Exception):
    """Raised when the settings file is invalid or missing."""


class BackendSettings(BaseModel):
    """How to reach the privileged backend."""

    command: list[str] = Field(default_factory=list)
    timeout_s: float = Field(default=120.0, gt=0)
    batch: bool = True


class Settings(BaseModel):
    """Validated settings."""

    backend: BackendSettings = Field(default_factory=BackendSettings)
    sources: list[SourceKind] = Field(default_factory=lambda: list(DEFAULT_SOURCES))
    config_dirs: dict[str, list[str]] = Field(default_factory=dict)
    cache_file: Path | None = None
    log_level: str | None = None


def find_settings_file(home: Path | None = None) -> Path | None:
    """Locate the settings file from the env var or the default path."""
    env_path = os.environ.get(SETTINGS_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()

    candidate = (home or Path.home()) / DEFAULT_SETTINGS_PATH
    return candidate if candidate.is_file() else None


def load_settings(path: Path | None = None) -> Settings:
    """Load and validate settings.

    Args:
        path: Explicit settings file. If None, searches the default
            locations and falls back to built-in defaults.

    Returns:
        Validated Settings model.

    Raises:
        ConfigError: If the file is missing (when explicitly given)
            or invalid.
    """
    explicit = path is not None
    if path is None:
        path = find_settings_file()
        explicit = path is not None and bool(os.environ.get(SETTINGS_ENV_VAR))

    if path is None:
        logger.debug("No settings file found — using defaults")
        return Settings()

    if not path.is_file():
        if explicit:
            raise ConfigError(f"Settings file not found: {path}")
        return Settings()

    logger.debug("Loading settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return Settings()
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        settings = Settings.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid settings in {path}: {e}") from e

    # Normalize lookup keys the same way tool names are normalized
    settings.config_dirs = {
        k.lower().replace("-", ""): v for k, v in settings.config_dirs.items()
    }

    logger.info(
        "Loaded settings from %s (%d source(s), backend=%s)",
        path, len(settings.sources), "yes" if settings.backend.command else "none",
    )
    return settings
