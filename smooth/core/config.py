"""Configuration management for Smooth."""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from .interfaces import IConfigManager
from .theme import DEFAULT_THEME_ID, THEMES
from .errors import ConfigError, SmoothError

logger = logging.getLogger(__name__)

MIN_BACKUPS = 1
MAX_BACKUPS = 1000

# JSON key -> (attribute, expected type)
_FIELDS = {
    "autoSyncEnabled": ("auto_sync_enabled", bool),
    "maxBackups": ("max_backups", int),
    "experimentsEnabled": ("experiments_enabled", bool),
    "theme": ("theme_id", str),
}


@dataclass(frozen=True)
class Config:
    """User preferences, the only state Smooth itself persists."""
    auto_sync_enabled: bool = False
    max_backups: int = 10
    experiments_enabled: bool = False
    theme_id: str = DEFAULT_THEME_ID

    def to_dict(self) -> Dict[str, Any]:
        return {key: getattr(self, attr) for key, (attr, _) in _FIELDS.items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Build a config from a JSON document, ignoring unknown or mistyped keys."""
        values = {}
        for key, (attr, expected) in _FIELDS.items():
            value = data.get(key)
            if _is_type(value, expected):
                values[attr] = value
        return cls(**values).normalized()

    def normalized(self) -> "Config":
        """Clamp out-of-range values."""
        max_backups = min(max(self.max_backups, MIN_BACKUPS), MAX_BACKUPS)
        theme_id = self.theme_id if self.theme_id in THEMES else DEFAULT_THEME_ID
        return replace(self, max_backups=max_backups, theme_id=theme_id)


def _is_type(value: Any, expected: type) -> bool:
    # bool is a subclass of int; keep them apart
    if expected is int:
        return isinstance(value, int) and not isinstance(value, bool)
    return isinstance(value, expected)


class ConfigManager(IConfigManager):
    """Manages configuration loading, saving, and validation."""

    DEFAULT_CONFIG_DIR = ".smooth"
    DEFAULT_CONFIG_NAME = "config.json"

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = Path(config_path) if config_path else self.default_config_path()

    @classmethod
    def default_config_path(cls) -> Path:
        return Path.home() / cls.DEFAULT_CONFIG_DIR / cls.DEFAULT_CONFIG_NAME

    def load_config(self) -> Config:
        """Load configuration from JSON, returning defaults on any failure."""
        path = self.config_path

        if not path.exists():
            return self.get_default_config()

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load config from {path}: {e}")
            return self.get_default_config()

        if not isinstance(data, dict):
            logger.warning(f"Ignoring config at {path}: expected a JSON object")
            return self.get_default_config()

        return Config.from_dict(data)

    def save_config(self, config: Config) -> bool:
        """Write the whole config to a temp file and swap it into place."""
        path = self.config_path

        try:
            path.parent.mkdir(parents=True, exist_ok=True)

            fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=".config-", suffix=".json")
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(config.normalized().to_dict(), f, indent=2)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise

            return True
        except OSError as e:
            logger.error(f"Failed to save config to {path}: {e}")
            return False

    def update_config(self, partial: Dict[str, Any]) -> Config:
        """Apply a partial update on top of the stored config and persist it.

        Raises:
            ConfigError: If the update is malformed
            SmoothError: If the config file cannot be written
        """
        errors = self.validate_config(partial)
        if errors:
            raise ConfigError(errors)

        current = self.load_config()
        changes = {_FIELDS[key][0]: value for key, value in partial.items()}
        updated = replace(current, **changes).normalized()

        if not self.save_config(updated):
            raise SmoothError(f"Could not write {self.config_path}")

        return updated

    def get_default_config(self) -> Config:
        """Get default configuration values."""
        return Config()

    def validate_config(self, config: Dict[str, Any]) -> List[str]:
        """Validate a (partial) config document and return any errors."""
        errors = []

        for key, value in config.items():
            if key not in _FIELDS:
                errors.append(f"Unknown setting: {key}")
                continue

            _, expected = _FIELDS[key]
            if not _is_type(value, expected):
                errors.append(f"{key} must be of type {expected.__name__}")

        theme = config.get("theme")
        if isinstance(theme, str) and theme not in THEMES:
            errors.append(f"theme must be one of: {', '.join(THEMES)}")

        return errors

    def get_config_path(self) -> Path:
        """Get the path to the configuration file."""
        return self.config_path
