"""Tests for configuration management."""

import json

import pytest

from smooth.core.config import Config, ConfigManager
from smooth.core.errors import ConfigError


class TestConfigManager:
    """Test cases for ConfigManager."""

    def test_missing_file_gives_defaults(self, config_manager):
        """A first run has no config file and must not fail."""
        assert not config_manager.get_config_path().exists()
        assert config_manager.load_config() == Config()

    def test_default_values(self, config_manager):
        config = config_manager.get_default_config()

        assert config.auto_sync_enabled is False
        assert config.max_backups == 10
        assert config.experiments_enabled is False
        assert config.theme_id == "coral"

    def test_default_path(self):
        path = ConfigManager().get_config_path()
        assert path.parts[-2:] == (".smooth", "config.json")

    def test_invalid_json_gives_defaults(self, config_manager):
        path = config_manager.get_config_path()
        path.parent.mkdir(parents=True)
        path.write_text("{not json")

        assert config_manager.load_config() == Config()

    def test_non_object_gives_defaults(self, config_manager):
        path = config_manager.get_config_path()
        path.parent.mkdir(parents=True)
        path.write_text("[1, 2, 3]")

        assert config_manager.load_config() == Config()

    def test_save_and_load_round_trip(self, config_manager):
        config = Config(auto_sync_enabled=True, max_backups=25, experiments_enabled=True, theme_id="ocean")

        assert config_manager.save_config(config) is True
        assert config_manager.load_config() == config

    def test_saved_file_uses_json_keys(self, config_manager):
        config_manager.save_config(Config(max_backups=3))

        data = json.loads(config_manager.get_config_path().read_text())
        assert data == {
            "autoSyncEnabled": False,
            "maxBackups": 3,
            "experimentsEnabled": False,
            "theme": "coral",
        }

    def test_save_leaves_no_temp_files(self, config_manager):
        config_manager.save_config(Config())
        config_manager.save_config(Config(max_backups=4))

        files = list(config_manager.get_config_path().parent.iterdir())
        assert [f.name for f in files] == ["config.json"]

    def test_load_clamps_and_normalizes(self, config_manager):
        path = config_manager.get_config_path()
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"maxBackups": 5000, "theme": "neon", "extra": 1}))

        config = config_manager.load_config()
        assert config.max_backups == 1000
        assert config.theme_id == "coral"

    def test_load_ignores_mistyped_values(self, config_manager):
        path = config_manager.get_config_path()
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"maxBackups": "20", "autoSyncEnabled": 1}))

        config = config_manager.load_config()
        assert config.max_backups == 10
        assert config.auto_sync_enabled is False


class TestConfigUpdate:
    """Test cases for partial updates."""

    def test_update_merges_onto_stored_config(self, config_manager):
        config_manager.update_config({"experimentsEnabled": True})
        config = config_manager.update_config({"maxBackups": 3})

        assert config.experiments_enabled is True
        assert config.max_backups == 3
        assert config_manager.load_config() == config

    @pytest.mark.parametrize("value,expected", [(0, 1), (-5, 1), (1000, 1000), (5000, 1000)])
    def test_update_clamps_max_backups(self, config_manager, value, expected):
        assert config_manager.update_config({"maxBackups": value}).max_backups == expected

    def test_update_rejects_unknown_key(self, config_manager):
        with pytest.raises(ConfigError) as exc_info:
            config_manager.update_config({"colour": "red"})

        assert "Unknown setting: colour" in str(exc_info.value)
        assert not config_manager.get_config_path().exists()

    def test_update_rejects_wrong_type(self, config_manager):
        with pytest.raises(ConfigError) as exc_info:
            config_manager.update_config({"maxBackups": True, "autoSyncEnabled": "yes"})

        assert len(exc_info.value.errors) == 2

    def test_update_rejects_unknown_theme(self, config_manager):
        with pytest.raises(ConfigError, match="theme must be one of"):
            config_manager.update_config({"theme": "neon"})

    def test_validate_accepts_partial_documents(self, config_manager):
        assert config_manager.validate_config({}) == []
        assert config_manager.validate_config({"theme": "forest"}) == []
