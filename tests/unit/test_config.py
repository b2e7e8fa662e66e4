"""
Unit tests for configuration loading (snapzip/config.py).
"""

import json

import pytest

from snapzip.backup.errors import ConfigurationError
from snapzip.config import (
    PLACEHOLDER_SETTINGS,
    BackupSettings,
    config,
    load_backup_settings
)


class TestLoadBackupSettings:
    """Test load_backup_settings validation."""

    def test_valid_settings(self, settings_file, source_tree, destination):
        settings = load_backup_settings(str(settings_file))

        assert settings == BackupSettings(folder_name=str(source_tree), zip_folder=str(destination))

    def test_missing_file_writes_placeholder(self, tmp_path):
        """Test a missing file is replaced by a placeholder and still fails."""
        path = tmp_path / 'conf' / 'config.json'

        with pytest.raises(ConfigurationError) as exc_info:
            load_backup_settings(str(path))

        assert exc_info.value.code == 'CONFIG_CREATED'
        assert json.loads(path.read_text()) == {'folderName': '', 'zipFolder': ''}

    def test_placeholder_is_rejected_until_filled(self, tmp_path):
        """Test the written placeholder does not load on the next start."""
        path = tmp_path / 'config.json'
        path.write_text(json.dumps(PLACEHOLDER_SETTINGS))

        with pytest.raises(ConfigurationError, match="folderName") as exc_info:
            load_backup_settings(str(path))

        assert exc_info.value.code == 'CONFIG_INCOMPLETE'

    def test_invalid_json(self, tmp_path):
        path = tmp_path / 'config.json'
        path.write_text('{"folderName": ')

        with pytest.raises(ConfigurationError) as exc_info:
            load_backup_settings(str(path))

        assert exc_info.value.code == 'CONFIG_INVALID'

    def test_not_an_object(self, tmp_path):
        path = tmp_path / 'config.json'
        path.write_text('["/srv/world"]')

        with pytest.raises(ConfigurationError, match="JSON object"):
            load_backup_settings(str(path))

    def test_relative_path_rejected(self, tmp_path, destination):
        path = tmp_path / 'config.json'
        path.write_text(json.dumps({'folderName': 'world', 'zipFolder': str(destination)}))

        with pytest.raises(ConfigurationError, match="absolute"):
            load_backup_settings(str(path))

    def test_missing_zip_folder(self, tmp_path, source_tree):
        path = tmp_path / 'config.json'
        path.write_text(json.dumps({'folderName': str(source_tree)}))

        with pytest.raises(ConfigurationError, match="zipFolder"):
            load_backup_settings(str(path))

    def test_configuration_errors_are_fatal(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            load_backup_settings(str(tmp_path / 'config.json'))

        assert exc_info.value.fatal is True


class TestConfigClasses:
    """Test configuration profiles."""

    def test_profiles(self):
        assert set(config) == {'development', 'production', 'testing', 'default'}

    def test_defaults(self):
        assert config['production'].BACKUP_INTERVAL_SECONDS > 0
        assert config['production'].TEMP_DIR
        assert config['testing'].SCHEDULER_ENABLED is False
