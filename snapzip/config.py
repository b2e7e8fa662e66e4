import json
import os
import tempfile
from dataclasses import dataclass

from snapzip.backup.errors import ConfigurationError


def _env_flag(name, default='false'):
    return os.environ.get(name, default).lower() in ('1', 'true', 'yes')


class Config:
    """Base configuration"""

    # Backup settings file (folderName / zipFolder)
    BACKUP_CONFIG_FILE = os.environ.get('SNAPZIP_CONFIG_FILE') or 'config.json'

    # Isolated copy location, reused across cycles
    TEMP_DIR = os.environ.get('TEMP_DIR') or os.path.join(tempfile.gettempdir(), 'temp_backup_world')

    # Scheduler
    SCHEDULER_ENABLED = True
    SCHEDULER_TIMEZONE = 'UTC'
    BACKUP_INTERVAL_SECONDS = int(os.environ.get('BACKUP_INTERVAL_SECONDS', 3600))

    # Abort a cycle on the first unreadable entry instead of skipping it
    STRICT_SCAN = _env_flag('STRICT_SCAN')

    # Logging
    LOG_DIR = os.environ.get('LOG_DIR') or os.path.join(os.getcwd(), 'logs')


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True

    # Use local data directory for development
    BASE_DIR = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    DATA_DIR = os.path.join(BASE_DIR, 'data')
    LOG_DIR = os.path.join(DATA_DIR, 'logs')
    BACKUP_INTERVAL_SECONDS = int(os.environ.get('BACKUP_INTERVAL_SECONDS', 300))


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False


class TestingConfig(Config):
    """Testing configuration"""
    DEBUG = False
    TESTING = True
    SCHEDULER_ENABLED = False
    TEMP_DIR = os.path.join(tempfile.gettempdir(), 'snapzip-test-workspace')
    LOG_DIR = os.path.join(tempfile.gettempdir(), 'snapzip-test-logs')


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': ProductionConfig
}


PLACEHOLDER_SETTINGS = {
    'folderName': '',
    'zipFolder': ''
}


@dataclass(frozen=True)
class BackupSettings:
    """Source directory and archive destination read from the config file."""
    folder_name: str
    zip_folder: str


def write_placeholder_settings(path: str):
    """Write a config file with empty values for the user to fill in."""
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(PLACEHOLDER_SETTINGS, f, indent=2)
        f.write('\n')


def load_backup_settings(path: str) -> BackupSettings:
    """
    Load and validate the backup settings file.

    A missing file is replaced by a placeholder, which is still reported as
    a ConfigurationError: nothing can run until it is filled in.

    Args:
        path: Path to the JSON settings file

    Returns:
        BackupSettings

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    if not os.path.exists(path):
        try:
            write_placeholder_settings(path)
        except OSError as e:
            raise ConfigurationError(
                f"Config file not found and placeholder could not be written ({e})",
                code='CONFIG_MISSING',
                path=path
            )
        raise ConfigurationError(
            "Config file not found. A placeholder was created, "
            "fill in folderName and zipFolder and restart",
            code='CONFIG_CREATED',
            path=path
        )

    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Config file is not valid JSON ({e})", code='CONFIG_INVALID', path=path)
    except OSError as e:
        raise ConfigurationError(f"Config file could not be read ({e})", code='CONFIG_UNREADABLE', path=path)

    if not isinstance(data, dict):
        raise ConfigurationError("Config file must contain a JSON object", code='CONFIG_INVALID', path=path)

    values = {}
    for key in PLACEHOLDER_SETTINGS:
        value = data.get(key)
        if not isinstance(value, str) or not value.strip():
            raise ConfigurationError(f"Missing value for '{key}'", code='CONFIG_INCOMPLETE', path=path)
        value = value.strip()
        if not os.path.isabs(value):
            raise ConfigurationError(
                f"'{key}' must be an absolute path, got '{value}'",
                code='CONFIG_INVALID',
                path=path
            )
        values[key] = value

    return BackupSettings(folder_name=values['folderName'], zip_folder=values['zipFolder'])
