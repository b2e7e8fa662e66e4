"""
Shared pytest fixtures for snapzip tests.

This module provides fixtures for:
- Flask app and test client
- Source trees and workspaces under tmp_path
- Backup settings pointing at those trees
- Mock fixtures for APScheduler
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from snapzip import create_app
from snapzip import scheduler as scheduler_module
from snapzip.backup.executor import CycleState
from snapzip.config import BackupSettings


@pytest.fixture(scope='function')
def app(tmp_path):
    """
    Create Flask app with test configuration.

    The scheduler is not started.
    """
    app = create_app('testing')

    app.config.update({
        'TESTING': True,
        'TEMP_DIR': str(tmp_path / 'temp_backup_world'),
        'BACKUP_INTERVAL_SECONDS': 3600,
    })

    yield app


@pytest.fixture(scope='function')
def client(app):
    """Flask test client for making HTTP requests."""
    return app.test_client()


@pytest.fixture(autouse=True)
def reset_scheduler_state():
    """Reset the scheduler module globals around every test."""
    yield
    scheduler_module.scheduler = None
    scheduler_module.backup_settings = None
    scheduler_module.cycle_options = {}
    scheduler_module.current_state = CycleState.IDLE
    scheduler_module.current_progress = None
    scheduler_module.last_result = None
    scheduler_module.cycles_completed = 0


@pytest.fixture
def source_tree(tmp_path):
    """
    Create a small source tree.

    Creates:
    - level.dat (100 bytes)
    - region/r.0.0.mca (2048 bytes)
    - region/r.0.1.mca (512 bytes)
    - playerdata/ (empty)
    """
    source = tmp_path / 'world'
    source.mkdir()
    (source / 'level.dat').write_bytes(b'L' * 100)

    region = source / 'region'
    region.mkdir()
    (region / 'r.0.0.mca').write_bytes(b'R' * 2048)
    (region / 'r.0.1.mca').write_bytes(b'S' * 512)

    (source / 'playerdata').mkdir()

    return source


@pytest.fixture
def source_tree_size():
    return 100 + 2048 + 512


@pytest.fixture
def workspace(tmp_path):
    """Path of the isolated copy (not created)."""
    return tmp_path / 'temp_backup_world'


@pytest.fixture
def destination(tmp_path):
    """Existing archive destination directory."""
    path = tmp_path / 'backups'
    path.mkdir()
    return path


@pytest.fixture
def backup_settings(source_tree, destination):
    return BackupSettings(folder_name=str(source_tree), zip_folder=str(destination))


@pytest.fixture
def settings_file(tmp_path, source_tree, destination):
    """Filled-in JSON settings file."""
    path = tmp_path / 'config.json'
    path.write_text(json.dumps({
        'folderName': str(source_tree),
        'zipFolder': str(destination)
    }))
    return path


@pytest.fixture(scope='function')
def mock_scheduler():
    """
    Mock APScheduler for testing scheduler functionality.
    """
    with patch('snapzip.scheduler.BackgroundScheduler') as mock_sched:
        scheduler_instance = MagicMock()
        mock_sched.return_value = scheduler_instance

        scheduler_instance.running = False
        scheduler_instance.get_job.return_value = None

        yield scheduler_instance

