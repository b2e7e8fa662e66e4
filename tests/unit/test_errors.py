"""
Unit tests for error classification and reporting (snapzip/backup/errors.py).
"""

import errno
import logging
from unittest.mock import MagicMock

from snapzip.backup.errors import (
    ArchiveWriteError,
    ConfigurationError,
    FilesystemError,
    NetworkPathError,
    PartialAccessError,
    UnknownError,
    classify_error,
    is_network_path,
    report_error
)


class TestClassifyError:
    """Test classify_error mapping."""

    def test_classified_error_returned_unchanged(self):
        error = ConfigurationError('missing folderName', code='CONFIG_INCOMPLETE')

        assert classify_error(error) is error

    def test_file_not_found(self):
        """Test a raw OSError becomes a FilesystemError with structured fields."""
        exc = FileNotFoundError(errno.ENOENT, 'No such file or directory', '/srv/world')

        classified = classify_error(exc)

        assert type(classified) is FilesystemError
        assert classified.code == 'ENOENT'
        assert classified.errno == errno.ENOENT
        assert classified.path == '/srv/world'
        assert classified.__cause__ is exc

    def test_permission_denied(self):
        exc = PermissionError(errno.EACCES, 'Permission denied', '/srv/world/level.dat')

        classified = classify_error(exc)

        assert isinstance(classified, FilesystemError)
        assert classified.code == 'EACCES'

    def test_network_errno(self):
        """Test network errno values become NetworkPathError."""
        exc = OSError(errno.EHOSTUNREACH, 'No route to host', '/mnt/nas/backups')

        classified = classify_error(exc)

        assert isinstance(classified, NetworkPathError)
        assert classified.code == 'EHOSTUNREACH'

    def test_unc_path(self):
        """Test failures on UNC paths become NetworkPathError."""
        exc = FileNotFoundError(errno.ENOENT, 'No such file or directory', '\\\\nas\\backups\\x.zip')

        assert isinstance(classify_error(exc), NetworkPathError)

    def test_windows_bad_netpath(self):
        """Test ERROR_BAD_NETPATH is recognised through winerror."""
        exc = OSError(errno.ENOENT, 'The network path was not found', 'Z:\\backups')
        exc.winerror = 53

        assert isinstance(classify_error(exc), NetworkPathError)

    def test_archive_write_error_on_network_share_is_promoted(self):
        """Test a write failure to an unreachable share is reported as network error."""
        error = ArchiveWriteError('Stale file handle', code='ESTALE', path='/mnt/nas/x.zip', errno=errno.ESTALE)

        classified = classify_error(error)

        assert isinstance(classified, NetworkPathError)
        assert classified.path == '/mnt/nas/x.zip'
        assert classified.__cause__ is error

    def test_local_archive_write_error_is_kept(self):
        error = ArchiveWriteError('No space left on device', code='ENOSPC', path='/backups/x.zip', errno=errno.ENOSPC)

        assert classify_error(error) is error

    def test_partial_access_error_is_kept(self):
        error = PartialAccessError('Permission denied', path='//nas/share/file')

        assert classify_error(error) is error

    def test_unknown_error(self):
        exc = ValueError('boom')

        classified = classify_error(exc)

        assert isinstance(classified, UnknownError)
        assert classified.code == 'ValueError'
        assert classified.message == 'boom'


class TestErrorFields:
    """Test structured error fields."""

    def test_filesystem_fields(self):
        error = FilesystemError.from_os_error(
            PermissionError(errno.EACCES, 'Permission denied', '/srv/world'),
            syscall='scandir'
        )

        assert error.to_dict() == {
            'kind': 'filesystem',
            'code': 'EACCES',
            'message': 'Permission denied',
            'path': '/srv/world',
            'syscall': 'scandir',
            'errno': errno.EACCES,
        }

    def test_configuration_fields_have_no_path_details(self):
        error = ConfigurationError('Missing value', code='CONFIG_INCOMPLETE', path='config.json')

        assert error.to_dict() == {
            'kind': 'configuration',
            'code': 'CONFIG_INCOMPLETE',
            'message': 'Missing value',
        }
        assert error.fatal is True

    def test_str_includes_path(self):
        error = FilesystemError('No such file or directory', path='/srv/world')

        assert str(error) == 'No such file or directory: /srv/world'


class TestReportError:
    """Test report_error never raises."""

    def test_reports_and_returns_classified(self):
        log = MagicMock(spec=logging.Logger)
        exc = FileNotFoundError(errno.ENOENT, 'No such file or directory', '/srv/world')

        classified = report_error(exc, log)

        assert isinstance(classified, FilesystemError)
        log.error.assert_called_once()
        message = log.error.call_args[0][0]
        assert 'code=ENOENT' in message
        assert 'path=/srv/world' in message

    def test_fatal_errors_logged_as_critical(self):
        log = MagicMock(spec=logging.Logger)

        report_error(ConfigurationError('Config file not found'), log)

        log.critical.assert_called_once()

    def test_reporting_failure_is_swallowed(self):
        """Test a broken logger does not propagate out of report_error."""
        log = MagicMock(spec=logging.Logger)
        log.error.side_effect = [RuntimeError('handler broke'), None]

        classified = report_error(ValueError('boom'), log)

        assert isinstance(classified, UnknownError)


class TestIsNetworkPath:

    def test_unc_paths(self):
        assert is_network_path('\\\\server\\share')
        assert is_network_path('//server/share')

    def test_local_paths(self):
        assert not is_network_path('/srv/world')
        assert not is_network_path('C:\\Data')
        assert not is_network_path(None)
