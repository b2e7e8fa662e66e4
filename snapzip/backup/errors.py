"""
Error taxonomy and reporting for backup cycles.

Every failure that leaves a stage is mapped onto one of:
- ConfigurationError: missing/invalid configuration (fatal)
- FilesystemError: path not found, permission denied, disk full
  - PartialAccessError: a single entry could not be read during scan/copy
  - ArchiveWriteError: the archive could not be written
- NetworkPathError: destination is an unreachable network path
- UnknownError: anything else

report_error() logs the structured fields of a classified error and never
raises, so the scheduler loop survives any cycle failure.
"""

import errno as errno_codes
import logging
from typing import Optional


logger = logging.getLogger(__name__)


# errno values that mean the remote side of a mounted share went away
NETWORK_ERRNOS = {
    errno_codes.ENETDOWN,
    errno_codes.ENETUNREACH,
    errno_codes.ENETRESET,
    errno_codes.EHOSTDOWN,
    errno_codes.EHOSTUNREACH,
    errno_codes.ECONNREFUSED,
    errno_codes.ECONNRESET,
    errno_codes.ETIMEDOUT,
    errno_codes.ESTALE,
}

# ERROR_BAD_NETPATH, ERROR_BAD_NET_NAME, ERROR_NO_NETWORK
NETWORK_WINERRORS = {53, 67, 1222}


class BackupError(Exception):
    """Base class for classified backup failures."""

    kind = 'unknown'
    fatal = False

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        path: Optional[str] = None,
        syscall: Optional[str] = None,
        errno: Optional[int] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.path = path
        self.syscall = syscall
        self.errno = errno

    @classmethod
    def from_os_error(cls, exc: OSError, path: Optional[str] = None, syscall: Optional[str] = None):
        """
        Build a classified error from an OSError.

        Args:
            exc: Original OSError
            path: Path involved (defaults to exc.filename)
            syscall: Name of the failing operation (open, scandir, write, ...)
        """
        code = errno_codes.errorcode.get(exc.errno) if exc.errno is not None else None
        target = path if path is not None else exc.filename
        return cls(
            exc.strerror or str(exc),
            code=code,
            path=str(target) if target is not None else None,
            syscall=syscall,
            errno=exc.errno
        )

    def to_dict(self) -> dict:
        """Structured fields; path/syscall/errno only for filesystem and network errors."""
        fields = {
            'kind': self.kind,
            'code': self.code,
            'message': self.message,
        }
        if isinstance(self, (FilesystemError, NetworkPathError)):
            fields.update({
                'path': self.path,
                'syscall': self.syscall,
                'errno': self.errno,
            })
        return fields

    def __str__(self):
        if self.path:
            return f"{self.message}: {self.path}"
        return self.message


class ConfigurationError(BackupError):
    """Raised when the configuration is missing or invalid. Fatal."""
    kind = 'configuration'
    fatal = True


class FilesystemError(BackupError):
    """Raised when a local filesystem operation fails."""
    kind = 'filesystem'


class PartialAccessError(FilesystemError):
    """Raised (or recorded) when a single entry of a tree cannot be read."""
    kind = 'partial_access'


class ArchiveWriteError(FilesystemError):
    """Raised when the archive file cannot be written."""
    kind = 'archive_write'


class NetworkPathError(BackupError):
    """Raised when a path lives on an unreachable network share."""
    kind = 'network_path'


class UnknownError(BackupError):
    """Catch-all for unexpected failures."""
    kind = 'unknown'


def is_network_path(path: Optional[str]) -> bool:
    """True for UNC paths (\\\\server\\share or //server/share)."""
    if not path:
        return False
    return path.startswith('\\\\') or path.startswith('//')


def _looks_like_network_failure(exc: BackupError, winerror: Optional[int] = None) -> bool:
    if exc.errno in NETWORK_ERRNOS or winerror in NETWORK_WINERRORS:
        return True
    return is_network_path(exc.path)


def classify_error(exc: BaseException) -> BackupError:
    """
    Map any exception onto the backup error taxonomy.

    Already-classified errors are returned unchanged, except that filesystem
    errors on a network path are promoted to NetworkPathError.

    Args:
        exc: Exception raised by a backup stage

    Returns:
        BackupError instance
    """
    if isinstance(exc, NetworkPathError):
        return exc

    if isinstance(exc, FilesystemError) and not isinstance(exc, PartialAccessError):
        cause = exc.__cause__
        winerror = getattr(cause, 'winerror', None)
        if _looks_like_network_failure(exc, winerror):
            promoted = NetworkPathError(
                exc.message, code=exc.code, path=exc.path, syscall=exc.syscall, errno=exc.errno
            )
            promoted.__cause__ = exc
            return promoted
        return exc

    if isinstance(exc, BackupError):
        return exc

    if isinstance(exc, OSError):
        classified = FilesystemError.from_os_error(exc)
        if _looks_like_network_failure(classified, getattr(exc, 'winerror', None)):
            classified = NetworkPathError.from_os_error(exc)
        classified.__cause__ = exc
        return classified

    unknown = UnknownError(str(exc) or exc.__class__.__name__, code=exc.__class__.__name__)
    unknown.__cause__ = exc
    return unknown


def report_error(exc: BaseException, log: Optional[logging.Logger] = None) -> BackupError:
    """
    Classify and log a failure. Never raises.

    Args:
        exc: Exception to report
        log: Logger to report to (defaults to this module's logger)

    Returns:
        The classified BackupError
    """
    log = log or logger
    try:
        classified = classify_error(exc)
        fields = classified.to_dict()
        details = ', '.join(f"{key}={value}" for key, value in fields.items() if value is not None)
        if classified.fatal:
            log.critical(f"Fatal {classified.kind} error: {classified} ({details})")
        else:
            log.error(f"Backup {classified.kind} error: {classified} ({details})")
        return classified
    except Exception as e:
        # Reporting must not take the caller down with it
        fallback = UnknownError(f"Failed to report error: {e}")
        log.error(str(fallback))
        return fallback
