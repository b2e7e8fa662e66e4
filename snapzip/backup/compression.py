"""
Archive builder - streams a directory tree into a ZIP container.

The container mirrors the source's immediate children at its top level
(the source directory name itself is not stored). Files are deflated at
maximum compression and read in chunks so progress can be reported while
large files are being consumed.

The archive is written next to its final location under a ".partial" name
and only renamed into place once it has been closed successfully.
"""

import logging
import os
import zipfile
from datetime import datetime
from typing import Callable, Optional

from .errors import ArchiveWriteError, BackupError, FilesystemError


logger = logging.getLogger(__name__)


ARCHIVE_EXTENSION = 'zip'
COMPRESS_LEVEL = 9
CHUNK_SIZE = 1024 * 1024
PARTIAL_SUFFIX = '.partial'
TIMESTAMP_FORMAT = '%Y-%m-%d_%H-%M-%S'


def build_archive(
    source_path: str,
    output_path: str,
    on_progress: Optional[Callable[[int], None]] = None
) -> int:
    """
    Create a ZIP archive of everything under source_path.

    Args:
        source_path: Directory whose contents are archived
        output_path: Final path of the archive file
        on_progress: Called with the cumulative number of source bytes read

    Returns:
        Size of the finished archive in bytes

    Raises:
        FilesystemError: If a source file cannot be read
        ArchiveWriteError: If the archive cannot be written
    """
    partial_path = f"{output_path}{PARTIAL_SUFFIX}"
    processed_bytes = 0

    try:
        with zipfile.ZipFile(
            partial_path,
            'w',
            zipfile.ZIP_DEFLATED,
            compresslevel=COMPRESS_LEVEL,
            strict_timestamps=False
        ) as zipf:
            for dirpath, dirnames, filenames in _walk(source_path):
                for dirname in dirnames:
                    directory = os.path.join(dirpath, dirname)
                    _add_directory(zipf, directory, os.path.relpath(directory, source_path))

                for filename in filenames:
                    file_path = os.path.join(dirpath, filename)
                    arcname = os.path.relpath(file_path, source_path)
                    processed_bytes = _add_file(zipf, file_path, arcname, processed_bytes, on_progress)

        os.replace(partial_path, output_path)

    except BackupError:
        _remove_partial(partial_path)
        raise
    except OSError as e:
        _remove_partial(partial_path)
        raise ArchiveWriteError.from_os_error(e, path=output_path, syscall='write') from e
    except Exception:
        _remove_partial(partial_path)
        raise

    return get_archive_size(output_path)


def _walk(source_path: str):
    """os.walk in a stable order, without symlinks or special files."""
    def _raise(exc: OSError):
        raise FilesystemError.from_os_error(exc, syscall='scandir') from exc

    for dirpath, dirnames, filenames in os.walk(source_path, onerror=_raise):
        # Pruned in place so os.walk does not descend into them
        dirnames[:] = sorted(
            name for name in dirnames
            if not os.path.islink(os.path.join(dirpath, name))
        )
        yield dirpath, dirnames, sorted(
            name for name in filenames
            if os.path.isfile(os.path.join(dirpath, name))
            and not os.path.islink(os.path.join(dirpath, name))
        )


def _add_directory(zipf: zipfile.ZipFile, directory: str, arcname: str):
    """Store a directory entry so empty directories survive."""
    try:
        zipf.write(directory, arcname)
    except OSError as e:
        raise FilesystemError.from_os_error(e, path=directory, syscall='stat') from e


def _add_file(
    zipf: zipfile.ZipFile,
    file_path: str,
    arcname: str,
    processed_bytes: int,
    on_progress: Optional[Callable[[int], None]]
) -> int:
    """
    Stream one file into the archive.

    Returns:
        Updated cumulative byte count
    """
    try:
        zinfo = zipfile.ZipInfo.from_file(file_path, arcname, strict_timestamps=False)
        source = open(file_path, 'rb')
    except OSError as e:
        raise FilesystemError.from_os_error(e, path=file_path, syscall='open') from e

    zinfo.compress_type = zipfile.ZIP_DEFLATED
    # ZipFile.open() takes the level from the ZipInfo, not from the archive.
    # Python < 3.13 only has the private field.
    if hasattr(zinfo, 'compress_level'):
        zinfo.compress_level = COMPRESS_LEVEL
    else:
        zinfo._compresslevel = COMPRESS_LEVEL

    with source, zipf.open(zinfo, 'w') as dest:
        while True:
            try:
                chunk = source.read(CHUNK_SIZE)
            except OSError as e:
                raise FilesystemError.from_os_error(e, path=file_path, syscall='read') from e
            if not chunk:
                break
            dest.write(chunk)
            processed_bytes += len(chunk)
            if on_progress:
                on_progress(processed_bytes)

    return processed_bytes


def _remove_partial(partial_path: str):
    if os.path.exists(partial_path):
        try:
            os.remove(partial_path)
        except OSError as e:
            logger.warning(f"Failed to remove partial archive {partial_path}: {e}")


def generate_archive_filename(source_path: str, now: Optional[datetime] = None) -> str:
    """
    Generate the archive filename for a cycle.

    Format: {YYYY-MM-DD_HH-MM-SS}_{basename}.zip, local wall-clock time.

    Args:
        source_path: Directory being backed up
        now: Cycle start time (defaults to now)

    Returns:
        Filename (without path)
    """
    timestamp = (now or datetime.now()).strftime(TIMESTAMP_FORMAT)
    folder_name = os.path.basename(os.path.normpath(source_path))
    return f"{timestamp}_{folder_name}.{ARCHIVE_EXTENSION}"


def get_archive_size(archive_path: str) -> int:
    """
    Get the size of an archive file in bytes.

    Raises:
        ArchiveWriteError: If the file doesn't exist or cannot be accessed
    """
    try:
        return os.path.getsize(archive_path)
    except OSError as e:
        raise ArchiveWriteError.from_os_error(e, path=archive_path, syscall='stat') from e
