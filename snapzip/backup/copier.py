"""
Snapshot copier - isolates a live source tree before it is archived.

The archive is built from a private copy of the source so that writes made
by whatever process owns the source cannot corrupt it mid-compression.
Modification times are preserved on files and directories.

Skip policy (shared with the size scanner):
- symbolic links and special files are not copied
- unreadable source entries are skipped and recorded as PartialAccessError,
  unless strict mode is requested
- destination-side failures (disk full, read-only, permission) abort the copy
"""

import errno
import logging
import os
import shutil
import stat
from typing import List, Optional

from .errors import FilesystemError, PartialAccessError


logger = logging.getLogger(__name__)


# Destination failures that are never worth skipping past
FATAL_WRITE_ERRNOS = {errno.ENOSPC, errno.EDQUOT, errno.EROFS}


class SnapshotHandle:
    """
    Isolated copy of a source tree, owned by one backup cycle.
    """

    def __init__(self, isolated_path: str, skipped: Optional[List[PartialAccessError]] = None):
        self.isolated_path = isolated_path
        self.skipped = skipped or []
        self.released = False

    def release(self) -> bool:
        """Delete the isolated copy. Safe to call more than once."""
        removed = delete_tree(self.isolated_path)
        self.released = True
        return removed

    def __repr__(self):
        return f"<SnapshotHandle {self.isolated_path}>"


def _ignore_unsupported(directory: str, names: List[str]) -> List[str]:
    """copytree ignore callback: drop symlinks and special files."""
    ignored = []
    for name in names:
        try:
            mode = os.lstat(os.path.join(directory, name)).st_mode
        except OSError:
            # Left in so the copy records it as a skipped entry
            continue
        if not (stat.S_ISREG(mode) or stat.S_ISDIR(mode)):
            ignored.append(name)
    return ignored


def _copy_file(src: str, dst: str) -> str:
    """
    copytree copy function that escalates destination-side failures.

    OSErrors are collected by copytree and reported once the walk is done;
    FilesystemError is not an OSError, so raising it stops the walk.
    """
    try:
        return shutil.copy2(src, dst)
    except OSError as e:
        if e.errno in FATAL_WRITE_ERRNOS or e.filename == dst:
            raise FilesystemError.from_os_error(e, path=dst, syscall='copyfile') from e
        raise


def copy_tree(
    source_path: str,
    destination_path: str,
    strict: bool = False,
    skipped: Optional[List[PartialAccessError]] = None
) -> None:
    """
    Recursively copy source_path to destination_path, preserving mtimes.

    Args:
        source_path: Directory to copy
        destination_path: Target directory (intermediate directories are created)
        strict: If True, any unreadable entry fails the copy
        skipped: Optional list collecting the entries that were skipped

    Raises:
        FilesystemError: If the source is missing or the destination cannot be written
        PartialAccessError: If strict and an entry cannot be read
    """
    try:
        source_mode = os.stat(source_path).st_mode
    except OSError as e:
        raise FilesystemError.from_os_error(e, path=source_path, syscall='stat') from e

    if not stat.S_ISDIR(source_mode):
        raise FilesystemError(
            "Not a directory", code='ENOTDIR', path=source_path, syscall='stat', errno=errno.ENOTDIR
        )

    created = not os.path.lexists(destination_path)

    try:
        parent = os.path.dirname(os.path.abspath(destination_path))
        try:
            os.makedirs(parent, exist_ok=True)
        except OSError as e:
            raise FilesystemError.from_os_error(e, path=parent, syscall='mkdir') from e

        try:
            shutil.copytree(
                source_path,
                destination_path,
                symlinks=False,
                ignore=_ignore_unsupported,
                copy_function=_copy_file,
                dirs_exist_ok=True
            )
        except shutil.Error as e:
            # Per-entry failures, collected by copytree after finishing the walk
            for src, _dst, why in e.args[0]:
                error = PartialAccessError(str(why), code='ECOPY', path=src, syscall='copy')
                if strict:
                    raise error from e
                logger.warning(f"Skipping unreadable entry during copy: {error}")
                if skipped is not None:
                    skipped.append(error)
        except OSError as e:
            raise FilesystemError.from_os_error(e, syscall='copytree') from e

    except FilesystemError:
        if created:
            delete_tree(destination_path)
        raise


def delete_tree(path: str) -> bool:
    """
    Remove a directory tree. Tolerates the target being partly or fully gone.

    Args:
        path: Directory (or file) to remove

    Returns:
        True if something was removed, False if nothing was there

    Raises:
        FilesystemError: If an existing entry cannot be removed
    """
    if not os.path.lexists(path):
        return False

    try:
        if os.path.islink(path) or not os.path.isdir(path):
            os.remove(path)
            return True

        # Entries may disappear underneath rmtree; retry on whatever is left
        for _ in range(3):
            try:
                shutil.rmtree(path)
                break
            except FileNotFoundError:
                if not os.path.lexists(path):
                    break
    except FileNotFoundError:
        pass
    except OSError as e:
        raise FilesystemError.from_os_error(e, syscall='rmtree') from e

    return True


def create_snapshot(
    source_path: str,
    workspace: str,
    strict: bool = False
) -> SnapshotHandle:
    """
    Copy source_path into a fresh workspace.

    The workspace is emptied first; a leftover from an interrupted run must
    not leak into this snapshot.

    Args:
        source_path: Live directory to snapshot
        workspace: Temporary directory for the isolated copy
        strict: Abort on unreadable entries instead of skipping them

    Returns:
        SnapshotHandle for the isolated copy
    """
    if delete_tree(workspace):
        logger.info(f"Removed stale workspace: {workspace}")

    skipped: List[PartialAccessError] = []
    copy_tree(source_path, workspace, strict=strict, skipped=skipped)
    return SnapshotHandle(workspace, skipped)
