"""
Recursive size accounting for a directory tree.

Only regular files are counted. Symbolic links and special files (FIFOs,
sockets, devices) are skipped and never followed. Entries that cannot be
read are recorded as PartialAccessError and the walk continues, unless
strict mode is requested.
"""

import logging
import os
from typing import List, Optional

from .errors import FilesystemError, PartialAccessError


logger = logging.getLogger(__name__)


def compute_tree_size(
    root_path: str,
    strict: bool = False,
    skipped: Optional[List[PartialAccessError]] = None
) -> int:
    """
    Compute the total byte size of all regular files under root_path.

    Args:
        root_path: Directory to scan
        strict: If True, the first unreadable entry aborts the scan
        skipped: Optional list collecting the entries that were skipped

    Returns:
        Total size in bytes

    Raises:
        FilesystemError: If root_path itself is missing or unreadable
        PartialAccessError: If strict and an entry cannot be read
    """
    total_size = 0
    pending = [root_path]

    def _skip(exc: OSError, path: str, syscall: str):
        error = PartialAccessError.from_os_error(exc, path=path, syscall=syscall)
        if strict:
            raise error from exc
        logger.warning(f"Skipping unreadable entry during scan: {error}")
        if skipped is not None:
            skipped.append(error)

    while pending:
        directory = pending.pop()
        try:
            entries = os.scandir(directory)
        except OSError as e:
            if directory == root_path:
                raise FilesystemError.from_os_error(e, path=root_path, syscall='scandir') from e
            _skip(e, directory, 'scandir')
            continue

        with entries:
            try:
                for entry in entries:
                    try:
                        if entry.is_dir(follow_symlinks=False):
                            pending.append(entry.path)
                        elif entry.is_file(follow_symlinks=False):
                            total_size += entry.stat(follow_symlinks=False).st_size
                    except OSError as e:
                        _skip(e, entry.path, 'stat')
            except OSError as e:
                # Reading the directory listing itself failed part-way
                _skip(e, directory, 'scandir')

    return total_size
