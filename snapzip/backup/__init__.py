"""
Backup module for snapzip.

This module handles one backup cycle:
- Size accounting of the source tree
- Isolated copy of the source
- Streaming ZIP compression with progress
- Execution orchestration and cleanup
- Error classification and reporting
"""

from .executor import BackupExecutor, BackupJob, CycleResult, CycleState
from .scanner import compute_tree_size
from .copier import copy_tree, delete_tree, create_snapshot, SnapshotHandle
from .compression import build_archive
from .progress import ProgressTracker, ProgressUpdate
from .errors import report_error

__all__ = [
    'BackupExecutor',
    'BackupJob',
    'CycleResult',
    'CycleState',
    'compute_tree_size',
    'copy_tree',
    'delete_tree',
    'create_snapshot',
    'SnapshotHandle',
    'build_archive',
    'ProgressTracker',
    'ProgressUpdate',
    'report_error'
]
