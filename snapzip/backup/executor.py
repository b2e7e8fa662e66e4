"""
Backup executor - orchestrates one backup cycle.

Workflow:
1. Measure the source tree (SCANNING)
2. Copy it into the isolated workspace (COPYING)
3. Stream the copy into a ZIP archive (ARCHIVING)
4. Remove the isolated copy (CLEANING)

Any failure moves the cycle to FAILED, which still removes the isolated copy
and reports the error. Either way the executor ends in IDLE.
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

from snapzip.utils.sizes import format_size
from .compression import build_archive, generate_archive_filename
from .copier import SnapshotHandle, create_snapshot
from .errors import BackupError, report_error
from .progress import ProgressTracker, ProgressUpdate
from .scanner import compute_tree_size


logger = logging.getLogger(__name__)


class CycleState(str, Enum):
    IDLE = 'idle'
    SCANNING = 'scanning'
    COPYING = 'copying'
    ARCHIVING = 'archiving'
    CLEANING = 'cleaning'
    FAILED = 'failed'


@dataclass(frozen=True)
class BackupJob:
    """Inputs of one cycle, fixed at cycle start."""
    source_path: str
    destination_directory: str
    timestamp: datetime

    @property
    def archive_filename(self) -> str:
        return generate_archive_filename(self.source_path, self.timestamp)

    @property
    def archive_path(self) -> str:
        return os.path.join(self.destination_directory, self.archive_filename)


@dataclass
class CycleResult:
    """Outcome of one cycle."""
    status: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    archive_path: Optional[str] = None
    source_bytes: Optional[int] = None
    archive_bytes: Optional[int] = None
    skipped_entries: int = 0
    error: Optional[BackupError] = None
    logs: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status == 'success'

    def to_dict(self) -> dict:
        return {
            'status': self.status,
            'started_at': self.started_at.isoformat(),
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'archive_path': self.archive_path,
            'source_bytes': self.source_bytes,
            'archive_bytes': self.archive_bytes,
            'skipped_entries': self.skipped_entries,
            'error': self.error.to_dict() if self.error else None,
        }


class BackupExecutor:
    """
    Runs the scan -> copy -> archive -> cleanup state machine for one job.
    """

    def __init__(
        self,
        job: BackupJob,
        workspace: str,
        strict: bool = False,
        on_progress: Optional[Callable[[ProgressUpdate], None]] = None,
        on_state_change: Optional[Callable[[CycleState], None]] = None
    ):
        """
        Initialize backup executor.

        Args:
            job: BackupJob to execute
            workspace: Temporary directory for the isolated copy
            strict: Fail the cycle on unreadable entries instead of skipping them
            on_progress: Receives throttled archive progress updates
            on_state_change: Receives every state transition
        """
        self.job = job
        self.workspace = workspace
        self.strict = strict
        self.on_progress = on_progress
        self.on_state_change = on_state_change

        self.state = CycleState.IDLE
        self.snapshot: Optional[SnapshotHandle] = None
        self.tracker: Optional[ProgressTracker] = None
        self.result: Optional[CycleResult] = None
        self._cleanup_error: Optional[Exception] = None

    def execute(self) -> CycleResult:
        """
        Execute the cycle. Errors are reported, not raised; an interrupt
        still removes the isolated copy before it propagates.

        Returns:
            CycleResult with execution results
        """
        self.result = CycleResult(status='running', started_at=datetime.now())
        self._log(f"Starting backup of {self.job.source_path}")

        try:
            self._execute_workflow()

            self.result.status = 'success'
            self._log("Backup completed successfully")

        except Exception as e:
            self._set_state(CycleState.FAILED)
            self.result.status = 'failed'
            self.result.error = report_error(e, logger)
            self._log(f"Backup failed: {self.result.error}")

        finally:
            # Also reached by KeyboardInterrupt and SystemExit
            if self.result.status != 'success':
                if self.result.status == 'running':
                    self.result.status = 'interrupted'
                self._cleanup()
            self.result.completed_at = datetime.now()
            self._set_state(CycleState.IDLE)

        return self.result

    def _execute_workflow(self):
        """Execute the main backup workflow steps."""
        skipped = []

        # Step 1: Measure the source
        self._set_state(CycleState.SCANNING)
        self._log(f"Scanning source folder: {self.job.source_path}")
        total_bytes = compute_tree_size(self.job.source_path, strict=self.strict, skipped=skipped)
        self.result.source_bytes = total_bytes
        self._log(f"Source size: {format_size(total_bytes)}")

        # Step 2: Isolate a copy
        self._set_state(CycleState.COPYING)
        self._log(f"Copying source to workspace: {self.workspace}")
        self.snapshot = create_snapshot(self.job.source_path, self.workspace, strict=self.strict)
        skipped.extend(self.snapshot.skipped)
        self.result.skipped_entries = len(skipped)
        self._log("Copy finished")
        if skipped:
            self._log(f"Skipped {len(skipped)} unreadable entries")

        # Step 3: Archive the copy, then always clean it up
        self._set_state(CycleState.ARCHIVING)
        archive_path = self.job.archive_path
        self._log(f"Zipping folder into: {archive_path}")
        self.tracker = ProgressTracker(total_bytes, on_update=self._report_progress)
        try:
            archive_bytes = build_archive(self.workspace, archive_path, on_progress=self.tracker.advance)
        finally:
            self._set_state(CycleState.CLEANING)
            self._cleanup()

        # A leftover isolated copy fails the cycle even if the archive is fine
        if self._cleanup_error is not None:
            raise self._cleanup_error

        self.tracker.finish()
        self.result.archive_path = archive_path
        self.result.archive_bytes = archive_bytes
        self._log(f"Successfully zipped: {format_size(total_bytes)} -> {format_size(archive_bytes)}")

    def _report_progress(self, update: ProgressUpdate):
        logger.info(f"Zipping {update.percent}%")
        if self.on_progress:
            self.on_progress(update)

    def _cleanup(self):
        """Remove the isolated copy. Records the error instead of raising."""
        if self.snapshot is not None and self.snapshot.released:
            return

        self._cleanup_error = None
        try:
            if self.snapshot is None:
                # Copy may have failed half-way before a handle existed
                self.snapshot = SnapshotHandle(self.workspace)
            if self.snapshot.release():
                self._log("Cleaned up temporary workspace")
        except Exception as e:
            self._cleanup_error = e
            self._log(f"Warning: Failed to cleanup temporary workspace: {e}")

    def _set_state(self, state: CycleState):
        self.state = state
        if self.on_state_change:
            self.on_state_change(state)

    def _log(self, message: str):
        """
        Add a log message with timestamp to the cycle result.

        Args:
            message: Log message
        """
        timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
        if self.result is not None:
            self.result.logs.append(f"[{timestamp}] {message}")
        logger.info(message)


def execute_backup_cycle(
    settings,
    workspace: str,
    strict: bool = False,
    on_progress: Optional[Callable[[ProgressUpdate], None]] = None,
    on_state_change: Optional[Callable[[CycleState], None]] = None
) -> CycleResult:
    """
    Run one backup cycle for the configured folders.

    Args:
        settings: BackupSettings with folder_name and zip_folder
        workspace: Temporary directory for the isolated copy
        strict: Fail on unreadable entries instead of skipping them

    Returns:
        CycleResult
    """
    job = BackupJob(
        source_path=settings.folder_name,
        destination_directory=settings.zip_folder,
        timestamp=datetime.now()
    )
    executor = BackupExecutor(
        job,
        workspace,
        strict=strict,
        on_progress=on_progress,
        on_state_change=on_state_change
    )
    return executor.execute()
