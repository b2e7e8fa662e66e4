"""
APScheduler configuration for recurring backup cycles.

One cycle runs immediately when the scheduler starts. Each following cycle
is scheduled from the end of the previous one, so the gap between cycles is
always the full interval and two cycles never overlap.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger

from snapzip.backup.copier import delete_tree
from snapzip.backup.errors import report_error
from snapzip.backup.executor import CycleResult, CycleState, execute_backup_cycle
from snapzip.backup.progress import ProgressUpdate


logger = logging.getLogger(__name__)

CYCLE_JOB_ID = 'backup_cycle'


# Global scheduler instance and cycle configuration
scheduler = None
backup_settings = None
cycle_options = {}

# Read by the status routes
current_state = CycleState.IDLE
current_progress: Optional[ProgressUpdate] = None
last_result: Optional[CycleResult] = None
cycles_completed = 0


def init_scheduler(app, settings):
    """
    Initialize and configure APScheduler.

    Args:
        app: Flask app instance (provides TEMP_DIR, interval and timezone)
        settings: BackupSettings with the folders to back up
    """
    global scheduler, backup_settings, cycle_options

    if scheduler is not None:
        return scheduler

    backup_settings = settings
    cycle_options = {
        'workspace': app.config['TEMP_DIR'],
        'interval_seconds': app.config['BACKUP_INTERVAL_SECONDS'],
        'strict': app.config.get('STRICT_SCAN', False),
    }

    executors = {
        'default': ThreadPoolExecutor(max_workers=1)
    }

    job_defaults = {
        'coalesce': True,
        'max_instances': 1,
        # A cycle is never skipped for starting late
        'misfire_grace_time': None
    }

    scheduler = BackgroundScheduler(
        executors=executors,
        job_defaults=job_defaults,
        timezone=app.config.get('SCHEDULER_TIMEZONE', 'UTC')
    )

    return scheduler


def start_scheduler():
    """
    Start the APScheduler and fire the first cycle immediately.
    """
    global scheduler

    if scheduler is None:
        raise RuntimeError("Scheduler not initialized. Call init_scheduler() first.")

    if not scheduler.running:
        scheduler.start()
        logger.info(f"APScheduler started (interval={cycle_options['interval_seconds']}s)")
        schedule_next_cycle(0)
    else:
        logger.info("Scheduler already running")


def stop_scheduler():
    """
    Stop the APScheduler.

    Waits for an in-flight cycle to finish, then makes sure no isolated copy
    is left behind.
    """
    global scheduler

    if scheduler and scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("APScheduler stopped")

    workspace = cycle_options.get('workspace')
    if workspace:
        try:
            if delete_tree(workspace):
                logger.info(f"Removed temporary workspace on shutdown: {workspace}")
        except Exception as e:
            report_error(e, logger)


def schedule_next_cycle(delay_seconds: float):
    """
    Schedule the next backup cycle as a one-shot job.

    Args:
        delay_seconds: Delay from now before the cycle runs
    """
    global scheduler

    if scheduler is None:
        raise RuntimeError("Scheduler not initialized")

    run_date = datetime.now(timezone.utc) + timedelta(seconds=delay_seconds)
    scheduler.add_job(
        func=_execute_cycle_wrapper,
        trigger=DateTrigger(run_date=run_date),
        id=CYCLE_JOB_ID,
        name='Backup cycle',
        replace_existing=True
    )
    logger.info(f"Next backup cycle at {run_date.isoformat()}")


def _execute_cycle_wrapper():
    """
    Run one cycle and chain the next one.

    Failures are reported and never break the chain.
    """
    global scheduler, last_result, cycles_completed

    try:
        logger.info("Scheduler executing backup cycle")
        last_result = run_cycle()
        logger.info(f"Backup cycle completed with status: {last_result.status}")
    except Exception as e:
        report_error(e, logger)
    finally:
        cycles_completed += 1
        if scheduler is not None and scheduler.running:
            schedule_next_cycle(cycle_options['interval_seconds'])


def run_cycle() -> CycleResult:
    """Run one backup cycle with the configured settings, tracking its state."""
    global current_progress

    if backup_settings is None:
        raise RuntimeError("Scheduler not initialized")

    current_progress = None
    return execute_backup_cycle(
        backup_settings,
        cycle_options['workspace'],
        strict=cycle_options.get('strict', False),
        on_progress=_track_progress,
        on_state_change=_track_state
    )


def _track_progress(update: ProgressUpdate):
    global current_progress
    current_progress = update


def _track_state(state: CycleState):
    global current_state
    current_state = state


def is_scheduler_running() -> bool:
    return scheduler is not None and scheduler.running


def get_scheduler_diagnostics() -> dict:
    """
    Get scheduler state for the status endpoint.

    Returns:
        Dict with scheduler state, current cycle and last cycle result
    """
    next_run = None
    if scheduler is not None:
        job = scheduler.get_job(CYCLE_JOB_ID)
        if job is not None and job.next_run_time:
            next_run = job.next_run_time.isoformat()

    progress = None
    if current_progress is not None and current_state == CycleState.ARCHIVING:
        progress = {
            'processed_bytes': current_progress.processed_bytes,
            'total_bytes': current_progress.total_bytes,
            'percent': current_progress.percent,
        }

    return {
        'scheduler_running': is_scheduler_running(),
        'interval_seconds': cycle_options.get('interval_seconds'),
        'next_run': next_run,
        'state': current_state.value,
        'progress': progress,
        'cycles_completed': cycles_completed,
        'last_cycle': last_result.to_dict() if last_result else None,
    }
