"""
Status routes - Scheduler and backup cycle monitoring endpoints.
"""

from flask import Blueprint, jsonify

from snapzip import scheduler as scheduler_module


bp = Blueprint('status', __name__, url_prefix='/api')


@bp.route('/status', methods=['GET'])
def get_status():
    """
    Get scheduler and current cycle status.

    Returns:
        JSON with:
        - scheduler_running: Whether cycles are being scheduled
        - next_run: When the next cycle starts
        - state: Current cycle state (idle/scanning/copying/archiving/cleaning/failed)
        - progress: Archive progress while archiving
        - last_cycle: Result of the last finished cycle
    """
    return jsonify(scheduler_module.get_scheduler_diagnostics())


@bp.route('/status/last-cycle/logs', methods=['GET'])
def get_last_cycle_logs():
    """
    Get the log lines of the last finished cycle.

    Returns:
        JSON with status and logs, 404 if no cycle has finished yet
    """
    result = scheduler_module.last_result
    if result is None:
        return jsonify({'error': 'No backup cycle has finished yet'}), 404

    return jsonify({
        'status': result.status,
        'logs': result.logs
    })
