"""
Command line entry point.

Recurring mode (default) starts the status server with the backup scheduler
running in the background. Single-shot mode (--once) runs one cycle and exits.

Exit codes: 0 on normal operation, 1 on configuration errors (including a
freshly written placeholder config) and on a failed single-shot cycle.
"""

import argparse
import logging
import os

from snapzip import configure_logging, create_app
from snapzip.backup.errors import ConfigurationError, report_error
from snapzip.backup.executor import execute_backup_cycle
from snapzip.config import config, load_backup_settings


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='snapzip',
        description='Periodically archive a live directory tree into timestamped ZIP files.'
    )
    parser.add_argument(
        '--config',
        help='Path to the JSON settings file with folderName and zipFolder'
    )
    parser.add_argument(
        '--once',
        action='store_true',
        help='Run a single backup cycle and exit'
    )
    parser.add_argument(
        '--env',
        choices=sorted(name for name in config if name != 'default'),
        default=os.environ.get('FLASK_ENV', 'production'),
        help='Configuration profile (default: $FLASK_ENV or production)'
    )
    parser.add_argument('--host', default='127.0.0.1', help='Status server host')
    parser.add_argument(
        '--port',
        type=int,
        default=int(os.environ.get('PORT', 5000)),
        help='Status server port'
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    config_class = config[args.env]

    configure_logging(config_class.LOG_DIR, getattr(config_class, 'DEBUG', False))

    config_path = args.config or config_class.BACKUP_CONFIG_FILE
    try:
        settings = load_backup_settings(config_path)
    except ConfigurationError as e:
        report_error(e, logger)
        return 1

    logger.info(f"Source folder: {settings.folder_name}")
    logger.info(f"Archive folder: {settings.zip_folder}")

    if args.once:
        result = execute_backup_cycle(
            settings,
            config_class.TEMP_DIR,
            strict=config_class.STRICT_SCAN
        )
        return 0 if result.succeeded else 1

    app = create_app(args.env, settings=settings)
    app.run(host=args.host, port=args.port, debug=False, use_reloader=False)
    return 0
