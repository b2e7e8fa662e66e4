import os
import logging
from logging.handlers import RotatingFileHandler
from flask import Flask


def configure_logging(log_dir, debug=False, app=None):
    """Configure application logging"""

    # Create logs directory if it doesn't exist
    os.makedirs(log_dir, exist_ok=True)

    # Set log level based on environment
    log_level = logging.DEBUG if debug else logging.INFO

    if app is not None:
        app.logger.setLevel(log_level)

    # basicConfig would ignore new handlers once the root logger has any
    if logging.getLogger().handlers:
        return

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s in %(module)s: %(message)s'
    )
    console_handler.setFormatter(console_formatter)

    # File handler
    file_handler = RotatingFileHandler(
        os.path.join(log_dir, 'snapzip.log'),
        maxBytes=10485760,  # 10MB
        backupCount=10
    )
    file_handler.setLevel(log_level)
    file_formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s [%(name)s.%(funcName)s:%(lineno)d] %(message)s'
    )
    file_handler.setFormatter(file_formatter)

    # Configure root logger
    logging.basicConfig(level=log_level, handlers=[console_handler, file_handler])

    # APScheduler logs every job submission at INFO
    logging.getLogger('apscheduler').setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging configured (level: {logging.getLevelName(log_level)})")


def create_app(config_name=None, settings=None):
    """
    Flask application factory.

    Args:
        config_name: Key into snapzip.config.config
        settings: BackupSettings; when given (and the scheduler is enabled)
            the recurring backup scheduler is started in this process
    """
    app = Flask(__name__)

    # Load configuration
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'production')

    from snapzip.config import config
    app.config.from_object(config[config_name])

    # Configure logging
    configure_logging(app.config['LOG_DIR'], app.config.get('DEBUG', False), app)

    # Register blueprints
    from snapzip.routes import status_routes
    app.register_blueprint(status_routes.bp)

    # Health check endpoint
    @app.route('/health')
    def health():
        return {'status': 'healthy'}, 200

    if settings is not None and app.config.get('SCHEDULER_ENABLED', True):
        from snapzip.scheduler import init_scheduler, start_scheduler, stop_scheduler
        import atexit

        app.logger.info("Initializing scheduler in this process...")
        init_scheduler(app, settings)
        start_scheduler()

        # Stop the scheduler (and drop the isolated copy) on shutdown
        atexit.register(stop_scheduler)
        app.logger.info("Scheduler initialized and started successfully")
    else:
        app.logger.info("Scheduler initialization skipped in this process")

    return app
