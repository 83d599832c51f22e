"""
Fleet Leasing Back Office - rent schedule service
Flask application exposing the engine trigger and schedule/late-fee reads
"""

from flask import Flask
from flask_cors import CORS
import os
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

# Import configuration
from fleet_leasing.config import Config, config

# Import blueprints
from fleet_leasing.api import api_bp

# Import database
from fleet_leasing import database


def setup_logging(log_dir: Path):
    """Setup application logging"""
    log_dir.mkdir(parents=True, exist_ok=True)

    log_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    root_logger = logging.getLogger()
    log_file = log_dir / 'fleet_leasing.log'

    # Replace handlers from an earlier call (tests, reloader, CLI after app)
    for handler in list(root_logger.handlers):
        if getattr(handler, '_fleet_leasing', False):
            root_logger.removeHandler(handler)
            handler.close()

    # File handler with rotation
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=Config.LOG_MAX_BYTES,
        backupCount=Config.LOG_BACKUP_COUNT
    )
    file_handler.setFormatter(log_formatter)
    file_handler.setLevel(logging.DEBUG)

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(log_formatter)
    console_handler.setLevel(logging.INFO)

    # Configure root logger
    root_logger.setLevel(logging.DEBUG)
    for handler in (file_handler, console_handler):
        handler._fleet_leasing = True
        root_logger.addHandler(handler)

    return root_logger


def create_app(config_name=None, overrides=None):
    """Application factory pattern"""
    app = Flask(__name__)

    # Load configuration
    config_name = config_name or os.environ.get('FLASK_ENV', 'default')
    app.config.from_object(config.get(config_name, config['default']))
    if overrides:
        app.config.update(overrides)

    # Setup logging
    logger = setup_logging(Path(app.config['LOG_DIR']))
    logger.info("🚀 Initializing Fleet Leasing rent schedule service...")

    # Initialize CORS
    cors_origins = app.config.get('CORS_ORIGINS', ['*'])
    if isinstance(cors_origins, str):
        cors_origins = cors_origins.split(',')

    CORS(app,
         resources={r"/api/*": {"origins": cors_origins, "methods": ["GET", "POST", "OPTIONS"], "allow_headers": ["Content-Type", "X-Admin-Token"]}},
         supports_credentials=True)

    # Initialize database
    database.DATABASE_PATH = str(app.config['DATABASE_PATH'])
    database.init_database()
    logger.info("✅ Database initialized")

    # Register blueprints
    app.register_blueprint(api_bp)
    logger.info("✅ Blueprints registered")

    @app.route('/health')
    def health():
        return {'status': 'ok'}

    logger.info("✅ Application created successfully")
    return app


if __name__ == '__main__':
    app = create_app()
    logger = logging.getLogger(__name__)

    logger.info("══════════════════════════════════════════════════════════════")
    logger.info("   🚗 Fleet Leasing Rent Schedule Service - Starting Server")
    logger.info("══════════════════════════════════════════════════════════════")
    logger.info(f"📍 API Endpoint: http://localhost:{Config.API_PORT}/api/")
    logger.info("   - /api/rent-schedules/process - Run the engine (admin)")
    logger.info("   - /api/agreements/<id>/payment-schedules - Schedules")
    logger.info("   - /api/agreements/<id>/late-fees - Late fees")
    logger.info("   - /api/payments/missing - Consistency check")
    logger.info(f"📝 Logs: {Config.LOG_DIR}/fleet_leasing.log")
    logger.info("══════════════════════════════════════════════════════════════")

    app.run(
        debug=Config.DEBUG,
        host=Config.API_HOST,
        port=Config.API_PORT
    )
