"""
Configuration Management
Environment-driven settings for the rent schedule engine and its API
"""

import os
from pathlib import Path

# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent


class Config:
    """Base configuration"""
    SECRET_KEY = os.environ.get('SECRET_KEY', 'fleet-leasing-secret-key-change-in-production')
    DATABASE_PATH = Path(os.environ.get('FLEET_DATABASE_PATH', BASE_DIR / 'fleet_leasing.db'))
    LOG_DIR = BASE_DIR / 'logs'

    # Flask settings
    FLASK_ENV = os.environ.get('FLASK_ENV', 'development')
    DEBUG = FLASK_ENV == 'development'
    TESTING = False

    # API settings
    API_HOST = os.environ.get('API_HOST', 'localhost')
    API_PORT = int(os.environ.get('API_PORT', 5001))

    # CORS settings
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')

    # Admin trigger; no token means the on-demand endpoint is closed
    ADMIN_TOKEN = os.environ.get('FLEET_ADMIN_TOKEN')

    # Data store
    DB_TIMEOUT = float(os.environ.get('FLEET_DB_TIMEOUT', 10))

    # Rent schedule engine
    DEFAULT_DAILY_LATE_FEE = int(os.environ.get('FLEET_DEFAULT_DAILY_LATE_FEE', 120))
    HISTORICAL_OVERDUE_DAYS = int(os.environ.get('FLEET_HISTORICAL_OVERDUE_DAYS', 30))
    ENGINE_WORKERS = int(os.environ.get('FLEET_ENGINE_WORKERS', 1))
    # Crash recovery: a lock not refreshed for this long is taken over; must outlast the slowest lease
    RUN_LOCK_TTL_SECONDS = int(os.environ.get('FLEET_RUN_LOCK_TTL', 3600))

    # Logging
    LOG_MAX_BYTES = 10 * 1024 * 1024  # 10MB
    LOG_BACKUP_COUNT = 5


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    DEBUG = False
    ADMIN_TOKEN = 'test-admin-token'


def config_as_dict(config_class) -> dict:
    """Upper-case attributes of a config class, the same keys Flask's from_object loads"""
    return {key: getattr(config_class, key) for key in dir(config_class) if key.isupper()}


# Get configuration based on environment
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
