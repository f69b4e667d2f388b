"""Production configuration."""
import os
from datetime import timedelta

class ProductionConfig:
    """Production configuration class."""

    # Basic Flask config
    DEBUG = False
    TESTING = False
    SECRET_KEY = os.getenv('SECRET_KEY')  # Must be set in production

    # Database
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False
    SQLALCHEMY_ENGINE_OPTIONS = {'pool_pre_ping': True}

    # JWT Configuration
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY')
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=1)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=7)

    # CORS
    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '').split(',')

    # Rate Limiting (shared across workers through Redis)
    RATELIMIT_ENABLED = True
    RATELIMIT_STORAGE_URI = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
    RATELIMIT_DEFAULT = "50/hour"

    # QR rotation
    QR_ROTATION_MINUTES_DEFAULT = int(os.getenv('QR_ROTATION_MINUTES_DEFAULT', 3))
    QR_ROTATION_MINUTES_MIN = 1
    QR_ROTATION_MINUTES_MAX = 30

    # Anomaly detection
    ANOMALY_WINDOW_SECONDS = int(os.getenv('ANOMALY_WINDOW_SECONDS', 60))
    ANOMALY_MAX_CHECKINS_PER_ORIGIN = int(os.getenv('ANOMALY_MAX_CHECKINS_PER_ORIGIN', 2))

    # Reporting
    LATE_THRESHOLD_MINUTES = 15

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_DIR = os.getenv('LOG_DIR', '/app/logs')
