"""Testing configuration."""
from datetime import timedelta

class TestingConfig:
    """Testing configuration class."""

    # Basic Flask config
    DEBUG = False
    TESTING = True
    SECRET_KEY = 'test-secret-key'

    # Database (in-memory SQLite for testing)
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False

    # JWT Configuration
    JWT_SECRET_KEY = 'test-jwt-secret'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=15)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(hours=1)

    CORS_ORIGINS = ["*"]

    # Rate Limiting disabled for tests
    RATELIMIT_ENABLED = False
    RATELIMIT_STORAGE_URI = 'memory://'

    QR_ROTATION_MINUTES_DEFAULT = 3
    QR_ROTATION_MINUTES_MIN = 1
    QR_ROTATION_MINUTES_MAX = 30

    ANOMALY_WINDOW_SECONDS = 60
    ANOMALY_MAX_CHECKINS_PER_ORIGIN = 2

    LATE_THRESHOLD_MINUTES = 15

    LOG_LEVEL = 'DEBUG'
    LOG_DIR = 'logs'
