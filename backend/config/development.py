"""Development configuration."""
import os
from datetime import timedelta

class DevelopmentConfig:
    """Development configuration class."""

    # Basic Flask config
    DEBUG = True
    TESTING = False
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')

    # Database
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///campus_attendance_dev.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', 'false').lower() == 'true'

    # JWT Configuration
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'jwt-secret-key-change-in-production')
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=24)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=30)

    # CORS
    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*').split(',')

    # Rate Limiting
    RATELIMIT_ENABLED = True
    RATELIMIT_STORAGE_URI = os.getenv('REDIS_URL', 'memory://')
    RATELIMIT_DEFAULT = "100/hour"

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
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'DEBUG')
    LOG_DIR = os.getenv('LOG_DIR', 'logs')
