"""
Service Assurance Tracker
Configuration classes for Flask App Factory.

Usage:
    config_name = os.getenv("APP_ENV", "development")
    app.config.from_object(config[config_name])
"""

import os
import secrets

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

# Local fallbacks when DATABASE_URL / TEST_DATABASE_URL are unset
_SQLITE_DEV = f"sqlite:///{os.path.join(basedir, 'instance', 'assurance_dev.db')}"
_SQLITE_TEST = "sqlite:///:memory:"

# Per-process key for development; production refuses to start without SECRET_KEY
_DEV_SECRET = secrets.token_hex(32)


def _database_url() -> str:
    # Heroku-style postgres:// URLs are rejected by SQLAlchemy 2.0
    raw = os.getenv("DATABASE_URL", "")
    return raw.replace("postgres://", "postgresql://", 1) if raw else ""


def _int_env(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


class Config:
    """Base configuration shared across all environments."""

    SECRET_KEY = os.getenv("SECRET_KEY", _DEV_SECRET)
    DEBUG = False
    TESTING = False

    # SQLAlchemy
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

    # Redis (rate limiter storage; memory:// when unset)
    REDIS_URL = os.getenv("REDIS_URL", "")
    RATELIMIT_ENABLED = os.getenv("RATELIMIT_ENABLED", "true").lower() == "true"

    # CORS
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Logging ("json" | "readable"; chosen by environment when unset)
    LOG_LEVEL = os.getenv("LOG_LEVEL", "")
    LOG_FORMAT = os.getenv("LOG_FORMAT", "")

    # Optional Basic auth on mutating endpoints
    ADMIN_USERNAME = os.getenv("ADMIN_USERNAME")
    ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")

    # Aggregation / insights
    TOTAL_SERVICE_STANDARDS = _int_env("TOTAL_SERVICE_STANDARDS", 14)
    INSIGHTS_STANDARD_THRESHOLD_DAYS = _int_env("INSIGHTS_STANDARD_THRESHOLD_DAYS", 14)
    INSIGHTS_WORSENING_DAYS = _int_env("INSIGHTS_WORSENING_DAYS", 14)
    INSIGHTS_HISTORY_DEPTH = _int_env("INSIGHTS_HISTORY_DEPTH", 5)


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url() or _SQLITE_DEV


class TestingConfig(Config):
    """Testing environment configuration."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", _SQLITE_TEST)
    SQLALCHEMY_ENGINE_OPTIONS = {}
    # Auth and rate limiting disabled in test environment
    ADMIN_USERNAME = None
    ADMIN_PASSWORD = None
    RATELIMIT_ENABLED = False
    REDIS_URL = ""


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG = False
    SQLALCHEMY_DATABASE_URI = _database_url() or None
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")  # Must be set explicitly in production

    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_size": _int_env("DB_POOL_SIZE", 5),
        "max_overflow": _int_env("DB_MAX_OVERFLOW", 10),
        "pool_recycle": _int_env("DB_POOL_RECYCLE", 300),
        "pool_timeout": _int_env("DB_POOL_TIMEOUT", 20),
    }

    def __init__(self):
        if not self.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError("DATABASE_URL environment variable is required in production")
        if not os.getenv("SECRET_KEY"):
            raise RuntimeError("SECRET_KEY environment variable must be set in production")


# APP_ENV name -> config class
config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
