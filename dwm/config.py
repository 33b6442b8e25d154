"""
DWM Platform
Configuration classes for Flask App Factory.

Usage:
    config_name = os.getenv("APP_ENV", "development")
    app.config.from_object(config[config_name]())

All environments run on an in-memory SQLite database: state lives for the
lifetime of the process only.
"""

import os
import secrets

_SQLITE_MEMORY = "sqlite://"

# Generate a random key for development; production MUST use a stable env var
_DEV_SECRET = secrets.token_hex(32)


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Base configuration shared across all environments."""

    SECRET_KEY = os.getenv("SECRET_KEY", _DEV_SECRET)
    DEBUG = False
    TESTING = False

    # SQLAlchemy (Flask-SQLAlchemy pins in-memory SQLite to one connection)
    SQLALCHEMY_DATABASE_URI = _SQLITE_MEMORY
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # CORS
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Request body cap
    MAX_CONTENT_LENGTH = 2 * 1024 * 1024  # 2 MB

    # Logging (readable | json; empty picks by environment)
    LOG_LEVEL = os.getenv("LOG_LEVEL", "")
    LOG_FORMAT = os.getenv("LOG_FORMAT", "")
    SLOW_REQUEST_MS = int(os.getenv("SLOW_REQUEST_MS", "1000"))

    # Rate limiting (Flask-Limiter reads RATELIMIT_*)
    RATELIMIT_ENABLED = _env_flag("RATELIMIT_ENABLED", True)
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    AI_RATE_LIMIT = os.getenv("AI_RATE_LIMIT", "10/minute")
    API_RATE_LIMIT = os.getenv("API_RATE_LIMIT", "120/minute")

    # Domain switches
    SEED_DEMO_DATA = _env_flag("SEED_DEMO_DATA", False)
    SOP_ALLOW_STATUS_OVERRIDE = _env_flag("SOP_ALLOW_STATUS_OVERRIDE", False)

    # LLM providers (LLMGateway falls back to the local stub without keys)
    LLM_DEFAULT_CHAT_MODEL = os.getenv("LLM_DEFAULT_CHAT_MODEL", "gemini-2.5-flash")
    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
    ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    SEED_DEMO_DATA = _env_flag("SEED_DEMO_DATA", True)


class TestingConfig(Config):
    """Testing environment configuration."""

    TESTING = True
    SEED_DEMO_DATA = False
    SOP_ALLOW_STATUS_OVERRIDE = False
    RATELIMIT_ENABLED = False
    # Tests never reach a real provider
    GEMINI_API_KEY = ""
    ANTHROPIC_API_KEY = ""
    OPENAI_API_KEY = ""


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG = False
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")  # Must be set explicitly in production

    def __init__(self):
        if not os.getenv("SECRET_KEY"):
            raise RuntimeError("SECRET_KEY environment variable must be set in production")


# Configuration mapping: environment name -> config class
config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
