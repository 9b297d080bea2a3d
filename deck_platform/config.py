"""Application configuration objects."""

from __future__ import annotations

import os
from datetime import timedelta
from functools import lru_cache
from typing import Any, Type

from sqlalchemy.pool import NullPool


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


class BaseConfig:
    """Shared defaults across all environments."""

    APP_NAME = "Flashdeck"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite+pysqlite:///flashdeck_dev.db",
    )
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change_me")
    JWT_TOKEN_LOCATION = ("headers",)
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(
        seconds=int(os.getenv("JWT_ACCESS_TOKEN_EXPIRES_SEC", "43200"))
    )
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    RATE_LIMIT_DEFAULTS = [limit.strip() for limit in os.getenv("RATE_LIMIT_DEFAULTS", "200 per minute;1000 per day").split(";") if limit.strip()]
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    JSON_SORT_KEYS = False

    # Domain hooks (achievements / notifications live in another service).
    HOOKS_ENABLED = _env_flag("HOOKS_ENABLED", "true")
    HOOKS_WEBHOOK_URL = os.getenv("HOOKS_WEBHOOK_URL", "")
    HOOKS_WEBHOOK_SECRET = os.getenv("HOOKS_WEBHOOK_SECRET", "")
    HOOKS_TIMEOUT_SEC = int(os.getenv("HOOKS_TIMEOUT_SEC", "5"))
    HOOKS_MAX_RETRIES = int(os.getenv("HOOKS_MAX_RETRIES", "3"))
    HOOKS_RETRY_BACKOFF = float(os.getenv("HOOKS_RETRY_BACKOFF", "1.0"))
    HOOKS_ASYNC = _env_flag("HOOKS_ASYNC", "true")

    PUBLISH_MAX_CARDS = int(os.getenv("PUBLISH_MAX_CARDS", "1000"))
    COMMUNITY_PAGE_SIZE = int(os.getenv("COMMUNITY_PAGE_SIZE", "24"))
    DB_COMMIT_RETRIES = int(os.getenv("DB_COMMIT_RETRIES", "5"))
    DB_COMMIT_RETRY_DELAY = float(os.getenv("DB_COMMIT_RETRY_DELAY", "0.2"))

    ROOT_ADMIN_USERNAME = os.getenv("ROOT_ADMIN_USERNAME", "root")
    ROOT_ADMIN_PASSWORD = os.getenv("ROOT_ADMIN_PASSWORD", "RootPass123!")
    ROOT_ADMIN_EMAIL = os.getenv("ROOT_ADMIN_EMAIL", "root@example.com")
    SEED_USER_USERNAME = os.getenv("SEED_USER_USERNAME", "learner")
    SEED_USER_EMAIL = os.getenv("SEED_USER_EMAIL", "learner@example.com")
    SEED_USER_PASSWORD = os.getenv("SEED_USER_PASSWORD", "LearnerPass123!")

    SQLITE_TIMEOUT_SEC = int(os.getenv("SQLITE_TIMEOUT_SEC", "15"))
    SQLITE_BUSY_TIMEOUT_MS = int(os.getenv("SQLITE_BUSY_TIMEOUT_MS", "15000"))
    if SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
        SQLALCHEMY_ENGINE_OPTIONS = {
            "poolclass": NullPool,
            "connect_args": {"timeout": SQLITE_TIMEOUT_SEC, "check_same_thread": False},
        }
    else:
        SQLALCHEMY_ENGINE_OPTIONS = {
            "pool_pre_ping": True,
            "pool_size": int(os.getenv("DB_POOL_SIZE", "5")),
            "max_overflow": int(os.getenv("DB_MAX_OVERFLOW", "10")),
            "pool_timeout": int(os.getenv("DB_POOL_TIMEOUT", "30")),
        }


class DevConfig(BaseConfig):
    DEBUG = True


class ProdConfig(BaseConfig):
    DEBUG = False


class TestConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite+pysqlite:///:memory:"
    # Flask-SQLAlchemy swaps in StaticPool for in-memory SQLite.
    SQLALCHEMY_ENGINE_OPTIONS: dict = {}
    JWT_SECRET_KEY = "test-secret-key-with-enough-length-for-hs256"
    RATE_LIMIT_DEFAULTS: list[str] = []
    HOOKS_ASYNC = False
    HOOKS_WEBHOOK_URL = ""
    DB_COMMIT_RETRY_DELAY = 0.0


CONFIG_ALIASES: dict[str, Type[BaseConfig]] = {
    "dev": DevConfig,
    "development": DevConfig,
    "prod": ProdConfig,
    "production": ProdConfig,
    "test": TestConfig,
    "testing": TestConfig,
}


@lru_cache
def resolve_config(name_or_class: Any) -> Any:
    """Resolve config argument to the object expected by `app.config.from_object`."""

    if name_or_class is None:
        return DevConfig
    if isinstance(name_or_class, str):
        return CONFIG_ALIASES.get(name_or_class, name_or_class)
    return name_or_class
