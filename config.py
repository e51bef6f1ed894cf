"""
Application configuration module.

Defines configuration classes for the development, testing and production
environments of the group task service. Values are loaded from environment
variables with development-safe defaults; only what differs per
environment is overridden in the subclasses.
"""

from __future__ import annotations

import os
from pathlib import Path

# Base directory of the project
BASE_DIR = Path(__file__).resolve().parent
KEYS_DIR = BASE_DIR / "keys"


def _load_key(raw_env_var: str, path_env_var: str, default_path: Path | None = None) -> str:
    """Load a PEM key from direct env content, a path env variable or a default file."""
    raw_key = os.environ.get(raw_env_var, "").strip()
    if raw_key:
        return raw_key

    key_path = os.environ.get(path_env_var, "").strip()
    if key_path:
        try:
            return Path(key_path).read_text(encoding="utf-8")
        except OSError as exc:
            raise RuntimeError(
                f"Unable to read JWT key file at '{key_path}' from {path_env_var}."
            ) from exc

    if default_path is not None and default_path.exists():
        return default_path.read_text(encoding="utf-8")

    raise RuntimeError(
        f"Missing JWT key configuration: set {raw_env_var} or {path_env_var}."
    )


def _has_key_source(raw_env_var: str, path_env_var: str) -> bool:
    """Return True when at least one key source variable is configured."""
    return bool(
        os.environ.get(raw_env_var, "").strip()
        or os.environ.get(path_env_var, "").strip()
    )


def load_public_key(*, testing: bool) -> str:
    """
    Resolve the JWT public key used to verify bearer tokens.

    Testing runs prefer ``TEST_JWT_PUBLIC_KEY[_PATH]`` so the suite can
    verify tokens it mints itself. Otherwise ``JWT_PUBLIC_KEY[_PATH]`` is
    used, falling back to the key written by ``keys/generate.py``.
    """
    if testing and _has_key_source("TEST_JWT_PUBLIC_KEY", "TEST_JWT_PUBLIC_KEY_PATH"):
        return _load_key("TEST_JWT_PUBLIC_KEY", "TEST_JWT_PUBLIC_KEY_PATH")
    return _load_key("JWT_PUBLIC_KEY", "JWT_PUBLIC_KEY_PATH", KEYS_DIR / "dev.public.pem")


class Config:
    """
    Base configuration with default settings.

    Attributes:
        SECRET_KEY: Flask session signing key.
        SQLALCHEMY_TRACK_MODIFICATIONS: Disabled to save memory.
        SQLALCHEMY_DATABASE_URI: Database connection string (default: local
            SQLite file).
        JWT_CLOCK_SKEW_SECONDS: Allowed clock drift when validating JWT
            ``exp`` / ``iat`` claims.
        DEFAULT_LANGUAGE: Locale used for users without a preference.
        TASK_SCOPE_MAX_RETRIES: Attempts made on a group task before a
            concurrent modification is reported as a conflict.
    """

    SECRET_KEY: str = os.environ.get("SECRET_KEY", "dev-secret-key-change-in-production")
    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False

    # Default database location
    SQLALCHEMY_DATABASE_URI: str = os.environ.get(
        "DATABASE_URL",
        f"sqlite:///{BASE_DIR / 'instance' / 'group_tasks.db'}"
    )

    JWT_CLOCK_SKEW_SECONDS: int = int(os.environ.get("JWT_CLOCK_SKEW_SECONDS", "30"))
    DEFAULT_LANGUAGE: str = os.environ.get("DEFAULT_LANGUAGE", "en")
    TASK_SCOPE_MAX_RETRIES: int = int(os.environ.get("TASK_SCOPE_MAX_RETRIES", "3"))


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG: bool = True
    TESTING: bool = False


class TestingConfig(Config):
    """Testing environment configuration."""

    DEBUG: bool = True
    TESTING: bool = True

    # In-memory database; Flask-SQLAlchemy shares one connection for it.
    SQLALCHEMY_DATABASE_URI: str = os.environ.get(
        "TEST_DATABASE_URL",
        "sqlite:///:memory:"
    )


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG: bool = False
    TESTING: bool = False


# Configuration mapping for easy access
config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}


def get_config(env: str | None = None) -> type[Config]:
    """
    Get the configuration class for the specified environment.

    Args:
        env: Environment name (development, testing, production).
             If None, uses FLASK_ENV environment variable.

    Returns:
        Configuration class for the specified environment.
    """
    if env is None:
        env = os.environ.get("FLASK_ENV", "development")
    return config.get(env, config["default"])
