"""
Application configuration.

Values come from the process environment, optionally seeded from an env
file chosen by APP_ENV:
- development -> .env.dev
- production  -> .env.prod
falling back to .env, then .env.example.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


logger = logging.getLogger(__name__)


DEFAULT_MAX_CONCURRENT_JOBS = 5
DEFAULT_JOB_RETRY_ATTEMPTS = 3
DEFAULT_JOB_RETRY_DELAY_SECONDS = 1.0
DEFAULT_JOB_TIMEOUT_SECONDS = 30.0
DEFAULT_WATCHDOG_INTERVAL_SECONDS = 5.0
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3000

ENV_FILES = {
    "development": ".env.dev",
    "production": ".env.prod",
}


class ConfigError(ValueError):
    """Raised when a configuration value is missing or out of range."""
    pass


@dataclass(frozen=True)
class Settings:
    """Static configuration injected into the scheduler and the API."""

    app_env: str = "development"
    max_concurrent_jobs: int = DEFAULT_MAX_CONCURRENT_JOBS
    job_retry_attempts: int = DEFAULT_JOB_RETRY_ATTEMPTS
    job_retry_delay: float = DEFAULT_JOB_RETRY_DELAY_SECONDS
    job_timeout: float = DEFAULT_JOB_TIMEOUT_SECONDS
    watchdog_interval: float = DEFAULT_WATCHDOG_INTERVAL_SECONDS
    executable_path: Optional[str] = None
    log_level: str = "INFO"
    log_dir: str = "logs"
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    def validate(self) -> "Settings":
        """
        Check value ranges.

        Raises:
            ConfigError: If any value is out of range
        """
        if self.max_concurrent_jobs < 1:
            raise ConfigError(
                f"MAX_CONCURRENT_JOBS must be >= 1, got {self.max_concurrent_jobs}"
            )
        if self.job_retry_attempts < 0:
            raise ConfigError(
                f"JOB_RETRY_ATTEMPTS must be >= 0, got {self.job_retry_attempts}"
            )
        if self.job_retry_delay < 0:
            raise ConfigError(
                f"JOB_RETRY_DELAY_SECONDS must be >= 0, got {self.job_retry_delay}"
            )
        if self.job_timeout <= 0:
            raise ConfigError(
                f"JOB_TIMEOUT_SECONDS must be > 0, got {self.job_timeout}"
            )
        if self.watchdog_interval <= 0:
            raise ConfigError(
                f"WATCHDOG_INTERVAL_SECONDS must be > 0, got {self.watchdog_interval}"
            )
        return self


def load_env_file(app_env: str, base_dir: Optional[Path] = None) -> Optional[Path]:
    """
    Load the env file matching app_env into os.environ.

    Existing environment variables are not overridden.

    Returns:
        Path of the loaded file, or None if no file was found
    """
    base_dir = base_dir or Path.cwd()

    candidates = []
    if app_env in ENV_FILES:
        candidates.append(ENV_FILES[app_env])
    candidates.extend([".env", ".env.example"])

    for name in candidates:
        path = base_dir / name
        if path.exists():
            if name == ".env.example":
                logger.warning(
                    "Using example environment file. This should not be used in production!"
                )
            load_dotenv(path)
            return path

    logger.warning("No environment file found. Using default values.")
    return None


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None


def load_settings(base_dir: Optional[Path] = None, load_env: bool = True) -> Settings:
    """
    Build Settings from the environment.

    Args:
        base_dir: Directory searched for env files (default: cwd)
        load_env: Whether to read an env file first

    Returns:
        Validated Settings

    Raises:
        ConfigError: If a value cannot be parsed or is out of range
    """
    app_env = os.getenv("APP_ENV", "development").lower()

    if load_env:
        load_env_file(app_env, base_dir)

    default_level = "DEBUG" if app_env == "development" else "INFO"

    settings = Settings(
        app_env=app_env,
        max_concurrent_jobs=_get_int("MAX_CONCURRENT_JOBS", DEFAULT_MAX_CONCURRENT_JOBS),
        job_retry_attempts=_get_int("JOB_RETRY_ATTEMPTS", DEFAULT_JOB_RETRY_ATTEMPTS),
        job_retry_delay=_get_float("JOB_RETRY_DELAY_SECONDS", DEFAULT_JOB_RETRY_DELAY_SECONDS),
        job_timeout=_get_float("JOB_TIMEOUT_SECONDS", DEFAULT_JOB_TIMEOUT_SECONDS),
        watchdog_interval=_get_float(
            "WATCHDOG_INTERVAL_SECONDS", DEFAULT_WATCHDOG_INTERVAL_SECONDS
        ),
        executable_path=os.getenv("EXECUTABLE_PATH") or None,
        log_level=os.getenv("LOG_LEVEL", default_level).upper(),
        log_dir=os.getenv("LOG_DIR", "logs"),
        host=os.getenv("HOST", DEFAULT_HOST),
        port=_get_int("PORT", DEFAULT_PORT),
    )

    return settings.validate()
