"""Environment-backed settings.

Values are read at call time rather than import time so tests and workers
can change them with plain environment variables.
"""
import os
import logging

logger = logging.getLogger(__name__)


def _env_bool(var: str, default: bool = False) -> bool:
    """Return True for common truthy env values ('1', 'true', 'yes')."""
    val = os.getenv(var)
    if val is None:
        return default
    return val.strip().lower() in ("1", "true", "yes")


def _env_int(var: str, default: int) -> int:
    val = os.getenv(var)
    if val is None or not val.strip():
        return default
    try:
        return int(val)
    except ValueError:
        logger.warning("ignoring non-integer %s=%r; using %s", var, val, default)
        return default


def _env_float(var: str, default: float) -> float:
    val = os.getenv(var)
    if val is None or not val.strip():
        return default
    try:
        return float(val)
    except ValueError:
        logger.warning("ignoring non-numeric %s=%r; using %s", var, val, default)
        return default


def database_url() -> str:
    return os.getenv("DATABASE_URL", "sqlite:///./flowengine.db")


def redis_url():
    return os.getenv("REDIS_URL")


def celery_broker_url():
    return os.getenv("CELERY_BROKER_URL") or os.getenv("BROKER_URL")


def secret_key() -> str:
    return os.getenv("SECRETS_KEY") or os.getenv("SECRET_KEY") or "default-secret-key"


def max_retries() -> int:
    """Retries after the first attempt, so a run gets max_retries + 1 attempts."""
    return max(0, _env_int("WORKFLOW_MAX_RETRIES", 3))


def retry_backoff() -> float:
    return max(0.0, _env_float("WORKFLOW_RETRY_BACKOFF", 1.0))


def http_request_timeout() -> float:
    return _env_float("HTTP_REQUEST_TIMEOUT", 30.0)


def llm_request_timeout() -> float:
    return _env_float("LLM_REQUEST_TIMEOUT", 60.0)
