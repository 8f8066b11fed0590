"""Configuration helpers for environment variables."""

from __future__ import annotations

import os
import logging

from dotenv import load_dotenv


logger = logging.getLogger(__name__)


DEFAULT_API_URL = "http://localhost:5000"
DEFAULT_PAGE_LIMIT = 10
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_SCHOOL_ID = "65b0e6293e9f76a9694d84b4"
DEFAULT_CALLBACK_URL = "https://google.com"


def _should_load_dotenv() -> bool:
    """Return whether local dotenv loading should run."""
    app_env = os.getenv("APP_ENV", "dev").strip().lower()
    return app_env in {"dev", "local"}


if _should_load_dotenv():
    load_dotenv()


def get_env(name: str, default: str | None = None) -> str | None:
    """Return a raw environment value or default."""
    return os.getenv(name, default)


def api_base_url() -> str:
    """Return the collaborator API base URL without trailing slash."""
    raw_value = (get_env("COLLECT_API_URL", "") or "").strip()
    return (raw_value or DEFAULT_API_URL).rstrip("/")


def page_limit() -> int:
    """Return the fixed page size used by listing views."""
    raw_value = (get_env("DASHBOARD_PAGE_LIMIT", "") or "").strip()
    if not raw_value:
        return DEFAULT_PAGE_LIMIT

    try:
        value = int(raw_value)
    except ValueError:
        value = 0

    if value <= 0:
        logger.warning("page_limit_invalid value=%s; using default=%s", raw_value, DEFAULT_PAGE_LIMIT)
        return DEFAULT_PAGE_LIMIT
    return value


def request_timeout_seconds() -> float:
    """Return the HTTP timeout handed to the transport."""
    raw_value = (get_env("COLLECT_API_TIMEOUT", "") or "").strip()
    if not raw_value:
        return DEFAULT_TIMEOUT_SECONDS
    try:
        value = float(raw_value)
    except ValueError:
        logger.warning("request_timeout_invalid value=%s", raw_value)
        return DEFAULT_TIMEOUT_SECONDS
    return value if value > 0 else DEFAULT_TIMEOUT_SECONDS


def session_storage_path() -> str | None:
    """Return the session file path, or None for in-memory persistence."""
    raw_value = (get_env("SESSION_STORAGE_PATH", "") or "").strip()
    return raw_value or None


def default_school_id() -> str:
    """Return the school id pre-filled in the payment form."""
    return (get_env("DEFAULT_SCHOOL_ID", "") or "").strip() or DEFAULT_SCHOOL_ID


def default_callback_url() -> str:
    """Return the callback URL pre-filled in the payment form."""
    return (get_env("DEFAULT_CALLBACK_URL", "") or "").strip() or DEFAULT_CALLBACK_URL


def log_level() -> str:
    """Return configured log level name."""
    return ((get_env("LOG_LEVEL", "INFO") or "INFO").strip() or "INFO").upper()
