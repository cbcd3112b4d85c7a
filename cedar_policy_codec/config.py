"""Load policy service connection settings from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_BASE_URL = "http://localhost:8280/v1"


@dataclass(frozen=True)
class ServiceConfig:
    base_url: str = DEFAULT_BASE_URL
    api_key: str = ""  # sent verbatim in the Authorization header
    timeout: float = 10.0
    # Transport failures only; HTTP error statuses are never retried.
    max_retries: int = 3
    retry_backoff: float = 1.0


def _getenv(name: str, default: str | None = None) -> str | None:
    """os.getenv wrapper that strips inline comments (e.g. '10  # secs' → '10')."""
    raw = os.getenv(name, default)
    if raw is None:
        return None
    return raw.split(" #")[0].strip()


def _getenv_number(name: str, default: str, kind: type) -> float | int:
    raw = _getenv(name, default)
    try:
        return kind(raw)
    except (TypeError, ValueError):
        raise EnvironmentError(
            f"Environment variable {name} must be a {kind.__name__}, got {raw!r}"
        ) from None


def load_config() -> ServiceConfig:
    """Build ServiceConfig from environment (and .env). Raises EnvironmentError on bad numbers."""
    load_dotenv()
    return ServiceConfig(
        base_url=(_getenv("CEDAR_API_BASE_URL") or DEFAULT_BASE_URL).rstrip("/"),
        api_key=_getenv("CEDAR_API_KEY", "") or "",
        timeout=float(_getenv_number("CEDAR_API_TIMEOUT", "10", float)),
        max_retries=int(_getenv_number("CEDAR_API_MAX_RETRIES", "3", int)),
        retry_backoff=float(_getenv_number("CEDAR_API_RETRY_BACKOFF", "1.0", float)),
    )
