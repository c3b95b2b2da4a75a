"""Rate limiting configuration for the forms API."""

import logging
import os

from slowapi import Limiter
from slowapi.util import get_remote_address

from formdesk.core.config import settings

# Redis keeps limits shared across workers; memory is used for dev/test
IS_TESTING = os.getenv("TESTING", "").lower() in ("1", "true", "yes")
DEFAULT_LIMITS = (
    []
    if IS_TESTING or settings.RATE_LIMIT_API <= 0
    else [f"{settings.RATE_LIMIT_API}/minute"]
)
SUBMISSION_LIMIT = f"{settings.RATE_LIMIT_SUBMISSIONS}/minute"


def _build_limiter() -> Limiter:
    if IS_TESTING or not settings.REDIS_URL:
        return Limiter(
            key_func=get_remote_address,
            storage_uri="memory://",
            default_limits=DEFAULT_LIMITS,
            enabled=not IS_TESTING,
        )

    try:
        import redis

        # Test connection upfront
        r = redis.from_url(settings.REDIS_URL, socket_connect_timeout=1)
        r.ping()
        return Limiter(
            key_func=get_remote_address,
            storage_uri=settings.REDIS_URL,
            default_limits=DEFAULT_LIMITS,
        )
    except Exception as e:
        logging.warning(f"Redis unavailable for rate limiting, using in-memory: {e}")
        return Limiter(
            key_func=get_remote_address,
            storage_uri="memory://",
            default_limits=DEFAULT_LIMITS,
        )


limiter = _build_limiter()
