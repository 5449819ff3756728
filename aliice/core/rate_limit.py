"""Rate limiting for the Aliice API.

Requests with a valid session are keyed by user; anonymous traffic (public
lead capture) is keyed by client IP.
"""

import logging

import jwt
import redis
from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from aliice.core.config import settings
from aliice.core.deps import _extract_token
from aliice.core.security import decode_session_token

logger = logging.getLogger(__name__)

DEFAULT_LIMITS = (
    []
    if settings.TESTING or settings.RATE_LIMIT_API <= 0
    else [f"{settings.RATE_LIMIT_API}/minute"]
)
AI_LIMIT = f"{settings.RATE_LIMIT_AI}/minute"
PUBLIC_LIMIT = f"{settings.RATE_LIMIT_PUBLIC}/minute"


def session_or_ip(request: Request) -> str:
    token = _extract_token(request)
    if token:
        try:
            return f"user:{decode_session_token(token)['sub']}"
        except (jwt.InvalidTokenError, KeyError):
            pass
    return f"ip:{get_remote_address(request)}"


def _storage_uri() -> str:
    """Redis when configured and reachable, otherwise per-process memory."""
    if settings.TESTING or not settings.REDIS_URL:
        return "memory://"
    try:
        redis.from_url(settings.REDIS_URL, socket_connect_timeout=1).ping()
    except redis.RedisError as e:
        logger.warning(f"Redis unavailable for rate limiting, using in-memory: {e}")
        return "memory://"
    return settings.REDIS_URL


limiter = Limiter(
    key_func=session_or_ip,
    storage_uri=_storage_uri(),
    default_limits=DEFAULT_LIMITS,
    enabled=not settings.TESTING,
)
