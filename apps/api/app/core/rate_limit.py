"""Rate limiting for the dispatch API (slowapi)."""

import logging

from fastapi import Request
from slowapi import Limiter

from app.core.config import settings

logger = logging.getLogger(__name__)

WEBHOOK_LIMIT = f"{settings.RATE_LIMIT_WEBHOOK}/minute"


def client_ip(request: Request) -> str:
    """
    Caller address used as the rate limit key.

    Only trusts X-Forwarded-For when TRUST_PROXY_HEADERS=True (behind reverse proxy).
    """
    if settings.TRUST_PROXY_HEADERS:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            # X-Forwarded-For: client, proxy1, proxy2 - take first
            return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "127.0.0.1"


def webhook_rate_key(request: Request) -> str:
    """Bucket webhook deliveries per integration, then per sender address."""
    integration_id = request.path_params.get("integration_id", "")
    return f"webhook:{integration_id}:{client_ip(request)}"


def _storage_uri() -> str:
    # Tests and local runs never need Redis
    if settings.TESTING:
        return "memory://"
    try:
        import redis

        redis.from_url(settings.REDIS_URL, socket_connect_timeout=1).ping()
    except Exception as e:
        logger.warning(f"Redis unavailable for rate limiting, using in-memory: {e}")
        return "memory://"
    return settings.REDIS_URL


def build_limiter() -> Limiter:
    # Default limits apply to every route through SlowAPIMiddleware (see main.py)
    default_limits = (
        []
        if settings.TESTING or settings.RATE_LIMIT_API <= 0
        else [f"{settings.RATE_LIMIT_API}/minute"]
    )
    return Limiter(
        key_func=client_ip,
        storage_uri=_storage_uri(),
        default_limits=default_limits,
    )


limiter = build_limiter()
