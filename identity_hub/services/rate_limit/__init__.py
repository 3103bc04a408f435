from __future__ import annotations
from fastapi import Request
from redis.exceptions import RedisError

from identity_hub.connections.redis import get_redis
from identity_hub.utils.config import settings
from identity_hub.utils.errors import RateLimited
from identity_hub.utils.logging import get_logger


logger = get_logger(__name__)


def limit_requests(max_requests: int | None = None, window_seconds: int | None = None):
    """Return a FastAPI dependency enforcing a fixed-window limit per client IP and path.

    The first hit in a window creates the counter with a TTL; hits beyond
    `max_requests` are rejected until the key expires. Without redis the
    limit is not enforced.
    """
    limit = max_requests or settings.rate_limit_max_requests
    window = window_seconds or settings.rate_limit_window_seconds

    def _dependency(request: Request) -> None:
        client = get_redis()
        if client is None:
            return
        host = request.client.host if request.client else "anonymous"
        key = f"rl:{host}:{request.url.path}"

        try:
            count = client.incr(key)
            if count == 1:
                client.expire(key, window)
            ttl = client.ttl(key) if count > limit else None
        except RedisError as exc:
            logger.warning("rate_limit_unavailable", key=key, error=str(exc))
            return
        if ttl is not None:
            raise RateLimited(f"Too many requests. Try again in {ttl}s")

    return _dependency
