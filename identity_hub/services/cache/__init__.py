from __future__ import annotations

import json
from typing import Any, Optional

from redis.exceptions import RedisError

from identity_hub.connections.redis import get_redis
from identity_hub.utils.config import settings
from identity_hub.utils.logging import get_logger


logger = get_logger(__name__)


def cache_set(key: str, value: Any, ttl_seconds: int | None = None) -> bool:
    """Store a JSON-serialisable value; no-op without redis."""
    client = get_redis()
    if client is None:
        return False
    ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.cache_ttl_seconds
    try:
        return bool(client.setex(name=key, time=ttl_seconds, value=json.dumps(value)))
    except RedisError as exc:
        logger.warning("cache_set_failed", key=key, error=str(exc))
        return False


def cache_get(key: str) -> Optional[Any]:
    client = get_redis()
    if client is None:
        return None
    try:
        raw = client.get(name=key)
    except RedisError as exc:
        logger.warning("cache_get_failed", key=key, error=str(exc))
        return None
    return json.loads(raw) if raw is not None else None


def cache_delete(*keys: str) -> int:
    client = get_redis()
    if client is None or not keys:
        return 0
    try:
        return int(client.delete(*keys))
    except RedisError as exc:
        logger.warning("cache_delete_failed", keys=list(keys), error=str(exc))
        return 0
