import redis
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from fastapi import FastAPI

from identity_hub.utils.config import settings
from identity_hub.utils.logging import get_logger


logger = get_logger(__name__)


_redis_client: Optional[redis.Redis] = None


def get_redis() -> Optional[redis.Redis]:
    """Return the shared client, or None when redis is not configured.

    Callers treat None as "cache and rate limiting disabled".
    """
    return _redis_client


def init_redis() -> None:
    global _redis_client
    if not settings.redis_enabled:
        return
    _redis_client = redis.Redis(
        db=settings.redis_db,
        port=settings.redis_port,
        host=settings.redis_host,
        password=settings.redis_password,
        decode_responses=True,
        socket_timeout=2.0,
    )
    logger.info("redis_configured", host=settings.redis_host, db=settings.redis_db)


def close_redis() -> None:
    global _redis_client
    if _redis_client is not None:
        try:
            _redis_client.close()
        finally:
            _redis_client = None


@asynccontextmanager
async def redis_lifespan(app: FastAPI) -> AsyncIterator[None]:
    init_redis()
    try:
        yield
    finally:
        close_redis()
