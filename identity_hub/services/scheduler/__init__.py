from __future__ import annotations

from datetime import datetime, timezone

from redis import Redis
from rq_scheduler import Scheduler

from identity_hub.services.token import purge_expired_tokens
from identity_hub.utils.config import settings
from identity_hub.utils.logging import get_logger


logger = get_logger(__name__)

PURGE_JOB_ID = "purge-expired-tokens"


def _redis_conn() -> Redis:
    # rq pickles job payloads, so this connection must not decode responses
    return Redis(
        db=settings.redis_db,
        port=settings.redis_port,
        host=settings.redis_host,
        password=settings.redis_password,
    )


def get_scheduler(connection: Redis | None = None) -> Scheduler:
    return Scheduler(queue_name="maintenance", connection=connection or _redis_conn())


def schedule_token_purge(scheduler: Scheduler | None = None) -> None:
    """Register the periodic expired-token sweep once; re-registration replaces it."""
    sched = scheduler or get_scheduler()
    if PURGE_JOB_ID in sched:
        sched.cancel(PURGE_JOB_ID)
    sched.schedule(
        scheduled_time=datetime.now(timezone.utc),
        func=purge_expired_tokens,
        interval=settings.token_purge_interval_seconds,
        repeat=None,
        id=PURGE_JOB_ID,
    )
    logger.info("token_purge_scheduled", interval_seconds=settings.token_purge_interval_seconds)
