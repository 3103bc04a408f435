from identity_hub.connections.mongo import mongo_lifespan
from identity_hub.connections.redis import redis_lifespan

__all__ = ["mongo_lifespan", "redis_lifespan"]
