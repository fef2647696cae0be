import json
import logging
from typing import Any, Optional

import redis

from .config import settings

logger = logging.getLogger(__name__)

PRODUCTS_PREFIX = "products:"

client = redis.Redis.from_url(
    settings.REDIS_URL,
    decode_responses=True,
    socket_connect_timeout=1,
    socket_timeout=1,
)


def get_json(key: str) -> Optional[Any]:
    try:
        cached = client.get(key)
    except redis.RedisError as e:
        logger.warning("Cache read failed for %s: %s", key, e)
        return None
    return json.loads(cached) if cached else None


def set_json(key: str, value: Any, ttl: int = None):
    try:
        client.set(key, json.dumps(value), ex=ttl or settings.PRODUCT_CACHE_TTL)
    except redis.RedisError as e:
        logger.warning("Cache write failed for %s: %s", key, e)


def invalidate(prefix: str = PRODUCTS_PREFIX):
    try:
        keys = list(client.scan_iter(match=f"{prefix}*"))
        if keys:
            client.delete(*keys)
    except redis.RedisError as e:
        logger.warning("Cache invalidation failed for %s*: %s", prefix, e)


def invalidate_products():
    invalidate(PRODUCTS_PREFIX)
