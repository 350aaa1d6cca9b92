"""Cache service with Protocol pattern for dependency injection.

RedisCacheService stores generation results; NullCacheService is the no-op used when
Redis is not configured or not reachable. Cache failures never fail a request.
"""

import json
import logging
from typing import Any, Protocol

import redis

logger = logging.getLogger(__name__)

GENERATION_TTL = 86400  # 24 hours


class CacheService(Protocol):
    def get_json(self, key: str) -> dict[str, Any] | None: ...
    def set_json(self, key: str, data: dict[str, Any], ttl: int) -> None: ...


class RedisCacheService:
    def __init__(self, redis_url: str) -> None:
        self._client = redis.from_url(redis_url, decode_responses=True)
        self._client.ping()

    def get_json(self, key: str) -> dict[str, Any] | None:
        try:
            raw = self._client.get(key)
        except redis.RedisError:
            logger.warning("Cache read failed for %s", key, exc_info=True)
            return None
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.warning("Discarding undecodable cache entry %s", key)
            return None
        return data if isinstance(data, dict) else None

    def set_json(self, key: str, data: dict[str, Any], ttl: int) -> None:
        try:
            self._client.setex(key, ttl, json.dumps(data, ensure_ascii=False))
        except redis.RedisError:
            logger.warning("Cache write failed for %s", key, exc_info=True)

    def close(self) -> None:
        self._client.close()


class NullCacheService:
    def get_json(self, key: str) -> dict[str, Any] | None:
        return None

    def set_json(self, key: str, data: dict[str, Any], ttl: int) -> None:
        pass


def create_cache_service(redis_url: str) -> CacheService:
    """Redis when configured and reachable, otherwise the no-op cache."""
    if not redis_url:
        return NullCacheService()
    try:
        return RedisCacheService(redis_url)
    except redis.RedisError:
        logger.warning("Redis unavailable at startup, generation cache disabled")
        return NullCacheService()
