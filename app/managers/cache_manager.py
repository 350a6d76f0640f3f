from typing import Any, Callable, Optional
import json

import redis

from app.core.config import settings
from app.core.redis_client import redis_client
from app.core.logger import logger
from app.scripts.json_utils import to_json


class CacheManager:
    def __init__(self, prefix: str = "", client: Optional[redis.Redis] = None, enabled: Optional[bool] = None):
        self.prefix = prefix.rstrip(":")
        self.client = client if client is not None else redis_client
        self.enabled = settings.CACHE_ENABLED if enabled is None else enabled

    def _build_key(self, *parts: Any, user_id: Optional[str] = None) -> str:
        """builds a cache key: fx:USD:AUD or reference:user:<id>:classes"""
        segments = [self.prefix]
        if user_id is not None:
            segments.append(f"user:{user_id}")
        segments.extend(str(p) for p in parts if p is not None)
        return ":".join(segments)

    def get(self, *parts, user_id: Optional[str] = None):
        if not self.enabled:
            return None
        key = self._build_key(*parts, user_id=user_id)
        try:
            data = self.client.get(key)
        except redis.RedisError as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None
        if data:
            logger.debug(f"Cache hit: {key}")
            return json.loads(data)
        logger.debug(f"Cache miss: {key}")
        return None

    def set(self, data: Any, *parts, user_id: Optional[str] = None, ttl: int = 300):
        if not self.enabled:
            return
        key = self._build_key(*parts, user_id=user_id)
        try:
            self.client.set(key, to_json(data), ex=ttl)
        except redis.RedisError as e:
            logger.warning(f"Cache write failed for {key}: {e}")
            return
        logger.debug(f"Cache set: {key} (TTL={ttl}s)")

    def get_or_set(self, loader: Callable[[], Any], *parts, user_id: Optional[str] = None, ttl: int = 300):
        """Return the cached value, or call ``loader`` and cache its JSON-serializable result."""
        cached = self.get(*parts, user_id=user_id)
        if cached is not None:
            return cached
        data = loader()
        self.set(data, *parts, user_id=user_id, ttl=ttl)
        return data

    def delete(self, *parts, user_id: Optional[str] = None):
        if not self.enabled:
            return
        key = self._build_key(*parts, user_id=user_id)
        try:
            self.client.delete(key)
        except redis.RedisError as e:
            logger.warning(f"Cache delete failed for {key}: {e}")
            return
        logger.debug(f"Cache deleted: {key}")

    def clear(self, pattern: Optional[str] = None):
        """Delete all cache entries matching the given pattern."""
        if not self.enabled:
            return 0
        pattern = pattern or f"{self.prefix}*"
        count = 0
        for key in self.client.scan_iter(pattern):
            self.client.delete(key)
            count += 1
        logger.info(f"Cleared {count} cache entries for pattern '{pattern}'")
        return count
