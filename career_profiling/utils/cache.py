"""
Redis cache utility for interpretation reports
"""
import json
import logging
from typing import Any, Optional

import redis

from career_profiling.config import settings

logger = logging.getLogger(__name__)


class CacheService:
    """
    Redis-backed report cache
    
    An unreachable Redis only disables caching; every method degrades to
    a miss or a no-op.
    """
    
    def __init__(self):
        try:
            self.redis_client = redis.from_url(
                settings.REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=5
            )
            self.redis_client.ping()
            logger.info("Redis connection established")
        except redis.RedisError as e:
            logger.warning(f"Redis connection failed: {str(e)}. Caching disabled.")
            self.redis_client = None
    
    @staticmethod
    def interpretation_key(attempt_id: int) -> str:
        return f"interpretation:{attempt_id}"
    
    def get(self, key: str) -> Optional[Any]:
        """Cached JSON value or None"""
        if not self.redis_client:
            return None
        
        try:
            value = self.redis_client.get(key)
            if value:
                logger.info(f"Cache hit: {key}")
                return json.loads(value)
            logger.info(f"Cache miss: {key}")
            return None
        except (redis.RedisError, ValueError) as e:
            logger.warning(f"Cache get error: {str(e)}")
            return None
    
    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        Store a JSON-serializable value
        
        Args:
            key: Cache key
            value: Value to cache
            ttl: Seconds to live (default INTERPRETATION_CACHE_TTL)
        """
        if not self.redis_client:
            return False
        
        try:
            ttl = ttl or settings.INTERPRETATION_CACHE_TTL
            self.redis_client.setex(key, ttl, json.dumps(value, default=str))
            logger.info(f"Cache set: {key} (TTL: {ttl}s)")
            return True
        except (redis.RedisError, TypeError) as e:
            logger.warning(f"Cache set error: {str(e)}")
            return False
    
    def delete(self, key: str) -> bool:
        if not self.redis_client:
            return False
        
        try:
            self.redis_client.delete(key)
            logger.info(f"Cache delete: {key}")
            return True
        except redis.RedisError as e:
            logger.warning(f"Cache delete error: {str(e)}")
            return False


# Global instance
cache_service = CacheService()
