"""
Redis client wrapper.

Purpose:
- Provide an async Redis connection for short-lived records
  (push throttle timestamps, member session markers)
- Handle connection errors gracefully: callers get None / False and log
  lines instead of exceptions, so notification paths degrade instead of fail

Keys used by this service:
- member:{name}:recently-pushed -> ISO-8601 timestamp of last push
- member:{name}:session         -> "true", expires after SESSION_TTL_SECONDS
"""
import logging
from typing import Optional

import redis.asyncio as redis

from config.settings import settings

logger = logging.getLogger(__name__)


def recently_pushed_key(name: str) -> str:
    return f"member:{name}:recently-pushed"


def session_key(name: str) -> str:
    return f"member:{name}:session"


class RedisClient:
    """Async Redis client wrapper."""

    def __init__(self, url: Optional[str] = None):
        self.url = url or settings.REDIS_URL
        self.redis: Optional[redis.Redis] = None

    async def connect(self):
        """Initialize async Redis connection."""
        try:
            self.redis = redis.from_url(
                self.url,
                encoding="utf8",
                decode_responses=True,
            )
            await self.redis.ping()
            logger.info("Connected to Redis at %s", self.url)
        except Exception as e:
            logger.error("Failed to connect to Redis at %s: %s", self.url, e)
            self.redis = None

    async def disconnect(self):
        """Close Redis connection."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            logger.info("Disconnected from Redis")

    async def ping(self) -> bool:
        if not self.redis:
            return False
        try:
            return bool(await self.redis.ping())
        except Exception as e:
            logger.error("Redis PING error: %s", e)
            return False

    async def get(self, key: str) -> Optional[str]:
        """Get value by key."""
        if not self.redis:
            logger.debug("Redis GET skipped for %s: no client", key)
            return None
        try:
            return await self.redis.get(key)
        except Exception as e:
            logger.error("Redis GET error for %s: %s", key, e)
            return None

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        """Set key-value, with an expiry in seconds when ttl is given."""
        if not self.redis:
            logger.debug("Redis SET skipped for %s: no client", key)
            return False
        try:
            if ttl:
                await self.redis.setex(key, ttl, value)
            else:
                await self.redis.set(key, value)
            return True
        except Exception as e:
            logger.error("Redis SET error for %s: %s", key, e)
            return False

    async def delete(self, key: str) -> bool:
        """Delete a key."""
        if not self.redis:
            return False
        try:
            await self.redis.delete(key)
            return True
        except Exception as e:
            logger.error("Redis DELETE error for %s: %s", key, e)
            return False
