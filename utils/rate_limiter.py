"""
PantryPal Rate Limiter
Sliding-window attempt throttling, Redis-backed with an in-process fallback
"""

import secrets
import time
from typing import Optional, Dict, Any, List
import redis.asyncio as redis
import structlog

from core.config import get_settings
from core.exceptions import RateLimitError

settings = get_settings()
logger = structlog.get_logger()


class RateLimiter:
    def __init__(self):
        self.redis_client: Optional[redis.Redis] = None
        self._redis_checked = False
        self._memory_store: Dict[str, Dict[str, Any]] = {}
        self._cleanup_interval = 300  # 5 minutes
        self._last_cleanup = time.time()

    @property
    def enabled(self) -> bool:
        return settings.RATE_LIMIT_ENABLED

    async def _get_redis_client(self) -> Optional[redis.Redis]:
        """Connect once; without REDIS_URL or on failure the memory store is used"""
        if self._redis_checked:
            return self.redis_client

        self._redis_checked = True
        if not settings.REDIS_URL:
            return None

        client = redis.Redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            retry_on_timeout=True,
            health_check_interval=30
        )
        try:
            await client.ping()
        except (redis.RedisError, OSError) as e:
            logger.warning("Redis connection failed, using memory store", error=str(e))
            await client.aclose()
            return None

        self.redis_client = client
        return client

    async def check_rate_limit(
        self,
        key: str,
        max_attempts: int,
        window_minutes: int,
        identifier: Optional[str] = None
    ) -> bool:
        """
        Record an attempt and report whether it is within the limit

        Args:
            key: Unique identifier for the rate limit (e.g., "login:1.2.3.4:user@email.com")
            max_attempts: Maximum attempts allowed in the window
            window_minutes: Time window in minutes
            identifier: Optional additional identifier

        Returns:
            True if within limit, False if exceeded
        """
        if not self.enabled:
            return True

        full_key = key if not identifier else f"{key}:{identifier}"

        redis_client = await self._get_redis_client()
        if redis_client:
            try:
                return await self._check_rate_limit_redis(
                    redis_client, full_key, max_attempts, window_minutes
                )
            except redis.RedisError as e:
                logger.warning("Redis rate limit check failed, using memory store", error=str(e))

        return self._check_rate_limit_memory(full_key, max_attempts, window_minutes)

    async def enforce(
        self,
        key: str,
        max_attempts: int,
        window_minutes: int,
        message: Optional[str] = None
    ) -> None:
        """Raise RateLimitError when the attempt exceeds the limit"""
        if not await self.check_rate_limit(key, max_attempts, window_minutes):
            logger.warning("Rate limit exceeded", key=key, max_attempts=max_attempts)
            raise RateLimitError(message)

    async def _check_rate_limit_redis(
        self,
        redis_client: redis.Redis,
        key: str,
        max_attempts: int,
        window_minutes: int
    ) -> bool:
        """Redis-based rate limiting using sliding window"""
        full_key = f"rate_limit:{key}"

        current_time = time.time()
        window_start = current_time - (window_minutes * 60)

        pipe = redis_client.pipeline()
        pipe.zremrangebyscore(full_key, 0, window_start)
        pipe.zcard(full_key)
        # Unique member so attempts in the same instant are all counted
        pipe.zadd(full_key, {f"{current_time}:{secrets.token_hex(4)}": current_time})
        pipe.expire(full_key, window_minutes * 60 + 60)

        results = await pipe.execute()
        current_count = results[1]

        return current_count < max_attempts

    def _check_rate_limit_memory(
        self,
        key: str,
        max_attempts: int,
        window_minutes: int
    ) -> bool:
        """Memory-based rate limiting (fallback)"""
        self._cleanup_memory_store()

        current_time = time.time()
        window_start = current_time - (window_minutes * 60)

        entry = self._memory_store.setdefault(key, {'attempts': [], 'last_seen': current_time})
        attempts: List[float] = [t for t in entry['attempts'] if t > window_start]
        entry['last_seen'] = current_time

        if len(attempts) >= max_attempts:
            entry['attempts'] = attempts
            return False

        attempts.append(current_time)
        entry['attempts'] = attempts
        return True

    def _cleanup_memory_store(self) -> None:
        """Drop keys idle for more than an hour"""
        current_time = time.time()

        if current_time - self._last_cleanup < self._cleanup_interval:
            return

        cutoff_time = current_time - 3600
        for key in [k for k, entry in self._memory_store.items() if entry['last_seen'] < cutoff_time]:
            del self._memory_store[key]

        self._last_cleanup = current_time

    async def reset_rate_limit(self, key: str) -> None:
        """Forget every attempt recorded under key"""
        self._memory_store.pop(key, None)
        if self.redis_client:
            await self.redis_client.delete(f"rate_limit:{key}")

    async def reset_all(self) -> None:
        """Clear the in-process store"""
        self._memory_store.clear()

    async def close(self):
        """Close Redis connection"""
        if self.redis_client:
            await self.redis_client.aclose()
        self.redis_client = None
        self._redis_checked = False


# Create singleton instance
rate_limiter = RateLimiter()
