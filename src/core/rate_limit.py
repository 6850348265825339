"""Rate Limiter - Fixed-window request counters shared through Redis."""

from dataclasses import dataclass

import redis.asyncio as redis

from src.config.settings import get_settings
from src.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class RateLimitResult:
    """Outcome of a rate-limit check."""

    allowed: bool
    remaining: int
    reset_in: int


class RateLimiter:
    """Counts hits per key in Redis so every worker process sees the same window.

    The first hit of a window creates the key with a TTL equal to the window;
    later hits only increment it.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        prefix: str = "ratelimit:",
    ) -> None:
        """Initialize the RateLimiter.

        Args:
            redis_url: Redis connection URL
            prefix: Prefix for Redis keys
        """
        self.redis_url = redis_url
        self.prefix = prefix
        self._client: redis.Redis | None = None

    async def _get_client(self) -> redis.Redis:
        """Get or create Redis client."""
        if self._client is None:
            self._client = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
        return self._client

    def _make_key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def check(
        self,
        key: str,
        limit: int,
        window_seconds: int,
    ) -> RateLimitResult:
        """Register a hit for ``key`` and report whether it is within ``limit``.

        Args:
            key: Caller identity (e.g. ``login:<ip>:<email>``)
            limit: Maximum hits per window
            window_seconds: Window length

        Returns:
            RateLimitResult. Fails open when Redis is unavailable.
        """
        try:
            client = await self._get_client()
            redis_key = self._make_key(key)

            count = await client.incr(redis_key)
            if count == 1:
                await client.expire(redis_key, window_seconds)
                ttl = window_seconds
            else:
                ttl = await client.ttl(redis_key)
                if ttl < 0:
                    # Key lost its TTL (crash between INCR and EXPIRE)
                    await client.expire(redis_key, window_seconds)
                    ttl = window_seconds

            allowed = count <= limit
            if not allowed:
                logger.warning("rate_limit_exceeded", key=key, count=count, limit=limit)

            return RateLimitResult(
                allowed=allowed,
                remaining=max(limit - count, 0),
                reset_in=ttl,
            )
        except Exception as e:
            logger.warning(
                "rate_limit_check_failed",
                key=key,
                error=str(e),
            )
            return RateLimitResult(allowed=True, remaining=limit, reset_in=window_seconds)

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("redis_connection_closed")


_rate_limiter: RateLimiter | None = None


def get_rate_limiter() -> RateLimiter:
    """Get or create the process-wide rate limiter."""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = RateLimiter(redis_url=get_settings().redis_url)
    return _rate_limiter
