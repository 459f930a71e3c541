"""
Status caches: Redis for shared deployments, in-process for tests

Values are stored as JSON text so that any process (or a human with
redis-cli) can read what the service wrote.
"""
from typing import Any, Optional
import json
import time
from loguru import logger

from shared.models.base import ICacheProvider
from shared.config.settings import RedisSettings, settings


class RedisCache(ICacheProvider[str, Any]):
    """Status cache shared between API workers through Redis"""

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        db: Optional[int] = None,
        password: Optional[str] = None,
        prefix: str = "swaproute:",
        client: Optional[Any] = None
    ):
        """
        Args:
            host: Redis host (defaults to REDIS_REDIS_HOST)
            port: Redis port
            db: Redis database number
            password: Redis password
            prefix: Namespace prepended to every key
            client: Pre-built redis.asyncio client, used as-is when given
        """
        import redis.asyncio as aioredis

        self.host = host or settings.redis.redis_host
        self.port = port or settings.redis.redis_port
        self.db = db or settings.redis.redis_db
        self.password = password or settings.redis.redis_password
        self.prefix = prefix

        self.redis = client or aioredis.Redis(
            host=self.host,
            port=self.port,
            db=self.db,
            password=self.password,
            decode_responses=True
        )

        logger.info(f"Status cache on redis://{self.host}:{self.port}/{self.db} (prefix {prefix!r})")

    def _make_key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def get(self, key: str) -> Optional[Any]:
        """Decoded JSON value, or None when missing, expired or unreadable"""
        try:
            raw = await self.redis.get(self._make_key(key))
        except Exception as e:
            logger.error(f"Redis GET {key} failed: {e}")
            return None

        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")

        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(f"Discarding non-JSON cache entry {key}")
            return None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """
        Store a JSON-serializable value

        Failures are logged and swallowed: the cache only ever
        accelerates reads that can fall back to the repository.
        """
        payload = json.dumps(value, default=str)
        try:
            if ttl:
                await self.redis.setex(self._make_key(key), ttl, payload)
            else:
                await self.redis.set(self._make_key(key), payload)
        except Exception as e:
            logger.error(f"Redis SET {key} failed: {e}")

    async def delete(self, key: str) -> None:
        try:
            await self.redis.delete(self._make_key(key))
        except Exception as e:
            logger.error(f"Redis DEL {key} failed: {e}")

    async def clear(self) -> None:
        """Remove every key under this cache's prefix"""
        removed = 0
        try:
            async for redis_key in self.redis.scan_iter(match=f"{self.prefix}*", count=100):
                await self.redis.delete(redis_key)
                removed += 1
        except Exception as e:
            logger.error(f"Redis clear of {self.prefix}* failed: {e}")
            return

        logger.warning(f"Cleared {removed} status cache keys")

    async def close(self) -> None:
        await self.redis.close()
        logger.info("Closed Redis status cache")


class InMemoryCache(ICacheProvider[str, Any]):
    """In-process cache with TTL expiry, for tests and single-node runs"""

    def __init__(self, clock=time.monotonic):
        self.cache: dict[str, tuple[Any, Optional[float]]] = {}
        self._clock = clock
        logger.info("Initialized in-memory cache")

    async def get(self, key: str) -> Optional[Any]:
        entry = self.cache.get(key)
        if entry is None:
            return None

        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self.cache[key]
            return None

        return value

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        expires_at = self._clock() + ttl if ttl else None
        self.cache[key] = (value, expires_at)

    async def delete(self, key: str) -> None:
        self.cache.pop(key, None)

    async def clear(self) -> None:
        self.cache.clear()


def create_cache(redis_settings: Optional[RedisSettings] = None) -> ICacheProvider[str, Any]:
    """Build the status cache selected by settings"""
    config = redis_settings or settings.redis
    if config.enabled:
        return RedisCache(
            host=config.redis_host,
            port=config.redis_port,
            db=config.redis_db,
            password=config.redis_password
        )
    return InMemoryCache()
