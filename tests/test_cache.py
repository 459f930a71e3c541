"""
Tests for cache providers
"""
import pytest

from shared.config.settings import RedisSettings
from shared.utils.cache import InMemoryCache, RedisCache, create_cache

from fakes import FakeRedis


class TestInMemoryCache:
    """Test the in-process cache"""

    @pytest.mark.asyncio
    async def test_set_get_delete(self, cache):
        """Basic key/value operations"""
        await cache.set("a", {"x": 1})
        assert await cache.get("a") == {"x": 1}

        await cache.delete("a")
        assert await cache.get("a") is None

    @pytest.mark.asyncio
    async def test_ttl(self, cache, clock):
        """Values expire after their TTL, untimed values never do"""
        await cache.set("short", 1, ttl=10)
        await cache.set("forever", 2)

        clock.advance(10)

        assert await cache.get("short") is None
        assert await cache.get("forever") == 2

    @pytest.mark.asyncio
    async def test_clear(self, cache):
        """clear() empties the cache"""
        await cache.set("a", 1)
        await cache.set("b", 2)

        await cache.clear()

        assert await cache.get("a") is None
        assert await cache.get("b") is None


class TestRedisCache:
    """Test the Redis cache against a fake client"""

    @pytest.mark.asyncio
    async def test_json_round_trip_with_prefix(self):
        """Values are stored as prefixed JSON with a TTL"""
        client = FakeRedis()
        cache = RedisCache(client=client)

        await cache.set("order:1:status", {"status": "routing"}, ttl=3600)

        assert client.store["swaproute:order:1:status"] == '{"status": "routing"}'
        assert client.ttls["swaproute:order:1:status"] == 3600
        assert await cache.get("order:1:status") == {"status": "routing"}

    @pytest.mark.asyncio
    async def test_clear_only_prefixed_keys(self):
        """clear() removes this cache's keys only"""
        client = FakeRedis()
        client.store["other:key"] = "1"
        cache = RedisCache(client=client)

        await cache.set("a", 1)
        await cache.set("b", 2)
        await cache.clear()

        assert list(client.store) == ["other:key"]

    @pytest.mark.asyncio
    async def test_errors_are_swallowed(self):
        """Connection problems degrade to cache misses"""
        cache = RedisCache(client=FakeRedis(fail=True))

        await cache.set("a", 1, ttl=10)
        assert await cache.get("a") is None
        await cache.delete("a")

    @pytest.mark.asyncio
    async def test_close(self):
        """close() closes the client"""
        client = FakeRedis()
        cache = RedisCache(client=client)

        await cache.close()

        assert client.closed


class TestCreateCache:
    """Test the cache factory"""

    def test_memory_by_default(self):
        """Redis disabled gives the in-memory cache"""
        assert isinstance(create_cache(RedisSettings(enabled=False)), InMemoryCache)

    def test_redis_when_enabled(self):
        """Redis enabled gives RedisCache (no connection is made yet)"""
        cache = create_cache(RedisSettings(enabled=True, redis_host="cache.local", redis_port=6380))

        assert isinstance(cache, RedisCache)
        assert cache.host == "cache.local"
        assert cache.port == 6380
