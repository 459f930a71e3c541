"""
Tests for the status hub
"""
import asyncio
import threading
import pytest

from swaps.events import STATUS_KEY_TEMPLATE, StatusHub
from swaps.orders import OrderStatus, StatusUpdate


def _update(order_id: str = "order-1", status: OrderStatus = OrderStatus.ROUTING, message: str = "m") -> StatusUpdate:
    return StatusUpdate(order_id=order_id, status=status, message=message)


class TestSubscriptions:
    """Test subscribe / unsubscribe"""

    @pytest.mark.asyncio
    async def test_delivery_in_registration_order(self, hub):
        """Every callback gets the update, first registered first"""
        calls = []
        hub.subscribe("order-1", lambda u: calls.append(("a", u.status)))
        hub.subscribe("order-1", lambda u: calls.append(("b", u.status)))

        await hub.publish(_update())

        assert calls == [("a", OrderStatus.ROUTING), ("b", OrderStatus.ROUTING)]

    @pytest.mark.asyncio
    async def test_updates_scoped_to_order(self, hub):
        """Observers only see their own order"""
        first, second = [], []
        hub.subscribe("order-1", first.append)
        hub.subscribe("order-2", second.append)

        await hub.publish(_update("order-1"))

        assert len(first) == 1
        assert second == []

    @pytest.mark.asyncio
    async def test_unsubscribe_removes_only_that_callback(self, hub):
        """Unsubscribing leaves other observers in place"""
        kept, dropped = [], []
        hub.subscribe("order-1", kept.append)
        unsubscribe = hub.subscribe("order-1", dropped.append)

        unsubscribe()
        await hub.publish(_update())

        assert len(kept) == 1
        assert dropped == []
        assert hub.subscriber_count("order-1") == 1

    def test_unsubscribe_is_idempotent(self, hub):
        """Second call does nothing"""
        subscription = hub.subscribe("order-1", lambda u: None)

        subscription()
        subscription()

        assert not subscription.active
        assert hub.subscriber_count("order-1") == 0

    def test_empty_entry_dropped(self, hub):
        """Order entry disappears with its last observer"""
        first = hub.subscribe("order-1", lambda u: None)
        second = hub.subscribe("order-1", lambda u: None)

        first.unsubscribe()
        assert hub.get_statistics()["observed_orders"] == 1

        second.unsubscribe()
        assert hub.get_statistics()["observed_orders"] == 0

    @pytest.mark.asyncio
    async def test_callback_error_isolated(self, hub):
        """A failing callback does not block later callbacks"""
        received = []

        def broken(update):
            raise RuntimeError("socket closed")

        hub.subscribe("order-1", broken)
        hub.subscribe("order-1", received.append)

        await hub.publish(_update())

        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_unsubscribe_during_publish(self, hub):
        """Callbacks may unsubscribe themselves while being called"""
        received = []
        holder = {}

        def once(update):
            received.append(update)
            holder["subscription"].unsubscribe()

        holder["subscription"] = hub.subscribe("order-1", once)

        await hub.publish(_update())
        await hub.publish(_update(status=OrderStatus.BUILDING))

        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_publish_without_observers(self, hub):
        """Publishing to nobody still caches"""
        await hub.publish(_update("lonely"))

        assert (await hub.get_last_status("lonely")).status == OrderStatus.ROUTING

    def test_clear(self, hub):
        """clear() drops every subscription"""
        hub.subscribe("order-1", lambda u: None)
        hub.subscribe("order-2", lambda u: None)

        hub.clear()

        assert hub.get_statistics()["subscriptions"] == 0


class TestStatusCache:
    """Test the latest-status cache"""

    @pytest.mark.asyncio
    async def test_latest_status_cached(self, hub, cache):
        """Last published update is readable as JSON"""
        await hub.publish(_update(status=OrderStatus.ROUTING))
        await hub.publish(_update(status=OrderStatus.BUILDING, message="Creating transaction"))

        last = await hub.get_last_status("order-1")
        assert last.status == OrderStatus.BUILDING
        assert last.message == "Creating transaction"

        raw = await cache.get(STATUS_KEY_TEMPLATE.format(order_id="order-1"))
        assert raw["status"] == "building"

    @pytest.mark.asyncio
    async def test_cached_status_expires(self, hub, clock):
        """Entries vanish after the TTL"""
        await hub.publish(_update())

        clock.advance(3599)
        assert await hub.get_last_status("order-1") is not None

        clock.advance(2)
        assert await hub.get_last_status("order-1") is None

    @pytest.mark.asyncio
    async def test_no_cache(self):
        """Without a cache the hub still delivers but remembers nothing"""
        hub = StatusHub(cache=None)
        received = []
        hub.subscribe("order-1", received.append)

        await hub.publish(_update())

        assert len(received) == 1
        assert await hub.get_last_status("order-1") is None

    @pytest.mark.asyncio
    async def test_malformed_cache_entry(self, hub, cache):
        """Garbage in the cache reads as no status"""
        await cache.set(STATUS_KEY_TEMPLATE.format(order_id="order-1"), {"status": "teleported"})

        assert await hub.get_last_status("order-1") is None

    @pytest.mark.asyncio
    async def test_cache_failure_does_not_abort_publish(self):
        """A broken cache is logged and skipped"""

        class BrokenCache:
            async def set(self, key, value, ttl=None):
                raise ConnectionError("redis down")

            async def get(self, key):
                raise ConnectionError("redis down")

        hub = StatusHub(cache=BrokenCache())
        received = []
        hub.subscribe("order-1", received.append)

        await hub.publish(_update())

        assert len(received) == 1
        assert await hub.get_last_status("order-1") is None


class TestConcurrentAccess:
    """Test the registry under subscribe / unsubscribe / publish churn"""

    THREADS = 8
    ROUNDS = 200

    def test_churn_from_threads(self):
        """Per-order and shared subscriptions stay consistent across threads"""
        hub = StatusHub(cache=None)
        steady = []
        steady_subscription = hub.subscribe("shared", steady.append)

        barrier = threading.Barrier(self.THREADS)
        errors = []
        delivered = {}
        late_calls = []

        def worker(index):
            order_id = f"order-{index}"
            received = []
            removed = threading.Event()

            def own_callback(update):
                if removed.is_set():
                    late_calls.append(order_id)
                received.append(update)

            loop = asyncio.new_event_loop()
            try:
                barrier.wait()
                for _ in range(self.ROUNDS):
                    removed.clear()
                    own = hub.subscribe(order_id, own_callback)
                    shared = hub.subscribe("shared", lambda u: None)

                    loop.run_until_complete(hub.publish(_update(order_id)))
                    loop.run_until_complete(hub.publish(_update("shared")))

                    own.unsubscribe()
                    removed.set()
                    loop.run_until_complete(hub.publish(_update(order_id)))
                    shared.unsubscribe()
            except Exception as e:
                errors.append(e)
            finally:
                loop.close()
                delivered[order_id] = len(received)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(self.THREADS)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert errors == []
        assert late_calls == []
        assert delivered == {f"order-{i}": self.ROUNDS for i in range(self.THREADS)}
        assert len(steady) == self.THREADS * self.ROUNDS

        steady_subscription.unsubscribe()
        stats = hub.get_statistics()
        assert stats["observed_orders"] == 0
        assert stats["subscriptions"] == 0
