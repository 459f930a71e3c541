"""
Tests for the order dispatch queue
"""
import asyncio
import pytest

from swaps.errors import PersistenceFailure
from swaps.orders import OrderStatus
from swaps.queue import OrderQueue, QueueClosedError

from fakes import make_order


class ScriptedProcessor:
    """Processor stand-in that records calls and can block or raise"""

    def __init__(self, fail_ids=(), gate: asyncio.Event = None):
        self.fail_ids = set(fail_ids)
        self.gate = gate
        self.calls = []
        self.running = 0
        self.max_running = 0

    async def process_order(self, order, max_retries=None):
        self.calls.append((order.id, max_retries))
        self.running += 1
        self.max_running = max(self.max_running, self.running)
        try:
            if self.gate is not None:
                await self.gate.wait()
            else:
                await asyncio.sleep(0)
            if order.id in self.fail_ids:
                raise PersistenceFailure("database down")
            order.status = OrderStatus.CONFIRMED
            return order
        finally:
            self.running -= 1


class CountingLimiter:
    """Rate limiter that only counts acquisitions"""

    def __init__(self):
        self.acquired = 0

    async def acquire(self, weight: int = 1) -> None:
        self.acquired += weight

    def get_remaining(self) -> int:
        return 0


class TestOrderQueue:
    """Test job dispatch"""

    @pytest.mark.asyncio
    async def test_processes_every_order(self):
        """Each enqueued order is processed once"""
        processor = ScriptedProcessor()
        queue = OrderQueue(processor, concurrency=2, max_retries=5)
        await queue.start()

        orders = [make_order() for _ in range(5)]
        for order in orders:
            assert await queue.enqueue(order)

        await queue.join()
        await queue.close()

        assert sorted(call[0] for call in processor.calls) == sorted(o.id for o in orders)
        assert all(call[1] == 5 for call in processor.calls)
        assert all(o.status == OrderStatus.CONFIRMED for o in orders)

        stats = queue.get_stats()
        assert stats.completed == 5
        assert stats.failed == 0
        assert stats.waiting == 0
        assert stats.active == 0
        assert stats.total == 5

    @pytest.mark.asyncio
    async def test_concurrency_bound(self):
        """No more than `concurrency` jobs run at once"""
        gate = asyncio.Event()
        processor = ScriptedProcessor(gate=gate)
        queue = OrderQueue(processor, concurrency=3)
        await queue.start()

        for _ in range(7):
            await queue.enqueue(make_order())

        for _ in range(10):
            await asyncio.sleep(0)

        stats = queue.get_stats()
        assert stats.active == 3
        assert stats.waiting == 4
        assert stats.total == 7

        gate.set()
        await queue.join()
        await queue.close()

        assert processor.max_running == 3
        assert queue.get_stats().completed == 7

    @pytest.mark.asyncio
    async def test_duplicate_rejected_while_in_flight(self):
        """Same order id cannot be queued twice at once"""
        gate = asyncio.Event()
        processor = ScriptedProcessor(gate=gate)
        queue = OrderQueue(processor, concurrency=1)
        await queue.start()

        order = make_order()
        assert await queue.enqueue(order)
        assert not await queue.enqueue(order)

        gate.set()
        await queue.join()

        assert len(processor.calls) == 1

        # Finished jobs release the id
        order.status = OrderStatus.PENDING
        assert await queue.enqueue(order)
        await queue.join()
        await queue.close()

        assert len(processor.calls) == 2

    @pytest.mark.asyncio
    async def test_raising_job_counted_as_failed(self):
        """process_order raising marks the job failed and the worker survives"""
        bad = make_order()
        good = make_order()
        processor = ScriptedProcessor(fail_ids=[bad.id])
        queue = OrderQueue(processor, concurrency=1)
        await queue.start()

        await queue.enqueue(bad)
        await queue.enqueue(good)
        await queue.join()
        await queue.close()

        stats = queue.get_stats()
        assert stats.failed == 1
        assert stats.completed == 1
        assert good.status == OrderStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_rate_limiter_consulted_per_job(self):
        """Every job takes one token"""
        limiter = CountingLimiter()
        queue = OrderQueue(ScriptedProcessor(), concurrency=2, rate_limiter=limiter)
        await queue.start()

        for _ in range(4):
            await queue.enqueue(make_order())
        await queue.join()
        await queue.close()

        assert limiter.acquired == 4

    @pytest.mark.asyncio
    async def test_enqueue_requires_running_queue(self):
        """A queue that is not started or already closed refuses work"""
        queue = OrderQueue(ScriptedProcessor())

        with pytest.raises(QueueClosedError):
            await queue.enqueue(make_order())

        await queue.start()
        await queue.close()

        with pytest.raises(QueueClosedError):
            await queue.enqueue(make_order())

    def test_invalid_concurrency(self):
        """concurrency must be positive"""
        with pytest.raises(ValueError):
            OrderQueue(ScriptedProcessor(), concurrency=0)
