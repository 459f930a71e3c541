"""
Order Queue

In-process dispatch queue for the execution pipeline.

- A fixed pool of worker tasks pulls orders off an asyncio.Queue and
  calls OrderProcessor.process_order once per order.
- A shared token bucket caps how many jobs start per time window.
- An order id is accepted again only after its previous job is done, so
  one order never runs on two workers at once.

Jobs live only in memory: anything still waiting when the queue closes is
dropped.
"""
import asyncio
from typing import List, Optional, Set
from loguru import logger
from pydantic import BaseModel

from swaps.execution import OrderProcessor
from swaps.orders import Order
from .rate_limiter import IRateLimiter


class QueueStats(BaseModel):
    """Snapshot of the queue counters"""
    waiting: int = 0
    active: int = 0
    completed: int = 0
    failed: int = 0
    total: int = 0


class QueueClosedError(RuntimeError):
    """Enqueue was attempted on a queue that is not running"""


class OrderQueue:
    """
    Bounded-concurrency dispatcher for order execution

    A job is counted as completed when process_order returns (whatever the
    order's final status) and as failed when process_order raises.
    """

    def __init__(
        self,
        processor: OrderProcessor,
        concurrency: int = 10,
        rate_limiter: Optional[IRateLimiter] = None,
        max_retries: Optional[int] = None
    ):
        """
        Initialize order queue

        Args:
            processor: Pipeline that executes each order
            concurrency: Number of worker tasks
            rate_limiter: Job rate ceiling (None = unlimited)
            max_retries: Retry limit passed to process_order (None = policy default)
        """
        if concurrency <= 0:
            raise ValueError("concurrency must be positive")

        self.processor = processor
        self.concurrency = concurrency
        self.rate_limiter = rate_limiter
        self.max_retries = max_retries

        self._queue: "asyncio.Queue[Order]" = asyncio.Queue()
        self._workers: List[asyncio.Task] = []
        self._in_flight: Set[str] = set()

        self._active = 0
        self._completed = 0
        self._failed = 0

        self.is_running = False

        logger.info(f"Initialized OrderQueue (concurrency={concurrency})")

    async def start(self) -> None:
        """Spawn the worker tasks"""
        if self.is_running:
            logger.warning("OrderQueue already running")
            return

        self.is_running = True
        self._workers = [
            asyncio.create_task(self._worker(index), name=f"order-worker-{index}")
            for index in range(self.concurrency)
        ]

        logger.info(f"OrderQueue started with {self.concurrency} workers")

    async def enqueue(self, order: Order) -> bool:
        """
        Add an order for execution

        Returns:
            False if the same order id is already waiting or running

        Raises:
            QueueClosedError: Queue is not running
        """
        if not self.is_running:
            raise QueueClosedError("Order queue is not running")

        if order.id in self._in_flight:
            logger.warning(f"Order {order.id} already queued, ignoring duplicate")
            return False

        self._in_flight.add(order.id)
        self._queue.put_nowait(order)

        logger.info(f"Order {order.id} added to queue")
        return True

    async def _worker(self, index: int) -> None:
        while True:
            order = await self._queue.get()
            try:
                await self._run_job(order)
            finally:
                self._in_flight.discard(order.id)
                self._queue.task_done()

    async def _run_job(self, order: Order) -> None:
        if self.rate_limiter:
            await self.rate_limiter.acquire()

        self._active += 1
        try:
            result = await self.processor.process_order(order, self.max_retries)
            self._completed += 1
            logger.info(f"Job for order {order.id} completed ({result.status.value})")

        except asyncio.CancelledError:
            raise

        except Exception as e:
            self._failed += 1
            logger.opt(exception=e).error(f"Job for order {order.id} failed: {e}")

        finally:
            self._active -= 1

    def get_stats(self) -> QueueStats:
        waiting = self._queue.qsize()
        return QueueStats(
            waiting=waiting,
            active=self._active,
            completed=self._completed,
            failed=self._failed,
            total=waiting + self._active + self._completed + self._failed,
        )

    async def join(self) -> None:
        """Wait until every enqueued job has finished"""
        await self._queue.join()

    async def close(self) -> None:
        """Stop the workers; jobs still waiting are dropped"""
        if not self.is_running:
            return

        self.is_running = False

        dropped = self._queue.qsize()
        if dropped:
            logger.warning(f"Dropping {dropped} queued orders on shutdown")

        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []

        logger.info("OrderQueue closed")
