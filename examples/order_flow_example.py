"""
Example: In-process order execution

Demonstrates how to:
1. Wire router, repository, status hub and processor by hand
2. Observe an order's lifecycle through the status hub
3. See slippage protection reject an order before anything is built
4. Run several orders through the dispatch queue

Runs against the simulated Raydium / Meteora venues with real latency,
so expect a few seconds per order.
"""
import asyncio
from loguru import logger

from shared.utils.cache import InMemoryCache
from swaps.events import StatusHub
from swaps.execution import OrderProcessor, RetryPolicy
from swaps.orders import OrderRequest, StatusUpdate
from swaps.persistence import InMemoryOrderRepository
from swaps.queue import OrderQueue, RateLimit, TokenBucket
from swaps.routing import VenueRouter
from swaps.venues import create_default_venues


def log_update(update: StatusUpdate) -> None:
    """Print one status transition"""
    extra = f" (venue: {update.venue})" if update.venue else ""
    logger.info(f"  [{update.order_id[:8]}] {update.status.value:<10} {update.message}{extra}")


async def single_order_example(processor: OrderProcessor, repository, hub) -> None:
    """Execute one order and watch every transition"""

    logger.info("=== Single Order ===\n")

    order = OrderRequest(token_in="SOL", token_out="USDC", amount_in="2.5").to_order()
    await repository.create(order)

    unsubscribe = hub.subscribe(order.id, log_update)
    try:
        result = await processor.process_order(order)
    finally:
        unsubscribe()

    logger.info(
        f"\nResult: {result.status.value} | venue: {result.venue} | "
        f"out: {result.amount_out} | retries: {result.retry_count}\n"
    )


async def slippage_example(processor: OrderProcessor, repository, hub) -> None:
    """An order whose minimum output no venue can meet"""

    logger.info("=== Slippage Protection ===\n")

    order = OrderRequest(
        token_in="SOL",
        token_out="USDC",
        amount_in="10",
        min_amount_out="10.5",
    ).to_order()
    await repository.create(order)

    unsubscribe = hub.subscribe(order.id, log_update)
    try:
        result = await processor.process_order(order)
    finally:
        unsubscribe()

    logger.info(f"\nResult: {result.status.value} | error: {result.error}\n")


async def queue_example(processor: OrderProcessor, repository, hub) -> None:
    """Several orders through the dispatch queue"""

    logger.info("=== Dispatch Queue ===\n")

    queue = OrderQueue(
        processor,
        concurrency=3,
        rate_limiter=TokenBucket(RateLimit(max_jobs=10, window_seconds=1)),
    )
    await queue.start()

    for amount in ("1", "5", "12.75", "0.3"):
        order = OrderRequest(token_in="SOL", token_out="USDC", amount_in=amount).to_order()
        await repository.create(order)
        hub.subscribe(order.id, log_update)
        await queue.enqueue(order)

    await queue.join()
    await queue.close()

    stats = queue.get_stats()
    logger.info(f"\nQueue: {stats.completed} completed, {stats.failed} failed")

    for order in await repository.list_orders():
        logger.info(f"  {order.id[:8]} {order.status.value:<10} {order.amount_in} -> {order.amount_out or '-'}")


async def main():
    """Run all examples"""
    hub = StatusHub(cache=InMemoryCache())
    repository = InMemoryOrderRepository()
    router = VenueRouter(create_default_venues(latency_scale=0.5))
    processor = OrderProcessor(
        router,
        repository,
        hub,
        RetryPolicy(max_retries=3, backoff_base=2.0, max_backoff_seconds=4.0),
    )

    await single_order_example(processor, repository, hub)
    await slippage_example(processor, repository, hub)
    await queue_example(processor, repository, hub)


if __name__ == "__main__":
    asyncio.run(main())
