"""
Order intake service

The boundary between clients and the execution core: validates and
creates orders, hands them to the dispatch queue, and gives read access
to orders, queue counters and live status streams.

create_order_service() wires the whole system from Settings; the API and
the CLI both go through it.
"""
from decimal import Decimal
from typing import Any, List, Optional
from loguru import logger

from shared.config.settings import Settings, settings
from shared.models.base import ICacheProvider
from shared.utils.cache import create_cache
from swaps.events import IStatusHub, StatusCallback, StatusHub, Subscription
from swaps.execution import OrderProcessor, RetryPolicy
from swaps.orders import DEFAULT_SLIPPAGE, Order, OrderRequest, OrderStatus, StatusUpdate
from swaps.persistence import DEFAULT_LIST_LIMIT, IOrderRepository, create_repository
from swaps.queue import OrderQueue, QueueClosedError, QueueStats, RateLimit, TokenBucket
from swaps.routing import VenueRouter
from swaps.venues import create_default_venues


CONNECTED_MESSAGE = "Connected to order status stream"
SUBMITTED_MESSAGE = "Order submitted successfully. Upgrade connection to WebSocket for status updates."


class OrderService:
    """
    Intake and read access for swap orders

    Owns the lifetime of the queue, the repository and the cache it was
    built with: start() before use, close() on shutdown.
    """

    def __init__(
        self,
        repository: IOrderRepository,
        queue: OrderQueue,
        hub: IStatusHub,
        cache: Optional[ICacheProvider[str, Any]] = None,
        default_slippage: Decimal = DEFAULT_SLIPPAGE
    ):
        self.repository = repository
        self.queue = queue
        self.hub = hub
        self.cache = cache
        self.default_slippage = default_slippage

        logger.info("Initialized OrderService")

    @property
    def processor(self) -> OrderProcessor:
        return self.queue.processor

    async def start(self) -> None:
        await self.queue.start()

    async def close(self) -> None:
        await self.queue.close()
        await self.repository.close()
        if self.cache:
            await self.cache.close()
        logger.info("OrderService closed")

    async def submit(self, request: OrderRequest) -> Order:
        """
        Create a PENDING order and queue it for execution

        Raises:
            QueueClosedError: Queue is not accepting work; nothing is stored
        """
        if not self.queue.is_running:
            raise QueueClosedError("Order queue is not running")

        order = request.to_order(self.default_slippage)
        await self.repository.create(order)
        await self.queue.enqueue(order)

        logger.info(
            f"Accepted order {order.id} | {order.order_type.value} "
            f"{order.amount_in} {order.token_in} -> {order.token_out}"
        )
        return order

    async def get_order(self, order_id: str) -> Optional[Order]:
        return await self.repository.find_by_id(order_id)

    async def list_orders(
        self,
        status: Optional[OrderStatus] = None,
        limit: int = DEFAULT_LIST_LIMIT
    ) -> List[Order]:
        return await self.repository.list_orders(status=status, limit=limit)

    def queue_stats(self) -> QueueStats:
        return self.queue.get_stats()

    def subscribe(self, order_id: str, callback: StatusCallback) -> Subscription:
        return self.hub.subscribe(order_id, callback)

    async def initial_status(self, order_id: str) -> Optional[StatusUpdate]:
        """
        First message of a status stream

        Uses the last published update when it is still cached, otherwise
        the stored order. None if the order does not exist.
        """
        order = await self.repository.find_by_id(order_id)
        if order is None:
            return None

        cached = await self.hub.get_last_status(order_id)
        snapshot = cached or StatusUpdate.from_order(order)

        return snapshot.model_copy(update={"message": CONNECTED_MESSAGE})


async def create_order_service(config: Optional[Settings] = None) -> OrderService:
    """
    Build a ready-to-start OrderService from settings

    Args:
        config: Settings tree (default: global settings)
    """
    config = config or settings

    cache = create_cache(config.redis)
    hub = StatusHub(cache=cache, ttl_seconds=config.execution.status_ttl_seconds)
    repository = await create_repository(config.database)

    router = VenueRouter(
        create_default_venues(
            latency_scale=config.venues.latency_scale,
            failure_rate=config.venues.failure_rate,
            seed=config.venues.seed,
        ),
        quote_timeout=config.execution.quote_timeout_seconds,
    )

    processor = OrderProcessor(
        router=router,
        repository=repository,
        hub=hub,
        retry_policy=RetryPolicy(
            max_retries=config.execution.max_retries,
            backoff_base=config.execution.backoff_base,
            max_backoff_seconds=config.execution.max_backoff_seconds,
        ),
    )

    queue = OrderQueue(
        processor=processor,
        concurrency=config.queue.concurrency,
        rate_limiter=TokenBucket(
            RateLimit(config.queue.rate_limit_max, config.queue.rate_limit_window_seconds)
        ),
    )

    return OrderService(repository=repository, queue=queue, hub=hub, cache=cache)
