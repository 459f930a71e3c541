"""
Order Processor

Drives a single order through the execution state machine:

    PENDING -> ROUTING -> BUILDING -> SUBMITTED -> CONFIRMED
                  \\          \\           \\
                   +----------+-----------+--> FAILED

Every transition is written to the repository before it is published on
the status hub, so an observer never sees a status the store does not
have. Retriable failures restart the attempt from PENDING after an
exponential backoff; quotes, venue and transaction are recomputed from
scratch on every attempt.
"""
from datetime import datetime
from typing import Optional
from loguru import logger

from swaps.errors import (
    BuildFailure,
    ExecutionError,
    InvalidTransition,
    PersistenceFailure,
    RoutingFailure,
    SlippageProtectionTriggered,
    SubmissionFailure,
    describe_error,
)
from swaps.events import IStatusHub
from swaps.orders import Order, OrderStatus, StatusUpdate, can_transition
from swaps.persistence import IOrderRepository
from swaps.routing import VenueRouter
from .retry import RetryPolicy


class OrderProcessor:
    """
    Execution pipeline for swap orders

    Responsibilities:
    - Route each attempt to the best venue
    - Enforce slippage protection before anything is built
    - Build, submit and confirm the transaction
    - Persist and publish every status transition
    - Retry retriable failures with backoff
    """

    def __init__(
        self,
        router: VenueRouter,
        repository: IOrderRepository,
        hub: IStatusHub,
        retry_policy: Optional[RetryPolicy] = None
    ):
        """
        Initialize Order Processor

        Args:
            router: Venue router used for quotes, builds and submissions
            repository: Order store, written on every transition
            hub: Status hub that receives every transition
            retry_policy: Retry limits and backoff (default: 3 retries, base 2)
        """
        self.router = router
        self.repository = repository
        self.hub = hub
        self.retry_policy = retry_policy or RetryPolicy()

        logger.info(
            f"Initialized OrderProcessor (max_retries={self.retry_policy.max_retries}, "
            f"backoff_base={self.retry_policy.backoff_base})"
        )

    async def process_order(
        self,
        order: Order,
        max_retries: Optional[int] = None
    ) -> Order:
        """
        Execute an order until it is CONFIRMED or FAILED

        The order object is mutated in place and also returned.

        Args:
            order: Order to execute
            max_retries: Override of the policy's retry limit

        Returns:
            The order in a terminal status

        Raises:
            PersistenceFailure: A transition could not be stored
            InvalidTransition: The state machine was violated
        """
        if order.is_terminal:
            logger.warning(f"Order {order.id} is already {order.status.value}, skipping")
            return order

        limit = self.retry_policy.max_retries if max_retries is None else max_retries

        logger.info(
            f"Processing order {order.id} | {order.amount_in} {order.token_in} -> {order.token_out}"
        )

        while True:
            try:
                await self._run_attempt(order)
                return order

            except (PersistenceFailure, InvalidTransition):
                raise

            except ExecutionError as e:
                if self.retry_policy.should_retry(e, order.retry_count, limit):
                    order.retry_count += 1
                    logger.warning(
                        f"Retrying order {order.id} (attempt {order.retry_count}/{limit}): {e.message}"
                    )
                    await self.retry_policy.wait(order.retry_count)
                    continue

                order.error = e.message
                if e.retriable:
                    message = f"Order failed after {limit} attempts: {e.message}"
                else:
                    message = f"Order failed: {e.message}"

                logger.error(f"Order {order.id} failed: {e.message}")
                await self._transition(order, OrderStatus.FAILED, message)
                return order

    async def _run_attempt(self, order: Order) -> None:
        # Results of a previous attempt must not leak into this one
        order.venue = None
        order.amount_out = None
        order.execution_price = None
        order.tx_hash = None

        await self._transition(order, OrderStatus.PENDING, "Order received and queued")

        request = order.to_trade_request()

        # Step 1: Route
        await self._transition(order, OrderStatus.ROUTING, "Comparing venue prices")

        try:
            quotes = await self.router.fetch_quotes(request)
        except ExecutionError:
            raise
        except Exception as e:
            raise RoutingFailure(f"Failed to fetch venue quotes: {describe_error(e)}") from e

        best = self.router.select_best_venue(quotes)

        order.venue = best.venue
        order.amount_out = best.amount_out
        order.execution_price = best.price

        # Step 2: Slippage protection
        if order.min_amount_out is not None and best.amount_out < order.min_amount_out:
            raise SlippageProtectionTriggered(order.min_amount_out, best.amount_out)

        # Step 3: Build
        await self._transition(order, OrderStatus.BUILDING, "Creating transaction")

        try:
            tx_hash = await self.router.build_transaction(best, request)
        except ExecutionError:
            raise
        except Exception as e:
            raise BuildFailure(f"Failed to build transaction: {describe_error(e)}") from e

        order.tx_hash = tx_hash
        await self._transition(order, OrderStatus.SUBMITTED, "Transaction sent to network")

        # Step 4: Submit
        try:
            settled = await self.router.submit_transaction(tx_hash, best.venue)
        except ExecutionError:
            raise
        except Exception as e:
            raise SubmissionFailure(f"Transaction submission failed: {describe_error(e)}") from e

        if not settled:
            raise SubmissionFailure("Transaction submission failed")

        await self._transition(order, OrderStatus.CONFIRMED, "Transaction successful")

        logger.info(
            f"Order {order.id} confirmed on {order.venue} | out: {order.amount_out} | tx: {order.tx_hash}"
        )

    async def _transition(self, order: Order, status: OrderStatus, message: str) -> None:
        """Apply, persist, then publish one status change"""
        if not can_transition(order.status, status):
            raise InvalidTransition(
                f"Cannot move order {order.id} from {order.status.value} to {status.value}"
            )

        order.status = status
        order.updated_at = datetime.utcnow()

        try:
            await self.repository.update(order)
        except PersistenceFailure:
            raise
        except Exception as e:
            logger.opt(exception=e).error(f"Failed to persist order {order.id} as {status.value}")
            raise PersistenceFailure(f"Failed to persist order {order.id}: {e}") from e

        logger.debug(f"Order {order.id} -> {status.value}: {message}")

        await self.hub.publish(StatusUpdate.from_order(order, message))
