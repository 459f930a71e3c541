"""
Status Hub

Per-order publish/subscribe for status transitions.

- Observers subscribe to one order id and get every StatusUpdate for it,
  in the order the pipeline emits them.
- Callbacks run synchronously, in registration order. A failing callback
  is logged and skipped; it never reaches the publisher.
- Every update is also mirrored into a short-lived cache so a client that
  connects after a transition can still read the latest state.

Locking: the registry lock is taken only to add or drop an order's entry;
each entry has its own lock for its callback set. Publishing touches only
the entry lock of the order being published, so orders never wait on each
other.
"""
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Tuple
import itertools
import threading
from loguru import logger
from pydantic import ValidationError

from shared.models.base import ICacheProvider
from swaps.orders import StatusUpdate


StatusCallback = Callable[[StatusUpdate], None]

STATUS_KEY_TEMPLATE = "order:{order_id}:status"
DEFAULT_STATUS_TTL = 3600


class IStatusHub(ABC):
    """Abstract interface for the status hub"""

    @abstractmethod
    def subscribe(self, order_id: str, callback: StatusCallback) -> "Subscription":
        """
        Register a callback for one order

        Args:
            order_id: Order to observe
            callback: Called with every StatusUpdate for that order

        Returns:
            Subscription; calling it unsubscribes
        """
        pass

    @abstractmethod
    async def publish(self, update: StatusUpdate) -> None:
        """Deliver an update to the order's observers and cache it"""
        pass

    @abstractmethod
    async def get_last_status(self, order_id: str) -> Optional[StatusUpdate]:
        """Latest cached update for an order, if still cached"""
        pass


class Subscription:
    """
    Handle for one registered callback

    Calling the handle removes exactly this callback. Calling it again is
    a no-op.
    """

    def __init__(
        self,
        hub: "StatusHub",
        subscription_id: int,
        order_id: str,
        callback: StatusCallback
    ):
        self._hub = hub
        self.subscription_id = subscription_id
        self.order_id = order_id
        self.callback = callback
        self.active = True

    def __call__(self) -> None:
        self.unsubscribe()

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._hub._remove(self)


class _OrderObservers:
    """Callbacks registered for a single order"""

    def __init__(self):
        self.lock = threading.Lock()
        self.callbacks: Dict[int, StatusCallback] = {}

    def snapshot(self) -> Tuple[Tuple[int, StatusCallback], ...]:
        with self.lock:
            return tuple(self.callbacks.items())


class StatusHub(IStatusHub):
    """
    In-process status hub

    One instance is created at startup and injected into the pipeline and
    the intake service; tests build their own.
    """

    def __init__(
        self,
        cache: Optional[ICacheProvider[str, Any]] = None,
        ttl_seconds: int = DEFAULT_STATUS_TTL
    ):
        """
        Initialize status hub

        Args:
            cache: Cache that receives the latest update per order (None = off)
            ttl_seconds: Expiry of cached updates
        """
        self.cache = cache
        self.ttl_seconds = ttl_seconds

        self._registry: Dict[str, _OrderObservers] = {}
        self._registry_lock = threading.Lock()
        self._ids = itertools.count(1)

        logger.info(f"Initialized StatusHub (cache: {type(cache).__name__ if cache else 'none'})")

    def subscribe(self, order_id: str, callback: StatusCallback) -> Subscription:
        subscription = Subscription(self, next(self._ids), order_id, callback)

        with self._registry_lock:
            observers = self._registry.get(order_id)
            if observers is None:
                observers = self._registry[order_id] = _OrderObservers()
            with observers.lock:
                observers.callbacks[subscription.subscription_id] = callback

        logger.debug(f"Added subscription {subscription.subscription_id} for order {order_id}")
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        with self._registry_lock:
            observers = self._registry.get(subscription.order_id)
            if observers is None:
                return

            with observers.lock:
                observers.callbacks.pop(subscription.subscription_id, None)
                empty = not observers.callbacks

            if empty:
                del self._registry[subscription.order_id]

        logger.debug(f"Removed subscription {subscription.subscription_id} for order {subscription.order_id}")

    async def publish(self, update: StatusUpdate) -> None:
        observers = self._registry.get(update.order_id)
        callbacks = observers.snapshot() if observers else ()

        for subscription_id, callback in callbacks:
            # Unsubscribed since the snapshot was taken
            if subscription_id not in observers.callbacks:
                continue
            try:
                callback(update)
            except Exception as e:
                logger.opt(exception=e).error(
                    f"Error in status callback {subscription_id} for order {update.order_id}: {e}"
                )

        await self._cache_update(update)

    async def _cache_update(self, update: StatusUpdate) -> None:
        if self.cache is None:
            return

        try:
            await self.cache.set(
                STATUS_KEY_TEMPLATE.format(order_id=update.order_id),
                update.to_wire(),
                self.ttl_seconds
            )
        except Exception as e:
            logger.error(f"Failed to cache status for order {update.order_id}: {e}")

    async def get_last_status(self, order_id: str) -> Optional[StatusUpdate]:
        if self.cache is None:
            return None

        try:
            data = await self.cache.get(STATUS_KEY_TEMPLATE.format(order_id=order_id))
        except Exception as e:
            logger.error(f"Failed to read cached status for order {order_id}: {e}")
            return None

        if not data:
            return None

        try:
            return StatusUpdate.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Discarding malformed cached status for order {order_id}: {e}")
            return None

    def subscriber_count(self, order_id: str) -> int:
        observers = self._registry.get(order_id)
        return len(observers.snapshot()) if observers else 0

    def get_statistics(self) -> Dict[str, Any]:
        """Get hub statistics"""
        with self._registry_lock:
            entries = list(self._registry.values())

        return {
            "observed_orders": len(entries),
            "subscriptions": sum(len(entry.snapshot()) for entry in entries),
            "cache_enabled": self.cache is not None,
        }

    def clear(self) -> None:
        """Drop every subscription"""
        with self._registry_lock:
            self._registry.clear()
        logger.info("Cleared StatusHub subscriptions")
