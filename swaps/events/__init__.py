"""
Order status events

Usage:
    from swaps.events import StatusHub

    hub = StatusHub(cache=InMemoryCache())

    unsubscribe = hub.subscribe(order.id, lambda update: print(update.status))
    await hub.publish(StatusUpdate.from_order(order, "Comparing venue prices"))
    unsubscribe()
"""

from .hub import (
    DEFAULT_STATUS_TTL,
    STATUS_KEY_TEMPLATE,
    IStatusHub,
    StatusCallback,
    StatusHub,
    Subscription,
)

__all__ = [
    "DEFAULT_STATUS_TTL",
    "STATUS_KEY_TEMPLATE",
    "IStatusHub",
    "StatusCallback",
    "StatusHub",
    "Subscription",
]
