"""
Swap order model

Types shared by every other component: the order itself, the request that
creates it, venue quotes and the status snapshots broadcast to observers.
"""

from .models import (
    DEFAULT_SLIPPAGE,
    STATUS_SEQUENCE,
    TERMINAL_STATUSES,
    Order,
    OrderRequest,
    OrderStatus,
    OrderType,
    Quote,
    StatusUpdate,
    TradeRequest,
    can_transition,
    parse_decimal,
)

__all__ = [
    "DEFAULT_SLIPPAGE",
    "STATUS_SEQUENCE",
    "TERMINAL_STATUSES",
    "Order",
    "OrderRequest",
    "OrderStatus",
    "OrderType",
    "Quote",
    "StatusUpdate",
    "TradeRequest",
    "can_transition",
    "parse_decimal",
]
