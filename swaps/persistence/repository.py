"""
Order repositories

IOrderRepository is the contract the pipeline and intake rely on:
update() must be durable before the matching status is broadcast.

InMemoryOrderRepository keeps OrderRow snapshots, never the live Order
objects, so a caller mutating an order cannot change what was stored.
"""
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Dict, List, Optional
from loguru import logger

from swaps.orders import Order, OrderStatus
from .mapping import MUTABLE_FIELDS, OrderRow, order_to_row, row_to_order


DEFAULT_LIST_LIMIT = 100


class OrderNotFoundError(LookupError):
    """Update targeted an order id that is not stored"""


class DuplicateOrderError(ValueError):
    """Create targeted an order id that already exists"""


class IOrderRepository(ABC):
    """Abstract interface for order storage"""

    @abstractmethod
    async def create(self, order: Order) -> None:
        """Insert a new order"""
        pass

    @abstractmethod
    async def update(self, order: Order) -> None:
        """
        Write the order's mutable fields

        Raises:
            OrderNotFoundError: No order with this id
        """
        pass

    @abstractmethod
    async def find_by_id(self, order_id: str) -> Optional[Order]:
        """Get order by id, None if unknown"""
        pass

    @abstractmethod
    async def find_by_status(
        self,
        status: OrderStatus,
        limit: int = DEFAULT_LIST_LIMIT
    ) -> List[Order]:
        """Orders in a status, newest first"""
        pass

    @abstractmethod
    async def list_orders(
        self,
        status: Optional[OrderStatus] = None,
        limit: int = DEFAULT_LIST_LIMIT
    ) -> List[Order]:
        """Orders, optionally filtered by status, newest first"""
        pass

    async def close(self) -> None:
        """Release storage resources"""
        pass


class InMemoryOrderRepository(IOrderRepository):
    """Order store for tests and single-process runs"""

    def __init__(self):
        self.rows: Dict[str, OrderRow] = {}
        logger.info("Initialized InMemoryOrderRepository")

    async def create(self, order: Order) -> None:
        if order.id in self.rows:
            raise DuplicateOrderError(f"Order already exists: {order.id}")
        self.rows[order.id] = order_to_row(order)

    async def update(self, order: Order) -> None:
        existing = self.rows.get(order.id)
        if existing is None:
            raise OrderNotFoundError(f"Order not found: {order.id}")

        row = order_to_row(order)
        self.rows[order.id] = replace(
            existing,
            **{name: getattr(row, name) for name in MUTABLE_FIELDS}
        )

    async def find_by_id(self, order_id: str) -> Optional[Order]:
        row = self.rows.get(order_id)
        return row_to_order(row) if row else None

    async def find_by_status(
        self,
        status: OrderStatus,
        limit: int = DEFAULT_LIST_LIMIT
    ) -> List[Order]:
        return await self.list_orders(status=status, limit=limit)

    async def list_orders(
        self,
        status: Optional[OrderStatus] = None,
        limit: int = DEFAULT_LIST_LIMIT
    ) -> List[Order]:
        rows = [
            row for row in self.rows.values()
            if status is None or row.status == status.value
        ]
        rows.sort(key=lambda row: row.created_at, reverse=True)
        return [row_to_order(row) for row in rows[:limit]]
