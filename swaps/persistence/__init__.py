"""
Order persistence

Backends:
- InMemoryOrderRepository: process-local, for tests and demos
- SqlOrderRepository: PostgreSQL / SQLite through SQLAlchemy async

Usage:
    repo = create_repository(settings.database)
    await repo.create(order)
    stored = await repo.find_by_id(order.id)
"""
from typing import TYPE_CHECKING

from .mapping import (
    MUTABLE_FIELDS,
    OrderRow,
    RowMappingError,
    order_to_row,
    row_to_order,
)
from .repository import (
    DEFAULT_LIST_LIMIT,
    DuplicateOrderError,
    IOrderRepository,
    InMemoryOrderRepository,
    OrderNotFoundError,
)

if TYPE_CHECKING:
    from shared.config.settings import DatabaseSettings


async def create_repository(database: "DatabaseSettings") -> IOrderRepository:
    """
    Build the order repository selected by settings

    The SQL backend is imported lazily so the in-memory mode runs without
    database drivers installed.
    """
    if database.backend == "memory":
        return InMemoryOrderRepository()

    if database.backend == "sql":
        from .sql import SqlOrderRepository

        pool_size = None if database.sqlalchemy_url.startswith("sqlite") else database.pool_size
        repository = SqlOrderRepository(
            url=database.sqlalchemy_url,
            echo=database.echo,
            pool_size=pool_size,
        )
        await repository.create_tables()
        return repository

    raise ValueError(f"Unknown database backend: {database.backend}")


__all__ = [
    "DEFAULT_LIST_LIMIT",
    "MUTABLE_FIELDS",
    "DuplicateOrderError",
    "IOrderRepository",
    "InMemoryOrderRepository",
    "OrderNotFoundError",
    "OrderRow",
    "RowMappingError",
    "create_repository",
    "order_to_row",
    "row_to_order",
]
