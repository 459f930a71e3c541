"""
SQL order repository

SQLAlchemy async Core over the `orders` table. Works with PostgreSQL
(asyncpg) in production and SQLite (aiosqlite) in tests. Amounts are
stored as VARCHAR decimal strings.
"""
from dataclasses import asdict
from typing import List, Optional
from loguru import logger

from sqlalchemy import (
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    select,
)
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from swaps.orders import Order, OrderStatus
from .mapping import MUTABLE_FIELDS, order_to_row, row_to_order
from .repository import (
    DEFAULT_LIST_LIMIT,
    IOrderRepository,
    OrderNotFoundError,
)


metadata = MetaData()

orders_table = Table(
    "orders",
    metadata,
    Column("id", String(255), primary_key=True),
    Column("type", String(50), nullable=False),
    Column("token_in", String(255), nullable=False),
    Column("token_out", String(255), nullable=False),
    Column("amount_in", String(255), nullable=False),
    Column("amount_out", String(255)),
    Column("slippage_tolerance", String(32), nullable=False, default="1.0"),
    Column("min_amount_out", String(255)),
    Column("status", String(50), nullable=False),
    Column("dex_provider", String(50)),
    Column("execution_price", String(255)),
    Column("tx_hash", String(255)),
    Column("error", Text),
    Column("retry_count", Integer, nullable=False, default=0),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
    Index("idx_orders_status", "status"),
    Index("idx_orders_created_at", "created_at"),
    Index("idx_orders_tx_hash", "tx_hash"),
)


class SqlOrderRepository(IOrderRepository):
    """Order store backed by a relational database"""

    def __init__(
        self,
        url: Optional[str] = None,
        engine: Optional[AsyncEngine] = None,
        echo: bool = False,
        pool_size: Optional[int] = None
    ):
        """
        Initialize SQL repository

        Args:
            url: SQLAlchemy async URL (e.g. postgresql+asyncpg://...)
            engine: Existing engine, takes precedence over url
            echo: Log SQL statements
            pool_size: Connection pool size (server databases only)
        """
        if engine is None and url is None:
            raise ValueError("Either url or engine is required")

        if engine is None:
            options = {"echo": echo}
            if pool_size is not None:
                options["pool_size"] = pool_size
            engine = create_async_engine(url, **options)

        self.engine = engine

        logger.info(f"Initialized SqlOrderRepository: {self.engine.url.render_as_string(hide_password=True)}")

    async def create_tables(self) -> None:
        """Create the orders table and its indexes if missing"""
        async with self.engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
        logger.info("Order tables ready")

    async def create(self, order: Order) -> None:
        row = order_to_row(order)
        async with self.engine.begin() as conn:
            await conn.execute(orders_table.insert().values(**asdict(row)))

    async def update(self, order: Order) -> None:
        row = order_to_row(order)
        values = {name: getattr(row, name) for name in MUTABLE_FIELDS}

        async with self.engine.begin() as conn:
            result = await conn.execute(
                orders_table.update()
                .where(orders_table.c.id == order.id)
                .values(**values)
            )

        if result.rowcount == 0:
            raise OrderNotFoundError(f"Order not found: {order.id}")

    async def find_by_id(self, order_id: str) -> Optional[Order]:
        async with self.engine.connect() as conn:
            result = await conn.execute(
                select(orders_table).where(orders_table.c.id == order_id)
            )
            row = result.mappings().first()

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
        query = select(orders_table)
        if status is not None:
            query = query.where(orders_table.c.status == status.value)
        query = query.order_by(orders_table.c.created_at.desc()).limit(limit)

        async with self.engine.connect() as conn:
            result = await conn.execute(query)
            rows = result.mappings().all()

        return [row_to_order(row) for row in rows]

    async def close(self) -> None:
        await self.engine.dispose()
        logger.info("Closed SqlOrderRepository")
