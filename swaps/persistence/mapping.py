"""
Order <-> row mapping

OrderRow is the storage-side shape of an order: plain strings for every
amount and enum, so nothing passes through a float on the way in or out.
row_to_order is total: it either returns a valid Order or raises
RowMappingError naming what was wrong.
"""
from dataclasses import asdict, dataclass, fields
from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from swaps.orders import Order, OrderStatus, OrderType, parse_decimal


class RowMappingError(ValueError):
    """A stored row cannot be turned into an Order"""


@dataclass(frozen=True)
class OrderRow:
    """One row of the orders table"""
    id: str
    type: str
    token_in: str
    token_out: str
    amount_in: str
    amount_out: Optional[str]
    slippage_tolerance: str
    min_amount_out: Optional[str]
    status: str
    dex_provider: Optional[str]
    execution_price: Optional[str]
    tx_hash: Optional[str]
    error: Optional[str]
    retry_count: int
    created_at: datetime
    updated_at: datetime


ROW_FIELDS = tuple(f.name for f in fields(OrderRow))

# Columns rewritten by update(); everything else is fixed at creation
MUTABLE_FIELDS = (
    "status",
    "amount_out",
    "dex_provider",
    "execution_price",
    "tx_hash",
    "error",
    "retry_count",
    "updated_at",
)

REQUIRED_FIELDS = (
    "id",
    "type",
    "token_in",
    "token_out",
    "amount_in",
    "slippage_tolerance",
    "status",
    "retry_count",
    "created_at",
    "updated_at",
)


def _decimal_str(value: Optional[Decimal]) -> Optional[str]:
    return None if value is None else str(value)


def _optional_decimal(data: Mapping[str, Any], field: str) -> Optional[Decimal]:
    value = data.get(field)
    if value is None or value == "":
        return None
    return parse_decimal(value, field)


def order_to_row(order: Order) -> OrderRow:
    return OrderRow(
        id=order.id,
        type=order.order_type.value,
        token_in=order.token_in,
        token_out=order.token_out,
        amount_in=str(order.amount_in),
        amount_out=_decimal_str(order.amount_out),
        slippage_tolerance=str(order.slippage_tolerance),
        min_amount_out=_decimal_str(order.min_amount_out),
        status=order.status.value,
        dex_provider=order.venue,
        execution_price=_decimal_str(order.execution_price),
        tx_hash=order.tx_hash,
        error=order.error,
        retry_count=order.retry_count,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def row_to_order(row: Union[OrderRow, Mapping[str, Any]]) -> Order:
    """
    Build an Order from a stored row

    Args:
        row: OrderRow or any mapping with the same keys (e.g. a SQLAlchemy
            RowMapping)

    Raises:
        RowMappingError: Missing required column or unparseable value
    """
    data = asdict(row) if isinstance(row, OrderRow) else dict(row)

    missing = [name for name in REQUIRED_FIELDS if data.get(name) is None]
    if missing:
        raise RowMappingError(f"Order row {data.get('id')!r} is missing {', '.join(missing)}")

    try:
        return Order(
            id=str(data["id"]),
            order_type=OrderType(data["type"]),
            token_in=data["token_in"],
            token_out=data["token_out"],
            amount_in=parse_decimal(data["amount_in"], "amount_in"),
            amount_out=_optional_decimal(data, "amount_out"),
            slippage_tolerance=parse_decimal(data["slippage_tolerance"], "slippage_tolerance"),
            min_amount_out=_optional_decimal(data, "min_amount_out"),
            status=OrderStatus(data["status"]),
            venue=data.get("dex_provider"),
            execution_price=_optional_decimal(data, "execution_price"),
            tx_hash=data.get("tx_hash"),
            error=data.get("error"),
            retry_count=int(data["retry_count"]),
            created_at=data["created_at"],
            updated_at=data["updated_at"],
        )
    except (ValueError, TypeError, ValidationError) as e:
        raise RowMappingError(f"Malformed order row {data.get('id')!r}: {e}") from e
