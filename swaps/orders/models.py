"""
Order data model

Order lifecycle (one attempt):
    PENDING -> ROUTING -> BUILDING -> SUBMITTED -> CONFIRMED
FAILED can be reached from any non-terminal status. A retry starts a new
attempt back at PENDING; retry_count grows on every restart, so
(retry_count, status) only ever moves forward.

All amounts are Decimal in memory and decimal strings on the wire.
"""
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_SLIPPAGE = Decimal("1.0")
MAX_SLIPPAGE = Decimal("50")
DECIMAL_PATTERN = r"^\d+(\.\d+)?$"


class OrderType(str, Enum):
    """Order type"""
    MARKET = "market"
    LIMIT = "limit"
    SNIPER = "sniper"


class OrderStatus(str, Enum):
    """Order execution status"""
    PENDING = "pending"
    ROUTING = "routing"
    BUILDING = "building"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({OrderStatus.CONFIRMED, OrderStatus.FAILED})

# Success path, in order
STATUS_SEQUENCE = (
    OrderStatus.PENDING,
    OrderStatus.ROUTING,
    OrderStatus.BUILDING,
    OrderStatus.SUBMITTED,
    OrderStatus.CONFIRMED,
)


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """
    Check whether an order may move from current to target

    Terminal orders never move. PENDING is the entry point of every
    attempt, FAILED is reachable from anywhere else, and the remaining
    statuses advance exactly one step along STATUS_SEQUENCE.
    """
    if current.is_terminal:
        return False

    if target in (OrderStatus.PENDING, OrderStatus.FAILED):
        return True

    return STATUS_SEQUENCE.index(target) == STATUS_SEQUENCE.index(current) + 1


class TradeRequest(BaseModel):
    """What a venue needs to quote and build a swap"""
    model_config = ConfigDict(frozen=True)

    order_type: OrderType = OrderType.MARKET
    token_in: str
    token_out: str
    amount_in: Decimal
    slippage_tolerance: Decimal = DEFAULT_SLIPPAGE
    min_amount_out: Optional[Decimal] = None


class OrderRequest(BaseModel):
    """
    Incoming swap request, as submitted by a client

    Amounts must be decimal strings; JSON numbers are rejected so that no
    value ever passes through a binary float.
    """
    order_type: OrderType = Field(default=OrderType.MARKET, description="market, limit or sniper")
    token_in: str = Field(min_length=1, description="Input token address or symbol")
    token_out: str = Field(min_length=1, description="Output token address or symbol")
    amount_in: str = Field(pattern=DECIMAL_PATTERN, description="Input amount as a decimal string")
    slippage_tolerance: Optional[Decimal] = Field(
        default=None,
        ge=0,
        le=MAX_SLIPPAGE,
        description="Slippage tolerance in percent (default 1%)"
    )
    min_amount_out: Optional[str] = Field(
        default=None,
        pattern=DECIMAL_PATTERN,
        description="Minimum acceptable output amount as a decimal string"
    )

    @field_validator("amount_in")
    @classmethod
    def _positive_amount(cls, value: str) -> str:
        if Decimal(value) <= 0:
            raise ValueError("amount_in must be greater than zero")
        return value

    def to_order(self, default_slippage: Decimal = DEFAULT_SLIPPAGE) -> "Order":
        """Create a fresh PENDING order from this request"""
        now = datetime.utcnow()
        return Order(
            order_type=self.order_type,
            token_in=self.token_in,
            token_out=self.token_out,
            amount_in=Decimal(self.amount_in),
            slippage_tolerance=(
                self.slippage_tolerance
                if self.slippage_tolerance is not None
                else default_slippage
            ),
            min_amount_out=Decimal(self.min_amount_out) if self.min_amount_out else None,
            status=OrderStatus.PENDING,
            retry_count=0,
            created_at=now,
            updated_at=now,
        )


class Order(BaseModel):
    """A swap order and everything learned while executing it"""

    # Identity
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))

    # Trade parameters
    order_type: OrderType = OrderType.MARKET
    token_in: str
    token_out: str
    amount_in: Decimal
    slippage_tolerance: Decimal = DEFAULT_SLIPPAGE
    min_amount_out: Optional[Decimal] = None

    # Execution results
    venue: Optional[str] = None
    amount_out: Optional[Decimal] = None
    execution_price: Optional[Decimal] = None
    tx_hash: Optional[str] = None
    error: Optional[str] = None

    # Bookkeeping
    status: OrderStatus = OrderStatus.PENDING
    retry_count: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def to_trade_request(self) -> TradeRequest:
        return TradeRequest(
            order_type=self.order_type,
            token_in=self.token_in,
            token_out=self.token_out,
            amount_in=self.amount_in,
            slippage_tolerance=self.slippage_tolerance,
            min_amount_out=self.min_amount_out,
        )

    def to_wire(self) -> dict[str, Any]:
        """JSON-safe dict (Decimals become strings)"""
        return self.model_dump(mode="json")


class Quote(BaseModel):
    """A venue's priced offer for one trade request"""
    model_config = ConfigDict(frozen=True)

    venue: str = Field(description="Venue identifier, e.g. 'raydium'")
    amount_out: Decimal = Field(description="Quoted output amount")
    price: Decimal = Field(description="Quoted unit price (out per in)")
    liquidity: Decimal = Field(description="Available liquidity")
    estimated_fee: Optional[Decimal] = Field(default=None, description="Estimated network fee")


class StatusUpdate(BaseModel):
    """
    Snapshot broadcast on every status transition

    Never carries more than the order's own projection at the time of the
    transition, and never internal detail such as tracebacks.
    """
    model_config = ConfigDict(frozen=True)

    order_id: str
    status: OrderStatus
    message: Optional[str] = None
    venue: Optional[str] = None
    execution_price: Optional[Decimal] = None
    tx_hash: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def from_order(cls, order: Order, message: Optional[str] = None) -> "StatusUpdate":
        return cls(
            order_id=order.id,
            status=order.status,
            message=message,
            venue=order.venue,
            execution_price=order.execution_price,
            tx_hash=order.tx_hash,
            error=order.error,
        )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


def parse_decimal(value: Any, field: str) -> Decimal:
    """Parse a decimal string, naming the field on failure"""
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"{field} is not a valid decimal: {value!r}") from e
