"""
Simulated venues for development and tests

Models a constant-product DEX loosely:
- network latency on every call
- output as a random fraction of the input (price band)
- random pool liquidity
- a fixed fee estimate
- a configurable settlement failure rate

Presets mirror the two Solana venues the service was built around:
Raydium usually quotes 98-100% of the input, Meteora 96-99%.
"""
import asyncio
import random
from dataclasses import dataclass, replace
from decimal import Decimal, localcontext
from typing import Optional
from loguru import logger

from swaps.orders import Quote, TradeRequest
from .base import IVenue


AMOUNT_QUANTUM = Decimal("0.00000001")
LIQUIDITY_QUANTUM = Decimal("0.01")

RAYDIUM = "raydium"
METEORA = "meteora"


def _digits_needed(amount: Decimal) -> int:
    """Precision that keeps amount * multiplier and its 8-place rounding exact"""
    integer_digits = max(amount.adjusted() + 1, 1)
    return integer_digits + len(amount.as_tuple().digits) + 16


@dataclass
class VenueProfile:
    """Behaviour of a simulated venue"""
    price_band: tuple[float, float]  # Output as a fraction of input
    liquidity_band: tuple[float, float]
    estimated_fee: Decimal
    quote_latency: tuple[float, float] = (0.5, 1.5)  # Seconds
    build_latency: tuple[float, float] = (1.0, 2.0)
    submit_latency: tuple[float, float] = (1.0, 2.0)
    failure_rate: float = 0.1  # Probability a submission does not settle


RAYDIUM_PROFILE = VenueProfile(
    price_band=(0.98, 1.00),
    liquidity_band=(500_000, 1_500_000),
    estimated_fee=Decimal("0.0005"),
)

METEORA_PROFILE = VenueProfile(
    price_band=(0.96, 0.99),
    liquidity_band=(300_000, 1_100_000),
    estimated_fee=Decimal("0.0006"),
)


class SimulatedVenue(IVenue):
    """
    Simulated DEX

    Deterministic when given a seed, instant when latency_scale is 0.
    """

    def __init__(
        self,
        name: str,
        profile: VenueProfile,
        latency_scale: float = 1.0,
        seed: Optional[int] = None
    ):
        """
        Initialize simulated venue

        Args:
            name: Venue identifier
            profile: Pricing / latency / failure behaviour
            latency_scale: Multiplier applied to every simulated delay
            seed: Random seed for reproducible runs
        """
        self._name = name
        self.profile = profile
        self.latency_scale = latency_scale
        self._rng = random.Random(seed)

        logger.info(f"Initialized SimulatedVenue: {name}")

    @property
    def name(self) -> str:
        return self._name

    async def get_quote(self, request: TradeRequest) -> Quote:
        await self._delay(self.profile.quote_latency)

        low, high = self.profile.price_band
        multiplier = Decimal(str(round(self._rng.uniform(low, high), 8)))
        with localcontext() as ctx:
            ctx.prec = max(ctx.prec, _digits_needed(request.amount_in))
            amount_out = (request.amount_in * multiplier).quantize(AMOUNT_QUANTUM)
            price = (amount_out / request.amount_in).quantize(AMOUNT_QUANTUM)

        liq_low, liq_high = self.profile.liquidity_band
        liquidity = Decimal(str(self._rng.uniform(liq_low, liq_high))).quantize(LIQUIDITY_QUANTUM)

        quote = Quote(
            venue=self.name,
            amount_out=amount_out,
            price=price,
            liquidity=liquidity,
            estimated_fee=self.profile.estimated_fee,
        )

        logger.debug(f"{self.name} quote: {request.amount_in} {request.token_in} -> {amount_out} {request.token_out}")
        return quote

    async def build_transaction(self, quote: Quote, request: TradeRequest) -> str:
        await self._delay(self.profile.build_latency)
        return self._mock_tx_hash()

    async def submit_transaction(self, tx_hash: str) -> bool:
        await self._delay(self.profile.submit_latency)

        settled = self._rng.random() >= self.profile.failure_rate
        if not settled:
            logger.debug(f"{self.name} rejected transaction {tx_hash[:12]}...")
        return settled

    def _mock_tx_hash(self) -> str:
        return "".join(self._rng.choice("0123456789abcdef") for _ in range(64))

    async def _delay(self, bounds: tuple[float, float]) -> None:
        if self.latency_scale <= 0:
            return
        low, high = bounds
        await asyncio.sleep(self._rng.uniform(low, high) * self.latency_scale)


def create_default_venues(
    latency_scale: float = 1.0,
    failure_rate: Optional[float] = None,
    seed: Optional[int] = None
) -> list[IVenue]:
    """
    Factory for the standard Raydium + Meteora pair

    Args:
        latency_scale: Multiplier for simulated delays (0 = instant)
        failure_rate: Override both venues' settlement failure rate
        seed: Base random seed (each venue gets its own offset)

    Returns:
        List of venues in routing order
    """
    profiles = [(RAYDIUM, RAYDIUM_PROFILE), (METEORA, METEORA_PROFILE)]
    venues: list[IVenue] = []

    for offset, (name, profile) in enumerate(profiles):
        if failure_rate is not None:
            profile = replace(profile, failure_rate=failure_rate)
        venues.append(
            SimulatedVenue(
                name=name,
                profile=profile,
                latency_scale=latency_scale,
                seed=None if seed is None else seed + offset,
            )
        )

    return venues
