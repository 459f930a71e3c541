"""
Liquidity venues

Usage:
    from swaps.venues import create_default_venues

    venues = create_default_venues(latency_scale=0)  # instant, for tests
    quote = await venues[0].get_quote(order.to_trade_request())
"""

from .base import IVenue
from .simulated import (
    METEORA,
    METEORA_PROFILE,
    RAYDIUM,
    RAYDIUM_PROFILE,
    SimulatedVenue,
    VenueProfile,
    create_default_venues,
)

__all__ = [
    "IVenue",
    "SimulatedVenue",
    "VenueProfile",
    "RAYDIUM",
    "METEORA",
    "RAYDIUM_PROFILE",
    "METEORA_PROFILE",
    "create_default_venues",
]
