"""
Base interface for liquidity venues

A venue quotes a swap, builds a transaction against its own pools and
submits it. Implementations must be safe to call concurrently for
different requests.
"""
from abc import ABC, abstractmethod

from swaps.orders import Quote, TradeRequest


class IVenue(ABC):
    """Interface for a single liquidity venue (DEX)"""

    @property
    @abstractmethod
    def name(self) -> str:
        """Venue identifier (e.g., 'raydium')"""
        pass

    @abstractmethod
    async def get_quote(self, request: TradeRequest) -> Quote:
        """
        Price a swap on this venue

        Args:
            request: Trade to price

        Returns:
            Quote for this venue
        """
        pass

    @abstractmethod
    async def build_transaction(self, quote: Quote, request: TradeRequest) -> str:
        """
        Build a swap transaction bound to a quote

        Args:
            quote: Quote previously returned by this venue
            request: Trade being executed

        Returns:
            Transaction reference (hash)
        """
        pass

    @abstractmethod
    async def submit_transaction(self, tx_hash: str) -> bool:
        """
        Submit a built transaction and wait for settlement

        Args:
            tx_hash: Reference returned by build_transaction

        Returns:
            True if the transaction settled, False if it was rejected
        """
        pass
