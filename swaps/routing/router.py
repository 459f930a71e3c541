"""
Venue Router

Best-output routing across liquidity venues.

Quotes are requested from every venue in parallel because venue latency
dominates pipeline latency. A venue that errors or times out is dropped
from the round; the fetch only fails when no venue answers.

Selection: highest amount_out wins, ties go to the venue that appears
first in the quote list.
"""
import asyncio
from typing import Dict, Iterable, List, Optional
from loguru import logger

from swaps.orders import Quote, TradeRequest
from swaps.venues.base import IVenue
from swaps.errors import (
    BuildFailure,
    NoQuotesAvailable,
    RoutingFailure,
    SubmissionFailure,
    describe_error,
)


class VenueRouter:
    """
    Routes swaps to the venue with the best quote

    Also acts as the single entry point for building and submitting
    transactions, so the pipeline never talks to a venue directly.
    """

    def __init__(
        self,
        venues: Iterable[IVenue],
        quote_timeout: Optional[float] = 5.0
    ):
        """
        Initialize venue router

        Args:
            venues: Venues to route across, in tie-break order
            quote_timeout: Per-venue quote timeout in seconds (None = no timeout)
        """
        self.venues: Dict[str, IVenue] = {venue.name: venue for venue in venues}
        self.quote_timeout = quote_timeout

        logger.info(f"Initialized VenueRouter with {len(self.venues)} venues")

    async def fetch_quotes(self, request: TradeRequest) -> List[Quote]:
        """
        Query every venue concurrently

        Args:
            request: Trade to price

        Returns:
            One quote per venue that answered, in venue order

        Raises:
            RoutingFailure: No venue returned a quote
        """
        if not self.venues:
            raise RoutingFailure("No venues configured")

        names = list(self.venues.keys())
        results = await asyncio.gather(
            *(self._fetch_quote(self.venues[name], request) for name in names),
            return_exceptions=True
        )

        quotes: List[Quote] = []
        failures: List[str] = []

        for name, result in zip(names, results):
            if isinstance(result, Quote):
                quotes.append(result)
            elif isinstance(result, Exception):
                reason = describe_error(result)
                logger.warning(f"Venue {name} failed to quote: {reason}")
                failures.append(f"{name}: {reason}")
            else:
                raise result

        if not quotes:
            raise RoutingFailure(f"No venue returned a quote ({'; '.join(failures)})")

        return quotes

    async def _fetch_quote(self, venue: IVenue, request: TradeRequest) -> Quote:
        if self.quote_timeout is None:
            return await venue.get_quote(request)
        return await asyncio.wait_for(venue.get_quote(request), timeout=self.quote_timeout)

    def select_best_venue(self, quotes: List[Quote]) -> Quote:
        """
        Pick the quote with the highest output

        Args:
            quotes: Candidate quotes (not modified)

        Returns:
            Best quote, first one wins on ties

        Raises:
            NoQuotesAvailable: quotes is empty
        """
        if not quotes:
            raise NoQuotesAvailable()

        best = quotes[0]
        for quote in quotes[1:]:
            if quote.amount_out > best.amount_out:
                best = quote

        logger.info(f"Selected {best.venue} with output: {best.amount_out}")

        for quote in quotes:
            logger.debug(f"  {quote.venue}: {quote.amount_out} (liquidity: {quote.liquidity})")

        return best

    async def build_transaction(self, quote: Quote, request: TradeRequest) -> str:
        """
        Build a transaction on the quote's venue

        Raises:
            BuildFailure: Unknown venue or the venue failed to build
        """
        venue = self.venues.get(quote.venue)
        if venue is None:
            raise BuildFailure(f"Unknown venue: {quote.venue}")

        try:
            return await venue.build_transaction(quote, request)
        except Exception as e:
            raise BuildFailure(f"Failed to build transaction: {describe_error(e)}") from e

    async def submit_transaction(self, tx_hash: str, venue_name: str) -> bool:
        """
        Submit a built transaction

        Returns:
            True if settled, False if the venue rejected it. Errors raised by
            the venue propagate unchanged.
        """
        venue = self.venues.get(venue_name)
        if venue is None:
            raise SubmissionFailure(f"Unknown venue: {venue_name}")

        return await venue.submit_transaction(tx_hash)

    def add_venue(self, venue: IVenue) -> None:
        """Add venue to routing table"""
        self.venues[venue.name] = venue
        logger.info(f"Added venue to router: {venue.name}")

    def remove_venue(self, name: str) -> None:
        """Remove venue from routing table"""
        if name in self.venues:
            del self.venues[name]
            logger.info(f"Removed venue from router: {name}")

    def get_available_venues(self) -> List[str]:
        """Get list of venue names"""
        return list(self.venues.keys())
