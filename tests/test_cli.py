"""
Tests for the command-line interface
"""
import pytest
from typer.testing import CliRunner

import cli
from shared.utils.cache import InMemoryCache
from swaps.events import StatusHub
from swaps.execution import OrderProcessor, RetryPolicy
from swaps.persistence import InMemoryOrderRepository
from swaps.queue import OrderQueue
from swaps.routing import VenueRouter
from swaps.service import OrderService

from fakes import TX_HASH, RecordingSleep, StubVenue


runner = CliRunner()


@pytest.fixture
def stub_service(monkeypatch):
    """Route the submit command through stub venues"""
    async def create_service(config=None):
        repository = InMemoryOrderRepository()
        hub = StatusHub(cache=InMemoryCache())
        processor = OrderProcessor(
            VenueRouter([StubVenue("raydium", "99.5")]),
            repository,
            hub,
            RetryPolicy(max_retries=1, sleep=RecordingSleep()),
        )
        return OrderService(repository=repository, queue=OrderQueue(processor), hub=hub)

    monkeypatch.setattr(cli, "create_order_service", create_service)


class TestSubmitCommand:
    """Test the in-process submit command"""

    def test_confirmed_order_shows_transaction(self, stub_service):
        """A settled order prints its transaction panel"""
        result = runner.invoke(cli.app, ["submit", "SOL", "USDC", "100"])

        assert result.exit_code == 0
        assert "CONFIRMED" in result.output
        assert TX_HASH in result.output

    def test_failed_order_shows_error(self, stub_service):
        """A failed order prints its error, never a transaction panel"""
        result = runner.invoke(cli.app, ["submit", "SOL", "USDC", "100", "--min-amount-out", "150"])

        assert result.exit_code == 0
        assert "Slippage protection triggered" in result.output
        assert "Tx:" not in result.output
