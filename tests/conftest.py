"""
Shared fixtures
"""
import pytest

from shared.utils.cache import InMemoryCache
from swaps.events import StatusHub
from swaps.execution import OrderProcessor, RetryPolicy
from swaps.persistence import InMemoryOrderRepository
from swaps.routing import VenueRouter

from fakes import FakeClock, RecordingSleep, StubVenue


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def cache(clock):
    return InMemoryCache(clock=clock)


@pytest.fixture
def hub(cache):
    return StatusHub(cache=cache, ttl_seconds=3600)


@pytest.fixture
def repository():
    return InMemoryOrderRepository()


@pytest.fixture
def venues():
    return [
        StubVenue("raydium", amount_out="99.5"),
        StubVenue("meteora", amount_out="98.7"),
    ]


@pytest.fixture
def router(venues):
    return VenueRouter(venues, quote_timeout=1.0)


@pytest.fixture
def retry_policy(recording_sleep):
    return RetryPolicy(max_retries=3, backoff_base=2.0, sleep=recording_sleep)


@pytest.fixture
def processor(router, repository, hub, retry_policy):
    return OrderProcessor(router, repository, hub, retry_policy)
