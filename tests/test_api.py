"""
Tests for the HTTP and WebSocket API
"""
import asyncio
import time
import pytest
from fastapi.testclient import TestClient

from shared.utils.cache import InMemoryCache
from swaps.events import StatusHub
from swaps.execution import OrderProcessor, RetryPolicy
from swaps.persistence import InMemoryOrderRepository
from swaps.queue import OrderQueue
from swaps.routing import VenueRouter
from swaps.service import CONNECTED_MESSAGE, SUBMITTED_MESSAGE, OrderService
from api.main import create_app

from fakes import RecordingSleep, StubVenue, make_order


TERMINAL = {"confirmed", "failed"}


def _build_service(venues) -> OrderService:
    repository = InMemoryOrderRepository()
    hub = StatusHub(cache=InMemoryCache())
    processor = OrderProcessor(
        VenueRouter(venues),
        repository,
        hub,
        RetryPolicy(max_retries=3, sleep=RecordingSleep()),
    )
    return OrderService(
        repository=repository,
        queue=OrderQueue(processor, concurrency=2),
        hub=hub,
    )


@pytest.fixture
def client():
    service = _build_service([StubVenue("raydium", "99.5"), StubVenue("meteora", "98.7")])
    with TestClient(create_app(service)) as client:
        yield client


@pytest.fixture
def slow_client():
    service = _build_service([StubVenue("raydium", "99.5", quote_delay=0.3)])
    with TestClient(create_app(service)) as client:
        yield client


def _wait_for_terminal(client, order_id, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        body = client.get(f"/api/orders/{order_id}").json()
        if body["status"] in TERMINAL:
            return body
        time.sleep(0.02)
    raise AssertionError(f"order {order_id} did not finish")


def _submit(client, **overrides):
    payload = {"token_in": "SOL", "token_out": "USDC", "amount_in": "100"}
    payload.update(overrides)
    return client.post("/api/orders/execute", json=payload)


class TestHealth:
    """Test service endpoints"""

    def test_health(self, client):
        """Health reports status, environment and time"""
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert "environment" in body
        assert "timestamp" in body

    def test_root(self, client):
        """Root reports name and version"""
        assert client.get("/").json()["status"] == "running"


class TestOrderEndpoints:
    """Test order intake and reads"""

    def test_execute_order(self, client):
        """Valid request is accepted and executed"""
        response = _submit(client)

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == SUBMITTED_MESSAGE

        final = _wait_for_terminal(client, body["order_id"])
        assert final["status"] == "confirmed"
        assert final["venue"] == "raydium"
        assert final["amount_out"] == "99.5"
        assert final["amount_in"] == "100"

    @pytest.mark.parametrize("payload", [
        {"token_in": "SOL", "token_out": "USDC"},
        {"token_in": "SOL", "token_out": "USDC", "amount_in": 100},
        {"token_in": "SOL", "token_out": "USDC", "amount_in": "abc"},
        {"token_in": "SOL", "token_out": "USDC", "amount_in": "0"},
        {"token_in": "SOL", "token_out": "USDC", "amount_in": "1", "slippage_tolerance": 80},
        {"token_in": "SOL", "token_out": "USDC", "amount_in": "1", "order_type": "twap"},
    ])
    def test_invalid_request(self, client, payload):
        """Malformed bodies are rejected with 422"""
        response = client.post("/api/orders/execute", json=payload)

        assert response.status_code == 422

    def test_get_unknown_order(self, client):
        """Unknown id gives 404"""
        response = client.get("/api/orders/does-not-exist")

        assert response.status_code == 404
        assert response.json()["detail"] == "Order not found"

    def test_slippage_failure(self, client):
        """Unreachable minimum output ends FAILED"""
        order_id = _submit(client, min_amount_out="150").json()["order_id"]

        final = _wait_for_terminal(client, order_id)

        assert final["status"] == "failed"
        assert final["error"].startswith("Slippage protection triggered")

    def test_list_and_stats(self, client):
        """Listing and queue counters reflect processed orders"""
        ids = [_submit(client).json()["order_id"] for _ in range(3)]
        for order_id in ids:
            _wait_for_terminal(client, order_id)

        listed = client.get("/api/orders", params={"status": "confirmed"}).json()["orders"]
        assert {o["id"] for o in listed} == set(ids)

        assert len(client.get("/api/orders", params={"limit": 2}).json()["orders"]) == 2
        assert client.get("/api/orders", params={"limit": 0}).status_code == 422

        stats = client.get("/api/queue/stats").json()
        assert stats["completed"] == 3
        assert stats["failed"] == 0
        assert set(stats) == {"waiting", "active", "completed", "failed", "total"}


class TestStatusStream:
    """Test the WebSocket status stream"""

    def test_unknown_order(self, client):
        """Unknown id gets an error message"""
        with client.websocket_connect("/api/orders/missing/status") as ws:
            assert ws.receive_json() == {"error": "Order not found", "order_id": "missing"}

    def test_stream_until_terminal(self, slow_client):
        """First message is the connection snapshot, last is terminal"""
        order_id = _submit(slow_client).json()["order_id"]

        with slow_client.websocket_connect(f"/api/orders/{order_id}/status") as ws:
            messages = [ws.receive_json()]
            while messages[-1]["status"] not in TERMINAL:
                messages.append(ws.receive_json())

        assert messages[0]["message"] == CONNECTED_MESSAGE
        assert messages[0]["order_id"] == order_id
        assert messages[-1]["status"] == "confirmed"
        assert messages[-1]["message"] == "Transaction successful"
        assert len(messages[-1]["tx_hash"]) == 64

    def test_stream_after_completion(self, client):
        """A finished order yields one terminal snapshot"""
        order_id = _submit(client).json()["order_id"]
        _wait_for_terminal(client, order_id)

        with client.websocket_connect(f"/api/orders/{order_id}/status") as ws:
            message = ws.receive_json()

        assert message["status"] == "confirmed"
        assert message["message"] == CONNECTED_MESSAGE

    def test_disconnect_releases_subscription(self):
        """Closing the socket unsubscribes even if the order never moves"""
        service = _build_service([StubVenue("raydium", "99.5")])
        order = make_order()
        asyncio.run(service.repository.create(order))

        with TestClient(create_app(service)) as client:
            with client.websocket_connect(f"/api/orders/{order.id}/status") as ws:
                assert ws.receive_json()["status"] == "pending"
                assert service.hub.subscriber_count(order.id) == 1

            deadline = time.monotonic() + 5.0
            while service.hub.subscriber_count(order.id) and time.monotonic() < deadline:
                time.sleep(0.02)

            assert service.hub.subscriber_count(order.id) == 0
