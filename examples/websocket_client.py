"""
Example: Submit an order and follow its status stream

Demonstrates how to:
1. Submit an order via POST /api/orders/execute
2. Connect to /api/orders/{order_id}/status
3. Print every status update until the order is confirmed or failed

Usage:
    python run.py                              # in another terminal
    python examples/websocket_client.py
    python examples/websocket_client.py --order-id <existing id>

Set BASE_URL to point at another server (default http://localhost:3000).
"""
import argparse
import asyncio
import json
import os
from typing import Optional
import aiohttp
import websockets
from loguru import logger


BASE_URL = os.environ.get("BASE_URL", "http://localhost:3000")

TERMINAL = ("confirmed", "failed")


async def submit_order(
    token_in: str,
    token_out: str,
    amount_in: str,
    min_amount_out: Optional[str] = None
) -> str:
    """Submit an order and return its id"""
    payload = {
        "order_type": "market",
        "token_in": token_in,
        "token_out": token_out,
        "amount_in": amount_in,
    }
    if min_amount_out:
        payload["min_amount_out"] = min_amount_out

    async with aiohttp.ClientSession() as session:
        async with session.post(f"{BASE_URL}/api/orders/execute", json=payload) as response:
            body = await response.json()
            if response.status != 200:
                raise RuntimeError(f"Order rejected ({response.status}): {body}")

    logger.info(f"✓ Submitted order {body['order_id']}")
    return body["order_id"]


async def follow_order(order_id: str) -> None:
    """Print status updates for one order until it finishes"""
    ws_url = BASE_URL.replace("http", "ws", 1) + f"/api/orders/{order_id}/status"

    async with websockets.connect(ws_url) as ws:
        logger.info(f"Connected to order {order_id}, waiting for updates...\n")

        async for raw in ws:
            update = json.loads(raw)

            if "error" in update and "status" not in update:
                logger.error(f"✗ {update['error']}: {update.get('order_id')}")
                return

            logger.info(f"📊 {update['status'].upper()}: {update.get('message') or ''}")
            if update.get("venue"):
                logger.info(f"   Venue: {update['venue']}")
            if update.get("execution_price"):
                logger.info(f"   Execution price: {update['execution_price']}")
            if update.get("tx_hash"):
                logger.info(f"   Transaction: {update['tx_hash']}")
            if update.get("error"):
                logger.warning(f"   Error: {update['error']}")

            if update["status"] in TERMINAL:
                logger.info("Order processing complete")
                return


async def main():
    parser = argparse.ArgumentParser(description="SwapRoute status stream client")
    parser.add_argument("--order-id", help="Follow an existing order instead of submitting one")
    parser.add_argument("--token-in", default="SOL")
    parser.add_argument("--token-out", default="USDC")
    parser.add_argument("--amount", default="1.5")
    parser.add_argument("--min-amount-out", default=None)
    args = parser.parse_args()

    order_id = args.order_id or await submit_order(
        args.token_in, args.token_out, args.amount, args.min_amount_out
    )
    await follow_order(order_id)


if __name__ == "__main__":
    asyncio.run(main())
