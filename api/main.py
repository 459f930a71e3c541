"""
FastAPI application for SwapRoute
"""
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional
import asyncio
from fastapi import FastAPI, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from loguru import logger
import uvicorn

from shared.config.settings import settings
from swaps.orders import OrderRequest, OrderStatus, StatusUpdate
from swaps.persistence import DEFAULT_LIST_LIMIT
from swaps.queue import QueueClosedError, QueueStats
from swaps.service import SUBMITTED_MESSAGE, OrderService, create_order_service


# API Models
class ExecuteOrderResponse(BaseModel):
    """Acknowledgement of a submitted order"""
    order_id: str = Field(description="Identifier to poll or stream")
    message: str = Field(description="Human-readable acknowledgement")


async def _next_update(
    websocket: WebSocket,
    updates: "asyncio.Queue[StatusUpdate]"
) -> StatusUpdate:
    """
    Wait for the next status update while watching the client

    Raises:
        WebSocketDisconnect: The client went away first
    """
    while True:
        next_update = asyncio.ensure_future(updates.get())
        client_message = asyncio.ensure_future(websocket.receive())

        try:
            done, _ = await asyncio.wait(
                {next_update, client_message},
                return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (next_update, client_message):
                if not task.done():
                    task.cancel()

        if client_message in done:
            message = client_message.result()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(code=message.get("code", 1000))

        if next_update in done:
            return next_update.result()

        # Anything else the client sends is ignored


def create_app(service: Optional[OrderService] = None) -> FastAPI:
    """
    Build the API application

    Args:
        service: Pre-built order service (tests). When omitted, one is
            created from settings at startup.
    """
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Start the order service on startup, close it on shutdown"""
        logger.info(f"Starting {settings.app_name} API server...")

        if app.state.service is None:
            app.state.service = await create_order_service()
        await app.state.service.start()

        logger.info("Order service ready")

        yield

        logger.info(f"Shutting down {settings.app_name} API server...")
        await app.state.service.close()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Swap order execution with best-venue routing and live status streams",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.service = service

    def get_service() -> OrderService:
        if app.state.service is None:
            raise HTTPException(status_code=503, detail="Service not initialized")
        return app.state.service

    # Health check endpoints
    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "status": "running"
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "environment": settings.environment,
            "timestamp": datetime.utcnow().isoformat()
        }

    # Order endpoints
    @app.post("/api/orders/execute", response_model=ExecuteOrderResponse)
    async def execute_order(request: OrderRequest):
        """Submit an order for execution"""
        try:
            order = await get_service().submit(request)
        except QueueClosedError as e:
            raise HTTPException(status_code=503, detail=str(e))

        return ExecuteOrderResponse(order_id=order.id, message=SUBMITTED_MESSAGE)

    @app.get("/api/orders")
    async def list_orders(
        status: Optional[OrderStatus] = None,
        limit: int = Query(default=DEFAULT_LIST_LIMIT, ge=1, le=1000)
    ):
        """List orders, newest first"""
        orders = await get_service().list_orders(status=status, limit=limit)
        return {"orders": [order.to_wire() for order in orders]}

    @app.get("/api/orders/{order_id}")
    async def get_order(order_id: str):
        """Get order details"""
        order = await get_service().get_order(order_id)

        if not order:
            raise HTTPException(status_code=404, detail="Order not found")

        return order.to_wire()

    @app.get("/api/queue/stats", response_model=QueueStats)
    async def queue_stats():
        """Dispatch queue counters"""
        return get_service().queue_stats()

    # Status stream
    @app.websocket("/api/orders/{order_id}/status")
    async def order_status_stream(websocket: WebSocket, order_id: str):
        """
        Live status updates for one order

        Subscribes before reading the current state, so no transition that
        happens while connecting is lost. Closes after a terminal status.
        """
        await websocket.accept()
        service = get_service()

        updates: "asyncio.Queue[StatusUpdate]" = asyncio.Queue()
        subscription = service.subscribe(order_id, updates.put_nowait)

        try:
            initial = await service.initial_status(order_id)
            if initial is None:
                await websocket.send_json({"error": "Order not found", "order_id": order_id})
                await websocket.close()
                return

            await websocket.send_json(initial.to_wire())

            status = initial.status
            while not status.is_terminal:
                update = await _next_update(websocket, updates)
                await websocket.send_json(update.to_wire())
                status = update.status

            await websocket.close()
            logger.debug(f"Status stream for order {order_id} finished ({status.value})")

        except WebSocketDisconnect:
            logger.info(f"WebSocket closed for order {order_id}")

        finally:
            subscription.unsubscribe()

    return app


app = create_app()


# Main entry point
def start_server():
    """Start the API server"""
    uvicorn.run(
        "api.main:app",
        host=settings.api.api_host,
        port=settings.api.api_port,
        reload=settings.api.api_reload,
        workers=settings.api.api_workers
    )


if __name__ == "__main__":
    start_server()
