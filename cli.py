#!/usr/bin/env python3
"""
SwapRoute CLI - Command-line interface for testing
"""
import asyncio
import sys
from decimal import Decimal
from pathlib import Path
from typing import Optional
import typer
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from shared.config.settings import settings
from shared.utils.log_config import configure_logging
from swaps.orders import OrderRequest, OrderStatus, OrderType, StatusUpdate
from swaps.routing import VenueRouter
from swaps.service import create_order_service
from swaps.venues import METEORA_PROFILE, RAYDIUM_PROFILE, RAYDIUM, METEORA, create_default_venues


app = typer.Typer(help="SwapRoute CLI - Swap order routing and execution")
console = Console()

STATUS_STYLES = {
    "pending": "white",
    "routing": "cyan",
    "building": "yellow",
    "submitted": "magenta",
    "confirmed": "bold green",
    "failed": "bold red",
}


@app.callback()
def main(log_level: str = typer.Option("WARNING", help="Log level for this command")):
    configure_logging(level=log_level)


@app.command()
def info():
    """Display system information"""
    console.print(Panel.fit(
        f"[bold blue]{settings.app_name}[/bold blue] v{settings.app_version}\n"
        f"Environment: {settings.environment}\n"
        f"Order store: {settings.database.backend}\n"
        f"Status cache: {'redis' if settings.redis.enabled else 'memory'}\n"
        f"Queue: {settings.queue.concurrency} workers, "
        f"{settings.queue.rate_limit_max} orders / {settings.queue.rate_limit_window_seconds:g}s\n"
        f"Retries: {settings.execution.max_retries} (backoff base {settings.execution.backoff_base:g}s)",
        title="System Information"
    ))


@app.command()
def venues():
    """List the simulated venues and their profiles"""
    table = Table(title="Venues")
    table.add_column("Name", style="cyan")
    table.add_column("Price band", style="magenta")
    table.add_column("Liquidity", style="green")
    table.add_column("Fee", style="yellow")
    table.add_column("Failure rate", style="red")

    for name, profile in ((RAYDIUM, RAYDIUM_PROFILE), (METEORA, METEORA_PROFILE)):
        table.add_row(
            name,
            f"{profile.price_band[0]} - {profile.price_band[1]}",
            f"{profile.liquidity_band[0]:,} - {profile.liquidity_band[1]:,}",
            str(profile.estimated_fee),
            f"{settings.venues.failure_rate if settings.venues.failure_rate is not None else profile.failure_rate:.0%}",
        )

    console.print(table)


@app.command()
def quote(
    token_in: str = typer.Argument(..., help="Input token (e.g. SOL)"),
    token_out: str = typer.Argument(..., help="Output token (e.g. USDC)"),
    amount: str = typer.Argument(..., help="Input amount as a decimal string")
):
    """Compare venue quotes for a swap"""
    async def run():
        request = OrderRequest(token_in=token_in, token_out=token_out, amount_in=amount)
        order = request.to_order()

        router = VenueRouter(
            create_default_venues(latency_scale=0, seed=settings.venues.seed),
            quote_timeout=settings.execution.quote_timeout_seconds
        )

        console.print(f"[cyan]Fetching quotes for {amount} {token_in} -> {token_out}...[/cyan]")

        quotes = await router.fetch_quotes(order.to_trade_request())
        best = router.select_best_venue(quotes)

        table = Table(title="Quotes")
        table.add_column("Venue", style="cyan")
        table.add_column("Amount out", style="green")
        table.add_column("Price", style="magenta")
        table.add_column("Liquidity", style="yellow")

        for q in quotes:
            marker = " ✓" if q is best else ""
            table.add_row(f"{q.venue}{marker}", str(q.amount_out), str(q.price), str(q.liquidity))

        console.print(table)

    asyncio.run(run())


@app.command()
def submit(
    token_in: str = typer.Argument(..., help="Input token (e.g. SOL)"),
    token_out: str = typer.Argument(..., help="Output token (e.g. USDC)"),
    amount: str = typer.Argument(..., help="Input amount as a decimal string"),
    order_type: OrderType = typer.Option(OrderType.MARKET, help="Order type"),
    slippage: Optional[float] = typer.Option(None, help="Slippage tolerance in percent"),
    min_amount_out: Optional[str] = typer.Option(None, help="Minimum acceptable output")
):
    """Run one order through the pipeline in-process and stream its status"""
    async def run():
        service = await create_order_service()
        await service.start()

        done = asyncio.Event()

        def show(update: StatusUpdate) -> None:
            style = STATUS_STYLES.get(update.status.value, "white")
            line = f"[{style}]{update.status.value.upper():<10}[/{style}] {update.message or ''}"
            if update.venue:
                line += f" [dim](venue: {update.venue})[/dim]"
            console.print(line)
            if update.status.is_terminal:
                done.set()

        try:
            request = OrderRequest(
                order_type=order_type,
                token_in=token_in,
                token_out=token_out,
                amount_in=amount,
                slippage_tolerance=Decimal(str(slippage)) if slippage is not None else None,
                min_amount_out=min_amount_out,
            )

            # Subscribe before the order can start moving
            order = request.to_order(service.default_slippage)
            service.subscribe(order.id, show)
            await service.repository.create(order)
            await service.queue.enqueue(order)

            console.print(f"[cyan]Submitted order {order.id}[/cyan]")
            await done.wait()

            final = await service.get_order(order.id)
            if final.status == OrderStatus.CONFIRMED:
                console.print(Panel.fit(
                    f"Venue: {final.venue}\n"
                    f"Amount out: {final.amount_out}\n"
                    f"Price: {final.execution_price}\n"
                    f"Tx: {final.tx_hash}\n"
                    f"Retries: {final.retry_count}",
                    title=f"Order {final.status.value}"
                ))
            else:
                console.print(f"[red]✗ {final.error or 'Order failed'} (retries: {final.retry_count})[/red]")

        finally:
            await service.close()

    asyncio.run(run())


@app.command()
def start_api(
    host: str = typer.Option(settings.api.api_host, help="API host"),
    port: int = typer.Option(settings.api.api_port, help="API port"),
    reload: bool = typer.Option(False, help="Enable auto-reload")
):
    """Start the FastAPI server"""
    console.print(Panel.fit(
        f"[bold]Starting API Server[/bold]\n"
        f"Host: {host}\n"
        f"Port: {port}\n"
        f"Auto-reload: {reload}\n\n"
        f"Open http://{host}:{port}/docs for API documentation",
        title=f"{settings.app_name} API"
    ))

    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=host,
        port=port,
        reload=reload
    )


if __name__ == "__main__":
    app()
