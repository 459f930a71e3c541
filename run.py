#!/usr/bin/env python3
"""
SwapRoute - Server Runner

Starts the order execution API: intake, dispatch queue, execution
pipeline and status streams in one process.

Usage:
    # Defaults from settings / .env
    python run.py

    # Explicit bind address
    python run.py --host 127.0.0.1 --port 8080

    # Development with auto-reload
    python run.py --reload --log-level DEBUG
"""
import argparse
import sys
from pathlib import Path
from loguru import logger
import uvicorn

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from shared.config.settings import settings
from shared.utils.log_config import configure_logging


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(
        description="SwapRoute - Order Execution Server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with settings from .env
  python run.py

  # Bind to a specific interface and port
  python run.py --host 127.0.0.1 --port 8080

  # Use PostgreSQL instead of the in-memory store
  DB_BACKEND=sql DB_POSTGRES_HOST=db python run.py
        """
    )

    parser.add_argument(
        "--host",
        type=str,
        default=settings.api.api_host,
        help=f"Bind host (default: {settings.api.api_host})"
    )

    parser.add_argument(
        "--port",
        type=int,
        default=settings.api.api_port,
        help=f"Bind port (default: {settings.api.api_port})"
    )

    parser.add_argument(
        "--reload",
        action="store_true",
        default=settings.api.api_reload,
        help="Enable auto-reload"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default=settings.log_level,
        help=f"Log level (default: {settings.log_level})"
    )

    args = parser.parse_args()

    configure_logging(level=args.log_level, log_file=settings.log_file)

    logger.info("=" * 70)
    logger.info(f"{settings.app_name} v{settings.app_version}")
    logger.info("=" * 70)
    logger.info(f"Environment:   {settings.environment}")
    logger.info(f"Order store:   {settings.database.backend}")
    logger.info(f"Status cache:  {'redis' if settings.redis.enabled else 'memory'}")
    logger.info(f"Concurrency:   {settings.queue.concurrency}")
    logger.info(f"Max retries:   {settings.execution.max_retries}")
    logger.info(f"Listening on:  http://{args.host}:{args.port}")
    logger.info("=" * 70)

    uvicorn.run(
        "api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=1 if args.reload else settings.api.api_workers,
        log_level=args.log_level.lower()
    )


if __name__ == "__main__":
    main()
