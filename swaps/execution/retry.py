"""
Retry policy

Pure exponential backoff: the n-th retry waits backoff_base ** n seconds
(2s, 4s, 8s, ... with the default base), optionally capped.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional
from loguru import logger

from swaps.errors import ExecutionError


@dataclass
class RetryPolicy:
    """Bounded retry with exponential backoff"""
    max_retries: int = 3
    backoff_base: float = 2.0
    max_backoff_seconds: Optional[float] = None
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.backoff_base <= 1:
            raise ValueError("backoff_base must be > 1")

    def backoff_for(self, retry_count: int) -> float:
        """
        Delay before the given retry

        Args:
            retry_count: Retry number, starting at 1

        Returns:
            Seconds to wait
        """
        delay = self.backoff_base ** retry_count
        if self.max_backoff_seconds is not None:
            delay = min(delay, self.max_backoff_seconds)
        return delay

    def should_retry(
        self,
        error: ExecutionError,
        retry_count: int,
        max_retries: Optional[int] = None
    ) -> bool:
        limit = self.max_retries if max_retries is None else max_retries
        return error.retriable and retry_count < limit

    async def wait(self, retry_count: int) -> float:
        """Sleep for the backoff of this retry and return the delay used"""
        delay = self.backoff_for(retry_count)
        logger.debug(f"Backing off {delay:.1f}s before retry {retry_count}")
        await self.sleep(delay)
        return delay
