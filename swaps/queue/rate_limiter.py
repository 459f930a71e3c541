"""
Job rate limiting

Token bucket: the bucket holds up to max_jobs tokens and refills at
max_jobs / window_seconds tokens per second. Each dispatched job takes one
token; a worker that finds the bucket empty waits for the next token.
"""
import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict
from loguru import logger


@dataclass(frozen=True)
class RateLimit:
    """Rate ceiling for dispatched jobs"""
    max_jobs: int  # Jobs allowed per window
    window_seconds: float  # Window length

    def __post_init__(self):
        if self.max_jobs <= 0:
            raise ValueError("max_jobs must be positive")
        if self.window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

    @property
    def refill_rate(self) -> float:
        """Tokens per second"""
        return self.max_jobs / self.window_seconds


class IRateLimiter(ABC):
    """Abstract interface for job rate limiters"""

    @abstractmethod
    async def acquire(self, weight: int = 1) -> None:
        """Wait until weight tokens are available and take them"""
        pass

    @abstractmethod
    def get_remaining(self) -> int:
        """Tokens available right now"""
        pass


class TokenBucket(IRateLimiter):
    """
    Token bucket shared by all queue workers

    The clock and sleep function are injectable so tests can drive time
    explicitly.
    """

    def __init__(
        self,
        limit: RateLimit,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.limit = limit
        self.capacity = limit.max_jobs
        self.refill_rate = limit.refill_rate
        self._clock = clock
        self._sleep = sleep

        self.tokens = float(self.capacity)
        self.last_update = clock()
        self._lock = asyncio.Lock()

        logger.info(
            f"Initialized TokenBucket: {limit.max_jobs} jobs / {limit.window_seconds}s"
        )

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self.last_update)
        self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)
        self.last_update = now

    async def acquire(self, weight: int = 1) -> None:
        if weight > self.capacity:
            raise ValueError(f"weight {weight} exceeds bucket capacity {self.capacity}")

        async with self._lock:
            self._refill()

            while self.tokens < weight:
                wait_time = (weight - self.tokens) / self.refill_rate
                logger.debug(f"Rate limit: waiting {wait_time:.2f}s for {weight} tokens")
                await self._sleep(wait_time)
                self._refill()

            self.tokens -= weight

    def try_acquire(self, weight: int = 1) -> bool:
        """Take tokens without waiting; False if not enough"""
        self._refill()
        if self.tokens < weight:
            return False
        self.tokens -= weight
        return True

    def get_remaining(self) -> int:
        self._refill()
        return int(self.tokens)

    def get_statistics(self) -> Dict[str, Any]:
        return {
            "remaining": self.get_remaining(),
            "capacity": self.capacity,
            "refill_rate": self.refill_rate,
        }
