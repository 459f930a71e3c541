"""
Order dispatch queue
"""

from .dispatcher import OrderQueue, QueueClosedError, QueueStats
from .rate_limiter import IRateLimiter, RateLimit, TokenBucket

__all__ = [
    "IRateLimiter",
    "OrderQueue",
    "QueueClosedError",
    "QueueStats",
    "RateLimit",
    "TokenBucket",
]
