"""
Order execution

Usage:
    processor = OrderProcessor(router, repository, hub, RetryPolicy(max_retries=3))
    order = await processor.process_order(order)
"""

from swaps.errors import (
    BuildFailure,
    ErrorKind,
    ExecutionError,
    InvalidTransition,
    NoQuotesAvailable,
    PersistenceFailure,
    RoutingFailure,
    SlippageProtectionTriggered,
    SubmissionFailure,
)
from .processor import OrderProcessor
from .retry import RetryPolicy

__all__ = [
    "BuildFailure",
    "ErrorKind",
    "ExecutionError",
    "InvalidTransition",
    "NoQuotesAvailable",
    "OrderProcessor",
    "PersistenceFailure",
    "RetryPolicy",
    "RoutingFailure",
    "SlippageProtectionTriggered",
    "SubmissionFailure",
]
