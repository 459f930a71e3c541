"""
Execution error taxonomy

Every condition raised inside an execution attempt is an ExecutionError
tagged with an ErrorKind. The retry loop branches on the kind, never on
the message text.
"""
from enum import Enum


class ErrorKind(str, Enum):
    """How the pipeline should react to an error"""
    RETRIABLE = "retriable"  # Start a new attempt after backoff
    FATAL = "fatal"  # Fail the order now


def describe_error(error: BaseException) -> str:
    """
    Human-readable reason for an exception

    Falls back to the exception's class name when its text is empty or a
    repr, e.g. decimal signals render as "[<class 'decimal.InvalidOperation'>]".
    """
    text = str(error).strip()
    if not text or text.startswith("<") or text.startswith("[<"):
        return type(error).__name__
    return text


class ExecutionError(Exception):
    """Base class for order execution errors"""

    kind: ErrorKind = ErrorKind.RETRIABLE

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def retriable(self) -> bool:
        return self.kind is ErrorKind.RETRIABLE


class NoQuotesAvailable(ExecutionError):
    """Venue selection was asked to choose from nothing"""
    kind = ErrorKind.FATAL

    def __init__(self, message: str = "No quotes available"):
        super().__init__(message)


class RoutingFailure(ExecutionError):
    """Quotes could not be fetched from any venue"""
    kind = ErrorKind.RETRIABLE


class SlippageProtectionTriggered(ExecutionError):
    """Best quote is below the caller's minimum output"""
    kind = ErrorKind.FATAL

    def __init__(self, expected_min, actual):
        super().__init__(
            f"Slippage protection triggered: expected at least {expected_min}, got {actual}"
        )
        self.expected_min = expected_min
        self.actual = actual


class BuildFailure(ExecutionError):
    """Transaction could not be built on the chosen venue"""
    kind = ErrorKind.RETRIABLE


class SubmissionFailure(ExecutionError):
    """Transaction was rejected or errored on submission"""
    kind = ErrorKind.RETRIABLE


class PersistenceFailure(ExecutionError):
    """
    A status transition could not be written to the order store

    Propagates out of process_order; the order is not retried against a
    datastore that is down.
    """
    kind = ErrorKind.FATAL


class InvalidTransition(ExecutionError):
    """Attempted a status change the state machine does not allow"""
    kind = ErrorKind.FATAL
