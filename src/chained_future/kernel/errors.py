"""Error types for chained futures."""

from __future__ import annotations


class ChainedFutureError(Exception):
    """Base class for all errors raised by chained_future."""


class SuccessorNotFoundError(ChainedFutureError, LookupError):
    """Raised by a field picker when the item carries no successor field.

    The item is preserved for debugging purposes.
    """

    def __init__(self, field: str, item: object) -> None:
        self.field = field
        self.item = item
        super().__init__(f"Item has no successor field '{field}': {item!r}")


class NotAwaitableError(ChainedFutureError, TypeError):
    """Raised when a successor or promotion source is not awaitable."""

    def __init__(self, source: object) -> None:
        self.source = source
        super().__init__(f"Expected an awaitable, got {type(source).__name__}: {source!r}")


class PipelineSealedError(ChainedFutureError, RuntimeError):
    """Raised when appending to a pipeline that already drives a continuation."""


class SequenceEnd(ChainedFutureError):
    """Conventional end-of-sequence signal.

    Producers reject the final ``next`` future with it; the runner
    propagates it like any other rejection.
    """


class InvalidRejectionError(ChainedFutureError, TypeError):
    """Rejection with a reason that is not an exception.

    The future is still rejected, with this error carrying the reason.
    """

    def __init__(self, reason: object) -> None:
        self.reason = reason
        super().__init__(f"Rejected with a non-exception reason: {reason!r}")
