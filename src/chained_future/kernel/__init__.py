"""Kernel layer - future primitives, errors and tracing."""

from chained_future.kernel.errors import (
    ChainedFutureError,
    InvalidRejectionError,
    NotAwaitableError,
    PipelineSealedError,
    SequenceEnd,
    SuccessorNotFoundError,
)
from chained_future.kernel.future import copy_outcome, rejected, resolved, settle, then
from chained_future.kernel.trace import Trace, TraceEvent

__all__ = [
    # Futures
    "resolved",
    "rejected",
    "settle",
    "then",
    "copy_outcome",
    # Errors
    "ChainedFutureError",
    "InvalidRejectionError",
    "NotAwaitableError",
    "PipelineSealedError",
    "SequenceEnd",
    "SuccessorNotFoundError",
    # Tracing
    "Trace",
    "TraceEvent",
]
