from .chained import ChainedFuture, field_picker, promote
from .fix import FixConfig, fix
from .kernel import (
    ChainedFutureError,
    InvalidRejectionError,
    NotAwaitableError,
    PipelineSealedError,
    SequenceEnd,
    SuccessorNotFoundError,
    Trace,
    TraceEvent,
    rejected,
    resolved,
)
from .link import Link
from .pipeline import Pipeline

__all__ = [
    # Core
    "ChainedFuture",
    "promote",
    "field_picker",
    "Pipeline",
    "Link",
    # Runner
    "fix",
    "FixConfig",
    # Futures
    "resolved",
    "rejected",
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
