"""Live CI job trace following."""

from citrace.trace.emitter import IncrementalEmitter, JsonEventSink, emit_delta
from citrace.trace.errors import (
    FetchError,
    JobNotFoundError,
    StreamInterruptedError,
    TraceError,
    TransientFetchError,
    UnauthorizedError,
)
from citrace.trace.fetcher import GitLabTraceFetcher, TraceFetcher
from citrace.trace.models import (
    EmitCursor,
    JobReference,
    JobStatus,
    TraceResult,
    TraceSnapshot,
)
from citrace.trace.poller import TraceOptions, TraceSession, TraceState, follow_trace

__all__ = [
    "EmitCursor",
    "FetchError",
    "GitLabTraceFetcher",
    "IncrementalEmitter",
    "JobNotFoundError",
    "JobReference",
    "JobStatus",
    "JsonEventSink",
    "StreamInterruptedError",
    "TraceError",
    "TraceFetcher",
    "TraceOptions",
    "TraceResult",
    "TraceSession",
    "TraceSnapshot",
    "TraceState",
    "TransientFetchError",
    "UnauthorizedError",
    "emit_delta",
    "follow_trace",
]
