"""Incremental trace output.

Each fetch returns the whole trace known so far. The emitter remembers how
many bytes it already wrote and only writes the remainder. When the server
returns a shorter trace than before (the job was retried and its log
restarted), the new trace is written in full.
"""

import codecs
import json
import logging
from typing import BinaryIO, Optional, Protocol

from citrace.trace.models import EmitCursor, TraceSnapshot

logger = logging.getLogger(__name__)


class TraceSink(Protocol):
    """Append-only byte sink."""

    def write(self, data: bytes) -> object:
        ...


def _write(sink: TraceSink, data: bytes) -> None:
    if not data:
        return
    sink.write(data)
    flush = getattr(sink, "flush", None)
    if callable(flush):
        flush()


def emit_delta(previous_len: int, snapshot: TraceSnapshot, sink: TraceSink) -> int:
    """Write the part of ``snapshot.body`` not yet written and return the new length.

    Args:
        previous_len: Number of bytes already written for this trace
        snapshot: Latest fetch result
        sink: Output to append to

    Returns:
        Length of ``snapshot.body``, to be passed as ``previous_len`` next time
    """
    body = snapshot.body
    if len(body) < previous_len:
        logger.warning(
            "Trace shrank from %d to %d bytes, log restarted; re-emitting from the beginning",
            previous_len,
            len(body),
        )
        _write(sink, body)
    else:
        _write(sink, body[previous_len:])
    return len(body)


class IncrementalEmitter:
    """Writes trace deltas to a sink for the lifetime of one trace session."""

    def __init__(self, sink: TraceSink, cursor: Optional[EmitCursor] = None) -> None:
        self.sink = sink
        self.cursor = cursor if cursor is not None else EmitCursor()
        self.restarts = 0

    @property
    def bytes_written(self) -> int:
        return self.cursor.bytes_written

    def emit(self, snapshot: TraceSnapshot) -> int:
        """Emit the new part of ``snapshot`` and return how many bytes were written."""
        previous = self.cursor.bytes_written
        restarted = len(snapshot.body) < previous
        if restarted:
            self.restarts += 1
        self.cursor.bytes_written = emit_delta(previous, snapshot, self.sink)
        if restarted:
            return self.cursor.bytes_written
        return self.cursor.bytes_written - previous


class JsonEventSink:
    """Sink that wraps every chunk in a JSON event line.

    Used for ``--json`` output, where each new piece of the trace becomes
    one ``{"event": "trace", ...}`` object on its own line. Text is decoded
    incrementally, so a UTF-8 character split across two chunks appears
    whole in the event of the chunk that completes it. ``offset`` and
    ``bytes`` always describe the raw chunk.
    """

    def __init__(self, stream: BinaryIO, job_id: int) -> None:
        self.stream = stream
        self.job_id = job_id
        self.offset = 0
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def write(self, data: bytes) -> int:
        event = {
            "event": "trace",
            "job_id": self.job_id,
            "offset": self.offset,
            "bytes": len(data),
            "content": self._decoder.decode(data),
        }
        self.offset += len(data)
        line = json.dumps(event, ensure_ascii=False) + "\n"
        self.stream.write(line.encode("utf-8"))
        return len(data)

    def flush(self) -> None:
        self.stream.flush()
