"""Polling loop that follows a job trace until the job finishes.

A session moves through four states:

    POLLING   fetch, emit the new bytes, wait poll_interval, repeat
    DRAINING  terminal status seen; emit once more, plus one confirmation
              fetch if the snapshot may predate the status change
    DONE      finished normally
    FAILED    a fatal fetch error or too many transient failures

Transient fetch errors are retried with a linear backoff. Not-found,
unauthorized and other fetch errors end the session immediately and are
re-raised with the job ID and the last emitted offset attached.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Protocol

from citrace.trace.emitter import IncrementalEmitter, TraceSink
from citrace.trace.errors import FetchError, StreamInterruptedError, TransientFetchError
from citrace.trace.fetcher import TraceFetcher
from citrace.trace.models import JobReference, JobStatus, TraceResult, TraceSnapshot

logger = logging.getLogger(__name__)

StatusCallback = Callable[[TraceSnapshot], None]


class CancelSignal(Protocol):
    """The subset of threading.Event used for cancellation."""

    def is_set(self) -> bool:
        ...

    def wait(self, timeout: Optional[float] = None) -> bool:
        ...


class TraceState(Enum):
    """Trace session state."""
    POLLING = "polling"
    DRAINING = "draining"
    DONE = "done"
    FAILED = "failed"


@dataclass
class TraceOptions:
    """Polling and retry settings for a trace session.

    Attributes:
        poll_interval: Seconds to wait between fetches while the job runs
        max_transient_retries: Consecutive transient failures tolerated
            before the stream is reported as interrupted
        retry_delay: Base backoff in seconds; the n-th consecutive failure
            waits ``retry_delay * n``
        max_retry_delay: Upper bound for a single backoff
    """

    poll_interval: float = 2.0
    max_transient_retries: int = 5
    retry_delay: float = 1.0
    max_retry_delay: float = 30.0

    def __post_init__(self) -> None:
        if self.poll_interval <= 0:
            raise ValueError(f"Poll interval must be positive: {self.poll_interval}")
        if self.max_transient_retries < 0:
            raise ValueError(f"Max transient retries cannot be negative: {self.max_transient_retries}")
        if self.retry_delay < 0:
            raise ValueError(f"Retry delay cannot be negative: {self.retry_delay}")
        if self.max_retry_delay < 0:
            raise ValueError(f"Max retry delay cannot be negative: {self.max_retry_delay}")

    def backoff(self, failures: int) -> float:
        """Delay before retrying after ``failures`` consecutive transient errors."""
        return min(self.retry_delay * failures, self.max_retry_delay)


class TraceSession:
    """Follows one job trace from the first byte until the job finishes.

    A session is single-use: it owns its emit cursor and sink for its
    lifetime and cannot be run again once it reached DONE or FAILED.
    """

    def __init__(
        self,
        ref: JobReference,
        fetcher: TraceFetcher,
        sink: TraceSink,
        options: Optional[TraceOptions] = None,
        cancel: Optional[CancelSignal] = None,
        on_status: Optional[StatusCallback] = None,
    ) -> None:
        self.ref = ref
        self.fetcher = fetcher
        self.options = options or TraceOptions()
        self.cancel = cancel if cancel is not None else threading.Event()
        self.on_status = on_status
        self.emitter = IncrementalEmitter(sink)
        self.state = TraceState.POLLING
        self.polls = 0
        self.status: Optional[JobStatus] = None
        self._failures = 0

    @property
    def bytes_written(self) -> int:
        return self.emitter.bytes_written

    def run(self) -> TraceResult:
        """Poll until the job reaches a terminal state or the session is cancelled.

        Returns:
            TraceResult describing the finished session

        Raises:
            FetchError: Job not found, unauthorized, or another fatal fetch error
            StreamInterruptedError: Transient failures exceeded the retry budget
        """
        if self.state is not TraceState.POLLING:
            raise RuntimeError(f"Trace session for job {self.ref.job_id} already {self.state.value}")

        while self.state is TraceState.POLLING:
            if self.cancel.is_set():
                return self._cancelled()

            snapshot = self._poll()
            if snapshot is None:
                continue

            self.emitter.emit(snapshot)

            if snapshot.status.is_terminal:
                self.state = TraceState.DRAINING
                self._drain(snapshot)
            elif self._wait(self.options.poll_interval):
                return self._cancelled()

        logger.info(
            "Job %d finished with status %s after %d poll(s), %d bytes",
            self.ref.job_id,
            self.status.value if self.status else "unknown",
            self.polls,
            self.bytes_written,
        )
        return self._result()

    def _poll(self) -> Optional[TraceSnapshot]:
        """Fetch once. Returns None after a transient failure that will be retried."""
        try:
            snapshot = self.fetcher.fetch(self.ref)
        except TransientFetchError as e:
            self._failures += 1
            if self._failures > self.options.max_transient_retries:
                self.state = TraceState.FAILED
                raise StreamInterruptedError(
                    f"Trace stream interrupted after {self._failures} consecutive failed fetches: {e.message}",
                    job_id=self.ref.job_id,
                    offset=self.bytes_written,
                    attempts=self._failures,
                    last_error=e,
                ) from e
            delay = self.options.backoff(self._failures)
            logger.warning(
                "Trace fetch for job %d failed (attempt %d/%d), retrying in %.1fs: %s",
                self.ref.job_id,
                self._failures,
                self.options.max_transient_retries,
                delay,
                e.message,
            )
            self._wait(delay)
            return None
        except FetchError as e:
            self._fail(e)
            raise

        self._failures = 0
        self._record(snapshot)
        return snapshot

    def _drain(self, snapshot: TraceSnapshot) -> None:
        """Flush trailing output once the job is finished."""
        if not snapshot.settled:
            try:
                final = self.fetcher.fetch(self.ref)
            except TransientFetchError as e:
                logger.warning(
                    "Final trace fetch for job %d failed, output may be incomplete: %s",
                    self.ref.job_id,
                    e.message,
                )
            except FetchError as e:
                self._fail(e)
                raise
            else:
                self.polls += 1
                self.emitter.emit(final)
        self.state = TraceState.DONE

    def _record(self, snapshot: TraceSnapshot) -> None:
        self.polls += 1
        changed = snapshot.status is not self.status
        self.status = snapshot.status
        if changed:
            logger.debug("Job %d status: %s", self.ref.job_id, snapshot.status.value)
            if self.on_status is not None:
                self.on_status(snapshot)

    def _fail(self, error: FetchError) -> None:
        self.state = TraceState.FAILED
        if error.job_id is None:
            error.job_id = self.ref.job_id
        error.offset = self.bytes_written

    def _wait(self, seconds: float) -> bool:
        """Sleep unless cancelled. Returns True if cancellation was requested."""
        if seconds <= 0:
            return self.cancel.is_set()
        return bool(self.cancel.wait(seconds))

    def _cancelled(self) -> TraceResult:
        self.state = TraceState.DONE
        logger.info("Trace of job %d cancelled at offset %d", self.ref.job_id, self.bytes_written)
        return self._result(cancelled=True)

    def _result(self, cancelled: bool = False) -> TraceResult:
        return TraceResult(
            status=self.status,
            bytes_written=self.bytes_written,
            polls=self.polls,
            restarts=self.emitter.restarts,
            cancelled=cancelled,
        )


def follow_trace(
    ref: JobReference,
    fetcher: TraceFetcher,
    sink: TraceSink,
    options: Optional[TraceOptions] = None,
    cancel: Optional[CancelSignal] = None,
    on_status: Optional[StatusCallback] = None,
) -> TraceResult:
    """Stream a job trace to ``sink`` until the job finishes.

    Args:
        ref: Job to follow
        fetcher: Source of trace snapshots
        sink: Binary output receiving only new trace bytes
        options: Poll interval and retry budget
        cancel: Event checked between polls; set it to stop early
        on_status: Called with the snapshot whenever the job status changes

    Returns:
        TraceResult of the finished session
    """
    session = TraceSession(ref, fetcher, sink, options=options, cancel=cancel, on_status=on_status)
    return session.run()
