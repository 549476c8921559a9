"""Error types raised while tracing a CI job.

FetchError and its subclasses describe a single failed trace fetch.
StreamInterruptedError is raised by the polling loop once transient
failures have exhausted the retry budget, so callers can tell a degraded
network apart from a job that no longer exists.
"""

from typing import Optional


class TraceError(Exception):
    """Base class for trace errors.

    Carries the job ID and the last successfully emitted byte offset when
    they are known, so the caller can report exactly where streaming stopped.
    """

    def __init__(
        self,
        message: str,
        job_id: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.job_id = job_id
        self.offset = offset

    def __str__(self) -> str:
        context = []
        if self.job_id is not None:
            context.append(f"job {self.job_id}")
        if self.offset is not None:
            context.append(f"offset {self.offset}")
        if context:
            return f"{self.message} ({', '.join(context)})"
        return self.message


class FetchError(TraceError):
    """A trace fetch failed and should not be retried."""
    pass


class JobNotFoundError(FetchError):
    """The job or its project no longer exists."""
    pass


class UnauthorizedError(FetchError):
    """The API rejected the configured credentials."""
    pass


class TransientFetchError(FetchError):
    """Timeout, connection reset or server-side failure; safe to retry."""
    pass


class StreamInterruptedError(TraceError):
    """Too many consecutive transient failures while streaming."""

    def __init__(
        self,
        message: str,
        job_id: Optional[int] = None,
        offset: Optional[int] = None,
        attempts: int = 0,
        last_error: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, job_id=job_id, offset=offset)
        self.attempts = attempts
        self.last_error = last_error
