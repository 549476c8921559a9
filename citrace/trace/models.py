"""Data types shared by the trace fetcher, emitter and polling loop."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import quote

logger = logging.getLogger(__name__)


class JobStatus(Enum):
    """CI job status."""
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELED = "canceled"
    SKIPPED = "skipped"
    MANUAL = "manual"

    @property
    def is_terminal(self) -> bool:
        """True once the job log is not expected to grow any more."""
        return self in TERMINAL_STATUSES

    @classmethod
    def from_api(cls, value: Optional[str]) -> "JobStatus":
        """Normalize a status string reported by GitLab.

        GitLab reports a few more states than we distinguish; those are
        folded into the closest of ours. Unknown values are treated as
        pending so that tracing keeps polling instead of aborting.
        """
        normalized = (value or "").strip().lower()
        try:
            return cls(normalized)
        except ValueError:
            pass
        if normalized in _STATUS_ALIASES:
            return _STATUS_ALIASES[normalized]
        logger.warning("Unknown job status %r, treating it as pending", value)
        return cls.PENDING


TERMINAL_STATUSES = frozenset(
    {JobStatus.SUCCESS, JobStatus.FAILED, JobStatus.CANCELED, JobStatus.SKIPPED}
)

_STATUS_ALIASES = {
    "created": JobStatus.PENDING,
    "waiting_for_resource": JobStatus.PENDING,
    "preparing": JobStatus.PENDING,
    "scheduled": JobStatus.PENDING,
    "canceling": JobStatus.RUNNING,
    "cancelled": JobStatus.CANCELED,
}


@dataclass(frozen=True)
class JobReference:
    """A resolved job: the project it belongs to and its numeric ID."""

    project_ref: str
    job_id: int

    def __post_init__(self) -> None:
        if not self.project_ref or not str(self.project_ref).strip():
            raise ValueError("Project reference cannot be empty")
        if isinstance(self.job_id, bool) or not isinstance(self.job_id, int):
            raise ValueError(f"Job ID must be an integer, got: {self.job_id!r}")
        if self.job_id < 1:
            raise ValueError(f"Job ID must be positive, got: {self.job_id}")

    @property
    def api_project_id(self) -> str:
        """Project identifier as used in API paths (numeric ID or encoded path)."""
        ref = str(self.project_ref).strip().strip("/")
        if ref.isdigit():
            return ref
        return quote(ref, safe="")


@dataclass(frozen=True)
class TraceSnapshot:
    """One fetch of a job trace.

    Attributes:
        body: Full trace text known to the server at fetch time
        status: Job status observed during the same fetch
        job_name: Job name, when the fetcher knows it
        settled: True if the status was read before the body, in which
            case a terminal status means the body is already complete
    """

    body: bytes
    status: JobStatus
    job_name: Optional[str] = None
    settled: bool = False

    def __len__(self) -> int:
        return len(self.body)


@dataclass
class EmitCursor:
    """Number of trace bytes already written to the sink."""

    bytes_written: int = 0


@dataclass(frozen=True)
class TraceResult:
    """Outcome of a finished trace session."""

    status: Optional[JobStatus]
    bytes_written: int
    polls: int
    restarts: int = 0
    cancelled: bool = False

    @property
    def succeeded(self) -> bool:
        return self.status is JobStatus.SUCCESS
