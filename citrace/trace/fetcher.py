"""Trace fetchers turn one API round-trip into a TraceSnapshot."""

import logging
from typing import TYPE_CHECKING, Protocol

from citrace.trace.models import JobReference, JobStatus, TraceSnapshot

if TYPE_CHECKING:
    from citrace.gitlab_api import GitLabAPI

logger = logging.getLogger(__name__)


class TraceFetcher(Protocol):
    """Anything that can fetch the current trace of a job."""

    def fetch(self, ref: JobReference) -> TraceSnapshot:
        ...


class GitLabTraceFetcher:
    """Fetch job status and trace from the GitLab API.

    The job status is read before the trace. If that status is already
    terminal, the trace read afterwards is complete, so every snapshot
    from this fetcher is marked as settled.
    """

    def __init__(self, api: "GitLabAPI") -> None:
        self.api = api

    def fetch(self, ref: JobReference) -> TraceSnapshot:
        job = self.api.get_job(ref)
        status = JobStatus.from_api(job.get("status"))
        body = self.api.get_job_trace(ref)
        logger.debug("Fetched %d trace bytes for job %d (status: %s)", len(body), ref.job_id, status.value)
        return TraceSnapshot(
            body=body,
            status=status,
            job_name=job.get("name"),
            settled=True,
        )
