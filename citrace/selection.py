"""Turning job listings and labels into a job ID.

A job listing prints one label per job in the form ``name (id) - status``.
These helpers recover the ID from such a label, or pick one from a list
of summaries, without depending on any prompt library.
"""

import re
from dataclasses import dataclass
from typing import Callable, Sequence, Union

from citrace.trace.models import JobReference

# The ID group immediately followed by " - status" at the end of the label
JOB_LABEL_ID_PATTERN = re.compile(r"\((\d+)\) - [^()]*$")
JOB_ID_GROUP_PATTERN = re.compile(r"\((\d+)\)")


@dataclass(frozen=True)
class JobSummary:
    """A job as shown in a pipeline job listing."""
    name: str
    id: int
    status: str


JobSelector = Callable[[Sequence[JobSummary]], int]


def format_job_label(job: JobSummary) -> str:
    """Format a job as ``name (id) - status``."""
    return f"{job.name} ({job.id}) - {job.status}"


def parse_job_label(label: str) -> int:
    """Extract a job ID from a bare number or a ``name (id) - status`` label.

    Raises:
        ValueError: If no positive job ID can be found
    """
    text = (label or "").strip()
    if not text:
        raise ValueError("Job cannot be empty")

    if text.isdigit():
        job_id = int(text)
    else:
        match = JOB_LABEL_ID_PATTERN.search(text)
        if match:
            job_id = int(match.group(1))
        else:
            # No status suffix: the last parenthesised number is the ID
            groups = JOB_ID_GROUP_PATTERN.findall(text)
            if not groups:
                raise ValueError(
                    f"Could not find a job ID in '{text}'. "
                    "Expected a number or a label like 'build (12345) - running'"
                )
            job_id = int(groups[-1])

    if job_id < 1:
        raise ValueError(f"Job ID must be positive, got: {job_id}")
    return job_id


def first_job(jobs: Sequence[JobSummary]) -> int:
    """Default selector: the first job in the listing."""
    if not jobs:
        raise ValueError("No jobs to select from")
    return jobs[0].id


def resolve_job_reference(
    project_ref: str,
    job: Union[int, str, None] = None,
    jobs: Sequence[JobSummary] = (),
    select: JobSelector = first_job,
) -> JobReference:
    """Build a JobReference from an explicit job or a selection over ``jobs``.

    Args:
        project_ref: Project path (``group/project``) or numeric project ID
        job: Job ID or job label; takes precedence over ``jobs``
        jobs: Candidate jobs, used only when ``job`` is not given
        select: Picks one job ID from ``jobs``

    Returns:
        Resolved JobReference

    Raises:
        ValueError: If the job cannot be determined or the reference is invalid
    """
    if isinstance(job, int) and not isinstance(job, bool):
        job_id = job
    elif job is not None and str(job).strip():
        job_id = parse_job_label(str(job))
    else:
        job_id = select(jobs)
    return JobReference(project_ref=project_ref, job_id=job_id)
