"""Human-readable output formatter for CLI commands."""

from typing import Optional

from citrace.trace.models import JobStatus


# Status emoji mapping
STATUS_EMOJI = {
    JobStatus.PENDING: "\u23f3",  # hourglass
    JobStatus.RUNNING: "\U0001f3c3",  # runner
    JobStatus.SUCCESS: "\u2705",  # check mark
    JobStatus.FAILED: "\u274c",  # cross mark
    JobStatus.CANCELED: "\U0001f6d1",  # stop sign
    JobStatus.SKIPPED: "\u23ed\ufe0f",  # next track
    JobStatus.MANUAL: "\u270b",  # raised hand
}

DEFAULT_STATUS_EMOJI = "\U0001f4ca"  # bar chart


def _job_label(job_name: Optional[str], job_id: int) -> str:
    return job_name or f"job #{job_id}"


def format_trace_header(job_name: Optional[str], job_id: int) -> str:
    """Format the line printed once before the trace starts."""
    if job_name:
        return f"Showing logs for {job_name} job #{job_id}"
    return f"Showing logs for job #{job_id}"


def format_status_notice(job_name: Optional[str], job_id: int, status: JobStatus) -> Optional[str]:
    """Format a notice for statuses where the trace may not move.

    Returns:
        Notice text, or None when the status needs no explanation
    """
    label = _job_label(job_name, job_id)
    emoji = STATUS_EMOJI.get(status, DEFAULT_STATUS_EMOJI)
    if status is JobStatus.PENDING:
        return f"{emoji} {label} is pending... waiting for job to start"
    if status is JobStatus.MANUAL:
        return f"{emoji} Manual job {label} not started, waiting for it to start"
    if status is JobStatus.SKIPPED:
        return f"{emoji} {label} has been skipped"
    return None


def format_job_finished(status: Optional[JobStatus]) -> str:
    """Format the final status line."""
    if status is None:
        return "Job finished with unknown status"
    emoji = STATUS_EMOJI.get(status, DEFAULT_STATUS_EMOJI)
    return f"{emoji} Job finished with status: {status.value}"


def format_error(message: str, hint: Optional[str] = None) -> str:
    """Format an error message.

    Args:
        message: Error message
        hint: Optional hint for fixing

    Returns:
        Formatted error string
    """
    lines = [f"\n\u274c Error: {message}"]
    if hint:
        lines.append(f"\U0001f4a1 Hint: {hint}")
    return "\n".join(lines)


def format_warning(message: str) -> str:
    """Format a warning message."""
    return f"\u26a0\ufe0f {message}"
