"""Output formatters for CLI commands."""

from citrace.cli.formatters.json_formatter import format_json_error, format_json_event
from citrace.cli.formatters.human_formatter import (
    format_trace_header,
    format_status_notice,
    format_job_finished,
    format_error,
    format_warning,
)

__all__ = [
    "format_json_error",
    "format_json_event",
    "format_trace_header",
    "format_status_notice",
    "format_job_finished",
    "format_error",
    "format_warning",
]
