"""Trace command for citrace.

Commands:
    citrace trace - Follow a CI job log in real time
"""

import dataclasses
import sys
import threading
from typing import Callable, Optional

import click

from citrace.cli.context import (
    Context,
    pass_context,
    EXIT_SUCCESS,
    EXIT_GENERAL_ERROR,
    EXIT_CONFIG_ERROR,
    EXIT_AUTH_ERROR,
    EXIT_VALIDATION_ERROR,
    EXIT_API_ERROR,
    EXIT_TIMEOUT,
    EXIT_STREAM_INTERRUPTED,
    EXIT_JOB_NOT_FOUND,
)
from citrace.cli.utils.config import Config, ConfigError
from citrace.cli.formatters import json_formatter, human_formatter
from citrace.gitlab_api import GitLabAPI
from citrace.selection import resolve_job_reference
from citrace.trace import (
    FetchError,
    GitLabTraceFetcher,
    JobNotFoundError,
    JobReference,
    JsonEventSink,
    StreamInterruptedError,
    TraceResult,
    TraceSnapshot,
    UnauthorizedError,
    follow_trace,
)


TOKEN_HINT = "Set a personal access token with read_api scope: export CITRACE_TOKEN='glpat-...'"


@click.command("trace")
@click.argument("job")
@click.option("--repo", "-R", help="Project path (group/project) or ID (env: CITRACE_PROJECT)")
@click.option("--interval", type=float, help="Poll interval in seconds (default: 2, env: CITRACE_POLL_INTERVAL)")
@click.option("--max-retries", type=int, help="Consecutive failed fetches tolerated (default: 5, env: CITRACE_MAX_RETRIES)")
@click.option("--timeout", type=float, help="Stop following after this many seconds")
@pass_context
def trace(
    ctx: Context,
    job: str,
    repo: Optional[str],
    interval: Optional[float],
    max_retries: Optional[int],
    timeout: Optional[float],
):
    """Trace a CI job log in real time.

    JOB is a job ID, or a job label as printed in job listings
    (e.g. 'build (224356863) - running').

    Streams new log output until the job succeeds, fails, is canceled
    or is skipped. Exits 0 if the job succeeded and 1 otherwise.

    \b
    Examples:
        citrace trace 224356863 -R my-group/my-project
        citrace trace 'build (224356863) - running'
        citrace trace 224356863 --interval 5
        citrace --json trace 224356863
    """
    try:
        config = Config.load()
    except ConfigError as e:
        _handle_error(ctx, "ConfigError", str(e), EXIT_CONFIG_ERROR)
        return

    project = repo or config.project
    if not project:
        _handle_error(
            ctx,
            "ConfigError",
            "No project specified. Use --repo/-R or set CITRACE_PROJECT.",
            EXIT_CONFIG_ERROR,
        )
        return

    try:
        ref = resolve_job_reference(str(project), job)
        options = config.to_trace_options()
        overrides = {}
        if interval is not None:
            overrides["poll_interval"] = interval
        if max_retries is not None:
            overrides["max_transient_retries"] = max_retries
        if overrides:
            options = dataclasses.replace(options, **overrides)
        if timeout is not None and timeout <= 0:
            raise ValueError(f"Timeout must be positive: {timeout}")
    except ValueError as e:
        _handle_error(ctx, "InvalidUsage", str(e), EXIT_VALIDATION_ERROR)
        return

    api = GitLabAPI(config.to_gitlab_config())
    fetcher = GitLabTraceFetcher(api)
    stdout = sys.stdout.buffer
    sink = JsonEventSink(stdout, ref.job_id) if ctx.json_output else stdout

    cancel = threading.Event()
    timer = None
    if timeout is not None:
        timer = threading.Timer(timeout, cancel.set)
        timer.daemon = True
        timer.start()

    try:
        result = follow_trace(
            ref,
            fetcher,
            sink,
            options=options,
            cancel=cancel,
            on_status=_status_reporter(ctx, ref),
        )
    except KeyboardInterrupt:
        cancel.set()
        if not ctx.json_output:
            click.echo("\nStopped following.", err=True)
        sys.exit(EXIT_SUCCESS)
    except JobNotFoundError as e:
        _handle_error(
            ctx,
            "JobNotFound",
            str(e),
            EXIT_JOB_NOT_FOUND,
            hint="Check the job ID and that --repo names the project it belongs to.",
        )
        return
    except UnauthorizedError as e:
        _handle_error(
            ctx,
            "Unauthorized",
            str(e),
            EXIT_AUTH_ERROR,
            hint=TOKEN_HINT,
        )
        return
    except StreamInterruptedError as e:
        _handle_error(ctx, "StreamInterrupted", str(e), EXIT_STREAM_INTERRUPTED)
        return
    except FetchError as e:
        _handle_error(ctx, "APIError", str(e), EXIT_API_ERROR)
        return
    finally:
        if timer is not None:
            timer.cancel()

    _report_result(ctx, ref, result, timeout)


def _status_reporter(ctx: Context, ref: JobReference) -> Callable[[TraceSnapshot], None]:
    """Build the callback that announces status changes while tracing."""
    header_shown = False

    def report(snapshot: TraceSnapshot) -> None:
        nonlocal header_shown
        if ctx.json_output:
            click.echo(
                json_formatter.format_json_event(
                    "status_change",
                    job_id=ref.job_id,
                    job_name=snapshot.job_name,
                    status=snapshot.status.value,
                )
            )
            return

        if not header_shown:
            click.echo(human_formatter.format_trace_header(snapshot.job_name, ref.job_id), err=True)
            header_shown = True
        notice = human_formatter.format_status_notice(snapshot.job_name, ref.job_id, snapshot.status)
        if notice:
            click.echo(notice, err=True)

    return report


def _report_result(ctx: Context, ref: JobReference, result: TraceResult, timeout: Optional[float]) -> None:
    """Print the final status and exit with a code reflecting it."""
    if result.cancelled:
        status = result.status.value if result.status else "unknown"
        if ctx.json_output:
            click.echo(
                json_formatter.format_json_event(
                    "timeout",
                    job_id=ref.job_id,
                    status=status,
                    bytes_written=result.bytes_written,
                )
            )
        else:
            click.echo(f"\nStopped following after {timeout}s (job status: {status})", err=True)
        sys.exit(EXIT_TIMEOUT)

    if ctx.json_output:
        click.echo(
            json_formatter.format_json_event(
                "job_completed",
                job_id=ref.job_id,
                status=result.status.value if result.status else None,
                bytes_written=result.bytes_written,
                polls=result.polls,
                restarts=result.restarts,
            )
        )
    else:
        if result.restarts:
            click.echo(
                human_formatter.format_warning(
                    f"Job log restarted {result.restarts} time(s); output above was re-printed from the beginning."
                ),
                err=True,
            )
        click.echo("\n" + human_formatter.format_job_finished(result.status), err=True)

    if result.succeeded:
        sys.exit(EXIT_SUCCESS)
    sys.exit(EXIT_GENERAL_ERROR)


def _handle_error(
    ctx: Context,
    error_type: str,
    message: str,
    exit_code: int,
    hint: Optional[str] = None,
):
    """Handle and format errors consistently."""
    if ctx.json_output:
        click.echo(json_formatter.format_json_error(error_type, message, exit_code, hint=hint), err=True)
    else:
        click.echo(human_formatter.format_error(message, hint=hint), err=True)
    sys.exit(exit_code)
