"""citrace - Main entry point.

Usage:
    citrace trace 224356863 -R my-group/my-project
    citrace trace 'build (224356863) - running'
    citrace config show
"""

import sys
import click

from citrace import __version__
from citrace.cli.utils.profile import apply_env_profile
from citrace.cli.context import (
    Context,
    pass_context,
    EXIT_GENERAL_ERROR,
)
from citrace.cli.commands import trace, config


def _apply_profile_option(ctx: click.Context, param: click.Parameter, value: str | None) -> str | None:
    if value:
        apply_env_profile(value)
    return value


@click.group()
@click.option(
    "--profile",
    help="Apply env profile (CITRACE_PROFILE_<NAME>_*)",
    expose_value=False,
    is_eager=True,
    callback=_apply_profile_option,
)
@click.version_option(version=__version__, prog_name="citrace")
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    help="Output as JSON (machine-readable)",
)
@click.option(
    "--debug",
    is_flag=True,
    help="Enable debug logging",
)
@pass_context
def main(ctx: Context, json_output: bool, debug: bool) -> None:
    """Follow GitLab CI job logs from the terminal.

    \b
    Examples:
        citrace trace 224356863 -R my-group/my-project
        citrace --json trace 224356863
        citrace config show
    """
    ctx.json_output = json_output
    ctx.debug = debug

    if debug:
        import logging

        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )


# Register command groups
main.add_command(trace)
main.add_command(config)


def cli() -> None:
    """Entry point for the CLI."""
    try:
        main()
    except Exception as e:  # pragma: no cover - top-level safety net
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_GENERAL_ERROR)


if __name__ == "__main__":  # pragma: no cover
    cli()
