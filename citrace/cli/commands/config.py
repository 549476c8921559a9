"""Configuration commands for citrace.

Commands:
    citrace config show    - Display merged configuration with sources
"""

import json
import sys
from pathlib import Path

import click

from citrace.cli.context import (
    Context,
    pass_context,
    EXIT_CONFIG_ERROR,
)
from citrace.cli.utils.config import (
    Config,
    ConfigError,
    SOURCE_DEFAULT,
    SOURCE_GLOBAL,
    SOURCE_PROJECT,
    SOURCE_ENV,
)
from citrace.cli.utils.config_schema import (
    ConfigOption,
    get_categories,
    get_options_by_category,
)
from citrace.cli.formatters import json_formatter, human_formatter


# Source display labels with color
SOURCE_LABELS = {
    SOURCE_DEFAULT: ("default", "white"),
    SOURCE_GLOBAL: ("global", "cyan"),
    SOURCE_PROJECT: ("project", "green"),
    SOURCE_ENV: ("env", "yellow"),
}


@click.group()
def config() -> None:
    """Inspect citrace configuration."""
    pass


@config.command("show")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["table", "json", "env"]),
    default="table",
    help="Output format (table, json, env)",
)
@click.option(
    "--compact",
    "-c",
    is_flag=True,
    help="Hide unset options",
)
@pass_context
def show_config(ctx: Context, output_format: str, compact: bool) -> None:
    """Display merged configuration with value sources.

    Shows configuration values from all sources (defaults, global config,
    project config, environment variables) with clear indication of where
    each value comes from.

    \b
    Examples:
        citrace config show
        citrace config show --format json
        citrace config show --compact
    """
    try:
        cfg, sources = Config.from_files_and_env()
    except ConfigError as e:
        _handle_error(ctx, "ConfigError", str(e), EXIT_CONFIG_ERROR)
        return

    global_path, project_path = Config.get_config_paths()

    if output_format == "json" or ctx.json_output:
        _show_json(cfg, sources, global_path, project_path, compact)
    elif output_format == "env":
        _show_env(cfg, compact)
    else:
        _show_table(cfg, sources, global_path, project_path, compact)


def _get_field_value(cfg: Config, option: ConfigOption) -> tuple[str | None, bool]:
    """Get config value for a given option.

    Returns:
        Tuple of (value_string, is_set) where is_set indicates the value is not empty
    """
    value = getattr(cfg, option.field, None)

    is_set = value is not None and value != ""

    if option.secret and value:
        return "********", is_set
    if value is None:
        return "(not set)", False
    return str(value), is_set


def _iter_options(cfg: Config, compact: bool):
    for category in get_categories():
        options = get_options_by_category(category)
        if compact:
            options = [opt for opt in options if _get_field_value(cfg, opt)[1]]
        if options:
            yield category, options


def _show_table(
    cfg: Config,
    sources: dict[str, str],
    global_path: Path | None,
    project_path: Path | None,
    compact: bool,
) -> None:
    """Display configuration in table format."""
    click.echo(click.style("Configuration Overview", bold=True))
    click.echo()

    click.echo("Config files:")
    if global_path:
        click.echo(f"  Global:  {global_path} " + click.style("(found)", fg="green"))
    else:
        click.echo("  Global:  ~/.config/citrace/config.toml " + click.style("(not found)", fg="white"))
    if project_path:
        click.echo(f"  Project: {project_path} " + click.style("(found)", fg="green"))
    else:
        click.echo("  Project: ./.citrace/config.toml " + click.style("(not found)", fg="white"))
    click.echo()

    display_data = []
    max_value_len = 30  # minimum width
    for category, options in _iter_options(cfg, compact):
        items = []
        for option in options:
            value_str, _ = _get_field_value(cfg, option)
            source_label, source_color = SOURCE_LABELS.get(
                sources.get(option.field, SOURCE_DEFAULT), ("?", "white")
            )
            value_display = value_str or "(not set)"
            max_value_len = max(max_value_len, len(value_display))
            items.append((option, value_display, source_label, source_color))
        display_data.append((category, items))

    for category, items in display_data:
        click.echo(click.style(category, bold=True, fg="blue"))
        for option, value_display, source_label, source_color in items:
            key_display = option.env_var.ljust(26)
            value_padded = value_display.ljust(max_value_len)
            source_display = click.style(f"[{source_label}]", fg=source_color)
            click.echo(f"  {key_display} {value_padded} {source_display}")
        click.echo()

    click.echo(click.style("Legend:", dim=True))
    legend_parts = [click.style(f"[{label}]", fg=color) for label, color in SOURCE_LABELS.values()]
    click.echo("  " + " ".join(legend_parts))


def _show_json(
    cfg: Config,
    sources: dict[str, str],
    global_path: Path | None,
    project_path: Path | None,
    compact: bool,
) -> None:
    """Display configuration as JSON."""
    result = {
        "config_files": {
            "global": str(global_path) if global_path else None,
            "project": str(project_path) if project_path else None,
        },
        "values": {},
    }

    for _, options in _iter_options(cfg, compact):
        for option in options:
            value_str, is_set = _get_field_value(cfg, option)
            result["values"][option.env_var] = {
                "value": value_str if is_set else None,
                "source": sources.get(option.field, SOURCE_DEFAULT),
                "toml_key": option.toml_key,
                "description": option.description,
            }

    click.echo(json.dumps(result, indent=2))


def _show_env(cfg: Config, compact: bool) -> None:
    """Display configuration as environment variables."""
    for category, options in _iter_options(cfg, compact):
        click.echo(f"# {category}")
        for option in options:
            value_str, is_set = _get_field_value(cfg, option)
            if option.secret:
                click.echo(f"# {option.env_var}=<secret>")
            elif is_set:
                if " " in value_str or "," in value_str:
                    click.echo(f'{option.env_var}="{value_str}"')
                else:
                    click.echo(f"{option.env_var}={value_str}")
            else:
                click.echo(f"# {option.env_var}=")
        click.echo()


def _handle_error(ctx: Context, error_type: str, message: str, exit_code: int):
    """Handle and format errors consistently."""
    if ctx.json_output:
        click.echo(json_formatter.format_json_error(error_type, message, exit_code), err=True)
    else:
        click.echo(human_formatter.format_error(message), err=True)
    sys.exit(exit_code)
