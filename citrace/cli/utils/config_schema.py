"""Configuration schema for citrace.

Defines all environment variables and TOML configuration keys with metadata
for documentation, validation, and display.
"""

from dataclasses import dataclass
from typing import Any, Callable


@dataclass
class ConfigOption:
    """A single configuration option with metadata.

    Attributes:
        env_var: Environment variable name
        toml_key: TOML configuration key (e.g., "gitlab.url")
        field: Config dataclass field the option populates
        description: Human-readable description
        default: Default value (None if unset by default)
        category: Configuration category for grouping
        secret: If True, value should be hidden in output
        parser: Optional function to parse string value to correct type
        fallback_env: Secondary environment variable read when env_var is unset
    """

    env_var: str
    toml_key: str
    field: str
    description: str
    default: Any | None
    category: str
    secret: bool = False
    parser: Callable[[str], Any] | None = None
    fallback_env: str | None = None


# Parser functions
def _parse_int(value: str) -> int:
    """Parse string to integer."""
    return int(value)


def _parse_float(value: str) -> float:
    """Parse string to float."""
    return float(value)


def _parse_bool(value: str) -> bool:
    """Parse string to boolean."""
    return value.lower() in ("1", "true", "yes", "on")


CONFIG_OPTIONS: list[ConfigOption] = [
    # GitLab
    ConfigOption(
        env_var="CITRACE_GITLAB_URL",
        toml_key="gitlab.url",
        field="base_url",
        description="GitLab instance URL",
        default="https://gitlab.com",
        category="GitLab",
        fallback_env="GITLAB_HOST",
    ),
    ConfigOption(
        env_var="CITRACE_TOKEN",
        toml_key="gitlab.token",
        field="token",
        description="Personal access token with read_api scope",
        default=None,
        category="GitLab",
        secret=True,
        fallback_env="GITLAB_TOKEN",
    ),
    ConfigOption(
        env_var="CITRACE_PROJECT",
        toml_key="gitlab.project",
        field="project",
        description="Default project path (group/project) or numeric ID",
        default=None,
        category="GitLab",
    ),
    # API
    ConfigOption(
        env_var="CITRACE_TIMEOUT",
        toml_key="api.timeout",
        field="timeout",
        description="Per-request timeout in seconds",
        default=10,
        category="API",
        parser=_parse_float,
    ),
    ConfigOption(
        env_var="CITRACE_SKIP_SSL_VERIFY",
        toml_key="api.skip_ssl_verify",
        field="skip_ssl_verify",
        description="Disable TLS certificate verification",
        default=False,
        category="API",
        parser=_parse_bool,
    ),
    # Trace
    ConfigOption(
        env_var="CITRACE_POLL_INTERVAL",
        toml_key="trace.poll_interval",
        field="poll_interval",
        description="Seconds between trace fetches while the job runs",
        default=2.0,
        category="Trace",
        parser=_parse_float,
    ),
    ConfigOption(
        env_var="CITRACE_MAX_RETRIES",
        toml_key="trace.max_retries",
        field="max_transient_retries",
        description="Consecutive transient failures tolerated before giving up",
        default=5,
        category="Trace",
        parser=_parse_int,
    ),
    ConfigOption(
        env_var="CITRACE_RETRY_DELAY",
        toml_key="trace.retry_delay",
        field="retry_delay",
        description="Base backoff in seconds after a transient failure",
        default=1.0,
        category="Trace",
        parser=_parse_float,
    ),
    ConfigOption(
        env_var="CITRACE_MAX_RETRY_DELAY",
        toml_key="trace.max_retry_delay",
        field="max_retry_delay",
        description="Upper bound for a single backoff in seconds",
        default=30.0,
        category="Trace",
        parser=_parse_float,
    ),
]


# Category order for display
CATEGORY_ORDER = [
    "GitLab",
    "API",
    "Trace",
]


def get_options_by_category(category: str) -> list[ConfigOption]:
    """Get all configuration options for a category."""
    return [opt for opt in CONFIG_OPTIONS if opt.category == category]


def get_option_by_env(env_var: str) -> ConfigOption | None:
    """Get configuration option by environment variable name."""
    for opt in CONFIG_OPTIONS:
        if opt.env_var == env_var:
            return opt
    return None


def get_option_by_toml(toml_key: str) -> ConfigOption | None:
    """Get configuration option by TOML key."""
    for opt in CONFIG_OPTIONS:
        if opt.toml_key == toml_key:
            return opt
    return None


def get_categories() -> list[str]:
    """Get all unique categories in order."""
    return [cat for cat in CATEGORY_ORDER if any(opt.category == cat for opt in CONFIG_OPTIONS)]


def parse_value(option: ConfigOption, value: str) -> Any:
    """Parse a string value based on the option's parser.

    Raises:
        ValueError: If the value cannot be parsed
    """
    if option.parser:
        return option.parser(value)
    return value
