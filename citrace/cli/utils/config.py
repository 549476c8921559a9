"""Configuration management for citrace.

Reads configuration from environment variables and TOML config files with sensible defaults.

Config precedence (lowest to highest):
    Hardcoded defaults < Global config.toml < Project config.toml < Environment variables
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib
except ImportError:
    # Python < 3.11 fallback
    import tomli as tomllib

from citrace.cli.utils.config_schema import (
    CONFIG_OPTIONS,
    ConfigOption,
    get_option_by_toml,
    parse_value,
)
from citrace.gitlab_api import GitLabConfig
from citrace.trace.poller import TraceOptions

# Config file paths
CONFIG_FILENAME = "config.toml"
PROJECT_CONFIG_DIR = ".citrace"  # ./.citrace/config.toml


class ConfigError(Exception):
    """Configuration error - missing or invalid settings."""

    pass


# Source tracking for config values
SOURCE_DEFAULT = "default"
SOURCE_GLOBAL = "global"
SOURCE_PROJECT = "project"
SOURCE_ENV = "env"


@dataclass
class Config:
    """citrace configuration.

    **GitLab:**
    - CITRACE_GITLAB_URL: GitLab instance URL (default: https://gitlab.com, fallback: GITLAB_HOST)
    - CITRACE_TOKEN: Personal access token (fallback: GITLAB_TOKEN)
    - CITRACE_PROJECT: Default project path or ID, overridden by --repo

    **API tuning (optional):**
    - CITRACE_TIMEOUT: Per-request timeout in seconds (default: 10)
    - CITRACE_SKIP_SSL_VERIFY: Disable TLS verification (default: false)

    **Trace polling (optional):**
    - CITRACE_POLL_INTERVAL: Seconds between fetches (default: 2.0)
    - CITRACE_MAX_RETRIES: Consecutive transient failures tolerated (default: 5)
    - CITRACE_RETRY_DELAY: Base backoff in seconds (default: 1.0)
    - CITRACE_MAX_RETRY_DELAY: Backoff cap in seconds (default: 30.0)
    """

    base_url: str = "https://gitlab.com"
    token: Optional[str] = None
    project: Optional[str] = None

    # API settings
    timeout: float = 10.0
    skip_ssl_verify: bool = False

    # Trace settings
    poll_interval: float = 2.0
    max_transient_retries: int = 5
    retry_delay: float = 1.0
    max_retry_delay: float = 30.0

    # Class-level config paths
    GLOBAL_CONFIG_PATH = Path.home() / ".config" / "citrace" / CONFIG_FILENAME

    @classmethod
    def _find_project_config(cls) -> Path | None:
        """Walk up from cwd to find .citrace/config.toml."""
        current = Path.cwd()
        while current != current.parent:
            config_path = current / PROJECT_CONFIG_DIR / CONFIG_FILENAME
            if config_path.exists():
                return config_path
            current = current.parent
        return None

    @staticmethod
    def _load_toml(path: Path) -> dict[str, Any]:
        """Load and parse a TOML config file."""
        try:
            with open(path, "rb") as f:
                return tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {path}: {e}")

    @staticmethod
    def _flatten_toml(data: dict[str, Any], prefix: str = "") -> dict[str, Any]:
        """Flatten nested TOML dict to dotted keys (e.g., gitlab.url)."""
        result = {}
        for key, value in data.items():
            full_key = f"{prefix}.{key}" if prefix else key
            if isinstance(value, dict):
                result.update(Config._flatten_toml(value, full_key))
            else:
                result[full_key] = value
        return result

    @staticmethod
    def _coerce(option: ConfigOption, value: Any, origin: str) -> Any:
        """Parse a raw value for ``option``, raising ConfigError on bad input."""
        if isinstance(value, str):
            try:
                return parse_value(option, value)
            except (ValueError, TypeError):
                raise ConfigError(f"Invalid {origin} value: {value}")
        if option.parser is not None and isinstance(value, bool) and not isinstance(option.default, bool):
            raise ConfigError(f"Invalid {origin} value: {value!r}")
        return value

    @classmethod
    def _merge_file(
        cls,
        path: Path,
        config_dict: dict[str, Any],
        sources: dict[str, str],
        source: str,
    ) -> None:
        flat = cls._flatten_toml(cls._load_toml(path))
        for toml_key, value in flat.items():
            option = get_option_by_toml(toml_key)
            if option is None:
                continue
            config_dict[option.field] = cls._coerce(option, value, f"{toml_key} in {path}")
            sources[option.field] = source

    @classmethod
    def from_files_and_env(cls) -> tuple["Config", dict[str, str]]:
        """Load config from files + env vars with layered precedence.

        Precedence (lowest to highest):
            Hardcoded defaults < Global config.toml < Project config.toml < Environment variables

        Returns:
            Tuple of (Config instance, dict mapping field names to their sources)

        Raises:
            ConfigError: If required configuration is missing or invalid
        """
        # 1. Start with defaults
        config_dict: dict[str, Any] = {opt.field: opt.default for opt in CONFIG_OPTIONS}
        sources: dict[str, str] = {opt.field: SOURCE_DEFAULT for opt in CONFIG_OPTIONS}

        # 2. Merge global config.toml
        if cls.GLOBAL_CONFIG_PATH.exists():
            cls._merge_file(cls.GLOBAL_CONFIG_PATH, config_dict, sources, SOURCE_GLOBAL)

        # 3. Merge project config.toml (walk up from cwd to find .citrace/config.toml)
        project_config_path = cls._find_project_config()
        if project_config_path:
            cls._merge_file(project_config_path, config_dict, sources, SOURCE_PROJECT)

        # 4. Override with env vars (highest priority)
        for option in CONFIG_OPTIONS:
            env_var = option.env_var
            value = os.getenv(env_var)
            if value is None and option.fallback_env:
                env_var = option.fallback_env
                value = os.getenv(env_var)
            if value is None:
                continue
            config_dict[option.field] = cls._coerce(option, value, env_var)
            sources[option.field] = SOURCE_ENV

        config = cls(**config_dict)
        config.validate()
        return config, sources

    @classmethod
    def load(cls) -> "Config":
        """Load merged configuration, discarding source information."""
        config, _ = cls.from_files_and_env()
        return config

    def validate(self) -> None:
        """Check value ranges.

        Raises:
            ConfigError: If a value is out of range
        """
        if self.timeout <= 0:
            raise ConfigError(f"Invalid CITRACE_TIMEOUT value: {self.timeout}. It must be positive.")
        try:
            self.to_trace_options()
        except ValueError as e:
            raise ConfigError(f"Invalid trace settings: {e}")

    def to_gitlab_config(self) -> GitLabConfig:
        return GitLabConfig(
            base_url=self.base_url,
            token=self.token,
            timeout=self.timeout,
            verify_ssl=not self.skip_ssl_verify,
        )

    def to_trace_options(self) -> TraceOptions:
        return TraceOptions(
            poll_interval=self.poll_interval,
            max_transient_retries=self.max_transient_retries,
            retry_delay=self.retry_delay,
            max_retry_delay=self.max_retry_delay,
        )

    @classmethod
    def get_config_paths(cls) -> tuple[Path | None, Path | None]:
        """Get paths to global and project config files if they exist.

        Returns:
            Tuple of (global_config_path, project_config_path) - None if not found
        """
        global_path = cls.GLOBAL_CONFIG_PATH if cls.GLOBAL_CONFIG_PATH.exists() else None
        project_path = cls._find_project_config()
        return global_path, project_path
