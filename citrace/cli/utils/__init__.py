"""CLI utility modules."""

from citrace.cli.utils.config import Config, ConfigError

__all__ = ["Config", "ConfigError"]
