"""CLI command modules."""

from citrace.cli.commands.trace import trace
from citrace.cli.commands.config import config

__all__ = ["trace", "config"]
