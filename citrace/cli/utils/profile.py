"""Named env profiles for switching between GitLab instances and projects.

``--profile work`` copies every ``CITRACE_PROFILE_WORK_<KEY>`` variable onto
``CITRACE_<KEY>`` unless that variable is already set, e.g.
``CITRACE_PROFILE_WORK_TOKEN`` becomes ``CITRACE_TOKEN``.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Optional

from citrace.cli.utils.config_schema import CONFIG_OPTIONS

logger = logging.getLogger(__name__)

ENV_PREFIX = "CITRACE_"

# Profile key suffix -> target env var, one entry per config option
PROFILE_ENV_MAP = {
    opt.env_var[len(ENV_PREFIX):]: opt.env_var
    for opt in CONFIG_OPTIONS
    if opt.env_var.startswith(ENV_PREFIX)
}


def _normalize_profile_name(profile: str) -> str:
    normalized = re.sub(r"[^A-Za-z0-9]+", "_", profile.strip()).strip("_")
    return normalized.upper()


def apply_env_profile(profile: Optional[str]) -> Optional[str]:
    """Apply CITRACE_PROFILE_<NAME>_* env defaults for the given profile.

    Args:
        profile: Profile name; punctuation is folded to underscores

    Returns:
        Normalized profile name, or None if no profile was given
    """
    if not profile:
        return None

    normalized = _normalize_profile_name(profile)
    if not normalized:
        return None

    prefix = f"{ENV_PREFIX}PROFILE_{normalized}_"
    applied = []
    for suffix, target_key in PROFILE_ENV_MAP.items():
        source_key = f"{prefix}{suffix}"
        if source_key in os.environ and not os.environ.get(target_key):
            os.environ[target_key] = os.environ[source_key]
            applied.append(target_key)

    if applied:
        logger.debug("Profile %s set %s", normalized, ", ".join(applied))
    else:
        logger.debug("Profile %s set no variables", normalized)
    return normalized
