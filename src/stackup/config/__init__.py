"""
stackup configuration module.

This module provides settings handling, host environment detection and
the immutable per-run context.
"""

from stackup.config.environment import (
    MemoryInfo,
    Platform,
    RunContext,
    detect_platform,
    environment_with,
    read_env_values,
    read_memory_info,
)
from stackup.config.settings import (
    SERVICE_DIRS,
    StackSettings,
    resolve_project_root,
)

__all__ = [
    # Settings
    "StackSettings",
    "SERVICE_DIRS",
    "resolve_project_root",
    # Environment
    "MemoryInfo",
    "Platform",
    "RunContext",
    "detect_platform",
    "environment_with",
    "read_env_values",
    "read_memory_info",
]
