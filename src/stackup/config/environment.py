"""
Host environment helpers for stackup.

This module detects the host platform, reads memory totals, loads the
key=value configuration files of the service groups, and defines the
immutable per-run context.
"""

from __future__ import annotations

import os
import platform
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from dotenv import dotenv_values

if TYPE_CHECKING:
    from stackup.config.settings import StackSettings
    from stackup.setup.docker_manager import ComposeDialect

logger = structlog.get_logger(__name__)

MEMINFO_PATH = Path("/proc/meminfo")


class Platform(str, Enum):
    """Host platforms with distinct remediation instructions."""

    LINUX = "linux"
    MACOS = "macos"
    WINDOWS_COMPATIBLE = "windows"
    OTHER = "other"


def detect_platform(system: str | None = None) -> Platform:
    """
    Detect the host platform.

    Args:
        system: Platform name to classify (defaults to platform.system()).

    Returns:
        The matching Platform.
    """
    name = (system if system is not None else platform.system()).upper()
    if name.startswith("LINUX"):
        return Platform.LINUX
    if name.startswith("DARWIN"):
        return Platform.MACOS
    if name.startswith(("MINGW", "MSYS", "CYGWIN", "WINDOWS")):
        return Platform.WINDOWS_COMPATIBLE
    return Platform.OTHER


@dataclass(frozen=True)
class MemoryInfo:
    """Total RAM and swap of the host, in megabytes."""

    total_ram_mb: int
    total_swap_mb: int


def read_memory_info(meminfo_path: Path = MEMINFO_PATH) -> MemoryInfo | None:
    """
    Read RAM and swap totals from /proc/meminfo.

    Returns:
        MemoryInfo, or None when the file is missing or unreadable.
    """
    try:
        text = meminfo_path.read_text()
    except OSError as e:
        logger.warning("meminfo_unreadable", path=str(meminfo_path), error=str(e))
        return None

    values: dict[str, int] = {}
    for line in text.splitlines():
        key, _, rest = line.partition(":")
        fields = rest.split()
        if fields and fields[0].isdigit():
            values[key.strip()] = int(fields[0])

    if "MemTotal" not in values:
        return None

    # /proc/meminfo reports kB
    return MemoryInfo(
        total_ram_mb=values["MemTotal"] // 1024,
        total_swap_mb=values.get("SwapTotal", 0) // 1024,
    )


def read_env_values(path: Path) -> dict[str, str]:
    """
    Read a key=value configuration file.

    Returns:
        The defined keys; empty when the file does not exist.
    """
    if not path.is_file():
        return {}
    values = {key: value for key, value in dotenv_values(path).items() if value is not None}
    logger.debug("env_file_loaded", path=str(path), keys=len(values))
    return values


def environment_with(path: Path) -> dict[str, str]:
    """
    Get the process environment extended with a configuration file.

    File values win over inherited ones, like `set -a; source .env`.
    """
    env = dict(os.environ)
    env.update(read_env_values(path))
    return env


@dataclass(frozen=True)
class RunContext:
    """Everything fixed for the duration of one run."""

    settings: StackSettings
    dialect: ComposeDialect
    platform: Platform
    recreate: bool = False

    @property
    def project_root(self) -> Path:
        return self.settings.root
