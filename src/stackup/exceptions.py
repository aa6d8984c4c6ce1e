"""
Exception taxonomy for stackup.

Every exception carries the process exit code the CLI should use when it
reaches the top level. Per-item failures (image pulls, firewall rules,
health timeouts) are reported through return values instead.
"""

from __future__ import annotations

from pathlib import Path


class StackupError(Exception):
    """Base class for all stackup errors."""

    exit_code: int = 1


class StackEnvironmentError(StackupError):
    """The host cannot run the stack (Docker or compose unusable)."""

    def __init__(self, message: str, remediation: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.remediation = remediation or []


class EngineMissing(StackEnvironmentError):
    """The docker binary is not on PATH."""


class EngineNotRunning(StackEnvironmentError):
    """The docker binary exists but the daemon does not answer."""


class ComposeUnavailable(StackEnvironmentError):
    """Neither `docker compose` nor `docker-compose` responds."""


class LowMemoryDeclined(StackupError):
    """The operator declined to continue on a low-memory host."""


class UserCancelled(StackupError):
    """The operator declined a confirmation or cancelled the checklist."""

    exit_code = 0


class DirectoryMissing(StackupError):
    """A selected service group has no working directory."""

    def __init__(self, directory: Path) -> None:
        super().__init__(f"Directory not found: {directory}")
        self.directory = directory


class NetworkSetupError(StackupError):
    """The shared docker network could not be created."""
