"""
Setup checker for stackup.

This module validates that Docker and a compose CLI are installed and
running before any service group is started, and checks whether the host
has enough memory for the full stack.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import structlog

from stackup.config.environment import MemoryInfo, Platform, detect_platform, read_memory_info
from stackup.core.commands import CommandRunner
from stackup.exceptions import ComposeUnavailable, EngineMissing, EngineNotRunning
from stackup.setup.docker_manager import ComposeDialect

logger = structlog.get_logger(__name__)


class ComponentStatus(str, Enum):
    """Status of a setup component."""

    OK = "ok"
    MISSING = "missing"
    NOT_RUNNING = "not_running"


@dataclass
class ComponentCheck:
    """Result of checking a component."""

    name: str
    status: ComponentStatus
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def is_ok(self) -> bool:
        return self.status == ComponentStatus.OK


@dataclass(frozen=True)
class EngineInfo:
    """What the environment probe found."""

    dialect: ComposeDialect
    docker_version: str
    compose_version: str


@dataclass(frozen=True)
class MemoryCheck:
    """Result of the low-memory check."""

    memory: MemoryInfo
    low: bool


def install_instructions(host: Platform, has_brew: bool = False) -> list[str]:
    """Get the Docker install instructions for a platform."""
    if host == Platform.LINUX:
        return [
            "Install Docker on Linux:",
            "  curl -fsSL https://get.docker.com | sh",
            "  sudo usermod -aG docker $USER",
            "",
            "Then logout/login or run: newgrp docker",
        ]
    if host == Platform.MACOS:
        lines = [
            "Install Docker Desktop for macOS:",
            "  https://docs.docker.com/desktop/install/mac-install/",
            "",
        ]
        if has_brew:
            lines += ["Or via Homebrew:", "  brew install --cask docker"]
        else:
            lines.append("Note: Homebrew is not installed. Install Docker Desktop manually.")
        return lines
    if host == Platform.WINDOWS_COMPATIBLE:
        return [
            "Install Docker Desktop for Windows:",
            "  https://docs.docker.com/desktop/install/windows-install/",
            "",
            "Make sure WSL2 backend is enabled",
        ]
    return [
        "Install Docker for your system:",
        "  https://docs.docker.com/get-docker/",
    ]


# How to start the Docker daemon, per platform
START_INSTRUCTIONS: dict[Platform, list[str]] = {
    Platform.LINUX: [
        "Start Docker service:",
        "  sudo systemctl start docker",
        "  sudo systemctl enable docker",
    ],
    Platform.MACOS: [
        "Start Docker Desktop application",
        "",
        "On macOS/Windows, Docker Desktop must be running",
        "Look for the Docker icon in your system tray/menu bar",
    ],
    Platform.WINDOWS_COMPATIBLE: [
        "Start Docker Desktop application",
        "",
        "On macOS/Windows, Docker Desktop must be running",
        "Look for the Docker icon in your system tray/menu bar",
    ],
    Platform.OTHER: [],
}

COMPOSE_INSTRUCTIONS = [
    "Docker Compose should be included with Docker Desktop",
    "If using Linux, install docker-compose-plugin:",
    "  sudo apt-get install docker-compose-plugin",
]


class SetupChecker:
    """
    Checks that the host can run the stack.

    All external commands go through the injected CommandRunner so the
    checks can be exercised without Docker installed.
    """

    def __init__(
        self,
        runner: CommandRunner | None = None,
        host: Platform | None = None,
        command_timeout: float = 10.0,
    ) -> None:
        """
        Initialize the setup checker.

        Args:
            runner: Command runner (defaults to the local host).
            host: Platform override (defaults to detection).
            command_timeout: Timeout for each probe command.
        """
        self._runner = runner or CommandRunner()
        self._platform = host or detect_platform()
        self._timeout = command_timeout

    @property
    def platform(self) -> Platform:
        return self._platform

    def check_docker(self) -> ComponentCheck:
        """Check if Docker is installed and running."""
        docker_path = self._runner.which("docker")
        if not docker_path:
            return ComponentCheck(
                name="Docker",
                status=ComponentStatus.MISSING,
                message="Docker is not installed or not in PATH",
            )

        result = self._runner.run(["docker", "info"], timeout=self._timeout)
        if result.returncode != 0:
            return ComponentCheck(
                name="Docker",
                status=ComponentStatus.NOT_RUNNING,
                message="Docker is installed but not running",
                details={"path": docker_path},
            )

        version_result = self._runner.run(["docker", "--version"], timeout=self._timeout)
        version = "unknown"
        if version_result.returncode == 0:
            version = _parse_docker_version(version_result.stdout)

        return ComponentCheck(
            name="Docker",
            status=ComponentStatus.OK,
            message=f"Docker {version} is running",
            details={"version": version, "path": docker_path},
        )

    def check_compose(self) -> ComponentCheck:
        """Find a working compose dialect, preferring the docker plugin."""
        for dialect in ComposeDialect:
            result = self._runner.run([*dialect.argv, "version"], timeout=self._timeout)
            if result.returncode != 0:
                continue

            short = self._runner.run([*dialect.argv, "version", "--short"], timeout=self._timeout)
            version = short.stdout.strip() if short.returncode == 0 and short.stdout.strip() else "unknown"
            return ComponentCheck(
                name="Docker Compose",
                status=ComponentStatus.OK,
                message=f"Docker Compose {version} is available",
                details={"dialect": dialect, "version": version},
            )

        return ComponentCheck(
            name="Docker Compose",
            status=ComponentStatus.MISSING,
            message="Docker Compose is not available",
        )

    def probe(self) -> EngineInfo:
        """
        Verify Docker and compose, and pick the compose dialect.

        Returns:
            EngineInfo for the rest of the run.

        Raises:
            EngineMissing: docker is not on PATH.
            EngineNotRunning: the Docker daemon does not respond.
            ComposeUnavailable: no compose dialect responds.
        """
        docker = self.check_docker()
        if docker.status == ComponentStatus.MISSING:
            logger.error("docker_missing", platform=self._platform.value)
            raise EngineMissing(
                docker.message,
                install_instructions(self._platform, has_brew=bool(self._runner.which("brew"))),
            )
        if docker.status == ComponentStatus.NOT_RUNNING:
            logger.error("docker_not_running", platform=self._platform.value)
            raise EngineNotRunning(docker.message, START_INSTRUCTIONS[self._platform])

        compose = self.check_compose()
        if not compose.is_ok:
            logger.error("compose_unavailable")
            raise ComposeUnavailable(compose.message, COMPOSE_INSTRUCTIONS)

        info = EngineInfo(
            dialect=compose.details["dialect"],
            docker_version=docker.details["version"],
            compose_version=compose.details["version"],
        )
        logger.info(
            "environment_probe_passed",
            dialect=info.dialect.value,
            docker_version=info.docker_version,
            compose_version=info.compose_version,
        )
        return info

    def check_memory(
        self,
        ram_threshold_mb: int = 1500,
        swap_threshold_mb: int = 1024,
        memory: MemoryInfo | None = None,
    ) -> MemoryCheck | None:
        """
        Check whether the host is too small for the full stack.

        Only Linux hosts are checked.

        Args:
            ram_threshold_mb: RAM below which the host counts as small.
            swap_threshold_mb: Swap below which a small host is flagged.
            memory: Pre-read totals (defaults to /proc/meminfo).

        Returns:
            MemoryCheck, or None when the check does not apply.
        """
        if self._platform != Platform.LINUX:
            return None

        memory = memory or read_memory_info()
        if memory is None:
            return None

        low = memory.total_ram_mb < ram_threshold_mb and memory.total_swap_mb < swap_threshold_mb
        if low:
            logger.warning(
                "low_memory_detected",
                ram_mb=memory.total_ram_mb,
                swap_mb=memory.total_swap_mb,
            )
        return MemoryCheck(memory=memory, low=low)


def _parse_docker_version(output: str) -> str:
    """Extract "27.0.3" from "Docker version 27.0.3, build 7d4bcd8"."""
    parts = output.split()
    if len(parts) < 3:
        return "unknown"
    return parts[2].rstrip(",")
