"""
Docker manager for stackup.

This module wraps the docker and compose CLIs used to bring the stack up:
1. compose config/pull/up/down inside a service group's directory
2. container health status
3. the shared docker network
4. the running-container listing shown at the end
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Mapping, Sequence

import structlog

from stackup.core.commands import CommandRunner
from stackup.exceptions import NetworkSetupError

logger = structlog.get_logger(__name__)


class ComposeDialect(str, Enum):
    """The two supported compose CLI invocations."""

    PLUGIN = "docker compose"
    LEGACY = "docker-compose"

    @property
    def argv(self) -> list[str]:
        return self.value.split()


# Reported when a container is missing or has no health check
HEALTH_NOT_FOUND = "not_found"
HEALTHY = "healthy"


@dataclass
class ContainerInfo:
    """Information about a running Docker container."""

    name: str
    status: str
    ports: str = ""


class DockerManager:
    """
    Runs docker and compose commands for the stack.

    Compose commands run in a service group's directory; `up` streams its
    output to the terminal, everything else is captured.
    """

    def __init__(
        self,
        dialect: ComposeDialect = ComposeDialect.PLUGIN,
        runner: CommandRunner | None = None,
    ) -> None:
        """
        Initialize the Docker manager.

        Args:
            dialect: Compose CLI invocation chosen by the environment probe.
            runner: Command runner (defaults to the local host).
        """
        self._dialect = dialect
        self._runner = runner or CommandRunner()

    @property
    def dialect(self) -> ComposeDialect:
        return self._dialect

    def compose(
        self,
        args: Sequence[str],
        cwd: Path,
        env: Mapping[str, str] | None = None,
        capture: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        """Run a compose subcommand in a service group's directory."""
        return self._runner.run([*self._dialect.argv, *args], cwd=cwd, env=env, capture=capture)

    def config_services(self, cwd: Path, env: Mapping[str, str] | None = None) -> list[str]:
        """
        List the services a compose project declares.

        Returns:
            Service names, empty if the project cannot be read.
        """
        result = self.compose(["config", "--services"], cwd, env=env)
        if result.returncode != 0:
            logger.warning("compose_config_failed", cwd=str(cwd), error=result.stderr.strip())
            return []
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def pull(
        self,
        cwd: Path,
        services: Sequence[str] = (),
        env: Mapping[str, str] | None = None,
    ) -> bool:
        """Pull images quietly; all services when none are named."""
        result = self.compose(["pull", "-q", *services], cwd, env=env)
        if result.returncode != 0:
            logger.warning(
                "compose_pull_failed",
                cwd=str(cwd),
                services=list(services),
                error=result.stderr.strip(),
            )
            return False
        logger.info("compose_pull_done", cwd=str(cwd), services=list(services))
        return True

    def up(
        self,
        cwd: Path,
        services: Sequence[str] = (),
        env: Mapping[str, str] | None = None,
        extra_args: Sequence[str] = (),
    ) -> bool:
        """Start services detached; all services when none are named."""
        result = self.compose(["up", "-d", *extra_args, *services], cwd, env=env, capture=False)
        ok = result.returncode == 0
        if ok:
            logger.info("compose_up", cwd=str(cwd), services=list(services))
        else:
            logger.warning(
                "compose_up_failed",
                cwd=str(cwd),
                services=list(services),
                returncode=result.returncode,
            )
        return ok

    def down(self, cwd: Path, env: Mapping[str, str] | None = None) -> bool:
        """
        Stop and remove a compose project's containers.

        Failures are logged only; a project that is not deployed is fine.
        """
        result = self.compose(["down"], cwd, env=env)
        if result.returncode != 0:
            logger.debug("compose_down_ignored", cwd=str(cwd), error=result.stderr.strip())
            return False
        logger.info("compose_down", cwd=str(cwd))
        return True

    def health_status(self, container_name: str) -> str:
        """
        Get a container's health status.

        Returns:
            "healthy", "unhealthy", "starting", or HEALTH_NOT_FOUND when the
            container does not exist or has no health check.
        """
        result = self._runner.run(
            ["docker", "inspect", container_name, "--format", "{{.State.Health.Status}}"],
        )
        if result.returncode != 0:
            return HEALTH_NOT_FOUND
        status = result.stdout.strip()
        if not status or status in {"<no value>", "null", "none"}:
            return HEALTH_NOT_FOUND
        return status

    def ensure_network(self, name: str) -> bool:
        """
        Create a docker network unless it already exists.

        Returns:
            True if the network was created, False if it already existed.

        Raises:
            NetworkSetupError: The network could not be created.
        """
        if self._runner.run(["docker", "network", "inspect", name]).returncode == 0:
            logger.debug("network_exists", network=name)
            return False

        result = self._runner.run(["docker", "network", "create", name])
        if result.returncode != 0:
            raise NetworkSetupError(f"Failed to create network '{name}': {result.stderr.strip()}")
        logger.info("network_created", network=name)
        return True

    def list_containers(self, name_patterns: Iterable[str]) -> list[ContainerInfo]:
        """List running containers whose names contain any of the patterns."""
        patterns = list(name_patterns)
        result = self._runner.run(
            ["docker", "ps", "--format", "{{.Names}}\t{{.Status}}\t{{.Ports}}"],
        )
        if result.returncode != 0:
            logger.warning("docker_ps_failed", error=result.stderr.strip())
            return []

        containers = []
        for line in result.stdout.splitlines():
            if not line.strip():
                continue
            name, _, rest = line.partition("\t")
            status, _, ports = rest.partition("\t")
            if any(pattern in line for pattern in patterns):
                containers.append(ContainerInfo(name=name, status=status, ports=ports))
        return containers
