"""
Container health waiting.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Callable

import structlog

from stackup.setup.docker_manager import HEALTHY, DockerManager

if TYPE_CHECKING:
    from stackup.cli.display import StackDisplay

logger = structlog.get_logger(__name__)


class HealthWaiter:
    """
    Polls a container's health status until healthy or timed out.

    Elapsed time is counted in poll intervals, so a 60s timeout with a 2s
    interval means at most 30 polls regardless of how long each takes.
    """

    def __init__(
        self,
        docker: DockerManager,
        display: StackDisplay,
        interval: int = 2,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._docker = docker
        self._display = display
        self._interval = interval
        self._sleep = sleep

    def wait_healthy(self, container_name: str, timeout_seconds: int = 60) -> bool:
        """
        Wait for a container to report healthy.

        A container that does not exist yet or has no health check keeps
        being polled until the timeout.

        Args:
            container_name: Container to watch.
            timeout_seconds: Give up once this much time has elapsed.

        Returns:
            True if "healthy" was observed before the timeout.
        """
        self._display.progress(f"Waiting for {container_name} to be healthy...")
        elapsed = 0

        while elapsed < timeout_seconds:
            status = self._docker.health_status(container_name)
            if status == HEALTHY:
                self._display.blank()
                self._display.success(f"{container_name} is healthy")
                logger.info("container_healthy", container=container_name, elapsed=elapsed)
                return True

            self._display.progress(".")
            self._sleep(self._interval)
            elapsed += self._interval

        self._display.blank()
        self._display.error(f"{container_name} did not become healthy within {timeout_seconds}s")
        logger.warning("container_health_timeout", container=container_name, timeout=timeout_seconds)
        return False
