"""
Phased startup of the selected service groups.

Supabase is brought up in five hand-tuned phases so its dependants do not
hit a cold database all at once; every other group is started with a
single `compose up`. Image pulls and starts are strictly sequential to
keep I/O and memory peaks low on small hosts.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Mapping

import structlog

from stackup.config.environment import environment_with
from stackup.core.health import HealthWaiter
from stackup.core.selection import Service, ServiceSelection
from stackup.exceptions import DirectoryMissing
from stackup.setup.docker_manager import ContainerInfo, DockerManager

if TYPE_CHECKING:
    from stackup.cli.display import StackDisplay
    from stackup.config.environment import RunContext
    from stackup.config.settings import StackSettings

logger = structlog.get_logger(__name__)

SUPABASE_DB_CONTAINER = "supabase-db"


@dataclass(frozen=True)
class StartupPhase:
    """
    One step of a staggered bring-up.

    `services` start together (empty means the whole project), then the
    optional `wait_for` container is awaited, then `then` services start.
    `delay` is slept before the phase begins.
    """

    label: str
    services: tuple[str, ...] = ()
    wait_for: str | None = None
    then: tuple[str, ...] = ()
    delay: float = 0.0


def supabase_phases(phase_delay: float = 8.0, final_delay: float = 5.0) -> list[StartupPhase]:
    """Get the Supabase bring-up phases."""
    return [
        StartupPhase(
            label="Phase 1: Starting foundation (vector, db, kong)...",
            services=("vector", "db"),
            wait_for=SUPABASE_DB_CONTAINER,
            then=("kong",),
        ),
        StartupPhase(
            label="Phase 2: Starting API layer (auth, rest, imgproxy)...",
            services=("auth", "rest", "imgproxy"),
            delay=phase_delay,
        ),
        StartupPhase(
            label="Phase 3: Starting utility services (meta, studio, storage)...",
            services=("meta", "studio", "storage"),
            delay=phase_delay,
        ),
        StartupPhase(
            label="Phase 4: Starting compute & realtime (realtime, supavisor, functions)...",
            services=("realtime", "supavisor", "functions"),
            delay=phase_delay,
        ),
        StartupPhase(
            label="Phase 5: Starting remaining services...",
            delay=final_delay,
        ),
    ]


@dataclass(frozen=True)
class ServiceGroup:
    """A compose project started as one unit."""

    service: Service
    directory: Path
    description: str
    health_container: str | None = None
    env_file: Path | None = None

    def environment(self) -> dict[str, str] | None:
        """Process environment for this group's compose commands."""
        if self.env_file is None:
            return None
        return environment_with(self.env_file)


# Groups started with a single `compose up`, in start order; all but the first are paced
INDEPENDENT_GROUPS: tuple[Service, ...] = (
    Service.N8N,
    Service.NPM,
    Service.CLOUDFLARED,
    Service.PORTAINER,
)

GROUP_DESCRIPTIONS: dict[Service, str] = {
    Service.N8N: "n8n",
    Service.SUPABASE: "Supabase (full stack - staggered)",
    Service.NPM: "Nginx Proxy Manager",
    Service.CLOUDFLARED: "Cloudflared Tunnel",
    Service.PORTAINER: "Portainer",
}


def build_service_groups(settings: StackSettings) -> dict[Service, ServiceGroup]:
    """Describe every service group for a checkout."""
    return {
        service: ServiceGroup(
            service=service,
            directory=settings.service_dir(service),
            description=GROUP_DESCRIPTIONS[service],
            env_file=settings.env_file(service) if service == Service.N8N else None,
        )
        for service in Service
    }


@dataclass
class PullReport:
    """Outcome of the image pre-pull step."""

    pulled: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


@dataclass
class SequenceReport:
    """Outcome of a sequencer run."""

    started: list[Service] = field(default_factory=list)
    skipped: list[Service] = field(default_factory=list)
    health_timeouts: list[str] = field(default_factory=list)
    containers: list[ContainerInfo] = field(default_factory=list)


class StartupSequencer:
    """
    Starts the selected service groups in dependency order.

    Supabase first (phased), then n8n, Nginx Proxy Manager, Cloudflared and
    Portainer. Health waits are advisory: a timeout is reported and the
    sequence carries on.
    """

    def __init__(
        self,
        context: RunContext,
        docker: DockerManager,
        display: StackDisplay,
        waiter: HealthWaiter | None = None,
        groups: Mapping[Service, ServiceGroup] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._context = context
        self._settings = context.settings
        self._docker = docker
        self._display = display
        self._sleep = sleep
        self._waiter = waiter or HealthWaiter(
            docker,
            display,
            interval=self._settings.health_poll_interval,
            sleep=sleep,
        )
        self._groups = dict(groups) if groups is not None else build_service_groups(self._settings)
        self._phases = supabase_phases(self._settings.phase_delay, self._settings.final_phase_delay)

    # ==================== Pre-pull ====================

    def prepull(self, selection: ServiceSelection) -> PullReport:
        """
        Pull images ahead of startup, one image at a time.

        Failed pulls are reported and skipped.
        """
        report = PullReport()

        if selection.supabase:
            group = self._groups[Service.SUPABASE]
            self._display.header("Image Pre-pull: Supabase")
            if self._check_dir(group):
                self._display.info("Pre-pulling heavy images one by one...")
                for service in self._docker.config_services(group.directory):
                    self._display.progress(f"Pulling {service}... ")
                    ok = self._docker.pull(group.directory, [service])
                    self._display.progress_done(ok)
                    (report.pulled if ok else report.skipped).append(service)

        if selection.n8n:
            group = self._groups[Service.N8N]
            self._display.header("Image Pre-pull: n8n")
            if self._check_dir(group):
                if group.env_file is not None and not group.env_file.is_file():
                    self._display.warning("n8n/.env file not found! Skipping pre-pull.")
                    report.skipped.append(Service.N8N.value)
                else:
                    self._display.info("Pre-pulling n8n images...")
                    ok = self._docker.pull(group.directory, env=group.environment())
                    (report.pulled if ok else report.skipped).append(Service.N8N.value)

        logger.info("prepull_complete", pulled=report.pulled, skipped=report.skipped)
        return report

    # ==================== Startup ====================

    def run(self, selection: ServiceSelection, recreate: bool | None = None) -> SequenceReport:
        """
        Start every selected service group.

        Args:
            selection: Groups to start.
            recreate: Tear each group down first (defaults to the run context).

        Returns:
            SequenceReport with started and skipped groups.
        """
        if recreate is None:
            recreate = self._context.recreate
        report = SequenceReport()

        if selection.supabase:
            if self.start_supabase(recreate, report):
                report.started.append(Service.SUPABASE)
            else:
                report.skipped.append(Service.SUPABASE)

        for index, service in enumerate(INDEPENDENT_GROUPS):
            if not selection.is_selected(service):
                continue
            if index > 0:
                self._sleep(self._settings.pacing_delay)

            if self.start_group(self._groups[service], recreate, report):
                report.started.append(service)
            else:
                report.skipped.append(service)

        report.containers = self.show_running()
        logger.info(
            "startup_sequence_complete",
            started=[s.value for s in report.started],
            skipped=[s.value for s in report.skipped],
            health_timeouts=report.health_timeouts,
        )
        return report

    def start_supabase(self, recreate: bool, report: SequenceReport | None = None) -> bool:
        """Bring Supabase up phase by phase."""
        group = self._groups[Service.SUPABASE]
        self._display.header(f"Starting: {group.description}")
        if not self._check_dir(group):
            return False

        if recreate:
            self._display.info("Stopping existing Supabase full stack (--recreate)...")
            self._docker.down(group.directory)

        failed = False
        for phase in self._phases:
            self._display.info(phase.label)
            if phase.delay:
                self._sleep(phase.delay)
            if not self._docker.up(group.directory, phase.services):
                self._display.error(f"Failed to start {_phase_targets(phase.services)}")
                failed = True

            if phase.wait_for:
                healthy = self._waiter.wait_healthy(phase.wait_for, self._settings.health_timeout)
                if not healthy and report is not None:
                    report.health_timeouts.append(phase.wait_for)
            if phase.then and not self._docker.up(group.directory, phase.then):
                self._display.error(f"Failed to start {_phase_targets(phase.then)}")
                failed = True

        if failed:
            self._display.error("Supabase failed to start completely")
            self._display.blank()
            return False

        self._display.success("Supabase started successfully")
        self._display.blank()
        return True

    def start_group(
        self,
        group: ServiceGroup,
        recreate: bool,
        report: SequenceReport | None = None,
    ) -> bool:
        """
        Start one service group with a single `compose up`.

        A missing directory is reported and the group skipped.
        """
        self._display.header(f"Starting: {group.description}")
        if not self._check_dir(group):
            self._display.error(f"Skipping {group.service.value} (directory not found)")
            return False

        self._display.info(f"Working directory: {group.directory}")
        env = group.environment()

        if recreate:
            self._display.info("Stopping existing containers (--recreate flag is set)...")
            self._docker.down(group.directory, env=env)

        self._display.info("Starting containers...")
        if not self._docker.up(group.directory, env=env):
            self._display.error(f"{group.description} failed to start")
            return False

        if group.health_container:
            healthy = self._waiter.wait_healthy(group.health_container, self._settings.health_timeout)
            if not healthy and report is not None:
                report.health_timeouts.append(group.health_container)

        self._display.success(f"{group.description} started successfully")
        self._display.blank()
        return True

    def show_running(self) -> list[ContainerInfo]:
        """Show the stack's running containers."""
        self._display.header("Startup Complete")
        self._display.text("Running containers:")
        self._display.blank()

        containers = self._docker.list_containers(service.value for service in Service)
        if containers:
            self._display.containers(containers)
        else:
            self._display.info("No containers found")
        self._display.blank()
        return containers

    def _check_dir(self, group: ServiceGroup) -> bool:
        try:
            require_directory(group)
        except DirectoryMissing as e:
            self._display.error(str(e))
            logger.warning("service_directory_missing", service=group.service.value, path=str(e.directory))
            return False
        return True


def require_directory(group: ServiceGroup) -> Path:
    """
    Get a group's working directory.

    Raises:
        DirectoryMissing: The directory does not exist.
    """
    if not group.directory.is_dir():
        raise DirectoryMissing(group.directory)
    return group.directory


def _phase_targets(services: tuple[str, ...]) -> str:
    return ", ".join(services) if services else "remaining services"
