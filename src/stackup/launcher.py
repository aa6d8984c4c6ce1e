"""
End-to-end stack launch.

StackLauncher runs the whole interactive flow: environment probe, memory
check, network setup, service selection, image pre-pull, port and
firewall negotiation, and the phased startup. Collaborators are injected
so the flow can be driven with scripted answers and fake commands.
"""

from __future__ import annotations

import time
from typing import Callable

import structlog

from stackup.cli.display import StackDisplay
from stackup.cli.prompts import Prompter
from stackup.config.environment import MemoryInfo, RunContext
from stackup.config.settings import StackSettings
from stackup.core.commands import CommandRunner
from stackup.core.firewall import PortNegotiator
from stackup.core.ports import PortConfig, required_ports
from stackup.core.selection import SERVICE_SUMMARIES, Service, ServiceSelection
from stackup.core.selector import ServiceSelector
from stackup.core.sequencer import SequenceReport, StartupSequencer
from stackup.exceptions import LowMemoryDeclined, UserCancelled
from stackup.setup.checker import EngineInfo, SetupChecker
from stackup.setup.docker_manager import ComposeDialect, DockerManager

logger = structlog.get_logger(__name__)

SWAP_RECIPE = [
    "Recommendation: Enable at least 2GB of Swap space.",
    "  sudo fallocate -l 2G /swapfile",
    "  sudo chmod 600 /swapfile",
    "  sudo mkswap /swapfile",
    "  sudo swapon /swapfile",
]


class StackLauncher:
    """Runs one interactive stack startup."""

    def __init__(
        self,
        settings: StackSettings | None = None,
        runner: CommandRunner | None = None,
        display: StackDisplay | None = None,
        prompter: Prompter | None = None,
        checker: SetupChecker | None = None,
        selector: ServiceSelector | None = None,
        sleep: Callable[[float], None] = time.sleep,
        memory: MemoryInfo | None = None,
    ) -> None:
        """
        Initialize the launcher.

        Args:
            settings: Stack settings (defaults to environment + defaults).
            runner: Command runner shared by every component.
            display: Operator output.
            prompter: Operator yes/no questions.
            checker: Environment probe.
            selector: Service selector.
            sleep: Sleep function used for phase delays and health polling.
            memory: Pre-read memory totals for the low-memory check.
        """
        self.settings = settings or StackSettings()
        self.runner = runner or CommandRunner(default_timeout=None)
        self.display = display or StackDisplay()
        self.prompter = prompter or Prompter(self.display.console)
        self.checker = checker or SetupChecker(
            self.runner,
            command_timeout=self.settings.command_timeout,
        )
        self.selector = selector or ServiceSelector(self.runner, self.display, self.prompter)
        self._sleep = sleep
        self._memory = memory

    def run(self, recreate: bool = False) -> SequenceReport | None:
        """
        Run the full startup flow.

        Returns:
            The sequencer report, or None when nothing was selected.

        Raises:
            StackEnvironmentError: Docker or compose is unusable.
            LowMemoryDeclined: The operator stopped on a low-memory host.
            UserCancelled: The operator cancelled.
        """
        self.display.header("n8n Stack Startup Script")
        self.display.text(f"Project root: {self.settings.root}")

        engine = self.check_environment()
        self.check_system()

        context = RunContext(
            settings=self.settings,
            dialect=engine.dialect,
            platform=self.checker.platform,
            recreate=recreate,
        )
        docker = DockerManager(context.dialect, self.runner)
        logger.info(
            "run_context_ready",
            project_root=str(context.project_root),
            dialect=context.dialect.value,
            recreate=recreate,
        )

        self.create_network(docker)

        selection = self.selector.select()
        if not self.confirm_selection(selection):
            return None

        sequencer = StartupSequencer(context, docker, self.display, sleep=self._sleep)
        sequencer.prepull(selection)

        self.negotiate_ports(context, selection)

        report = sequencer.run(selection, recreate)
        if report.skipped:
            self.display.error(
                "Some services were skipped: " + ", ".join(service.value for service in report.skipped)
            )
        else:
            self.display.success("All selected services started successfully!")
        self.display.blank()
        return report

    def check_environment(self) -> EngineInfo:
        """Probe Docker and compose and report what was found."""
        self.display.header("Docker Check")
        engine = self.checker.probe()
        if engine.dialect == ComposeDialect.LEGACY:
            self.display.info("Using legacy docker-compose command")
        self.display.success(f"Docker {engine.docker_version} is running")
        self.display.success(f"Docker Compose {engine.compose_version} is available")
        self.display.blank()
        return engine

    def check_system(self) -> None:
        """
        Warn about low-memory hosts.

        Raises:
            LowMemoryDeclined: The operator chose not to continue.
        """
        result = self.checker.check_memory(
            ram_threshold_mb=self.settings.low_memory_ram_mb,
            swap_threshold_mb=self.settings.low_memory_swap_mb,
            memory=self._memory,
        )
        if result is None:
            return

        self.display.header("System Check")
        self.display.info(f"Total RAM: {result.memory.total_ram_mb}MB")
        self.display.info(f"Total Swap: {result.memory.total_swap_mb}MB")
        if not result.low:
            return

        self.display.error("LOW MEMORY DETECTED!")
        self.display.warning(
            f"Your server has less than {_format_mb(self.settings.low_memory_ram_mb)} RAM "
            "and very little Swap."
        )
        self.display.warning("Running the full stack WILL likely cause the server to hang.")
        self.display.blank()
        self.display.lines(SWAP_RECIPE)
        self.display.blank()
        if not self.prompter.confirm("Continue anyway?", default=False):
            raise LowMemoryDeclined("Low memory; operator declined to continue")

    def create_network(self, docker: DockerManager) -> None:
        """Create the shared docker network if needed."""
        self.display.header("Network Setup")
        name = self.settings.network_name
        self.display.info(f"Ensuring network '{name}'...")
        if docker.ensure_network(name):
            self.display.success("Network created successfully")
        else:
            self.display.info(f"Network '{name}' already exists")

    def confirm_selection(self, selection: ServiceSelection) -> bool:
        """
        Summarize the selection and ask to continue.

        Returns:
            False when nothing was selected.

        Raises:
            UserCancelled: The operator declined.
        """
        self.display.header("Selected Services")
        self.display.text("The following services will be started:")
        self.display.blank()
        self.display.bullet_list([SERVICE_SUMMARIES[service] for service in selection.services])
        self.display.blank()

        if selection.is_empty:
            self.display.error("No services selected. Exiting.")
            return False

        if not self.prompter.confirm("Continue?", default=True):
            self.display.error("Operation cancelled by user")
            raise UserCancelled("Startup not confirmed")
        return True

    def negotiate_ports(self, context: RunContext, selection: ServiceSelection) -> None:
        """Check the ports the selection needs, if any."""
        config = PortConfig.from_env_file(context.settings.env_file(Service.SUPABASE))
        ports = required_ports(selection, config)
        logger.info("required_ports", ports=list(ports))

        if not ports:
            if selection.cloudflared:
                self.display.info("Using Cloudflared Tunnel - no port check needed")
            else:
                self.display.info("No externally reachable ports required - skipping port check")
            return

        negotiator = PortNegotiator(self.runner, self.display, self.prompter, context.platform)
        negotiator.negotiate(ports)


def _format_mb(megabytes: int) -> str:
    """Render 1500 as "1.5GB" and 1024 as "1024MB"."""
    if megabytes >= 1000 and megabytes % 100 == 0:
        return f"{megabytes / 1000:g}GB"
    return f"{megabytes}MB"
