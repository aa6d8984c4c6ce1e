"""
Port availability and firewall negotiation.

Listening ports are detected with the first available of lsof, ss and
netstat; firewall rules are managed through ufw or firewalld, whichever is
active. Whenever a rule cannot be opened automatically the operator gets
copy-pasteable commands instead.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Sequence

import structlog

from stackup.config.environment import Platform
from stackup.core.commands import CommandRunner
from stackup.exceptions import UserCancelled

if TYPE_CHECKING:
    from stackup.cli.display import StackDisplay
    from stackup.cli.prompts import Prompter

logger = structlog.get_logger(__name__)


# ==================== Port probes ====================


class PortProbe(ABC):
    """Detects whether a TCP port is already listening on this host."""

    binary: str = ""

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    @property
    def name(self) -> str:
        return self.binary or "none"

    def is_available(self) -> bool:
        return bool(self.binary) and self._runner.which(self.binary) is not None

    @abstractmethod
    def is_listening(self, port: int) -> bool:
        """Check whether something listens on the port."""

    def describe(self, port: int) -> list[str]:
        """Get a few lines describing who holds the port."""
        return []


class LsofProbe(PortProbe):
    binary = "lsof"

    def is_listening(self, port: int) -> bool:
        result = self._runner.run(["lsof", "-Pi", f":{port}", "-sTCP:LISTEN", "-t"])
        return result.returncode == 0

    def describe(self, port: int) -> list[str]:
        result = self._runner.run(["lsof", "-i", f":{port}"])
        return [line for line in result.stdout.splitlines() if "LISTEN" in line][:3]


class _SocketTableProbe(PortProbe):
    """Probe that scans a `-tuln` socket table for ":PORT "."""

    def is_listening(self, port: int) -> bool:
        result = self._runner.run([self.binary, "-tuln"])
        if result.returncode != 0:
            return False
        pattern = re.compile(rf":{port}\s")
        return any(pattern.search(f"{line} ") for line in result.stdout.splitlines())


class SsProbe(_SocketTableProbe):
    binary = "ss"


class NetstatProbe(_SocketTableProbe):
    binary = "netstat"


class NullPortProbe(PortProbe):
    """Used when no probe tool is installed: every port looks free."""

    def is_available(self) -> bool:
        return True

    def is_listening(self, port: int) -> bool:
        return False


PORT_PROBES: tuple[type[PortProbe], ...] = (LsofProbe, SsProbe, NetstatProbe)


def select_port_probe(runner: CommandRunner) -> PortProbe:
    """Pick the first installed port probe."""
    for probe_cls in PORT_PROBES:
        probe = probe_cls(runner)
        if probe.is_available():
            logger.debug("port_probe_selected", probe=probe.name)
            return probe
    logger.debug("port_probe_unavailable")
    return NullPortProbe(runner)


# ==================== Firewall managers ====================


class FirewallManager(ABC):
    """A local firewall that stackup can query and open ports in."""

    binary: str = ""
    label: str = ""

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    def is_installed(self) -> bool:
        return self._runner.which(self.binary) is not None

    @abstractmethod
    def is_active(self) -> bool:
        """Check whether the firewall is installed and enforcing."""

    @abstractmethod
    def allows(self, port: int) -> bool:
        """Check whether inbound TCP traffic on the port is allowed."""

    @abstractmethod
    def open_port(self, port: int) -> bool:
        """Allow inbound TCP traffic on the port."""


class UfwFirewall(FirewallManager):
    binary = "ufw"
    label = "UFW"

    def _status(self) -> str:
        result = self._runner.run(["sudo", "ufw", "status"])
        return result.stdout if result.returncode == 0 else ""

    def is_active(self) -> bool:
        return self.is_installed() and "Status: active" in self._status()

    def allows(self, port: int) -> bool:
        pattern = re.compile(rf"^{port}(/tcp)?\b.*ALLOW", re.MULTILINE)
        return bool(pattern.search(self._status()))

    def open_port(self, port: int) -> bool:
        return self._runner.run(["sudo", "ufw", "allow", f"{port}/tcp"]).returncode == 0


class FirewalldFirewall(FirewallManager):
    binary = "firewall-cmd"
    label = "firewalld"

    def is_active(self) -> bool:
        if not self.is_installed():
            return False
        result = self._runner.run(["sudo", "firewall-cmd", "--state"])
        return result.returncode == 0 and "running" in result.stdout

    def allows(self, port: int) -> bool:
        result = self._runner.run(["sudo", "firewall-cmd", f"--query-port={port}/tcp"])
        return result.returncode == 0

    def open_port(self, port: int) -> bool:
        added = self._runner.run(["sudo", "firewall-cmd", "--permanent", f"--add-port={port}/tcp"])
        if added.returncode != 0:
            return False
        return self._runner.run(["sudo", "firewall-cmd", "--reload"]).returncode == 0


FIREWALLS: tuple[type[FirewallManager], ...] = (UfwFirewall, FirewalldFirewall)


def detect_firewall(runner: CommandRunner) -> FirewallManager | None:
    """Get the first active firewall, in priority order."""
    for firewall_cls in FIREWALLS:
        firewall = firewall_cls(runner)
        if firewall.is_active():
            logger.info("firewall_detected", firewall=firewall.label)
            return firewall
    return None


# ==================== Negotiation ====================


@dataclass
class NegotiationReport:
    """What the negotiator found and did."""

    ports: list[int]
    in_use: list[int] = field(default_factory=list)
    firewall: str | None = None
    closed: list[int] = field(default_factory=list)
    opened: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)
    firewall_checked: bool = False


class PortNegotiator:
    """
    Checks required ports and offers to open them in the local firewall.

    Never fails the run: anything that cannot be done automatically is
    printed as manual instructions. The only exit is the operator declining
    to continue when ports are already taken.
    """

    def __init__(
        self,
        runner: CommandRunner,
        display: StackDisplay,
        prompter: Prompter,
        host: Platform,
        probe: PortProbe | None = None,
    ) -> None:
        self._runner = runner
        self._display = display
        self._prompter = prompter
        self._platform = host
        self._probe = probe or select_port_probe(runner)

    def negotiate(self, ports: Sequence[int]) -> NegotiationReport:
        """
        Check, and optionally open, the given ports.

        Raises:
            UserCancelled: Ports are in use and the operator declined to continue.
        """
        report = NegotiationReport(ports=list(ports))
        self._display.header("Port Check")
        self._check_in_use(report)

        if self._platform != Platform.LINUX:
            self._display.info("Skipping firewall check (not on Linux)")
            return report

        self._display.header("Firewall Check")
        report.firewall_checked = True
        firewall = detect_firewall(self._runner)
        if firewall is None:
            self._display.info("No active firewall detected (ufw/firewalld)")
            self._display.blank()
            self._display.warning("Note: If you're on a VPS, check your cloud provider's firewall/security group!")
            self._display.text(f"  Required ports: {' '.join(str(port) for port in report.ports)}")
            self._display.blank()
            return report

        report.firewall = firewall.label
        self._display.info(f"Detected active firewall: {firewall.label}")

        for port in report.ports:
            if firewall.allows(port):
                self._display.success(f"Port {port} is open in firewall")
            else:
                report.closed.append(port)
                self._display.error(f"Port {port} is closed in firewall")

        if not report.closed:
            self._display.success("All required ports are open")
            return report

        self._display.blank()
        self._display.info(f"The following ports need to be opened: {' '.join(map(str, report.closed))}")
        if not self._prompter.confirm("Open these ports automatically? (requires sudo)", default=True):
            self._display.port_instructions(report.closed)
            return report

        for port in report.closed:
            self._display.progress(f"Opening port {port}... ")
            if firewall.open_port(port):
                report.opened.append(port)
                self._display.progress_done(True, ok_text="OK")
            else:
                report.failed.append(port)
                self._display.progress_done(False, failed_text="FAILED")

        logger.info(
            "firewall_ports_opened",
            firewall=firewall.label,
            opened=report.opened,
            failed=report.failed,
        )

        if report.failed:
            self._display.port_instructions(report.failed)
        else:
            self._display.success("All ports opened successfully")
            self._display.blank()
            self._display.warning("Remember: Also open these ports in your cloud provider's firewall!")
        self._display.blank()
        return report

    def _check_in_use(self, report: NegotiationReport) -> None:
        for port in report.ports:
            if self._probe.is_listening(port):
                report.in_use.append(port)
                self._display.error(f"Port {port} is already in use")
                self._display.lines(self._probe.describe(port))
            else:
                self._display.success(f"Port {port} is available")

        if not report.in_use:
            return

        logger.warning("ports_in_use", ports=report.in_use, probe=self._probe.name)
        self._display.blank()
        self._display.error(f"Some ports are already in use: {' '.join(map(str, report.in_use))}")
        self._display.text("Services using these ports may fail to start.")
        if not self._prompter.confirm("Continue anyway?", default=False):
            self._display.error("Operation cancelled by user")
            raise UserCancelled("Ports in use")
