"""
Display components for the stackup CLI.

All operator-facing output goes through StackDisplay so the same
formatting (headers, ✓ / ✗ / ℹ lines, tables) is used everywhere and
tests can capture it by handing in their own Console.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from rich.box import SIMPLE
from rich.console import Console
from rich.markup import escape as rich_escape
from rich.panel import Panel
from rich.table import Table

from stackup.setup.docker_manager import ContainerInfo


class StackDisplay:
    """Rich console output for a stackup run."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(highlight=False)

    def header(self, title: str) -> None:
        self.console.print()
        self.console.print(Panel(f"[bold blue]{rich_escape(title)}[/bold blue]", border_style="blue"))
        self.console.print()

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {rich_escape(message)}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {rich_escape(message)}")

    def info(self, message: str) -> None:
        self.console.print(f"[yellow]ℹ[/yellow] {rich_escape(message)}")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠ {rich_escape(message)}[/yellow]")

    def text(self, message: str = "") -> None:
        self.console.print(rich_escape(message))

    def lines(self, lines: Iterable[str]) -> None:
        for line in lines:
            self.text(line)

    def blank(self) -> None:
        self.console.print()

    def progress(self, message: str) -> None:
        """Print without a newline (for "Pulling x... DONE" style lines)."""
        self.console.print(rich_escape(message), end="")

    def progress_done(self, ok: bool, ok_text: str = "DONE", failed_text: str = "SKIPPED") -> None:
        if ok:
            self.console.print(f"[green]{ok_text}[/green]")
        else:
            self.console.print(f"[red]{failed_text}[/red]")

    def bullet_list(self, items: Sequence[str]) -> None:
        for item in items:
            self.console.print(f"  • {rich_escape(item)}")

    def containers(self, containers: Sequence[ContainerInfo]) -> None:
        """Print the running-container table."""
        table = Table(box=SIMPLE, show_header=True)
        table.add_column("NAMES", style="cyan")
        table.add_column("STATUS")
        table.add_column("PORTS", style="dim")
        for container in containers:
            table.add_row(container.name, container.status, container.ports)
        self.console.print(table)

    def port_instructions(self, ports: Sequence[int]) -> None:
        """Print copy-pasteable firewall commands for ufw and firewalld."""
        self.blank()
        self.info("Please open the following ports manually:")
        self.text(f"  Ports: {', '.join(str(port) for port in ports)}")
        self.blank()
        self.text("  UFW (Ubuntu/Debian):")
        for port in ports:
            self.text(f"    sudo ufw allow {port}/tcp")
        self.blank()
        self.text("  Firewalld (CentOS/RHEL):")
        for port in ports:
            self.text(f"    sudo firewall-cmd --permanent --add-port={port}/tcp")
        self.text("    sudo firewall-cmd --reload")
        self.blank()
        self.warning("Don't forget to open ports in your cloud provider's firewall/security group!")
        self.blank()
