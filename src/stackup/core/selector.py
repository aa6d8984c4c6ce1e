"""
Interactive service selection.

A whiptail or dialog checklist is used when one is installed; otherwise
the operator answers one yes/no question per service group.
"""

from __future__ import annotations

import shlex
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Sequence

import structlog

from stackup.core.commands import CommandRunner
from stackup.core.selection import SERVICE_DESCRIPTIONS, Service, ServiceSelection
from stackup.exceptions import UserCancelled

if TYPE_CHECKING:
    from stackup.cli.display import StackDisplay
    from stackup.cli.prompts import Prompter

logger = structlog.get_logger(__name__)

CHECKLIST_TITLE = "Stack Startup"
CHECKLIST_PROMPT = "Select services to start (Space to select, Enter to confirm):"
CHECKLIST_GEOMETRY = ("20", "70", "10")


class ChecklistUI(ABC):
    """A terminal checklist tool."""

    binary: str = ""
    result_stream: str = "stderr"

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    def is_available(self) -> bool:
        return self._runner.which(self.binary) is not None

    @abstractmethod
    def command(self, items: Sequence[tuple[str, str]]) -> list[str]:
        """Build the checklist command line."""

    def choose(self, items: Sequence[tuple[str, str]]) -> list[str] | None:
        """
        Show the checklist, every item unchecked.

        Args:
            items: (tag, description) pairs.

        Returns:
            Checked tags, or None if the operator cancelled.
        """
        result = self._runner.run_dialog(self.command(items), result_stream=self.result_stream)
        if result.returncode != 0:
            return None
        return shlex.split(result.stdout)


def _checklist_items(items: Sequence[tuple[str, str]]) -> list[str]:
    args: list[str] = []
    for tag, description in items:
        args += [tag, description, "OFF"]
    return args


class WhiptailChecklist(ChecklistUI):
    binary = "whiptail"
    result_stream = "stderr"

    def command(self, items: Sequence[tuple[str, str]]) -> list[str]:
        return [
            "whiptail",
            "--title", CHECKLIST_TITLE,
            "--checklist", CHECKLIST_PROMPT,
            *CHECKLIST_GEOMETRY,
            *_checklist_items(items),
        ]


class DialogChecklist(ChecklistUI):
    binary = "dialog"
    result_stream = "stdout"

    def command(self, items: Sequence[tuple[str, str]]) -> list[str]:
        return [
            "dialog", "--stdout",
            "--title", CHECKLIST_TITLE,
            "--checklist", CHECKLIST_PROMPT,
            *CHECKLIST_GEOMETRY,
            *_checklist_items(items),
        ]


CHECKLIST_TOOLS: tuple[type[ChecklistUI], ...] = (WhiptailChecklist, DialogChecklist)


class ServiceSelector:
    """Lets the operator choose which service groups to start."""

    def __init__(
        self,
        runner: CommandRunner,
        display: StackDisplay,
        prompter: Prompter,
        tools: Sequence[ChecklistUI] | None = None,
    ) -> None:
        self._display = display
        self._prompter = prompter
        self._tools = list(tools) if tools is not None else [cls(runner) for cls in CHECKLIST_TOOLS]

    def select(self) -> ServiceSelection:
        """
        Ask for the selection.

        Raises:
            UserCancelled: The checklist was cancelled.
        """
        tool = next((tool for tool in self._tools if tool.is_available()), None)
        if tool is None:
            self._display.info("Interactive menu not available, using simple mode")
            return self._select_simple()

        items = [(service.value, SERVICE_DESCRIPTIONS[service]) for service in Service]
        chosen = tool.choose(items)
        if chosen is None:
            self._display.blank()
            self._display.error("Operation cancelled by user")
            raise UserCancelled("Service selection cancelled")

        selection = ServiceSelection.from_services(chosen)
        logger.info("services_selected", tool=tool.binary, services=[s.value for s in selection.services])
        return selection

    def _select_simple(self) -> ServiceSelection:
        self._display.header("Service Selection")
        self._display.text("Answer yes (y) or no (n) for each service:")
        self._display.blank()

        chosen = [service for service in Service if self._prompter.confirm(service.question, default=False)]
        selection = ServiceSelection.from_services(chosen)
        logger.info("services_selected", tool="prompt", services=[s.value for s in selection.services])
        return selection
