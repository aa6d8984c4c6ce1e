"""
Operator confirmation prompts.

Every yes/no question stackup asks goes through a Prompter so control
flow can be tested with scripted answers.
"""

from __future__ import annotations

from rich.console import Console
from rich.prompt import Confirm


class Prompter:
    """Asks the operator yes/no questions on the terminal."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(highlight=False)

    def confirm(self, question: str, default: bool = False) -> bool:
        """
        Ask a yes/no question.

        Args:
            question: Question text without the [y/N] suffix.
            default: Answer used for an empty reply or closed stdin.

        Returns:
            The operator's answer.
        """
        try:
            return Confirm.ask(question, default=default, console=self.console)
        except EOFError:
            return default
