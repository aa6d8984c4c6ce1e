"""
Pytest fixtures and configuration for the stackup test suite.
"""

from __future__ import annotations

import io
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence

import pytest
import structlog
from rich.console import Console

from stackup.cli.display import StackDisplay
from stackup.config.environment import Platform, RunContext
from stackup.config.settings import SERVICE_DIRS, StackSettings
from stackup.setup.docker_manager import ComposeDialect

# ============================================================================
# Fake collaborators
# ============================================================================


@dataclass
class Call:
    """One command the code under test ran."""

    cmd: list[str]
    cwd: Path | None = None
    env: Mapping[str, str] | None = None
    capture: bool = True
    timeout: float | None = None

    @property
    def line(self) -> str:
        return " ".join(self.cmd)


class FakeRunner:
    """
    Stand-in for CommandRunner.

    Responses are registered per command prefix; the longest matching
    prefix wins, the most recent registration breaks ties. Unmatched
    commands succeed with empty output.
    """

    def __init__(self, installed: Sequence[str] = ()) -> None:
        self.installed = set(installed)
        self.calls: list[Call] = []
        self.dialog_calls: list[tuple[list[str], str]] = []
        self._responses: list[tuple[tuple[str, ...], int, str, str]] = []

    def on(self, *prefix: str, returncode: int = 0, stdout: str = "", stderr: str = "") -> FakeRunner:
        self._responses.append((tuple(prefix), returncode, stdout, stderr))
        return self

    def which(self, binary: str) -> str | None:
        return f"/usr/bin/{binary}" if binary in self.installed else None

    def _respond(self, args: list[str]) -> subprocess.CompletedProcess[str]:
        best: tuple[tuple[str, ...], int, str, str] | None = None
        for response in self._responses:
            prefix = response[0]
            if tuple(args[: len(prefix)]) == prefix and (best is None or len(prefix) >= len(best[0])):
                best = response
        if best is None:
            return subprocess.CompletedProcess(args, 0, "", "")
        return subprocess.CompletedProcess(args, best[1], best[2], best[3])

    def run(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        capture: bool = True,
        timeout: float | None = None,
    ) -> subprocess.CompletedProcess[str]:
        args = list(cmd)
        self.calls.append(Call(args, cwd, env, capture, timeout))
        return self._respond(args)

    def run_dialog(
        self,
        cmd: Sequence[str],
        *,
        result_stream: str = "stderr",
    ) -> subprocess.CompletedProcess[str]:
        args = list(cmd)
        self.dialog_calls.append((args, result_stream))
        return self._respond(args)

    @property
    def lines(self) -> list[str]:
        """Every command run, joined with spaces."""
        return [call.line for call in self.calls]


class FakePrompter:
    """Answers yes/no questions from a script; unscripted ones get the default."""

    def __init__(self, answers: Mapping[str, bool] | None = None) -> None:
        self.answers = dict(answers or {})
        self.asked: list[tuple[str, bool]] = []

    def confirm(self, question: str, default: bool = False) -> bool:
        self.asked.append((question, default))
        return self.answers.get(question, default)

    @property
    def questions(self) -> list[str]:
        return [question for question, _ in self.asked]


class RecordingSleep:
    """Sleep replacement that records requested durations."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class CapturedDisplay(StackDisplay):
    """StackDisplay writing to an in-memory console."""

    def __init__(self) -> None:
        super().__init__(Console(file=io.StringIO(), width=200, color_system=None, highlight=False))

    @property
    def output(self) -> str:
        return self.console.file.getvalue()


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def runner() -> FakeRunner:
    """Fake command runner with nothing installed."""
    return FakeRunner()


@pytest.fixture
def prompter() -> FakePrompter:
    return FakePrompter()


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def display() -> CapturedDisplay:
    return CapturedDisplay()


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Create a stack checkout with every service group directory."""
    root = tmp_path / "stack"
    for parts in SERVICE_DIRS.values():
        root.joinpath(*parts).mkdir(parents=True)
    return root.resolve()


@pytest.fixture
def settings(project_root: Path) -> StackSettings:
    return StackSettings(project_root=project_root)


@pytest.fixture
def context(settings: StackSettings) -> RunContext:
    return RunContext(settings=settings, dialect=ComposeDialect.PLUGIN, platform=Platform.LINUX)


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo CLI logging configuration between tests."""
    yield
    structlog.reset_defaults()
    for handler in list(logging.root.handlers):
        logging.root.removeHandler(handler)
