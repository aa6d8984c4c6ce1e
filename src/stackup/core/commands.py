"""
Thin wrapper around subprocess for the external tools stackup drives.

A missing binary or a timeout never raises; both come back as a
CompletedProcess with a conventional shell return code so callers only
ever inspect `returncode`.
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Mapping, Sequence

import structlog

logger = structlog.get_logger(__name__)

COMMAND_NOT_FOUND = 127
COMMAND_TIMED_OUT = 124


class CommandRunner:
    """Runs external commands on the local host."""

    def __init__(self, default_timeout: float | None = None) -> None:
        """
        Initialize the runner.

        Args:
            default_timeout: Timeout applied when a call does not pass one.
        """
        self._default_timeout = default_timeout

    def which(self, binary: str) -> str | None:
        """Locate a binary on PATH."""
        return shutil.which(binary)

    def run(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        capture: bool = True,
        timeout: float | None = None,
    ) -> subprocess.CompletedProcess[str]:
        """
        Run a command and wait for it.

        Args:
            cmd: Command and arguments.
            cwd: Working directory.
            env: Full environment for the child process.
            capture: Capture stdout/stderr. When False the child writes
                straight to the operator's terminal.
            timeout: Seconds before the command is abandoned.

        Returns:
            The completed process.
        """
        args = list(cmd)
        effective_timeout = timeout if timeout is not None else self._default_timeout
        logger.debug("command_run", cmd=args, cwd=str(cwd) if cwd else None)

        try:
            result = subprocess.run(
                args,
                cwd=cwd,
                env=dict(env) if env is not None else None,
                capture_output=capture,
                text=True,
                timeout=effective_timeout,
            )
        except FileNotFoundError as e:
            logger.debug("command_not_found", cmd=args, error=str(e))
            return subprocess.CompletedProcess(args, COMMAND_NOT_FOUND, "", str(e))
        except subprocess.TimeoutExpired:
            logger.warning("command_timed_out", cmd=args, timeout=effective_timeout)
            return subprocess.CompletedProcess(
                args, COMMAND_TIMED_OUT, "", f"Command timed out after {effective_timeout}s"
            )

        logger.debug("command_finished", cmd=args, returncode=result.returncode)
        if result.stdout is None:
            result.stdout = ""
        if result.stderr is None:
            result.stderr = ""
        return result

    def run_dialog(
        self,
        cmd: Sequence[str],
        *,
        result_stream: str = "stderr",
    ) -> subprocess.CompletedProcess[str]:
        """
        Run a full-screen dialog tool attached to the terminal.

        Only the stream the tool writes its answer to is captured; the other
        one stays on the terminal so the UI can draw.

        Args:
            cmd: Command and arguments.
            result_stream: "stdout" or "stderr".

        Returns:
            The completed process; its `stdout` holds the captured answer.
        """
        args = list(cmd)
        logger.debug("dialog_run", cmd=args, result_stream=result_stream)

        try:
            if result_stream == "stdout":
                result = subprocess.run(args, stdout=subprocess.PIPE, text=True)
                answer = result.stdout
            else:
                result = subprocess.run(args, stderr=subprocess.PIPE, text=True)
                answer = result.stderr
        except FileNotFoundError as e:
            return subprocess.CompletedProcess(args, COMMAND_NOT_FOUND, "", str(e))

        return subprocess.CompletedProcess(args, result.returncode, answer or "", "")
