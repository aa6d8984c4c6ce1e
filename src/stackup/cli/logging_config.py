"""
Logging configuration for the stackup CLI.

Operator output goes through the rich display; structlog events are
diagnostics. By default only warnings and errors are rendered, in a short
form, so they do not drown the startup narrative.
"""

from __future__ import annotations

import logging
import sys

import structlog


def configure_cli_logging(verbose: bool = False) -> None:
    """
    Configure logging for CLI usage.

    Args:
        verbose: If True, show all debug/info logs. If False, show only warnings/errors.
    """
    log_level = logging.DEBUG if verbose else logging.WARNING

    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        stream=sys.stderr,
        force=True,
    )

    for logger_name in [
        "stackup",
        "stackup.cli",
        "stackup.config",
        "stackup.core",
        "stackup.setup",
    ]:
        logging.getLogger(logger_name).setLevel(log_level)

    if verbose:
        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.UnicodeDecoder(),
                structlog.dev.ConsoleRenderer(colors=True),
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
    else:
        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_log_level,
                structlog.processors.UnicodeDecoder(),
                _quiet_renderer,
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )


def _quiet_renderer(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict,
) -> str:
    """Render warnings and errors as `[LEVEL] event`."""
    level = event_dict.get("level", method_name)
    event = event_dict.get("event", "")
    return f"[{level.upper()}] {event}"
