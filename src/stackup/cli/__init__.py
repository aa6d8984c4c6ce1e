"""
stackup CLI Package.

This module exports the CLI entry points for stackup.
"""

from stackup.cli.main import app, cli

__all__ = [
    "app",
    "cli",
]
