"""
CLI interface for stackup.

This module provides the single `stackup` command that brings up the
self-hosted automation stack interactively:
- Checks Docker and Docker Compose
- Lets the operator pick services
- Checks ports and the host firewall
- Starts the selected services in order
"""

from __future__ import annotations

from typing import Annotated, Optional

import structlog
import typer
from rich.console import Console
from rich.markup import escape as rich_escape

from stackup import __version__
from stackup.cli.display import StackDisplay
from stackup.cli.logging_config import configure_cli_logging
from stackup.exceptions import StackEnvironmentError, StackupError, UserCancelled

logger = structlog.get_logger(__name__)

app = typer.Typer(
    name="stackup",
    help="stackup - interactive startup for the self-hosted n8n stack",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold blue]stackup[/bold blue] version {__version__}")
        raise typer.Exit()


@app.command(context_settings={"allow_extra_args": True, "ignore_unknown_options": True})
def start(
    ctx: typer.Context,
    recreate: Annotated[
        bool,
        typer.Option(
            "--recreate", "-r",
            help="Stop each service group before starting it",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose", "-v",
            help="Verbose output",
        ),
    ] = False,
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version", "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version",
        ),
    ] = None,
) -> None:
    """
    Start the stack interactively.

    Examples:

        # Pick services and start them
        stackup

        # Tear down and recreate each selected group
        stackup --recreate
    """
    configure_cli_logging(verbose)
    if ctx.args:
        logger.debug("extra_arguments_ignored", args=list(ctx.args))

    from stackup.launcher import StackLauncher

    display = StackDisplay(console)
    try:
        StackLauncher(display=display).run(recreate=recreate)

    except StackEnvironmentError as e:
        display.error(e.message)
        display.blank()
        display.lines(e.remediation)
        raise typer.Exit(e.exit_code)

    except UserCancelled as e:
        logger.info("startup_cancelled", reason=str(e))
        raise typer.Exit(e.exit_code)

    except StackupError as e:
        display.error(str(e))
        raise typer.Exit(e.exit_code)

    except KeyboardInterrupt:
        console.print("\n[yellow]Startup interrupted[/yellow]")
        raise typer.Exit(130)

    except Exception as e:
        console.print(f"\n[red]Error: {rich_escape(str(e))}[/red]")
        if verbose:
            console.print_exception()
        raise typer.Exit(1)


def cli() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    cli()
