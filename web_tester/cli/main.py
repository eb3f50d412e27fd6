#!/usr/bin/env python3
"""Main CLI entry point for web-tester using Typer.

Invoking ``web-tester`` with no arguments performs one full capture run against
the fixed target URL and stores every captured request and response.
"""

import asyncio
import logging

import typer

from .. import __version__
from ..capture.errors import SessionError
from .runner import CaptureRunner, RunnerConfig

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


app = typer.Typer(
    name="web-tester",
    help="web-tester - capture the network traffic of a page load into PostgreSQL",
    add_completion=False,
)


def configure_logging(level: int = logging.INFO) -> None:
    """Configure root logging for a CLI run."""
    logging.basicConfig(level=level, format=LOG_FORMAT)

    # Reduce log noise from database and browser clients
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """
    web-tester - capture the network traffic of a page load.

    Run without a command to capture the configured target URL.
    """
    if ctx.invoked_subcommand is not None:
        return

    configure_logging()
    runner = CaptureRunner(RunnerConfig())

    try:
        asyncio.run(runner.run())
    except SessionError as e:
        logger.error(f"Capture run aborted: {e}")
        raise typer.Exit(code=1)


@app.command(name="version")
def show_version():
    """Show version information."""
    typer.echo(f"web-tester v{__version__}")


def cli_main():
    """Entry point for console script."""
    app()


if __name__ == "__main__":
    cli_main()
