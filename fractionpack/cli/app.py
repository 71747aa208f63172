"""Main Typer application: imports and registers all CLI commands.

Entry point: ``fractionpack`` (configured via pyproject.toml console_scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from fractionpack import __description__, __version__
from fractionpack.cli.commands.analyze import analyze_cmd
from fractionpack.cli.commands.check import check_cmd
from fractionpack.config import config

app = typer.Typer(
    name="fractionpack",
    help="fractionpack: resolve dependencies and strip what the platform provides.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="analyze", help="Resolve a declaration and classify its dependencies.")(analyze_cmd)
app.command(name="check", help="Find archive members the platform already provides.")(check_cmd)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None,
        "--log-level",
        help="Logging level (defaults to FRACTIONPACK_LOG_LEVEL).",
    ),
) -> None:
    """Configure logging once for every command."""
    setup_logging(log_level or config.log_level)


def setup_logging(level: str = "INFO") -> None:
    """Route every log record to a single stderr ``RichHandler``.

    Handlers left over from an earlier setup are removed first, so repeated
    invocations (e.g. under ``CliRunner``) never duplicate output.
    """
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    handler = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)


@app.command(name="version", help="Show the fractionpack version.")
def version_cmd() -> None:
    """Print the installed fractionpack version."""
    typer.echo(f"fractionpack {__version__}")
    typer.echo(__description__)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
