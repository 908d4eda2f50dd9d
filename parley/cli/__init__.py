"""Parley command line interface."""

import click
from parley import __version__
from .shared import console


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="parley")
@click.pass_context
def cli(ctx):
    """Parley — conversational agent for Telegram"""
    if ctx.invoked_subcommand is None:
        _show_help()


def _show_help():
    """Show all available commands grouped by category."""
    console.print(f"[bold]Parley v{__version__}[/bold] — conversational agent for Telegram\n")

    groups = {
        "Usage": [
            ("start", "Start the agent (Telegram bot)"),
        ],
        "Data": [
            ("db init", "Initialize database schema"),
            ("memory stats", "Show memory statistics"),
        ],
        "Tools": [
            ("chunk", "Preview how a reply would be split for delivery"),
        ],
    }

    for category, commands in groups.items():
        console.print(f"  [bold cyan]{category}[/bold cyan]")
        for name, desc in commands:
            console.print(f"    [bold]parley {name:14s}[/bold] {desc}")
        console.print()

    console.print("[dim]Run 'parley <command> --help' for details on a specific command.[/dim]")


# Import all command modules (registers commands onto cli group)
from . import cmd_start  # noqa: E402, F401
from . import cmd_db  # noqa: E402, F401
from . import cmd_memory  # noqa: E402, F401
from . import cmd_chunk  # noqa: E402, F401


@cli.command(name="help", hidden=True)
def help_cmd():
    """Show all available commands."""
    _show_help()
