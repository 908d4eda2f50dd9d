"""Chunk preview command."""

import click
from rich.table import Table

from parley.delivery import MAX_MESSAGE_LENGTH, chunk_text

from . import cli
from .shared import console


@cli.command()
@click.argument("path", type=click.File("r", encoding="utf-8"))
@click.option("--max-length", "-m", default=MAX_MESSAGE_LENGTH, show_default=True, help="Maximum chunk length")
def chunk(path, max_length):
    """Preview how the text in PATH would be split for delivery."""
    chunks = chunk_text(path.read(), max_length)
    if not chunks:
        console.print("[yellow]Nothing to send.[/yellow]")
        return

    t = Table(title=f"{len(chunks)} chunk(s), max {max_length}")
    t.add_column("#", justify="right")
    t.add_column("Length", justify="right")
    t.add_column("Starts with")
    for c in chunks:
        over = " [red](oversized)[/red]" if len(c.text) > max_length else ""
        preview = c.text[:50].replace("\n", "⏎")
        t.add_row(str(c.index + 1), f"{len(c.text)}{over}", preview)
    console.print(t)
