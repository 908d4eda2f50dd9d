"""Database management commands."""

import asyncio

from . import cli
from .shared import console, _open_database


@cli.group()
def db():
    """Database management commands."""
    pass


@db.command("init")
def db_init():
    """Initialize database schema."""
    async def _init():
        db = await _open_database()
        try:
            await db.apply_schema()
        finally:
            await db.close()
        console.print("[green]✓ Database schema initialized[/green]")

    asyncio.run(_init())
