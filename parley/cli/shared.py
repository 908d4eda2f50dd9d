"""Shared utilities for Parley CLI commands."""

from rich.console import Console

console = Console()


async def _open_database():
    """Connect to the configured database. Caller closes it."""
    from parley.config import load_settings
    from parley.db.connection import Database

    settings = load_settings()
    db = Database(settings.database_url, min_size=1, max_size=2)
    await db.connect(max_retries=1)
    return db
