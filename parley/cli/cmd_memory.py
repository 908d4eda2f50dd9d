"""Memory inspection commands."""

import asyncio

from rich.table import Table

from . import cli
from .shared import console, _open_database


@cli.group()
def memory():
    """Memory inspection commands."""
    pass


@memory.command("stats")
def memory_stats():
    """Show memory statistics."""
    async def _stats():
        db = await _open_database()
        try:
            async with db.connection() as conn:
                total = await conn.fetchrow("SELECT COUNT(*) AS c FROM memories")
                by_conversation = await conn.fetch("""
                    SELECT conversation_id, COUNT(*) AS c, MAX(created_at) AS last
                    FROM memories
                    GROUP BY conversation_id
                    ORDER BY c DESC
                    LIMIT 10
                """)
                facts = await conn.fetch(
                    "SELECT category, COUNT(*) AS c FROM facts GROUP BY category ORDER BY c DESC"
                )
                logs = await conn.fetchrow("SELECT COUNT(*) AS c FROM logs")
        finally:
            await db.close()

        console.print(f"\n[bold]Total memories: {total['c']}[/bold]")
        console.print(f"[bold]Audit log entries: {logs['c']}[/bold]\n")

        if by_conversation:
            t = Table(title="Busiest Conversations")
            t.add_column("Conversation")
            t.add_column("Memories", justify="right")
            for r in by_conversation:
                t.add_row(str(r["conversation_id"]), str(r["c"]))
            console.print(t)

        if facts:
            t = Table(title="Facts by Category")
            t.add_column("Category")
            t.add_column("Count", justify="right")
            for r in facts:
                t.add_row(r["category"] or "none", str(r["c"]))
            console.print(t)

    asyncio.run(_stats())
