"""Database query helpers for participants and conversations."""

from typing import Optional
from uuid import UUID

from .connection import Database


# ============================================================
# PARTICIPANTS
# ============================================================

async def upsert_participant(
    db: Database,
    participant_id: UUID,
    username: Optional[str],
    name: Optional[str],
    source: str,
):
    """Create a participant or refresh its display fields."""
    async with db.connection() as conn:
        await conn.execute("""
            INSERT INTO participants (id, username, name, source)
            VALUES ($1, $2, $3, $4)
            ON CONFLICT (id) DO UPDATE
            SET username = COALESCE($2, participants.username),
                name = COALESCE($3, participants.name),
                updated_at = NOW()
        """, participant_id, username, name, source)


# ============================================================
# CONVERSATIONS
# ============================================================

async def ensure_conversation(db: Database, conversation_id: UUID, agent_id: UUID, source: str):
    """Create the conversation row on first message; never deleted."""
    async with db.connection() as conn:
        await conn.execute("""
            INSERT INTO conversations (id, agent_id, source)
            VALUES ($1, $2, $3)
            ON CONFLICT (id) DO NOTHING
        """, conversation_id, agent_id, source)


async def add_participant_to_conversation(db: Database, conversation_id: UUID, participant_id: UUID):
    async with db.connection() as conn:
        await conn.execute("""
            INSERT INTO conversation_participants (conversation_id, participant_id)
            VALUES ($1, $2)
            ON CONFLICT DO NOTHING
        """, conversation_id, participant_id)


async def list_conversation_participants(db: Database, conversation_id: UUID) -> list[dict]:
    """Participants of a conversation, oldest member first."""
    async with db.connection() as conn:
        rows = await conn.fetch("""
            SELECT p.id, p.username, p.name, p.source
            FROM conversation_participants cp
            JOIN participants p ON p.id = cp.participant_id
            WHERE cp.conversation_id = $1
            ORDER BY cp.joined_at ASC
        """, conversation_id)
        return [dict(row) for row in rows]
