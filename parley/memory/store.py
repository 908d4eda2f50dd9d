"""Conversational records, facts and audit logs in PostgreSQL + pgvector."""

import json
import logging
from typing import Optional
from uuid import UUID

from ..db.connection import Database
from ..db.models import list_conversation_participants
from ..llm.provider import LLMProvider
from ..models import Content, MemoryRecord

logger = logging.getLogger("parley.memory.store")


def _row_to_record(row) -> MemoryRecord:
    content = row["content"]
    if isinstance(content, str):
        content = json.loads(content)
    return MemoryRecord(
        id=row["id"],
        conversation_id=row["conversation_id"],
        participant_id=row["participant_id"],
        agent_id=row["agent_id"],
        content=Content.from_dict(content),
        created_at=row["created_at"],
    )


class MemoryStore:
    """Persists memory records. Writes are idempotent per record id."""

    def __init__(self, db: Database, provider: LLMProvider, table: str = "messages"):
        self.db = db
        self.provider = provider
        self.table = table

    def zero_vector(self) -> list[float]:
        return [0.0] * self.provider.embedding_dimensions

    async def add_embedding(self, record: MemoryRecord) -> MemoryRecord:
        """Attach an embedding for the record text.

        Embedding failures leave the record without a vector; the record is
        still storable.
        """
        if record.embedding is not None or not record.content.text:
            return record
        try:
            resp = await self.provider.embed(record.content.text)
            record.embedding = resp.vector
        except Exception as e:
            logger.warning(f"Embedding failed for memory {record.id}: {e}")
        return record

    async def create_record(self, record: MemoryRecord, unique: bool = False) -> bool:
        """Insert a record. Returns True if a row was written.

        With ``unique=True`` an existing id makes this a no-op. Without it a
        duplicate id raises ``asyncpg.UniqueViolationError``.
        """
        conflict = "ON CONFLICT (id) DO NOTHING" if unique else ""
        vector = str(record.embedding) if record.embedding is not None else None

        async with self.db.connection() as conn:
            status = await conn.execute(f"""
                INSERT INTO memories
                    (id, type, conversation_id, participant_id, agent_id, content, embedding, "unique", created_at)
                VALUES ($1, $2, $3, $4, $5, $6::jsonb, $7::vector, $8, $9)
                {conflict}
            """,
                record.id, self.table, record.conversation_id, record.participant_id,
                record.agent_id, json.dumps(record.content.to_dict()), vector, unique,
                record.created_at,
            )

        inserted = status.endswith(" 1")
        if not inserted:
            logger.debug(f"Memory {record.id} already stored, skipping")
        return inserted

    async def get_recent(self, conversation_id: UUID, limit: int = 32) -> list[MemoryRecord]:
        """Most recent records of a conversation, oldest first."""
        async with self.db.connection() as conn:
            rows = await conn.fetch("""
                SELECT id, conversation_id, participant_id, agent_id, content, created_at
                FROM memories
                WHERE conversation_id = $1 AND type = $2
                ORDER BY created_at DESC, seq DESC
                LIMIT $3
            """, conversation_id, self.table, limit)
        return [_row_to_record(row) for row in reversed(rows)]

    async def get_by_id(self, record_id: UUID) -> Optional[MemoryRecord]:
        async with self.db.connection() as conn:
            row = await conn.fetchrow("""
                SELECT id, conversation_id, participant_id, agent_id, content, created_at
                FROM memories WHERE id = $1
            """, record_id)
        return _row_to_record(row) if row else None

    async def count(self, conversation_id: Optional[UUID] = None) -> int:
        async with self.db.connection() as conn:
            if conversation_id is None:
                row = await conn.fetchrow("SELECT COUNT(*) AS count FROM memories WHERE type = $1", self.table)
            else:
                row = await conn.fetchrow(
                    "SELECT COUNT(*) AS count FROM memories WHERE type = $1 AND conversation_id = $2",
                    self.table, conversation_id,
                )
            return row["count"]

    async def get_participants(self, conversation_id: UUID) -> list[dict]:
        return await list_conversation_participants(self.db, conversation_id)

    async def log(
        self,
        body: dict,
        participant_id: Optional[UUID],
        conversation_id: Optional[UUID],
        type: str,
    ):
        """Write an audit entry, separate from conversational memory."""
        async with self.db.connection() as conn:
            await conn.execute("""
                INSERT INTO logs (type, participant_id, conversation_id, body)
                VALUES ($1, $2, $3, $4::jsonb)
            """, type, participant_id, conversation_id, json.dumps(body, default=str))

    # ================================================================
    # FACTS (long-term memory extracted by the fact evaluator)
    # ================================================================

    async def store_fact_if_new(
        self,
        content: str,
        category: str,
        importance: float,
        conversation_id: UUID,
        participant_id: Optional[UUID],
        agent_id: UUID,
        similarity_threshold: float = 0.85,
    ) -> Optional[int]:
        """Store a fact unless a near-duplicate exists for this agent.

        Returns the new fact id, or None if skipped as a duplicate.
        """
        embedding_resp = await self.provider.embed(content)
        vector = str(embedding_resp.vector)

        async with self.db.connection() as conn:
            existing = await conn.fetchrow("""
                SELECT id, content, 1 - (embedding <=> $1::vector) AS similarity
                FROM facts
                WHERE agent_id = $2 AND embedding IS NOT NULL
                ORDER BY embedding <=> $1::vector
                LIMIT 1
            """, vector, agent_id)

            if existing and existing["similarity"] >= similarity_threshold:
                logger.debug(f"Duplicate fact (sim={existing['similarity']:.3f}), skipping: {content[:80]}")
                return None

            row = await conn.fetchrow("""
                INSERT INTO facts (conversation_id, participant_id, agent_id, category, importance, content, embedding)
                VALUES ($1, $2, $3, $4, $5, $6, $7::vector)
                RETURNING id
            """, conversation_id, participant_id, agent_id, category, importance, content, vector)
            return row["id"]
