"""Agent runtime."""

import logging
from typing import Optional
from uuid import UUID

from .actions import ActionRegistry, register_builtins
from .character import Character
from .config import ParleySettings
from .db.connection import Database
from .db.models import add_participant_to_conversation, ensure_conversation, upsert_participant
from .ids import agent_uuid
from .llm.openai import OpenAIProvider
from .llm.provider import LLMProvider
from .memory.store import MemoryStore

logger = logging.getLogger("parley.runtime")


class AgentRuntime:
    """Constructed once at process start and passed to whoever needs it."""

    def __init__(
        self,
        settings: ParleySettings,
        character: Character,
        db: Optional[Database] = None,
        provider: Optional[LLMProvider] = None,
        store: Optional[MemoryStore] = None,
        actions: Optional[ActionRegistry] = None,
    ):
        self.settings = settings
        self.character = character
        self.db = db or Database(settings.database_url)
        self.provider = provider or OpenAIProvider.from_settings(settings)
        self.store = store or MemoryStore(self.db, self.provider)
        self.actions = actions or ActionRegistry()

        if settings.agent_id:
            self.agent_id = UUID(settings.agent_id)
        else:
            self.agent_id = agent_uuid(character.name)

        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self):
        """Connect the database, apply the schema, register built-ins.

        Any failure here is fatal and propagates to the caller.
        """
        logger.info(f"Starting runtime for '{self.character.name}' ({self.agent_id})...")

        await self.db.connect()
        logger.info("Database connected.")

        await self.db.apply_schema()

        register_builtins(self.actions)
        logger.info(
            f"Actions: {self.actions.names_text()} | "
            f"evaluators: {', '.join(e.name for e in self.actions.evaluators)}"
        )

        # The agent is a participant of every conversation it joins
        await upsert_participant(
            self.db, self.agent_id, self.character.handle, self.character.name, "agent",
        )

        self._running = True
        logger.info("Runtime started.")

    async def stop(self):
        self._running = False
        await self.db.close()
        logger.info("Runtime stopped.")

    async def ensure_connection(
        self,
        participant_id: UUID,
        conversation_id: UUID,
        username: Optional[str],
        name: Optional[str],
        source: str,
    ):
        """Make sure participant, conversation and both memberships exist."""
        await upsert_participant(self.db, participant_id, username, name, source)
        await ensure_conversation(self.db, conversation_id, self.agent_id, source)
        await add_participant_to_conversation(self.db, conversation_id, self.agent_id)
        await add_participant_to_conversation(self.db, conversation_id, participant_id)
