"""Conversation state: recent memory, participant roster and character profile."""

import logging
from typing import Optional
from uuid import UUID

from .character import Character
from .models import ConversationState, MemoryRecord

logger = logging.getLogger("parley.state")

# Actions that carry no meaning for the reader of a transcript
SILENT_ACTIONS = {"NONE", "CONTINUE"}


def format_messages(records: list[MemoryRecord], names: dict[UUID, str]) -> str:
    """Render records as ``Name: text (ACTION)`` lines, oldest first."""
    lines = []
    for record in records:
        name = names.get(record.participant_id, "Unknown User")
        line = f"{name}: {record.content.text}"
        action = record.content.action
        if action and action.upper() not in SILENT_ACTIONS:
            line += f" ({action})"
        lines.append(line)
    return "\n".join(lines)


def format_actors(actors: list[dict]) -> str:
    lines = []
    for actor in actors:
        username = actor.get("username")
        lines.append(f"{actor['name']} (@{username})" if username else actor["name"])
    return "\n".join(lines)


class StateComposer:
    """Builds and refreshes the per-cycle ConversationState.

    ``compose()`` runs before deciding; ``refresh()`` runs after outbound
    records are written so actions and evaluators see the updated window.
    """

    def __init__(
        self,
        store,
        character: Character,
        agent_id: UUID,
        conversation_length: int = 32,
        actions=None,
    ):
        self.store = store
        self.character = character
        self.agent_id = agent_id
        self.conversation_length = conversation_length
        self.actions = actions

    async def compose(self, record: MemoryRecord, extra: Optional[dict] = None) -> ConversationState:
        roster = await self._load_roster(record.conversation_id)
        recent = await self._load_recent(record.conversation_id)
        if all(r.id != record.id for r in recent):
            recent = (recent + [record])[-self.conversation_length:]

        state = ConversationState(
            agent_id=self.agent_id,
            conversation_id=record.conversation_id,
            agent_name=self.character.name,
            agent_username=self.character.handle,
            bio=self.character.bio_text(),
            lore=self.character.lore_text(),
            message_examples=self.character.examples_text(),
            record=record,
            actors=roster,
            participants=format_actors(roster),
            extra=dict(extra or {}),
        )
        if self.actions is not None:
            state.action_names = self.actions.names_text()
            state.action_examples = self.actions.examples_text()
        self._apply_recent(state, recent)
        return state

    async def refresh(self, state: ConversationState) -> ConversationState:
        recent = await self._load_recent(state.conversation_id)
        self._apply_recent(state, recent)
        return state

    async def _load_recent(self, conversation_id: UUID) -> list[MemoryRecord]:
        try:
            return await self.store.get_recent(conversation_id, self.conversation_length)
        except Exception as e:
            logger.error(f"Failed to load recent messages for {conversation_id}: {e}")
            return []

    async def _load_roster(self, conversation_id: UUID) -> list[dict]:
        try:
            rows = await self.store.get_participants(conversation_id)
        except Exception as e:
            logger.error(f"Failed to load participants for {conversation_id}: {e}")
            rows = []

        actors = [{"id": self.agent_id, "name": self.character.name, "username": self.character.handle}]
        for row in rows:
            if row["id"] == self.agent_id:
                continue
            actors.append({
                "id": row["id"],
                "name": row.get("name") or row.get("username") or "Unknown User",
                "username": row.get("username"),
            })
        return actors

    def _apply_recent(self, state: ConversationState, recent: list[MemoryRecord]):
        names = {actor["id"]: actor["name"] for actor in state.actors}
        state.recent_records = recent
        state.recent_messages = format_messages(recent, names)
