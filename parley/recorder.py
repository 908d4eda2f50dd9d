"""Inbound and outbound messages as memory records."""

import logging
from uuid import UUID

from .ids import conversation_uuid, message_uuid, participant_uuid
from .models import Content, InboundEvent, MemoryRecord, ResponseContent, SentMessage

logger = logging.getLogger("parley.recorder")

# Tag for every outbound chunk except the last. Action processing only
# reads the final chunk's tag.
CONTINUE_ACTION = "CONTINUE"


class MemoryRecorder:
    """Builds records with deterministic ids and stores them once."""

    def __init__(self, store, agent_id: UUID):
        self.store = store
        self.agent_id = agent_id

    def build_inbound(self, event: InboundEvent, text: str) -> MemoryRecord:
        in_reply_to = None
        if event.reply_to_message_id is not None:
            in_reply_to = message_uuid(event.reply_to_message_id, self.agent_id)

        return MemoryRecord(
            id=message_uuid(event.message_id, self.agent_id),
            conversation_id=conversation_uuid(event.chat_id, self.agent_id),
            participant_id=participant_uuid(event.sender_id, self.agent_id),
            agent_id=self.agent_id,
            content=Content(text=text, source=event.source, in_reply_to=in_reply_to),
            created_at=event.date * 1000,
        )

    async def record_inbound(self, event: InboundEvent, text: str) -> MemoryRecord:
        """Embed and store the inbound message. Duplicates are no-ops."""
        record = self.build_inbound(event, text)
        record = await self.store.add_embedding(record)
        inserted = await self.store.create_record(record, unique=True)
        if inserted:
            logger.debug(f"Stored inbound memory {record.id}")
        return record

    async def record_outbound(
        self,
        sent: list[SentMessage],
        inbound: MemoryRecord,
        response: ResponseContent,
    ) -> list[MemoryRecord]:
        """One record per delivered chunk; only the last keeps the response action."""
        records: list[MemoryRecord] = []
        zero = self.store.zero_vector()

        for i, message in enumerate(sent):
            is_last = i == len(sent) - 1
            record = MemoryRecord(
                id=message_uuid(message.message_id, self.agent_id),
                conversation_id=inbound.conversation_id,
                participant_id=self.agent_id,
                agent_id=self.agent_id,
                content=Content(
                    text=message.text,
                    source=inbound.content.source,
                    action=response.action if is_last else CONTINUE_ACTION,
                    in_reply_to=inbound.id,
                ),
                created_at=message.date * 1000,
                embedding=list(zero),
            )
            logger.info(f"Outbound memory {record.id} action {record.content.action}")
            await self.store.create_record(record, unique=True)
            records.append(record)

        return records
