"""Message orchestrator. Drives one inbound event through the full cycle.

    RECEIVED -> GATED -> RECORDED -> STATE_COMPOSED -> DECIDED
      [skip]    -> DONE
      [respond] -> GENERATING -> DELIVERING -> RECORDED_OUTBOUND
                -> STATE_REFRESHED -> ACTIONS_PROCESSED -> EVALUATED -> DONE

Nothing raised inside a cycle escapes ``handle()``. Cycles for the same
conversation run one at a time; different conversations run concurrently.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
from uuid import UUID

from .attachments import AttachmentResolver
from .decision import Decision, RespondDecisionEngine
from .delivery import Deliverer, chunk_text
from .generator import ResponseGenerator
from .ids import conversation_uuid, participant_uuid
from .llm.vision import ImageDescriber
from .models import ChatType, InboundEvent, MemoryRecord, ResponseContent
from .recorder import MemoryRecorder
from .state import StateComposer
from .templates import compose_context, select_template

logger = logging.getLogger("parley.orchestrator")


class CycleStage(str, Enum):
    RECEIVED = "received"
    GATED = "gated"
    RECORDED = "recorded"
    STATE_COMPOSED = "state_composed"
    DECIDED = "decided"
    GENERATING = "generating"
    DELIVERING = "delivering"
    RECORDED_OUTBOUND = "recorded_outbound"
    STATE_REFRESHED = "state_refreshed"
    ACTIONS_PROCESSED = "actions_processed"
    EVALUATED = "evaluated"
    DONE = "done"


@dataclass
class CycleResult:
    """What one cycle did. ``stage`` is the last stage reached."""
    stage: CycleStage = CycleStage.RECEIVED
    decision: Optional[Decision] = None
    inbound: Optional[MemoryRecord] = None
    outbound: list[MemoryRecord] = field(default_factory=list)
    response: Optional[ResponseContent] = None
    actions: list[str] = field(default_factory=list)
    evaluators: list[str] = field(default_factory=list)


class MessageOrchestrator:
    """Wires the pipeline components together for one platform."""

    def __init__(
        self,
        runtime,
        platform,
        resolver: Optional[AttachmentResolver] = None,
        decider: Optional[RespondDecisionEngine] = None,
        composer: Optional[StateComposer] = None,
        generator: Optional[ResponseGenerator] = None,
        deliverer: Optional[Deliverer] = None,
        recorder: Optional[MemoryRecorder] = None,
        source: str = "telegram",
    ):
        settings = runtime.settings
        self.runtime = runtime
        self.platform = platform
        self.source = source
        self.character = runtime.character
        self.agent_id: UUID = runtime.agent_id
        self.max_message_length = settings.max_message_length

        self.resolver = resolver or AttachmentResolver(platform, ImageDescriber(runtime.provider))
        self.decider = decider or RespondDecisionEngine(runtime.provider, self.character, platform=source)
        self.composer = composer or StateComposer(
            runtime.store,
            self.character,
            self.agent_id,
            conversation_length=settings.conversation_length,
            actions=runtime.actions,
        )
        self.generator = generator or ResponseGenerator(
            runtime.provider, runtime.store, timeout=settings.generation_timeout,
        )
        self.deliverer = deliverer or Deliverer(platform)
        self.recorder = recorder or MemoryRecorder(runtime.store, self.agent_id)

        # Entries live only while a cycle holds or waits on them
        self._locks: dict[UUID, asyncio.Lock] = {}
        self._lock_users: dict[UUID, int] = {}

    @asynccontextmanager
    async def _conversation_lock(self, conversation_id: UUID):
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = self._locks[conversation_id] = asyncio.Lock()
        self._lock_users[conversation_id] = self._lock_users.get(conversation_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[conversation_id] -= 1
            if not self._lock_users[conversation_id]:
                del self._lock_users[conversation_id]
                del self._locks[conversation_id]

    def is_gated(self, event: InboundEvent) -> bool:
        """True when the character config says to ignore this event."""
        telegram = self.character.client_config.telegram
        if telegram.should_ignore_bot_messages and event.sender_is_bot:
            return True
        if telegram.should_ignore_direct_messages and event.chat_type == ChatType.DIRECT:
            return True
        return False

    async def handle(self, event: InboundEvent) -> CycleResult:
        result = CycleResult()

        if event.message_id is None or event.sender_id is None:
            logger.debug(f"Ignoring malformed event in chat {event.chat_id}")
            return result

        if self.is_gated(event):
            logger.debug(f"Gated message {event.message_id} in chat {event.chat_id}")
            result.stage = CycleStage.GATED
            return result
        result.stage = CycleStage.GATED

        conversation_id = conversation_uuid(event.chat_id, self.agent_id)
        async with self._conversation_lock(conversation_id):
            try:
                await self._run_cycle(event, result)
            except Exception as e:
                logger.error(
                    f"Cycle failed at {result.stage.value} for message {event.message_id} "
                    f"in chat {event.chat_id}: {e}",
                    exc_info=True,
                )
        return result

    async def _run_cycle(self, event: InboundEvent, result: CycleResult):
        text = event.body
        description = await self.resolver.resolve(event)
        if description:
            text = f"{text} {description}" if text else description

        if not text:
            logger.debug(f"Nothing to record for message {event.message_id}")
            result.stage = CycleStage.RECORDED
            return

        participant_id = participant_uuid(event.sender_id, self.agent_id)
        conversation_id = conversation_uuid(event.chat_id, self.agent_id)
        await self.runtime.ensure_connection(
            participant_id,
            conversation_id,
            event.sender_username,
            event.sender_name or event.display_name,
            event.source,
        )

        inbound = await self.recorder.record_inbound(event, text)
        result.inbound = inbound
        result.stage = CycleStage.RECORDED

        state = await self.composer.compose(inbound)
        result.stage = CycleStage.STATE_COMPOSED

        decision = await self.decider.decide(event, state)
        result.decision = decision
        result.stage = CycleStage.DECIDED
        logger.info(f"[{event.chat_type.value}] {event.display_name}: {text[:100]} -> {decision.value}")
        if not decision.should_respond:
            return

        result.stage = CycleStage.GENERATING
        template = select_template(self.character, "message_handler", platform=self.source)
        context = compose_context(state, template)
        response = await self.generator.generate(inbound, state, context)
        if response is None:
            return
        response.in_reply_to = inbound.id
        result.response = response

        result.stage = CycleStage.DELIVERING
        outbound = await self.deliver_and_record(
            event.chat_id, response, inbound, reply_to_message_id=event.message_id,
        )
        if not outbound:
            return
        result.outbound = outbound
        result.stage = CycleStage.RECORDED_OUTBOUND

        state = await self.composer.refresh(state)
        result.stage = CycleStage.STATE_REFRESHED

        async def callback(content: ResponseContent) -> list[MemoryRecord]:
            records = await self.deliver_and_record(
                event.chat_id, content, inbound, reply_to_message_id=event.message_id,
            )
            result.outbound.extend(records)
            return records

        action = await self.runtime.actions.process(self.runtime, inbound, outbound, state, callback)
        if action:
            result.actions.append(action)
        result.stage = CycleStage.ACTIONS_PROCESSED

        result.evaluators = await self.runtime.actions.evaluate(
            self.runtime, inbound, state, did_respond=True,
        )
        result.stage = CycleStage.EVALUATED

    async def deliver_and_record(
        self,
        chat_id: int,
        content: ResponseContent,
        inbound: MemoryRecord,
        reply_to_message_id: Optional[int] = None,
    ) -> list[MemoryRecord]:
        """Chunk, send in order, then record one memory per delivered chunk."""
        chunks = chunk_text(content.text, self.max_message_length, reply_to_message_id)
        if not chunks:
            return []
        sent = await self.deliverer.deliver(chat_id, chunks)
        if not sent:
            return []
        return await self.recorder.record_outbound(sent, inbound, content)
