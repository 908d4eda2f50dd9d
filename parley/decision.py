"""Decide whether the agent should answer an inbound message."""

import logging
import re
from enum import Enum
from typing import Optional

from .character import Character
from .llm.generation import generate_should_respond
from .llm.provider import LLMProvider, ModelClass
from .models import ChatType, ConversationState, InboundEvent
from .templates import compose_context, select_template

logger = logging.getLogger("parley.decision")


class Decision(str, Enum):
    RESPOND = "RESPOND"
    SKIP = "SKIP"
    STOP = "STOP"       # skip this cycle; the conversation asked the agent to stop

    @property
    def should_respond(self) -> bool:
        return self is Decision.RESPOND


CLASSIFIER_DECISIONS = {
    "RESPOND": Decision.RESPOND,
    "IGNORE": Decision.SKIP,
    "STOP": Decision.STOP,
}


def is_mentioned(text: str, handle: str) -> bool:
    """True if ``@handle`` appears in text (case-insensitive, word boundary)."""
    if not text or not handle:
        return False
    pattern = re.compile(rf"@{re.escape(handle.lstrip('@'))}\b", re.IGNORECASE)
    return bool(pattern.search(text))


class RespondDecisionEngine:
    """Rules in precedence order, first match wins:

    1. explicit @mention of the agent -> RESPOND
    2. direct chat -> RESPOND
    3. image-only message -> SKIP
    4. text or caption -> classifier (RESPOND / IGNORE / STOP)
    5. anything else -> SKIP
    """

    def __init__(
        self,
        provider: LLMProvider,
        character: Character,
        platform: str = "telegram",
        model_class: ModelClass = ModelClass.MEDIUM,
    ):
        self.provider = provider
        self.character = character
        self.platform = platform
        self.model_class = model_class

    async def decide(self, event: InboundEvent, state: ConversationState) -> Decision:
        text = event.text or ""
        caption = event.caption or ""

        if is_mentioned(text, self.character.handle) or is_mentioned(caption, self.character.handle):
            return Decision.RESPOND

        if event.chat_type == ChatType.DIRECT:
            return Decision.RESPOND

        if event.attachments and not text and not caption:
            return Decision.SKIP

        if text or caption:
            return await self._classify(state)

        return Decision.SKIP

    async def _classify(self, state: ConversationState) -> Decision:
        template = select_template(self.character, "should_respond", platform=self.platform)
        context = compose_context(state, template)
        try:
            result: Optional[str] = await generate_should_respond(
                self.provider, context, model_class=self.model_class,
            )
        except Exception as e:
            logger.error(f"Should-respond classification failed: {e}")
            return Decision.SKIP

        decision = CLASSIFIER_DECISIONS.get(result or "", Decision.SKIP)
        logger.debug(f"Classifier said {result!r} -> {decision.value}")
        return decision
