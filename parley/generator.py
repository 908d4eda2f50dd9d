"""Response generator. One generation call per cycle, always audited."""

import asyncio
import logging
from dataclasses import asdict
from typing import Optional

from .llm.generation import generate_message_response
from .llm.provider import LLMProvider, ModelClass
from .models import ConversationState, MemoryRecord, ResponseContent

logger = logging.getLogger("parley.generator")


def _record_body(record: MemoryRecord) -> dict:
    body = asdict(record)
    body.pop("embedding", None)
    return body


class ResponseGenerator:
    """Calls the model once; None means "no response" and is not an error.

    Timeouts and provider errors are logged and mapped to None. Every call
    leaves an audit entry (type ``response``) via ``store.log``.
    """

    def __init__(
        self,
        provider: LLMProvider,
        store,
        timeout: float = 60.0,
        model_class: ModelClass = ModelClass.MEDIUM,
    ):
        self.provider = provider
        self.store = store
        self.timeout = timeout
        self.model_class = model_class

    async def generate(
        self,
        record: MemoryRecord,
        state: ConversationState,
        context: str,
    ) -> Optional[ResponseContent]:
        content: Optional[ResponseContent] = None
        raw: Optional[str] = None
        error: Optional[str] = None

        try:
            content, raw = await asyncio.wait_for(
                generate_message_response(self.provider, context, model_class=self.model_class),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            error = f"timeout after {self.timeout}s"
            logger.error(f"Generation timed out for message {record.id}")
        except Exception as e:
            error = f"{type(e).__name__}: {e}"
            logger.error(f"Generation failed for message {record.id}: {error}")

        await self._audit(record, context, raw, content, error)

        if content is None or not content.text:
            logger.info(f"No response generated for message {record.id}")
            return None
        return content

    async def _audit(
        self,
        record: MemoryRecord,
        context: str,
        raw: Optional[str],
        content: Optional[ResponseContent],
        error: Optional[str],
    ):
        body = {
            "message": _record_body(record),
            "context": context,
            "raw_response": raw,
            "response": asdict(content) if content else None,
            "error": error,
        }
        try:
            await self.store.log(
                body=body,
                participant_id=record.participant_id,
                conversation_id=record.conversation_id,
                type="response",
            )
        except Exception as e:
            logger.warning(f"Failed to write response audit log: {e}")
