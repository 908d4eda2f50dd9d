"""Generation helpers for the classifier and structured response calls.

Both helpers make exactly one provider call. Parsing failures return None
instead of raising, so callers can apply their own safe default.
"""

import json
import logging
import re
from typing import Optional

from ..models import ResponseContent
from .provider import LLMProvider, ChatMessage, ModelClass

logger = logging.getLogger("parley.llm.generation")

_OPTION_RE = re.compile(r"\[\s*(RESPOND|IGNORE|STOP)\s*\]", re.IGNORECASE)
_BARE_OPTION_RE = re.compile(r"\b(RESPOND|IGNORE|STOP)\b")
_JSON_BLOCK_RE = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)
_JSON_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)


def parse_should_respond(text: Optional[str]) -> Optional[str]:
    """Extract RESPOND / IGNORE / STOP from classifier output.

    Bracketed options win over bare words. Returns None if no option found.
    """
    if not text:
        return None
    match = _OPTION_RE.search(text)
    if match:
        return match.group(1).upper()
    match = _BARE_OPTION_RE.search(text.upper())
    if match:
        return match.group(1)
    return None


def parse_response_content(text: Optional[str]) -> Optional[ResponseContent]:
    """Extract ``{"text": ..., "action": ...}`` from a model completion."""
    if not text:
        return None
    match = _JSON_BLOCK_RE.search(text) or _JSON_OBJECT_RE.search(text)
    if not match:
        return None
    raw = match.group(1) if match.groups() else match.group(0)
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"Unparseable response JSON: {raw[:200]}")
        return None
    if not isinstance(data, dict):
        return None
    body = data.get("text")
    if not isinstance(body, str):
        return None
    action = data.get("action")
    return ResponseContent(
        text=body,
        action=action.strip().upper() if isinstance(action, str) and action.strip() else None,
    )


async def generate_should_respond(
    provider: LLMProvider,
    context: str,
    model_class: ModelClass = ModelClass.MEDIUM,
) -> Optional[str]:
    """Ask the classifier whether to respond. Provider errors propagate."""
    response = await provider.chat(
        messages=[ChatMessage(role="user", content=context)],
        model_class=model_class,
        temperature=0.1,
    )
    result = parse_should_respond(response.content)
    if result is None:
        logger.warning(f"Unexpected should-respond output: {response.content[:200]}")
    return result


async def generate_message_response(
    provider: LLMProvider,
    context: str,
    model_class: ModelClass = ModelClass.MEDIUM,
) -> tuple[Optional[ResponseContent], str]:
    """Generate a structured reply.

    Returns (content or None, raw completion text) so the caller can audit
    exactly what the model produced.
    """
    response = await provider.chat(
        messages=[ChatMessage(role="user", content=context)],
        model_class=model_class,
    )
    content = parse_response_content(response.content)
    if content is None:
        logger.warning(f"Could not parse response content: {response.content[:200]}")
    return content, response.content
