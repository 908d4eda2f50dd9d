"""Fact evaluator: decide what in a message is worth remembering long-term."""

import logging
from typing import Optional

from ..llm.provider import LLMProvider, ChatMessage, ModelClass

logger = logging.getLogger("parley.memory.evaluator")

EXTRACT_FACT_PROMPT = """You are a memory evaluator for a chat character. Analyze the user's message and determine if it contains a fact about the user worth remembering.

STORE when the user states:
- Personal facts (name, job, location, family)
- Preferences (likes, dislikes, habits)
- Important events or milestones
- Relationships (friends, family, colleagues)

DO NOT STORE:
- Greetings and small talk ("hi", "thanks", "ok")
- Questions without new information
- Temporary info ("I'm going to the store now")
- Requests or instructions to the character
- Anything the character said

Reply with EXACTLY one line:
- SKIP
- STORE|category|importance|content

Categories: fact, preference, event, relationship
Importance: 0.3 (low) to 0.9 (critical)

Examples:
User: "I'm a nurse in Lisbon"
→ STORE|fact|0.7|User works as a nurse in Lisbon

User: "lol nice"
→ SKIP"""

SKIP_PATTERNS = {
    "ok", "okay", "thanks", "thank you", "hi", "hello", "hey", "yes", "no",
    "yep", "nope", "good", "nice", "cool", "lol", "gm", "gn",
}

QUESTION_PREFIXES = ("what ", "how ", "when ", "where ", "who ", "why ")


def quick_skip(message: str) -> bool:
    """Cheap filters for obviously non-memorable messages."""
    stripped = message.strip().lower()
    if len(stripped) < 5:
        return True
    if stripped in SKIP_PATTERNS:
        return True
    if stripped.startswith(QUESTION_PREFIXES) and len(stripped) < 30:
        return True
    return False


def parse_evaluation(result: str) -> Optional[dict]:
    """Parse ``SKIP`` or ``STORE|category|importance|content``."""
    result = result.strip()
    if result.startswith("SKIP"):
        return None

    if result.startswith("STORE|"):
        parts = result.split("|", 3)
        if len(parts) == 4:
            _, category, importance_str, content = parts
            try:
                importance = float(importance_str.strip())
                importance = max(0.1, min(1.0, importance))
            except ValueError:
                importance = 0.5

            if not content.strip():
                return None
            return {
                "category": category.strip(),
                "importance": importance,
                "content": content.strip(),
            }

    logger.warning(f"Unexpected evaluator response: {result[:200]}")
    return None


async def evaluate_message(
    provider: LLMProvider,
    user_message: str,
) -> Optional[dict]:
    """Evaluate if a user message contains a fact worth storing.

    Returns dict with {category, importance, content} or None if SKIP.
    """
    if quick_skip(user_message):
        return None

    try:
        response = await provider.chat(
            messages=[
                ChatMessage(role="system", content=EXTRACT_FACT_PROMPT),
                ChatMessage(role="user", content=f"User message: \"{user_message}\""),
            ],
            model_class=ModelClass.SMALL,
            temperature=0.1,
        )
        return parse_evaluation(response.content)

    except Exception as e:
        logger.error(f"Fact evaluation failed: {e}")
        return None
