"""Prompt templates, template selection and context composition."""

import re
from typing import Optional

from .character import Character
from .models import ConversationState

SHOULD_RESPOND_FOOTER = """The available options are [RESPOND], [IGNORE], or [STOP]. Choose the most appropriate option.
If {{agentName}} is talking too much, you can choose [IGNORE].

Your response must include one of the options."""

MESSAGE_COMPLETION_FOOTER = """
Response format should be formatted in a JSON block like this:
```json
{ "user": "{{agentName}}", "text": "string", "action": "string" }
```"""

TELEGRAM_SHOULD_RESPOND_TEMPLATE = """# About {{agentName}}:
{{bio}}

# RESPONSE EXAMPLES
{{user1}}: I just saw a really great movie
{{user2}}: Oh? Which movie?
Result: [IGNORE]

{{agentName}}: Oh, this is my favorite scene
{{user1}}: sick
{{user2}}: wait, why is it your favorite scene
Result: [RESPOND]

{{user1}}: stfu bot
Result: [STOP]

{{user1}}: Hey {{agent}}, can you help me with something
Result: [RESPOND]

{{user1}}: {{agentName}} stop responding plz
Result: [STOP]

{{user1}}: i need help
{{agentName}}: how can I help you?
{{user1}}: no. i need help from someone else
Result: [IGNORE]

Response options are [RESPOND], [IGNORE] and [STOP].

{{agentName}} is in a room with other users and should only respond when they are being addressed, and should not respond if they are continuing a conversation that is very long.

Respond with [RESPOND] to messages that are directed at {{agentName}}, or participate in conversations that are interesting or relevant to their background.
If a message is not interesting, relevant, or does not directly address {{agentName}}, respond with [IGNORE].
Also respond with [IGNORE] to messages that are very short or do not contain much information.

If a user asks {{agentName}} to be quiet, respond with [STOP].
If {{agentName}} concludes a conversation and isn't part of the conversation anymore, respond with [STOP].

{{agentName}} is particularly sensitive about being annoying, so if there is any doubt, it is better to respond with [IGNORE].
If {{agentName}} is conversing with a user and they have not asked to stop, it is better to respond with [RESPOND].

The goal is to decide whether {{agentName}} should respond to the last message.

{{recentMessages}}

# INSTRUCTIONS: Choose the option that best describes {{agentName}}'s response to the last message. Ignore messages if they are addressed to someone else.
""" + SHOULD_RESPOND_FOOTER

TELEGRAM_MESSAGE_HANDLER_TEMPLATE = """# Action Names
{{actionNames}}

# Action Examples
{{actionExamples}}
(Action examples are for reference only. Do not use the information from them in your response.)

# Task: Generate dialog and actions for the character {{agentName}}.
About {{agentName}}:
{{bio}}
{{lore}}

Examples of {{agentName}}'s dialog and actions:
{{messageExamples}}

# Participants
{{actors}}

# Capabilities
Note that {{agentName}} is capable of reading and seeing images. Image descriptions appear inline in messages as [Image: ...].

{{recentMessages}}

# Task: Generate a reply in the voice, style and perspective of {{agentName}} (@{{agent}}) to the last message:
{{currentPost}}
""" + MESSAGE_COMPLETION_FOOTER

BUILTIN_TEMPLATES = {
    "should_respond": TELEGRAM_SHOULD_RESPOND_TEMPLATE,
    "message_handler": TELEGRAM_MESSAGE_HANDLER_TEMPLATE,
}

_PLACEHOLDER_RE = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def select_template(
    character: Character,
    kind: str,
    platform: str = "telegram",
    default: Optional[str] = None,
) -> str:
    """Pick a template by ordered lookup.

    Order: ``<platform>_<kind>`` in the character templates, then ``<kind>``,
    then ``default``, then the built-in template for ``kind``.
    """
    candidates = (f"{platform}_{kind}", kind)
    for key in candidates:
        template = character.templates.get(key)
        if template:
            return template
    if default:
        return default
    return BUILTIN_TEMPLATES[kind]


def compose_context(state: ConversationState, template: str) -> str:
    """Fill ``{{key}}`` placeholders from the state. Unknown keys render empty."""
    values = state.as_template_values()

    def _sub(match: re.Match) -> str:
        value = values.get(match.group(1), "")
        return "" if value is None else str(value)

    return _PLACEHOLDER_RE.sub(_sub, template)
