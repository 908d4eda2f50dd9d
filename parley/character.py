"""Character profile: identity, voice and per-platform behaviour flags."""

import json
import logging
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, Field

logger = logging.getLogger("parley.character")


class TelegramClientConfig(BaseModel):
    should_ignore_bot_messages: bool = False
    should_ignore_direct_messages: bool = False


class ClientConfig(BaseModel):
    telegram: TelegramClientConfig = Field(default_factory=TelegramClientConfig)


class Character(BaseModel):
    """Loaded from a JSON file. Unknown keys are ignored."""

    name: str
    username: Optional[str] = None
    bio: Union[str, list[str]] = ""
    lore: list[str] = Field(default_factory=list)
    message_examples: list[list[dict]] = Field(default_factory=list)
    templates: dict[str, str] = Field(default_factory=dict)
    client_config: ClientConfig = Field(default_factory=ClientConfig)

    model_config = {"extra": "ignore"}

    @property
    def handle(self) -> str:
        """Platform handle without the leading @."""
        return (self.username or self.name).lstrip("@")

    def bio_text(self) -> str:
        if isinstance(self.bio, list):
            return " ".join(self.bio)
        return self.bio

    def lore_text(self, limit: int = 10) -> str:
        return "\n".join(self.lore[:limit])

    def examples_text(self, limit: int = 5) -> str:
        """Render message examples as dialog blocks."""
        blocks = []
        for example in self.message_examples[:limit]:
            lines = []
            for turn in example:
                user = turn.get("user", "").replace("{{agentName}}", self.name)
                text = turn.get("content", {}).get("text", "")
                action = turn.get("content", {}).get("action")
                line = f"{user}: {text}"
                if action:
                    line += f" ({action})"
                lines.append(line)
            blocks.append("\n".join(lines))
        return "\n\n".join(blocks)


def load_character(path: Union[str, Path]) -> Character:
    """Load and validate a character profile. Errors propagate (startup failure)."""
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    character = Character.model_validate(_normalize_keys(data))
    logger.info(f"Loaded character '{character.name}' from {path}")
    return character


def _normalize_keys(data: dict) -> dict:
    """Accept camelCase profile keys alongside snake_case."""
    aliases = {
        "messageExamples": "message_examples",
        "clientConfig": "client_config",
        "shouldIgnoreBotMessages": "should_ignore_bot_messages",
        "shouldIgnoreDirectMessages": "should_ignore_direct_messages",
    }
    if isinstance(data, dict):
        return {aliases.get(k, k): _normalize_keys(v) if k != "templates" else v
                for k, v in data.items()}
    if isinstance(data, list):
        return [_normalize_keys(v) for v in data]
    return data
