"""Data model for one message-processing cycle."""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional
from uuid import UUID


class ChatType(str, Enum):
    DIRECT = "direct"
    GROUP = "group"


@dataclass(frozen=True)
class AttachmentRef:
    """Platform-native media reference (one size variant for photos)."""
    file_id: str
    kind: str                       # 'photo' or 'document'
    mime_type: Optional[str] = None
    width: int = 0
    height: int = 0

    @property
    def is_image(self) -> bool:
        if self.kind == "photo":
            return True
        return bool(self.mime_type and self.mime_type.startswith("image/"))


@dataclass(frozen=True)
class InboundEvent:
    """Platform message envelope. Immutable once received."""
    message_id: Optional[int]
    chat_id: int
    chat_type: ChatType
    sender_id: Optional[int]
    sender_username: Optional[str] = None
    sender_name: Optional[str] = None
    sender_is_bot: bool = False
    text: Optional[str] = None
    caption: Optional[str] = None
    attachments: tuple[AttachmentRef, ...] = ()
    reply_to_message_id: Optional[int] = None
    date: int = 0                   # epoch seconds
    source: str = "telegram"

    @property
    def body(self) -> str:
        """Text if present, otherwise caption, otherwise empty."""
        if self.text:
            return self.text
        return self.caption or ""

    @property
    def display_name(self) -> str:
        return self.sender_username or self.sender_name or "Unknown User"


@dataclass
class Content:
    text: str
    source: Optional[str] = None
    action: Optional[str] = None
    in_reply_to: Optional[UUID] = None

    def to_dict(self) -> dict:
        data = {k: v for k, v in asdict(self).items() if v is not None}
        if self.in_reply_to is not None:
            data["in_reply_to"] = str(self.in_reply_to)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Content":
        reply = data.get("in_reply_to")
        return cls(
            text=data.get("text", ""),
            source=data.get("source"),
            action=data.get("action"),
            in_reply_to=UUID(reply) if reply else None,
        )


@dataclass
class MemoryRecord:
    id: UUID
    conversation_id: UUID
    participant_id: UUID
    agent_id: UUID
    content: Content
    created_at: int                 # epoch milliseconds
    embedding: Optional[list[float]] = None


@dataclass
class ResponseContent:
    """Structured output of the generation call."""
    text: str
    action: Optional[str] = None
    in_reply_to: Optional[UUID] = None


@dataclass(frozen=True)
class OutboundChunk:
    index: int
    text: str
    reply_to_message_id: Optional[int] = None


@dataclass(frozen=True)
class SentMessage:
    """Handle returned by the platform after a send."""
    message_id: int
    text: str
    date: int


@dataclass(frozen=True)
class ImageDescription:
    title: str
    description: str


@dataclass
class ConversationState:
    """Projection of recent memory, roster and character profile.

    Rebuilt for every cycle; never persisted.
    """
    agent_id: UUID
    conversation_id: UUID
    agent_name: str
    agent_username: str = ""
    bio: str = ""
    lore: str = ""
    message_examples: str = ""
    record: Optional[MemoryRecord] = None
    recent_records: list[MemoryRecord] = field(default_factory=list)
    recent_messages: str = ""
    participants: str = ""
    actors: list[dict] = field(default_factory=list)
    action_names: str = ""
    action_examples: str = ""
    extra: dict = field(default_factory=dict)

    def as_template_values(self) -> dict:
        """Flat mapping consumed by compose_context()."""
        user_names = [a["name"] for a in self.actors if a.get("id") != self.agent_id]
        values = {
            "agentName": self.agent_name,
            "agent": self.agent_username or self.agent_name,
            "bio": self.bio,
            "lore": self.lore,
            "messageExamples": self.message_examples,
            "recentMessages": self.recent_messages,
            "actors": self.participants,
            "actionNames": self.action_names,
            "actionExamples": self.action_examples,
            "currentPost": self.record.content.text if self.record else "",
        }
        # Example names for the {{user1}}, {{user2}} placeholders
        defaults = ["Alice", "Bob"]
        for i in range(2):
            values[f"user{i + 1}"] = user_names[i] if i < len(user_names) else defaults[i]
        values.update(self.extra)
        return values
