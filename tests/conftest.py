"""Pytest configuration and shared fixtures.

Everything here is in-memory: no test needs PostgreSQL, Telegram or a
model endpoint.
"""

import asyncio
import json

import pytest
from unittest.mock import AsyncMock

from parley.actions import ActionRegistry, register_builtins
from parley.character import Character
from parley.config import ParleySettings
from parley.ids import agent_uuid
from parley.llm.provider import ChatResponse, EmbeddingResponse, LLMProvider, ModelClass
from parley.models import ChatType, InboundEvent, SentMessage


def json_reply(text: str, action: str = "NONE") -> str:
    """A completion in the format the message handler template asks for."""
    body = json.dumps({"user": "Ada", "text": text, "action": action})
    return f"```json\n{body}\n```"


class FakeProvider(LLMProvider):
    """Scripted provider. Each call kind returns its configured output.

    Set an attribute to an exception instance to make that call kind raise.
    """

    def __init__(self):
        self.should_respond = "[RESPOND]"
        self.reply = json_reply("hi there")
        self.description = "Cat on a mat\nA grey cat sitting on a red mat."
        self.fact = "SKIP"
        self.delay = 0.0
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def name(self) -> str:
        return "fake"

    @property
    def embedding_dimensions(self) -> int:
        return 4

    def _kind(self, prompt: str, model_class: ModelClass) -> str:
        if model_class == ModelClass.VISION:
            return "describe"
        if model_class == ModelClass.SMALL:
            return "fact"
        if "Response options are [RESPOND]" in prompt:
            return "should_respond"
        return "generate"

    async def chat(self, messages, model_class=ModelClass.MEDIUM, temperature=0.7, max_tokens=None):
        kind = self._kind(messages[-1].content, model_class)
        self.calls.append(kind)

        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay and kind == "generate":
                await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1

        output = {
            "describe": self.description,
            "fact": self.fact,
            "should_respond": self.should_respond,
            "generate": self.reply,
        }[kind]
        if isinstance(output, Exception):
            raise output
        return ChatResponse(content=output, model="fake")

    async def embed(self, text, model=None):
        return EmbeddingResponse(vector=[0.1] * 4, model="fake", dimensions=4)


class FakeStore:
    """In-memory stand-in for MemoryStore with the same async surface."""

    def __init__(self, dimensions: int = 4):
        self.dimensions = dimensions
        self.records = {}
        self.participants: dict = {}
        self.logs: list[dict] = []
        self.facts: list[dict] = []

    def zero_vector(self):
        return [0.0] * self.dimensions

    async def add_embedding(self, record):
        if record.embedding is None and record.content.text:
            record.embedding = [0.1] * self.dimensions
        return record

    async def create_record(self, record, unique=False):
        if record.id in self.records:
            if unique:
                return False
            raise ValueError(f"duplicate memory id {record.id}")
        self.records[record.id] = record
        return True

    async def get_recent(self, conversation_id, limit=32):
        rows = [r for r in self.records.values() if r.conversation_id == conversation_id]
        rows.sort(key=lambda r: r.created_at)
        return rows[-limit:]

    async def get_by_id(self, record_id):
        return self.records.get(record_id)

    async def count(self, conversation_id=None):
        if conversation_id is None:
            return len(self.records)
        return sum(1 for r in self.records.values() if r.conversation_id == conversation_id)

    async def get_participants(self, conversation_id):
        return list(self.participants.get(conversation_id, []))

    async def log(self, body, participant_id, conversation_id, type):
        self.logs.append({
            "body": body,
            "participant_id": participant_id,
            "conversation_id": conversation_id,
            "type": type,
        })

    async def store_fact_if_new(self, content, category, importance, conversation_id,
                                participant_id, agent_id, similarity_threshold=0.85):
        self.facts.append({"content": content, "category": category, "importance": importance})
        return len(self.facts)


class FakePlatform:
    """Records sends; ``fail_on`` makes the n-th send (0-based) raise."""

    def __init__(self):
        self.sent: list[dict] = []
        self.fail_on = None
        self._next_id = 5000
        self._date = 1_700_000_100

    async def get_file_url(self, file_id):
        return f"https://files.example/{file_id}"

    async def send_message(self, chat_id, text, reply_to_message_id=None):
        if self.fail_on is not None and len(self.sent) == self.fail_on:
            raise RuntimeError("send failed")
        self._next_id += 1
        self._date += 1
        self.sent.append({"chat_id": chat_id, "text": text, "reply_to_message_id": reply_to_message_id})
        return SentMessage(message_id=self._next_id, text=text, date=self._date)


class FakeRuntime:
    """Just the attributes the orchestrator and actions read."""

    def __init__(self, settings, character, provider, store):
        self.settings = settings
        self.character = character
        self.provider = provider
        self.store = store
        self.agent_id = agent_uuid(character.name)
        self.actions = ActionRegistry()
        register_builtins(self.actions)
        self.ensure_connection = AsyncMock()


@pytest.fixture
def settings():
    return ParleySettings(_env_file=None)


@pytest.fixture
def character():
    return Character(
        name="Ada",
        username="ada_bot",
        bio=["Ada is a friendly assistant.", "She likes short answers."],
        lore=["Ada was built in a garage."],
    )


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def platform():
    return FakePlatform()


@pytest.fixture
def agent_id(character):
    return agent_uuid(character.name)


@pytest.fixture
def runtime(settings, character, provider, store):
    return FakeRuntime(settings, character, provider, store)


@pytest.fixture
def make_event():
    """Factory for inbound events; keyword arguments override the defaults."""
    def _make(**overrides) -> InboundEvent:
        fields = {
            "message_id": 1,
            "chat_id": 100,
            "chat_type": ChatType.DIRECT,
            "sender_id": 42,
            "sender_username": "sam",
            "sender_name": "Sam",
            "text": "hello",
            "date": 1_700_000_000,
        }
        fields.update(overrides)
        return InboundEvent(**fields)
    return _make


@pytest.fixture(name="json_reply")
def json_reply_fixture():
    return json_reply
