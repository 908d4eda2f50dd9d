"""Tests for the respond-decision engine."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from parley.decision import Decision, RespondDecisionEngine, is_mentioned
from parley.llm.provider import ChatResponse
from parley.models import AttachmentRef, ChatType, ConversationState


def _provider(content="[RESPOND]"):
    provider = MagicMock()
    provider.chat = AsyncMock(return_value=ChatResponse(content=content, model="test"))
    return provider


@pytest.fixture
def state(agent_id):
    return ConversationState(agent_id=agent_id, conversation_id=agent_id, agent_name="Ada")


PHOTO = (AttachmentRef(file_id="p1", kind="photo", width=10, height=10),)


class TestMentions:
    def test_mention_case_insensitive(self):
        assert is_mentioned("ping @ADA_BOT please", "ada_bot")

    def test_mention_needs_word_boundary(self):
        assert not is_mentioned("ping @ada_bot2", "ada_bot")

    def test_handle_with_at_sign(self):
        assert is_mentioned("@ada_bot hi", "@ada_bot")

    def test_empty_inputs(self):
        assert not is_mentioned("", "ada_bot")
        assert not is_mentioned("@ada_bot", "")


class TestPrecedence:
    """First matching rule wins."""

    @pytest.mark.asyncio
    async def test_mention_beats_classifier(self, character, make_event, state):
        provider = _provider("[IGNORE]")
        engine = RespondDecisionEngine(provider, character)
        event = make_event(chat_type=ChatType.GROUP, text="@ada_bot are you there")

        assert await engine.decide(event, state) == Decision.RESPOND
        provider.chat.assert_not_called()

    @pytest.mark.asyncio
    async def test_mention_in_caption(self, character, make_event, state):
        provider = _provider("[IGNORE]")
        engine = RespondDecisionEngine(provider, character)
        event = make_event(chat_type=ChatType.GROUP, text=None, caption="look @ada_bot", attachments=PHOTO)

        assert await engine.decide(event, state) == Decision.RESPOND

    @pytest.mark.asyncio
    async def test_direct_chat_always_responds(self, character, make_event, state):
        provider = _provider("[STOP]")
        engine = RespondDecisionEngine(provider, character)

        assert await engine.decide(make_event(text="hi"), state) == Decision.RESPOND
        provider.chat.assert_not_called()

    @pytest.mark.asyncio
    async def test_image_only_direct_message_responds(self, character, make_event, state):
        engine = RespondDecisionEngine(_provider(), character)
        event = make_event(text=None, attachments=PHOTO)

        assert await engine.decide(event, state) == Decision.RESPOND

    @pytest.mark.asyncio
    async def test_image_only_group_message_skips(self, character, make_event, state):
        provider = _provider("[RESPOND]")
        engine = RespondDecisionEngine(provider, character)
        event = make_event(chat_type=ChatType.GROUP, text=None, attachments=PHOTO)

        assert await engine.decide(event, state) == Decision.SKIP
        provider.chat.assert_not_called()

    @pytest.mark.asyncio
    async def test_nothing_at_all_skips(self, character, make_event, state):
        engine = RespondDecisionEngine(_provider(), character)
        event = make_event(chat_type=ChatType.GROUP, text=None)

        assert await engine.decide(event, state) == Decision.SKIP


class TestClassifier:
    """Group messages without a mention go to the classifier."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("output,expected", [
        ("[RESPOND]", Decision.RESPOND),
        ("Result: [IGNORE]", Decision.SKIP),
        ("[STOP]", Decision.STOP),
        ("respond", Decision.RESPOND),
        ("I am not sure", Decision.SKIP),
    ])
    async def test_classifier_outputs(self, character, make_event, state, output, expected):
        engine = RespondDecisionEngine(_provider(output), character)
        event = make_event(chat_type=ChatType.GROUP, text="nice weather")

        assert await engine.decide(event, state) == expected

    @pytest.mark.asyncio
    async def test_caption_goes_to_classifier(self, character, make_event, state):
        provider = _provider("[RESPOND]")
        engine = RespondDecisionEngine(provider, character)
        event = make_event(chat_type=ChatType.GROUP, text=None, caption="my new bike", attachments=PHOTO)

        assert await engine.decide(event, state) == Decision.RESPOND
        provider.chat.assert_called_once()

    @pytest.mark.asyncio
    async def test_classifier_exception_skips(self, character, make_event, state):
        provider = MagicMock()
        provider.chat = AsyncMock(side_effect=RuntimeError("down"))
        engine = RespondDecisionEngine(provider, character)

        decision = await engine.decide(make_event(chat_type=ChatType.GROUP, text="nice weather"), state)
        assert decision == Decision.SKIP

    @pytest.mark.asyncio
    async def test_character_template_is_used(self, character, make_event, state):
        character.templates["telegram_should_respond"] = "Custom for {{agentName}}"
        provider = _provider("[RESPOND]")
        engine = RespondDecisionEngine(provider, character)

        await engine.decide(make_event(chat_type=ChatType.GROUP, text="nice weather"), state)
        messages = provider.chat.call_args.kwargs["messages"]
        assert messages[0].content == "Custom for Ada"

    @pytest.mark.asyncio
    async def test_same_inputs_same_decision(self, character, make_event, state):
        engine = RespondDecisionEngine(_provider("[IGNORE]"), character)
        event = make_event(chat_type=ChatType.GROUP, text="nice weather")

        first = await engine.decide(event, state)
        second = await engine.decide(event, state)
        assert first == second == Decision.SKIP

    def test_stop_does_not_respond(self):
        assert not Decision.STOP.should_respond
        assert not Decision.SKIP.should_respond
        assert Decision.RESPOND.should_respond
