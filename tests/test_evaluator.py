"""Tests for the fact evaluator."""

import pytest
from unittest.mock import AsyncMock
from parley.memory.evaluator import evaluate_message, parse_evaluation, quick_skip
from parley.llm.provider import ChatResponse, ModelClass


@pytest.fixture
def mock_provider():
    return AsyncMock()


class TestEvaluatorQuickFilters:
    """Test quick filter rules (no LLM needed)."""

    @pytest.mark.asyncio
    async def test_skip_short_messages(self, mock_provider):
        result = await evaluate_message(mock_provider, "ok")
        assert result is None
        mock_provider.chat.assert_not_called()

    @pytest.mark.asyncio
    async def test_skip_small_talk(self, mock_provider):
        for msg in ["hello", "thanks", "thank you", "nope", "lol"]:
            assert await evaluate_message(mock_provider, msg) is None
        mock_provider.chat.assert_not_called()

    def test_short_questions_skipped(self):
        assert quick_skip("what is that?")
        assert not quick_skip("what is the best way to learn the cello as an adult?")

    @pytest.mark.asyncio
    async def test_passes_meaningful_to_llm(self, mock_provider):
        mock_provider.chat = AsyncMock(return_value=ChatResponse(content="SKIP", model="test"))
        await evaluate_message(mock_provider, "My sister just moved to Porto with her two kids")

        mock_provider.chat.assert_called_once()
        assert mock_provider.chat.call_args.kwargs["model_class"] == ModelClass.SMALL


class TestEvaluatorLLMResponse:
    """Test parsing of LLM evaluation responses."""

    def test_parse_store(self):
        assert parse_evaluation("STORE|preference|0.6|User prefers tea") == {
            "category": "preference",
            "importance": 0.6,
            "content": "User prefers tea",
        }

    def test_parse_skip(self):
        assert parse_evaluation("SKIP") is None

    def test_clamp_importance(self):
        assert parse_evaluation("STORE|fact|1.5|x")["importance"] == 1.0
        assert parse_evaluation("STORE|fact|0|x")["importance"] == 0.1

    def test_bad_importance_defaults(self):
        assert parse_evaluation("STORE|fact|high|x")["importance"] == 0.5

    def test_content_may_contain_pipes(self):
        assert parse_evaluation("STORE|fact|0.5|likes a|b testing")["content"] == "likes a|b testing"

    def test_empty_content(self):
        assert parse_evaluation("STORE|fact|0.5|  ") is None

    def test_garbage(self):
        assert parse_evaluation("I think you should store this") is None

    @pytest.mark.asyncio
    async def test_provider_error_is_none(self, mock_provider):
        mock_provider.chat = AsyncMock(side_effect=RuntimeError("down"))
        assert await evaluate_message(mock_provider, "My sister just moved to Porto") is None
