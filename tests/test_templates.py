"""Tests for template selection and context composition."""

from parley.models import ConversationState
from parley.templates import (
    MESSAGE_COMPLETION_FOOTER,
    SHOULD_RESPOND_FOOTER,
    TELEGRAM_MESSAGE_HANDLER_TEMPLATE,
    TELEGRAM_SHOULD_RESPOND_TEMPLATE,
    compose_context,
    select_template,
)


class TestSelectTemplate:
    """Ordered lookup: platform-specific, generic, default, built-in."""

    def test_builtin_when_character_has_none(self, character):
        assert select_template(character, "should_respond") == TELEGRAM_SHOULD_RESPOND_TEMPLATE
        assert select_template(character, "message_handler") == TELEGRAM_MESSAGE_HANDLER_TEMPLATE

    def test_platform_specific_wins(self, character):
        character.templates.update({"telegram_message_handler": "A", "message_handler": "B"})
        assert select_template(character, "message_handler") == "A"

    def test_generic_before_default(self, character):
        character.templates["message_handler"] = "B"
        assert select_template(character, "message_handler", default="C") == "B"

    def test_default_before_builtin(self, character):
        assert select_template(character, "message_handler", default="C") == "C"

    def test_other_platform_key_ignored(self, character):
        character.templates["discord_message_handler"] = "D"
        assert select_template(character, "message_handler") == TELEGRAM_MESSAGE_HANDLER_TEMPLATE

    def test_footers_attached(self):
        assert TELEGRAM_SHOULD_RESPOND_TEMPLATE.endswith(SHOULD_RESPOND_FOOTER)
        assert TELEGRAM_MESSAGE_HANDLER_TEMPLATE.endswith(MESSAGE_COMPLETION_FOOTER)


class TestComposeContext:
    def test_placeholders_filled(self, agent_id):
        state = ConversationState(agent_id=agent_id, conversation_id=agent_id, agent_name="Ada", bio="Kind.")
        assert compose_context(state, "{{agentName}}: {{ bio }}") == "Ada: Kind."

    def test_unknown_keys_render_empty(self, agent_id):
        state = ConversationState(agent_id=agent_id, conversation_id=agent_id, agent_name="Ada")
        assert compose_context(state, "[{{nope}}]") == "[]"

    def test_extra_values(self, agent_id):
        state = ConversationState(
            agent_id=agent_id, conversation_id=agent_id, agent_name="Ada", extra={"mood": "sunny"},
        )
        assert compose_context(state, "{{mood}}") == "sunny"

    def test_builtin_template_fully_rendered(self, agent_id):
        state = ConversationState(agent_id=agent_id, conversation_id=agent_id, agent_name="Ada")
        rendered = compose_context(state, TELEGRAM_SHOULD_RESPOND_TEMPLATE)
        assert "{{" not in rendered
        assert "Ada" in rendered
