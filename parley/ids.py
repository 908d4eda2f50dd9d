"""Deterministic identifiers for messages, conversations and participants.

Every id is a name-based UUID (uuid5) under a fixed namespace, keyed on the
platform id joined with the agent id. Two agents sharing one database never
collide, and the same platform message always maps to the same record id.
"""

import uuid
from typing import Union

PARLEY_NAMESPACE = uuid.UUID("6f1a0c5e-3d2b-5c8e-9a47-2b1e0f6d4c39")


def string_to_uuid(value: str) -> uuid.UUID:
    """Stable UUID for an arbitrary string."""
    return uuid.uuid5(PARLEY_NAMESPACE, value)


def _scoped(platform_id: Union[int, str], agent_id: uuid.UUID) -> uuid.UUID:
    return string_to_uuid(f"{platform_id}-{agent_id}")


def message_uuid(platform_message_id: Union[int, str], agent_id: uuid.UUID) -> uuid.UUID:
    return _scoped(platform_message_id, agent_id)


def conversation_uuid(platform_chat_id: Union[int, str], agent_id: uuid.UUID) -> uuid.UUID:
    return _scoped(platform_chat_id, agent_id)


def participant_uuid(platform_user_id: Union[int, str], agent_id: uuid.UUID) -> uuid.UUID:
    return _scoped(platform_user_id, agent_id)


def agent_uuid(name: str) -> uuid.UUID:
    """Default agent id, derived from the character name."""
    return string_to_uuid(name)
