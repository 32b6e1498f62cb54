# =============================================================================
# Chat Schemas - Messages and Saved Chats
# =============================================================================
#
# The same shapes are used in three places: the in-memory ChatSession, the
# JSON column of the saved_chats table, and the /api/chats payloads.
#
# DESIGN DECISION: A chat's name is derived, not chosen.
# The UI names a chat after its first message (see Chat.from_messages), so
# two saves of the same conversation get the same name. List
# de-duplication relies on that.
# =============================================================================

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field

UNTITLED_CHAT = "Untitled Chat"


def _now() -> datetime:
    return datetime.now(UTC)


class ChatMessage(BaseModel):
    """One turn of a conversation."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = Field(default_factory=_now)


class Chat(BaseModel):
    """A named, ordered list of messages."""

    id: str
    name: str = UNTITLED_CHAT
    messages: list[ChatMessage] = Field(default_factory=list)

    @classmethod
    def from_messages(cls, chat_id: str, messages: list[ChatMessage]) -> Chat:
        name = messages[0].content if messages else UNTITLED_CHAT
        return cls(id=chat_id, name=name, messages=list(messages))
