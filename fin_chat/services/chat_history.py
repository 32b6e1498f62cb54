# =============================================================================
# Chat History - In-Memory Sessions with Threshold Persistence
# =============================================================================
#
# Each chatbot turn (question + answer) is appended to an in-memory
# ChatSession keyed by (user, chat id). Short exchanges stay in memory;
# once a conversation reaches `chat_persist_threshold` messages it is saved
# to the database, and every later turn updates the saved copy.
#
#   turn 1 → [user, assistant]                      memory only
#   turn 2 → [user, assistant, user, assistant]     threshold hit → save
#   turn 3 → [... 6 messages]                       update saved copy
#
# DESIGN DECISION: Recording runs as a FastAPI background task.
# It happens after the response is sent, owns its own DB session, and
# logs instead of raising. A database outage never costs the user an
# answer.
#
# DESIGN DECISION: Bounded registry.
# Sessions are evicted oldest-first beyond `chat_session_cache_size`. An
# evicted chat that was persisted is resumed from the database on its next
# turn; one that wasn't simply starts over. The chats API discards a
# session whenever it edits or deletes the stored copy, so the next turn
# starts from what is in the database.
# =============================================================================

from __future__ import annotations

import logging
from collections import OrderedDict
from collections.abc import Callable
from typing import Literal

from sqlalchemy.ext.asyncio import AsyncSession

from fin_chat.config import settings
from fin_chat.db.repository import ChatRepository
from fin_chat.models.chat import Chat, ChatMessage

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# ChatSession
# ---------------------------------------------------------------------------


class ChatSession:
    """Ordered messages of one conversation, plus its persistence state."""

    def __init__(
        self,
        user_email: str,
        chat_id: str,
        messages: list[ChatMessage] | None = None,
        persisted: bool = False,
    ):
        self.user_email = user_email
        self.chat_id = chat_id
        self.messages: list[ChatMessage] = list(messages or [])
        self.persisted = persisted

    @classmethod
    def from_chat(cls, user_email: str, chat: Chat) -> ChatSession:
        """Resume a conversation that is already saved."""
        return cls(user_email, chat.id, chat.messages, persisted=True)

    @property
    def key(self) -> tuple[str, str]:
        return (self.user_email, self.chat_id)

    def add_message(
        self,
        role: Literal["user", "assistant"],
        content: str,
    ) -> ChatMessage:
        message = ChatMessage(role=role, content=content)
        self.messages.append(message)
        return message

    def update_last_message(self, content: str) -> bool:
        """Replace the last message's content if it is an assistant message."""
        if not self.messages or self.messages[-1].role != "assistant":
            return False
        self.messages[-1].content = content
        return True

    def should_persist(self, threshold: int | None = None) -> bool:
        threshold = threshold or settings.chat_persist_threshold
        return len(self.messages) >= threshold

    def to_chat(self) -> Chat:
        return Chat.from_messages(self.chat_id, self.messages)


# ---------------------------------------------------------------------------
# SessionRegistry
# ---------------------------------------------------------------------------


class SessionRegistry:
    """Bounded (user, chat id) → ChatSession map, least recently used evicted."""

    def __init__(self, max_size: int | None = None):
        self._max_size = max_size or settings.chat_session_cache_size
        self._sessions: OrderedDict[tuple[str, str], ChatSession] = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, user_email: str, chat_id: str) -> ChatSession | None:
        key = (user_email, chat_id)
        session = self._sessions.get(key)
        if session is not None:
            self._sessions.move_to_end(key)
        return session

    def put(self, session: ChatSession) -> None:
        self._sessions[session.key] = session
        self._sessions.move_to_end(session.key)
        while len(self._sessions) > self._max_size:
            evicted_key, _ = self._sessions.popitem(last=False)
            logger.debug("Evicted chat session %s", evicted_key[1])

    def discard(self, user_email: str, chat_id: str) -> None:
        """Forget a session so its next turn reloads from the database."""
        self._sessions.pop((user_email, chat_id), None)


_registry: SessionRegistry | None = None


def get_session_registry() -> SessionRegistry:
    """Process-wide registry (lazy singleton)."""
    global _registry
    if _registry is None:
        _registry = SessionRegistry()
    return _registry


# ---------------------------------------------------------------------------
# Background Task
# ---------------------------------------------------------------------------


async def record_turn(
    user_email: str,
    chat_id: str,
    question: str,
    answer: str,
    registry: SessionRegistry | None = None,
    session_factory: Callable[[], AsyncSession] | None = None,
) -> None:
    """
    Append one question/answer turn to the user's chat and persist it
    when the conversation is long enough.

    Uses its own DB session; failures are logged, never raised.
    """
    if session_factory is None:
        from fin_chat.db.engine import async_session_factory
        session_factory = async_session_factory
    registry = registry or get_session_registry()

    try:
        async with session_factory() as db:
            repo = ChatRepository(db)

            chat_session = registry.get(user_email, chat_id)
            if chat_session is None:
                saved = await repo.get_chat(user_email, chat_id)
                if saved is not None:
                    chat_session = ChatSession.from_chat(user_email, saved)
                else:
                    chat_session = ChatSession(user_email, chat_id)
                registry.put(chat_session)

            chat_session.add_message("user", question)
            chat_session.add_message("assistant", answer)

            if chat_session.persisted:
                updated = await repo.update_messages(
                    user_email, chat_id, chat_session.messages,
                )
                if not updated:
                    # Deleted since it was saved
                    logger.info("Chat %s no longer stored; saving again", chat_id)
                    chat_session.persisted = await repo.save_chat(
                        user_email, chat_session.to_chat(),
                    )
            elif chat_session.should_persist():
                chat_session.persisted = await repo.save_chat(
                    user_email, chat_session.to_chat(),
                )
            else:
                return

            await db.commit()
    except Exception as e:
        logger.warning("Failed to record turn for chat %s: %s", chat_id, e)
