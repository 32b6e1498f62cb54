# =============================================================================
# Chat Repository - Per-User Saved Chats
# =============================================================================
#
# Thin async data-access layer over the saved_chats table. Route handlers
# and the chat-history background task talk to this class, never to the
# ORM directly.
#
# DUPLICATE HANDLING (two different rules):
#   save_chat()  - refuses to store a conversation whose message list is
#                  identical to one the user already has (returns False)
#   list_chats() - hides rows that share both name and message count with
#                  an earlier row; catches near-duplicates left by
#                  auto-persistence racing a manual save
#
# DESIGN DECISION: The repository never commits.
# It adds and flushes; whoever owns the session decides when to commit
# (see the COMMIT POLICY in db/engine.py).
# =============================================================================

from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from fin_chat.db.models import SavedChat
from fin_chat.models.chat import Chat, ChatMessage

logger = logging.getLogger(__name__)


class ChatRepository:
    """Async CRUD for saved chats, scoped to one user per call."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def list_chats(self, user_email: str) -> list[Chat]:
        """Return the user's chats, most recently updated first, de-duplicated."""
        stmt = (
            select(SavedChat)
            .where(SavedChat.user_email == user_email)
            .order_by(SavedChat.updated_at.desc(), SavedChat.id.desc())
        )
        result = await self._session.execute(stmt)
        chats = [_to_chat(row) for row in result.scalars().all()]
        return dedupe_chats(chats)

    async def get_chat(self, user_email: str, chat_id: str) -> Chat | None:
        row = await self._get_row(user_email, chat_id)
        return _to_chat(row) if row is not None else None

    async def save_chat(self, user_email: str, chat: Chat) -> bool:
        """
        Store a chat, or overwrite the stored copy with the same id.

        Returns:
            False if the user already has a chat with an identical message
            list (nothing is written), True otherwise.
        """
        messages = serialise_messages(chat.messages)

        stmt = select(SavedChat).where(SavedChat.user_email == user_email)
        result = await self._session.execute(stmt)
        rows = list(result.scalars().all())

        if any(row.messages == messages for row in rows):
            logger.info(
                "Chat %s for %s duplicates an existing chat; not saved",
                chat.id, user_email,
            )
            return False

        existing = next((row for row in rows if row.chat_id == chat.id), None)
        if existing is not None:
            existing.name = chat.name
            existing.messages = messages
        else:
            self._session.add(SavedChat(
                user_email=user_email,
                chat_id=chat.id,
                name=chat.name,
                messages=messages,
            ))

        await self._session.flush()
        logger.info(
            "Saved chat %s for %s (%d messages)",
            chat.id, user_email, len(messages),
        )
        return True

    async def update_messages(
        self,
        user_email: str,
        chat_id: str,
        messages: list[ChatMessage],
    ) -> bool:
        """Replace a saved chat's messages. False if the chat doesn't exist."""
        row = await self._get_row(user_email, chat_id)
        if row is None:
            return False

        row.messages = serialise_messages(messages)
        await self._session.flush()
        return True

    async def delete_chat(self, user_email: str, chat_id: str) -> bool:
        """Delete a saved chat. False if the chat doesn't exist."""
        stmt = (
            delete(SavedChat)
            .where(SavedChat.user_email == user_email)
            .where(SavedChat.chat_id == chat_id)
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def _get_row(self, user_email: str, chat_id: str) -> SavedChat | None:
        stmt = (
            select(SavedChat)
            .where(SavedChat.user_email == user_email)
            .where(SavedChat.chat_id == chat_id)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def serialise_messages(messages: list[ChatMessage]) -> list[dict]:
    """JSON-safe dicts for the messages column."""
    return [message.model_dump(mode="json") for message in messages]


def dedupe_chats(chats: list[Chat]) -> list[Chat]:
    """Drop chats sharing name and message count with an earlier chat."""
    seen: set[tuple[str, int]] = set()
    unique: list[Chat] = []
    for chat in chats:
        key = (chat.name, len(chat.messages))
        if key in seen:
            continue
        seen.add(key)
        unique.append(chat)
    return unique


def _to_chat(row: SavedChat) -> Chat:
    return Chat(
        id=row.chat_id,
        name=row.name,
        messages=[ChatMessage.model_validate(m) for m in row.messages or []],
    )
