# =============================================================================
# Database Models - SQLAlchemy ORM
# =============================================================================
#
# SCHEMA:
#
# ┌──────────────────────────────────────────┐
# │  saved_chats                             │
# ├──────────────────────────────────────────┤
# │ id (PK)                                  │
# │ user_email      (indexed)                │
# │ chat_id         (client-side chat id)    │
# │ name                                     │
# │ messages        (json: [ChatMessage])    │
# │ created_at / updated_at                  │
# │ UNIQUE (user_email, chat_id)             │
# └──────────────────────────────────────────┘
#
# DESIGN DECISIONS:
#
# 1. Messages live in a JSON column, not a child table.
#    A chat is always read and written whole, and a conversation is tens
#    of messages at most, so a join buys nothing.
#
# 2. JSONB on PostgreSQL, plain JSON elsewhere.
#    The column type degrades for other backends so the model stays usable
#    with a local database.
#
# 3. Chats are scoped by user_email.
#    The caller's identity arrives in the X-User-Email header; there is
#    no users table.
# =============================================================================

from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """SQLAlchemy declarative base class."""

    pass


class SavedChat(Base):
    """A conversation a user has saved (or that was auto-persisted)."""

    __tablename__ = "saved_chats"
    __table_args__ = (
        UniqueConstraint("user_email", "chat_id", name="uq_saved_chats_user_chat"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)

    # Client-generated chat id (uuid string)
    chat_id: Mapped[str] = mapped_column(String(64), nullable=False)

    # First message of the conversation, or "Untitled Chat"
    name: Mapped[str] = mapped_column(Text, nullable=False)

    # List of serialised ChatMessage dicts, in creation order
    messages: Mapped[list] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"),
        nullable=False,
        default=list,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<SavedChat(user='{self.user_email}', chat_id='{self.chat_id}', "
            f"messages={len(self.messages or [])})>"
        )
