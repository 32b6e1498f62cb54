# =============================================================================
# API Dependencies - Caller Identity and Repositories
# =============================================================================
#
# DESIGN DECISION: Identity comes from a trusted header.
# Sign-in happens upstream (the web client's OAuth flow or a gateway), which
# forwards the signed-in user's email as X-User-Email. This service does
# not verify tokens; it only scopes saved chats by that email.
#
# Both dependencies are overridable via app.dependency_overrides in tests.
# =============================================================================

from __future__ import annotations

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from fin_chat.db.engine import get_async_session
from fin_chat.db.repository import ChatRepository


async def get_optional_user_email(
    x_user_email: str | None = Header(default=None),
) -> str | None:
    """The caller's email, or None for anonymous requests."""
    if x_user_email is None:
        return None
    return x_user_email.strip().lower() or None


async def get_user_email(
    user_email: str | None = Depends(get_optional_user_email),
) -> str:
    """The caller's email; 401 when the header is missing."""
    if user_email is None:
        raise HTTPException(
            status_code=401,
            detail="Missing user identity. Provide the 'X-User-Email' header.",
        )
    return user_email


async def get_chat_repository(
    session: AsyncSession = Depends(get_async_session),
) -> ChatRepository:
    return ChatRepository(session)
