# =============================================================================
# Chats API - Saved Conversation CRUD
# =============================================================================
#
#   GET    /api/chats                    → list the caller's chats
#   GET    /api/chats/{chat_id}          → one chat with its messages
#   POST   /api/chats                    → save (201 new, 200 duplicate)
#   PUT    /api/chats/{chat_id}/messages → replace a chat's messages
#   DELETE /api/chats/{chat_id}          → delete
#
# Every route is scoped to the X-User-Email caller (401 without it).
# Chats belonging to other users are indistinguishable from missing ones
# (404).
#
# Editing or deleting a chat drops its in-memory chatbot session, so the
# next chatbot turn continues from the stored messages.
# =============================================================================

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Path, Response, status

from fin_chat.api.deps import get_chat_repository, get_user_email
from fin_chat.db.repository import ChatRepository
from fin_chat.models.chat import Chat
from fin_chat.models.requests import SaveChatRequest, UpdateMessagesRequest
from fin_chat.models.responses import ChatListResponse, SaveChatResponse
from fin_chat.services.chat_history import SessionRegistry, get_session_registry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chats", tags=["Chats"])


@router.get("", response_model=ChatListResponse)
async def list_chats(
    user_email: str = Depends(get_user_email),
    repo: ChatRepository = Depends(get_chat_repository),
) -> ChatListResponse:
    """List the caller's saved chats, newest first."""
    chats = await repo.list_chats(user_email)
    return ChatListResponse(chats=chats, total=len(chats))


@router.get("/{chat_id}", response_model=Chat)
async def get_chat(
    chat_id: str = Path(..., max_length=64),
    user_email: str = Depends(get_user_email),
    repo: ChatRepository = Depends(get_chat_repository),
) -> Chat:
    chat = await repo.get_chat(user_email, chat_id)
    if chat is None:
        raise HTTPException(status_code=404, detail=f"Chat {chat_id} not found")
    return chat


@router.post(
    "",
    response_model=SaveChatResponse,
    status_code=status.HTTP_201_CREATED,
    responses={200: {"model": SaveChatResponse, "description": "Duplicate; not saved"}},
)
async def save_chat(
    request: SaveChatRequest,
    response: Response,
    user_email: str = Depends(get_user_email),
    repo: ChatRepository = Depends(get_chat_repository),
) -> SaveChatResponse:
    """
    Save a conversation.

    A conversation whose messages exactly match one the caller already
    saved is not stored again; the response is 200 with saved=false.
    """
    chat = Chat.from_messages(request.id, request.messages)
    if request.name:
        chat.name = request.name

    saved = await repo.save_chat(user_email, chat)
    if not saved:
        response.status_code = status.HTTP_200_OK
    return SaveChatResponse(id=chat.id, saved=saved)


@router.put("/{chat_id}/messages", response_model=Chat)
async def update_chat_messages(
    request: UpdateMessagesRequest,
    chat_id: str = Path(..., max_length=64),
    user_email: str = Depends(get_user_email),
    repo: ChatRepository = Depends(get_chat_repository),
    registry: SessionRegistry = Depends(get_session_registry),
) -> Chat:
    updated = await repo.update_messages(user_email, chat_id, request.messages)
    if not updated:
        raise HTTPException(status_code=404, detail=f"Chat {chat_id} not found")
    registry.discard(user_email, chat_id)
    logger.info("Updated chat %s (%d messages)", chat_id, len(request.messages))
    return await repo.get_chat(user_email, chat_id)


@router.delete("/{chat_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_chat(
    chat_id: str = Path(..., max_length=64),
    user_email: str = Depends(get_user_email),
    repo: ChatRepository = Depends(get_chat_repository),
    registry: SessionRegistry = Depends(get_session_registry),
) -> Response:
    deleted = await repo.delete_chat(user_email, chat_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Chat {chat_id} not found")
    registry.discard(user_email, chat_id)
    logger.info("Deleted chat %s for %s", chat_id, user_email)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
