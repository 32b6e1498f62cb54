# =============================================================================
# API Request Models - Pydantic V2 Schemas
# =============================================================================
#
# The chatbot endpoint keeps the camelCase wire names the web client
# already sends (isGekko, chatId). Fields are declared snake_case with
# aliases, and populate_by_name lets tests and Python callers use either.
#
# DESIGN DECISION: question is NOT validated here.
# An empty question must produce the chatbot's own error envelope
# ({queryType: "error", ...}, optionally in persona), not FastAPI's generic
# 422. Any empty question, null included, reaches the orchestrator, which
# raises EmptyQuestionError.
# =============================================================================

from pydantic import BaseModel, ConfigDict, Field

from fin_chat.models.chat import ChatMessage


class ChatbotRequest(BaseModel):
    """
    Request body for POST /api/chatbot.

    Example:
        {
            "question": "What did Apple say about AI in its last earnings call?",
            "isGekko": true,
            "chatId": "3f0c2e1a-..."
        }
    """

    question: str | None = Field(
        default=None,
        max_length=2000,
        description="The user's question",
        examples=["What was Microsoft's revenue last year?"],
    )

    # Rewrite the answer in the Gordon Gekko persona
    is_gekko: bool = Field(default=False, alias="isGekko")

    # Client-side chat id; when present (with X-User-Email) the turn is
    # recorded in the user's chat history
    chat_id: str | None = Field(default=None, alias="chatId")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {"question": "Summarize Tesla's Q2 2024 earnings call", "isGekko": False},
                {"question": "What is Nvidia's PE ratio?", "isGekko": True},
            ]
        },
    )


class SaveChatRequest(BaseModel):
    """Request body for POST /api/chats - save a conversation."""

    id: str = Field(..., min_length=1, max_length=64)
    name: str | None = Field(
        default=None,
        description="Chat name. Defaults to the first message.",
    )
    messages: list[ChatMessage] = Field(default_factory=list)


class UpdateMessagesRequest(BaseModel):
    """Request body for PUT /api/chats/{chat_id}/messages."""

    messages: list[ChatMessage]
