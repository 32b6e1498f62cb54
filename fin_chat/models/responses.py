# =============================================================================
# API Response Models - Pydantic V2 Schemas
# =============================================================================
#
# The chatbot has two response shapes on the same route:
#   success → {queryType, summary}
#   failure → {queryType: "error", summary, error}
#
# summary is always user-presentable (restyled in persona when requested);
# error carries the plain, un-styled message for logs and the client.
# =============================================================================

from pydantic import BaseModel, ConfigDict, Field

from fin_chat.models.chat import Chat


class HealthResponse(BaseModel):
    """Response for GET /health - confirms the API is running."""

    status: str = "ok"
    version: str
    service: str


class RouteCheckResponse(BaseModel):
    """Response for GET /api/chatbot."""

    message: str = "Route is working!"


class ChatbotResponse(BaseModel):
    """Successful answer from POST /api/chatbot."""

    query_type: str = Field(alias="queryType")
    summary: str

    model_config = ConfigDict(populate_by_name=True)


class ChatbotErrorResponse(BaseModel):
    """Error envelope from POST /api/chatbot."""

    query_type: str = Field(default="error", alias="queryType")
    summary: str
    error: str

    model_config = ConfigDict(populate_by_name=True)


class ChatListResponse(BaseModel):
    """Response for GET /api/chats."""

    chats: list[Chat]
    total: int


class SaveChatResponse(BaseModel):
    """
    Response for POST /api/chats.

    saved=False means an identical conversation was already stored and
    nothing was written.
    """

    id: str
    saved: bool
