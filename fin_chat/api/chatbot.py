# =============================================================================
# Chatbot API - Question → Answer Endpoint
# =============================================================================
#
# Provides POST /api/chatbot, which runs the LangGraph pipeline
# (classify → resolve → fetch → summarise → style) for one question.
#
# FLOW:
#   1. Receive {question, isGekko?, chatId?}
#   2. Invoke the pipeline
#   3. Return {queryType, summary}
#   4. (Background) Record the turn in the caller's chat history when
#      both chatId and X-User-Email are present
#
# ERROR ENVELOPE:
#   Failures return {queryType: "error", summary, error} with the status
#   carried by the ChatbotError subclass (500 for anything unexpected).
#   With the persona on, `summary` is the Gekko rewrite of the message; if
#   that rewrite fails too, the plain message is used.
#
# The endpoint only translates between HTTP and the pipeline. The work
# happens in agents/.
# =============================================================================

from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends
from fastapi.responses import JSONResponse

from fin_chat.agents.orchestrator import answer_question
from fin_chat.agents.stylist import rewrite_in_gekko_style
from fin_chat.api.deps import get_optional_user_email
from fin_chat.errors import ChatbotError
from fin_chat.models.requests import ChatbotRequest
from fin_chat.models.responses import (
    ChatbotErrorResponse,
    ChatbotResponse,
    RouteCheckResponse,
)
from fin_chat.services.chat_history import record_turn
from fin_chat.services.llm import get_llm_provider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Chatbot"])

INTERNAL_ERROR_MESSAGE = (
    "Something went wrong while answering your question. Please try again."
)


# ---------------------------------------------------------------------------
# GET /api/chatbot - Route check
# ---------------------------------------------------------------------------


@router.get("/chatbot", response_model=RouteCheckResponse)
async def chatbot_route_check() -> RouteCheckResponse:
    return RouteCheckResponse()


# ---------------------------------------------------------------------------
# POST /api/chatbot - Answer a question
# ---------------------------------------------------------------------------


@router.post(
    "/chatbot",
    response_model=ChatbotResponse,
    responses={
        400: {"model": ChatbotErrorResponse},
        404: {"model": ChatbotErrorResponse},
        422: {"model": ChatbotErrorResponse},
        500: {"model": ChatbotErrorResponse},
        502: {"model": ChatbotErrorResponse},
    },
    summary="Ask the financial chatbot a question",
    description=(
        "Classifies the question, resolves the companies it mentions, "
        "fetches earnings call transcripts or financial statements, and "
        "summarises them. Set isGekko to get the answer in the voice of "
        "Gordon Gekko."
    ),
)
async def chatbot_endpoint(
    request: ChatbotRequest,
    background_tasks: BackgroundTasks,
    user_email: str | None = Depends(get_optional_user_email),
):
    logger.info(
        "Chatbot request: question='%s', gekko=%s, chat_id=%s",
        (request.question or "")[:80],
        request.is_gekko,
        request.chat_id,
    )

    try:
        result = await answer_question(request.question, request.is_gekko)
    except ChatbotError as e:
        logger.info(
            "Chatbot request ended with %s (%d): %s",
            type(e).__name__, e.status_code, e.detail,
        )
        return await _error_response(
            e.status_code, e.user_message, e.gekko_prompt, request.is_gekko,
        )
    except Exception as e:
        logger.exception("Chatbot pipeline failed: %s", e)
        return await _error_response(
            500, INTERNAL_ERROR_MESSAGE, INTERNAL_ERROR_MESSAGE, request.is_gekko,
        )

    summary = result["summary"]

    if request.chat_id and user_email:
        background_tasks.add_task(
            record_turn,
            user_email=user_email,
            chat_id=request.chat_id,
            question=request.question,
            answer=summary,
        )

    return ChatbotResponse(
        query_type=result["query_type"].value,
        summary=summary,
    )


# ---------------------------------------------------------------------------
# Error Envelope
# ---------------------------------------------------------------------------


async def _error_response(
    status_code: int,
    message: str,
    gekko_prompt: str,
    is_gekko: bool,
) -> JSONResponse:
    summary = message
    if is_gekko:
        try:
            summary = await rewrite_in_gekko_style(gekko_prompt, get_llm_provider())
        except Exception as e:
            logger.warning("Gekko rewrite of error message failed: %s", e)
            summary = message

    body = ChatbotErrorResponse(summary=summary, error=message)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True),
    )
