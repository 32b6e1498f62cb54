# =============================================================================
# Chatbot Errors - Request-Level Failure Taxonomy
# =============================================================================
#
# Every failure the pipeline can surface to a user is one of these classes.
# Each carries:
#   - status_code:  HTTP status returned by POST /api/chatbot
#   - user_message: plain-English text shown in the chat window (and the
#                   input to the Gekko rewrite when the persona is on)
#
# Anything that is NOT a ChatbotError is treated as an unexpected failure
# and mapped to 500 by the endpoint.
# =============================================================================

from __future__ import annotations


class ChatbotError(Exception):
    """Base class for failures that end a chatbot request."""

    status_code: int = 500
    user_message: str = (
        "Something went wrong while answering your question. "
        "Please try again."
    )

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.user_message
        super().__init__(self.detail)

    # Text fed to the Gekko rewrite. Subclasses override when the persona
    # should say something other than the plain message.
    @property
    def gekko_prompt(self) -> str:
        return self.user_message


class EmptyQuestionError(ChatbotError):
    status_code = 400
    user_message = "You need to ask me a question"


class NoCompaniesFoundError(ChatbotError):
    status_code = 404
    user_message = "No companies were found matching those names"

    @property
    def gekko_prompt(self) -> str:
        return (
            "I don't know about any company with that name. Give me a real "
            "company, and we'll make some money."
        )


class MetricNotIdentifiedError(ChatbotError):
    status_code = 422
    user_message = (
        "I couldn't find the financial metric you were looking for. "
        "Try being more specific."
    )


class FinancialDataNotFoundError(ChatbotError):
    status_code = 404
    user_message = (
        "I couldn't find the financial data you were looking for. "
        "Try refining your question."
    )


class ClassificationError(ChatbotError):
    """The classifier replied with something outside the allow-list."""

    status_code = 502
    user_message = (
        "I couldn't work out what kind of question that was. "
        "Please rephrase it."
    )


class FinancialDataError(ChatbotError):
    """The financial-data API failed (HTTP error, transport error, bad payload)."""

    status_code = 502
    user_message = (
        "The financial data service is not responding right now. "
        "Please try again shortly."
    )
