# =============================================================================
# Query Classifier - First Pipeline Stage
# =============================================================================
#
# Decides which branch of the pipeline a question takes:
#   earnings_call    - management commentary, strategy, outlook
#   financial_metric - hard numbers from financial statements
#   other            - anything unrelated to company finance
#
# DESIGN DECISION: LLM classification with a strict allow-list.
# Keyword rules cannot tell "What did Zuckerberg say about AI?" (earnings
# call) from "What is Meta's AI revenue?" (metric). The model is asked for
# a bare label and the reply must match one exactly; anything else is a
# ClassificationError rather than a silent guess.
# =============================================================================

from __future__ import annotations

import enum
import logging

from fin_chat.config import settings
from fin_chat.errors import ClassificationError
from fin_chat.services.llm import LLMProvider, ask_llm

logger = logging.getLogger(__name__)


class QueryType(str, enum.Enum):
    EARNINGS_CALL = "earnings_call"
    FINANCIAL_METRIC = "financial_metric"
    OTHER = "other"


_CLASSIFY_SYSTEM = """You are an assistant that categorizes user queries \
into exactly one of three categories:

1. earnings_call: The query is about topics typically discussed in company \
earnings calls. This includes:
   - Comments or statements made by executives (CEOs, CFOs) on earnings calls.
   - Management's views, strategies, plans, performance discussion, trends \
or outlook.
   - Questions such as "What are Elon Musk's comments about AI?".
2. financial_metric: The query asks for specific financial data or hard \
metrics, such as revenue, net income, profit margins, P/E ratio, or values \
from financial statements.
3. other: The query is unrelated to company finance (e.g., "What is the \
weather like today?").

Respond with ONLY ONE of: earnings_call, financial_metric, other

Example 1:
User prompt: "Summarize Tesla's latest earnings call."
Response: earnings_call

Example 2:
User prompt: "What is Tesla's revenue for Q1 2023?"
Response: financial_metric

Example 3:
User prompt: "What are Elon Musk's comments about AI?"
Response: earnings_call

Example 4:
User prompt: "What is the weather like in California?"
Response: other"""


async def classify_query(question: str, llm: LLMProvider) -> QueryType:
    """
    Classify a question into a QueryType.

    Raises:
        ClassificationError: If the model replies with anything other than
            one of the three labels.
    """
    reply = await ask_llm(
        llm,
        system=_CLASSIFY_SYSTEM,
        user_message=f'User prompt: "{question}"',
        temperature=settings.llm_temperature,
        max_tokens=16,
    )

    try:
        query_type = QueryType(reply)
    except ValueError as e:
        logger.error("Unexpected classification result: %r", reply)
        raise ClassificationError(
            f"Unexpected classification result: {reply!r}"
        ) from e

    logger.info(
        "Classified question as %s (question: '%s')",
        query_type.value, question[:80],
    )
    return query_type
