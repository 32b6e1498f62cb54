# =============================================================================
# LangGraph Orchestrator - Question → Styled Answer
# =============================================================================
#
# Wires the pipeline stages into a LangGraph StateGraph:
#
#   START ──▶ classify ─┬─ other ──────────────────────────▶ generic ──▶ END
#                       └─ finance ─▶ resolve ─┬─ earnings_call ─▶ earnings ─┐
#                                              └─ financial_metric ▶ metrics ┴▶ style ─▶ END
#
# DESIGN DECISION: Conditional edges for the two routing decisions.
# Classification and company resolution each pick the next node; the
# heavy work (fetch + summarise loops) happens INSIDE the earnings and
# metrics nodes as plain Python loops.
#
# DESIGN DECISION: Errors are exceptions.
# A node that cannot continue (no companies, no metric, no data) raises a
# ChatbotError. LangGraph propagates it out of ainvoke() and the API layer
# maps it to a status code and a user-facing message. No node writes an
# "error" field into state.
#
# DESIGN DECISION: Graph compiled once at module level.
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime

from langgraph.graph import END, START, StateGraph
from typing_extensions import TypedDict

from fin_chat.agents.classifier import QueryType, classify_query
from fin_chat.agents.resolver import Company, extract_companies
from fin_chat.agents.stylist import answer_generic_prompt, rewrite_in_gekko_style
from fin_chat.agents.summarizer import summarize_financial_metrics, summarize_transcript
from fin_chat.agents.time_window import (
    determine_target_endpoint,
    extract_earnings_call_time,
    extract_metric_window,
)
from fin_chat.config import settings
from fin_chat.errors import (
    EmptyQuestionError,
    FinancialDataError,
    FinancialDataNotFoundError,
    MetricNotIdentifiedError,
    NoCompaniesFoundError,
)
from fin_chat.services.fmp import FMPClient, get_fmp_client
from fin_chat.services.llm import LLMProvider, get_llm_provider

logger = logging.getLogger(__name__)

NO_EARNINGS_DATA_MESSAGE = (
    "The earnings call had no meaningful data related to your query"
)


# ---------------------------------------------------------------------------
# Agent State Schema
# ---------------------------------------------------------------------------


class ChatState(TypedDict, total=False):
    """
    State that flows through the graph.

    total=False so nodes only return the keys they update.
    """

    # --- Input (set by caller) ---
    question: str
    is_gekko: bool

    # --- Injection ---
    # When set, nodes use these instead of the process-wide singletons.
    # Not JSON-serialisable; safe because no checkpointer is configured.
    llm_override: LLMProvider | None
    fmp_override: FMPClient | None

    # --- Intermediate (set by nodes) ---
    query_type: QueryType
    companies: list[Company]

    # --- Output ---
    summary: str


# ---------------------------------------------------------------------------
# Node Functions
# ---------------------------------------------------------------------------


def _llm(state: ChatState) -> LLMProvider:
    return state.get("llm_override") or get_llm_provider()


def _fmp(state: ChatState) -> FMPClient:
    return state.get("fmp_override") or get_fmp_client()


async def classify_node(state: ChatState) -> dict:
    """Classify the question (earnings_call / financial_metric / other)."""
    query_type = await classify_query(state["question"], _llm(state))
    return {"query_type": query_type}


async def generic_node(state: ChatState) -> dict:
    """Answer an off-topic question, in persona if requested."""
    llm = _llm(state)
    if state.get("is_gekko"):
        summary = await rewrite_in_gekko_style(
            state["question"], llm, unrelated=True,
        )
    else:
        summary = await answer_generic_prompt(state["question"], llm)
    return {"summary": summary}


async def resolve_node(state: ChatState) -> dict:
    """Resolve the companies the question refers to."""
    companies = await extract_companies(state["question"], _llm(state))
    if not companies:
        logger.info("No companies extracted from question")
        raise NoCompaniesFoundError()
    return {"companies": companies}


async def earnings_node(state: ChatState) -> dict:
    """
    Fetch and summarise earnings call transcripts for each company.

    A company is skipped when its fetch fails or nothing relevant comes
    back. If every company is skipped the answer is a plain "no meaningful
    data" message, which is not an error.
    """
    llm = _llm(state)
    fmp = _fmp(state)
    question = state["question"]

    window = await extract_earnings_call_time(question, llm)
    batch_year = window.year or settings.default_earnings_year or datetime.now(UTC).year

    company_summaries: list[str] = []
    for company in state["companies"]:
        try:
            if window.multiple:
                calls = await fmp.fetch_batch_earnings_calls(
                    company.symbol, batch_year,
                )
            else:
                calls = await fmp.fetch_single_earnings_call(
                    company.symbol, window.year, window.quarter,
                )
        except FinancialDataError as e:
            logger.warning(
                "Fetching earnings calls for %s failed: %s", company.symbol, e,
            )
            continue

        if not calls:
            logger.info("No earnings calls found for %s", company.symbol)
            continue

        logger.info(
            "Processing %d earnings calls for %s", len(calls), company.name,
        )

        call_summaries: list[str] = []
        for index, call in enumerate(calls):
            if index > 0 and settings.transcript_delay_seconds > 0:
                await asyncio.sleep(settings.transcript_delay_seconds)

            summary = await summarize_transcript(
                call.get("content") or "", question, company.name, llm,
            )
            if summary:
                call_summaries.append(summary)

        if call_summaries:
            company_summaries.append(
                f"**{company.name}**: " + "\n\n".join(call_summaries)
            )

    if not company_summaries:
        return {"summary": NO_EARNINGS_DATA_MESSAGE}
    return {"summary": "\n\n".join(company_summaries)}


async def metrics_node(state: ChatState) -> dict:
    """
    Fetch statement rows for the requested metric and summarise them.

    A company whose fetch fails or returns no rows is skipped; the request
    fails only if no company produced data.
    """
    llm = _llm(state)
    fmp = _fmp(state)
    question = state["question"]

    target = await determine_target_endpoint(question, llm)
    if not target.is_resolved:
        raise MetricNotIdentifiedError()

    window = await extract_metric_window(question, llm)

    company_summaries: list[str] = []
    for company in state["companies"]:
        try:
            records = await fmp.fetch_financial_statement(
                target.endpoint, company.symbol, window.period, window.limit,
            )
        except FinancialDataError as e:
            logger.warning(
                "Fetching %s for %s failed: %s",
                target.endpoint, company.symbol, e,
            )
            continue

        if not records:
            logger.info(
                "No %s data for %s", target.endpoint, company.symbol,
            )
            continue

        summary = await summarize_financial_metrics(
            question, company.name, target.metric, records, llm,
        )
        company_summaries.append(f"**{company.name}**: {summary}")

    if not company_summaries:
        raise FinancialDataNotFoundError()
    return {"summary": "\n\n".join(company_summaries)}


async def style_node(state: ChatState) -> dict:
    """Restyle the final answer when the persona is on."""
    summary = state["summary"]
    if state.get("is_gekko"):
        summary = await rewrite_in_gekko_style(summary, _llm(state))
    return {"summary": summary}


# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------


def _route_after_classify(state: ChatState) -> str:
    return "generic" if state["query_type"] == QueryType.OTHER else "resolve"


def _route_after_resolve(state: ChatState) -> str:
    if state["query_type"] == QueryType.EARNINGS_CALL:
        return "earnings"
    return "metrics"


# ---------------------------------------------------------------------------
# Graph Assembly
# ---------------------------------------------------------------------------

_builder = StateGraph(ChatState)
_builder.add_node("classify", classify_node)
_builder.add_node("generic", generic_node)
_builder.add_node("resolve", resolve_node)
_builder.add_node("earnings", earnings_node)
_builder.add_node("metrics", metrics_node)
_builder.add_node("style", style_node)

_builder.add_edge(START, "classify")
_builder.add_conditional_edges(
    "classify", _route_after_classify,
    {"generic": "generic", "resolve": "resolve"},
)
_builder.add_conditional_edges(
    "resolve", _route_after_resolve,
    {"earnings": "earnings", "metrics": "metrics"},
)
_builder.add_edge("generic", END)
_builder.add_edge("earnings", "style")
_builder.add_edge("metrics", "style")
_builder.add_edge("style", END)

graph = _builder.compile()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def answer_question(
    question: str | None,
    is_gekko: bool = False,
    llm: LLMProvider | None = None,
    fmp: FMPClient | None = None,
) -> ChatState:
    """
    Run the pipeline for one question and return the final state.

    Args:
        question: The user's question.
        is_gekko: Restyle the answer in the Gordon Gekko persona.
        llm: Optional LLM provider override.
        fmp: Optional FMP client override.

    Returns:
        Final ChatState; "query_type" and "summary" are always set.

    Raises:
        EmptyQuestionError: If the question is None, empty or whitespace.
        ChatbotError: Any other request-ending failure from a node.
    """
    if not question or not question.strip():
        raise EmptyQuestionError()

    initial_state: ChatState = {
        "question": question.strip(),
        "is_gekko": is_gekko,
    }
    if llm is not None:
        initial_state["llm_override"] = llm
    if fmp is not None:
        initial_state["fmp_override"] = fmp

    logger.info(
        "Invoking chat graph: question='%s', gekko=%s",
        question[:80], is_gekko,
    )

    result = await graph.ainvoke(initial_state)

    logger.info(
        "Chat graph complete: query_type=%s, summary=%d chars",
        result["query_type"].value, len(result.get("summary", "")),
    )
    return result
