# =============================================================================
# Summariser - Transcript Chunks and Financial Statement Rows
# =============================================================================
#
# TRANSCRIPTS (map → filter → reduce):
#   1. MAP    - each chunk is summarised against the user's question
#   2. FILTER - chunks the model marks "No relevant information found."
#               are dropped
#   3. REDUCE - (optional) one more call condenses the surviving chunk
#               summaries into a single answer
#
# DESIGN DECISION: Sequential calls with a fixed sleep between them.
# A transcript is 10-15 chunks; firing them all at once is what trips the
# provider's per-minute limits. A short fixed delay keeps one request well
# under the limit at the cost of a few seconds of latency.
#
# FINANCIAL METRICS:
#   Statement rows fetched from FMP are handed to the model as JSON with
#   the metric name, and the model answers the question from them.
# =============================================================================

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from fin_chat.config import settings
from fin_chat.services.chunker import chunk_transcript
from fin_chat.services.llm import LLMProvider, ask_llm

logger = logging.getLogger(__name__)

# Sentinel the model is instructed to reply with for irrelevant chunks
NO_RELEVANT_INFO = "No relevant information found."

_TRANSCRIPT_SYSTEM = f"""You are tasked with analyzing earnings call \
transcripts to extract information relevant to a user's query.
Focus only on the parts of the transcript that are directly relevant to \
the query and summarize the key points. Keep figures and names exact.

If no relevant information is found, respond with exactly: \
"{NO_RELEVANT_INFO}\""""

_METRICS_SYSTEM = """You are a financial analyst. Answer the user's \
question using ONLY the financial data provided (JSON rows from company \
financial statements, most recent period first).

Rules:
- Quote the exact figures for the requested metric with their period \
(date / fiscal year)
- Format large numbers readably (e.g., $383.29B)
- If several periods are provided, describe the trend briefly
- If the requested metric is not present in the data, say so plainly
- Keep the answer concise"""


# ---------------------------------------------------------------------------
# Transcripts
# ---------------------------------------------------------------------------


async def summarize_transcript(
    transcript: str,
    question: str,
    company_name: str,
    llm: LLMProvider,
    chunk_size: int | None = None,
    delay: float | None = None,
    consolidate: bool | None = None,
) -> str | None:
    """
    Summarise a transcript in the context of the user's question.

    Args:
        transcript: Full transcript text.
        question: The user's question.
        company_name: Company the transcript belongs to (for the prompt).
        llm: LLM provider.
        chunk_size: Max characters per chunk (default from config).
        delay: Seconds to sleep between chunk calls (default from config).
        consolidate: Run the second summarisation pass (default from config).

    Returns:
        The summary, or None if no chunk contained relevant information.
    """
    chunk_size = chunk_size or settings.transcript_chunk_size
    delay = settings.chunk_delay_seconds if delay is None else delay
    consolidate = (
        settings.transcript_consolidate if consolidate is None else consolidate
    )

    chunks = chunk_transcript(
        transcript, chunk_size, settings.transcript_chunk_strategy,
    )
    if not chunks:
        return None

    relevant: list[str] = []
    for index, chunk in enumerate(chunks):
        if index > 0 and delay > 0:
            await asyncio.sleep(delay)

        summary = await ask_llm(
            llm,
            system=_TRANSCRIPT_SYSTEM,
            user_message=(
                f'User query: "{question}"\n'
                f"Company: {company_name}\n"
                f"Transcript chunk ({index + 1} of {len(chunks)}):\n"
                f'"{chunk}"'
            ),
            temperature=settings.summary_temperature,
        )

        if not summary or _is_irrelevant(summary):
            logger.debug("Chunk %d/%d: no relevant information", index + 1, len(chunks))
            continue
        relevant.append(summary)

    logger.info(
        "Transcript for %s: %d/%d chunks relevant",
        company_name, len(relevant), len(chunks),
    )

    if not relevant:
        return None

    if not consolidate or len(relevant) == 1:
        return "\n\n".join(relevant)

    if delay > 0:
        await asyncio.sleep(delay)

    combined = "\n".join(relevant)
    final = await ask_llm(
        llm,
        system=_TRANSCRIPT_SYSTEM,
        user_message=(
            f'User query: "{question}"\n'
            f"Company: {company_name}\n"
            f"Combined summaries:\n{combined}"
        ),
        temperature=settings.summary_temperature,
    )

    # The reduce pass can still decide nothing is relevant; fall back to
    # the chunk summaries rather than discarding them.
    if not final or _is_irrelevant(final):
        return "\n\n".join(relevant)
    return final


def _is_irrelevant(summary: str) -> bool:
    return NO_RELEVANT_INFO.rstrip(".").lower() in summary.lower()


# ---------------------------------------------------------------------------
# Financial Metrics
# ---------------------------------------------------------------------------


async def summarize_financial_metrics(
    question: str,
    company_name: str,
    metric: str,
    records: list[dict[str, Any]],
    llm: LLMProvider,
) -> str:
    """Answer a metric question from FMP statement rows."""
    payload = json.dumps(records, indent=2, default=str)
    if len(payload) > settings.metric_payload_max_chars:
        logger.info(
            "Truncating %s payload for %s from %d to %d chars",
            metric, company_name, len(payload), settings.metric_payload_max_chars,
        )
        payload = payload[:settings.metric_payload_max_chars]

    return await ask_llm(
        llm,
        system=_METRICS_SYSTEM,
        user_message=(
            f"Question: {question}\n"
            f"Company: {company_name}\n"
            f"Requested metric: {metric}\n\n"
            f"Financial data ({len(records)} periods):\n{payload}"
        ),
        temperature=settings.summary_temperature,
    )
