# =============================================================================
# Company Resolver - Question → [{name, symbol}]
# =============================================================================
#
# Asks the LLM which companies a question refers to, directly or through
# an executive ("Sundar Pichai" → Alphabet / GOOGL), and returns their
# ticker symbols.
#
# DESIGN DECISION: Degrade to an empty list, never raise.
# A malformed reply is indistinguishable from "no company mentioned" as far
# as the user is concerned, and the orchestrator already turns an empty
# list into the NoCompaniesFoundError response. Symbols are not checked
# against a canonical list; an invented ticker simply returns no data from
# FMP downstream.
# =============================================================================

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from fin_chat.config import settings
from fin_chat.services.llm import LLMProvider, ask_llm, parse_json_response

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Company:
    """A company referenced by the question."""

    name: str
    symbol: str  # Uppercase ticker, e.g. "AAPL"


_RESOLVE_SYSTEM = """Your task is to extract company names and their \
corresponding stock symbols from the user's query.
- If the query mentions a company or its CEO, provide both the company name \
and its stock ticker symbol.
- Return ONLY a JSON array of objects with "name" and "symbol" fields \
(no markdown, no explanation).
- If no companies or CEOs are mentioned, return an empty array: []

Examples:

1. User prompt: "What are Mark Zuckerberg's comments about AI?"
   [{"name": "Meta", "symbol": "META"}]

2. User prompt: "What are Sundar Pichai's comments on profits?"
   [{"name": "Google", "symbol": "GOOGL"}]

3. User prompt: "What are Apple and Microsoft's latest developments?"
   [{"name": "Apple", "symbol": "AAPL"}, {"name": "Microsoft", "symbol": "MSFT"}]

4. User prompt: "Tell me about Tesla's financial performance."
   [{"name": "Tesla", "symbol": "TSLA"}]"""


async def extract_companies(question: str, llm: LLMProvider) -> list[Company]:
    """
    Extract the companies a question refers to.

    Returns an empty list when the model names none, replies with
    something other than a JSON array, or the call itself fails.
    """
    try:
        reply = await ask_llm(
            llm,
            system=_RESOLVE_SYSTEM,
            user_message=f'User prompt: "{question}"',
            temperature=settings.llm_temperature,
            max_tokens=256,
        )
        parsed = parse_json_response(reply)
    except json.JSONDecodeError as e:
        logger.warning("Failed to parse company extraction reply: %s", e)
        return []
    except Exception as e:
        logger.warning("Company extraction LLM call failed: %s", e)
        return []

    if not isinstance(parsed, list):
        logger.warning("Company extraction returned a non-array: %r", parsed)
        return []

    companies = _normalise_companies(parsed)
    logger.info(
        "Extracted companies: %s",
        [c.symbol for c in companies],
    )
    return companies


def _normalise_companies(items: list) -> list[Company]:
    """
    Turn raw JSON items into Company objects.

    Items without a usable symbol are dropped; duplicate symbols keep the
    first occurrence; a missing name falls back to the symbol.
    """
    companies: list[Company] = []
    seen: set[str] = set()

    for item in items:
        if not isinstance(item, dict):
            continue
        symbol = str(item.get("symbol") or "").strip().upper()
        if not symbol or symbol in seen:
            continue
        name = str(item.get("name") or "").strip() or symbol
        seen.add(symbol)
        companies.append(Company(name=name, symbol=symbol))

    return companies
