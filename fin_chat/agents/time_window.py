# =============================================================================
# Time-Window & Target Extraction - What Period, Which Statement
# =============================================================================
#
# Three independent LLM calls, each returning a small JSON object:
#
#   extract_earnings_call_time() → EarningsCallWindow(year, quarter, multiple)
#   extract_metric_window()      → MetricWindow(period, limit)
#   determine_target_endpoint()  → MetricTarget(metric, endpoint)
#
# DESIGN DECISION: Each extractor owns its fallback.
# A parse failure never aborts the request. The earnings window falls back
# to "most recent single call", the metric window to the configured
# default period and limit, and the target to empty (which the orchestrator
# reports as MetricNotIdentifiedError). Values are validated field by field
# so one bad field doesn't discard the others.
# =============================================================================

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from fin_chat.config import settings
from fin_chat.services.fmp import FMP_ENDPOINTS
from fin_chat.services.llm import LLMProvider, ask_llm, parse_json_response

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass
class EarningsCallWindow:
    """Which earnings calls the question refers to."""

    year: int | None = None
    quarter: int | None = None  # 1-4
    multiple: bool = False      # True → every call in the year (batch fetch)


@dataclass
class MetricWindow:
    """How many statement periods to fetch, and of which kind."""

    period: str = "annual"  # "annual" or "quarter"
    limit: int = 4


@dataclass
class MetricTarget:
    """The metric asked for and the catalog endpoint that holds it."""

    metric: str | None = None
    endpoint: str | None = None

    @property
    def is_resolved(self) -> bool:
        return bool(self.metric and self.endpoint)


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

_EARNINGS_TIME_SYSTEM = """Analyze the user's query and extract time-related \
information for earnings calls. Respond with ONLY a JSON object \
(no markdown, no explanation) with these keys:
- "year": the year if explicitly mentioned or clearly inferable, else null
- "quarter": "Q1", "Q2", "Q3" or "Q4" if mentioned, else null
- "multiple": true if the query refers to multiple earnings calls, false \
for a single earnings call

Example 1:
User prompt: "Summarize Apple's earnings call for Q1 2023."
Response: {"year": 2023, "quarter": "Q1", "multiple": false}

Example 2:
User prompt: "What did Microsoft discuss in the last two earnings calls?"
Response: {"year": null, "quarter": null, "multiple": true}

Example 3:
User prompt: "What did Amazon say in its last earnings calls?"
Response: {"year": null, "quarter": null, "multiple": true}"""


_METRIC_WINDOW_SYSTEM = """Analyze the user's query about company financial \
data and decide which reporting periods are needed. Respond with ONLY a \
JSON object (no markdown, no explanation) with these keys:
- "period": "quarter" if the query asks about quarterly figures, otherwise \
"annual"
- "limit": how many of the most recent periods are needed (an integer, 1 \
for "latest")

Example 1:
User prompt: "What was Apple's revenue last year?"
Response: {"period": "annual", "limit": 1}

Example 2:
User prompt: "How has Tesla's net income changed over the last 4 quarters?"
Response: {"period": "quarter", "limit": 4}

Example 3:
User prompt: "Show Microsoft's free cash flow for the past five years."
Response: {"period": "annual", "limit": 5}"""


def _build_target_system() -> str:
    catalog = "\n".join(
        f'- "{key}": {entry["description"]}'
        for key, entry in FMP_ENDPOINTS.items()
    )
    return (
        "Your task is to identify the specific financial metric requested "
        "in the user's query and the data source that contains it.\n\n"
        f"Available data sources:\n{catalog}\n\n"
        "Respond with ONLY a JSON object (no markdown, no explanation):\n"
        '{"metric": "<metric name in lowercase>", "endpoint": "<data source key>"}\n\n'
        'If no financial metric is requested, respond with '
        '{"metric": null, "endpoint": null}.\n\n'
        "Example:\n"
        'User prompt: "What is Apple\'s PE ratio?"\n'
        'Response: {"metric": "pe ratio", "endpoint": "key_metrics"}'
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def extract_earnings_call_time(
    question: str,
    llm: LLMProvider,
) -> EarningsCallWindow:
    """Extract year, quarter and single/multiple from an earnings question."""
    data = await _ask_for_object(question, _EARNINGS_TIME_SYSTEM, llm, "earnings time")
    if data is None:
        return EarningsCallWindow()

    window = EarningsCallWindow(
        year=_coerce_year(data.get("year")),
        quarter=_coerce_quarter(data.get("quarter")),
        multiple=data.get("multiple") is True,
    )
    logger.info("Extracted earnings window: %s", window)
    return window


async def extract_metric_window(
    question: str,
    llm: LLMProvider,
) -> MetricWindow:
    """Extract statement period and row limit from a metric question."""
    default = MetricWindow(
        period=settings.metric_default_period,
        limit=settings.metric_default_limit,
    )

    data = await _ask_for_object(question, _METRIC_WINDOW_SYSTEM, llm, "metric window")
    if data is None:
        return default

    period = data.get("period")
    if period not in ("annual", "quarter"):
        period = default.period

    limit = data.get("limit")
    if isinstance(limit, bool) or not isinstance(limit, (int, float)):
        limit = default.limit
    limit = max(1, min(int(limit), settings.metric_max_limit))

    window = MetricWindow(period=period, limit=limit)
    logger.info("Extracted metric window: %s", window)
    return window


async def determine_target_endpoint(
    question: str,
    llm: LLMProvider,
) -> MetricTarget:
    """Pick the metric and catalog endpoint a question asks about."""
    data = await _ask_for_object(question, _build_target_system(), llm, "metric target")
    if data is None:
        return MetricTarget()

    metric = data.get("metric")
    endpoint = data.get("endpoint")

    if endpoint not in FMP_ENDPOINTS:
        logger.warning("Model chose unknown endpoint %r", endpoint)
        return MetricTarget()
    if not isinstance(metric, str) or not metric.strip():
        return MetricTarget()

    target = MetricTarget(metric=metric.strip().lower(), endpoint=endpoint)
    logger.info("Determined metric target: %s", target)
    return target


# ---------------------------------------------------------------------------
# Internal Helpers
# ---------------------------------------------------------------------------


async def _ask_for_object(
    question: str,
    system: str,
    llm: LLMProvider,
    label: str,
) -> dict | None:
    """Ask for a JSON object; None on any parse failure or non-object reply."""
    reply = await ask_llm(
        llm,
        system=system,
        user_message=f'User prompt: "{question}"',
        temperature=settings.llm_temperature,
        max_tokens=128,
    )
    try:
        data = parse_json_response(reply)
    except json.JSONDecodeError:
        logger.warning("Failed to parse %s reply: %r", label, reply[:200])
        return None

    if not isinstance(data, dict):
        logger.warning("Expected a JSON object for %s, got %r", label, data)
        return None
    return data


def _coerce_year(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _coerce_quarter(value: object) -> int | None:
    """Accept "Q3", "q3", 3 or "3"; anything outside 1-4 becomes None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        quarter = value
    elif isinstance(value, str):
        text = value.strip().upper().removeprefix("Q")
        if not text.isdigit():
            return None
        quarter = int(text)
    else:
        return None
    return quarter if 1 <= quarter <= 4 else None
