# =============================================================================
# Unit Tests - LangGraph Pipeline
# =============================================================================
#
# Runs the compiled graph end to end with a scripted LLM (one reply per
# complete() call, in pipeline order) and an AsyncMock FMP client.
# =============================================================================

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from fin_chat.agents import orchestrator
from fin_chat.agents.classifier import QueryType
from fin_chat.agents.orchestrator import NO_EARNINGS_DATA_MESSAGE, answer_question
from fin_chat.errors import (
    ClassificationError,
    EmptyQuestionError,
    FinancialDataError,
    FinancialDataNotFoundError,
    MetricNotIdentifiedError,
    NoCompaniesFoundError,
)
from fin_chat.services.llm import LLMResponse


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


def _mock_llm(*replies: str) -> AsyncMock:
    mock_llm = AsyncMock()
    mock_llm.complete.side_effect = [
        LLMResponse(content=r, model="test-model", input_tokens=50, output_tokens=10)
        for r in replies
    ]
    return mock_llm


def _ask(question, llm, fmp=None, is_gekko=False):
    with patch.object(orchestrator.settings, "transcript_delay_seconds", 0), \
            patch.object(orchestrator.settings, "chunk_delay_seconds", 0):
        return _run(answer_question(question, is_gekko=is_gekko, llm=llm, fmp=fmp))


APPLE = '[{"name": "Apple", "symbol": "AAPL"}]'
APPLE_AND_MSFT = (
    '[{"name": "Apple", "symbol": "AAPL"}, {"name": "Microsoft", "symbol": "MSFT"}]'
)


# ---------------------------------------------------------------------------
# Test: Input Validation & Routing
# ---------------------------------------------------------------------------


class TestRouting:
    """Tests for question validation and the classify branch."""

    def test_empty_question_raises_before_graph(self):
        llm = _mock_llm()
        with pytest.raises(EmptyQuestionError):
            _ask("   ", llm)
        llm.complete.assert_not_called()

    def test_other_question_answered_generically(self):
        llm = _mock_llm("other", "It's sunny in California.")
        result = _ask("What's the weather?", llm)
        assert result["query_type"] == QueryType.OTHER
        assert result["summary"] == "It's sunny in California."
        assert llm.complete.call_count == 2

    def test_other_question_in_persona(self):
        llm = _mock_llm("other", "Weather? Lunch is for wimps.")
        result = _ask("What's the weather?", llm, is_gekko=True)
        assert result["summary"] == "Weather? Lunch is for wimps."
        last_message = llm.complete.call_args.kwargs["messages"][0]["content"]
        assert last_message.startswith("User question:")

    def test_unexpected_classification_propagates(self):
        llm = _mock_llm("stocks")
        with pytest.raises(ClassificationError):
            _ask("Tell me about Apple", llm)

    def test_no_companies_raises(self):
        llm = _mock_llm("earnings_call", "[]")
        fmp = AsyncMock()
        with pytest.raises(NoCompaniesFoundError):
            _ask("What did Acme say?", llm, fmp)
        fmp.fetch_single_earnings_call.assert_not_called()


# ---------------------------------------------------------------------------
# Test: Earnings Call Path
# ---------------------------------------------------------------------------


class TestEarningsPath:
    """Tests for transcript fetching and summarisation."""

    def test_single_call(self):
        llm = _mock_llm(
            "earnings_call",
            APPLE,
            '{"year": 2024, "quarter": "Q2", "multiple": false}',
            "Apple discussed on-device AI.",
        )
        fmp = AsyncMock()
        fmp.fetch_single_earnings_call.return_value = [
            {"symbol": "AAPL", "content": "Tim Cook: We are investing in AI."},
        ]

        result = _ask("What did Apple say about AI in Q2 2024?", llm, fmp)

        assert result["query_type"] == QueryType.EARNINGS_CALL
        assert result["summary"] == "**Apple**: Apple discussed on-device AI."
        fmp.fetch_single_earnings_call.assert_awaited_once_with("AAPL", 2024, 2)

    def test_multiple_calls_use_batch_with_default_year(self):
        llm = _mock_llm(
            "earnings_call",
            APPLE,
            '{"year": null, "quarter": null, "multiple": true}',
            "Q1: margins up.",
            "Q2: services record.",
        )
        fmp = AsyncMock()
        fmp.fetch_batch_earnings_calls.return_value = [
            {"content": "Call one."},
            {"content": "Call two."},
        ]

        with patch.object(orchestrator.settings, "default_earnings_year", 2023):
            result = _ask("Apple's last earnings calls?", llm, fmp)

        fmp.fetch_batch_earnings_calls.assert_awaited_once_with("AAPL", 2023)
        assert result["summary"] == (
            "**Apple**: Q1: margins up.\n\nQ2: services record."
        )

    def test_no_relevant_data_is_not_an_error(self):
        llm = _mock_llm(
            "earnings_call",
            APPLE,
            '{"year": 2024, "quarter": "Q1", "multiple": false}',
            "No relevant information found.",
        )
        fmp = AsyncMock()
        fmp.fetch_single_earnings_call.return_value = [{"content": "Weather talk."}]

        result = _ask("What did Apple say about crypto?", llm, fmp)

        assert result["query_type"] == QueryType.EARNINGS_CALL
        assert result["summary"] == NO_EARNINGS_DATA_MESSAGE

    def test_company_without_transcripts_skipped(self):
        llm = _mock_llm(
            "earnings_call",
            APPLE_AND_MSFT,
            '{"year": 2024, "quarter": "Q1", "multiple": false}',
            "Microsoft talked about Azure.",
        )
        fmp = AsyncMock()
        fmp.fetch_single_earnings_call.side_effect = [
            [],
            [{"content": "Satya: Azure grew."}],
        ]

        result = _ask("Apple and Microsoft on cloud?", llm, fmp)

        assert result["summary"] == "**Microsoft**: Microsoft talked about Azure."

    def test_company_with_failed_fetch_skipped(self):
        llm = _mock_llm(
            "earnings_call",
            APPLE_AND_MSFT,
            '{"year": 2024, "quarter": "Q1", "multiple": false}',
            "Microsoft talked about Azure.",
        )
        fmp = AsyncMock()
        fmp.fetch_single_earnings_call.side_effect = [
            FinancialDataError("FMP returned HTTP 500"),
            [{"content": "Satya: Azure grew."}],
        ]

        result = _ask("Apple and Microsoft on cloud?", llm, fmp)

        assert result["summary"] == "**Microsoft**: Microsoft talked about Azure."
        assert fmp.fetch_single_earnings_call.await_count == 2

    def test_persona_restyles_answer(self):
        llm = _mock_llm(
            "earnings_call",
            APPLE,
            '{"year": 2024, "quarter": "Q2", "multiple": false}',
            "Apple discussed AI.",
            "Apple's betting big on AI. Greed is good.",
        )
        fmp = AsyncMock()
        fmp.fetch_single_earnings_call.return_value = [{"content": "AI talk."}]

        result = _ask("Apple on AI?", llm, fmp, is_gekko=True)

        assert result["summary"] == "Apple's betting big on AI. Greed is good."
        style_message = llm.complete.call_args.kwargs["messages"][0]["content"]
        assert style_message == 'Original text: "**Apple**: Apple discussed AI."'


# ---------------------------------------------------------------------------
# Test: Financial Metric Path
# ---------------------------------------------------------------------------


class TestMetricsPath:
    """Tests for statement fetching and per-company aggregation."""

    def test_metric_answer_skips_failed_company(self):
        llm = _mock_llm(
            "financial_metric",
            APPLE_AND_MSFT,
            '{"metric": "revenue", "endpoint": "income_statement"}',
            '{"period": "annual", "limit": 2}',
            "Apple revenue was $383.29B.",
        )
        fmp = AsyncMock()
        fmp.fetch_financial_statement.side_effect = [
            [{"revenue": 383285000000}],
            FinancialDataError("FMP returned HTTP 500"),
        ]

        result = _ask("Apple and Microsoft revenue?", llm, fmp)

        assert result["query_type"] == QueryType.FINANCIAL_METRIC
        assert result["summary"] == "**Apple**: Apple revenue was $383.29B."
        fmp.fetch_financial_statement.assert_any_await(
            "income_statement", "AAPL", "annual", 2,
        )

    def test_all_companies_aggregated(self):
        llm = _mock_llm(
            "financial_metric",
            APPLE_AND_MSFT,
            '{"metric": "net income", "endpoint": "income_statement"}',
            '{"period": "quarter", "limit": 1}',
            "Apple: $23.6B.",
            "Microsoft: $21.9B.",
        )
        fmp = AsyncMock()
        fmp.fetch_financial_statement.return_value = [{"netIncome": 1}]

        result = _ask("Net income last quarter for Apple and Microsoft?", llm, fmp)

        assert result["summary"] == (
            "**Apple**: Apple: $23.6B.\n\n**Microsoft**: Microsoft: $21.9B."
        )

    def test_metric_not_identified(self):
        llm = _mock_llm(
            "financial_metric",
            APPLE,
            '{"metric": null, "endpoint": null}',
        )
        fmp = AsyncMock()
        with pytest.raises(MetricNotIdentifiedError):
            _ask("Apple numbers?", llm, fmp)
        fmp.fetch_financial_statement.assert_not_called()

    def test_no_data_for_any_company(self):
        llm = _mock_llm(
            "financial_metric",
            APPLE,
            '{"metric": "revenue", "endpoint": "income_statement"}',
            '{"period": "annual", "limit": 1}',
        )
        fmp = AsyncMock()
        fmp.fetch_financial_statement.return_value = []
        with pytest.raises(FinancialDataNotFoundError):
            _ask("Apple revenue?", llm, fmp)
