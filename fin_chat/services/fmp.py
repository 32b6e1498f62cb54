# =============================================================================
# Financial Modeling Prep (FMP) Client - Thin Async REST Wrapper
# =============================================================================
#
# Fetches earnings call transcripts and financial statements for ticker
# symbols. One httpx.AsyncClient is shared for the life of the process with
# the API key attached as a default query parameter.
#
# ERROR POLICY (applies to every call):
#   - HTTP 404 or an empty body      → []  (no data is a normal outcome)
#   - HTTP 429                       → sleep, retry ONCE, then fail
#   - other HTTP errors / transport  → FinancialDataError
#   - FMP error payload              → FinancialDataError
#     (FMP answers 200 {"Error Message": "..."} for bad keys and limits)
#
# Callers therefore only ever see a list or a FinancialDataError.
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from fin_chat.config import settings
from fin_chat.errors import FinancialDataError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Endpoint Catalog
# ---------------------------------------------------------------------------
# Statement-style endpoints the metrics path can target. Keys are the
# names the LLM is asked to choose from; values are the URL path prefix
# (the symbol is appended) and a description shown in the prompt.
# ---------------------------------------------------------------------------

FMP_ENDPOINTS: dict[str, dict[str, str]] = {
    "income_statement": {
        "path": "/income-statement",
        "description": (
            "Revenue, cost of revenue, gross profit, operating income, "
            "net income, EPS, EBITDA."
        ),
    },
    "balance_sheet": {
        "path": "/balance-sheet-statement",
        "description": (
            "Assets, liabilities, shareholder equity, cash, debt, "
            "inventory, receivables."
        ),
    },
    "cashflow_statement": {
        "path": "/cash-flow-statement",
        "description": (
            "Operating cash flow, capital expenditure, free cash flow, "
            "dividends paid, share buybacks."
        ),
    },
    "key_metrics": {
        "path": "/key-metrics",
        "description": (
            "Per-share and valuation metrics: P/E ratio, market cap, "
            "enterprise value, book value per share, dividend yield."
        ),
    },
    "ratios": {
        "path": "/ratios",
        "description": (
            "Financial ratios: margins, return on equity, current ratio, "
            "debt to equity, asset turnover."
        ),
    },
    "financial_growth": {
        "path": "/financial-growth",
        "description": (
            "Growth rates: revenue growth, net income growth, EPS growth."
        ),
    },
}

_VALID_PERIODS = {"annual", "quarter"}


class FMPClient:
    """
    Async client for the FMP v3 REST API.

    Instances are cheap to hold and expensive to create (connection pool),
    so the app uses the get_fmp_client() singleton. Tests construct their
    own with an httpx.MockTransport.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        retry_delay: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        resolved_key = api_key if api_key is not None else settings.fmp_api_key
        if not resolved_key:
            logger.warning("FMP_API_KEY is not set; FMP requests will be rejected")

        self._retry_delay = (
            retry_delay if retry_delay is not None
            else settings.fmp_retry_delay_seconds
        )
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.fmp_base_url,
            params={"apikey": resolved_key},
            timeout=timeout or settings.fmp_timeout_seconds,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    # -----------------------------------------------------------------------
    # Transcripts
    # -----------------------------------------------------------------------

    async def fetch_single_earnings_call(
        self,
        symbol: str,
        year: int | None = None,
        quarter: int | None = None,
    ) -> list[dict[str, Any]]:
        """
        Fetch one earnings call transcript.

        With no year/quarter FMP returns the most recent transcript.
        """
        return await self._get(
            f"/earning_call_transcript/{symbol}",
            {"year": year, "quarter": quarter},
        )

    async def fetch_batch_earnings_calls(
        self,
        symbol: str,
        year: int | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch every earnings call transcript for a symbol in a year."""
        return await self._get(
            f"/batch_earning_call_transcript/{symbol}",
            {"year": year},
        )

    # -----------------------------------------------------------------------
    # Financial statements
    # -----------------------------------------------------------------------

    async def fetch_financial_statement(
        self,
        endpoint: str,
        symbol: str,
        period: str = "annual",
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """
        Fetch rows from a catalog endpoint, most recent period first.

        Raises:
            ValueError: If endpoint is not in FMP_ENDPOINTS or period is
                not "annual"/"quarter".
        """
        if endpoint not in FMP_ENDPOINTS:
            raise ValueError(
                f"Unknown FMP endpoint '{endpoint}'. "
                f"Supported: {sorted(FMP_ENDPOINTS)}"
            )
        if period not in _VALID_PERIODS:
            raise ValueError(f"Invalid period '{period}'")

        path = f"{FMP_ENDPOINTS[endpoint]['path']}/{symbol}"
        return await self._get(path, {"period": period, "limit": limit})

    async def fetch_income_statement(
        self, symbol: str, period: str = "annual", limit: int | None = None,
    ) -> list[dict[str, Any]]:
        return await self.fetch_financial_statement(
            "income_statement", symbol, period, limit,
        )

    async def fetch_balance_sheet(
        self, symbol: str, period: str = "annual", limit: int | None = None,
    ) -> list[dict[str, Any]]:
        return await self.fetch_financial_statement(
            "balance_sheet", symbol, period, limit,
        )

    async def fetch_cash_flow_statement(
        self, symbol: str, period: str = "annual", limit: int | None = None,
    ) -> list[dict[str, Any]]:
        return await self.fetch_financial_statement(
            "cashflow_statement", symbol, period, limit,
        )

    async def fetch_key_metrics(
        self, symbol: str, period: str = "annual", limit: int | None = None,
    ) -> list[dict[str, Any]]:
        return await self.fetch_financial_statement(
            "key_metrics", symbol, period, limit,
        )

    async def fetch_company_list(self) -> list[dict[str, Any]]:
        """Fetch every listed symbol with name, exchange and price."""
        return await self._get("/stock/list", {})

    # -----------------------------------------------------------------------
    # Transport
    # -----------------------------------------------------------------------

    async def _get(
        self,
        path: str,
        params: dict[str, Any],
    ) -> list[dict[str, Any]]:
        """GET a path and normalise the result per the module's error policy."""
        query = {k: v for k, v in params.items() if v is not None}

        for attempt in (1, 2):
            try:
                response = await self._client.get(path, params=query)
            except httpx.HTTPError as e:
                logger.error("FMP request failed: path=%s error=%s", path, e)
                raise FinancialDataError(f"FMP request to {path} failed: {e}") from e

            if response.status_code == 429 and attempt == 1:
                logger.warning(
                    "FMP rate limited on %s, retrying in %.2fs",
                    path, self._retry_delay,
                )
                await asyncio.sleep(self._retry_delay)
                continue
            break

        if response.status_code == 404:
            logger.info("FMP returned 404 for %s", path)
            return []

        if response.status_code >= 400:
            logger.error(
                "FMP error: path=%s status=%d", path, response.status_code,
            )
            raise FinancialDataError(
                f"FMP returned HTTP {response.status_code} for {path}"
            )

        if not response.content:
            return []

        try:
            data = response.json()
        except ValueError as e:
            raise FinancialDataError(f"FMP returned invalid JSON for {path}") from e

        if isinstance(data, dict):
            if "Error Message" in data:
                raise FinancialDataError(f"FMP error: {data['Error Message']}")
            # Some endpoints wrap a single object; normalise to a list
            return [data] if data else []

        if not isinstance(data, list):
            raise FinancialDataError(
                f"Unexpected FMP payload type for {path}: {type(data).__name__}"
            )

        logger.info("FMP %s returned %d records", path, len(data))
        return data


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

_client: FMPClient | None = None


def get_fmp_client() -> FMPClient:
    """Lazily create and cache the shared FMP client."""
    global _client
    if _client is None:
        _client = FMPClient()
    return _client


async def close_fmp_client() -> None:
    """Close the shared client (called on application shutdown)."""
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
