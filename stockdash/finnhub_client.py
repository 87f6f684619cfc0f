"""
Finnhub client for quotes, symbol search, company profiles and company news.

Every call is a single GET with the API key in the `X-Finnhub-Token` header.
Raw JSON is returned as-is; narrowing to response shapes happens in the routers.

Notes / Pitfalls:
- Free tier is ~60 calls/min; the endpoint cache is what keeps us under it.
- No retries here. A failed call raises UpstreamError and the caller decides.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote, urlencode

import httpx

from stockdash.errors import UpstreamError

logger = logging.getLogger("stockdash.finnhub")

FINNHUB_BASE_URL = "https://finnhub.io/api/v1"


class FinnhubClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = FINNHUB_BASE_URL,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={"X-Finnhub-Token": api_key, "Cache-Control": "no-store"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> FinnhubClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ----------------------------------------------------------------------------------
    # Endpoints
    # ----------------------------------------------------------------------------------
    async def search_symbols(self, query: str) -> dict[str, Any]:
        """{count, result: [{description, displaySymbol, symbol, type, mic?}]}"""
        return await self._get("/search", {"q": query})

    async def get_quote(self, symbol: str) -> dict[str, Any]:
        """{c, d, dp, h, l, o, pc, t}"""
        return await self._get("/quote", {"symbol": symbol})

    async def get_company_profile(self, symbol: str) -> dict[str, Any]:
        """{name, logo, ticker, exchange, ...}; {} for unknown symbols."""
        return await self._get("/stock/profile2", {"symbol": symbol})

    async def get_company_news(self, symbol: str, date_from: str, date_to: str) -> list[Any]:
        """[{category, datetime, headline, id, image, related, source, summary, url}]"""
        return await self._get(
            "/company-news", {"symbol": symbol, "from": date_from, "to": date_to}
        )

    # ----------------------------------------------------------------------------------
    # Transport
    # ----------------------------------------------------------------------------------
    async def _get(self, path: str, params: dict[str, str]) -> Any:
        # percent-encode everything (spaces as %20, "&" as %26)
        url = f"{self._base_url}{path}?{urlencode(params, quote_via=quote)}"
        try:
            r = await self._client.get(url)
        except httpx.RequestError as e:
            raise UpstreamError(f"Finnhub request failed for {path}: {e!r}") from e

        if r.status_code < 200 or r.status_code >= 300:
            raise UpstreamError(
                f"Finnhub request failed for {path}",
                status_code=r.status_code,
                body=r.text,
            )
        try:
            return r.json()
        except ValueError as e:
            raise UpstreamError(f"Finnhub returned malformed JSON for {path}") from e
