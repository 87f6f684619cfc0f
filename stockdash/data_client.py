"""
Historical daily candles from the Yahoo Finance chart endpoint.

Returns:
  {
    "t": [1717420200, ...],   # unix seconds, one per trading day
    "c": [194.03, ...],       # closes, same length as "t"
    "s": "ok" | "no_data"
  }

Notes / Pitfalls:
- Yahoo endpoints are unofficial -> can rate-limit (429) or change.
- Yahoo inserts null closes for non-trading days; those rows are dropped.
- An unknown symbol comes back without a result container -> "no_data".
"""

from __future__ import annotations

import math
from typing import Any
from urllib.parse import quote, urlencode

import httpx

from stockdash.errors import UpstreamError
from stockdash.schemas import ChartRange

YAHOO_BASE_URL = "https://query1.finance.yahoo.com"

# Chart range -> Yahoo `range` token
RANGE_MAP: dict[ChartRange, str] = {"1M": "1mo", "3M": "3mo", "1Y": "1y"}

_USER_AGENT = "Mozilla/5.0 (compatible; stockdash/0.1)"


def _is_missing(val: Any) -> bool:
    return val is None or (isinstance(val, float) and math.isnan(val))


def normalize_yahoo_chart(resp: Any) -> dict[str, Any]:
    """
    Convert Yahoo Chart API response into parallel timestamp/close arrays.
    We expect:
      resp["chart"]["result"][0]["timestamp"] -> list of epoch seconds
      resp["chart"]["result"][0]["indicators"]["quote"][0]["close"] -> list of closes
    """
    try:
        result = resp["chart"]["result"][0]
    except (KeyError, IndexError, TypeError):
        return {"t": [], "c": [], "s": "no_data"}
    if not isinstance(result, dict):
        return {"t": [], "c": [], "s": "no_data"}

    timestamps = result.get("timestamp") or []
    quotes_list = (result.get("indicators") or {}).get("quote") or []
    quotes = (quotes_list[0] or {}) if quotes_list else {}
    closes = quotes.get("close") or []

    t: list[int] = []
    c: list[float] = []
    for i, ts in enumerate(timestamps):
        close = closes[i] if i < len(closes) else None
        # drop non-trading-day rows together with their timestamp
        if _is_missing(close) or ts is None:
            continue
        t.append(int(ts))
        c.append(float(close))

    return {"t": t, "c": c, "s": "ok"}


class YahooChartClient:
    def __init__(
        self,
        base_url: str = YAHOO_BASE_URL,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={"User-Agent": _USER_AGENT, "Cache-Control": "no-store"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_daily_closes(self, symbol: str, range_: ChartRange) -> dict[str, Any]:
        """Fetch daily closes for `range_` (one of RANGE_MAP's keys)."""
        yahoo_range = RANGE_MAP[range_]
        url = (
            f"{self._base_url}/v8/finance/chart/{quote(symbol, safe='')}"
            f"?{urlencode({'interval': '1d', 'range': yahoo_range}, quote_via=quote)}"
        )
        try:
            r = await self._client.get(url)
        except httpx.RequestError as e:
            raise UpstreamError(f"Yahoo chart request failed: {e!r}") from e

        if r.status_code < 200 or r.status_code >= 300:
            raise UpstreamError("Yahoo chart request failed", status_code=r.status_code, body=r.text)
        try:
            payload = r.json()
        except ValueError as e:
            raise UpstreamError("Yahoo chart returned malformed JSON") from e
        return normalize_yahoo_chart(payload)
