"""Tests for FinnhubClient."""

from __future__ import annotations

import httpx
import pytest

from stockdash.errors import UpstreamError
from stockdash.finnhub_client import FinnhubClient

API_KEY = "test-key-123"


def _client(upstream) -> FinnhubClient:
    return FinnhubClient(API_KEY, transport=upstream.transport())


# ---------------------------------------------------------------------------
# Request construction
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_search_calls_search_endpoint(finnhub):
    finnhub.reply("/api/v1/search", {"count": 0, "result": []})
    async with _client(finnhub) as client:
        result = await client.search_symbols("Apple")

    assert result == {"count": 0, "result": []}
    (req,) = finnhub.calls
    assert req.url.host == "finnhub.io"
    assert req.url.path == "/api/v1/search"
    assert req.url.params["q"] == "Apple"


@pytest.mark.asyncio
async def test_attaches_token_header(finnhub):
    finnhub.reply("/api/v1/quote", {"c": 1})
    async with _client(finnhub) as client:
        await client.get_quote("AAPL")

    (req,) = finnhub.calls
    assert req.headers["X-Finnhub-Token"] == API_KEY
    assert req.headers["Cache-Control"] == "no-store"


@pytest.mark.asyncio
async def test_percent_encodes_query(finnhub):
    finnhub.reply("/api/v1/search", {"count": 0, "result": []})
    async with _client(finnhub) as client:
        await client.search_symbols("S&P 500")

    (req,) = finnhub.calls
    assert req.url.params["q"] == "S&P 500"
    assert "q=S%26P%20500" in str(req.url)


@pytest.mark.asyncio
async def test_quote_returns_payload(finnhub):
    data = {"c": 150, "d": 1.5, "dp": 1.0, "h": 152, "l": 148, "o": 149, "pc": 148.5, "t": 1}
    finnhub.reply("/api/v1/quote", data)
    async with _client(finnhub) as client:
        assert await client.get_quote("AAPL") == data
    assert finnhub.calls[0].url.params["symbol"] == "AAPL"


@pytest.mark.asyncio
async def test_profile_endpoint(finnhub):
    finnhub.reply("/api/v1/stock/profile2", {"name": "Apple Inc", "logo": ""})
    async with _client(finnhub) as client:
        assert (await client.get_company_profile("AAPL"))["name"] == "Apple Inc"
    assert finnhub.calls[0].url.params["symbol"] == "AAPL"


@pytest.mark.asyncio
async def test_news_passes_date_range(finnhub):
    finnhub.reply("/api/v1/company-news", [])
    async with _client(finnhub) as client:
        assert await client.get_company_news("AAPL", "2024-01-01", "2024-01-31") == []

    params = finnhub.calls[0].url.params
    assert params["symbol"] == "AAPL"
    assert params["from"] == "2024-01-01"
    assert params["to"] == "2024-01-31"


@pytest.mark.asyncio
async def test_custom_base_url(finnhub):
    finnhub.reply("/v2/quote", {"c": 1})
    client = FinnhubClient(API_KEY, base_url="http://stub/v2/", transport=finnhub.transport())
    try:
        await client.get_quote("AAPL")
    finally:
        await client.aclose()
    assert str(finnhub.calls[0].url).startswith("http://stub/v2/quote?")


# ---------------------------------------------------------------------------
# Error handling
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_non_2xx_raises_with_status_and_body(finnhub):
    finnhub.reply("/api/v1/quote", {"error": "Forbidden"}, status=403)
    async with _client(finnhub) as client:
        with pytest.raises(UpstreamError) as exc:
            await client.get_quote("AAPL")

    assert exc.value.status_code == 403
    assert "Forbidden" in exc.value.body
    assert "403" in str(exc.value)


@pytest.mark.asyncio
async def test_error_body_is_truncated(finnhub):
    finnhub.reply_text("/api/v1/quote", "x" * 5000, status=502)
    async with _client(finnhub) as client:
        with pytest.raises(UpstreamError) as exc:
            await client.get_quote("AAPL")

    assert len(exc.value.body) <= 203
    assert exc.value.body.endswith("...")


@pytest.mark.asyncio
async def test_transport_failure_has_no_status(finnhub):
    def boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    finnhub.reply_with("/api/v1/quote", boom)
    async with _client(finnhub) as client:
        with pytest.raises(UpstreamError) as exc:
            await client.get_quote("AAPL")

    assert exc.value.status_code is None
    assert isinstance(exc.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_malformed_json_raises_upstream_error(finnhub):
    finnhub.reply_text("/api/v1/quote", "<html>not json</html>")
    async with _client(finnhub) as client:
        with pytest.raises(UpstreamError) as exc:
            await client.get_quote("AAPL")

    assert exc.value.status_code is None


@pytest.mark.asyncio
async def test_single_attempt_no_retry(finnhub):
    finnhub.reply("/api/v1/quote", {}, status=503)
    async with _client(finnhub) as client:
        with pytest.raises(UpstreamError):
            await client.get_quote("AAPL")
    assert len(finnhub.calls) == 1
