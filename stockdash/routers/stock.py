# stockdash/routers/stock.py
# Purpose: The five /stock endpoints, each a declarative Endpoint for run_endpoint().
# Pitfalls: Shapers must only emit the documented fields; never pass upstream dicts through.

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any, NamedTuple

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from stockdash.pipeline import Endpoint, run_endpoint
from stockdash.sanitize import sanitize_url
from stockdash.schemas import (
    CandlesResponse,
    ChartRange,
    ErrorResponse,
    NewsArticle,
    NewsResponse,
    ProfileResponse,
    QuoteResponse,
    SearchResponse,
    SearchResult,
)
from stockdash.services import Services, get_services
from stockdash.utils import is_market_open, news_date_window
from stockdash.validator import sanitize_query, validate_range, validate_symbol

logger = logging.getLogger("stockdash.routers.stock")

router = APIRouter(prefix="/stock", tags=["stock"])

QUOTE_TTL_S = 60
CANDLES_TTL_S = 60
NEWS_TTL_S = 5 * 60
PROFILE_TTL_S = 60 * 60  # logos rarely change
SEARCH_TTL_S = 60

MAX_ARTICLES = 10
MAX_SEARCH_RESULTS = 10
NEWS_LOOKBACK_DAYS = 30

# MIC codes for US-listed exchanges
US_MIC_CODES = frozenset(
    {
        "XNAS",  # NASDAQ
        "XNYS",  # NYSE
        "XASE",  # NYSE American (AMEX)
        "XARCA",  # NYSE Arca
        "BATS",  # CBOE BZX
        "EDGA",  # CBOE EDGA
        "EDGX",  # CBOE EDGX
        "IEXG",  # IEX
        "XCIS",  # National Stock Exchange
        "XBOS",  # NASDAQ BX
        "XPHL",  # NASDAQ PHLX
        "MEMX",  # Members Exchange
        "LTSE",  # Long-Term Stock Exchange
    }
)
# Fallback when Finnhub omits the MIC: plain US tickers (AAPL, BRK, TSLA)
_US_TICKER_RE = re.compile(r"^[A-Z]{1,5}$")

_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


class CandleParams(NamedTuple):
    symbol: str
    range: ChartRange


# --------------------------------------------------------------------------------------
# Validators
# --------------------------------------------------------------------------------------
def _symbol_param(query: Mapping[str, str]) -> str:
    return validate_symbol(query.get("symbol", ""))


def _candle_params(query: Mapping[str, str]) -> CandleParams:
    symbol = validate_symbol(query.get("symbol", ""))
    return CandleParams(symbol, validate_range(query.get("range", "")))


def _search_query(query: Mapping[str, str]) -> str:
    return sanitize_query(query.get("q", ""))


def _empty_search(q: str) -> dict[str, Any] | None:
    return {"results": []} if not q else None


# --------------------------------------------------------------------------------------
# Shapers
# --------------------------------------------------------------------------------------
def shape_quote(services: Services, symbol: str, raw: Any) -> dict[str, Any]:
    return QuoteResponse(
        c=raw["c"],
        d=raw.get("d"),
        dp=raw.get("dp"),
        h=raw["h"],
        l=raw["l"],
        o=raw["o"],
        pc=raw["pc"],
        t=raw["t"],
        isMarketOpen=is_market_open(services.now()),
    ).model_dump()


def shape_candles(services: Services, params: CandleParams, raw: Any) -> dict[str, Any]:
    return CandlesResponse(t=raw["t"], c=raw["c"], s=raw["s"]).model_dump()


def shape_news(services: Services, symbol: str, raw: Any) -> dict[str, Any]:
    """Keep articles with a safe http(s) URL, blank unsafe images, cap at MAX_ARTICLES."""
    if not isinstance(raw, list):
        raise TypeError(f"expected a list of articles, got {type(raw).__name__}")

    articles: list[dict[str, Any]] = []
    for item in raw:
        if len(articles) >= MAX_ARTICLES:
            break
        if not isinstance(item, dict):
            continue
        url = sanitize_url(item.get("url"))
        if url is None:
            continue
        try:
            article = NewsArticle(
                id=item.get("id"),
                datetime=item.get("datetime"),
                headline=item.get("headline") or "",
                source=item.get("source") or "",
                summary=item.get("summary") or "",
                url=url,
                image=sanitize_url(item.get("image")) or "",
            )
        except ValidationError:
            logger.debug("dropping malformed news item for %s", symbol)
            continue
        articles.append(article.model_dump())
    return {"articles": articles}


def shape_profile(services: Services, symbol: str, raw: Any) -> dict[str, Any]:
    return ProfileResponse(
        logo=sanitize_url(raw.get("logo")) or "",
        name=raw.get("name") or "",
    ).model_dump()


def _is_us_common_stock(item: dict[str, Any]) -> bool:
    if item.get("type") != "Common Stock" or not item.get("symbol"):
        return False
    mic = item.get("mic")
    if mic:
        return mic in US_MIC_CODES
    return bool(_US_TICKER_RE.fullmatch(item.get("symbol") or ""))


def shape_search(services: Services, q: str, raw: Any) -> dict[str, Any]:
    results: list[dict[str, Any]] = []
    for item in raw.get("result") or []:
        if len(results) >= MAX_SEARCH_RESULTS:
            break
        if not isinstance(item, dict) or not _is_us_common_stock(item):
            continue
        results.append(
            SearchResult(
                symbol=item["symbol"],
                displaySymbol=item.get("displaySymbol") or item["symbol"],
                description=item.get("description") or "",
            ).model_dump()
        )
    return {"results": results}


# --------------------------------------------------------------------------------------
# Upstream calls
# --------------------------------------------------------------------------------------
async def _fetch_news(services: Services, symbol: str) -> Any:
    date_from, date_to = news_date_window(services.now(), days=NEWS_LOOKBACK_DAYS)
    return await services.finnhub.get_company_news(symbol, date_from, date_to)


# --------------------------------------------------------------------------------------
# Endpoint table
# --------------------------------------------------------------------------------------
QUOTE = Endpoint(
    name="quote",
    cache_prefix="quote",
    ttl_s=QUOTE_TTL_S,
    validate=_symbol_param,
    cache_key=lambda symbol: symbol,
    fetch=lambda services, symbol: services.finnhub.get_quote(symbol),
    shape=shape_quote,
    failure_message="Failed to fetch quote",
)

CANDLES = Endpoint(
    name="candles",
    cache_prefix="candles",
    ttl_s=CANDLES_TTL_S,
    validate=_candle_params,
    cache_key=lambda p: f"{p.symbol}:{p.range}",
    fetch=lambda services, p: services.candles.get_daily_closes(p.symbol, p.range),
    shape=shape_candles,
    failure_message="Failed to fetch candles",
)

NEWS = Endpoint(
    name="news",
    cache_prefix="news",
    ttl_s=NEWS_TTL_S,
    validate=_symbol_param,
    cache_key=lambda symbol: symbol,
    fetch=_fetch_news,
    shape=shape_news,
    failure_message="Failed to fetch news",
)

PROFILE = Endpoint(
    name="profile",
    cache_prefix="profile",
    ttl_s=PROFILE_TTL_S,
    validate=_symbol_param,
    cache_key=lambda symbol: symbol,
    fetch=lambda services, symbol: services.finnhub.get_company_profile(symbol),
    shape=shape_profile,
    failure_message="Failed to fetch profile",
)

SEARCH = Endpoint(
    name="search",
    cache_prefix="search",
    ttl_s=SEARCH_TTL_S,
    validate=_search_query,
    short_circuit=_empty_search,
    cache_key=lambda q: q.lower(),
    fetch=lambda services, q: services.finnhub.search_symbols(q),
    shape=shape_search,
    failure_message="Failed to fetch search results",
)


# --------------------------------------------------------------------------------------
# Routes
# --------------------------------------------------------------------------------------
@router.get("/quote", response_model=QuoteResponse, responses=_ERROR_RESPONSES)
async def quote(request: Request, services: Services = Depends(get_services)):
    """Live quote for `symbol` plus an NYSE market-open flag."""
    return await run_endpoint(QUOTE, request, services)


@router.get("/candles", response_model=CandlesResponse, responses=_ERROR_RESPONSES)
async def candles(request: Request, services: Services = Depends(get_services)):
    """Daily closes for `symbol` over `range` (1M, 3M or 1Y)."""
    return await run_endpoint(CANDLES, request, services)


@router.get("/news", response_model=NewsResponse, responses=_ERROR_RESPONSES)
async def news(request: Request, services: Services = Depends(get_services)):
    """Up to 10 recent company news articles with safe links."""
    return await run_endpoint(NEWS, request, services)


@router.get("/profile", response_model=ProfileResponse, responses=_ERROR_RESPONSES)
async def profile(request: Request, services: Services = Depends(get_services)):
    return await run_endpoint(PROFILE, request, services)


@router.get("/search", response_model=SearchResponse, responses=_ERROR_RESPONSES)
async def search(request: Request, services: Services = Depends(get_services)):
    """U.S. common-stock matches for free-text `q` (at most 10)."""
    return await run_endpoint(SEARCH, request, services)
