from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field


# --- Error taxonomy ---
class ErrorCode(str, Enum):
    INVALID_SYMBOL = "INVALID_SYMBOL"
    INVALID_RANGE = "INVALID_RANGE"
    RATE_LIMIT = "RATE_LIMIT"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorDetail(BaseModel):
    code: ErrorCode
    message: str
    hint: str | None = None


class ErrorResponse(BaseModel):
    error: ErrorDetail


# --- /stock/quote ---
class QuoteResponse(BaseModel):
    c: float  # current price
    d: float | None = None  # change (Finnhub sends null for unknown symbols)
    dp: float | None = None  # percent change
    h: float  # high of the day
    l: float  # noqa: E741  low of the day
    o: float  # open
    pc: float  # previous close
    t: int  # last update, unix seconds
    isMarketOpen: bool


# --- /stock/candles ---
ChartRange = Literal["1M", "3M", "1Y"]


class CandlesResponse(BaseModel):
    t: list[int] = Field(default_factory=list)  # unix seconds
    c: list[float] = Field(default_factory=list)  # closes
    s: Literal["ok", "no_data"]


# --- /stock/news ---
class NewsArticle(BaseModel):
    id: int
    datetime: int
    headline: str = ""
    source: str = ""
    summary: str = ""
    url: str
    image: str = ""


class NewsResponse(BaseModel):
    articles: list[NewsArticle]


# --- /stock/profile ---
class ProfileResponse(BaseModel):
    logo: str = ""
    name: str = ""


# --- /stock/search ---
class SearchResult(BaseModel):
    symbol: str
    displaySymbol: str
    description: str = ""


class SearchResponse(BaseModel):
    results: list[SearchResult]


# --- Utility payloads ---
class RateLimitInfo(BaseModel):
    max_requests: int
    window_seconds: float


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"
    as_of: str
    service: str = "stockdash"
    cache_entries: int
    rate_limit_keys: int
    rate_limit: RateLimitInfo


class VersionResponse(BaseModel):
    service: str  # "stockdash:0.1.0"
    service_version: str
