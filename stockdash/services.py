# stockdash/services.py
# Purpose: Composition root objects shared by every request.
# Why: Stores are owned by the app instance, so tests can build isolated ones.

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

import httpx
from fastapi import Request

from stockdash.cache import TTLCache
from stockdash.config import Settings
from stockdash.data_client import YahooChartClient
from stockdash.finnhub_client import FinnhubClient
from stockdash.ratelimit import FixedWindowRateLimiter
from stockdash.utils import utc_now


@dataclass
class Services:
    settings: Settings
    cache: TTLCache
    limiter: FixedWindowRateLimiter
    finnhub: FinnhubClient
    candles: YahooChartClient
    # wall clock for market hours / news windows
    now: Callable[[], datetime] = field(default=utc_now)

    @classmethod
    def build(
        cls,
        settings: Settings,
        *,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = utc_now,
        finnhub_transport: httpx.AsyncBaseTransport | None = None,
        yahoo_transport: httpx.AsyncBaseTransport | None = None,
    ) -> Services:
        return cls(
            settings=settings,
            cache=TTLCache(max_entries=settings.cache_max_entries, clock=clock),
            limiter=FixedWindowRateLimiter(
                max_requests=settings.rate_limit_max,
                window_s=settings.rate_limit_window_s,
                max_keys=settings.rate_limit_max_keys,
                clock=clock,
            ),
            finnhub=FinnhubClient(
                settings.finnhub_api_key,
                base_url=settings.finnhub_base_url,
                timeout=settings.upstream_timeout_s,
                transport=finnhub_transport,
            ),
            candles=YahooChartClient(
                base_url=settings.yahoo_base_url,
                timeout=settings.upstream_timeout_s,
                transport=yahoo_transport,
            ),
            now=now,
        )

    async def aclose(self) -> None:
        await self.finnhub.aclose()
        await self.candles.aclose()


def get_services(request: Request) -> Services:
    """FastAPI dependency: the Services instance attached by create_app()."""
    return request.app.state.services
