# stockdash/observability.py
from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable

from fastapi import Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

from stockdash.ratelimit import client_id_from_headers

# ---- Prometheus metrics (low-cardinality labels) ----
REQUEST_COUNT = Counter(
    "stockdash_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

REQUEST_LATENCY = Histogram(
    "stockdash_http_request_duration_seconds",
    "HTTP request latency (seconds)",
    buckets=(0.005, 0.01, 0.02, 0.05, 0.1, 0.2, 0.5, 1.0, 2.5, 5.0),
)

CACHE_LOOKUPS = Counter(
    "stockdash_cache_lookups_total",
    "Endpoint cache lookups",
    ["endpoint", "result"],
)

RATE_LIMITED = Counter(
    "stockdash_rate_limited_total",
    "Requests rejected by the rate limiter",
    ["endpoint"],
)

UPSTREAM_ERRORS = Counter(
    "stockdash_upstream_errors_total",
    "Upstream provider failures",
    ["endpoint"],
)


def metrics_endpoint():
    """Return Prometheus exposition format."""
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)


# ---- Per-request timing + JSON request log ----
async def timing_middleware(request: Request, call_next: Callable):
    start = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - start

    path = request.url.path
    status = str(response.status_code)

    REQUEST_COUNT.labels(method=request.method, path=path, status=status).inc()
    REQUEST_LATENCY.observe(elapsed)

    logging.getLogger("request").info(
        json.dumps(
            {
                "method": request.method,
                "path": path,
                "status": status,
                "duration_s": round(elapsed, 6),
                "client": client_id_from_headers(request.headers),
            }
        )
    )
    return response
