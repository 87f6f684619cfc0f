"""
One request pipeline shared by every /stock endpoint.

Order per request (each step may end it):
  1. rate limit       -> 429
  2. validation       -> 400 (or an empty short-circuit payload)
  3. cache lookup     -> cached payload, verbatim
  4. upstream call    -> 500 with a generic message on failure
  5. response shaping
  6. cache store with the endpoint TTL

There is no await between a check and its write in steps 1, 3 and 6, so the
stores stay consistent under cooperative scheduling; both also lock internally.
Concurrent misses on the same key may both reach upstream (no single-flight).
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from fastapi import Request, status

from stockdash.errors import InvalidRequest, UpstreamError, http_error
from stockdash.observability import CACHE_LOOKUPS, RATE_LIMITED, UPSTREAM_ERRORS
from stockdash.ratelimit import client_id_from_headers
from stockdash.schemas import ErrorCode
from stockdash.services import Services
from stockdash.utils import timer_ms

logger = logging.getLogger("stockdash.pipeline")

P = TypeVar("P")


@dataclass(frozen=True)
class Endpoint(Generic[P]):
    name: str
    cache_prefix: str
    ttl_s: float
    # query params -> validated params; raises InvalidRequest
    validate: Callable[[Mapping[str, str]], P]
    cache_key: Callable[[P], str]
    fetch: Callable[[Services, P], Awaitable[Any]]
    # (services, params, raw upstream payload) -> JSON-ready dict
    shape: Callable[[Services, P, Any], dict[str, Any]]
    failure_message: str
    # returns a payload to answer with immediately (no cache, no upstream)
    short_circuit: Callable[[P], dict[str, Any] | None] | None = None


async def run_endpoint(
    endpoint: Endpoint[P], request: Request, services: Services
) -> dict[str, Any]:
    # 1) rate limit, before anything else
    client_id = client_id_from_headers(request.headers)
    route = request.url.path
    if not services.limiter.check_and_consume(client_id, route):
        RATE_LIMITED.labels(endpoint=endpoint.name).inc()
        retry_after = services.limiter.retry_after(client_id, route)
        raise http_error(
            ErrorCode.RATE_LIMIT,
            "Too many requests",
            status.HTTP_429_TOO_MANY_REQUESTS,
            hint="Slow down and retry later",
            headers={"Retry-After": str(retry_after)},
        )

    # 2) validation
    try:
        params = endpoint.validate(request.query_params)
    except InvalidRequest as e:
        raise http_error(e.code, e.message, status.HTTP_400_BAD_REQUEST)

    if endpoint.short_circuit is not None:
        early = endpoint.short_circuit(params)
        if early is not None:
            return early

    # 3) cache
    cache_key = f"{endpoint.cache_prefix}:{endpoint.cache_key(params)}"
    cached = services.cache.get(cache_key)
    if cached is not None:
        CACHE_LOOKUPS.labels(endpoint=endpoint.name, result="hit").inc()
        return cached
    CACHE_LOOKUPS.labels(endpoint=endpoint.name, result="miss").inc()

    # 4) upstream
    try:
        with timer_ms() as elapsed:
            raw = await endpoint.fetch(services, params)
    except UpstreamError as e:
        UPSTREAM_ERRORS.labels(endpoint=endpoint.name).inc()
        logger.error(
            "[%s] upstream failure: %s",
            endpoint.name,
            e,
            extra={"endpoint": endpoint.name, "upstream_status": e.status_code},
        )
        raise http_error(
            ErrorCode.UPSTREAM_ERROR, endpoint.failure_message, status.HTTP_500_INTERNAL_SERVER_ERROR
        )
    logger.debug(
        "%s upstream call took %sms", endpoint.name, elapsed(), extra={"cache_key": cache_key}
    )

    # 5) shaping
    try:
        payload = endpoint.shape(services, params, raw)
    except (AttributeError, KeyError, TypeError, ValueError):
        # payload did not have the shape we expect
        UPSTREAM_ERRORS.labels(endpoint=endpoint.name).inc()
        logger.exception(
            "[%s] malformed upstream payload", endpoint.name, extra={"endpoint": endpoint.name}
        )
        raise http_error(
            ErrorCode.UPSTREAM_ERROR, endpoint.failure_message, status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    # 6) store
    services.cache.set(cache_key, payload, endpoint.ttl_s)
    return payload
