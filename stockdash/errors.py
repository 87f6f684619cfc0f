from __future__ import annotations

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from stockdash.schemas import ErrorCode, ErrorDetail, ErrorResponse

_MAX_BODY_CHARS = 200


class StockDashError(Exception):
    """Base class for errors raised by stockdash."""


class ConfigError(StockDashError):
    """Required configuration is missing or invalid (startup failure)."""


class InvalidRequest(StockDashError):
    """User-correctable input problem, surfaced as a 400."""

    def __init__(self, code: ErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class UpstreamError(StockDashError):
    """A provider call failed: non-2xx status, transport error or unreadable body.

    `status_code` is None for transport/decoding failures. `body` is truncated and
    meant for server-side logs only.
    """

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.body = truncate_body(body) if body is not None else None

    def __str__(self) -> str:
        parts = [self.message]
        if self.status_code is not None:
            parts.append(f"status={self.status_code}")
        if self.body:
            parts.append(f"body={self.body!r}")
        return " ".join(parts)


def truncate_body(body: str, limit: int = _MAX_BODY_CHARS) -> str:
    return body if len(body) <= limit else body[:limit] + "..."


def http_error(
    code: ErrorCode,
    message: str,
    http_status=status.HTTP_400_BAD_REQUEST,
    hint: str | None = None,
    headers: dict[str, str] | None = None,
):
    detail = ErrorDetail(code=code, message=message, hint=hint)
    return HTTPException(status_code=http_status, detail=detail.model_dump(), headers=headers)


def envelope_from_http_exception(exc: StarletteHTTPException) -> ErrorResponse:
    d = exc.detail
    if isinstance(d, dict) and "code" in d and "message" in d:
        return ErrorResponse(error=d)  # already our shape
    code = ErrorCode.NOT_FOUND if exc.status_code == 404 else ErrorCode.INTERNAL_ERROR
    return ErrorResponse(error=ErrorDetail(code=code, message=str(d), hint=None))


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Render every HTTPException as the {"error": {...}} envelope."""
    envelope = envelope_from_http_exception(exc)
    return JSONResponse(
        status_code=exc.status_code,
        content=envelope.model_dump(mode="json"),
        headers=getattr(exc, "headers", None),
    )
