from __future__ import annotations

import re
from typing import Any, get_args

from stockdash.errors import InvalidRequest
from stockdash.schemas import ChartRange, ErrorCode

SYMBOL_RE = re.compile(r"^[A-Z]{1,10}$")
VALID_RANGES: tuple[ChartRange, ...] = get_args(ChartRange)

# Anything outside letters, digits, space, dot, dash and ampersand is dropped.
_QUERY_STRIP_RE = re.compile(r"[^A-Za-z0-9 .\-&]")


def validate_symbol(raw: Any) -> str:
    """Return the symbol unchanged if it is 1-10 upper-case letters."""
    if not isinstance(raw, str) or not SYMBOL_RE.fullmatch(raw):
        raise InvalidRequest(ErrorCode.INVALID_SYMBOL, "Invalid symbol")
    return raw


def validate_range(raw: Any) -> ChartRange:
    if raw not in VALID_RANGES:
        raise InvalidRequest(ErrorCode.INVALID_RANGE, "Invalid range")
    return raw


def sanitize_query(raw: Any) -> str:
    """Strip disallowed characters from a free-text search. May return ""."""
    if not isinstance(raw, str):
        return ""
    return _QUERY_STRIP_RE.sub("", raw).strip()
