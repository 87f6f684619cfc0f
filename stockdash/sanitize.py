# stockdash/sanitize.py
# Purpose: Keep third-party links renderable only when they are plain web URLs.
# Pitfalls: Never rewrite the input; callers get back exactly what they passed in.

from __future__ import annotations

import re
from typing import Any
from urllib.parse import urlsplit

_ALLOWED_SCHEMES = {"http", "https"}
# characters a browser refuses in a host
_FORBIDDEN_NETLOC = re.compile(r'[\s<>"{}|\\^]')


def sanitize_url(raw: Any) -> str | None:
    """Return `raw` if it is an absolute http(s) URL, else None."""
    if not isinstance(raw, str) or not raw:
        return None
    try:
        parts = urlsplit(raw)
        parts.port  # raises on a non-numeric or out-of-range port
    except ValueError:
        # e.g. "http://[::1" (unbalanced IPv6 bracket)
        return None
    if parts.scheme not in _ALLOWED_SCHEMES or not parts.netloc:
        return None
    if not parts.hostname or _FORBIDDEN_NETLOC.search(parts.netloc):
        return None
    return raw
