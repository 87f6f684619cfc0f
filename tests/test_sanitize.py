"""Tests for sanitize_url."""

from __future__ import annotations

import pytest

from stockdash.sanitize import sanitize_url


@pytest.mark.parametrize(
    "url",
    [
        "https://www.reuters.com/markets/apple-earnings",
        "http://example.com",
        "https://static2.finnhub.io/file/publicdatany/finnhubimage/stock_logo/AAPL.png",
        "https://example.com/path?q=a%20b&x=1#frag",
        "http://localhost:8080/x",
        "https://user@example.com/",
    ],
)
def test_http_and_https_are_returned_unchanged(url):
    assert sanitize_url(url) is url


@pytest.mark.parametrize(
    "raw",
    [
        "javascript:alert(1)",
        "JavaScript:alert(document.cookie)",
        "data:text/html;base64,PHNjcmlwdD5hbGVydCgxKTwvc2NyaXB0Pg==",
        "mailto:someone@example.com",
        "ftp://files.example.com/report.pdf",
        "/news/relative/path",
        "relative/path",
        "",
        "not a url at all",
        "http://[::1",
        "https://",
        "https://exa mple.com/a",
        "http://example.com:99999/",
        "http://example.com:abc/",
        "https://<script>/",
        "http://:80/",
    ],
)
def test_unsafe_or_unparsable_inputs_are_rejected(raw):
    assert sanitize_url(raw) is None


@pytest.mark.parametrize("raw", [None, 123, b"https://example.com"])
def test_non_string_input_is_rejected(raw):
    assert sanitize_url(raw) is None
