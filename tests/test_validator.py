"""Tests for request parameter validation."""

from __future__ import annotations

import pytest

from stockdash.data_client import RANGE_MAP
from stockdash.errors import InvalidRequest
from stockdash.schemas import ErrorCode
from stockdash.validator import VALID_RANGES, sanitize_query, validate_range, validate_symbol


@pytest.mark.parametrize("symbol", ["A", "AAPL", "BRK", "ABCDEFGHIJ"])
def test_valid_symbols(symbol):
    assert validate_symbol(symbol) == symbol


@pytest.mark.parametrize(
    "symbol", ["", "aapl", "BRK.B", "ABCDEFGHIJK", "AAPL\n", "AAPL ", "12", None]
)
def test_invalid_symbols(symbol):
    with pytest.raises(InvalidRequest) as exc:
        validate_symbol(symbol)
    assert exc.value.code is ErrorCode.INVALID_SYMBOL


@pytest.mark.parametrize("range_", ["1M", "3M", "1Y"])
def test_valid_ranges(range_):
    assert validate_range(range_) == range_


@pytest.mark.parametrize("range_", ["", "1m", "5Y", "1D", None])
def test_invalid_ranges(range_):
    with pytest.raises(InvalidRequest) as exc:
        validate_range(range_)
    assert exc.value.code is ErrorCode.INVALID_RANGE


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Apple", "Apple"),
        ("  S&P 500  ", "S&P 500"),
        ("brk.b", "brk.b"),
        ("Coca-Cola", "Coca-Cola"),
        ("<script>alert(1)</script>", "scriptalert1script"),
        ("'; DROP TABLE--", "DROP TABLE--"),
        ("%%%", ""),
        ("", ""),
        (None, ""),
    ],
)
def test_sanitize_query(raw, expected):
    assert sanitize_query(raw) == expected


def test_every_valid_range_maps_to_a_yahoo_token():
    assert VALID_RANGES == ("1M", "3M", "1Y")
    assert set(RANGE_MAP) == set(VALID_RANGES)
