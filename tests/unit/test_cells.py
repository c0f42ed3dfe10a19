"""Unit tests for cell value coercion."""

from __future__ import annotations

import math
from decimal import Decimal

import pytest

from wbscalc.ingestion.cells import cell, coerce_numeric, coerce_string, is_blank


@pytest.mark.parametrize(
    "raw,expected",
    [
        (None, Decimal("0")),
        ("", Decimal("0")),
        ("   ", Decimal("0")),
        (math.nan, Decimal("0")),
        (1000, Decimal("1000")),
        (12.5, Decimal("12.5")),
        ("$1,250.00", Decimal("1250.00")),
        ("(1,250.00)", Decimal("-1250.00")),
        ("12 ea", Decimal("12")),
        ("N/A", Decimal("0")),
        ("TBD", Decimal("0")),
        (True, Decimal("0")),
        (math.inf, Decimal("0")),
    ],
)
def test_coerce_numeric(raw, expected):
    assert coerce_numeric(raw) == expected


def test_coerce_numeric_is_idempotent():
    for raw in ("$1,250.00", "(3.5)", "abc", None, 42, "1e3"):
        once = coerce_numeric(raw)
        assert coerce_numeric(once) == once
        assert coerce_numeric(str(once)) == once


def test_coerce_numeric_keeps_decimal_precision():
    assert coerce_numeric(Decimal("0.10")) + coerce_numeric("0.20") == Decimal("0.30")


def test_coerce_string():
    assert coerce_string(None) == ""
    assert coerce_string(math.nan) == ""
    assert coerce_string("  PIPING ") == "PIPING"
    assert coerce_string(1.0) == "1"
    assert coerce_string(2.5) == "2.5"


def test_is_blank():
    assert is_blank(None)
    assert is_blank(" ")
    assert is_blank(float("nan"))
    assert not is_blank(0)
    assert not is_blank("x")


def test_cell_handles_ragged_rows():
    row = ["a", "b"]
    assert cell(row, 1) == "b"
    assert cell(row, 5) is None
    assert cell(row, -1) is None
    assert cell(None, 0) is None
