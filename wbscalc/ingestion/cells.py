"""Cell value coercion for raw spreadsheet grids.

Spreadsheet cells are frequently blank or hold stray text; a failed parse
must never abort an import, so numeric coercion is lenient and yields zero.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any

import pandas as pd

ZERO = Decimal("0")

# Currency symbols, thousands separators and any whitespace
_NOISE = re.compile(r"[$€£¥,\s]")
# Leading numeric prefix, the same way a spreadsheet's VALUE() reads "12 ea"
_NUMERIC_PREFIX = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")


def is_blank(raw: Any) -> bool:
    """True for None, empty/whitespace strings and pandas missing values."""
    if raw is None:
        return True
    if isinstance(raw, str):
        return raw.strip() == ""
    try:
        return bool(pd.isna(raw))
    except (TypeError, ValueError):
        return False


def coerce_numeric(raw: Any) -> Decimal:
    """Convert a raw cell to a Decimal.

    Blank cells and unparsable text become 0. Accounting negatives such as
    ``(1,250.00)`` become ``-1250.00``.
    """
    if is_blank(raw) or isinstance(raw, bool):
        return ZERO

    if isinstance(raw, Decimal):
        return raw if raw.is_finite() else ZERO

    if isinstance(raw, (int, float)):
        value = Decimal(str(raw))
        return value if value.is_finite() else ZERO

    text = _NOISE.sub("", str(raw))
    negative = False
    if "(" in text or ")" in text:
        # Accounting notation: the parentheses are the sign
        negative = True
        text = text.replace("(", "").replace(")", "")

    match = _NUMERIC_PREFIX.match(text)
    if not match:
        return ZERO

    try:
        value = Decimal(match.group(0))
    except InvalidOperation:
        return ZERO

    if negative and value > 0:
        value = -value
    return value


def coerce_string(raw: Any) -> str:
    """Stringify and trim a raw cell; blank cells become ''."""
    if raw is None:
        return ""
    if not isinstance(raw, str) and is_blank(raw):
        return ""
    if isinstance(raw, float) and raw.is_integer():
        # Excel stores "1" typed into a text column as 1.0
        return str(int(raw))
    return str(raw).strip()


def cell(row: list[Any] | None, col: int) -> Any:
    """Safe positional access into a ragged grid row."""
    if row is None or col < 0 or col >= len(row):
        return None
    return row[col]
