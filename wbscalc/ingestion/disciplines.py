"""Discipline discovery from sheet header rows.

The discipline list is not fixed: every estimate template carries its own
set in the header row, so it is discovered at parse time and becomes the
authoritative list for that import.
"""

from __future__ import annotations

import re
from typing import Any

from wbscalc.ingestion.cells import coerce_string

_WHITESPACE = re.compile(r"\s+")


def normalize_discipline(name: Any) -> str:
    """Trim, upper-case and collapse internal whitespace runs."""
    return _WHITESPACE.sub(" ", coerce_string(name)).strip().upper()


def discover_disciplines(
    header_row: list[Any] | None,
    start_col: int = 2,
    stride: int = 2,
) -> list[str]:
    """Scan a header row at a fixed start column and stride.

    Args:
        header_row: Raw header cells
        start_col: First discipline column (0-based)
        stride: Columns occupied by each discipline

    Returns:
        Normalized discipline names, deduplicated in first-seen order
    """
    if not header_row:
        return []
    if stride < 1:
        raise ValueError(f"stride must be positive, got {stride}")

    disciplines: list[str] = []
    for col in range(start_col, len(header_row), stride):
        name = normalize_discipline(header_row[col])
        if name and name not in disciplines:
            disciplines.append(name)
    return disciplines


def discipline_columns(
    header_row: list[Any] | None,
    start_col: int = 2,
    stride: int = 2,
) -> list[tuple[str, int]]:
    """Like discover_disciplines but keeps the first column of each discipline.

    A duplicated discipline header keeps its first position; later
    duplicates are ignored, matching discover_disciplines.
    """
    if not header_row:
        return []

    seen: dict[str, int] = {}
    for col in range(start_col, len(header_row), stride):
        name = normalize_discipline(header_row[col])
        if name and name not in seen:
            seen[name] = col
    return list(seen.items())


class DisciplineRegistry:
    """Import-wide discipline list, accumulated across sheets."""

    def __init__(self) -> None:
        self._names: list[str] = []
        self._sources: dict[str, str] = {}

    def register(self, names: list[str], sheet: str) -> None:
        for raw in names:
            name = normalize_discipline(raw)
            if name and name not in self._sources:
                self._names.append(name)
                self._sources[name] = sheet

    def source_of(self, name: str) -> str | None:
        """Sheet that first introduced ``name``."""
        return self._sources.get(normalize_discipline(name))

    @property
    def names(self) -> list[str]:
        return list(self._names)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and normalize_discipline(name) in self._sources

    def __len__(self) -> int:
        return len(self._names)
