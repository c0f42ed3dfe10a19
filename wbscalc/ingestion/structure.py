"""Sheet-level structural validation.

Runs before any allocation from a sheet is trusted. A shifted or reordered
sheet would silently corrupt every downstream allocation, so these checks
raise instead of warning.
"""

from __future__ import annotations

from typing import Any

from wbscalc.errors import StructuralValidationError
from wbscalc.ingestion.cells import cell, coerce_string

Grid = list[list[Any]]


def labels_match(found: str, expected: str) -> bool:
    """Exact match first, case-insensitive fallback second."""
    found = found.strip()
    if found == expected:
        return True
    return found.casefold() == expected.casefold()


def require_min_rows(sheet: str, grid: Grid, min_rows: int) -> None:
    """Fail when the grid is shorter than the layout needs."""
    if len(grid) < min_rows:
        raise StructuralValidationError(
            sheet,
            "insufficient rows",
            expected=f">= {min_rows} rows",
            found=f"{len(grid)} rows",
        )


def require_disciplines(sheet: str, disciplines: list[str]) -> None:
    """Discipline discovery must yield at least one discipline."""
    if not disciplines:
        raise StructuralValidationError(
            sheet,
            "no disciplines found in header row",
            row=1,
            expected="at least one discipline",
            found="none",
        )


def validate_category_sequence(
    sheet: str,
    grid: Grid,
    catalog: tuple[str, ...],
    first_row: int,
    label_col: int = 0,
) -> None:
    """Check every catalog label sits at its fixed row.

    Args:
        sheet: Sheet name for error messages
        grid: Raw cell grid (0-based rows)
        catalog: Expected labels, in order
        first_row: 0-based row of the first catalog entry
        label_col: Column holding the labels

    Raises:
        StructuralValidationError: On the first label that differs after
            the case-insensitive fallback; ``row`` is the 1-based Excel row
    """
    for offset, expected in enumerate(catalog):
        row_index = first_row + offset
        row = grid[row_index] if row_index < len(grid) else None
        found = coerce_string(cell(row, label_col))
        if not labels_match(found, expected):
            raise StructuralValidationError(
                sheet,
                "category label mismatch",
                row=row_index + 1,
                expected=expected,
                found=found,
            )
