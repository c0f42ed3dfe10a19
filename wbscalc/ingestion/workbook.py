"""Workbook loading.

The whole workbook is read into memory as plain 2-D grids before any
parsing starts; parsers never touch the file.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import pandas as pd

from wbscalc.ingestion.cells import is_blank

logger = logging.getLogger(__name__)

Grid = list[list[Any]]

MAX_FILE_SIZE_MB = 50
SUPPORTED_SUFFIXES = (".xlsx", ".xlsm", ".xls")


class Workbook:
    """Named sheets, each a row-major grid of raw cell values."""

    def __init__(self, sheets: dict[str, Grid], source: str | None = None):
        self.sheets = sheets
        self.source = source
        self._index = {name.strip().upper(): name for name in sheets}

    @property
    def names(self) -> list[str]:
        return list(self.sheets)

    def resolve(self, name: str) -> str | None:
        """Actual sheet name for ``name`` (case and padding insensitive)."""
        return self._index.get(name.strip().upper())

    def sheet(self, name: str) -> Grid | None:
        actual = self.resolve(name)
        return self.sheets[actual] if actual is not None else None

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.resolve(name) is not None

    def __repr__(self) -> str:
        return f"Workbook(source={self.source!r}, sheets={self.names!r})"


def frame_to_grid(df: pd.DataFrame) -> Grid:
    """Convert a header-less DataFrame into a grid with None for blanks.

    Trailing blank cells are trimmed from each row so ragged rows behave
    like the sheet as the estimator sees it.
    """
    grid: Grid = []
    for values in df.itertuples(index=False, name=None):
        row = [None if is_blank(v) else v for v in values]
        while row and row[-1] is None:
            row.pop()
        grid.append(row)
    return grid


def load_workbook(file_path: Path) -> Workbook:
    """Read every sheet of an Excel workbook into memory.

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If the file is too large or not an Excel workbook
    """
    if not file_path.exists():
        raise FileNotFoundError(f"Workbook not found: {file_path}")

    if file_path.suffix.lower() not in SUPPORTED_SUFFIXES:
        raise ValueError(
            f"Unsupported file format: {file_path.suffix}. Use {', '.join(SUPPORTED_SUFFIXES)}."
        )

    file_size_mb = file_path.stat().st_size / (1024 * 1024)
    if file_size_mb > MAX_FILE_SIZE_MB:
        raise ValueError(
            f"File too large ({file_size_mb:.1f}MB). Maximum allowed: {MAX_FILE_SIZE_MB}MB"
        )

    frames = pd.read_excel(file_path, sheet_name=None, header=None, dtype=object)
    sheets = {name: frame_to_grid(df) for name, df in frames.items()}

    logger.info(
        "Loaded workbook %s with %d sheets: %s",
        file_path.name,
        len(sheets),
        ", ".join(sheets),
    )
    return Workbook(sheets, source=str(file_path))
