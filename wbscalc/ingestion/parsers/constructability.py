"""CONSTRUCTABILITY sheet parser."""

from __future__ import annotations

import re
from collections import defaultdict
from decimal import Decimal

from wbscalc.errors import StructuralValidationError
from wbscalc.ingestion.catalogs import CONSTRUCTABILITY_CATEGORIES
from wbscalc.ingestion.cells import cell, coerce_numeric, coerce_string
from wbscalc.ingestion.parsers.base import BaseSheetParser, register_parser
from wbscalc.ingestion.structure import require_min_rows
from wbscalc.ingestion.workbook import Grid
from wbscalc.models import ZERO, CostType, LineItemAllocation, SheetType
from wbscalc.pipeline.types import SheetParseResult

TEXT_COLS = (0, 1, 2, 3)  # A-D
FIRST_COST_COL = 4  # E
EXPECTED_CATEGORIES = 7
DISCIPLINE = "CONSTRUCTABILITY"

_CATEGORY_HEADERS = tuple(
    (re.compile(rf"^{re.escape(key)}(?![A-Z])", re.IGNORECASE), key)
    for key in CONSTRUCTABILITY_CATEGORIES
)


def match_category(text: str) -> str | None:
    """Category key a header cell starts with, if any."""
    text = text.strip()
    for pattern, key in _CATEGORY_HEADERS:
        if pattern.match(text):
            return key
    return None


def first_positive_cost(row: list) -> Decimal:
    for col in range(FIRST_COST_COL, len(row)):
        value = coerce_numeric(row[col])
        if value > 0:
            return value
    return ZERO


@register_parser(SheetType.CONSTRUCTABILITY)
class ConstructabilitySheetParser(BaseSheetParser):
    """Site setup, safety and welding support costs grouped by category header."""

    sheet_type = SheetType.CONSTRUCTABILITY

    def _parse(self, grid: Grid, result: SheetParseResult) -> None:
        sheet = self.sheet_name
        require_min_rows(sheet, grid, 2)

        categories: list[str] = []
        current: str | None = None
        by_category: dict[str, Decimal] = defaultdict(lambda: ZERO)

        for row_index, row in enumerate(grid):
            if not row:
                continue
            excel_row = row_index + 1
            texts = [coerce_string(cell(row, col)) for col in TEXT_COLS]
            cost = first_positive_cost(row)

            if cost == 0:
                header = next((k for k in map(match_category, texts) if k), None)
                if header:
                    current = CONSTRUCTABILITY_CATEGORIES[header]
                    if current not in categories:
                        categories.append(current)
                    continue

            description = next((t for t in reversed(texts) if t), "")
            if not description:
                continue
            if cost == 0:
                if current is not None:
                    result.skip(excel_row, "no cost")
                continue
            if current is None:
                result.skip(excel_row, "item before any category header")
                continue

            result.allocations.append(
                LineItemAllocation(
                    source_sheet=sheet,
                    source_row=excel_row,
                    discipline=DISCIPLINE,
                    category=f"Constructability - {current}",
                    description=description,
                    total_cost=cost,
                    cost_type=CostType.OTHER,
                )
            )
            by_category[current] += cost

        if not categories:
            raise StructuralValidationError(
                sheet,
                "no category headers found in columns A-D",
                expected=", ".join(sorted(set(CONSTRUCTABILITY_CATEGORIES.values()))),
                found="none",
            )
        if len(categories) != EXPECTED_CATEGORIES:
            result.warnings.append(
                f"Expected {EXPECTED_CATEGORIES} categories, found {len(categories)}"
            )

        result.disciplines = [DISCIPLINE]
        result.summary = {
            "categories": categories,
            "cost_by_category": dict(by_category),
            "total_cost": result.total_cost,
        }
