"""BUDGETS sheet parser.

The BUDGETS sheet is the estimate's own summary: one 12-row block per
discipline (number in A, name in B, category label in D, manhours in E,
value in F). It yields no allocations; its DISCIPLINE TOTALS rows give the
independently entered project total the WBS is reconciled against.
"""

from __future__ import annotations

from decimal import Decimal

from wbscalc.errors import StructuralValidationError
from wbscalc.ingestion.catalogs import BUDGET_CATEGORIES
from wbscalc.ingestion.cells import cell, coerce_numeric, coerce_string, is_blank
from wbscalc.ingestion.disciplines import normalize_discipline
from wbscalc.ingestion.parsers.base import BaseSheetParser, register_parser
from wbscalc.ingestion.structure import labels_match
from wbscalc.ingestion.workbook import Grid
from wbscalc.models import ZERO, SheetType
from wbscalc.pipeline.types import SheetParseResult

NUMBER_COL = 0  # A
NAME_COL = 1  # B
CATEGORY_COL = 3  # D
MANHOURS_COL = 4  # E
VALUE_COL = 5  # F
BLOCK_ROWS = len(BUDGET_CATEGORIES)

LABOR_CATEGORIES = ("DIRECT LABOR", "INDIRECT LABOR", "TAXES & INSURANCE", "PERDIEM", "ADD ONS")


def is_block_start(grid: Grid, row_index: int) -> bool:
    """Discipline number in A, a name in B and DIRECT LABOR in D, with room for the block."""
    if row_index + BLOCK_ROWS > len(grid):
        return False
    row = grid[row_index]
    number = cell(row, NUMBER_COL)
    if isinstance(number, str):
        if not number.strip().replace(".", "", 1).isdigit():
            return False
    elif is_blank(number) or isinstance(number, bool):
        return False
    return bool(coerce_string(cell(row, NAME_COL))) and labels_match(
        coerce_string(cell(row, CATEGORY_COL)), BUDGET_CATEGORIES[0]
    )


def parse_block(grid: Grid, start: int) -> dict[str, dict[str, Decimal]]:
    """Category label -> {manhours, value} for one discipline block."""
    categories = {name: {"manhours": ZERO, "value": ZERO} for name in BUDGET_CATEGORIES}
    for row in grid[start : start + BLOCK_ROWS]:
        label = coerce_string(cell(row, CATEGORY_COL))
        for name in BUDGET_CATEGORIES:
            if labels_match(label, name):
                categories[name] = {
                    "manhours": coerce_numeric(cell(row, MANHOURS_COL)),
                    "value": coerce_numeric(cell(row, VALUE_COL)),
                }
                break
    return categories


@register_parser(SheetType.BUDGETS)
class BudgetsSheetParser(BaseSheetParser):
    """Per-discipline budget targets and the project total."""

    sheet_type = SheetType.BUDGETS

    def _parse(self, grid: Grid, result: SheetParseResult) -> None:
        sheet = self.sheet_name
        blocks: dict[str, dict] = {}

        row_index = 0
        while row_index < len(grid):
            if not is_block_start(grid, row_index):
                row_index += 1
                continue

            row = grid[row_index]
            name = normalize_discipline(cell(row, NAME_COL))
            if name in blocks:
                result.warnings.append(
                    f"Duplicate discipline block {name} at row {row_index + 1} ignored"
                )
            else:
                blocks[name] = {
                    "number": coerce_string(cell(row, NUMBER_COL)),
                    "row": row_index + 1,
                    "categories": parse_block(grid, row_index),
                }
                result.disciplines.append(name)
            row_index += BLOCK_ROWS

        if not blocks:
            raise StructuralValidationError(
                sheet,
                "no discipline blocks found",
                expected="discipline number in A, name in B, 'DIRECT LABOR' in D",
                found="none",
            )

        def total(category: str, field: str = "value") -> Decimal:
            return sum((b["categories"][category][field] for b in blocks.values()), ZERO)

        labor_total = sum((total(c) for c in LABOR_CATEGORIES), ZERO)
        result.reference_total = total("DISCIPLINE TOTALS")
        result.summary = {
            "disciplines": blocks,
            "labor_total": labor_total,
            "materials_total": total("MATERIALS"),
            "equipment_total": total("EQUIPMENT"),
            "subcontracts_total": total("SUBCONTRACTS"),
            "grand_total": result.reference_total,
            "direct_labor_manhours": total("DIRECT LABOR", "manhours"),
            "indirect_labor_manhours": total("INDIRECT LABOR", "manhours"),
        }
