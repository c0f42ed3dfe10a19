"""SUBS sheet parser.

The subcontract sheet has no fixed layout: the header row is located by
keyword, and data runs until the first total/grand-total footer row.
"""

from __future__ import annotations

from collections import defaultdict
from decimal import Decimal

from wbscalc.errors import StructuralValidationError
from wbscalc.ingestion.cells import cell, coerce_numeric, coerce_string
from wbscalc.ingestion.disciplines import normalize_discipline
from wbscalc.ingestion.parsers.base import BaseSheetParser, register_parser
from wbscalc.ingestion.workbook import Grid
from wbscalc.models import ZERO, CostType, LineItemAllocation, SheetType
from wbscalc.pipeline.types import SheetParseResult

HEADER_SEARCH_ROWS = 20
DEFAULT_DISCIPLINE = "GENERAL"

# Column role -> header keywords, checked in this order per cell
HEADER_KEYWORDS: dict[str, tuple[str, ...]] = {
    "discipline": ("DISCIPLINE",),
    "contractor": ("SUBCONTRACTOR", "CONTRACTOR", "VENDOR", "COMPANY"),
    "total": ("TOTAL", "AMOUNT", "COST", "VALUE", "PRICE"),
    "description": ("DESCRIPTION", "DESC", "SCOPE", "WORK"),
}
FOOTER_MARKERS = ("TOTAL", "GRAND")


def find_header(grid: Grid) -> tuple[int, dict[str, int]] | None:
    """Locate the header row and map column roles to indices.

    A row qualifies when at least two roles are recognized and both the
    description and total columns are among them.
    """
    for row_index, row in enumerate(grid[:HEADER_SEARCH_ROWS]):
        columns: dict[str, int] = {}
        for col, raw in enumerate(row or []):
            text = coerce_string(raw).upper()
            if not text:
                continue
            for role, keywords in HEADER_KEYWORDS.items():
                if role not in columns and any(k in text for k in keywords):
                    columns[role] = col
                    break
        if len(columns) >= 2 and "description" in columns and "total" in columns:
            return row_index, columns
    return None


@register_parser(SheetType.SUBS)
class SubsSheetParser(BaseSheetParser):
    """Subcontract line items."""

    sheet_type = SheetType.SUBS

    def _parse(self, grid: Grid, result: SheetParseResult) -> None:
        sheet = self.sheet_name
        header = find_header(grid)
        if header is None:
            raise StructuralValidationError(
                sheet,
                f"header row not found in the first {HEADER_SEARCH_ROWS} rows",
                expected="DESCRIPTION and TOTAL columns",
                found="none",
            )
        header_index, columns = header
        by_discipline: dict[str, Decimal] = defaultdict(lambda: ZERO)

        for row_index in range(header_index + 1, len(grid)):
            row = grid[row_index]
            if not row:
                continue
            excel_row = row_index + 1

            description = coerce_string(cell(row, columns["description"]))
            first_text = coerce_string(cell(row, 0)).upper()
            if any(m in description.upper() or m in first_text for m in FOOTER_MARKERS):
                break

            total = coerce_numeric(cell(row, columns["total"]))
            contractor = (
                coerce_string(cell(row, columns["contractor"])) if "contractor" in columns else ""
            )
            if not description and total == 0:
                continue
            if total <= 0:
                result.skip(excel_row, "zero or negative total")
                continue

            discipline = DEFAULT_DISCIPLINE
            if "discipline" in columns:
                discipline = normalize_discipline(cell(row, columns["discipline"])) or discipline

            if discipline not in result.disciplines:
                result.disciplines.append(discipline)
            result.allocations.append(
                LineItemAllocation(
                    source_sheet=sheet,
                    source_row=excel_row,
                    discipline=discipline,
                    category="Subcontracts",
                    description=description or contractor or "Subcontract",
                    total_cost=total,
                    cost_type=CostType.SUB,
                    vendor=contractor or None,
                )
            )
            by_discipline[discipline] += total

        result.summary = {
            "header_row": header_index + 1,
            "columns": dict(columns),
            "total_cost": result.total_cost,
            "cost_by_discipline": dict(by_discipline),
        }
