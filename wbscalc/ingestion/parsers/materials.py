"""MATERIALS sheet parser.

Discipline sections start every 8 rows (column B at rows 2, 10, 18, ...);
each section lists the taxed, taxes and non-taxed lines in column D with
the amount in column G.
"""

from __future__ import annotations

import re
from collections import defaultdict
from decimal import Decimal

from wbscalc.errors import StructuralValidationError
from wbscalc.ingestion.catalogs import MATERIAL_TYPES
from wbscalc.ingestion.cells import cell, coerce_numeric, coerce_string
from wbscalc.ingestion.disciplines import normalize_discipline
from wbscalc.ingestion.parsers.base import BaseSheetParser, register_parser
from wbscalc.ingestion.structure import require_min_rows
from wbscalc.ingestion.workbook import Grid
from wbscalc.models import ZERO, CostType, LineItemAllocation, SheetType
from wbscalc.pipeline.types import SheetParseResult

DISCIPLINE_COL = 1  # B
TYPE_COL = 3  # D
AMOUNT_COL = 6  # G
FIRST_SECTION_ROW = 1
SECTION_STRIDE = 8

_HAS_LETTER = re.compile(r"[A-Za-z]")


def is_section_row(row_index: int) -> bool:
    return row_index >= FIRST_SECTION_ROW and (row_index - FIRST_SECTION_ROW) % SECTION_STRIDE == 0


@register_parser(SheetType.MATERIALS)
class MaterialsSheetParser(BaseSheetParser):
    """Taxed / taxes / non-taxed material amounts per discipline."""

    sheet_type = SheetType.MATERIALS

    def _discipline_header(self, row_index: int, text: str) -> str | None:
        if not is_section_row(row_index) or not _HAS_LETTER.search(text):
            return None
        if text.upper() in MATERIAL_TYPES:
            return None
        return normalize_discipline(text)

    def _parse(self, grid: Grid, result: SheetParseResult) -> None:
        sheet = self.sheet_name
        require_min_rows(sheet, grid, 2)

        current: str | None = None
        by_type: dict[str, Decimal] = defaultdict(lambda: ZERO)
        by_discipline: dict[str, Decimal] = defaultdict(lambda: ZERO)

        for row_index, row in enumerate(grid):
            if not row:
                continue
            excel_row = row_index + 1

            discipline = self._discipline_header(
                row_index, coerce_string(cell(row, DISCIPLINE_COL))
            )
            if discipline:
                current = discipline
                if discipline not in result.disciplines:
                    result.disciplines.append(discipline)
                continue

            type_text = coerce_string(cell(row, TYPE_COL))
            label = MATERIAL_TYPES.get(type_text.upper())
            if label is None:
                continue

            amount = coerce_numeric(cell(row, AMOUNT_COL))
            if current is None:
                result.skip(excel_row, "material line before any discipline header")
                continue
            if amount == 0:
                result.skip(excel_row, "zero amount")
                continue
            if amount < 0:
                result.skip(excel_row, "negative amount")
                continue

            result.allocations.append(
                LineItemAllocation(
                    source_sheet=sheet,
                    source_row=excel_row,
                    discipline=current,
                    category=f"Materials - {label}",
                    description=type_text,
                    total_cost=amount,
                    cost_type=CostType.MAT,
                )
            )
            by_type[label] += amount
            by_discipline[current] += amount

        if not result.disciplines:
            raise StructuralValidationError(
                sheet,
                "no discipline sections found in column B",
                row=FIRST_SECTION_ROW + 1,
                expected="discipline name every 8 rows",
                found="none",
            )

        for discipline in result.disciplines:
            if discipline not in by_discipline:
                result.warnings.append(f"{discipline} has no materials")

        result.summary = {
            "total_cost": result.total_cost,
            "cost_by_type": dict(by_type),
            "cost_by_discipline": dict(by_discipline),
        }
