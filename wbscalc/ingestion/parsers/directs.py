"""DIRECTS sheet parser.

Layout: row 1 holds discipline names starting at column C, two columns per
discipline (manhours, then rate). Rows 3-41 hold the 39 direct labor
categories in catalog order, labels in column A.
"""

from __future__ import annotations

import math
from collections import defaultdict
from decimal import Decimal

from wbscalc.ingestion.catalogs import (
    CREW_SIZES,
    DEFAULT_CREW_SIZE,
    DIRECT_LABOR_CATEGORIES,
    SKILL_CLASS_CREW_SIZES,
    STANDARD_DIRECT_RATES,
)
from wbscalc.ingestion.cells import cell, coerce_numeric
from wbscalc.ingestion.disciplines import discipline_columns
from wbscalc.ingestion.parsers.base import BaseSheetParser, register_parser
from wbscalc.ingestion.structure import (
    require_disciplines,
    require_min_rows,
    validate_category_sequence,
)
from wbscalc.ingestion.workbook import Grid
from wbscalc.models import ZERO, DirectLaborAllocation, SheetType
from wbscalc.pipeline.types import SheetParseResult
from wbscalc.wbs.codes import direct_labor_code

HEADER_ROW = 0
FIRST_CATEGORY_ROW = 2
LABEL_COL = 0
FIRST_DISCIPLINE_COL = 2
DISCIPLINE_STRIDE = 2


@register_parser(SheetType.DIRECTS)
class DirectsSheetParser(BaseSheetParser):
    """Direct labor manhours per (category, discipline)."""

    sheet_type = SheetType.DIRECTS

    def standard_rate(self, category: str) -> Decimal:
        if category in self.config.standard_rate_overrides:
            return self.config.standard_rate_overrides[category]
        return STANDARD_DIRECT_RATES.get(category, self.config.fallback_direct_rate)

    def crew_size(self, category: str) -> int:
        if category in self.config.crew_size_overrides:
            return self.config.crew_size_overrides[category]
        if category in CREW_SIZES:
            return CREW_SIZES[category]
        for marker, size in SKILL_CLASS_CREW_SIZES:
            if marker in category:
                return size
        return DEFAULT_CREW_SIZE

    def duration_days(self, manhours: Decimal, crew_size: int) -> int:
        """Working days for a crew at the nominal workday, rounded up."""
        days = manhours / self.config.hours_per_day / Decimal(crew_size)
        return math.ceil(days)

    def _parse(self, grid: Grid, result: SheetParseResult) -> None:
        sheet = self.sheet_name
        header = grid[HEADER_ROW] if grid else None
        columns = discipline_columns(header, FIRST_DISCIPLINE_COL, DISCIPLINE_STRIDE)

        require_min_rows(sheet, grid, FIRST_CATEGORY_ROW + len(DIRECT_LABOR_CATEGORIES))
        require_disciplines(sheet, [name for name, _ in columns])
        validate_category_sequence(
            sheet, grid, DIRECT_LABOR_CATEGORIES, FIRST_CATEGORY_ROW, LABEL_COL
        )

        result.disciplines = [name for name, _ in columns]
        by_category: dict[str, Decimal] = defaultdict(lambda: ZERO)
        by_discipline: dict[str, Decimal] = defaultdict(lambda: ZERO)
        cost_by_discipline: dict[str, Decimal] = defaultdict(lambda: ZERO)

        for offset, category in enumerate(DIRECT_LABOR_CATEGORIES):
            row_index = FIRST_CATEGORY_ROW + offset
            row = grid[row_index]
            excel_row = row_index + 1

            for discipline, col in columns:
                manhours = coerce_numeric(cell(row, col))
                if manhours == 0:
                    result.skip(excel_row, "zero manhours")
                    continue
                if manhours < 0:
                    result.skip(excel_row, "negative manhours")
                    continue

                rate = coerce_numeric(cell(row, col + 1))
                if rate <= 0:
                    rate = self.standard_rate(category)

                crew = self.crew_size(category)
                allocation = DirectLaborAllocation(
                    source_sheet=sheet,
                    source_row=excel_row,
                    discipline=discipline,
                    category=category,
                    description=f"{category} - {discipline}",
                    manhours=manhours,
                    rate=rate,
                    total_cost=manhours * rate,
                    crew_size=crew,
                    duration_days=self.duration_days(manhours, crew),
                    wbs_code=direct_labor_code(discipline, category),
                )
                result.allocations.append(allocation)
                by_category[category] += manhours
                by_discipline[discipline] += manhours
                cost_by_discipline[discipline] += allocation.total_cost

        result.summary = {
            "slots": len(DIRECT_LABOR_CATEGORIES) * len(columns),
            "total_manhours": sum(by_discipline.values(), ZERO),
            "total_cost": result.total_cost,
            "manhours_by_category": dict(by_category),
            "manhours_by_discipline": dict(by_discipline),
            "cost_by_discipline": dict(cost_by_discipline),
        }
