"""GENERAL EQUIPMENT and DISC. EQUIPMENT sheet parser.

Both sheets share one column layout; the discipline is read per row from
column B, with blank or GENERAL meaning project-wide equipment.
"""

from __future__ import annotations

from collections import defaultdict
from decimal import Decimal

from wbscalc.errors import StructuralValidationError
from wbscalc.ingestion.catalogs import EQUIPMENT_DISCIPLINE_ALIASES
from wbscalc.ingestion.cells import cell, coerce_numeric, coerce_string
from wbscalc.ingestion.disciplines import normalize_discipline
from wbscalc.ingestion.parsers.base import BaseSheetParser, register_parser
from wbscalc.ingestion.structure import require_min_rows
from wbscalc.ingestion.workbook import Grid
from wbscalc.models import ZERO, CostType, LineItemAllocation, SheetType
from wbscalc.pipeline.types import SheetParseResult

DISCIPLINE_COL = 1  # B
TYPE_COL = 2  # C
DESCRIPTION_COL = 3  # D
QUANTITY_COL = 4  # E
DURATION_COL = 5  # F
DURATION_TYPE_COL = 6  # G
EQUIPMENT_COST_COL = 16  # Q
FOG_COST_COL = 17  # R
MAINTENANCE_COL = 18  # S

PROJECT_WIDE = "GENERAL"


def equipment_discipline(raw) -> str:
    """Normalized discipline with the sheet's aliases applied."""
    name = normalize_discipline(raw)
    name = EQUIPMENT_DISCIPLINE_ALIASES.get(name, name)
    return name or PROJECT_WIDE


@register_parser(SheetType.GENERAL_EQUIPMENT)
@register_parser(SheetType.DISC_EQUIPMENT)
class EquipmentSheetParser(BaseSheetParser):
    """Rented and owned equipment: equipment + F.O.G. + maintenance per row."""

    sheet_type = SheetType.GENERAL_EQUIPMENT

    def _parse(self, grid: Grid, result: SheetParseResult) -> None:
        sheet = self.sheet_name
        require_min_rows(sheet, grid, 2)

        by_discipline: dict[str, Decimal] = defaultdict(lambda: ZERO)
        totals = {"equipment_cost": ZERO, "fog_cost": ZERO, "maintenance_cost": ZERO}

        for row_index in range(1, len(grid)):
            row = grid[row_index]
            if not row:
                continue
            excel_row = row_index + 1

            description = coerce_string(cell(row, DESCRIPTION_COL))
            equipment = coerce_numeric(cell(row, EQUIPMENT_COST_COL))
            fog = coerce_numeric(cell(row, FOG_COST_COL))
            maintenance = coerce_numeric(cell(row, MAINTENANCE_COL))

            if equipment == 0 and fog == 0 and maintenance == 0:
                if description:
                    result.skip(excel_row, "no equipment, F.O.G. or maintenance cost")
                continue

            total = equipment + fog + maintenance
            if total < 0:
                result.skip(excel_row, "negative total cost")
                continue

            discipline = equipment_discipline(cell(row, DISCIPLINE_COL))
            equipment_type = coerce_string(cell(row, TYPE_COL))
            duration = coerce_numeric(cell(row, DURATION_COL))
            duration_type = coerce_string(cell(row, DURATION_TYPE_COL))
            quantity = coerce_numeric(cell(row, QUANTITY_COL))
            unit = duration_type or None
            if duration and duration_type:
                unit = f"{duration.normalize():f} {duration_type}"

            if discipline not in result.disciplines:
                result.disciplines.append(discipline)
            result.allocations.append(
                LineItemAllocation(
                    source_sheet=sheet,
                    source_row=excel_row,
                    discipline=discipline,
                    category=f"Equipment - {equipment_type}" if equipment_type else "Equipment",
                    description=description or equipment_type or "Equipment",
                    total_cost=total,
                    cost_type=CostType.EQ,
                    quantity=quantity or None,
                    unit=unit,
                )
            )
            by_discipline[discipline] += total
            totals["equipment_cost"] += equipment
            totals["fog_cost"] += fog
            totals["maintenance_cost"] += maintenance

        if not result.allocations:
            if self.sheet_type == SheetType.GENERAL_EQUIPMENT:
                raise StructuralValidationError(
                    sheet,
                    "no equipment items with cost in columns Q-S",
                    expected="at least one costed row",
                    found="none",
                )
            result.warnings.append(f"No equipment items found in {sheet}")

        result.summary = {
            **totals,
            "total_cost": result.total_cost,
            "cost_by_discipline": dict(by_discipline),
            "project_wide_cost": by_discipline.get(PROJECT_WIDE, ZERO),
        }
