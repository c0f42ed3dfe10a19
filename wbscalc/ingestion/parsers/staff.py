"""STAFF sheet parser (indirect labor by general-staffing phase)."""

from __future__ import annotations

import math
from collections import defaultdict
from decimal import ROUND_HALF_UP, Decimal

from wbscalc.errors import StructuralValidationError
from wbscalc.ingestion.catalogs import PHASE_PATTERNS, STANDARD_MONTHLY_RATES, resolve_role
from wbscalc.ingestion.cells import cell, coerce_numeric, coerce_string
from wbscalc.ingestion.parsers.base import BaseSheetParser, register_parser
from wbscalc.ingestion.structure import require_min_rows
from wbscalc.ingestion.workbook import Grid
from wbscalc.models import ZERO, PhaseAllocation, ProjectPhase, SheetType
from wbscalc.pipeline.types import SheetParseResult
from wbscalc.wbs.codes import phase_role_code

ROLE_COL = 0  # A
PHASE_COL = 1  # B
QUANTITY_COL = 2  # C
WEEKS_COL = 3  # D
PERDIEM_COL = 22  # W
TOTAL_COL = 24  # Y

CENT = Decimal("0.01")
STAFFING_DISCIPLINE = "GENERAL STAFFING"


def detect_phase(text: str) -> ProjectPhase | None:
    for pattern, phase in PHASE_PATTERNS:
        if pattern.search(text):
            return phase
    return None


@register_parser(SheetType.STAFF)
class StaffSheetParser(BaseSheetParser):
    """Indirect staff roles grouped under phase header rows."""

    sheet_type = SheetType.STAFF

    def monthly_rate(self, role: str) -> Decimal:
        return STANDARD_MONTHLY_RATES.get(role, self.config.fallback_monthly_rate)

    def duration_months(self, weeks: Decimal) -> int:
        return math.ceil(weeks / self.config.weeks_per_month)

    def _parse(self, grid: Grid, result: SheetParseResult) -> None:
        sheet = self.sheet_name
        require_min_rows(sheet, grid, 2)

        phases_seen: list[ProjectPhase] = []
        current: ProjectPhase | None = None
        cost_by_phase: dict[ProjectPhase, Decimal] = defaultdict(lambda: ZERO)
        total_perdiem = ZERO

        for row_index in range(1, len(grid)):
            row = grid[row_index]
            excel_row = row_index + 1
            if not row:
                continue

            classification = coerce_string(cell(row, ROLE_COL))
            role = resolve_role(classification) if classification else None

            # Headers may carry a phase subtotal; a known role in column A wins
            phase = None if role else detect_phase(coerce_string(cell(row, PHASE_COL)))
            if phase is not None:
                current = phase
                if phase not in phases_seen:
                    phases_seen.append(phase)
                continue

            fte = coerce_numeric(cell(row, QUANTITY_COL))
            weeks = coerce_numeric(cell(row, WEEKS_COL))
            sheet_total = coerce_numeric(cell(row, TOTAL_COL))
            if not classification or not (fte or weeks or sheet_total):
                continue

            if current is None:
                result.skip(excel_row, "role row before any phase header")
                continue

            if role is None:
                result.skip(excel_row, f"unknown role '{classification}'")
                continue

            if fte <= 0 or weeks <= 0:
                result.skip(excel_row, "missing FTE or weeks")
                continue

            months = self.duration_months(weeks)
            perdiem = coerce_numeric(cell(row, PERDIEM_COL))
            if sheet_total > 0:
                total_cost = sheet_total
                monthly_rate = (sheet_total / (fte * months)).quantize(CENT, ROUND_HALF_UP)
            else:
                monthly_rate = self.monthly_rate(role)
                total_cost = fte * months * monthly_rate

            result.allocations.append(
                PhaseAllocation(
                    source_sheet=sheet,
                    source_row=excel_row,
                    discipline=STAFFING_DISCIPLINE,
                    description=role,
                    phase=current,
                    role=role,
                    fte=fte,
                    duration_months=months,
                    monthly_rate=monthly_rate,
                    perdiem=max(perdiem, ZERO),
                    indirect_hours=fte * months * self.config.hours_per_month,
                    total_cost=total_cost,
                    wbs_code=phase_role_code(current, role),
                )
            )
            cost_by_phase[current] += total_cost
            total_perdiem += max(perdiem, ZERO)

        if not phases_seen:
            raise StructuralValidationError(
                sheet,
                "no phase headers found in column B",
                expected=", ".join(p.label for p in ProjectPhase),
                found="none",
            )
        if not result.allocations and not result.skips:
            raise StructuralValidationError(
                sheet,
                "no role rows found under the phase headers",
                expected="at least one staff role",
                found="none",
            )
        if len(phases_seen) != len(ProjectPhase):
            result.warnings.append(
                f"Expected {len(ProjectPhase)} phases, found {len(phases_seen)}"
            )

        result.disciplines = [STAFFING_DISCIPLINE]
        result.summary = {
            "phases": [p.value for p in phases_seen],
            "cost_by_phase": {p.value: v for p, v in cost_by_phase.items()},
            "total_indirect_labor": result.total_cost,
            "total_perdiem": total_perdiem,
            "total_indirect_hours": sum(
                (a.indirect_hours for a in result.allocations), ZERO
            ),
        }
