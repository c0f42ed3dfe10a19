"""Excel export of a finalized WBS tree.

Generates a workbook with:
- WBS: one row per node, description indented by level
- Summary: bucket totals and the 100% rule result
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from wbscalc.models import BUCKET_FIELDS, ZERO, ReconciliationReport, WBSLevel, WBSNode

MONEY_FORMAT = "#,##0.00"
HOURS_FORMAT = "#,##0.0"

HEADER_FILL = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True)
GROUP_FILL = PatternFill(start_color="DCE6F1", end_color="DCE6F1", fill_type="solid")

WBS_COLUMNS: tuple[tuple[str, str, int], ...] = (
    # (header, node attribute, width)
    ("WBS Code", "code", 18),
    ("Level", "level", 7),
    ("Description", "description", 45),
    ("Discipline", "discipline", 20),
    ("Cost Type", "cost_type", 10),
    ("Labor", "labor_cost", 15),
    ("Material", "material_cost", 15),
    ("Equipment", "equipment_cost", 15),
    ("Subcontract", "subcontract_cost", 15),
    ("Other", "other_cost", 15),
    ("Budget Total", "budget_total", 16),
    ("Manhours", "manhours", 12),
    ("Indirect Hours", "indirect_hours", 14),
    ("Crew", "crew_size", 7),
    ("Days", "duration_days", 7),
    ("FTE", "fte", 7),
    ("Source", "source_sheet", 18),
    ("Row", "source_row", 7),
)

_MONEY_ATTRS = set(BUCKET_FIELDS.values()) | {"budget_total"}
_HOUR_ATTRS = {"manhours", "indirect_hours", "fte"}


def export_tree_to_excel(
    nodes: Sequence[WBSNode],
    project_id: str | None = None,
    reconciliation: ReconciliationReport | None = None,
) -> BytesIO:
    """Write the flat node list to an .xlsx workbook.

    Args:
        nodes: Finalized nodes in display order
        project_id: Shown on the summary sheet
        reconciliation: 100% rule result to include, if any

    Returns:
        BytesIO containing Excel workbook
    """
    wb = Workbook()

    # Remove default sheet
    if "Sheet" in wb.sheetnames:
        wb.remove(wb["Sheet"])

    _create_wbs_sheet(wb, nodes)
    _create_summary_sheet(wb, nodes, project_id, reconciliation)

    output = BytesIO()
    wb.save(output)
    output.seek(0)

    return output


def _cell_value(node: WBSNode, attr: str):
    value = getattr(node, attr)
    if attr == "level":
        return int(value)
    if hasattr(value, "value"):  # enums
        return value.value
    return value


def _create_wbs_sheet(wb: Workbook, nodes: Sequence[WBSNode]) -> None:
    ws = wb.create_sheet("WBS", 0)

    for col, (header, _, width) in enumerate(WBS_COLUMNS, 1):
        cell = ws.cell(row=1, column=col, value=header)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        ws.column_dimensions[get_column_letter(col)].width = width
    ws.freeze_panes = "A2"

    for row, node in enumerate(nodes, 2):
        for col, (_, attr, _) in enumerate(WBS_COLUMNS, 1):
            cell = ws.cell(row=row, column=col, value=_cell_value(node, attr))
            if attr in _MONEY_ATTRS:
                cell.number_format = MONEY_FORMAT
            elif attr in _HOUR_ATTRS:
                cell.number_format = HOURS_FORMAT
            elif attr == "description":
                cell.alignment = Alignment(indent=int(node.level) - 1)

            if node.level <= WBSLevel.GROUP:
                cell.font = Font(bold=True)
                if node.level == WBSLevel.GROUP:
                    cell.fill = GROUP_FILL

    ws.auto_filter.ref = f"A1:{get_column_letter(len(WBS_COLUMNS))}{max(len(nodes) + 1, 1)}"


def _create_summary_sheet(
    wb: Workbook,
    nodes: Sequence[WBSNode],
    project_id: str | None,
    reconciliation: ReconciliationReport | None,
) -> None:
    ws = wb.create_sheet("Summary")

    ws["A1"] = "WBS Budget Summary"
    ws["A1"].font = Font(bold=True, size=16)
    ws["A3"] = "Project:"
    ws["B3"] = project_id or "-"
    ws["A4"] = "Generated:"
    ws["B4"] = datetime.now().strftime("%Y-%m-%d %H:%M")

    roots = [n for n in nodes if n.parent_code is None]
    leaves = [n for n in nodes if n.level == WBSLevel.LINE_ITEM]

    row = 6
    for col, header in enumerate(("Bucket", "Amount"), 1):
        cell = ws.cell(row=row, column=col, value=header)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT

    for bucket, attr in BUCKET_FIELDS.items():
        row += 1
        ws.cell(row=row, column=1, value=bucket.value.title())
        ws.cell(row=row, column=2, value=sum((getattr(r, attr) for r in roots), ZERO)).number_format = MONEY_FORMAT

    row += 1
    ws.cell(row=row, column=1, value="Total").font = Font(bold=True)
    total_cell = ws.cell(row=row, column=2, value=sum((r.budget_total for r in roots), ZERO))
    total_cell.number_format = MONEY_FORMAT
    total_cell.font = Font(bold=True)

    row += 2
    ws.cell(row=row, column=1, value="WBS nodes")
    ws.cell(row=row, column=2, value=len(nodes))
    row += 1
    ws.cell(row=row, column=1, value="Line items")
    ws.cell(row=row, column=2, value=len(leaves))

    if reconciliation is not None:
        row += 2
        ws.cell(row=row, column=1, value="Project total").font = Font(bold=True)
        ws.cell(row=row, column=2, value=reconciliation.project_total).number_format = MONEY_FORMAT
        row += 1
        ws.cell(row=row, column=1, value="Variance")
        ws.cell(row=row, column=2, value=reconciliation.variance).number_format = MONEY_FORMAT
        row += 1
        ws.cell(row=row, column=1, value=reconciliation.message)

    ws.column_dimensions["A"].width = 30
    ws.column_dimensions["B"].width = 20
