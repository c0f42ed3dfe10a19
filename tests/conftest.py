"""Pytest configuration and fixtures for wbscalc tests.

Sheets are built as plain grids (lists of rows, 0-based) laid out the way
the estimate template lays them out, so parsers can be tested without
touching Excel files.
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from openpyxl import Workbook as ExcelWorkbook

from wbscalc.config import reset_config
from wbscalc.ingestion.catalogs import BUDGET_CATEGORIES, DIRECT_LABOR_CATEGORIES
from wbscalc.ingestion.workbook import Workbook

STAFF_WIDTH = 25  # A..Y
EQUIPMENT_WIDTH = 19  # A..S

# The sample workbook's detail sheets add up to this
SAMPLE_TOTAL = Decimal("248850")


def _pad(row: list, width: int) -> list:
    return row + [None] * (width - len(row))


def build_directs(disciplines: list[str], cells: dict | None = None) -> list[list]:
    """DIRECTS grid; ``cells`` maps (category, discipline) -> (manhours, rate)."""
    cells = cells or {}
    header = ["CRAFT", None]
    units = [None, None]
    for discipline in disciplines:
        header += [discipline, None]
        units += ["MH", "RATE"]

    grid = [header, units]
    for category in DIRECT_LABOR_CATEGORIES:
        row = [category, None]
        for discipline in disciplines:
            manhours, rate = cells.get((category, discipline), (None, None))
            row += [manhours, rate]
        grid.append(row)
    grid.append(["TOTAL"])
    return grid


def build_staff(phases: dict[str, list[tuple]]) -> list[list]:
    """STAFF grid; each phase header is followed by (role, fte, weeks, total, perdiem) rows."""
    grid = [["CLASSIFICATION", "PHASE", "QTY", "WEEKS"]]
    for header, roles in phases.items():
        grid.append([None, header])
        for role, fte, weeks, total, perdiem in roles:
            row = _pad([role, None, fte, weeks], STAFF_WIDTH)
            row[22] = perdiem
            row[24] = total
            grid.append(row)
    return grid


def build_materials(sections: dict[str, tuple]) -> list[list]:
    """MATERIALS grid; each section is (taxed, taxes, non_taxed) amounts."""
    grid = [["MATERIALS SUMMARY"]]
    for discipline, (taxed, taxes, non_taxed) in sections.items():
        block = [
            [None, discipline],
            [None, None, None, "MATERIALS FROM TAKE OFF SHEET - TAXED", None, None, taxed],
            [None, None, None, "TAXES ON MATERIALS LISTED ABOVE", None, None, taxes],
            [None, None, None, "MATERIALS FROM TAKE OFF SHEET - NON-TAXED", None, None, non_taxed],
        ]
        grid.extend(block + [[] for _ in range(8 - len(block))])
    return grid


def build_subs(lines: list[tuple], title_rows: int = 2) -> list[list]:
    """SUBS grid; lines are (contractor, description, discipline, total)."""
    grid = [["SUBCONTRACT SUMMARY"]] + [[] for _ in range(title_rows - 1)]
    grid.append(["#", "SUBCONTRACTOR", "DESCRIPTION", "DISCIPLINE", "TOTAL"])
    for number, (contractor, description, discipline, total) in enumerate(lines, 1):
        grid.append([number, contractor, description, discipline, total])
    grid.append([None, None, "TOTAL", None, None])
    return grid


def build_constructability(categories: dict[str, list[tuple]]) -> list[list]:
    """CONSTRUCTABILITY grid; each header is followed by (description, cost) rows."""
    grid = [["CONSTRUCTABILITY"]]
    for header, items in categories.items():
        grid.append([header])
        for description, cost in items:
            grid.append([None, None, None, description, cost])
    return grid


def build_equipment(rows: list[tuple]) -> list[list]:
    """Equipment grid; rows are (discipline, type, description, equipment, fog, maintenance)."""
    grid = [_pad([None, "DISCIPLINE", "TYPE", "DESCRIPTION", "QTY", "DURATION", "UNIT"], EQUIPMENT_WIDTH)]
    for discipline, equipment_type, description, equipment, fog, maintenance in rows:
        row = _pad([None, discipline, equipment_type, description, 1, 4, "WEEKS"], EQUIPMENT_WIDTH)
        row[16], row[17], row[18] = equipment, fog, maintenance
        grid.append(row)
    return grid


def build_budgets(blocks: list[tuple[int, str, dict[str, tuple]]]) -> list[list]:
    """BUDGETS grid; each block is (number, name, {category: (manhours, value)})."""
    grid = [["DISCIPLINE BUDGETS"], []]
    for number, name, values in blocks:
        for offset, category in enumerate(BUDGET_CATEGORIES):
            manhours, value = values.get(category, (None, None))
            row = [number, name] if offset == 0 else [None, None]
            grid.append(row + [None, category, manhours, value])
        grid.append([])
    return grid


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch):
    """Set up test environment variables."""
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    monkeypatch.delenv("WBS_RATE_OVERRIDES", raising=False)
    monkeypatch.delenv("WBS_REQUIRED_SHEETS", raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def project_id() -> str:
    return "P-1001"


@pytest.fixture
def directs_grid() -> list[list]:
    """PIPING and STEEL with three populated slots (139,000 total)."""
    return build_directs(
        ["PIPING", "STEEL"],
        {
            ("Welder - Class A", "PIPING"): (1000, 90),
            ("Helper", "PIPING"): (200, None),  # standard rate 45
            ("Ironworker - Class A", "STEEL"): (500, 80),
        },
    )


@pytest.fixture
def staff_grid() -> list[list]:
    """Two staffed phases out of four (64,000 total)."""
    return build_staff(
        {
            "JOB SET UP": [("Project Manager", 1, 8.66, 24000, 1500)],
            "PRE-WORK": [],
            "PROJECT": [("Superintendent", 1, 13, None, None)],
            "JOB CLOSE OUT": [],
        }
    )


@pytest.fixture
def materials_grid() -> list[list]:
    """PIPING fully priced, STEEL taxed only (17,800 total)."""
    return build_materials({"PIPING": (10000, 800, 2000), "STEEL": (5000, None, None)})


@pytest.fixture
def subs_grid() -> list[list]:
    return build_subs(
        [
            ("Acme Insulation", "Insulation scope", "INSULATION", 15000),
            ("Hydro Services", "Hydro test", "PIPING", 3500),
        ]
    )


@pytest.fixture
def constructability_grid() -> list[list]:
    return build_constructability(
        {"NEW HIRES": [("Drug screens", 1500)], "SAFETY": [("Safety glasses", 350)]}
    )


@pytest.fixture
def equipment_grid() -> list[list]:
    """One project-wide crane and one PIPING welding machine (7,700 total)."""
    return build_equipment(
        [
            (None, "CRANE", "50T hydraulic crane", 6000, 500, None),
            ("PIPING", "WELDER", "Welding machine", 1200, None, None),
        ]
    )


@pytest.fixture
def budgets_grid() -> list[list]:
    """BUDGETS blocks agreeing with the sample detail sheets."""
    return build_budgets(
        [
            (
                1,
                "PIPING",
                {
                    "DIRECT LABOR": (1200, 99000),
                    "INDIRECT LABOR": (None, 64000),
                    "MATERIALS": (None, 12800),
                    "EQUIPMENT": (None, 1200),
                    "DISCIPLINE TOTALS": (None, 200000),
                },
            ),
            (
                2,
                "STEEL",
                {
                    "DIRECT LABOR": (500, 40000),
                    "MATERIALS": (None, 5000),
                    "DISCIPLINE TOTALS": (None, 48850),
                },
            ),
        ]
    )


@pytest.fixture
def sample_sheets(
    directs_grid,
    staff_grid,
    materials_grid,
    subs_grid,
    constructability_grid,
    equipment_grid,
) -> dict[str, list[list]]:
    return {
        "DIRECTS": directs_grid,
        "STAFF": staff_grid,
        "MATERIALS": materials_grid,
        "SUBS": subs_grid,
        "CONSTRUCTABILITY": constructability_grid,
        "GENERAL EQUIPMENT": equipment_grid,
    }


@pytest.fixture
def sample_workbook(sample_sheets) -> Workbook:
    return Workbook(dict(sample_sheets), source="sample.xlsx")


def write_xlsx(path, sheets: dict[str, list[list]]) -> None:
    """Save grids as a real workbook, one worksheet per grid."""
    wb = ExcelWorkbook()
    wb.remove(wb.active)
    for name, grid in sheets.items():
        ws = wb.create_sheet(name)
        for row_index, row in enumerate(grid, 1):
            for col_index, value in enumerate(row, 1):
                if value is not None:
                    ws.cell(row=row_index, column=col_index, value=value)
    wb.save(path)
