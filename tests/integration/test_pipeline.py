"""Integration tests for the budget import pipeline.

Tests:
1. Full import of an in-memory workbook: placement, totals, skips
2. Reconciliation against BUDGETS and caller-supplied totals
3. Failure isolation: broken optional sheets, missing/broken required sheets
4. The same import from a real .xlsx file
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from conftest import SAMPLE_TOTAL, build_subs, write_xlsx

from wbscalc.config import ImportConfig
from wbscalc.errors import MissingSheetError, StructuralValidationError
from wbscalc.ingestion.workbook import Workbook, load_workbook
from wbscalc.models import SheetType, WBSLevel
from wbscalc.pipeline.orchestrator import BudgetImportPipeline, find_sheet
from wbscalc.pipeline.types import ImportStatus


@pytest.fixture
def pipeline() -> BudgetImportPipeline:
    return BudgetImportPipeline()


def test_full_import(pipeline, sample_workbook, project_id):
    outcome = pipeline.run(sample_workbook, project_id=project_id)

    assert outcome.status == ImportStatus.SUCCESS
    assert outcome.tree_total == SAMPLE_TOTAL
    assert len(outcome.allocations) == 15
    assert len([n for n in outcome.nodes if n.level == WBSLevel.LINE_ITEM]) == 15
    assert outcome.reconciliation.total_source == "tree"
    assert outcome.reconciliation.is_balanced
    assert outcome.sheets["BUDGETS"].status == ImportStatus.SKIPPED
    assert outcome.disciplines == [
        "PIPING",
        "STEEL",
        "GENERAL STAFFING",
        "INSULATION",
        "CONSTRUCTABILITY",
        "GENERAL",
    ]


def test_nodes_land_where_expected(pipeline, sample_workbook):
    outcome = pipeline.run(sample_workbook)

    expected = {
        "1.1.9.4.1.38": Decimal("90000"),  # Welder - Class A, PIPING
        "1.1.9.4.1.18": Decimal("9000"),  # Helper at standard rate
        "1.1.9.1.1.22": Decimal("40000"),  # Ironworker - Class A, STEEL
        "1.1.1.1.2.13": Decimal("24000"),  # Project Manager, job set up
        "1.1.1.3.2.22": Decimal("40000"),  # Superintendent, project
        "1.1.9.4.3.1": Decimal("10000"),
        "1.1.9.1.3.1": Decimal("5000"),
        "1.1.13.1.5.1": Decimal("15000"),
        "1.1.9.4.5.1": Decimal("3500"),
        "1.1.3.1.6.1": Decimal("1500"),
        "1.1.9.2.4.1": Decimal("6500"),
        "1.1.9.4.4.1": Decimal("1200"),
    }
    for code, total in expected.items():
        assert outcome.node(code).budget_total == total, code

    piping = outcome.node("1.1.9.4")
    assert piping.labor_cost == Decimal("99000")
    assert piping.material_cost == Decimal("12800")
    assert piping.equipment_cost == Decimal("1200")
    assert piping.subcontract_cost == Decimal("3500")
    assert piping.manhours == Decimal("1200")

    root = outcome.roots[0]
    assert root.labor_cost == Decimal("203000")
    assert root.other_cost == Decimal("1850")
    assert root.fte == Decimal("2")


def test_skips_and_warnings_are_reported(pipeline, sample_workbook):
    outcome = pipeline.run(sample_workbook)

    assert outcome.skip_count == 75 + 2
    assert "CONSTRUCTABILITY: Expected 7 categories, found 2" in outcome.warnings
    assert not any("placed at" in w for w in outcome.warnings)


def test_identical_imports_produce_identical_trees(pipeline, sample_workbook):
    first = pipeline.run(sample_workbook)
    second = pipeline.run(sample_workbook)

    assert [n.to_record() for n in first.nodes] == [n.to_record() for n in second.nodes]


def test_budgets_sheet_supplies_project_total(pipeline, sample_sheets, budgets_grid):
    workbook = Workbook({**sample_sheets, "BUDGETS": budgets_grid})

    outcome = pipeline.run(workbook)

    assert outcome.reconciliation.total_source == "BUDGETS"
    assert outcome.reconciliation.project_total == SAMPLE_TOTAL
    assert outcome.reconciliation.is_balanced
    assert outcome.warnings == ["CONSTRUCTABILITY: Expected 7 categories, found 2"]


def test_caller_total_wins_and_variance_is_a_warning(pipeline, sample_sheets, budgets_grid):
    workbook = Workbook({**sample_sheets, "BUDGETS": budgets_grid})

    outcome = pipeline.run(workbook, project_total=SAMPLE_TOTAL + Decimal("0.01"))

    assert outcome.status == ImportStatus.SUCCESS
    assert outcome.reconciliation.total_source == "caller"
    assert outcome.reconciliation.variance == Decimal("0.01")
    assert outcome.warnings[-1].startswith("WBS total $248,850.00 does not match")


def test_broken_optional_sheet_is_isolated(pipeline, sample_sheets):
    sample_sheets["SUBS"] = [["nothing useful here"]]

    outcome = pipeline.run(Workbook(sample_sheets))

    assert outcome.status == ImportStatus.PARTIAL_SUCCESS
    assert outcome.failed_sheets == ["SUBS"]
    assert outcome.sheets["SUBS"].allocations == []
    assert outcome.tree_total == SAMPLE_TOTAL - Decimal("18500")
    assert "failed sheets: SUBS" in outcome.message


def test_missing_required_sheet(pipeline, sample_sheets):
    del sample_sheets["DIRECTS"]

    with pytest.raises(MissingSheetError, match="DIRECTS"):
        pipeline.run(Workbook(sample_sheets))


def test_broken_required_sheet(pipeline, sample_sheets):
    sample_sheets["DIRECTS"] = sample_sheets["DIRECTS"][:5]

    with pytest.raises(StructuralValidationError):
        pipeline.run(Workbook(sample_sheets))


def test_required_sheets_are_configurable(sample_sheets):
    del sample_sheets["DIRECTS"]
    pipeline = BudgetImportPipeline(ImportConfig(required_sheets=("STAFF",)))

    outcome = pipeline.run(Workbook(sample_sheets))

    assert outcome.sheets["DIRECTS"].status == ImportStatus.SKIPPED
    assert outcome.tree_total == SAMPLE_TOTAL - Decimal("139000")


def test_sheet_aliases(sample_sheets, equipment_grid):
    workbook = Workbook(
        {
            "directs ": sample_sheets["DIRECTS"],
            "SUBCONTRACTS": build_subs([("Acme", "Scope", "PIPING", 10)]),
            "DISC.EQUIPMENT": equipment_grid,
        }
    )

    assert find_sheet(workbook, SheetType.DIRECTS) == "directs "
    assert find_sheet(workbook, SheetType.SUBS) == "SUBCONTRACTS"
    assert find_sheet(workbook, SheetType.DISC_EQUIPMENT) == "DISC.EQUIPMENT"
    assert find_sheet(workbook, SheetType.STAFF) is None

    outcome = BudgetImportPipeline().run(workbook)
    assert outcome.sheets["DISC. EQUIPMENT"].total_cost == Decimal("7700")


def test_import_from_xlsx(tmp_path, sample_sheets, project_id):
    path = tmp_path / "budget.xlsx"
    write_xlsx(path, sample_sheets)

    workbook = load_workbook(path)
    outcome = BudgetImportPipeline().run(workbook, project_id=project_id)

    assert workbook.source == str(path)
    assert outcome.status == ImportStatus.SUCCESS
    assert outcome.tree_total == SAMPLE_TOTAL
    assert outcome.node("1.1.9.4.1.38").budget_total == Decimal("90000")


def test_load_workbook_rejects_bad_input(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_workbook(tmp_path / "missing.xlsx")

    csv = tmp_path / "budget.csv"
    csv.write_text("a,b\n")
    with pytest.raises(ValueError, match="Unsupported file format"):
        load_workbook(csv)
