"""Unit tests for the MATERIALS, SUBS, CONSTRUCTABILITY and equipment parsers."""

from __future__ import annotations

from decimal import Decimal

import pytest
from conftest import build_constructability, build_equipment, build_materials, build_subs

from wbscalc.errors import StructuralValidationError
from wbscalc.ingestion.parsers import (
    ConstructabilitySheetParser,
    EquipmentSheetParser,
    MaterialsSheetParser,
    SubsSheetParser,
    get_parser,
)
from wbscalc.ingestion.parsers.constructability import match_category
from wbscalc.ingestion.parsers.materials import is_section_row
from wbscalc.ingestion.parsers.subs import find_header
from wbscalc.models import CostType, SheetType
from wbscalc.pipeline.types import ImportStatus


class TestMaterials:
    def test_section_rows(self):
        assert [i for i in range(30) if is_section_row(i)] == [1, 9, 17, 25]

    def test_amounts_per_discipline(self, materials_grid):
        result = MaterialsSheetParser().parse(materials_grid)

        assert result.disciplines == ["PIPING", "STEEL"]
        assert [(a.discipline, a.category, a.total_cost) for a in result.allocations] == [
            ("PIPING", "Materials - Taxed", Decimal("10000")),
            ("PIPING", "Materials - Taxes", Decimal("800")),
            ("PIPING", "Materials - Non-Taxed", Decimal("2000")),
            ("STEEL", "Materials - Taxed", Decimal("5000")),
        ]
        assert all(a.cost_type == CostType.MAT for a in result.allocations)
        assert result.skip_counts() == {"zero amount": 2}
        assert result.summary["cost_by_discipline"] == {
            "PIPING": Decimal("12800"),
            "STEEL": Decimal("5000"),
        }
        assert result.summary["cost_by_type"]["Taxed"] == Decimal("15000")

    def test_discipline_without_materials_warns(self):
        grid = build_materials({"PIPING": (100, None, None), "CIVIL": (None, None, None)})

        result = MaterialsSheetParser().parse(grid)

        assert result.warnings == ["CIVIL has no materials"]

    def test_negative_amount_skipped(self):
        grid = build_materials({"PIPING": (-100, 5, None)})

        result = MaterialsSheetParser().parse(grid)

        assert result.skip_counts() == {"negative amount": 1, "zero amount": 1}

    def test_no_sections(self):
        with pytest.raises(StructuralValidationError, match="no discipline sections"):
            MaterialsSheetParser().parse([["MATERIALS SUMMARY"], [], []])


class TestSubs:
    def test_header_found_below_title_rows(self, subs_grid):
        header_index, columns = find_header(subs_grid)

        assert header_index == 2
        assert columns == {"contractor": 1, "description": 2, "discipline": 3, "total": 4}

    def test_lines_until_footer(self, subs_grid):
        subs_grid.append([9, "After Footer Inc", "Ignored", "PIPING", 999])

        result = SubsSheetParser().parse(subs_grid)

        assert [(a.discipline, a.description, a.vendor) for a in result.allocations] == [
            ("INSULATION", "Insulation scope", "Acme Insulation"),
            ("PIPING", "Hydro test", "Hydro Services"),
        ]
        assert result.total_cost == Decimal("18500")
        assert all(a.cost_type == CostType.SUB for a in result.allocations)

    def test_missing_discipline_defaults_to_general(self):
        grid = build_subs([("Crane Co", "Heavy lift", None, 7000), ("Nobody", "Cancelled", "PIPING", 0)])

        result = SubsSheetParser().parse(grid)

        assert result.allocations[0].discipline == "GENERAL"
        assert result.skip_counts() == {"zero or negative total": 1}

    def test_no_header(self):
        with pytest.raises(StructuralValidationError, match="header row not found"):
            SubsSheetParser().parse([["SUBCONTRACTS"], ["a", "b", "c"]])


class TestConstructability:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("NEW HIRES", "NEW HIRES"),
            ("Safety", "SAFETY"),
            ("PRE-JOB (temporary facilities)", "PRE-JOB"),
            ("MISC.", "MISC."),
            ("MISCELLANEOUS", None),
            ("PROJECTOR", None),
        ],
    )
    def test_match_category(self, text, expected):
        assert match_category(text) == expected

    def test_items_grouped_under_headers(self, constructability_grid):
        result = ConstructabilitySheetParser().parse(constructability_grid)

        assert [(a.category, a.description, a.total_cost) for a in result.allocations] == [
            ("Constructability - NEW HIRES", "Drug screens", Decimal("1500")),
            ("Constructability - SAFETY", "Safety glasses", Decimal("350")),
        ]
        assert all(a.cost_type == CostType.OTHER for a in result.allocations)
        assert result.warnings == ["Expected 7 categories, found 2"]

    def test_pre_job_maps_to_temporary_facilities(self):
        grid = build_constructability({"PRE-JOB": [("Office trailer", 4200)]})

        result = ConstructabilitySheetParser().parse(grid)

        assert result.allocations[0].category == "Constructability - TEMPORARY FACILITIES"

    def test_costed_row_is_never_a_header(self):
        grid = build_constructability({"SAFETY": [("Safety glasses", 350)]})
        grid.append(["PROJECT signage", None, None, None, 800])

        result = ConstructabilitySheetParser().parse(grid)

        assert [a.category for a in result.allocations] == ["Constructability - SAFETY"] * 2

    def test_no_headers(self):
        grid = [["CONSTRUCTABILITY"], [None, None, None, "Item", 100]]

        with pytest.raises(StructuralValidationError, match="no category headers"):
            ConstructabilitySheetParser().parse(grid)


class TestEquipment:
    def test_costs_are_summed_per_row(self, equipment_grid):
        result = EquipmentSheetParser().parse(equipment_grid)

        crane, welder = result.allocations
        assert crane.discipline == "GENERAL"
        assert crane.total_cost == Decimal("6500")
        assert crane.category == "Equipment - CRANE"
        assert crane.unit == "4 WEEKS"
        assert welder.discipline == "PIPING"
        assert result.summary["project_wide_cost"] == Decimal("6500")
        assert result.summary["fog_cost"] == Decimal("500")
        assert result.total_cost == Decimal("7700")

    def test_civil_alias(self):
        grid = build_equipment([("CIVIL", "LIFT", "Scissor lift", 900, None, None)])

        assert EquipmentSheetParser().parse(grid).allocations[0].discipline == "STEEL"

    def test_uncosted_rows_are_skipped(self):
        grid = build_equipment(
            [("PIPING", "LIFT", "Scissor lift", None, None, None), ("PIPING", "LIFT", "Boom", 500, None, None)]
        )

        result = EquipmentSheetParser().parse(grid)

        assert result.skip_counts() == {"no equipment, F.O.G. or maintenance cost": 1}

    def test_general_equipment_requires_items(self):
        grid = build_equipment([("PIPING", "LIFT", "Scissor lift", None, None, None)])

        with pytest.raises(StructuralValidationError, match="no equipment items"):
            EquipmentSheetParser().parse(grid)

    def test_disc_equipment_tolerates_empty_sheet(self):
        parser = get_parser(SheetType.DISC_EQUIPMENT)
        grid = build_equipment([])
        grid.append([])

        result = parser.run(grid)

        assert result.status == ImportStatus.SUCCESS
        assert result.sheet == "DISC. EQUIPMENT"
        assert result.warnings == ["No equipment items found in DISC. EQUIPMENT"]
