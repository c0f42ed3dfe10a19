"""Unit tests for WBS tree construction and rollup."""

from __future__ import annotations

import random
from decimal import Decimal

import pytest

from wbscalc.errors import BuildStateError, WBSImportError
from wbscalc.ingestion.catalogs import DIRECT_LABOR_CATEGORIES, INDIRECT_ROLES
from wbscalc.models import (
    CostType,
    DirectLaborAllocation,
    LineItemAllocation,
    PhaseAllocation,
    ProjectPhase,
    WBSLevel,
    WBSNode,
)
from wbscalc.wbs.builder import BuildState, WBSTreeBuilder
from wbscalc.wbs.codes import direct_labor_code
from wbscalc.wbs.validation import HierarchyValidator


def direct(discipline: str, category: str, manhours: int, rate: int = 80, row: int = 3):
    return DirectLaborAllocation(
        source_sheet="DIRECTS",
        source_row=row,
        discipline=discipline,
        category=category,
        manhours=Decimal(manhours),
        rate=Decimal(rate),
        total_cost=Decimal(manhours * rate),
        crew_size=4,
        duration_days=1,
        wbs_code=direct_labor_code(discipline, category),
    )


def staff(phase: ProjectPhase, role: str, total: int, row: int = 3):
    return PhaseAllocation(
        source_sheet="STAFF",
        source_row=row,
        discipline="GENERAL STAFFING",
        phase=phase,
        role=role,
        fte=Decimal("1"),
        duration_months=1,
        monthly_rate=Decimal(total),
        indirect_hours=Decimal("173"),
        total_cost=Decimal(total),
    )


def line(sheet: str, discipline: str, cost_type: CostType, total: int, description: str = "Item"):
    return LineItemAllocation(
        source_sheet=sheet,
        source_row=5,
        discipline=discipline,
        category=cost_type.label,
        description=description,
        total_cost=Decimal(total),
        cost_type=cost_type,
    )


@pytest.fixture
def builder() -> WBSTreeBuilder:
    return WBSTreeBuilder()


class TestStages:
    def test_seeded_skeleton(self, builder):
        ctx = builder.build([])

        assert ctx.state == BuildState.FINALIZED
        assert [n.code for n in ctx.roots] == ["1"]
        assert len(ctx.nodes) == 15
        assert [c.code for c in ctx.nodes["1.1"].children] == [f"1.1.{i}" for i in range(1, 14)]
        assert ctx.total == Decimal("0")

    def test_stage_cannot_be_skipped(self, builder):
        ctx = builder.new_context()

        with pytest.raises(BuildStateError) as exc_info:
            builder.populate(ctx, [])

        assert exc_info.value.expected == "GROUPS_SEEDED"
        assert exc_info.value.found == "EMPTY"

    def test_stage_cannot_be_reentered(self, builder):
        ctx = builder.new_context()
        builder.seed_groups(ctx)

        with pytest.raises(BuildStateError, match="seed_groups"):
            builder.seed_groups(ctx)

    def test_finalized_build_rejects_more_rollups(self, builder):
        ctx = builder.build([direct("PIPING", "Helper", 10)])

        with pytest.raises(BuildStateError):
            builder.roll_up(ctx)

    def test_orphan_is_rejected(self, builder):
        ctx = builder.new_context()
        builder.seed_groups(ctx)
        builder.populate(ctx, [])
        ctx.add_node(WBSNode(code="1.1.99.1", parent_code="1.1.99", level=WBSLevel.CATEGORY))

        with pytest.raises(WBSImportError, match="no parent"):
            builder.link(ctx)

    def test_duplicate_node_is_rejected(self, builder):
        ctx = builder.new_context()
        builder.seed_groups(ctx)

        with pytest.raises(WBSImportError, match="Duplicate WBS code 1.1.9"):
            ctx.add_node(WBSNode(code="1.1.9", parent_code="1.1", level=WBSLevel.GROUP))


class TestPlacement:
    def test_direct_labor_leaf(self, builder):
        ctx = builder.build([direct("PIPING", "Welder - Class A", 1000, 90, row=40)])

        leaf = ctx.nodes["1.1.9.4.1.38"]
        assert leaf.level == WBSLevel.LINE_ITEM
        assert leaf.labor_cost == Decimal("90000")
        assert leaf.manhours == Decimal("1000")
        assert leaf.source_row == 40
        assert ctx.nodes["1.1.9.4"].description == "PIPING"
        assert ctx.nodes["1.1.9.4.1"].cost_type == CostType.DL
        assert ctx.warnings == []

    def test_phases_are_created_lazily(self, builder):
        ctx = builder.build([staff(ProjectPhase.PROJECT_EXECUTION, "Superintendent", 40000)])

        assert "1.1.1.3" in ctx.nodes
        assert "1.1.1.1" not in ctx.nodes
        assert ctx.nodes["1.1.1.3.2.22"].indirect_hours == Decimal("173")
        assert ctx.nodes["1.1.1"].budget_total == Decimal("40000")

    def test_repeated_role_is_merged(self, builder):
        ctx = builder.build(
            [
                staff(ProjectPhase.JOB_SET_UP, "Clerk", 4000, row=3),
                staff(ProjectPhase.JOB_SET_UP, "Clerk", 1000, row=4),
            ]
        )

        clerk = ctx.nodes["1.1.1.1.2.02"]
        assert clerk.budget_total == Decimal("5000")
        assert clerk.fte == Decimal("2")
        assert ctx.warnings == ["STAFF row 4: merged into existing 1.1.1.1.2.02 (Clerk)"]

    def test_dynamic_discipline_avoids_reserved_indices(self, builder):
        ctx = builder.build(
            [
                line("GENERAL EQUIPMENT", "GENERAL", CostType.EQ, 500),
                direct("PIPING", "Helper", 10),
            ]
        )

        assert ctx.nodes["1.1.9.2"].discipline == "GENERAL"
        assert "1.1.9.2.4.1" in ctx.nodes
        assert "1.1.9.4.1.18" in ctx.nodes

    def test_disciplines_share_their_node_across_cost_types(self, builder):
        ctx = builder.build(
            [
                direct("PIPING", "Helper", 10),
                line("MATERIALS", "PIPING", CostType.MAT, 300),
                line("SUBS", "PIPING", CostType.SUB, 200),
            ]
        )

        piping = ctx.nodes["1.1.9.4"]
        assert [c.code for c in piping.children] == ["1.1.9.4.1", "1.1.9.4.3", "1.1.9.4.5"]
        assert piping.labor_cost == Decimal("800")
        assert piping.material_cost == Decimal("300")
        assert piping.subcontract_cost == Decimal("200")
        assert piping.budget_total == Decimal("1300")

    def test_line_items_get_sequential_codes(self, builder):
        ctx = builder.build(
            [
                line("CONSTRUCTABILITY", "CONSTRUCTABILITY", CostType.OTHER, 100, "Drug screens"),
                line("CONSTRUCTABILITY", "CONSTRUCTABILITY", CostType.OTHER, 50, "Badges"),
            ]
        )

        assert ctx.nodes["1.1.3.1.6.1"].description == "Other: Drug screens"
        assert ctx.nodes["1.1.3.1.6.2"].other_cost == Decimal("50")

    def test_unknown_catalog_entry_gets_code_past_catalog(self, builder):
        allocation = direct("PIPING", "Helper", 10).model_copy(update={"category": "Rigger", "wbs_code": None})

        ctx = builder.build([allocation])

        assert f"1.1.9.4.1.{len(DIRECT_LABOR_CATEGORIES) + 1}" in ctx.nodes

    def test_provisional_code_mismatch_warns(self, builder):
        allocation = direct("PIPING", "Helper", 10).model_copy(update={"wbs_code": "1.1.9.9.1.18"})

        ctx = builder.build([allocation])

        assert ctx.warnings == ["DIRECTS row 3: code 1.1.9.9.1.18 placed at 1.1.9.4.1.18"]


class TestRollup:
    def test_hours_stay_none_where_no_child_has_them(self, builder):
        ctx = builder.build([line("MATERIALS", "STEEL", CostType.MAT, 100), direct("PIPING", "Helper", 10)])

        assert ctx.nodes["1.1.9.1"].manhours is None
        assert ctx.nodes["1.1.9"].manhours == Decimal("10")
        assert ctx.nodes["1"].manhours == Decimal("10")

    def test_random_trees_roll_up_exactly(self, builder):
        rng = random.Random(20240611)
        disciplines = ["PIPING", "STEEL", "CIVIL", "ELECTRICAL", "INSULATION", "SCAFFOLDING", "WIDGETS"]
        validator = HierarchyValidator()

        for _ in range(25):
            allocations = []
            for _ in range(rng.randint(1, 60)):
                choice = rng.random()
                if choice < 0.4:
                    allocations.append(
                        direct(rng.choice(disciplines), rng.choice(DIRECT_LABOR_CATEGORIES), rng.randint(1, 2000))
                    )
                elif choice < 0.6:
                    allocations.append(
                        staff(rng.choice(list(ProjectPhase)), rng.choice(INDIRECT_ROLES), rng.randint(1, 50000))
                    )
                else:
                    cost_type = rng.choice([CostType.MAT, CostType.EQ, CostType.SUB, CostType.OTHER])
                    allocations.append(line("SUBS", rng.choice(disciplines), cost_type, rng.randint(1, 90000)))

            ctx = builder.build(allocations)
            expected = sum((a.total_cost for a in allocations), Decimal("0"))

            assert ctx.total == expected
            assert validator.verify_rollup(ctx.flat) == []
            assert validator.verify_code_prefixes(ctx.flat) == []
            assert len({n.code for n in ctx.flat}) == len(ctx.nodes)
            assert all(n.level == WBSLevel.LINE_ITEM for n in ctx.flat if n.is_leaf and n.source_sheet)

            shuffled = list(allocations)
            rng.shuffle(shuffled)
            assert builder.build(shuffled).total == expected
