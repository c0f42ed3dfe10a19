"""Five-level WBS tree construction.

A build is a fixed sequence of stages over an explicit BuildContext:

    EMPTY -> GROUPS_SEEDED -> LINE_ITEMS_POPULATED
          -> RELATIONSHIPS_LINKED -> ROLLED_UP -> FINALIZED

Each stage checks the state it expects and refuses to run otherwise, so a
stage can be neither skipped nor re-entered. Rollup always recomputes
internal nodes from their children, which makes the order allocations are
populated in irrelevant to the totals.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from wbscalc.errors import BuildStateError, WBSImportError
from wbscalc.ingestion.catalogs import DIRECT_LABOR_CATEGORIES, INDIRECT_ROLES, category_index
from wbscalc.models import (
    BUCKET_FIELDS,
    HOUR_FIELDS,
    ZERO,
    Allocation,
    CostType,
    DirectLaborAllocation,
    LineItemAllocation,
    PhaseAllocation,
    ProjectPhase,
    WBSLevel,
    WBSNode,
)
from wbscalc.wbs.catalog import (
    GENERAL_STAFFING_GROUP,
    MAJOR_GROUPS,
    PHASE_CODE,
    PHASE_DESCRIPTION,
    ROOT_CODE,
    ROOT_DESCRIPTION,
    reserved_indices,
)
from wbscalc.wbs.codes import (
    CodeCounter,
    cost_type_code,
    group_code_for,
    has_fixed_index,
    join_code,
    phase_code,
    sub_discipline_index,
)

logger = logging.getLogger(__name__)

# Summed on rollup only when at least one child carries a value
OPTIONAL_ROLLUP_FIELDS = HOUR_FIELDS + ("fte",)

# Dynamic leaves under a catalog-coded parent start past the catalog
_DYNAMIC_LEAF_START = {
    CostType.DL: len(DIRECT_LABOR_CATEGORIES) + 1,
    CostType.IL: len(INDIRECT_ROLES) + 1,
}


class BuildState(str, Enum):
    """Stages of a WBS build, in the only order they may run."""

    EMPTY = "EMPTY"
    GROUPS_SEEDED = "GROUPS_SEEDED"
    LINE_ITEMS_POPULATED = "LINE_ITEMS_POPULATED"
    RELATIONSHIPS_LINKED = "RELATIONSHIPS_LINKED"
    ROLLED_UP = "ROLLED_UP"
    FINALIZED = "FINALIZED"


@dataclass
class BuildContext:
    """Everything one build owns: nodes by code, counters, state and warnings."""

    project_id: str | None = None
    state: BuildState = BuildState.EMPTY
    nodes: dict[str, WBSNode] = field(default_factory=dict)
    counter: CodeCounter = field(default_factory=CodeCounter)
    roots: list[WBSNode] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    allocation_count: int = 0
    discipline_index: dict[tuple[str, str], str] = field(default_factory=dict)  # (group, discipline) -> code

    def transition(self, stage: str, expected: BuildState, target: BuildState) -> None:
        if self.state != expected:
            raise BuildStateError(stage, expected.value, self.state.value)
        self.state = target

    def add_node(self, node: WBSNode) -> WBSNode:
        if node.code in self.nodes:
            raise WBSImportError(f"Duplicate WBS code {node.code}")
        node.sort_order = len(self.nodes)
        self.nodes[node.code] = node
        return node

    @property
    def flat(self) -> list[WBSNode]:
        """All nodes in creation order."""
        return sorted(self.nodes.values(), key=lambda n: n.sort_order)

    @property
    def total(self) -> Decimal:
        return sum((root.budget_total for root in self.roots), ZERO)


def _add(a: Decimal | None, b: Decimal | None) -> Decimal | None:
    if a is None:
        return b
    if b is None:
        return a
    return a + b


class WBSTreeBuilder:
    """Builds the WBS tree from allocation records."""

    def new_context(self, project_id: str | None = None) -> BuildContext:
        return BuildContext(project_id=project_id)

    def build(self, allocations: Iterable[Allocation], project_id: str | None = None) -> BuildContext:
        """Run every stage in order and return the finalized context."""
        ctx = self.new_context(project_id)
        self.seed_groups(ctx)
        self.populate(ctx, allocations)
        self.link(ctx)
        self.roll_up(ctx)
        self.finalize(ctx)
        return ctx

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def seed_groups(self, ctx: BuildContext) -> None:
        """Create the project root, the phase node and the 13 major groups."""
        ctx.transition("seed_groups", BuildState.EMPTY, BuildState.GROUPS_SEEDED)

        ctx.add_node(WBSNode(code=ROOT_CODE, level=WBSLevel.PROJECT, description=ROOT_DESCRIPTION))
        ctx.add_node(
            WBSNode(
                code=PHASE_CODE,
                parent_code=ROOT_CODE,
                level=WBSLevel.PHASE,
                description=PHASE_DESCRIPTION,
            )
        )
        for group in MAJOR_GROUPS:
            ctx.add_node(
                WBSNode(
                    code=group.code,
                    parent_code=PHASE_CODE,
                    level=WBSLevel.GROUP,
                    description=group.name,
                    discipline=group.key,
                )
            )

    def populate(self, ctx: BuildContext, allocations: Iterable[Allocation]) -> None:
        """Create each allocation's ancestor chain on demand, then its leaf."""
        ctx.transition("populate", BuildState.GROUPS_SEEDED, BuildState.LINE_ITEMS_POPULATED)

        for allocation in allocations:
            if isinstance(allocation, DirectLaborAllocation):
                leaf = self._add_direct_labor(ctx, allocation)
            elif isinstance(allocation, PhaseAllocation):
                leaf = self._add_phase_role(ctx, allocation)
            elif isinstance(allocation, LineItemAllocation):
                leaf = self._add_line_item(ctx, allocation)
            else:
                raise TypeError(f"Unsupported allocation type: {type(allocation).__name__}")

            ctx.allocation_count += 1
            if allocation.wbs_code and allocation.wbs_code != leaf.code:
                ctx.warnings.append(
                    f"{allocation.source_sheet} row {allocation.source_row}: "
                    f"code {allocation.wbs_code} placed at {leaf.code}"
                )

        logger.info(
            "Populated %d allocations into %d nodes", ctx.allocation_count, len(ctx.nodes)
        )

    def link(self, ctx: BuildContext) -> None:
        """Derive every node's children from parent codes, once."""
        ctx.transition("link", BuildState.LINE_ITEMS_POPULATED, BuildState.RELATIONSHIPS_LINKED)

        for node in ctx.nodes.values():
            node.children = []
        for node in ctx.flat:
            if node.parent_code is None:
                continue
            parent = ctx.nodes.get(node.parent_code)
            if parent is None:
                raise WBSImportError(f"Node {node.code} has no parent {node.parent_code}")
            parent.children.append(node)

    def roll_up(self, ctx: BuildContext) -> None:
        """Overwrite every internal node with the sum over its children.

        Nodes are visited deepest code first. Levels alone are not enough
        because a cost-type node shares level 4 with its discipline parent.
        """
        ctx.transition("roll_up", BuildState.RELATIONSHIPS_LINKED, BuildState.ROLLED_UP)

        for node in sorted(ctx.nodes.values(), key=lambda n: -len(n.path)):
            if not node.children:
                continue
            for name in BUCKET_FIELDS.values():
                setattr(node, name, sum((getattr(c, name) for c in node.children), ZERO))
            node.budget_total = sum((c.budget_total for c in node.children), ZERO)
            for name in OPTIONAL_ROLLUP_FIELDS:
                values = [getattr(c, name) for c in node.children if getattr(c, name) is not None]
                setattr(node, name, sum(values, ZERO) if values else None)

    def finalize(self, ctx: BuildContext) -> list[WBSNode]:
        """Freeze the build and return the root set in display order."""
        ctx.transition("finalize", BuildState.ROLLED_UP, BuildState.FINALIZED)
        ctx.roots = sorted(
            (n for n in ctx.nodes.values() if n.parent_code is None), key=lambda n: n.sort_order
        )
        return ctx.roots

    # ------------------------------------------------------------------
    # Ancestor chains
    # ------------------------------------------------------------------

    def _discipline_node(self, ctx: BuildContext, group_code: str, discipline: str) -> WBSNode:
        key = (group_code, discipline)
        if key in ctx.discipline_index:
            return ctx.nodes[ctx.discipline_index[key]]

        code = None
        if has_fixed_index(discipline) and group_code_for(discipline) == group_code:
            code = join_code(group_code, sub_discipline_index(discipline))
        if code is None or code in ctx.nodes:
            code = ctx.counter.next_code(
                group_code, reserved=reserved_indices(group_code), taken=ctx.nodes
            )

        node = ctx.add_node(
            WBSNode(
                code=code,
                parent_code=group_code,
                level=WBSLevel.CATEGORY,
                description=discipline,
                discipline=discipline,
            )
        )
        ctx.discipline_index[key] = code
        return node

    def _phase_node(self, ctx: BuildContext, phase: ProjectPhase) -> WBSNode:
        code = phase_code(phase)
        if code in ctx.nodes:
            return ctx.nodes[code]
        return ctx.add_node(
            WBSNode(
                code=code,
                parent_code=GENERAL_STAFFING_GROUP,
                level=WBSLevel.CATEGORY,
                description=phase.label,
                discipline="GENERAL STAFFING",
                phase=phase,
            )
        )

    def _cost_type_node(self, ctx: BuildContext, parent: WBSNode, cost_type: CostType) -> WBSNode:
        code = cost_type_code(parent.code, cost_type)
        if code in ctx.nodes:
            return ctx.nodes[code]
        return ctx.add_node(
            WBSNode(
                code=code,
                parent_code=parent.code,
                level=WBSLevel.CATEGORY,
                description=cost_type.label,
                discipline=parent.discipline,
                phase=parent.phase,
                cost_type=cost_type,
            )
        )

    def _dynamic_leaf_code(self, ctx: BuildContext, parent: WBSNode) -> str:
        start = _DYNAMIC_LEAF_START.get(parent.cost_type, 1)
        return ctx.counter.next_code(parent.code, taken=ctx.nodes, start=start)

    # ------------------------------------------------------------------
    # Leaves
    # ------------------------------------------------------------------

    def _add_direct_labor(self, ctx: BuildContext, allocation: DirectLaborAllocation) -> WBSNode:
        group = group_code_for(allocation.discipline, allocation.source_sheet)
        parent = self._cost_type_node(
            ctx, self._discipline_node(ctx, group, allocation.discipline), CostType.DL
        )
        index = category_index(allocation.category, DIRECT_LABOR_CATEGORIES)
        code = join_code(parent.code, f"{index:02d}") if index else self._dynamic_leaf_code(ctx, parent)
        return self._leaf(
            ctx,
            code,
            parent,
            allocation,
            description=allocation.category,
            manhours=allocation.manhours,
            direct_hours=allocation.manhours,
            crew_size=allocation.crew_size,
            duration_days=allocation.duration_days,
        )

    def _add_phase_role(self, ctx: BuildContext, allocation: PhaseAllocation) -> WBSNode:
        parent = self._cost_type_node(ctx, self._phase_node(ctx, allocation.phase), CostType.IL)
        index = category_index(allocation.role, INDIRECT_ROLES)
        code = join_code(parent.code, f"{index:02d}") if index else self._dynamic_leaf_code(ctx, parent)
        return self._leaf(
            ctx,
            code,
            parent,
            allocation,
            description=allocation.role,
            indirect_hours=allocation.indirect_hours,
            fte=allocation.fte,
        )

    def _add_line_item(self, ctx: BuildContext, allocation: LineItemAllocation) -> WBSNode:
        group = group_code_for(allocation.discipline, allocation.source_sheet)
        parent = self._cost_type_node(
            ctx,
            self._discipline_node(ctx, group, allocation.discipline),
            allocation.cost_type,
        )
        description = allocation.description
        if allocation.category and not description.startswith(allocation.category):
            description = f"{allocation.category}: {description}" if description else allocation.category
        return self._leaf(
            ctx, self._dynamic_leaf_code(ctx, parent), parent, allocation, description=description
        )

    def _leaf(
        self,
        ctx: BuildContext,
        code: str,
        parent: WBSNode,
        allocation: Allocation,
        description: str,
        **metrics,
    ) -> WBSNode:
        bucket_field = BUCKET_FIELDS[allocation.bucket]
        existing = ctx.nodes.get(code)
        if existing is not None:
            # Same catalog slot listed twice (e.g. a role repeated within a phase)
            setattr(existing, bucket_field, getattr(existing, bucket_field) + allocation.total_cost)
            existing.budget_total = existing.bucket_sum()
            for name in OPTIONAL_ROLLUP_FIELDS:
                if name in metrics:
                    setattr(existing, name, _add(getattr(existing, name), metrics[name]))
            ctx.warnings.append(
                f"{allocation.source_sheet} row {allocation.source_row}: "
                f"merged into existing {code} ({existing.description})"
            )
            return existing

        node = WBSNode(
            code=code,
            parent_code=parent.code,
            level=WBSLevel.LINE_ITEM,
            description=description,
            discipline=allocation.discipline,
            phase=getattr(allocation, "phase", None),
            cost_type=allocation.cost_type,
            source_sheet=allocation.source_sheet,
            source_row=allocation.source_row,
            **metrics,
        )
        setattr(node, bucket_field, allocation.total_cost)
        node.budget_total = node.bucket_sum()
        return ctx.add_node(node)
