"""WBS hierarchy checks.

The 100% rule and the budget comparisons produce warnings, never errors:
an estimate's summary figures are allowed to lag behind its detail sheets.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Literal

from wbscalc.models import BUCKET_FIELDS, ZERO, ReconciliationReport, SheetType, WBSNode
from wbscalc.pipeline.types import SheetParseResult

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
PROJECT_WIDE = "GENERAL"
STAFF_TOLERANCE_RATIO = Decimal("0.01")

# Detail sheets -> (summary key with per-discipline figures, BUDGETS category, field)
_BUDGET_COMPARISONS: tuple[tuple[tuple[SheetType, ...], str, str, str], ...] = (
    ((SheetType.DIRECTS,), "manhours_by_discipline", "DIRECT LABOR", "manhours"),
    ((SheetType.MATERIALS,), "cost_by_discipline", "MATERIALS", "value"),
    (
        (SheetType.GENERAL_EQUIPMENT, SheetType.DISC_EQUIPMENT),
        "cost_by_discipline",
        "EQUIPMENT",
        "value",
    ),
)


class HierarchyValidator:
    """Checks a finalized WBS tree."""

    def __init__(self, tolerance: Decimal = ZERO):
        self.tolerance = tolerance

    def rollup_variance(self, node: WBSNode) -> Decimal:
        """|node total - sum of its children's totals| (zero for leaves)."""
        if not node.children:
            return ZERO
        return abs(node.budget_total - sum((c.budget_total for c in node.children), ZERO))

    def check_hundred_percent(
        self,
        roots: Iterable[WBSNode],
        project_total: Decimal | None = None,
        total_source: Literal["caller", "BUDGETS", "tree"] = "caller",
    ) -> ReconciliationReport:
        """Compare the tree's bottom-up total to an independently known total.

        Without an independent total the tree is compared to itself, which
        always balances.
        """
        tree_total = sum((root.budget_total for root in roots), ZERO)
        if project_total is None:
            project_total, total_source = tree_total, "tree"

        report = ReconciliationReport(
            project_total=project_total,
            tree_total=tree_total,
            variance=abs(project_total - tree_total),
            tolerance=self.tolerance,
            total_source=total_source,
        )
        if report.is_balanced:
            logger.info(report.message)
        else:
            logger.warning(report.message)
        return report

    def verify_rollup(self, nodes: Iterable[WBSNode]) -> list[str]:
        """Internal nodes whose buckets or total differ from their children's sums."""
        issues = []
        for node in nodes:
            if not node.children:
                if node.budget_total != node.bucket_sum():
                    issues.append(f"{node.code}: total {node.budget_total} != buckets {node.bucket_sum()}")
                continue
            for name in BUCKET_FIELDS.values():
                expected = sum((getattr(c, name) for c in node.children), ZERO)
                if getattr(node, name) != expected:
                    issues.append(f"{node.code}: {name} {getattr(node, name)} != children {expected}")
            variance = self.rollup_variance(node)
            if variance:
                issues.append(f"{node.code}: budget_total differs from children by {variance}")
        return issues

    def verify_code_prefixes(self, nodes: Iterable[WBSNode]) -> list[str]:
        """Orphans, children whose code does not extend the parent's, and level regressions."""
        by_code = {node.code: node for node in nodes}
        issues = []
        for node in by_code.values():
            if node.parent_code is None:
                continue
            parent = by_code.get(node.parent_code)
            if parent is None:
                issues.append(f"{node.code}: parent {node.parent_code} does not exist")
                continue
            if not node.code.startswith(parent.code + "."):
                issues.append(f"{node.code}: code does not extend parent {parent.code}")
            if node.level < parent.level:
                issues.append(f"{node.code}: level {int(node.level)} above parent level {int(parent.level)}")
        return issues


def compare_to_budgets(
    budgets: SheetParseResult, sheets: Mapping[str, SheetParseResult]
) -> list[str]:
    """Per-discipline comparison of detail sheets against the BUDGETS targets.

    Returns one warning per mismatch; an empty list means everything agrees.
    """
    targets: dict[str, dict] = budgets.summary.get("disciplines", {})
    warnings: list[str] = []

    for sheet_types, summary_key, category, field in _BUDGET_COMPARISONS:
        parsed = [
            sheets[t.value] for t in sheet_types if t.value in sheets and sheets[t.value].success
        ]
        if not parsed:
            continue
        label = " + ".join(r.sheet for r in parsed)
        actuals: dict[str, Decimal] = {}
        for result in parsed:
            for discipline, value in result.summary.get(summary_key, {}).items():
                actuals[discipline] = actuals.get(discipline, ZERO) + value

        for discipline, actual in actuals.items():
            target = targets.get(discipline)
            if target is None and discipline == PROJECT_WIDE:
                continue
            if target is None:
                warnings.append(f"{label}: {discipline} has no BUDGETS block")
                continue
            expected = target["categories"][category][field]
            difference = abs(actual - expected)
            if difference > CENT:
                warnings.append(
                    f"{label}: {discipline} {field} ({actual:,.2f}) does not match "
                    f"BUDGETS {category} ({expected:,.2f}). Difference: {difference:,.2f}"
                )

    staff = sheets.get(SheetType.STAFF.value)
    if staff is not None and staff.success:
        expected = sum(
            (t["categories"]["INDIRECT LABOR"]["value"] for t in targets.values()), ZERO
        )
        actual = staff.summary.get("total_indirect_labor", ZERO)
        difference = abs(actual - expected)
        if expected and difference > expected * STAFF_TOLERANCE_RATIO:
            warnings.append(
                f"STAFF total ({actual:,.2f}) does not match BUDGETS INDIRECT LABOR "
                f"({expected:,.2f}). Difference: {difference:,.2f}"
            )

    return warnings
