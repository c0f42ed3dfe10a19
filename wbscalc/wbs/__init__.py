"""Work breakdown structure: codes, tree construction and validation."""

from wbscalc.wbs.builder import BuildContext, BuildState, WBSTreeBuilder
from wbscalc.wbs.validation import HierarchyValidator, compare_to_budgets

__all__ = [
    "BuildContext",
    "BuildState",
    "HierarchyValidator",
    "WBSTreeBuilder",
    "compare_to_budgets",
]
