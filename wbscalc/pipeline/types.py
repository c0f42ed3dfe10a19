"""Type definitions for pipeline operations."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from wbscalc.models import ZERO, Allocation, ReconciliationReport, WBSNode


class ImportStatus(str, Enum):
    """Status of an import operation."""

    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    PARTIAL_SUCCESS = "PARTIAL_SUCCESS"
    SKIPPED = "SKIPPED"


@dataclass(frozen=True)
class RowSkip:
    """A sheet row that was read but produced no allocation."""

    sheet: str
    row: int  # 1-based
    reason: str


@dataclass
class SheetParseResult:
    """Result of parsing one sheet."""

    sheet: str
    status: ImportStatus = ImportStatus.SUCCESS
    allocations: list[Allocation] = field(default_factory=list)
    skips: list[RowSkip] = field(default_factory=list)
    disciplines: list[str] = field(default_factory=list)
    summary: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    reference_total: Optional[Decimal] = None  # BUDGETS only
    message: str = ""
    error_details: Optional[dict] = None
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        """Check if the sheet parsed."""
        return self.status in (ImportStatus.SUCCESS, ImportStatus.PARTIAL_SUCCESS)

    @property
    def total_cost(self) -> Decimal:
        return sum((a.total_cost for a in self.allocations), ZERO)

    @property
    def skip_count(self) -> int:
        return len(self.skips)

    def skip(self, row: int, reason: str) -> None:
        self.skips.append(RowSkip(self.sheet, row, reason))

    def skip_counts(self) -> dict[str, int]:
        """Skipped rows tallied by reason."""
        return dict(Counter(s.reason for s in self.skips))


@dataclass
class ImportOutcome:
    """Everything one workbook import produced."""

    project_id: Optional[str]
    status: ImportStatus
    sheets: dict[str, SheetParseResult] = field(default_factory=dict)
    allocations: list[Allocation] = field(default_factory=list)
    disciplines: list[str] = field(default_factory=list)
    roots: list[WBSNode] = field(default_factory=list)
    nodes: list[WBSNode] = field(default_factory=list)
    reconciliation: Optional[ReconciliationReport] = None
    warnings: list[str] = field(default_factory=list)
    message: str = ""
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.status in (ImportStatus.SUCCESS, ImportStatus.PARTIAL_SUCCESS)

    @property
    def failed_sheets(self) -> list[str]:
        return [name for name, r in self.sheets.items() if r.status == ImportStatus.FAILED]

    @property
    def skip_count(self) -> int:
        return sum(r.skip_count for r in self.sheets.values())

    @property
    def tree_total(self) -> Decimal:
        return sum((root.budget_total for root in self.roots), ZERO)

    def node(self, code: str) -> WBSNode | None:
        for candidate in self.nodes:
            if candidate.code == code:
                return candidate
        return None
