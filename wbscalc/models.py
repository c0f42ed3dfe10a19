"""wbscalc Pydantic models for type-safe budget data.

Allocations are immutable: they are produced once per import by the sheet
parsers and never mutated. WBS nodes are mutable only while a build is in
progress (the rollup pass overwrites internal-node buckets).
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum, IntEnum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, field_validator

ZERO = Decimal("0")


class SheetType(str, Enum):
    """Workbook sheets the importer understands."""

    BUDGETS = "BUDGETS"
    DIRECTS = "DIRECTS"
    STAFF = "STAFF"
    MATERIALS = "MATERIALS"
    SUBS = "SUBS"
    CONSTRUCTABILITY = "CONSTRUCTABILITY"
    GENERAL_EQUIPMENT = "GENERAL EQUIPMENT"
    DISC_EQUIPMENT = "DISC. EQUIPMENT"


class CostBucket(str, Enum):
    """Monetary bucket tracked on every WBS node."""

    LABOR = "labor"
    MATERIAL = "material"
    EQUIPMENT = "equipment"
    SUBCONTRACT = "subcontract"
    OTHER = "other"


class CostType(str, Enum):
    """Cost type carried by allocations and level-4/5 nodes."""

    DL = "DL"  # Direct labor
    IL = "IL"  # Indirect labor
    MAT = "MAT"
    EQ = "EQ"
    SUB = "SUB"
    OTHER = "OTHER"

    @property
    def bucket(self) -> CostBucket:
        return _COST_TYPE_BUCKETS[self]

    @property
    def label(self) -> str:
        return _COST_TYPE_LABELS[self]


_COST_TYPE_BUCKETS = {
    CostType.DL: CostBucket.LABOR,
    CostType.IL: CostBucket.LABOR,
    CostType.MAT: CostBucket.MATERIAL,
    CostType.EQ: CostBucket.EQUIPMENT,
    CostType.SUB: CostBucket.SUBCONTRACT,
    CostType.OTHER: CostBucket.OTHER,
}

_COST_TYPE_LABELS = {
    CostType.DL: "Direct Labor",
    CostType.IL: "Indirect Labor",
    CostType.MAT: "Materials",
    CostType.EQ: "Equipment",
    CostType.SUB: "Subcontracts",
    CostType.OTHER: "Other",
}


class WBSLevel(IntEnum):
    """The five WBS levels."""

    PROJECT = 1
    PHASE = 2
    GROUP = 3
    CATEGORY = 4
    LINE_ITEM = 5


class ProjectPhase(str, Enum):
    """General-staffing phases on the STAFF sheet."""

    JOB_SET_UP = "JOB_SET_UP"
    PRE_WORK = "PRE_WORK"
    PROJECT_EXECUTION = "PROJECT_EXECUTION"
    JOB_CLOSE_OUT = "JOB_CLOSE_OUT"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


# ---------------------------------------------------------------------------
# Allocations
# ---------------------------------------------------------------------------


class AllocationBase(BaseModel):
    """Fields shared by every allocation record."""

    source_sheet: str
    source_row: int  # 1-based, as shown in Excel
    discipline: str
    description: str = ""
    total_cost: Decimal
    cost_type: CostType
    wbs_code: str | None = None

    class Config:
        frozen = True

    @field_validator("total_cost")
    @classmethod
    def validate_total_cost(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("total_cost must be non-negative")
        return v

    @property
    def bucket(self) -> CostBucket:
        return self.cost_type.bucket

    @property
    def identity(self) -> tuple[str, ...]:
        """Key used to reconcile against a previous import of the same project."""
        return (self.source_sheet, self.discipline, self.description)


class DirectLaborAllocation(AllocationBase):
    """One (labor category, discipline) cell from the DIRECTS sheet."""

    kind: Literal["direct_labor"] = "direct_labor"
    cost_type: CostType = CostType.DL
    category: str
    manhours: Decimal
    rate: Decimal
    crew_size: int
    duration_days: int

    @property
    def identity(self) -> tuple[str, ...]:
        return (self.source_sheet, self.discipline, self.category)

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "source_sheet": "DIRECTS",
                "source_row": 40,
                "discipline": "PIPING",
                "category": "Welder - Class A",
                "manhours": Decimal("1000"),
                "rate": Decimal("90"),
                "total_cost": Decimal("90000"),
                "crew_size": 4,
                "duration_days": 25,
                "wbs_code": "1.1.9.4.1.38",
            }
        }


class PhaseAllocation(AllocationBase):
    """One indirect staff role within a general-staffing phase."""

    kind: Literal["phase"] = "phase"
    cost_type: CostType = CostType.IL
    phase: ProjectPhase
    role: str
    fte: Decimal
    duration_months: int
    monthly_rate: Decimal
    perdiem: Decimal = ZERO
    indirect_hours: Decimal

    @property
    def identity(self) -> tuple[str, ...]:
        return (self.source_sheet, self.phase.value, self.role)


class LineItemAllocation(AllocationBase):
    """Free-form budget line (materials, subcontracts, equipment, constructability)."""

    kind: Literal["line_item"] = "line_item"
    category: str  # Level-4 grouping label, e.g. "Materials - Taxed"
    quantity: Decimal | None = None
    unit: str | None = None
    vendor: str | None = None

    @property
    def identity(self) -> tuple[str, ...]:
        return (self.source_sheet, self.discipline, self.category, self.description)


Allocation = Annotated[
    Union[DirectLaborAllocation, PhaseAllocation, LineItemAllocation],
    Field(discriminator="kind"),
]


# ---------------------------------------------------------------------------
# WBS tree
# ---------------------------------------------------------------------------

BUCKET_FIELDS = {
    CostBucket.LABOR: "labor_cost",
    CostBucket.MATERIAL: "material_cost",
    CostBucket.EQUIPMENT: "equipment_cost",
    CostBucket.SUBCONTRACT: "subcontract_cost",
    CostBucket.OTHER: "other_cost",
}

HOUR_FIELDS = ("manhours", "direct_hours", "indirect_hours")


class WBSNode(BaseModel):
    """A node of the 5-level work breakdown structure.

    Children are not owned by the node: the builder derives them once from
    ``parent_code`` during linking. They are excluded from serialization so
    the persisted form stays flat.
    """

    code: str
    parent_code: str | None = None
    level: WBSLevel
    description: str = ""
    discipline: str | None = None
    phase: ProjectPhase | None = None
    cost_type: CostType | None = None
    sort_order: int = 0

    # Cost buckets
    labor_cost: Decimal = ZERO
    material_cost: Decimal = ZERO
    equipment_cost: Decimal = ZERO
    subcontract_cost: Decimal = ZERO
    other_cost: Decimal = ZERO
    budget_total: Decimal = ZERO

    # Hours and crew metadata (only where the concept applies)
    manhours: Decimal | None = None
    direct_hours: Decimal | None = None
    indirect_hours: Decimal | None = None
    crew_size: int | None = None
    duration_days: int | None = None
    fte: Decimal | None = None

    # Provenance (leaves only)
    source_sheet: str | None = None
    source_row: int | None = None

    children: list[WBSNode] = Field(default_factory=list, exclude=True)

    @property
    def path(self) -> list[str]:
        """Dot-truncated prefixes of this code, root first."""
        parts = self.code.split(".")
        return [".".join(parts[: i + 1]) for i in range(len(parts))]

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def bucket_sum(self) -> Decimal:
        return sum((getattr(self, name) for name in BUCKET_FIELDS.values()), ZERO)

    def to_record(self) -> dict:
        """Flat dict for the datastore (no children, enums as values)."""
        record = self.model_dump(mode="python")
        record["level"] = int(self.level)
        record["phase"] = self.phase.value if self.phase else None
        record["cost_type"] = self.cost_type.value if self.cost_type else None
        record["children_count"] = len(self.children)
        return record


WBSNode.model_rebuild()


class ReconciliationReport(BaseModel):
    """Outcome of the 100% rule check.

    A non-zero variance is a warning, never an error: the independently
    entered project total is allowed to be provisional.
    """

    project_total: Decimal
    tree_total: Decimal
    variance: Decimal
    tolerance: Decimal = ZERO
    total_source: Literal["caller", "BUDGETS", "tree"] = "caller"

    @property
    def is_balanced(self) -> bool:
        return self.variance <= self.tolerance

    @property
    def message(self) -> str:
        if self.is_balanced:
            return (
                f"WBS total ${self.tree_total:,.2f} matches project total "
                f"${self.project_total:,.2f}"
            )
        return (
            f"WBS total ${self.tree_total:,.2f} does not match project total "
            f"${self.project_total:,.2f} ({self.total_source}). "
            f"Difference: ${self.variance:,.2f}"
        )
