"""Hierarchical WBS code generation.

Fixed levels come from the tables in wbs.catalog; everything the catalogs
do not cover gets a dynamic suffix from a per-parent counter.
"""

from __future__ import annotations

from collections.abc import Collection

from wbscalc.ingestion.catalogs import DIRECT_LABOR_CATEGORIES, INDIRECT_ROLES, category_index
from wbscalc.ingestion.disciplines import normalize_discipline
from wbscalc.models import CostType, ProjectPhase
from wbscalc.wbs.catalog import (
    COST_TYPE_SUFFIX,
    DEFAULT_GROUP,
    DEFAULT_SUB_DISCIPLINE_INDEX,
    DISCIPLINE_GROUPS,
    PHASE_CODES,
    SHEET_GROUPS,
    SUB_DISCIPLINE_INDEX,
)

# Free-text cost type labels; checked in order, first substring hit wins
_COST_TYPE_LABELS: tuple[tuple[str, CostType], ...] = (
    ("INDIRECT", CostType.IL),
    ("DIRECT", CostType.DL),
    ("LABOR", CostType.DL),
    ("SUBCONTRACT", CostType.SUB),
    ("SUBS", CostType.SUB),
    ("MATERIAL", CostType.MAT),
    ("EQUIPMENT", CostType.EQ),
)


def join_code(parent: str, suffix: int | str) -> str:
    return f"{parent}.{suffix}"


def group_code_for(discipline: str | None, source_sheet: str | None = None) -> str:
    """Level-3 group for a discipline, falling back on the source sheet."""
    name = normalize_discipline(discipline)
    if name in DISCIPLINE_GROUPS:
        return DISCIPLINE_GROUPS[name]
    sheet = (source_sheet or "").strip().upper()
    return SHEET_GROUPS.get(sheet, DEFAULT_GROUP)


def sub_discipline_index(discipline: str | None) -> int:
    return SUB_DISCIPLINE_INDEX.get(normalize_discipline(discipline), DEFAULT_SUB_DISCIPLINE_INDEX)


def has_fixed_index(discipline: str | None) -> bool:
    return normalize_discipline(discipline) in SUB_DISCIPLINE_INDEX


def phase_code(phase: ProjectPhase) -> str:
    return PHASE_CODES[phase]


def cost_type_code(parent: str, cost_type: CostType) -> str:
    return join_code(parent, COST_TYPE_SUFFIX[cost_type])


def category_suffix(name: str, catalog: tuple[str, ...]) -> str:
    """Two-digit level-5 suffix of a catalog entry.

    Raises:
        KeyError: If ``name`` is not in ``catalog``
    """
    index = category_index(name, catalog)
    if index is None:
        raise KeyError(f"'{name}' is not a catalog entry")
    return f"{index:02d}"


def direct_labor_code(discipline: str, category: str) -> str:
    """Full level-5 code of a direct labor cell.

    >>> direct_labor_code("PIPING", "Welder - Class A")
    '1.1.9.4.1.38'
    """
    discipline_code = join_code(group_code_for(discipline), sub_discipline_index(discipline))
    return join_code(
        cost_type_code(discipline_code, CostType.DL),
        category_suffix(category, DIRECT_LABOR_CATEGORIES),
    )


def phase_role_code(phase: ProjectPhase, role: str) -> str:
    """Full level-5 code of an indirect staff role within a phase."""
    return join_code(
        cost_type_code(phase_code(phase), CostType.IL),
        category_suffix(role, INDIRECT_ROLES),
    )


def cost_type_from_label(label: str | None) -> CostType:
    """Classify a free-text cost type label; anything unrecognized is OTHER."""
    text = (label or "").strip().upper()
    if not text:
        return CostType.OTHER
    for value in CostType:
        if text == value.value or text == value.label.upper():
            return value
    for needle, cost_type in _COST_TYPE_LABELS:
        if needle in text:
            return cost_type
    return CostType.OTHER


class CodeCounter:
    """Per-parent monotonic suffix counters.

    The counter for a parent starts at ``start`` (1 unless told otherwise)
    and skips indices reserved for catalog entries as well as codes that
    already exist in the tree.
    """

    def __init__(self) -> None:
        self._next: dict[str, int] = {}

    def next_code(
        self,
        parent: str,
        reserved: Collection[int] = (),
        taken: Collection[str] = (),
        start: int = 1,
    ) -> str:
        index = self._next.get(parent, start)
        while index in reserved or join_code(parent, index) in taken:
            index += 1
        self._next[parent] = index + 1
        return join_code(parent, index)

    def peek(self, parent: str) -> int | None:
        return self._next.get(parent)
