"""Fixed upper levels of the WBS and the discipline/phase code tables."""

from __future__ import annotations

from typing import NamedTuple

from wbscalc.models import CostType, ProjectPhase

ROOT_CODE = "1"
PHASE_CODE = "1.1"
ROOT_DESCRIPTION = "Project Total"
PHASE_DESCRIPTION = "Construction Phase"


class MajorGroup(NamedTuple):
    code: str
    name: str
    key: str  # discipline that owns the group outright


# The 13 level-3 groups, seeded at the start of every build
MAJOR_GROUPS: tuple[MajorGroup, ...] = (
    MajorGroup("1.1.1", "General Staffing Group", "GENERAL STAFFING"),
    MajorGroup("1.1.2", "Scaffolding Group", "SCAFFOLDING"),
    MajorGroup("1.1.3", "Constructability Group", "CONSTRUCTABILITY"),
    MajorGroup("1.1.4", "Fabrication Group", "FABRICATION"),
    MajorGroup("1.1.5", "Mobilization Group", "MOBILIZATION"),
    MajorGroup("1.1.6", "Clean Up Group", "CLEAN UP"),
    MajorGroup("1.1.7", "Building-Remodeling Group", "BUILDING-REMODELING"),
    MajorGroup("1.1.8", "Civil Group", "CIVIL"),
    MajorGroup("1.1.9", "Mechanical Group", "MECHANICAL"),
    MajorGroup("1.1.10", "I&E Group", "I&E"),
    MajorGroup("1.1.11", "Demolition Group", "DEMOLITION"),
    MajorGroup("1.1.12", "Millwright Group", "MILLWRIGHT"),
    MajorGroup("1.1.13", "Insulation/Painting Group", "INSULATION/PAINTING"),
)

GENERAL_STAFFING_GROUP = "1.1.1"
MECHANICAL_GROUP = "1.1.9"
DEFAULT_GROUP = MECHANICAL_GROUP

# Discipline -> level-3 group; anything unmapped lands in Mechanical
DISCIPLINE_GROUPS: dict[str, str] = {
    "GENERAL STAFFING": "1.1.1",
    "SCAFFOLDING": "1.1.2",
    "CONSTRUCTABILITY": "1.1.3",
    "FABRICATION": "1.1.4",
    "MOBILIZATION": "1.1.5",
    "CLEAN UP": "1.1.6",
    "BUILDING-REMODELING": "1.1.7",
    "BUILDING REMODELING": "1.1.7",
    "CIVIL": "1.1.8",
    "CIVIL DEMO": "1.1.8",
    "CIVIL - GROUNDING": "1.1.8",
    "CONCRETE": "1.1.8",
    "CONCRETE DEMO": "1.1.8",
    "GROUNDING": "1.1.8",
    "GROUTING": "1.1.8",
    "MECHANICAL": "1.1.9",
    "PIPING": "1.1.9",
    "PIPING DEMO": "1.1.9",
    "STEEL": "1.1.9",
    "STEEL DEMO": "1.1.9",
    "EQUIPMENT": "1.1.9",
    "EQUIPMENT DEMO": "1.1.9",
    "CRANE SUPPORT": "1.1.9",
    "I&E": "1.1.10",
    "I&E DEMO": "1.1.10",
    "INSTRUMENTATION": "1.1.10",
    "INSTRUMENTATION DEMO": "1.1.10",
    "ELECTRICAL": "1.1.10",
    "ELECTRICAL DEMO": "1.1.10",
    "HYDRO-TESTING": "1.1.10",
    "DEMOLITION": "1.1.11",
    "MILLWRIGHT": "1.1.12",
    "INSULATION": "1.1.13",
    "PAINTING": "1.1.13",
}

# Source sheet -> group, consulted when the discipline is not mapped
SHEET_GROUPS: dict[str, str] = {
    "SCAFFOLDING": "1.1.2",
    "CONSTRUCTABILITY": "1.1.3",
    "STAFF": "1.1.1",
}

# Fixed level-4 index of known disciplines inside their group
SUB_DISCIPLINE_INDEX: dict[str, int] = {
    "STEEL": 1,
    "EQUIPMENT": 3,
    "PIPING": 4,
    "HYDRO-TESTING": 5,
    "INSTRUMENTATION": 6,
    "ELECTRICAL": 7,
    "CIVIL": 1,
    "CONCRETE": 2,
    "GROUTING": 3,  # 2 belongs to CONCRETE inside Civil
    "FABRICATION": 1,
    "MILLWRIGHT": 1,
}
DEFAULT_SUB_DISCIPLINE_INDEX = 1

# General Staffing phases are fixed level-4 nodes
PHASE_CODES: dict[ProjectPhase, str] = {
    ProjectPhase.JOB_SET_UP: "1.1.1.1",
    ProjectPhase.PRE_WORK: "1.1.1.2",
    ProjectPhase.PROJECT_EXECUTION: "1.1.1.3",
    ProjectPhase.JOB_CLOSE_OUT: "1.1.1.4",
}

# Cost-type node suffix under a discipline (or phase) node
COST_TYPE_SUFFIX: dict[CostType, int] = {
    CostType.DL: 1,
    CostType.IL: 2,
    CostType.MAT: 3,
    CostType.EQ: 4,
    CostType.SUB: 5,
    CostType.OTHER: 6,
}


def reserved_indices(group_code: str) -> frozenset[int]:
    """Level-4 indices under ``group_code`` held for catalog entries."""
    reserved = {
        index
        for discipline, index in SUB_DISCIPLINE_INDEX.items()
        if DISCIPLINE_GROUPS.get(discipline, DEFAULT_GROUP) == group_code
    }
    if group_code == GENERAL_STAFFING_GROUP:
        reserved.update(int(code.rsplit(".", 1)[1]) for code in PHASE_CODES.values())
    return frozenset(reserved)
