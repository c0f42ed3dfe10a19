"""Literal lookup tables used by the sheet parsers.

These are estimating data, not logic: the order of DIRECT_LABOR_CATEGORIES
and INDIRECT_ROLES is significant (it fixes both the expected sheet row and
the level-5 WBS suffix), so edit them only together with the estimate
template.
"""

from __future__ import annotations

import re
from decimal import Decimal

from wbscalc.models import ProjectPhase

# 39 direct labor categories, in DIRECTS sheet row order (category i at row i + 2)
DIRECT_LABOR_CATEGORIES: tuple[str, ...] = (
    "Boiler Maker - Class A",
    "Boiler Maker - Class B",
    "Carpenter - Class A",
    "Carpenter - Class B",
    "Crane Operator A",
    "Crane Operator B",
    "Electrician - Class A",
    "Electrician - Class B",
    "Electrician - Class C",
    "Equipment Operator - Class A",
    "Equipment Operator - Class B",
    "Equipment Operator - Class C",
    "Field Engineer A",
    "Field Engineer B",
    "Fitter - Class A",
    "Fitter - Class B",
    "General Foreman",
    "Helper",
    "Instrument Tech - Class A",
    "Instrument Tech - Class B",
    "Instrument Tech - Class C",
    "Ironworker - Class A",
    "Ironworker - Class B",
    "Laborer - Class A",
    "Laborer - Class B",
    "Millwright A",
    "Millwright B",
    "Operating Engineer A",
    "Operating Engineer B",
    "Operator A",
    "Operator B",
    "Painter",
    "Piping Foreman",
    "Supervisor",
    "Surveyor A",
    "Surveyor B",
    "Warehouse",
    "Welder - Class A",
    "Welder - Class B",
)

# Standard hourly rates, used when the sheet leaves the rate column blank
STANDARD_DIRECT_RATES: dict[str, Decimal] = {
    "Boiler Maker - Class A": Decimal("85"),
    "Boiler Maker - Class B": Decimal("75"),
    "Carpenter - Class A": Decimal("70"),
    "Carpenter - Class B": Decimal("60"),
    "Crane Operator A": Decimal("90"),
    "Crane Operator B": Decimal("80"),
    "Electrician - Class A": Decimal("85"),
    "Electrician - Class B": Decimal("75"),
    "Electrician - Class C": Decimal("65"),
    "Equipment Operator - Class A": Decimal("75"),
    "Equipment Operator - Class B": Decimal("65"),
    "Equipment Operator - Class C": Decimal("55"),
    "Field Engineer A": Decimal("95"),
    "Field Engineer B": Decimal("85"),
    "Fitter - Class A": Decimal("80"),
    "Fitter - Class B": Decimal("70"),
    "General Foreman": Decimal("100"),
    "Helper": Decimal("45"),
    "Instrument Tech - Class A": Decimal("85"),
    "Instrument Tech - Class B": Decimal("75"),
    "Instrument Tech - Class C": Decimal("65"),
    "Ironworker - Class A": Decimal("80"),
    "Ironworker - Class B": Decimal("70"),
    "Laborer - Class A": Decimal("50"),
    "Laborer - Class B": Decimal("40"),
    "Millwright A": Decimal("85"),
    "Millwright B": Decimal("75"),
    "Operating Engineer A": Decimal("85"),
    "Operating Engineer B": Decimal("75"),
    "Operator A": Decimal("70"),
    "Operator B": Decimal("60"),
    "Painter": Decimal("65"),
    "Piping Foreman": Decimal("95"),
    "Supervisor": Decimal("110"),
    "Surveyor A": Decimal("80"),
    "Surveyor B": Decimal("70"),
    "Warehouse": Decimal("55"),
    "Welder - Class A": Decimal("90"),
    "Welder - Class B": Decimal("80"),
}

# Explicit crew sizes; everything else falls back on the skill suffix
CREW_SIZES: dict[str, int] = {
    "General Foreman": 1,
    "Supervisor": 1,
    "Piping Foreman": 1,
    "Crane Operator A": 1,
    "Crane Operator B": 1,
    "Field Engineer A": 1,
    "Field Engineer B": 1,
    "Warehouse": 2,
    "Helper": 4,
}

SKILL_CLASS_CREW_SIZES: tuple[tuple[str, int], ...] = (
    ("Class A", 4),
    ("Class B", 6),
    ("Class C", 8),
)
DEFAULT_CREW_SIZE = 5

# 23 indirect staff roles, in catalog order (fixes the level-5 suffix)
INDIRECT_ROLES: tuple[str, ...] = (
    "Area Superintendent",
    "Clerk",
    "Cost Engineer",
    "Field Engineer",
    "Field Exchanger General Foreman",
    "General Foreman",
    "Lead Planner",
    "Lead Scheduler",
    "Planner A",
    "Planner B",
    "Procurement Coordinator",
    "Project Controls Lead",
    "Project Manager",
    "QA/QC Inspector A",
    "QA/QC Inspector B",
    "QA/QC Supervisor",
    "Safety Supervisor",
    "Safety Technician A",
    "Safety Technician B",
    "Scheduler",
    "Senior Project Manager",
    "Superintendent",
    "Timekeeper",
)

# Spellings seen in real STAFF sheets (lowercase keys)
ROLE_VARIATIONS: dict[str, str] = {
    "qa/qc inspector mech": "QA/QC Inspector A",
    "qa/qc inspector i&e": "QA/QC Inspector B",
    "safety observer/technician": "Safety Technician A",
}

# Monthly rates for staff rows that carry no labor total
STANDARD_MONTHLY_RATES: dict[str, Decimal] = {
    "Senior Project Manager": Decimal("15000"),
    "Project Manager": Decimal("12000"),
    "Area Superintendent": Decimal("11000"),
    "Superintendent": Decimal("10000"),
    "Cost Engineer": Decimal("9500"),
    "Field Engineer": Decimal("8500"),
    "Lead Planner": Decimal("9000"),
    "Lead Scheduler": Decimal("9000"),
    "Project Controls Lead": Decimal("10000"),
    "QA/QC Supervisor": Decimal("9000"),
    "Safety Supervisor": Decimal("8500"),
    "General Foreman": Decimal("8000"),
    "Field Exchanger General Foreman": Decimal("8500"),
    "Procurement Coordinator": Decimal("7500"),
    "Planner A": Decimal("7000"),
    "Planner B": Decimal("6000"),
    "Scheduler": Decimal("7000"),
    "QA/QC Inspector A": Decimal("6500"),
    "QA/QC Inspector B": Decimal("5500"),
    "Safety Technician A": Decimal("5500"),
    "Safety Technician B": Decimal("4500"),
    "Clerk": Decimal("4000"),
    "Timekeeper": Decimal("4500"),
}

# STAFF phase header rows (column B); order matters, PROJECT must not eat "JOB CLOSE OUT"
PHASE_PATTERNS: tuple[tuple[re.Pattern[str], ProjectPhase], ...] = (
    (re.compile(r"JOB\s*SET\s*UP", re.IGNORECASE), ProjectPhase.JOB_SET_UP),
    (re.compile(r"PRE[\s-]*WORK", re.IGNORECASE), ProjectPhase.PRE_WORK),
    (re.compile(r"JOB\s*CLOSE\s*OUT", re.IGNORECASE), ProjectPhase.JOB_CLOSE_OUT),
    (re.compile(r"PROJECT(?!\s*CLOSE)", re.IGNORECASE), ProjectPhase.PROJECT_EXECUTION),
)

# BUDGETS sheet: 12-row discipline blocks, category label in column D
BUDGET_CATEGORIES: tuple[str, ...] = (
    "DIRECT LABOR",
    "INDIRECT LABOR",
    "ALL LABOR",
    "TAXES & INSURANCE",
    "PERDIEM",
    "ADD ONS",
    "SMALL TOOLS & CONSUMABLES",
    "MATERIALS",
    "EQUIPMENT",
    "SUBCONTRACTS",
    "RISK",
    "DISCIPLINE TOTALS",
)

# MATERIALS sheet type rows (column D)
MATERIAL_TYPES: dict[str, str] = {
    "MATERIALS FROM TAKE OFF SHEET - TAXED": "Taxed",
    "TAXES ON MATERIALS LISTED ABOVE": "Taxes",
    "MATERIALS FROM TAKE OFF SHEET - NON-TAXED": "Non-Taxed",
}

# CONSTRUCTABILITY category headers -> WBS category name
CONSTRUCTABILITY_CATEGORIES: dict[str, str] = {
    "NEW HIRES": "NEW HIRES",
    "SAFETY": "SAFETY",
    "PRE-JOB": "TEMPORARY FACILITIES",
    "PROJECT": "PROJECT",
    "RESTROOMS": "RESTROOMS",
    "WELDING": "WELDING",
    "MISC.": "MISC",
    "MISC": "MISC",
}

# GENERAL EQUIPMENT discipline aliases ('' = project-wide)
EQUIPMENT_DISCIPLINE_ALIASES: dict[str, str] = {
    "CIVIL": "STEEL",
    "GENERAL": "",
}


def category_index(name: str, catalog: tuple[str, ...]) -> int | None:
    """1-based position of ``name`` in ``catalog`` (case-insensitive)."""
    target = name.strip().lower()
    for index, entry in enumerate(catalog, start=1):
        if entry.lower() == target:
            return index
    return None


def resolve_role(name: str) -> str | None:
    """Map a STAFF sheet role spelling onto the canonical role catalog."""
    normalized = " ".join(name.split()).lower()
    if normalized in ROLE_VARIATIONS:
        return ROLE_VARIATIONS[normalized]
    index = category_index(normalized, INDIRECT_ROLES)
    return INDIRECT_ROLES[index - 1] if index else None
