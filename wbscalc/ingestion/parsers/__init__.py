"""Sheet parsers, one per recognized workbook sheet.

Importing this package registers every parser in PARSER_REGISTRY.
"""

from wbscalc.ingestion.parsers.base import (
    PARSER_REGISTRY,
    BaseSheetParser,
    get_parser,
    register_parser,
)
from wbscalc.ingestion.parsers.budgets import BudgetsSheetParser
from wbscalc.ingestion.parsers.constructability import ConstructabilitySheetParser
from wbscalc.ingestion.parsers.directs import DirectsSheetParser
from wbscalc.ingestion.parsers.equipment import EquipmentSheetParser
from wbscalc.ingestion.parsers.materials import MaterialsSheetParser
from wbscalc.ingestion.parsers.staff import StaffSheetParser
from wbscalc.ingestion.parsers.subs import SubsSheetParser

__all__ = [
    "PARSER_REGISTRY",
    "BaseSheetParser",
    "BudgetsSheetParser",
    "ConstructabilitySheetParser",
    "DirectsSheetParser",
    "EquipmentSheetParser",
    "MaterialsSheetParser",
    "StaffSheetParser",
    "SubsSheetParser",
    "get_parser",
    "register_parser",
]
