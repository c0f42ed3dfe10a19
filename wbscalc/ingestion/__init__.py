"""Workbook ingestion for wbscalc.

Loads estimate workbooks into memory and turns each recognized sheet into
allocation records.
"""

from wbscalc.ingestion.workbook import Workbook, load_workbook

__all__ = ["Workbook", "load_workbook"]
