"""Budget import pipeline.

Parses every recognized sheet of a workbook, builds the WBS tree from the
resulting allocations and reconciles it against the project total.
"""
