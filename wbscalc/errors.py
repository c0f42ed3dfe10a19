"""Exception hierarchy for budget imports.

Every fatal path carries the concrete expected-vs-found values so the
import screen can tell the estimator exactly which row to fix.
"""

from __future__ import annotations

from typing import Any


class WBSImportError(Exception):
    """Base class for all budget import failures."""


class StructuralValidationError(WBSImportError):
    """A sheet does not have the layout its parser depends on.

    Raised per sheet; the whole sheet's contribution is discarded.
    """

    def __init__(
        self,
        sheet: str,
        reason: str,
        row: int | None = None,
        expected: Any = None,
        found: Any = None,
    ):
        self.sheet = sheet
        self.reason = reason
        self.row = row
        self.expected = expected
        self.found = found
        super().__init__(self._format())

    def _format(self) -> str:
        message = f"{self.sheet}: {self.reason}"
        if self.row is not None:
            message += f" at row {self.row}"
        if self.expected is not None or self.found is not None:
            message += f" (expected {self.expected!r}, found {self.found!r})"
        return message

    def to_details(self) -> dict[str, Any]:
        """Structured form for ImportResult.error_details."""
        return {
            "error_type": type(self).__name__,
            "error_message": str(self),
            "sheet": self.sheet,
            "row": self.row,
            "expected": self.expected,
            "found": self.found,
        }


class MissingSheetError(WBSImportError):
    """A required sheet is absent from the workbook."""

    def __init__(self, sheet: str, available: list[str] | None = None):
        self.sheet = sheet
        self.available = available or []
        super().__init__(
            f"Required sheet '{sheet}' not found (available: {', '.join(self.available) or 'none'})"
        )


class BuildStateError(WBSImportError):
    """A WBS build stage was invoked out of order or re-entered."""

    def __init__(self, stage: str, expected: Any, found: Any):
        self.stage = stage
        self.expected = expected
        self.found = found
        super().__init__(
            f"Cannot run '{stage}': build is in state {found!s}, expected {expected!s}"
        )


class PersistenceError(WBSImportError):
    """The datastore collaborator rejected the finalized tree."""
