"""Base class for all sheet parsers.

Defines the contract that every sheet parser must implement and the
registry the pipeline uses to find the parser for a sheet.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod

from wbscalc.config import ImportConfig
from wbscalc.errors import StructuralValidationError
from wbscalc.ingestion.workbook import Grid
from wbscalc.models import SheetType
from wbscalc.pipeline.types import ImportStatus, SheetParseResult

logger = logging.getLogger(__name__)

PARSER_REGISTRY: dict[SheetType, type[BaseSheetParser]] = {}


def register_parser(sheet_type: SheetType):
    """Decorator to register parser classes.

    Usage:
        @register_parser(SheetType.DIRECTS)
        class DirectsSheetParser(BaseSheetParser):
            ...
    """

    def decorator(cls):
        PARSER_REGISTRY[sheet_type] = cls
        return cls

    return decorator


def get_parser(sheet_type: SheetType, config: ImportConfig | None = None) -> BaseSheetParser:
    """Instantiate the registered parser for ``sheet_type``.

    Raises:
        KeyError: If no parser is registered for the sheet type
    """
    try:
        parser_cls = PARSER_REGISTRY[sheet_type]
    except KeyError:
        raise KeyError(f"No parser registered for sheet '{sheet_type.value}'") from None
    return parser_cls(config=config, sheet_type=sheet_type)


class BaseSheetParser(ABC):
    """Abstract base class for sheet parsers.

    Key principles:
    1. Each parser handles exactly ONE sheet layout
    2. Parsers are stateless and work on an in-memory grid only
    3. Structural failures are isolated to the sheet that caused them
    4. Row-level problems become RowSkip entries, never exceptions
    """

    sheet_type: SheetType

    def __init__(self, config: ImportConfig | None = None, sheet_type: SheetType | None = None):
        self.config = config or ImportConfig()
        if sheet_type is not None:
            self.sheet_type = sheet_type
        self.logger = logging.getLogger(f"{__name__}.{self.sheet_name}")

    @property
    def sheet_name(self) -> str:
        return self.sheet_type.value

    @abstractmethod
    def _parse(self, grid: Grid, result: SheetParseResult) -> None:
        """Validate the layout and fill ``result`` with allocations and skips.

        Raises:
            StructuralValidationError: If the sheet layout is not the one
                this parser understands
        """

    def parse(self, grid: Grid) -> SheetParseResult:
        """Parse a grid, letting structural errors propagate."""
        result = SheetParseResult(sheet=self.sheet_name)
        self._parse(grid, result)
        result.message = (
            f"Parsed {len(result.allocations)} allocations "
            f"({result.skip_count} rows skipped)"
        )
        return result

    def run(self, grid: Grid) -> SheetParseResult:
        """Parse with error handling and timing.

        This is the public interface called by the pipeline. A failed sheet
        comes back with FAILED status and no allocations. Other exceptions propagate.
        """
        start_time = time.time()
        result = SheetParseResult(sheet=self.sheet_name)

        try:
            self.logger.info("Parsing sheet %s (%d rows)", self.sheet_name, len(grid))
            result = self.parse(grid)
            self.logger.info("%s: %s", self.sheet_name, result.message)

        except StructuralValidationError as e:
            result.status = ImportStatus.FAILED
            result.message = f"Structural validation failed: {e}"
            result.error_details = e.to_details()
            self.logger.error("Sheet %s rejected: %s", self.sheet_name, e)

        finally:
            result.duration_seconds = time.time() - start_time

        return result
