"""Budget import pipeline - parse, build, validate, persist.

One workbook in, one finalized WBS tree out. Single-source failures are
contained: an optional sheet with a broken layout is reported and skipped,
while a required sheet that is missing or malformed aborts the import
before any tree is built.

Key features:
- Deterministic: sheets are parsed in a fixed order, so dynamic WBS codes
  are stable across identical imports
- Resilient: row-level problems become counted skips, never exceptions
- Atomic: the datastore write happens only after the tree is finalized
"""

from __future__ import annotations

import time
from collections.abc import Iterable
from decimal import Decimal
from uuid import uuid4

import structlog
from structlog.contextvars import bound_contextvars

from wbscalc.config import ImportConfig
from wbscalc.errors import MissingSheetError, PersistenceError
from wbscalc.ingestion.disciplines import DisciplineRegistry
from wbscalc.ingestion.parsers import PARSER_REGISTRY, get_parser
from wbscalc.ingestion.workbook import Workbook
from wbscalc.models import SheetType
from wbscalc.pipeline.types import ImportOutcome, ImportStatus, SheetParseResult
from wbscalc.wbs.builder import WBSTreeBuilder
from wbscalc.wbs.validation import HierarchyValidator, compare_to_budgets

logger = structlog.get_logger(__name__)

# Spellings seen in real workbooks besides the canonical sheet name
SHEET_ALIASES: dict[SheetType, tuple[str, ...]] = {
    SheetType.DISC_EQUIPMENT: ("DISC.EQUIPMENT", "DISC EQUIPMENT"),
    SheetType.SUBS: ("SUBCONTRACTS",),
}


def find_sheet(workbook: Workbook, sheet_type: SheetType) -> str | None:
    """Actual workbook sheet name for ``sheet_type``, if present."""
    for name in (sheet_type.value, *SHEET_ALIASES.get(sheet_type, ())):
        actual = workbook.resolve(name)
        if actual is not None:
            return actual
    return None


class BudgetImportPipeline:
    """Runs one workbook through parsing, WBS synthesis and reconciliation.

    Responsibilities:
    1. Parse every recognized sheet in a fixed order
    2. Build the WBS tree from all allocations
    3. Check the 100% rule and the tree's structural invariants
    4. Hand the finalized tree to a datastore
    """

    def __init__(self, config: ImportConfig | None = None):
        self.config = config or ImportConfig()
        self.builder = WBSTreeBuilder()
        self.validator = HierarchyValidator(tolerance=self.config.reconciliation_tolerance)

    @property
    def sheet_order(self) -> list[SheetType]:
        return [sheet_type for sheet_type in SheetType if sheet_type in PARSER_REGISTRY]

    def parse_sheets(self, workbook: Workbook) -> dict[str, SheetParseResult]:
        """Parse every known sheet; results keyed by canonical sheet name.

        Raises:
            MissingSheetError: If a required sheet is absent
            StructuralValidationError: If a required sheet has a broken layout
        """
        required = {name.upper() for name in self.config.required_sheets}
        results: dict[str, SheetParseResult] = {}

        for sheet_type in self.sheet_order:
            actual = find_sheet(workbook, sheet_type)
            is_required = sheet_type.value in required

            if actual is None:
                if is_required:
                    raise MissingSheetError(sheet_type.value, workbook.names)
                results[sheet_type.value] = SheetParseResult(
                    sheet=sheet_type.value,
                    status=ImportStatus.SKIPPED,
                    message="Sheet not present in workbook",
                )
                continue

            parser = get_parser(sheet_type, self.config)
            grid = workbook.sheets[actual]
            if is_required:
                start_time = time.time()
                result = parser.parse(grid)
                result.duration_seconds = time.time() - start_time
            else:
                result = parser.run(grid)
                if not result.success:
                    logger.warning("optional_sheet_skipped", sheet=sheet_type.value, reason=result.message)
            results[sheet_type.value] = result

        return results

    def run(
        self,
        workbook: Workbook,
        project_id: str | None = None,
        project_total: Decimal | None = None,
    ) -> ImportOutcome:
        """Execute a full import.

        Args:
            workbook: In-memory workbook
            project_id: Project the tree belongs to
            project_total: Independently known project total for the 100%
                rule; defaults to the BUDGETS sheet total when present

        Returns:
            ImportOutcome with the finalized tree and per-sheet results
        """
        start_time = time.time()
        import_id = uuid4().hex

        with bound_contextvars(project_id=project_id, import_id=import_id):
            logger.info("budget_import_started", source=workbook.source, sheets=workbook.names)

            sheets = self.parse_sheets(workbook)
            registry = DisciplineRegistry()
            allocations = []
            warnings: list[str] = []
            for name, result in sheets.items():
                if not result.success:
                    continue
                registry.register(result.disciplines, name)
                allocations.extend(result.allocations)
                warnings.extend(f"{name}: {w}" for w in result.warnings)

            ctx = self.builder.build(allocations, project_id=project_id)
            warnings.extend(ctx.warnings)

            total_source = "caller"
            budgets = sheets.get(SheetType.BUDGETS.value)
            if project_total is None and budgets is not None and budgets.success:
                project_total, total_source = budgets.reference_total, "BUDGETS"
            if budgets is not None and budgets.success:
                warnings.extend(compare_to_budgets(budgets, sheets))

            reconciliation = self.validator.check_hundred_percent(
                ctx.roots, project_total, total_source
            )
            if not reconciliation.is_balanced:
                warnings.append(reconciliation.message)

            nodes = ctx.flat
            for issue in self.validator.verify_rollup(nodes) + self.validator.verify_code_prefixes(nodes):
                logger.error("wbs_invariant_violated", issue=issue)
                warnings.append(issue)

            failed = [name for name, r in sheets.items() if r.status == ImportStatus.FAILED]
            outcome = ImportOutcome(
                project_id=project_id,
                status=ImportStatus.PARTIAL_SUCCESS if failed else ImportStatus.SUCCESS,
                sheets=sheets,
                allocations=allocations,
                disciplines=registry.names,
                roots=ctx.roots,
                nodes=nodes,
                reconciliation=reconciliation,
                warnings=warnings,
                duration_seconds=time.time() - start_time,
            )
            outcome.message = (
                f"Imported {len(allocations)} allocations into {len(nodes)} WBS nodes "
                f"({outcome.skip_count} rows skipped"
                + (f", failed sheets: {', '.join(failed)}" if failed else "")
                + ")"
            )
            logger.info(
                "budget_import_completed",
                status=outcome.status.value,
                allocations=len(allocations),
                nodes=len(nodes),
                skipped_rows=outcome.skip_count,
                variance=str(reconciliation.variance),
            )
            return outcome

    async def persist(self, outcome: ImportOutcome, store) -> dict:
        """Write a finalized outcome to a datastore.

        Args:
            outcome: Result of run()
            store: Object satisfying the BudgetStore protocol

        Returns:
            The audit summary that was recorded

        Raises:
            PersistenceError: If the outcome has no tree or the store rejects it
        """
        if not outcome.success or not outcome.roots:
            raise PersistenceError("Only a finalized import can be persisted")
        project_id = outcome.project_id
        if not project_id:
            raise PersistenceError("A project id is required to persist an import")

        with bound_contextvars(project_id=project_id):
            created, updated = await self._reconcile_allocations(store, project_id, outcome.sheets.values())

            ok = await store.insert_nodes(project_id, outcome.nodes, outcome.allocations)
            if not ok:
                raise PersistenceError(f"Datastore rejected WBS nodes for project {project_id}")

            summary = {
                "status": outcome.status.value,
                "node_count": len(outcome.nodes),
                "allocation_count": len(outcome.allocations),
                "allocations_created": created,
                "allocations_updated": updated,
                "skipped_rows": outcome.skip_count,
                "tree_total": str(outcome.tree_total),
                "variance": str(outcome.reconciliation.variance) if outcome.reconciliation else None,
                "sheets": {name: r.status.value for name, r in outcome.sheets.items()},
                "warnings": list(outcome.warnings),
            }
            await store.record_import_audit(project_id, summary)

            logger.info(
                "budget_import_persisted",
                nodes=len(outcome.nodes),
                allocations_created=created,
                allocations_updated=updated,
            )
            return summary

    async def _reconcile_allocations(
        self, store, project_id: str, results: Iterable[SheetParseResult]
    ) -> tuple[int, int]:
        """Count allocations that are new vs. already known from a previous import."""
        created = updated = 0
        for result in results:
            if not result.allocations:
                continue
            existing = await store.fetch_existing_allocations(project_id, SheetType(result.sheet))
            known = {a.identity for a in existing}
            for allocation in result.allocations:
                if allocation.identity in known:
                    updated += 1
                else:
                    created += 1
        return created, updated
