"""Datastore collaborators for finalized WBS trees.

The pipeline only depends on the BudgetStore protocol. Two implementations
ship: an in-memory store for tests and dry runs, and an async SQLAlchemy
store. Both replace a project's previous tree wholesale on re-import.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Sequence
from typing import Any, Protocol

from pydantic import TypeAdapter
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wbscalc.db.models import BudgetAllocationModel, ImportAuditModel, WBSNodeModel
from wbscalc.models import Allocation, SheetType, WBSNode

logger = logging.getLogger(__name__)

_allocation_adapter: TypeAdapter[Allocation] = TypeAdapter(Allocation)

_NODE_COLUMNS = (
    "code",
    "parent_code",
    "level",
    "description",
    "discipline",
    "phase",
    "cost_type",
    "sort_order",
    "labor_cost",
    "material_cost",
    "equipment_cost",
    "subcontract_cost",
    "other_cost",
    "budget_total",
    "manhours",
    "direct_hours",
    "indirect_hours",
    "crew_size",
    "duration_days",
    "fte",
    "source_sheet",
    "source_row",
)


class BudgetStore(Protocol):
    """What the import pipeline needs from a datastore."""

    async def insert_nodes(
        self,
        project_id: str,
        nodes: Sequence[WBSNode],
        allocations: Sequence[Allocation] = (),
    ) -> bool:
        """Replace the project's tree; False if the write was rejected."""
        ...

    async def fetch_existing_allocations(
        self, project_id: str, sheet_type: SheetType
    ) -> list[Allocation]:
        ...

    async def record_import_audit(self, project_id: str, summary: dict[str, Any]) -> None:
        ...


def has_unique_codes(nodes: Sequence[WBSNode]) -> bool:
    return len({node.code for node in nodes}) == len(nodes)


def node_from_record(record: dict[str, Any]) -> WBSNode:
    """Rebuild a childless WBSNode from a stored flat record."""
    values = {name: record[name] for name in _NODE_COLUMNS if record.get(name) is not None}
    return WBSNode.model_validate(values)


class InMemoryBudgetStore:
    """Dict-backed BudgetStore."""

    def __init__(self) -> None:
        self.nodes: dict[str, list[dict[str, Any]]] = {}
        self.allocations: dict[str, list[Allocation]] = defaultdict(list)
        self.audits: list[tuple[str, dict[str, Any]]] = []

    async def insert_nodes(
        self,
        project_id: str,
        nodes: Sequence[WBSNode],
        allocations: Sequence[Allocation] = (),
    ) -> bool:
        if not has_unique_codes(nodes):
            logger.error("Rejected tree for project %s: duplicate WBS codes", project_id)
            return False
        self.nodes[project_id] = [node.to_record() for node in nodes]
        self.allocations[project_id] = list(allocations)
        return True

    async def fetch_existing_allocations(
        self, project_id: str, sheet_type: SheetType
    ) -> list[Allocation]:
        return [a for a in self.allocations.get(project_id, []) if a.source_sheet == sheet_type.value]

    async def record_import_audit(self, project_id: str, summary: dict[str, Any]) -> None:
        self.audits.append((project_id, dict(summary)))

    async def fetch_nodes(self, project_id: str) -> list[WBSNode]:
        return [node_from_record(r) for r in self.nodes.get(project_id, [])]


class SqlAlchemyBudgetStore:
    """BudgetStore on the async SQLAlchemy models.

    Args:
        session_factory: Session factory to use; defaults to the configured
            application database
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None):
        if session_factory is None:
            from wbscalc.db.connection import get_session_factory

            session_factory = get_session_factory()
        self.session_factory = session_factory

    async def insert_nodes(
        self,
        project_id: str,
        nodes: Sequence[WBSNode],
        allocations: Sequence[Allocation] = (),
    ) -> bool:
        if not has_unique_codes(nodes):
            logger.error("Rejected tree for project %s: duplicate WBS codes", project_id)
            return False

        try:
            async with self.session_factory() as session, session.begin():
                # Previous import of this project is replaced in the same transaction
                await session.execute(delete(WBSNodeModel).where(WBSNodeModel.project_id == project_id))
                await session.execute(
                    delete(BudgetAllocationModel).where(BudgetAllocationModel.project_id == project_id)
                )

                session.add_all(
                    WBSNodeModel(
                        project_id=project_id,
                        **{k: v for k, v in node.to_record().items() if k in _NODE_COLUMNS},
                    )
                    for node in nodes
                )
                session.add_all(
                    BudgetAllocationModel(
                        project_id=project_id,
                        source_sheet=a.source_sheet,
                        source_row=a.source_row,
                        kind=a.kind,
                        discipline=a.discipline,
                        cost_type=a.cost_type.value,
                        total_cost=a.total_cost,
                        wbs_code=a.wbs_code,
                        payload=a.model_dump(mode="json"),
                    )
                    for a in allocations
                )
        except SQLAlchemyError as e:
            logger.error("Failed to store WBS for project %s: %s", project_id, e)
            return False

        logger.info("Stored %d WBS nodes for project %s", len(nodes), project_id)
        return True

    async def fetch_existing_allocations(
        self, project_id: str, sheet_type: SheetType
    ) -> list[Allocation]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(BudgetAllocationModel.payload)
                .where(BudgetAllocationModel.project_id == project_id)
                .where(BudgetAllocationModel.source_sheet == sheet_type.value)
                .order_by(BudgetAllocationModel.source_row)
            )
            return [_allocation_adapter.validate_python(payload) for payload in result.scalars()]

    async def record_import_audit(self, project_id: str, summary: dict[str, Any]) -> None:
        async with self.session_factory() as session, session.begin():
            session.add(
                ImportAuditModel(
                    project_id=project_id,
                    status=summary.get("status", "UNKNOWN"),
                    node_count=summary.get("node_count", 0),
                    allocation_count=summary.get("allocation_count", 0),
                    summary=summary,
                )
            )

    async def fetch_nodes(self, project_id: str) -> list[WBSNode]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(WBSNodeModel)
                .where(WBSNodeModel.project_id == project_id)
                .order_by(WBSNodeModel.sort_order)
            )
            return [
                node_from_record({name: getattr(row, name) for name in _NODE_COLUMNS})
                for row in result.scalars()
            ]
