"""SQLAlchemy async database models for wbscalc.

A project's WBS tree is stored flat: one row per node, parent linkage by
code. Re-importing a project replaces its rows wholesale.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func

MONEY = Numeric(14, 2)
QUANTITY = Numeric(14, 4)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class WBSNodeModel(Base):
    """One node of a project's 5-level WBS."""

    __tablename__ = "wbs_nodes"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    project_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)

    code: Mapped[str] = mapped_column(String(64), nullable=False)
    parent_code: Mapped[str | None] = mapped_column(String(64))
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    discipline: Mapped[str | None] = mapped_column(Text)
    phase: Mapped[str | None] = mapped_column(String(32))
    cost_type: Mapped[str | None] = mapped_column(String(8))
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Cost buckets
    labor_cost: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    material_cost: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    equipment_cost: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    subcontract_cost: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    other_cost: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    budget_total: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))

    # Hours and crew
    manhours: Mapped[Decimal | None] = mapped_column(QUANTITY)
    direct_hours: Mapped[Decimal | None] = mapped_column(QUANTITY)
    indirect_hours: Mapped[Decimal | None] = mapped_column(QUANTITY)
    crew_size: Mapped[int | None] = mapped_column(Integer)
    duration_days: Mapped[int | None] = mapped_column(Integer)
    fte: Mapped[Decimal | None] = mapped_column(QUANTITY)

    source_sheet: Mapped[str | None] = mapped_column(String(32))
    source_row: Mapped[int | None] = mapped_column(Integer)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("project_id", "code", name="uq_wbs_nodes_project_code"),
        Index("idx_wbs_nodes_parent", "project_id", "parent_code"),
        Index("idx_wbs_nodes_level", "project_id", "level"),
    )


class BudgetAllocationModel(Base):
    """Allocation record as parsed from the workbook, kept for re-import matching."""

    __tablename__ = "budget_allocations"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    project_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    source_sheet: Mapped[str] = mapped_column(String(32), nullable=False)
    source_row: Mapped[int] = mapped_column(Integer, nullable=False)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    discipline: Mapped[str] = mapped_column(Text, nullable=False)
    cost_type: Mapped[str] = mapped_column(String(8), nullable=False)
    total_cost: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    wbs_code: Mapped[str | None] = mapped_column(String(64))
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)  # full allocation, JSON mode

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (Index("idx_allocations_project_sheet", "project_id", "source_sheet"),)


class ImportAuditModel(Base):
    """Audit log of budget imports."""

    __tablename__ = "import_audits"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    project_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    node_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    allocation_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    summary: Mapped[dict] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
