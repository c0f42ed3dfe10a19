"""Persistence for finalized WBS trees."""

from wbscalc.db.store import BudgetStore, InMemoryBudgetStore, SqlAlchemyBudgetStore

__all__ = ["BudgetStore", "InMemoryBudgetStore", "SqlAlchemyBudgetStore"]
