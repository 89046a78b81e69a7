"""
SQLAlchemy persistence for stored stipend budgets.

Responsibility
--------------
``StoredBudgetModel`` maps one row per placement; ``SqlBudgetStore``
implements the ``BudgetStore`` contract on top of it so the validator can
read budgets straight from the dashboard database.

Architecture position
---------------------
**Services layer** -- persistence adapter.  Inherits from ``TrackedBase``
(kernel db layer).  The validator never sees the ORM model, only the
``StoredBudget`` DTO.

Invariants enforced
-------------------
* All monetary fields use ``Decimal`` (Numeric(38,9)) -- NEVER float.
* One row per ``placement_id``; ``save()`` overwrites.
* Each call opens and closes its own session, so the store is safe to share
  across reporter worker threads.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import String
from sqlalchemy.orm import Mapped, Session, mapped_column, sessionmaker

from stipend_kernel.db.base import TrackedBase
from stipend_kernel.domain.placement import StoredBudget
from stipend_kernel.logging_config import get_logger

logger = get_logger("services.sql_store")


class StoredBudgetModel(TrackedBase):
    """The stipend currently recorded for a placement."""

    __tablename__ = "stored_budgets"

    placement_id: Mapped[str] = mapped_column(String(100), primary_key=True)
    monthly_amount: Mapped[Decimal]
    special_needs_support: Mapped[Decimal | None]
    healthcare_allowance: Mapped[Decimal | None]
    education_allowance: Mapped[Decimal | None]

    def to_dto(self) -> StoredBudget:
        return StoredBudget(
            monthly_amount=self.monthly_amount,
            special_needs_support=self.special_needs_support,
            healthcare_allowance=self.healthcare_allowance,
            education_allowance=self.education_allowance,
        )

    def apply(self, budget: StoredBudget) -> None:
        self.monthly_amount = budget.monthly_amount
        self.special_needs_support = budget.special_needs_support
        self.healthcare_allowance = budget.healthcare_allowance
        self.education_allowance = budget.education_allowance

    def __repr__(self) -> str:
        return f"<StoredBudgetModel {self.placement_id} {self.monthly_amount}>"


class SqlBudgetStore:
    """``BudgetStore`` backed by the ``stored_budgets`` table."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def get(self, placement_id: str) -> StoredBudget | None:
        with self._session_factory() as session:
            row = session.get(StoredBudgetModel, placement_id)
            return row.to_dto() if row is not None else None

    def save(self, placement_id: str, budget: StoredBudget) -> None:
        with self._session_factory() as session, session.begin():
            row = session.get(StoredBudgetModel, placement_id)
            created = row is None
            if created:
                row = StoredBudgetModel(placement_id=placement_id)
                session.add(row)
            row.apply(budget)

        logger.info(
            "stored_budget_saved",
            extra={
                "placement_id": placement_id,
                "created": created,
                "monthly_amount": budget.monthly_amount,
            },
        )
