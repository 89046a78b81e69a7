"""
Tests for the SQLAlchemy budget store (in-memory SQLite).
"""

from decimal import Decimal

from stipend_kernel.db import session_scope
from stipend_kernel.domain.placement import StoredBudget
from stipend_services.placement_validator import PlacementBudgetValidator
from stipend_services.ports import BudgetStore
from stipend_services.sql_store import SqlBudgetStore, StoredBudgetModel
from tests.conftest import make_context


class TestSqlBudgetStore:

    def test_satisfies_budget_store_protocol(self, session_factory):
        assert isinstance(SqlBudgetStore(session_factory), BudgetStore)

    def test_missing_placement_returns_none(self, session_factory):
        assert SqlBudgetStore(session_factory).get("P-404") is None

    def test_save_and_get(self, session_factory):
        store = SqlBudgetStore(session_factory)
        store.save("P-1", StoredBudget(
            monthly_amount=Decimal("2549.95"),
            healthcare_allowance=Decimal("200.00"),
        ))

        budget = store.get("P-1")

        assert budget.monthly_amount == Decimal("2549.95")
        assert budget.healthcare_allowance == Decimal("200.00")
        assert budget.special_needs_support is None
        assert budget.education_allowance is None

    def test_save_overwrites(self, session_factory):
        store = SqlBudgetStore(session_factory)
        store.save("P-1", StoredBudget(monthly_amount=Decimal("1000.00")))
        store.save("P-1", StoredBudget(
            monthly_amount=Decimal("1500.00"), special_needs_support=Decimal("300.00"),
        ))

        with session_factory() as session:
            assert session.query(StoredBudgetModel).count() == 1

        budget = store.get("P-1")
        assert budget.monthly_amount == Decimal("1500.00")
        assert budget.special_needs_support == Decimal("300.00")

    def test_audit_timestamp_set(self, session_factory):
        SqlBudgetStore(session_factory).save("P-1", StoredBudget(Decimal("1000.00")))
        with session_factory() as session:
            row = session.get(StoredBudgetModel, "P-1")
            assert row.created_at is not None

    def test_validator_reads_through_store(
        self, session_factory, placements, rules, clock,
    ):
        store = SqlBudgetStore(session_factory)
        context = make_context("P-SQL")
        placements.add(context)
        validator = PlacementBudgetValidator(placements, store, rules, clock=clock)
        store.save("P-SQL", StoredBudget(
            monthly_amount=Decimal("2549.95"),
            healthcare_allowance=Decimal("200.00"),
            education_allowance=Decimal("150.00"),
        ))

        result = validator.validate_placement("P-SQL")

        assert result.is_valid is True
        assert result.stored_monthly == Decimal("2549.95")

    def test_rows_written_in_session_scope_are_visible(self, session_factory):
        with session_scope() as session:
            session.add(StoredBudgetModel(
                placement_id="P-2",
                monthly_amount=Decimal("1800.00"),
                education_allowance=Decimal("150.00"),
            ))

        budget = SqlBudgetStore(session_factory).get("P-2")

        assert budget.monthly_amount == Decimal("1800.00")
        assert budget.education_allowance == Decimal("150.00")
