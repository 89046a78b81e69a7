"""
Pytest fixtures for the stipend compliance test suite.

Rule tables come from the packaged YAML sets; placements and budgets are
built in memory.  The SQLAlchemy store tests use an in-memory SQLite
database.
"""

import json
import logging
from collections.abc import Generator
from datetime import date
from decimal import Decimal
from io import StringIO

import pytest
from sqlalchemy.orm import Session, sessionmaker

from stipend_config import clear_rule_table_cache, get_rule_table
from stipend_config.schema import RuleTable
from stipend_kernel.db import create_tables, drop_tables, get_session_factory
from stipend_kernel.db import init_engine_from_url, reset_engine
from stipend_kernel.domain.clock import DeterministicClock
from stipend_kernel.domain.placement import (
    ChildProfile,
    FamilyProfile,
    LegalStatus,
    PlacementContext,
    StoredBudget,
)
from stipend_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from stipend_services.ports import InMemoryBudgetStore, InMemoryPlacementDataSource

AS_OF = date(2024, 7, 1)

COMPLETE_DOCS = LegalStatus(
    court_order="TJSP 0001234-56.2023",
    legal_guardian="Maria Souza",
    birth_certificate="CN 123456 01 55 2019",
)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture stipend_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, validator):
            validator.validate_placement("P-1")
            logs = captured_logs()
            assert any(r["message"] == "placement_validated" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("stipend_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Rule table and clock
# =============================================================================


@pytest.fixture
def rules() -> RuleTable:
    return get_rule_table(2024)


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock.on(AS_OF)


@pytest.fixture(autouse=True)
def _fresh_rule_table_cache():
    yield
    clear_rule_table_cache()


# =============================================================================
# Builders
# =============================================================================


def years_before(as_of: date, years: int) -> date:
    """Birth date making a child exactly ``years`` old on ``as_of``."""
    return as_of.replace(year=as_of.year - years)


def make_child(
    age: int = 5,
    *,
    child_id: str = "C-1",
    has_special_needs: bool = False,
    legal_status: LegalStatus = COMPLETE_DOCS,
    as_of: date = AS_OF,
) -> ChildProfile:
    return ChildProfile(
        child_id=child_id,
        birth_date=years_before(as_of, age),
        has_special_needs=has_special_needs,
        legal_status=legal_status,
    )


def make_family(state: str = "SP", family_id: str = "F-1") -> FamilyProfile:
    return FamilyProfile(family_id=family_id, state=state)


def make_context(
    placement_id: str = "P-1",
    *,
    age: int = 5,
    state: str = "SP",
    has_special_needs: bool = False,
    siblings: int = 1,
    legal_status: LegalStatus = COMPLETE_DOCS,
) -> PlacementContext:
    child = make_child(
        age,
        child_id=f"C-{placement_id}",
        has_special_needs=has_special_needs,
        legal_status=legal_status,
    )
    group = tuple(f"C-{placement_id}-{i}" for i in range(siblings))
    return PlacementContext(
        placement_id=placement_id,
        child=child,
        family=make_family(state),
        sibling_group=group,
    )


def make_budget(
    monthly: str,
    *,
    special_needs: str | None = None,
    healthcare: str | None = "200.00",
    education: str | None = "150.00",
) -> StoredBudget:
    return StoredBudget(
        monthly_amount=Decimal(monthly),
        special_needs_support=Decimal(special_needs) if special_needs else None,
        healthcare_allowance=Decimal(healthcare) if healthcare else None,
        education_allowance=Decimal(education) if education else None,
    )


@pytest.fixture
def placements() -> InMemoryPlacementDataSource:
    return InMemoryPlacementDataSource()


@pytest.fixture
def budgets() -> InMemoryBudgetStore:
    return InMemoryBudgetStore()


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def session_factory() -> Generator[sessionmaker[Session], None, None]:
    """Fresh in-memory SQLite database with the stored_budgets table."""
    init_engine_from_url("sqlite://")
    create_tables()
    yield get_session_factory()
    drop_tables()
    reset_engine()
