"""
Collaborator contracts for the validator, plus in-memory implementations.

The placement data source and the budget store live outside this engine
(dashboard database, remote API).  The validator depends only on these
protocols; ``None`` is the not-found signal for both.

The in-memory classes back the test suite and the CLI fixtures.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from typing import Protocol, runtime_checkable

from stipend_kernel.domain.placement import PlacementContext, StoredBudget


@runtime_checkable
class PlacementDataSource(Protocol):
    """Returns child/family/sibling context for a placement id."""

    def get(self, placement_id: str) -> PlacementContext | None:
        ...


@runtime_checkable
class BudgetStore(Protocol):
    """Returns and persists the stipend currently recorded for a placement."""

    def get(self, placement_id: str) -> StoredBudget | None:
        ...

    def save(self, placement_id: str, budget: StoredBudget) -> None:
        ...


class InMemoryPlacementDataSource:
    """Placement contexts held in a dict keyed by placement id."""

    def __init__(self, placements: Mapping[str, PlacementContext] | None = None):
        self._placements = dict(placements or {})

    def add(self, context: PlacementContext) -> None:
        self._placements[context.placement_id] = context

    def get(self, placement_id: str) -> PlacementContext | None:
        return self._placements.get(placement_id)

    def placement_ids(self) -> tuple[str, ...]:
        return tuple(self._placements)


class InMemoryBudgetStore:
    """Stored budgets held in a dict; safe for concurrent readers and writers."""

    def __init__(self, budgets: Mapping[str, StoredBudget] | None = None):
        self._budgets = dict(budgets or {})
        self._lock = threading.Lock()

    def get(self, placement_id: str) -> StoredBudget | None:
        with self._lock:
            return self._budgets.get(placement_id)

    def save(self, placement_id: str, budget: StoredBudget) -> None:
        with self._lock:
            self._budgets[placement_id] = budget
