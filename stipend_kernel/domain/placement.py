"""
Placement Domain Models (``stipend_kernel.domain.placement``).

Responsibility
--------------
Frozen dataclass value objects describing what the external collaborators
hand to the engine: the child, the foster family, the placement that links
them, and the budget currently recorded for that placement.

Architecture position
---------------------
**Kernel > Domain** -- pure data definitions with ZERO I/O.  Produced by a
``PlacementDataSource`` / ``BudgetStore`` implementation and consumed by the
engines and the validator.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable for the duration of a run).
* All monetary fields use ``Decimal`` -- NEVER ``float``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from stipend_kernel.domain.values import optional_decimal, to_decimal

if TYPE_CHECKING:
    from stipend_engines.benefit import BenefitBreakdown


@dataclass(frozen=True)
class LegalStatus:
    """Mandatory legal references for a child in care.

    Empty strings count as missing.
    """

    court_order: str | None = None
    legal_guardian: str | None = None
    birth_certificate: str | None = None

    @property
    def missing_fields(self) -> tuple[str, ...]:
        missing = []
        for name in ("court_order", "legal_guardian", "birth_certificate"):
            value = getattr(self, name)
            if value is None or not str(value).strip():
                missing.append(name)
        return tuple(missing)

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields


@dataclass(frozen=True)
class ChildProfile:
    """The placed child, reduced to what the stipend rules read."""

    child_id: str
    birth_date: date
    has_special_needs: bool = False
    health_conditions: tuple[str, ...] = ()
    legal_status: LegalStatus = field(default_factory=LegalStatus)


@dataclass(frozen=True)
class FamilyProfile:
    """The foster family; only the address state drives the rules."""

    family_id: str
    state: str

    @property
    def state_code(self) -> str:
        return self.state.strip().upper()


@dataclass(frozen=True)
class PlacementContext:
    """A child placed with a family, plus the co-placed sibling group.

    ``sibling_group`` lists every child placed together, the placed child
    included; a group of one (or an empty group) earns no sibling support.
    """

    placement_id: str
    child: ChildProfile
    family: FamilyProfile
    sibling_group: tuple[str, ...] = ()

    @property
    def sibling_count(self) -> int:
        return len(self.sibling_group)


@dataclass(frozen=True)
class StoredBudget:
    """Stipend currently recorded for a placement (the "actual" values)."""

    monthly_amount: Decimal
    special_needs_support: Decimal | None = None
    healthcare_allowance: Decimal | None = None
    education_allowance: Decimal | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "monthly_amount", to_decimal(self.monthly_amount))
        for name in ("special_needs_support", "healthcare_allowance", "education_allowance"):
            object.__setattr__(self, name, optional_decimal(getattr(self, name)))
        if self.monthly_amount < 0:
            raise ValueError("monthly_amount cannot be negative")

    @classmethod
    def from_breakdown(cls, breakdown: BenefitBreakdown) -> StoredBudget:
        """Budget that records exactly what the calculator expects."""
        return cls(
            monthly_amount=breakdown.total_monthly,
            special_needs_support=breakdown.special_needs_support,
            healthcare_allowance=breakdown.healthcare_support,
            education_allowance=breakdown.education_support,
        )
