"""Pure domain types for the stipend kernel: clock, money helpers, placement DTOs."""

from stipend_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from stipend_kernel.domain.placement import (
    ChildProfile,
    FamilyProfile,
    LegalStatus,
    PlacementContext,
    StoredBudget,
)

__all__ = [
    "ChildProfile",
    "Clock",
    "DeterministicClock",
    "FamilyProfile",
    "LegalStatus",
    "PlacementContext",
    "StoredBudget",
    "SystemClock",
]
