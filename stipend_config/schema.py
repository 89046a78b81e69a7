"""
RuleTable schema.

Defines the fiscal-year rule table: the statutory constants (minimum wage,
multipliers, allowances, ceilings) that drive the stipend calculation.
YAML documents under ``stipend_config/sets`` are parsed into these types by
the loader and checked by the validator before any engine sees them.

The table is read-only for the lifetime of a reporting run: every type here
is a frozen dataclass and mappings are stored as tuples of pairs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from stipend_kernel.domain.values import MONTHS_PER_YEAR
from stipend_kernel.exceptions import AgeOutOfRangeError

# The 26 states plus the Federal District.
FEDERATIVE_UNITS: tuple[str, ...] = (
    "AC", "AL", "AP", "AM", "BA", "CE", "DF", "ES", "GO",
    "MA", "MT", "MS", "MG", "PA", "PB", "PR", "PE", "PI",
    "RJ", "RN", "RS", "RO", "RR", "SC", "SP", "SE", "TO",
)

UNKNOWN_REGION = "UNKNOWN"


@dataclass(frozen=True)
class AgeBand:
    """An age range (both ends inclusive) and its benefit multiplier."""

    label: str
    min_age: int
    max_age: int
    multiplier: Decimal

    def contains(self, age: int) -> bool:
        return self.min_age <= age <= self.max_age


@dataclass(frozen=True)
class Tolerances:
    """Tolerance bands used by reconciliation and the compliance checks."""

    reconciliation: Decimal = Decimal("0.05")  # allowed |stored - expected| / expected
    regional_floor: Decimal = Decimal("0.95")
    age_group_floor: Decimal = Decimal("0.95")
    special_needs_floor: Decimal = Decimal("0.90")
    minimum_wage_batch_share: Decimal = Decimal("0.30")  # report priority trigger


@dataclass(frozen=True)
class RegionResolution:
    """Outcome of mapping a family's state code to a region."""

    state: str
    region: str
    multiplier: Decimal
    is_fallback: bool = False


@dataclass(frozen=True)
class RuleTable:
    """Statutory constants for one fiscal year.

    ``base_benefit`` is multiplied by the age-band and region factors;
    ``special_needs_multiplier`` and ``sibling_group_multiplier`` are
    fractions of that multiplied base.  The clothing allowance is annual
    and accounted monthly as one twelfth.
    """

    fiscal_year: int
    minimum_wage: Decimal
    base_benefit: Decimal
    special_needs_multiplier: Decimal
    sibling_group_multiplier: Decimal
    maximum_monthly_benefit: Decimal
    region_multipliers: tuple[tuple[str, Decimal], ...]
    state_regions: tuple[tuple[str, str], ...]
    age_bands: tuple[AgeBand, ...]
    healthcare_allowance: Decimal
    education_allowance: Decimal
    clothing_allowance_annual: Decimal
    transport_allowance: Decimal
    unknown_region_multiplier: Decimal = Decimal("1.00")
    tolerances: Tolerances = field(default_factory=Tolerances)
    currency: str = "BRL"
    legal_basis: str = ""
    checksum: str = ""

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @property
    def min_age(self) -> int:
        return min(band.min_age for band in self.age_bands)

    @property
    def max_age(self) -> int:
        return max(band.max_age for band in self.age_bands)

    @property
    def monthly_clothing_allowance(self) -> Decimal:
        return self.clothing_allowance_annual / MONTHS_PER_YEAR

    def age_band_for(self, age: int) -> AgeBand:
        """Return the single band containing ``age``.

        Raises:
            AgeOutOfRangeError: if no band covers ``age``.
        """
        for band in self.age_bands:
            if band.contains(age):
                return band
        raise AgeOutOfRangeError(age, self.min_age, self.max_age)

    def region_multiplier(self, region: str) -> Decimal:
        for name, multiplier in self.region_multipliers:
            if name == region:
                return multiplier
        return self.unknown_region_multiplier

    def region_for_state(self, state: str) -> RegionResolution:
        """Map a state code to its region.

        Unmapped codes resolve to ``UNKNOWN_REGION`` with the explicit
        ``unknown_region_multiplier`` and ``is_fallback=True``.
        """
        code = (state or "").strip().upper()
        for uf, region in self.state_regions:
            if uf == code:
                return RegionResolution(
                    state=code,
                    region=region,
                    multiplier=self.region_multiplier(region),
                )
        return RegionResolution(
            state=code,
            region=UNKNOWN_REGION,
            multiplier=self.unknown_region_multiplier,
            is_fallback=True,
        )
