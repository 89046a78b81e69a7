"""
Benefit Calculation Engine (``stipend_engines.benefit``).

Responsibility
--------------
Computes the statutorily expected monthly and annual stipend for a
placement from the fiscal-year rule table:

1. ``base = base_benefit x age-band multiplier x region multiplier``
2. special-needs support = ``base x special_needs_multiplier`` when owed
3. sibling support = ``base x sibling_group_multiplier x (siblings - 1)``
4. fixed healthcare, education, clothing (annual / 12) and transport
5. ``total_monthly`` = exact sum of the seven components
6. ``total_annual = total_monthly x 12``

Architecture position
---------------------
**Engines layer** -- pure functional core.  ZERO I/O, ZERO database,
ZERO clock reads.  The as-of date for age computation is an explicit
argument.

Invariants enforced
-------------------
* Decimal-only arithmetic; no intermediate rounding, so ``total_monthly``
  is exactly the sum of its components.
* Age is calendar-accurate (year, month, day), never a year difference.
* Every age in the covered range maps to exactly one band.

Failure modes
-------------
* ``InvalidBirthDateError`` when the birth date is after the as-of date.
* ``AgeOutOfRangeError`` when the age is outside every configured band.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from stipend_config.schema import RuleTable
from stipend_engines.tracer import traced_engine
from stipend_kernel.domain.placement import ChildProfile, FamilyProfile
from stipend_kernel.domain.values import MONTHS_PER_YEAR, ZERO, round_money
from stipend_kernel.exceptions import InvalidBirthDateError
from stipend_kernel.logging_config import get_logger

logger = get_logger("engines.benefit")


def compute_age(birth_date: date, as_of: date) -> int:
    """Completed years between ``birth_date`` and ``as_of``.

    A birthday on 29 February is reached on 1 March in non-leap years.

    Raises:
        InvalidBirthDateError: if ``birth_date`` is after ``as_of``.
    """
    if birth_date > as_of:
        raise InvalidBirthDateError(birth_date, as_of)
    age = as_of.year - birth_date.year
    if (as_of.month, as_of.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


@dataclass(frozen=True)
class BenefitBreakdown:
    """Itemized expected stipend for one placement.

    The seven monetary components add up exactly to ``total_monthly``.
    The trailing fields record how the base was derived; they are ``None``
    on the zeroed breakdown of a failed validation.
    """

    base_benefit: Decimal
    special_needs_support: Decimal
    sibling_support: Decimal
    healthcare_support: Decimal
    education_support: Decimal
    clothing_support: Decimal
    transport_support: Decimal
    total_monthly: Decimal
    total_annual: Decimal
    age: int | None = None
    age_band: str | None = None
    age_multiplier: Decimal | None = None
    region: str | None = None
    region_multiplier: Decimal | None = None
    is_region_fallback: bool = False
    sibling_count: int = 0

    @classmethod
    def zero(cls) -> BenefitBreakdown:
        return cls(
            base_benefit=ZERO,
            special_needs_support=ZERO,
            sibling_support=ZERO,
            healthcare_support=ZERO,
            education_support=ZERO,
            clothing_support=ZERO,
            transport_support=ZERO,
            total_monthly=ZERO,
            total_annual=ZERO,
        )

    @property
    def components(self) -> tuple[Decimal, ...]:
        return (
            self.base_benefit,
            self.special_needs_support,
            self.sibling_support,
            self.healthcare_support,
            self.education_support,
            self.clothing_support,
            self.transport_support,
        )

    def to_dict(self) -> dict[str, Any]:
        """Presentation form; amounts rounded to 2 decimal places."""
        return {
            "base_benefit": round_money(self.base_benefit),
            "special_needs_support": round_money(self.special_needs_support),
            "sibling_support": round_money(self.sibling_support),
            "healthcare_support": round_money(self.healthcare_support),
            "education_support": round_money(self.education_support),
            "clothing_support": round_money(self.clothing_support),
            "transport_support": round_money(self.transport_support),
            "total_monthly": round_money(self.total_monthly),
            "total_annual": round_money(self.total_annual),
            "age": self.age,
            "age_band": self.age_band,
            "region": self.region,
            "is_region_fallback": self.is_region_fallback,
            "sibling_count": self.sibling_count,
        }


class BenefitCalculator:
    """Pure engine computing the expected stipend breakdown.

    Usage:
        calculator = BenefitCalculator()
        breakdown = calculator.calculate(
            child=child, family=family, sibling_group=("c1", "c2"),
            rules=rule_table, as_of=date(2024, 7, 1),
        )
    """

    @traced_engine(
        "benefit_calculator", "1.0",
        fingerprint_fields=("child", "family", "sibling_group", "as_of"),
    )
    def calculate(
        self,
        *,
        child: ChildProfile,
        family: FamilyProfile,
        sibling_group: tuple[str, ...],
        rules: RuleTable,
        as_of: date,
    ) -> BenefitBreakdown:
        age = compute_age(child.birth_date, as_of)
        band = rules.age_band_for(age)
        region = rules.region_for_state(family.state)

        base = rules.base_benefit * band.multiplier * region.multiplier

        special_needs = ZERO
        if child.has_special_needs:
            special_needs = base * rules.special_needs_multiplier

        sibling_count = len(sibling_group)
        sibling = ZERO
        if sibling_count > 1:
            sibling = base * rules.sibling_group_multiplier * (sibling_count - 1)

        healthcare = rules.healthcare_allowance
        education = rules.education_allowance
        clothing = rules.monthly_clothing_allowance
        transport = rules.transport_allowance

        total_monthly = (
            base + special_needs + sibling
            + healthcare + education + clothing + transport
        )

        return BenefitBreakdown(
            base_benefit=base,
            special_needs_support=special_needs,
            sibling_support=sibling,
            healthcare_support=healthcare,
            education_support=education,
            clothing_support=clothing,
            transport_support=transport,
            total_monthly=total_monthly,
            total_annual=total_monthly * MONTHS_PER_YEAR,
            age=age,
            age_band=band.label,
            age_multiplier=band.multiplier,
            region=region.region,
            region_multiplier=region.multiplier,
            is_region_fallback=region.is_fallback,
            sibling_count=sibling_count,
        )
