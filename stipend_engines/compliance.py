"""
Stipend Compliance Engine (``stipend_engines.compliance``).

Responsibility
--------------
Six independent predicates comparing the stored budget of a placement
against the statutory bounds and the expected breakdown:

* minimum wage -- stored monthly >= minimum wage
* maximum benefit -- stored monthly <= monthly ceiling
* regional -- stored monthly >= base x region multiplier x regional floor
* age group -- stored monthly >= base x age multiplier x age floor
* special needs -- stored special-needs support >= expected x 0.90
* documentation -- court order, legal guardian and birth certificate present

Architecture position
---------------------
**Engines layer** -- pure functional core.  ZERO I/O, ZERO clock reads.
The regional and age-group floors use the unmultiplied ``base_benefit``
of the rule table; the special-needs floor uses the expected support from
the breakdown.

Failure modes
-------------
* Returns booleans (not exceptions) for every business rule outcome.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from decimal import Decimal

from stipend_config.schema import RuleTable
from stipend_engines.benefit import BenefitBreakdown
from stipend_engines.tracer import traced_engine
from stipend_kernel.domain.placement import (
    ChildProfile,
    FamilyProfile,
    LegalStatus,
    StoredBudget,
)
from stipend_kernel.domain.values import ZERO
from stipend_kernel.logging_config import get_logger

logger = get_logger("engines.compliance")


@dataclass(frozen=True)
class ComplianceChecks:
    """Outcome of the six named compliance checks."""

    minimum_wage_compliance: bool
    maximum_benefit_compliance: bool
    regional_compliance: bool
    age_group_compliance: bool
    special_needs_compliance: bool
    documentation_compliance: bool

    @classmethod
    def all_failed(cls) -> ComplianceChecks:
        return cls(False, False, False, False, False, False)

    @property
    def all_passed(self) -> bool:
        return all(getattr(self, f.name) for f in fields(self))

    @property
    def failed_checks(self) -> tuple[str, ...]:
        return tuple(f.name for f in fields(self) if not getattr(self, f.name))

    def to_dict(self) -> dict[str, bool]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


class ComplianceChecker:
    """Pure engine evaluating a stored budget against the rule table.

    Usage:
        checker = ComplianceChecker()
        checks = checker.run_all_checks(
            stored=budget, breakdown=breakdown, child=child,
            family=family, rules=rule_table,
        )
    """

    # -----------------------------------------------------------------
    # Statutory bounds
    # -----------------------------------------------------------------

    @staticmethod
    def check_minimum_wage(stored_monthly: Decimal, rules: RuleTable) -> bool:
        return stored_monthly >= rules.minimum_wage

    @staticmethod
    def check_maximum_benefit(stored_monthly: Decimal, rules: RuleTable) -> bool:
        return stored_monthly <= rules.maximum_monthly_benefit

    # -----------------------------------------------------------------
    # Multiplier floors
    # -----------------------------------------------------------------

    @staticmethod
    def regional_floor(region_multiplier: Decimal, rules: RuleTable) -> Decimal:
        return rules.base_benefit * region_multiplier * rules.tolerances.regional_floor

    @staticmethod
    def age_group_floor(age_multiplier: Decimal, rules: RuleTable) -> Decimal:
        return rules.base_benefit * age_multiplier * rules.tolerances.age_group_floor

    def check_regional(
        self, stored_monthly: Decimal, family: FamilyProfile, rules: RuleTable,
    ) -> bool:
        multiplier = rules.region_for_state(family.state).multiplier
        return stored_monthly >= self.regional_floor(multiplier, rules)

    def check_age_group(
        self, stored_monthly: Decimal, breakdown: BenefitBreakdown, rules: RuleTable,
    ) -> bool:
        multiplier = breakdown.age_multiplier
        if multiplier is None:
            return False
        return stored_monthly >= self.age_group_floor(multiplier, rules)

    # -----------------------------------------------------------------
    # Special needs and documentation
    # -----------------------------------------------------------------

    @staticmethod
    def check_special_needs(
        stored: StoredBudget,
        breakdown: BenefitBreakdown,
        child: ChildProfile,
        rules: RuleTable,
    ) -> bool:
        if not child.has_special_needs:
            return True
        recorded = stored.special_needs_support or ZERO
        required = breakdown.special_needs_support * rules.tolerances.special_needs_floor
        return recorded >= required

    @staticmethod
    def check_documentation(legal_status: LegalStatus) -> bool:
        return legal_status.is_complete

    # -----------------------------------------------------------------
    # All checks
    # -----------------------------------------------------------------

    @traced_engine(
        "compliance_checker", "1.0",
        fingerprint_fields=("stored", "breakdown", "child", "family"),
    )
    def run_all_checks(
        self,
        *,
        stored: StoredBudget,
        breakdown: BenefitBreakdown,
        child: ChildProfile,
        family: FamilyProfile,
        rules: RuleTable,
    ) -> ComplianceChecks:
        monthly = stored.monthly_amount
        return ComplianceChecks(
            minimum_wage_compliance=self.check_minimum_wage(monthly, rules),
            maximum_benefit_compliance=self.check_maximum_benefit(monthly, rules),
            regional_compliance=self.check_regional(monthly, family, rules),
            age_group_compliance=self.check_age_group(monthly, breakdown, rules),
            special_needs_compliance=self.check_special_needs(stored, breakdown, child, rules),
            documentation_compliance=self.check_documentation(child.legal_status),
        )
