"""
PlacementBudgetValidator -- reconciles a placement's stored stipend against
the statutory calculation.

Composes BenefitCalculator and ComplianceChecker (pure engines) with the
two external reads (placement context, stored budget) and clock injection.

Architecture: stipend_services -- imperative shell.
    The only I/O is the two collaborator calls; everything else is
    delegated to the engines.

Contract:
    ``validate_placement()`` never raises for data problems.  A missing
    context or budget, or a context the engines cannot interpret, comes
    back as a terminal ``ValidationResult`` with ``is_valid=False``, a
    zeroed breakdown and all checks false.

Reconciliation rules:
    - TOLERANCE error when |stored - expected| > expected x tolerance
      (strict: exactly at the band edge passes).
    - MINIMUM_WAGE / MAXIMUM_BENEFIT errors for the hard statutory bounds.
    - SPECIAL_NEEDS / REGIONAL / AGE_GROUP / DOCUMENTATION errors when
      the corresponding check fails.
    - Healthcare/education allowances missing or low, and unmapped
      states, are warnings only.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from stipend_config.schema import RuleTable
from stipend_engines.benefit import BenefitBreakdown, BenefitCalculator
from stipend_engines.compliance import ComplianceChecker, ComplianceChecks
from stipend_kernel.domain.clock import Clock, SystemClock
from stipend_kernel.domain.placement import PlacementContext, StoredBudget
from stipend_kernel.domain.values import ZERO
from stipend_kernel.exceptions import PlacementDataError
from stipend_kernel.logging_config import LogContext, get_logger
from stipend_services import messages
from stipend_services._validation_types import (
    ErrorKind,
    ValidationIssue,
    ValidationResult,
    WarningKind,
)
from stipend_services.ports import BudgetStore, PlacementDataSource

logger = get_logger("services.placement_validator")

ONE = Decimal("1")


class PlacementBudgetValidator:
    """Validates one placement's stored budget against the rule table.

    Contract:
        - ``validate_placement()`` fetches context and budget, runs both
          engines and returns a fully populated ``ValidationResult``.
        - ``expected_breakdown()`` runs only the calculation.

    Non-goals:
        - Does NOT persist results or adjust the stored budget.
        - Does NOT catch unexpected exceptions from collaborators; batch
          isolation is the reporter's job.
    """

    def __init__(
        self,
        placements: PlacementDataSource,
        budgets: BudgetStore,
        rules: RuleTable,
        clock: Clock | None = None,
        calculator: BenefitCalculator | None = None,
        checker: ComplianceChecker | None = None,
    ) -> None:
        self._placements = placements
        self._budgets = budgets
        self._rules = rules
        self._clock = clock or SystemClock()
        self._calculator = calculator or BenefitCalculator()
        self._checker = checker or ComplianceChecker()

    @property
    def rules(self) -> RuleTable:
        return self._rules

    @property
    def clock(self) -> Clock:
        return self._clock

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def expected_breakdown(
        self, context: PlacementContext, as_of: date | None = None,
    ) -> BenefitBreakdown:
        """Statutory breakdown for ``context`` (raises PlacementDataError)."""
        return self._calculator.calculate(
            child=context.child,
            family=context.family,
            sibling_group=context.sibling_group,
            rules=self._rules,
            as_of=as_of or self._clock.today(),
        )

    def validate_placement(self, placement_id: str) -> ValidationResult:
        """Validate the stored budget of ``placement_id``."""
        with LogContext.bind(placement_id=str(placement_id)):
            context = self._placements.get(placement_id)
            budget = self._budgets.get(placement_id)

            if context is None or budget is None:
                logger.warning(
                    "placement_not_found",
                    extra={
                        "placement_found": context is not None,
                        "budget_found": budget is not None,
                    },
                )
                return ValidationResult.failed(
                    placement_id,
                    ErrorKind.DATA_NOT_FOUND,
                    {
                        "placement_id": placement_id,
                        "placement_found": context is not None,
                        "budget_found": budget is not None,
                    },
                    stored_monthly=budget.monthly_amount if budget else None,
                )

            try:
                breakdown = self.expected_breakdown(context)
            except PlacementDataError as exc:
                logger.warning(
                    "placement_data_invalid",
                    extra={"code": exc.code, "reason": str(exc)},
                )
                return ValidationResult.failed(
                    placement_id,
                    ErrorKind.DATA_INVALID,
                    {"code": exc.code, "reason": str(exc)},
                    stored_monthly=budget.monthly_amount,
                )

            checks = self._checker.run_all_checks(
                stored=budget,
                breakdown=breakdown,
                child=context.child,
                family=context.family,
                rules=self._rules,
            )

            errors = self._reconcile(budget, breakdown, checks, context)
            warnings = self._advisories(budget, breakdown, context)
            recommendations = self._recommend(budget, breakdown, context)

            result = ValidationResult(
                placement_id=placement_id,
                is_valid=not errors,
                errors=errors,
                warnings=warnings,
                calculated_values=breakdown,
                compliance_checks=checks,
                recommendations=recommendations,
                stored_monthly=budget.monthly_amount,
            )

            logger.info(
                "placement_validated",
                extra={
                    "is_valid": result.is_valid,
                    "error_kinds": [k.value for k in result.error_kinds],
                    "warning_count": len(warnings),
                    "stored_monthly": budget.monthly_amount,
                    "expected_monthly": breakdown.total_monthly,
                },
            )
            return result

    # -------------------------------------------------------------------------
    # Errors
    # -------------------------------------------------------------------------

    def _reconcile(
        self,
        budget: StoredBudget,
        breakdown: BenefitBreakdown,
        checks: ComplianceChecks,
        context: PlacementContext,
    ) -> tuple[ValidationIssue, ...]:
        rules = self._rules
        stored = budget.monthly_amount
        expected = breakdown.total_monthly
        errors: list[ValidationIssue] = []

        difference = abs(stored - expected)
        allowed = expected * rules.tolerances.reconciliation
        if difference > allowed:
            errors.append(ValidationIssue(ErrorKind.TOLERANCE, {
                "stored": stored,
                "expected": expected,
                "difference": difference,
                "allowed": allowed,
            }))

        if not checks.minimum_wage_compliance:
            errors.append(ValidationIssue(ErrorKind.MINIMUM_WAGE, {
                "stored": stored,
                "minimum_wage": rules.minimum_wage,
            }))

        if not checks.maximum_benefit_compliance:
            errors.append(ValidationIssue(ErrorKind.MAXIMUM_BENEFIT, {
                "stored": stored,
                "maximum_benefit": rules.maximum_monthly_benefit,
            }))

        if not checks.special_needs_compliance:
            errors.append(ValidationIssue(ErrorKind.SPECIAL_NEEDS, {
                "recorded": budget.special_needs_support or ZERO,
                "expected": breakdown.special_needs_support,
                "required": (
                    breakdown.special_needs_support
                    * rules.tolerances.special_needs_floor
                ),
            }))

        if not checks.regional_compliance:
            errors.append(ValidationIssue(ErrorKind.REGIONAL, {
                "stored": stored,
                "floor": self._checker.regional_floor(breakdown.region_multiplier, rules),
                "region": breakdown.region,
                "multiplier": breakdown.region_multiplier,
            }))

        if not checks.age_group_compliance:
            errors.append(ValidationIssue(ErrorKind.AGE_GROUP, {
                "stored": stored,
                "floor": self._checker.age_group_floor(breakdown.age_multiplier, rules),
                "age_band": breakdown.age_band,
                "multiplier": breakdown.age_multiplier,
            }))

        if not checks.documentation_compliance:
            errors.append(ValidationIssue(ErrorKind.DOCUMENTATION, {
                "missing_fields": context.child.legal_status.missing_fields,
            }))

        return tuple(errors)

    # -------------------------------------------------------------------------
    # Warnings
    # -------------------------------------------------------------------------

    def _advisories(
        self,
        budget: StoredBudget,
        breakdown: BenefitBreakdown,
        context: PlacementContext,
    ) -> tuple[ValidationIssue, ...]:
        rules = self._rules
        warnings: list[ValidationIssue] = []

        healthcare = budget.healthcare_allowance
        if healthcare is None or healthcare < rules.healthcare_allowance:
            warnings.append(ValidationIssue(WarningKind.HEALTHCARE_ALLOWANCE_LOW, {
                "recorded": healthcare or ZERO,
                "recommended": rules.healthcare_allowance,
            }))

        education = budget.education_allowance
        if education is None or education < rules.education_allowance:
            warnings.append(ValidationIssue(WarningKind.EDUCATION_ALLOWANCE_LOW, {
                "recorded": education or ZERO,
                "recommended": rules.education_allowance,
            }))

        if breakdown.is_region_fallback:
            warnings.append(ValidationIssue(WarningKind.UNKNOWN_REGION, {
                "state": context.family.state_code,
                "multiplier": breakdown.region_multiplier,
            }))

        return tuple(warnings)

    # -------------------------------------------------------------------------
    # Recommendations (priority order)
    # -------------------------------------------------------------------------

    def _recommend(
        self,
        budget: StoredBudget,
        breakdown: BenefitBreakdown,
        context: PlacementContext,
    ) -> tuple[str, ...]:
        rules = self._rules
        recs: list[str] = []

        if budget.monthly_amount < breakdown.total_monthly:
            recs.append(messages.raise_monthly_amount(breakdown.total_monthly))

        if (
            context.child.has_special_needs
            and breakdown.special_needs_support > ZERO
            and not budget.special_needs_support
        ):
            recs.append(messages.add_special_needs_support(breakdown.special_needs_support))

        if not budget.healthcare_allowance:
            recs.append(messages.add_healthcare_allowance(rules.healthcare_allowance))

        if not budget.education_allowance:
            recs.append(messages.add_education_allowance(rules.education_allowance))

        if not breakdown.is_region_fallback and breakdown.region_multiplier > ONE:
            recs.append(
                messages.apply_regional_multiplier(breakdown.region_multiplier, breakdown.region)
            )

        if breakdown.age_multiplier > ONE:
            recs.append(messages.apply_age_multiplier(breakdown.age_multiplier, breakdown.age_band))

        recs.extend(messages.review_reminders(rules.legal_basis))
        return tuple(recs)
