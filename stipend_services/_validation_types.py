"""
Validation and report value objects.

Pure frozen dataclasses returned by ``PlacementBudgetValidator`` and
``ComplianceReporter``.  Follows the engine result pattern: enum kinds for
machine classification, tuples for immutable collections, ``to_dict()``
for the presentation boundary.

Human-readable text is never stored on an issue: ``ValidationIssue.message``
renders it from ``kind`` + ``details`` through ``stipend_services.messages``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from stipend_engines.benefit import BenefitBreakdown
from stipend_engines.compliance import ComplianceChecks
from stipend_kernel.domain.values import round_money


class ErrorKind(str, Enum):
    """What made a placement non-compliant."""

    DATA_NOT_FOUND = "data_not_found"
    DATA_INVALID = "data_invalid"
    TOLERANCE = "tolerance"
    MINIMUM_WAGE = "minimum_wage"
    MAXIMUM_BENEFIT = "maximum_benefit"
    SPECIAL_NEEDS = "special_needs"
    REGIONAL = "regional"
    AGE_GROUP = "age_group"
    DOCUMENTATION = "documentation"
    FETCH_TIMEOUT = "fetch_timeout"
    UNEXPECTED_FAILURE = "unexpected_failure"


class WarningKind(str, Enum):
    """Advisory gaps; never affect validity."""

    HEALTHCARE_ALLOWANCE_LOW = "healthcare_allowance_low"
    EDUCATION_ALLOWANCE_LOW = "education_allowance_low"
    UNKNOWN_REGION = "unknown_region"


class ViolationType(str, Enum):
    """Report-level violation classes."""

    MINIMUM_WAGE = "minimum_wage"
    MAXIMUM_BENEFIT = "maximum_benefit"
    SPECIAL_NEEDS = "special_needs"
    REGIONAL_COMPLIANCE = "regional_compliance"
    DOCUMENTATION = "documentation"
    GENERAL = "general"


class ViolationSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class ValidationIssue:
    """One error or warning with its structured context."""

    kind: ErrorKind | WarningKind
    details: Mapping[str, Any] = field(default_factory=dict)

    @property
    def message(self) -> str:
        from stipend_services.messages import render_issue

        return render_issue(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "details": dict(self.details),
        }


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one placement.

    ``is_valid`` is true exactly when ``errors`` is empty.  Failed lookups
    carry a zeroed breakdown and all-false checks.
    """

    placement_id: str
    is_valid: bool
    errors: tuple[ValidationIssue, ...]
    warnings: tuple[ValidationIssue, ...]
    calculated_values: BenefitBreakdown
    compliance_checks: ComplianceChecks
    recommendations: tuple[str, ...] = ()
    stored_monthly: Decimal | None = None

    @classmethod
    def failed(
        cls,
        placement_id: str,
        kind: ErrorKind,
        details: Mapping[str, Any] | None = None,
        stored_monthly: Decimal | None = None,
    ) -> ValidationResult:
        return cls(
            placement_id=placement_id,
            is_valid=False,
            errors=(ValidationIssue(kind, details or {}),),
            warnings=(),
            calculated_values=BenefitBreakdown.zero(),
            compliance_checks=ComplianceChecks.all_failed(),
            stored_monthly=stored_monthly,
        )

    @property
    def error_kinds(self) -> tuple[ErrorKind, ...]:
        return tuple(issue.kind for issue in self.errors)

    @property
    def warning_kinds(self) -> tuple[WarningKind, ...]:
        return tuple(issue.kind for issue in self.warnings)

    @property
    def error_messages(self) -> tuple[str, ...]:
        return tuple(issue.message for issue in self.errors)

    @property
    def warning_messages(self) -> tuple[str, ...]:
        return tuple(issue.message for issue in self.warnings)

    def has_error(self, kind: ErrorKind) -> bool:
        return kind in self.error_kinds

    def to_dict(self) -> dict[str, Any]:
        return {
            "placement_id": self.placement_id,
            "is_valid": self.is_valid,
            "errors": [issue.to_dict() for issue in self.errors],
            "warnings": [issue.to_dict() for issue in self.warnings],
            "calculated_values": self.calculated_values.to_dict(),
            "compliance_checks": self.compliance_checks.to_dict(),
            "recommendations": list(self.recommendations),
            "stored_monthly": (
                round_money(self.stored_monthly)
                if self.stored_monthly is not None else None
            ),
        }


@dataclass(frozen=True)
class Violation:
    """A classified violation type and how many placements carry it."""

    type: ViolationType
    severity: ViolationSeverity
    description: str
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "severity": self.severity.value,
            "description": self.description,
            "count": self.count,
        }


@dataclass(frozen=True)
class ComplianceSummary:
    """Batch totals.

    ``compliance_rate`` is a percentage (0-100) rounded to 2 places;
    budget figures cover only placements whose stored budget was found.
    """

    total_placements: int
    compliant_placements: int
    non_compliant_placements: int
    compliance_rate: Decimal
    total_budget_allocated: Decimal
    average_benefit: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_placements": self.total_placements,
            "compliant_placements": self.compliant_placements,
            "non_compliant_placements": self.non_compliant_placements,
            "compliance_rate": self.compliance_rate,
            "total_budget_allocated": round_money(self.total_budget_allocated),
            "average_benefit": round_money(self.average_benefit),
        }


@dataclass(frozen=True)
class ComplianceReport:
    """Immutable snapshot of one batch run; ``results`` keep input order."""

    summary: ComplianceSummary
    violations: tuple[Violation, ...]
    recommendations: tuple[str, ...]
    results: tuple[ValidationResult, ...]
    fiscal_year: int
    rule_table_checksum: str
    batch_id: str
    generated_at: datetime | None = None

    def violation(self, violation_type: ViolationType) -> Violation | None:
        for v in self.violations:
            if v.type == violation_type:
                return v
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "batch_id": self.batch_id,
            "fiscal_year": self.fiscal_year,
            "rule_table_checksum": self.rule_table_checksum,
            "generated_at": self.generated_at,
            "summary": self.summary.to_dict(),
            "violations": [v.to_dict() for v in self.violations],
            "recommendations": list(self.recommendations),
            "results": [r.to_dict() for r in self.results],
        }
