"""
stipend_services -- imperative shell around the stipend engines.

``PlacementBudgetValidator`` validates one placement against the rule
table; ``ComplianceReporter`` runs it over a batch.  Collaborators
(placement data source, budget store) are injected through the protocols
in ``stipend_services.ports``.
"""

from stipend_services._validation_types import (
    ComplianceReport,
    ComplianceSummary,
    ErrorKind,
    ValidationIssue,
    ValidationResult,
    Violation,
    ViolationSeverity,
    ViolationType,
    WarningKind,
)
from stipend_services.compliance_reporter import ComplianceReporter
from stipend_services.placement_validator import PlacementBudgetValidator
from stipend_services.ports import (
    BudgetStore,
    InMemoryBudgetStore,
    InMemoryPlacementDataSource,
    PlacementDataSource,
)

__all__ = [
    "BudgetStore",
    "ComplianceReport",
    "ComplianceReporter",
    "ComplianceSummary",
    "ErrorKind",
    "InMemoryBudgetStore",
    "InMemoryPlacementDataSource",
    "PlacementBudgetValidator",
    "PlacementDataSource",
    "ValidationIssue",
    "ValidationResult",
    "Violation",
    "ViolationSeverity",
    "ViolationType",
    "WarningKind",
]
