"""
Human-readable text for validation issues, recommendations and violations.

This is the presentation boundary: engines and the validator only produce
``ErrorKind`` / ``WarningKind`` values with structured details, and every
sentence a caseworker reads is rendered here.  Amounts are shown in
Brazilian-real format.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from decimal import Decimal
from typing import Any

from stipend_kernel.domain.values import format_brl, percent_uplift
from stipend_services._validation_types import (
    ErrorKind,
    ValidationIssue,
    ViolationType,
    WarningKind,
)


def _brl(details: Mapping[str, Any], key: str) -> str:
    value = details.get(key)
    if value is None:
        return format_brl(Decimal("0"))
    return format_brl(Decimal(str(value)))


def _not_found(d: Mapping[str, Any]) -> str:
    missing = []
    if not d.get("placement_found", False):
        missing.append("placement context")
    if not d.get("budget_found", False):
        missing.append("stored budget")
    what = " and ".join(missing) or "placement data"
    return f"Could not obtain {what} for placement {d.get('placement_id', '?')}"


_ERROR_TEXT: dict[ErrorKind, Callable[[Mapping[str, Any]], str]] = {
    ErrorKind.DATA_NOT_FOUND: _not_found,
    ErrorKind.DATA_INVALID: lambda d: (
        f"Placement data is invalid ({d.get('code', 'unknown')}): {d.get('reason', '')}"
    ),
    ErrorKind.TOLERANCE: lambda d: (
        f"Monthly amount ({_brl(d, 'stored')}) differs significantly from the "
        f"calculated amount ({_brl(d, 'expected')})"
    ),
    ErrorKind.MINIMUM_WAGE: lambda d: (
        f"Monthly amount ({_brl(d, 'stored')}) is below the minimum wage "
        f"({_brl(d, 'minimum_wage')})"
    ),
    ErrorKind.MAXIMUM_BENEFIT: lambda d: (
        f"Monthly amount ({_brl(d, 'stored')}) exceeds the maximum benefit "
        f"({_brl(d, 'maximum_benefit')})"
    ),
    ErrorKind.SPECIAL_NEEDS: lambda d: (
        f"Special-needs support ({_brl(d, 'recorded')}) is below the required "
        f"amount ({_brl(d, 'required')})"
    ),
    ErrorKind.REGIONAL: lambda d: (
        f"Monthly amount ({_brl(d, 'stored')}) is below the regional floor "
        f"({_brl(d, 'floor')}) for region {d.get('region')}"
    ),
    ErrorKind.AGE_GROUP: lambda d: (
        f"Monthly amount ({_brl(d, 'stored')}) is below the age-group floor "
        f"({_brl(d, 'floor')}) for ages {d.get('age_band')}"
    ),
    ErrorKind.DOCUMENTATION: lambda d: (
        "Mandatory legal documentation missing: "
        + ", ".join(d.get("missing_fields", ()))
    ),
    ErrorKind.FETCH_TIMEOUT: lambda d: (
        f"Validation timed out after {d.get('timeout_seconds')}s"
    ),
    ErrorKind.UNEXPECTED_FAILURE: lambda d: (
        f"Validation error: {d.get('exc_type', 'Exception')}: {d.get('reason', '')}"
    ),
}

_WARNING_TEXT: dict[WarningKind, Callable[[Mapping[str, Any]], str]] = {
    WarningKind.HEALTHCARE_ALLOWANCE_LOW: lambda d: (
        f"Healthcare allowance ({_brl(d, 'recorded')}) is below the recommended "
        f"amount ({_brl(d, 'recommended')})"
    ),
    WarningKind.EDUCATION_ALLOWANCE_LOW: lambda d: (
        f"Education allowance ({_brl(d, 'recorded')}) is below the recommended "
        f"amount ({_brl(d, 'recommended')})"
    ),
    WarningKind.UNKNOWN_REGION: lambda d: (
        f"State '{d.get('state')}' is not mapped to a region; the default "
        f"multiplier {d.get('multiplier')} was applied"
    ),
}


def render_issue(issue: ValidationIssue) -> str:
    """Render an error or warning as one sentence."""
    if isinstance(issue.kind, ErrorKind):
        return _ERROR_TEXT[issue.kind](issue.details)
    return _WARNING_TEXT[issue.kind](issue.details)


# ---------------------------------------------------------------------------
# Placement recommendations
# ---------------------------------------------------------------------------


def raise_monthly_amount(total: Decimal) -> str:
    return (
        f"Consider raising the monthly benefit to {format_brl(total)} "
        "to comply with the Brazilian guidelines"
    )


def add_special_needs_support(amount: Decimal) -> str:
    return f"Add special-needs support of {format_brl(amount)}"


def add_healthcare_allowance(amount: Decimal) -> str:
    return f"Include a monthly healthcare allowance of {format_brl(amount)}"


def add_education_allowance(amount: Decimal) -> str:
    return f"Include a monthly education allowance of {format_brl(amount)}"


def apply_regional_multiplier(multiplier: Decimal, region: str) -> str:
    return (
        f"Consider applying the regional multiplier of {percent_uplift(multiplier)} "
        f"for region {region}"
    )


def apply_age_multiplier(multiplier: Decimal, band: str) -> str:
    return (
        f"Consider applying the age-group multiplier of {percent_uplift(multiplier)} "
        f"for children aged {band}"
    )


def review_reminders(legal_basis: str) -> tuple[str, ...]:
    """Closing reminders citing the rule table's legal basis."""
    return (
        f"Keep all benefit documentation up to date under {legal_basis}",
        f"Review benefit amounts quarterly under {legal_basis}",
    )


# ---------------------------------------------------------------------------
# Report text
# ---------------------------------------------------------------------------

VIOLATION_DESCRIPTIONS: dict[ViolationType, str] = {
    ViolationType.MINIMUM_WAGE: "Benefits below the Brazilian minimum wage",
    ViolationType.MAXIMUM_BENEFIT: "Benefits above the established maximum",
    ViolationType.SPECIAL_NEEDS: "Inadequate support for special needs",
    ViolationType.REGIONAL_COMPLIANCE: "Regional multipliers not applied",
    ViolationType.DOCUMENTATION: "Mandatory legal documentation missing",
    ViolationType.GENERAL: "Other general non-compliance",
}

SYSTEM_RECOMMENDATIONS: tuple[str, ...] = (
    "Implement automatic minimum-wage compliance checks",
    "Configure automatic regional multipliers based on the family address",
    "Create alerts for inadequate special-needs support",
    "Establish a quarterly review of all benefits",
    "Implement automatic ECA compliance audits",
)


def priority_minimum_wage(share: Decimal) -> str:
    pct = (share * Decimal("100")).normalize()
    return (
        f"Priority action: more than {pct:f}% of benefits are below the minimum wage"
    )


PRIORITY_SPECIAL_NEEDS = (
    "Priority action: children with special needs are not receiving adequate support"
)
