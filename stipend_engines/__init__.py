"""
Module: stipend_engines
Responsibility:
    Package entrypoint re-exporting the pure calculation engines: the
    benefit calculator and the compliance checker.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May import stipend_kernel (domain, logging) and stipend_config.schema.
    MUST NOT import stipend_services.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``;
      the as-of date is an explicit parameter.
    - Decimal-only arithmetic: floats are forbidden for amounts.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Every engine invocation is traced via ``@traced_engine``, emitting
    STIPEND_ENGINE_TRACE records with engine name, version, input
    fingerprint and duration.
"""

from stipend_engines.benefit import BenefitBreakdown, BenefitCalculator, compute_age
from stipend_engines.compliance import ComplianceChecker, ComplianceChecks
from stipend_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "BenefitBreakdown",
    "BenefitCalculator",
    "ComplianceChecker",
    "ComplianceChecks",
    "compute_age",
    "compute_input_fingerprint",
    "traced_engine",
]
