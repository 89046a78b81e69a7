"""
Rule table validation (``stipend_config.validator``).

Checks the structural invariants of a parsed ``RuleTable`` before it is
handed to the engines.  Returns every problem found rather than stopping at
the first, so a bad YAML edit is reported in one pass.

Invariants checked:
    - Amounts are positive; the ceiling is not below the minimum wage.
    - Every region and age-band multiplier (and the unknown-region default)
      is >= 1.0; supplement fractions are non-negative.
    - Age bands are contiguous and exhaustive over [0, 18], no overlaps.
    - Every federative unit maps to a region that has a multiplier.
    - Tolerance factors lie in (0, 1].
    - Amounts are in reais (report text is rendered as R$) and the table
      names the legal basis cited in review reminders.
"""

from __future__ import annotations

from decimal import Decimal

from stipend_config.schema import FEDERATIVE_UNITS, RuleTable

ONE = Decimal("1")
ZERO = Decimal("0")

AGE_RANGE_START = 0
AGE_RANGE_END = 18
SUPPORTED_CURRENCY = "BRL"


def _check_amounts(table: RuleTable) -> list[str]:
    problems: list[str] = []
    for name in ("minimum_wage", "base_benefit", "maximum_monthly_benefit"):
        if getattr(table, name) <= ZERO:
            problems.append(f"{name} must be positive")
    if table.maximum_monthly_benefit < table.minimum_wage:
        problems.append("maximum_monthly_benefit is below minimum_wage")
    for name in (
        "healthcare_allowance",
        "education_allowance",
        "clothing_allowance_annual",
        "transport_allowance",
    ):
        if getattr(table, name) < ZERO:
            problems.append(f"{name} cannot be negative")
    for name in ("special_needs_multiplier", "sibling_group_multiplier"):
        if getattr(table, name) < ZERO:
            problems.append(f"{name} cannot be negative")
    return problems


def _check_multipliers(table: RuleTable) -> list[str]:
    problems: list[str] = []
    for region, factor in table.region_multipliers:
        if factor < ONE:
            problems.append(f"region multiplier for {region} is below 1.0 ({factor})")
    if table.unknown_region_multiplier < ONE:
        problems.append(
            f"unknown_region_multiplier is below 1.0 ({table.unknown_region_multiplier})"
        )
    for band in table.age_bands:
        if band.multiplier < ONE:
            problems.append(f"age band {band.label} multiplier is below 1.0 ({band.multiplier})")
    return problems


def _check_age_bands(table: RuleTable) -> list[str]:
    if not table.age_bands:
        return ["no age bands configured"]

    problems: list[str] = []
    bands = sorted(table.age_bands, key=lambda b: b.min_age)
    for band in bands:
        if band.min_age > band.max_age:
            problems.append(f"age band {band.label} has min_age > max_age")

    if bands[0].min_age != AGE_RANGE_START:
        problems.append(f"age bands start at {bands[0].min_age}, expected {AGE_RANGE_START}")
    if bands[-1].max_age != AGE_RANGE_END:
        problems.append(f"age bands end at {bands[-1].max_age}, expected {AGE_RANGE_END}")

    for prev, nxt in zip(bands, bands[1:]):
        if nxt.min_age <= prev.max_age:
            problems.append(f"age bands {prev.label} and {nxt.label} overlap")
        elif nxt.min_age != prev.max_age + 1:
            problems.append(f"gap between age bands {prev.label} and {nxt.label}")
    return problems


def _check_regions(table: RuleTable) -> list[str]:
    problems: list[str] = []
    mapped = dict(table.state_regions)
    known_regions = {region for region, _ in table.region_multipliers}

    missing = [uf for uf in FEDERATIVE_UNITS if uf not in mapped]
    if missing:
        problems.append("states without a region: " + ", ".join(missing))

    for uf, region in table.state_regions:
        if region not in known_regions:
            problems.append(f"state {uf} maps to region {region} with no multiplier")
    return problems


def _check_tolerances(table: RuleTable) -> list[str]:
    problems: list[str] = []
    tol = table.tolerances
    for name in (
        "reconciliation",
        "regional_floor",
        "age_group_floor",
        "special_needs_floor",
        "minimum_wage_batch_share",
    ):
        value = getattr(tol, name)
        if not (ZERO < value <= ONE):
            problems.append(f"tolerance {name} must be in (0, 1], got {value}")
    return problems


def _check_metadata(table: RuleTable) -> list[str]:
    problems: list[str] = []
    if table.currency != SUPPORTED_CURRENCY:
        problems.append(
            f"currency must be {SUPPORTED_CURRENCY}, got {table.currency!r}"
        )
    if not table.legal_basis.strip():
        problems.append("legal_basis is required")
    return problems


def validate_rule_table(table: RuleTable) -> tuple[str, ...]:
    """Return all invariant violations; an empty tuple means valid."""
    problems: list[str] = []
    problems.extend(_check_amounts(table))
    problems.extend(_check_multipliers(table))
    problems.extend(_check_age_bands(table))
    problems.extend(_check_regions(table))
    problems.extend(_check_tolerances(table))
    problems.extend(_check_metadata(table))
    return tuple(problems)
