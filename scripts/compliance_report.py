#!/usr/bin/env python3
"""
Run a stipend compliance batch over placement fixtures and print the report.

Loads placements and their stored budgets from a YAML fixtures file, picks
the rule table for the fiscal year, validates every placement on a worker
pool and prints the ComplianceReport as JSON.

Exit codes:
    0  every placement is compliant
    1  at least one placement is non-compliant
    2  bad arguments, unreadable fixtures or missing/invalid rule table

Usage:
    python3 scripts/compliance_report.py scripts/fixtures/sample_placements.yaml
    python3 scripts/compliance_report.py fixtures.yaml --fiscal-year 2025 --as-of 2025-03-31
    python3 scripts/compliance_report.py fixtures.yaml --db-url sqlite:// --workers 8
"""

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Project root on sys.path
# ---------------------------------------------------------------------------
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from stipend_config import get_rule_table  # noqa: E402
from stipend_kernel.domain.clock import DeterministicClock, SystemClock  # noqa: E402
from stipend_kernel.domain.placement import (  # noqa: E402
    ChildProfile,
    FamilyProfile,
    LegalStatus,
    PlacementContext,
    StoredBudget,
)
from stipend_kernel.exceptions import RuleTableError  # noqa: E402
from stipend_kernel.logging_config import configure_logging  # noqa: E402
from stipend_services import (  # noqa: E402
    ComplianceReporter,
    InMemoryBudgetStore,
    InMemoryPlacementDataSource,
    PlacementBudgetValidator,
)

DEFAULT_FIXTURES = ROOT / "scripts" / "fixtures" / "sample_placements.yaml"


# =============================================================================
# Fixture parsing
# =============================================================================


def _as_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def parse_placement(entry: dict[str, Any]) -> PlacementContext:
    child = entry["child"]
    legal = child.get("legal_status") or {}
    family = entry["family"]
    return PlacementContext(
        placement_id=str(entry["placement_id"]),
        child=ChildProfile(
            child_id=str(child["child_id"]),
            birth_date=_as_date(child["birth_date"]),
            has_special_needs=bool(child.get("has_special_needs", False)),
            health_conditions=tuple(child.get("health_conditions") or ()),
            legal_status=LegalStatus(
                court_order=legal.get("court_order"),
                legal_guardian=legal.get("legal_guardian"),
                birth_certificate=legal.get("birth_certificate"),
            ),
        ),
        family=FamilyProfile(
            family_id=str(family["family_id"]),
            state=str(family["state"]),
        ),
        sibling_group=tuple(str(s) for s in entry.get("sibling_group") or ()),
    )


def parse_budget(data: dict[str, Any]) -> StoredBudget:
    return StoredBudget(
        monthly_amount=data["monthly_amount"],
        special_needs_support=data.get("special_needs_support"),
        healthcare_allowance=data.get("healthcare_allowance"),
        education_allowance=data.get("education_allowance"),
    )


def load_fixtures(
    path: Path,
) -> tuple[InMemoryPlacementDataSource, dict[str, StoredBudget], list[str]]:
    """Read placements and budgets; ids listed under ``batch`` or all placements.

    A placement without a ``budget`` block is kept so the batch reports it
    as not found.  Ids listed in ``batch`` but absent from ``placements``
    are reported the same way.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    source = InMemoryPlacementDataSource()
    budgets: dict[str, StoredBudget] = {}
    for entry in data.get("placements") or ():
        context = parse_placement(entry)
        source.add(context)
        if entry.get("budget"):
            budgets[context.placement_id] = parse_budget(entry["budget"])

    ids = [str(pid) for pid in data.get("batch") or source.placement_ids()]
    return source, budgets, ids


def _budget_store(budgets: dict[str, StoredBudget], db_url: str | None):
    if not db_url:
        return InMemoryBudgetStore(budgets)

    from stipend_kernel.db import create_tables, get_session_factory, init_engine_from_url
    from stipend_services.sql_store import SqlBudgetStore

    init_engine_from_url(db_url)
    create_tables()
    store = SqlBudgetStore(get_session_factory())
    for placement_id, budget in budgets.items():
        store.save(placement_id, budget)
    return store


# =============================================================================
# Main
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate foster-care stipends and print a compliance report.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "examples:\n"
            "  python3 scripts/compliance_report.py fixtures.yaml\n"
            "  python3 scripts/compliance_report.py fixtures.yaml --as-of 2024-07-01\n"
        ),
    )
    parser.add_argument(
        "fixtures", nargs="?", type=Path, default=DEFAULT_FIXTURES,
        help="YAML file with placements and stored budgets",
    )
    parser.add_argument(
        "--fiscal-year", type=int, default=None,
        help="Rule table fiscal year (default: year of --as-of)",
    )
    parser.add_argument(
        "--as-of", type=date.fromisoformat, default=None,
        help="Date used for age computation, YYYY-MM-DD (default: today)",
    )
    parser.add_argument(
        "--workers", type=int, default=4,
        help="Concurrent validations (default: 4)",
    )
    parser.add_argument(
        "--timeout", type=float, default=30.0,
        help="Per-placement timeout in seconds (default: 30)",
    )
    parser.add_argument(
        "--config-dir", type=Path, default=None,
        help="Directory holding FY<year>.yaml rule tables",
    )
    parser.add_argument(
        "--db-url", type=str, default=None,
        help="Read stored budgets through SQLAlchemy (fixtures are seeded first)",
    )
    parser.add_argument(
        "--verbose", action="store_true",
        help="Emit structured INFO logs on stderr",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        level=logging.INFO if args.verbose else logging.WARNING,
        stream=sys.stderr,
    )

    clock = DeterministicClock.on(args.as_of) if args.as_of else SystemClock()
    fiscal_year = args.fiscal_year or clock.today().year

    try:
        rules = get_rule_table(fiscal_year, args.config_dir)
    except RuleTableError as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 2

    try:
        source, budgets, ids = load_fixtures(args.fixtures)
    except (OSError, yaml.YAMLError, KeyError, ValueError) as exc:
        print(f"  ERROR: Cannot load fixtures {args.fixtures}: {exc}", file=sys.stderr)
        return 2

    try:
        reporter = ComplianceReporter(
            PlacementBudgetValidator(
                source, _budget_store(budgets, args.db_url), rules, clock=clock,
            ),
            max_workers=args.workers,
            item_timeout_seconds=args.timeout,
        )
    except ValueError as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 2

    report = reporter.validate_batch(ids)
    print(json.dumps(report.to_dict(), indent=2, default=str))

    return 0 if report.summary.non_compliant_placements == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
