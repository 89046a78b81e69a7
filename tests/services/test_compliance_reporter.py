"""
Tests for ComplianceReporter.

Covers:
- Scenario D: rate and violation counts
- Per-placement isolation (exceptions, timeouts, missing data)
- Input-order reassembly under concurrency
- Violation classification and system recommendations
- Log context propagation into worker threads
"""

import threading
import time
from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from stipend_config import get_rule_table
from stipend_kernel.domain.clock import DeterministicClock
from stipend_kernel.domain.placement import LegalStatus, StoredBudget
from stipend_services import messages
from stipend_services._validation_types import (
    ErrorKind,
    ViolationSeverity,
    ViolationType,
)
from stipend_services.compliance_reporter import ComplianceReporter
from stipend_services.placement_validator import PlacementBudgetValidator
from stipend_services.ports import InMemoryBudgetStore, InMemoryPlacementDataSource
from tests.conftest import AS_OF, make_budget, make_context


def _compliant(validator, placements, budgets, placement_id, **kwargs):
    context = make_context(placement_id, **kwargs)
    placements.add(context)
    budgets.save(placement_id, StoredBudget.from_breakdown(validator.expected_breakdown(context)))


def _underpaid(placements, budgets, placement_id, monthly="1000.00", **kwargs):
    placements.add(make_context(placement_id, **kwargs))
    budgets.save(placement_id, make_budget(monthly))


@pytest.fixture
def validator(placements, budgets, rules, clock):
    return PlacementBudgetValidator(placements, budgets, rules, clock=clock)


@pytest.fixture
def reporter(validator):
    return ComplianceReporter(validator, max_workers=4, item_timeout_seconds=5.0)


class _SlowSource:
    """Placement source with per-id delays; optional blocking and failing ids."""

    def __init__(self, inner, delays=None, block=(), fail=()):
        self._inner = inner
        self._delays = delays or {}
        self._block = set(block)
        self._fail = set(fail)
        self.release = threading.Event()
        self.threads = []

    def get(self, placement_id):
        self.threads.append(threading.current_thread())
        if placement_id in self._fail:
            raise ConnectionError(f"placement service unavailable for {placement_id}")
        if placement_id in self._block:
            self.release.wait(timeout=10)
        time.sleep(self._delays.get(placement_id, 0))
        return self._inner.get(placement_id)


# ---------------------------------------------------------------------------
# Scenario D and summary
# ---------------------------------------------------------------------------


class TestSummary:

    def test_scenario_d_two_of_three_compliant(self, reporter, validator, placements, budgets):
        _compliant(validator, placements, budgets, "P-1")
        _compliant(validator, placements, budgets, "P-2", age=10, state="BA")
        _underpaid(placements, budgets, "P-3")

        report = reporter.validate_batch(["P-1", "P-2", "P-3"])

        assert report.summary.total_placements == 3
        assert report.summary.compliant_placements == 2
        assert report.summary.non_compliant_placements == 1
        assert report.summary.compliance_rate == Decimal("66.67")

        minimum_wage = report.violation(ViolationType.MINIMUM_WAGE)
        assert minimum_wage is not None
        assert minimum_wage.count == 1
        assert minimum_wage.severity == ViolationSeverity.HIGH
        assert minimum_wage.description == messages.VIOLATION_DESCRIPTIONS[
            ViolationType.MINIMUM_WAGE
        ]

    def test_budget_totals_cover_found_budgets_only(self, reporter, placements, budgets):
        _underpaid(placements, budgets, "P-1", monthly="1000.00")
        _underpaid(placements, budgets, "P-2", monthly="2000.00")

        report = reporter.validate_batch(["P-1", "P-2", "P-404"])

        assert report.summary.total_budget_allocated == Decimal("3000.00")
        assert report.summary.average_benefit == Decimal("1500.00")
        assert report.results[2].error_kinds == (ErrorKind.DATA_NOT_FOUND,)

    def test_empty_batch(self, reporter):
        report = reporter.validate_batch([])

        assert report.summary.total_placements == 0
        assert report.summary.compliance_rate == Decimal("0")
        assert report.summary.average_benefit == Decimal("0")
        assert report.violations == ()
        assert report.recommendations == messages.SYSTEM_RECOMMENDATIONS

    def test_report_metadata(self, reporter, rules, clock):
        report = reporter.validate_batch([])

        assert report.fiscal_year == 2024
        assert report.rule_table_checksum == rules.checksum
        assert report.generated_at == clock.now()
        assert report.batch_id

    @given(outcomes=st.lists(st.booleans(), max_size=8))
    @settings(max_examples=25, deadline=None)
    def test_compliant_plus_non_compliant_is_total(self, outcomes):
        placements = InMemoryPlacementDataSource()
        budgets = InMemoryBudgetStore()
        validator = PlacementBudgetValidator(
            placements, budgets, get_rule_table(2024), clock=DeterministicClock.on(AS_OF),
        )
        ids = []
        for i, ok in enumerate(outcomes):
            pid = f"P-{i}"
            ids.append(pid)
            if ok:
                _compliant(validator, placements, budgets, pid)
            else:
                _underpaid(placements, budgets, pid)

        summary = ComplianceReporter(validator, max_workers=2).validate_batch(ids).summary

        assert summary.compliant_placements + summary.non_compliant_placements == len(ids)
        assert summary.compliant_placements == sum(outcomes)


# ---------------------------------------------------------------------------
# Violations and system recommendations
# ---------------------------------------------------------------------------


class TestViolations:

    def test_every_error_counted(self, reporter, placements, budgets):
        # 1000 fails tolerance, minimum wage, regional and age group
        _underpaid(placements, budgets, "P-1")
        _underpaid(placements, budgets, "P-2")

        report = reporter.validate_batch(["P-1", "P-2"])
        counts = {v.type: v.count for v in report.violations}

        assert counts == {
            ViolationType.MINIMUM_WAGE: 2,
            ViolationType.REGIONAL_COMPLIANCE: 2,
            ViolationType.GENERAL: 4,
        }

    def test_errors_sharing_a_type_count_separately(self, reporter, placements, budgets):
        # age 15 in RJ: 1650 clears the regional floor (1609.68) but not the
        # age-group floor (1676.75) and is far from the 2634.67 total
        _underpaid(placements, budgets, "P-1", monthly="1650.00", age=15, state="RJ")

        report = reporter.validate_batch(["P-1"])

        assert set(report.results[0].error_kinds) == {ErrorKind.TOLERANCE, ErrorKind.AGE_GROUP}
        assert [(v.type, v.count) for v in report.violations] == [(ViolationType.GENERAL, 2)]

    def test_fixed_type_order_and_severity(self, reporter, placements, budgets):
        _underpaid(placements, budgets, "P-1", legal_status=LegalStatus())
        _underpaid(placements, budgets, "P-2", monthly="5000.00")

        report = reporter.validate_batch(["P-2", "P-1"])

        assert [v.type for v in report.violations] == [
            ViolationType.MINIMUM_WAGE,
            ViolationType.MAXIMUM_BENEFIT,
            ViolationType.REGIONAL_COMPLIANCE,
            ViolationType.DOCUMENTATION,
            ViolationType.GENERAL,
        ]
        severities = {v.type: v.severity for v in report.violations}
        assert severities[ViolationType.MAXIMUM_BENEFIT] == ViolationSeverity.HIGH
        assert severities[ViolationType.DOCUMENTATION] == ViolationSeverity.MEDIUM
        assert severities[ViolationType.GENERAL] == ViolationSeverity.LOW

    def test_minimum_wage_priority_above_threshold(self, reporter, validator, placements, budgets):
        _underpaid(placements, budgets, "P-1")
        _compliant(validator, placements, budgets, "P-2")
        _compliant(validator, placements, budgets, "P-3")

        report = reporter.validate_batch(["P-1", "P-2", "P-3"])

        # 1 of 3 is above 30%
        assert messages.priority_minimum_wage(Decimal("0.30")) in report.recommendations
        assert report.recommendations[:5] == messages.SYSTEM_RECOMMENDATIONS

    def test_no_minimum_wage_priority_at_or_below_threshold(
        self, reporter, validator, placements, budgets,
    ):
        _underpaid(placements, budgets, "P-0")
        for i in range(1, 4):
            _compliant(validator, placements, budgets, f"P-{i}")

        report = reporter.validate_batch(["P-0", "P-1", "P-2", "P-3"])

        # 1 of 4 is 25%
        assert messages.priority_minimum_wage(Decimal("0.30")) not in report.recommendations

    def test_special_needs_priority(self, reporter, validator, placements, budgets):
        context = make_context("P-S", has_special_needs=True)
        placements.add(context)
        expected = validator.expected_breakdown(context)
        budgets.save("P-S", StoredBudget(
            monthly_amount=expected.total_monthly,
            healthcare_allowance=Decimal("200.00"),
            education_allowance=Decimal("150.00"),
        ))

        report = reporter.validate_batch(["P-S"])

        assert report.violation(ViolationType.SPECIAL_NEEDS).count == 1
        assert messages.PRIORITY_SPECIAL_NEEDS in report.recommendations


# ---------------------------------------------------------------------------
# Isolation, ordering and concurrency
# ---------------------------------------------------------------------------


class TestIsolation:

    def test_unexpected_exception_isolated(self, rules, clock, placements, budgets):
        inner_validator = PlacementBudgetValidator(placements, budgets, rules, clock=clock)
        _compliant(inner_validator, placements, budgets, "P-1")
        _compliant(inner_validator, placements, budgets, "P-2")
        source = _SlowSource(placements, fail={"P-2"})
        reporter = ComplianceReporter(
            PlacementBudgetValidator(source, budgets, rules, clock=clock),
        )

        report = reporter.validate_batch(["P-1", "P-2"])

        assert report.results[0].is_valid is True
        failed = report.results[1]
        assert failed.error_kinds == (ErrorKind.UNEXPECTED_FAILURE,)
        assert failed.errors[0].details["exc_type"] == "ConnectionError"
        assert report.summary.compliant_placements == 1

    def test_slow_fetch_times_out(self, rules, clock, placements, budgets, captured_logs):
        inner_validator = PlacementBudgetValidator(placements, budgets, rules, clock=clock)
        _compliant(inner_validator, placements, budgets, "P-1")
        _compliant(inner_validator, placements, budgets, "P-2")
        source = _SlowSource(placements, block={"P-1"})
        reporter = ComplianceReporter(
            PlacementBudgetValidator(source, budgets, rules, clock=clock),
            max_workers=2,
            item_timeout_seconds=0.2,
        )

        try:
            report = reporter.validate_batch(["P-1", "P-2"])
        finally:
            source.release.set()

        assert report.results[0].error_kinds == (ErrorKind.FETCH_TIMEOUT,)
        assert report.results[1].is_valid is True
        assert any(
            r["message"] == "batch_item_failed" and r.get("error_kind") == "fetch_timeout"
            for r in captured_logs()
        )

    def test_hung_fetch_frees_its_slot(self, rules, clock, placements, budgets):
        inner_validator = PlacementBudgetValidator(placements, budgets, rules, clock=clock)
        for pid in ("P-1", "P-2", "P-3"):
            _compliant(inner_validator, placements, budgets, pid)
        source = _SlowSource(placements, block={"P-1"})
        reporter = ComplianceReporter(
            PlacementBudgetValidator(source, budgets, rules, clock=clock),
            max_workers=1,
            item_timeout_seconds=0.2,
        )

        try:
            report = reporter.validate_batch(["P-1", "P-2", "P-3"])
        finally:
            source.release.set()

        assert report.results[0].error_kinds == (ErrorKind.FETCH_TIMEOUT,)
        assert report.results[1].is_valid is True
        assert report.results[2].is_valid is True
        assert report.summary.compliant_placements == 2

    def test_timeout_starts_when_placement_starts(self, rules, clock, placements, budgets):
        inner_validator = PlacementBudgetValidator(placements, budgets, rules, clock=clock)
        _compliant(inner_validator, placements, budgets, "P-1")
        _compliant(inner_validator, placements, budgets, "P-2")
        # together longer than the timeout, each well inside it
        source = _SlowSource(placements, delays={"P-1": 0.3, "P-2": 0.3})
        reporter = ComplianceReporter(
            PlacementBudgetValidator(source, budgets, rules, clock=clock),
            max_workers=1,
            item_timeout_seconds=0.5,
        )

        report = reporter.validate_batch(["P-1", "P-2"])

        assert [r.is_valid for r in report.results] == [True, True]

    def test_workers_are_daemon_threads(self, rules, clock, placements, budgets):
        inner_validator = PlacementBudgetValidator(placements, budgets, rules, clock=clock)
        _compliant(inner_validator, placements, budgets, "P-1")
        source = _SlowSource(placements)
        reporter = ComplianceReporter(
            PlacementBudgetValidator(source, budgets, rules, clock=clock),
        )

        reporter.validate_batch(["P-1"])

        assert source.threads
        assert all(t.daemon for t in source.threads)

    def test_results_keep_input_order(self, rules, clock, placements, budgets):
        inner_validator = PlacementBudgetValidator(placements, budgets, rules, clock=clock)
        ids = [f"P-{i}" for i in range(6)]
        for pid in ids:
            _compliant(inner_validator, placements, budgets, pid)
        # earlier ids finish last
        delays = {pid: 0.05 * (len(ids) - i) for i, pid in enumerate(ids)}
        source = _SlowSource(placements, delays=delays)
        reporter = ComplianceReporter(
            PlacementBudgetValidator(source, budgets, rules, clock=clock), max_workers=6,
        )

        report = reporter.validate_batch(ids)

        assert [r.placement_id for r in report.results] == ids

    def test_batch_context_reaches_workers(self, reporter, validator, placements, budgets,
                                           captured_logs):
        _compliant(validator, placements, budgets, "P-1")

        report = reporter.validate_batch(["P-1"])

        validated = [r for r in captured_logs() if r["message"] == "placement_validated"]
        assert validated[0]["batch_id"] == report.batch_id
        assert validated[0]["fiscal_year"] == "2024"
        built = [r for r in captured_logs() if r["message"] == "compliance_report_built"]
        assert built[0]["compliance_rate"] == "100.00"

    def test_rejects_empty_pool(self, validator):
        with pytest.raises(ValueError):
            ComplianceReporter(validator, max_workers=0)

    def test_report_to_dict(self, reporter, validator, placements, budgets):
        _compliant(validator, placements, budgets, "P-1")

        data = reporter.validate_batch(["P-1"]).to_dict()

        assert data["summary"]["compliance_rate"] == Decimal("100.00")
        assert data["results"][0]["placement_id"] == "P-1"
        assert data["violations"] == []
