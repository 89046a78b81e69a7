"""
Tests for engine input fingerprints.
"""

from decimal import Decimal

from stipend_engines.tracer import compute_input_fingerprint, traced_engine
from stipend_kernel.domain.placement import StoredBudget
from stipend_services._validation_types import ErrorKind
from tests.conftest import AS_OF, make_child, make_family

FIELDS = ("stored", "child", "family", "as_of")


def _fingerprint(**kwargs) -> str:
    return compute_input_fingerprint(FIELDS, kwargs)


class TestInputFingerprint:

    def test_equal_amounts_at_different_scale_match(self):
        assert _fingerprint(stored=StoredBudget(Decimal("1412"))) == _fingerprint(
            stored=StoredBudget(Decimal("1412.00"))
        )

    def test_equal_placements_match(self):
        first = _fingerprint(
            stored=StoredBudget(Decimal("2549.9500"), healthcare_allowance=Decimal("200")),
            child=make_child(7),
            family=make_family("BA"),
            as_of=AS_OF,
        )
        second = _fingerprint(
            stored=StoredBudget(Decimal("2549.95"), healthcare_allowance=Decimal("200.00")),
            child=make_child(7),
            family=make_family("BA"),
            as_of=AS_OF,
        )
        assert first == second

    def test_different_amounts_differ(self):
        assert _fingerprint(stored=StoredBudget(Decimal("1412"))) != _fingerprint(
            stored=StoredBudget(Decimal("1412.01"))
        )

    def test_missing_allowance_differs_from_zero(self):
        assert _fingerprint(stored=StoredBudget(Decimal("1412"))) != _fingerprint(
            stored=StoredBudget(Decimal("1412"), healthcare_allowance=Decimal("0"))
        )

    def test_enum_and_plain_value_agree(self):
        fields = ("kind",)
        assert compute_input_fingerprint(fields, {"kind": ErrorKind.TOLERANCE}) == (
            compute_input_fingerprint(fields, {"kind": "tolerance"})
        )

    def test_mapping_key_order_ignored(self):
        fields = ("amounts",)
        a = compute_input_fingerprint(fields, {"amounts": {"x": Decimal("1.0"), "y": 2}})
        b = compute_input_fingerprint(fields, {"amounts": {"y": Decimal("2.00"), "x": 1}})
        assert a == b


class TestTracedEngine:

    def test_trace_carries_fingerprint(self, captured_logs):
        @traced_engine("sample_engine", "2.1", fingerprint_fields=("stored",))
        def run(*, stored):
            return stored.monthly_amount

        budget = StoredBudget(Decimal("1500.00"))
        assert run(stored=budget) == Decimal("1500.00")

        traces = [r for r in captured_logs() if r.get("engine_name") == "sample_engine"]
        assert len(traces) == 1
        assert traces[0]["engine_version"] == "2.1"
        assert traces[0]["input_fingerprint"] == compute_input_fingerprint(
            ("stored",), {"stored": StoredBudget(Decimal("1500"))},
        )

    def test_no_fields_empty_fingerprint(self, captured_logs):
        @traced_engine("bare_engine", "1.0")
        def run():
            return 1

        run()

        traces = [r for r in captured_logs() if r.get("engine_name") == "bare_engine"]
        assert traces[0]["input_fingerprint"] == ""
