"""
ComplianceReporter -- batch validation with per-placement isolation.

Contract:
    ``validate_batch(placement_ids)`` runs the validator over every id with a
    bounded number of live workers and returns an immutable
    ``ComplianceReport``.  The batch always completes: a timed-out or
    crashing placement becomes a failed ``ValidationResult`` and the
    remaining placements are unaffected.

Architecture: stipend_services.  Imports the validator, result types and
    message catalogue; no engine is called directly.

Invariants enforced:
    - Results are reassembled in input order regardless of completion order.
    - Every error adds one to the count of the violation type it maps to,
      so a placement failing two checks that share a type counts twice.
    - All timestamps come from the injected Clock.

Timeouts:
    A placement's ``item_timeout_seconds`` is measured from the moment its
    worker starts, never while it waits for a free slot.  A worker still
    running at its deadline is abandoned (threads cannot be interrupted):
    its placement becomes FETCH_TIMEOUT and the slot goes to the next
    queued placement.  Workers are daemon threads.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from collections.abc import Iterable, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, wait
from contextvars import copy_context
from decimal import ROUND_HALF_UP, Decimal
from uuid import uuid4

from stipend_kernel.domain.clock import Clock
from stipend_kernel.domain.values import ZERO
from stipend_kernel.logging_config import LogContext, get_logger
from stipend_services import messages
from stipend_services._validation_types import (
    ComplianceReport,
    ComplianceSummary,
    ErrorKind,
    ValidationResult,
    Violation,
    ViolationSeverity,
    ViolationType,
)
from stipend_services.placement_validator import PlacementBudgetValidator

logger = get_logger("services.compliance_reporter")

HUNDRED = Decimal("100")
RATE_QUANTUM = Decimal("0.01")

VIOLATION_TYPE_BY_ERROR: dict[ErrorKind, ViolationType] = {
    ErrorKind.MINIMUM_WAGE: ViolationType.MINIMUM_WAGE,
    ErrorKind.MAXIMUM_BENEFIT: ViolationType.MAXIMUM_BENEFIT,
    ErrorKind.SPECIAL_NEEDS: ViolationType.SPECIAL_NEEDS,
    ErrorKind.REGIONAL: ViolationType.REGIONAL_COMPLIANCE,
    ErrorKind.DOCUMENTATION: ViolationType.DOCUMENTATION,
    ErrorKind.TOLERANCE: ViolationType.GENERAL,
    ErrorKind.AGE_GROUP: ViolationType.GENERAL,
    ErrorKind.DATA_NOT_FOUND: ViolationType.GENERAL,
    ErrorKind.DATA_INVALID: ViolationType.GENERAL,
    ErrorKind.FETCH_TIMEOUT: ViolationType.GENERAL,
    ErrorKind.UNEXPECTED_FAILURE: ViolationType.GENERAL,
}

VIOLATION_SEVERITY: dict[ViolationType, ViolationSeverity] = {
    ViolationType.MINIMUM_WAGE: ViolationSeverity.HIGH,
    ViolationType.MAXIMUM_BENEFIT: ViolationSeverity.HIGH,
    ViolationType.SPECIAL_NEEDS: ViolationSeverity.HIGH,
    ViolationType.REGIONAL_COMPLIANCE: ViolationSeverity.MEDIUM,
    ViolationType.DOCUMENTATION: ViolationSeverity.MEDIUM,
    ViolationType.GENERAL: ViolationSeverity.LOW,
}


class ComplianceReporter:
    """Aggregates per-placement validation into a compliance report.

    Contract:
        - ``validate_batch()`` never raises for per-placement failures.
        - ``summarize()`` / ``classify_violations()`` /
          ``system_recommendations()`` are pure over a results sequence.

    Non-goals:
        - Does NOT retry failed placements.
        - Does NOT persist the report.
    """

    def __init__(
        self,
        validator: PlacementBudgetValidator,
        clock: Clock | None = None,
        max_workers: int = 4,
        item_timeout_seconds: float = 30.0,
    ):
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        if item_timeout_seconds <= 0:
            raise ValueError(
                f"item_timeout_seconds must be positive, got {item_timeout_seconds}"
            )
        self._validator = validator
        self._clock = clock or validator.clock
        self._max_workers = max_workers
        self._timeout = item_timeout_seconds

    # -------------------------------------------------------------------------
    # Batch execution
    # -------------------------------------------------------------------------

    def validate_batch(self, placement_ids: Iterable[str]) -> ComplianceReport:
        """Validate every placement and build the report."""
        ids = list(placement_ids)
        rules = self._validator.rules
        batch_id = str(uuid4())

        with LogContext.bind(batch_id=batch_id, fiscal_year=str(rules.fiscal_year)):
            logger.info(
                "compliance_batch_started",
                extra={"total_placements": len(ids), "max_workers": self._max_workers},
            )
            results = self._run(ids)

            summary = self.summarize(results)
            violations = self.classify_violations(results)
            recommendations = self.system_recommendations(results)

            report = ComplianceReport(
                summary=summary,
                violations=violations,
                recommendations=recommendations,
                results=tuple(results),
                fiscal_year=rules.fiscal_year,
                rule_table_checksum=rules.checksum,
                batch_id=batch_id,
                generated_at=self._clock.now(),
            )

            logger.info(
                "compliance_report_built",
                extra={
                    "total_placements": summary.total_placements,
                    "compliant_placements": summary.compliant_placements,
                    "compliance_rate": summary.compliance_rate,
                    "violation_types": [v.type.value for v in violations],
                },
            )
            return report

    def _run(self, ids: list[str]) -> list[ValidationResult]:
        """Run placements with at most ``max_workers`` live at once.

        Each placement's deadline starts when its worker starts.  A worker
        past its deadline is abandoned and its slot handed to the next
        queued placement, so a hung fetch costs one result only.
        """
        results: list[ValidationResult | None] = [None] * len(ids)
        queued = deque(enumerate(ids))
        running: dict[int, tuple[Future[ValidationResult], float]] = {}

        while queued or running:
            while queued and len(running) < self._max_workers:
                index, pid = queued.popleft()
                running[index] = (self._start(pid), time.monotonic())

            deadline = min(started for _, started in running.values()) + self._timeout
            wait(
                [future for future, _ in running.values()],
                timeout=max(deadline - time.monotonic(), 0),
                return_when=FIRST_COMPLETED,
            )

            now = time.monotonic()
            for index, (future, started) in list(running.items()):
                pid = ids[index]
                if future.done():
                    try:
                        results[index] = future.result()
                    except TimeoutError:
                        results[index] = self._timed_out(pid)
                elif now - started >= self._timeout:
                    results[index] = self._timed_out(pid)
                else:
                    continue
                del running[index]

        return [r for r in results if r is not None]

    def _start(self, placement_id: str) -> Future[ValidationResult]:
        future: Future[ValidationResult] = Future()
        # Copy the caller's context so bound log fields reach the worker.
        context = copy_context()

        def work() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(context.run(self._validate_one, placement_id))
            except BaseException as exc:
                future.set_exception(exc)

        # Abandoned workers must not block interpreter exit.
        threading.Thread(
            target=work, name=f"stipend-validate-{placement_id}", daemon=True,
        ).start()
        return future

    def _timed_out(self, placement_id: str) -> ValidationResult:
        logger.warning(
            "batch_item_failed",
            extra={
                "placement_id": placement_id,
                "error_kind": ErrorKind.FETCH_TIMEOUT.value,
                "timeout_seconds": self._timeout,
            },
        )
        return ValidationResult.failed(
            placement_id,
            ErrorKind.FETCH_TIMEOUT,
            {"placement_id": placement_id, "timeout_seconds": self._timeout},
        )

    def _validate_one(self, placement_id: str) -> ValidationResult:
        try:
            return self._validator.validate_placement(placement_id)
        except TimeoutError:
            raise
        except Exception as exc:
            logger.exception(
                "batch_item_failed",
                extra={
                    "placement_id": placement_id,
                    "error_kind": ErrorKind.UNEXPECTED_FAILURE.value,
                },
            )
            return ValidationResult.failed(
                placement_id,
                ErrorKind.UNEXPECTED_FAILURE,
                {"exc_type": type(exc).__name__, "reason": str(exc)},
            )

    # -------------------------------------------------------------------------
    # Aggregation
    # -------------------------------------------------------------------------

    @staticmethod
    def summarize(results: Sequence[ValidationResult]) -> ComplianceSummary:
        total = len(results)
        compliant = sum(1 for r in results if r.is_valid)

        if total:
            rate = (Decimal(compliant) * HUNDRED / Decimal(total)).quantize(
                RATE_QUANTUM, rounding=ROUND_HALF_UP,
            )
        else:
            rate = ZERO

        stored = [r.stored_monthly for r in results if r.stored_monthly is not None]
        allocated = sum(stored, ZERO)
        average = allocated / Decimal(len(stored)) if stored else ZERO

        return ComplianceSummary(
            total_placements=total,
            compliant_placements=compliant,
            non_compliant_placements=total - compliant,
            compliance_rate=rate,
            total_budget_allocated=allocated,
            average_benefit=average,
        )

    @staticmethod
    def classify_violations(results: Sequence[ValidationResult]) -> tuple[Violation, ...]:
        counts: dict[ViolationType, int] = {}
        for result in results:
            for kind in result.error_kinds:
                vtype = VIOLATION_TYPE_BY_ERROR[kind]
                counts[vtype] = counts.get(vtype, 0) + 1

        return tuple(
            Violation(
                type=vtype,
                severity=VIOLATION_SEVERITY[vtype],
                description=messages.VIOLATION_DESCRIPTIONS[vtype],
                count=counts[vtype],
            )
            for vtype in ViolationType
            if counts.get(vtype)
        )

    def system_recommendations(
        self, results: Sequence[ValidationResult],
    ) -> tuple[str, ...]:
        recs = list(messages.SYSTEM_RECOMMENDATIONS)
        if not results:
            return tuple(recs)

        threshold = self._validator.rules.tolerances.minimum_wage_batch_share
        below_minimum = sum(1 for r in results if r.has_error(ErrorKind.MINIMUM_WAGE))
        if Decimal(below_minimum) / Decimal(len(results)) > threshold:
            recs.append(messages.priority_minimum_wage(threshold))

        if any(r.has_error(ErrorKind.SPECIAL_NEEDS) for r in results):
            recs.append(messages.PRIORITY_SPECIAL_NEEDS)

        return tuple(recs)
