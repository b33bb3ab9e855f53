"""Half-year assessment batch runner.

Core design principles:
- One transaction per manager: aggregate, decide, then a guarded upsert
- PostgreSQL advisory lock per (manager, period) serializes concurrent runs
- The existing row is re-read with SELECT FOR UPDATE before any overwrite,
  so a CONFIRMED or DEMOTED assessment is never reverted to PENDING
- A failure for one manager is logged and reported, never raised
"""
from __future__ import annotations

import hashlib
import datetime as dt
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import IntegrityError, close_old_connections, connection, transaction
from django.utils import timezone

from assessments.aggregation import SalesSummary, aggregate_manager_sales
from assessments.decision import (
    BASE_RANGE,
    DEFAULT_MAINTAIN_THRESHOLD,
    RangeDecision,
    decide,
)
from assessments.periods import AssessmentPeriod, get_period

if TYPE_CHECKING:
    from accounts.models import User
    from assessments.models import ManagerAssessment, ManagerRange

logger = logging.getLogger("membership")

ASSESSED = "ASSESSED"
EXEMPT = "EXEMPT"
FINALIZED = "FINALIZED"
ERROR = "ERROR"


def _as_aware_datetime(value) -> dt.datetime:
    # Exemption dates are aware datetimes; a bare date means local midnight.
    if not isinstance(value, dt.datetime):
        value = dt.datetime.combine(value, dt.time.min)
    if timezone.is_naive(value):
        value = timezone.make_aware(value)
    return value


@dataclass
class ManagerResult:
    """One line of the batch report."""

    user_id: str
    user_name: str
    member_id: str
    status: str
    total_sales: int | None = None
    total_insured_count: int | None = None
    previous_range: str | None = None
    new_range: str | None = None
    is_demotion_candidate: bool = False
    outcome: str | None = None
    assessment_id: str | None = None
    error: str | None = None


@dataclass
class BatchResult:
    period: AssessmentPeriod
    processed_count: int = 0
    demotion_candidate_count: int = 0
    exempt_count: int = 0
    finalized_count: int = 0
    error_count: int = 0
    results: list[ManagerResult] = field(default_factory=list)

    def to_dict(self) -> dict:
        payload = asdict(self)
        payload["period"] = self.period.to_dict()
        return payload


class AssessmentBatchRunner:
    """Evaluate every manager for one half-year period."""

    def __init__(
        self,
        period: AssessmentPeriod,
        executed_by: "User | None" = None,
        *,
        now=None,
        max_workers: int | None = None,
    ) -> None:
        self.period = period
        self.executed_by = executed_by
        self.now = _as_aware_datetime(now or timezone.now())
        if max_workers is None:
            max_workers = getattr(settings, "ASSESSMENT_MAX_WORKERS", 1)
        self.max_workers = max(1, int(max_workers))
        self._ranges: dict[int, "ManagerRange"] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self) -> BatchResult:
        from accounts.models import User
        from assessments.models import ManagerRange

        managers = list(
            User.objects.managers()
            .select_related("manager_range")
            .order_by("last_name", "first_name", "email")
        )
        self._ranges = {r.range_number: r for r in ManagerRange.objects.all()}

        if self.max_workers > 1 and len(managers) > 1:
            results = self._run_pooled(managers)
        else:
            results = [self._assess_safely(manager) for manager in managers]

        batch = BatchResult(period=self.period, processed_count=len(managers), results=results)
        for result in results:
            if result.status == EXEMPT:
                batch.exempt_count += 1
            elif result.status == FINALIZED:
                batch.finalized_count += 1
            elif result.status == ERROR:
                batch.error_count += 1
            elif result.is_demotion_candidate:
                batch.demotion_candidate_count += 1

        logger.info(
            "Assessment %s: %d managers, %d demotion candidates, %d exempt, %d finalized, %d errors",
            self.period.label,
            batch.processed_count,
            batch.demotion_candidate_count,
            batch.exempt_count,
            batch.finalized_count,
            batch.error_count,
            extra={"period": f"{self.period.year}-{self.period.half}"},
        )
        return batch

    def assess_manager(self, manager: "User") -> ManagerResult:
        """Evaluate one manager and upsert the PENDING assessment."""
        if manager.is_assessment_exempt(self.now):
            return ManagerResult(
                user_id=str(manager.pk),
                user_name=manager.get_full_name(),
                member_id=manager.member_id,
                status=EXEMPT,
            )

        summary = aggregate_manager_sales(manager.pk, self.period)

        current_range = manager.manager_range
        if current_range is not None:
            decision = decide(current_range.range_number, current_range.maintain_sales, summary.total_sales)
        else:
            decision = decide(BASE_RANGE, DEFAULT_MAINTAIN_THRESHOLD, summary.total_sales)
        new_range = self._ranges.get(decision.proposed_range_number)

        assessment, written = self._upsert(manager, summary, decision, current_range, new_range)
        if not written:
            logger.debug(
                "Assessment %s already %s for user=%s, left untouched",
                assessment.pk,
                assessment.status,
                manager.pk,
            )
        return self._result_for(manager, assessment, ASSESSED if written else FINALIZED)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _run_pooled(self, managers: list) -> list[ManagerResult]:
        results: list[ManagerResult | None] = [None] * len(managers)
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {
                executor.submit(self._assess_in_worker, manager): index
                for index, manager in enumerate(managers)
            }
            for future in as_completed(futures):
                results[futures[future]] = future.result()
        return results

    def _assess_in_worker(self, manager) -> ManagerResult:
        # Each worker thread owns its own connection.
        close_old_connections()
        try:
            return self._assess_safely(manager)
        finally:
            connection.close()

    def _assess_safely(self, manager) -> ManagerResult:
        try:
            return self.assess_manager(manager)
        except Exception as exc:
            logger.exception(
                "Assessment failed for user=%s period=%s",
                manager.pk,
                self.period.label,
                extra={"user_id": str(manager.pk), "period": f"{self.period.year}-{self.period.half}"},
            )
            return ManagerResult(
                user_id=str(manager.pk),
                user_name=manager.get_full_name(),
                member_id=manager.member_id,
                status=ERROR,
                error=str(exc),
            )

    def _upsert(
        self,
        manager,
        summary: SalesSummary,
        decision: RangeDecision,
        current_range,
        new_range,
    ) -> tuple["ManagerAssessment", bool]:
        """Create or overwrite the PENDING row; never touch a finalized one.

        Returns ``(assessment, written)``.
        """
        from assessments.models import ManagerAssessment

        values = {
            "total_sales": summary.total_sales,
            "total_insured_count": summary.total_insured_count,
            "monthly_breakdown": summary.monthly_breakdown,
            "previous_range": current_range,
            "new_range": new_range,
            "is_demotion_candidate": decision.is_demotion_candidate,
            "outcome": decision.outcome,
            "evaluated_by": self.executed_by,
            "evaluated_at": self.now,
        }
        key = {
            "user_id": manager.pk,
            "period_year": self.period.year,
            "period_half": self.period.half,
        }

        with transaction.atomic():
            self._lock(manager.pk)
            existing = ManagerAssessment.objects.select_for_update().filter(**key).first()

            if existing is None:
                try:
                    with transaction.atomic():
                        created = ManagerAssessment.objects.create(
                            status=ManagerAssessment.Status.PENDING,
                            **key,
                            **values,
                        )
                    return created, True
                except IntegrityError:
                    # Lost the race against another run without advisory locks.
                    existing = ManagerAssessment.objects.select_for_update().get(**key)

            if existing.status != ManagerAssessment.Status.PENDING:
                return existing, False

            for name, value in values.items():
                setattr(existing, name, value)
            existing.save(update_fields=[*values.keys(), "updated_at"])
            return existing, True

    def _lock(self, user_id) -> None:
        # Blocking transaction-scoped lock on PostgreSQL; sqlite (tests) runs
        # without it.
        if connection.vendor != "postgresql":
            return
        with connection.cursor() as cursor:
            cursor.execute("SELECT pg_advisory_xact_lock(%s)", [self._make_lock_key(user_id)])

    def _make_lock_key(self, user_id) -> int:
        raw = f"assessment:{user_id}:{self.period.year}:{self.period.half}"
        hex_digest = hashlib.md5(raw.encode()).hexdigest()[:8]
        return int(hex_digest, 16) % (2**31)

    def _result_for(self, manager, assessment, status: str) -> ManagerResult:
        return ManagerResult(
            user_id=str(manager.pk),
            user_name=manager.get_full_name(),
            member_id=manager.member_id,
            status=status,
            total_sales=assessment.total_sales,
            total_insured_count=assessment.total_insured_count,
            previous_range=assessment.previous_range.name if assessment.previous_range else None,
            new_range=assessment.new_range.name if assessment.new_range else None,
            is_demotion_candidate=assessment.is_demotion_candidate,
            outcome=assessment.outcome,
            assessment_id=str(assessment.pk),
        )


def run_assessment(
    year: int,
    half: int,
    executed_by: "User | None" = None,
    *,
    now=None,
    max_workers: int | None = None,
) -> BatchResult:
    """Run the half-year assessment for every manager."""
    period = get_period(year, half)
    runner = AssessmentBatchRunner(period, executed_by, now=now, max_workers=max_workers)
    return runner.run()
