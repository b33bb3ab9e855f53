import json
from datetime import date, datetime, timedelta, timezone

import pytest

from accounts.models import User
from assessments import engine
from assessments.engine import (
    ASSESSED,
    ERROR,
    EXEMPT,
    FINALIZED,
    AssessmentBatchRunner,
    ManagerResult,
    run_assessment,
)
from assessments.exceptions import PeriodValidationError
from assessments.models import ManagerAssessment, ManagerMonthlySales
from assessments.periods import get_period

SNAPSHOT_FIELDS = (
    "id",
    "user_id",
    "period_year",
    "period_half",
    "total_sales",
    "total_insured_count",
    "monthly_breakdown",
    "previous_range_id",
    "new_range_id",
    "is_demotion_candidate",
    "outcome",
    "status",
    "evaluated_by_id",
    "evaluated_at",
)


def _snapshot():
    return list(ManagerAssessment.objects.order_by("user__email").values(*SNAPSHOT_FIELDS))


@pytest.mark.django_db
class TestRunAssessment:
    def test_creates_one_pending_row_per_manager(self, make_manager, record_sales, ranges, admin_user, now):
        maintained = make_manager(range_number=1)
        promoted = make_manager(range_number=1)
        candidate = make_manager(range_number=2)
        record_sales(maintained, 1_300_000)
        record_sales(promoted, 2_450_000)
        record_sales(candidate, 1_000_000)

        result = run_assessment(2025, 1, executed_by=admin_user, now=now)

        assert result.processed_count == 3
        assert result.demotion_candidate_count == 1
        assert result.exempt_count == 0
        assert result.error_count == 0
        assert ManagerAssessment.objects.count() == 3

        rows = {a.user_id: a for a in ManagerAssessment.objects.all()}
        assert rows[maintained.pk].outcome == ManagerAssessment.Outcome.MAINTAINED
        assert rows[maintained.pk].new_range == ranges[1]
        assert rows[promoted.pk].outcome == ManagerAssessment.Outcome.PROMOTED
        assert rows[promoted.pk].new_range == ranges[3]
        assert rows[candidate.pk].is_demotion_candidate is True
        assert rows[candidate.pk].new_range == ranges[2]
        for row in rows.values():
            assert row.status == ManagerAssessment.Status.PENDING
            assert row.evaluated_by == admin_user
            assert row.evaluated_at == now
            assert len(row.monthly_breakdown) == 6

    def test_snapshot_of_previous_range_and_totals(self, make_manager, record_sales, ranges, now):
        manager = make_manager(range_number=3)
        record_sales(manager, 2_700_000, insured_per_month=3)

        run_assessment(2025, 1, now=now)

        assessment = ManagerAssessment.objects.get(user=manager)
        assert assessment.previous_range == ranges[3]
        assert assessment.new_range == ranges[2]
        assert assessment.total_sales == 2_700_000
        assert assessment.total_insured_count == 18
        # The engine never moves the manager itself.
        manager.refresh_from_db()
        assert manager.manager_range == ranges[3]

    def test_end_to_end_candidate_row(self, make_manager, record_sales, now):
        manager = make_manager(range_number=2)
        record_sales(manager, 1_000_000)

        run_assessment(2025, 1, now=now)

        assessment = ManagerAssessment.objects.get(user=manager, period_year=2025, period_half=1)
        assert assessment.is_demotion_candidate is True
        assert assessment.status == ManagerAssessment.Status.PENDING
        assert assessment.outcome == ManagerAssessment.Outcome.DEMOTION_CANDIDATE

    def test_manager_without_sales_is_candidate(self, make_manager, now):
        manager = make_manager(range_number=1)

        result = run_assessment(2025, 1, now=now)

        assert result.demotion_candidate_count == 1
        assessment = ManagerAssessment.objects.get(user=manager)
        assert assessment.total_sales == 0
        assert assessment.monthly_breakdown == []

    def test_manager_without_range_is_assessed_as_base_range(self, make_manager, record_sales, ranges, now):
        manager = make_manager(range_number=None)
        record_sales(manager, 1_600_000)

        run_assessment(2025, 1, now=now)

        assessment = ManagerAssessment.objects.get(user=manager)
        assert assessment.previous_range is None
        assert assessment.new_range == ranges[2]
        assert assessment.outcome == ManagerAssessment.Outcome.PROMOTED

    def test_only_active_managers_are_assessed(self, make_manager, fp_user, admin_user, now):
        make_manager(is_active=False)
        active = make_manager()

        result = run_assessment(2025, 1, now=now)

        assert result.processed_count == 1
        assert [r.user_id for r in result.results] == [str(active.pk)]
        assert not ManagerAssessment.objects.exclude(user=active).exists()

    def test_invalid_half_raises_before_any_write(self, make_manager, now):
        make_manager()
        with pytest.raises(PeriodValidationError):
            run_assessment(2025, 3, now=now)
        assert ManagerAssessment.objects.count() == 0

    def test_no_managers_gives_empty_report(self, ranges, now):
        result = run_assessment(2025, 1, now=now)
        assert result.processed_count == 0
        assert result.results == []

    def test_report_is_json_serializable(self, make_manager, record_sales, now):
        record_sales(make_manager(), 1_250_000)

        payload = run_assessment(2025, 1, now=now).to_dict()

        decoded = json.loads(json.dumps(payload))
        assert decoded["period"]["label"] == "1er semestre 2025"
        assert decoded["results"][0]["status"] == ASSESSED
        assert decoded["results"][0]["total_sales"] == 1_250_000


@pytest.mark.django_db
class TestRerunGuard:
    def test_rerun_without_confirmation_is_idempotent(self, make_manager, record_sales, now):
        record_sales(make_manager(range_number=1), 1_300_000)
        record_sales(make_manager(range_number=2), 900_000)
        record_sales(make_manager(range_number=3), 3_100_000)

        run_assessment(2025, 1, now=now)
        first = _snapshot()
        run_assessment(2025, 1, now=now)

        assert _snapshot() == first
        assert ManagerAssessment.objects.count() == 3

    def test_rerun_keeps_confirmed_and_recomputes_pending(self, make_manager, record_sales, admin_user, now):
        confirmed_manager = make_manager(range_number=1)
        pending_manager = make_manager(range_number=1)
        record_sales(confirmed_manager, 1_300_000)
        record_sales(pending_manager, 1_300_000)
        run_assessment(2025, 1, now=now)

        confirmed = ManagerAssessment.objects.get(user=confirmed_manager)
        confirmed.status = ManagerAssessment.Status.CONFIRMED
        confirmed.confirmed_by = admin_user
        confirmed.confirmed_at = now
        confirmed.save()
        before = ManagerAssessment.objects.filter(pk=confirmed.pk).values(*SNAPSHOT_FIELDS).get()

        # Late imports change both managers' totals.
        ManagerMonthlySales.objects.filter(month="2025-06").update(sales_amount=900_000)
        later = now + timedelta(days=2)
        result = run_assessment(2025, 1, now=later)

        after = ManagerAssessment.objects.filter(pk=confirmed.pk).values(*SNAPSHOT_FIELDS).get()
        assert after == before

        pending = ManagerAssessment.objects.get(user=pending_manager)
        assert pending.status == ManagerAssessment.Status.PENDING
        assert pending.total_sales == 1_300_000 - 216_666 + 900_000
        assert pending.evaluated_at == later

        statuses = {r.user_id: r.status for r in result.results}
        assert statuses[str(confirmed_manager.pk)] == FINALIZED
        assert statuses[str(pending_manager.pk)] == ASSESSED
        assert result.finalized_count == 1

    def test_rerun_never_reverts_demoted_row(self, make_manager, now):
        manager = make_manager(range_number=2)
        run_assessment(2025, 1, now=now)
        ManagerAssessment.objects.filter(user=manager).update(status=ManagerAssessment.Status.DEMOTED)
        result = run_assessment(2025, 1, now=now)

        assert ManagerAssessment.objects.get(user=manager).status == ManagerAssessment.Status.DEMOTED
        assert result.results[0].status == FINALIZED

    def test_other_period_rows_are_independent(self, make_manager, record_sales, now):
        manager = make_manager()
        record_sales(manager, 1_300_000, year=2024, half=2)
        record_sales(manager, 1_300_000, year=2025, half=1)

        run_assessment(2024, 2, now=now)
        run_assessment(2025, 1, now=now)

        assert ManagerAssessment.objects.filter(user=manager).count() == 2


@pytest.mark.django_db
class TestExemption:
    def test_exempt_manager_is_counted_and_skipped(self, make_manager, record_sales, now):
        exempt = make_manager(assessment_exempt_until=now + timedelta(days=30))
        assessed = make_manager()
        record_sales(exempt, 100)
        record_sales(assessed, 1_300_000)

        result = run_assessment(2025, 1, now=now)

        assert result.processed_count == 2
        assert result.exempt_count == 1
        assert result.demotion_candidate_count == 0
        assert not ManagerAssessment.objects.filter(user=exempt).exists()
        exempt_line = next(r for r in result.results if r.user_id == str(exempt.pk))
        assert exempt_line.status == EXEMPT
        assert exempt_line.assessment_id is None

    def test_exempt_manager_pending_row_is_not_modified(self, make_manager, record_sales, now):
        manager = make_manager()
        record_sales(manager, 1_300_000)
        run_assessment(2025, 1, now=now)
        before = ManagerAssessment.objects.filter(user=manager).values(*SNAPSHOT_FIELDS).get()

        manager.assessment_exempt_until = now + timedelta(days=10)
        manager.save()
        ManagerMonthlySales.objects.filter(user=manager).update(sales_amount=0)
        run_assessment(2025, 1, now=now + timedelta(days=1))

        assert ManagerAssessment.objects.filter(user=manager).values(*SNAPSHOT_FIELDS).get() == before

    def test_expired_exemption_is_assessed(self, make_manager, now):
        manager = make_manager(assessment_exempt_until=now - timedelta(seconds=1))

        result = run_assessment(2025, 1, now=now)

        assert result.exempt_count == 0
        assert ManagerAssessment.objects.filter(user=manager).exists()

    def test_plain_date_clock_is_read_as_local_midnight(self, make_manager):
        exempt = make_manager(assessment_exempt_until=datetime(2025, 7, 10, tzinfo=timezone.utc))
        # 12:00 UTC on 30 June is before midnight of 1 July in Tokyo.
        expired = make_manager(assessment_exempt_until=datetime(2025, 6, 30, 12, 0, tzinfo=timezone.utc))

        result = run_assessment(2025, 1, now=date(2025, 7, 1))

        assert result.error_count == 0
        assert result.exempt_count == 1
        assert not ManagerAssessment.objects.filter(user=exempt).exists()
        assessment = ManagerAssessment.objects.get(user=expired)
        assert assessment.evaluated_at == datetime(2025, 6, 30, 15, 0, tzinfo=timezone.utc)


@pytest.mark.django_db
class TestFailureIsolation:
    def test_one_failure_does_not_stop_the_batch(self, make_manager, record_sales, monkeypatch, now):
        broken = make_manager()
        healthy = make_manager()
        record_sales(healthy, 1_300_000)
        real_aggregate = engine.aggregate_manager_sales

        def flaky(user_id, period):
            if user_id == broken.pk:
                raise RuntimeError("sales import unavailable")
            return real_aggregate(user_id, period)

        monkeypatch.setattr(engine, "aggregate_manager_sales", flaky)

        result = run_assessment(2025, 1, now=now)

        assert result.processed_count == 2
        assert result.error_count == 1
        errors = [r for r in result.results if r.status == ERROR]
        assert errors[0].user_id == str(broken.pk)
        assert "sales import unavailable" in errors[0].error
        assert not ManagerAssessment.objects.filter(user=broken).exists()
        assert ManagerAssessment.objects.filter(user=healthy).exists()

    def test_missing_target_range_leaves_new_range_empty(self, make_manager, record_sales, ranges, now):
        manager = make_manager(range_number=1)
        record_sales(manager, 2_500_000)
        ranges[3].delete()

        run_assessment(2025, 1, now=now)

        assessment = ManagerAssessment.objects.get(user=manager)
        assert assessment.outcome == ManagerAssessment.Outcome.PROMOTED
        assert assessment.new_range is None


@pytest.mark.django_db
class TestPooledRun:
    def test_results_keep_manager_order(self, make_manager, monkeypatch, now):
        managers = [make_manager(last_name=name) for name in ("Suzuki", "Abe", "Kato", "Mori")]

        def fake_assess(self, manager):
            return ManagerResult(
                user_id=str(manager.pk),
                user_name=manager.get_full_name(),
                member_id=manager.member_id,
                status=EXEMPT if manager.last_name == "Kato" else ASSESSED,
            )

        monkeypatch.setattr(AssessmentBatchRunner, "assess_manager", fake_assess)

        result = AssessmentBatchRunner(get_period(2025, 1), now=now, max_workers=3).run()

        assert [r.user_name for r in result.results] == [
            "Manager Abe",
            "Manager Kato",
            "Manager Mori",
            "Manager Suzuki",
        ]
        assert result.exempt_count == 1
        assert result.processed_count == len(managers)

    def test_lock_key_is_stable_per_manager_and_period(self):
        runner = AssessmentBatchRunner(get_period(2025, 1), now=datetime(2025, 7, 1, tzinfo=timezone.utc))
        other_half = AssessmentBatchRunner(get_period(2025, 2), now=datetime(2026, 1, 1, tzinfo=timezone.utc))

        key = runner._make_lock_key("abc")
        assert key == runner._make_lock_key("abc")
        assert 0 <= key < 2**31
        assert key != other_half._make_lock_key("abc")


@pytest.mark.django_db(transaction=True)
class TestWorkerThreads:
    def test_pooled_run_writes_rows_and_isolates_failures(self, make_manager, record_sales, monkeypatch, now):
        managers = {name: make_manager(last_name=name) for name in ("Suzuki", "Abe", "Kato", "Mori")}
        for manager in managers.values():
            record_sales(manager, 1_300_000)
        broken = managers["Kato"]
        real_aggregate = engine.aggregate_manager_sales

        def flaky(user_id, period):
            if user_id == broken.pk:
                raise RuntimeError("sales import unavailable")
            return real_aggregate(user_id, period)

        monkeypatch.setattr(engine, "aggregate_manager_sales", flaky)

        result = AssessmentBatchRunner(get_period(2025, 1), now=now, max_workers=3).run()

        assert [(r.user_name, r.status) for r in result.results] == [
            ("Manager Abe", ASSESSED),
            ("Manager Kato", ERROR),
            ("Manager Mori", ASSESSED),
            ("Manager Suzuki", ASSESSED),
        ]
        assert result.error_count == 1
        assert "sales import unavailable" in result.results[1].error
        assert ManagerAssessment.objects.count() == 3
        assert not ManagerAssessment.objects.filter(user=broken).exists()

    def test_pooled_rerun_is_idempotent(self, make_manager, record_sales, now):
        for sales in (900_000, 1_300_000, 1_600_000, 2_500_000):
            record_sales(make_manager(), sales)

        run_assessment(2025, 1, now=now, max_workers=4)
        first = _snapshot()
        result = run_assessment(2025, 1, now=now, max_workers=4)

        assert _snapshot() == first
        assert result.error_count == 0
        assert result.demotion_candidate_count == 1


@pytest.mark.django_db
def test_managers_queryset(make_manager, fp_user):
    manager = make_manager()
    make_manager(is_active=False)
    assert list(User.objects.managers()) == [manager]
