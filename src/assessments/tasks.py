"""Celery tasks for the assessments module."""
from __future__ import annotations

import logging

from celery import shared_task
from django.utils import timezone

logger = logging.getLogger("membership")


def _get_actor(user_id):
    if not user_id:
        return None
    from accounts.models import User

    return User.objects.filter(pk=user_id).first()


@shared_task(name="assessments.tasks.run_half_yearly_assessment")
def run_half_yearly_assessment(*, year: int, half: int, executed_by_id: str | None = None) -> dict:
    """Assess every manager for (year, half) and return the batch report."""
    from assessments.engine import run_assessment

    result = run_assessment(year, half, executed_by=_get_actor(executed_by_id))
    return result.to_dict()


@shared_task(name="assessments.tasks.assess_previous_period")
def assess_previous_period():
    """
    Scheduled daily (Celery Beat). Only runs logic on 1 January and 1 July.
    Assess the half-year that just closed.
    """
    from assessments.engine import AssessmentBatchRunner
    from assessments.periods import current_period, previous_period

    now = timezone.now()
    today = timezone.localdate(now)
    # Guard: only run on the first day of a half
    if today.day != 1 or today.month not in (1, 7):
        logger.debug("assess_previous_period: skipping (today is %s)", today.isoformat())
        return None

    period = previous_period(current_period(now))
    result = AssessmentBatchRunner(period, executed_by=None, now=now).run()
    return result.to_dict()


@shared_task(name="assessments.tasks.confirm_assessment_task")
def confirm_assessment_task(*, assessment_id: str, confirmed_by_id: str, apply_range_change: bool = True) -> str:
    from assessments.services import confirm_assessment

    assessment = confirm_assessment(
        assessment_id,
        confirmed_by=_get_actor(confirmed_by_id),
        apply_range_change=apply_range_change,
    )
    return assessment.status


@shared_task(name="assessments.tasks.demote_manager_task")
def demote_manager_task(*, assessment_id: str, demoted_by_id: str) -> str:
    from assessments.services import demote_manager

    assessment = demote_manager(assessment_id, demoted_by=_get_actor(demoted_by_id))
    return assessment.status
