"""Business logic / service functions for the assessments app.

Confirmation and demotion lock the assessment row with
``select_for_update()`` so that they serialize against a concurrent batch
re-run on the same (manager, period).
"""
from __future__ import annotations

import logging
import math
from datetime import date, datetime

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import Count
from django.utils import timezone

from accounts.models import RoleChangeHistory, User

from .aggregation import aggregate_manager_sales
from .decision import DEFAULT_MAINTAIN_THRESHOLD
from .exceptions import AssessmentNotFound, InvalidAssessmentState
from .models import ManagerAssessment
from .periods import as_local_date, current_period, next_assessment_date, period_label

logger = logging.getLogger("membership")

DEMOTION_REASON = "Retrogradation suite a l'evaluation semestrielle (ventes inferieures a 1 200 000)"


def _get_locked_assessment(assessment_id) -> ManagerAssessment:
    try:
        return ManagerAssessment.objects.select_for_update().get(pk=assessment_id)
    except (ManagerAssessment.DoesNotExist, DjangoValidationError, ValueError) as exc:
        raise AssessmentNotFound(f"Evaluation introuvable: {assessment_id}") from exc


# ---------------------------------------------------------------------------
# confirm_assessment
# ---------------------------------------------------------------------------

@transaction.atomic
def confirm_assessment(assessment_id, confirmed_by, apply_range_change: bool = True) -> ManagerAssessment:
    """Confirm a PENDING assessment and apply its proposed range.

    Parameters
    ----------
    assessment_id : UUID or str
        Primary key of the assessment.
    confirmed_by : User
        The admin confirming the assessment.
    apply_range_change : bool
        When False the assessment is only acknowledged; the manager keeps
        their current range.

    Returns
    -------
    ManagerAssessment
        The confirmed assessment.

    Raises
    ------
    AssessmentNotFound
        If no assessment has this id.
    InvalidAssessmentState
        If the assessment is not PENDING (confirming twice is an error), or
        a range change would apply to a user who is no longer a manager.
    """
    assessment = _get_locked_assessment(assessment_id)

    if assessment.status != ManagerAssessment.Status.PENDING:
        raise InvalidAssessmentState(
            f"Cette evaluation est deja finalisee (statut {assessment.status})."
        )

    range_change = apply_range_change and assessment.new_range_id is not None
    user = User.objects.select_for_update().get(pk=assessment.user_id)
    if range_change and user.role != User.Role.MANAGER:
        raise InvalidAssessmentState(
            f"{user} n'est plus manager (role {user.role}) : le range ne peut pas etre applique."
        )

    assessment.status = ManagerAssessment.Status.CONFIRMED
    assessment.confirmed_by = confirmed_by
    assessment.confirmed_at = timezone.now()
    assessment.save(update_fields=["status", "confirmed_by", "confirmed_at", "updated_at"])

    if range_change:
        user.manager_range_id = assessment.new_range_id
        user.save(update_fields=["manager_range"])

    logger.info(
        "Assessment %s confirmed by %s (range change %s)",
        assessment.pk,
        confirmed_by,
        "applied" if range_change else "not applied",
    )
    return assessment


# ---------------------------------------------------------------------------
# demote_manager
# ---------------------------------------------------------------------------

@transaction.atomic
def demote_manager(assessment_id, demoted_by) -> ManagerAssessment:
    """Demote the manager of a PENDING demotion-candidate assessment.

    In one transaction: the assessment becomes DEMOTED, the user falls back
    to the FP role without a range, and one ``RoleChangeHistory`` row is
    written.  There is no undo through this service.

    Raises
    ------
    AssessmentNotFound
        If no assessment has this id.
    InvalidAssessmentState
        If the assessment is not a demotion candidate, is no longer PENDING,
        or its user no longer holds the MANAGER role.
    """
    assessment = _get_locked_assessment(assessment_id)

    if not assessment.is_demotion_candidate:
        raise InvalidAssessmentState("Cette evaluation n'est pas candidate a la retrogradation.")
    if assessment.status != ManagerAssessment.Status.PENDING:
        raise InvalidAssessmentState(
            f"Cette evaluation est deja finalisee (statut {assessment.status})."
        )

    user = User.objects.select_for_update().get(pk=assessment.user_id)
    if user.role != User.Role.MANAGER:
        raise InvalidAssessmentState(f"{user} n'est plus manager (role {user.role}).")

    now = timezone.now()
    assessment.status = ManagerAssessment.Status.DEMOTED
    assessment.confirmed_by = demoted_by
    assessment.confirmed_at = now
    assessment.save(update_fields=["status", "confirmed_by", "confirmed_at", "updated_at"])

    from_role = user.role
    user.role = User.Role.FP
    user.manager_range = None
    user.manager_demoted_at = now
    user.save(update_fields=["role", "manager_range", "manager_demoted_at"])

    RoleChangeHistory.objects.create(
        user=user,
        from_role=from_role,
        to_role=User.Role.FP,
        reason=DEMOTION_REASON,
        changed_by=demoted_by,
    )

    logger.info("Manager %s demoted to FP by %s (assessment %s)", user.pk, demoted_by, assessment.pk)
    return assessment


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------

def list_assessments(year: int | None = None, half: int | None = None, status: str | None = None):
    qs = ManagerAssessment.objects.select_related("user", "previous_range", "new_range")
    if year is not None:
        qs = qs.filter(period_year=year)
    if half is not None:
        qs = qs.filter(period_half=half)
    if status:
        qs = qs.filter(status=status)
    return qs.order_by("-period_year", "-period_half", "user__last_name", "user__first_name")


def assessment_status_counts(year: int | None = None, half: int | None = None) -> dict[str, int]:
    qs = ManagerAssessment.objects.all()
    if year is not None:
        qs = qs.filter(period_year=year)
    if half is not None:
        qs = qs.filter(period_half=half)
    rows = qs.values("status").annotate(total=Count("id")).order_by("status")
    return {row["status"]: row["total"] for row in rows}


def list_demotion_candidates():
    """PENDING demotion candidates, latest period first, lowest sales first."""
    return (
        ManagerAssessment.objects.filter(
            is_demotion_candidate=True,
            status=ManagerAssessment.Status.PENDING,
        )
        .select_related("user", "user__manager_range", "previous_range")
        .order_by("-period_year", "-period_half", "total_sales")
    )


def demotion_candidate_summary() -> list[dict]:
    rows = (
        ManagerAssessment.objects.filter(
            is_demotion_candidate=True,
            status=ManagerAssessment.Status.PENDING,
        )
        .values("period_year", "period_half")
        .annotate(total=Count("id"))
        .order_by("-period_year", "-period_half")
    )
    return [
        {
            "year": row["period_year"],
            "half": row["period_half"],
            "label": period_label(row["period_year"], row["period_half"]),
            "count": row["total"],
        }
        for row in rows
    ]


# ---------------------------------------------------------------------------
# manager_progress
# ---------------------------------------------------------------------------

def _days_until(target: date | datetime, now: datetime) -> int:
    if isinstance(target, datetime):
        return math.ceil((target - now).total_seconds() / 86400)
    return (target - as_local_date(now)).days


def manager_progress(user: User, now: datetime) -> dict:
    """Snapshot of a manager's standing in the running half-year."""
    period = current_period(now)
    summary = aggregate_manager_sales(user.pk, period)

    current_range = user.manager_range
    maintain_threshold = (
        current_range.maintain_sales if current_range is not None else DEFAULT_MAINTAIN_THRESHOLD
    )
    progress = min(100, round(summary.total_sales * 100 / maintain_threshold)) if maintain_threshold else 100

    is_exempt = user.is_assessment_exempt(now)
    next_date = next_assessment_date(now)

    latest = (
        ManagerAssessment.objects.filter(user=user, status=ManagerAssessment.Status.CONFIRMED)
        .select_related("previous_range", "new_range")
        .order_by("-period_year", "-period_half")
        .first()
    )

    return {
        "range": current_range,
        "promoted_at": user.manager_promoted_at,
        "current_period": {
            "label": period.label,
            "total_sales": summary.total_sales,
            "total_insured_count": summary.total_insured_count,
            "maintain_threshold": maintain_threshold,
            "progress_percent": progress,
            "monthly_data": summary.monthly_breakdown,
        },
        "exemption": {
            "is_exempt": is_exempt,
            "exempt_until": user.assessment_exempt_until,
            "days_remaining": _days_until(user.assessment_exempt_until, now) if is_exempt else None,
        },
        "next_assessment": {
            "date": next_date,
            "days_remaining": _days_until(next_date, now),
        },
        "latest_assessment": (
            {
                "period": latest.period_label,
                "total_sales": latest.total_sales,
                "previous_range": latest.previous_range.name if latest.previous_range else None,
                "new_range": latest.new_range.name if latest.new_range else None,
                "confirmed_at": latest.confirmed_at,
            }
            if latest
            else None
        ),
    }
