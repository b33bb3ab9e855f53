"""Models for the manager range assessment module."""
from __future__ import annotations

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator, RegexValidator
from django.db import models

from core.models import TimeStampedModel

month_validator = RegexValidator(
    regex=r"^\d{4}-(0[1-9]|1[0-2])$",
    message="Le mois doit etre au format YYYY-MM.",
)


class ManagerRange(TimeStampedModel):
    """A numbered range (palier) with its half-year maintenance threshold.

    Reference data maintained by admins; higher number = higher range.
    """

    range_number = models.PositiveSmallIntegerField(
        "numero",
        unique=True,
        validators=[MinValueValidator(1)],
    )
    name = models.CharField("nom", max_length=60)
    maintain_sales = models.PositiveBigIntegerField(
        "ventes de maintien (semestre)",
        help_text="Ventes minimales sur un semestre pour rester dans ce range.",
    )
    description = models.TextField("description", blank=True, default="")

    class Meta:
        verbose_name = "range manager"
        verbose_name_plural = "ranges manager"
        ordering = ["range_number"]

    def __str__(self) -> str:
        return f"{self.name} (R{self.range_number})"


class ManagerMonthlySales(TimeStampedModel):
    """Monthly sales and insured count for one manager, fed by the import pipeline."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="monthly_sales",
        verbose_name="manager",
    )
    month = models.CharField("mois (YYYY-MM)", max_length=7, validators=[month_validator])
    sales_amount = models.PositiveBigIntegerField("montant des ventes", default=0)
    insured_count = models.PositiveIntegerField("nombre d'assures", default=0)

    class Meta:
        verbose_name = "ventes mensuelles manager"
        verbose_name_plural = "ventes mensuelles managers"
        ordering = ["user", "month"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "month"],
                name="uniq_manager_monthly_sales",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.user} — {self.month}"


class ManagerAssessment(TimeStampedModel):
    """Half-year assessment of one manager.

    At most one row per (user, period_year, period_half).  Totals are frozen
    at evaluation time.  CONFIRMED and DEMOTED are terminal: the batch runner
    only ever overwrites PENDING rows.
    """

    class Half(models.IntegerChoices):
        FIRST = 1, "1er semestre"
        SECOND = 2, "2e semestre"

    class Status(models.TextChoices):
        PENDING = "PENDING", "En attente"
        CONFIRMED = "CONFIRMED", "Confirme"
        DEMOTED = "DEMOTED", "Retrograde"

    class Outcome(models.TextChoices):
        MAINTAINED = "MAINTAINED", "Maintenu"
        PROMOTED = "PROMOTED", "Promu"
        DEMOTION_CANDIDATE = "DEMOTION_CANDIDATE", "Candidat a la retrogradation"

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="assessments",
        verbose_name="manager",
    )
    period_year = models.PositiveSmallIntegerField("annee")
    period_half = models.PositiveSmallIntegerField(
        "semestre",
        choices=Half.choices,
        validators=[MinValueValidator(1), MaxValueValidator(2)],
    )

    total_sales = models.PositiveBigIntegerField("ventes totales", default=0)
    total_insured_count = models.PositiveIntegerField("assures totaux", default=0)
    monthly_breakdown = models.JSONField("detail mensuel", default=list, blank=True)

    previous_range = models.ForeignKey(
        ManagerRange,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        verbose_name="range precedent",
    )
    new_range = models.ForeignKey(
        ManagerRange,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        verbose_name="range propose",
    )
    is_demotion_candidate = models.BooleanField("candidat retrogradation", default=False, db_index=True)
    outcome = models.CharField(
        "resultat",
        max_length=20,
        choices=Outcome.choices,
        default=Outcome.MAINTAINED,
    )
    status = models.CharField(
        "statut",
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True,
    )

    evaluated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        verbose_name="evalue par",
    )
    evaluated_at = models.DateTimeField("evalue le", null=True, blank=True)
    confirmed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        verbose_name="confirme par",
    )
    confirmed_at = models.DateTimeField("confirme le", null=True, blank=True)

    class Meta:
        verbose_name = "evaluation manager"
        verbose_name_plural = "evaluations managers"
        ordering = ["-period_year", "-period_half", "user__last_name", "user__first_name"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "period_year", "period_half"],
                name="uniq_manager_assessment_period",
            ),
        ]
        indexes = [
            models.Index(
                fields=["period_year", "period_half", "status"],
                name="assessment_period_status_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.user} — {self.period_label}"

    @property
    def period_label(self) -> str:
        from assessments.periods import period_label

        return period_label(self.period_year, self.period_half)

    @property
    def is_pending(self) -> bool:
        return self.status == self.Status.PENDING
