import uuid

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("assessments", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="ManagerMonthlySales",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="cree le")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="modifie le")),
                (
                    "month",
                    models.CharField(
                        max_length=7,
                        validators=[
                            django.core.validators.RegexValidator(
                                message="Le mois doit etre au format YYYY-MM.",
                                regex="^\\d{4}-(0[1-9]|1[0-2])$",
                            )
                        ],
                        verbose_name="mois (YYYY-MM)",
                    ),
                ),
                ("sales_amount", models.PositiveBigIntegerField(default=0, verbose_name="montant des ventes")),
                ("insured_count", models.PositiveIntegerField(default=0, verbose_name="nombre d'assures")),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="monthly_sales",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="manager",
                    ),
                ),
            ],
            options={
                "verbose_name": "ventes mensuelles manager",
                "verbose_name_plural": "ventes mensuelles managers",
                "ordering": ["user", "month"],
                "constraints": [
                    models.UniqueConstraint(fields=("user", "month"), name="uniq_manager_monthly_sales"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ManagerAssessment",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="cree le")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="modifie le")),
                ("period_year", models.PositiveSmallIntegerField(verbose_name="annee")),
                (
                    "period_half",
                    models.PositiveSmallIntegerField(
                        choices=[(1, "1er semestre"), (2, "2e semestre")],
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(2),
                        ],
                        verbose_name="semestre",
                    ),
                ),
                ("total_sales", models.PositiveBigIntegerField(default=0, verbose_name="ventes totales")),
                ("total_insured_count", models.PositiveIntegerField(default=0, verbose_name="assures totaux")),
                ("monthly_breakdown", models.JSONField(blank=True, default=list, verbose_name="detail mensuel")),
                (
                    "is_demotion_candidate",
                    models.BooleanField(db_index=True, default=False, verbose_name="candidat retrogradation"),
                ),
                (
                    "outcome",
                    models.CharField(
                        choices=[
                            ("MAINTAINED", "Maintenu"),
                            ("PROMOTED", "Promu"),
                            ("DEMOTION_CANDIDATE", "Candidat a la retrogradation"),
                        ],
                        default="MAINTAINED",
                        max_length=20,
                        verbose_name="resultat",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("PENDING", "En attente"), ("CONFIRMED", "Confirme"), ("DEMOTED", "Retrograde")],
                        db_index=True,
                        default="PENDING",
                        max_length=20,
                        verbose_name="statut",
                    ),
                ),
                ("evaluated_at", models.DateTimeField(blank=True, null=True, verbose_name="evalue le")),
                ("confirmed_at", models.DateTimeField(blank=True, null=True, verbose_name="confirme le")),
                (
                    "confirmed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="confirme par",
                    ),
                ),
                (
                    "evaluated_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="evalue par",
                    ),
                ),
                (
                    "new_range",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="assessments.managerrange",
                        verbose_name="range propose",
                    ),
                ),
                (
                    "previous_range",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="assessments.managerrange",
                        verbose_name="range precedent",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="assessments",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="manager",
                    ),
                ),
            ],
            options={
                "verbose_name": "evaluation manager",
                "verbose_name_plural": "evaluations managers",
                "ordering": ["-period_year", "-period_half", "user__last_name", "user__first_name"],
                "indexes": [
                    models.Index(
                        fields=["period_year", "period_half", "status"],
                        name="assessment_period_status_idx",
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("user", "period_year", "period_half"),
                        name="uniq_manager_assessment_period",
                    ),
                ],
            },
        ),
    ]
