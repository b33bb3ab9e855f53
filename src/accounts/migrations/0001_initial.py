import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("auth", "0012_alter_user_first_name_max_length"),
        ("assessments", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="User",
            fields=[
                ("password", models.CharField(max_length=128, verbose_name="password")),
                ("last_login", models.DateTimeField(blank=True, null=True, verbose_name="last login")),
                (
                    "is_superuser",
                    models.BooleanField(
                        default=False,
                        help_text="Designates that this user has all permissions without explicitly assigning them.",
                        verbose_name="superuser status",
                    ),
                ),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "email",
                    models.EmailField(
                        error_messages={"unique": "Un utilisateur avec cette adresse e-mail existe deja."},
                        max_length=254,
                        unique=True,
                        verbose_name="adresse e-mail",
                    ),
                ),
                (
                    "member_id",
                    models.CharField(blank=True, db_index=True, default="", max_length=20, verbose_name="numero de membre"),
                ),
                ("first_name", models.CharField(max_length=150, verbose_name="prenom")),
                ("last_name", models.CharField(max_length=150, verbose_name="nom")),
                (
                    "role",
                    models.CharField(
                        choices=[("ADMIN", "Administrateur"), ("MANAGER", "Manager"), ("FP", "Conseiller FP")],
                        db_index=True,
                        default="FP",
                        max_length=20,
                        verbose_name="role",
                    ),
                ),
                ("manager_promoted_at", models.DateTimeField(blank=True, null=True, verbose_name="promu manager le")),
                ("manager_demoted_at", models.DateTimeField(blank=True, null=True, verbose_name="retrograde le")),
                (
                    "assessment_exempt_until",
                    models.DateTimeField(
                        blank=True,
                        help_text="Tant que cette date est future, le manager est ignore par l'evaluation semestrielle.",
                        null=True,
                        verbose_name="exempte d'evaluation jusqu'au",
                    ),
                ),
                ("is_active", models.BooleanField(db_index=True, default=True, verbose_name="actif")),
                ("is_staff", models.BooleanField(default=False, verbose_name="membre du personnel")),
                (
                    "date_joined",
                    models.DateTimeField(default=django.utils.timezone.now, verbose_name="date d'inscription"),
                ),
                (
                    "manager_range",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="managers",
                        to="assessments.managerrange",
                        verbose_name="range actuel",
                    ),
                ),
                (
                    "groups",
                    models.ManyToManyField(
                        blank=True,
                        help_text="The groups this user belongs to. A user will get all permissions granted to each of their groups.",
                        related_name="user_set",
                        related_query_name="user",
                        to="auth.group",
                        verbose_name="groups",
                    ),
                ),
                (
                    "user_permissions",
                    models.ManyToManyField(
                        blank=True,
                        help_text="Specific permissions for this user.",
                        related_name="user_set",
                        related_query_name="user",
                        to="auth.permission",
                        verbose_name="user permissions",
                    ),
                ),
            ],
            options={
                "verbose_name": "utilisateur",
                "verbose_name_plural": "utilisateurs",
                "ordering": ["last_name", "first_name"],
            },
        ),
        migrations.CreateModel(
            name="RoleChangeHistory",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "from_role",
                    models.CharField(
                        choices=[("ADMIN", "Administrateur"), ("MANAGER", "Manager"), ("FP", "Conseiller FP")],
                        max_length=20,
                        verbose_name="ancien role",
                    ),
                ),
                (
                    "to_role",
                    models.CharField(
                        choices=[("ADMIN", "Administrateur"), ("MANAGER", "Manager"), ("FP", "Conseiller FP")],
                        max_length=20,
                        verbose_name="nouveau role",
                    ),
                ),
                ("reason", models.CharField(blank=True, default="", max_length=255, verbose_name="motif")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                (
                    "changed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="modifie par",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="role_changes",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="utilisateur",
                    ),
                ),
            ],
            options={
                "verbose_name": "historique de role",
                "verbose_name_plural": "historiques de role",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["user", "created_at"], name="rolechange_user_created_idx"),
                ],
            },
        ),
    ]
