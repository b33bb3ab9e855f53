import uuid

from django.conf import settings
from django.contrib.auth.models import (
    AbstractBaseUser,
    BaseUserManager,
    PermissionsMixin,
)
from django.db import models
from django.utils import timezone


class UserManager(BaseUserManager):
    """Custom manager for the User model that uses email as the unique identifier."""

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError("L'adresse e-mail est obligatoire.")
        email = self.normalize_email(email)
        extra_fields.setdefault("is_active", True)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault("role", User.Role.ADMIN)
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)

        if extra_fields.get("is_staff") is not True:
            raise ValueError("Le superutilisateur doit avoir is_staff=True.")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("Le superutilisateur doit avoir is_superuser=True.")

        return self.create_user(email, password, **extra_fields)

    def managers(self):
        """Active users currently holding the range-bearing role."""
        return self.filter(role=User.Role.MANAGER, is_active=True)


class User(AbstractBaseUser, PermissionsMixin):
    """
    Member of the program.

    Uses email as the unique identifier instead of a username.  Users with
    the MANAGER role hold a range and are assessed every half-year; a
    demoted manager falls back to the FP role and loses the range.
    """

    class Role(models.TextChoices):
        ADMIN = "ADMIN", "Administrateur"
        MANAGER = "MANAGER", "Manager"
        FP = "FP", "Conseiller FP"

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )
    email = models.EmailField(
        "adresse e-mail",
        unique=True,
        error_messages={
            "unique": "Un utilisateur avec cette adresse e-mail existe deja.",
        },
    )
    member_id = models.CharField(
        "numero de membre",
        max_length=20,
        blank=True,
        default="",
        db_index=True,
    )
    first_name = models.CharField("prenom", max_length=150)
    last_name = models.CharField("nom", max_length=150)
    role = models.CharField(
        "role",
        max_length=20,
        choices=Role.choices,
        default=Role.FP,
        db_index=True,
    )

    # Range membership
    manager_range = models.ForeignKey(
        "assessments.ManagerRange",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="managers",
        verbose_name="range actuel",
    )
    manager_promoted_at = models.DateTimeField("promu manager le", null=True, blank=True)
    manager_demoted_at = models.DateTimeField("retrograde le", null=True, blank=True)
    assessment_exempt_until = models.DateTimeField(
        "exempte d'evaluation jusqu'au",
        null=True,
        blank=True,
        help_text="Tant que cette date est future, le manager est ignore par l'evaluation semestrielle.",
    )

    is_active = models.BooleanField("actif", default=True, db_index=True)
    is_staff = models.BooleanField("membre du personnel", default=False)
    date_joined = models.DateTimeField("date d'inscription", default=timezone.now)

    objects = UserManager()

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["first_name", "last_name"]

    class Meta:
        verbose_name = "utilisateur"
        verbose_name_plural = "utilisateurs"
        ordering = ["last_name", "first_name"]

    def __str__(self):
        return self.get_full_name() or self.email

    def get_full_name(self):
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name

    def get_short_name(self):
        return self.first_name

    # ------------------------------------------------------------------
    # Role helper properties
    # ------------------------------------------------------------------

    @property
    def is_admin(self):
        return self.role == self.Role.ADMIN

    @property
    def is_manager(self):
        return self.role == self.Role.MANAGER

    @property
    def is_fp(self):
        return self.role == self.Role.FP

    @property
    def role_display(self):
        return self.get_role_display()

    def is_assessment_exempt(self, now=None) -> bool:
        if self.assessment_exempt_until is None:
            return False
        return self.assessment_exempt_until > (now or timezone.now())


class RoleChangeHistoryQuerySet(models.QuerySet):
    """Bulk writes are refused like instance writes."""

    def update(self, **kwargs):
        raise ValueError("L'historique des roles ne peut pas etre modifie.")

    def delete(self):
        raise ValueError("L'historique des roles ne peut pas etre supprime.")


class RoleChangeHistory(models.Model):
    """Append-only trail of role changes (demotions, manual promotions)."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="role_changes",
        verbose_name="utilisateur",
    )
    from_role = models.CharField("ancien role", max_length=20, choices=User.Role.choices)
    to_role = models.CharField("nouveau role", max_length=20, choices=User.Role.choices)
    reason = models.CharField("motif", max_length=255, blank=True, default="")
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        verbose_name="modifie par",
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    objects = RoleChangeHistoryQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "historique de role"
        verbose_name_plural = "historiques de role"
        indexes = [
            models.Index(fields=["user", "created_at"], name="rolechange_user_created_idx"),
        ]

    def __str__(self):
        return f"[{self.created_at}] {self.user}: {self.from_role} -> {self.to_role}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("L'historique des roles ne peut pas etre modifie.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("L'historique des roles ne peut pas etre supprime.")
