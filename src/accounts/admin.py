from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.contrib.auth.forms import UserChangeForm, UserCreationForm
from django.utils.translation import gettext_lazy as _

from .models import RoleChangeHistory, User


class UserAdminCreationForm(UserCreationForm):
    class Meta(UserCreationForm.Meta):
        model = User
        fields = ("email", "first_name", "last_name", "role")
        field_classes = {}


class UserAdminChangeForm(UserChangeForm):
    class Meta(UserChangeForm.Meta):
        model = User
        fields = "__all__"
        field_classes = {}


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Admin configuration for the custom User model."""

    form = UserAdminChangeForm
    add_form = UserAdminCreationForm

    # ------------------------------------------------------------------
    # List view
    # ------------------------------------------------------------------
    list_display = (
        "email",
        "member_id",
        "first_name",
        "last_name",
        "role",
        "manager_range",
        "assessment_exempt_until",
        "is_active",
    )
    list_filter = ("role", "manager_range", "is_active", "is_staff")
    search_fields = ("email", "member_id", "first_name", "last_name")
    ordering = ("last_name", "first_name")
    list_select_related = ("manager_range",)
    actions = ("activate_users", "deactivate_users", "clear_exemption")

    # ------------------------------------------------------------------
    # Detail / edit view
    # ------------------------------------------------------------------
    fieldsets = (
        (None, {"fields": ("email", "password")}),
        (
            _("Informations personnelles"),
            {"fields": ("member_id", "first_name", "last_name")},
        ),
        (
            _("Range manager"),
            {
                "fields": (
                    "manager_range",
                    "manager_promoted_at",
                    "manager_demoted_at",
                    "assessment_exempt_until",
                ),
            },
        ),
        (
            _("Role et permissions"),
            {
                "fields": (
                    "role",
                    "is_active",
                    "is_staff",
                    "is_superuser",
                    "groups",
                    "user_permissions",
                ),
            },
        ),
        (
            _("Dates importantes"),
            {"fields": ("last_login", "date_joined")},
        ),
    )

    # ------------------------------------------------------------------
    # Add user view
    # ------------------------------------------------------------------
    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": (
                    "email",
                    "first_name",
                    "last_name",
                    "role",
                    "password1",
                    "password2",
                ),
            },
        ),
    )

    readonly_fields = ("date_joined", "last_login", "manager_demoted_at")

    @admin.action(description="Activer les utilisateurs selectionnes")
    def activate_users(self, request, queryset):
        queryset.update(is_active=True)

    @admin.action(description="Desactiver les utilisateurs selectionnes")
    def deactivate_users(self, request, queryset):
        queryset.update(is_active=False)

    @admin.action(description="Lever l'exemption d'evaluation")
    def clear_exemption(self, request, queryset):
        queryset.update(assessment_exempt_until=None)


@admin.register(RoleChangeHistory)
class RoleChangeHistoryAdmin(admin.ModelAdmin):
    list_display = ("created_at", "user", "from_role", "to_role", "changed_by", "reason")
    list_filter = ("from_role", "to_role")
    search_fields = ("user__email", "user__first_name", "user__last_name")
    list_select_related = ("user", "changed_by")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
