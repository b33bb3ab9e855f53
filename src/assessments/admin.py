"""Django admin for the assessments module."""
from django.contrib import admin, messages

from assessments.exceptions import AssessmentError
from assessments.models import ManagerAssessment, ManagerMonthlySales, ManagerRange
from assessments.services import confirm_assessment, demote_manager


@admin.register(ManagerRange)
class ManagerRangeAdmin(admin.ModelAdmin):
    list_display = ("range_number", "name", "maintain_sales_display")
    ordering = ("range_number",)
    readonly_fields = ("created_at", "updated_at")

    def maintain_sales_display(self, obj):
        return f"{obj.maintain_sales:,}"
    maintain_sales_display.short_description = "Maintien"


@admin.register(ManagerMonthlySales)
class ManagerMonthlySalesAdmin(admin.ModelAdmin):
    list_display = ("user", "month", "sales_amount", "insured_count")
    list_filter = ("month",)
    search_fields = ("user__email", "user__first_name", "user__last_name", "user__member_id")
    ordering = ("-month",)


@admin.register(ManagerAssessment)
class ManagerAssessmentAdmin(admin.ModelAdmin):
    list_display = (
        "user", "period_label", "total_sales", "previous_range",
        "new_range", "outcome", "is_demotion_candidate", "status",
    )
    list_filter = ("status", "is_demotion_candidate", "outcome", "period_year", "period_half")
    search_fields = ("user__email", "user__first_name", "user__last_name", "user__member_id")
    list_select_related = ("user", "previous_range", "new_range")
    actions = ("confirm_selected", "confirm_selected_keep_range", "demote_selected")
    readonly_fields = [field.name for field in ManagerAssessment._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def _apply(self, request, queryset, operation, success_label):
        done = 0
        for assessment in queryset:
            try:
                operation(assessment)
            except AssessmentError as exc:
                self.message_user(request, f"{assessment}: {exc}", level=messages.ERROR)
            else:
                done += 1
        if done:
            self.message_user(request, f"{done} evaluation(s) {success_label}.", level=messages.SUCCESS)

    @admin.action(description="Confirmer et appliquer le range propose")
    def confirm_selected(self, request, queryset):
        self._apply(
            request,
            queryset,
            lambda a: confirm_assessment(a.pk, confirmed_by=request.user),
            "confirmee(s)",
        )

    @admin.action(description="Confirmer sans changer de range")
    def confirm_selected_keep_range(self, request, queryset):
        self._apply(
            request,
            queryset,
            lambda a: confirm_assessment(a.pk, confirmed_by=request.user, apply_range_change=False),
            "confirmee(s)",
        )

    @admin.action(description="Retrograder en FP (irreversible)")
    def demote_selected(self, request, queryset):
        self._apply(
            request,
            queryset,
            lambda a: demote_manager(a.pk, demoted_by=request.user),
            "retrogradee(s)",
        )
