from django.contrib import admin

from .models import OperatorProfile, StaffAuditLog


@admin.register(OperatorProfile)
class OperatorProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "role", "assigned_station", "id_number", "updated_at")
    list_filter = ("role", "assigned_station")
    search_fields = ("user__username", "user__email", "id_number")


@admin.register(StaffAuditLog)
class StaffAuditLogAdmin(admin.ModelAdmin):
    list_display = ("created_at", "staff_user", "action_type", "target_model", "target_id")
    list_filter = ("action_type", "target_model")
    search_fields = ("staff_user__username", "target_id")
