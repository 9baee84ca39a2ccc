from django.contrib import admin

from .models import AccessLogEntry


@admin.register(AccessLogEntry)
class AccessLogEntryAdmin(admin.ModelAdmin):
    list_display = ("created_at", "identification", "status", "source", "station_used", "actor_name", "actor_role")
    list_filter = ("status", "source", "station_used")
    search_fields = ("identification", "actor_name", "actor_email", "details")
    date_hierarchy = "created_at"

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
