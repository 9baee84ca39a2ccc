from django.contrib import admin

from .models import Attendee, Guest


@admin.register(Attendee)
class AttendeeAdmin(admin.ModelAdmin):
    list_display = ("identification", "name", "position", "program", "extra_slots", "consumed_slots")
    list_filter = ("program",)
    search_fields = ("identification", "name", "program")
    ordering = ("name",)


@admin.register(Guest)
class GuestAdmin(admin.ModelAdmin):
    list_display = ("identification", "name", "position", "consumed_slots")
    search_fields = ("identification", "name")
