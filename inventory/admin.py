from django.contrib import admin

from .models import InventoryMovement, MealInventory, StationInventory


@admin.register(MealInventory)
class MealInventoryAdmin(admin.ModelAdmin):
    list_display = ("key", "total", "consumed", "available", "version", "updated_at")
    readonly_fields = ("consumed", "available", "version", "updated_at")


@admin.register(StationInventory)
class StationInventoryAdmin(admin.ModelAdmin):
    list_display = ("number", "name", "total", "consumed", "available", "active", "updated_at")
    list_filter = ("active",)
    search_fields = ("name",)
    readonly_fields = ("consumed", "available", "version", "created_at", "updated_at")


@admin.register(InventoryMovement)
class InventoryMovementAdmin(admin.ModelAdmin):
    list_display = ("created_at", "scope", "station_number", "movement_type", "quantity_delta", "created_by_user")
    list_filter = ("scope", "movement_type")
    search_fields = ("note",)
