from django.conf import settings
from django.db import models

MEAL_INVENTORY_KEY = "meal_inventory"


class InventoryScope(models.TextChoices):
    GLOBAL = "global", "General"
    STATION = "station", "Mesa"


class InventoryMovementType(models.TextChoices):
    SET = "set", "Ajuste de total"
    INCREASE = "increase", "Incremento"
    CONSUME = "consume", "Consumo"
    RESET = "reset", "Reinicio"


class MealInventory(models.Model):
    key = models.CharField(max_length=32, unique=True, default=MEAL_INVENTORY_KEY)
    total = models.PositiveIntegerField(default=0)
    consumed = models.PositiveIntegerField(default=0)
    available = models.PositiveIntegerField(default=0)
    version = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=models.Q(available=models.F("total") - models.F("consumed")),
                name="check_meal_inventory_conservation",
            ),
            models.CheckConstraint(
                condition=models.Q(consumed__lte=models.F("total")),
                name="check_meal_inventory_consumed_within_total",
            ),
        ]

    def __str__(self):
        return f"Inventario general: {self.available}/{self.total}"


class StationInventory(models.Model):
    number = models.PositiveIntegerField(unique=True)
    name = models.CharField(max_length=120, blank=True)
    total = models.PositiveIntegerField(default=0)
    consumed = models.PositiveIntegerField(default=0)
    available = models.PositiveIntegerField(default=0)
    active = models.BooleanField(default=True)
    version = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["number"]
        constraints = [
            models.CheckConstraint(condition=models.Q(number__gte=1), name="check_station_number_positive"),
            models.CheckConstraint(
                condition=models.Q(available=models.F("total") - models.F("consumed")),
                name="check_station_inventory_conservation",
            ),
            models.CheckConstraint(
                condition=models.Q(consumed__lte=models.F("total")),
                name="check_station_consumed_within_total",
            ),
        ]
        indexes = [
            models.Index(fields=["active", "number"], name="station_active_number_idx"),
        ]

    def __str__(self):
        return f"Mesa {self.number}: {self.available}/{self.total}"

    @property
    def display_name(self):
        return self.name or f"Mesa {self.number}"


class InventoryMovement(models.Model):
    scope = models.CharField(max_length=16, choices=InventoryScope.choices)
    station_number = models.PositiveIntegerField(null=True, blank=True)
    movement_type = models.CharField(max_length=16, choices=InventoryMovementType.choices)
    quantity_delta = models.IntegerField()
    note = models.CharField(max_length=255, blank=True)
    created_by_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="inventory_movements_created",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["scope", "created_at"], name="movement_scope_created_idx"),
            models.Index(fields=["station_number", "created_at"], name="movement_station_created_idx"),
        ]

    def __str__(self):
        target = f"Mesa {self.station_number}" if self.station_number else "General"
        return f"{target} - {self.movement_type} ({self.quantity_delta})"
