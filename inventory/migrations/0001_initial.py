import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="MealInventory",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("key", models.CharField(default="meal_inventory", max_length=32, unique=True)),
                ("total", models.PositiveIntegerField(default=0)),
                ("consumed", models.PositiveIntegerField(default=0)),
                ("available", models.PositiveIntegerField(default=0)),
                ("version", models.PositiveIntegerField(default=0)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(available=models.F("total") - models.F("consumed")),
                        name="check_meal_inventory_conservation",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(consumed__lte=models.F("total")),
                        name="check_meal_inventory_consumed_within_total",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="StationInventory",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("number", models.PositiveIntegerField(unique=True)),
                ("name", models.CharField(blank=True, max_length=120)),
                ("total", models.PositiveIntegerField(default=0)),
                ("consumed", models.PositiveIntegerField(default=0)),
                ("available", models.PositiveIntegerField(default=0)),
                ("active", models.BooleanField(default=True)),
                ("version", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["number"],
                "indexes": [models.Index(fields=["active", "number"], name="station_active_number_idx")],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(number__gte=1), name="check_station_number_positive"),
                    models.CheckConstraint(
                        condition=models.Q(available=models.F("total") - models.F("consumed")),
                        name="check_station_inventory_conservation",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(consumed__lte=models.F("total")),
                        name="check_station_consumed_within_total",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="InventoryMovement",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "scope",
                    models.CharField(choices=[("global", "General"), ("station", "Mesa")], max_length=16),
                ),
                ("station_number", models.PositiveIntegerField(blank=True, null=True)),
                (
                    "movement_type",
                    models.CharField(
                        choices=[
                            ("set", "Ajuste de total"),
                            ("increase", "Incremento"),
                            ("consume", "Consumo"),
                            ("reset", "Reinicio"),
                        ],
                        max_length=16,
                    ),
                ),
                ("quantity_delta", models.IntegerField()),
                ("note", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "created_by_user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="inventory_movements_created",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["scope", "created_at"], name="movement_scope_created_idx"),
                    models.Index(fields=["station_number", "created_at"], name="movement_station_created_idx"),
                ],
            },
        ),
    ]
