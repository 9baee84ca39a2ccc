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
            name="OperatorProfile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "role",
                    models.CharField(
                        choices=[
                            ("administrador", "Administrador"),
                            ("operativo", "Operativo"),
                            ("bufete", "Bufete"),
                        ],
                        default="operativo",
                        max_length=16,
                    ),
                ),
                ("id_number", models.CharField(blank=True, max_length=32)),
                ("assigned_station", models.PositiveIntegerField(blank=True, null=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="operator_profile",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["user__username", "id"],
                "constraints": [
                    models.CheckConstraint(
                        condition=~models.Q(role="bufete") | models.Q(assigned_station__isnull=False),
                        name="check_bufete_has_assigned_station",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="StaffAuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action_type", models.CharField(max_length=64)),
                ("target_model", models.CharField(max_length=64)),
                ("target_id", models.CharField(max_length=64)),
                ("payload_json", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "staff_user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="staff_audit_logs",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["action_type", "created_at"], name="audit_action_created_idx"),
                    models.Index(fields=["staff_user", "created_at"], name="audit_staff_created_idx"),
                ],
            },
        ),
    ]
