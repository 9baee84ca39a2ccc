import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="AccessLogEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("identification", models.CharField(max_length=32)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("granted", "Acceso concedido"),
                            ("denied", "Acceso denegado"),
                            ("q10_success", "Certificado Q10 valido"),
                            ("q10_failed", "Certificado Q10 invalido"),
                        ],
                        max_length=16,
                    ),
                ),
                ("details", models.CharField(blank=True, max_length=255)),
                (
                    "source",
                    models.CharField(
                        choices=[
                            ("direct", "Escaneo directo"),
                            ("q10", "Certificado Q10"),
                            ("manual", "Ingreso manual"),
                        ],
                        default="direct",
                        max_length=16,
                    ),
                ),
                ("actor_id", models.CharField(blank=True, max_length=64)),
                ("actor_name", models.CharField(blank=True, max_length=160)),
                ("actor_email", models.CharField(blank=True, max_length=254)),
                ("actor_role", models.CharField(blank=True, max_length=32)),
                ("station_used", models.PositiveIntegerField(blank=True, null=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now, editable=False)),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["identification", "status"], name="access_ident_status_idx"),
                    models.Index(fields=["status", "created_at"], name="access_status_created_idx"),
                    models.Index(fields=["station_used", "status"], name="access_station_status_idx"),
                ],
            },
        ),
    ]
