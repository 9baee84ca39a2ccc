from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Attendee",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("identification", models.CharField(max_length=32, unique=True)),
                ("name", models.CharField(max_length=160)),
                ("position", models.CharField(blank=True, max_length=32)),
                ("program", models.CharField(blank=True, max_length=160)),
                ("extra_slots", models.PositiveIntegerField(default=0)),
                ("consumed_slots", models.PositiveIntegerField(default=0)),
                ("imported_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["name", "id"],
                "indexes": [models.Index(fields=["program", "name"], name="attendee_program_name_idx")],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(consumed_slots__lte=models.F("extra_slots") + 2),
                        name="check_attendee_consumed_within_allotment",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Guest",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("identification", models.CharField(max_length=32, unique=True)),
                ("name", models.CharField(max_length=160)),
                ("position", models.CharField(blank=True, max_length=32)),
                ("consumed_slots", models.PositiveSmallIntegerField(default=0)),
                ("imported_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["name", "id"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(consumed_slots__lte=1),
                        name="check_guest_consumed_within_allotment",
                    ),
                ],
            },
        ),
    ]
