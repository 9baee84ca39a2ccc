from django.conf import settings
from django.db import migrations


def backfill_operator_profiles(apps, schema_editor):
    app_label, model_name = settings.AUTH_USER_MODEL.split(".")
    User = apps.get_model(app_label, model_name)
    OperatorProfile = apps.get_model("operations", "OperatorProfile")

    existing = set(OperatorProfile.objects.values_list("user_id", flat=True))
    for user in User.objects.exclude(id__in=existing).iterator():
        OperatorProfile.objects.create(
            user=user,
            role="administrador" if user.is_superuser else "operativo",
        )


class Migration(migrations.Migration):
    dependencies = [
        ("operations", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(backfill_operator_profiles, migrations.RunPython.noop),
    ]
