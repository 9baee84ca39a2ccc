from django.db import migrations


def create_append_only_trigger(apps, schema_editor):
    if schema_editor.connection.vendor != "postgresql":
        return
    schema_editor.execute(
        """
        CREATE OR REPLACE FUNCTION access_reject_log_update()
        RETURNS trigger AS $$
        BEGIN
            RAISE EXCEPTION USING
                MESSAGE = 'Access log entry '
                    || OLD.id::text
                    || ' is immutable.';
        END;
        $$ LANGUAGE plpgsql;
        """
    )
    schema_editor.execute("DROP TRIGGER IF EXISTS trg_access_log_append_only ON access_accesslogentry;")
    schema_editor.execute(
        """
        CREATE TRIGGER trg_access_log_append_only
        BEFORE UPDATE ON access_accesslogentry
        FOR EACH ROW
        EXECUTE FUNCTION access_reject_log_update();
        """
    )


def drop_append_only_trigger(apps, schema_editor):
    if schema_editor.connection.vendor != "postgresql":
        return
    schema_editor.execute("DROP TRIGGER IF EXISTS trg_access_log_append_only ON access_accesslogentry;")
    schema_editor.execute("DROP FUNCTION IF EXISTS access_reject_log_update();")


class Migration(migrations.Migration):
    dependencies = [
        ("access", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(create_append_only_trigger, drop_append_only_trigger),
    ]
