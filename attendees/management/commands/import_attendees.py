import csv

from django.core.management.base import BaseCommand, CommandError

from attendees.services import AttendeeDirectory


class Command(BaseCommand):
    help = "Importa personas (o invitados) desde un CSV con columnas puesto, identificacion, nombre, programa, cupos extras."

    def add_arguments(self, parser):
        parser.add_argument("csv_path")
        parser.add_argument("--guests", action="store_true", help="Importa los registros como invitados.")
        parser.add_argument("--delimiter", default=",")
        parser.add_argument("--encoding", default="utf-8-sig")

    def handle(self, *args, **options):
        try:
            with open(options["csv_path"], newline="", encoding=options["encoding"]) as handle:
                rows, skipped = AttendeeDirectory.parse_import_rows(
                    csv.reader(handle, delimiter=options["delimiter"])
                )
        except (OSError, UnicodeDecodeError, LookupError) as exc:
            raise CommandError(f"No se pudo leer el archivo: {exc}") from exc

        if not rows:
            raise CommandError("No hay datos para importar.")

        if options["guests"]:
            summary = AttendeeDirectory.import_guests(rows=rows)
        else:
            summary = AttendeeDirectory.import_attendees(rows=rows)

        if skipped:
            self.stdout.write(self.style.WARNING(f"Filas omitidas por datos incompletos: {skipped}"))
        self.stdout.write(
            self.style.SUCCESS(
                f"Se importaron {summary.total} registros ({summary.created} nuevos, {summary.updated} actualizados)."
            )
        )
