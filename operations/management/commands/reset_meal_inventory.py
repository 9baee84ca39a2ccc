from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from attendees.services import AttendeeDirectory
from inventory.services import InventoryError, MealInventoryService


class Command(BaseCommand):
    help = "Reinicia el inventario general de comidas y, opcionalmente, los cupos consumidos de las personas."

    def add_arguments(self, parser):
        parser.add_argument("--total", type=int, default=None, help="Nuevo total de comidas.")
        parser.add_argument(
            "--include-people",
            action="store_true",
            help="Tambien reinicia los cupos consumidos de personas e invitados.",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        try:
            snapshot = MealInventoryService.reset(new_total=options["total"])
        except InventoryError as exc:
            raise CommandError(str(exc)) from exc

        self.stdout.write(self.style.SUCCESS(f"Inventario general reiniciado a {snapshot.total} comidas."))
        if options["include_people"]:
            reset = AttendeeDirectory.reset_consumed_slots()
            self.stdout.write(self.style.SUCCESS(f"Cupos reiniciados para {reset} personas."))
