import os
import tempfile
from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase

from .models import Attendee, Guest
from .services import AttendeeDirectory


class AttendeeDirectoryTests(TestCase):
    def test_get_person_prefers_attendee_and_falls_back_to_guest(self):
        Attendee.objects.create(identification="1065000001", name="Ana Perez")
        Guest.objects.create(identification="1065000002", name="Luis Perez")

        attendee = AttendeeDirectory.get_person(identification=" 1065000001 ")
        guest = AttendeeDirectory.get_person(identification="1065000002")

        self.assertFalse(attendee.is_guest)
        self.assertEqual(attendee.total_slots, 2)
        self.assertTrue(guest.is_guest)
        self.assertEqual(guest.total_slots, 1)
        self.assertIsNone(AttendeeDirectory.get_person(identification="999"))
        self.assertIsNone(AttendeeDirectory.get_person(identification="   "))

    def test_consume_slot_stops_at_allotment(self):
        attendee = Attendee.objects.create(identification="1065000003", name="Sofia Diaz", extra_slots=1)

        results = [AttendeeDirectory.consume_slot(person=attendee) for _ in range(4)]

        self.assertEqual(results, [True, True, True, False])
        attendee.refresh_from_db()
        self.assertEqual(attendee.consumed_slots, 3)
        self.assertEqual(attendee.available_slots, 0)

    def test_guest_has_a_single_slot(self):
        guest = Guest.objects.create(identification="1065000004", name="Invitado Uno")
        self.assertTrue(AttendeeDirectory.consume_slot(person=guest))
        self.assertFalse(AttendeeDirectory.consume_slot(person=guest))
        guest.refresh_from_db()
        self.assertEqual(guest.consumed_slots, 1)

    def test_parse_import_rows_skips_header_and_incomplete_rows(self):
        rows = [
            ["Puesto", "Identificacion", "Nombre", "Programa", "Cupos extras"],
            ["A-1", "1065000010", "Carlos Ruiz", "Ingenieria", "2"],
            ["A-2", "", "Sin identificacion", "Derecho", "0"],
            ["A-3", "1065000011", "Marta Gil"],
            ["A-4", "1065000012", "Pedro Ortiz", "Derecho", "muchos"],
        ]

        parsed, skipped = AttendeeDirectory.parse_import_rows(rows)

        self.assertEqual(skipped, 1)
        self.assertEqual([row["identification"] for row in parsed], ["1065000010", "1065000011", "1065000012"])
        self.assertEqual(parsed[0]["extra_slots"], 2)
        self.assertEqual(parsed[1]["program"], "")
        self.assertEqual(parsed[2]["extra_slots"], 0)

    def test_parse_import_rows_treats_non_finite_extra_slots_as_zero(self):
        rows = [
            ["Puesto", "Identificacion", "Nombre", "Programa", "Cupos extras"],
            ["A-5", "1065000013", "Lina Paez", "Derecho", "inf"],
            ["A-6", "1065000014", "Ivan Sosa", "Derecho", "-inf"],
            ["A-7", "1065000015", "Rosa Vega", "Derecho", "nan"],
        ]

        parsed, skipped = AttendeeDirectory.parse_import_rows(rows)

        self.assertEqual(skipped, 0)
        self.assertEqual([row["extra_slots"] for row in parsed], [0, 0, 0])

    def test_import_updates_without_touching_consumed_slots(self):
        Attendee.objects.create(identification="1065000020", name="Viejo Nombre", extra_slots=2, consumed_slots=4)

        summary = AttendeeDirectory.import_attendees(
            rows=[
                {"position": "B-1", "identification": "1065000020", "name": "Nuevo Nombre", "extra_slots": 0},
                {"position": "B-2", "identification": "1065000021", "name": "Otra Persona", "extra_slots": 1},
                {"position": "B-3", "identification": "", "name": "Nadie"},
            ]
        )

        self.assertEqual((summary.created, summary.updated, summary.skipped), (1, 1, 1))
        updated = Attendee.objects.get(identification="1065000020")
        self.assertEqual(updated.name, "Nuevo Nombre")
        self.assertEqual(updated.consumed_slots, 4)
        self.assertEqual(updated.extra_slots, 2)

    def test_import_guests(self):
        summary = AttendeeDirectory.import_guests(
            rows=[{"position": "C-1", "identification": "2000000001", "name": "Invitada"}]
        )
        self.assertEqual(summary.created, 1)
        self.assertTrue(Guest.objects.filter(identification="2000000001").exists())

    def test_bulk_delete_reset_and_pending_slots(self):
        Attendee.objects.create(identification="1065000030", name="Uno", extra_slots=1, consumed_slots=1)
        Attendee.objects.create(identification="1065000031", name="Dos", consumed_slots=2)
        Guest.objects.create(identification="1065000032", name="Tres")

        self.assertEqual(AttendeeDirectory.pending_slots(), 2 + 0 + 1)

        self.assertEqual(AttendeeDirectory.reset_consumed_slots(), 2)
        self.assertEqual(AttendeeDirectory.pending_slots(), 3 + 2 + 1)

        self.assertEqual(AttendeeDirectory.bulk_delete(identifications=["1065000031", "1065000032"]), 2)
        self.assertEqual(AttendeeDirectory.bulk_delete(), 1)
        self.assertFalse(Attendee.objects.exists())


class ImportAttendeesCommandTests(TestCase):
    def _write_csv(self, content):
        handle = tempfile.NamedTemporaryFile("w", suffix=".csv", delete=False, encoding="utf-8")
        with handle:
            handle.write(content)
        self.addCleanup(os.remove, handle.name)
        return handle.name

    def test_command_imports_attendees(self):
        path = self._write_csv(
            "puesto,identificacion,nombre,programa,cupos\n"
            "A-1,1065000040,Laura Mejia,Contaduria,1\n"
            ",1065000041,Sin puesto,Contaduria,0\n"
        )
        out = StringIO()

        call_command("import_attendees", path, stdout=out)

        self.assertEqual(Attendee.objects.get(identification="1065000040").extra_slots, 1)
        self.assertFalse(Attendee.objects.filter(identification="1065000041").exists())
        self.assertIn("Se importaron 1 registros", out.getvalue())

    def test_command_imports_guests(self):
        path = self._write_csv("puesto,identificacion,nombre\nG-1,3000000001,Invitado CSV\n")

        call_command("import_attendees", path, "--guests", stdout=StringIO())

        self.assertTrue(Guest.objects.filter(identification="3000000001").exists())

    def test_command_rejects_empty_file(self):
        path = self._write_csv("puesto,identificacion,nombre\n")
        with self.assertRaises(CommandError):
            call_command("import_attendees", path, stdout=StringIO())

    def test_command_rejects_file_with_wrong_encoding(self):
        handle = tempfile.NamedTemporaryFile("wb", suffix=".csv", delete=False)
        with handle:
            handle.write("puesto,identificacion,nombre\nA-1,1065000042,Muñoz\n".encode("latin-1"))
        self.addCleanup(os.remove, handle.name)

        with self.assertRaises(CommandError):
            call_command("import_attendees", handle.name, stdout=StringIO())
        self.assertFalse(Attendee.objects.exists())
