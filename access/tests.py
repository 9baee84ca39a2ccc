import json
from types import SimpleNamespace
from unittest import mock

import requests
from django.contrib.auth import get_user_model
from django.test import TestCase

from attendees.models import Attendee, Guest
from inventory.models import MealInventory, StationInventory
from inventory.services import MealInventoryService, StationInventoryService
from operations.models import OperatorRole
from operations.services import StaffOpsService

from .models import AccessLogEntry, AccessLogEntryError, AccessSource, AccessStatus
from .q10 import (
    Q10CertificateClient,
    Q10ExtractionError,
    extract_identification_from_html,
    is_q10_certificate_url,
)
from .services import (
    AccessDecisionService,
    AccessMode,
    ActorInfo,
    CheckInService,
    DenialReason,
    MealUnavailableError,
    MesaAccessValidator,
    ScanStatus,
)

Q10_URL = "https://site2.q10.com/CertificadosAcademicos/abc123"


class MesaAccessValidatorTests(TestCase):
    def setUp(self):
        MealInventoryService.reset(new_total=100)
        StationInventoryService.save_station(number=3, total=10)
        self.attendee = Attendee.objects.create(identification="1065000100", name="Persona X")
        self.validator = MesaAccessValidator()
        self.decisions = AccessDecisionService(validator=self.validator)
        self.check_in = CheckInService(decision_service=self.decisions)
        self.actor = ActorInfo(actor_id="7", actor_name="Bufete 3", actor_role="bufete", assigned_station=3)

    def _station(self, number):
        return StationInventory.objects.get(number=number)

    def _global(self):
        return MealInventory.objects.get()

    def test_valid_meal_is_debited_from_every_counter(self):
        result = self.validator.validate("1065000100", 3)
        self.assertTrue(result.valid)
        self.assertEqual(result.remaining, 1)
        self.assertIn("1", result.message)

        entry = self.decisions.mark_access(
            identification="1065000100",
            granted=True,
            details=result.message,
            actor=self.actor,
            mode=AccessMode.MEAL_SERVICE,
        )

        self.attendee.refresh_from_db()
        self.assertEqual(self.attendee.consumed_slots, 1)
        self.assertEqual(self._station(3).available, 9)
        self.assertEqual(self._global().available, 99)
        self.assertEqual(entry.status, AccessStatus.GRANTED)
        self.assertEqual(entry.station_used, 3)
        self.assertEqual(entry.actor_role, "bufete")

    def test_exhausted_quota_is_refused_without_debiting_the_station(self):
        Attendee.objects.filter(pk=self.attendee.pk).update(consumed_slots=2)

        result = self.check_in.serve_meal("1065000100", actor=self.actor)

        self.assertFalse(result.valid)
        self.assertEqual(result.reason, DenialReason.QUOTA_EXHAUSTED)
        self.attendee.refresh_from_db()
        self.assertEqual(self.attendee.consumed_slots, 2)
        self.assertEqual(self._station(3).available, 10)
        self.assertEqual(self._global().available, 100)
        self.assertFalse(AccessLogEntry.objects.exists())

    def test_commit_writes_nothing_when_a_gate_fails(self):
        Attendee.objects.filter(pk=self.attendee.pk).update(consumed_slots=2)

        with self.assertRaises(MealUnavailableError) as ctx:
            self.validator.commit("1065000100", 3)

        self.assertEqual(ctx.exception.result.reason, DenialReason.QUOTA_EXHAUSTED)
        self.assertEqual(self._station(3).consumed, 0)
        self.assertEqual(self._global().consumed, 0)

    def test_inactive_station_is_refused_first(self):
        StationInventoryService.save_station(number=5, total=10, active=False)

        result = self.validator.validate("1065000100", 5)
        self.assertFalse(result.valid)
        self.assertEqual(result.reason, DenialReason.STATION_INACTIVE)

        self.check_in.serve_meal("1065000100", station_number=5, actor=self.actor)
        self.attendee.refresh_from_db()
        self.assertEqual(self.attendee.consumed_slots, 0)
        self.assertEqual(self._global().available, 100)

    def test_exhausted_station_is_refused(self):
        StationInventoryService.save_station(number=4, total=0)
        result = self.validator.validate("1065000100", 4)
        self.assertEqual(result.reason, DenialReason.STATION_EXHAUSTED)

    def test_exhausted_global_inventory_wins_over_station_capacity(self):
        MealInventoryService.reset(new_total=0)
        StationInventoryService.save_station(number=2, total=5)

        result = self.validator.validate("1065000100", 2)

        self.assertFalse(result.valid)
        self.assertEqual(result.reason, DenialReason.GLOBAL_EXHAUSTED)
        self.assertEqual(self._station(2).available, 5)

    def test_unknown_person_is_refused(self):
        result = self.validator.validate("000", 3)
        self.assertEqual(result.reason, DenialReason.PERSON_NOT_FOUND)

    def test_missing_station_record_means_no_restriction(self):
        result = self.check_in.serve_meal("1065000100", station_number=9, actor=self.actor)

        self.assertTrue(result.valid)
        self.assertEqual(self._global().available, 99)
        self.assertEqual(AccessLogEntry.objects.get().station_used, 9)

    def test_quota_bound_holds_over_repeated_meals(self):
        Attendee.objects.filter(pk=self.attendee.pk).update(extra_slots=1)

        results = [self.check_in.serve_meal("1065000100", actor=self.actor).valid for _ in range(5)]

        self.assertEqual(results, [True, True, True, False, False])
        self.attendee.refresh_from_db()
        self.assertEqual(self.attendee.consumed_slots, 3)
        self.assertEqual(self._station(3).available, 7)
        self.assertEqual(self._global().available, 97)

    def test_guest_gets_a_single_meal(self):
        Guest.objects.create(identification="2000000100", name="Invitado")

        first = self.check_in.serve_meal("2000000100", actor=self.actor)
        second = self.check_in.serve_meal("2000000100", actor=self.actor)

        self.assertTrue(first.valid)
        self.assertEqual(first.remaining, 0)
        self.assertEqual(second.reason, DenialReason.QUOTA_EXHAUSTED)

    def test_meal_service_requires_a_station(self):
        with self.assertRaises(MealUnavailableError):
            self.decisions.mark_access(
                identification="1065000100",
                granted=True,
                actor=ActorInfo(actor_role="administrador"),
                mode=AccessMode.MEAL_SERVICE,
            )
        self.assertFalse(AccessLogEntry.objects.exists())

        result = self.check_in.serve_meal("1065000100", actor=ActorInfo())
        self.assertEqual(result.reason, DenialReason.STATION_REQUIRED)

    def test_access_only_mode_never_touches_inventory(self):
        self.decisions.mark_access(identification="1065000100", granted=True, actor=self.actor)

        self.attendee.refresh_from_db()
        self.assertEqual(self.attendee.consumed_slots, 0)
        self.assertEqual(self._station(3).available, 10)
        self.assertEqual(self._global().available, 100)
        self.assertIsNone(AccessLogEntry.objects.get().station_used)

    def test_injected_fake_handles_are_used_by_validate(self):
        fake_meal = mock.Mock()
        fake_meal.read.return_value = SimpleNamespace(available=0)
        fake_station = mock.Mock()
        fake_station.read.return_value = SimpleNamespace(active=True, available=3)
        fake_directory = mock.Mock()

        validator = MesaAccessValidator(
            meal_inventory=fake_meal,
            station_inventory=fake_station,
            attendee_directory=fake_directory,
        )
        result = validator.validate("123", 1)

        self.assertEqual(result.reason, DenialReason.GLOBAL_EXHAUSTED)
        fake_station.read.assert_called_once_with(number=1)


class AccessDecisionServiceTests(TestCase):
    def setUp(self):
        self.decisions = AccessDecisionService()

    def test_denial_is_suppressed_after_a_grant(self):
        AccessLogEntry.objects.create(identification="1065000200", status=AccessStatus.GRANTED)

        entry = self.decisions.mark_access(identification="1065000200", granted=False, details="Fallo de lectura")

        self.assertIsNone(entry)
        self.assertEqual(AccessLogEntry.objects.filter(identification="1065000200").count(), 1)

    def test_denial_is_logged_when_never_granted(self):
        entry = self.decisions.mark_access(identification="1065000201", granted=False, details="No registrado")
        self.assertEqual(entry.status, AccessStatus.DENIED)

    def test_q10_success_does_not_count_as_scanned(self):
        self.decisions.mark_q10_access(identification="1065000202", status=AccessStatus.Q10_SUCCESS)
        self.assertFalse(self.decisions.check_if_already_scanned("1065000202"))

        with self.assertRaises(ValueError):
            self.decisions.mark_q10_access(identification="1065000202", status=AccessStatus.GRANTED)

    def test_log_entries_are_immutable(self):
        entry = self.decisions.mark_access(identification="1065000203", granted=True)
        entry.details = "editado"
        with self.assertRaises(AccessLogEntryError):
            entry.save()

    def test_empty_identification_is_rejected(self):
        with self.assertRaises(ValueError):
            self.decisions.mark_access(identification="  ", granted=True)

    def test_served_by_station(self):
        AccessLogEntry.objects.create(identification="1", status=AccessStatus.GRANTED, station_used=1)
        AccessLogEntry.objects.create(identification="2", status=AccessStatus.GRANTED, station_used=1)
        AccessLogEntry.objects.create(identification="3", status=AccessStatus.GRANTED, station_used=2)
        AccessLogEntry.objects.create(identification="4", status=AccessStatus.GRANTED)
        AccessLogEntry.objects.create(identification="5", status=AccessStatus.DENIED, station_used=2)

        self.assertEqual(self.decisions.served_by_station(), {1: 2, 2: 1})


class CheckInServiceTests(TestCase):
    def setUp(self):
        Attendee.objects.create(identification="1065000300", name="Maria Lopez")
        self.q10_client = mock.Mock()
        self.check_in = CheckInService(q10_client=self.q10_client)
        self.actor = ActorInfo(actor_id="1", actor_name="Porteria", actor_role="operativo")

    def test_first_scan_grants_and_second_is_duplicate(self):
        first = self.check_in.process_entry(" 1065000300 ", actor=self.actor)
        second = self.check_in.process_entry("1065000300", actor=self.actor)

        self.assertEqual(first.status, ScanStatus.GRANTED)
        self.assertEqual(first.person_name, "Maria Lopez")
        self.assertEqual(second.status, ScanStatus.ALREADY_SCANNED)
        self.assertEqual(AccessLogEntry.objects.filter(identification="1065000300").count(), 1)

    def test_unknown_person_is_denied_and_logged(self):
        outcome = self.check_in.process_entry("999", source=AccessSource.MANUAL, actor=self.actor)

        self.assertEqual(outcome.status, ScanStatus.DENIED)
        entry = AccessLogEntry.objects.get(identification="999")
        self.assertEqual(entry.status, AccessStatus.DENIED)
        self.assertEqual(entry.source, AccessSource.MANUAL)

    def test_empty_input_is_rejected(self):
        with self.assertRaises(ValueError):
            self.check_in.process_entry("   ")

    def test_q10_certificate_grants_access(self):
        self.q10_client.extract_identification.return_value = "1065000300"

        outcome = self.check_in.process_entry(Q10_URL, actor=self.actor)

        self.assertEqual(outcome.status, ScanStatus.GRANTED)
        self.assertEqual(outcome.source, AccessSource.Q10)
        statuses = list(
            AccessLogEntry.objects.filter(identification="1065000300").order_by("id").values_list("status", flat=True)
        )
        self.assertEqual(statuses, [AccessStatus.Q10_SUCCESS, AccessStatus.GRANTED])
        self.assertEqual(AccessLogEntry.objects.get(status=AccessStatus.GRANTED).source, AccessSource.Q10)

    def test_repeated_q10_certificate_is_duplicate(self):
        self.q10_client.extract_identification.return_value = "1065000300"
        self.check_in.process_q10(Q10_URL, actor=self.actor)

        outcome = self.check_in.process_q10(Q10_URL, actor=self.actor)

        self.assertEqual(outcome.status, ScanStatus.ALREADY_SCANNED)
        self.assertEqual(AccessLogEntry.objects.filter(status=AccessStatus.GRANTED).count(), 1)

    def test_q10_extraction_failure_is_logged(self):
        self.q10_client.extract_identification.side_effect = Q10ExtractionError("No se pudo consultar el certificado Q10.")

        outcome = self.check_in.process_q10(Q10_URL, actor=self.actor)

        self.assertEqual(outcome.status, ScanStatus.DENIED)
        self.assertEqual(AccessLogEntry.objects.get().status, AccessStatus.Q10_FAILED)

    def test_q10_unknown_person_is_logged_as_failure(self):
        self.q10_client.extract_identification.return_value = "5555555555"

        outcome = self.check_in.process_q10(Q10_URL, actor=self.actor)

        self.assertEqual(outcome.status, ScanStatus.DENIED)
        entry = AccessLogEntry.objects.get()
        self.assertEqual((entry.identification, entry.status), ("5555555555", AccessStatus.Q10_FAILED))


class Q10CertificateClientTests(TestCase):
    def test_certificate_url_detection(self):
        self.assertTrue(is_q10_certificate_url(Q10_URL))
        self.assertTrue(is_q10_certificate_url("https://uparsistemvalledupar.q10.com/CertificadosAcademicos/x"))
        self.assertFalse(is_q10_certificate_url("https://example.com/CertificadosAcademicos/x"))
        self.assertFalse(is_q10_certificate_url("1065000300"))

    def test_identification_is_found_in_labelled_elements(self):
        html = """
        <html><body>
            <h1>Certificado</h1>
            <p>Expedido el 2024</p>
            <span class="cedula-estudiante">C.C. 12.345.678</span>
        </body></html>
        """
        self.assertEqual(extract_identification_from_html(html), "12345678")

    def test_identification_is_found_in_plain_text(self):
        self.assertEqual(extract_identification_from_html("Documento 1065123456 expedido"), "1065123456")
        self.assertIsNone(extract_identification_from_html("<p>Sin datos 1234</p>"))

    def test_client_fetches_with_browser_user_agent(self):
        session = mock.Mock()
        session.get.return_value = mock.Mock(text="<b>1065123456</b>")

        identification = Q10CertificateClient(session=session, timeout=5).extract_identification(Q10_URL)

        self.assertEqual(identification, "1065123456")
        _args, kwargs = session.get.call_args
        self.assertIn("Mozilla/5.0", kwargs["headers"]["User-Agent"])
        self.assertEqual(kwargs["timeout"], 5)

    def test_client_wraps_network_errors(self):
        session = mock.Mock()
        session.get.side_effect = requests.ConnectionError("sin red")

        with self.assertRaises(Q10ExtractionError):
            Q10CertificateClient(session=session).extract_identification(Q10_URL)

    def test_client_rejects_foreign_urls(self):
        with self.assertRaises(Q10ExtractionError):
            Q10CertificateClient(session=mock.Mock()).extract_identification("https://example.com/x")


class AccessApiTests(TestCase):
    def setUp(self):
        user_model = get_user_model()
        self.admin = user_model.objects.create_superuser(username="admin", password="secret", email="a@x.co")
        self.gate = user_model.objects.create_user(username="porteria", password="secret")
        self.buffet = user_model.objects.create_user(username="bufete1", password="secret")
        StaffOpsService.set_operator_role(
            staff_user=self.admin,
            target_user=self.buffet,
            role=OperatorRole.BUFETE,
            assigned_station=1,
        )
        MealInventoryService.reset(new_total=10)
        StationInventoryService.save_station(number=1, total=5)
        Attendee.objects.create(identification="1065000400", name="Andres Gomez")

    def _post(self, url, payload):
        return self.client.post(url, data=json.dumps(payload), content_type="application/json")

    def test_scan_api_grants_then_reports_duplicate(self):
        self.client.force_login(self.gate)

        first = self._post("/api/access/scan", {"value": "1065000400"})
        second = self._post("/api/access/scan", {"value": "1065000400"})

        self.assertEqual(first.status_code, 200)
        self.assertTrue(first.json()["ok"])
        self.assertEqual(second.status_code, 400)
        self.assertEqual(second.json()["status"], ScanStatus.ALREADY_SCANNED)

    def test_buffet_operator_serves_at_assigned_station(self):
        self.client.force_login(self.buffet)

        response = self._post("/api/access/meal", {"identification": "1065000400", "station_number": 4})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["station_number"], 1)
        self.assertEqual(StationInventory.objects.get(number=1).available, 4)

    def test_gate_operator_cannot_serve_meals(self):
        self.client.force_login(self.gate)
        response = self._post("/api/access/meal", {"identification": "1065000400"})
        self.assertEqual(response.status_code, 403)

    def test_validate_and_person_endpoints(self):
        self.client.force_login(self.gate)

        validation = self.client.get("/api/access/mesa/validate", {"identification": "1065000400", "station_number": 1})
        person = self.client.get("/api/access/people/1065000400")
        missing = self.client.get("/api/access/people/000")

        self.assertTrue(validation.json()["result"]["valid"])
        self.assertEqual(validation.json()["result"]["remaining"], 1)
        self.assertEqual(person.json()["person"]["total_slots"], 2)
        self.assertFalse(person.json()["already_scanned"])
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(StationInventory.objects.get(number=1).available, 5)

    def test_scan_api_accepts_numeric_identification(self):
        self.client.force_login(self.gate)

        response = self._post("/api/access/scan", {"value": 1065000400})

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["ok"])
        self.assertEqual(response.json()["status"], ScanStatus.GRANTED)
        self.assertTrue(AccessLogEntry.objects.filter(identification="1065000400", status=AccessStatus.GRANTED).exists())

    def test_validate_api_rejects_non_positive_station(self):
        self.client.force_login(self.gate)

        zero = self.client.get("/api/access/mesa/validate", {"identification": "1065000400", "station_number": 0})
        negative = self.client.get("/api/access/mesa/validate", {"identification": "1065000400", "station_number": -3})

        self.assertEqual(zero.status_code, 400)
        self.assertEqual(negative.status_code, 400)
        self.assertFalse(zero.json()["ok"])

    def test_meal_api_rejects_non_positive_station_for_admin(self):
        self.client.force_login(self.admin)

        response = self._post("/api/access/meal", {"identification": "1065000400", "station_number": -1})

        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["ok"])
        self.assertEqual(MealInventoryService.read().available, 10)
        self.assertEqual(Attendee.objects.get(identification="1065000400").consumed_slots, 0)
