import json
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase

from access.models import AccessLogEntry, AccessStatus
from attendees.models import Attendee
from inventory.models import MealInventory, StationInventory
from inventory.services import InventoryError, MealInventoryService, StationInventoryService

from .models import OperatorProfile, OperatorRole, StaffAuditLog
from .services import StaffOpsService, StaffPermissionError, build_actor_info


class OperatorProfileTests(TestCase):
    def setUp(self):
        self.user_model = get_user_model()

    def test_new_user_gets_operativo_profile_by_default(self):
        user = self.user_model.objects.create_user(username="operativo1", password="secret")
        self.assertEqual(user.operator_profile.role, OperatorRole.OPERATIVO)
        self.assertIsNone(user.operator_profile.assigned_station)

    def test_superuser_gets_administrador_profile(self):
        user = self.user_model.objects.create_superuser(username="root", password="secret", email="r@x.co")
        self.assertEqual(user.operator_profile.role, OperatorRole.ADMINISTRADOR)

    def test_build_actor_info(self):
        user = self.user_model.objects.create_user(
            username="bufete2",
            password="secret",
            email="bufete2@x.co",
            first_name="Laura",
            last_name="Rios",
        )
        OperatorProfile.objects.filter(user=user).update(role=OperatorRole.BUFETE, assigned_station=2)

        actor = build_actor_info(user)

        self.assertEqual(actor.actor_id, str(user.id))
        self.assertEqual(actor.actor_name, "Laura Rios")
        self.assertEqual(actor.actor_email, "bufete2@x.co")
        self.assertEqual(actor.actor_role, OperatorRole.BUFETE)
        self.assertEqual(actor.assigned_station, 2)


class StaffOpsServiceTests(TestCase):
    def setUp(self):
        user_model = get_user_model()
        self.admin = user_model.objects.create_user(username="admin1", password="secret")
        OperatorProfile.objects.filter(user=self.admin).update(role=OperatorRole.ADMINISTRADOR)
        self.operator = user_model.objects.create_user(username="operador1", password="secret")

    def test_only_admins_can_run_admin_operations(self):
        with self.assertRaises(StaffPermissionError):
            StaffOpsService.save_station(staff_user=self.operator, number=1, total=10)
        with self.assertRaises(StaffPermissionError):
            StaffOpsService.reset_meal_inventory(staff_user=self.operator)
        self.assertFalse(StationInventory.objects.exists())

    def test_set_operator_role_requires_station_for_bufete(self):
        with self.assertRaises(ValueError):
            StaffOpsService.set_operator_role(
                staff_user=self.admin,
                target_user=self.operator,
                role=OperatorRole.BUFETE,
            )

        profile = StaffOpsService.set_operator_role(
            staff_user=self.admin,
            target_user=self.operator,
            role=OperatorRole.BUFETE,
            assigned_station="4",
            id_number="1065999000",
        )

        self.assertEqual((profile.role, profile.assigned_station, profile.id_number), ("bufete", 4, "1065999000"))
        log = StaffAuditLog.objects.get(action_type="set_operator_role")
        self.assertEqual(log.payload_json["previous_role"], OperatorRole.OPERATIVO)

    def test_set_operator_role_rejects_unknown_roles_and_self_demotion(self):
        with self.assertRaises(ValueError):
            StaffOpsService.set_operator_role(staff_user=self.admin, target_user=self.operator, role="root")
        with self.assertRaises(StaffPermissionError):
            StaffOpsService.set_operator_role(
                staff_user=self.admin,
                target_user=self.admin,
                role=OperatorRole.OPERATIVO,
            )

    def test_assign_station_cannot_clear_bufete_station(self):
        StaffOpsService.set_operator_role(
            staff_user=self.admin,
            target_user=self.operator,
            role=OperatorRole.BUFETE,
            assigned_station=1,
        )
        with self.assertRaises(ValueError):
            StaffOpsService.assign_station(staff_user=self.admin, target_user=self.operator, station_number=None)

        profile = StaffOpsService.assign_station(staff_user=self.admin, target_user=self.operator, station_number=3)
        self.assertEqual(profile.assigned_station, 3)

    def test_import_and_delete_people(self):
        summary = StaffOpsService.import_people(
            staff_user=self.admin,
            rows=[
                ["puesto", "identificacion", "nombre", "programa", "cupos"],
                ["A-1", "1065000500", "Camila Torres", "Medicina", "1"],
                ["A-2", "", "Incompleto", "", ""],
            ],
        )

        self.assertEqual((summary.created, summary.skipped), (1, 1))
        self.assertEqual(Attendee.objects.get(identification="1065000500").total_slots, 3)

        deleted = StaffOpsService.delete_people(staff_user=self.admin, identifications=["1065000500"])
        self.assertEqual(deleted, 1)
        self.assertEqual(
            list(StaffAuditLog.objects.order_by("id").values_list("action_type", flat=True)),
            ["import_attendees", "delete_people"],
        )

    def test_import_without_rows_is_rejected(self):
        with self.assertRaises(ValueError):
            StaffOpsService.import_people(staff_user=self.admin, rows=[["puesto", "identificacion", "nombre"]])

    def test_reset_meal_inventory_can_include_people(self):
        Attendee.objects.create(identification="1065000510", name="Con consumo", consumed_slots=2)
        MealInventoryService.set_total(new_total=10)
        MealInventoryService.consume_one()

        snapshot = StaffOpsService.reset_meal_inventory(staff_user=self.admin, new_total=20)
        self.assertEqual((snapshot.total, snapshot.available), (20, 20))
        self.assertEqual(Attendee.objects.get(identification="1065000510").consumed_slots, 2)

        StaffOpsService.reset_meal_inventory(staff_user=self.admin, new_total=20, include_people=True)
        self.assertEqual(Attendee.objects.get(identification="1065000510").consumed_slots, 0)

    def test_station_lifecycle(self):
        StaffOpsService.save_station(staff_user=self.admin, number=1, total=5, name="Mesa central")
        StaffOpsService.add_station_meals(staff_user=self.admin, number=1, amount=3)
        StaffOpsService.set_station_active(staff_user=self.admin, number=1, active=False)
        StaffOpsService.set_all_stations_active(staff_user=self.admin, active=True)
        StationInventoryService.consume_one(number=1)
        snapshot = StaffOpsService.reset_station(staff_user=self.admin, number=1)

        self.assertEqual((snapshot.total, snapshot.consumed, snapshot.available, snapshot.active), (8, 0, 8, True))

        StaffOpsService.delete_station(staff_user=self.admin, number=1)
        self.assertFalse(StationInventory.objects.exists())
        self.assertEqual(StaffAuditLog.objects.filter(target_model="inventory.StationInventory").count(), 6)

    def test_resize_meal_inventory_keeps_consumed(self):
        MealInventoryService.set_total(new_total=5)
        MealInventoryService.consume_one()
        MealInventoryService.consume_one()

        with self.assertRaises(InventoryError):
            StaffOpsService.resize_meal_inventory(staff_user=self.admin, new_total=1)

        snapshot = StaffOpsService.resize_meal_inventory(staff_user=self.admin, new_total=8)
        self.assertEqual((snapshot.total, snapshot.consumed, snapshot.available), (8, 2, 6))


class OperationsApiTests(TestCase):
    def setUp(self):
        user_model = get_user_model()
        self.admin = user_model.objects.create_superuser(username="admin", password="secret", email="a@x.co")
        self.operator = user_model.objects.create_user(username="operador", password="secret")

    def _post(self, url, payload=None):
        return self.client.post(url, data=json.dumps(payload or {}), content_type="application/json")

    def test_inventory_state_reports_served_meals(self):
        StationInventoryService.save_station(number=2, total=4)
        MealInventoryService.reset(new_total=50)
        Attendee.objects.create(identification="1065000600", name="Pendiente")
        AccessLogEntry.objects.create(identification="1065000600", status=AccessStatus.GRANTED, station_used=2)
        self.client.force_login(self.operator)

        payload = self.client.get("/api/inventory/state").json()

        self.assertTrue(payload["ok"])
        self.assertEqual(payload["global"]["total"], 50)
        self.assertEqual(payload["stations"][0]["number"], 2)
        self.assertEqual(payload["stations"][0]["served"], 1)
        self.assertEqual(payload["pending_slots"], 2)

    def test_admin_endpoints_reject_operators(self):
        self.client.force_login(self.operator)
        response = self._post("/api/inventory/stations", {"number": 1, "total": 5})
        self.assertEqual(response.status_code, 403)

    def test_station_endpoints(self):
        self.client.force_login(self.admin)

        created = self._post("/api/inventory/stations", {"number": 1, "total": 5, "name": "Norte"})
        added = self._post("/api/inventory/stations/1/add", {"amount": 2})
        deactivated = self._post("/api/inventory/stations/1/active", {"active": False})
        invalid = self._post("/api/inventory/stations/1/add", {"amount": 0})
        missing = self._post("/api/inventory/stations/9/reset")

        self.assertEqual(created.json()["station"]["name"], "Norte")
        self.assertEqual(added.json()["station"]["total"], 7)
        self.assertFalse(deactivated.json()["station"]["active"])
        self.assertEqual(invalid.status_code, 400)
        self.assertEqual(missing.status_code, 404)

        all_active = self._post("/api/inventory/stations/active", {"active": True})
        self.assertEqual(all_active.json()["updated"], 1)

        deleted = self.client.delete("/api/inventory/stations/1")
        self.assertEqual(deleted.json()["deleted_station"], 1)

    def test_global_total_with_stale_version_conflicts(self):
        self.client.force_login(self.admin)
        stale_version = MealInventoryService.read().version
        MealInventoryService.consume_one()

        conflict = self._post("/api/inventory/global/total", {"total": 100, "version": stale_version})
        accepted = self._post("/api/inventory/global/total", {"total": 100})

        self.assertEqual(conflict.status_code, 409)
        self.assertEqual(accepted.json()["global"]["available"], 99)

    def test_global_reset_endpoint(self):
        self.client.force_login(self.admin)
        response = self._post("/api/inventory/global/reset", {"total": 30})
        self.assertEqual(response.json()["global"]["total"], 30)

    def test_operator_role_endpoint(self):
        self.client.force_login(self.admin)

        response = self._post(
            f"/api/operators/{self.operator.id}/role",
            {"role": "bufete", "assigned_station": 2},
        )
        missing = self._post("/api/operators/999999/role", {"role": "operativo"})

        self.assertEqual(response.json()["operator"]["assigned_station"], 2)
        self.assertEqual(missing.status_code, 404)


class ResetMealInventoryCommandTests(TestCase):
    def test_command_resets_inventory_and_people(self):
        MealInventoryService.set_total(new_total=10)
        MealInventoryService.consume_one()
        Attendee.objects.create(identification="1065000700", name="Consumido", consumed_slots=1)
        out = StringIO()

        call_command("reset_meal_inventory", "--total", "40", "--include-people", stdout=out)

        inventory = MealInventory.objects.get()
        self.assertEqual((inventory.total, inventory.consumed, inventory.available), (40, 0, 40))
        self.assertEqual(Attendee.objects.get(identification="1065000700").consumed_slots, 0)
        self.assertIn("40 comidas", out.getvalue())
