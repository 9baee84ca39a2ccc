from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings

from .models import InventoryMovement, InventoryMovementType, InventoryScope, MealInventory, StationInventory
from .services import (
    ConcurrentInventoryUpdateError,
    InventoryError,
    InventoryNotFoundError,
    MealInventoryService,
    StationInventoryService,
)


@override_settings(DEFAULT_MEAL_TOTAL=2400)
class MealInventoryServiceTests(TestCase):
    def setUp(self):
        self.admin = get_user_model().objects.create_user(username="admin-inv", password="secret")

    def test_inventory_is_created_lazily_with_default_total(self):
        self.assertFalse(MealInventory.objects.exists())
        snapshot = MealInventoryService.read()
        self.assertEqual((snapshot.total, snapshot.consumed, snapshot.available), (2400, 0, 2400))
        self.assertEqual(MealInventory.objects.count(), 1)

        MealInventoryService.read()
        self.assertEqual(MealInventory.objects.count(), 1)

    def test_consume_one_keeps_conservation_and_bumps_version(self):
        MealInventoryService.set_total(new_total=2)
        before = MealInventoryService.read()

        self.assertTrue(MealInventoryService.consume_one(actor_user=self.admin))
        after = MealInventoryService.read()
        self.assertEqual(after.consumed, 1)
        self.assertEqual(after.available, 1)
        self.assertEqual(after.total, after.consumed + after.available)
        self.assertGreater(after.version, before.version)
        self.assertTrue(
            InventoryMovement.objects.filter(
                scope=InventoryScope.GLOBAL,
                movement_type=InventoryMovementType.CONSUME,
                created_by_user=self.admin,
            ).exists()
        )

    def test_consume_one_never_goes_negative(self):
        MealInventoryService.set_total(new_total=1)
        self.assertTrue(MealInventoryService.consume_one())
        self.assertFalse(MealInventoryService.consume_one())

        snapshot = MealInventoryService.read()
        self.assertEqual(snapshot.available, 0)
        self.assertEqual(snapshot.consumed, 1)

    def test_set_total_below_consumed_is_rejected(self):
        MealInventoryService.set_total(new_total=5)
        MealInventoryService.consume_one()
        MealInventoryService.consume_one()

        with self.assertRaises(InventoryError):
            MealInventoryService.set_total(new_total=1)

        snapshot = MealInventoryService.set_total(new_total=10, actor_user=self.admin)
        self.assertEqual((snapshot.total, snapshot.consumed, snapshot.available), (10, 2, 8))

    def test_set_total_rejects_negative_and_non_numeric_values(self):
        with self.assertRaises(InventoryError):
            MealInventoryService.set_total(new_total=-1)
        with self.assertRaises(InventoryError):
            MealInventoryService.set_total(new_total="muchas")

    def test_stale_version_is_rejected(self):
        stale = MealInventoryService.read()
        MealInventoryService.consume_one()

        with self.assertRaises(ConcurrentInventoryUpdateError):
            MealInventoryService.set_total(new_total=100, expected_version=stale.version)

        current = MealInventoryService.read()
        snapshot = MealInventoryService.set_total(new_total=100, expected_version=current.version)
        self.assertEqual(snapshot.total, 100)

    def test_reset_restores_available_and_clears_consumed(self):
        MealInventoryService.consume_one()
        snapshot = MealInventoryService.reset(new_total=50)
        self.assertEqual((snapshot.total, snapshot.consumed, snapshot.available), (50, 0, 50))

        snapshot = MealInventoryService.reset()
        self.assertEqual(snapshot.total, 2400)


class StationInventoryServiceTests(TestCase):
    def test_save_station_creates_and_updates(self):
        created = StationInventoryService.save_station(number=3, total=10, name="Mesa norte")
        self.assertEqual((created.number, created.total, created.available), (3, 10, 10))
        self.assertTrue(created.active)

        StationInventoryService.consume_one(number=3)
        updated = StationInventoryService.save_station(number=3, total=4, name="", active=False)
        self.assertEqual((updated.total, updated.consumed, updated.available), (4, 1, 3))
        self.assertFalse(updated.active)
        self.assertEqual(updated.name, "Mesa 3")

    def test_save_station_rejects_invalid_number(self):
        with self.assertRaises(InventoryError):
            StationInventoryService.save_station(number=0, total=5)

    def test_inactive_or_exhausted_station_is_not_debited(self):
        StationInventoryService.save_station(number=1, total=1)
        StationInventoryService.set_active(number=1, active=False)
        self.assertFalse(StationInventoryService.consume_one(number=1))

        StationInventoryService.set_active(number=1, active=True)
        self.assertTrue(StationInventoryService.consume_one(number=1))
        self.assertFalse(StationInventoryService.consume_one(number=1))

        station = StationInventory.objects.get(number=1)
        self.assertEqual((station.consumed, station.available), (1, 0))

    def test_consume_on_missing_station_returns_false(self):
        self.assertFalse(StationInventoryService.consume_one(number=99))

    def test_add_meals_increases_total_and_available(self):
        StationInventoryService.save_station(number=2, total=3)
        StationInventoryService.consume_one(number=2)

        snapshot = StationInventoryService.add_meals(number=2, amount=5)
        self.assertEqual((snapshot.total, snapshot.consumed, snapshot.available), (8, 1, 7))

        with self.assertRaises(InventoryError):
            StationInventoryService.add_meals(number=2, amount=0)

    def test_set_total_below_consumed_is_rejected(self):
        StationInventoryService.save_station(number=4, total=3)
        StationInventoryService.consume_one(number=4)
        StationInventoryService.consume_one(number=4)

        with self.assertRaises(InventoryError):
            StationInventoryService.set_total(number=4, new_total=1)

    def test_set_total_with_stale_version_is_rejected(self):
        stale = StationInventoryService.save_station(number=5, total=3)
        StationInventoryService.consume_one(number=5)
        with self.assertRaises(ConcurrentInventoryUpdateError):
            StationInventoryService.set_total(number=5, new_total=9, expected_version=stale.version)

    def test_reset_keeps_total_when_not_given(self):
        StationInventoryService.save_station(number=6, total=4)
        StationInventoryService.consume_one(number=6)

        snapshot = StationInventoryService.reset(number=6)
        self.assertEqual((snapshot.total, snapshot.consumed, snapshot.available), (4, 0, 4))

    def test_set_all_active_and_delete(self):
        StationInventoryService.save_station(number=7, total=1)
        StationInventoryService.save_station(number=8, total=1)

        self.assertEqual(StationInventoryService.set_all_active(active=False), 2)
        self.assertFalse(StationInventory.objects.filter(active=True).exists())

        deleted = StationInventoryService.delete(number=7)
        self.assertEqual(deleted.number, 7)
        self.assertIsNone(StationInventoryService.read(number=7))
        self.assertEqual([snapshot.number for snapshot in StationInventoryService.list_stations()], [8])

        with self.assertRaises(InventoryNotFoundError):
            StationInventoryService.delete(number=7)
