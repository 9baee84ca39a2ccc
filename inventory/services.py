import logging
from dataclasses import asdict, dataclass

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from .models import (
    MEAL_INVENTORY_KEY,
    InventoryMovement,
    InventoryMovementType,
    InventoryScope,
    MealInventory,
    StationInventory,
)

logger = logging.getLogger(__name__)


class InventoryError(ValueError):
    pass


class InventoryNotFoundError(InventoryError):
    pass


class ConcurrentInventoryUpdateError(InventoryError):
    pass


@dataclass(frozen=True)
class InventorySnapshot:
    total: int
    consumed: int
    available: int
    active: bool = True
    version: int = 0
    number: int | None = None
    name: str = ""

    @classmethod
    def from_record(cls, record):
        if isinstance(record, StationInventory):
            return cls(
                total=record.total,
                consumed=record.consumed,
                available=record.available,
                active=record.active,
                version=record.version,
                number=record.number,
                name=record.display_name,
            )
        return cls(
            total=record.total,
            consumed=record.consumed,
            available=record.available,
            version=record.version,
        )

    def as_dict(self):
        return asdict(self)


def default_meal_total():
    return int(getattr(settings, "DEFAULT_MEAL_TOTAL", 2400))


def _validate_quantity(raw_value, *, field_label):
    try:
        value = int(raw_value)
    except (TypeError, ValueError):
        raise InventoryError(f"{field_label} es invalido.")  # noqa: B904
    if value < 0:
        raise InventoryError(f"{field_label} no puede ser negativo.")
    return value


def _validate_station_number(raw_value):
    try:
        number = int(raw_value)
    except (TypeError, ValueError):
        raise InventoryError("El numero de mesa es invalido.")  # noqa: B904
    if number < 1:
        raise InventoryError("El numero de mesa debe ser mayor a cero.")
    return number


def _assert_version(record, expected_version):
    if expected_version is None:
        return
    if record.version != int(expected_version):
        raise ConcurrentInventoryUpdateError(
            "El inventario fue modificado por otra sesion. Recarga los datos e intenta de nuevo."
        )


def _record_movement(*, scope, movement_type, quantity_delta, station_number=None, note="", actor_user=None):
    return InventoryMovement.objects.create(
        scope=scope,
        station_number=station_number,
        movement_type=movement_type,
        quantity_delta=quantity_delta,
        note=note,
        created_by_user=actor_user,
    )


class MealInventoryService:
    @classmethod
    def get_or_create(cls, *, for_update=False):
        queryset = MealInventory.objects.all()
        if for_update:
            queryset = queryset.select_for_update()
        total = default_meal_total()
        inventory, created = queryset.get_or_create(
            key=MEAL_INVENTORY_KEY,
            defaults={"total": total, "consumed": 0, "available": total},
        )
        if created:
            logger.info("Inventario general creado con %s comidas", total)
        return inventory

    @classmethod
    def read(cls):
        return InventorySnapshot.from_record(cls.get_or_create())

    @classmethod
    @transaction.atomic
    def consume_one(cls, *, actor_user=None, note="Consumo de comida"):
        inventory = cls.get_or_create()
        updated = MealInventory.objects.filter(pk=inventory.pk, available__gt=0).update(
            consumed=F("consumed") + 1,
            available=F("available") - 1,
            version=F("version") + 1,
            updated_at=timezone.now(),
        )
        if not updated:
            logger.warning("Inventario general agotado, no se descuenta la comida")
            return False
        _record_movement(
            scope=InventoryScope.GLOBAL,
            movement_type=InventoryMovementType.CONSUME,
            quantity_delta=-1,
            note=note,
            actor_user=actor_user,
        )
        return True

    @classmethod
    @transaction.atomic
    def set_total(cls, *, new_total, expected_version=None, actor_user=None):
        new_total = _validate_quantity(new_total, field_label="El total de comidas")
        inventory = cls.get_or_create(for_update=True)
        _assert_version(inventory, expected_version)
        if new_total < inventory.consumed:
            raise InventoryError(
                f"El total no puede ser menor a las comidas ya consumidas ({inventory.consumed})."
            )

        delta = new_total - inventory.total
        inventory.total = new_total
        inventory.available = new_total - inventory.consumed
        inventory.version += 1
        inventory.save(update_fields=["total", "available", "version", "updated_at"])
        _record_movement(
            scope=InventoryScope.GLOBAL,
            movement_type=InventoryMovementType.SET,
            quantity_delta=delta,
            note=f"Total actualizado a {new_total}",
            actor_user=actor_user,
        )
        logger.info("Inventario general actualizado a %s comidas", new_total)
        return InventorySnapshot.from_record(inventory)

    @classmethod
    @transaction.atomic
    def reset(cls, *, new_total=None, actor_user=None):
        if new_total is None:
            new_total = default_meal_total()
        new_total = _validate_quantity(new_total, field_label="El total de comidas")
        inventory = cls.get_or_create(for_update=True)

        delta = new_total - inventory.available
        inventory.total = new_total
        inventory.consumed = 0
        inventory.available = new_total
        inventory.version += 1
        inventory.save(update_fields=["total", "consumed", "available", "version", "updated_at"])
        _record_movement(
            scope=InventoryScope.GLOBAL,
            movement_type=InventoryMovementType.RESET,
            quantity_delta=delta,
            note=f"Inventario reiniciado a {new_total}",
            actor_user=actor_user,
        )
        logger.info("Inventario general reiniciado a %s comidas", new_total)
        return InventorySnapshot.from_record(inventory)


class StationInventoryService:
    @classmethod
    def get(cls, *, number, for_update=False):
        queryset = StationInventory.objects.all()
        if for_update:
            queryset = queryset.select_for_update()
        return queryset.filter(number=number).first()

    @classmethod
    def _get_or_raise(cls, *, number, for_update=True):
        number = _validate_station_number(number)
        station = cls.get(number=number, for_update=for_update)
        if station is None:
            raise InventoryNotFoundError(f"La mesa {number} no existe.")
        return station

    @classmethod
    def read(cls, *, number):
        station = cls.get(number=number)
        return InventorySnapshot.from_record(station) if station else None

    @classmethod
    def list_stations(cls):
        return [InventorySnapshot.from_record(station) for station in StationInventory.objects.order_by("number")]

    @classmethod
    @transaction.atomic
    def save_station(cls, *, number, total, name="", active=True, actor_user=None):
        number = _validate_station_number(number)
        total = _validate_quantity(total, field_label="El total de comidas de la mesa")
        station = cls.get(number=number, for_update=True)
        if station is None:
            station = StationInventory.objects.create(
                number=number,
                name=(name or "").strip(),
                total=total,
                consumed=0,
                available=total,
                active=active,
            )
            _record_movement(
                scope=InventoryScope.STATION,
                station_number=number,
                movement_type=InventoryMovementType.SET,
                quantity_delta=total,
                note="Mesa creada",
                actor_user=actor_user,
            )
            logger.info("Mesa %s creada con %s comidas", number, total)
            return InventorySnapshot.from_record(station)

        if total < station.consumed:
            raise InventoryError(
                f"El total no puede ser menor a las comidas ya consumidas ({station.consumed})."
            )
        delta = total - station.total
        station.name = (name or "").strip()
        station.total = total
        station.available = total - station.consumed
        station.active = active
        station.version += 1
        station.save(update_fields=["name", "total", "available", "active", "version", "updated_at"])
        if delta:
            _record_movement(
                scope=InventoryScope.STATION,
                station_number=number,
                movement_type=InventoryMovementType.SET,
                quantity_delta=delta,
                note=f"Total actualizado a {total}",
                actor_user=actor_user,
            )
        return InventorySnapshot.from_record(station)

    @classmethod
    @transaction.atomic
    def consume_one(cls, *, number, actor_user=None, note="Consumo de comida"):
        updated = StationInventory.objects.filter(number=number, active=True, available__gt=0).update(
            consumed=F("consumed") + 1,
            available=F("available") - 1,
            version=F("version") + 1,
            updated_at=timezone.now(),
        )
        if not updated:
            logger.warning("Mesa %s inactiva, agotada o inexistente", number)
            return False
        _record_movement(
            scope=InventoryScope.STATION,
            station_number=number,
            movement_type=InventoryMovementType.CONSUME,
            quantity_delta=-1,
            note=note,
            actor_user=actor_user,
        )
        return True

    @classmethod
    @transaction.atomic
    def set_total(cls, *, number, new_total, expected_version=None, actor_user=None):
        new_total = _validate_quantity(new_total, field_label="El total de comidas de la mesa")
        station = cls._get_or_raise(number=number)
        _assert_version(station, expected_version)
        if new_total < station.consumed:
            raise InventoryError(
                f"El total no puede ser menor a las comidas ya consumidas ({station.consumed})."
            )

        delta = new_total - station.total
        station.total = new_total
        station.available = new_total - station.consumed
        station.version += 1
        station.save(update_fields=["total", "available", "version", "updated_at"])
        _record_movement(
            scope=InventoryScope.STATION,
            station_number=station.number,
            movement_type=InventoryMovementType.SET,
            quantity_delta=delta,
            note=f"Total actualizado a {new_total}",
            actor_user=actor_user,
        )
        return InventorySnapshot.from_record(station)

    @classmethod
    @transaction.atomic
    def reset(cls, *, number, new_total=None, actor_user=None):
        station = cls._get_or_raise(number=number)
        if new_total is None:
            new_total = station.total
        new_total = _validate_quantity(new_total, field_label="El total de comidas de la mesa")

        delta = new_total - station.available
        station.total = new_total
        station.consumed = 0
        station.available = new_total
        station.version += 1
        station.save(update_fields=["total", "consumed", "available", "version", "updated_at"])
        _record_movement(
            scope=InventoryScope.STATION,
            station_number=station.number,
            movement_type=InventoryMovementType.RESET,
            quantity_delta=delta,
            note=f"Mesa reiniciada a {new_total}",
            actor_user=actor_user,
        )
        logger.info("Mesa %s reiniciada a %s comidas", station.number, new_total)
        return InventorySnapshot.from_record(station)

    @classmethod
    @transaction.atomic
    def add_meals(cls, *, number, amount, actor_user=None):
        amount = _validate_quantity(amount, field_label="La cantidad de comidas")
        if amount == 0:
            raise InventoryError("La cantidad de comidas debe ser mayor a cero.")
        station = cls._get_or_raise(number=number)
        station.total += amount
        station.available += amount
        station.version += 1
        station.save(update_fields=["total", "available", "version", "updated_at"])
        _record_movement(
            scope=InventoryScope.STATION,
            station_number=station.number,
            movement_type=InventoryMovementType.INCREASE,
            quantity_delta=amount,
            note=f"Se agregaron {amount} comidas",
            actor_user=actor_user,
        )
        return InventorySnapshot.from_record(station)

    @classmethod
    @transaction.atomic
    def set_active(cls, *, number, active):
        station = cls._get_or_raise(number=number)
        station.active = bool(active)
        station.version += 1
        station.save(update_fields=["active", "version", "updated_at"])
        logger.info("Mesa %s %s", station.number, "activada" if station.active else "desactivada")
        return InventorySnapshot.from_record(station)

    @classmethod
    @transaction.atomic
    def set_all_active(cls, *, active):
        return StationInventory.objects.update(
            active=bool(active),
            version=F("version") + 1,
            updated_at=timezone.now(),
        )

    @classmethod
    @transaction.atomic
    def delete(cls, *, number):
        station = cls._get_or_raise(number=number)
        snapshot = InventorySnapshot.from_record(station)
        station.delete()
        logger.info("Mesa %s eliminada (%s comidas consumidas)", snapshot.number, snapshot.consumed)
        return snapshot
