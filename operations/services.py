import logging

from django.db import transaction

from access.services import ActorInfo
from attendees.services import AttendeeDirectory
from inventory.services import MealInventoryService, StationInventoryService

from .authz import get_operator_profile
from .models import OperatorProfile, OperatorRole, StaffAuditLog

logger = logging.getLogger(__name__)


class StaffPermissionError(PermissionError):
    pass


def build_actor_info(user):
    if not user or not user.is_authenticated:
        return ActorInfo()
    profile = get_operator_profile(user)
    return ActorInfo(
        actor_id=str(user.id),
        actor_name=user.get_full_name() or user.username,
        actor_email=user.email or "",
        actor_role=profile.role,
        assigned_station=profile.assigned_station,
        user=user,
    )


class StaffOpsService:
    @classmethod
    def _assert_admin(cls, *, user):
        if user.is_superuser:
            return
        profile = OperatorProfile.objects.filter(user=user).first()
        if not profile or profile.role != OperatorRole.ADMINISTRADOR:
            raise StaffPermissionError("Solo un administrador puede ejecutar esta accion.")

    @classmethod
    def _log_action(cls, *, staff_user, action_type, target_model, target_id, payload):
        logger.info("Accion administrativa %s sobre %s:%s por %s", action_type, target_model, target_id, staff_user)
        return StaffAuditLog.objects.create(
            staff_user=staff_user,
            action_type=action_type,
            target_model=target_model,
            target_id=str(target_id),
            payload_json=payload or {},
        )

    @classmethod
    def _normalize_station(cls, raw_value):
        if raw_value in (None, ""):
            return None
        try:
            station = int(raw_value)
        except (TypeError, ValueError):
            raise ValueError("El numero de mesa es invalido.")  # noqa: B904
        if station < 1:
            raise ValueError("El numero de mesa debe ser mayor a cero.")
        return station

    @classmethod
    @transaction.atomic
    def set_operator_role(cls, *, staff_user, target_user, role, assigned_station=None, id_number=None):
        cls._assert_admin(user=staff_user)
        if role not in OperatorRole.values:
            raise ValueError("Rol invalido.")
        if target_user.id == staff_user.id and role != OperatorRole.ADMINISTRADOR and not staff_user.is_superuser:
            raise StaffPermissionError("No puedes remover tu propio rol de administrador.")

        station = cls._normalize_station(assigned_station)
        if role == OperatorRole.BUFETE and station is None:
            raise ValueError("El rol bufete requiere una mesa asignada.")

        profile = get_operator_profile(target_user)
        profile = OperatorProfile.objects.select_for_update().get(pk=profile.pk)
        previous_role = profile.role
        profile.role = role
        profile.assigned_station = station
        update_fields = ["role", "assigned_station", "updated_at"]
        if id_number is not None:
            profile.id_number = str(id_number).strip()
            update_fields.append("id_number")
        profile.save(update_fields=update_fields)

        cls._log_action(
            staff_user=staff_user,
            action_type="set_operator_role",
            target_model="operations.OperatorProfile",
            target_id=profile.id,
            payload={
                "target_user_id": target_user.id,
                "previous_role": previous_role,
                "role": role,
                "assigned_station": station,
            },
        )
        return profile

    @classmethod
    @transaction.atomic
    def assign_station(cls, *, staff_user, target_user, station_number):
        cls._assert_admin(user=staff_user)
        station = cls._normalize_station(station_number)
        profile = get_operator_profile(target_user)
        profile = OperatorProfile.objects.select_for_update().get(pk=profile.pk)
        if station is None and profile.role == OperatorRole.BUFETE:
            raise ValueError("El rol bufete requiere una mesa asignada.")

        profile.assigned_station = station
        profile.save(update_fields=["assigned_station", "updated_at"])
        cls._log_action(
            staff_user=staff_user,
            action_type="assign_station",
            target_model="operations.OperatorProfile",
            target_id=profile.id,
            payload={"target_user_id": target_user.id, "assigned_station": station},
        )
        return profile

    @classmethod
    @transaction.atomic
    def import_people(cls, *, staff_user, rows, guests=False, has_header=True):
        cls._assert_admin(user=staff_user)
        parsed, skipped = AttendeeDirectory.parse_import_rows(rows, has_header=has_header)
        if not parsed:
            raise ValueError("No hay datos para importar.")

        if guests:
            summary = AttendeeDirectory.import_guests(rows=parsed)
        else:
            summary = AttendeeDirectory.import_attendees(rows=parsed)
        summary.skipped += skipped

        cls._log_action(
            staff_user=staff_user,
            action_type="import_guests" if guests else "import_attendees",
            target_model="attendees.Guest" if guests else "attendees.Attendee",
            target_id="bulk",
            payload={"created": summary.created, "updated": summary.updated, "skipped": summary.skipped},
        )
        return summary

    @classmethod
    @transaction.atomic
    def delete_people(cls, *, staff_user, identifications=None, include_guests=False):
        cls._assert_admin(user=staff_user)
        deleted = AttendeeDirectory.bulk_delete(identifications=identifications, include_guests=include_guests)
        cls._log_action(
            staff_user=staff_user,
            action_type="delete_people",
            target_model="attendees.Attendee",
            target_id="bulk",
            payload={
                "deleted": deleted,
                "identifications": list(identifications) if identifications is not None else None,
                "include_guests": include_guests,
            },
        )
        return deleted

    @classmethod
    @transaction.atomic
    def reset_consumed_slots(cls, *, staff_user):
        cls._assert_admin(user=staff_user)
        reset = AttendeeDirectory.reset_consumed_slots()
        cls._log_action(
            staff_user=staff_user,
            action_type="reset_consumed_slots",
            target_model="attendees.Attendee",
            target_id="bulk",
            payload={"reset": reset},
        )
        return reset

    @classmethod
    @transaction.atomic
    def resize_meal_inventory(cls, *, staff_user, new_total, expected_version=None):
        cls._assert_admin(user=staff_user)
        snapshot = MealInventoryService.set_total(
            new_total=new_total,
            expected_version=expected_version,
            actor_user=staff_user,
        )
        cls._log_action(
            staff_user=staff_user,
            action_type="resize_meal_inventory",
            target_model="inventory.MealInventory",
            target_id="global",
            payload={"total": snapshot.total, "available": snapshot.available},
        )
        return snapshot

    @classmethod
    @transaction.atomic
    def reset_meal_inventory(cls, *, staff_user, new_total=None, include_people=False):
        cls._assert_admin(user=staff_user)
        snapshot = MealInventoryService.reset(new_total=new_total, actor_user=staff_user)
        people_reset = AttendeeDirectory.reset_consumed_slots() if include_people else 0
        cls._log_action(
            staff_user=staff_user,
            action_type="reset_meal_inventory",
            target_model="inventory.MealInventory",
            target_id="global",
            payload={"total": snapshot.total, "people_reset": people_reset},
        )
        return snapshot

    @classmethod
    @transaction.atomic
    def save_station(cls, *, staff_user, number, total, name="", active=True):
        cls._assert_admin(user=staff_user)
        snapshot = StationInventoryService.save_station(
            number=number,
            total=total,
            name=name,
            active=active,
            actor_user=staff_user,
        )
        cls._log_action(
            staff_user=staff_user,
            action_type="save_station",
            target_model="inventory.StationInventory",
            target_id=snapshot.number,
            payload={"total": snapshot.total, "active": snapshot.active, "name": snapshot.name},
        )
        return snapshot

    @classmethod
    @transaction.atomic
    def add_station_meals(cls, *, staff_user, number, amount):
        cls._assert_admin(user=staff_user)
        snapshot = StationInventoryService.add_meals(number=number, amount=amount, actor_user=staff_user)
        cls._log_action(
            staff_user=staff_user,
            action_type="add_station_meals",
            target_model="inventory.StationInventory",
            target_id=snapshot.number,
            payload={"amount": int(amount), "total": snapshot.total},
        )
        return snapshot

    @classmethod
    @transaction.atomic
    def set_station_active(cls, *, staff_user, number, active):
        cls._assert_admin(user=staff_user)
        snapshot = StationInventoryService.set_active(number=number, active=active)
        cls._log_action(
            staff_user=staff_user,
            action_type="set_station_active",
            target_model="inventory.StationInventory",
            target_id=snapshot.number,
            payload={"active": snapshot.active},
        )
        return snapshot

    @classmethod
    @transaction.atomic
    def set_all_stations_active(cls, *, staff_user, active):
        cls._assert_admin(user=staff_user)
        updated = StationInventoryService.set_all_active(active=active)
        cls._log_action(
            staff_user=staff_user,
            action_type="set_all_stations_active",
            target_model="inventory.StationInventory",
            target_id="bulk",
            payload={"active": bool(active), "updated": updated},
        )
        return updated

    @classmethod
    @transaction.atomic
    def reset_station(cls, *, staff_user, number, new_total=None):
        cls._assert_admin(user=staff_user)
        snapshot = StationInventoryService.reset(number=number, new_total=new_total, actor_user=staff_user)
        cls._log_action(
            staff_user=staff_user,
            action_type="reset_station",
            target_model="inventory.StationInventory",
            target_id=snapshot.number,
            payload={"total": snapshot.total},
        )
        return snapshot

    @classmethod
    @transaction.atomic
    def delete_station(cls, *, staff_user, number):
        cls._assert_admin(user=staff_user)
        snapshot = StationInventoryService.delete(number=number)
        cls._log_action(
            staff_user=staff_user,
            action_type="delete_station",
            target_model="inventory.StationInventory",
            target_id=snapshot.number,
            payload={"consumed": snapshot.consumed, "total": snapshot.total},
        )
        return snapshot
