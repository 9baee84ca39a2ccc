import logging
from dataclasses import dataclass

from django.db import transaction
from django.db.models import ExpressionWrapper, F, IntegerField, Sum

from .models import ATTENDEE_BASE_SLOTS, GUEST_SLOTS, Attendee, Guest

logger = logging.getLogger(__name__)

IMPORT_COLUMNS = ("position", "identification", "name", "program", "extra_slots")


@dataclass
class ImportSummary:
    created: int = 0
    updated: int = 0
    skipped: int = 0

    @property
    def total(self):
        return self.created + self.updated


def normalize_identification(raw_value):
    return str(raw_value or "").strip()


def _parse_extra_slots(raw_value):
    try:
        value = int(float(str(raw_value).strip()))
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(0, value)


class AttendeeDirectory:
    @classmethod
    def get_person(cls, *, identification, for_update=False):
        identification = normalize_identification(identification)
        if not identification:
            return None
        for model in (Attendee, Guest):
            queryset = model.objects.all()
            if for_update:
                queryset = queryset.select_for_update()
            person = queryset.filter(identification=identification).first()
            if person:
                return person
        return None

    @classmethod
    def consume_slot(cls, *, person):
        queryset = person.__class__.objects.filter(pk=person.pk)
        if person.is_guest:
            queryset = queryset.filter(consumed_slots__lt=GUEST_SLOTS)
        else:
            queryset = queryset.filter(consumed_slots__lt=F("extra_slots") + ATTENDEE_BASE_SLOTS)
        updated = queryset.update(consumed_slots=F("consumed_slots") + 1)
        if not updated:
            logger.warning("Cupos agotados para %s", person.identification)
            return False
        person.refresh_from_db(fields=["consumed_slots"])
        return True

    @classmethod
    def parse_import_rows(cls, rows, *, has_header=True):
        parsed = []
        skipped = 0
        for index, row in enumerate(rows):
            if has_header and index == 0:
                continue
            cells = [str(cell if cell is not None else "").strip() for cell in row]
            if len(cells) < 3 or not cells[0] or not cells[1] or not cells[2]:
                skipped += 1
                continue
            cells += [""] * (len(IMPORT_COLUMNS) - len(cells))
            parsed.append(
                {
                    "position": cells[0],
                    "identification": cells[1],
                    "name": cells[2],
                    "program": cells[3],
                    "extra_slots": _parse_extra_slots(cells[4]),
                }
            )
        return parsed, skipped

    @classmethod
    @transaction.atomic
    def import_attendees(cls, *, rows):
        summary = ImportSummary()
        for row in rows:
            identification = normalize_identification(row.get("identification"))
            name = (row.get("name") or "").strip()
            if not identification or not name:
                summary.skipped += 1
                continue
            extra_slots = _parse_extra_slots(row.get("extra_slots", 0))
            attendee = Attendee.objects.select_for_update().filter(identification=identification).first()
            if attendee is None:
                Attendee.objects.create(
                    identification=identification,
                    name=name,
                    position=(row.get("position") or "").strip(),
                    program=(row.get("program") or "").strip(),
                    extra_slots=extra_slots,
                )
                summary.created += 1
                continue

            attendee.name = name
            attendee.position = (row.get("position") or "").strip()
            attendee.program = (row.get("program") or "").strip()
            attendee.extra_slots = max(extra_slots, attendee.consumed_slots - ATTENDEE_BASE_SLOTS)
            attendee.save(update_fields=["name", "position", "program", "extra_slots"])
            summary.updated += 1

        logger.info(
            "Importacion de personas: %s creadas, %s actualizadas, %s omitidas",
            summary.created,
            summary.updated,
            summary.skipped,
        )
        return summary

    @classmethod
    @transaction.atomic
    def import_guests(cls, *, rows):
        summary = ImportSummary()
        for row in rows:
            identification = normalize_identification(row.get("identification"))
            name = (row.get("name") or "").strip()
            if not identification or not name:
                summary.skipped += 1
                continue
            _guest, created = Guest.objects.update_or_create(
                identification=identification,
                defaults={"name": name, "position": (row.get("position") or "").strip()},
            )
            if created:
                summary.created += 1
            else:
                summary.updated += 1

        logger.info(
            "Importacion de invitados: %s creados, %s actualizados, %s omitidos",
            summary.created,
            summary.updated,
            summary.skipped,
        )
        return summary

    @classmethod
    @transaction.atomic
    def bulk_delete(cls, *, identifications=None, include_guests=False):
        attendees = Attendee.objects.all()
        guests = Guest.objects.all()
        if identifications is not None:
            cleaned = {normalize_identification(value) for value in identifications} - {""}
            attendees = attendees.filter(identification__in=cleaned)
            guests = guests.filter(identification__in=cleaned)

        deleted, _ = attendees.delete()
        if include_guests or identifications is not None:
            guest_deleted, _ = guests.delete()
            deleted += guest_deleted
        logger.info("Eliminacion masiva de personas: %s registros", deleted)
        return deleted

    @classmethod
    @transaction.atomic
    def reset_consumed_slots(cls):
        reset = Attendee.objects.filter(consumed_slots__gt=0).update(consumed_slots=0)
        reset += Guest.objects.filter(consumed_slots__gt=0).update(consumed_slots=0)
        logger.info("Cupos consumidos reiniciados para %s personas", reset)
        return reset

    @classmethod
    def pending_slots(cls):
        attendee_pending = Attendee.objects.aggregate(
            total=Sum(
                ExpressionWrapper(
                    F("extra_slots") + ATTENDEE_BASE_SLOTS - F("consumed_slots"),
                    output_field=IntegerField(),
                )
            )
        )["total"] or 0
        guest_pending = Guest.objects.aggregate(
            total=Sum(
                ExpressionWrapper(GUEST_SLOTS - F("consumed_slots"), output_field=IntegerField())
            )
        )["total"] or 0
        return attendee_pending + guest_pending
