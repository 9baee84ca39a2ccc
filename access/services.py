import logging
from dataclasses import dataclass

from django.db import models, transaction
from django.db.models import Count

from attendees.services import AttendeeDirectory, normalize_identification
from inventory.services import MealInventoryService, StationInventoryService

from .models import AccessLogEntry, AccessSource, AccessStatus
from .q10 import Q10CertificateClient, Q10ExtractionError, is_q10_certificate_url

logger = logging.getLogger(__name__)

MSG_ALREADY_SCANNED = "Esta persona ya ingreso al evento anteriormente."
MSG_PERSON_NOT_FOUND = "Persona no encontrada en la base de datos."
MSG_ACCESS_GRANTED = "Acceso concedido al evento."
MSG_Q10_ACCESS_GRANTED = "Acceso concedido por certificado Q10."
MSG_GLOBAL_EXHAUSTED = "No quedan comidas disponibles en el inventario general."
MSG_STATION_REQUIRED = "Se requiere una mesa asignada para entregar comidas."
MSG_Q10_NO_IDENTIFICATION = "No se pudo obtener la identificacion del certificado Q10."


class AccessMode(models.TextChoices):
    ACCESS_ONLY = "access_only", "Solo acceso"
    MEAL_SERVICE = "meal_service", "Entrega de comida"


class DenialReason(models.TextChoices):
    STATION_REQUIRED = "station_required", "Mesa requerida"
    STATION_INACTIVE = "station_inactive", "Mesa inactiva"
    STATION_EXHAUSTED = "station_exhausted", "Mesa agotada"
    GLOBAL_EXHAUSTED = "global_exhausted", "Inventario general agotado"
    PERSON_NOT_FOUND = "person_not_found", "Persona no encontrada"
    QUOTA_EXHAUSTED = "quota_exhausted", "Cupos agotados"
    DUPLICATE = "duplicate", "Ingreso duplicado"


class ScanStatus(models.TextChoices):
    GRANTED = "granted", "Acceso concedido"
    DENIED = "denied", "Acceso denegado"
    ALREADY_SCANNED = "already_scanned", "Ya ingreso"


@dataclass(frozen=True)
class ActorInfo:
    actor_id: str = ""
    actor_name: str = ""
    actor_email: str = ""
    actor_role: str = ""
    assigned_station: int | None = None
    user: object = None


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    message: str
    reason: str | None = None
    remaining: int | None = None

    def as_dict(self):
        return {
            "valid": self.valid,
            "message": self.message,
            "reason": self.reason,
            "remaining": self.remaining,
        }


@dataclass(frozen=True)
class ScanOutcome:
    status: str
    message: str
    identification: str = ""
    person_name: str = ""
    source: str = AccessSource.DIRECT

    @property
    def granted(self):
        return self.status == ScanStatus.GRANTED

    def as_dict(self):
        return {
            "status": self.status,
            "granted": self.granted,
            "message": self.message,
            "identification": self.identification,
            "person_name": self.person_name,
            "source": self.source,
        }


class MealUnavailableError(ValueError):
    def __init__(self, result):
        super().__init__(result.message)
        self.result = result


def _refused(message, reason):
    return ValidationResult(valid=False, message=message, reason=reason)


class MesaAccessValidator:
    def __init__(self, *, meal_inventory=None, station_inventory=None, attendee_directory=None):
        self.meal_inventory = meal_inventory or MealInventoryService
        self.station_inventory = station_inventory or StationInventoryService
        self.attendee_directory = attendee_directory or AttendeeDirectory

    def validate(self, identification, station_number):
        identification = normalize_identification(identification)
        station = self.station_inventory.read(number=station_number) if station_number else None
        meal = self.meal_inventory.read()
        person = self.attendee_directory.get_person(identification=identification)
        return self._evaluate(station_number=station_number, station=station, meal=meal, person=person)

    def commit(self, identification, station_number, *, actor_user=None):
        identification = normalize_identification(identification)
        with transaction.atomic():
            station = self.station_inventory.get(number=station_number, for_update=True) if station_number else None
            meal = self.meal_inventory.get_or_create(for_update=True)
            person = self.attendee_directory.get_person(identification=identification, for_update=True)
            result = self._evaluate(station_number=station_number, station=station, meal=meal, person=person)
            if not result.valid:
                raise MealUnavailableError(result)

            note = f"Comida para {identification}"
            if station is not None and not self.station_inventory.consume_one(
                number=station.number,
                actor_user=actor_user,
                note=note,
            ):
                raise MealUnavailableError(
                    _refused(f"La mesa {station_number} no tiene comidas disponibles.", DenialReason.STATION_EXHAUSTED)
                )
            if not self.meal_inventory.consume_one(actor_user=actor_user, note=note):
                raise MealUnavailableError(_refused(MSG_GLOBAL_EXHAUSTED, DenialReason.GLOBAL_EXHAUSTED))
            if not self.attendee_directory.consume_slot(person=person):
                raise MealUnavailableError(
                    _refused(f"{person.name} ya consumio todos sus cupos de comida.", DenialReason.QUOTA_EXHAUSTED)
                )

        logger.info("Comida entregada a %s en mesa %s", identification, station_number or "-")
        return result

    def _evaluate(self, *, station_number, station, meal, person):
        if station is not None:
            if not station.active:
                return _refused(f"La mesa {station_number} esta desactivada.", DenialReason.STATION_INACTIVE)
            if station.available <= 0:
                return _refused(
                    f"La mesa {station_number} no tiene comidas disponibles.",
                    DenialReason.STATION_EXHAUSTED,
                )

        if meal.available <= 0:
            return _refused(MSG_GLOBAL_EXHAUSTED, DenialReason.GLOBAL_EXHAUSTED)

        if person is None:
            return _refused(MSG_PERSON_NOT_FOUND, DenialReason.PERSON_NOT_FOUND)

        available = person.total_slots - person.consumed_slots
        if available <= 0:
            return _refused(
                f"{person.name} ya consumio todos sus cupos de comida ({person.total_slots}).",
                DenialReason.QUOTA_EXHAUSTED,
            )

        remaining = available - 1
        return ValidationResult(
            valid=True,
            message=f"Acceso valido para {person.name}. Cupos restantes despues de esta comida: {remaining}.",
            remaining=remaining,
        )


class AccessDecisionService:
    def __init__(self, *, validator=None):
        self.validator = validator or MesaAccessValidator()

    @staticmethod
    def _append(*, identification, status, details, source, actor, station_used=None):
        return AccessLogEntry.objects.create(
            identification=identification,
            status=status,
            details=(details or "")[:255],
            source=source,
            actor_id=str(actor.actor_id or ""),
            actor_name=actor.actor_name or "",
            actor_email=actor.actor_email or "",
            actor_role=actor.actor_role or "",
            station_used=station_used,
        )

    def mark_access(
        self,
        *,
        identification,
        granted,
        details="",
        source=AccessSource.DIRECT,
        actor=None,
        mode=AccessMode.ACCESS_ONLY,
        station_number=None,
    ):
        identification = normalize_identification(identification)
        if not identification:
            raise ValueError("La identificacion es obligatoria.")
        actor = actor or ActorInfo()
        mode = AccessMode(mode)

        with transaction.atomic():
            if granted:
                station_used = None
                if mode == AccessMode.MEAL_SERVICE:
                    station_used = station_number or actor.assigned_station
                    if not station_used:
                        raise MealUnavailableError(_refused(MSG_STATION_REQUIRED, DenialReason.STATION_REQUIRED))
                    self.validator.commit(identification, station_used, actor_user=actor.user)
                entry = self._append(
                    identification=identification,
                    status=AccessStatus.GRANTED,
                    details=details,
                    source=source,
                    actor=actor,
                    station_used=station_used,
                )
                logger.info("Acceso concedido a %s (%s)", identification, mode.value)
                return entry

            if self.check_if_already_scanned(identification):
                logger.info("Denegacion omitida para %s: ya tiene un acceso concedido", identification)
                return None
            entry = self._append(
                identification=identification,
                status=AccessStatus.DENIED,
                details=details,
                source=source,
                actor=actor,
            )
            logger.info("Acceso denegado a %s: %s", identification, details)
            return entry

    def mark_q10_access(self, *, identification, status, details="", source=AccessSource.Q10, actor=None):
        if status not in (AccessStatus.Q10_SUCCESS, AccessStatus.Q10_FAILED):
            raise ValueError("Estado Q10 invalido.")
        actor = actor or ActorInfo()
        return self._append(
            identification=normalize_identification(identification),
            status=status,
            details=details,
            source=source,
            actor=actor,
        )

    @staticmethod
    def check_if_already_scanned(identification):
        identification = normalize_identification(identification)
        if not identification:
            return False
        return AccessLogEntry.objects.filter(identification=identification, status=AccessStatus.GRANTED).exists()

    @staticmethod
    def served_by_station():
        rows = (
            AccessLogEntry.objects.filter(status=AccessStatus.GRANTED, station_used__isnull=False)
            .values("station_used")
            .annotate(served=Count("id"))
            .order_by("station_used")
        )
        return {row["station_used"]: row["served"] for row in rows}


class CheckInService:
    def __init__(self, *, decision_service=None, attendee_directory=None, q10_client=None):
        self.decision_service = decision_service or AccessDecisionService()
        self.attendee_directory = attendee_directory or AttendeeDirectory
        self._q10_client = q10_client

    @property
    def q10_client(self):
        if self._q10_client is None:
            self._q10_client = Q10CertificateClient()
        return self._q10_client

    def process_entry(self, raw_value, *, source=AccessSource.DIRECT, actor=None):
        value = normalize_identification(raw_value)
        if not value:
            raise ValueError("Debes ingresar una identificacion.")
        if is_q10_certificate_url(value):
            return self.process_q10(value, actor=actor)

        identification = value
        if self.decision_service.check_if_already_scanned(identification):
            logger.info("Ingreso duplicado de %s", identification)
            return ScanOutcome(
                status=ScanStatus.ALREADY_SCANNED,
                message=MSG_ALREADY_SCANNED,
                identification=identification,
                source=source,
            )

        person = self.attendee_directory.get_person(identification=identification)
        if person is None:
            self.decision_service.mark_access(
                identification=identification,
                granted=False,
                details=MSG_PERSON_NOT_FOUND,
                source=source,
                actor=actor,
            )
            return ScanOutcome(
                status=ScanStatus.DENIED,
                message=MSG_PERSON_NOT_FOUND,
                identification=identification,
                source=source,
            )

        self.decision_service.mark_access(
            identification=identification,
            granted=True,
            details=MSG_ACCESS_GRANTED,
            source=source,
            actor=actor,
            mode=AccessMode.ACCESS_ONLY,
        )
        return ScanOutcome(
            status=ScanStatus.GRANTED,
            message=MSG_ACCESS_GRANTED,
            identification=identification,
            person_name=person.name,
            source=source,
        )

    def process_q10(self, url, *, actor=None):
        try:
            identification = self.q10_client.extract_identification(url)
            failure_message = MSG_Q10_NO_IDENTIFICATION
        except Q10ExtractionError as exc:
            identification = None
            failure_message = str(exc)

        if not identification:
            self.decision_service.mark_q10_access(
                identification="",
                status=AccessStatus.Q10_FAILED,
                details=f"{failure_message} {url}",
                actor=actor,
            )
            return ScanOutcome(status=ScanStatus.DENIED, message=failure_message, source=AccessSource.Q10)

        person = self.attendee_directory.get_person(identification=identification)
        if person is None:
            self.decision_service.mark_q10_access(
                identification=identification,
                status=AccessStatus.Q10_FAILED,
                details=MSG_PERSON_NOT_FOUND,
                actor=actor,
            )
            return ScanOutcome(
                status=ScanStatus.DENIED,
                message=MSG_PERSON_NOT_FOUND,
                identification=identification,
                source=AccessSource.Q10,
            )

        self.decision_service.mark_q10_access(
            identification=identification,
            status=AccessStatus.Q10_SUCCESS,
            details=f"Certificado Q10 valido: {url}",
            actor=actor,
        )
        if self.decision_service.check_if_already_scanned(identification):
            return ScanOutcome(
                status=ScanStatus.ALREADY_SCANNED,
                message=MSG_ALREADY_SCANNED,
                identification=identification,
                person_name=person.name,
                source=AccessSource.Q10,
            )

        self.decision_service.mark_access(
            identification=identification,
            granted=True,
            details=MSG_Q10_ACCESS_GRANTED,
            source=AccessSource.Q10,
            actor=actor,
            mode=AccessMode.ACCESS_ONLY,
        )
        return ScanOutcome(
            status=ScanStatus.GRANTED,
            message=MSG_Q10_ACCESS_GRANTED,
            identification=identification,
            person_name=person.name,
            source=AccessSource.Q10,
        )

    def serve_meal(self, identification, *, station_number=None, actor=None, source=AccessSource.DIRECT):
        identification = normalize_identification(identification)
        if not identification:
            raise ValueError("Debes ingresar una identificacion.")
        actor = actor or ActorInfo()
        station_number = station_number or actor.assigned_station
        if not station_number:
            return _refused(MSG_STATION_REQUIRED, DenialReason.STATION_REQUIRED)

        result = self.decision_service.validator.validate(identification, station_number)
        if not result.valid:
            logger.info("Comida rechazada para %s en mesa %s: %s", identification, station_number, result.reason)
            return result

        try:
            self.decision_service.mark_access(
                identification=identification,
                granted=True,
                details=f"Comida entregada en Mesa {station_number}",
                source=source,
                actor=actor,
                mode=AccessMode.MEAL_SERVICE,
                station_number=station_number,
            )
        except MealUnavailableError as exc:
            logger.warning("Comida rechazada al confirmar para %s: %s", identification, exc.result.reason)
            return exc.result
        return result
