import json
import logging

from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST

from attendees.services import AttendeeDirectory
from operations.authz import (
    ROLES_ACCESS_SCAN,
    ROLES_ANY_OPERATOR,
    ROLES_MEAL_SERVICE,
    build_authz_snapshot,
    enforce_role_api,
)
from operations.services import build_actor_info

from .models import AccessSource
from .services import AccessDecisionService, CheckInService, MesaAccessValidator

logger = logging.getLogger(__name__)

MANUAL_SOURCES = {AccessSource.DIRECT, AccessSource.MANUAL}


def _json_body(request):
    if not request.body:
        return {}
    try:
        return json.loads(request.body.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {}


def _parse_station_number(raw_value):
    if raw_value is None or str(raw_value).strip() == "":
        return None
    try:
        value = int(str(raw_value).strip())
    except (TypeError, ValueError) as exc:
        raise ValueError("El numero de mesa es invalido.") from exc
    if value < 1:
        raise ValueError("El numero de mesa debe ser mayor a cero.")
    return value


def _person_payload(person):
    return {
        "identification": person.identification,
        "name": person.name,
        "position": person.position,
        "program": getattr(person, "program", ""),
        "is_guest": person.is_guest,
        "total_slots": person.total_slots,
        "consumed_slots": person.consumed_slots,
        "available_slots": person.available_slots,
    }


@login_required
@require_POST
def scan_api(request):
    snapshot = build_authz_snapshot(user=request.user)
    auth_error = enforce_role_api(
        request=request,
        roles=ROLES_ACCESS_SCAN,
        snapshot=snapshot,
        denied_message="No cuentas con permisos para registrar ingresos.",
    )
    if auth_error:
        return auth_error

    body = _json_body(request)
    raw_value = body.get("value") or request.POST.get("value", "")
    source = body.get("source") or request.POST.get("source") or AccessSource.DIRECT
    if source not in MANUAL_SOURCES:
        source = AccessSource.DIRECT

    try:
        outcome = CheckInService().process_entry(raw_value, source=source, actor=build_actor_info(request.user))
    except ValueError as exc:
        return JsonResponse({"ok": False, "error": str(exc)}, status=400)
    except Exception:  # noqa: BLE001
        logger.exception("Error inesperado registrando el ingreso")
        return JsonResponse({"ok": False, "error": "No se pudo registrar el ingreso. Intenta de nuevo."}, status=500)

    return JsonResponse(
        {
            "ok": outcome.granted,
            **outcome.as_dict(),
            "error": "" if outcome.granted else outcome.message,
        },
        status=200 if outcome.granted else 400,
    )


@login_required
@require_POST
def serve_meal_api(request):
    snapshot = build_authz_snapshot(user=request.user)
    auth_error = enforce_role_api(
        request=request,
        roles=ROLES_MEAL_SERVICE,
        snapshot=snapshot,
        denied_message="No cuentas con permisos para entregar comidas.",
    )
    if auth_error:
        return auth_error

    body = _json_body(request)
    identification = body.get("identification") or request.POST.get("identification", "")
    station_number = snapshot.assigned_station
    if snapshot.is_admin:
        station_number = body.get("station_number") or request.POST.get("station_number") or station_number
    try:
        station_number = _parse_station_number(station_number)
    except ValueError as exc:
        return JsonResponse({"ok": False, "error": str(exc)}, status=400)

    try:
        result = CheckInService().serve_meal(
            identification,
            station_number=station_number,
            actor=build_actor_info(request.user),
        )
    except ValueError as exc:
        return JsonResponse({"ok": False, "error": str(exc)}, status=400)
    except Exception:  # noqa: BLE001
        logger.exception("Error inesperado entregando comida")
        return JsonResponse({"ok": False, "error": "No se pudo registrar la comida. Intenta de nuevo."}, status=500)

    return JsonResponse(
        {
            "ok": result.valid,
            "station_number": station_number,
            **result.as_dict(),
            "error": "" if result.valid else result.message,
        },
        status=200 if result.valid else 400,
    )


@login_required
@require_GET
def validate_mesa_api(request):
    auth_error = enforce_role_api(
        request=request,
        roles=ROLES_ANY_OPERATOR,
        denied_message="No cuentas con permisos para validar comidas.",
    )
    if auth_error:
        return auth_error

    identification = request.GET.get("identification", "").strip()
    if not identification:
        return JsonResponse({"ok": False, "error": "La identificacion es obligatoria."}, status=400)
    try:
        station_number = _parse_station_number(request.GET.get("station_number"))
    except ValueError as exc:
        return JsonResponse({"ok": False, "error": str(exc)}, status=400)

    result = MesaAccessValidator().validate(identification, station_number)
    return JsonResponse({"ok": True, "result": result.as_dict()})


@login_required
@require_GET
def person_detail_api(request, identification):
    auth_error = enforce_role_api(
        request=request,
        roles=ROLES_ANY_OPERATOR,
        denied_message="No cuentas con permisos para consultar personas.",
    )
    if auth_error:
        return auth_error

    person = AttendeeDirectory.get_person(identification=identification)
    if person is None:
        return JsonResponse({"ok": False, "error": "Persona no encontrada en la base de datos."}, status=404)

    return JsonResponse(
        {
            "ok": True,
            "person": _person_payload(person),
            "already_scanned": AccessDecisionService.check_if_already_scanned(person.identification),
        }
    )
