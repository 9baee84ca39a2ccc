import json

from django.contrib.auth import get_user_model
from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from access.services import AccessDecisionService
from attendees.services import AttendeeDirectory
from inventory.services import (
    ConcurrentInventoryUpdateError,
    InventoryNotFoundError,
    MealInventoryService,
    StationInventoryService,
)

from .authz import ROLES_ADMIN, ROLES_ANY_OPERATOR, enforce_role_api
from .services import StaffOpsService, StaffPermissionError


def _json_body(request):
    if not request.body:
        return {}
    try:
        return json.loads(request.body.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {}


def _as_bool(raw_value):
    if isinstance(raw_value, bool):
        return raw_value
    return str(raw_value or "").strip().lower() in {"1", "true", "si", "on", "yes"}


def _error_response(exc):
    if isinstance(exc, StaffPermissionError):
        status = 403
    elif isinstance(exc, InventoryNotFoundError):
        status = 404
    elif isinstance(exc, ConcurrentInventoryUpdateError):
        status = 409
    else:
        status = 400
    return JsonResponse({"ok": False, "error": str(exc)}, status=status)


def _ensure_admin(request, *, denied_message):
    return enforce_role_api(request=request, roles=ROLES_ADMIN, denied_message=denied_message)


def _inventory_state_payload():
    served = AccessDecisionService.served_by_station()
    stations = []
    for snapshot in StationInventoryService.list_stations():
        stations.append({**snapshot.as_dict(), "served": served.get(snapshot.number, 0)})
    return {
        "global": MealInventoryService.read().as_dict(),
        "stations": stations,
        "pending_slots": AttendeeDirectory.pending_slots(),
    }


@login_required
@require_http_methods(["GET"])
def inventory_state_api(request):
    auth_error = enforce_role_api(
        request=request,
        roles=ROLES_ANY_OPERATOR,
        denied_message="No cuentas con permisos para consultar el inventario.",
    )
    if auth_error:
        return auth_error
    return JsonResponse({"ok": True, **_inventory_state_payload()})


@login_required
@require_http_methods(["POST"])
def reset_global_inventory_api(request):
    auth_error = _ensure_admin(request, denied_message="No cuentas con permisos para reiniciar el inventario.")
    if auth_error:
        return auth_error

    body = _json_body(request)
    try:
        snapshot = StaffOpsService.reset_meal_inventory(
            staff_user=request.user,
            new_total=body.get("total"),
            include_people=_as_bool(body.get("include_people")),
        )
    except (ValueError, PermissionError) as exc:
        return _error_response(exc)
    return JsonResponse({"ok": True, "global": snapshot.as_dict()})


@login_required
@require_http_methods(["POST"])
def set_global_total_api(request):
    auth_error = _ensure_admin(request, denied_message="No cuentas con permisos para modificar el inventario.")
    if auth_error:
        return auth_error

    body = _json_body(request)
    try:
        snapshot = StaffOpsService.resize_meal_inventory(
            staff_user=request.user,
            new_total=body.get("total"),
            expected_version=body.get("version"),
        )
    except (ValueError, PermissionError) as exc:
        return _error_response(exc)
    return JsonResponse({"ok": True, "global": snapshot.as_dict()})


@login_required
@require_http_methods(["POST"])
def save_station_api(request):
    auth_error = _ensure_admin(request, denied_message="No cuentas con permisos para administrar mesas.")
    if auth_error:
        return auth_error

    body = _json_body(request)
    try:
        snapshot = StaffOpsService.save_station(
            staff_user=request.user,
            number=body.get("number"),
            total=body.get("total"),
            name=body.get("name", ""),
            active=_as_bool(body.get("active", True)),
        )
    except (ValueError, PermissionError) as exc:
        return _error_response(exc)
    return JsonResponse({"ok": True, "station": snapshot.as_dict()})


@login_required
@require_http_methods(["POST"])
def add_station_meals_api(request, number):
    auth_error = _ensure_admin(request, denied_message="No cuentas con permisos para administrar mesas.")
    if auth_error:
        return auth_error

    body = _json_body(request)
    try:
        snapshot = StaffOpsService.add_station_meals(staff_user=request.user, number=number, amount=body.get("amount"))
    except (ValueError, PermissionError) as exc:
        return _error_response(exc)
    return JsonResponse({"ok": True, "station": snapshot.as_dict()})


@login_required
@require_http_methods(["POST"])
def set_station_active_api(request, number):
    auth_error = _ensure_admin(request, denied_message="No cuentas con permisos para administrar mesas.")
    if auth_error:
        return auth_error

    body = _json_body(request)
    try:
        snapshot = StaffOpsService.set_station_active(
            staff_user=request.user,
            number=number,
            active=_as_bool(body.get("active")),
        )
    except (ValueError, PermissionError) as exc:
        return _error_response(exc)
    return JsonResponse({"ok": True, "station": snapshot.as_dict()})


@login_required
@require_http_methods(["POST"])
def reset_station_api(request, number):
    auth_error = _ensure_admin(request, denied_message="No cuentas con permisos para administrar mesas.")
    if auth_error:
        return auth_error

    body = _json_body(request)
    try:
        snapshot = StaffOpsService.reset_station(staff_user=request.user, number=number, new_total=body.get("total"))
    except (ValueError, PermissionError) as exc:
        return _error_response(exc)
    return JsonResponse({"ok": True, "station": snapshot.as_dict()})


@login_required
@require_http_methods(["DELETE"])
def delete_station_api(request, number):
    auth_error = _ensure_admin(request, denied_message="No cuentas con permisos para administrar mesas.")
    if auth_error:
        return auth_error

    try:
        snapshot = StaffOpsService.delete_station(staff_user=request.user, number=number)
    except (ValueError, PermissionError) as exc:
        return _error_response(exc)
    return JsonResponse({"ok": True, "deleted_station": snapshot.number})


@login_required
@require_http_methods(["POST"])
def set_all_stations_active_api(request):
    auth_error = _ensure_admin(request, denied_message="No cuentas con permisos para administrar mesas.")
    if auth_error:
        return auth_error

    body = _json_body(request)
    try:
        updated = StaffOpsService.set_all_stations_active(staff_user=request.user, active=_as_bool(body.get("active")))
    except (ValueError, PermissionError) as exc:
        return _error_response(exc)
    return JsonResponse({"ok": True, "updated": updated})


@login_required
@require_http_methods(["POST"])
def set_operator_role_api(request, user_id):
    auth_error = _ensure_admin(request, denied_message="No cuentas con permisos para asignar roles.")
    if auth_error:
        return auth_error

    target_user = get_user_model().objects.filter(id=user_id).first()
    if not target_user:
        return JsonResponse({"ok": False, "error": "Usuario no encontrado."}, status=404)

    body = _json_body(request)
    try:
        profile = StaffOpsService.set_operator_role(
            staff_user=request.user,
            target_user=target_user,
            role=body.get("role", ""),
            assigned_station=body.get("assigned_station"),
            id_number=body.get("id_number"),
        )
    except (ValueError, PermissionError) as exc:
        return _error_response(exc)

    return JsonResponse(
        {
            "ok": True,
            "operator": {
                "user_id": target_user.id,
                "username": target_user.username,
                "role": profile.role,
                "assigned_station": profile.assigned_station,
                "id_number": profile.id_number,
            },
        }
    )
