from dataclasses import dataclass

from django.http import JsonResponse

from .models import OperatorProfile, OperatorRole

ROLES_ACCESS_SCAN = (OperatorRole.OPERATIVO, OperatorRole.ADMINISTRADOR)
ROLES_MEAL_SERVICE = (OperatorRole.BUFETE, OperatorRole.ADMINISTRADOR)
ROLES_ANY_OPERATOR = (OperatorRole.OPERATIVO, OperatorRole.BUFETE, OperatorRole.ADMINISTRADOR)
ROLES_ADMIN = (OperatorRole.ADMINISTRADOR,)


@dataclass
class AuthzSnapshot:
    role: str | None = None
    assigned_station: int | None = None
    is_superuser: bool = False

    @property
    def is_admin(self):
        return self.is_superuser or self.role == OperatorRole.ADMINISTRADOR


def get_operator_profile(user):
    if not user or not user.is_authenticated:
        return None
    profile, _created = OperatorProfile.objects.get_or_create(
        user=user,
        defaults={"role": OperatorRole.ADMINISTRADOR if user.is_superuser else OperatorRole.OPERATIVO},
    )
    return profile


def build_authz_snapshot(*, user):
    profile = get_operator_profile(user)
    if profile is None:
        return AuthzSnapshot()
    return AuthzSnapshot(
        role=profile.role,
        assigned_station=profile.assigned_station,
        is_superuser=bool(user.is_superuser),
    )


def has_role(*, user, roles, snapshot=None):
    if not user or not user.is_authenticated:
        return False
    current_snapshot = snapshot or build_authz_snapshot(user=user)
    if current_snapshot.is_superuser:
        return True
    return current_snapshot.role in roles


def enforce_role_api(*, request, roles, snapshot=None, denied_message="No autorizado."):
    if has_role(user=request.user, roles=roles, snapshot=snapshot):
        return None
    return JsonResponse({"ok": False, "error": denied_message}, status=403)
