from django.conf import settings
from django.db import models


class OperatorRole(models.TextChoices):
    ADMINISTRADOR = "administrador", "Administrador"
    OPERATIVO = "operativo", "Operativo"
    BUFETE = "bufete", "Bufete"


class OperatorProfile(models.Model):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="operator_profile")
    role = models.CharField(max_length=16, choices=OperatorRole.choices, default=OperatorRole.OPERATIVO)
    id_number = models.CharField(max_length=32, blank=True)
    assigned_station = models.PositiveIntegerField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["user__username", "id"]
        constraints = [
            models.CheckConstraint(
                condition=~models.Q(role=OperatorRole.BUFETE) | models.Q(assigned_station__isnull=False),
                name="check_bufete_has_assigned_station",
            ),
        ]

    def __str__(self):
        return f"{self.user.username} - {self.role}"

    @property
    def is_station_operator(self):
        return self.role == OperatorRole.BUFETE


class StaffAuditLog(models.Model):
    staff_user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="staff_audit_logs")
    action_type = models.CharField(max_length=64)
    target_model = models.CharField(max_length=64)
    target_id = models.CharField(max_length=64)
    payload_json = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["action_type", "created_at"], name="audit_action_created_idx"),
            models.Index(fields=["staff_user", "created_at"], name="audit_staff_created_idx"),
        ]

    def __str__(self):
        return f"{self.staff_user} - {self.action_type}"
