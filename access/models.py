from django.db import models
from django.utils import timezone


class AccessStatus(models.TextChoices):
    GRANTED = "granted", "Acceso concedido"
    DENIED = "denied", "Acceso denegado"
    Q10_SUCCESS = "q10_success", "Certificado Q10 valido"
    Q10_FAILED = "q10_failed", "Certificado Q10 invalido"


class AccessSource(models.TextChoices):
    DIRECT = "direct", "Escaneo directo"
    Q10 = "q10", "Certificado Q10"
    MANUAL = "manual", "Ingreso manual"


class AccessLogEntryError(RuntimeError):
    pass


class AccessLogEntry(models.Model):
    identification = models.CharField(max_length=32)
    status = models.CharField(max_length=16, choices=AccessStatus.choices)
    details = models.CharField(max_length=255, blank=True)
    source = models.CharField(max_length=16, choices=AccessSource.choices, default=AccessSource.DIRECT)
    actor_id = models.CharField(max_length=64, blank=True)
    actor_name = models.CharField(max_length=160, blank=True)
    actor_email = models.CharField(max_length=254, blank=True)
    actor_role = models.CharField(max_length=32, blank=True)
    station_used = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now, editable=False)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["identification", "status"], name="access_ident_status_idx"),
            models.Index(fields=["status", "created_at"], name="access_status_created_idx"),
            models.Index(fields=["station_used", "status"], name="access_station_status_idx"),
        ]

    def __str__(self):
        return f"{self.identification} - {self.status}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise AccessLogEntryError("Los registros de acceso no se pueden modificar.")
        super().save(*args, **kwargs)
