from django.db import models

ATTENDEE_BASE_SLOTS = 2
GUEST_SLOTS = 1


class Attendee(models.Model):
    identification = models.CharField(max_length=32, unique=True)
    name = models.CharField(max_length=160)
    position = models.CharField(max_length=32, blank=True)
    program = models.CharField(max_length=160, blank=True)
    extra_slots = models.PositiveIntegerField(default=0)
    consumed_slots = models.PositiveIntegerField(default=0)
    imported_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name", "id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(consumed_slots__lte=models.F("extra_slots") + ATTENDEE_BASE_SLOTS),
                name="check_attendee_consumed_within_allotment",
            ),
        ]
        indexes = [
            models.Index(fields=["program", "name"], name="attendee_program_name_idx"),
        ]

    def __str__(self):
        return f"{self.identification} - {self.name}"

    @property
    def total_slots(self):
        return ATTENDEE_BASE_SLOTS + self.extra_slots

    @property
    def available_slots(self):
        return max(0, self.total_slots - self.consumed_slots)

    @property
    def is_guest(self):
        return False


class Guest(models.Model):
    identification = models.CharField(max_length=32, unique=True)
    name = models.CharField(max_length=160)
    position = models.CharField(max_length=32, blank=True)
    consumed_slots = models.PositiveSmallIntegerField(default=0)
    imported_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name", "id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(consumed_slots__lte=GUEST_SLOTS),
                name="check_guest_consumed_within_allotment",
            ),
        ]

    def __str__(self):
        return f"{self.identification} - {self.name} (invitado)"

    @property
    def total_slots(self):
        return GUEST_SLOTS

    @property
    def available_slots(self):
        return max(0, self.total_slots - self.consumed_slots)

    @property
    def is_guest(self):
        return True
