from django.contrib.auth import get_user_model
from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import OperatorProfile, OperatorRole


@receiver(post_save, sender=get_user_model())
def bootstrap_operator_profile(sender, instance, created, **kwargs):
    if not created:
        return
    OperatorProfile.objects.get_or_create(
        user=instance,
        defaults={"role": OperatorRole.ADMINISTRADOR if instance.is_superuser else OperatorRole.OPERATIVO},
    )
