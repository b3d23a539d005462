# blood_requests/signals.py
"""
Queue donor outreach when a blood request is created
"""
import logging

from django.db import transaction
from django.db.models.signals import post_save
from django.dispatch import receiver

from blood_requests.models import BloodRequest

logger = logging.getLogger(__name__)


@receiver(post_save, sender=BloodRequest)
def queue_donor_outreach(sender, instance, created, **kwargs):
    """Dispatch notifications once the new request is committed"""
    if not created or instance.status != BloodRequest.STATUS_ACTIVE:
        return

    from notifications.tasks import dispatch_request_notifications

    def enqueue():
        try:
            dispatch_request_notifications.delay(instance.pk)
        except Exception:
            logger.exception(f"Could not queue outreach for blood request {instance.pk}")
        else:
            logger.info(f"Outreach queued for blood request {instance.pk}")

    transaction.on_commit(enqueue)
