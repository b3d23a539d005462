# blood_requests/tasks.py
import logging

from celery import shared_task
from django.utils import timezone

from blood_requests.models import BloodRequest

logger = logging.getLogger(__name__)


@shared_task
def expire_overdue_requests():
    """
    Move active requests past their deadline to expired.
    Runs periodically from the beat schedule.
    """
    now = timezone.now()
    expired = BloodRequest.objects.filter(
        status=BloodRequest.STATUS_ACTIVE,
        deadline__lte=now,
    ).update(status=BloodRequest.STATUS_EXPIRED, updated_at=now)

    if expired:
        logger.info(f"Expired {expired} overdue blood request(s)")
    return expired
