# notifications/tasks.py
"""
Celery tasks for donor outreach
"""
import logging

from celery import shared_task

from blood_requests.models import BloodRequest
from notifications.dispatcher import dispatch_fulfilled_notice, dispatch_notifications

logger = logging.getLogger(__name__)


@shared_task
def dispatch_request_notifications(blood_request_id):
    """
    Notify eligible donors about a blood request.
    Queued right after a BloodRequest is created.
    """
    try:
        blood_request = BloodRequest.objects.get(pk=blood_request_id)
    except BloodRequest.DoesNotExist:
        logger.warning(f"Blood request {blood_request_id} not found, nothing to dispatch")
        return None

    if blood_request.status != BloodRequest.STATUS_ACTIVE:
        logger.info(f"Blood request {blood_request_id} is {blood_request.status}, skipping dispatch")
        return None

    return dispatch_notifications(blood_request).as_dict()


@shared_task
def notify_request_fulfilled(blood_request_id):
    """Stand down the donors still pending once a request has all its donors"""
    try:
        blood_request = BloodRequest.objects.get(pk=blood_request_id)
    except BloodRequest.DoesNotExist:
        logger.warning(f"Blood request {blood_request_id} not found, no fulfilled notice sent")
        return None

    return dispatch_fulfilled_notice(blood_request).as_dict()
