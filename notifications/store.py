"""
Notification Store: persists in-app notifications
"""
import logging

from django.db import DatabaseError, transaction

from munqidh.exceptions import ExternalServiceError
from notifications.models import Notification

logger = logging.getLogger(__name__)


def append(user_id, title, message, data=None, urgent=False, kind='blood_request'):
    """
    Save an in-app notification for a user.

    Returns:
        id of the new notification

    Raises:
        ExternalServiceError: the notification could not be stored
    """
    try:
        with transaction.atomic():
            notification = Notification.objects.create(
                user_id=user_id,
                kind=kind,
                title=title,
                message=message,
                data=data or {},
                urgent=urgent,
            )
    except DatabaseError as e:
        logger.warning(f"Could not store notification for user {user_id}: {e}")
        raise ExternalServiceError(f"Notification store failed for user {user_id}") from e

    return notification.pk
