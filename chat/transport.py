"""
Chat Transport: channels between a donor and a requester, per blood request
"""
import logging

from django.db import DatabaseError, transaction

from chat.models import ChatChannel, ChatMessage
from munqidh.exceptions import ExternalServiceError, NotFoundError

logger = logging.getLogger(__name__)


def channel_id_for(participant_ids, request_id):
    """Sorted participant ids joined with the request id, so both sides derive the same channel"""
    parts = sorted(str(participant_id) for participant_id in participant_ids)
    return '_'.join(parts + [str(request_id)])


def ensure_channel(participant_ids, request_id):
    channel_id = channel_id_for(participant_ids, request_id)
    try:
        with transaction.atomic():
            channel, created = ChatChannel.objects.get_or_create(
                channel_id=channel_id,
                defaults={'blood_request_id': request_id},
            )
            if created:
                channel.participants.add(*participant_ids)
    except DatabaseError as e:
        raise ExternalServiceError(f"Could not open chat channel {channel_id}") from e

    if created:
        logger.info(f"Chat channel {channel_id} created")
    return channel_id


def post_system_message(channel_id, text):
    try:
        channel = ChatChannel.objects.get(channel_id=channel_id)
    except ChatChannel.DoesNotExist:
        raise NotFoundError(f"Chat channel {channel_id} not found", code='channel_not_found')

    try:
        with transaction.atomic():
            message = ChatMessage.objects.create(channel=channel, sender=None, text=text)
    except DatabaseError as e:
        raise ExternalServiceError(f"Could not post to chat channel {channel_id}") from e

    return message.pk
