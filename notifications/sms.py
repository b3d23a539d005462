"""
SMS Gateway backends.

Pick one with the SMS_BACKEND setting, the same way Django picks an email
backend. Every backend exposes send(to_phone, body) -> bool.
"""
import logging
import threading

from django.conf import settings
from django.utils.module_loading import import_string
from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from munqidh.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


class BaseSmsGateway:
    def send(self, to_phone, body):
        raise NotImplementedError


class TwilioSmsGateway(BaseSmsGateway):
    """
    Sends SMS through Twilio.

    Without credentials the gateway runs in development mode: the message is
    logged and reported as sent.
    """

    def __init__(self, account_sid=None, auth_token=None, from_number=None):
        self.account_sid = account_sid if account_sid is not None else settings.TWILIO_ACCOUNT_SID
        self.auth_token = auth_token if auth_token is not None else settings.TWILIO_AUTH_TOKEN
        self.from_number = from_number if from_number is not None else settings.TWILIO_FROM_NUMBER
        self._client = None

    @property
    def is_configured(self):
        return bool(self.account_sid and self.auth_token and self.from_number)

    @property
    def client(self):
        if self._client is None:
            self._client = Client(self.account_sid, self.auth_token)
        return self._client

    def send(self, to_phone, body):
        if not to_phone:
            raise ExternalServiceError("No phone number to send SMS to", code='sms_no_recipient')

        if not self.is_configured:
            logger.info(f"SMS (development mode, not sent) to {to_phone}: {body[:60]!r}")
            return True

        try:
            message = self.client.messages.create(body=body, from_=self.from_number, to=to_phone)
        except TwilioException as e:
            logger.warning(f"SMS to {to_phone} failed: {e}")
            raise ExternalServiceError(f"SMS delivery to {to_phone} failed", code='sms_failed') from e

        logger.info(f"SMS sent to {to_phone} (sid {message.sid})")
        return True


class ConsoleSmsGateway(BaseSmsGateway):
    """Logs every message instead of sending it"""

    def send(self, to_phone, body):
        logger.info(f"SMS to {to_phone}:\n{body}")
        return True


class LocmemSmsGateway(BaseSmsGateway):
    """
    Keeps sent messages in memory, for tests.

    Numbers listed in `failing_numbers` raise ExternalServiceError, to
    exercise gateway failures.
    """
    outbox = []
    failing_numbers = set()
    _lock = threading.Lock()

    def send(self, to_phone, body):
        if to_phone in self.failing_numbers:
            raise ExternalServiceError(f"SMS delivery to {to_phone} failed", code='sms_failed')
        with self._lock:
            LocmemSmsGateway.outbox.append({'to': to_phone, 'body': body})
        return True

    @classmethod
    def reset(cls):
        with cls._lock:
            cls.outbox = []
            cls.failing_numbers = set()


def get_sms_gateway(backend=None):
    return import_string(backend or settings.SMS_BACKEND)()
