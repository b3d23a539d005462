# notifications/dispatcher.py
"""
Notification Dispatcher: fans a blood request out to eligible donors.

Each donor is handled independently. SMS sends run on a thread pool and a
failure for one donor is logged and counted, never raised, so the rest of
the fan-out always completes.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass

from django.conf import settings
from django.contrib.auth import get_user_model
from django.utils import timezone

from accounts import directory
from algorithms.eligibility import evaluate_eligibility
from blood_requests.models import MatchedDonor
from munqidh.exceptions import ExternalServiceError
from notifications import messages, store
from notifications.models import DonorNotification
from notifications.preferences import notification_intent, resolve_donor_preferences
from notifications.sms import get_sms_gateway

logger = logging.getLogger(__name__)

User = get_user_model()

# Sentinel: use settings.DONOR_MAX_DISTANCE_KM
USE_SETTING = object()


@dataclass
class DispatchSummary:
    total_potential_donors: int = 0
    eligible_donors: int = 0
    notifications_sent: int = 0
    sms_sent: int = 0
    in_app_created: int = 0
    failures: int = 0

    def as_dict(self):
        return asdict(self)


# ============================================
# SOLICITATION
# ============================================
def dispatch_notifications(blood_request, donor_pool=None, max_distance_km=USE_SETTING, gateway=None):
    """
    Notify every eligible donor about a new or updated blood request.

    Args:
        blood_request: BloodRequest to advertise
        donor_pool: donors to consider; defaults to every available donor
            with a blood type, minus the requester
        max_distance_km: distance limit for the eligibility check
        gateway: SMS gateway; defaults to settings.SMS_BACKEND

    Returns:
        DispatchSummary with aggregate counts
    """
    if max_distance_km is USE_SETTING:
        max_distance_km = settings.DONOR_MAX_DISTANCE_KM
    if donor_pool is None:
        donor_pool = directory.find_donors(
            has_blood_type=True,
            exclude_id=blood_request.requester_id,
            available_only=True,
        )
    gateway = gateway or get_sms_gateway()

    summary = DispatchSummary()
    candidates = [d for d in donor_pool if d.blood_type and d.pk != blood_request.requester_id]
    summary.total_potential_donors = len(candidates)

    responded = set(blood_request.matched_donors.values_list('donor_id', flat=True))

    targets = []
    for donor in candidates:
        eligibility = evaluate_eligibility(donor, blood_request, max_distance_km, responded_donor_ids=responded)
        if not eligibility.is_eligible:
            continue
        summary.eligible_donors += 1

        intent = notification_intent(donor, blood_request)
        if intent.any:
            targets.append((donor, intent, eligibility.distance_km))

    sms_results = _fan_out_sms(
        gateway,
        [donor for donor, intent, _ in targets if intent.sms and donor.phone_number],
        messages.solicitation_sms(blood_request),
    )
    payload = messages.solicitation_notification(blood_request)

    for donor, intent, distance in targets:
        sms_sent = sms_results.get(donor.pk)
        in_app_id = _store_safely(donor, payload, kind='blood_request') if intent.in_app else None

        _tally(summary, sms_sent, intent.in_app, in_app_id)
        if intent.push:
            # Push delivery is handled outside this service; the request is recorded on the outreach row
            logger.debug(f"Push requested for donor {donor.pk} on request {blood_request.pk}")

        DonorNotification.objects.update_or_create(
            blood_request=blood_request,
            donor=donor,
            defaults={
                'distance': round(distance, 2) if distance is not None else None,
                'sms_sent': bool(sms_sent),
                'push_requested': intent.push,
                'in_app_notification_id': in_app_id,
            },
        )

    logger.info(f"Dispatch for request {blood_request.pk}: {summary.as_dict()}")
    return summary


# ============================================
# FULFILLED NOTICE
# ============================================
def dispatch_fulfilled_notice(blood_request, gateway=None):
    """
    Tell the donors still pending on a request that it has been filled.

    Only pending donors are reached: pending response records and outreach
    rows nobody answered. Donors who accepted are never stood down.
    """
    gateway = gateway or get_sms_gateway()
    summary = DispatchSummary()

    responses = blood_request.matched_donors
    committed = set(
        responses.filter(status__in=[MatchedDonor.STATUS_ACCEPTED, MatchedDonor.STATUS_COMPLETED])
        .values_list('donor_id', flat=True)
    )
    pending = set(responses.filter(status=MatchedDonor.STATUS_PENDING).values_list('donor_id', flat=True))
    pending |= set(
        blood_request.donor_notifications.filter(status=DonorNotification.STATUS_NOTIFIED)
        .values_list('donor_id', flat=True)
    )
    pending -= committed

    donors = list(User.objects.filter(pk__in=pending).order_by('pk'))
    summary.total_potential_donors = len(donors)
    summary.eligible_donors = len(donors)

    sms_results = _fan_out_sms(
        gateway,
        [donor for donor in donors if donor.phone_number and resolve_donor_preferences(donor)['sms']],
        messages.fulfilled_sms(blood_request),
    )
    payload = messages.fulfilled_notification(blood_request)

    for donor in donors:
        in_app_id = _store_safely(donor, payload, kind='request_fulfilled')
        _tally(summary, sms_results.get(donor.pk), True, in_app_id)

    stood_down = DonorNotification.objects.filter(
        blood_request=blood_request,
        donor_id__in=[donor.pk for donor in donors],
        status=DonorNotification.STATUS_NOTIFIED,
    ).update(status=DonorNotification.STATUS_STOOD_DOWN, responded_at=timezone.now())

    logger.info(
        f"Fulfilled notice for request {blood_request.pk}: {summary.as_dict()} "
        f"({stood_down} outreach rows stood down)"
    )
    return summary


# ============================================
# HELPERS
# ============================================
def _fan_out_sms(gateway, donors, body):
    """
    Send the same SMS to many donors in parallel.

    Returns:
        dict mapping donor id to True (sent) or False (failed)
    """
    if not donors:
        return {}

    workers = max(1, min(settings.NOTIFICATION_FANOUT_WORKERS, len(donors)))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix='sms-fanout') as pool:
        results = list(pool.map(lambda donor: _send_sms_safely(gateway, donor, body), donors))

    return {donor.pk: sent for donor, sent in zip(donors, results)}


def _send_sms_safely(gateway, donor, body):
    try:
        return bool(gateway.send(donor.phone_number, body))
    except ExternalServiceError as e:
        logger.warning(f"SMS to donor {donor.pk} failed: {e}")
    except Exception:
        logger.exception(f"Unexpected SMS gateway error for donor {donor.pk}")
    return False


def _store_safely(donor, payload, kind):
    try:
        return store.append(
            donor.pk,
            payload['title'],
            payload['message'],
            data=payload['data'],
            urgent=payload['urgent'],
            kind=kind,
        )
    except ExternalServiceError as e:
        logger.warning(f"In-app notification for donor {donor.pk} failed: {e}")
        return None


def _tally(summary, sms_sent, in_app_wanted, in_app_id):
    # sms_sent is None when no SMS was attempted for the donor
    delivered = False
    if sms_sent is not None:
        if sms_sent:
            summary.sms_sent += 1
            delivered = True
        else:
            summary.failures += 1
    if in_app_wanted:
        if in_app_id is not None:
            summary.in_app_created += 1
            delivered = True
        else:
            summary.failures += 1
    if delivered:
        summary.notifications_sent += 1
