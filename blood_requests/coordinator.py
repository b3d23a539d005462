# blood_requests/coordinator.py
"""
Fulfillment Coordinator: donors accepting or declining blood requests.

The accept is a single conditional UPDATE on the request row, so two donors
racing for the last unit can never both win, whatever process they run in.
"""
import logging
from dataclasses import asdict, dataclass, field
from typing import Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Case, F, Value, When
from django.utils import timezone

from accounts import directory
from algorithms.eligibility import evaluate_eligibility
from blood_requests.models import BloodRequest, MatchedDonor
from chat import transport
from munqidh.exceptions import BusinessRuleViolation, ConcurrencyConflict, ExternalServiceError, NotFoundError
from notifications import messages
from notifications.models import DonorNotification
from notifications.sms import get_sms_gateway

logger = logging.getLogger(__name__)


@dataclass
class AcceptResult:
    request_id: int
    donor: dict = field(default_factory=dict)
    requester: dict = field(default_factory=dict)
    chat_id: str = ''
    accepted_count: int = 0
    required_units: int = 0
    fulfilled: bool = False
    donation_id: Optional[int] = None

    def as_dict(self):
        return asdict(self)


# ============================================
# VALIDATION
# ============================================
def _get_request(request_id):
    try:
        return BloodRequest.objects.get(pk=request_id)
    except (BloodRequest.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Blood request {request_id} not found", code='request_not_found')


def check_response(request_id, donor_id, now=None):
    """
    Run every precondition for an accept, in order, without writing anything.

    Returns:
        (blood_request, donor, eligibility)
    """
    now = now or timezone.now()
    blood_request = _get_request(request_id)
    donor = directory.get_donor(donor_id)

    if blood_request.requester_id == donor.pk:
        raise BusinessRuleViolation("You cannot respond to your own request", code='self_response')

    if MatchedDonor.objects.filter(blood_request=blood_request, donor=donor).exists():
        raise BusinessRuleViolation("You have already responded to this request", code='already_responded')

    if now >= blood_request.deadline:
        raise BusinessRuleViolation("The deadline for this request has passed", code='deadline_passed')

    if blood_request.status != BloodRequest.STATUS_ACTIVE:
        raise BusinessRuleViolation(f"This request is {blood_request.status}", code='request_inactive')

    if not donor.blood_type:
        raise BusinessRuleViolation("Set your blood type before responding", code='missing_blood_type')

    eligibility = evaluate_eligibility(donor, blood_request, settings.DONOR_MAX_DISTANCE_KM)
    if not eligibility.is_eligible:
        raise BusinessRuleViolation('; '.join(eligibility.reasons), code=eligibility.codes[0])

    if blood_request.accepted_count >= blood_request.required_units:
        raise ConcurrencyConflict("Request no longer available")

    return blood_request, donor, eligibility


# ============================================
# ACCEPT
# ============================================
def respond_to_request(request_id, donor_id, now=None) -> AcceptResult:
    """
    A donor accepts a blood request.

    Raises:
        NotFoundError: unknown request or donor
        BusinessRuleViolation: a precondition failed (see check_response)
        ConcurrencyConflict: the last unit was taken by another donor
    """
    now = now or timezone.now()
    blood_request, donor, _ = check_response(request_id, donor_id, now)
    return claim_unit(blood_request, donor, now)


def claim_unit(blood_request, donor, now=None) -> AcceptResult:
    """Atomically take one unit of the request for a donor already checked"""
    now = now or timezone.now()

    with transaction.atomic():
        # status is assigned first: MySQL evaluates SET left to right
        claimed = BloodRequest.objects.filter(
            pk=blood_request.pk,
            status=BloodRequest.STATUS_ACTIVE,
            accepted_count__lt=F('required_units'),
        ).update(
            status=Case(
                When(accepted_count=F('required_units') - 1, then=Value(BloodRequest.STATUS_FULFILLED)),
                default=Value(BloodRequest.STATUS_ACTIVE),
            ),
            accepted_count=F('accepted_count') + 1,
            updated_at=now,
        )
        if not claimed:
            logger.info(f"Donor {donor.pk} lost the race for request {blood_request.pk}")
            raise ConcurrencyConflict("Request no longer available")

        try:
            with transaction.atomic():
                MatchedDonor.objects.create(
                    blood_request=blood_request,
                    donor=donor,
                    donor_name=donor.display_name,
                    donor_blood_type=donor.blood_type,
                    status=MatchedDonor.STATUS_ACCEPTED,
                    responded_at=now,
                )
        except IntegrityError:
            raise BusinessRuleViolation("You have already responded to this request", code='already_responded')

        DonorNotification.objects.filter(blood_request=blood_request, donor=donor).update(
            status=DonorNotification.STATUS_ACCEPTED,
            responded_at=now,
        )

        blood_request.refresh_from_db(fields=['status', 'accepted_count', 'updated_at'])

        # Imported here: donations depends on blood_requests models
        from donations.services import initiate_donation
        donation = initiate_donation(blood_request, donor)

        fulfilled = blood_request.accepted_count >= blood_request.required_units
        chat_id = transport.channel_id_for([donor.pk, blood_request.requester_id], blood_request.pk)

        transaction.on_commit(lambda: _after_accept(blood_request, donor, fulfilled))

    logger.info(
        f"Donor {donor.pk} accepted request {blood_request.pk} "
        f"({blood_request.accepted_count}/{blood_request.required_units})"
    )

    requester = blood_request.requester
    return AcceptResult(
        request_id=blood_request.pk,
        donor={
            'id': donor.pk,
            'name': donor.display_name,
            'blood_type': donor.blood_type,
            'phone': donor.phone_number,
        },
        requester={
            'id': requester.pk,
            'name': blood_request.requester_name or requester.display_name,
            'phone': blood_request.requester_phone,
        },
        chat_id=chat_id,
        accepted_count=blood_request.accepted_count,
        required_units=blood_request.required_units,
        fulfilled=fulfilled,
        # Multi-unit requests share the donation opened by the first accepted donor
        donation_id=donation.pk if donation.donor_id == donor.pk else None,
    )


def _after_accept(blood_request, donor, fulfilled):
    """Side effects of an accept. Each is best-effort; none can undo it."""
    try:
        channel_id = transport.ensure_channel([donor.pk, blood_request.requester_id], blood_request.pk)
        transport.post_system_message(channel_id, messages.donor_accepted_chat(donor))
    except ExternalServiceError as e:
        logger.warning(f"Chat setup for request {blood_request.pk} failed: {e}")
    except Exception:
        logger.exception(f"Unexpected chat error for request {blood_request.pk}")

    try:
        get_sms_gateway().send(blood_request.requester_phone, messages.donor_accepted_sms(blood_request, donor))
    except ExternalServiceError as e:
        logger.warning(f"Requester SMS for request {blood_request.pk} failed: {e}")
    except Exception:
        logger.exception(f"Unexpected SMS error for request {blood_request.pk}")

    if fulfilled:
        from notifications.tasks import notify_request_fulfilled
        try:
            notify_request_fulfilled.delay(blood_request.pk)
        except Exception:
            logger.exception(f"Could not queue fulfilled notice for request {blood_request.pk}")


# ============================================
# DECLINE
# ============================================
def decline_request(request_id, donor_id):
    """Record that a donor will not help. Consumes no capacity."""
    blood_request = _get_request(request_id)
    donor = directory.get_donor(donor_id)

    if blood_request.requester_id == donor.pk:
        raise BusinessRuleViolation("You cannot respond to your own request", code='self_response')

    now = timezone.now()
    if now >= blood_request.deadline:
        raise BusinessRuleViolation("The deadline for this request has passed", code='deadline_passed')
    if blood_request.status != BloodRequest.STATUS_ACTIVE:
        raise BusinessRuleViolation(f"This request is {blood_request.status}", code='request_inactive')

    try:
        with transaction.atomic():
            match = MatchedDonor.objects.create(
                blood_request=blood_request,
                donor=donor,
                donor_name=donor.display_name,
                donor_blood_type=donor.blood_type or '',
                status=MatchedDonor.STATUS_DECLINED,
                responded_at=now,
            )
            DonorNotification.objects.filter(blood_request=blood_request, donor=donor).update(
                status=DonorNotification.STATUS_DECLINED,
                responded_at=now,
            )
    except IntegrityError:
        raise BusinessRuleViolation("You have already responded to this request", code='already_responded')

    logger.info(f"Donor {donor.pk} declined request {blood_request.pk}")
    return match
