# donations/services.py
"""
Donation workflow: every write goes through here.

Each operation locks the donation row, mutates the evidence, then re-derives
overall status, verification level and trust score from it.
"""
import logging
from datetime import timedelta

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from blood_requests.models import BloodRequest, MatchedDonor
from donations import state_machine
from donations.models import Donation, DonationDispute, DonationTimelineEntry
from donations.signals import donation_completed
from munqidh.exceptions import BusinessRuleViolation, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

MAX_SCHEDULE_AHEAD = timedelta(days=30)

PROOF_FIELDS = (
    'hospital_receipt',
    'medical_staff_signature',
    'hospital_reference_number',
    'donation_certificate',
    'blood_bag_id',
)


def _locked_donation(donation_id):
    try:
        return Donation.objects.select_for_update().get(pk=donation_id)
    except (Donation.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Donation {donation_id} not found", code='donation_not_found')


def _timeline(donation, stage, status, actor, timestamp=None, notes=None, evidence=None, location=None):
    latitude, longitude = location if location else (None, None)
    return DonationTimelineEntry.objects.create(
        donation=donation,
        stage=stage,
        status=status,
        actor=actor,
        notes=notes or '',
        evidence=evidence or '',
        latitude=latitude,
        longitude=longitude,
        timestamp=timestamp or timezone.now(),
    )


def _save_derived(donation, timestamp=None):
    """
    Re-derive and save. Must run inside the caller's transaction.

    A donation reaching completed for the first time closes its matched
    donor row, counts the unit as fulfilled and, after commit, sends
    donation_completed.
    """
    previous = donation.overall_status
    donation.refresh_derived_state()
    donation.save()
    if donation.overall_status == previous:
        return previous

    logger.info(f"Donation {donation.pk}: {previous} -> {donation.overall_status}")
    if donation.overall_status == state_machine.COMPLETED and _complete(donation, timestamp or timezone.now()):
        transaction.on_commit(lambda: donation_completed.send(sender=Donation, donation=donation))
    return previous


# ============================================
# INITIATION
# ============================================
def initiate_donation(blood_request, donor, actor='system'):
    """
    Open the donation for a request, or return the one already open.

    Called by the fulfillment coordinator inside the accept transaction.
    """
    donation, created = Donation.objects.get_or_create(
        blood_request=blood_request,
        defaults={
            'donor': donor,
            'recipient_id': blood_request.requester_id,
            'blood_type': donor.blood_type or blood_request.patient_blood_type,
            'hospital_name': blood_request.hospital_name,
            'hospital_address': blood_request.hospital_address,
            'hospital_contact_number': blood_request.hospital_contact_number,
            'hospital_department': blood_request.hospital_department,
            'emergency_level': blood_request.urgency_level,
        },
    )
    if created:
        _timeline(donation, 'initiation', state_machine.INITIATED, actor, notes='Donation initiated')
        logger.info(f"Donation {donation.pk} initiated for request {blood_request.pk} by donor {donor.pk}")
    return donation


def initiate_donation_for_request(request_id, donor_id):
    """Explicit initiation by a donor who accepted the request"""
    with transaction.atomic():
        try:
            blood_request = BloodRequest.objects.select_for_update().get(pk=request_id)
        except (BloodRequest.DoesNotExist, ValueError, TypeError):
            raise NotFoundError(f"Blood request {request_id} not found", code='request_not_found')

        match = (
            MatchedDonor.objects
            .select_related('donor')
            .filter(blood_request=blood_request, donor_id=donor_id, status=MatchedDonor.STATUS_ACCEPTED)
            .first()
        )
        if match is None:
            raise BusinessRuleViolation(
                "Only a donor who accepted this request can start a donation",
                code='not_accepted_donor',
            )
        if Donation.objects.filter(blood_request=blood_request).exists():
            raise BusinessRuleViolation(
                "A donation already exists for this request",
                code='donation_exists',
            )

        return initiate_donation(blood_request, match.donor, actor='donor')


# ============================================
# APPOINTMENT
# ============================================
def schedule_appointment(donation_id, actor, appointment_at, place, estimated_duration=60, now=None):
    now = now or timezone.now()
    if appointment_at is None or not place:
        raise ValidationError("Appointment time and place are required", code='invalid_appointment')
    if appointment_at <= now:
        raise ValidationError("Appointment must be in the future", code='appointment_in_past')
    if appointment_at > now + MAX_SCHEDULE_AHEAD:
        raise ValidationError("Appointment cannot be more than 30 days ahead", code='appointment_too_far')
    if actor not in state_machine.ACTORS:
        raise ValidationError(f"Unknown actor '{actor}'", code='unknown_actor')

    with transaction.atomic():
        donation = _locked_donation(donation_id)
        if donation.overall_status in (state_machine.COMPLETED, state_machine.FAILED):
            raise BusinessRuleViolation(
                f"Cannot schedule a {donation.overall_status} donation",
                code='donation_closed',
            )

        donation.appointment_at = appointment_at
        donation.appointment_place = place
        donation.estimated_duration = estimated_duration
        donation.appointment_status = 'confirmed'
        _timeline(
            donation, 'scheduling', state_machine.SCHEDULED, actor,
            notes=f"Appointment at {place} on {appointment_at.isoformat()}",
        )
        _save_derived(donation)

    return donation


# ============================================
# CONFIRMATIONS
# ============================================
def record_confirmation(donation_id, confirmation_name, actor, timestamp=None, notes=None, evidence=None,
                        location=None):
    """
    Record one stage confirmation.

    Args:
        confirmation_name: one of state_machine.CONFIRMATIONS
        actor: donor, recipient, hospital or system
        location: optional (latitude, longitude), stored for donor arrival

    Returns:
        the updated Donation
    """
    with transaction.atomic():
        donation = _locked_donation(donation_id)
        state_machine.check_confirmation(donation.confirmation_flags(), confirmation_name, actor)

        if donation.status_override == state_machine.FAILED:
            raise BusinessRuleViolation("This donation was marked failed", code='donation_closed')

        timestamp = timestamp or timezone.now()
        setattr(donation, confirmation_name, True)
        # First confirmation time wins
        timestamp_field = f"{confirmation_name}_at"
        if getattr(donation, timestamp_field) is None:
            setattr(donation, timestamp_field, timestamp)

        if notes:
            notes_field = {
                'hospital_received': 'hospital_notes',
                'donor_completed': 'donor_notes',
                'recipient_received': 'recipient_notes',
            }.get(confirmation_name)
            if notes_field:
                setattr(donation, notes_field, notes)
        if confirmation_name == 'donor_arrived' and location:
            donation.donor_latitude, donation.donor_longitude = location
        if confirmation_name == 'donor_completed':
            donation.appointment_status = 'completed'

        stage, status = state_machine.TIMELINE_STAGES[confirmation_name]
        _timeline(donation, stage, status, actor, timestamp, notes, evidence, location)

        _save_derived(donation, timestamp)

    return donation


def _complete(donation, timestamp):
    """Close out the donor's response once. Returns False if it was already closed."""
    closed = MatchedDonor.objects.filter(
        blood_request_id=donation.blood_request_id,
        donor_id=donation.donor_id,
        status=MatchedDonor.STATUS_ACCEPTED,
    ).update(status=MatchedDonor.STATUS_COMPLETED, completed_at=timestamp)
    if not closed:
        return False

    BloodRequest.objects.filter(pk=donation.blood_request_id).update(
        fulfilled_units=F('fulfilled_units') + 1,
        updated_at=timezone.now(),
    )
    logger.info(f"Donation {donation.pk} completed for request {donation.blood_request_id}")
    return True


# ============================================
# PROOF
# ============================================
def attach_proof(donation_id, actor, **proof):
    unknown = set(proof) - set(PROOF_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown proof fields: {', '.join(sorted(unknown))}", code='invalid_proof')
    if not any(proof.values()):
        raise ValidationError("No proof supplied", code='invalid_proof')
    if actor not in state_machine.ACTORS:
        raise ValidationError(f"Unknown actor '{actor}'", code='unknown_actor')

    with transaction.atomic():
        donation = _locked_donation(donation_id)
        for field, value in proof.items():
            if value:
                setattr(donation, field, value)
        _timeline(
            donation, 'proof', 'proof_attached', actor,
            notes=', '.join(sorted(field for field, value in proof.items() if value)),
            evidence=proof.get('hospital_receipt') or proof.get('donation_certificate'),
        )
        _save_derived(donation)

    return donation


# ============================================
# DISPUTES
# ============================================
def report_dispute(donation_id, reported_by, reason, escalate=False):
    if not reason or not reason.strip():
        raise ValidationError("A dispute needs a reason", code='invalid_dispute')

    with transaction.atomic():
        donation = _locked_donation(donation_id)
        if reported_by.pk == donation.donor_id:
            actor = 'donor'
        elif reported_by.pk == donation.recipient_id:
            actor = 'recipient'
        else:
            raise BusinessRuleViolation(
                "Only the donor or the recipient can report a dispute",
                code='dispute_not_allowed',
            )

        dispute = DonationDispute.objects.create(donation=donation, reported_by=reported_by, reason=reason.strip())
        _timeline(donation, 'dispute', 'dispute_reported', actor, notes=reason.strip())

        if escalate:
            donation.status_override = state_machine.DISPUTED
        _save_derived(donation)

    logger.warning(f"Dispute {dispute.pk} reported on donation {donation.pk} by {actor}")
    return dispute


def update_dispute(donation_id, dispute_id, status, resolution=None, mark_failed=False):
    if status not in dict(DonationDispute.STATUS_CHOICES):
        raise ValidationError(f"Unknown dispute status '{status}'", code='invalid_dispute')

    with transaction.atomic():
        donation = _locked_donation(donation_id)
        try:
            dispute = donation.disputes.get(pk=dispute_id)
        except (DonationDispute.DoesNotExist, ValueError, TypeError):
            raise NotFoundError(f"Dispute {dispute_id} not found", code='dispute_not_found')

        dispute.status = status
        if resolution:
            dispute.resolution = resolution
        if status not in DonationDispute.OPEN_STATUSES and dispute.resolved_at is None:
            dispute.resolved_at = timezone.now()
        dispute.save()

        if mark_failed:
            donation.status_override = state_machine.FAILED
        elif donation.status_override == state_machine.DISPUTED and not donation.has_open_dispute:
            donation.status_override = ''

        _timeline(donation, 'dispute', f"dispute_{status}", 'system', notes=resolution)
        _save_derived(donation)

    return dispute
