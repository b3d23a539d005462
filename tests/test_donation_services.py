from datetime import timedelta

import pytest
from django.utils import timezone

from blood_requests import coordinator
from blood_requests.models import MatchedDonor
from donations import services
from donations import state_machine as sm
from donations.models import Donation
from munqidh.exceptions import BusinessRuleViolation, NotFoundError, ValidationError


@pytest.fixture
def donor(make_user):
    return make_user(full_name='Hari Thapa')


@pytest.fixture
def donation(donor, make_request):
    blood_request = make_request()
    result = coordinator.respond_to_request(blood_request.pk, donor.pk)
    return Donation.objects.get(pk=result.donation_id)


def confirm_all(donation):
    services.record_confirmation(donation.pk, 'donor_arrived', 'donor')
    services.record_confirmation(donation.pk, 'hospital_received', 'hospital')
    services.record_confirmation(donation.pk, 'donor_completed', 'donor')
    return services.record_confirmation(donation.pk, 'recipient_received', 'recipient')


def test_new_donation_starts_initiated(donation, donor, requester):
    assert donation.overall_status == sm.INITIATED
    assert donation.trust_score == 50
    assert donation.verification_level == sm.BASIC
    assert donation.recipient == requester
    assert donation.hospital_name == 'Bir Hospital'
    assert list(donation.timeline.values_list('stage', flat=True)) == ['initiation']


def test_full_confirmation_flow(donation, donor, django_capture_on_commit_callbacks):
    updated = services.record_confirmation(donation.pk, 'donor_arrived', 'donor', location=(27.70, 85.31))
    assert updated.overall_status == sm.IN_PROGRESS
    assert updated.donor_latitude == 27.70

    updated = services.record_confirmation(donation.pk, 'hospital_received', 'hospital', notes='Bag 42')
    assert updated.overall_status == sm.HOSPITAL_CONFIRMED
    assert updated.verification_level == sm.VERIFIED
    assert updated.hospital_notes == 'Bag 42'

    updated = services.record_confirmation(donation.pk, 'donor_completed', 'donor')
    assert updated.overall_status == sm.HOSPITAL_CONFIRMED

    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        updated = services.record_confirmation(donation.pk, 'recipient_received', 'recipient')
    assert len(callbacks) == 1
    assert updated.overall_status == sm.COMPLETED
    assert updated.trust_score == 80

    match = MatchedDonor.objects.get(blood_request=donation.blood_request, donor=donor)
    assert match.status == MatchedDonor.STATUS_COMPLETED
    assert match.completed_at is not None
    donation.blood_request.refresh_from_db()
    assert donation.blood_request.fulfilled_units == 1

    donor.refresh_from_db()
    assert donor.last_donation_date == updated.donor_completed_at.date()

    timeline = list(updated.timeline.values_list('stage', 'actor'))
    assert timeline == [
        ('initiation', 'system'),
        ('arrival', 'donor'),
        ('hospital', 'hospital'),
        ('completion', 'donor'),
        ('receipt', 'recipient'),
    ]


def test_completion_is_counted_once(donation):
    confirm_all(donation)
    services.record_confirmation(donation.pk, 'recipient_received', 'system')

    donation.blood_request.refresh_from_db()
    assert donation.blood_request.fulfilled_units == 1


def test_first_timestamp_is_kept(donation):
    first = timezone.now() - timedelta(hours=2)
    later = timezone.now() - timedelta(hours=1)

    services.record_confirmation(donation.pk, 'donor_arrived', 'donor', timestamp=first)
    updated = services.record_confirmation(donation.pk, 'donor_arrived', 'system', timestamp=later)

    assert updated.donor_arrived_at == first
    assert updated.timeline.filter(stage='arrival').count() == 2


def test_out_of_order_confirmation_changes_nothing(donation):
    with pytest.raises(BusinessRuleViolation) as excinfo:
        services.record_confirmation(donation.pk, 'donor_completed', 'donor')

    assert excinfo.value.code == 'stage_out_of_order'
    donation.refresh_from_db()
    assert not donation.donor_completed
    assert donation.timeline.count() == 1


def test_wrong_actor_is_rejected(donation):
    with pytest.raises(BusinessRuleViolation):
        services.record_confirmation(donation.pk, 'donor_arrived', 'hospital')


def test_unknown_donation(db):
    with pytest.raises(NotFoundError):
        services.record_confirmation(123456, 'donor_arrived', 'donor')


# ============================================
# APPOINTMENTS
# ============================================
def test_schedule_appointment(donation):
    now = timezone.now()
    updated = services.schedule_appointment(donation.pk, 'donor', now + timedelta(days=2), 'Blood bank, 2nd floor', now=now)

    assert updated.overall_status == sm.SCHEDULED
    assert updated.appointment_status == 'confirmed'
    assert updated.timeline.filter(stage='scheduling').exists()


@pytest.mark.parametrize('offset', [timedelta(minutes=-5), timedelta(0), timedelta(days=31)])
def test_schedule_window(donation, offset):
    now = timezone.now()
    with pytest.raises(ValidationError):
        services.schedule_appointment(donation.pk, 'donor', now + offset, 'Ward 3', now=now)


def test_arrival_outranks_schedule(donation):
    services.schedule_appointment(donation.pk, 'recipient', timezone.now() + timedelta(days=1), 'Ward 3')
    updated = services.record_confirmation(donation.pk, 'donor_arrived', 'donor')
    assert updated.overall_status == sm.IN_PROGRESS


# ============================================
# PROOF
# ============================================
def test_proof_raises_trust(donation):
    updated = services.attach_proof(donation.pk, 'hospital', hospital_receipt='receipts/42.pdf')
    assert (updated.verification_level, updated.trust_score) == (sm.HOSPITAL_VERIFIED, 65)

    updated = services.attach_proof(donation.pk, 'hospital', medical_staff_signature='sig/42.png')
    assert (updated.verification_level, updated.trust_score) == (sm.MEDICAL_VERIFIED, 80)
    assert updated.timeline.filter(stage='proof').count() == 2


def test_proof_rejects_unknown_fields(donation):
    with pytest.raises(ValidationError):
        services.attach_proof(donation.pk, 'hospital', selfie='me.jpg')
    with pytest.raises(ValidationError):
        services.attach_proof(donation.pk, 'hospital')


# ============================================
# DISPUTES
# ============================================
def test_open_dispute_is_flagged_without_changing_status(donation, donor):
    services.record_confirmation(donation.pk, 'donor_arrived', 'donor')
    dispute = services.report_dispute(donation.pk, donor, 'Hospital turned me away')

    donation.refresh_from_db()
    assert dispute.status == 'open'
    assert donation.has_open_dispute
    assert donation.overall_status == sm.IN_PROGRESS
    assert donation.timeline.filter(stage='dispute').exists()


def test_only_participants_can_dispute(donation, make_user):
    with pytest.raises(BusinessRuleViolation) as excinfo:
        services.report_dispute(donation.pk, make_user(), 'Not my business')
    assert excinfo.value.code == 'dispute_not_allowed'


def test_escalated_dispute_until_resolved(donation, requester):
    services.record_confirmation(donation.pk, 'donor_arrived', 'donor')
    dispute = services.report_dispute(donation.pk, requester, 'Donor never showed', escalate=True)

    donation.refresh_from_db()
    assert donation.overall_status == sm.DISPUTED

    services.update_dispute(donation.pk, dispute.pk, 'resolved', resolution='Donor came the next day')

    donation.refresh_from_db()
    assert not donation.has_open_dispute
    assert donation.status_override == ''
    assert donation.overall_status == sm.IN_PROGRESS
    dispute.refresh_from_db()
    assert dispute.resolved_at is not None


def test_resolving_dispute_completes_the_donation(donation, donor, requester, django_capture_on_commit_callbacks):
    dispute = services.report_dispute(donation.pk, requester, 'Bag label did not match', escalate=True)
    confirm_all(donation)

    donation.refresh_from_db()
    assert donation.overall_status == sm.DISPUTED
    match = MatchedDonor.objects.get(blood_request=donation.blood_request, donor=donor)
    assert match.status == MatchedDonor.STATUS_ACCEPTED

    with django_capture_on_commit_callbacks(execute=True):
        services.update_dispute(donation.pk, dispute.pk, 'resolved', resolution='Label misprinted')

    donation.refresh_from_db()
    assert donation.overall_status == sm.COMPLETED
    match.refresh_from_db()
    assert match.status == MatchedDonor.STATUS_COMPLETED
    donation.blood_request.refresh_from_db()
    assert donation.blood_request.fulfilled_units == 1
    donor.refresh_from_db()
    assert donor.last_donation_date == donation.donor_completed_at.date()


def test_dispute_after_completion_does_not_count_twice(donation, requester, django_capture_on_commit_callbacks):
    confirm_all(donation)
    dispute = services.report_dispute(donation.pk, requester, 'Receipt missing', escalate=True)
    donation.refresh_from_db()
    assert donation.overall_status == sm.DISPUTED

    with django_capture_on_commit_callbacks() as callbacks:
        services.update_dispute(donation.pk, dispute.pk, 'resolved')

    assert callbacks == []
    donation.refresh_from_db()
    assert donation.overall_status == sm.COMPLETED
    donation.blood_request.refresh_from_db()
    assert donation.blood_request.fulfilled_units == 1


def test_dispute_marked_failed(donation, requester):
    dispute = services.report_dispute(donation.pk, requester, 'Wrong blood type delivered')
    services.update_dispute(donation.pk, dispute.pk, 'closed', mark_failed=True)

    donation.refresh_from_db()
    assert donation.overall_status == sm.FAILED
    with pytest.raises(BusinessRuleViolation):
        services.record_confirmation(donation.pk, 'donor_arrived', 'donor')


def test_update_unknown_dispute(donation):
    with pytest.raises(NotFoundError):
        services.update_dispute(donation.pk, 999, 'resolved')
    with pytest.raises(ValidationError):
        services.update_dispute(donation.pk, 999, 'forgotten')


# ============================================
# INITIATION
# ============================================
def test_explicit_initiation_needs_accepted_donor(make_user, make_request):
    blood_request = make_request()
    with pytest.raises(BusinessRuleViolation) as excinfo:
        services.initiate_donation_for_request(blood_request.pk, make_user().pk)
    assert excinfo.value.code == 'not_accepted_donor'


def test_explicit_initiation(make_user, make_request):
    donor = make_user()
    blood_request = make_request()
    MatchedDonor.objects.create(
        blood_request=blood_request, donor=donor, donor_name=donor.display_name,
        donor_blood_type=donor.blood_type, status=MatchedDonor.STATUS_ACCEPTED,
    )

    donation = services.initiate_donation_for_request(blood_request.pk, donor.pk)

    assert donation.donor == donor
    assert donation.timeline.get().actor == 'donor'


def test_explicit_initiation_rejects_duplicates(donation, donor):
    with pytest.raises(BusinessRuleViolation) as excinfo:
        services.initiate_donation_for_request(donation.blood_request_id, donor.pk)
    assert excinfo.value.code == 'donation_exists'
