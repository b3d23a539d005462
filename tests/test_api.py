from datetime import timedelta

import pytest
from django.utils import timezone

from blood_requests.models import BloodRequest
from donations.models import Donation
from munqidh.exceptions import ConcurrencyConflict, api_exception_handler
from notifications.models import Notification


@pytest.fixture
def donor(make_user):
    return make_user(username='donor', full_name='Hari Thapa')


@pytest.fixture
def accepted(api_client, donor, make_request):
    blood_request = make_request()
    api_client.force_authenticate(donor)
    response = api_client.post(f'/api/blood-requests/{blood_request.pk}/respond/')
    assert response.status_code == 200
    return Donation.objects.get(pk=response.data['donation_id'])


def request_payload(**overrides):
    payload = {
        'patient_name': 'Gita Rai',
        'patient_age': 30,
        'patient_blood_type': 'A+',
        'patient_condition': 'Postpartum bleeding',
        'hospital_name': 'Bir Hospital',
        'hospital_latitude': 27.7050,
        'hospital_longitude': 85.3131,
        'urgency_level': 'critical',
        'required_units': 2,
        'deadline': (timezone.now() + timedelta(hours=6)).isoformat(),
    }
    payload.update(overrides)
    return payload


# ============================================
# BLOOD REQUESTS
# ============================================
def test_anonymous_users_are_rejected(api_client, db):
    assert api_client.get('/api/blood-requests/').status_code == 401


def test_create_request_notifies_donors(api_client, requester, make_user, sms_outbox,
                                        django_capture_on_commit_callbacks):
    nearby = make_user(blood_type='O+')
    api_client.force_authenticate(requester)

    with django_capture_on_commit_callbacks(execute=True):
        response = api_client.post('/api/blood-requests/', request_payload(), format='json')

    assert response.status_code == 201
    assert response.data['status'] == BloodRequest.STATUS_ACTIVE
    assert response.data['requester'] == requester.pk
    assert response.data['requester_phone'] == requester.phone_number
    assert response.data['remaining_units'] == 2

    notification = Notification.objects.get(user=nearby)
    assert notification.urgent
    assert [m['to'] for m in sms_outbox.outbox] == [nearby.phone_number]


def test_create_request_validates_deadline(api_client, requester):
    api_client.force_authenticate(requester)
    past = (timezone.now() - timedelta(hours=1)).isoformat()

    response = api_client.post('/api/blood-requests/', request_payload(deadline=past), format='json')

    assert response.status_code == 400
    assert 'deadline' in response.data


def test_list_filters_by_status(api_client, donor, make_request):
    make_request()
    make_request(status=BloodRequest.STATUS_EXPIRED)
    api_client.force_authenticate(donor)

    response = api_client.get('/api/blood-requests/', {'status': 'active'})

    assert response.status_code == 200
    assert [r['status'] for r in response.data] == ['active']


def test_respond_returns_contacts_and_chat(api_client, donor, make_request):
    blood_request = make_request()
    api_client.force_authenticate(donor)

    response = api_client.post(f'/api/blood-requests/{blood_request.pk}/respond/')

    assert response.status_code == 200
    assert response.data['fulfilled'] is True
    assert response.data['donor']['name'] == 'Hari Thapa'
    assert response.data['requester']['phone'] == blood_request.requester_phone
    assert response.data['chat_id'].endswith(f'_{blood_request.pk}')


def test_duplicate_respond_reports_error_code(api_client, donor, make_request):
    blood_request = make_request(required_units=2)
    api_client.force_authenticate(donor)
    api_client.post(f'/api/blood-requests/{blood_request.pk}/respond/')

    response = api_client.post(f'/api/blood-requests/{blood_request.pk}/respond/')

    assert response.status_code == 400
    assert response.data['code'] == 'already_responded'
    assert response.data['error'] == 'BusinessRuleViolation'


def test_respond_to_missing_request(api_client, donor):
    api_client.force_authenticate(donor)
    response = api_client.post('/api/blood-requests/424242/respond/')
    assert response.status_code == 404
    assert response.data['code'] == 'request_not_found'


def test_conflict_maps_to_409(db):
    response = api_exception_handler(ConcurrencyConflict("Request no longer available"), {})
    assert response.status_code == 409
    assert response.data['code'] == 'request_unavailable'
    assert response.data['error'] == 'ConcurrencyConflict'


def test_decline(api_client, donor, make_request):
    blood_request = make_request()
    api_client.force_authenticate(donor)

    response = api_client.post(f'/api/blood-requests/{blood_request.pk}/decline/')

    assert response.status_code == 200
    assert response.data['status'] == 'declined'


def test_eligibility(api_client, make_user, make_request):
    blood_request = make_request(patient_blood_type='O-')
    api_client.force_authenticate(make_user(blood_type='A+'))

    response = api_client.get(f'/api/blood-requests/{blood_request.pk}/eligibility/')

    assert response.status_code == 200
    assert response.data['is_eligible'] is False
    assert response.data['codes'] == ['incompatible_blood_type']


def test_only_requester_can_renotify(api_client, donor, requester, make_request):
    blood_request = make_request()

    api_client.force_authenticate(donor)
    assert api_client.post(f'/api/blood-requests/{blood_request.pk}/notify/').status_code == 403

    api_client.force_authenticate(requester)
    response = api_client.post(f'/api/blood-requests/{blood_request.pk}/notify/')
    assert response.status_code == 200
    assert response.data['eligible_donors'] == 1


# ============================================
# DONATIONS
# ============================================
def test_donor_confirms_arrival(api_client, accepted):
    response = api_client.post(
        f'/api/donations/{accepted.pk}/confirm/',
        {'confirmation': 'donor_arrived', 'latitude': 27.705, 'longitude': 85.313},
        format='json',
    )

    assert response.status_code == 200
    assert response.data['overall_status'] == 'in_progress'
    assert response.data['timeline'][-1]['actor'] == 'donor'


def test_recipient_cannot_confirm_for_donor(api_client, accepted, requester):
    api_client.force_authenticate(requester)
    response = api_client.post(
        f'/api/donations/{accepted.pk}/confirm/', {'confirmation': 'donor_arrived'}, format='json'
    )
    assert response.status_code == 400
    assert response.data['code'] == 'actor_not_allowed'


def test_hospital_staff_confirms_receipt(api_client, accepted, make_user):
    api_client.post(f'/api/donations/{accepted.pk}/confirm/', {'confirmation': 'donor_arrived'}, format='json')
    api_client.force_authenticate(make_user(user_type='hospital_staff'))

    response = api_client.post(
        f'/api/donations/{accepted.pk}/confirm/', {'confirmation': 'hospital_received'}, format='json'
    )

    assert response.status_code == 200
    assert response.data['overall_status'] == 'hospital_confirmed'
    assert response.data['verification_level'] == 'verified'


def test_outsiders_cannot_see_donation(api_client, accepted, make_user):
    api_client.force_authenticate(make_user())
    assert api_client.get(f'/api/donations/{accepted.pk}/').status_code == 404


def test_schedule_and_proof(api_client, accepted):
    response = api_client.post(
        f'/api/donations/{accepted.pk}/schedule/',
        {'appointment_at': (timezone.now() + timedelta(days=1)).isoformat(), 'place': 'Blood bank'},
        format='json',
    )
    assert response.status_code == 200
    assert response.data['overall_status'] == 'scheduled'

    response = api_client.post(
        f'/api/donations/{accepted.pk}/proof/', {'hospital_receipt': 'receipts/1.pdf'}, format='json'
    )
    assert response.status_code == 200
    assert response.data['trust_score'] == 65


def test_dispute_workflow(api_client, accepted, donor, make_user):
    response = api_client.post(
        f'/api/donations/{accepted.pk}/disputes/', {'reason': 'Appointment cancelled', 'escalate': True}, format='json'
    )
    assert response.status_code == 201
    dispute_id = response.data['id']
    assert api_client.get(f'/api/donations/{accepted.pk}/').data['overall_status'] == 'disputed'

    # Donors cannot resolve their own disputes
    response = api_client.patch(
        f'/api/donations/{accepted.pk}/disputes/{dispute_id}/', {'status': 'resolved'}, format='json'
    )
    assert response.status_code == 403

    api_client.force_authenticate(make_user(is_staff=True))
    response = api_client.patch(
        f'/api/donations/{accepted.pk}/disputes/{dispute_id}/',
        {'status': 'resolved', 'resolution': 'Rescheduled'},
        format='json',
    )
    assert response.status_code == 200
    assert response.data['status'] == 'resolved'
    accepted.refresh_from_db()
    assert accepted.overall_status == 'initiated'


# ============================================
# NOTIFICATIONS & AUTH
# ============================================
def test_notifications_inbox(api_client, donor):
    notification = Notification.objects.create(user=donor, title='Blood needed', message='Can you help?')
    Notification.objects.create(user=donor, title='Old', message='Read already', is_read=True)
    api_client.force_authenticate(donor)

    response = api_client.get('/api/notifications/', {'unread': '1'})
    assert [n['id'] for n in response.data] == [notification.pk]

    response = api_client.post(f'/api/notifications/{notification.pk}/mark-read/')
    assert response.status_code == 200
    notification.refresh_from_db()
    assert notification.is_read


def test_token_obtain(api_client, make_user):
    make_user(username='kiran', password='another-secret-9', blood_type='B-')

    response = api_client.post('/api/token/', {'username': 'kiran', 'password': 'another-secret-9'}, format='json')

    assert response.status_code == 200
    assert 'access' in response.data
    assert 'refresh' in response.data
