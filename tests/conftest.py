import itertools
from datetime import timedelta

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient

from blood_requests.models import BloodRequest
from notifications.sms import LocmemSmsGateway

User = get_user_model()

# Bir Hospital, Kathmandu
HOSPITAL_LAT = 27.7050
HOSPITAL_LON = 85.3131

_sequence = itertools.count(1)


@pytest.fixture(autouse=True)
def sms_outbox():
    LocmemSmsGateway.reset()
    yield LocmemSmsGateway
    LocmemSmsGateway.reset()


@pytest.fixture
def make_user(db):
    def factory(**kwargs):
        n = next(_sequence)
        defaults = {
            'username': f'user{n}',
            'full_name': f'User {n}',
            'phone_number': f'+97798000{n:05d}',
            'blood_type': 'O-',
            'latitude': HOSPITAL_LAT + 0.01,
            'longitude': HOSPITAL_LON + 0.01,
        }
        defaults.update(kwargs)
        password = defaults.pop('password', 'secret-pass-123')
        return User.objects.create_user(password=password, **defaults)
    return factory


@pytest.fixture
def requester(make_user):
    return make_user(username='requester', full_name='Sita Sharma', blood_type='A+')


@pytest.fixture
def make_request(db, requester):
    def factory(**kwargs):
        defaults = {
            'requester': requester,
            'patient_name': 'Ram Bahadur',
            'patient_age': 45,
            'patient_blood_type': 'A+',
            'patient_condition': 'Surgery',
            'hospital_name': 'Bir Hospital',
            'hospital_address': 'Kanti Path, Kathmandu',
            'hospital_latitude': HOSPITAL_LAT,
            'hospital_longitude': HOSPITAL_LON,
            'urgency_level': 'urgent',
            'required_units': 1,
            'deadline': timezone.now() + timedelta(days=1),
            'requester_name': 'Sita Sharma',
            'requester_phone': '+9779800000000',
        }
        defaults.update(kwargs)
        return BloodRequest.objects.create(**defaults)
    return factory


@pytest.fixture
def api_client():
    return APIClient()
