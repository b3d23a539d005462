import itertools

import pytest

from donations import state_machine as sm
from munqidh.exceptions import BusinessRuleViolation, ValidationError


def flags(*names):
    return {name: name in names for name in sm.CONFIRMATIONS}


@pytest.mark.parametrize('values', list(itertools.product([False, True], repeat=len(sm.CONFIRMATIONS))))
def test_completed_only_with_donor_hospital_and_recipient(values):
    confirmations = dict(zip(sm.CONFIRMATIONS, values))
    status = sm.derive_overall_status(confirmations)

    required = (
        confirmations['recipient_received']
        and confirmations['donor_completed']
        and confirmations['hospital_received']
    )
    assert (status == sm.COMPLETED) is required


@pytest.mark.parametrize('confirmed, scheduled, expected', [
    ((), False, sm.INITIATED),
    ((), True, sm.SCHEDULED),
    (('donor_arrived',), True, sm.IN_PROGRESS),
    (('donor_arrived', 'donor_completed'), False, sm.DONOR_COMPLETED),
    (('donor_arrived', 'hospital_received'), False, sm.HOSPITAL_CONFIRMED),
    (('donor_arrived', 'hospital_received', 'donor_completed'), False, sm.HOSPITAL_CONFIRMED),
    (('donor_arrived', 'hospital_received', 'blood_bank_processed'), False, sm.BLOOD_PROCESSED),
    # Recipient receipt without the hospital never completes
    (('donor_arrived', 'donor_completed', 'recipient_received'), False, sm.DONOR_COMPLETED),
    (('donor_arrived', 'hospital_received', 'donor_completed', 'recipient_received'), False, sm.COMPLETED),
])
def test_overall_status_progression(confirmed, scheduled, expected):
    assert sm.derive_overall_status(flags(*confirmed), scheduled=scheduled) == expected


@pytest.mark.parametrize('override', [sm.DISPUTED, sm.FAILED])
def test_override_wins(override):
    everything = flags(*sm.CONFIRMATIONS)
    assert sm.derive_overall_status(everything, override=override) == override


@pytest.mark.parametrize('confirmed, proof, status, expected', [
    ((), {}, sm.INITIATED, (sm.BASIC, 50)),
    (('hospital_received',), {}, sm.HOSPITAL_CONFIRMED, (sm.VERIFIED, 60)),
    ((), {'hospital_receipt': 'r.pdf'}, sm.INITIATED, (sm.HOSPITAL_VERIFIED, 65)),
    ((), {'hospital_receipt': 'r.pdf', 'medical_staff_signature': 's.png'}, sm.INITIATED, (sm.MEDICAL_VERIFIED, 80)),
    ((), {'medical_staff_signature': 's.png'}, sm.INITIATED, (sm.BASIC, 50)),
    (sm.CONFIRMATIONS, {}, sm.COMPLETED, (sm.VERIFIED, 80)),
    (sm.CONFIRMATIONS, {'hospital_receipt': 'r.pdf'}, sm.COMPLETED, (sm.HOSPITAL_VERIFIED, 85)),
    (sm.CONFIRMATIONS, {'hospital_receipt': 'r.pdf', 'medical_staff_signature': 's.png'}, sm.COMPLETED,
     (sm.MEDICAL_VERIFIED, 100)),
])
def test_verification_tiers(confirmed, proof, status, expected):
    assert sm.derive_verification(flags(*confirmed), proof, status) == expected


def test_trust_score_is_idempotent_and_capped():
    confirmations = flags(*sm.CONFIRMATIONS)
    proof = {'hospital_receipt': 'r.pdf', 'medical_staff_signature': 's.png'}

    results = {sm.derive_verification(confirmations, proof, sm.COMPLETED) for _ in range(5)}

    assert results == {(sm.MEDICAL_VERIFIED, sm.MAX_TRUST_SCORE)}


def test_confirmation_needs_its_prerequisite():
    sm.check_confirmation(flags(), 'donor_arrived', 'donor')
    sm.check_confirmation(flags('donor_arrived'), 'hospital_received', 'hospital')

    with pytest.raises(BusinessRuleViolation) as excinfo:
        sm.check_confirmation(flags(), 'donor_completed', 'donor')
    assert excinfo.value.code == 'stage_out_of_order'

    with pytest.raises(BusinessRuleViolation):
        sm.check_confirmation(flags('donor_arrived'), 'blood_bank_processed', 'hospital')
    with pytest.raises(BusinessRuleViolation):
        sm.check_confirmation(flags('donor_arrived', 'hospital_received'), 'recipient_received', 'recipient')


@pytest.mark.parametrize('name, actor', [
    ('donor_arrived', 'hospital'),
    ('donor_arrived', 'recipient'),
    ('hospital_received', 'donor'),
    ('blood_bank_processed', 'recipient'),
    ('recipient_received', 'donor'),
])
def test_actor_must_own_the_stage(name, actor):
    confirmations = flags(*sm.CONFIRMATIONS)
    with pytest.raises(BusinessRuleViolation) as excinfo:
        sm.check_confirmation(confirmations, name, actor)
    assert excinfo.value.code == 'actor_not_allowed'


def test_system_may_confirm_any_stage():
    confirmations = flags(*sm.CONFIRMATIONS)
    for name in sm.CONFIRMATIONS:
        sm.check_confirmation(confirmations, name, 'system')


def test_unknown_names_are_validation_errors():
    with pytest.raises(ValidationError):
        sm.check_confirmation(flags(), 'donor_teleported', 'donor')
    with pytest.raises(ValidationError):
        sm.check_confirmation(flags(), 'donor_arrived', 'nurse')
