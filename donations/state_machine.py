"""
Donation lifecycle rules.

Pure functions: the overall status, verification level and trust score are
always derived from the confirmation flags and proof, never set directly.
"""
from munqidh.exceptions import BusinessRuleViolation, ValidationError

# Overall statuses
INITIATED = 'initiated'
SCHEDULED = 'scheduled'
IN_PROGRESS = 'in_progress'
DONOR_COMPLETED = 'donor_completed'
HOSPITAL_CONFIRMED = 'hospital_confirmed'
BLOOD_PROCESSED = 'blood_processed'
# Kept for ordering; recipient receipt alone never completes a donation
RECIPIENT_CONFIRMED = 'recipient_confirmed'
COMPLETED = 'completed'
DISPUTED = 'disputed'
FAILED = 'failed'

STATUSES = (
    INITIATED, SCHEDULED, IN_PROGRESS, DONOR_COMPLETED, HOSPITAL_CONFIRMED,
    BLOOD_PROCESSED, RECIPIENT_CONFIRMED, COMPLETED, DISPUTED, FAILED,
)
STATUS_CHOICES = [(status, status.replace('_', ' ').title()) for status in STATUSES]
OVERRIDES = (DISPUTED, FAILED)

# Verification levels
BASIC = 'basic'
VERIFIED = 'verified'
HOSPITAL_VERIFIED = 'hospital_verified'
MEDICAL_VERIFIED = 'medical_verified'
VERIFICATION_CHOICES = [
    (BASIC, 'Basic'),
    (VERIFIED, 'Verified'),
    (HOSPITAL_VERIFIED, 'Hospital Verified'),
    (MEDICAL_VERIFIED, 'Medical Verified'),
]

BASE_TRUST_SCORE = 50
COMPLETION_BONUS = 20
MAX_TRUST_SCORE = 100

# Confirmation flags in stage order
CONFIRMATIONS = (
    'donor_arrived',
    'hospital_received',
    'donor_completed',
    'blood_bank_processed',
    'recipient_received',
)

ACTORS = ('donor', 'recipient', 'hospital', 'system')
ACTOR_CHOICES = [(actor, actor.title()) for actor in ACTORS]

PREREQUISITES = {
    'donor_arrived': (),
    'hospital_received': ('donor_arrived',),
    'donor_completed': ('donor_arrived',),
    'blood_bank_processed': ('hospital_received',),
    'recipient_received': ('donor_completed',),
}

ALLOWED_ACTORS = {
    'donor_arrived': {'donor', 'system'},
    'donor_completed': {'donor', 'system'},
    'hospital_received': {'hospital', 'system'},
    'blood_bank_processed': {'hospital', 'system'},
    'recipient_received': {'recipient', 'system'},
}

# Timeline (stage, status) written for each confirmation
TIMELINE_STAGES = {
    'donor_arrived': ('arrival', 'donor_arrived'),
    'hospital_received': ('hospital', 'hospital_received'),
    'donor_completed': ('completion', 'donor_completed'),
    'blood_bank_processed': ('processing', 'blood_processed'),
    'recipient_received': ('receipt', 'recipient_confirmed'),
}


def derive_overall_status(confirmations, scheduled=False, override=''):
    """
    Overall status from the confirmation flags, highest stage first.

    A donation is completed only when the donor, the hospital and the
    recipient have all confirmed. A 'disputed' or 'failed' override wins.
    """
    if override:
        return override

    def confirmed(name):
        return bool(confirmations.get(name))

    if confirmed('recipient_received') and confirmed('donor_completed') and confirmed('hospital_received'):
        return COMPLETED
    if confirmed('blood_bank_processed'):
        return BLOOD_PROCESSED
    if confirmed('hospital_received'):
        return HOSPITAL_CONFIRMED
    if confirmed('donor_completed'):
        return DONOR_COMPLETED
    if confirmed('donor_arrived'):
        return IN_PROGRESS
    if scheduled:
        return SCHEDULED
    return INITIATED


def derive_verification(confirmations, proof, overall_status):
    """
    Returns:
        (verification_level, trust_score)
    """
    score = BASE_TRUST_SCORE
    if overall_status == COMPLETED:
        score += COMPLETION_BONUS

    has_receipt = bool(proof.get('hospital_receipt'))
    has_signature = bool(proof.get('medical_staff_signature'))

    if has_receipt and has_signature:
        level, bonus = MEDICAL_VERIFIED, 30
    elif has_receipt:
        level, bonus = HOSPITAL_VERIFIED, 15
    elif confirmations.get('hospital_received'):
        level, bonus = VERIFIED, 10
    else:
        level, bonus = BASIC, 0

    return level, min(score + bonus, MAX_TRUST_SCORE)


def check_confirmation(confirmations, name, actor):
    """Raise if `actor` may not record confirmation `name` right now"""
    if name not in PREREQUISITES:
        raise ValidationError(f"Unknown confirmation '{name}'", code='unknown_confirmation')
    if actor not in ACTORS:
        raise ValidationError(f"Unknown actor '{actor}'", code='unknown_actor')

    if actor not in ALLOWED_ACTORS[name]:
        raise BusinessRuleViolation(
            f"A {actor} cannot confirm {name.replace('_', ' ')}",
            code='actor_not_allowed',
        )

    missing = [prereq for prereq in PREREQUISITES[name] if not confirmations.get(prereq)]
    if missing:
        raise BusinessRuleViolation(
            f"{name.replace('_', ' ')} requires {', '.join(m.replace('_', ' ') for m in missing)} first",
            code='stage_out_of_order',
        )
