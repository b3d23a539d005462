import logging
from dataclasses import dataclass, field
from typing import List, Optional

from algorithms.blood_compatibility import can_donate
from algorithms.haversine import donor_hospital_distance

# Logger
logger = logging.getLogger(__name__)

# Reason codes, in the order checks run
INCOMPATIBLE_BLOOD_TYPE = 'incompatible_blood_type'
UNAVAILABLE = 'unavailable'
ALREADY_RESPONDED = 'already_responded'
SELF_RESPONSE = 'self_response'
OUT_OF_RANGE = 'out_of_range'


@dataclass
class EligibilityResult:
    reasons: List[str] = field(default_factory=list)
    codes: List[str] = field(default_factory=list)
    blood_type_match: bool = False
    availability_match: bool = False
    distance_km: Optional[float] = None

    @property
    def is_eligible(self) -> bool:
        return not self.reasons

    def add(self, code, reason):
        self.codes.append(code)
        self.reasons.append(reason)

    def as_dict(self):
        return {
            'is_eligible': self.is_eligible,
            'reasons': list(self.reasons),
            'codes': list(self.codes),
            'blood_type_match': self.blood_type_match,
            'availability_match': self.availability_match,
            'distance_km': round(self.distance_km, 2) if self.distance_km is not None else None,
        }


def evaluate_eligibility(donor, blood_request, max_distance_km=None, responded_donor_ids=None) -> EligibilityResult:
    """
    Check if a donor may respond to a given blood request.

    Every check runs, so all failing reasons are reported together:
    - Donor blood type compatible with the patient
    - Donor has not marked themselves unavailable (unset means available)
    - Donor has no response on record for this request, whatever its status
    - Donor is not the requester
    - Donor is within max_distance_km of the hospital, when both locations are known

    Args:
        donor: accounts.CustomUser
        blood_request: blood_requests.BloodRequest
        max_distance_km (float): Maximum distance in km, None skips the check
        responded_donor_ids: ids of donors already on record for the request;
            looked up from the request when not given

    Returns:
        EligibilityResult: is_eligible is True iff reasons is empty
    """
    result = EligibilityResult()
    patient_blood_type = blood_request.patient_blood_type

    # Blood compatibility
    result.blood_type_match = bool(donor.blood_type) and can_donate(donor.blood_type, patient_blood_type)
    if not result.blood_type_match:
        result.add(
            INCOMPATIBLE_BLOOD_TYPE,
            f"Blood type {donor.blood_type or 'unknown'} is not compatible with {patient_blood_type}",
        )

    # Availability
    result.availability_match = donor.available_for_donation is not False
    if not result.availability_match:
        result.add(UNAVAILABLE, "Donor is marked as unavailable for donation")

    # Previous response on this request
    if responded_donor_ids is None:
        responded_donor_ids = set(blood_request.matched_donors.values_list('donor_id', flat=True))
    if donor.pk in responded_donor_ids:
        result.add(ALREADY_RESPONDED, "Donor has already responded to this request")

    # Own request
    if blood_request.requester_id == donor.pk:
        result.add(SELF_RESPONSE, "Donor cannot respond to their own request")

    # Distance check
    result.distance_km = donor_hospital_distance(donor, blood_request)
    if max_distance_km is not None and result.distance_km is not None and result.distance_km > max_distance_km:
        result.add(
            OUT_OF_RANGE,
            f"Donor is {result.distance_km:.1f}km from the hospital (limit {max_distance_km}km)",
        )

    if not result.is_eligible:
        logger.debug(f"Donor {donor.pk} not eligible for request {blood_request.pk}: {result.codes}")

    return result
