"""
Blood Type Compatibility Helper
Determines which donor blood types can donate to which recipient blood types
"""

BLOOD_TYPES = ['A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-']

BLOOD_TYPE_CHOICES = [(blood_type, blood_type) for blood_type in BLOOD_TYPES]

# Blood type compatibility matrix (donor -> recipients)
COMPATIBILITY = {
    'O-': ['O-', 'O+', 'A-', 'A+', 'B-', 'B+', 'AB-', 'AB+'],  # Universal donor
    'O+': ['O+', 'A+', 'B+', 'AB+'],
    'A-': ['A-', 'A+', 'AB-', 'AB+'],
    'A+': ['A+', 'AB+'],
    'B-': ['B-', 'B+', 'AB-', 'AB+'],
    'B+': ['B+', 'AB+'],
    'AB-': ['AB-', 'AB+'],
    'AB+': ['AB+'],  # Universal recipient
}


def can_donate(donor_blood_type, patient_blood_type):
    """
    Check if a donor blood type can be given to a patient

    Args:
        donor_blood_type: Donor's blood type (e.g., 'O-')
        patient_blood_type: Patient's blood type (e.g., 'A+')

    Returns:
        Boolean: True if compatible, False otherwise (including unknown types)
    """
    recipients = COMPATIBILITY.get(donor_blood_type)
    if recipients is None:
        return False

    return patient_blood_type in recipients


def get_compatible_donors(patient_blood_type):
    """
    Get list of blood types that can donate to a patient

    Args:
        patient_blood_type: Patient's blood type

    Returns:
        List of compatible donor blood types
    """
    return [
        donor_type
        for donor_type, recipients in COMPATIBILITY.items()
        if patient_blood_type in recipients
    ]


def get_compatible_recipients(donor_blood_type):
    """Blood types a donor can give to; empty for unknown types."""
    return list(COMPATIBILITY.get(donor_blood_type, []))
