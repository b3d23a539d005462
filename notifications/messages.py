# notifications/messages.py
"""
Text templates for donor and requester messages
"""

URGENCY_EMOJI = {
    'critical': '🆘',
    'urgent': '⚠️',
    'standard': '🩸',
}


def _hospital(blood_request):
    return blood_request.hospital_name or 'Hospital not specified'


def solicitation_sms(blood_request):
    emoji = URGENCY_EMOJI.get(blood_request.urgency_level, '🩸')
    return f"""
{emoji} Munqidh - {blood_request.urgency_level.upper()}

{blood_request.patient_blood_type} blood needed!
Hospital: {_hospital(blood_request)}
Patient: {blood_request.patient_name}

Your donation can save a life. Open the app to respond.
    """.strip()


def solicitation_notification(blood_request):
    emoji = URGENCY_EMOJI.get(blood_request.urgency_level, '🩸')
    return {
        'title': f"{emoji} {blood_request.patient_blood_type} Blood Needed",
        'message': (
            f"{blood_request.patient_name} needs {blood_request.patient_blood_type} blood "
            f"at {_hospital(blood_request)}. Can you help?"
        ),
        'data': {
            'request_id': blood_request.pk,
            'blood_type': blood_request.patient_blood_type,
            'hospital': blood_request.hospital_name,
            'urgency': blood_request.urgency_level,
            'deadline': blood_request.deadline.isoformat(),
        },
        'urgent': blood_request.urgency_level == 'critical',
    }


def fulfilled_sms(blood_request):
    return f"""
🙏 Munqidh

Thank you! The {blood_request.patient_blood_type} blood request at {_hospital(blood_request)} has been filled.
Other donors already answered, so no action is needed.

Your availability saves lives!
    """.strip()


def fulfilled_notification(blood_request):
    return {
        'title': "✅ Blood request fulfilled",
        'message': (
            f"The {blood_request.patient_blood_type} request for {blood_request.patient_name} "
            f"has all the donors it needs. Thank you for being ready to help!"
        ),
        'data': {'request_id': blood_request.pk, 'status': blood_request.status},
        'urgent': False,
    }


def donor_accepted_sms(blood_request, donor):
    return f"""
🩸 Munqidh

{donor.display_name} ({donor.blood_type}) accepted your blood request for {blood_request.patient_name}.
Phone: {donor.phone_number or 'N/A'}
Open the app to chat and coordinate.
    """.strip()


def donor_accepted_chat(donor):
    return f"{donor.display_name} ({donor.blood_type}) wants to help with your blood request! 🩸"
