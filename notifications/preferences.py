"""
Donor notification preferences, resolved in one place so every caller applies
the same defaults.
"""
from dataclasses import dataclass

URGENCY_LEVELS = ('critical', 'urgent', 'standard')

DEFAULT_PREFERENCES = {
    'sms': True,
    'push': True,
    'email': False,
    'urgency_levels': list(URGENCY_LEVELS),
}


@dataclass(frozen=True)
class NotificationIntent:
    sms: bool
    push: bool
    in_app: bool

    @property
    def any(self):
        return self.sms or self.push or self.in_app


def resolve_donor_preferences(donor):
    """
    Donor's stored preferences filled in with defaults.

    A missing preferences object, a missing key, or a missing urgency list
    all fall back to the default (SMS and push on, every urgency level).
    """
    stored = donor.notification_preferences or {}
    resolved = dict(DEFAULT_PREFERENCES)
    for key in ('sms', 'push', 'email'):
        if stored.get(key) is not None:
            resolved[key] = bool(stored[key])

    urgency_levels = stored.get('urgency_levels')
    if urgency_levels is not None:
        resolved['urgency_levels'] = [level for level in urgency_levels if level in URGENCY_LEVELS]
    else:
        resolved['urgency_levels'] = list(URGENCY_LEVELS)

    return resolved


def notification_intent(donor, blood_request):
    prefs = resolve_donor_preferences(donor)
    urgency_allowed = blood_request.urgency_level in prefs['urgency_levels']
    return NotificationIntent(
        sms=prefs['sms'] and urgency_allowed,
        push=prefs['push'] and urgency_allowed,
        in_app=urgency_allowed,
    )
