from types import SimpleNamespace

from notifications.preferences import DEFAULT_PREFERENCES, notification_intent, resolve_donor_preferences


def donor(preferences):
    return SimpleNamespace(notification_preferences=preferences)


def request(urgency):
    return SimpleNamespace(urgency_level=urgency)


def test_missing_preferences_use_defaults():
    resolved = resolve_donor_preferences(donor(None))
    assert resolved == DEFAULT_PREFERENCES

    intent = notification_intent(donor(None), request('standard'))
    assert (intent.sms, intent.push, intent.in_app) == (True, True, True)


def test_missing_keys_fall_back_individually():
    resolved = resolve_donor_preferences(donor({'sms': False}))
    assert resolved['sms'] is False
    assert resolved['push'] is True
    assert resolved['urgency_levels'] == ['critical', 'urgent', 'standard']


def test_urgency_filter_silences_every_channel():
    prefs = donor({'urgency_levels': ['critical']})

    assert notification_intent(prefs, request('critical')).any
    intent = notification_intent(prefs, request('standard'))
    assert not intent.any


def test_sms_off_keeps_in_app():
    intent = notification_intent(donor({'sms': False, 'push': False}), request('urgent'))
    assert intent.sms is False
    assert intent.push is False
    assert intent.in_app is True


def test_unknown_urgency_levels_are_dropped():
    resolved = resolve_donor_preferences(donor({'urgency_levels': ['critical', 'whenever']}))
    assert resolved['urgency_levels'] == ['critical']
