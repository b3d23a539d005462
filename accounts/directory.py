"""
User Directory: read-only donor lookups for the matching engine
"""
from django.contrib.auth import get_user_model
from django.db.models import Q

from munqidh.exceptions import NotFoundError

User = get_user_model()


def get_donor(donor_id):
    try:
        return User.objects.get(pk=donor_id)
    except (User.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Donor {donor_id} not found", code='donor_not_found')


def find_donors(has_blood_type=True, exclude_id=None, available_only=False):
    """
    Donor pool for outreach.

    Args:
        has_blood_type: only users who filled in a blood type
        exclude_id: user to leave out (usually the requester)
        available_only: drop donors who marked themselves unavailable

    Returns:
        QuerySet of users
    """
    queryset = User.objects.filter(is_active=True, is_donor=True)

    if has_blood_type:
        queryset = queryset.exclude(Q(blood_type__isnull=True) | Q(blood_type=''))
    if exclude_id is not None:
        queryset = queryset.exclude(pk=exclude_id)
    if available_only:
        queryset = queryset.exclude(available_for_donation=False)

    return queryset.order_by('pk')
