import logging

from django.contrib.auth import get_user_model
from django.dispatch import receiver

from donations.signals import donation_completed

logger = logging.getLogger(__name__)

User = get_user_model()


@receiver(donation_completed)
def record_last_donation(sender, donation, **kwargs):
    """Keep the donor's last donation date in step with completed donations"""
    donated_on = (donation.donor_completed_at or donation.updated_at).date()
    User.objects.filter(pk=donation.donor_id).update(last_donation_date=donated_on)
    logger.info(f"Donor {donation.donor_id} last donation date set to {donated_on}")
