from django.contrib.auth.models import AbstractUser
from django.db import models

from algorithms.blood_compatibility import BLOOD_TYPE_CHOICES


class CustomUser(AbstractUser):
    USER_TYPE_CHOICES = (
        ('member', 'Member'),
        ('hospital_staff', 'Hospital Staff'),
        ('super_admin', 'Super Admin'),
    )

    user_type = models.CharField(
        max_length=15,
        choices=USER_TYPE_CHOICES,
        default='member'
    )
    full_name = models.CharField(max_length=200, blank=True)
    phone_number = models.CharField(max_length=20, unique=True, null=True, blank=True)

    # Donor info
    blood_type = models.CharField(max_length=3, choices=BLOOD_TYPE_CHOICES, null=True, blank=True)
    is_donor = models.BooleanField(default=True)
    # None means the donor never set it, which counts as available
    available_for_donation = models.BooleanField(null=True, blank=True)
    last_donation_date = models.DateField(null=True, blank=True)

    # Geolocation (optional)
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)

    # {"sms": bool, "push": bool, "email": bool, "urgency_levels": [...]}
    notification_preferences = models.JSONField(null=True, blank=True)

    def __str__(self):
        return f"{self.display_name} ({self.blood_type or 'no blood type'})"

    @property
    def display_name(self):
        return self.full_name or self.get_full_name() or self.username

    class Meta:
        indexes = [
            models.Index(fields=['is_donor', 'available_for_donation', 'blood_type'], name='accounts_cu_is_dono_5b1f0e_idx'),
        ]
