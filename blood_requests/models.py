# blood_requests/models.py
from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from algorithms.blood_compatibility import BLOOD_TYPE_CHOICES


class BloodRequest(models.Model):
    URGENCY_CHOICES = [
        ('critical', 'Critical - Life Threatening'),
        ('urgent', 'Urgent'),
        ('standard', 'Standard'),
    ]

    STATUS_ACTIVE = 'active'
    STATUS_FULFILLED = 'fulfilled'
    STATUS_EXPIRED = 'expired'
    STATUS_CANCELLED = 'cancelled'

    STATUS_CHOICES = [
        (STATUS_ACTIVE, 'Active'),
        (STATUS_FULFILLED, 'Fulfilled'),
        (STATUS_EXPIRED, 'Expired'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    requester = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='blood_requests')

    # Patient
    patient_name = models.CharField(max_length=200)
    patient_age = models.PositiveIntegerField(validators=[MaxValueValidator(150)])
    patient_blood_type = models.CharField(max_length=3, choices=BLOOD_TYPE_CHOICES)
    patient_condition = models.TextField()
    urgent_note = models.TextField(blank=True)

    # Hospital
    hospital_name = models.CharField(max_length=200, blank=True)
    hospital_address = models.TextField(blank=True)
    hospital_latitude = models.FloatField(null=True, blank=True)
    hospital_longitude = models.FloatField(null=True, blank=True)
    hospital_contact_number = models.CharField(max_length=20, blank=True)
    hospital_department = models.CharField(max_length=100, blank=True)

    urgency_level = models.CharField(max_length=10, choices=URGENCY_CHOICES, default='standard')
    required_units = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    deadline = models.DateTimeField()
    description = models.TextField(blank=True)

    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True)
    fulfilled_units = models.PositiveIntegerField(default=0)
    # Only ever changed by the conditional update in blood_requests.coordinator
    accepted_count = models.PositiveIntegerField(default=0, editable=False)

    # Contact
    requester_name = models.CharField(max_length=200)
    requester_phone = models.CharField(max_length=20)
    alternate_contact = models.CharField(max_length=100, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.patient_blood_type} for {self.patient_name} ({self.urgency_level}, {self.status})"

    @property
    def is_past_deadline(self):
        return self.deadline <= timezone.now()

    @property
    def remaining_units(self):
        return max(self.required_units - self.accepted_count, 0)

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Blood Request'
        verbose_name_plural = 'Blood Requests'
        indexes = [
            models.Index(fields=['status', 'deadline'], name='blood_reque_status_3c8e1a_idx'),
            models.Index(fields=['patient_blood_type', 'status'], name='blood_reque_patient_9d2f47_idx'),
        ]
        constraints = [
            models.CheckConstraint(condition=Q(required_units__gte=1), name='blood_request_required_units_min'),
            models.CheckConstraint(
                condition=Q(accepted_count__lte=F('required_units')),
                name='blood_request_accepted_within_capacity',
            ),
        ]


class MatchedDonor(models.Model):
    """A donor's response to a blood request"""
    STATUS_PENDING = 'pending'
    STATUS_ACCEPTED = 'accepted'
    STATUS_COMPLETED = 'completed'
    STATUS_DECLINED = 'declined'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_ACCEPTED, 'Accepted'),
        (STATUS_COMPLETED, 'Donation Completed'),
        (STATUS_DECLINED, 'Declined'),
    ]

    blood_request = models.ForeignKey(BloodRequest, on_delete=models.CASCADE, related_name='matched_donors')
    donor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='blood_request_responses')

    donor_name = models.CharField(max_length=200)
    donor_blood_type = models.CharField(max_length=3, choices=BLOOD_TYPE_CHOICES)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING)
    responded_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True)

    def __str__(self):
        return f"{self.donor_name} → {self.status}"

    class Meta:
        ordering = ['responded_at']
        constraints = [
            models.UniqueConstraint(fields=['blood_request', 'donor'], name='one_response_per_donor_per_request'),
        ]
