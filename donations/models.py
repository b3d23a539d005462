from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from algorithms.blood_compatibility import BLOOD_TYPE_CHOICES
from donations import state_machine


class Donation(models.Model):
    APPOINTMENT_STATUS_CHOICES = [
        ('unscheduled', 'Unscheduled'),
        ('confirmed', 'Confirmed'),
        ('in_progress', 'In Progress'),
        ('completed', 'Completed'),
        ('missed', 'Missed'),
        ('cancelled', 'Cancelled'),
    ]

    DONATION_TYPE_CHOICES = [
        ('whole_blood', 'Whole Blood'),
        ('plasma', 'Plasma'),
        ('platelets', 'Platelets'),
        ('red_cells', 'Red Cells'),
    ]

    blood_request = models.OneToOneField(
        'blood_requests.BloodRequest',
        on_delete=models.PROTECT,
        related_name='donation'
    )
    donor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='donations_given')
    recipient = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='donations_received')
    blood_type = models.CharField(max_length=3, choices=BLOOD_TYPE_CHOICES)

    # Hospital snapshot
    hospital_name = models.CharField(max_length=200)
    hospital_address = models.TextField(blank=True)
    hospital_contact_number = models.CharField(max_length=20, blank=True)
    hospital_department = models.CharField(max_length=100, blank=True)
    hospital_reference = models.CharField(max_length=100, blank=True)

    # Appointment
    appointment_at = models.DateTimeField(null=True, blank=True)
    appointment_place = models.CharField(max_length=200, blank=True)
    estimated_duration = models.PositiveIntegerField(default=60, help_text="Minutes")
    appointment_status = models.CharField(max_length=15, choices=APPOINTMENT_STATUS_CHOICES, default='unscheduled')

    # Proof of donation
    hospital_receipt = models.CharField(max_length=255, blank=True)
    medical_staff_signature = models.CharField(max_length=255, blank=True)
    hospital_reference_number = models.CharField(max_length=100, blank=True)
    donation_certificate = models.CharField(max_length=255, blank=True)
    blood_bag_id = models.CharField(max_length=100, blank=True)

    # Stage 1: donor at hospital
    donor_arrived = models.BooleanField(default=False)
    donor_arrived_at = models.DateTimeField(null=True, blank=True)
    donor_latitude = models.FloatField(null=True, blank=True)
    donor_longitude = models.FloatField(null=True, blank=True)
    # Stage 2: hospital processing
    hospital_received = models.BooleanField(default=False)
    hospital_received_at = models.DateTimeField(null=True, blank=True)
    hospital_staff_id = models.CharField(max_length=100, blank=True)
    hospital_notes = models.TextField(blank=True)
    # Stage 3: donor completion
    donor_completed = models.BooleanField(default=False)
    donor_completed_at = models.DateTimeField(null=True, blank=True)
    donor_notes = models.TextField(blank=True)
    # Stage 4: blood bank processing
    blood_bank_processed = models.BooleanField(default=False)
    blood_bank_processed_at = models.DateTimeField(null=True, blank=True)
    blood_bank_reference = models.CharField(max_length=100, blank=True)
    # Stage 5: recipient received
    recipient_received = models.BooleanField(default=False)
    recipient_received_at = models.DateTimeField(null=True, blank=True)
    recipient_notes = models.TextField(blank=True)

    # Derived by state_machine, written only by donations.services
    overall_status = models.CharField(
        max_length=20, choices=state_machine.STATUS_CHOICES, default=state_machine.INITIATED, db_index=True
    )
    verification_level = models.CharField(
        max_length=20, choices=state_machine.VERIFICATION_CHOICES, default=state_machine.BASIC
    )
    trust_score = models.PositiveSmallIntegerField(
        default=state_machine.BASE_TRUST_SCORE, validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    status_override = models.CharField(
        max_length=10,
        blank=True,
        choices=[('', 'None'), (state_machine.DISPUTED, 'Disputed'), (state_machine.FAILED, 'Failed')],
    )

    # Medical details
    volume_ml = models.PositiveIntegerField(null=True, blank=True)
    donation_type = models.CharField(max_length=15, choices=DONATION_TYPE_CHOICES, default='whole_blood')
    emergency_level = models.CharField(max_length=10, default='standard')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Donation #{self.pk} for request #{self.blood_request_id} ({self.overall_status})"

    def confirmation_flags(self):
        return {name: getattr(self, name) for name in state_machine.CONFIRMATIONS}

    def proof(self):
        return {
            'hospital_receipt': self.hospital_receipt,
            'medical_staff_signature': self.medical_staff_signature,
        }

    @property
    def has_open_dispute(self):
        return self.disputes.filter(status__in=DonationDispute.OPEN_STATUSES).exists()

    def refresh_derived_state(self):
        """Recompute overall status, verification level and trust score from the evidence"""
        self.overall_status = state_machine.derive_overall_status(
            self.confirmation_flags(),
            scheduled=self.appointment_at is not None,
            override=self.status_override,
        )
        self.verification_level, self.trust_score = state_machine.derive_verification(
            self.confirmation_flags(), self.proof(), self.overall_status
        )

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['donor', '-created_at'], name='donations_d_donor_i_7c1a3b_idx'),
            models.Index(fields=['recipient', '-created_at'], name='donations_d_recipie_2f9e64_idx'),
        ]


class DonationTimelineEntry(models.Model):
    """Append-only history of a donation"""
    donation = models.ForeignKey(Donation, on_delete=models.CASCADE, related_name='timeline')
    stage = models.CharField(max_length=30)
    status = models.CharField(max_length=30)
    actor = models.CharField(max_length=10, choices=state_machine.ACTOR_CHOICES)
    notes = models.TextField(blank=True)
    evidence = models.CharField(max_length=255, blank=True)
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)
    timestamp = models.DateTimeField()

    def __str__(self):
        return f"{self.stage}/{self.status} by {self.actor}"

    class Meta:
        ordering = ['timestamp', 'pk']
        verbose_name_plural = 'Donation timeline entries'


class DonationDispute(models.Model):
    STATUS_CHOICES = [
        ('open', 'Open'),
        ('investigating', 'Investigating'),
        ('resolved', 'Resolved'),
        ('closed', 'Closed'),
    ]
    OPEN_STATUSES = ('open', 'investigating')

    donation = models.ForeignKey(Donation, on_delete=models.CASCADE, related_name='disputes')
    reported_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='donation_disputes')
    reason = models.TextField()
    status = models.CharField(max_length=15, choices=STATUS_CHOICES, default='open')
    resolution = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    resolved_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"Dispute #{self.pk} on donation #{self.donation_id} ({self.status})"

    class Meta:
        ordering = ['created_at']
