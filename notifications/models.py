from django.conf import settings
from django.db import models


class Notification(models.Model):
    """In-app notification shown in a user's inbox"""
    KIND_CHOICES = [
        ('blood_request', 'Blood Request'),
        ('request_fulfilled', 'Request Fulfilled'),
        ('donor_accepted', 'Donor Accepted'),
        ('donation_update', 'Donation Update'),
    ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='notifications')
    kind = models.CharField(max_length=20, choices=KIND_CHOICES, default='blood_request')
    title = models.CharField(max_length=200)
    message = models.TextField()
    data = models.JSONField(default=dict, blank=True)
    urgent = models.BooleanField(default=False)
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.title} → {self.user}"

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'is_read', '-created_at'], name='notificatio_user_id_8a5c2e_idx'),
        ]


class DonorNotification(models.Model):
    """Tracks which donors were reached for each blood request"""
    STATUS_NOTIFIED = 'notified'
    STATUS_ACCEPTED = 'accepted'
    STATUS_DECLINED = 'declined'
    STATUS_STOOD_DOWN = 'stood_down'

    STATUS_CHOICES = [
        (STATUS_NOTIFIED, 'Notified'),
        (STATUS_ACCEPTED, 'Accepted'),
        (STATUS_DECLINED, 'Declined'),
        (STATUS_STOOD_DOWN, 'Stood Down'),
    ]

    donor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='donor_notifications')
    blood_request = models.ForeignKey(
        'blood_requests.BloodRequest',
        on_delete=models.CASCADE,
        related_name='donor_notifications'
    )

    distance = models.FloatField(null=True, blank=True)
    sms_sent = models.BooleanField(default=False)
    push_requested = models.BooleanField(default=False)
    in_app_notification = models.ForeignKey(Notification, on_delete=models.SET_NULL, null=True, blank=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_NOTIFIED)
    notified_at = models.DateTimeField(auto_now_add=True)
    responded_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"Notification → {self.donor} | Request #{self.blood_request_id} ({self.status})"

    class Meta:
        ordering = ['-notified_at']
        indexes = [
            models.Index(fields=['blood_request', 'status'], name='notificatio_blood_r_4e7b91_idx'),
        ]
        constraints = [
            models.UniqueConstraint(fields=['blood_request', 'donor'], name='one_outreach_per_donor_per_request'),
        ]
