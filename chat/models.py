from django.conf import settings
from django.db import models


class ChatChannel(models.Model):
    channel_id = models.CharField(max_length=200, unique=True)
    participants = models.ManyToManyField(settings.AUTH_USER_MODEL, related_name='chat_channels')
    blood_request = models.ForeignKey(
        'blood_requests.BloodRequest',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='chat_channels'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.channel_id


class ChatMessage(models.Model):
    channel = models.ForeignKey(ChatChannel, on_delete=models.CASCADE, related_name='messages')
    # Null sender means a system message
    sender = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    text = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    @property
    def is_system(self):
        return self.sender_id is None

    def __str__(self):
        return f"{self.channel.channel_id}: {self.text[:40]}"

    class Meta:
        ordering = ['created_at']
