from django.contrib import admin

from .models import DonorNotification, Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['title', 'user', 'kind', 'urgent', 'is_read', 'created_at']
    list_filter = ['kind', 'urgent', 'is_read']
    search_fields = ['title', 'message', 'user__username']
    readonly_fields = ['created_at']

    actions = ['mark_as_read']

    @admin.action(description='Mark selected notifications as read')
    def mark_as_read(self, request, queryset):
        updated = queryset.update(is_read=True)
        self.message_user(request, f'Marked {updated} notification(s) as read.')


@admin.register(DonorNotification)
class DonorNotificationAdmin(admin.ModelAdmin):
    list_display = ['donor', 'blood_request', 'status', 'sms_sent', 'push_requested', 'distance', 'notified_at']
    list_filter = ['status', 'sms_sent', 'push_requested']
    search_fields = ['donor__username', 'blood_request__hospital_name']
    readonly_fields = ['notified_at', 'responded_at']
